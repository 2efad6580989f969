from rest_framework import serializers

from surgiclinic.surgery.models import SurgicalUrgency

from .models import Consultation, ConsultationOutcome, PatientDecision

NOTE_FIELDS = ('chief_complaint', 'examination', 'assessment', 'plan', 'raw_text')


class ConsultationSerializer(serializers.ModelSerializer):
    class Meta:
        model = Consultation
        fields = [
            'id',
            'appointment',
            'doctor',
            'state',
            *NOTE_FIELDS,
            'outcome',
            'patient_decision',
            'version_token',
            'started_at',
            'completed_at',
            'duration_minutes',
            'updated_at',
        ]
        read_only_fields = fields


class ConsultationDraftCommandSerializer(serializers.Serializer):
    version_token = serializers.CharField(required=False, allow_blank=True, allow_null=True)
    chief_complaint = serializers.CharField(required=False, allow_blank=True)
    examination = serializers.CharField(required=False, allow_blank=True)
    assessment = serializers.CharField(required=False, allow_blank=True)
    plan = serializers.CharField(required=False, allow_blank=True)
    raw_text = serializers.CharField(required=False, allow_blank=True)

    def validate(self, attrs):
        if not any(name in attrs for name in NOTE_FIELDS):
            raise serializers.ValidationError('At least one note field must be provided')
        return attrs


class CompleteConsultationCommandSerializer(ConsultationDraftCommandSerializer):
    outcome = serializers.ChoiceField(choices=ConsultationOutcome.choices)
    patient_decision = serializers.ChoiceField(choices=PatientDecision.choices, required=False, allow_blank=True)

    # Surgical case details, used when the patient accepts a recommended procedure
    procedure_name = serializers.CharField(required=False, allow_blank=True, max_length=255)
    diagnosis = serializers.CharField(required=False, allow_blank=True)
    procedure_plan = serializers.CharField(required=False, allow_blank=True)
    urgency = serializers.ChoiceField(choices=SurgicalUrgency.choices, required=False)

    def validate(self, attrs):
        if attrs['outcome'] == ConsultationOutcome.PROCEDURE_RECOMMENDED and not attrs.get('patient_decision'):
            raise serializers.ValidationError({
                'patient_decision': 'Patient decision is required when outcome is PROCEDURE_RECOMMENDED',
            })
        return attrs
