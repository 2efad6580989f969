from rest_framework import serializers

from .models import (
    AnesthesiaType,
    CasePlan,
    ConsentStatus,
    ImageTimepoint,
    SurgicalCase,
    SurgicalCaseStatus,
    TheaterBooking,
)
from .readiness import strip_html
from .timeline import FIELD_ORDER


class SurgicalCaseSerializer(serializers.ModelSerializer):
    class Meta:
        model = SurgicalCase
        fields = [
            'id',
            'patient_id',
            'primary_surgeon',
            'consultation',
            'status',
            'urgency',
            'diagnosis',
            'procedure_name',
            'created_at',
            'updated_at',
        ]
        read_only_fields = fields


class CasePlanSerializer(serializers.ModelSerializer):
    class Meta:
        model = CasePlan
        fields = [
            'id',
            'case',
            'procedure_plan',
            'risk_factors',
            'planned_anesthesia',
            'implant_details',
            'pre_op_notes',
            'readiness_status',
            'ready_for_surgery',
            'version_token',
            'updated_at',
        ]
        read_only_fields = fields


class TheaterBookingSerializer(serializers.ModelSerializer):
    class Meta:
        model = TheaterBooking
        fields = [
            'id',
            'theater',
            'case',
            'start_time',
            'end_time',
            'status',
            'locked_by',
            'locked_at',
            'lock_expires_at',
            'confirmed_by',
            'confirmed_at',
        ]
        read_only_fields = fields


# ---------------------------------------------------------------------------
# Command payloads
# ---------------------------------------------------------------------------

class CaseTransitionCommandSerializer(serializers.Serializer):
    target = serializers.ChoiceField(choices=SurgicalCaseStatus.choices)


class CasePlanPatchSerializer(serializers.Serializer):
    version_token = serializers.CharField(required=False, allow_blank=True, allow_null=True)
    procedure_plan = serializers.CharField(required=False, allow_blank=True)
    risk_factors = serializers.CharField(required=False, allow_blank=True)
    planned_anesthesia = serializers.ChoiceField(choices=AnesthesiaType.choices, required=False, allow_blank=True)
    implant_details = serializers.CharField(required=False, allow_blank=True)
    pre_op_notes = serializers.CharField(required=False, allow_blank=True)

    def validate_procedure_plan(self, value):
        if value and not strip_html(value):
            raise serializers.ValidationError('Procedure plan must contain text, not only markup.')
        return value


class ConsentCommandSerializer(serializers.Serializer):
    title = serializers.CharField(max_length=255)
    status = serializers.ChoiceField(choices=ConsentStatus.choices, default=ConsentStatus.PENDING_SIGNATURE)


class ConsentStatusCommandSerializer(serializers.Serializer):
    status = serializers.ChoiceField(choices=ConsentStatus.choices)


class CaseImageCommandSerializer(serializers.Serializer):
    timepoint = serializers.ChoiceField(choices=ImageTimepoint.choices)
    file_url = serializers.CharField(max_length=500)
    description = serializers.CharField(max_length=255, required=False, allow_blank=True, default='')


class LockSlotCommandSerializer(serializers.Serializer):
    case_id = serializers.UUIDField()
    theater_id = serializers.IntegerField(min_value=1)
    start_time = serializers.DateTimeField()
    end_time = serializers.DateTimeField()

    def validate(self, attrs):
        if attrs['end_time'] <= attrs['start_time']:
            raise serializers.ValidationError({'end_time': 'end_time must be after start_time'})
        return attrs


class TimelinePatchSerializer(serializers.Serializer):
    wheels_in = serializers.DateTimeField(required=False, allow_null=True)
    anesthesia_start = serializers.DateTimeField(required=False, allow_null=True)
    incision_time = serializers.DateTimeField(required=False, allow_null=True)
    closure_time = serializers.DateTimeField(required=False, allow_null=True)
    anesthesia_end = serializers.DateTimeField(required=False, allow_null=True)
    wheels_out = serializers.DateTimeField(required=False, allow_null=True)

    def validate(self, attrs):
        if not any(name in attrs for name in FIELD_ORDER):
            raise serializers.ValidationError('At least one timeline timestamp must be provided')
        return attrs
