from rest_framework import serializers

from .models import Appointment, NoShowReason


class AppointmentSerializer(serializers.ModelSerializer):
    check_in = serializers.SerializerMethodField()
    no_show = serializers.SerializerMethodField()

    class Meta:
        model = Appointment
        fields = [
            'id',
            'patient_id',
            'doctor',
            'scheduled_at',
            'duration_minutes',
            'type',
            'status',
            'check_in',
            'no_show',
            'created_at',
            'updated_at',
        ]
        read_only_fields = fields

    def get_check_in(self, obj):
        if obj.checked_in_at is None:
            return None
        return {
            'checked_in_at': serializers.DateTimeField().to_representation(obj.checked_in_at),
            'checked_in_by': obj.checked_in_by_id,
            'is_late': obj.is_late,
            'late_by_minutes': obj.late_by_minutes,
        }

    def get_no_show(self, obj):
        if obj.no_show_at is None:
            return None
        return {
            'no_show_at': serializers.DateTimeField().to_representation(obj.no_show_at),
            'reason': obj.no_show_reason,
            'notes': obj.no_show_notes,
        }


class CheckInCommandSerializer(serializers.Serializer):
    checked_in_at = serializers.DateTimeField(required=False)


class NoShowCommandSerializer(serializers.Serializer):
    # AUTO is reserved for the sweep.
    reason = serializers.ChoiceField(
        choices=[NoShowReason.MANUAL, NoShowReason.PATIENT_CALLED],
        default=NoShowReason.MANUAL,
    )
    notes = serializers.CharField(required=False, allow_blank=True, default='', max_length=2000)
