import logging

from rest_framework import serializers

from .exceptions import ValidationFailed
from .models import AuditLog

logger = logging.getLogger(__name__)


def record_audit_event(actor, action, patient_id=None, meta=None, using='default'):
    """Schreibt Workflow-Aktionen in das Audit-Log (fire-and-forget, nie raisen)."""

    try:
        AuditLog.objects.using(using).create(
            user_id=getattr(actor, 'user_id', None),
            role_name=getattr(actor, 'role', '') or '',
            action=action,
            patient_id=patient_id,
            meta=meta,
        )
    except Exception:
        logger.exception('AuditLog write failed (action=%s, patient_id=%s)', action, patient_id)


def validate_command(serializer_class, data, **kwargs):
    """Run a DRF serializer over a command payload.

    Returns ``validated_data``; malformed input raises ``ValidationFailed`` with
    one ``{'field', 'message'}`` entry per serializer error.
    """
    serializer = serializer_class(data=data, **kwargs)
    if serializer.is_valid():
        return serializer.validated_data

    errors = []
    for field_name, messages in serializer.errors.items():
        if isinstance(messages, dict):
            messages = [f'{key}: {value}' for key, value in messages.items()]
        for message in messages:
            errors.append({'field': field_name, 'message': str(message)})
    raise ValidationFailed(errors, message='Invalid command payload')


def validate_id(value, field='id', *, uuid=False):
    """Parse a record id (integer, or UUID with ``uuid=True``).

    Malformed ids raise ``ValidationFailed`` for ``field`` instead of reaching the ORM.
    """
    id_field = serializers.UUIDField() if uuid else serializers.IntegerField(min_value=1)
    try:
        return id_field.run_validation(value)
    except serializers.ValidationError as exc:
        raise ValidationFailed(
            [{'field': field, 'message': str(message)} for message in exc.detail],
            message='Invalid command payload',
        ) from exc
