"""
Operative timeline use cases.

``record_timeline`` merges a patch into the case's ProcedureRecord and only
saves when the merged timeline validates. Rejected attempts are still
audited (after the rollback) so data-entry problems stay visible.
"""

from __future__ import annotations

import logging
from datetime import timedelta

from django.db import transaction

from surgiclinic.core.clock import resolve_clock
from surgiclinic.core.conf import workflow_setting
from surgiclinic.core.exceptions import InvalidState, NotFound, ValidationFailed
from surgiclinic.core.utils import record_audit_event, validate_command, validate_id
from surgiclinic.surgery import state_machine
from surgiclinic.surgery.models import ProcedureRecord, SurgicalCase
from surgiclinic.surgery.serializers import TimelinePatchSerializer
from surgiclinic.surgery.services.cases import get_case_for_update
from surgiclinic.surgery.timeline import (
    FIELD_ORDER,
    OperativeTimeline,
    compute_derived_durations,
    missing_items_for_status,
    validate_timeline,
)

logger = logging.getLogger(__name__)


def _iso(value):
    return value.isoformat() if value is not None else None


def record_timeline(case_id, actor, data, *, clock=None, using: str = 'default') -> ProcedureRecord:
    """
    Record one or more intra-operative timestamps for a case.

    Allowed while the case is IN_PREP, IN_THEATER or RECOVERY. A ``None``
    value clears a timestamp.

    Raises:
        ValidationFailed: Malformed payload, or the merged timeline has
            ordering/range errors (all of them are reported, nothing is saved).
        InvalidState: Case is not in a recording status.
        NotFound: Unknown case.
    """
    case_id = validate_id(case_id, 'case_id', uuid=True)
    command = validate_command(TimelinePatchSerializer, data)
    now = resolve_clock(clock).now()
    past_window = timedelta(hours=workflow_setting('TIMELINE_PAST_WINDOW_HOURS'))
    future_tolerance = timedelta(minutes=workflow_setting('TIMELINE_FUTURE_TOLERANCE_MINUTES'))
    changed = [name for name in FIELD_ORDER if name in command]
    patient_id = None

    try:
        with transaction.atomic(using=using):
            surgical_case = get_case_for_update(case_id, using=using)
            patient_id = surgical_case.patient_id
            if surgical_case.status not in state_machine.TIMELINE_RECORDING_STATUSES:
                raise InvalidState(
                    f'Timeline cannot be recorded while the case is {surgical_case.status}',
                    case_id=str(surgical_case.pk),
                    status=surgical_case.status,
                )

            record, _ = ProcedureRecord.objects.using(using).get_or_create(case=surgical_case)
            previous = OperativeTimeline.from_record(record)
            proposed = previous.merge(command)

            result = validate_timeline(
                proposed,
                now,
                past_window=past_window,
                future_tolerance=future_tolerance,
            )
            if not result.valid:
                raise ValidationFailed(list(result.errors), message='Timeline validation failed')

            for name in changed:
                setattr(record, name, getattr(proposed, name))
            record.save(using=using, update_fields=changed + ['updated_at'])

            transaction.on_commit(
                lambda: _audit_changes(actor, surgical_case, previous, proposed, changed, using),
                using=using,
            )
    except ValidationFailed as exc:
        record_audit_event(
            actor,
            'timeline_invalid_attempt',
            patient_id=patient_id,
            meta={
                'case_id': str(case_id),
                'errors': exc.errors,
                'attempted': {name: _iso(command[name]) for name in changed},
            },
            using=using,
        )
        raise

    logger.info('Timeline of case %s updated: %s', surgical_case.pk, ', '.join(changed))
    return record


def _audit_changes(actor, surgical_case, previous: OperativeTimeline, proposed: OperativeTimeline, changed, using):
    for name in changed:
        record_audit_event(
            actor,
            'timeline_update',
            patient_id=surgical_case.patient_id,
            meta={
                'case_id': str(surgical_case.pk),
                'field': name,
                'old': _iso(getattr(previous, name)),
                'new': _iso(getattr(proposed, name)),
            },
            using=using,
        )


def timeline_summary(case_id, *, using: str = 'default') -> dict:
    """Timeline, derived durations and missing items for the case's current status."""
    case_id = validate_id(case_id, 'case_id', uuid=True)
    surgical_case = SurgicalCase.objects.using(using).filter(pk=case_id).first()
    if surgical_case is None:
        raise NotFound(f'Surgical case {case_id} not found', case_id=str(case_id))

    record = ProcedureRecord.objects.using(using).filter(case=surgical_case).first()
    timeline = OperativeTimeline.from_record(record)
    return {
        'case_id': str(surgical_case.pk),
        'case_status': surgical_case.status,
        'timeline': timeline.to_dict(),
        'durations': compute_derived_durations(timeline),
        'missing_items': missing_items_for_status(surgical_case.status, timeline),
    }
