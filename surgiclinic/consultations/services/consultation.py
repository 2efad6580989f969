"""
Consultation use cases: start, save draft, complete.

Only the appointment's doctor may work on a consultation. Draft saves are
guarded by the consultation's version token; completion checks it as well so
a stale tab cannot finish a consultation over newer notes.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass

from django.db import transaction

from surgiclinic.appointments import lifecycle
from surgiclinic.appointments.models import Appointment
from surgiclinic.appointments.services import apply_transition, get_appointment_for_update
from surgiclinic.consultations.models import (
    Consultation,
    ConsultationOutcome,
    ConsultationState,
    PatientDecision,
)
from surgiclinic.consultations.serializers import (
    NOTE_FIELDS,
    CompleteConsultationCommandSerializer,
    ConsultationDraftCommandSerializer,
)
from surgiclinic.core.clock import resolve_clock
from surgiclinic.core.exceptions import InvalidState, NotFound, Unauthorized
from surgiclinic.core.utils import record_audit_event, validate_command, validate_id
from surgiclinic.core.versioning import mint_version_token, save_draft
from surgiclinic.surgery.models import SurgicalCase
from surgiclinic.surgery.services import create_case_with_plan

logger = logging.getLogger(__name__)


@dataclass
class ConsultationCompletion:
    consultation: Consultation
    appointment: Appointment
    surgical_case: SurgicalCase | None = None


def _ensure_doctor(consultation_or_appointment, actor) -> None:
    if consultation_or_appointment.doctor_id != actor.user_id:
        raise Unauthorized(
            'Only the assigned doctor can work on this consultation',
            doctor_id=actor.user_id,
            assigned_doctor_id=consultation_or_appointment.doctor_id,
        )


def get_consultation_for_update(consultation_id: int, *, using: str = 'default') -> Consultation:
    consultation_id = validate_id(consultation_id, 'consultation_id')
    consultation = (
        Consultation.objects.using(using)
        .select_for_update()
        .filter(id=consultation_id)
        .first()
    )
    if consultation is None:
        raise NotFound(f'Consultation with ID {consultation_id} not found', consultation_id=consultation_id)
    return consultation


def _duration_minutes(started_at, completed_at) -> int | None:
    if started_at is None:
        return None
    return max(0, math.floor((completed_at - started_at).total_seconds() / 60 + 0.5))


def start_consultation(appointment_id: int, actor, *, clock=None, using: str = 'default') -> Consultation:
    """Open the consultation of a checked-in appointment (NOT_STARTED -> IN_PROGRESS)."""
    clock = resolve_clock(clock)

    with transaction.atomic(using=using):
        appointment = get_appointment_for_update(appointment_id, using=using)
        _ensure_doctor(appointment, actor)
        if appointment.status in lifecycle.CLOSED_STATUSES:
            raise InvalidState(
                f'Cannot start a consultation for a {appointment.status.lower()} appointment',
                appointment_id=appointment.id,
                status=appointment.status,
            )
        if not appointment.is_checked_in:
            raise InvalidState(
                'Patient must be checked in before the consultation starts',
                appointment_id=appointment.id,
            )

        consultation, _ = Consultation.objects.using(using).get_or_create(
            appointment=appointment,
            defaults={'doctor_id': appointment.doctor_id},
        )
        if consultation.state != ConsultationState.NOT_STARTED:
            raise InvalidState(
                f'Consultation is already {consultation.state.lower().replace("_", " ")}',
                consultation_id=consultation.id,
                state=consultation.state,
            )

        consultation.state = ConsultationState.IN_PROGRESS
        consultation.started_at = clock.now()
        consultation.version_token = mint_version_token()
        consultation.save(using=using, update_fields=['state', 'started_at', 'version_token', 'updated_at'])
        transaction.on_commit(
            lambda: record_audit_event(
                actor,
                'consultation_start',
                patient_id=appointment.patient_id,
                meta={'consultation_id': consultation.id, 'appointment_id': appointment.id},
                using=using,
            ),
            using=using,
        )

    logger.info('Consultation %s started for appointment %s', consultation.id, appointment.id)
    return consultation


def save_consultation_draft(consultation_id: int, actor, data, *, using: str = 'default') -> Consultation:
    """
    Save draft notes.

    ``data`` holds any of the note fields plus the ``version_token`` the
    client last read. Without a token the save is unconditional; a stale token
    raises VersionConflict and nothing is written. The returned consultation
    carries the new token.
    """
    command = dict(validate_command(ConsultationDraftCommandSerializer, data))
    incoming_token = command.pop('version_token', None)

    with transaction.atomic(using=using):
        consultation = get_consultation_for_update(consultation_id, using=using)
        _ensure_doctor(consultation, actor)
        if consultation.state != ConsultationState.IN_PROGRESS:
            raise InvalidState(
                'Drafts can only be saved while the consultation is in progress',
                consultation_id=consultation.id,
                state=consultation.state,
            )
        save_draft(consultation, incoming_token, command, using=using)

    logger.debug('Consultation %s draft saved', consultation.id)
    return consultation


def complete_consultation(consultation_id: int, actor, data, *, clock=None, using: str = 'default') -> ConsultationCompletion:
    """
    Complete a consultation (IN_PROGRESS -> COMPLETED) and its appointment.

    If the outcome is PROCEDURE_RECOMMENDED and the patient said YES, a DRAFT
    surgical case with an empty case plan is created in the same transaction.

    Raises:
        ValidationFailed: Malformed payload (e.g. missing patient decision).
        Unauthorized: Caller is not the consultation's doctor.
        InvalidState: Consultation not in progress, or appointment cannot be completed.
        VersionConflict: ``version_token`` is stale.
    """
    command = dict(validate_command(CompleteConsultationCommandSerializer, data))
    incoming_token = command.pop('version_token', None)
    clock = resolve_clock(clock)

    with transaction.atomic(using=using):
        consultation = get_consultation_for_update(consultation_id, using=using)
        _ensure_doctor(consultation, actor)
        if consultation.state != ConsultationState.IN_PROGRESS:
            raise InvalidState(
                f'Cannot complete consultation in {consultation.state} state',
                consultation_id=consultation.id,
                state=consultation.state,
            )

        completed_at = clock.now()
        patch = {name: command[name] for name in NOTE_FIELDS if name in command}
        patch.update({
            'state': ConsultationState.COMPLETED,
            'outcome': command['outcome'],
            'patient_decision': command.get('patient_decision', ''),
            'completed_at': completed_at,
            'duration_minutes': _duration_minutes(consultation.started_at, completed_at),
        })
        save_draft(consultation, incoming_token, patch, using=using)

        appointment = apply_transition(consultation.appointment_id, lifecycle.complete, using=using)

        surgical_case = None
        if (
            consultation.outcome == ConsultationOutcome.PROCEDURE_RECOMMENDED
            and consultation.patient_decision == PatientDecision.YES
        ):
            surgical_case = create_case_with_plan(
                patient_id=appointment.patient_id,
                primary_surgeon_id=consultation.doctor_id,
                actor=actor,
                consultation=consultation,
                urgency=command.get('urgency'),
                diagnosis=command.get('diagnosis') or consultation.assessment,
                procedure_name=command.get('procedure_name', ''),
                procedure_plan=command.get('procedure_plan', ''),
                pre_op_notes=consultation.plan,
                using=using,
            )

        transaction.on_commit(
            lambda: record_audit_event(
                actor,
                'consultation_complete',
                patient_id=appointment.patient_id,
                meta={
                    'consultation_id': consultation.id,
                    'appointment_id': appointment.id,
                    'outcome': consultation.outcome,
                    'surgical_case_id': str(surgical_case.pk) if surgical_case else None,
                },
                using=using,
            ),
            using=using,
        )

    logger.info(
        'Consultation %s completed (outcome=%s, surgical_case=%s)',
        consultation.id,
        consultation.outcome,
        surgical_case.pk if surgical_case else None,
    )
    return ConsultationCompletion(consultation=consultation, appointment=appointment, surgical_case=surgical_case)
