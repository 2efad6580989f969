"""
Surgical case use cases: creation, status transitions and case planning.

Status changes go through ``surgery.state_machine``; this module adds the
business gates on top of it:
- READY_FOR_SCHEDULING requires a READY plan checklist.
- SCHEDULED is only reached by confirming a theater booking
  (``services.booking.confirm_theater_booking``).
"""

from __future__ import annotations

import logging

from django.db import transaction

from surgiclinic.core.clock import resolve_clock
from surgiclinic.core.exceptions import InvalidState, NotFound, Unauthorized, ValidationFailed
from surgiclinic.core.utils import record_audit_event, validate_command, validate_id
from surgiclinic.core.versioning import save_draft
from surgiclinic.surgery import readiness, state_machine
from surgiclinic.surgery.models import (
    CaseImage,
    CasePlan,
    ConsentForm,
    ConsentStatus,
    ImageTimepoint,
    SurgicalCase,
    SurgicalCaseStatus,
)
from surgiclinic.surgery.serializers import (
    CaseImageCommandSerializer,
    CasePlanPatchSerializer,
    CaseTransitionCommandSerializer,
    ConsentCommandSerializer,
    ConsentStatusCommandSerializer,
)
from surgiclinic.surgery.signals import surgical_case_created, surgical_case_status_changed

logger = logging.getLogger(__name__)


def get_case_for_update(case_id, *, using: str = 'default') -> SurgicalCase:
    """Load and row-lock a surgical case. Must run inside a transaction."""
    case_id = validate_id(case_id, 'case_id', uuid=True)
    surgical_case = (
        SurgicalCase.objects.using(using)
        .select_for_update()
        .filter(pk=case_id)
        .first()
    )
    if surgical_case is None:
        raise NotFound(f'Surgical case {case_id} not found', case_id=str(case_id))
    return surgical_case


def _ensure_can_edit(surgical_case: SurgicalCase, actor) -> None:
    if actor.is_admin or surgical_case.primary_surgeon_id == actor.user_id:
        return
    raise Unauthorized(
        'Only the primary surgeon can edit this case',
        case_id=str(surgical_case.pk),
    )


# ---------------------------------------------------------------------------
# Creation
# ---------------------------------------------------------------------------

def create_case_with_plan(
    *,
    patient_id: int,
    primary_surgeon_id: int,
    actor,
    consultation=None,
    urgency: str | None = None,
    diagnosis: str = '',
    procedure_name: str = '',
    procedure_plan: str = '',
    pre_op_notes: str = '',
    using: str = 'default',
) -> SurgicalCase:
    """
    Create a DRAFT surgical case and its (empty) case plan.

    Runs inside the caller's transaction; the ``surgical_case_created`` signal
    and the audit entry are emitted on commit.
    """
    values = {
        'patient_id': patient_id,
        'primary_surgeon_id': primary_surgeon_id,
        'consultation': consultation,
        'status': SurgicalCaseStatus.DRAFT,
        'diagnosis': diagnosis or '',
        'procedure_name': procedure_name or '',
        'created_by_id': actor.user_id,
    }
    if urgency:
        values['urgency'] = urgency
    surgical_case = SurgicalCase.objects.using(using).create(**values)
    plan = CasePlan.objects.using(using).create(
        case=surgical_case,
        procedure_plan=procedure_plan or '',
        pre_op_notes=pre_op_notes or '',
    )
    refresh_readiness(plan, using=using)

    def _after_commit():
        record_audit_event(
            actor,
            'surgical_case_create',
            patient_id=patient_id,
            meta={'case_id': str(surgical_case.pk)},
            using=using,
        )
        surgical_case_created.send(sender=SurgicalCase, surgical_case=surgical_case, actor=actor)

    transaction.on_commit(_after_commit, using=using)
    return surgical_case


# ---------------------------------------------------------------------------
# Readiness
# ---------------------------------------------------------------------------

def evaluate_plan(plan: CasePlan | None, *, using: str = 'default') -> readiness.Readiness:
    """Readiness checklist for ``plan``; a missing plan has nothing done."""
    if plan is None:
        return readiness.evaluate(readiness.checklist(
            procedure_plan='',
            risk_factors='',
            planned_anesthesia='',
            implant_details='',
            signed_consent_count=0,
            pre_op_image_count=0,
        ))

    signed = ConsentForm.objects.using(using).filter(case_plan=plan, status=ConsentStatus.SIGNED).count()
    photos = CaseImage.objects.using(using).filter(case_plan=plan, timepoint=ImageTimepoint.PRE_OP).count()
    return readiness.evaluate(readiness.checklist(
        procedure_plan=plan.procedure_plan,
        risk_factors=plan.risk_factors,
        planned_anesthesia=plan.planned_anesthesia,
        implant_details=plan.implant_details,
        signed_consent_count=signed,
        pre_op_image_count=photos,
    ))


def refresh_readiness(plan: CasePlan, *, using: str = 'default') -> readiness.Readiness:
    """Recompute and store ``readiness_status``/``ready_for_surgery``.

    Derived columns only: the plan's version token is left alone.
    """
    result = evaluate_plan(plan, using=using)
    CasePlan.objects.using(using).filter(pk=plan.pk).update(
        readiness_status=result.status,
        ready_for_surgery=result.ready_for_surgery,
    )
    plan.readiness_status = result.status
    plan.ready_for_surgery = result.ready_for_surgery
    return result


def case_readiness(case_id, *, using: str = 'default') -> readiness.Readiness:
    case_id = validate_id(case_id, 'case_id', uuid=True)
    if not SurgicalCase.objects.using(using).filter(pk=case_id).exists():
        raise NotFound(f'Surgical case {case_id} not found', case_id=str(case_id))
    plan = CasePlan.objects.using(using).filter(case_id=case_id).first()
    return evaluate_plan(plan, using=using)


# ---------------------------------------------------------------------------
# Status transitions
# ---------------------------------------------------------------------------

def transition_case(case_id, target: str, actor, *, using: str = 'default') -> SurgicalCase:
    """
    Move a case to ``target``.

    Raises:
        InvalidTransition: ``current -> target`` is not in the transition table.
        InvalidState: ``target`` is SCHEDULED (use booking confirmation instead).
        ValidationFailed: READY_FOR_SCHEDULING requested while checklist items are missing.
    """
    command = validate_command(CaseTransitionCommandSerializer, {'target': target})
    target = command['target']

    with transaction.atomic(using=using):
        surgical_case = get_case_for_update(case_id, using=using)
        previous = surgical_case.status

        state_machine.transition(previous, target)

        if target == SurgicalCaseStatus.SCHEDULED:
            raise InvalidState(
                'Cases are scheduled by confirming a theater booking',
                case_id=str(surgical_case.pk),
            )

        if target == SurgicalCaseStatus.READY_FOR_SCHEDULING:
            plan = CasePlan.objects.using(using).filter(case=surgical_case).first()
            result = evaluate_plan(plan, using=using)
            if not result.ready_for_surgery:
                raise ValidationFailed(
                    [{'field': item.key, 'message': f'{item.label} is missing'} for item in result.missing],
                    message='Case plan is not ready for scheduling',
                )

        surgical_case.status = target
        surgical_case.save(using=using, update_fields=['status', 'updated_at'])
        transaction.on_commit(
            lambda: _after_status_change(surgical_case, previous, actor, using),
            using=using,
        )

    logger.info('Surgical case %s: %s -> %s', surgical_case.pk, previous, target)
    return surgical_case


def _after_status_change(surgical_case: SurgicalCase, previous: str, actor, using: str) -> None:
    record_audit_event(
        actor,
        'surgical_case_status_change',
        patient_id=surgical_case.patient_id,
        meta={
            'case_id': str(surgical_case.pk),
            'from': previous,
            'to': surgical_case.status,
        },
        using=using,
    )
    surgical_case_status_changed.send(
        sender=SurgicalCase,
        surgical_case=surgical_case,
        previous_status=previous,
        status=surgical_case.status,
        actor=actor,
    )


# ---------------------------------------------------------------------------
# Case plan
# ---------------------------------------------------------------------------

def _plan_for_update(case_id, actor, using: str) -> CasePlan:
    surgical_case = get_case_for_update(case_id, using=using)
    _ensure_can_edit(surgical_case, actor)
    if surgical_case.status not in state_machine.PLAN_EDITABLE_STATUSES:
        raise InvalidState(
            f'Case plan cannot be changed while the case is {surgical_case.status}',
            case_id=str(surgical_case.pk),
            status=surgical_case.status,
        )
    plan, _ = CasePlan.objects.using(using).get_or_create(case=surgical_case)
    return plan


def update_case_plan(case_id, actor, data, *, using: str = 'default') -> CasePlan:
    """
    Save a draft edit of the case plan.

    ``data`` carries the edited fields and the ``version_token`` the client
    last read. A stale token raises VersionConflict and nothing is written.
    """
    command = dict(validate_command(CasePlanPatchSerializer, data))
    incoming_token = command.pop('version_token', None)

    with transaction.atomic(using=using):
        plan = _plan_for_update(case_id, actor, using)
        plan, _ = save_draft(plan, incoming_token, command, using=using)
        result = refresh_readiness(plan, using=using)
        transaction.on_commit(
            lambda: record_audit_event(
                actor,
                'case_plan_update',
                patient_id=plan.case.patient_id,
                meta={
                    'case_id': str(plan.case_id),
                    'fields': sorted(command),
                    'readiness_status': result.status,
                },
                using=using,
            ),
            using=using,
        )

    logger.info('Case plan %s saved (readiness=%s)', plan.pk, plan.readiness_status)
    return plan


def add_consent_form(case_id, actor, data, *, clock=None, using: str = 'default') -> ConsentForm:
    command = validate_command(ConsentCommandSerializer, data)

    with transaction.atomic(using=using):
        plan = _plan_for_update(case_id, actor, using)
        consent = ConsentForm.objects.using(using).create(
            case_plan=plan,
            title=command['title'],
            status=command['status'],
            signed_at=_signed_at(command['status'], clock),
        )
        refresh_readiness(plan, using=using)

    return consent


def update_consent_status(consent_id: int, actor, data, *, clock=None, using: str = 'default') -> ConsentForm:
    consent_id = validate_id(consent_id, 'consent_id')
    command = validate_command(ConsentStatusCommandSerializer, data)

    with transaction.atomic(using=using):
        consent = (
            ConsentForm.objects.using(using)
            .select_related('case_plan')
            .filter(id=consent_id)
            .first()
        )
        if consent is None:
            raise NotFound(f'Consent form with ID {consent_id} not found', consent_id=consent_id)
        plan = _plan_for_update(consent.case_plan.case_id, actor, using)
        consent.status = command['status']
        consent.signed_at = _signed_at(command['status'], clock)
        consent.save(using=using, update_fields=['status', 'signed_at'])
        refresh_readiness(plan, using=using)

    return consent


def _signed_at(status: str, clock):
    if status != ConsentStatus.SIGNED:
        return None
    return resolve_clock(clock).now()


def add_case_image(case_id, actor, data, *, using: str = 'default') -> CaseImage:
    command = validate_command(CaseImageCommandSerializer, data)

    with transaction.atomic(using=using):
        plan = _plan_for_update(case_id, actor, using)
        image = CaseImage.objects.using(using).create(case_plan=plan, **command)
        refresh_readiness(plan, using=using)

    return image
