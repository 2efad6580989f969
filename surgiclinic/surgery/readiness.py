"""Case plan readiness checklist.

A plan is READY when every checklist item is done; ``ready_for_surgery`` is
true exactly then. Pure: callers pass the consent/image counts they loaded.
"""

from __future__ import annotations

import re
from dataclasses import dataclass

from .models import ReadinessStatus

_TAG_RE = re.compile(r'<[^>]*>')

MIN_PROCEDURE_PLAN_CHARS = 10
MIN_RISK_FACTOR_CHARS = 5


def strip_html(value: str | None) -> str:
    return _TAG_RE.sub('', value or '').strip()


@dataclass(frozen=True)
class ChecklistItem:
    key: str
    label: str
    done: bool

    def to_dict(self) -> dict:
        return {'key': self.key, 'label': self.label, 'done': self.done}


@dataclass(frozen=True)
class Readiness:
    status: str
    items: tuple[ChecklistItem, ...]

    @property
    def ready_for_surgery(self) -> bool:
        return self.status == ReadinessStatus.READY

    @property
    def missing(self) -> list[ChecklistItem]:
        return [item for item in self.items if not item.done]


def checklist(
    *,
    procedure_plan: str,
    risk_factors: str,
    planned_anesthesia: str,
    implant_details: str,
    signed_consent_count: int,
    pre_op_image_count: int,
) -> tuple[ChecklistItem, ...]:
    return (
        ChecklistItem('procedure', 'Procedure plan', len(strip_html(procedure_plan)) >= MIN_PROCEDURE_PLAN_CHARS),
        ChecklistItem('risk', 'Risk factors', len((risk_factors or '').strip()) >= MIN_RISK_FACTOR_CHARS),
        ChecklistItem('anesthesia', 'Anesthesia plan', bool((planned_anesthesia or '').strip())),
        ChecklistItem('implants', 'Implant details', bool((implant_details or '').strip())),
        ChecklistItem('consents', 'Signed consent', signed_consent_count >= 1),
        ChecklistItem('photos', 'Pre-op photos', pre_op_image_count >= 1),
    )


def evaluate(items) -> Readiness:
    items = tuple(items)
    done = sum(1 for item in items if item.done)
    if done == 0:
        status = ReadinessStatus.NOT_STARTED
    elif done == len(items):
        status = ReadinessStatus.READY
    else:
        status = ReadinessStatus.IN_PROGRESS
    return Readiness(status=status, items=items)
