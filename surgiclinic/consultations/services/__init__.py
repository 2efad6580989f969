"""
Consultations Services Module.

- consultation: start, draft save (version-token guarded) and completion
"""

from surgiclinic.consultations.services.consultation import (
    ConsultationCompletion,
    complete_consultation,
    get_consultation_for_update,
    save_consultation_draft,
    start_consultation,
)

__all__ = [
    'ConsultationCompletion',
    'complete_consultation',
    'get_consultation_for_update',
    'save_consultation_draft',
    'start_consultation',
]
