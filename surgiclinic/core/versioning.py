"""Optimistic concurrency for editable draft documents.

Drafts (consultation notes, case plans) carry an opaque ``version_token``.
A client that read version X may only write while the stored token is still X;
every successful write mints a new token. No lock is held between read and
write: conflicts are detected, not prevented.

The write itself is a conditional ``UPDATE ... WHERE pk = %s AND version_token = %s``
so a concurrent writer that slips in between our read and our write is still
detected (zero rows updated).
"""

from __future__ import annotations

import uuid

from django.utils import timezone

from .exceptions import ValidationFailed, VersionConflict

TOKEN_FIELD = 'version_token'


def mint_version_token() -> str:
    return uuid.uuid4().hex


def check_version(current_token: str | None, incoming_token: str | None) -> None:
    """Raise VersionConflict if the caller supplied a token that is not current."""
    if incoming_token and incoming_token != current_token:
        raise VersionConflict(
            provided_version=incoming_token,
            current_version=current_token,
        )


def save_draft(record, incoming_token: str | None, patch: dict, *, using: str = 'default'):
    """Apply ``patch`` to ``record`` guarded by its version token.

    - No incoming token (first save): write unconditionally.
    - Incoming token differs from the stored one: VersionConflict, nothing written.
    - Otherwise write the patch and a freshly minted token.

    Returns ``(record, new_token)``; ``record`` is updated in memory as well.
    """
    model = type(record)
    concrete = {f.name for f in model._meta.concrete_fields}
    unknown = sorted(k for k in patch if k not in concrete or k in (TOKEN_FIELD, model._meta.pk.name))
    if unknown:
        raise ValidationFailed(
            [{'field': name, 'message': 'Field cannot be patched'} for name in unknown],
        )

    current_token = getattr(record, TOKEN_FIELD)
    check_version(current_token, incoming_token)

    new_token = mint_version_token()
    values = dict(patch)
    values[TOKEN_FIELD] = new_token
    if 'updated_at' in concrete:
        values['updated_at'] = timezone.now()

    qs = model._default_manager.using(using).filter(pk=record.pk)
    if incoming_token:
        qs = qs.filter(**{TOKEN_FIELD: incoming_token})
    if qs.update(**values) == 0:
        raise VersionConflict(provided_version=incoming_token, current_version=None)

    for name, value in values.items():
        setattr(record, name, value)
    return record, new_token
