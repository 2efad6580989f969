from __future__ import annotations

from dataclasses import dataclass

from .models import Role


def is_admin_role(role: str | None) -> bool:
    """Role names are the lowercase ``Role.*`` constants; comparison ignores case."""
    return (role or '').lower() == Role.ADMIN


@dataclass(frozen=True)
class Actor:
    """Caller identity as authenticated by the HTTP layer.

    The role is trusted as given; no authentication happens here.
    """
    user_id: int
    role: str = ''

    @classmethod
    def from_user(cls, user) -> Actor:
        return cls(user_id=user.id, role=user.role_name)

    @property
    def is_admin(self) -> bool:
        return is_admin_role(self.role)
