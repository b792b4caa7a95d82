# jobflow/auth/identity.py
"""
Canonical identity model.

The tracker never interprets credentials. The identity collaborator hands over a
stable key (used to scope server rows and to namespace the migration marker) and
an opaque bearer token for the remote API. Everything else only asks
``is_authenticated``.
"""
from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class Identity:
    """
    Attributes:
        key: Stable identity key. ``None`` for the guest scope.
        token: Bearer token sent to the remote store. ``None`` for the guest scope.
    """

    key: str | None = None
    token: str | None = None

    @property
    def is_authenticated(self) -> bool:
        return bool(self.key) and bool(self.token)

    @classmethod
    def guest(cls) -> Identity:
        """Identity representing the device-local guest scope."""
        return cls(key=None, token=None)

    @classmethod
    def signed_in(cls, key: str, token: str) -> Identity:
        return cls(key=key.strip(), token=token)

    def to_debug_dict(self) -> dict[str, object]:
        """Safe subset for logs (never includes the token)."""
        return {"key": self.key, "is_authenticated": self.is_authenticated}
