"""
Session Models.

SessionData is the typed mapping held by every session:

- ``principal``: reference to the authenticated principal, written by the
  AuthenticationGate on login and read back on every request.
- ``values``: JSON-compatible key/value pairs owned by route handlers.

SessionRecord is the persisted form (one JSON document per session id).
Session is the per-request working copy that tracks whether it must be
written back when the response is emitted.

Pattern: Pydantic for validation at the storage boundary
"""

from datetime import datetime, timedelta, timezone
from typing import Optional
from uuid import uuid4

from pydantic import BaseModel, Field, JsonValue


class SessionData(BaseModel):
    """Typed session payload."""

    principal: Optional[str] = Field(
        default=None, description="Authenticated principal reference"
    )
    values: dict[str, JsonValue] = Field(
        default_factory=dict, description="Handler-owned session values"
    )


class SessionRecord(BaseModel):
    """
    Persisted session document.

    Attributes:
        id: Opaque session identifier bound to the signed cookie.
        data: Typed session payload.
        created_at: When the session was first created.
        expires_at: When the store may forget the session.
    """

    id: str
    data: SessionData = Field(default_factory=SessionData)
    created_at: datetime
    expires_at: datetime

    def is_expired(self, now: Optional[datetime] = None) -> bool:
        return self.expires_at <= (now or datetime.now(timezone.utc))


def new_session_id() -> str:
    return uuid4().hex


class Session:
    """
    Working copy of a session for one request.

    Mutations go through the methods below so ``modified`` stays accurate;
    the Session Manager only writes a session back to the store when it was
    modified (or destroyed).

    Attributes:
        is_new: No record existed for this request's cookie.
        detached: The store was unreachable when loading; an unmodified
            detached session is neither saved nor cookied.
        modified: Data changed during this request.
        destroyed: destroy() was called; the record and cookie are removed.
        previous_id: Id discarded by regenerate(), deleted on commit.
    """

    def __init__(
        self,
        record: SessionRecord,
        is_new: bool = False,
        detached: bool = False,
    ) -> None:
        self._record = record
        self.is_new = is_new
        self.detached = detached
        self.modified = False
        self.destroyed = False
        self.previous_id: Optional[str] = None

    @classmethod
    def create(cls, duration_seconds: int, detached: bool = False) -> "Session":
        now = datetime.now(timezone.utc)
        record = SessionRecord(
            id=new_session_id(),
            created_at=now,
            expires_at=now + timedelta(seconds=duration_seconds),
        )
        return cls(record, is_new=True, detached=detached)

    @property
    def id(self) -> str:
        return self._record.id

    @property
    def record(self) -> SessionRecord:
        return self._record

    @property
    def data(self) -> SessionData:
        return self._record.data

    @property
    def expires_at(self) -> datetime:
        return self._record.expires_at

    # -------------------------------------------------------------------------
    # Principal
    # -------------------------------------------------------------------------

    @property
    def principal(self) -> Optional[str]:
        return self._record.data.principal

    @principal.setter
    def principal(self, reference: Optional[str]) -> None:
        if self._record.data.principal != reference:
            self._record.data.principal = reference
            self.modified = True

    # -------------------------------------------------------------------------
    # Handler values
    # -------------------------------------------------------------------------

    def get(self, key: str, default: JsonValue = None) -> JsonValue:
        return self._record.data.values.get(key, default)

    def set(self, key: str, value: JsonValue) -> None:
        self._record.data.values[key] = value
        self.modified = True

    def pop(self, key: str, default: JsonValue = None) -> JsonValue:
        if key not in self._record.data.values:
            return default
        self.modified = True
        return self._record.data.values.pop(key)

    def clear(self) -> None:
        if self._record.data.values:
            self._record.data.values.clear()
            self.modified = True

    def __contains__(self, key: str) -> bool:
        return key in self._record.data.values

    # -------------------------------------------------------------------------
    # Lifecycle
    # -------------------------------------------------------------------------

    def destroy(self) -> None:
        """Drop the session; the client's cookie is cleared on commit."""
        self.destroyed = True

    def regenerate(self) -> None:
        """
        Move the session data to a fresh id.

        Used on login so a session id issued before authentication cannot be
        replayed afterwards.
        """
        if not self.is_new and self.previous_id is None:
            self.previous_id = self._record.id
        self._record = self._record.model_copy(update={"id": new_session_id()})
        self.is_new = True
        self.modified = True

    def extend(self, duration_seconds: int) -> datetime:
        """Slide the expiry to now + duration and return it."""
        expires_at = datetime.now(timezone.utc) + timedelta(seconds=duration_seconds)
        self._record.expires_at = expires_at
        return expires_at

    def __repr__(self) -> str:
        return (
            f"Session(id={self.id!r}, is_new={self.is_new}, "
            f"modified={self.modified}, destroyed={self.destroyed})"
        )
