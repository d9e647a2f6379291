"""Authenticated principal."""

from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class Principal(BaseModel):
    """
    The authenticated identity attached to a request.

    Only the reference produced by ``Authenticator.serialize`` is stored in
    the session; the full principal is restored on every request.
    """

    model_config = ConfigDict(frozen=True)

    id: str = Field(..., min_length=1, description="Stable principal identifier")
    display_name: str = Field(default="", description="Human readable name")
    attributes: dict[str, Any] = Field(
        default_factory=dict, description="Strategy-specific attributes"
    )
