"""
Authenticator - pluggable authentication strategy.

The gateway never verifies credentials itself. A strategy only has to turn
a principal into a session-storable reference and back. Which strategy is
used is configured with an import string (``"package.module:attribute"``);
the attribute is either an Authenticator instance or a zero-argument
factory returning one.
"""

from typing import Optional, Protocol, runtime_checkable

from uvicorn.importer import ImportFromStringError, import_from_string

from web_gateway.auth.models import Principal
from web_gateway.core.exceptions import ErrorCode, GatewayError


@runtime_checkable
class Authenticator(Protocol):
    """Serialize principals into session references and restore them."""

    def serialize(self, principal: Principal) -> str:
        ...

    async def deserialize(self, reference: str) -> Optional[Principal]:
        """Return the principal for reference, or None if it no longer resolves."""
        ...


class NullAuthenticator:
    """Default strategy: nobody is ever authenticated."""

    def serialize(self, principal: Principal) -> str:
        return principal.id

    async def deserialize(self, reference: str) -> Optional[Principal]:
        return None


def load_authenticator(import_string: Optional[str]) -> Authenticator:
    """
    Resolve the configured authentication strategy.

    Args:
        import_string: ``"module:attribute"`` or None for NullAuthenticator.

    Raises:
        GatewayError: If the target cannot be imported or is not an
            Authenticator.
    """
    if not import_string:
        return NullAuthenticator()

    try:
        target = import_from_string(import_string)
    except ImportFromStringError as e:
        raise GatewayError(
            f"Cannot load authenticator {import_string!r}: {e}",
            error_code=ErrorCode.CONFIGURATION_ERROR,
        ) from e

    if isinstance(target, type):
        authenticator = target()
    elif callable(target) and not isinstance(target, Authenticator):
        authenticator = target()
    else:
        authenticator = target

    if not isinstance(authenticator, Authenticator):
        raise GatewayError(
            f"{import_string!r} is not an Authenticator",
            error_code=ErrorCode.CONFIGURATION_ERROR,
        )
    return authenticator
