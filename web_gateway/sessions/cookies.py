"""
Signed session cookie.

The cookie value is the session id signed with the process-wide secret
(``<server name> SessionSecret``) using itsdangerous, the signer Starlette's
own session middleware relies on. A value that fails verification is
reported as "no session", never as an error.

The configured cookie name (``<server name> Cookie``) contains a space, which
http.cookies refuses as a key, so Set-Cookie headers are rendered here
instead of through Response.set_cookie().
"""

from datetime import datetime, timedelta, timezone
from email.utils import format_datetime
from typing import Optional

from itsdangerous import BadSignature, Signer

SIGNER_SALT = "web-gateway.session"


class SessionCookie:
    """
    Signs, verifies and renders the session cookie.

    Args:
        name: Cookie name.
        secret: Signing secret.
        max_age_seconds: Cookie lifetime, equal to the session duration.
        path: Cookie path.
        same_site: SameSite attribute.
        secure: Add the Secure attribute.
    """

    def __init__(
        self,
        name: str,
        secret: str,
        max_age_seconds: int,
        path: str = "/",
        same_site: str = "lax",
        secure: bool = False,
    ) -> None:
        self.name = name
        self.max_age_seconds = max_age_seconds
        self._signer = Signer(secret, salt=SIGNER_SALT)
        self._path = path
        self._same_site = same_site
        self._secure = secure

    def sign(self, session_id: str) -> str:
        return self._signer.sign(session_id).decode("utf-8")

    def unsign(self, value: Optional[str]) -> Optional[str]:
        """
        Verify a cookie value.

        Returns:
            The session id, or None if the value is missing or tampered.
        """
        if not value:
            return None
        try:
            session_id = self._signer.unsign(value).decode("utf-8")
        except (BadSignature, UnicodeDecodeError):
            return None
        return session_id or None

    def render(self, session_id: str) -> str:
        """Set-Cookie header value binding the client to session_id."""
        expires = datetime.now(timezone.utc) + timedelta(seconds=self.max_age_seconds)
        return self._render(self.sign(session_id), self.max_age_seconds, expires)

    def render_cleared(self) -> str:
        """Set-Cookie header value that removes the cookie."""
        return self._render("", 0, datetime(1970, 1, 1, tzinfo=timezone.utc))

    def _render(self, value: str, max_age: int, expires: datetime) -> str:
        parts = [
            f"{self.name}={value}",
            f"Path={self._path}",
            f"Max-Age={max_age}",
            f"Expires={format_datetime(expires, usegmt=True)}",
            "HttpOnly",
            f"SameSite={self._same_site}",
        ]
        if self._secure:
            parts.append("Secure")
        return "; ".join(parts)
