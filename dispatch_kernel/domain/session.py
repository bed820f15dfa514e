"""
Authenticated session handed in by the session collaborator.

The dispatch workflow never logs in or refreshes tokens; it only reads
what the caller's session layer already established.
"""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class AuthSession:
    """Bearer token, tenant and display name of the signed-in user."""
    access_token: str | None = None
    company_code: str | None = None
    display_name: str | None = None

    def auth_headers(self) -> dict[str, str]:
        headers: dict[str, str] = {}
        if self.access_token:
            headers["Authorization"] = f"Bearer {self.access_token}"
        if self.company_code:
            headers["X-Company-Id"] = self.company_code
            headers["X-Company-Code"] = self.company_code
        return headers

    def __repr__(self) -> str:
        token = "***" if self.access_token else None
        return (
            f"AuthSession(access_token={token!r}, company_code={self.company_code!r}, "
            f"display_name={self.display_name!r})"
        )
