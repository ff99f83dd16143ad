from __future__ import annotations

from pydantic import BaseModel, Field

from app.core.config import settings


class RequestIdentity(BaseModel):
    subject: str | None = None
    email: str | None = None
    auth_source: str = "anonymous"
    claims: dict = Field(default_factory=dict)
    roles: list[str] = Field(default_factory=list)
    bearer_token: str | None = None

    @property
    def is_authenticated(self) -> bool:
        return bool(self.subject and self.email)

    @property
    def scope_subject(self) -> str | None:
        """Key used to look up the caller's own org assignments."""
        if (settings.SCOPE_ASSIGNMENT_KEY_SOURCE or "subject") == "email":
            return self.email
        return self.subject or self.email
