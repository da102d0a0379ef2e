"""Settings for the redirect flow."""

from __future__ import annotations

from urllib.parse import urlparse

from pydantic import BaseModel, Field, field_validator

DEFAULT_AUTHORITY = "https://login.microsoftonline.com/common/"


class RedirectSettings(BaseModel):
    """Configuration shared by the controller and the protocol engine."""

    client_id: str = Field(min_length=1)
    redirect_uri: str
    authority: str | None = None
    validate_authority: bool = True

    # Return to the page that started the login before completing it
    navigate_to_login_request_url: bool = True
    root_path: str = "/"

    scopes: list[str] = Field(default_factory=lambda: ["openid", "profile"])
    timeout: float = Field(default=30.0, gt=0)

    @field_validator("redirect_uri")
    @classmethod
    def validate_redirect_uri(cls, v: str) -> str:
        parsed = urlparse(v)
        if not parsed.scheme or not parsed.netloc:
            raise ValueError("redirect_uri must be an absolute URL")
        return v

    @field_validator("root_path")
    @classmethod
    def validate_root_path(cls, v: str) -> str:
        if not v.startswith("/"):
            raise ValueError("root_path must start with '/'")
        return v

    def authority_or_default(self) -> str:
        if self.authority is None or not self.authority.strip():
            return DEFAULT_AUTHORITY
        return self.authority
