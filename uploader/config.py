from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Any
from urllib.parse import urlparse

from pydantic import BaseModel, Field, ValidationError, field_validator


logger = logging.getLogger(__name__)

PRODUCTION_ENVS = {"prod", "production"}

# Settings field -> environment variable.
ENV_VARS = {
    "allowed_origin": "ALLOWED_ORIGIN",
    "github_token": "GITHUB_TOKEN",
    "github_owner": "GITHUB_OWNER",
    "github_repo": "GITHUB_REPO",
    "workshop_slug": "ACTIVE_WORKSHOP_SLUG",
    "branch": "GITHUB_BRANCH",
    "github_api_base": "GITHUB_API_BASE",
    "user_agent": "GITHUB_USER_AGENT",
    "request_timeout_seconds": "GITHUB_TIMEOUT_SECONDS",
    "max_upload_size_mb": "MAX_UPLOAD_SIZE_MB",
    "app_env": "APP_ENV",
}

REQUIRED_IN_PRODUCTION = ("allowed_origin", "github_token", "github_owner", "github_repo", "workshop_slug")


def parse_env_file(env_path: Path) -> dict[str, str]:
    """Read KEY=value lines; quotes are unwrapped, unquoted values may end in ` # comment`."""
    entries: dict[str, str] = {}
    for raw_line in env_path.read_text(encoding="utf-8").splitlines():
        key, sep, raw_value = raw_line.strip().partition("=")
        if not sep or key.startswith("#"):
            continue
        value = raw_value.strip()
        if len(value) >= 2 and value[0] == value[-1] and value[0] in "\"'":
            value = value[1:-1].strip()
        else:
            value = value.split(" #", 1)[0].strip()
        entries[key.strip()] = value
    return entries


def load_local_env(env_path: Path | None = None) -> None:
    env_path = env_path or Path(__file__).resolve().parents[1] / ".env"
    if not env_path.exists():
        return
    # A deployed process keeps what its environment says; locally the file wins.
    keep_existing = os.getenv("APP_ENV", "").strip().lower() in PRODUCTION_ENVS
    for key, value in parse_env_file(env_path).items():
        if keep_existing:
            os.environ.setdefault(key, value)
        else:
            os.environ[key] = value


class Settings(BaseModel):
    """Deployment configuration handed to the store client, repository and workflows."""

    allowed_origin: str = ""
    github_token: str = ""
    github_owner: str = ""
    github_repo: str = ""
    workshop_slug: str = ""
    branch: str = "main"
    github_api_base: str = "https://api.github.com"
    user_agent: str = "P5-Tool-Uploader"
    request_timeout_seconds: float = Field(default=30.0, gt=0)
    max_upload_size_mb: int = Field(default=5, ge=1)
    app_env: str = "development"

    @field_validator("app_env")
    @classmethod
    def normalize_app_env(cls, value: str) -> str:
        return value.strip().lower() or "development"

    @classmethod
    def from_env(cls) -> Settings:
        values: dict[str, Any] = {}
        for field_name, var_name in ENV_VARS.items():
            raw = os.getenv(var_name, "").strip()
            if raw:
                values[field_name] = raw
        try:
            settings = cls.model_validate(values)
        except ValidationError as exc:
            # Unparseable numbers fall back to the field default.
            rejected = {str(error["loc"][0]) for error in exc.errors() if error["loc"]}
            for field_name in sorted(rejected):
                logger.warning("Ignoring invalid %s=%r", ENV_VARS[field_name], values.pop(field_name, None))
            settings = cls.model_validate(values)
        if settings.is_production:
            settings.validate_for_production()
        return settings

    @property
    def is_production(self) -> bool:
        return self.app_env in PRODUCTION_ENVS

    def validate_for_production(self) -> None:
        for field_name in REQUIRED_IN_PRODUCTION:
            if not getattr(self, field_name):
                raise RuntimeError(f"{ENV_VARS[field_name]} must be set in production.")
        if urlparse(self.allowed_origin).scheme != "https":
            raise RuntimeError("ALLOWED_ORIGIN must use https in production.")

    @property
    def manifest_path(self) -> str:
        return f"{self.workshop_slug}/manifest.json"

    @property
    def gallery_url(self) -> str:
        return f"https://{self.github_owner}.github.io/{self.github_repo}/{self.workshop_slug}/"

    @property
    def max_upload_bytes(self) -> int:
        return self.max_upload_size_mb * 1024 * 1024

    @property
    def cors_headers(self) -> dict[str, str]:
        return {
            "Access-Control-Allow-Origin": self.allowed_origin,
            "Access-Control-Allow-Methods": "POST, OPTIONS",
            "Access-Control-Allow-Headers": "Content-Type",
        }
