"""Application configuration helpers."""

from __future__ import annotations

from functools import lru_cache
import os
from pathlib import Path
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

PROJECT_ROOT = Path(__file__).resolve().parents[2]
DEFAULT_DB_PATH = PROJECT_ROOT / "data" / "index.db"
DEFAULT_GITHUB_API_URL = "https://api.github.com"


class AppConfig(BaseModel):
    """Runtime configuration loaded from environment variables."""

    model_config = ConfigDict(frozen=True)

    jwt_secret_key: Optional[str] = Field(
        default=None,
        description="HMAC secret for JWT signing (required for JWT/HTTP auth)",
    )
    enable_local_mode: bool = Field(
        default=True,
        description="Allow local-dev token bypass when running locally",
    )
    local_dev_token: Optional[str] = Field(
        default="local-dev-token",
        description="Static token accepted in local mode for development",
    )
    database_path: Path = Field(
        default=DEFAULT_DB_PATH, description="SQLite file holding the vault index"
    )
    github_api_url: str = Field(
        default=DEFAULT_GITHUB_API_URL, description="Base URL of the GitHub REST API"
    )
    github_token: Optional[str] = Field(
        default=None,
        description="Fallback GitHub credential when the request carries none",
    )
    repo_owner: Optional[str] = Field(None, description="Owner of the vault repository")
    repo_name: Optional[str] = Field(None, description="Name of the vault repository")
    branch: str = Field(default="main", description="Branch holding the vault")
    root_path: str = Field(
        default="", description="Vault folder inside the repository ('' = repo root)"
    )
    index_batch_size: int = Field(
        default=10, ge=1, le=100, description="Files per indexing batch"
    )
    request_timeout: float = Field(
        default=30.0, gt=0, description="Timeout in seconds for GitHub API calls"
    )

    @field_validator("database_path", mode="before")
    @classmethod
    def _normalize_db_path(cls, value: str | Path | None) -> Path:
        if value is None or value == "":
            return DEFAULT_DB_PATH
        path = value if isinstance(value, Path) else Path(value)
        return path.expanduser().resolve()

    @field_validator("root_path", mode="before")
    @classmethod
    def _normalize_root_path(cls, value: Optional[str]) -> str:
        if not value:
            return ""
        cleaned = value.strip().strip("/")
        if ".." in cleaned.split("/"):
            raise ValueError("GITHUB_ROOT_PATH must not contain '..'")
        return cleaned

    @field_validator("jwt_secret_key", mode="before")
    @classmethod
    def _ensure_secret(cls, value: Optional[str]) -> Optional[str]:
        if value is None:
            return None
        cleaned = value.strip()
        if not cleaned:
            raise ValueError(
                "JWT_SECRET_KEY cannot be empty; unset the variable to disable JWT auth in local mode"
            )
        if len(cleaned) < 16:
            raise ValueError("JWT_SECRET_KEY must be at least 16 characters")
        return cleaned

    @property
    def vault_configured(self) -> bool:
        return bool(self.repo_owner and self.repo_name)


def _read_env(key: str, default: Optional[str] = None) -> Optional[str]:
    return os.getenv(key, default)


@lru_cache(maxsize=1)
def get_config() -> AppConfig:
    """Load and cache application configuration."""
    enable_local_mode = _read_env("ENABLE_LOCAL_MODE", "true").lower() not in {
        "0",
        "false",
        "no",
    }

    return AppConfig(
        jwt_secret_key=_read_env("JWT_SECRET_KEY"),
        enable_local_mode=enable_local_mode,
        local_dev_token=_read_env("LOCAL_DEV_TOKEN", "local-dev-token"),
        database_path=_read_env("INDEX_DB_PATH", str(DEFAULT_DB_PATH)),
        github_api_url=_read_env("GITHUB_API_URL", DEFAULT_GITHUB_API_URL),
        github_token=_read_env("GITHUB_TOKEN") or None,
        repo_owner=_read_env("GITHUB_REPO_OWNER") or None,
        repo_name=_read_env("GITHUB_REPO_NAME") or None,
        branch=_read_env("GITHUB_BRANCH", "main"),
        root_path=_read_env("GITHUB_ROOT_PATH", ""),
        index_batch_size=int(_read_env("INDEX_BATCH_SIZE", "10")),
        request_timeout=float(_read_env("GITHUB_TIMEOUT", "30")),
    )


def reload_config() -> AppConfig:
    """Clear cached config (useful for tests) and reload."""
    get_config.cache_clear()
    return get_config()


__all__ = ["AppConfig", "get_config", "reload_config", "PROJECT_ROOT", "DEFAULT_DB_PATH"]
