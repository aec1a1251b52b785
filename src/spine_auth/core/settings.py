"""
Centralized settings for the spine-auth adapter.

Manifesto:
    Adapter options come from three places: keyword arguments passed to
    ``create_adapter``, ``SPINE_AUTH_*`` environment variables, and ``.env``
    files.  ``AdapterSettings`` resolves them into one validated object so
    the dispatcher and the schema synchronizer never read the environment
    themselves.

Tags:
    spine-auth, configuration, settings, pydantic, caching

Doc-Types:
    api-reference
"""

from __future__ import annotations

from pathlib import Path

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_OUTPUT_DIR = "typeorm"
CHANGELOG_FILENAME = "changelog.txt"


class AdapterSettings(BaseSettings):
    """spine-auth adapter configuration.

    All fields can be set via ``SPINE_AUTH_*`` environment variables (e.g.
    ``SPINE_AUTH_SOFT_DELETE_MODELS='["session"]'``) or a ``.env`` file.
    """

    model_config = SettingsConfigDict(
        env_prefix="SPINE_AUTH_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # ── Database ─────────────────────────────────────────────────
    database_url: str = Field(default="sqlite+aiosqlite:///auth.db")
    database_echo: bool = Field(default=False)

    # ── Adapter behavior ─────────────────────────────────────────
    use_plural: bool = Field(default=False, description="Table names are plural model names")
    debug_logs: bool = Field(default=False, description="Log every adapter call at info level")
    soft_delete_models: list[str] = Field(default_factory=list)
    generate_ids: bool = Field(
        default=True, description="Replace caller-supplied ids on create with generated ones"
    )
    default_find_limit: int = Field(default=100, gt=0)

    # ── Generated artifacts ──────────────────────────────────────
    output_dir: str = Field(default=DEFAULT_OUTPUT_DIR)
    migrations_dir: str | None = Field(default=None)
    entities_dir: str | None = Field(default=None)

    # ── Logging ──────────────────────────────────────────────────
    log_level: str = Field(default="INFO")
    log_format: str = Field(default="console")

    @field_validator("log_format")
    @classmethod
    def _check_log_format(cls, value: str) -> str:
        if value not in ("console", "json"):
            raise ValueError(f"log_format must be 'console' or 'json', got {value!r}")
        return value

    # ── Derived paths ────────────────────────────────────────────

    @property
    def resolved_output_dir(self) -> Path:
        return Path(self.output_dir).resolve()

    @property
    def resolved_migrations_dir(self) -> Path:
        return Path(self.migrations_dir or f"{self.output_dir}/migrations").resolve()

    @property
    def resolved_entities_dir(self) -> Path:
        return Path(self.entities_dir or f"{self.output_dir}/entities").resolve()

    @property
    def changelog_path(self) -> str:
        """Default changelog location, inside the output directory."""
        return f"{self.output_dir}/{CHANGELOG_FILENAME}"


# ── Settings factory with caching ────────────────────────────────────────

_settings_cache: dict[str, AdapterSettings] = {}


def get_settings(*, env_file: str | Path | None = None, _force_reload: bool = False) -> AdapterSettings:
    """Load, validate, and cache an :class:`AdapterSettings` instance."""
    cache_key = str(env_file or "")
    if not _force_reload and cache_key in _settings_cache:
        return _settings_cache[cache_key]

    if env_file is not None:
        settings = AdapterSettings(_env_file=env_file)  # type: ignore[call-arg]
    else:
        settings = AdapterSettings()

    _settings_cache[cache_key] = settings
    return settings


def clear_settings_cache() -> None:
    """Clear the settings cache (primarily for testing)."""
    _settings_cache.clear()


__all__ = [
    "AdapterSettings",
    "CHANGELOG_FILENAME",
    "DEFAULT_OUTPUT_DIR",
    "clear_settings_cache",
    "get_settings",
]
