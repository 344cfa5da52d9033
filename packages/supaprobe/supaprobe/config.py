"""supaprobe — Configuration.

Configuration is loaded from (in order of increasing priority):
    1. Built-in defaults (this file)
    2. User config:   ~/.supaprobe/config.yaml
    3. An explicit ``--config`` file
    4. Environment variables prefixed with SUPAPROBE_

The plain Supabase variables ``SUPABASE_URL`` / ``SUPABASE_API_KEY`` are
honoured as a fallback when the prefixed variables are not set.

All settings are immutable after load.  Call ``Settings.load()`` once at
startup and pass the instance (or the derived ``Connection``) down.
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Annotated, Literal

from pydantic import BaseModel, Field, ValidationError, field_validator
from pydantic_settings import (
    BaseSettings,
    PydanticBaseSettingsSource,
    SettingsConfigDict,
)

from supaprobe.exceptions import ConfigurationError, MissingCredentialError
from supaprobe.models import Connection

_LEGACY_ENV = {
    "url": "SUPABASE_URL",
    "api_key": "SUPABASE_API_KEY",
}


# ---------------------------------------------------------------------------
# Sub-configuration blocks
# ---------------------------------------------------------------------------


class ConnectionConfig(BaseModel):
    url: str | None = Field(
        default=None,
        description="Project endpoint, e.g. https://xyzcompany.supabase.co",
    )
    api_key: str | None = Field(
        default=None,
        description="Anon or service key sent as both apikey and bearer token.",
        repr=False,
    )
    schema_path: str = Field(
        default="/rest/v1",
        description="Path prefix of the PostgREST API under the endpoint.",
    )
    timeout_seconds: Annotated[float, Field(ge=1.0, le=300.0)] = Field(
        default=30.0,
        description="Per-request HTTP timeout. Timeouts surface as transport failures.",
    )

    @field_validator("url", "api_key", mode="before")
    @classmethod
    def blank_is_missing(cls, v: object) -> object:
        if isinstance(v, str) and not v.strip():
            return None
        return v


class ProcedureConfig(BaseModel):
    """Names of the two geospatial remote procedures and their parameters."""

    near_point: str = "hotels_near_point"
    along_route: str = "hotels_near_route"
    longitude_param: str = "lon"
    latitude_param: str = "lat"
    route_param: str = "route_points"
    distance_param: str = "dist_meters"


class LoggingConfig(BaseModel):
    level: Literal["debug", "info", "warning", "error", "critical"] = "warning"
    format: Literal["json", "console"] = "console"
    file: Path | None = None


# ---------------------------------------------------------------------------
# Root settings
# ---------------------------------------------------------------------------


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_prefix="SUPAPROBE_",
        env_nested_delimiter="__",
        case_sensitive=False,
        extra="ignore",
    )

    connection: ConnectionConfig = Field(default_factory=ConnectionConfig)
    procedures: ProcedureConfig = Field(default_factory=ProcedureConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        # File values arrive as init kwargs; the environment must win over them.
        return env_settings, init_settings, dotenv_settings, file_secret_settings

    @classmethod
    def load(cls, config_file: Path | None = None) -> "Settings":
        """Load settings from file + environment variables."""
        data: dict[str, object] = {}

        candidates = [Path.home() / ".supaprobe" / "config.yaml"]
        if config_file:
            if not config_file.exists():
                raise ConfigurationError(
                    f"Config file not found: {config_file}",
                    context={"path": str(config_file)},
                )
            candidates.append(config_file)

        for path in candidates:
            if path.exists():
                import yaml  # lazy import, only needed with a config file

                try:
                    with path.open() as f:
                        loaded = yaml.safe_load(f) or {}
                except (yaml.YAMLError, OSError) as exc:
                    raise ConfigurationError(
                        f"Cannot read config file {path}: {exc}",
                        context={"path": str(path)},
                    ) from exc
                if not isinstance(loaded, dict):
                    raise ConfigurationError(
                        f"Config file must contain a mapping: {path}",
                        context={"path": str(path)},
                    )
                data.update(loaded)

        try:
            settings = cls(**data)
        except ValidationError as exc:
            raise ConfigurationError(
                f"Invalid settings: {exc.errors()[0]['msg']}",
                context={"errors": exc.errors(include_url=False)},
            ) from exc
        return settings.with_legacy_env()

    def with_legacy_env(self) -> "Settings":
        """Fill missing credentials from SUPABASE_URL / SUPABASE_API_KEY."""
        update: dict[str, str] = {}
        for field_name, env_name in _LEGACY_ENV.items():
            value = os.environ.get(env_name, "").strip()
            if getattr(self.connection, field_name) is None and value:
                update[field_name] = value
        if not update:
            return self
        return self.model_copy(
            update={"connection": self.connection.model_copy(update=update)}
        )

    def require_connection(self) -> Connection:
        """Return the immutable Connection, or raise if a credential is missing."""
        missing = [
            name
            for name in ("url", "api_key")
            if getattr(self.connection, name) is None
        ]
        if missing:
            raise MissingCredentialError(missing)
        try:
            return Connection(
                url=self.connection.url,  # type: ignore[arg-type]
                api_key=self.connection.api_key,  # type: ignore[arg-type]
                schema_path=self.connection.schema_path,
                timeout_seconds=self.connection.timeout_seconds,
            )
        except ValidationError as exc:
            raise ConfigurationError(
                f"Invalid connection settings: {exc.errors()[0]['msg']}",
                context={"url": self.connection.url},
            ) from exc


# Module-level singleton, replaced by ``Settings.load()`` at startup.
_settings: Settings | None = None


def get_settings() -> Settings:
    global _settings
    if _settings is None:
        _settings = Settings.load()
    return _settings


def override_settings(settings: Settings | None) -> None:
    """Replace the module-level singleton. Used in tests."""
    global _settings
    _settings = settings
