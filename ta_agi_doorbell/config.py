"""Application Configuration — TOML file plus environment overrides via pydantic-settings.

Invariants:
    - Loaded once at startup by main.py; read-only afterwards
    - PDO indices are one-based on disk; zero is rejected here with PdoZeroError
    - Every load failure maps to a ConfigError subclass (read, parse, schema, pdo zero)
    - File values win over TA_AGI_DOORBELL_* environment variables
    - [cmi] and its mapping list are required; unknown keys inside [cmi] are rejected

Design Decisions:
    - "door_mappings"/"room_mappings" and "door_name"/"room_name" are aliases of one schema
    - CMI port defaults to cmi.default_port (5442). Some CMI deployments listen on 5422;
      set cmi.default_port or a per-mapping cmi_port for those
"""

import os
import tomllib
from ipaddress import IPv4Address
from pathlib import Path
from typing import Literal

from pydantic import (
    AliasChoices,
    BaseModel,
    ConfigDict,
    Field,
    ValidationError,
    field_validator,
)
from pydantic_core import PydanticCustomError
from pydantic_settings import BaseSettings, SettingsConfigDict

from ta_agi_doorbell.core.actuator_registry import ActuatorMapping, ActuatorRegistry
from ta_agi_doorbell.core.domain_types import (
    DEFAULT_AGI_PORT,
    DEFAULT_CMI_PORT,
    DEFAULT_DIGEST_VARIABLE,
    DEFAULT_HOLD_SECONDS,
    DEFAULT_READ_TIMEOUT_SECONDS,
)
from ta_agi_doorbell.core.errors import (
    ConfigParseError,
    ConfigReadError,
    ConfigSchemaError,
    PdoZeroError,
)

DEFAULT_CONFIG_PATH = Path("/etc/ta-agi-doorbell/config.toml")
CONFIG_PATH_ENV = "TA_AGI_DOORBELL_CONFIG"

_MAPPING_KEYS = ("door_mappings", "room_mappings", "mappings")


class AgiSettings(BaseModel):
    """Variables for listening to AGI requests."""

    listen_address: IPv4Address
    listen_port: int = Field(DEFAULT_AGI_PORT, ge=0, le=65535)
    digest_secret: str
    digest_variable: str = DEFAULT_DIGEST_VARIABLE
    read_timeout_seconds: float = Field(DEFAULT_READ_TIMEOUT_SECONDS, gt=0)

    @property
    def listen_host(self) -> str:
        return str(self.listen_address)


class ActuatorMappingSettings(BaseModel):
    """On-disk representation of one door mapping."""

    model_config = ConfigDict(extra="forbid")

    name: str = Field(validation_alias=AliasChoices("door_name", "room_name", "name"))
    cmi_address: IPv4Address
    cmi_port: int | None = Field(None, ge=1, le=65535)
    virtual_node: int = Field(ge=0, le=255)
    pdo: int = Field(ge=0, le=255)

    @field_validator("pdo")
    @classmethod
    def pdo_is_one_based(cls, v: int) -> int:
        if v == 0:
            raise PydanticCustomError(
                "pdo_zero", "PDO is zero, but has to be entered one-based.",
            )
        return v


class CmiSettings(BaseModel):
    """Mappings for all doors."""

    model_config = ConfigDict(extra="forbid")

    default_port: int = Field(DEFAULT_CMI_PORT, ge=1, le=65535)
    hold_seconds: float = Field(DEFAULT_HOLD_SECONDS, gt=0)
    mappings: list[ActuatorMappingSettings] = Field(
        validation_alias=AliasChoices(*_MAPPING_KEYS),
    )


class Settings(BaseSettings):
    """The entire configuration for ta-agi-doorbell."""

    model_config = SettingsConfigDict(
        env_prefix="TA_AGI_DOORBELL_",
        env_nested_delimiter="__",
        case_sensitive=False,
        extra="ignore",
    )

    agi: AgiSettings
    cmi: CmiSettings

    # Observability
    log_level: str = "INFO"
    log_format: Literal["json", "text"] = "json"


def config_path(path: str | Path | None = None) -> Path:
    if path is not None:
        return Path(path)
    return Path(os.environ.get(CONFIG_PATH_ENV, DEFAULT_CONFIG_PATH))


def load_settings(path: str | Path | None = None) -> Settings:
    """Read, parse and validate the config file. Raises ConfigError subclasses."""
    resolved = config_path(path)
    try:
        content = resolved.read_text(encoding="utf-8")
    except OSError as e:
        raise ConfigReadError(str(resolved), str(e)) from e
    try:
        data = tomllib.loads(content)
    except tomllib.TOMLDecodeError as e:
        raise ConfigParseError(str(e)) from e
    return settings_from_dict(data)


def settings_from_dict(data: dict) -> Settings:
    try:
        return Settings(**data)
    except ValidationError as e:
        for err in e.errors():
            if err["type"] == "pdo_zero":
                raise PdoZeroError(_mapping_name(data, err["loc"])) from e
        raise ConfigSchemaError(_summarize(e)) from e


def build_registry(settings: Settings) -> ActuatorRegistry:
    """Fallible conversion of the validated mappings into the immutable registry."""
    cmi = settings.cmi
    return ActuatorRegistry(tuple(
        ActuatorMapping.from_one_based(
            name=m.name,
            cmi_address=m.cmi_address,
            cmi_port=m.cmi_port if m.cmi_port is not None else cmi.default_port,
            virtual_node=m.virtual_node,
            pdo=m.pdo,
        )
        for m in cmi.mappings
    ))


def _summarize(exc: ValidationError) -> str:
    return "; ".join(
        f"{'.'.join(str(part) for part in err['loc'])}: {err['msg']}"
        for err in exc.errors()
    )


def _mapping_name(data: dict, loc: tuple) -> str | None:
    index = next((part for part in loc if isinstance(part, int)), None)
    cmi = data.get("cmi")
    if index is None or not isinstance(cmi, dict):
        return None
    for key in _MAPPING_KEYS:
        mappings = cmi.get(key)
        if isinstance(mappings, list) and index < len(mappings):
            entry = mappings[index]
            if isinstance(entry, dict):
                return entry.get("door_name") or entry.get("room_name") or entry.get("name")
    return None
