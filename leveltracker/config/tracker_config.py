"""Characters file loader (`characters.json`)."""

from __future__ import annotations

import json
from pathlib import Path

from pydantic import BaseModel, Field, ValidationError, field_validator

DEFAULT_REGION = "us"
DEFAULT_LOCALE = "en_US"
DEFAULT_NAMESPACES = ("profile-classic1x-us", "profile-classic-us")


class TrackerConfigError(RuntimeError):
    """Raised when the characters file is missing or malformed."""


class CharacterRef(BaseModel):
    """One tracked character as written in the config file."""

    name: str = Field(min_length=1)
    realm: str = Field(min_length=1)

    @field_validator("name", "realm")
    @classmethod
    def _strip(cls, value: str) -> str:
        stripped = value.strip()
        if not stripped:
            raise ValueError("must not be blank")
        return stripped


class TrackerConfig(BaseModel):
    region: str = DEFAULT_REGION
    locale: str = DEFAULT_LOCALE
    namespaces: list[str] = Field(default_factory=lambda: list(DEFAULT_NAMESPACES))
    characters: list[CharacterRef]

    @field_validator("region", mode="before")
    @classmethod
    def _default_region(cls, value: object) -> object:
        return value or DEFAULT_REGION

    @field_validator("locale", mode="before")
    @classmethod
    def _default_locale(cls, value: object) -> object:
        return value or DEFAULT_LOCALE

    @field_validator("namespaces", mode="before")
    @classmethod
    def _default_namespaces(cls, value: object) -> object:
        if not value:
            return list(DEFAULT_NAMESPACES)
        return value


def load_tracker_config(path: str | Path) -> TrackerConfig:
    """Read and validate the characters file; any failure is fatal for the run."""

    config_path = Path(path)
    try:
        raw = json.loads(config_path.read_text(encoding="utf-8"))
    except FileNotFoundError as exc:
        raise TrackerConfigError(f"Config file not found: {config_path}") from exc
    except (OSError, json.JSONDecodeError) as exc:
        raise TrackerConfigError(f"Unreadable config file {config_path}: {exc}") from exc

    try:
        return TrackerConfig.model_validate(raw)
    except ValidationError as exc:
        raise TrackerConfigError(f"Invalid config file {config_path}: {exc}") from exc
