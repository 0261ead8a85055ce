"""Validated view of a Battle.net character profile payload."""

from __future__ import annotations

import logging
import math
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, ValidationError, field_validator

logger = logging.getLogger(__name__)


class NamedRef(BaseModel):
    """`{"name": ...}` sub-objects such as realm, class and race."""

    model_config = ConfigDict(extra="ignore")

    name: Optional[str] = None
    slug: Optional[str] = None

    @field_validator("name", mode="before")
    @classmethod
    def _localized_name(cls, value: Any) -> Any:
        # Requests without a locale return {"en_US": "...", ...} maps.
        if isinstance(value, dict):
            return next((item for item in value.values() if isinstance(item, str)), None)
        return value if isinstance(value, str) else None

    @field_validator("slug", mode="before")
    @classmethod
    def _string_slug(cls, value: Any) -> Any:
        return value if isinstance(value, str) else None


class CharacterProfile(BaseModel):
    """Only the fields the tracker reads; anything absent becomes None."""

    model_config = ConfigDict(extra="ignore")

    name: Optional[str] = None
    level: Optional[int] = None
    experience: Optional[float] = None
    realm: Optional[NamedRef] = None
    character_class: Optional[NamedRef] = None
    race: Optional[NamedRef] = None

    @field_validator("name", mode="before")
    @classmethod
    def _string_name(cls, value: Any) -> Any:
        return value if isinstance(value, str) and value else None

    @field_validator("level", mode="before")
    @classmethod
    def _finite_level(cls, value: Any) -> Any:
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            return None
        if not math.isfinite(value) or value <= 0:
            return None
        return int(value)

    @field_validator("experience", mode="before")
    @classmethod
    def _finite_experience(cls, value: Any) -> Any:
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            return None
        if not math.isfinite(value):
            return None
        return value

    @field_validator("realm", "character_class", "race", mode="before")
    @classmethod
    def _object_or_none(cls, value: Any) -> Any:
        return value if isinstance(value, dict) else None

    @property
    def realm_name(self) -> Optional[str]:
        return self.realm.name if self.realm else None

    @property
    def class_name(self) -> Optional[str]:
        return self.character_class.name if self.character_class else None

    @property
    def race_name(self) -> Optional[str]:
        return self.race.name if self.race else None

    @classmethod
    def parse_payload(cls, payload: Any) -> "CharacterProfile":
        if not isinstance(payload, dict):
            return cls()
        try:
            return cls.model_validate(payload)
        except ValidationError as exc:
            logger.warning("Discarding unparseable profile payload", extra={"error": str(exc)})
            return cls()
