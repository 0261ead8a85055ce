"""Per-character result record written into the snapshot."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Optional, Union


@dataclass(slots=True)
class FetchError:
    status: Union[int, str, None]
    detail: str

    def to_dict(self) -> dict[str, Any]:
        return {"status": self.status, "detail": self.detail}


@dataclass(slots=True)
class ResultRecord:
    """One snapshot entry; derived metrics stay None when they cannot be computed."""

    id: str
    name: str
    realm: str
    ok: bool
    level: Optional[int] = None
    level_delta_7d: Optional[int] = None
    xp: Optional[float] = None
    xp_to_next: Optional[int] = None
    xp_percent: Optional[float] = None
    xp_spark_7d: Optional[list[int]] = None
    xp_gained_7d: Optional[float] = None
    character_class: Optional[str] = None
    race: Optional[str] = None
    namespace_used: Optional[str] = None
    error: Optional[FetchError] = field(default=None)

    @classmethod
    def failed(cls, *, id: str, name: str, realm: str, error: FetchError) -> "ResultRecord":
        return cls(id=id, name=name, realm=realm, ok=False, error=error)

    def to_dict(self) -> dict[str, Any]:
        if not self.ok:
            return {
                "id": self.id,
                "name": self.name,
                "realm": self.realm,
                "ok": False,
                "error": self.error.to_dict() if self.error else None,
            }

        return {
            "id": self.id,
            "name": self.name,
            "realm": self.realm,
            "level": self.level,
            "level_delta_7d": self.level_delta_7d,
            "xp": self.xp,
            "xp_to_next": self.xp_to_next,
            "xp_percent": self.xp_percent,
            "xp_spark_7d": self.xp_spark_7d,
            "xp_gained_7d": self.xp_gained_7d,
            "class": self.character_class,
            "race": self.race,
            "ok": True,
            "namespace_used": self.namespace_used,
        }
