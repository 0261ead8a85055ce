"""Typed records exchanged between the client, the stores and the snapshot."""

from leveltracker.models.profile import CharacterProfile, NamedRef
from leveltracker.models.result import FetchError, ResultRecord

__all__ = [
    "CharacterProfile",
    "NamedRef",
    "FetchError",
    "ResultRecord",
]
