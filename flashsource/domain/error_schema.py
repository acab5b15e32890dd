"""TypedDict for serialized resolution error records."""

from __future__ import annotations

from typing import TypedDict

__all__ = ["ErrorRecordDict"]


class ErrorRecordDict(TypedDict):
    """Serialized form of the record handed to an error presenter."""

    title: str
    source_path: str
    description: str
