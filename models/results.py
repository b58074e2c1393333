"""
Tagged lookup results returned by the stores.

Callers branch on the variant type instead of comparing error values:

    result = accounts.find_by_email(email)
    if isinstance(result, Found):
        account = result.record
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Union


@dataclass(frozen=True)
class Found:
    record: Any


@dataclass(frozen=True)
class NotFound:
    pass


@dataclass(frozen=True)
class Failed:
    detail: str


LookupResult = Union[Found, NotFound, Failed]
