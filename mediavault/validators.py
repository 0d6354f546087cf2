from __future__ import annotations

import re
from typing import Iterable

from .errors import InvalidArgument

_ID_RE = re.compile(r"^[0-9a-f]{32}$")


def is_valid_id(value) -> bool:
    return isinstance(value, str) and bool(_ID_RE.match(value))


def parse_id(value, what: str = "ID") -> str:
    """Return ``value`` if it looks like a generated record id, else InvalidArgument."""
    if not is_valid_id(value):
        raise InvalidArgument(f"Invalid {what}")
    return value


def parse_optional_id(value, what: str = "ID") -> str | None:
    # "root" and empty both mean the top of the tree / the main library
    if value in (None, "", "root"):
        return None
    return parse_id(value, what)


def valid_ids(values: Iterable | None) -> list[str]:
    """Keep the well-formed ids of a bulk request, order preserved, duplicates dropped."""
    if not values:
        raise InvalidArgument("No media selected")
    seen: dict[str, None] = {}
    for value in values:
        if is_valid_id(value):
            seen.setdefault(value, None)
    return list(seen)
