"""Work item validation and normalization."""

from __future__ import annotations

from collections.abc import Iterable

from devsweep.core.exceptions import EmptyInputError, InputError


def is_valid_item(item: str) -> bool:
    """True if ``item`` looks like an account primary address."""
    if not item or any(ch.isspace() for ch in item):
        return False
    local, sep, domain = item.partition("@")
    return bool(sep) and bool(local) and bool(domain) and "@" not in domain


def normalize_items(raw: Iterable[str]) -> list[str]:
    """Trim, lower-case and de-duplicate items, preserving first occurrence.

    Blank entries are dropped silently. Any other entry that fails
    :func:`is_valid_item` rejects the whole list.

    Raises:
        InputError: If an entry is not a string or is malformed.
        EmptyInputError: If nothing remains after dropping blanks.
    """
    items: list[str] = []
    seen: set[str] = set()
    invalid: list[str] = []
    for entry in raw:
        if not isinstance(entry, str):
            raise InputError(f"Work items must be strings, got {type(entry).__name__}")
        item = entry.strip().lower()
        if not item:
            continue
        if not is_valid_item(item):
            invalid.append(entry)
            continue
        if item not in seen:
            seen.add(item)
            items.append(item)
    if invalid:
        raise InputError(f"{len(invalid)} malformed work item(s): {invalid[:5]!r}", invalid)
    if not items:
        raise EmptyInputError("Cannot start a run with an empty item list")
    return items
