"""Best-effort lookups into loosely-typed JSON documents."""

from typing import Any


def dig(document: Any, *keys: str | int) -> Any | None:
    """Descend through nested dicts and lists, returning None on any miss.

    String keys index dicts, integer keys index lists. A missing key, an
    out-of-range index or a value of the wrong container type all yield None.
    """
    current = document
    for key in keys:
        if isinstance(key, int):
            if not isinstance(current, list) or not -len(current) <= key < len(current):
                return None
            current = current[key]
        else:
            if not isinstance(current, dict) or key not in current:
                return None
            current = current[key]
    return current


def dig_str(document: Any, *keys: str | int) -> str | None:
    """Like dig(), but only a non-empty string counts as found."""
    value = dig(document, *keys)
    if isinstance(value, str) and value:
        return value
    return None
