from typing import Callable

Key = int
"""Variable identifier. Any non-negative integer; `symbol()` packs a character and
an index into one."""

KeyFormatter = Callable[[Key], str]

_CHR_BITS = 8
_INDEX_BITS = 64 - _CHR_BITS
_INDEX_MASK = (1 << _INDEX_BITS) - 1


def symbol(c: str, index: int) -> Key:
    """Encode a character and an index into a single key, eg `symbol("x", 3)`."""
    assert len(c) == 1, "Symbol character must be a single character!"
    assert 0 <= index <= _INDEX_MASK, f"Symbol index {index} out of range!"
    return (ord(c) << _INDEX_BITS) | index


def symbol_chr(key: Key) -> str:
    return chr(key >> _INDEX_BITS)


def symbol_index(key: Key) -> int:
    return key & _INDEX_MASK


def default_key_formatter(key: Key) -> str:
    return str(key)


def symbol_key_formatter(key: Key) -> str:
    """Formats symbol keys as `x3`. Plain integer keys are printed as-is."""
    if key >> _INDEX_BITS == 0:
        return str(key)
    return f"{symbol_chr(key)}{symbol_index(key)}"
