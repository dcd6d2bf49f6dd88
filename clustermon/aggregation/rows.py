"""Decoder for grouped view rows.

A grouped index (a CouchDB-style view queried with ``group_level``) answers
with rows shaped like ``{"key": [k0, k1, ...], "value": {"count": n}}``,
sorted by key.  :func:`decode` validates that shape, applies optional
per-level label transforms and returns :class:`DecodedRow` objects that the
hierarchy aggregator walks.
"""

from __future__ import annotations

import re
import unicodedata
from dataclasses import dataclass
from numbers import Number
from typing import Any, Callable, Iterable, Mapping, Optional, Sequence, Union

from ..errors import InvalidRowError

LabelTransform = Callable[[Any], Any]
LevelTransforms = Union[Sequence[Optional[LabelTransform]], Mapping[int, LabelTransform]]

_WORD_RE = re.compile(r"\w\S*")


def identity(value: Any) -> Any:
    return value


def lower(value: Any) -> Any:
    if isinstance(value, str):
        return value.lower()
    return value


def title_case(value: Any) -> Any:
    """Capitalize every word, lowercasing the remainder (``"eOS 5d"`` -> ``"Eos 5d"``)."""
    if not isinstance(value, str):
        return value
    return _WORD_RE.sub(lambda m: m.group(0)[:1].upper() + m.group(0)[1:].lower(), value)


@dataclass(frozen=True)
class DecodedRow:
    """One validated grouped row."""

    key: tuple
    labels: tuple
    count: Optional[float]
    size: Optional[float] = None

    @property
    def amount(self) -> float:
        """Count when the view reports one, otherwise the size."""
        if self.count is not None:
            return self.count
        return self.size or 0

    @property
    def depth(self) -> int:
        return len(self.key)


def _string_collation(text: str) -> tuple:
    """Three-level key in the spirit of the Unicode collation algorithm.

    Primary: base characters, with whitespace, punctuation and symbols all
    weighted alike and below digits, digits below letters.  Secondary:
    accents.  Tertiary: case, lowercase first.  Strings that differ only in
    which punctuation mark they use compare equal.
    """
    primary: list[tuple] = []
    secondary: list[str] = []
    tertiary: list[int] = []
    for char in unicodedata.normalize("NFD", text):
        if unicodedata.combining(char):
            if secondary:
                secondary[-1] += char
            continue
        category = unicodedata.category(char)
        if category[0] == "N":
            primary.append((1, char))
        elif category[0] == "L":
            for folded in char.casefold():
                primary.append((2, folded))
        else:
            primary.append((0, ""))
        secondary.append("")
        tertiary.append(1 if char.isupper() else 0)
    return tuple(primary), tuple(secondary), tuple(tertiary)


def collation_key(value: Any) -> tuple:
    """Sort key approximating view collation.

    null < booleans < numbers < strings < arrays < objects; strings use
    :func:`_string_collation`.
    """
    if value is None:
        return (0,)
    if isinstance(value, bool):
        return (1, value)
    if isinstance(value, Number):
        return (2, value)
    if isinstance(value, str):
        return (3,) + _string_collation(value)
    if isinstance(value, (list, tuple)):
        return (4, tuple(collation_key(item) for item in value))
    if isinstance(value, Mapping):
        return (5, tuple((collation_key(k), collation_key(v)) for k, v in value.items()))
    return (6, repr(value))


def _extract_rows(payload: Any) -> Sequence[Any]:
    if payload is None:
        return []
    if isinstance(payload, Mapping):
        if "rows" not in payload:
            raise InvalidRowError("view payload has no 'rows' list")
        payload = payload["rows"]
    if isinstance(payload, (str, bytes)) or not isinstance(payload, Iterable):
        raise InvalidRowError(f"rows must be a list, got {type(payload).__name__}")
    return list(payload)


def _is_number(value: Any) -> bool:
    return isinstance(value, Number) and not isinstance(value, bool)


def _parse_row(index: int, row: Any) -> tuple[tuple, Optional[float], Optional[float]]:
    if not isinstance(row, Mapping):
        raise InvalidRowError(f"expected a mapping, got {type(row).__name__}", index=index, row=row)
    if "key" not in row:
        raise InvalidRowError("missing 'key'", index=index, row=row)
    raw_key = row["key"]
    key = tuple(raw_key) if isinstance(raw_key, (list, tuple)) else (raw_key,)
    if not key:
        raise InvalidRowError("empty key", index=index, row=row)
    if "value" not in row:
        raise InvalidRowError("missing 'value'", index=index, row=row)

    value = row["value"]
    count: Optional[float] = None
    size: Optional[float] = None
    if _is_number(value):
        count = value
    elif isinstance(value, Mapping):
        count = value.get("count")
        size = value.get("size")
        if count is None and size is None:
            raise InvalidRowError("value has neither 'count' nor 'size'", index=index, row=row)
        for name, item in (("count", count), ("size", size)):
            if item is not None and not _is_number(item):
                raise InvalidRowError(f"'{name}' is not numeric: {item!r}", index=index, row=row)
    else:
        raise InvalidRowError(f"unsupported value {value!r}", index=index, row=row)
    return key, count, size


def _normalize_transforms(transforms: Optional[LevelTransforms]) -> dict[int, LabelTransform]:
    if not transforms:
        return {}
    if isinstance(transforms, Mapping):
        return {int(level): fn for level, fn in transforms.items() if fn is not None}
    return {level: fn for level, fn in enumerate(transforms) if fn is not None}


def decode(
    rows: Any,
    level_transforms: Optional[LevelTransforms] = None,
    *,
    section_transforms: Optional[Mapping[Any, LevelTransforms]] = None,
    check_order: bool = True,
) -> list[DecodedRow]:
    """Validate grouped rows and compute their display labels.

    Parameters
    ----------
    rows:
        A list of ``{"key", "value"}`` mappings or a view response carrying
        such a list under ``"rows"``.  Must be sorted ascending by key.
    level_transforms:
        Per-level label transforms, as a sequence indexed by level or a
        ``{level: fn}`` mapping.
    section_transforms:
        Transform sets keyed by the raw top-level key; rows in that section
        use them instead of ``level_transforms``.
    check_order:
        Raise :class:`InvalidRowError` when a key sorts before its
        predecessor.  When disabled, grouping of unsorted input is undefined.
    """
    raw_rows = _extract_rows(rows)
    default = _normalize_transforms(level_transforms)
    sections = {
        section: _normalize_transforms(transforms)
        for section, transforms in (section_transforms or {}).items()
    }

    decoded: list[DecodedRow] = []
    previous: Optional[tuple] = None
    for index, row in enumerate(raw_rows):
        key, count, size = _parse_row(index, row)
        order_key = collation_key(key)
        if check_order and previous is not None and order_key < previous:
            raise InvalidRowError(f"key {list(key)!r} is out of order", index=index, row=row)
        previous = order_key

        transforms = default
        if sections:
            try:
                transforms = sections.get(key[0], default)
            except TypeError:
                transforms = default
        labels = tuple(
            transforms[level](part) if level in transforms else part
            for level, part in enumerate(key)
        )
        decoded.append(DecodedRow(key=key, labels=labels, count=count, size=size))
    return decoded


__all__ = [
    "DecodedRow",
    "LabelTransform",
    "LevelTransforms",
    "collation_key",
    "decode",
    "identity",
    "lower",
    "title_case",
]
