"""Pure list helpers: filter, sort and paginate in-memory record sequences.

None of these mutate their input.  Records may be dicts or objects; field
values are looked up with ``record[name]`` first, then ``getattr``.
"""
from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Any, Iterable, Sequence


def _value(record, field: str):
    if isinstance(record, dict):
        return record.get(field)
    return getattr(record, field, None)


def filter_records(records: Iterable, search: str = "", fields: Sequence[str] = (), **equals) -> list:
    """Return records matching every ``field=value`` pair and the search text.

    ``search`` is a case-insensitive substring test against any of ``fields``.
    ``None`` values in ``equals`` are ignored so optional filters can be passed
    straight through.
    """
    needle = (search or "").strip().lower()
    criteria = {k: v for k, v in equals.items() if v is not None and v != ""}
    result = []
    for record in records:
        if any(_value(record, k) != v for k, v in criteria.items()):
            continue
        if needle and not any(needle in str(_value(record, f) or "").lower() for f in fields):
            continue
        result.append(record)
    return result


def sort_records(records: Iterable, key: str, descending: bool = False) -> list:
    """Stable sort by one field.  Records missing the field sort last."""
    records = list(records)
    present = [r for r in records if _value(r, key) is not None]
    missing = [r for r in records if _value(r, key) is None]
    return sorted(present, key=lambda r: _value(r, key), reverse=descending) + missing


@dataclass(frozen=True)
class Page:
    items: tuple
    number: int
    per_page: int
    total: int

    @property
    def num_pages(self) -> int:
        return max(1, math.ceil(self.total / self.per_page))

    @property
    def has_next(self) -> bool:
        return self.number < self.num_pages


def paginate(records: Sequence[Any], page: int = 1, per_page: int = 10) -> Page:
    """Slice ``records`` into a page.  Out-of-range pages clamp to the last one."""
    if per_page < 1:
        raise ValueError("Le nombre d'elements par page doit etre positif.")
    records = list(records)
    total = len(records)
    last = max(1, math.ceil(total / per_page))
    number = min(max(1, int(page)), last)
    start = (number - 1) * per_page
    return Page(items=tuple(records[start:start + per_page]), number=number, per_page=per_page, total=total)
