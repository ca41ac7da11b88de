from __future__ import annotations

from collections.abc import Iterable

"""Header / table name normalization.

Column names must be usable as SQL identifiers and unique within a sheet;
table names use the same mapping without de-duplication. Letters and digits
of any script are kept (``名前``, ``café``); everything else becomes ``_``.
"""

__all__ = [
    "normalize_column_names",
    "normalize_table_name",
    "is_normalized_table_name",
]


def _is_identifier_char(c: str) -> bool:
    return c.isalnum() or c == "_"


def _normalize(raw: str, prefix: str) -> str:
    # lower() を先に適用 (小文字化で増える結合文字も "_" に落とす)
    name = "".join(c if _is_identifier_char(c) else "_" for c in str(raw).lower())
    if not name[:1].isalpha():
        name = prefix + name
    return name


def normalize_column_names(raw: Iterable[str]) -> list[str]:
    """Normalize header texts into unique identifier-safe column names.

    Collisions get ``_1``, ``_2`` ... appended to the base name in first-seen
    order. A generated suffix that collides with a later literal header is
    skipped, so the result is always pairwise distinct.
    """
    result: list[str] = []
    seen: set[str] = set()
    counters: dict[str, int] = {}
    for text in raw:
        base = _normalize(text, "col_")
        name = base
        if name in seen:
            n = counters.get(base, 0)
            while name in seen:
                n += 1
                name = f"{base}_{n}"
            counters[base] = n
        seen.add(name)
        result.append(name)
    return result


def normalize_table_name(raw: str) -> str:
    return _normalize(raw, "tbl_")


def is_normalized_table_name(name: str) -> bool:
    """True when ``name`` is already in normalized form (idempotent mapping)."""
    if not name[:1].isalpha() or name != name.lower():
        return False
    return all(_is_identifier_char(c) for c in name)
