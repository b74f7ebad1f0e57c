"""Sections — titled groups of attribute rows in a projection."""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from dataclasses import dataclass

__all__ = ["AttrSpec", "Section", "SectionHeader"]


def _normalize_rows(rows: Iterable[str | Sequence[str]]) -> tuple[tuple[str, ...], ...]:
    normalized: list[tuple[str, ...]] = []
    for row in rows:
        if isinstance(row, str):
            normalized.append((row,))
        else:
            cells = tuple(row)
            if not cells:
                raise ValueError("Section rows must hold at least one attribute")
            normalized.append(cells)
    return tuple(normalized)


@dataclass(frozen=True, slots=True, init=False)
class Section:
    """A titled group of rows; each row holds one or more attribute names.

    Example::

        product.edit_attrs(
            Section("Basics", rows=[["name", "code"], "category"]),
            Section("Pricing", rows=["price"]),
        )
    """

    title: str | None
    rows: tuple[tuple[str, ...], ...]

    def __init__(self, title: str | None = None, *, rows: Iterable[str | Sequence[str]]) -> None:
        object.__setattr__(self, "title", title)
        object.__setattr__(self, "rows", _normalize_rows(rows))

    @property
    def names(self) -> tuple[str, ...]:
        return tuple(name for row in self.rows for name in row)

    def without(self, names: Iterable[str]) -> Section:
        """Return a copy with *names* removed; empty rows are dropped."""
        drop = set(names)
        kept = [[n for n in row if n not in drop] for row in self.rows]
        return Section(self.title, rows=[row for row in kept if row])


@dataclass(frozen=True, slots=True)
class SectionHeader:
    """Projection item announcing a section; its Metas follow in row order."""

    title: str | None
    rows: tuple[tuple[str, ...], ...]

    def to_dict(self) -> dict[str, object]:
        """Return a JSON-serializable dictionary."""
        return {"title": self.title, "rows": [list(row) for row in self.rows]}


# What the *_attrs() configuration methods accept.
AttrSpec = str | Section
