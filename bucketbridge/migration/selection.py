"""
Selection set for the current listing.

Holds the objects an operator has ticked in the active location. The
selection belongs to exactly one location: loading a listing for a
different location throws the old selection away, so a transfer can never
carry names picked in another folder or bucket.
"""

from __future__ import annotations

from collections.abc import Iterable, Iterator

from bucketbridge.core.logger import get_logger
from bucketbridge.storage.types import ObjectDescriptor

logger = get_logger(__name__)


class SelectionSet:
    """
    Insertion-ordered set of selected object names within one location.

    Usage:
        >>> selection = SelectionSet()
        >>> selection.load("products", await lister.list("products"))
        >>> selection.toggle("products/a.jpg")
        >>> await engine.run(selection, "products", Direction.SELF_HOSTED_TO_MANAGED)
    """

    def __init__(self):
        self._location: str | None = None
        self._listing: dict[str, ObjectDescriptor] = {}
        self._selected: dict[str, None] = {}

    @property
    def location(self) -> str | None:
        return self._location

    @property
    def listing(self) -> list[ObjectDescriptor]:
        return list(self._listing.values())

    def load(self, location: str, descriptors: Iterable[ObjectDescriptor]) -> None:
        """
        Replace the listing.

        The selection is cleared when the location changes. On a refresh of
        the same location, names that disappeared from the listing are dropped.
        """
        listing = {d.name: d for d in descriptors}

        if location != self._location:
            if self._selected:
                logger.debug(
                    f"Location changed {self._location!r} → {location!r}, "
                    f"clearing {len(self._selected)} selected item(s)"
                )
            self._selected.clear()
        else:
            self._selected = {name: None for name in self._selected if name in listing}

        self._location = location
        self._listing = listing

    def toggle(self, name: str) -> bool:
        """
        Flip one object's selection.

        Returns:
            True when the object is now selected

        Raises:
            KeyError: The name is not in the current listing
        """
        if name not in self._listing:
            raise KeyError(name)
        if name in self._selected:
            del self._selected[name]
            return False
        self._selected[name] = None
        return True

    def select_all(self) -> None:
        """Select every listed object not yet selected."""
        for name in self._listing:
            self._selected.setdefault(name, None)

    def deselect_all(self) -> None:
        self._selected.clear()

    def toggle_all(self) -> None:
        """Header checkbox: clear when everything is selected, otherwise select all."""
        if self.is_all_selected():
            self.deselect_all()
        else:
            self.select_all()

    def is_all_selected(self) -> bool:
        if not self._listing:
            return False
        return all(name in self._selected for name in self._listing)

    def selected(self) -> list[ObjectDescriptor]:
        """Selected descriptors, in listing order."""
        return [d for name, d in self._listing.items() if name in self._selected]

    def snapshot(self) -> tuple[ObjectDescriptor, ...]:
        """Immutable copy of the selection, as handed to a transfer run."""
        return tuple(self.selected())

    def __len__(self) -> int:
        return len(self._selected)

    def __contains__(self, name: object) -> bool:
        return name in self._selected

    def __iter__(self) -> Iterator[ObjectDescriptor]:
        return iter(self.selected())

    def __repr__(self) -> str:
        return f"<SelectionSet {self._location!r}: {len(self)}/{len(self._listing)} selected>"
