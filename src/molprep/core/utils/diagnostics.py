"""Deduplicating accumulator for aggregated warning lines."""

import logging
from typing import Dict, Hashable, Iterable, Iterator, List, Optional


class OrderedWarningSet:
    """
    Collect names once each, in first-seen order, and report them on one line.

    Used for the run-wide "residues not found" list and the per-residue
    "atoms not found" list.
    """

    def __init__(self, items: Optional[Iterable[Hashable]] = None):
        self._items: Dict[Hashable, None] = {}
        for item in items or ():
            self.add(item)

    def add(self, item: Hashable) -> bool:
        """Add ``item``; return True if it was not seen before."""
        if item in self._items:
            return False
        self._items[item] = None
        return True

    def __contains__(self, item: Hashable) -> bool:
        return item in self._items

    def __len__(self) -> int:
        return len(self._items)

    def __iter__(self) -> Iterator[Hashable]:
        return iter(self._items)

    def __bool__(self) -> bool:
        return bool(self._items)

    def items(self) -> List[Hashable]:
        return list(self._items)

    def clear(self) -> None:
        self._items.clear()

    def flush(self, logger: logging.Logger, message: str) -> List[Hashable]:
        """
        Log ``message`` followed by every collected item as one warning line.

        Nothing is logged when the set is empty. The set is cleared and the
        flushed items are returned.
        """
        flushed = self.items()
        if flushed:
            logger.warning(
                "%s %s", message, " ".join(str(item).strip() for item in flushed)
            )
        self.clear()
        return flushed
