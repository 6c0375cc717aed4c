"""Ordered, duplicate-free list of the addresses the user wants to visit."""

import logging
from typing import Callable, Iterator

from routewise.errors import IndexOutOfRange

logger = logging.getLogger(__name__)


class AddressStore:
    """
    Addresses in insertion order.
    
    Identity is exact string equality, so "10 Downing St" and "10 downing st"
    are different addresses. The list only changes through add() and remove();
    each change bumps `version` and calls `on_change` so derived state can be dropped.
    """
    
    def __init__(self, on_change: Callable[[], None] | None = None):
        self._addresses: list[str] = []
        self.version = 0
        self.on_change = on_change
    
    def __len__(self) -> int:
        return len(self._addresses)
    
    def __iter__(self) -> Iterator[str]:
        return iter(self._addresses)
    
    def __contains__(self, address: object) -> bool:
        return address in self._addresses
    
    def __getitem__(self, index: int) -> str:
        return self._addresses[index]
    
    def snapshot(self) -> tuple[str, ...]:
        return tuple(self._addresses)
    
    def add(self, address: str) -> bool:
        """Append an address. Returns False, changing nothing, if it is already listed."""
        if address in self._addresses:
            logger.info("Duplicate address ignored: %s", address)
            return False
        self._addresses.append(address)
        self._changed()
        return True
    
    def remove(self, index: int) -> str:
        """Remove and return the address at a zero-based position."""
        if not 0 <= index < len(self._addresses):
            raise IndexOutOfRange(
                f"No address at position {index + 1}; the list has {len(self._addresses)}."
            )
        address = self._addresses.pop(index)
        self._changed()
        return address
    
    def _changed(self) -> None:
        self.version += 1
        if self.on_change is not None:
            self.on_change()
