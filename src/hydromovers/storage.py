"""Storage index: maps (compartment type, level) pairs to state vector offsets.

The index is built once during model construction. Processes resolve their
connections against it and never hold raw state themselves.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Iterator

import numpy as np

from hydromovers.types import StorageSpec, StorageType

logger = logging.getLogger(__name__)


class StorageIndex:
    """Flat enumeration of storage compartments for one spatial unit.

    Single-level compartments are registered with level=None. Multi-level
    compartments (soil layers, constituent stores) use integer levels starting
    at 0.

    Example:
        >>> storage = StorageIndex([StorageType.CANOPY, StorageType.ATMOSPHERE, StorageType.AET])
        >>> storage.resolve(StorageType.CANOPY)
        0
        >>> storage.resolve(StorageType.TRUNK) is None
        True
    """

    def __init__(self, compartments: Iterable[StorageType | StorageSpec] = ()) -> None:
        self._specs: list[StorageSpec] = []
        self._lookup: dict[tuple[StorageType, int | None], int] = {}
        for compartment in compartments:
            if isinstance(compartment, StorageSpec):
                self.add(compartment.storage_type, compartment.level)
            else:
                self.add(compartment)

    def add(self, storage_type: StorageType, level: int | None = None) -> int:
        """Register a compartment and return its index.

        Args:
            storage_type: Semantic type of the compartment.
            level: Level for multi-level compartments, None for single-level.

        Returns:
            Index of the compartment in the state vector.

        Raises:
            ValueError: If the compartment is already registered or level is negative.
        """
        key = (StorageType(storage_type), level)
        if key in self._lookup:
            msg = f"Compartment {key[0].name} (level {level}) is already registered"
            raise ValueError(msg)
        if level is not None and level < 0:
            msg = f"Compartment level must be non-negative, got {level}"
            raise ValueError(msg)
        index = len(self._specs)
        self._specs.append(StorageSpec(key[0], level))
        self._lookup[key] = index
        logger.debug("Registered compartment %s (level %s) at index %d", key[0].name, level, index)
        return index

    def resolve(self, storage_type: StorageType, level: int | None = None) -> int | None:
        """Return the index of a compartment, or None if it does not exist."""
        return self._lookup.get((storage_type, level))

    def exists(self, storage_type: StorageType, level: int | None = None) -> bool:
        return (storage_type, level) in self._lookup

    def type_of(self, index: int) -> StorageType:
        """Return the semantic type of the compartment at index.

        Raises:
            IndexError: If index is out of range.
        """
        if index < 0 or index >= len(self._specs):
            msg = f"Storage index {index} out of range for {len(self._specs)} compartments"
            raise IndexError(msg)
        return self._specs[index].storage_type

    def level_of(self, index: int) -> int | None:
        return self._specs[index].level

    def new_state(self) -> np.ndarray:
        """Return a zero-filled state vector sized for this index."""
        return np.zeros(len(self._specs), dtype=np.float64)

    def __len__(self) -> int:
        return len(self._specs)

    def __iter__(self) -> Iterator[StorageSpec]:
        return iter(self._specs)

    def __contains__(self, item: object) -> bool:
        if isinstance(item, StorageSpec):
            return (item.storage_type, item.level) in self._lookup
        return (item, None) in self._lookup
