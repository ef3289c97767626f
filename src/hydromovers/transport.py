"""Constituent bookkeeping for advective transport.

A TransportModel registers one CONSTITUENT compartment per (constituent,
water compartment) pair in the storage index and answers concentration and
partitioning queries for the Advection process.
"""

from __future__ import annotations

import logging

import numpy as np

from hydromovers.storage import StorageIndex
from hydromovers.types import StorageType

logger = logging.getLogger(__name__)

# Compartments whose water carries dissolved constituents
WATER_STORAGE_TYPES: frozenset[StorageType] = frozenset(
    {
        StorageType.PONDED_WATER,
        StorageType.SOIL,
        StorageType.GROUNDWATER,
        StorageType.SURFACE_WATER,
        StorageType.SNOW,
        StorageType.SNOW_LIQ,
        StorageType.DEPRESSION,
        StorageType.CANOPY,
        StorageType.CANOPY_SNOW,
        StorageType.TRUNK,
    }
)

# Water storage below which concentration is treated as zero [mm]
_MIN_WATER_STORAGE: float = 1e-9


class TransportModel:
    """Registry of transported constituents and their storage compartments.

    Water compartments are captured when the model is created, so it must be
    built after every hydrologic compartment has been registered.

    Constituent compartments use StorageType.CONSTITUENT with
    level = constituent_index * n_water + water_position.

    Args:
        storage: Storage index of the model. Constituent compartments are added to it.
    """

    def __init__(self, storage: StorageIndex) -> None:
        self._storage = storage
        self._water_indices: tuple[int, ...] = tuple(
            i for i, spec in enumerate(storage) if spec.storage_type in WATER_STORAGE_TYPES
        )
        self._water_position: dict[int, int] = {w: j for j, w in enumerate(self._water_indices)}
        self._constituents: list[str] = []
        self._retardation: dict[tuple[int, StorageType], float] = {}

    @property
    def storage(self) -> StorageIndex:
        return self._storage

    @property
    def water_indices(self) -> tuple[int, ...]:
        return self._water_indices

    @property
    def constituent_names(self) -> tuple[str, ...]:
        return tuple(self._constituents)

    def add_constituent(self, name: str) -> int:
        """Register a constituent and its compartments.

        Returns:
            Index of the new constituent.

        Raises:
            ValueError: If the name is empty or already registered.
        """
        if not name:
            msg = "Constituent name cannot be empty"
            raise ValueError(msg)
        if name in self._constituents:
            msg = f"Constituent '{name}' is already registered"
            raise ValueError(msg)
        c = len(self._constituents)
        self._constituents.append(name)
        n_water = len(self._water_indices)
        for j in range(n_water):
            self._storage.add(StorageType.CONSTITUENT, c * n_water + j)
        logger.debug("Registered constituent '%s' in %d water compartments", name, n_water)
        return c

    def constituent_index(self, name: str) -> int | None:
        """Return the index of a constituent, or None if it is not registered."""
        try:
            return self._constituents.index(name)
        except ValueError:
            return None

    def storage_index(self, constituent: int, water_index: int | None) -> int | None:
        """State index of the constituent mass held in a water compartment.

        Returns None when the water compartment carries no constituents.
        """
        position = self._water_position.get(water_index)
        if position is None:
            return None
        level = constituent * len(self._water_indices) + position
        return self._storage.resolve(StorageType.CONSTITUENT, level)

    def concentration(self, state: np.ndarray, constituent: int, water_index: int) -> float:
        """Constituent mass per mm of water in a water compartment.

        Zero for an empty (or numerically negative) water store.
        """
        water = state[water_index]
        if water <= _MIN_WATER_STORAGE:
            return 0.0
        mass = state[self.storage_index(constituent, water_index)]
        return max(mass, 0.0) / water

    def set_retardation(self, name: str, storage_type: StorageType, factor: float) -> None:
        """Set the retardation factor of a constituent in compartments of one type.

        Raises:
            KeyError: If the constituent is not registered.
            ValueError: If factor is below 1.
        """
        c = self.constituent_index(name)
        if c is None:
            msg = f"Unknown constituent '{name}'. Available: {', '.join(self._constituents) or '(none)'}"
            raise KeyError(msg)
        if factor < 1.0:
            msg = f"Retardation factor must be >= 1, got {factor}"
            raise ValueError(msg)
        self._retardation[(c, StorageType(storage_type))] = factor

    def retardation(self, constituent: int, water_index: int) -> float:
        """Retardation factor (>= 1) of a constituent leaving a water compartment."""
        return self._retardation.get((constituent, self._storage.type_of(water_index)), 1.0)
