"""Abstract base contract for mass-transfer processes.

A process moves mass along a fixed tuple of connections between storage
compartments. Each evaluation runs in two phases:

1. get_rates_of_change: propose one rate [mm/d] per connection
2. apply_constraints: correct the rates in place so no compartment goes negative

Concrete variants select their physical sub-model with an Enum discriminator
and declare, through classmethods, which parameters and compartments they need
so a model builder can validate a configuration before any simulation step.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Sequence
from enum import Enum
from typing import ClassVar

import numpy as np

from hydromovers.errors import ConfigurationError
from hydromovers.storage import StorageIndex
from hydromovers.types import Connection, Options, ParameterSpec, SpatialUnit, StorageSpec, StorageType, UnitType


class Process(ABC):
    """Base class for every mass-transfer process.

    Subclasses must:
        - set PROCESS_NAME (and MODEL_TYPE when the family has sub-models)
        - call _specify_connections exactly once in __init__
        - implement initialize, _compute_rates, _constrain_rates
        - implement the participation classmethods

    Unit-type gating and rate-length validation live here, so subclasses only
    see units they apply to and correctly sized rate arrays.

    Attributes:
        model: Sub-model selector, or None for families without sub-models.
    """

    PROCESS_NAME: ClassVar[str] = "process"
    MODEL_TYPE: ClassVar[type[Enum] | None] = None
    # None means the process applies to every unit type
    APPLICABLE_UNIT_TYPES: ClassVar[frozenset[UnitType] | None] = None

    def __init__(self, storage: StorageIndex, model: Enum | None = None) -> None:
        self._storage = storage
        self.model = model
        self._connections: tuple[Connection, ...] | None = None

    # ------------------------------------------------------------------
    # Connections
    # ------------------------------------------------------------------

    def _specify_connections(self, pairs: Sequence[tuple[int | None, int | None]]) -> None:
        """Fix the (from, to) pairs this process produces rates for.

        Raises:
            RuntimeError: If connections were already specified.
            ValueError: If no connection is given.
        """
        if self._connections is not None:
            msg = f"{self.name}: connections may only be specified once"
            raise RuntimeError(msg)
        if len(pairs) == 0:
            msg = f"{self.name}: a process needs at least one connection"
            raise ValueError(msg)
        self._connections = tuple(Connection(f, t) for f, t in pairs)

    @property
    def connections(self) -> tuple[Connection, ...]:
        if self._connections is None:
            msg = f"{self.name}: connections have not been specified"
            raise RuntimeError(msg)
        return self._connections

    @property
    def n_connections(self) -> int:
        return len(self.connections)

    @property
    def from_indices(self) -> tuple[int | None, ...]:
        return tuple(c.from_index for c in self.connections)

    @property
    def to_indices(self) -> tuple[int | None, ...]:
        return tuple(c.to_index for c in self.connections)

    @property
    def name(self) -> str:
        if self.model is None:
            return self.PROCESS_NAME
        return f"{self.PROCESS_NAME}[{self.model.name}]"

    @property
    def storage(self) -> StorageIndex:
        return self._storage

    def applies_to(self, unit: SpatialUnit) -> bool:
        """Whether this process runs on the given unit type."""
        return self.APPLICABLE_UNIT_TYPES is None or unit.unit_type in self.APPLICABLE_UNIT_TYPES

    # ------------------------------------------------------------------
    # Contract
    # ------------------------------------------------------------------

    @abstractmethod
    def initialize(self) -> None:
        """Validate that connections point at compartments of the expected types.

        Raises:
            ConfigurationError: If a connection is missing or has the wrong type.
        """

    def get_rates_of_change(self, state: np.ndarray, unit: SpatialUnit, options: Options, t: float) -> np.ndarray:
        """Propose one rate per connection [mm/d].

        Does not modify state. Returns all zeros on units this process does
        not apply to.

        Args:
            state: Current state vector of the unit.
            unit: Spatial unit being evaluated.
            options: Global run options.
            t: Current model time [d].

        Returns:
            Array of length n_connections.
        """
        rates = np.zeros(self.n_connections, dtype=np.float64)
        if self.applies_to(unit):
            self._compute_rates(state, unit, options, t, rates)
        return rates

    def apply_constraints(
        self, state: np.ndarray, unit: SpatialUnit, options: Options, t: float, rates: np.ndarray
    ) -> None:
        """Correct rates in place so the step stays physically valid.

        No-op on units this process does not apply to.

        Raises:
            ValueError: If rates does not have one entry per connection (debug mode only).
        """
        if __debug__:
            self._check_rates(rates)
        if self.applies_to(unit):
            self._constrain_rates(state, unit, options, t, rates)

    def evaluate(self, state: np.ndarray, unit: SpatialUnit, options: Options, t: float) -> np.ndarray:
        """Return corrected rates: get_rates_of_change followed by apply_constraints."""
        rates = self.get_rates_of_change(state, unit, options, t)
        self.apply_constraints(state, unit, options, t, rates)
        return rates

    @abstractmethod
    def _compute_rates(
        self, state: np.ndarray, unit: SpatialUnit, options: Options, t: float, rates: np.ndarray
    ) -> None:
        """Fill the zero-initialized rates array with proposed rates."""

    @abstractmethod
    def _constrain_rates(
        self, state: np.ndarray, unit: SpatialUnit, options: Options, t: float, rates: np.ndarray
    ) -> None:
        """Correct rates in place."""

    # ------------------------------------------------------------------
    # Participation reflection
    # ------------------------------------------------------------------

    @classmethod
    @abstractmethod
    def get_participating_parameters(cls, model: Enum | None = None) -> tuple[ParameterSpec, ...]:
        """Parameters required by the given sub-model, in a stable order."""

    @classmethod
    @abstractmethod
    def get_participating_storage(cls, model: Enum | None = None) -> tuple[StorageSpec, ...]:
        """Compartments required by the given sub-model, in a stable order."""

    @classmethod
    def coerce_model(cls, model: Enum | str | None) -> Enum | None:
        """Convert a selector name or value into the family's model enum.

        Raises:
            ValueError: If the family has sub-models and model is not one of them.
        """
        if cls.MODEL_TYPE is None:
            return None
        if isinstance(model, cls.MODEL_TYPE):
            return model
        if isinstance(model, str):
            by_value = {m.value: m for m in cls.MODEL_TYPE}
            by_name = {m.name: m for m in cls.MODEL_TYPE}
            found = by_value.get(model.lower(), by_name.get(model.upper()))
            if found is not None:
                return found
        valid = ", ".join(m.name for m in cls.MODEL_TYPE)
        msg = f"{cls.PROCESS_NAME}: unknown model {model!r}. Valid models: {valid}"
        raise ValueError(msg)

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _check_rates(self, rates: np.ndarray) -> None:
        if len(rates) != self.n_connections:
            msg = f"{self.name}: expected {self.n_connections} rates, got {len(rates)}"
            raise ValueError(msg)

    def _require_type(self, index: int | None, expected: StorageType, role: str) -> None:
        """Raise ConfigurationError unless index resolves to a compartment of the expected type."""
        if index is None:
            raise ConfigurationError(self.name, f"{role} compartment was never specified", expected, None)
        actual = self._storage.type_of(index)
        if actual != expected:
            raise ConfigurationError(self.name, f"{role} compartment has the wrong type", expected, actual)
