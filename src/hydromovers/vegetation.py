"""Canopy processes: evaporation, snow sublimation and drip.

Each family is a single Process subclass dispatching on an Enum selector:
- CanopyEvaporation: canopy storage -> atmosphere, counted against actual ET
- CanopySublimation: canopy snow -> atmosphere, counted against actual ET
- CanopyDrip: canopy storage -> a configurable destination compartment

All three apply only to unit types able to host a canopy and return zero
rates when forest coverage is zero.
"""

from __future__ import annotations

import logging
from enum import Enum

import numpy as np

from hydromovers import kernels
from hydromovers.errors import ConfigurationError, StubError
from hydromovers.process import Process
from hydromovers.registry import register
from hydromovers.storage import StorageIndex
from hydromovers.sublimation import SublimationModel
from hydromovers.types import (
    CANOPY_UNIT_TYPES,
    Options,
    ParameterClass,
    ParameterSpec,
    SpatialUnit,
    StorageSpec,
    StorageType,
)

logger = logging.getLogger(__name__)

_FOREST_COVERAGE = ParameterSpec("FOREST_COVERAGE", ParameterClass.LANDUSE)
_MAX_CAPACITY = ParameterSpec("MAX_CAPACITY", ParameterClass.VEGETATION)


class CanopyEvaporationModel(str, Enum):
    """Canopy evaporation sub-models."""

    RUTTER = "rutter"  # proportional to canopy storage
    MAXIMUM = "maximum"  # evaporates at PET
    ALL = "all"  # all canopy storage evaporates within one step


class CanopyDripModel(str, Enum):
    """Canopy drip sub-models."""

    RUTTER = "rutter"  # capacity overflow only
    SLOW_DRAIN = "slow_drain"  # overflow plus drain linearly proportional to storage


class _CanopyProcess(Process):
    """Shared helpers for processes tied to a vegetation canopy."""

    APPLICABLE_UNIT_TYPES = CANOPY_UNIT_TYPES

    def _trunk_modeled(self) -> bool:
        return self._storage.exists(StorageType.TRUNK)

    def _available_pet(self, state: np.ndarray, unit: SpatialUnit, options: Options) -> float:
        """PET left for this process after competitive extraction [mm/d]."""
        aet_index = self.from_indices[1]
        return kernels.adjusted_pet(
            unit.forcing.pet,
            state[aet_index],
            options.timestep,
            not options.suppress_competitive_et,
        )

    def _constrain_with_accumulator(
        self, state: np.ndarray, options: Options, rates: np.ndarray, non_negative: bool
    ) -> None:
        """Cap rates[0] by available storage and take the clamped amount off the AET rate in rates[1]."""
        old_rate = rates[0]
        if non_negative:
            rates[0] = max(rates[0], 0.0)
        rates[0] = kernels.limit_withdrawal(rates[0], state[self.from_indices[0]], options.timestep)
        rates[1] -= old_rate - rates[0]


class CanopyEvaporation(_CanopyProcess):
    """Loss of intercepted water from the canopy to the atmosphere.

    Connections:
        0: CANOPY -> ATMOSPHERE (evaporation)
        1: AET -> AET (actual ET accumulator)

    Args:
        storage: Storage index of the model.
        model: Evaporation sub-model (enum or name).
    """

    PROCESS_NAME = "canopy_evaporation"
    MODEL_TYPE = CanopyEvaporationModel

    def __init__(
        self,
        storage: StorageIndex,
        model: CanopyEvaporationModel | str = CanopyEvaporationModel.RUTTER,
    ) -> None:
        super().__init__(storage, self.coerce_model(model))
        aet = storage.resolve(StorageType.AET)
        self._specify_connections(
            [
                (storage.resolve(StorageType.CANOPY), storage.resolve(StorageType.ATMOSPHERE)),
                (aet, aet),
            ]
        )
        logger.debug("Created %s with connections %s", self.name, self.connections)

    def initialize(self) -> None:
        self._require_type(self.from_indices[0], StorageType.CANOPY, "source")
        self._require_type(self.to_indices[0], StorageType.ATMOSPHERE, "destination")
        self._require_type(self.from_indices[1], StorageType.AET, "accumulator")

    @classmethod
    def get_participating_parameters(cls, model: Enum | None = None) -> tuple[ParameterSpec, ...]:
        model = cls.coerce_model(model)
        if model == CanopyEvaporationModel.RUTTER:
            return (
                _FOREST_COVERAGE,
                _MAX_CAPACITY,
                ParameterSpec("TRUNK_FRACTION", ParameterClass.VEGETATION),
            )
        if model == CanopyEvaporationModel.MAXIMUM:
            return (_FOREST_COVERAGE,)
        return ()

    @classmethod
    def get_participating_storage(cls, model: Enum | None = None) -> tuple[StorageSpec, ...]:
        cls.coerce_model(model)
        return (
            StorageSpec(StorageType.CANOPY),
            StorageSpec(StorageType.ATMOSPHERE),
            StorageSpec(StorageType.AET),
        )

    def _compute_rates(
        self, state: np.ndarray, unit: SpatialUnit, options: Options, t: float, rates: np.ndarray
    ) -> None:
        fc = unit.surface.forest_coverage
        if fc == 0.0:
            return

        pet = self._available_pet(state, unit, options)
        storage = state[self.from_indices[0]]

        if self.model == CanopyEvaporationModel.RUTTER:
            # trunk fraction only applies when trunks are modeled explicitly
            ft = unit.vegetation.trunk_fraction if self._trunk_modeled() else 0.0
            rate = kernels.rutter_evaporation(storage, unit.vegetation.capacity, fc, ft, pet)
        elif self.model == CanopyEvaporationModel.MAXIMUM:
            rate = fc * pet
        elif self.model == CanopyEvaporationModel.ALL:
            rate = storage / options.timestep
        else:
            raise StubError(self.name, "canopy evaporation model not coded yet")

        rates[0] = rate
        rates[1] = rate

    def _constrain_rates(
        self, state: np.ndarray, unit: SpatialUnit, options: Options, t: float, rates: np.ndarray
    ) -> None:
        self._constrain_with_accumulator(state, options, rates, non_negative=True)


class CanopySublimation(_CanopyProcess):
    """Loss of intercepted snow from the canopy to the atmosphere.

    Connections:
        0: CANOPY_SNOW -> ATMOSPHERE (sublimation)
        1: AET -> AET (actual ET accumulator)

    The wind-dependent models require wind speed adjusted to canopy height,
    which is not available yet; they raise StubError when exercised.

    Args:
        storage: Storage index of the model.
        model: Sublimation sub-model (enum or name).
    """

    PROCESS_NAME = "canopy_sublimation"
    MODEL_TYPE = SublimationModel

    def __init__(self, storage: StorageIndex, model: SublimationModel | str = SublimationModel.MAXIMUM) -> None:
        super().__init__(storage, self.coerce_model(model))
        aet = storage.resolve(StorageType.AET)
        self._specify_connections(
            [
                (storage.resolve(StorageType.CANOPY_SNOW), storage.resolve(StorageType.ATMOSPHERE)),
                (aet, aet),
            ]
        )
        logger.debug("Created %s with connections %s", self.name, self.connections)

    def initialize(self) -> None:
        self._require_type(self.from_indices[0], StorageType.CANOPY_SNOW, "source")
        self._require_type(self.to_indices[0], StorageType.ATMOSPHERE, "destination")
        self._require_type(self.from_indices[1], StorageType.AET, "accumulator")

    @classmethod
    def get_participating_parameters(cls, model: Enum | None = None) -> tuple[ParameterSpec, ...]:
        model = cls.coerce_model(model)
        if model == SublimationModel.MAXIMUM:
            return (_FOREST_COVERAGE,)
        if model == SublimationModel.SVERDRUP:
            return (ParameterSpec("SNOW_ROUGHNESS", ParameterClass.GLOBAL),)
        return ()

    @classmethod
    def get_participating_storage(cls, model: Enum | None = None) -> tuple[StorageSpec, ...]:
        cls.coerce_model(model)
        return (
            StorageSpec(StorageType.CANOPY_SNOW),
            StorageSpec(StorageType.ATMOSPHERE),
            StorageSpec(StorageType.AET),
        )

    def _compute_rates(
        self, state: np.ndarray, unit: SpatialUnit, options: Options, t: float, rates: np.ndarray
    ) -> None:
        fc = unit.surface.forest_coverage
        if fc == 0.0:
            return

        if self.model.is_wind_dependent:
            # TODO: adjust forcing wind speed to canopy height before calling sublimation_rate
            raise StubError(self.name, "wind velocity must be adjusted to canopy height")

        pet = self._available_pet(state, unit, options)
        if self.model == SublimationModel.MAXIMUM:
            rate = fc * pet
        else:
            rate = max(state[self.from_indices[0]], 0.0) / options.timestep

        rates[0] = rate
        rates[1] = rate

    def _constrain_rates(
        self, state: np.ndarray, unit: SpatialUnit, options: Options, t: float, rates: np.ndarray
    ) -> None:
        self._constrain_with_accumulator(state, options, rates, non_negative=False)


class CanopyDrip(_CanopyProcess):
    """Loss of intercepted water from the canopy to a user-specified compartment.

    Connections:
        0: CANOPY -> to_index

    Args:
        storage: Storage index of the model.
        model: Drip sub-model (enum or name).
        to_index: State vector index of the receiving compartment (usually ponded water).

    Raises:
        ConfigurationError: If to_index is None.
    """

    PROCESS_NAME = "canopy_drip"
    MODEL_TYPE = CanopyDripModel

    def __init__(
        self,
        storage: StorageIndex,
        model: CanopyDripModel | str = CanopyDripModel.RUTTER,
        to_index: int | None = None,
    ) -> None:
        super().__init__(storage, self.coerce_model(model))
        if to_index is None:
            raise ConfigurationError(self.name, "invalid 'to' compartment specified")
        self._specify_connections([(storage.resolve(StorageType.CANOPY), to_index)])
        logger.debug("Created %s with connections %s", self.name, self.connections)

    def initialize(self) -> None:
        self._require_type(self.from_indices[0], StorageType.CANOPY, "source")
        to_index = self.to_indices[0]
        if to_index < 0 or to_index >= len(self._storage):
            raise ConfigurationError(self.name, f"'to' index {to_index} is not a registered compartment")

    @classmethod
    def get_participating_parameters(cls, model: Enum | None = None) -> tuple[ParameterSpec, ...]:
        model = cls.coerce_model(model)
        if model == CanopyDripModel.RUTTER:
            return (
                _FOREST_COVERAGE,
                _MAX_CAPACITY,
                ParameterSpec("STEMFLOW_FRAC", ParameterClass.VEGETATION),
            )
        return (
            ParameterSpec("DRIP_PROPORTION", ParameterClass.VEGETATION),
            _MAX_CAPACITY,
            _FOREST_COVERAGE,
        )

    @classmethod
    def get_participating_storage(cls, model: Enum | None = None) -> tuple[StorageSpec, ...]:
        # the 'to' compartment is user-specified
        cls.coerce_model(model)
        return (StorageSpec(StorageType.CANOPY),)

    def _compute_rates(
        self, state: np.ndarray, unit: SpatialUnit, options: Options, t: float, rates: np.ndarray
    ) -> None:
        fc = unit.surface.forest_coverage
        if fc == 0.0:
            return

        storage = state[self.from_indices[0]]
        veg = unit.vegetation

        if self.model == CanopyDripModel.RUTTER:
            p = veg.stemflow_fraction if self._trunk_modeled() else 0.0
            rates[0] = kernels.overflow_drip(storage, veg.capacity, fc, p, options.timestep)
        elif self.model == CanopyDripModel.SLOW_DRAIN:
            rates[0] = kernels.slow_drain_drip(storage, veg.capacity, fc, veg.drip_proportion, options.timestep)
        else:
            raise StubError(self.name, "canopy drip model not coded yet")

    def _constrain_rates(
        self, state: np.ndarray, unit: SpatialUnit, options: Options, t: float, rates: np.ndarray
    ) -> None:
        rates[0] = kernels.limit_withdrawal(rates[0], state[self.from_indices[0]], options.timestep)


# Auto-register with the process registry
register("canopy_evaporation", CanopyEvaporation)
register("canopy_sublimation", CanopySublimation)
register("canopy_drip", CanopyDrip)
