"""Shared fixtures for process tests."""

from collections.abc import Callable

import numpy as np
import pytest

from hydromovers import (
    ForcingValues,
    Options,
    SpatialUnit,
    StorageIndex,
    StorageType,
    SurfaceProperties,
    UnitType,
    VegetationProperties,
)

UnitFactory = Callable[..., SpatialUnit]


@pytest.fixture
def storage() -> StorageIndex:
    """Storage index with canopy, canopy snow, ponded water, atmosphere and AET (no trunk)."""
    return StorageIndex(
        [
            StorageType.CANOPY,
            StorageType.CANOPY_SNOW,
            StorageType.PONDED_WATER,
            StorageType.ATMOSPHERE,
            StorageType.AET,
        ]
    )


@pytest.fixture
def trunk_storage() -> StorageIndex:
    """Storage index that also models trunk storage explicitly."""
    return StorageIndex(
        [
            StorageType.CANOPY,
            StorageType.CANOPY_SNOW,
            StorageType.PONDED_WATER,
            StorageType.ATMOSPHERE,
            StorageType.AET,
            StorageType.TRUNK,
        ]
    )


@pytest.fixture
def options() -> Options:
    """Daily time step with competitive ET enabled."""
    return Options(timestep=1.0)


@pytest.fixture
def make_unit() -> UnitFactory:
    """Factory for spatial units with canopy properties and forcings."""

    def _make_unit(
        forest_coverage: float = 1.0,
        capacity: float = 5.0,
        pet: float = 3.0,
        unit_type: UnitType = UnitType.STANDARD,
        **vegetation: float,
    ) -> SpatialUnit:
        return SpatialUnit(
            unit_type=unit_type,
            surface=SurfaceProperties(forest_coverage=forest_coverage),
            vegetation=VegetationProperties(capacity=capacity, **vegetation),
            forcing=ForcingValues(pet=pet),
        )

    return _make_unit


def make_state(storage: StorageIndex, **values: float) -> np.ndarray:
    """Create a state vector with named single-level compartments set, e.g. make_state(s, canopy=4.0)."""
    state = storage.new_state()
    for name, value in values.items():
        index = storage.resolve(StorageType(name))
        assert index is not None, f"compartment {name} not in storage"
        state[index] = value
    return state


@pytest.fixture
def state_factory(storage: StorageIndex) -> Callable[..., np.ndarray]:
    """Factory building state vectors for the default storage index."""

    def _factory(**values: float) -> np.ndarray:
        return make_state(storage, **values)

    return _factory
