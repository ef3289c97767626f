"""Numba-compiled rate formulas shared by the canopy processes.

Pure scalar functions: all inputs and outputs are floats, rates are in mm/d.
The process classes read properties from the spatial unit and delegate the
arithmetic here.
"""

from numba import njit


@njit(cache=True)
def adjusted_pet(pet: float, aet_so_far: float, timestep: float, competitive: bool) -> float:
    """Compute PET available to a canopy process.

    Args:
        pet: Potential evapotranspiration [mm/d]. Negative values are floored at zero.
        aet_so_far: Actual ET already recorded this step [mm].
        timestep: Step length [d].
        competitive: Whether to subtract PET already consumed this step.

    Returns:
        Remaining PET [mm/d], never negative.
    """
    pet = max(pet, 0.0)
    if competitive:
        pet = max(pet - aet_so_far / timestep, 0.0)
    return pet


@njit(cache=True)
def rutter_evaporation(
    storage: float, capacity: float, forest_coverage: float, trunk_fraction: float, pet: float
) -> float:
    """Canopy evaporation proportional to canopy storage (Rutter model).

    Storage is clipped to [0, capacity * forest_coverage] to tolerate invalid
    upstream state.

    Args:
        storage: Canopy storage [mm].
        capacity: Canopy capacity [mm].
        forest_coverage: Forest coverage fraction [-].
        trunk_fraction: Fraction of evaporation from trunks [-].
        pet: Adjusted PET [mm/d].

    Returns:
        Evaporation rate [mm/d].
    """
    max_storage = capacity * forest_coverage
    if max_storage <= 0.0:
        return 0.0
    stor = min(max(storage, 0.0), max_storage)
    return (1.0 - trunk_fraction) * forest_coverage * pet * (stor / max_storage)


@njit(cache=True)
def overflow_drip(
    storage: float, capacity: float, forest_coverage: float, stemflow_fraction: float, timestep: float
) -> float:
    """Drip driven solely by canopy capacity overflow.

    Storage above capacity drains within one step, so capacity cannot be
    exceeded for a full timestep.

    Returns:
        Drip rate [mm/d].
    """
    return (1.0 - stemflow_fraction) * max((storage - forest_coverage * capacity) / timestep, 0.0)


@njit(cache=True)
def slow_drain_drip(
    storage: float, capacity: float, forest_coverage: float, drip_proportion: float, timestep: float
) -> float:
    """Capacity overflow plus a slow drain linearly proportional to storage.

    The slow drain term alone is bounded by stor / Fc / timestep.

    Returns:
        Drip rate [mm/d].
    """
    overflow = max((storage - forest_coverage * capacity) / timestep, 0.0)
    per_area = storage / forest_coverage
    slow = min(drip_proportion * per_area, per_area / timestep)
    return overflow + max(slow, 0.0)


@njit(cache=True)
def limit_withdrawal(rate: float, storage: float, timestep: float) -> float:
    """Cap a withdrawal rate so the source cannot go negative within the step.

    Args:
        rate: Proposed withdrawal rate [mm/d].
        storage: Mass available in the source compartment [mm].
        timestep: Step length [d].

    Returns:
        min(rate, max(storage, 0) / timestep).
    """
    return min(rate, max(storage, 0.0) / timestep)
