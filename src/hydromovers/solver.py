"""Reference explicit step that honours the process ordering contract.

Processes are evaluated strictly in list order and the state is updated after
each one, so a process reading the actual ET accumulator sees everything the
processes before it extracted in the same step. An advection process
re-evaluates its companion, so it must precede the companion in the list.
"""

from __future__ import annotations

from collections.abc import Sequence

import numpy as np

from hydromovers.advection import Advection
from hydromovers.process import Process
from hydromovers.storage import StorageIndex
from hydromovers.types import Options, SpatialUnit, StorageType

# Accumulators cleared at the start of every step
ACCUMULATOR_TYPES: tuple[StorageType, ...] = (StorageType.AET,)


def advance(
    processes: Sequence[Process],
    storage: StorageIndex,
    state: np.ndarray,
    unit: SpatialUnit,
    options: Options,
    t: float,
) -> np.ndarray:
    """Advance the state of one unit by one step.

    Accumulator connections (from == to) add rate * timestep to their slot;
    all other connections move rate * timestep from source to destination.

    Args:
        processes: Initialized processes in evaluation order.
        storage: Storage index matching the state vector.
        state: State vector at the start of the step. Not modified.
        unit: Spatial unit with forcings for this step.
        options: Global run options.
        t: Model time at the start of the step [d].

    Returns:
        New state vector at the end of the step.
    """
    if len(state) != len(storage):
        msg = f"state length {len(state)} does not match storage index length {len(storage)}"
        raise ValueError(msg)
    _check_advection_order(processes)

    new_state = np.array(state, dtype=np.float64, copy=True)
    for i, spec in enumerate(storage):
        if spec.storage_type in ACCUMULATOR_TYPES:
            new_state[i] = 0.0

    dt = options.timestep
    for process in processes:
        rates = process.evaluate(new_state, unit, options, t)
        for conn, rate in zip(process.connections, rates, strict=True):
            if conn.is_accumulator:
                new_state[conn.to_index] += rate * dt
            else:
                new_state[conn.from_index] -= rate * dt
                new_state[conn.to_index] += rate * dt
    return new_state


def simulate(
    processes: Sequence[Process],
    storage: StorageIndex,
    initial_state: np.ndarray,
    units: Sequence[SpatialUnit],
    options: Options,
    t0: float = 0.0,
) -> np.ndarray:
    """Run advance over a sequence of per-step unit views.

    Args:
        units: One spatial unit view per step (forcings change over time).

    Returns:
        Array of shape (len(units) + 1, n_state) with the initial state in row 0.
    """
    history = np.empty((len(units) + 1, len(storage)), dtype=np.float64)
    history[0] = initial_state
    for n, unit in enumerate(units):
        history[n + 1] = advance(processes, storage, history[n], unit, options, t0 + n * options.timestep)
    return history


def _check_advection_order(processes: Sequence[Process]) -> None:
    """Raise ValueError if an advection process comes after its companion."""
    positions = {id(process): k for k, process in enumerate(processes)}
    for k, process in enumerate(processes):
        if not isinstance(process, Advection):
            continue
        companion = positions.get(id(process.water_process))
        if companion is not None and companion < k:
            msg = f"{process.name} must be evaluated before its companion {process.water_process.name}"
            raise ValueError(msg)
