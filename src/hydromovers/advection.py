"""Advective transport of a dissolved constituent.

Constituent mass moves with the water fluxes of a companion process: for
every water connection the constituent flux is the water rate times the
upwind concentration, divided by the retardation factor of the upwind
compartment.
"""

from __future__ import annotations

import logging
from enum import Enum

import numpy as np

from hydromovers import kernels
from hydromovers.errors import ConfigurationError
from hydromovers.process import Process
from hydromovers.registry import register
from hydromovers.transport import TransportModel
from hydromovers.types import Options, ParameterSpec, SpatialUnit, StorageSpec, StorageType

logger = logging.getLogger(__name__)


class Advection(Process):
    """Constituent flux proportional to the water fluxes of a companion process.

    Connections mirror the companion's water connections between
    constituent-carrying compartments; accumulator connections and transfers
    to sinks such as the atmosphere carry no constituent.

    Args:
        constituent_name: Name of the advected constituent.
        transport_model: Transport model holding the constituent compartments.
        water_process: Companion process whose water fluxes drive transport.

    Raises:
        ConfigurationError: If the constituent is unknown or the companion moves no
            constituent-carrying water.
    """

    PROCESS_NAME = "advection"

    def __init__(self, constituent_name: str, transport_model: TransportModel, water_process: Process) -> None:
        super().__init__(transport_model.storage)
        constituent = transport_model.constituent_index(constituent_name)
        if constituent is None:
            available = ", ".join(transport_model.constituent_names) or "(none)"
            raise ConfigurationError(
                self.PROCESS_NAME, f"unknown constituent '{constituent_name}'. Available: {available}"
            )
        self.constituent_name = constituent_name
        self._constituent = constituent
        self._transport = transport_model
        self._water_process = water_process

        pairs: list[tuple[int | None, int | None]] = []
        self._water_slots: list[int] = []
        for slot, conn in enumerate(water_process.connections):
            if conn.is_accumulator:
                continue
            from_index = transport_model.storage_index(constituent, conn.from_index)
            to_index = transport_model.storage_index(constituent, conn.to_index)
            if from_index is None or to_index is None:
                continue
            pairs.append((from_index, to_index))
            self._water_slots.append(slot)

        if not pairs:
            raise ConfigurationError(self.name, f"{water_process.name} moves no constituent-carrying water")
        self._specify_connections(pairs)
        logger.debug("Created %s driven by %s with %d connections", self.name, water_process.name, len(pairs))

    @property
    def name(self) -> str:
        return f"{self.PROCESS_NAME}[{self.constituent_name}]"

    @property
    def transport_model(self) -> TransportModel:
        return self._transport

    @property
    def water_process(self) -> Process:
        return self._water_process

    def initialize(self) -> None:
        for conn in self.connections:
            self._require_type(conn.from_index, StorageType.CONSTITUENT, "source")
            self._require_type(conn.to_index, StorageType.CONSTITUENT, "destination")

    @classmethod
    def get_participating_parameters(cls, model: Enum | None = None) -> tuple[ParameterSpec, ...]:
        return ()

    @classmethod
    def get_participating_storage(cls, model: Enum | None = None) -> tuple[StorageSpec, ...]:
        # constituent compartments are created by the transport model
        return ()

    def _compute_rates(
        self, state: np.ndarray, unit: SpatialUnit, options: Options, t: float, rates: np.ndarray
    ) -> None:
        water_rates = self._water_process.evaluate(state, unit, options, t)
        water_connections = self._water_process.connections
        for k, slot in enumerate(self._water_slots):
            q = water_rates[slot]
            conn = water_connections[slot]
            upwind = conn.from_index if q >= 0.0 else conn.to_index
            conc = self._transport.concentration(state, self._constituent, upwind)
            rates[k] = q * conc / self._transport.retardation(self._constituent, upwind)

    def _constrain_rates(
        self, state: np.ndarray, unit: SpatialUnit, options: Options, t: float, rates: np.ndarray
    ) -> None:
        for k, conn in enumerate(self.connections):
            if rates[k] >= 0.0:
                rates[k] = kernels.limit_withdrawal(rates[k], state[conn.from_index], options.timestep)
            else:
                rates[k] = -kernels.limit_withdrawal(-rates[k], state[conn.to_index], options.timestep)


# Auto-register with the process registry
register("advection", Advection)
