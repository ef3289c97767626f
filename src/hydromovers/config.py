"""Model configuration and process construction.

This module defines validated configuration containers:
- ProcessConfig: one process entry (family, sub-model and wiring)
- ConstituentConfig: a transported constituent and its partitioning
- ModelConfig: run options plus the ordered process list

build_processes turns a ModelConfig into initialized Process instances,
creating any compartment a process requires that the storage index lacks.
"""

from __future__ import annotations

import logging

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from hydromovers import registry
from hydromovers.advection import Advection
from hydromovers.errors import ConfigurationError
from hydromovers.process import Process
from hydromovers.storage import StorageIndex
from hydromovers.transport import TransportModel
from hydromovers.types import Options, StorageType
from hydromovers.vegetation import CanopyDrip

logger = logging.getLogger(__name__)

# Process families that draw on the shared PET budget
_PET_CONSUMERS: frozenset[str] = frozenset({"canopy_evaporation", "canopy_sublimation"})


class ProcessConfig(BaseModel):
    """Configuration of a single process.

    Attributes:
        process: Registered process name (e.g., "canopy_drip").
        model: Sub-model name, required for families with sub-models.
        to: Destination compartment type (canopy_drip only).
        to_level: Destination compartment level, None for single-level compartments.
        constituent: Constituent name (advection only).
        companion: Position of the companion water process in the process list (advection only).
    """

    model_config = ConfigDict(frozen=True)

    process: str
    model: str | None = None
    to: StorageType | None = None
    to_level: int | None = Field(default=None, ge=0)
    constituent: str | None = None
    companion: int | None = Field(default=None, ge=0)

    @field_validator("process")
    @classmethod
    def validate_process(cls, v: str) -> str:
        """Process name must be registered."""
        if v not in registry.list_processes():
            available = ", ".join(registry.list_processes())
            msg = f"Unknown process '{v}'. Available processes: {available}"
            raise ValueError(msg)
        return v

    @model_validator(mode="after")
    def validate_wiring(self) -> ProcessConfig:
        """Check the model selector and the family-specific wiring fields."""
        cls = registry.get_process(self.process)
        cls.coerce_model(self.model)
        if self.process == "canopy_drip" and self.to is None:
            msg = "canopy_drip requires a 'to' compartment"
            raise ValueError(msg)
        if self.process == "advection" and (self.constituent is None or self.companion is None):
            msg = "advection requires 'constituent' and 'companion'"
            raise ValueError(msg)
        return self


class ConstituentConfig(BaseModel):
    """A transported constituent.

    Attributes:
        name: Constituent name.
        retardation: Retardation factor (>= 1) per compartment type.
    """

    model_config = ConfigDict(frozen=True)

    name: str = Field(min_length=1)
    retardation: dict[StorageType, float] = Field(default_factory=dict)

    @field_validator("retardation")
    @classmethod
    def validate_retardation(cls, v: dict[StorageType, float]) -> dict[StorageType, float]:
        for storage_type, factor in v.items():
            if factor < 1.0:
                msg = f"Retardation factor for {storage_type.value} must be >= 1, got {factor}"
                raise ValueError(msg)
        return v


class ModelConfig(BaseModel):
    """Run options and the ordered list of processes evaluated each step.

    Order matters: processes reading the actual ET accumulator see what the
    processes before them already extracted. An advection process must be
    listed before its companion, so both evaluate the same water state.
    """

    model_config = ConfigDict(frozen=True)

    options: Options = Field(default_factory=Options)
    processes: list[ProcessConfig]
    constituents: list[ConstituentConfig] = Field(default_factory=list)

    @model_validator(mode="after")
    def validate_companions(self) -> ModelConfig:
        """Advection companions must be other, non-advection processes."""
        for position, pc in enumerate(self.processes):
            if pc.companion is None:
                continue
            if pc.companion >= len(self.processes) or pc.companion == position:
                msg = f"Process {position} ({pc.process}) has invalid companion {pc.companion}"
                raise ValueError(msg)
            if self.processes[pc.companion].process == "advection":
                msg = f"Process {position} ({pc.process}) companion cannot be an advection process"
                raise ValueError(msg)
            if pc.companion < position:
                msg = (
                    f"Process {position} ({pc.process}) must be listed before its companion {pc.companion}; "
                    "it re-evaluates the companion on the state at its own turn"
                )
                raise ValueError(msg)
        names = [c.name for c in self.constituents]
        if len(set(names)) != len(names):
            msg = f"Duplicate constituent names: {names}"
            raise ValueError(msg)
        return self

    @model_validator(mode="after")
    def warn_on_suppressed_competition(self) -> ModelConfig:
        n_consumers = sum(1 for pc in self.processes if pc.process in _PET_CONSUMERS)
        if self.options.suppress_competitive_et and n_consumers > 1:
            logger.warning(
                "Competitive ET is suppressed but %d processes draw on PET; actual ET may exceed PET",
                n_consumers,
            )
        return self


def build_processes(config: ModelConfig, storage: StorageIndex) -> list[Process]:
    """Construct and initialize every configured process, in order.

    Compartments required by a process (including drip destinations) are
    created in storage when missing. Constituent compartments are created
    after all hydrologic compartments, through a TransportModel shared by the
    advection processes.

    Args:
        config: Validated model configuration.
        storage: Storage index; modified in place when compartments are missing.

    Returns:
        Initialized processes in configuration order.

    Raises:
        ConfigurationError: If a process is wired to unexpected compartments.
    """
    for pc in config.processes:
        if pc.process == "advection":
            continue
        registry.ensure_storage(storage, pc.process, pc.model)
        if pc.to is not None and not storage.exists(pc.to, pc.to_level):
            storage.add(pc.to, pc.to_level)
            logger.debug("Auto-created destination compartment %s for '%s'", pc.to.name, pc.process)

    transport_model: TransportModel | None = None
    if config.constituents:
        transport_model = TransportModel(storage)
        for constituent in config.constituents:
            transport_model.add_constituent(constituent.name)
            for storage_type, factor in constituent.retardation.items():
                transport_model.set_retardation(constituent.name, storage_type, factor)

    # water processes first, so every companion exists when advection is built
    built: dict[int, Process] = {}
    for position, pc in enumerate(config.processes):
        cls = registry.get_process(pc.process)
        if cls is Advection:
            continue
        if cls is CanopyDrip:
            built[position] = CanopyDrip(storage, pc.model, storage.resolve(pc.to, pc.to_level))
        elif cls.MODEL_TYPE is None:
            built[position] = cls(storage)
        else:
            built[position] = cls(storage, pc.model)

    for position, pc in enumerate(config.processes):
        if pc.process != "advection":
            continue
        if transport_model is None:
            raise ConfigurationError(pc.process, "no constituents are configured")
        built[position] = Advection(pc.constituent, transport_model, built[pc.companion])

    processes = [built[position] for position in range(len(config.processes))]
    for process in processes:
        process.initialize()
        logger.debug("Initialized %s", process.name)
    return processes
