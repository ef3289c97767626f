"""Process registry and participation reflection.

Provides a global registry of process families so a model builder can look
processes up by name and validate a configuration before any simulation step.

Each registered class must follow the process contract:
    - subclass of Process with a PROCESS_NAME
    - get_participating_parameters(model) classmethod
    - get_participating_storage(model) classmethod
    - MODEL_TYPE: Enum of sub-models, or None
"""

from __future__ import annotations

import logging
from enum import Enum

import pandas as pd

from hydromovers.process import Process
from hydromovers.storage import StorageIndex
from hydromovers.types import StorageSpec

logger = logging.getLogger(__name__)

# Required classmethods on every registered process class
_REQUIRED_CLASSMETHODS: tuple[str, ...] = (
    "get_participating_parameters",
    "get_participating_storage",
    "coerce_model",
)

# Global registry: {name: process class}
_processes: dict[str, type[Process]] = {}


def _validate_class(name: str, cls: type) -> None:
    """Validate that a class satisfies the process contract.

    Raises:
        ValueError: If the class is not a concrete Process subclass with the required members.
    """
    if not isinstance(cls, type) or not issubclass(cls, Process):
        msg = f"Process '{name}' must be a subclass of Process"
        raise ValueError(msg)

    missing = [m for m in _REQUIRED_CLASSMETHODS if not callable(getattr(cls, m, None))]
    if missing:
        msg = f"Process '{name}' is missing required classmethods: {', '.join(missing)}"
        raise ValueError(msg)

    if getattr(cls, "__abstractmethods__", None):
        abstract = ", ".join(sorted(cls.__abstractmethods__))
        msg = f"Process '{name}' does not implement: {abstract}"
        raise ValueError(msg)

    model_type = cls.MODEL_TYPE
    if model_type is not None and not (isinstance(model_type, type) and issubclass(model_type, Enum)):
        msg = f"Process '{name}' MODEL_TYPE must be an Enum or None"
        raise ValueError(msg)


def register(name: str, cls: type[Process]) -> None:
    """Register a process class under the given name.

    Args:
        name: The name to register the process under (e.g., "canopy_drip").
        cls: The process class.

    Raises:
        ValueError: If the class does not satisfy the process contract.

    Example:
        >>> from hydromovers import registry
        >>> from hydromovers.vegetation import CanopyDrip
        >>> registry.register("canopy_drip", CanopyDrip)
    """
    _validate_class(name, cls)
    _processes[name] = cls
    logger.debug("Registered process '%s'", name)


def get_process(name: str) -> type[Process]:
    """Get a registered process class by name.

    Raises:
        KeyError: If the process name is not registered.
    """
    if name not in _processes:
        available = ", ".join(sorted(_processes.keys())) if _processes else "(none)"
        msg = f"Unknown process '{name}'. Available processes: {available}"
        raise KeyError(msg)
    return _processes[name]


def list_processes() -> list[str]:
    """Return sorted list of registered process names."""
    return sorted(_processes.keys())


def list_models(name: str) -> list[Enum | None]:
    """Return the sub-models of a registered process, or [None] if it has none."""
    cls = get_process(name)
    if cls.MODEL_TYPE is None:
        return [None]
    return list(cls.MODEL_TYPE)


def get_participation(name: str, model: Enum | str | None = None) -> dict[str, tuple]:
    """Get required parameters and compartments of a process sub-model.

    Args:
        name: The registered process name.
        model: Sub-model selector (enum or name). Ignored by families without sub-models.

    Returns:
        Dictionary containing:
            - parameters: tuple[ParameterSpec, ...]
            - storage: tuple[StorageSpec, ...]

    Raises:
        KeyError: If the process name is not registered.
        ValueError: If the model is not valid for the process.

    Example:
        >>> info = get_participation("canopy_evaporation", "maximum")
        >>> [p.name for p in info["parameters"]]
        ['FOREST_COVERAGE']
    """
    cls = get_process(name)
    model = cls.coerce_model(model)
    return {
        "parameters": cls.get_participating_parameters(model),
        "storage": cls.get_participating_storage(model),
    }


def participation_table() -> pd.DataFrame:
    """Tabulate participation of every registered (process, model) combination.

    Returns:
        DataFrame with columns process, model, kind ("parameter" or "storage"),
        name, category (parameter class or storage level).
    """
    rows: list[dict[str, object]] = []
    for name in list_processes():
        for model in list_models(name):
            info = get_participation(name, model)
            model_name = None if model is None else model.value
            for param in info["parameters"]:
                rows.append(
                    {
                        "process": name,
                        "model": model_name,
                        "kind": "parameter",
                        "name": param.name,
                        "category": param.parameter_class.value,
                    }
                )
            for spec in info["storage"]:
                rows.append(
                    {
                        "process": name,
                        "model": model_name,
                        "kind": "storage",
                        "name": spec.storage_type.value,
                        "category": spec.level,
                    }
                )
    return pd.DataFrame(rows, columns=["process", "model", "kind", "name", "category"])


def ensure_storage(storage: StorageIndex, name: str, model: Enum | str | None = None) -> list[StorageSpec]:
    """Create any compartment required by a process sub-model that is missing from storage.

    Returns:
        The compartments that were added, in participation order.
    """
    added: list[StorageSpec] = []
    for spec in get_participation(name, model)["storage"]:
        if spec not in storage:
            storage.add(spec.storage_type, spec.level)
            added.append(spec)
            logger.debug("Auto-created compartment %s for process '%s'", spec.storage_type.name, name)
    return added
