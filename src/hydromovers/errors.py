"""Fatal error classes raised by mass-transfer processes.

Two distinct failures abort a run:
- ConfigurationError: a process was wired to the wrong compartments
- StubError: a model branch whose physics has not been coded was exercised
"""

from __future__ import annotations


class ConfigurationError(ValueError):
    """A process connection resolves to an unexpected or missing compartment.

    Raised at construction or initialization time. This is a model-building
    error, so callers should not retry.

    Attributes:
        process: Name of the offending process.
        expected: Expected compartment type (or description), if applicable.
        actual: Actual compartment type found, if applicable.
    """

    def __init__(self, process: str, message: str, expected: object = None, actual: object = None) -> None:
        self.process = process
        self.expected = expected
        self.actual = actual
        detail = f"{process}: {message}"
        if expected is not None or actual is not None:
            detail += f" (expected {_describe(expected)}, got {_describe(actual)})"
        super().__init__(detail)


class StubError(NotImplementedError):
    """A model branch was exercised whose formula is not implemented.

    Attributes:
        process: Name of the process containing the stub.
    """

    def __init__(self, process: str, message: str) -> None:
        self.process = process
        super().__init__(f"{process}: {message}")


def _describe(value: object) -> str:
    if value is None:
        return "nothing"
    return getattr(value, "name", str(value))
