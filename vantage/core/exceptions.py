"""
VANTAGE custom exceptions.
"""


class VantageError(Exception):
    """Base exception for VANTAGE."""

    pass


class VantageConfigError(VantageError):
    """Configuration error."""

    pass


class VantageDataError(VantageError):
    """Data fetch or record shape error."""

    pass


class UniverseNotFoundError(VantageDataError):
    """A named universe could not be loaded."""

    def __init__(self, universe_name: str):
        self.universe_name = universe_name
        super().__init__(f"Universe {universe_name} not found")


class UniverseConflictError(VantageError):
    """A universe mutation kept losing compare-and-swap races."""

    def __init__(self, universe_name: str, attempts: int):
        self.universe_name = universe_name
        self.attempts = attempts
        super().__init__(
            f"Universe {universe_name} changed concurrently; gave up after {attempts} attempts"
        )
