"""Exceptions raised by explanation routines."""


class IngredientsError(Exception):
    """Base class for all errors raised by this package."""
    pass


class UnknownVariable(IngredientsError, KeyError):
    """Exception raised when a requested variable is absent from the data."""

    def __init__(self, variable, available=None):
        self.variable = variable
        self.available = list(available) if available is not None else None
        message = f"Variable '{variable}' is not present in the data"
        if self.available is not None:
            message += f" (available: {', '.join(map(str, self.available))})"
        super().__init__(message)

    def __str__(self) -> str:
        # KeyError quotes its argument
        return str(self.args[0])


class PredictionFailure(IngredientsError, RuntimeError):
    """Exception raised when a predict function fails or returns bad output."""
    pass


class EmptyProfileSet(IngredientsError, ValueError):
    """Exception raised when aggregation is requested on no profiles."""
    pass


class InvalidConfiguration(IngredientsError, ValueError):
    """Exception raised for unrecognized options or invalid parameter values."""
    pass
