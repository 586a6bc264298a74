"""Error taxonomy for the exposure and margin engines.

Every engine either returns a complete result or raises one of these.
Nothing is retried internally and partial results are never returned.
"""

from __future__ import annotations


class RiskEngineError(Exception):
    """Base class for all engine failures."""


class InvalidInputError(RiskEngineError, ValueError):
    """Raised when input is structurally invalid or out of domain.

    Always caller-fixable. Carries the offending field and, where one
    applies, the trade identifier.
    """

    def __init__(
        self,
        message: str,
        field: str | None = None,
        trade_id: str | None = None,
    ) -> None:
        self.field = field
        self.trade_id = trade_id
        self.reason = message

        context = []
        if trade_id is not None:
            context.append(f"trade '{trade_id}'")
        if field is not None:
            context.append(f"field '{field}'")

        if context:
            super().__init__(f"Invalid input ({', '.join(context)}): {message}")
        else:
            super().__init__(f"Invalid input: {message}")


class InsufficientDataError(RiskEngineError):
    """Raised when a position has too few historical observations."""

    def __init__(
        self,
        asset_identifier: str,
        required_points: int,
        available_points: int,
    ) -> None:
        self.asset_identifier = asset_identifier
        self.required_points = required_points
        self.available_points = available_points
        super().__init__(
            f"Insufficient data for '{asset_identifier}': "
            f"required {required_points} points, got {available_points}"
        )


class CalculationError(RiskEngineError):
    """Raised on a numeric state that should be impossible by construction.

    Indicates a bug rather than bad input, so it is never clamped away.
    """

    def __init__(self, stage: str, message: str) -> None:
        self.stage = stage
        super().__init__(f"Calculation error in {stage}: {message}")


class ConfigurationError(RiskEngineError):
    """Raised when a regulatory table is missing or malformed."""

    def __init__(self, path: str, message: str) -> None:
        self.path = path
        super().__init__(f"Configuration error in '{path}': {message}")
