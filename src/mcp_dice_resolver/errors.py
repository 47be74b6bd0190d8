from __future__ import annotations


class DiceError(ValueError):
    """User-facing validation errors (fail-fast, no roll performed)."""


class RollConfigurationError(DiceError):
    """A roll request whose reroll rule can never settle."""
