from __future__ import annotations

from dataclasses import dataclass, field
from typing import Literal, TypeAlias

from .errors import DiceError


STANDARD_DIE_SIDES: dict[str, int] = {
    "d4": 4,
    "d6": 6,
    "d8": 8,
    "d10": 10,
    "d12": 12,
    "d20": 20,
    "d100": 100,
}

DieShape: TypeAlias = Literal["d4", "d6", "d8", "d10", "d12", "d20", "d100", "custom"]
DieStatus: TypeAlias = Literal["pending", "kept", "dropped"]
Comparison: TypeAlias = Literal[">", ">=", "<", "<=", "=="]
KeepComparison: TypeAlias = Literal[">", ">=", "<", "<="]
RerollMode: TypeAlias = Literal["once", "forever"]

_COMPARISONS = (">", ">=", "<", "<=", "==")
_KEEP_COMPARISONS = (">", ">=", "<", "<=")


def compare(op: Comparison, value: int, threshold: int) -> bool:
    if op == ">":
        return value > threshold
    if op == ">=":
        return value >= threshold
    if op == "<":
        return value < threshold
    if op == "<=":
        return value <= threshold
    if op == "==":
        return value == threshold
    raise DiceError(f"[INVALID_COMPARISON] Unknown comparison '{op}'. Use one of >, >=, <, <=, ==.")


def shape_for_sides(sides: int) -> DieShape:
    """Map a face count onto its standard shape, or 'custom' when there is none."""
    return next((shape for shape, n in STANDARD_DIE_SIDES.items() if n == sides), "custom")


@dataclass(frozen=True)
class ThresholdKeep:
    """Keep every die whose value satisfies `op threshold`, drop the rest."""

    op: KeepComparison
    threshold: int


@dataclass(frozen=True)
class KeepHighest:
    count: int


@dataclass(frozen=True)
class KeepLowest:
    count: int


KeepRule: TypeAlias = ThresholdKeep | KeepHighest | KeepLowest


@dataclass(frozen=True)
class RerollRule:
    op: Comparison
    threshold: int
    mode: RerollMode = "once"

    def matches(self, value: int) -> bool:
        return compare(self.op, value, self.threshold)


def select_keep_rule(
    gt: int = 0,
    gte: int = 0,
    lt: int = 0,
    lte: int = 0,
    kh: int = 0,
    kl: int = 0,
) -> KeepRule | None:
    """Collapse flat keep/drop fields into a single rule.

    Precedence: gt, gte, lt, lte, kh, kl. The first non-zero field wins and the
    others are ignored.
    """

    if gt:
        return ThresholdKeep(">", gt)
    if gte:
        return ThresholdKeep(">=", gte)
    if lt:
        return ThresholdKeep("<", lt)
    if lte:
        return ThresholdKeep("<=", lte)
    if kh:
        return KeepHighest(kh)
    if kl:
        return KeepLowest(kl)
    return None


def select_reroll_rule(
    ro_op: Comparison | None = None,
    ro: int | None = None,
    rr_op: Comparison | None = None,
    rr: int | None = None,
) -> RerollRule | None:
    """Collapse the reroll-once (ro) and reroll-forever (rr) fields into one rule; ro wins."""

    if ro_op is not None and ro is not None:
        return RerollRule(ro_op, ro, "once")
    if rr_op is not None and rr is not None:
        return RerollRule(rr_op, rr, "forever")
    return None


@dataclass(frozen=True)
class RollSpec:
    """A fully structured roll request.

    `faces` turns the die into a sided die that picks one of the listed values.
    Otherwise the die draws from `minimum..maximum`, which default to
    `1..sides` for the standard shapes.
    """

    n: int = 1
    shape: DieShape = "d20"
    faces: list[int] | None = None
    minimum: int | None = None
    maximum: int | None = None
    keep: KeepRule | None = None
    reroll: RerollRule | None = None
    modifiers: list[int] = field(default_factory=list)
    comment: str | None = None

    def __post_init__(self) -> None:
        if self.shape != "custom" and self.shape not in STANDARD_DIE_SIDES:
            raise DiceError(
                f"[INVALID_DIE] Unknown die '{self.shape}'. Use d4,d6,d8,d10,d12,d20,d100 or custom."
            )
        if self.faces is not None and not self.faces:
            raise DiceError("[INVALID_FACES] A sided die needs at least one face. Example: faces=[1,1,2,3].")
        if self.faces is None and self.shape == "custom" and self.maximum is None:
            raise DiceError("[INVALID_DIE] A custom die needs faces or a maximum. Example: min=2, max=7.")
        if isinstance(self.keep, (KeepHighest, KeepLowest)) and self.keep.count < 0:
            raise DiceError("[INVALID_KEEP] Keep counts cannot be negative. Example: keep_highest=3.")
        if isinstance(self.keep, ThresholdKeep) and self.keep.op not in _KEEP_COMPARISONS:
            raise DiceError(f"[INVALID_KEEP] Unknown keep comparison '{self.keep.op}'. Use one of >, >=, <, <=.")
        if self.reroll is not None:
            if self.reroll.op not in _COMPARISONS:
                raise DiceError(
                    f"[INVALID_REROLL] Unknown reroll comparison '{self.reroll.op}'. Use one of >, >=, <, <=, ==."
                )
            if self.reroll.mode not in ("once", "forever"):
                raise DiceError(f"[INVALID_REROLL] Unknown reroll mode '{self.reroll.mode}'. Use once or forever.")

        low, high = self.bounds
        if low > high:
            raise DiceError(f"[INVALID_RANGE] Minimum {low} is greater than maximum {high}.")

    @property
    def bounds(self) -> tuple[int, int]:
        """Inclusive (min, max) the die can land on."""
        if self.faces:
            return min(self.faces), max(self.faces)
        low = 1 if self.minimum is None else self.minimum
        high = self.maximum if self.maximum is not None else STANDARD_DIE_SIDES[self.shape]
        return low, high
