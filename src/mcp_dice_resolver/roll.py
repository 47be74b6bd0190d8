from __future__ import annotations

import logging
import time
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Callable, TypeAlias

from .config import settings
from .dice import Die, RandomSource, default_rng
from .errors import RollConfigurationError
from .models import KeepHighest, KeepLowest, KeepRule, RerollRule, RollSpec, ThresholdKeep, compare


logger = logging.getLogger(__name__)

DurationSink: TypeAlias = Callable[[float], None]


def _now_utc_iso() -> str:
    return datetime.now(timezone.utc).replace(microsecond=0).isoformat().replace("+00:00", "Z")


@dataclass
class Roll:
    """The dice of one request, in generation order, plus its modifiers.

    `raw_value` and `value` are derived from the dice on every access.
    """

    dice: list[Die] = field(default_factory=list)
    modifiers: list[int] = field(default_factory=list)
    comment: str | None = None
    equation: str = ""
    execution_time: int = 0
    id: str = field(default_factory=lambda: uuid.uuid4().hex)
    timestamp: str = field(default_factory=_now_utc_iso)

    @property
    def raw_value(self) -> int:
        return sum(die.value for die in self.dice if die.is_kept)

    @property
    def value(self) -> int:
        return self.raw_value + sum(self.modifiers)

    def add_comment(self, comment: str) -> None:
        self.comment = comment

    def add_equation(self, equation: str) -> None:
        self.equation = equation

    def generate(self, spec: RollSpec, rng: RandomSource) -> None:
        low, high = spec.bounds
        for _ in range(max(spec.n, 0)):
            die = Die.generate(spec.shape, low, high, len(self.dice), spec.faces)
            die.resolve(rng)
            self.dice.append(die)
        logger.debug("generated %d dice: %s", len(self.dice), [d.value for d in self.dice])

    def reroll(self, rule: RerollRule, rng: RandomSource, max_passes: int) -> None:
        """Replace every matching die that has not been rerolled yet.

        Once mode makes a single pass and drops the replaced dice. Forever mode
        keeps the replaced dice and repeats until no fresh die matches, giving
        up with RollConfigurationError after `max_passes` passes.
        """

        passes = 0
        while True:
            matching = [d for d in self.dice if not d.rerolled and rule.matches(d.value)]
            if not matching:
                return
            if rule.mode == "forever" and passes >= max_passes:
                logger.warning("reroll %s%s still matching after %d passes", rule.op, rule.threshold, passes)
                raise RollConfigurationError(
                    f"[REROLL_NEVER_TERMINATES] Reroll {rule.op}{rule.threshold} did not settle after {max_passes} passes."
                )
            passes += 1

            for die in matching:
                fresh = die.replacement(len(self.dice))
                fresh.resolve(rng)
                die.mark_rerolled()
                if rule.mode == "once":
                    die.mark_dropped()
                self.dice.append(fresh)
            logger.debug("reroll pass %d replaced %d dice", passes, len(matching))

            if rule.mode == "once":
                return

    def keep_matching(self, rule: ThresholdKeep) -> None:
        for die in self.dice:
            if compare(rule.op, die.value, rule.threshold):
                die.mark_kept()
            else:
                die.mark_dropped()

    def keep_highest(self, count: int) -> None:
        self._keep_ranked(count, highest=True)

    def keep_lowest(self, count: int) -> None:
        self._keep_ranked(count, highest=False)

    def _keep_ranked(self, count: int, highest: bool) -> None:
        # Rank indices by (value, order); the dice list itself is never reordered.
        candidates = [i for i, die in enumerate(self.dice) if die.status != "dropped"]
        ranked = sorted(candidates, key=lambda i: (self.dice[i].value, self.dice[i].order))
        if highest:
            ranked.reverse()
        selected = set(ranked[:count])
        for i in candidates:
            if i in selected:
                self.dice[i].mark_kept()
            else:
                self.dice[i].mark_dropped()

    def keep_all(self) -> None:
        for die in self.dice:
            die.mark_kept()

    def apply_keep(self, rule: KeepRule | None) -> None:
        if isinstance(rule, ThresholdKeep):
            self.keep_matching(rule)
        elif isinstance(rule, KeepHighest):
            self.keep_highest(rule.count)
        elif isinstance(rule, KeepLowest):
            self.keep_lowest(rule.count)
        else:
            self.keep_all()

    def apply_modifier(self, modifier: int) -> None:
        self.modifiers.append(modifier)

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "comment": self.comment,
            "dice": [die.to_dict() for die in self.dice],
            "equation": self.equation,
            "execution_time": self.execution_time,
            "modifiers": list(self.modifiers),
            "raw_value": self.raw_value,
            "timestamp": self.timestamp,
            "value": self.value,
        }


def reroll_never_settles(spec: RollSpec) -> bool:
    """True when a forever reroll would match every value the die can land on."""

    rule = spec.reroll
    if rule is None or rule.mode != "forever":
        return False
    if spec.faces:
        return all(rule.matches(face) for face in spec.faces)

    low, high = spec.bounds
    if rule.op == ">":
        return low > rule.threshold
    if rule.op == ">=":
        return low >= rule.threshold
    if rule.op == "<":
        return high < rule.threshold
    if rule.op == "<=":
        return high <= rule.threshold
    return low == high == rule.threshold


def resolve_roll(
    spec: RollSpec,
    rng: RandomSource | None = None,
    equation: str | None = None,
    on_duration: DurationSink | None = None,
    max_reroll_passes: int | None = None,
) -> Roll:
    """Run generation, reroll, keep/drop and modifiers for one request.

    Raises RollConfigurationError, before any die is rolled where possible,
    when a forever reroll cannot settle.
    """

    start = time.perf_counter()
    if rng is None:
        rng = default_rng()
    max_passes = settings.max_reroll_passes if max_reroll_passes is None else max_reroll_passes

    rule = spec.reroll
    if rule is not None and reroll_never_settles(spec):
        logger.warning("rejecting forever reroll %s%s on %s", rule.op, rule.threshold, spec.bounds)
        raise RollConfigurationError(
            f"[REROLL_NEVER_TERMINATES] Reroll {rule.op}{rule.threshold} matches every face of the die. "
            "Example: 'reroll == 1' on a d6."
        )

    roll = Roll()
    roll.generate(spec, rng)
    if rule is not None:
        roll.reroll(rule, rng, max_passes)
    roll.apply_keep(spec.keep)
    for modifier in spec.modifiers:
        roll.apply_modifier(modifier)

    if spec.comment:
        roll.add_comment(spec.comment)
    if equation:
        roll.add_equation(equation)

    elapsed = time.perf_counter() - start
    roll.execution_time = int(elapsed * 1000)
    logger.debug("roll %s resolved: raw=%d value=%d", roll.id, roll.raw_value, roll.value)

    if on_duration is not None:
        try:
            on_duration(elapsed)
        except Exception:
            logger.exception("duration sink failed for roll %s", roll.id)

    return roll
