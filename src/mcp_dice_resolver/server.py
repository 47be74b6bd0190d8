from __future__ import annotations

import logging
import sys
import time
from typing import Any, cast

from mcp.server.fastmcp import FastMCP

from .config import settings
from .errors import DiceError
from .models import (
    Comparison,
    DieShape,
    KeepHighest,
    KeepLowest,
    RerollMode,
    RollSpec,
    select_keep_rule,
    select_reroll_rule,
    shape_for_sides,
)
from .notation import build_equation
from .roll import resolve_roll


logger = logging.getLogger(__name__)

mcp = FastMCP(settings.server_name)


def _log_duration(seconds: float) -> None:
    logger.debug("roll resolved in %.3f ms", seconds * 1000)


def build_spec(
    n: int = 1,
    die: str = "d20",
    sides: int | None = None,
    faces: list[int] | None = None,
    min: int | None = None,
    max: int | None = None,
    keep_highest: int = 0,
    keep_lowest: int = 0,
    gt: int = 0,
    gte: int = 0,
    lt: int = 0,
    lte: int = 0,
    advantage: bool = False,
    disadvantage: bool = False,
    reroll_op: Comparison | None = None,
    reroll_threshold: int | None = None,
    reroll_mode: RerollMode = "once",
    modifiers: list[int] | None = None,
    comment: str | None = None,
) -> RollSpec:
    """Turn the tool's flat fields into a RollSpec. Raises DiceError on invalid input."""

    if n > settings.max_dice:
        raise DiceError(f"[TOO_MANY_DICE] At most {settings.max_dice} dice per roll. Example: n=4, die='d6'.")

    shape = die.strip().lower()
    maximum = max
    if sides is not None:
        if sides <= 0:
            raise DiceError("[INVALID_DIE] Sides must be a positive integer. Example: sides=6.")
        shape = shape_for_sides(sides)
        if shape == "custom" and maximum is None:
            maximum = sides
    if faces:
        shape = "custom"

    keep = select_keep_rule(gt=gt, gte=gte, lt=lt, lte=lte, kh=keep_highest, kl=keep_lowest)

    if advantage and disadvantage:
        raise DiceError(
            "[INVALID_ADVANTAGE_USAGE] Found both advantage and disadvantage. Use only one. Example: advantage=True."
        )
    if advantage or disadvantage:
        if n != 1 or shape != "d20" or faces or keep is not None:
            raise DiceError(
                "[INVALID_ADVANTAGE_USAGE] Advantage/disadvantage requires exactly one plain d20. Example: n=1, die='d20'."
            )
        n = 2
        keep = KeepHighest(1) if advantage else KeepLowest(1)

    if reroll_mode == "forever":
        reroll = select_reroll_rule(rr_op=reroll_op, rr=reroll_threshold)
    elif reroll_mode == "once":
        reroll = select_reroll_rule(ro_op=reroll_op, ro=reroll_threshold)
    else:
        raise DiceError(f"[INVALID_REROLL] Unknown reroll mode '{reroll_mode}'. Use once or forever.")

    return RollSpec(
        n=n,
        shape=cast(DieShape, shape),
        faces=list(faces) if faces else None,
        minimum=min,
        maximum=maximum,
        keep=keep,
        reroll=reroll,
        modifiers=[m for m in (modifiers or []) if m != 0],
        comment=comment,
    )


def roll_from_fields(**fields: Any) -> dict[str, Any]:
    """Build, resolve and wrap one roll. Raises DiceError for invalid input."""

    start = time.perf_counter()
    spec = build_spec(**fields)
    roll = resolve_roll(spec, equation=build_equation(spec), on_duration=_log_duration)
    elapsed_ms = int((time.perf_counter() - start) * 1000)

    logger.info("roll %s %s => %d", roll.id, roll.equation, roll.value)
    return {"roll": roll.to_dict(), "execution_time": elapsed_ms}


@mcp.tool()
def roll_dice(
    n: int = 1,
    die: str = "d20",
    sides: int | None = None,
    faces: list[int] | None = None,
    min: int | None = None,
    max: int | None = None,
    keep_highest: int = 0,
    keep_lowest: int = 0,
    gt: int = 0,
    gte: int = 0,
    lt: int = 0,
    lte: int = 0,
    advantage: bool = False,
    disadvantage: bool = False,
    reroll_op: Comparison | None = None,
    reroll_threshold: int | None = None,
    reroll_mode: RerollMode = "once",
    modifiers: list[int] | None = None,
    comment: str | None = None,
):
    """Roll dice from structured fields.

    Input: dice count, die (d4..d100, custom), optional sides/faces/min/max,
    one keep rule (gt, gte, lt, lte, keep_highest, keep_lowest; first set wins),
    optional reroll (op, threshold, once|forever), modifiers, comment.
    Output: {"roll": {...every die, raw_value, value, equation...}, "execution_time": ms}

    Raises a hard error (exception) on invalid input.
    """

    try:
        return roll_from_fields(
            n=n,
            die=die,
            sides=sides,
            faces=faces,
            min=min,
            max=max,
            keep_highest=keep_highest,
            keep_lowest=keep_lowest,
            gt=gt,
            gte=gte,
            lt=lt,
            lte=lte,
            advantage=advantage,
            disadvantage=disadvantage,
            reroll_op=reroll_op,
            reroll_threshold=reroll_threshold,
            reroll_mode=reroll_mode,
            modifiers=modifiers,
            comment=comment,
        )
    except DiceError as e:
        # Fail-fast: surface stable error codes in the message.
        raise ValueError(str(e)) from None


def run() -> None:
    # stdout carries the stdio transport, so logs go to stderr.
    logging.basicConfig(
        stream=sys.stderr,
        level=settings.log_level.upper(),
        format="[%(asctime)s] [%(levelname)s] [%(name)s] - %(message)s",
    )
    mcp.run()


if __name__ == "__main__":
    run()
