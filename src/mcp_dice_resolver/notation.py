from __future__ import annotations

from .models import STANDARD_DIE_SIDES, KeepHighest, KeepLowest, RollSpec, ThresholdKeep


_KEEP_PREFIX = {
    ">": "gt",
    ">=": "gte",
    "<": "lt",
    "<=": "lte",
}


def _die_chunk(spec: RollSpec) -> str:
    if spec.faces:
        return f"{spec.n}[{','.join(str(f) for f in spec.faces)}]"

    low, high = spec.bounds
    if spec.shape == "custom":
        chunk = f"{spec.n}d{high}"
        return chunk if low == 1 else f"{chunk}min{low}"

    chunk = f"{spec.n}{spec.shape}"
    if high != STANDARD_DIE_SIDES[spec.shape]:
        chunk += f"max{high}"
    if low != 1:
        chunk += f"min{low}"
    return chunk


def build_equation(spec: RollSpec) -> str:
    """Render a structured request as compact notation, e.g. '4d6kh3ro==1+2[fire]'."""

    chunks: list[str] = [_die_chunk(spec)]

    keep = spec.keep
    if isinstance(keep, ThresholdKeep):
        chunks.append(f"{_KEEP_PREFIX[keep.op]}{keep.threshold}")
    elif isinstance(keep, KeepHighest):
        chunks.append(f"kh{keep.count}")
    elif isinstance(keep, KeepLowest):
        chunks.append(f"kl{keep.count}")

    if spec.reroll is not None:
        prefix = "ro" if spec.reroll.mode == "once" else "rr"
        chunks.append(f"{prefix}{spec.reroll.op}{spec.reroll.threshold}")

    for modifier in spec.modifiers:
        chunks.append(f"{modifier:+d}")

    if spec.comment:
        chunks.append(f"[{spec.comment}]")

    return "".join(chunks)
