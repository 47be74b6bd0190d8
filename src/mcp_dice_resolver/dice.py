from __future__ import annotations

import secrets
from dataclasses import dataclass
from typing import Any, Protocol, Sequence

from .models import DieShape, DieStatus


class RandomSource(Protocol):
    """Anything that can draw a uniform integer or pick a face.

    `secrets.SystemRandom` and `random.Random` both qualify.
    """

    def randint(self, a: int, b: int) -> int: ...

    def choice(self, seq: Sequence[int]) -> int: ...


def default_rng() -> RandomSource:
    return secrets.SystemRandom()


@dataclass
class Die:
    shape: DieShape
    minimum: int
    maximum: int
    order: int
    faces: list[int] | None = None
    value: int | None = None
    status: DieStatus = "pending"
    rerolled: bool = False

    @classmethod
    def generate(
        cls,
        shape: DieShape,
        minimum: int,
        maximum: int,
        order: int,
        faces: list[int] | None = None,
    ) -> Die:
        return cls(shape=shape, minimum=minimum, maximum=maximum, order=order, faces=faces)

    def replacement(self, order: int) -> Die:
        """A fresh, unresolved die of the same shape."""
        return Die.generate(self.shape, self.minimum, self.maximum, order, self.faces)

    def resolve(self, rng: RandomSource) -> int:
        if self.faces:
            self.value = rng.choice(self.faces)
        else:
            self.value = rng.randint(self.minimum, self.maximum)
        return self.value

    def mark_kept(self) -> None:
        # Dropping is absorbing.
        if self.status != "dropped":
            self.status = "kept"

    def mark_dropped(self) -> None:
        self.status = "dropped"

    def mark_rerolled(self) -> None:
        self.rerolled = True

    @property
    def is_kept(self) -> bool:
        return self.status == "kept"

    def to_dict(self) -> dict[str, Any]:
        out: dict[str, Any] = {
            "die": self.shape,
            "min": self.minimum,
            "max": self.maximum,
            "value": self.value,
            "status": self.status,
            "is_dropped": self.status == "dropped",
            "is_rerolled": self.rerolled,
            "order": self.order,
        }
        if self.faces:
            out["sides"] = list(self.faces)
        return out
