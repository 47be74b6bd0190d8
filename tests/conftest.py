import pytest


class ScriptedRandom:
    """Random source that replays a fixed sequence of draws."""

    def __init__(self, values):
        self._values = list(values)

    def randint(self, a, b):
        value = self._values.pop(0)
        assert a <= value <= b, f"scripted draw {value} outside [{a}, {b}]"
        return value

    def choice(self, seq):
        value = self._values.pop(0)
        assert value in seq, f"scripted draw {value} not among faces {list(seq)}"
        return value

    @property
    def remaining(self):
        return len(self._values)


@pytest.fixture
def scripted():
    return ScriptedRandom
