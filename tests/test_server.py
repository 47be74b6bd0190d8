import pytest

from mcp_dice_resolver import roll as roll_module
from mcp_dice_resolver.errors import DiceError
from mcp_dice_resolver.models import KeepHighest, KeepLowest, RerollRule, ThresholdKeep
from mcp_dice_resolver.server import build_spec, roll_dice


@pytest.fixture
def fixed_draws(monkeypatch, scripted):
    def install(values):
        rng = scripted(values)
        monkeypatch.setattr(roll_module, "default_rng", lambda: rng)
        return rng

    return install


def test_roll_dice_envelope(fixed_draws):
    fixed_draws([1, 4, 2, 6])
    out = roll_dice(n=4, die="d6", keep_highest=3, modifiers=[2], comment="stats")

    assert set(out) == {"roll", "execution_time"}
    roll = out["roll"]
    assert roll["equation"] == "4d6kh3+2[stats]"
    assert roll["raw_value"] == 12
    assert roll["value"] == 14
    assert roll["comment"] == "stats"
    assert [d["value"] for d in roll["dice"]] == [1, 4, 2, 6]
    assert [d["is_dropped"] for d in roll["dice"]] == [True, False, False, False]


def test_roll_dice_reroll_once(fixed_draws):
    fixed_draws([1, 15, 9])
    out = roll_dice(n=2, die="d20", reroll_op="==", reroll_threshold=1)
    assert out["roll"]["equation"] == "2d20ro==1"
    assert out["roll"]["raw_value"] == 24


def test_advantage_keeps_the_higher_d20(fixed_draws):
    fixed_draws([7, 18])
    out = roll_dice(advantage=True, modifiers=[3])
    assert out["roll"]["equation"] == "2d20kh1+3"
    assert out["roll"]["value"] == 21


def test_disadvantage_keeps_the_lower_d20(fixed_draws):
    fixed_draws([7, 18])
    out = roll_dice(disadvantage=True)
    assert out["roll"]["value"] == 7


@pytest.mark.parametrize(
    ("fields", "keep"),
    [
        ({"gt": 3, "keep_highest": 2}, ThresholdKeep(">", 3)),
        ({"lte": 2, "keep_lowest": 1}, ThresholdKeep("<=", 2)),
        ({"keep_highest": 2, "keep_lowest": 1}, KeepHighest(2)),
        ({"keep_lowest": 1}, KeepLowest(1)),
        ({}, None),
    ],
)
def test_build_spec_keeps_one_rule(fields, keep):
    assert build_spec(n=4, die="d6", **fields).keep == keep


def test_build_spec_sides_and_faces():
    assert build_spec(sides=12).shape == "d12"
    odd = build_spec(n=2, sides=7)
    assert (odd.shape, odd.bounds) == ("custom", (1, 7))
    sided = build_spec(faces=[1, 1, 2])
    assert (sided.shape, sided.faces) == ("custom", [1, 1, 2])


def test_build_spec_reroll_modes():
    assert build_spec(reroll_op="<", reroll_threshold=3, reroll_mode="forever").reroll == RerollRule("<", 3, "forever")
    assert build_spec(reroll_op="<", reroll_threshold=3).reroll == RerollRule("<", 3, "once")
    assert build_spec(reroll_op="<").reroll is None


def test_build_spec_drops_zero_modifiers():
    assert build_spec(modifiers=[0, 2, 0, -1]).modifiers == [2, -1]


@pytest.mark.parametrize(
    ("fields", "prefix"),
    [
        ({"die": "d7"}, "[INVALID_DIE]"),
        ({"sides": 0}, "[INVALID_DIE]"),
        ({"n": 1_000_000}, "[TOO_MANY_DICE]"),
        ({"advantage": True, "disadvantage": True}, "[INVALID_ADVANTAGE_USAGE]"),
        ({"n": 2, "advantage": True}, "[INVALID_ADVANTAGE_USAGE]"),
        ({"die": "d6", "disadvantage": True}, "[INVALID_ADVANTAGE_USAGE]"),
        ({"die": "d6", "min": 9}, "[INVALID_RANGE]"),
        ({"reroll_op": "==", "reroll_threshold": 1, "reroll_mode": "always"}, "[INVALID_REROLL]"),
    ],
)
def test_build_spec_rejections(fields, prefix):
    with pytest.raises(DiceError) as exc:
        build_spec(**fields)
    assert str(exc.value).startswith(prefix)


def test_roll_dice_surfaces_value_error():
    with pytest.raises(ValueError) as exc:
        roll_dice(die="d6", reroll_op="<=", reroll_threshold=6, reroll_mode="forever")
    assert str(exc.value).startswith("[REROLL_NEVER_TERMINATES]")
    assert not isinstance(exc.value, DiceError)
