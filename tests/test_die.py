import random

from mcp_dice_resolver.dice import Die


def test_generate_is_pending_without_value():
    die = Die.generate("d6", 1, 6, order=0)
    assert die.status == "pending"
    assert die.value is None
    assert die.rerolled is False


def test_resolve_draws_from_range(scripted):
    die = Die.generate("d20", 1, 20, order=0)
    assert die.resolve(scripted([17])) == 17
    assert die.value == 17
    assert die.status == "pending"


def test_resolve_picks_from_faces(scripted):
    die = Die.generate("custom", 0, 3, order=0, faces=[0, 1, 1, 3])
    assert die.resolve(scripted([3])) == 3


def test_resolve_with_seeded_rng_stays_in_bounds():
    rng = random.Random(7)
    for order in range(200):
        die = Die.generate("d8", 1, 8, order=order)
        assert 1 <= die.resolve(rng) <= 8


def test_dropped_is_absorbing():
    die = Die.generate("d6", 1, 6, order=0)
    die.mark_dropped()
    die.mark_kept()
    assert die.status == "dropped"
    assert not die.is_kept


def test_kept_can_be_dropped_later():
    die = Die.generate("d6", 1, 6, order=0)
    die.mark_kept()
    die.mark_kept()
    assert die.is_kept
    die.mark_dropped()
    assert die.status == "dropped"


def test_mark_rerolled_leaves_status_alone():
    die = Die.generate("d6", 1, 6, order=0)
    die.mark_kept()
    die.mark_rerolled()
    assert die.rerolled is True
    assert die.status == "kept"


def test_replacement_copies_shape_with_new_order():
    die = Die.generate("custom", 2, 5, order=3, faces=[2, 5])
    fresh = die.replacement(order=9)
    assert (fresh.shape, fresh.minimum, fresh.maximum, fresh.faces) == ("custom", 2, 5, [2, 5])
    assert fresh.order == 9
    assert fresh.status == "pending"
    assert fresh.rerolled is False


def test_to_dict(scripted):
    die = Die.generate("d6", 1, 6, order=2)
    die.resolve(scripted([4]))
    die.mark_rerolled()
    die.mark_dropped()
    assert die.to_dict() == {
        "die": "d6",
        "min": 1,
        "max": 6,
        "value": 4,
        "status": "dropped",
        "is_dropped": True,
        "is_rerolled": True,
        "order": 2,
    }
