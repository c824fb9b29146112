from __future__ import annotations

import dataclasses
import random

import numpy as np
import pytest

from layout import L_SHIFT, N_SLOTS, KeyPress, point_of, slot_of_label
from scoring import (ABSENT, PROHIBITIVE_REACH_WEIGHT, REACH_KEY_POINTS, TABLE_SIZE, Geometry,
                     ScoringTable)


def presses(labels: str):
    return [KeyPress(slot_of_label(c)) for c in labels]


def test_table_shape(table):
    assert table.table.shape == (TABLE_SIZE,)
    assert table.table.dtype == np.uint32
    assert table.nbytes == 4 * 2 ** 20


def test_table_is_read_only(table):
    with pytest.raises(ValueError):
        table.table[0] = 1


def test_single_press_costs_finger_weight(table):
    for slot in range(N_SLOTS):
        assert table.evaluate([KeyPress(slot)]) == table.geometry.finger_weight(slot)


def test_empty_sequence(table):
    assert table.lookup([]) == 0
    assert table.evaluate([]) == 0
    assert table.pack([None]) == table.pack([ABSENT]) == table.pack([])


@pytest.mark.parametrize("labels,expected", [
    # same key (150) + same hand and finger (50) + loads 20 + 20
    ("ss", 240),
    # same finger row skip (100) + same hand and finger (50) + same hand row skip (100) + 30 + 30
    ("wx", 310),
    # explicit override (1,5) -> (1,9) + 30 + 30
    ("h;", 150),
    # opposite hands, load only
    ("al", 50),
    # three keys on one hand, different fingers: triple same hand (100) + 20 + 10 + 10
    ("sdf", 140),
])
def test_rule_costs(table, labels, expected):
    assert table.evaluate(presses(labels)) == pytest.approx(expected)


def test_weights_scale_load(table):
    s = slot_of_label("s")
    assert table.evaluate([KeyPress(s)], [2.0]) == pytest.approx(40.0)
    assert table.evaluate([KeyPress(s)], [0.0]) == 0.0


def test_chord_costs_more(table):
    l, semi = slot_of_label("l"), slot_of_label(";")
    # (20 + 10) * 1.3
    assert table.evaluate([KeyPress(l, L_SHIFT)]) == pytest.approx(39.0)
    # base 0; shift keys "dd": (150 + 50) * 1.3; loads (20 + 10) * 1.3 + (30 + 10) * 1.3
    assert table.evaluate([KeyPress(l, L_SHIFT), KeyPress(semi, L_SHIFT)]) == pytest.approx(351.0)


def test_too_many_presses(table):
    with pytest.raises(ValueError):
        table.evaluate([KeyPress(0)] * 5)
    with pytest.raises(ValueError):
        table.pack([0] * 5)


def test_batch_matches_scalar(table):
    rng = random.Random(0)
    sequences = []
    for _ in range(200):
        length = rng.randint(1, 4)
        seq = []
        for _ in range(length):
            shifter = rng.choice([None, None, rng.randrange(N_SLOTS)])
            seq.append(KeyPress(rng.randrange(N_SLOTS), shifter))
        sequences.append(seq)

    slots = np.full((len(sequences), 4), ABSENT, dtype=np.int64)
    shifters = np.full((len(sequences), 4), ABSENT, dtype=np.int64)
    loads = np.zeros(len(sequences))
    for row, seq in enumerate(sequences):
        for col, press in enumerate(seq):
            slots[row, col] = press.slot
            if press.shifter is not None:
                shifters[row, col] = press.shifter
            loads[row] += table.press_load(press)

    batch = table.evaluate_batch(slots, shifters, loads)
    expected = [table.evaluate(seq) for seq in sequences]
    assert batch == pytest.approx(expected)


def test_geometry_is_injected():
    geometry = Geometry(same_key_penalty=0)
    table = ScoringTable(geometry)
    assert table.evaluate(presses("ss")) == pytest.approx(90.0)


def test_geometry_is_frozen():
    with pytest.raises(dataclasses.FrozenInstanceError):
        Geometry().shift_multiplier = 2.0


def test_reach_key_weight_overrides_t_and_y():
    default = Geometry()
    prohibitive = Geometry(reach_key_weight=PROHIBITIVE_REACH_WEIGHT)

    for label in "ty":
        slot = slot_of_label(label)
        assert point_of(slot) in REACH_KEY_POINTS
        assert default.finger_weight(slot) == 60
        assert prohibitive.finger_weight(slot) == PROHIBITIVE_REACH_WEIGHT

    others = [s for s in range(N_SLOTS) if point_of(s) not in REACH_KEY_POINTS]
    assert len(others) == N_SLOTS - 2
    for slot in others:
        assert prohibitive.finger_weight(slot) == default.finger_weight(slot)
