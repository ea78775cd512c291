import random

from dictation.processing.merge import merge_partials


def test_orders_by_index_and_drops_empty():
    assert merge_partials({2: "b", 0: "a", 1: ""}) == "a b"


def test_empty_map():
    assert merge_partials({}) == ""
    assert merge_partials(None) == ""


def test_numeric_not_lexicographic_order():
    partials = {i: f"w{i}" for i in range(12)}
    assert merge_partials(partials) == " ".join(f"w{i}" for i in range(12))


def test_gaps_are_skipped():
    assert merge_partials({0: "one", 3: "four", 7: "eight"}) == "one four eight"


def test_trims_fragments_and_ignores_none():
    assert merge_partials({0: "  hello ", 1: None, 2: "\tworld\n", 3: "   "}) == "hello world"


def test_string_keys_are_coerced_and_non_numeric_discarded():
    assert merge_partials({"10": "c", "2": "b", "x": "junk", "1.5": "junk", "0": "a"}) == "a b c"


def test_insertion_order_does_not_matter():
    items = [(i, f"t{i}") for i in range(20)]
    expected = merge_partials(dict(items))
    rng = random.Random(7)
    for _ in range(10):
        rng.shuffle(items)
        assert merge_partials(dict(items)) == expected


def test_idempotent():
    partials = {1: "b", 0: "a"}
    assert merge_partials(partials) == merge_partials(partials) == "a b"
    assert partials == {1: "b", 0: "a"}


def test_integral_float_keys_are_kept():
    assert merge_partials({2.0: "c", 0: "a", 1.0: "b", 2.5: "junk"}) == "a b c"
