from __future__ import annotations

import pytest

from clustermon.aggregation import collation_key, decode, lower, title_case
from clustermon.errors import InvalidRowError


def test_decode_normalizes_keys_and_values():
    rows = decode(
        {
            "rows": [
                {"key": ["Music", "Queen"], "value": {"count": 3}},
                {"key": 4, "value": 12},
                {"key": ["Video", "cats"], "value": {"size": 2048}},
            ]
        },
        check_order=False,
    )
    assert [row.key for row in rows] == [("Music", "Queen"), (4,), ("Video", "cats")]
    assert rows[0].count == 3 and rows[0].amount == 3
    assert rows[1].count == 12
    assert rows[2].count is None and rows[2].size == 2048 and rows[2].amount == 2048
    assert rows[0].depth == 2


def test_decode_empty_inputs_return_empty_list():
    assert decode([]) == []
    assert decode({"rows": []}) == []
    assert decode(None) == []


@pytest.mark.parametrize(
    "row, message",
    [
        ({"value": {"count": 1}}, "missing 'key'"),
        ({"key": [], "value": {"count": 1}}, "empty key"),
        ({"key": ["a"]}, "missing 'value'"),
        ({"key": ["a"], "value": {"other": 1}}, "neither 'count' nor 'size'"),
        ({"key": ["a"], "value": {"count": "many"}}, "not numeric"),
        ({"key": ["a"], "value": "x"}, "unsupported value"),
        (["a", 1], "expected a mapping"),
    ],
)
def test_decode_rejects_malformed_rows(row, message):
    with pytest.raises(InvalidRowError, match=message) as excinfo:
        decode([{"key": ["0"], "value": 1}, row])
    assert excinfo.value.index == 1


def test_decode_rejects_payload_without_rows():
    with pytest.raises(InvalidRowError):
        decode({"total_rows": 3})
    with pytest.raises(InvalidRowError):
        decode("rows")


def test_decode_rejects_out_of_order_keys():
    rows = [
        {"key": ["B", "x"], "value": 1},
        {"key": ["A", "x"], "value": 1},
    ]
    with pytest.raises(InvalidRowError, match="out of order") as excinfo:
        decode(rows)
    assert excinfo.value.index == 1
    assert isinstance(excinfo.value, ValueError)


def test_decode_order_check_can_be_disabled():
    rows = [
        {"key": ["B", "x"], "value": 1},
        {"key": ["A", "x"], "value": 1},
    ]
    assert [row.key[0] for row in decode(rows, check_order=False)] == ["B", "A"]


def test_decode_accepts_view_collation_order():
    rows = [
        {"key": [None, "a"], "value": 1},
        {"key": [2, "a"], "value": 1},
        {"key": ["apple", "a"], "value": 1},
        {"key": ["Banana", "a"], "value": 1},
        {"key": ["banana", "b"], "value": 1},
        {"key": [["nested"], "a"], "value": 1},
    ]
    # lowercase/uppercase ties: "banana" < "Banana"
    with pytest.raises(InvalidRowError):
        decode(rows)
    rows[3], rows[4] = {"key": ["banana", "a"], "value": 1}, {"key": ["Banana", "b"], "value": 1}
    assert len(decode(rows)) == 6


def test_collation_key_type_ranks():
    values = [None, False, True, -1, 2.5, "a", "B", ["x"], {"k": 1}]
    assert sorted(reversed(values), key=collation_key) == values


def test_level_transforms_sequence_and_mapping():
    rows = [{"key": ["pictures", "CANON eos"], "value": 1}]
    by_sequence = decode(rows, [None, title_case])
    by_mapping = decode(rows, {1: lower})
    assert by_sequence[0].labels == ("pictures", "Canon Eos")
    assert by_mapping[0].labels == ("pictures", "canon eos")
    assert by_sequence[0].key == ("pictures", "CANON eos")


def test_section_transforms_override_defaults():
    rows = [
        {"key": ["Music", "the BEATLES"], "value": 1},
        {"key": ["Picture", "nikon CORPORATION"], "value": 1},
    ]
    decoded = decode(rows, [None, lower], section_transforms={"Picture": [None, title_case]})
    assert decoded[0].labels[1] == "the beatles"
    assert decoded[1].labels[1] == "Nikon Corporation"


def test_text_transforms_leave_non_strings_alone():
    assert title_case(3) == 3
    assert lower(None) is None
    assert title_case("o'neil-smith jr.") == "O'neil-smith Jr."


@pytest.mark.parametrize(
    "keys",
    [
        [["Music", "Édith Piaf", "La Vie en rose"], ["Music", "Queen", "Jazz"]],
        [["~misc", "x"], ["Music", "y"]],
        [["_drafts", "a"], ["2019", "b"], ["Album", "c"]],
        [["resume", "a"], ["Resume", "a"], ["résumé", "a"]],
        [["Music", "AC/DC"], ["Music", "Adele"]],
        [["Picture", "Ångström"], ["Picture", "Zeiss"]],
    ],
)
def test_decode_accepts_upstream_collation_of_accents_and_punctuation(keys):
    rows = decode([{"key": key, "value": 1} for key in keys])
    assert [list(row.key) for row in rows] == keys


@pytest.mark.parametrize(
    "keys",
    [
        [["Queen", "x"], ["Édith Piaf", "x"]],
        [["Music", "y"], ["~misc", "x"]],
        [["Album", "c"], ["2019", "b"]],
        [["résumé", "a"], ["resume", "a"]],
    ],
)
def test_decode_still_rejects_unsorted_accented_keys(keys):
    with pytest.raises(InvalidRowError, match="out of order") as excinfo:
        decode([{"key": key, "value": 1} for key in keys])
    assert excinfo.value.index == 1


def test_collation_key_orders_strings_by_letters_first():
    words = ["~misc", "_x", "10", "9", "Äpfel", "apple", "Apple", "b", "É", "eclair", "zebra"]
    assert sorted(reversed(words), key=collation_key) == words
