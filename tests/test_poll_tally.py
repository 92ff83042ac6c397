from __future__ import annotations

from datetime import UTC, datetime, timedelta

import pytest

from services.errors import PollInputError
from services.poll_service import (
    PollOption,
    compute_poll_end,
    format_tally_lines,
    is_emoji_marker,
    parse_option_lines,
    parse_poll_answers,
    parse_poll_duration,
    render_option_lines,
    tally_votes,
)


OPTIONS = [PollOption("🅰️", "A"), PollOption("🅱️", "B"), PollOption("🇨", "C")]


def test_tally_subtracts_seed_and_sorts_descending():
    tallies = tally_votes(OPTIONS, {"🅰️": 3, "🅱️": 1, "🇨": 4})

    assert [(tally.label, tally.count) for tally in tallies] == [("C", 3), ("A", 2), ("B", 0)]


def test_tally_ties_keep_option_order_and_floor_at_zero():
    tallies = tally_votes(OPTIONS, {"🅰️": 2, "🅱️": 0, "🇨": 2})

    assert [(tally.label, tally.count) for tally in tallies] == [("A", 1), ("C", 1), ("B", 0)]


def test_format_tally_lines():
    tallies = tally_votes(OPTIONS[:2], {"🅰️": 5, "🅱️": 2})

    assert format_tally_lines(tallies) == ["🅰️ A - 4", "🅱️ B - 1"]


def test_parse_poll_answers_skips_empty_slots():
    options = parse_poll_answers(["🍕 Pizza", "🍔 Burger und Pommes", None, "  "])

    assert options == [PollOption("🍕", "Pizza"), PollOption("🍔", "Burger und Pommes")]


@pytest.mark.parametrize(
    ("answers", "key", "params"),
    [
        (["🍕 Pizza"], "poll_err_answer_count", {"min": 2, "max": 15}),
        (["🍕 Pizza", "Burger"], "poll_err_format", {"index": 2}),
        (["🍕", "🍔 Burger"], "poll_err_format", {"index": 1}),
        (["🍕 Pizza", None, "🍕 Calzone"], "poll_err_duplicate", {"index": 3}),
    ],
)
def test_parse_poll_answers_errors(answers, key, params):
    with pytest.raises(PollInputError) as exc:
        parse_poll_answers(answers)

    assert exc.value.key == key
    assert exc.value.params == params


def test_parse_poll_answers_accepts_up_to_one_full_field():
    fitting = parse_poll_answers(["🍕 " + "p" * 510, "🍔 " + "b" * 509])

    assert len(render_option_lines(fitting)) == 1024
    with pytest.raises(PollInputError) as exc:
        parse_poll_answers(["🍕 " + "p" * 511, "🍔 " + "b" * 509])
    assert exc.value.key == "poll_err_too_long"


def test_custom_and_keycap_markers_are_emoji():
    assert is_emoji_marker("<:yippie:123456789012345678>")
    assert is_emoji_marker("1️⃣")
    assert not is_emoji_marker("A")


@pytest.mark.parametrize(
    ("text", "expected"),
    [("2d", timedelta(days=2)), ("3h", timedelta(hours=3)), ("45m", timedelta(minutes=45)), (" 1H ", timedelta(hours=1))],
)
def test_parse_poll_duration(text, expected):
    assert parse_poll_duration(text) == expected


@pytest.mark.parametrize("text", ["", "0h", "5", "h5", "1w", "1h30m"])
def test_parse_poll_duration_rejects(text):
    with pytest.raises(PollInputError):
        parse_poll_duration(text)


def test_compute_poll_end_drops_seconds():
    now = datetime(2026, 12, 1, 10, 0, 45, 123, tzinfo=UTC)

    assert compute_poll_end(now, timedelta(hours=1)) == datetime(2026, 12, 1, 11, 0, tzinfo=UTC)


def test_parse_option_lines():
    assert parse_option_lines("🍕 Pizza\n\n🍔 Burger") == [PollOption("🍕", "Pizza"), PollOption("🍔", "Burger")]
