from dataclasses import replace
from datetime import timedelta

import pytest

from counterpos.errors import InvalidConfiguration
from counterpos.kitchen_timing import (
    FORCE_CLEAR_SECONDS,
    GRACE_SECONDS,
    clamp_prep_minutes,
    compute_due_at,
    estimate_minutes,
    evaluate_status,
    freeze_timing,
)
from counterpos.models import DraftLineItem


def _line(category_id):
    return DraftLineItem(product_id="p", name="Thing", base_price="1.00", category_id=category_id)


# --- stima --------------------------------------------------------------------

def test_first_item_category_drives_estimate(kitchen_settings):
    # fries (cat 2, 8 min) before burger (cat 1, 10 min): only the first line counts
    assert estimate_minutes([_line("2"), _line("1")], kitchen_settings) == 8


def test_max_policy_looks_at_every_line(kitchen_settings):
    settings = replace(kitchen_settings, resolution="max")
    assert estimate_minutes([_line("2"), _line("1")], settings) == 10


def test_missing_or_zero_override_uses_default(kitchen_settings):
    assert estimate_minutes([_line("99")], kitchen_settings) == 7
    assert estimate_minutes([_line("4")], kitchen_settings) == 7
    assert estimate_minutes([_line(None)], kitchen_settings) == 7


def test_no_items_uses_default(kitchen_settings):
    assert estimate_minutes([], kitchen_settings) == 7


def test_accepts_plain_dict_items(kitchen_settings):
    assert estimate_minutes([{"categoryId": 1}], kitchen_settings) == 10


def test_non_positive_default_is_a_configuration_error(kitchen_settings):
    with pytest.raises(InvalidConfiguration):
        estimate_minutes([_line("1")], replace(kitchen_settings, default_minutes=0))
    with pytest.raises(InvalidConfiguration):
        estimate_minutes([], replace(kitchen_settings, resolution="median"))


@pytest.mark.parametrize("raw,expected", [(5, 5), (0, 1), (-3, 1), (75, 60), (5.6, 6), ("12", 12), ("abc", 1)])
def test_clamp_prep_minutes(raw, expected):
    assert clamp_prep_minutes(raw) == expected


def test_compute_due_at(t0):
    assert compute_due_at(t0, 10) == t0 + timedelta(minutes=10)


def test_global_prep_minutes_drive_due_time(t0, kitchen_settings):
    settings = replace(kitchen_settings, prep_minutes=5)
    timing = freeze_timing([_line("99")], t0, settings)
    assert timing.estimated_prep_minutes == 7
    assert timing.due_minutes == 5
    assert timing.due_at == t0 + timedelta(minutes=5)


def test_category_estimate_drives_due_time_without_global_knob(t0, kitchen_settings):
    timing = freeze_timing([_line("1")], t0, kitchen_settings)
    assert timing.due_at == t0 + timedelta(minutes=10)


# --- stato --------------------------------------------------------------------

def test_grace_period_before_auto_complete(t0):
    due = t0 + timedelta(minutes=10)

    late = evaluate_status(t0, due, t0 + timedelta(minutes=10, seconds=31))
    assert late.should_auto_complete is True

    within_grace = evaluate_status(t0, due, t0 + timedelta(minutes=10, seconds=29))
    assert within_grace.should_auto_complete is False
    assert within_grace.is_overdue is True
    assert within_grace.seconds_remaining == 0

    almost = evaluate_status(t0, due, t0 + timedelta(minutes=9, seconds=59))
    assert almost.is_overdue is False
    assert almost.seconds_remaining == 1
    assert almost.should_auto_complete is False


def test_exactly_at_grace_boundary(t0):
    due = t0 + timedelta(minutes=3)
    status = evaluate_status(t0, due, due + timedelta(seconds=GRACE_SECONDS))
    assert status.should_auto_complete is True


def test_force_clear_even_with_far_due_time(t0):
    due = t0 + timedelta(hours=5)
    assert evaluate_status(t0, due, t0 + timedelta(seconds=FORCE_CLEAR_SECONDS - 1)).should_auto_complete is False
    assert evaluate_status(t0, due, t0 + timedelta(seconds=FORCE_CLEAR_SECONDS)).should_auto_complete is True


def test_auto_complete_is_monotonic(t0):
    due = t0 + timedelta(minutes=7)
    flags = [evaluate_status(t0, due, t0 + timedelta(seconds=s)).should_auto_complete for s in range(0, 900, 7)]
    first_true = flags.index(True)
    assert all(flags[first_true:])


def test_completed_order_is_terminal(t0):
    status = evaluate_status(t0, t0 + timedelta(minutes=5), t0 + timedelta(hours=3), completed_at=t0)
    assert status.is_complete is True
    assert status.should_auto_complete is False


def test_missing_due_time_only_force_clears(t0):
    status = evaluate_status(t0, None, t0 + timedelta(minutes=30))
    assert status.is_overdue is False
    assert status.seconds_remaining == 0
    assert status.should_auto_complete is False
    assert evaluate_status(t0, None, t0 + timedelta(hours=2)).should_auto_complete is True


def test_naive_timestamps_are_treated_as_utc(t0):
    naive = t0.replace(tzinfo=None)
    status = evaluate_status(naive, naive + timedelta(minutes=5), t0 + timedelta(minutes=4))
    assert status.seconds_remaining == 60


def test_status_is_deterministic(t0):
    due = t0 + timedelta(minutes=5)
    now = t0 + timedelta(minutes=2, seconds=10)
    assert evaluate_status(t0, due, now) == evaluate_status(t0, due, now)
