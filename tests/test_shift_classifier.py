from datetime import time
from types import SimpleNamespace

from payroll_api.models.attendance import TYPE_NORMAL, TYPE_OVERTIME
from payroll_api.services.shift_classifier import classify, in_shift_window

NIGHT = SimpleNamespace(start_time=time(22, 0), end_time=time(6, 0))
DAY = SimpleNamespace(start_time=time(9, 0), end_time=time(17, 0))


def test_no_shift_is_normal():
    assert classify(time(3, 0), None) == TYPE_NORMAL


def test_overnight_shift_wraps_midnight():
    assert classify(time(23, 30), NIGHT) == TYPE_NORMAL
    assert classify(time(5, 59), NIGHT) == TYPE_NORMAL
    assert classify(time(12, 0), NIGHT) == TYPE_OVERTIME


def test_regular_shift_bounds_are_inclusive():
    assert classify(time(9, 0), DAY) == TYPE_NORMAL
    assert classify(time(17, 0), DAY) == TYPE_NORMAL
    assert classify(time(8, 59), DAY) == TYPE_OVERTIME
    assert classify(time(20, 0), DAY) == TYPE_OVERTIME


def test_window_edges_overnight():
    assert in_shift_window(time(22, 0), time(22, 0), time(6, 0))
    assert in_shift_window(time(6, 0), time(22, 0), time(6, 0))
    assert not in_shift_window(time(6, 1), time(22, 0), time(6, 0))
