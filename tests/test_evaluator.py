"""Unit tests for threshold classification."""

from __future__ import annotations

from datetime import datetime, timezone

import pytest

from coldchain.domain.evaluator import ReadingStatus, Status, classify, evaluate_reading
from coldchain.domain.models import Reading


def test_cold_chain_band_examples() -> None:
    assert classify(1.9, 2, 8) is Status.BELOW
    assert classify(8, 2, 8) is Status.NORMAL
    assert classify(8.1, 2, 8) is Status.ABOVE


@pytest.mark.parametrize(
    ("value", "minimum", "maximum", "expected"),
    [
        (2.0, 2.0, 8.0, Status.NORMAL),      # on the lower bound
        (8.0, 2.0, 8.0, Status.NORMAL),      # on the upper bound
        (5.0, 5.0, 5.0, Status.NORMAL),      # degenerate band
        (4.999, 5.0, 5.0, Status.BELOW),
        (5.001, 5.0, 5.0, Status.ABOVE),
        (-40.0, 2.0, 8.0, Status.BELOW),
        (75.0, None, 75.0, Status.NORMAL),   # max-only metric
        (75.5, None, 75.0, Status.ABOVE),
        (-1.0, None, 75.0, Status.NORMAL),
        (1.0, 2.0, None, Status.BELOW),      # min-only
        (1e9, 2.0, None, Status.NORMAL),
        (123.0, None, None, Status.NORMAL),  # no bounds at all
    ],
)
def test_boundary_matrix(value, minimum, maximum, expected) -> None:
    assert classify(value, minimum, maximum) is expected


def test_status_labels() -> None:
    assert Status.BELOW.label == "Too Low"
    assert Status.ABOVE.label == "Too High"
    assert Status.NORMAL.label == "Normal"


def test_evaluate_reading_per_metric(default_thresholds) -> None:
    reading = Reading(
        temperature=9.0,
        humidity=80.0,
        gas_level=120.0,
        observed_at=datetime(2024, 1, 1, tzinfo=timezone.utc),
    )

    status = evaluate_reading(reading, default_thresholds)

    assert status.temperature is Status.ABOVE
    assert status.humidity is Status.ABOVE
    assert status.gas_level is Status.NORMAL
    assert status.abnormal


def test_evaluate_reading_skips_missing_metrics(default_thresholds) -> None:
    reading = Reading(temperature=1.0, humidity=None, gas_level=None)

    status = evaluate_reading(reading, default_thresholds)

    assert status.temperature is Status.BELOW
    assert status.humidity is None
    assert status.gas_level is None


def test_evaluate_without_reading_is_empty(default_thresholds) -> None:
    status = evaluate_reading(None, default_thresholds)

    assert status == ReadingStatus()
    assert not status.abnormal
