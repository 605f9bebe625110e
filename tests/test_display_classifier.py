from __future__ import annotations

import dataclasses
from typing import Any

import pytest

from pyturnout.classify import display
from pyturnout.classify.display import derive, has_changed
from pyturnout.models.estimate import EstimateRecord
from pyturnout.tables import DEFAULT_DISPLAY_TABLE, DisplayTable


def _record(**fields: Any) -> EstimateRecord:
    return EstimateRecord(key="P1", partition="A", **fields)


def test_baseline_record_attributes() -> None:
    attrs = derive(_record(prior_mean=0.6, effective_count=0, visible=False))

    assert attrs.color == "#06B6D4"
    assert attrs.opacity == 0.55
    assert attrs.emphasis == 0.25
    assert attrs.border_color == "rgba(0, 255, 255, 0.25)"
    assert attrs.border_weight == 1.0
    assert attrs.turnout_label == "Moderate turnout"
    assert attrs.calibration_label == "Historical baseline"
    assert attrs.css_class == ""
    assert attrs.changed is True


def test_visible_record_uses_posterior() -> None:
    attrs = derive(_record(prior_mean=0.6, posterior_mean=0.7, effective_count=6, visible=True))

    assert attrs.color == "#22D3EE"
    assert attrs.opacity == pytest.approx(0.75)
    assert attrs.emphasis == pytest.approx(0.6)
    assert attrs.turnout_label == "High turnout expected"
    assert attrs.calibration_label == "Calibrated (6 signals)"


def test_hidden_record_ignores_posterior() -> None:
    attrs = derive(_record(prior_mean=0.3, posterior_mean=0.79, effective_count=2, visible=False))

    assert attrs.turnout_label == "Lower turnout expected"
    assert attrs.opacity == 0.55


def test_highlight_overrides_color_opacity_and_border() -> None:
    attrs = derive(_record(prior_mean=0.3), highlighted=True)

    assert attrs.color == DEFAULT_DISPLAY_TABLE.flash_color
    assert attrs.opacity == 0.95
    assert attrs.emphasis == 1.0
    assert attrs.border_color == "#00FFFF"
    assert attrs.border_weight == 2.0
    assert attrs.css_class == "precinct-updating"


def test_selection_takes_the_heaviest_border() -> None:
    attrs = derive(_record(prior_mean=0.3), highlighted=True, selected=True)

    assert attrs.border_weight == 2.5
    assert attrs.emphasis == 1.0


def test_low_mean_has_base_border() -> None:
    attrs = derive(_record(prior_mean=0.4))

    assert attrs.emphasis == 0.0
    assert attrs.border_color == "#0F172A"
    assert attrs.border_weight == 0.5


@pytest.mark.parametrize(
    ("mean", "expected"),
    [
        (None, "#164E63"),
        (0.10, "#164E63"),
        (0.25, "#164E63"),
        (0.32, "#155E75"),
        (0.40, "#0E7490"),
        (0.50, "#0891B2"),
        (0.58, "#06B6D4"),
        (0.68, "#22D3EE"),
        (0.80, "#00E5FF"),
        (0.95, "#00E5FF"),
    ],
)
def test_color_bands(mean: float | None, expected: str) -> None:
    assert display.color_for_mean(mean) == expected


def test_color_is_monotonic_in_mean() -> None:
    order = [DEFAULT_DISPLAY_TABLE.floor_color] + [color for _, color in reversed(DEFAULT_DISPLAY_TABLE.color_bands)]
    ranks = [order.index(display.color_for_mean(m / 100)) for m in range(0, 101)]

    assert ranks == sorted(ranks)


def test_opacity_monotonic_and_capped_when_visible() -> None:
    values = [display.opacity(_record(effective_count=n, visible=True)) for n in range(0, 40)]

    assert values == sorted(values)
    assert max(values) == DEFAULT_DISPLAY_TABLE.max_opacity
    assert min(values) > DEFAULT_DISPLAY_TABLE.base_opacity


def test_fallback_prior_used_when_record_has_none() -> None:
    attrs = derive(_record(effective_count=0), fallback_prior=0.72)
    geometry_only = derive(None, fallback_prior=0.72)

    assert attrs.turnout_label == "High turnout expected"
    assert geometry_only.turnout_label == "High turnout expected"
    assert geometry_only.changed is False
    assert geometry_only.opacity == 0.55


def test_derive_is_pure() -> None:
    record = _record(prior_mean=0.6, posterior_mean=0.7, effective_count=6, visible=True)
    previous = _record(prior_mean=0.6)

    assert derive(record, previous, True) == derive(record, previous, True)
    assert derive(record, previous, False) == derive(record, previous, False)


def test_has_changed() -> None:
    base = _record(prior_mean=0.6, posterior_mean=0.65, effective_count=3)

    assert has_changed(base, None)
    assert not has_changed(base, base)
    assert not has_changed(base.model_copy(update={"prior_mean": 0.5, "divergence_z": 1.0}), base)
    assert has_changed(base.model_copy(update={"effective_count": 4}), base)
    assert has_changed(base.model_copy(update={"posterior_mean": 0.66}), base)


def test_calibration_label_rounds_fractional_counts() -> None:
    assert display.calibration_label(_record(effective_count=4.25, visible=True)) == "Calibrated (4.2 signals)"


def test_custom_table_is_honoured() -> None:
    table = dataclasses.replace(DEFAULT_DISPLAY_TABLE, max_opacity=0.7)

    assert display.opacity(_record(effective_count=100, visible=True), table=table) == 0.7


def test_table_rejects_unsorted_bands() -> None:
    with pytest.raises(ValueError):
        DisplayTable(emphasis_steps=((0.6, 0.25), (0.7, 0.5)))
