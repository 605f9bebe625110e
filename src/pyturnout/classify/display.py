"""Estimate → presentation attributes.

Everything here is a pure function of its arguments: no clock, no I/O,
no timers. Deciding *whether* something changed (:func:`has_changed`)
is kept apart from deciding *how* to draw it (:func:`derive`), so the
highlight scheduler can be driven from the verdict while rendering stays
a function of the current snapshot alone.
"""

from __future__ import annotations

from pyturnout.models.derived import DerivedAttributes
from pyturnout.models.estimate import EstimateRecord
from pyturnout.tables import DEFAULT_DISPLAY_TABLE, DisplayTable


def has_changed(record: EstimateRecord, previous: EstimateRecord | None) -> bool:
    """Material-change verdict used to open a highlight window.

    True on first sighting, or when the effective count or the posterior
    mean differs from the previous record.
    """
    if previous is None:
        return True
    return previous.effective_count != record.effective_count or previous.posterior_mean != record.posterior_mean


def normalize_mean(mean: float, table: DisplayTable = DEFAULT_DISPLAY_TABLE) -> float:
    """Map *mean* from ``mean_low..mean_high`` onto ``0..1``, clamped."""
    span = table.mean_high - table.mean_low
    return max(0.0, min(1.0, (mean - table.mean_low) / span))


def color_for_mean(mean: float | None, table: DisplayTable = DEFAULT_DISPLAY_TABLE) -> str:
    if mean is None:
        return table.floor_color
    normalized = normalize_mean(mean, table)
    for floor, color in table.color_bands:
        if normalized >= floor:
            return color
    return table.floor_color


def color(
    record: EstimateRecord | None,
    *,
    highlighted: bool = False,
    fallback_prior: float | None = None,
    table: DisplayTable = DEFAULT_DISPLAY_TABLE,
) -> str:
    if highlighted:
        return table.flash_color
    mean = record.displayed_mean(fallback_prior) if record is not None else fallback_prior
    return color_for_mean(mean, table)


def opacity(
    record: EstimateRecord | None,
    *,
    highlighted: bool = False,
    table: DisplayTable = DEFAULT_DISPLAY_TABLE,
) -> float:
    """Fill opacity: confidence grows with the effective count once visible."""
    if highlighted:
        return table.highlight_opacity
    if record is None or not record.visible:
        return table.base_opacity
    return min(table.max_opacity, table.visible_opacity + record.effective_count * table.opacity_per_count)


def emphasis(
    record: EstimateRecord | None,
    *,
    highlighted: bool = False,
    selected: bool = False,
    fallback_prior: float | None = None,
    table: DisplayTable = DEFAULT_DISPLAY_TABLE,
) -> float:
    """Border glow intensity, a step function of the displayed mean."""
    if highlighted or selected:
        return table.max_emphasis
    mean = record.displayed_mean(fallback_prior) if record is not None else fallback_prior
    if mean is None:
        return 0.0
    boost = table.visible_emphasis_boost if record is not None and record.visible else 0.0
    for floor, glow in table.emphasis_steps:
        if mean >= floor:
            return min(table.max_emphasis, glow + boost)
    return 0.0


def turnout_label(mean: float | None, table: DisplayTable = DEFAULT_DISPLAY_TABLE) -> str:
    if mean is not None:
        for floor, label in table.turnout_labels:
            if mean >= floor:
                return label
    return table.floor_turnout_label


def calibration_label(record: EstimateRecord | None, table: DisplayTable = DEFAULT_DISPLAY_TABLE) -> str:
    if record is None or not record.visible:
        return table.baseline_label
    count = record.effective_count
    shown = int(count) if float(count).is_integer() else round(count, 1)
    return table.calibrated_label_template.format(count=shown)


def derive(
    record: EstimateRecord | None,
    previous: EstimateRecord | None = None,
    highlighted: bool = False,
    *,
    selected: bool = False,
    fallback_prior: float | None = None,
    table: DisplayTable = DEFAULT_DISPLAY_TABLE,
) -> DerivedAttributes:
    """Derive every presentation attribute for one entity.

    *record* may be ``None`` for an entity known only from geometry; it
    is then drawn from *fallback_prior* as an uncalibrated baseline.
    ``changed`` is the :func:`has_changed` verdict against *previous*
    and is ``False`` when there is no record.
    """
    glow = emphasis(record, fallback_prior=fallback_prior, table=table)
    if selected:
        border_color = table.active_border_color
        border_weight = table.selected_weight
    elif highlighted:
        border_color = table.active_border_color
        border_weight = table.highlighted_weight
    elif glow > 0:
        border_color = table.glow_border_template.format(alpha=round(glow, 2))
        border_weight = table.glow_weight
    else:
        border_color = table.base_border_color
        border_weight = table.base_weight

    mean = record.displayed_mean(fallback_prior) if record is not None else fallback_prior
    return DerivedAttributes(
        color=color(record, highlighted=highlighted, fallback_prior=fallback_prior, table=table),
        opacity=opacity(record, highlighted=highlighted, table=table),
        emphasis=emphasis(
            record,
            highlighted=highlighted,
            selected=selected,
            fallback_prior=fallback_prior,
            table=table,
        ),
        border_color=border_color,
        border_weight=border_weight,
        turnout_label=turnout_label(mean, table),
        calibration_label=calibration_label(record, table),
        css_class=table.highlight_css_class if highlighted else "",
        changed=has_changed(record, previous) if record is not None else False,
    )
