"""Named threshold tables for the display and signal classifiers.

Every constant the classifiers use lives here, so thresholds are data
rather than literals scattered through the code. Both tables are frozen;
build a modified copy with :func:`dataclasses.replace` to experiment.
"""

from __future__ import annotations

from dataclasses import dataclass, field

from pyturnout.models.observation import NeighborTurnout, TurnoutDirection

# ------------------------------------------------------------------
# Display (colour / opacity / emphasis)
# ------------------------------------------------------------------


@dataclass(frozen=True)
class DisplayTable:
    """Bands and caps used by :mod:`pyturnout.classify.display`.

    ``color_bands`` are ``(normalized_floor, color)`` pairs sorted from
    the highest floor down; a mean whose normalized value is below every
    floor gets ``floor_color``. Normalization maps ``mean_low..mean_high``
    onto ``0..1`` and clamps.
    """

    mean_low: float = 0.25
    mean_high: float = 0.80
    color_bands: tuple[tuple[float, str], ...] = (
        (0.85, "#00E5FF"),
        (0.70, "#22D3EE"),
        (0.55, "#06B6D4"),
        (0.40, "#0891B2"),
        (0.25, "#0E7490"),
        (0.10, "#155E75"),
    )
    floor_color: str = "#164E63"
    flash_color: str = "#00FFFF"

    base_opacity: float = 0.55
    visible_opacity: float = 0.60
    opacity_per_count: float = 0.025
    max_opacity: float = 0.90
    highlight_opacity: float = 0.95

    # (displayed_mean_floor, glow) pairs, highest floor first.
    emphasis_steps: tuple[tuple[float, float], ...] = (
        (0.70, 0.50),
        (0.60, 0.25),
    )
    visible_emphasis_boost: float = 0.10
    max_emphasis: float = 1.0

    selected_weight: float = 2.5
    highlighted_weight: float = 2.0
    glow_weight: float = 1.0
    base_weight: float = 0.5
    active_border_color: str = "#00FFFF"
    base_border_color: str = "#0F172A"
    glow_border_template: str = "rgba(0, 255, 255, {alpha})"

    turnout_labels: tuple[tuple[float, str], ...] = (
        (0.70, "High turnout expected"),
        (0.50, "Moderate turnout"),
    )
    floor_turnout_label: str = "Lower turnout expected"
    baseline_label: str = "Historical baseline"
    calibrated_label_template: str = "Calibrated ({count} signals)"
    highlight_css_class: str = "precinct-updating"

    def __post_init__(self) -> None:
        if self.mean_high <= self.mean_low:
            raise ValueError("mean_high must be greater than mean_low")
        if len(self.color_bands) + 1 < 6:
            raise ValueError("at least six colour bands are required")
        for steps in (self.color_bands, self.emphasis_steps, self.turnout_labels):
            floors = [floor for floor, _ in steps]
            if floors != sorted(floors, reverse=True):
                raise ValueError("band floors must be sorted from highest to lowest")
        if not self.base_opacity <= self.visible_opacity <= self.max_opacity:
            raise ValueError("opacities must satisfy base <= visible <= max")


# ------------------------------------------------------------------
# Signals (direction / impact / shift)
# ------------------------------------------------------------------


def _primary_scores() -> dict[str, float]:
    return {
        NeighborTurnout.ALMOST_ALL: 2.0,
        NeighborTurnout.MOST: 1.0,
        NeighborTurnout.ABOUT_HALF: 0.0,
        NeighborTurnout.PROBABLY_NOT: -1.0,
        NeighborTurnout.DEFINITELY_NOT: -2.0,
    }


def _secondary_scores() -> dict[str, float]:
    return {
        TurnoutDirection.MUCH_HIGHER: 2.0,
        TurnoutDirection.LITTLE_HIGHER: 1.0,
        TurnoutDirection.ABOUT_SAME: 0.0,
        TurnoutDirection.LITTLE_LOWER: -1.0,
        TurnoutDirection.MUCH_LOWER: -2.0,
    }


def _primary_shift() -> dict[str, float]:
    return {
        NeighborTurnout.ALMOST_ALL: 0.15,
        NeighborTurnout.MOST: 0.08,
        NeighborTurnout.ABOUT_HALF: 0.0,
        NeighborTurnout.PROBABLY_NOT: -0.08,
        NeighborTurnout.DEFINITELY_NOT: -0.15,
    }


def _secondary_shift() -> dict[str, float]:
    return {
        TurnoutDirection.MUCH_HIGHER: 0.10,
        TurnoutDirection.LITTLE_HIGHER: 0.05,
        TurnoutDirection.ABOUT_SAME: 0.0,
        TurnoutDirection.LITTLE_LOWER: -0.05,
        TurnoutDirection.MUCH_LOWER: -0.10,
    }


@dataclass(frozen=True)
class SignalTable:
    """Scores, weights and thresholds used by :mod:`pyturnout.classify.signals`."""

    primary_scores: dict[str, float] = field(default_factory=_primary_scores)
    secondary_scores: dict[str, float] = field(default_factory=_secondary_scores)
    primary_weight: float = 1.0
    secondary_weight: float = 0.5
    higher_threshold: float = 0.5
    lower_threshold: float = -0.5

    large_impact_z: float = 1.5
    medium_impact_z: float = 0.75

    primary_shift: dict[str, float] = field(default_factory=_primary_shift)
    secondary_shift: dict[str, float] = field(default_factory=_secondary_shift)
    shift_scale: float = 0.1

    # Dashboard count of "high divergence" entities uses the same cut as
    # a large-impact signal.
    high_divergence_z: float = 1.5

    higher_label: str = "Above baseline"
    same_label: str = "At baseline"
    lower_label: str = "Below baseline"
    unknown_entity_label: str = "Unknown"

    def __post_init__(self) -> None:
        if self.lower_threshold > self.higher_threshold:
            raise ValueError("lower_threshold must not exceed higher_threshold")
        if self.medium_impact_z > self.large_impact_z:
            raise ValueError("medium_impact_z must not exceed large_impact_z")


DEFAULT_DISPLAY_TABLE = DisplayTable()
DEFAULT_SIGNAL_TABLE = SignalTable()
