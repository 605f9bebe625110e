"""Raw observation → classified signal.

``direction`` comes from the answers themselves. ``impact`` comes from
the *target entity's* current divergence, i.e. how surprising that
precinct already is, not from how extreme the answers are.
"""

from __future__ import annotations

import uuid

from pyturnout.models.estimate import EstimateRecord
from pyturnout.models.observation import NeighborTurnout, RawObservation, TurnoutDirection
from pyturnout.models.signal import ClassifiedSignal, SignalDirection, SignalImpact
from pyturnout.tables import DEFAULT_SIGNAL_TABLE, SignalTable


def combined_score(
    neighbor_turnout: NeighborTurnout | str,
    turnout_direction: TurnoutDirection | str,
    table: SignalTable = DEFAULT_SIGNAL_TABLE,
) -> float:
    """Weighted sum of the two ordinal answer scores.

    Raises :class:`KeyError` for an answer level the table does not score.
    """
    primary = table.primary_scores[neighbor_turnout]
    secondary = table.secondary_scores[turnout_direction]
    return primary * table.primary_weight + secondary * table.secondary_weight


def classify_direction(
    neighbor_turnout: NeighborTurnout | str,
    turnout_direction: TurnoutDirection | str,
    table: SignalTable = DEFAULT_SIGNAL_TABLE,
) -> SignalDirection:
    score = combined_score(neighbor_turnout, turnout_direction, table)
    if score > table.higher_threshold:
        return SignalDirection.HIGHER
    if score < table.lower_threshold:
        return SignalDirection.LOWER
    return SignalDirection.SAME


def classify_impact(divergence_z: float | None, table: SignalTable = DEFAULT_SIGNAL_TABLE) -> SignalImpact:
    z = abs(divergence_z) if divergence_z is not None else 0.0
    if z >= table.large_impact_z:
        return SignalImpact.LARGE
    if z >= table.medium_impact_z:
        return SignalImpact.MEDIUM
    return SignalImpact.SMALL


def estimate_shift(
    neighbor_turnout: NeighborTurnout | str,
    turnout_direction: TurnoutDirection | str,
    table: SignalTable = DEFAULT_SIGNAL_TABLE,
) -> float:
    """Illustrative shift in turnout units (0.01 == one percentage point)."""
    primary = table.primary_shift.get(neighbor_turnout, 0.0)
    secondary = table.secondary_shift.get(turnout_direction, 0.0)
    return (primary * table.primary_weight + secondary * table.secondary_weight) * table.shift_scale


def signal_label(direction: SignalDirection, table: SignalTable = DEFAULT_SIGNAL_TABLE) -> str:
    if direction == SignalDirection.HIGHER:
        return table.higher_label
    if direction == SignalDirection.LOWER:
        return table.lower_label
    return table.same_label


def format_shift(shift: float) -> str:
    """Render a shift as signed percentage points, e.g. ``"+1.2pp"``."""
    sign = "+" if shift >= 0 else ""
    return f"{sign}{shift * 100:.1f}pp"


def is_high_divergence(record: EstimateRecord, table: SignalTable = DEFAULT_SIGNAL_TABLE) -> bool:
    """Visible entity whose divergence reaches the high-divergence cut."""
    return record.visible and abs(record.divergence_z or 0.0) >= table.high_divergence_z


def classify_observation(
    observation: RawObservation,
    current: EstimateRecord | None = None,
    *,
    label: str | None = None,
    impact: SignalImpact | None = None,
    table: SignalTable = DEFAULT_SIGNAL_TABLE,
) -> ClassifiedSignal:
    """Classify *observation* against the entity's *current* record.

    Parameters
    ----------
    current
        Latest known record of the target entity; its ``divergence_z``
        sets the impact. ``None`` means no context (impact ``small``).
    label
        Human-readable entity name; defaults to the table's unknown label.
    impact
        Explicit impact, bypassing the divergence lookup (used for
        history, where no past divergence is available).
    """
    direction = classify_direction(observation.neighbor_turnout, observation.turnout_direction, table)
    if impact is None:
        impact = classify_impact(current.divergence_z if current is not None else None, table)
    return ClassifiedSignal(
        id=observation.id or uuid.uuid4().hex,
        timestamp=observation.submitted_at,
        entity_key=observation.entity_key,
        label=label or table.unknown_entity_label,
        direction=direction,
        impact=impact,
        estimated_shift=estimate_shift(observation.neighbor_turnout, observation.turnout_direction, table),
    )
