"""Derived presentation attributes for one entity."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict


class DerivedAttributes(BaseModel):
    """Visual attributes derived from a single estimate snapshot.

    Produced by :func:`pyturnout.classify.display.derive`; never stored.
    """

    model_config = ConfigDict(frozen=True)

    color: str
    opacity: float
    emphasis: float
    border_color: str
    border_weight: float
    turnout_label: str
    calibration_label: str
    css_class: str = ""
    changed: bool = False
