"""Known partition keys."""

from __future__ import annotations

from enum import StrEnum


class Partition(StrEnum):
    """Election types the estimates API publishes.

    Partitions are plain strings everywhere in pyturnout; these members
    are the values observed upstream.
    """

    MIDTERM_2026 = "midterm_2026"
    PRESIDENTIAL = "presidential"
    MIDTERM = "midterm"
