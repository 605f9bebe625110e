"""Precinct directory: static per-entity metadata built once at startup.

The directory is passed explicitly to the components that need names or
geometry baselines, instead of living in a module-level lookup that is
filled in as a side effect of loading the map.
"""

from __future__ import annotations

import json
import logging
from collections.abc import Iterable, Iterator, Mapping
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from pyturnout.exceptions import TurnoutConfigError
from pyturnout.ingestion.normalize import safe_float

_logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class PrecinctInfo:
    """Static properties of one precinct."""

    key: str
    neighborhood: str | None = None
    precinct: str | None = None
    district: str | None = None
    baseline_mean: float | None = None


class PrecinctDirectory(Mapping[str, PrecinctInfo]):
    """Read-only key → :class:`PrecinctInfo` mapping."""

    def __init__(self, entries: Iterable[PrecinctInfo] = ()) -> None:
        self._entries: dict[str, PrecinctInfo] = {entry.key: entry for entry in entries}

    @classmethod
    def from_features(cls, features: Iterable[Mapping[str, Any]]) -> PrecinctDirectory:
        """Build from GeoJSON features carrying ``geo_id`` properties.

        Features without a ``geo_id`` are skipped.
        """
        entries: list[PrecinctInfo] = []
        for feature in features:
            props = feature.get("properties") if isinstance(feature, Mapping) else None
            if not isinstance(props, Mapping):
                continue
            key = props.get("geo_id")
            if key is None or not str(key).strip():
                _logger.debug("Skipping feature without geo_id")
                continue
            entries.append(
                PrecinctInfo(
                    key=str(key).strip(),
                    neighborhood=_opt_str(props.get("neighborhood")),
                    precinct=_opt_str(props.get("precinct")),
                    district=_opt_str(props.get("district")),
                    baseline_mean=safe_float(props.get("mu_prior")),
                )
            )
        return cls(entries)

    @classmethod
    def from_geojson(cls, source: str | Path | Mapping[str, Any]) -> PrecinctDirectory:
        """Build from a GeoJSON ``FeatureCollection`` (path or parsed mapping)."""
        if isinstance(source, Mapping):
            data: Any = source
        else:
            try:
                data = json.loads(Path(source).read_text(encoding="utf-8"))
            except (OSError, json.JSONDecodeError) as exc:
                raise TurnoutConfigError(f"Cannot read precinct geometry from {source}: {exc}") from exc
        features = data.get("features") if isinstance(data, Mapping) else None
        if not isinstance(features, list):
            raise TurnoutConfigError("Precinct geometry is not a FeatureCollection")
        return cls.from_features(features)

    def name_for(self, key: str) -> str | None:
        info = self._entries.get(key)
        return info.neighborhood if info is not None else None

    def baseline_for(self, key: str) -> float | None:
        info = self._entries.get(key)
        return info.baseline_mean if info is not None else None

    def __getitem__(self, key: str) -> PrecinctInfo:
        return self._entries[key]

    def __iter__(self) -> Iterator[str]:
        return iter(self._entries)

    def __len__(self) -> int:
        return len(self._entries)


def _opt_str(value: Any) -> str | None:
    if value is None:
        return None
    text = str(value).strip()
    return text or None
