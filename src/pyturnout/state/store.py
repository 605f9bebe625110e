"""In-memory entity store.

This is the only component allowed to hold estimate records. It is
scoped to one partition at a time and applies merges in call order.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from types import MappingProxyType

from pyturnout.models.estimate import EstimateRecord

_logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class MergeOutcome:
    """Result of :meth:`EntityStore.merge`.

    ``accepted`` is ``False`` when the record belongs to a partition other
    than the store's active one; the store is unchanged in that case.
    """

    accepted: bool
    record: EstimateRecord
    previous: EstimateRecord | None = None


class EntityStore:
    """Mapping from entity key to its latest estimate record.

    Merges are last-write-wins by arrival: the record passed to the most
    recent :meth:`merge` call for a key is the one kept, whatever its
    ``updated_at``. Push and poll results may race; a stale overwrite is
    corrected by the next update from the remote.

    Records are frozen models, so :meth:`snapshot` only needs to copy the
    mapping itself to give callers a view that later merges cannot tear.
    """

    def __init__(self, partition: str | None = None) -> None:
        self._partition = partition
        self._records: dict[str, EstimateRecord] = {}
        self._generation = 0

    @property
    def partition(self) -> str | None:
        """Partition the store currently accepts records for."""
        return self._partition

    @property
    def generation(self) -> int:
        """Incremented on every :meth:`clear`/:meth:`reset`."""
        return self._generation

    def merge(self, record: EstimateRecord) -> MergeOutcome:
        """Insert or replace the record for ``record.key``."""
        if self._partition is not None and record.partition != self._partition:
            _logger.debug(
                "Ignoring record key=%s for partition=%s (active=%s)",
                record.key,
                record.partition,
                self._partition,
            )
            return MergeOutcome(accepted=False, record=record)
        previous = self._records.get(record.key)
        self._records[record.key] = record
        return MergeOutcome(accepted=True, record=record, previous=previous)

    def merge_many(self, records: Iterable[EstimateRecord]) -> list[MergeOutcome]:
        return [self.merge(record) for record in records]

    def get(self, key: str) -> EstimateRecord | None:
        return self._records.get(key)

    def snapshot(self) -> Mapping[str, EstimateRecord]:
        """Return a read-only copy of the current key → record mapping."""
        return MappingProxyType(dict(self._records))

    def clear(self) -> None:
        """Drop every record, keeping the active partition."""
        self._records = {}
        self._generation += 1

    def reset(self, partition: str | None) -> None:
        """Drop every record and scope the store to *partition*.

        Once this returns, merges for any other partition are rejected.
        """
        self._records = {}
        self._partition = partition
        self._generation += 1

    def __len__(self) -> int:
        return len(self._records)

    def __contains__(self, key: object) -> bool:
        return key in self._records
