"""
Report Cache
In-process LRU cache of computed analytics reports, keyed by project filter
and a fingerprint of the records the report was computed from.
"""
import hashlib
import logging
import threading
from typing import Callable, Optional, Tuple, TypeVar

from cachetools import LRUCache

from app.models.finance import FinancialDataset

logger = logging.getLogger(__name__)

T = TypeVar("T")

ALL_PROJECTS = "*"

_MISSING = object()


def dataset_fingerprint(dataset: FinancialDataset) -> str:
    """Content hash of the normalized records; any change yields a new key."""
    payload = dataset.model_dump_json()
    return hashlib.sha256(payload.encode()).hexdigest()


class ReportCache:
    def __init__(self, max_entries: int = 128) -> None:
        self._entries: LRUCache = LRUCache(maxsize=max(1, max_entries))
        self._lock = threading.Lock()

    @staticmethod
    def _key(project_id: Optional[str], dataset: FinancialDataset) -> Tuple[str, str]:
        return (project_id or ALL_PROJECTS, dataset_fingerprint(dataset))

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def get_or_compute(
        self,
        project_id: Optional[str],
        dataset: FinancialDataset,
        compute: Callable[[], T],
    ) -> T:
        key = self._key(project_id, dataset)
        with self._lock:
            cached = self._entries.get(key, _MISSING)
        if cached is not _MISSING:
            return cached

        # Computed outside the lock
        value = compute()
        with self._lock:
            self._entries[key] = value
        return value

    def invalidate(self, project_id: Optional[str] = None) -> int:
        """Drop cached reports for one project filter, or all of them."""
        with self._lock:
            if project_id is None:
                removed = len(self._entries)
                self._entries.clear()
            else:
                stale = [key for key in self._entries if key[0] == project_id]
                for key in stale:
                    del self._entries[key]
                removed = len(stale)
        logger.info(f"Invalidated {removed} cached report(s) for project={project_id or ALL_PROJECTS}")
        return removed
