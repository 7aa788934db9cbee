"""
In-memory dashboard store.

Rationale:
- One DashboardStore instance lives on app.state and is injected into handlers.
- Every read returns a frozen snapshot; writes replace the snapshot under a lock.
- Nothing survives a restart.
"""

import logging
import threading
import uuid
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from .schemas import ConnectionParams, Dashboard, ProcessedData

logger = logging.getLogger(__name__)


def _now() -> datetime:
    return datetime.now(timezone.utc)


def new_id() -> str:
    return uuid.uuid4().hex[:8]


class DashboardNotFound(KeyError):
    pass


class DashboardStore:
    def __init__(self, max_dashboards: int = 50):
        self._max = max_dashboards
        self._items: Dict[str, Dashboard] = {}
        self._lock = threading.Lock()

    def create(
        self,
        name: str,
        params: ConnectionParams,
        raw_data: Any,
        processed: ProcessedData,
    ) -> Dashboard:
        now = _now()
        dashboard = Dashboard(
            id=new_id(),
            name=name,
            params=params,
            raw_data=raw_data,
            processed=processed,
            created_at=now,
            updated_at=now,
        )
        with self._lock:
            self._items[dashboard.id] = dashboard
            # dicts keep insertion order, so the first key is the oldest
            while len(self._items) > self._max:
                evicted = next(iter(self._items))
                del self._items[evicted]
                logger.info(f"Evicted dashboard {evicted} (limit {self._max})")
        logger.info(f"Created dashboard {dashboard.id} ({name!r})")
        return dashboard

    def get(self, dashboard_id: str) -> Optional[Dashboard]:
        with self._lock:
            return self._items.get(dashboard_id)

    def list(self) -> List[Dashboard]:
        with self._lock:
            return list(self._items.values())

    def replace(self, dashboard_id: str, raw_data: Any, processed: ProcessedData) -> Dashboard:
        """Swap in freshly fetched data, keeping id, name, params and creation time."""
        with self._lock:
            current = self._items.get(dashboard_id)
            if current is None:
                raise DashboardNotFound(dashboard_id)
            updated = current.model_copy(
                update={"raw_data": raw_data, "processed": processed, "updated_at": _now()}
            )
            self._items[dashboard_id] = updated
        logger.info(f"Refreshed dashboard {dashboard_id}")
        return updated

    def delete(self, dashboard_id: str) -> bool:
        with self._lock:
            removed = self._items.pop(dashboard_id, None)
        if removed is not None:
            logger.info(f"Deleted dashboard {dashboard_id}")
        return removed is not None
