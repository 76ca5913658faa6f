"""
Debug Reconciler

Each adapter keeps its own most recent DebugRecord. The reconciler answers
"what was the last remote operation?" by comparing them on demand.
"""

import json
from typing import List, Optional, Sequence

from ..ocr.base import ClientAdapter, DebugRecord

from config.logging_config import get_logger

logger = get_logger(__name__)


class DebugReconciler:
    """
    Picks the newest debug record across adapters.

    Nothing is cached: every call re-reads the adapters, so a clear() on the
    session store is reflected immediately.
    """

    def __init__(self, adapters: Sequence[ClientAdapter] = ()):
        self._adapters: List[ClientAdapter] = list(adapters)

    def register(self, adapter: ClientAdapter) -> None:
        if not any(existing is adapter for existing in self._adapters):
            self._adapters.append(adapter)

    def get_most_recent(self) -> Optional[DebugRecord]:
        """
        Newest record by timestamp; on equal timestamps the adapter
        registered first wins. None when no adapter holds a record.
        """
        most_recent: Optional[DebugRecord] = None
        for adapter in self._adapters:
            record = adapter.get_last_debug_data()
            if record is None:
                continue
            if most_recent is None or record.timestamp > most_recent.timestamp:
                most_recent = record
        if most_recent is not None:
            logger.debug(
                f"Most recent debug record: {most_recent.source.value}/{most_recent.operation} "
                f"at {most_recent.timestamp.isoformat()}"
            )
        return most_recent

    def as_json(self) -> str:
        """Most recent record as indented JSON, for copying ("null" when none)."""
        record = self.get_most_recent()
        return json.dumps(record.to_dict() if record else None, indent=2, default=str)
