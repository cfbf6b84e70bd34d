import copy
import logging
from typing import Any, Dict, Optional

from tripbot.store.interface import DocumentStore

logger = logging.getLogger(__name__)


class InMemoryDocumentStore(DocumentStore):
    """Process-local trip document, used for tests and STORE_BACKEND=memory."""

    def __init__(self, initial: Optional[Dict[str, Any]] = None):
        super().__init__()
        self._data: Dict[str, Any] = copy.deepcopy(initial or {})
        self.failing_writes = 0
        self.write_count = 0

    def fail_next_writes(self, count: int = 1):
        """Make the next ``count`` updates report failure without storing."""
        self.failing_writes = count

    async def get(self, field: str) -> Any:
        return copy.deepcopy(self._data.get(field))

    async def update(self, field: str, value: Any) -> bool:
        if self.failing_writes > 0:
            self.failing_writes -= 1
            logger.warning(f"Write to '{field}' rejected")
            return False

        self._data[field] = copy.deepcopy(value)
        self.write_count += 1
        self.publish(field, value)
        return True

    def dump(self) -> Dict[str, Any]:
        return copy.deepcopy(self._data)
