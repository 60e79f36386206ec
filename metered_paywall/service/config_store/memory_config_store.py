import copy
from typing import Any, Dict, Optional

from metered_paywall.service.config_store.base import ConfigStore


class InMemoryConfigStore(ConfigStore):
    """
    Config store keeping the document in process memory.

    Used when no Redis is configured. Edits are lost on restart.
    """

    def __init__(self, document: Optional[Dict[str, Any]] = None):
        self._document = copy.deepcopy(document) if document is not None else None

    async def load(self) -> Optional[Dict[str, Any]]:
        return copy.deepcopy(self._document) if self._document is not None else None

    async def save(self, document: Dict[str, Any]) -> None:
        self._document = copy.deepcopy(document)

    def __str__(self) -> str:
        return "InMemoryConfigStore()"
