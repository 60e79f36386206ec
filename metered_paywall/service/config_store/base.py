"""Base class for the external store holding the admin-edited paywall config."""

from abc import ABC, abstractmethod
from typing import Any, Dict, Optional


class ConfigStore(ABC):
    """
    Abstract base class for paywall config stores.

    Stores hold the raw config document; parsing and validation belong to
    the config provider.
    """

    @abstractmethod
    async def load(self) -> Optional[Dict[str, Any]]:
        """
        Load the stored config document.

        Returns:
            The document, or None if nothing has been stored yet

        Raises:
            ConfigLoadError: if the store cannot be read
        """

    @abstractmethod
    async def save(self, document: Dict[str, Any]) -> None:
        """
        Replace the stored config document.

        Raises:
            ConfigLoadError: if the store cannot be written
        """
