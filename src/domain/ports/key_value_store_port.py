"""
Port (interface) for durable string key-value storage.
Values are opaque JSON text; the cache layer owns their encoding.
"""

from abc import ABC, abstractmethod
from typing import Optional


class IKeyValueStore(ABC):
    @abstractmethod
    def get_item(self, key: str) -> Optional[str]: ...

    @abstractmethod
    def set_item(self, key: str, value: str) -> None: ...

    @abstractmethod
    def remove_item(self, key: str) -> None:
        """Delete *key*; a missing key is not an error."""
        ...
