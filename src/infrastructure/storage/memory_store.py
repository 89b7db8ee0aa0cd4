"""
Infrastructure adapter: process memory -> IKeyValueStore.
Used when no cache file is configured; contents are lost on exit.
"""

from typing import Optional

from src.domain.ports.key_value_store_port import IKeyValueStore


class InMemoryKeyValueStore(IKeyValueStore):
    def __init__(self) -> None:
        self._items: dict[str, str] = {}

    def get_item(self, key: str) -> Optional[str]:
        return self._items.get(key)

    def set_item(self, key: str, value: str) -> None:
        self._items[key] = value

    def remove_item(self, key: str) -> None:
        self._items.pop(key, None)

    def __contains__(self, key: str) -> bool:
        return key in self._items
