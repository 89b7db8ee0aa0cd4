"""
Port (interface) for secret stores.
Infrastructure adapters (e.g. EnvSecretStore, SecretsManagerAdapter) must
implement this interface.
"""

from abc import ABC, abstractmethod
from typing import Optional

from src.domain.errors import MissingSecretError


class ISecretStore(ABC):
    @abstractmethod
    def get(self, name: str) -> Optional[str]:
        """Return the secret called *name*, or None when it is not configured."""
        ...

    def require(self, name: str) -> str:
        """Return the secret called *name* or raise MissingSecretError."""
        value = self.get(name)
        if not value:
            raise MissingSecretError(name)
        return value
