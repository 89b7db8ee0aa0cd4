"""
Infrastructure adapter: process environment -> ISecretStore.
Reads POLYGON_API_KEY / OPENAI_API_KEY style variables, including those
loaded from a .env file by python-dotenv.
"""

import os
from typing import Mapping, Optional

from src.domain.ports.secret_store_port import ISecretStore


class EnvSecretStore(ISecretStore):
    def __init__(self, environ: Optional[Mapping[str, str]] = None) -> None:
        self._environ = environ if environ is not None else os.environ

    def get(self, name: str) -> Optional[str]:
        value = self._environ.get(name)
        return value.strip() if value else None
