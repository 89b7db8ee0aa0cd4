"""
Infrastructure adapter: AWS Secrets Manager -> ISecretStore.

The secret is a JSON object such as
    {"POLYGON_API_KEY": "...", "OPENAI_API_KEY": "..."}
and is fetched once, on first use. load_into_env() lets the composition root
preload it so EnvSecretStore and anything else reading os.environ see it.
"""

import json
import logging
import os
from typing import Optional

import boto3

from src.domain.ports.secret_store_port import ISecretStore

logger = logging.getLogger(__name__)


class SecretsManagerAdapter(ISecretStore):
    """Fetches and deserializes a JSON secret from AWS Secrets Manager."""

    def __init__(self, secret_arn: str, region: Optional[str] = None, client=None) -> None:
        self._secret_arn = secret_arn
        self._client = client or boto3.client(
            "secretsmanager",
            region_name=region or os.environ.get("AWS_DEFAULT_REGION", "us-east-1"),
        )
        self._values: Optional[dict] = None

    def _load(self) -> dict:
        if self._values is None:
            response = self._client.get_secret_value(SecretId=self._secret_arn)
            self._values = json.loads(response["SecretString"])
            logger.info(f"Loaded {len(self._values)} secret value(s) from Secrets Manager")
        return self._values

    def get(self, name: str) -> Optional[str]:
        value = self._load().get(name)
        return str(value) if value is not None else None

    def load_into_env(self) -> None:
        """Inject every key-value pair of the secret into os.environ."""
        for key, value in self._load().items():
            os.environ[key] = str(value)
