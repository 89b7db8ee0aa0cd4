import json
import os

import pytest

from src.domain.errors import MissingSecretError
from src.infrastructure.config import DashboardSettings
from src.infrastructure.entrypoints import container
from src.infrastructure.secrets.secrets_manager_adapter import SecretsManagerAdapter

ARN = "arn:aws:secretsmanager:us-east-1:123456789012:secret:dashboard"


class StubSecretsClient:
    def __init__(self, values):
        self.values = values
        self.requests = []

    def get_secret_value(self, SecretId):
        self.requests.append(SecretId)
        return {"SecretString": json.dumps(self.values)}


def test_secret_is_fetched_lazily_and_once():
    client = StubSecretsClient({"POLYGON_API_KEY": "poly", "RETRIES": 3})
    secrets = SecretsManagerAdapter(ARN, client=client)

    assert client.requests == []
    assert secrets.require("POLYGON_API_KEY") == "poly"
    assert secrets.get("RETRIES") == "3"
    assert secrets.get("OPENAI_API_KEY") is None
    assert client.requests == [ARN]


def test_missing_secret_key_is_reported_by_name():
    secrets = SecretsManagerAdapter(ARN, client=StubSecretsClient({"POLYGON_API_KEY": "poly"}))

    with pytest.raises(MissingSecretError) as excinfo:
        secrets.require("OPENAI_API_KEY")

    assert excinfo.value.name == "OPENAI_API_KEY"


def test_load_into_env_populates_environment(monkeypatch):
    monkeypatch.setenv("POLYGON_API_KEY", "stale")
    monkeypatch.setenv("OPENAI_API_KEY", "stale")
    client = StubSecretsClient({"POLYGON_API_KEY": "poly", "OPENAI_API_KEY": "oai"})

    SecretsManagerAdapter(ARN, client=client).load_into_env()

    assert os.environ["POLYGON_API_KEY"] == "poly"
    assert os.environ["OPENAI_API_KEY"] == "oai"


def test_secret_arn_preloads_the_environment_store(monkeypatch):
    monkeypatch.setenv("POLYGON_API_KEY", "stale")
    client = StubSecretsClient({"POLYGON_API_KEY": "from-secrets-manager"})
    monkeypatch.setattr(
        container,
        "SecretsManagerAdapter",
        lambda arn: SecretsManagerAdapter(arn, client=client),
    )
    settings = DashboardSettings.from_env({"DASHBOARD_SECRET_ARN": ARN})

    secrets = container.build_secret_store(settings)

    assert secrets.require("POLYGON_API_KEY") == "from-secrets-manager"
    assert client.requests == [ARN]


def test_without_secret_arn_secrets_manager_is_not_used(monkeypatch):
    monkeypatch.setenv("POLYGON_API_KEY", "from-env")

    def fail(arn):
        raise AssertionError("Secrets Manager should not be called")

    monkeypatch.setattr(container, "SecretsManagerAdapter", fail)

    secrets = container.build_secret_store(DashboardSettings.from_env({}))

    assert secrets.require("POLYGON_API_KEY") == "from-env"
