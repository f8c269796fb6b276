# tests/test_user_directory.py
import pytest
from fastapi.testclient import TestClient

from src.config import settings
from src.core import ConfigurationException
from src.main import app
from src.tickets.infrastructure import load_user_profiles


USERS_YAML = """
users:
  - id: u-alice
    email: alice@acme.io
    country: US
    team_id: t-support
  - id: u-bob
    email: bob@acme.io
    team_id: t-product
"""


def test_loads_profiles(tmp_path):
    path = tmp_path / "users.yaml"
    path.write_text(USERS_YAML)

    profiles = load_user_profiles(path)

    assert [p.id for p in profiles] == ["u-alice", "u-bob"]
    assert profiles[0].team_id == "t-support"
    assert profiles[1].country is None


def test_missing_file_gives_empty_directory(tmp_path):
    assert load_user_profiles(tmp_path / "absent.yaml") == []


@pytest.mark.parametrize("content", [
    "users:\n  - email: nobody@acme.io\n",
    "users: [1, 2]\n",
    "- just\n- a list\n",
])
def test_invalid_file_raises(tmp_path, content):
    path = tmp_path / "users.yaml"
    path.write_text(content)

    with pytest.raises(ConfigurationException):
        load_user_profiles(path)


def test_served_app_filters_by_team_from_directory_file(tmp_path, monkeypatch):
    users = tmp_path / "users.yaml"
    users.write_text(USERS_YAML)
    monkeypatch.setattr(settings, "ticket_store", "memory")
    monkeypatch.setattr(settings, "user_directory_path", users)
    monkeypatch.setattr(settings, "sla_policy_path", tmp_path / "sla_policy.yaml")
    monkeypatch.setattr(settings, "watch_sla_policy", False)

    with TestClient(app) as client:
        created = client.post("/tickets", json={"title": "VPN down", "createdById": "u-alice"})
        assert created.status_code == 201

        by_team = client.get("/tickets", params={"teamId": "t-support"}).json()
        by_country = client.get("/tickets", params={"country": "US"}).json()
        other_team = client.get("/tickets", params={"teamId": "t-product"}).json()

    assert [t["id"] for t in by_team] == [created.json()["id"]]
    assert [t["id"] for t in by_country] == [created.json()["id"]]
    assert other_team == []
