"""Unit tests for SyncSettings.from_env."""
from sync.config import DEFAULT_ELEVATED_ROLES, SyncSettings

_VARS = (
    "LEAD_SYNC_EMPTY_RETRY_DELAY",
    "LEAD_SYNC_NOTIFY_CHANNEL",
    "LEAD_SYNC_SCHEMA",
    "LEAD_SYNC_ELEVATED_ROLES",
)


def test_defaults(monkeypatch):
    for name in _VARS:
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setattr("sync.config.load_dotenv", lambda: None)

    settings = SyncSettings.from_env()

    assert settings.empty_retry_delay == 1.5
    assert settings.notify_channel == "realtime_changes"
    assert settings.namespace == "crm"
    assert settings.elevated_roles == DEFAULT_ELEVATED_ROLES


def test_reads_environment(monkeypatch):
    monkeypatch.setattr("sync.config.load_dotenv", lambda: None)
    monkeypatch.setenv("LEAD_SYNC_EMPTY_RETRY_DELAY", "0.25")
    monkeypatch.setenv("LEAD_SYNC_NOTIFY_CHANNEL", "crm_changes")
    monkeypatch.setenv("LEAD_SYNC_SCHEMA", "lending")
    monkeypatch.setenv("LEAD_SYNC_ELEVATED_ROLES", "admin, super_admin,")

    settings = SyncSettings.from_env()

    assert settings.empty_retry_delay == 0.25
    assert settings.notify_channel == "crm_changes"
    assert settings.namespace == "lending"
    assert settings.elevated_roles == frozenset({"admin", "super_admin"})
