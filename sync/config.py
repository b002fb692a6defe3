"""Runtime settings for lead synchronization.

Read from the environment (and .env) the same way the database URL is:

  LEAD_SYNC_EMPTY_RETRY_DELAY  seconds before the one-shot retry of an empty first load
  LEAD_SYNC_NOTIFY_CHANNEL     PostgreSQL NOTIFY channel carrying row changes
  LEAD_SYNC_SCHEMA             schema of the synchronized tables
  LEAD_SYNC_ELEVATED_ROLES     comma-separated roles that see every lead
"""
import os
from typing import FrozenSet

from dotenv import load_dotenv
from pydantic import BaseModel, ConfigDict, Field

DEFAULT_ELEVATED_ROLES = frozenset({"manager", "admin", "super_admin"})


class SyncSettings(BaseModel):
    model_config = ConfigDict(frozen=True)

    empty_retry_delay: float = Field(default=1.5, ge=0)
    notify_channel: str = "realtime_changes"
    namespace: str = "crm"
    elevated_roles: FrozenSet[str] = DEFAULT_ELEVATED_ROLES

    @classmethod
    def from_env(cls) -> "SyncSettings":
        load_dotenv()
        roles = os.environ.get("LEAD_SYNC_ELEVATED_ROLES")
        return cls(
            empty_retry_delay=float(os.environ.get("LEAD_SYNC_EMPTY_RETRY_DELAY", "1.5")),
            notify_channel=os.environ.get("LEAD_SYNC_NOTIFY_CHANNEL", "realtime_changes"),
            namespace=os.environ.get("LEAD_SYNC_SCHEMA", "crm"),
            elevated_roles=(
                frozenset(r.strip() for r in roles.split(",") if r.strip())
                if roles is not None
                else DEFAULT_ELEVATED_ROLES
            ),
        )
