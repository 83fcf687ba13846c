from __future__ import annotations

from pydantic import ValidationError
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Central configuration loaded from environment / .env file."""

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8", "extra": "ignore"}

    # Clawdbot locations (empty = derive from defaults)
    clawdbot_config_dir: str = ""
    clawdbot_state_dir: str = ""
    clawdbot_workspace: str = ""

    # Gateway / bridge
    clawdbot_gateway_port: int = 18789
    clawdbot_bridge_port: int = 18790
    clawdbot_gateway_bind: str = ""
    clawdbot_gateway_token: str = ""

    # Thresholds
    doctor_min_node_version: str = "22.0.0"
    doctor_min_total_memory_gb: float = 2.0
    doctor_min_free_memory_gb: float = 1.0
    doctor_disk_pass_gb: float = 5.0   # >= this is a pass
    doctor_disk_fail_gb: float = 1.0   # < this is a fail, in between warns

    # Timeouts (seconds)
    doctor_command_timeout: float = 5.0
    doctor_connect_timeout: float = 2.0
    doctor_http_timeout: float = 5.0
    doctor_probe_timeout: float = 30.0

    # Logging
    log_level: str = "WARNING"


def load_settings() -> tuple[Settings, str | None]:
    """Load settings, resetting only the invalid overrides to their defaults.

    Returns the settings plus the validation error text (None when clean), so
    the caller can report the bad override instead of crashing at startup.
    Every other override, valid on its own, is kept.
    """
    try:
        return Settings(), None
    except ValidationError as e:
        error = str(e)
        bad = {str(err["loc"][0]) for err in e.errors() if err.get("loc")}

    # Init kwargs take precedence over env and .env sources
    defaults = {
        name: field.default
        for name, field in Settings.model_fields.items()
        if name in bad
    }
    try:
        return Settings(**defaults), error
    except ValidationError:
        return Settings.model_construct(), error
