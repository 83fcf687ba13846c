"""Recognized CLAWDBOT_* environment variables — informational only."""

from __future__ import annotations

from ..health.context import ExecutionContext
from ..health.engine import CheckOutcome, Probe
from .credentials import mask_secret

# name -> description of the default when unset
RECOGNIZED_VARS: tuple[tuple[str, str], ...] = (
    ("CLAWDBOT_CONFIG_DIR", "~/.clawdbot"),
    ("CLAWDBOT_STATE_DIR", "config dir"),
    ("CLAWDBOT_WORKSPACE", "<config dir>/workspace"),
    ("CLAWDBOT_GATEWAY_PORT", "18789"),
    ("CLAWDBOT_BRIDGE_PORT", "18790"),
    ("CLAWDBOT_GATEWAY_BIND", "loopback"),
    ("CLAWDBOT_GATEWAY_TOKEN", "none"),
)

_SECRET_MARKERS = ("TOKEN", "SECRET", "KEY", "PASSWORD")


class EnvironmentVariablesProbe(Probe):
    name = "Environment Variables"
    category = "Environment Variables"

    def run(self, ctx: ExecutionContext) -> list[CheckOutcome]:
        outcomes = []
        for var, default in RECOGNIZED_VARS:
            value = ctx.env(var)
            if not value:
                outcomes.append(self.passed(var, f"not set (default: {default})"))
            elif any(marker in var for marker in _SECRET_MARKERS):
                outcomes.append(self.passed(var, mask_secret(value)))
            else:
                outcomes.append(self.passed(var, value))
        return outcomes
