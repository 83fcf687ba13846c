"""Execution context — the read-only snapshot every probe receives."""

from __future__ import annotations

import logging
import os
from collections.abc import Mapping
from dataclasses import dataclass, field
from pathlib import Path
from types import MappingProxyType

from ..config import Settings

logger = logging.getLogger(__name__)

DEFAULT_DIR_NAME = ".clawdbot"
CONFIG_FILE_NAME = "clawdbot.json"
ENV_FILE_NAME = ".env"
MEMORY_DIR_NAME = "memory"


@dataclass(frozen=True)
class ExecutionContext:
    """Immutable configuration snapshot shared by all probes in a run."""

    config_dir: Path | None
    workspace_dir: Path | None
    gateway_port: int = 18789
    bridge_port: int = 18790
    config_source: str = "default"  # flag | env | default | unresolved

    # Thresholds
    min_node_version: str = "22.0.0"
    min_total_memory_gb: float = 2.0
    min_free_memory_gb: float = 1.0
    disk_pass_gb: float = 5.0
    disk_fail_gb: float = 1.0

    # Timeouts (seconds)
    command_timeout: float = 5.0
    connect_timeout: float = 2.0
    http_timeout: float = 5.0

    verbose: bool = False
    environ: Mapping[str, str] = field(default_factory=lambda: MappingProxyType({}))

    @property
    def config_file(self) -> Path | None:
        return self.config_dir / CONFIG_FILE_NAME if self.config_dir else None

    @property
    def env_file(self) -> Path | None:
        return self.config_dir / ENV_FILE_NAME if self.config_dir else None

    @property
    def memory_dir(self) -> Path | None:
        return self.config_dir / MEMORY_DIR_NAME if self.config_dir else None

    def env(self, key: str, default: str = "") -> str:
        return self.environ.get(key, default)


def resolve_config_dir(
    explicit: str | os.PathLike[str] | None, settings: Settings,
) -> tuple[Path | None, str]:
    """Pick the config directory: explicit flag > env override > ~/.clawdbot."""
    if explicit:
        return Path(explicit).expanduser(), "flag"
    for override in (settings.clawdbot_config_dir, settings.clawdbot_state_dir):
        if override:
            return Path(override).expanduser(), "env"
    try:
        return Path.home() / DEFAULT_DIR_NAME, "default"
    except RuntimeError:
        logger.warning("Could not determine home directory; config dir unresolved")
        return None, "unresolved"


def build_context(
    settings: Settings,
    *,
    config_dir: str | os.PathLike[str] | None = None,
    gateway_port: int | None = None,
    bridge_port: int | None = None,
    verbose: bool = False,
    environ: Mapping[str, str] | None = None,
) -> ExecutionContext:
    """Construct the run's context from CLI flags + settings + environment."""
    resolved, source = resolve_config_dir(config_dir, settings)

    if settings.clawdbot_workspace:
        workspace = Path(settings.clawdbot_workspace).expanduser()
    elif resolved is not None:
        workspace = resolved / "workspace"
    else:
        workspace = None

    snapshot = dict(os.environ if environ is None else environ)

    ctx = ExecutionContext(
        config_dir=resolved,
        workspace_dir=workspace,
        gateway_port=gateway_port or settings.clawdbot_gateway_port,
        bridge_port=bridge_port or settings.clawdbot_bridge_port,
        config_source=source,
        min_node_version=settings.doctor_min_node_version,
        min_total_memory_gb=settings.doctor_min_total_memory_gb,
        min_free_memory_gb=settings.doctor_min_free_memory_gb,
        disk_pass_gb=settings.doctor_disk_pass_gb,
        disk_fail_gb=settings.doctor_disk_fail_gb,
        command_timeout=settings.doctor_command_timeout,
        connect_timeout=settings.doctor_connect_timeout,
        http_timeout=settings.doctor_http_timeout,
        verbose=verbose,
        environ=MappingProxyType(snapshot),
    )
    logger.debug(
        "Context: config_dir=%s (%s) gateway=%d bridge=%d",
        ctx.config_dir, ctx.config_source, ctx.gateway_port, ctx.bridge_port,
    )
    return ctx
