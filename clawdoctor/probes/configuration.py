"""Config file, .env, workspace and memory directory checks.

The main config file is JSON that may carry ``//`` and ``/* */`` comments and
trailing commas; both are blanked out before parsing, keeping every newline so
error positions still point into the file as written.
"""

from __future__ import annotations

import json
import logging
import re
from pathlib import Path
from typing import Any

from dotenv import dotenv_values

from ..health.context import CONFIG_FILE_NAME, ENV_FILE_NAME, MEMORY_DIR_NAME, ExecutionContext
from ..health.engine import CheckOutcome, Probe

logger = logging.getLogger(__name__)

DB_PATTERNS = ("*.sqlite", "*.db")


class ConfigError(Exception):
    """Raised when the config file exists but cannot be read or parsed."""


# ── Parsing ──────────────────────────────────────────────────────────────────


def _scan(text: str, on_code) -> str:
    """Walk text, copying strings verbatim and handing code chars to on_code.

    on_code(text, i, out) returns the index to continue from.
    """
    out: list[str] = []
    i, n = 0, len(text)
    while i < n:
        ch = text[i]
        if ch != '"':
            i = on_code(text, i, out)
            continue
        # Copy a whole string literal, honouring escapes
        j = i + 1
        while j < n and text[j] != '"':
            j += 2 if text[j] == "\\" else 1
        out.append(text[i:j + 1])
        i = j + 1
    return "".join(out)


_NOT_NEWLINE_RE = re.compile(r"[^\n]")


def _blank(text: str) -> str:
    return _NOT_NEWLINE_RE.sub(" ", text)


def _drop_comment(text: str, i: int, out: list[str]) -> int:
    if text.startswith("//", i):
        end = text.find("\n", i)
        end = len(text) if end == -1 else end
    elif text.startswith("/*", i):
        end = text.find("*/", i + 2)
        end = len(text) if end == -1 else end + 2
    else:
        out.append(text[i])
        return i + 1
    out.append(_blank(text[i:end]))
    return end


def _drop_trailing_comma(text: str, i: int, out: list[str]) -> int:
    if text[i] == ",":
        j = i + 1
        while j < len(text) and text[j].isspace():
            j += 1
        if j < len(text) and text[j] in "}]":
            out.append(" ")
            return i + 1
    out.append(text[i])
    return i + 1


def strip_json_comments(text: str) -> str:
    """Blank out // and /* */ comments and trailing commas outside of strings.

    The result has the same length and line structure as the input.
    """
    return _scan(_scan(text, _drop_comment), _drop_trailing_comma)


def parse_config_text(text: str) -> dict[str, Any]:
    try:
        data = json.loads(strip_json_comments(text))
    except json.JSONDecodeError as e:
        raise ConfigError(f"line {e.lineno}, column {e.colno}: {e.msg}") from e
    if not isinstance(data, dict):
        raise ConfigError(f"top level must be an object, got {type(data).__name__}")
    return data


def load_config(path: Path) -> dict[str, Any]:
    try:
        text = path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as e:
        raise ConfigError(f"cannot read {path}: {e}") from e
    return parse_config_text(text)


def read_config(ctx: ExecutionContext) -> dict[str, Any] | None:
    """Best-effort load for other probes; None when missing or invalid."""
    if ctx.config_file is None or not ctx.config_file.is_file():
        return None
    try:
        return load_config(ctx.config_file)
    except ConfigError as e:
        logger.debug("Config unreadable for secondary use: %s", e)
        return None


def parse_env_file(path: Path) -> dict[str, str]:
    """Read KEY=VALUE entries from a .env file; bare keys without a value are dropped.

    Raises OSError or ValueError when the file cannot be read or decoded.
    """
    values = dotenv_values(path, interpolate=False, encoding="utf-8")
    return {key: value for key, value in values.items() if value is not None}


def gateway_mode(config: dict[str, Any]) -> str | None:
    gateway = config.get("gateway")
    if isinstance(gateway, dict) and isinstance(gateway.get("mode"), str):
        return gateway["mode"]
    mode = config.get("mode")
    return mode if isinstance(mode, str) else None


# ── Probe ────────────────────────────────────────────────────────────────────


class ConfigurationProbe(Probe):
    name = "Configuration"
    category = "Configuration"

    def run(self, ctx: ExecutionContext) -> list[CheckOutcome]:
        if ctx.config_dir is None:
            return [self.fail(
                "Config Directory", "Could not resolve a configuration directory",
                "Set CLAWDBOT_CONFIG_DIR or pass --config-dir",
            )]

        config_dir = ctx.config_dir
        outcomes: list[CheckOutcome] = []
        if config_dir.is_dir():
            outcomes.append(self.passed(
                "Config Directory", f"{config_dir} ({ctx.config_source})",
            ))
        else:
            outcomes.append(self.warn(
                "Config Directory", f"{config_dir} does not exist (first run?)",
                "Run `clawdbot onboard` to create it",
            ))

        outcomes.extend(self._config_file(config_dir / CONFIG_FILE_NAME))
        outcomes.append(self._env_file(config_dir / ENV_FILE_NAME))
        outcomes.append(self._workspace(ctx))
        outcomes.append(self._memory(config_dir / MEMORY_DIR_NAME))
        return outcomes

    def _config_file(self, path: Path) -> list[CheckOutcome]:
        if not path.is_file():
            return [self.warn(
                "Config File", f"{path.name} not found",
                "Run `clawdbot onboard` or `clawdbot configure` to create one",
            )]
        try:
            config = load_config(path)
        except ConfigError as e:
            return [self.fail("Config Syntax", f"{path.name} is not valid", str(e))]

        outcomes = [self.passed("Config Syntax", f"{path.name} parsed ({len(config)} top-level keys)")]
        mode = gateway_mode(config)
        if mode is None:
            outcomes.append(self.passed("Gateway Mode", "not set (defaults to local)"))
        elif mode == "local":
            outcomes.append(self.passed("Gateway Mode", "local"))
        else:
            outcomes.append(self.warn(
                "Gateway Mode", f"Gateway mode is {mode!r}, not 'local'",
                "Remote mode connects to another gateway; local services will not be used",
            ))
        return outcomes

    def _env_file(self, path: Path) -> CheckOutcome:
        if not path.is_file():
            return self.warn(".env File", f"{path} not found", "Optional; provider keys can live here")
        try:
            entries = parse_env_file(path)
        except (OSError, ValueError) as e:
            return self.warn(".env File", f"{path} could not be read", str(e))
        return self.passed(".env File", f"{len(entries)} entries")

    def _workspace(self, ctx: ExecutionContext) -> CheckOutcome:
        workspace = ctx.workspace_dir
        if workspace is not None and workspace.is_dir():
            return self.passed("Workspace", str(workspace))
        return self.warn(
            "Workspace", f"{workspace} does not exist",
            "Created on first agent run; set CLAWDBOT_WORKSPACE to relocate it",
        )

    def _memory(self, memory: Path) -> CheckOutcome:
        if not memory.is_dir():
            return self.warn("Memory Storage", f"{memory} does not exist", "Created on first run")
        try:
            count = sum(1 for pattern in DB_PATTERNS for _ in memory.glob(pattern))
        except OSError as e:
            return self.warn("Memory Storage", f"{memory} could not be listed", str(e))
        return self.passed("Memory Storage", f"{count} database file(s) in {memory}")
