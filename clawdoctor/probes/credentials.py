"""Provider credential discovery — environment, .env and config references."""

from __future__ import annotations

import re
from collections.abc import Iterator
from typing import Any

from ..health.context import ExecutionContext
from ..health.engine import CheckOutcome, Probe
from .configuration import parse_env_file, read_config

PROVIDER_ENV_VARS = (
    "ANTHROPIC_API_KEY",
    "OPENAI_API_KEY",
    "GEMINI_API_KEY",
    "GOOGLE_API_KEY",
    "OPENROUTER_API_KEY",
    "GROQ_API_KEY",
    "MISTRAL_API_KEY",
    "XAI_API_KEY",
    "DEEPSEEK_API_KEY",
    "AWS_BEARER_TOKEN_BEDROCK",
)

# Config keys whose string values are treated as credentials
_SECRET_KEY_RE = re.compile(r"^(api[_-]?key|key|token|secret|access[_-]?token)$", re.IGNORECASE)

# Top-level config sections whose secrets are not model-provider credentials:
# gateway auth and chat channel bot tokens
NON_PROVIDER_SECTIONS = frozenset({"gateway", "channels"})

MASK_SEPARATOR = "..."
_HEAD, _TAIL = 8, 4


def mask_secret(value: str) -> str:
    """Show at most the first 8 and last 4 characters, never the middle.

    Short values shrink both ends so at least one character stays hidden.
    """
    if not value:
        return "(empty)"
    length = len(value)
    if length > _HEAD + _TAIL:
        head, tail = _HEAD, _TAIL
    else:
        head, tail = length // 3, length // 4
    return f"{value[:head]}{MASK_SEPARATOR}{value[length - tail:] if tail else ''}"


def iter_config_secrets(node: Any, path: str = "") -> Iterator[tuple[str, str]]:
    """Yield (dotted.path, value) for credential-like string values."""
    if isinstance(node, dict):
        for key, value in node.items():
            child = f"{path}.{key}" if path else str(key)
            if isinstance(value, str) and _SECRET_KEY_RE.match(str(key)) and value.strip():
                yield child, value
            else:
                yield from iter_config_secrets(value, child)
    elif isinstance(node, list):
        for i, item in enumerate(node):
            yield from iter_config_secrets(item, f"{path}[{i}]")


class CredentialsProbe(Probe):
    name = "Provider Credentials"
    category = "API Credentials"

    def run(self, ctx: ExecutionContext) -> list[CheckOutcome]:
        outcomes: list[CheckOutcome] = []

        for var in PROVIDER_ENV_VARS:
            value = ctx.env(var)
            if value:
                outcomes.append(self.passed(var, f"set in environment: {mask_secret(value)}"))

        outcomes.extend(self._dotenv(ctx))
        outcomes.extend(self._config_refs(ctx))

        if not outcomes:
            return [self.fail(
                "Provider Credentials", "No provider credentials found",
                "Set e.g. ANTHROPIC_API_KEY in the environment or in "
                f"{ctx.env_file or '~/.clawdbot/.env'}, or run `clawdbot configure`",
            )]
        return outcomes

    def _dotenv(self, ctx: ExecutionContext) -> list[CheckOutcome]:
        if ctx.env_file is None or not ctx.env_file.is_file():
            return []
        try:
            entries = parse_env_file(ctx.env_file)
        except (OSError, ValueError):
            # Reported by the configuration probe
            return []
        return [
            self.passed(var, f"set in .env: {mask_secret(entries[var])}")
            for var in PROVIDER_ENV_VARS
            if entries.get(var)
        ]

    def _config_refs(self, ctx: ExecutionContext) -> list[CheckOutcome]:
        config = read_config(ctx)
        if not config:
            return []
        provider_sections = {k: v for k, v in config.items() if k not in NON_PROVIDER_SECTIONS}
        outcomes = []
        for key_path, value in iter_config_secrets(provider_sections):
            if value.startswith("${") and value.endswith("}"):
                shown = f"references {value}"
            else:
                shown = mask_secret(value)
            outcomes.append(self.passed(key_path, f"configured in config file: {shown}"))
        return outcomes
