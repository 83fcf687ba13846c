"""Outbound reachability to provider APIs and the npm registry, plus proxy detection."""

from __future__ import annotations

import re
import time
from collections.abc import Mapping, Sequence

import httpx

from ..health.context import ExecutionContext
from ..health.engine import CheckOutcome, Probe

ENDPOINTS: tuple[tuple[str, str], ...] = (
    ("Anthropic API", "https://api.anthropic.com"),
    ("OpenAI API", "https://api.openai.com"),
    ("Google Gemini API", "https://generativelanguage.googleapis.com"),
    ("OpenRouter API", "https://openrouter.ai"),
    ("npm Registry", "https://registry.npmjs.org"),
)

PROXY_VARS = ("HTTPS_PROXY", "HTTP_PROXY", "ALL_PROXY", "NO_PROXY")
_USERINFO_RE = re.compile(r"//[^/@\s]+@")


def detect_proxies(env: Mapping[str, str]) -> dict[str, str]:
    """Return proxy settings found in the environment, keyed by upper-case name."""
    found: dict[str, str] = {}
    for key, value in env.items():
        if key.upper() in PROXY_VARS and value:
            found.setdefault(key.upper(), _USERINFO_RE.sub("//***@", value))
    return found


class NetworkProbe(Probe):
    name = "Network Connectivity"
    category = "Network Connectivity"

    def __init__(
        self,
        endpoints: Sequence[tuple[str, str]] = ENDPOINTS,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        self.endpoints = tuple(endpoints)
        self._transport = transport  # tests inject httpx.MockTransport

    def run(self, ctx: ExecutionContext) -> list[CheckOutcome]:
        outcomes = [self._proxy(ctx)]
        with httpx.Client(
            timeout=ctx.http_timeout, follow_redirects=False, transport=self._transport,
        ) as client:
            for label, url in self.endpoints:
                outcomes.append(self._head(client, label, url, ctx.http_timeout))
        return outcomes

    def _head(self, client: httpx.Client, label: str, url: str, timeout: float) -> CheckOutcome:
        t0 = time.perf_counter()
        try:
            resp = client.head(url)
        except httpx.TimeoutException:
            return self.fail(label, f"Timed out after {timeout:g}s", url)
        except httpx.HTTPError as e:
            return self.fail(label, "Connection failed", f"{url}: {type(e).__name__}: {e}")
        latency = (time.perf_counter() - t0) * 1000
        # Any HTTP answer (even 4xx/5xx) proves the host is reachable
        return self.passed(label, f"Reachable (HTTP {resp.status_code}, {latency:.0f}ms)", url)

    def _proxy(self, ctx: ExecutionContext) -> CheckOutcome:
        proxies = detect_proxies(ctx.environ)
        if not proxies:
            return self.passed("Proxy", "No proxy configured")
        summary = ", ".join(f"{k}={v}" for k, v in sorted(proxies.items()))
        return self.passed("Proxy", f"Proxy configured ({', '.join(sorted(proxies))})", summary)
