"""Diagnostic probes — the fixed battery run by the doctor, in report order."""

from __future__ import annotations

from ..health.context import ExecutionContext
from ..health.engine import CheckOutcome, Probe
from .configuration import ConfigurationProbe
from .credentials import CredentialsProbe, mask_secret
from .env_vars import EnvironmentVariablesProbe
from .install import InstallationProbe
from .network import NetworkProbe
from .optional import OptionalDependenciesProbe
from .resources import ResourcesProbe
from .runtime import RuntimeProbe
from .services import ServicesProbe


class StartupProbe(Probe):
    """Reports a settings problem detected before the run started."""

    name = "Settings"
    category = "Startup"

    def __init__(self, error: str) -> None:
        self.error = error

    def run(self, ctx: ExecutionContext) -> list[CheckOutcome]:
        return [self.fail(
            "Settings", "Invalid environment override; using defaults", self.error,
        )]


def default_probes() -> list[Probe]:
    """The probe battery in documented category order."""
    return [
        RuntimeProbe(),
        InstallationProbe(),
        ConfigurationProbe(),
        CredentialsProbe(),
        ServicesProbe(),
        OptionalDependenciesProbe(),
        NetworkProbe(),
        ResourcesProbe(),
        EnvironmentVariablesProbe(),
    ]


__all__ = [
    "ConfigurationProbe",
    "CredentialsProbe",
    "EnvironmentVariablesProbe",
    "InstallationProbe",
    "NetworkProbe",
    "OptionalDependenciesProbe",
    "ResourcesProbe",
    "RuntimeProbe",
    "ServicesProbe",
    "StartupProbe",
    "default_probes",
    "mask_secret",
]
