"""Application configuration and environment loading."""

import os
from dataclasses import dataclass, field, replace
from pathlib import Path

from dotenv import load_dotenv

DEFAULT_WORKERS = 5


@dataclass(frozen=True)
class PrometheusConfig:
    """Time-series backend connection settings."""

    url: str | None = None
    token: str | None = None
    timeout_seconds: float = 30.0
    max_retries: int = 2


@dataclass(frozen=True)
class ExplorerConfig:
    """Top-level config shared by both report modes."""

    kubeconfig: Path | None = None
    prometheus: PrometheusConfig = field(default_factory=PrometheusConfig)
    workers: int = DEFAULT_WORKERS
    log_level: str = "WARNING"

    @property
    def prometheus_url(self) -> str | None:
        """Return Prometheus base URL."""
        return self.prometheus.url

    @property
    def has_prometheus(self) -> bool:
        """Return whether historical mode has a backend configured."""
        return bool(self.prometheus_url)

    def with_overrides(
        self,
        *,
        kubeconfig: Path | None = None,
        prometheus_url: str | None = None,
        workers: int | None = None,
    ) -> "ExplorerConfig":
        """Return a copy with CLI flag values applied over the environment."""
        updated = self
        if kubeconfig is not None:
            updated = replace(updated, kubeconfig=kubeconfig)
        if prometheus_url:
            updated = replace(
                updated, prometheus=replace(updated.prometheus, url=prometheus_url)
            )
        if workers is not None:
            updated = replace(updated, workers=workers)
        return updated


def _env_number(name: str, default: str, cast: type[int] | type[float]) -> int | float:
    raw = os.getenv(name, default)
    try:
        return cast(raw)
    except ValueError as exc:
        raise ValueError(f"{name} must be a number, got {raw!r}") from exc


def load_config(env_path: Path = Path(".env")) -> ExplorerConfig:
    """Load config from environment and optional .env file."""
    load_dotenv(env_path, override=False)
    kubeconfig_raw = os.getenv("KUBECONFIG")
    # kubectl resolves multi-file KUBECONFIG lists on its own
    if kubeconfig_raw and os.pathsep in kubeconfig_raw:
        kubeconfig_raw = None
    return ExplorerConfig(
        kubeconfig=Path(kubeconfig_raw) if kubeconfig_raw else None,
        prometheus=PrometheusConfig(
            url=os.getenv("PROMETHEUS_URL") or None,
            token=os.getenv("PROMETHEUS_TOKEN") or None,
            timeout_seconds=float(
                _env_number("PROMETHEUS_TIMEOUT_SECONDS", "30", float)
            ),
            max_retries=int(_env_number("PROMETHEUS_MAX_RETRIES", "2", int)),
        ),
        workers=int(_env_number("KRE_WORKERS", str(DEFAULT_WORKERS), int)),
        log_level=os.getenv("KRE_LOG_LEVEL", "WARNING"),
    )
