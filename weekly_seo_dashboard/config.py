from __future__ import annotations

import os
from dataclasses import dataclass


class ConfigurationError(RuntimeError):
    pass


def _env(name: str, default: str = "") -> str:
    raw = os.environ.get(name)
    if raw is None:
        return default.strip()
    value = raw.strip()
    placeholder = f"{name}="
    unquoted = value.strip("'\"").strip()
    if unquoted.lower() == placeholder.lower():
        return default.strip()
    return value if value else default.strip()


def _env_first(*names: str) -> str:
    for name in names:
        value = _env(name)
        if value:
            return value
    return ""


def _env_float(name: str, default: float) -> float:
    raw = _env(name)
    return float(raw) if raw else default


def _env_int(name: str, default: int) -> int:
    raw = _env(name)
    return int(raw) if raw else default


def _env_bool(name: str, default: bool) -> bool:
    raw = _env(name)
    if not raw:
        return default
    return raw.lower() in {"1", "true", "yes", "on"}


@dataclass(frozen=True)
class DashboardConfig:
    environment: str
    supabase_url: str
    supabase_anon_key: str

    metrics_table: str
    cluster_metrics_table: str
    cluster_runs_table: str
    cluster_urls_rpc: str
    cluster_leaderboard_rpc: str
    request_timeout_sec: float
    max_retries: int
    telemetry_enabled: bool

    @classmethod
    def from_env(cls) -> "DashboardConfig":
        # Only public (anon/publishable) keys are read; service-role keys never are.
        environment = _env("SUPABASE_ENVIRONMENT", "production").lower()

        prod_url = _env("NEXT_PUBLIC_SUPABASE_URL")
        prod_anon_key = _env_first(
            "NEXT_PUBLIC_SUPABASE_ANON_KEY",
            "NEXT_PUBLIC_SUPABASE_PUBLISHABLE_OR_ANON_KEY",
        )
        url = prod_url
        anon_key = prod_anon_key
        if environment == "staging":
            url = _env_first("SUPABASE_URL_STAGING", "NEXT_PUBLIC_SUPABASE_URL_STAGING") or prod_url
            anon_key = (
                _env_first(
                    "NEXT_PUBLIC_SUPABASE_ANON_KEY_STAGING",
                    "NEXT_PUBLIC_SUPABASE_PUBLISHABLE_OR_ANON_KEY_STAGING",
                )
                or prod_anon_key
            )

        return cls(
            environment=environment,
            supabase_url=url.rstrip("/"),
            supabase_anon_key=anon_key,
            metrics_table=_env("METRICS_TABLE", "blog_articles_metrics"),
            cluster_metrics_table=_env("CLUSTER_METRICS_TABLE", "cluster_weekly_metrics"),
            cluster_runs_table=_env("CLUSTER_RUNS_TABLE", "clustering_runs"),
            cluster_urls_rpc=_env("CLUSTER_URLS_RPC", "get_cluster_urls_metrics"),
            cluster_leaderboard_rpc=_env("CLUSTER_LEADERBOARD_RPC", "get_cluster_leaderboard"),
            request_timeout_sec=_env_float("SUPABASE_TIMEOUT_SEC", 15.0),
            max_retries=max(0, _env_int("SUPABASE_MAX_RETRIES", 2)),
            telemetry_enabled=_env_bool("TELEMETRY_ENABLED", False),
        )

    @property
    def backend_enabled(self) -> bool:
        return bool(self.supabase_url and self.supabase_anon_key)

    def require_backend(self) -> tuple[str, str]:
        if not self.backend_enabled:
            raise ConfigurationError(
                "Missing Supabase public env vars (url or anon key). Provide "
                "NEXT_PUBLIC_SUPABASE_URL + NEXT_PUBLIC_SUPABASE_ANON_KEY"
                + (" or their *_STAGING variants." if self.environment == "staging" else ".")
            )
        return self.supabase_url, self.supabase_anon_key
