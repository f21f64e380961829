from __future__ import annotations

import time
from typing import Any, Sequence

import requests

from weekly_seo_dashboard.config import DashboardConfig
from weekly_seo_dashboard.models import WeeklyRow


WEEKLY_COLUMNS = (
    "week_ending",
    "gsc_impressions",
    "gsc_clicks",
    "gsc_ctr",
    "gsc_position",
    "amplitude_conversions",
)
NO_ROWS_ERROR_CODE = "PGRST116"


class SupabaseError(RuntimeError):
    def __init__(self, message: str, status_code: int | None = None, code: str = "") -> None:
        super().__init__(message)
        self.status_code = status_code
        self.code = code


def _in_filter(values: Sequence[Any]) -> str:
    quoted = ",".join(f'"{value}"' for value in values)
    return f"in.({quoted})"


class SupabaseMetricsClient:
    """Read-only access to the weekly metrics tables through PostgREST."""

    TRANSIENT_STATUS = frozenset({502, 503, 504, 520})

    def __init__(
        self,
        *,
        url: str,
        anon_key: str,
        metrics_table: str = "blog_articles_metrics",
        cluster_metrics_table: str = "cluster_weekly_metrics",
        cluster_runs_table: str = "clustering_runs",
        cluster_urls_rpc: str = "get_cluster_urls_metrics",
        cluster_leaderboard_rpc: str = "get_cluster_leaderboard",
        timeout_sec: float = 15.0,
        max_retries: int = 2,
    ) -> None:
        self.url = url.strip().rstrip("/")
        self.anon_key = anon_key.strip()
        self.metrics_table = metrics_table
        self.cluster_metrics_table = cluster_metrics_table
        self.cluster_runs_table = cluster_runs_table
        self.cluster_urls_rpc = cluster_urls_rpc
        self.cluster_leaderboard_rpc = cluster_leaderboard_rpc
        self.timeout_sec = max(1.0, float(timeout_sec))
        self.max_retries = max(0, int(max_retries))

    @classmethod
    def from_config(cls, config: DashboardConfig) -> "SupabaseMetricsClient":
        url, anon_key = config.require_backend()
        return cls(
            url=url,
            anon_key=anon_key,
            metrics_table=config.metrics_table,
            cluster_metrics_table=config.cluster_metrics_table,
            cluster_runs_table=config.cluster_runs_table,
            cluster_urls_rpc=config.cluster_urls_rpc,
            cluster_leaderboard_rpc=config.cluster_leaderboard_rpc,
            timeout_sec=config.request_timeout_sec,
            max_retries=config.max_retries,
        )

    def _headers(self, extra: dict[str, str] | None = None) -> dict[str, str]:
        headers = {
            "apikey": self.anon_key,
            "Authorization": f"Bearer {self.anon_key}",
            "Accept": "application/json",
        }
        if extra:
            headers.update(extra)
        return headers

    @staticmethod
    def _backoff_delay(attempt: int) -> float:
        return min(0.15 * 2 ** (attempt - 1), 0.5)

    def _send(
        self,
        method: str,
        path: str,
        *,
        params: dict[str, str] | None = None,
        payload: dict[str, Any] | None = None,
        headers: dict[str, str] | None = None,
    ) -> requests.Response:
        endpoint = f"{self.url}/rest/v1/{path.lstrip('/')}"
        attempt = 0
        while True:
            try:
                if method == "POST":
                    response = requests.post(
                        endpoint,
                        params=params,
                        json=payload,
                        headers=self._headers(headers),
                        timeout=self.timeout_sec,
                    )
                else:
                    response = requests.get(
                        endpoint,
                        params=params,
                        headers=self._headers(headers),
                        timeout=self.timeout_sec,
                    )
            except requests.RequestException as exc:
                if attempt >= self.max_retries:
                    raise SupabaseError(f"Supabase request failed: {path} | {exc}") from exc
                attempt += 1
                time.sleep(self._backoff_delay(attempt))
                continue

            if response.status_code in self.TRANSIENT_STATUS and attempt < self.max_retries:
                attempt += 1
                time.sleep(self._backoff_delay(attempt))
                continue
            return response

    @staticmethod
    def _error_from_response(response: requests.Response, path: str) -> SupabaseError:
        code = ""
        message = response.text[:300]
        try:
            body = response.json()
        except ValueError:
            body = None
        if isinstance(body, dict):
            code = str(body.get("code", "") or "")
            message = str(body.get("message", "") or message)
        return SupabaseError(
            f"Supabase request failed: {path} | HTTP {response.status_code} | {message}",
            status_code=response.status_code,
            code=code,
        )

    def _request_rows(
        self,
        method: str,
        path: str,
        *,
        params: dict[str, str] | None = None,
        payload: dict[str, Any] | None = None,
    ) -> list[dict[str, Any]]:
        response = self._send(method, path, params=params, payload=payload)
        if response.status_code >= 400:
            raise self._error_from_response(response, path)
        body = response.json()
        if isinstance(body, list):
            return [row for row in body if isinstance(row, dict)]
        if isinstance(body, dict):
            return [body]
        return []

    def available_weeks(self) -> list[str]:
        """Distinct week-ending dates, newest first."""
        rows = self._request_rows(
            "GET",
            self.metrics_table,
            params={"select": "week_ending", "order": "week_ending.desc"},
        )
        weeks = {str(row.get("week_ending") or "").strip() for row in rows}
        return sorted((week for week in weeks if week), reverse=True)

    def fetch_weekly_metrics(self, weeks: Sequence[str]) -> list[WeeklyRow]:
        if not weeks:
            return []
        rows = self._request_rows(
            "GET",
            self.metrics_table,
            params={
                "select": ",".join(WEEKLY_COLUMNS),
                "week_ending": _in_filter(sorted(set(weeks))),
                "order": "week_ending.asc",
            },
        )
        return [WeeklyRow.from_mapping(row) for row in rows]

    def fetch_cluster_weekly_metrics(
        self,
        run_id: str,
        cluster_id: int,
        weeks: Sequence[str],
    ) -> list[WeeklyRow]:
        if not weeks:
            return []
        rows = self._request_rows(
            "GET",
            self.cluster_metrics_table,
            params={
                "select": ",".join(WEEKLY_COLUMNS),
                "run_id": f"eq.{run_id}",
                "cluster_id": f"eq.{int(cluster_id)}",
                "week_ending": _in_filter(sorted(set(weeks))),
                "order": "week_ending.asc",
            },
        )
        return [WeeklyRow.from_mapping(row) for row in rows]

    def fetch_latest_run_id(self) -> str | None:
        rows = self._request_rows(
            "GET",
            self.cluster_runs_table,
            params={"select": "id", "order": "created_at.desc", "limit": "1"},
        )
        if not rows or rows[0].get("id") is None:
            return None
        return str(rows[0]["id"])

    def fetch_cluster_url_metrics(
        self,
        run_id: str,
        cluster_id: int,
        weeks: Sequence[str],
        limit: int = 200,
        offset: int = 0,
    ) -> list[dict[str, Any]]:
        """Per-URL aggregates with their `_delta_pct` / `_delta` companions."""
        if not weeks:
            return []
        return self._request_rows(
            "POST",
            f"rpc/{self.cluster_urls_rpc}",
            payload={
                "p_run_id": run_id,
                "p_cluster_id": int(cluster_id),
                "p_weeks": sorted(set(weeks)),
                "p_limit": max(1, int(limit)),
                "p_offset": max(0, int(offset)),
            },
        )

    def fetch_cluster_leaderboard(self, run_id: str, weeks: Sequence[str]) -> list[dict[str, Any]]:
        """Per-cluster aggregates for a run.

        Rows carry `clicks`, `impressions`, `conversions`, `ctr_average` and
        `position_average` with their `_delta_pct` / `_delta` companions.
        """
        if not weeks:
            return []
        return self._request_rows(
            "POST",
            f"rpc/{self.cluster_leaderboard_rpc}",
            payload={"p_run_id": run_id, "p_weeks": sorted(set(weeks))},
        )

    def health_check(self) -> dict[str, Any]:
        started = time.monotonic()
        result: dict[str, Any] = {"status": "healthy", "database": "connected"}
        try:
            response = self._send(
                "GET",
                self.metrics_table,
                params={"select": "week_ending", "limit": "1"},
                headers={"Accept": "application/vnd.pgrst.object+json"},
            )
            if response.status_code >= 400:
                error = self._error_from_response(response, self.metrics_table)
                # An empty table still proves the database is reachable.
                if error.code != NO_ROWS_ERROR_CODE:
                    result = {
                        "status": "unhealthy",
                        "database": "unreachable",
                        "error": str(error),
                    }
        except SupabaseError as exc:
            result = {"status": "unhealthy", "database": "unreachable", "error": str(exc)}
        result["response_time_ms"] = int((time.monotonic() - started) * 1000)
        return result
