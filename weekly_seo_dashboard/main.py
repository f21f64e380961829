from __future__ import annotations

import argparse
import json
import math
import time
from concurrent.futures import ThreadPoolExecutor
from datetime import date
from pathlib import Path
from typing import Any, Mapping

from dotenv import find_dotenv, load_dotenv

from weekly_seo_dashboard.aggregation import calculate_metrics_with_deltas
from weekly_seo_dashboard.cards import build_summary_cards
from weekly_seo_dashboard.clients.supabase_client import SupabaseError, SupabaseMetricsClient
from weekly_seo_dashboard.config import ConfigurationError, DashboardConfig
from weekly_seo_dashboard.deltas import calculate_metric_deltas
from weekly_seo_dashboard.formatting import (
    format_compact_number,
    format_ctr,
    format_number,
    format_percentage_change,
    format_percentage_points,
    format_position,
    format_position_change,
    format_week_display,
    is_significant_change,
)
from weekly_seo_dashboard.models import MetricsWithDelta
from weekly_seo_dashboard.table_sorting import delta_field_for, resolve_sort_value, sort_rows
from weekly_seo_dashboard.time_windows import (
    parse_week_selection,
    resolve_delta_weeks,
    week_query_param,
)


# Column names per table: URL rows use backend names, cluster rows canonical ones.
URL_COLUMNS = {
    "clicks": "gsc_clicks",
    "impressions": "gsc_impressions",
    "conversions": "amplitude_conversions",
    "ctr": "gsc_ctr",
    "position": "gsc_position",
}
CLUSTER_COLUMNS = {
    "clicks": "clicks",
    "impressions": "impressions",
    "conversions": "conversions",
    "ctr": "ctr_average",
    "position": "position_average",
}


def _parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Weekly SEO content dashboard")
    parser.add_argument("--weeks", help="Comma-separated week-ending dates (default: all weeks).")
    parser.add_argument("--week", help="Single week-ending date (legacy form of --weeks).")
    parser.add_argument("--cluster-id", dest="cluster_id", type=int, help="Show one content cluster.")
    parser.add_argument("--run-id", dest="run_id", help="Clustering run (default: latest run).")
    parser.add_argument("--urls", action="store_true", help="Print the cluster URL table.")
    parser.add_argument(
        "--clusters",
        action="store_true",
        help="Print the cluster leaderboard of the clustering run.",
    )
    parser.add_argument(
        "--sort",
        help="Table sort column (default: gsc_clicks for URLs, clicks for clusters).",
    )
    parser.add_argument(
        "--delta-mode",
        dest="delta_mode",
        action="store_true",
        help="Sort tables by period-over-period deltas.",
    )
    parser.add_argument("--ascending", action="store_true", help="Sort ascending.")
    parser.add_argument("--limit", type=int, default=50, help="Maximum table rows to print.")
    parser.add_argument("--json", dest="as_json", action="store_true", help="Print JSON output.")
    parser.add_argument(
        "--health-check",
        dest="health_check",
        action="store_true",
        help="Check database connectivity and exit.",
    )
    parser.add_argument(
        "--telemetry-path",
        dest="telemetry_path",
        help="Append an observability JSONL line for this run.",
    )
    return parser.parse_args(argv)


def _json_number(value: float) -> float | str:
    if math.isfinite(value):
        return value
    if math.isnan(value):
        return "nan"
    return "inf" if value > 0 else "-inf"


def _json_safe(payload: Any) -> Any:
    if isinstance(payload, float):
        return _json_number(payload)
    if isinstance(payload, dict):
        return {key: _json_safe(value) for key, value in payload.items()}
    if isinstance(payload, list):
        return [_json_safe(value) for value in payload]
    return payload


def _fetch_rows(
    client: SupabaseMetricsClient,
    *,
    selected: list[str],
    delta_weeks: list[str],
    run_id: str | None,
    cluster_id: int | None,
    include_urls: bool,
    include_clusters: bool = False,
) -> tuple[list, list, list[dict[str, Any]], list[dict[str, Any]]]:
    """Fetch base, comparison, URL and cluster rows in parallel."""

    def weekly(weeks: list[str]) -> list:
        if cluster_id is None or run_id is None:
            return client.fetch_weekly_metrics(weeks)
        return client.fetch_cluster_weekly_metrics(run_id, cluster_id, weeks)

    with ThreadPoolExecutor(max_workers=4) as executor:
        base_future = executor.submit(weekly, selected)
        delta_future = executor.submit(weekly, delta_weeks)
        urls_future = None
        if include_urls and run_id is not None and cluster_id is not None:
            urls_future = executor.submit(
                client.fetch_cluster_url_metrics, run_id, cluster_id, selected
            )
        clusters_future = None
        if include_clusters and run_id is not None:
            clusters_future = executor.submit(client.fetch_cluster_leaderboard, run_id, selected)
        base_rows = base_future.result()
        delta_rows = delta_future.result()
        url_rows = urls_future.result() if urls_future is not None else []
        cluster_rows = clusters_future.result() if clusters_future is not None else []
    return base_rows, delta_rows, url_rows, cluster_rows


def _row_name(row: Mapping[str, Any]) -> str:
    if row.get("name") or row.get("url"):
        return str(row.get("name") or row.get("url"))
    if row.get("cluster_name"):
        return str(row["cluster_name"])
    if row.get("cluster_id") is not None:
        return f"Cluster {row['cluster_id']}"
    return ""


def _table_rows(
    rows: list[dict[str, Any]],
    *,
    sort_field: str,
    delta_mode: bool,
    ascending: bool,
    limit: int,
) -> list[dict[str, Any]]:
    ordered = sort_rows(rows, sort_field, delta_mode=delta_mode, descending=not ascending)
    out: list[dict[str, Any]] = []
    for row in ordered[: max(0, limit)]:
        out.append(
            {
                "url": str(row.get("url", "")),
                "name": _row_name(row),
                "sort_value": resolve_sort_value(row, sort_field, delta_mode),
                "row": dict(row),
            }
        )
    return out


def _ratio(row: Mapping[str, Any], key: str) -> float | None:
    raw = row.get(key)
    if isinstance(raw, bool) or not isinstance(raw, (int, float)):
        return None
    return float(raw)


def _change_text(ratio: float | None) -> str:
    if ratio is None:
        return "-"
    return format_percentage_change(ratio * 100)


def _metric_line(row: Mapping[str, Any], columns: Mapping[str, str]) -> str:
    clicks_change = _ratio(row, delta_field_for(columns["clicks"])[0])
    impressions_change = _ratio(row, delta_field_for(columns["impressions"])[0])
    conversions_change = _ratio(row, delta_field_for(columns["conversions"])[0])
    # position deltas are stored as previous - current.
    position_gain = _ratio(row, delta_field_for(columns["position"])[0])
    position_text = format_position_change(-position_gain) if position_gain is not None else "-"
    marker = " *" if clicks_change is not None and is_significant_change(clicks_change * 100) else ""
    return (
        f"clicks={format_number(resolve_sort_value(row, columns['clicks'], False))} "
        f"({_change_text(clicks_change)}) "
        f"| impressions={format_compact_number(resolve_sort_value(row, columns['impressions'], False))} "
        f"({_change_text(impressions_change)}) "
        f"| conversions={format_number(resolve_sort_value(row, columns['conversions'], False))} "
        f"({_change_text(conversions_change)}) "
        f"| ctr={format_ctr(resolve_sort_value(row, columns['ctr'], False))} "
        f"({format_percentage_points(resolve_sort_value(row, columns['ctr'], True))}) "
        f"| position={format_position(resolve_sort_value(row, columns['position'], False))} "
        f"({position_text}){marker}"
    )


def _print_cards(metrics: MetricsWithDelta, selected: list[str], delta_weeks: list[str]) -> None:
    if len(selected) == 1:
        print(f"Selected week: {format_week_display(selected[0])}")
    else:
        print(f"Selected weeks: {len(selected)} | {selected[0]} .. {selected[-1]}")
    if metrics.previous_period is None:
        print("Comparison: not available (fewer than two weeks).")
    else:
        print(f"Comparison weeks: {week_query_param(delta_weeks)}")
    for card in build_summary_cards(metrics):
        print(f"- {card.label}: {card.value} | delta={card.delta or '-'} | tone={card.tone}")


def _print_table(
    title: str,
    table: list[dict[str, Any]],
    columns: Mapping[str, str],
    sort_field: str,
    delta_mode: bool,
) -> None:
    delta_field, unit = delta_field_for(sort_field)
    mode_label = f"delta ({delta_field}, {unit.value})" if delta_mode else "absolute"
    print(f"{title} sorted by {sort_field} | mode={mode_label} | rows={len(table)}")
    for entry in table:
        print(f"- {entry['name']} | {_metric_line(entry['row'], columns)}")


def _write_telemetry(path: Path, payload: dict[str, Any]) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    with path.open("a", encoding="utf-8") as handle:
        handle.write(json.dumps(_json_safe(payload), ensure_ascii=False) + "\n")


def main(argv: list[str] | None = None) -> None:
    try:
        load_dotenv(find_dotenv(usecwd=True), override=False)
    except OSError:
        pass

    args = _parse_args(argv)
    config = DashboardConfig.from_env()
    try:
        client = SupabaseMetricsClient.from_config(config)
    except ConfigurationError as exc:
        raise SystemExit(str(exc)) from exc

    if args.health_check:
        health = client.health_check()
        print(json.dumps(health, ensure_ascii=False))
        if health.get("status") != "healthy":
            raise SystemExit(1)
        return

    started = time.monotonic()
    try:
        available = client.available_weeks()
        if not available:
            raise SystemExit("No weekly metrics found in the metrics table.")

        selected = parse_week_selection(args.weeks, args.week, available)
        if not selected:
            raise SystemExit("None of the requested weeks is available.")
        delta_weeks = resolve_delta_weeks(selected, available)

        if args.urls and args.cluster_id is None:
            raise SystemExit("--urls requires --cluster-id.")
        run_id = args.run_id
        if (args.cluster_id is not None or args.clusters) and not run_id:
            run_id = client.fetch_latest_run_id()
            if not run_id:
                raise SystemExit("No clustering run found.")

        base_rows, delta_rows, url_rows, cluster_rows = _fetch_rows(
            client,
            selected=selected,
            delta_weeks=delta_weeks,
            run_id=run_id,
            cluster_id=args.cluster_id,
            include_urls=args.urls,
            include_clusters=args.clusters,
        )
    except SupabaseError as exc:
        raise SystemExit(f"Run failed: {exc}") from exc

    metrics = calculate_metrics_with_deltas(base_rows, delta_rows)
    deltas = calculate_metric_deltas(metrics, metrics.previous_period)
    url_sort = args.sort or URL_COLUMNS["clicks"]
    cluster_sort = args.sort or CLUSTER_COLUMNS["clicks"]
    table_options = {"delta_mode": args.delta_mode, "ascending": args.ascending, "limit": args.limit}
    url_table = _table_rows(url_rows, sort_field=url_sort, **table_options) if args.urls else []
    cluster_table = (
        _table_rows(cluster_rows, sort_field=cluster_sort, **table_options) if args.clusters else []
    )

    if args.as_json:
        payload = {
            "selected_weeks": selected,
            "delta_weeks": delta_weeks,
            "cluster_id": args.cluster_id,
            "run_id": run_id,
            "metrics": metrics.to_dict(),
            "deltas": deltas.to_dict(),
            "cards": [card.to_dict() for card in build_summary_cards(metrics)],
        }
        if args.clusters:
            payload["clusters"] = cluster_table
        if args.urls:
            payload["urls"] = url_table
        print(json.dumps(_json_safe(payload), ensure_ascii=False, indent=2))
    else:
        _print_cards(metrics, selected, delta_weeks)
        if args.clusters:
            _print_table("Clusters", cluster_table, CLUSTER_COLUMNS, cluster_sort, args.delta_mode)
        if args.urls:
            _print_table("URLs", url_table, URL_COLUMNS, url_sort, args.delta_mode)

    telemetry_path = args.telemetry_path
    if not telemetry_path and config.telemetry_enabled:
        telemetry_path = str(
            Path("_telemetry") / f"{date.today().strftime('%Y_%m_%d')}_dashboard_observability.jsonl"
        )
    if telemetry_path:
        _write_telemetry(
            Path(telemetry_path),
            {
                "environment": config.environment,
                "weeks": week_query_param(selected),
                "selected_weeks": selected,
                "delta_weeks": delta_weeks,
                "cluster_id": args.cluster_id,
                "base_rows": len(base_rows),
                "delta_rows": len(delta_rows),
                "url_rows": len(url_rows),
                "cluster_rows": len(cluster_rows),
                "deltas": deltas.to_dict(),
                "runtime_sec": round(time.monotonic() - started, 3),
                "timestamp": time.time(),
            },
        )
        if not args.as_json:
            print(f"Observability log written: {telemetry_path}")


if __name__ == "__main__":
    main()
