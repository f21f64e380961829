from __future__ import annotations

from dataclasses import asdict, dataclass, replace

from weekly_seo_dashboard.deltas import calculate_metric_deltas
from weekly_seo_dashboard.formatting import (
    delta_tone,
    format_ctr,
    format_delta_badge,
    format_number,
    format_position,
)
from weekly_seo_dashboard.models import MetricsWithDelta


@dataclass(frozen=True)
class SummaryCard:
    key: str
    label: str
    value: str
    delta: str | None
    tone: str

    def to_dict(self) -> dict[str, str | None]:
        return asdict(self)


def build_summary_cards(metrics: MetricsWithDelta) -> list[SummaryCard]:
    """Headline cards in dashboard order, deltas taken from the shared formulas.

    Without a previous period no card carries a delta.
    """
    deltas = calculate_metric_deltas(metrics, metrics.previous_period)
    cards = [
        SummaryCard(
            key="conversions",
            label="Conversões",
            value=format_number(metrics.conversions),
            delta=format_delta_badge(deltas.conversions_change, "percent"),
            tone=delta_tone(deltas.conversions_change),
        ),
        SummaryCard(
            key="impressions",
            label="Impressões",
            value=format_number(metrics.impressions),
            delta=format_delta_badge(deltas.impressions_change, "percent"),
            tone=delta_tone(deltas.impressions_change),
        ),
        SummaryCard(
            key="ctr",
            label="CTR",
            value=format_ctr(metrics.ctr),
            delta=format_delta_badge(deltas.ctr_change, "absolute", precision=2, suffix="p.p."),
            tone=delta_tone(deltas.ctr_change),
        ),
        SummaryCard(
            key="clicks",
            label="Cliques",
            value=format_number(metrics.clicks),
            delta=format_delta_badge(deltas.clicks_change, "percent"),
            tone=delta_tone(deltas.clicks_change),
        ),
        # position_change is already previous - current, so positive is better.
        SummaryCard(
            key="position",
            label="Posição Média",
            value=format_position(metrics.position),
            delta=format_delta_badge(deltas.position_change, "absolute", precision=1),
            tone=delta_tone(deltas.position_change),
        ),
    ]
    if metrics.previous_period is None:
        return [replace(card, delta=None, tone="neutral") for card in cards]
    return cards
