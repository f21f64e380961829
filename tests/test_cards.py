from weekly_seo_dashboard.aggregation import calculate_metrics_with_deltas
from weekly_seo_dashboard.cards import build_summary_cards
from weekly_seo_dashboard.models import WeeklyRow


SELECTED = WeeklyRow("2024-02-04", impressions=1000, clicks=50, conversions=5, position=10.0)
PREVIOUS = WeeklyRow("2024-01-28", impressions=800, clicks=32, conversions=4, position=12.0)


def test_cards_show_week_over_week_badges() -> None:
    metrics = calculate_metrics_with_deltas([SELECTED], [SELECTED, PREVIOUS])

    cards = {card.key: card for card in build_summary_cards(metrics)}

    assert [card.key for card in build_summary_cards(metrics)] == [
        "conversions",
        "impressions",
        "ctr",
        "clicks",
        "position",
    ]
    assert cards["impressions"].value == "1.000"
    assert cards["impressions"].delta == "+25%"
    assert cards["ctr"].value == "5%"
    assert cards["ctr"].delta == "+1p.p."
    assert cards["position"].value == "10"
    assert cards["position"].delta == "+2"
    assert cards["position"].tone == "positive"
    assert cards["conversions"].delta == "+25%"
    assert cards["clicks"].delta == "+56,3%"


def test_cards_without_previous_period_have_no_delta() -> None:
    metrics = calculate_metrics_with_deltas([SELECTED])

    cards = build_summary_cards(metrics)

    assert all(card.delta is None for card in cards)
    assert all(card.tone == "neutral" for card in cards)
    assert cards[0].to_dict() == {
        "key": "conversions",
        "label": "Conversões",
        "value": "5",
        "delta": None,
        "tone": "neutral",
    }
