"""pt-BR display formatting for metric values and deltas.

Dot is the thousands separator and comma the decimal separator. Invalid input
(None or NaN) renders as the neutral value of each formatter.
"""

from __future__ import annotations

import math
import re

from weekly_seo_dashboard.time_windows import week_range


NEAR_ZERO = 0.0005
NEW_LABEL = "novo"
NOT_AVAILABLE_LABEL = "N/A"


def _is_valid(value: float | None) -> bool:
    return value is not None and not math.isnan(value)


def _round_half_up(value: float, digits: int = 0) -> float:
    if not math.isfinite(value):
        return value
    factor = 10 ** digits
    return math.floor(abs(value) * factor + 0.5) / factor * (1 if value >= 0 else -1)


def _infinity(value: float) -> str:
    return "∞" if value > 0 else "-∞"


def _to_brazilian(text: str) -> str:
    return text.replace(",", "_").replace(".", ",").replace("_", ".")


def _format_decimal(value: float, decimals: int) -> str:
    if math.isinf(value):
        return _infinity(value)
    text = f"{_round_half_up(value, decimals):.{decimals}f}"
    text = re.sub(r"(\.\d*?[1-9])0+$", r"\1", text)
    text = re.sub(r"\.0+$", "", text)
    return _to_brazilian(text)


def _format_grouped(value: float, min_digits: int, max_digits: int) -> str:
    rounded = _round_half_up(value, max_digits)
    digits = min_digits if float(rounded).is_integer() else max_digits
    return _to_brazilian(f"{rounded:,.{digits}f}")


def format_number(value: float | None) -> str:
    if not _is_valid(value) or value == 0:
        return "0"
    if math.isinf(value):
        return _infinity(value)
    return _to_brazilian(f"{int(_round_half_up(value)):,}")


def format_compact_number(value: float | None) -> str:
    if not _is_valid(value) or value == 0:
        return "0"
    if math.isinf(value):
        return _infinity(value)
    magnitude = abs(value)
    if magnitude >= 1_000_000:
        return f"{_format_decimal(value / 1_000_000, 1)}M"
    if magnitude >= 10_000:
        return f"{int(_round_half_up(value / 1_000))}k"
    if magnitude >= 1_000:
        return f"{_format_decimal(value / 1_000, 1)}k"
    return str(int(_round_half_up(value)))


def format_ctr(value: float | None) -> str:
    """Decimal CTR (0-1) as a percentage, e.g. 0.04523 -> "4,52%"."""
    if not _is_valid(value):
        return "0%"
    percentage = value * 100
    if percentage == 0:
        return "0%"
    return f"{_format_decimal(percentage, 2)}%"


def format_position(value: float | None) -> str:
    if not _is_valid(value) or value == 0:
        return "0"
    return _format_decimal(value, 1)


def format_percentage_change(value: float | None) -> str:
    """Change already expressed in percent, e.g. 15.367 -> "+15,4%"."""
    if not _is_valid(value) or value == 0:
        return "0%"
    sign = "+" if value > 0 else "-"
    return f"{sign}{_format_decimal(abs(value), 1)}%"


def format_percentage_points(value: float | None) -> str:
    if not _is_valid(value) or value == 0:
        return "0pp"
    sign = "+" if value > 0 else "-"
    return f"{sign}{_format_decimal(abs(value), 1)}pp"


def format_position_change(value: float | None) -> str:
    # Negative means the page moved up the results.
    if not _is_valid(value) or abs(value) < 0.05:
        return "→ 0"
    arrow = "↑" if value < 0 else "↓"
    return f"{arrow} {_format_decimal(abs(value), 1)}"


def format_week_display(week_ending: str) -> str:
    window = week_range(week_ending)
    return f"{window.start.strftime('%d/%m')} - {window.end.strftime('%d/%m/%Y')}"


def format_delta_badge(
    value: float | None,
    variant: str = "percent",
    precision: int = 1,
    suffix: str = "",
    hide_if_zero: bool = True,
) -> str | None:
    """Signed badge text for a delta, or None when there is nothing to show.

    `variant="percent"` expects a ratio (0.25 -> "+25%"); `variant="absolute"`
    prints the value with up to `precision` decimals. Growth from a zero
    baseline (+inf) renders as "novo", NaN as "N/A".
    """
    if value is None:
        return None
    if math.isnan(value):
        return NOT_AVAILABLE_LABEL
    if math.isinf(value):
        return NEW_LABEL if value > 0 else NOT_AVAILABLE_LABEL

    magnitude = abs(value)
    is_zero = magnitude < NEAR_ZERO
    if hide_if_zero and is_zero:
        return None
    if is_zero:
        magnitude = 0.0

    if variant == "percent":
        display = f"{_format_grouped(magnitude * 100, 0, 1)}%"
    else:
        display = _format_grouped(magnitude, 0, precision)

    sign = "" if is_zero else ("+" if value > 0 else "-")
    return f"{sign}{display}{suffix}"


def delta_tone(value: float | None, inverted: bool = False) -> str:
    """Tone of a delta: positive, negative or neutral.

    `inverted` is for metrics where lower is better, such as position.
    """
    if not _is_valid(value) or value == 0:
        return "neutral"
    is_positive = value < 0 if inverted else value > 0
    return "positive" if is_positive else "negative"


def is_significant_change(value: float | None, threshold: float = 5) -> bool:
    if not _is_valid(value):
        return False
    return abs(value) >= threshold
