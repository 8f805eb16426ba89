"""Console formatting and logging setup shared by the engine and runner."""

import logging

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"


def format_currency(value: float) -> str:
    """-1234.5 -> -$1,234.50"""
    sign = "-" if value < 0 else ""
    return f"{sign}${abs(value):,.2f}"


def format_percentage(value: float) -> str:
    """Value already in percent: 12.345 -> 12.35%"""
    return f"{value:.2f}%"


def _format_value(key: str, value) -> str:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return str(value)
    if isinstance(value, int):
        return f"{value:,}"
    if key.endswith("_percent"):
        return format_percentage(value)
    if "balance" in key or key.startswith(("avg_", "largest_")):
        return format_currency(value)
    return f"{value:,.4f}"


def format_metrics_table(metrics: dict, title: str = "Backtest Results", width: int = 50) -> str:
    """Render a flat metrics mapping as a console table.

    Labels come from the keys (``win_rate_percent`` -> ``Win Rate Percent``);
    values are formatted by key suffix and type.
    """
    rule = "=" * width
    lines = [f"\n{rule}", f"  {title}", rule]
    for key, value in metrics.items():
        label = key.replace("_", " ").title()
        lines.append(f"  {label:<30} {_format_value(key, value):>{width - 32}}")
    lines.append(f"{rule}\n")
    return "\n".join(lines)


def setup_logging(level: str = "INFO") -> None:
    """Configure root logging for CLI runs."""
    logging.basicConfig(
        level=getattr(logging, level.upper()),
        format=LOG_FORMAT,
        datefmt="%Y-%m-%d %H:%M:%S",
    )
