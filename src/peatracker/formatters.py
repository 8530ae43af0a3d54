"""Number formatting and output formatters for different data formats."""

import csv
import json
from dataclasses import asdict
from io import StringIO
from typing import Protocol, Sequence

from .models import Deposit, DayPerformance, PerformanceStats, PeriodSummary

# fr-FR grouping uses a narrow no-break space; the currency symbol follows a no-break space
GROUP_SEPARATOR = "\u202f"
CURRENCY_SEPARATOR = "\u00a0"


def format_currency(value: float) -> str:
    """Format an amount in euros the French way, e.g. ``1 234,56 €``."""
    sign = "-" if round(value, 2) < 0 else ""
    digits = f"{abs(value):,.2f}".replace(",", GROUP_SEPARATOR).replace(".", ",")
    return f"{sign}{digits}{CURRENCY_SEPARATOR}€"


def format_percent(value: float) -> str:
    sign = "+" if value > 0 else ""
    return f"{sign}{value:.2f}%"


def format_signed_currency(value: float) -> str:
    sign = "+" if value > 0 else ""
    return sign + format_currency(value)


def calculate_gain(capital: float, performance_percent: float) -> float:
    return capital * (performance_percent / 100)


def calculate_performance(total_deposited: float, current_capital: float) -> float:
    """Overall return in percent, 0 when nothing was deposited."""
    if total_deposited == 0:
        return 0.0
    return (current_capital - total_deposited) / total_deposited * 100


class FormatterProtocol(Protocol):
    """Protocol for data formatters."""

    def format_deposits(self, deposits: Sequence[Deposit]) -> str:
        """Format deposit data."""
        ...

    def format_performances(self, performances: Sequence[DayPerformance]) -> str:
        """Format daily performance data."""
        ...

    def format_summary(self, summary: PeriodSummary) -> str:
        """Format period gains."""
        ...

    def format_stats(self, stats: PerformanceStats) -> str:
        """Format performance statistics."""
        ...


class TableFormatter:
    """Format data as aligned text tables."""

    @staticmethod
    def _format_performance_row(perf: DayPerformance) -> str:
        return (
            f"{perf.date:<12} {format_currency(perf.capital):>16} "
            f"{format_currency(perf.deposits_of_day):>14} "
            f"{format_signed_currency(perf.gain_amount):>15} "
            f"{format_percent(perf.gain_percent):>9}"
        )

    def format_deposits(self, deposits: Sequence[Deposit]) -> str:
        """Format deposits as table with total."""
        if not deposits:
            return "No deposits found."

        lines = []
        lines.append("\n" + "=" * 80)
        lines.append(f"{'Date':<12} {'Amount':>16} {'Note':<24} {'ID':<24}")
        lines.append("-" * 80)

        for dep in deposits:
            note = (dep.note or "")[:24]
            lines.append(
                f"{dep.date:<12} {format_currency(dep.amount):>16} {note:<24} {dep.id[:24]:<24}"
            )

        lines.append("=" * 80)
        total = sum(d.amount for d in deposits)
        lines.append(f"{'Total':<12} {format_currency(total):>16}")
        lines.append("=" * 80)
        return "\n".join(lines)

    def format_performances(self, performances: Sequence[DayPerformance]) -> str:
        """Format daily performances as table."""
        if not performances:
            return "No entries found."

        lines = []
        lines.append("\n" + "=" * 70)
        lines.append(
            f"{'Date':<12} {'Capital':>16} {'Deposits':>14} {'Gain':>15} {'Gain %':>9}"
        )
        lines.append("-" * 70)
        for perf in performances:
            lines.append(self._format_performance_row(perf))
        lines.append("=" * 70)
        return "\n".join(lines)

    def format_summary(self, summary: PeriodSummary) -> str:
        rows = [
            ("Current capital", format_currency(summary.current_capital)),
            ("Today", format_signed_currency(summary.today_gain)),
            ("This week", format_signed_currency(summary.week_gain)),
            ("Last week", format_signed_currency(summary.last_week_gain)),
            ("This month", format_signed_currency(summary.month_gain)),
            ("Last month", format_signed_currency(summary.last_month_gain)),
            ("This year", format_signed_currency(summary.year_gain)),
            ("Total", format_signed_currency(summary.total_gain)),
        ]
        lines = ["\n" + "=" * 40, f"Gains as of {summary.date}", "-" * 40]
        lines.extend(f"{label:<20} {value:>19}" for label, value in rows)
        lines.append("=" * 40)
        return "\n".join(lines)

    def format_stats(self, stats: PerformanceStats) -> str:
        lines = ["\n" + "=" * 70]
        if stats.best_day is None or stats.worst_day is None:
            lines.append("No performance recorded yet.")
        else:
            lines.append(
                f"{'Best day':<14} {stats.best_day.date:<12} "
                f"{format_percent(stats.best_day.gain_percent):>9}"
            )
            lines.append(
                f"{'Worst day':<14} {stats.worst_day.date:<12} "
                f"{format_percent(stats.worst_day.gain_percent):>9}"
            )
        lines.append("-" * 70)
        lines.append(f"{'Positive days':<14} {stats.positive_days:>22}")
        lines.append(f"{'Negative days':<14} {stats.negative_days:>22}")
        lines.append(
            f"{'Average':<14} {format_percent(stats.average_performance):>22}"
        )
        lines.append("=" * 70)
        return "\n".join(lines)


class JsonFormatter:
    """Format data as JSON."""

    def format_deposits(self, deposits: Sequence[Deposit]) -> str:
        return json.dumps([asdict(dep) for dep in deposits], indent=2)

    def format_performances(self, performances: Sequence[DayPerformance]) -> str:
        return json.dumps([asdict(perf) for perf in performances], indent=2)

    def format_summary(self, summary: PeriodSummary) -> str:
        return json.dumps(asdict(summary), indent=2)

    def format_stats(self, stats: PerformanceStats) -> str:
        return json.dumps(asdict(stats), indent=2)


class CsvFormatter:
    """Format data as CSV."""

    def format_deposits(self, deposits: Sequence[Deposit]) -> str:
        if not deposits:
            return ""

        output = StringIO()
        writer = csv.writer(output)
        writer.writerow(["id", "date", "amount", "note"])
        for dep in deposits:
            writer.writerow([dep.id, dep.date, dep.amount, dep.note or ""])
        return output.getvalue()

    def format_performances(self, performances: Sequence[DayPerformance]) -> str:
        if not performances:
            return ""

        output = StringIO()
        writer = csv.writer(output)
        writer.writerow(
            [
                "date",
                "capital",
                "previous_capital",
                "deposits_of_day",
                "gain_amount",
                "gain_percent",
            ]
        )
        for perf in performances:
            writer.writerow(
                [
                    perf.date,
                    perf.capital,
                    perf.previous_capital,
                    perf.deposits_of_day,
                    perf.gain_amount,
                    perf.gain_percent,
                ]
            )
        return output.getvalue()

    def format_summary(self, summary: PeriodSummary) -> str:
        data = asdict(summary)
        output = StringIO()
        writer = csv.writer(output)
        writer.writerow(list(data))
        writer.writerow(list(data.values()))
        return output.getvalue()

    def format_stats(self, stats: PerformanceStats) -> str:
        output = StringIO()
        writer = csv.writer(output)
        writer.writerow(
            [
                "best_day",
                "best_percent",
                "worst_day",
                "worst_percent",
                "positive_days",
                "negative_days",
                "average_performance",
            ]
        )
        best, worst = stats.best_day, stats.worst_day
        writer.writerow(
            [
                best.date if best else "",
                best.gain_percent if best else "",
                worst.date if worst else "",
                worst.gain_percent if worst else "",
                stats.positive_days,
                stats.negative_days,
                stats.average_performance,
            ]
        )
        return output.getvalue()


def get_formatter(format_type: str) -> FormatterProtocol:
    """Get formatter instance by type.

    Args:
        format_type: One of 'table', 'json', or 'csv'

    Returns:
        Formatter instance. Defaults to TableFormatter for unknown types.
    """
    formatters = {
        "table": TableFormatter(),
        "json": JsonFormatter(),
        "csv": CsvFormatter(),
    }
    return formatters.get(format_type.lower(), TableFormatter())
