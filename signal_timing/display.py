"""
Rich terminal display for timing analysis results.
"""

from rich.console import Console
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from signal_timing.state import Direction, FinalSignal, TimingAnalysis


console = Console()

SIGNAL_COLORS = {
    FinalSignal.STRONG_BUY: "bold green",
    FinalSignal.BUY: "green",
    FinalSignal.HOLD: "yellow",
    FinalSignal.SELL: "red",
    FinalSignal.STRONG_SELL: "bold red",
}

TIMELINE_ROWS = 15


def display_results(analysis: TimingAnalysis) -> None:
    """Pretty-print a timing analysis to the terminal."""

    console.print()
    console.print(
        Panel.fit(
            f"[bold cyan]{analysis.ticker} 매매 타이밍 분석[/bold cyan]\n"
            f"거래 전략: {analysis.trading_style or '지정되지 않음'}",
            border_style="cyan",
        )
    )
    console.print()

    # ---- Recommended indicators ----
    indicators_table = Table(
        title="추천 기술 지표",
        show_header=True,
        header_style="bold magenta",
    )
    indicators_table.add_column("Indicator", style="cyan", width=16)
    indicators_table.add_column("Name", width=28)
    indicators_table.add_column("Params", width=48)

    for spec in analysis.recommended_indicators:
        indicators_table.add_row(
            spec.name.value,
            spec.full_name,
            ", ".join(f"{k}={v:g}" for k, v in spec.params.items()),
        )

    console.print(indicators_table)
    console.print()

    # ---- Consolidated timeline (most recent rows) ----
    timeline_table = Table(
        title=f"매매 신호 타임라인 (최근 {TIMELINE_ROWS}건)",
        show_header=True,
        header_style="bold magenta",
    )
    timeline_table.add_column("Date", style="cyan", width=12)
    timeline_table.add_column("Signal", width=8)
    timeline_table.add_column("Close", justify="right", width=12)
    timeline_table.add_column("Rationale", width=60)

    for event in analysis.consolidated_timeline[-TIMELINE_ROWS:]:
        color = "green" if event.direction == Direction.BUY else "red"
        timeline_table.add_row(
            event.date.isoformat(),
            Text(event.direction.value, style=f"bold {color}"),
            f"{event.close:,.2f}",
            event.rationale[:80] + "..." if len(event.rationale) > 80 else event.rationale,
        )

    if not analysis.consolidated_timeline:
        console.print("[dim]기간 내 매매 신호가 없습니다.[/dim]")
    else:
        console.print(timeline_table)
    console.print()

    # ---- Final signal ----
    color = SIGNAL_COLORS.get(analysis.final_signal, "white")
    console.print(
        Panel(
            analysis.rationale,
            title=f"[bold]{analysis.ticker}[/bold] — [{color}]{analysis.final_signal.value}[/{color}]",
            border_style=color.split()[-1],
        )
    )
    console.print()
