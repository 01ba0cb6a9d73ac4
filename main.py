"""
Signal Timing: command-line entry point.

Usage:
    python main.py --ticker AAPL
    python main.py --ticker 삼성전자 --strategy "단기 변동성 매매"
"""

import argparse
import sys
import time

from dotenv import load_dotenv
from rich.console import Console
from rich.panel import Panel

from signal_timing.config import ConfigurationError, get_settings
from signal_timing.display import display_results
from signal_timing.errors import TimingError
from signal_timing.graph import run_timing_analysis
from signal_timing.logging_config import setup_logging

load_dotenv()
console = Console()


def main():
    parser = argparse.ArgumentParser(
        description="AI-assisted trading-timing analysis with historical buy/sell signals"
    )
    parser.add_argument(
        "--ticker",
        type=str,
        required=True,
        help="Ticker symbol or company name (e.g., AAPL, 005930.KS, 삼성전자)",
    )
    parser.add_argument(
        "--strategy",
        type=str,
        default=None,
        help="Trading style to tailor the indicators to (e.g., 단기 변동성 매매)",
    )
    parser.add_argument(
        "--no-resolve",
        action="store_true",
        help="Do not fall back to AI ticker conversion for unknown tickers",
    )
    parser.add_argument(
        "--log-level",
        type=str,
        default=None,
        help="Logging level (default: LOG_LEVEL or INFO)",
    )

    args = parser.parse_args()
    try:
        setup_logging(args.log_level or get_settings().log_level, rich=True)
    except ConfigurationError as e:
        console.print(f"[bold red]Configuration error:[/bold red] {e}")
        sys.exit(1)

    console.print()
    console.print(
        Panel.fit(
            "[bold cyan]Signal Timing[/bold cyan]\n"
            f"Ticker: [bold]{args.ticker}[/bold]\n"
            f"Strategy: [bold]{args.strategy or '지정되지 않음'}[/bold]",
            border_style="cyan",
        )
    )
    console.print()

    start_time = time.time()

    with console.status("[bold green]Running timing analysis..."):
        try:
            analysis = run_timing_analysis(
                args.ticker,
                trading_style=args.strategy,
                resolve_ticker=not args.no_resolve,
            )
        except TimingError as e:
            console.print(f"\n[bold red]{e.kind}:[/bold red] {e.message}")
            sys.exit(1)
        except ConfigurationError as e:
            console.print(f"\n[bold red]Configuration error:[/bold red] {e}")
            console.print(
                "\nMake sure your LLM credentials are set in your .env file."
            )
            sys.exit(1)

    elapsed = time.time() - start_time
    console.print(f"[dim]Analysis completed in {elapsed:.1f}s[/dim]\n")

    display_results(analysis)


if __name__ == "__main__":
    main()
