"""
Rich Logging Module for the PnL engine.

Installs a rich console handler for stdlib logging and renders portfolio
summaries (stats table, recent trades, pnl series) for terminal output.
"""
from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table
from rich.panel import Panel
from rich import box
from typing import List, Optional
import logging

from pnl.models import DashboardData, PnLDataPoint, Trade

console = Console()


def setup_logging(level: str = "INFO", console_: Optional[Console] = None) -> None:
    """Route stdlib logging through a RichHandler at the given level."""
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(message)s",
        datefmt="%H:%M:%S",
        handlers=[RichHandler(console=console_ or console, rich_tracebacks=True, show_path=False)],
        force=True,
    )
    # httpx logs every request at INFO
    logging.getLogger("httpx").setLevel(logging.WARNING)


def _money(value: float) -> str:
    color = "green" if value > 0 else "red" if value < 0 else "white"
    return f"[{color}]${value:,.2f}[/{color}]"


def create_styled_table(columns: List[str], title: Optional[str] = None, header_style: str = "bold cyan") -> Table:
    """Create consistently styled table with given columns."""
    table = Table(show_header=True, header_style=header_style, box=box.ROUNDED, title=title)
    for col in columns:
        table.add_column(col, style="cyan" if col == columns[0] else None)
    return table


def build_stats_table(dashboard: DashboardData) -> Table:
    stats = dashboard.stats
    table = create_styled_table(["Metric", "Value"], title="Portfolio")
    table.add_row("Total PnL", _money(stats.total_pnl))
    table.add_row("Realized PnL", f"{_money(stats.realized_pnl)} ({stats.realized_pnl_source})")
    table.add_row("Unrealized PnL", _money(stats.unrealized_pnl))
    table.add_row("Portfolio value", f"${stats.total_value:,.2f}")
    table.add_row("Volume", f"${stats.total_volume:,.2f}")
    table.add_row("Trades", str(stats.total_trades))
    table.add_row("Win rate", f"{stats.win_rate:.1f}%")
    table.add_row("Best / worst", f"{_money(stats.best_trade)} / {_money(stats.worst_trade)}")
    table.add_row("Win streak", str(stats.win_streak))
    table.add_row("Active / closed positions", f"{stats.active_positions} / {stats.closed_positions}")
    table.add_row("Ledger realized (check)", _money(stats.ledger_realized_pnl))
    table.add_row("FIFO realized (check)", _money(stats.fifo_realized_pnl))
    if stats.activity_truncated:
        table.add_row("Activity", "[yellow]truncated to recent window[/yellow]")
    if not stats.data_complete:
        table.add_row("Data", "[yellow]partial (upstream pages missing or capped)[/yellow]")
    return table


def build_trades_table(trades: List[Trade]) -> Table:
    table = create_styled_table(["Time", "Market", "Side", "Price", "Size", "Profit"], title="Recent trades")
    for trade in trades:
        table.add_row(
            trade.timestamp.strftime("%Y-%m-%d %H:%M"),
            trade.market[:48],
            trade.side.value,
            f"{trade.price:.3f}",
            f"{trade.size:,.2f}",
            _money(trade.profit) if trade.profit is not None else "-",
        )
    return table


def build_history_table(points: List[PnLDataPoint], max_rows: int = 12) -> Table:
    table = create_styled_table(["Date", "Cumulative PnL"], title="PnL history")
    step = max(1, len(points) // max_rows)
    shown = points[::step]
    if points and shown[-1] is not points[-1]:
        shown.append(points[-1])
    for point in shown:
        table.add_row(point.timestamp.strftime("%Y-%m-%d"), _money(point.value))
    return table


def render_dashboard(dashboard: DashboardData, console_: Optional[Console] = None) -> None:
    out = console_ or console
    profile = dashboard.profile
    title = f"{profile.username} ({profile.wallet})"
    if dashboard.is_placeholder:
        title += " [yellow]placeholder data[/yellow]"
    out.print(Panel(build_stats_table(dashboard), title=f"[bold blue]{title}[/bold blue]", border_style="blue"))
    if dashboard.pnl_history:
        out.print(build_history_table(dashboard.pnl_history))
    if dashboard.recent_trades:
        out.print(build_trades_table(dashboard.recent_trades))
