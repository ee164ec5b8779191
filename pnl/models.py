"""
Domain models for the PnL engine.

Plain dataclasses: upstream records after normalization, and the derived
results of the ledger, FIFO matcher, history reconstructor and aggregator.
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional


class ActivityKind(str, Enum):
    DEPOSIT = "DEPOSIT"
    WITHDRAWAL = "WITHDRAWAL"
    CONVERSION = "CONVERSION"
    TRADE = "TRADE"
    REDEEM = "REDEEM"
    REWARD = "REWARD"
    CLAIM = "CLAIM"
    FEE = "FEE"
    OTHER = "OTHER"


class TradeSide(str, Enum):
    BUY = "BUY"
    SELL = "SELL"


class Outcome(str, Enum):
    YES = "YES"
    NO = "NO"


class PositionStatus(str, Enum):
    ACTIVE = "ACTIVE"
    CLOSED = "CLOSED"


@dataclass(frozen=True)
class ActivityEvent:
    """One cash-affecting action recorded upstream."""
    kind: ActivityKind
    amount: float
    timestamp: datetime
    side: Optional[TradeSide] = None
    market: Optional[str] = None
    outcome: Optional[str] = None


@dataclass(frozen=True)
class Trade:
    id: str
    timestamp: datetime
    market: str
    side: TradeSide
    outcome: Outcome
    price: float
    size: float
    profit: Optional[float] = None

    @property
    def notional(self) -> float:
        return self.price * self.size


@dataclass(frozen=True)
class Position:
    id: str
    market: str
    market_id: str
    outcome: str
    entry_price: float
    current_price: float
    size: float
    unrealized_pnl: float
    status: PositionStatus
    opened_at: datetime

    @property
    def current_value(self) -> float:
        return self.current_price * self.size


@dataclass(frozen=True)
class ClosedPositionRecord:
    """A closed position as reported upstream. Never an exhaustive list."""
    market: str
    outcome: str
    realized_pnl: float
    end_date: Optional[datetime] = None
    title: str = ""
    token_id: Optional[str] = None


@dataclass(frozen=True)
class PnLDataPoint:
    timestamp: datetime
    value: float


@dataclass
class FetchResult:
    """Best-effort output of one paginated fetch."""
    records: List[Dict[str, Any]] = field(default_factory=list)
    complete: bool = False
    pages_fetched: int = 0
    missing_pages: List[int] = field(default_factory=list)
    rate_limited: int = 0


@dataclass(frozen=True)
class LedgerBalance:
    cash_balance: float
    realized_pnl: float
    net_deposits: float
    deposits: float
    withdrawals: float
    events_processed: int
    events_total: int

    @property
    def truncated(self) -> bool:
        return self.events_processed < self.events_total


@dataclass
class TradeMetrics:
    """Result of FIFO matching over a trade list."""
    realized_pnl: float = 0.0
    win_rate: float = 0.0
    best_trade: float = 0.0
    worst_trade: float = 0.0
    win_streak: int = 0
    wins: int = 0
    losses: int = 0
    matched_sells: int = 0
    unmatched_sell_size: float = 0.0
    trades_with_pnl: List[Trade] = field(default_factory=list)


@dataclass
class AuthoritativePnL:
    """PnL reported by sources that see the subject's full history."""
    realized_pnl: float = 0.0
    unrealized_pnl: float = 0.0
    portfolio_value: float = 0.0
    open_positions: int = 0
    closed_positions: int = 0
    closed_position_pnls: List[float] = field(default_factory=list)
    complete: bool = False

    @property
    def total_pnl(self) -> float:
        return self.realized_pnl + self.unrealized_pnl


@dataclass(frozen=True)
class LeaderboardEntry:
    volume: float = 0.0
    pnl: float = 0.0
    rank: Optional[int] = None
    username: Optional[str] = None
    x_username: Optional[str] = None


@dataclass
class PortfolioStats:
    total_value: float = 0.0
    total_pnl: float = 0.0
    realized_pnl: float = 0.0
    unrealized_pnl: float = 0.0
    total_volume: float = 0.0
    total_trades: int = 0
    win_rate: float = 0.0
    best_trade: float = 0.0
    worst_trade: float = 0.0
    active_positions: int = 0
    closed_positions: int = 0
    open_positions_value: float = 0.0
    win_streak: int = 0
    cash_balance: float = 0.0
    realized_pnl_source: str = "none"
    ledger_realized_pnl: float = 0.0
    fifo_realized_pnl: float = 0.0
    activity_truncated: bool = False
    data_complete: bool = True


@dataclass(frozen=True)
class Profile:
    username: str
    wallet: str
    display_name: Optional[str] = None
    profile_image: Optional[str] = None
    bio: Optional[str] = None
    rank: Optional[int] = None


@dataclass(frozen=True)
class Achievement:
    id: str
    name: str
    description: str
    icon: str
    unlocked: bool
    progress: float
    total: float


@dataclass
class DashboardData:
    profile: Profile
    stats: PortfolioStats
    pnl_history: List[PnLDataPoint]
    positions: List[Position]
    recent_trades: List[Trade]
    achievements: List[Achievement]
    is_placeholder: bool = False
