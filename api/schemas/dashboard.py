"""
Pydantic schemas for dashboard, pnl and user search endpoints
"""
from datetime import datetime
from typing import Optional, List
from pydantic import BaseModel, Field

from pnl.models import Outcome, PositionStatus, TradeSide


class ProfileResponse(BaseModel):
    """Resolved subject profile"""
    username: str
    wallet: str
    display_name: Optional[str] = None
    profile_image: Optional[str] = None
    bio: Optional[str] = None
    rank: Optional[int] = None

    class Config:
        from_attributes = True


class PortfolioStatsResponse(BaseModel):
    """Portfolio summary"""
    total_value: float = 0.0
    total_pnl: float = 0.0
    realized_pnl: float = 0.0
    unrealized_pnl: float = 0.0
    total_volume: float = 0.0
    total_trades: int = 0
    win_rate: float = Field(0.0, description="Percentage of winning closed trades")
    best_trade: float = 0.0
    worst_trade: float = 0.0
    active_positions: int = 0
    closed_positions: int = 0
    open_positions_value: float = 0.0
    win_streak: int = 0
    cash_balance: float = 0.0
    realized_pnl_source: str = Field("none", description="authoritative, fifo, ledger or none")
    ledger_realized_pnl: float = 0.0
    fifo_realized_pnl: float = 0.0
    activity_truncated: bool = False
    data_complete: bool = True

    class Config:
        from_attributes = True


class PnLPointResponse(BaseModel):
    timestamp: datetime
    value: float

    class Config:
        from_attributes = True


class PositionResponse(BaseModel):
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

    class Config:
        from_attributes = True


class TradeResponse(BaseModel):
    id: str
    timestamp: datetime
    market: str
    side: TradeSide
    outcome: Outcome
    price: float
    size: float
    profit: Optional[float] = Field(None, description="FIFO-matched profit, sells only")

    class Config:
        from_attributes = True


class AchievementResponse(BaseModel):
    id: str
    name: str
    description: str
    icon: str
    unlocked: bool
    progress: float
    total: float

    class Config:
        from_attributes = True


class DashboardResponse(BaseModel):
    """Dashboard response model"""
    profile: ProfileResponse
    stats: PortfolioStatsResponse
    pnl_history: List[PnLPointResponse] = Field(default_factory=list)
    positions: List[PositionResponse] = Field(default_factory=list)
    recent_trades: List[TradeResponse] = Field(default_factory=list)
    achievements: List[AchievementResponse] = Field(default_factory=list)
    is_placeholder: bool = False

    class Config:
        from_attributes = True


class WalletPnLResponse(BaseModel):
    """Authoritative PnL for one wallet"""
    wallet: str
    total_pnl: float = 0.0
    realized_pnl: float = 0.0
    unrealized_pnl: float = 0.0
    portfolio_value: float = 0.0
    open_positions: int = 0
    closed_positions: int = 0
