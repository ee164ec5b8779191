"""
FIFO trade matcher.

Matches SELL trades against earlier BUY lots per (market, outcome) and
attaches the resulting profit to each matched sell.
"""

import logging
from collections import defaultdict, deque
from dataclasses import dataclass, replace
from typing import Deque, Dict, List, Sequence, Tuple

from config.system_constants import FIFO_SIZE_EPSILON
from pnl.models import Trade, TradeMetrics, TradeSide

logger = logging.getLogger(__name__)


@dataclass
class Lot:
    """Unconsumed remainder of one BUY."""
    size: float
    cost: float

    @property
    def unit_cost(self) -> float:
        return self.cost / self.size if self.size > 0 else 0.0


@dataclass
class SellMatch:
    matched_size: float
    consumed_cost: float
    proceeds: float

    @property
    def pnl(self) -> float:
        return self.proceeds - self.consumed_cost


def consume_lots(lots: Deque[Lot], sell_size: float, sell_price: float) -> SellMatch:
    """Consume up to sell_size from the front of the lot queue."""
    remaining = sell_size
    matched = 0.0
    consumed_cost = 0.0

    while remaining > FIFO_SIZE_EPSILON and lots:
        lot = lots[0]
        take = min(remaining, lot.size)
        cost = take * lot.unit_cost

        lot.size -= take
        lot.cost -= cost
        remaining -= take
        matched += take
        consumed_cost += cost

        if lot.size < FIFO_SIZE_EPSILON:
            lots.popleft()

    return SellMatch(
        matched_size=matched,
        consumed_cost=consumed_cost,
        proceeds=matched * sell_price,
    )


def _group_key(trade: Trade) -> Tuple[str, str]:
    return trade.market, trade.outcome.value


def match_trades(trades: Sequence[Trade]) -> TradeMetrics:
    """
    Run FIFO matching over a trade list.

    Per (market, outcome) group all BUYs populate the lot queue in timestamp
    order before any SELL is matched. A SELL larger than the bought size
    matches only the available portion; the excess is dropped.

    Args:
        trades: Trades in any order

    Returns:
        TradeMetrics with profit attached to matched sells in trades_with_pnl
    """
    groups: Dict[Tuple[str, str], List[int]] = defaultdict(list)
    for index, trade in enumerate(trades):
        groups[_group_key(trade)].append(index)

    profits: Dict[int, float] = {}
    unmatched_size = 0.0

    for key, indexes in groups.items():
        group = sorted(indexes, key=lambda i: trades[i].timestamp)
        lots: Deque[Lot] = deque(
            Lot(size=trades[i].size, cost=trades[i].size * trades[i].price)
            for i in group
            if trades[i].side == TradeSide.BUY and trades[i].size > 0
        )

        for i in group:
            sell = trades[i]
            if sell.side != TradeSide.SELL:
                continue
            match = consume_lots(lots, sell.size, sell.price)
            unmatched_size += max(sell.size - match.matched_size, 0.0)
            if match.matched_size > 0:
                profits[i] = match.pnl

    if unmatched_size > FIFO_SIZE_EPSILON:
        logger.debug(f"FIFO: {unmatched_size:.4f} sold shares had no matching buys")

    # Win/loss and streaks run over all matched sells in time order
    wins = losses = streak = best_streak = 0
    for i in sorted(profits, key=lambda i: trades[i].timestamp):
        pnl = profits[i]
        if pnl > 0:
            wins += 1
            streak += 1
            best_streak = max(best_streak, streak)
        elif pnl < 0:
            losses += 1
            streak = 0

    decided = wins + losses
    pnls = list(profits.values())

    return TradeMetrics(
        realized_pnl=sum(pnls),
        win_rate=(wins / decided * 100) if decided else 0.0,
        best_trade=max(pnls) if pnls else 0.0,
        worst_trade=min(pnls) if pnls else 0.0,
        win_streak=best_streak,
        wins=wins,
        losses=losses,
        matched_sells=len(profits),
        unmatched_sell_size=unmatched_size,
        trades_with_pnl=[
            replace(trade, profit=profits[i]) if i in profits else trade
            for i, trade in enumerate(trades)
        ],
    )
