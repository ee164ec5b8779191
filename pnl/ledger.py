"""
Ledger balance calculator.

Replays activity events as a cash-flow ledger to derive a cash balance and
a realized PnL estimate independent of trade matching.
"""

import logging
from typing import Optional, Sequence

from config.settings import settings
from pnl.models import ActivityEvent, ActivityKind, LedgerBalance, TradeSide

logger = logging.getLogger(__name__)

_INCOME_KINDS = (ActivityKind.REDEEM, ActivityKind.REWARD, ActivityKind.CLAIM)


def compute_balance(events: Sequence[ActivityEvent], window: Optional[int] = None) -> LedgerBalance:
    """
    Compute cash balance and realized PnL from activity events.

    Events are processed in arrival order, not re-sorted. Only the first
    `window` events (upstream returns newest first) are considered; the
    returned balance reports how many were dropped.

    Args:
        events: Activity events as returned upstream
        window: Maximum number of events to process (defaults to settings)

    Returns:
        LedgerBalance with realized_pnl == cash_balance - net_deposits
    """
    window = settings.LEDGER_EVENT_WINDOW if window is None else window
    processed = events[:window]

    if len(events) > len(processed):
        logger.warning(
            f"⚠️ Ledger window: processing {len(processed)} of {len(events)} activity events"
        )

    cash = 0.0
    deposits = 0.0
    withdrawals = 0.0

    for event in processed:
        amount = event.amount
        kind = event.kind

        if kind == ActivityKind.DEPOSIT or (kind == ActivityKind.CONVERSION and amount > 0):
            deposits += abs(amount)
            cash += abs(amount)
        elif kind == ActivityKind.WITHDRAWAL:
            withdrawals += abs(amount)
            cash -= abs(amount)
        elif kind == ActivityKind.TRADE:
            if event.side == TradeSide.BUY:
                cash -= amount
            elif event.side == TradeSide.SELL:
                cash += amount
        elif kind in _INCOME_KINDS:
            cash += amount
        elif kind == ActivityKind.FEE:
            cash -= abs(amount)

    net_deposits = deposits - withdrawals

    balance = LedgerBalance(
        cash_balance=cash,
        realized_pnl=cash - net_deposits,
        net_deposits=net_deposits,
        deposits=deposits,
        withdrawals=withdrawals,
        events_processed=len(processed),
        events_total=len(events),
    )
    logger.debug(
        f"Ledger: cash=${balance.cash_balance:,.2f} net_deposits=${net_deposits:,.2f} "
        f"realized=${balance.realized_pnl:,.2f}"
    )
    return balance
