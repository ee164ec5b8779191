"""
Authoritative PnL for a wallet.

- Realized: sum of subgraph userPositions.realizedPnl (scaled, dust ignored)
- Unrealized: sum of cashPnl over open positions
- Portfolio value: sum of currentValue over open positions

This is the slow aggregate computation; callers run it through the
coalescing cache and await it to completion.
"""

import asyncio
import logging
import time
from typing import List

from clients.functions.data import SubjectDataLoader
from config.system_constants import POSITION_SIZE_DUST, SUBGRAPH_PNL_DUST
from pnl.models import AuthoritativePnL, FetchResult
from pnl.normalize import subgraph_realized_pnl, to_float

logger = logging.getLogger(__name__)


def realized_from_subgraph(records: List[dict]) -> List[float]:
    """Per-position realized PnL in USDC, dust positions dropped."""
    pnls = (subgraph_realized_pnl(r) for r in records)
    return [pnl for pnl in pnls if abs(pnl) > SUBGRAPH_PNL_DUST]


class AuthoritativePnLService:
    """Computes AuthoritativePnL from the subgraph and the positions endpoint."""

    def __init__(self, loader: SubjectDataLoader):
        self.loader = loader

    async def compute(self, wallet: str) -> AuthoritativePnL:
        """
        Compute realized and unrealized PnL for a wallet.

        Raises:
            UpstreamUnavailable: Subgraph or positions could not be fetched at all
        """
        assert wallet, "wallet is required"
        start = time.monotonic()

        subgraph_result, positions_result = await asyncio.gather(
            self.loader.load_subgraph_positions(wallet),
            self.loader.load_positions(wallet),
        )

        pnl = self.from_results(subgraph_result, positions_result)
        logger.info(
            f"✅ Authoritative PnL for {wallet[:10]}... in {time.monotonic() - start:.1f}s: "
            f"realized ${pnl.realized_pnl:,.2f} ({pnl.closed_positions} closed), "
            f"unrealized ${pnl.unrealized_pnl:,.2f} ({pnl.open_positions} open)"
        )
        return pnl

    @staticmethod
    def from_results(subgraph_result: FetchResult, positions_result: FetchResult) -> AuthoritativePnL:
        closed_pnls = realized_from_subgraph(subgraph_result.records)

        unrealized = 0.0
        portfolio_value = 0.0
        open_positions = 0
        for raw in positions_result.records:
            if to_float(raw.get("size")) > POSITION_SIZE_DUST:
                unrealized += to_float(raw.get("cashPnl"))
                portfolio_value += to_float(raw.get("currentValue"))
                open_positions += 1

        return AuthoritativePnL(
            realized_pnl=sum(closed_pnls),
            unrealized_pnl=unrealized,
            portfolio_value=portfolio_value,
            open_positions=open_positions,
            closed_positions=len(closed_pnls),
            closed_position_pnls=closed_pnls,
            complete=(
                subgraph_result.complete
                and positions_result.complete
                and not subgraph_result.missing_pages
                and not positions_result.missing_pages
            ),
        )
