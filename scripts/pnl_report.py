#!/usr/bin/env python3
"""Print a PnL report for a Polymarket username or wallet."""

import argparse
import asyncio
import logging
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent))

from clients.functions.dashboard import ComputationTimeout, DashboardService, InvalidSubject
from clients.functions.data import EngineContext
from clients.polymarket import UpstreamError
from config.settings import settings
from utils.rich_logging import console, render_dashboard, setup_logging

logger = logging.getLogger("pnl_report")


async def run(identifier: str, pnl_only: bool) -> int:
    context = EngineContext.create()
    service = DashboardService(context)
    try:
        if pnl_only:
            pnl = await service.get_wallet_pnl(identifier)
            console.print(
                f"[bold]{identifier}[/bold] total ${pnl.total_pnl:,.2f} "
                f"(realized ${pnl.realized_pnl:,.2f}, unrealized ${pnl.unrealized_pnl:,.2f}, "
                f"{pnl.open_positions} open / {pnl.closed_positions} closed)"
            )
            return 0

        dashboard = await service.get_dashboard(identifier)
        render_dashboard(dashboard)
        return 0
    except InvalidSubject as e:
        logger.error(f"❌ {e}")
        return 2
    except (UpstreamError, ComputationTimeout) as e:
        logger.error(f"❌ Could not build report for {identifier}: {e}")
        return 1
    finally:
        await context.aclose()


def main() -> int:
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument("identifier", help="Polymarket username or 0x wallet address")
    parser.add_argument("--pnl-only", action="store_true", help="Only the authoritative PnL summary (wallet required)")
    parser.add_argument("--log-level", default=settings.LOG_LEVEL, help="Logging level (default: %(default)s)")
    args = parser.parse_args()

    setup_logging(args.log_level)
    return asyncio.run(run(args.identifier, args.pnl_only))


if __name__ == "__main__":
    sys.exit(main())
