"""
Wallet PnL endpoints
"""
from fastapi import APIRouter

from api.dependencies import DashboardServiceDep
from api.exceptions import InvalidSubjectError
from api.schemas.dashboard import WalletPnLResponse
from clients.functions.dashboard import InvalidSubject

router = APIRouter(prefix="/api/v1/pnl", tags=["pnl"])


@router.get("/{wallet}", response_model=WalletPnLResponse)
async def get_wallet_pnl(wallet: str, service: DashboardServiceDep):
    """Authoritative PnL for a wallet (zeros when Polymarket is unreachable)"""
    try:
        pnl = await service.get_wallet_pnl(wallet)
    except InvalidSubject:
        raise InvalidSubjectError(wallet)

    return WalletPnLResponse(
        wallet=wallet.lower(),
        total_pnl=pnl.total_pnl,
        realized_pnl=pnl.realized_pnl,
        unrealized_pnl=pnl.unrealized_pnl,
        portfolio_value=pnl.portfolio_value,
        open_positions=pnl.open_positions,
        closed_positions=pnl.closed_positions,
    )
