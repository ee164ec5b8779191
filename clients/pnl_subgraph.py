"""
Polymarket PnL Subgraph Client

GraphQL access to per-token user positions with on-chain realized PnL.
Amounts are returned in USDC base units (see COLLATERAL_SCALE).
"""

import logging
from typing import Any, Dict, List, Optional

import httpx

from clients.polymarket import UpstreamError, _HttpBase
from config.settings import settings

logger = logging.getLogger(__name__)

USER_POSITIONS_QUERY = """
query UserPositions($user: String!, $skip: Int!, $first: Int!) {
  userPositions(
    where: { user: $user }
    first: $first
    skip: $skip
    orderBy: realizedPnl
    orderDirection: desc
  ) {
    id
    tokenId
    amount
    avgPrice
    realizedPnl
    totalBought
  }
}
"""


class PnLSubgraphClient(_HttpBase):
    """Paginated userPositions queries (skip/first, skip capped upstream)."""

    def __init__(self, timeout: Optional[float] = None, http_client: Optional[httpx.AsyncClient] = None):
        super().__init__(settings.PNL_SUBGRAPH_URL, timeout, http_client)

    async def query(self, query: str, variables: Dict[str, Any]) -> Dict[str, Any]:
        payload = await self._send("POST", self.base_url, json={"query": query, "variables": variables})
        if not isinstance(payload, dict):
            raise UpstreamError("Subgraph returned a non-object payload")
        if payload.get("errors"):
            messages = "; ".join(str(e.get("message", e)) for e in payload["errors"] if isinstance(e, dict))
            raise UpstreamError(f"Subgraph query failed: {messages or payload['errors']}")
        return payload.get("data") or {}

    async def get_user_positions(self, user: str, skip: int = 0, first: int = 1000) -> List[Dict[str, Any]]:
        data = await self.query(
            USER_POSITIONS_QUERY,
            {"user": user.lower(), "skip": skip, "first": first},
        )
        positions = data.get("userPositions") or []
        return positions if isinstance(positions, list) else []

    async def user_positions_page(self, subject: str, offset: int, limit: int) -> List[Dict[str, Any]]:
        """Page function for ResilientFetcher (offset maps to skip)."""
        return await self.get_user_positions(subject, skip=offset, first=limit)
