from .polymarket import (
    PolymarketDataAPI,
    PolymarketGamma,
    UpstreamError,
    UpstreamNotFound,
    UpstreamRateLimited,
    UpstreamUnavailable,
)
from .pnl_subgraph import PnLSubgraphClient
from .fetcher import FetchThrottle, ResilientFetcher

__all__ = [
    "PolymarketDataAPI",
    "PolymarketGamma",
    "PnLSubgraphClient",
    "FetchThrottle",
    "ResilientFetcher",
    "UpstreamError",
    "UpstreamNotFound",
    "UpstreamRateLimited",
    "UpstreamUnavailable",
]
