"""
PnL Engine Constants
Fixed numeric values of the upstream data model and the accounting rules
"""

# ============================================================================
# UPSTREAM DATA MODEL
# ============================================================================

# Subgraph amounts are expressed in USDC base units (6 decimals)
COLLATERAL_SCALE = 1_000_000

# Subgraph positions with |realizedPnl| at or below this are dust
SUBGRAPH_PNL_DUST = 0.01

# Open positions smaller than this are treated as closed
POSITION_SIZE_DUST = 0.01

# Timestamps above this are milliseconds, otherwise seconds
MILLISECOND_TIMESTAMP_THRESHOLD = 1e12


# ============================================================================
# ACCOUNTING
# ============================================================================

# FIFO lots with less remaining size than this are fully consumed
FIFO_SIZE_EPSILON = 1e-6


# ============================================================================
# SUBJECTS
# ============================================================================

USERNAME_PATTERN = r"^[a-zA-Z0-9_-]+$"
WALLET_PATTERN = r"^0x[a-fA-F0-9]{40}$"
MIN_SEARCH_QUERY_LENGTH = 2


# ============================================================================
# ACHIEVEMENTS
# ============================================================================

ACHIEVEMENT_WIN_STREAK = 5
ACHIEVEMENT_VOLUME = 1000.0
ACHIEVEMENT_ACTIVE_POSITIONS = 10
ACHIEVEMENT_PROFIT = 100.0
ACHIEVEMENT_TRADE_COUNT = 50
