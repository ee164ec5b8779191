"""PnL computation: normalization, ledger, FIFO matching, history and stats."""
