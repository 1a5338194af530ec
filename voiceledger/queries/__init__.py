"""Ledger queries package."""

from voiceledger.queries.executor import LedgerStats, LedgerStatsExecutor

__all__ = ["LedgerStats", "LedgerStatsExecutor"]
