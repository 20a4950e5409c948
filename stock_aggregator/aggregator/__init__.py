# Stock Aggregator Queries
# Orchestration of upstream fetches and price statistics

"""
Aggregator module for answering price queries.

Components:
- StockQueryOrchestrator: Token -> fetch -> statistics, with a single auth retry
"""

from .query_orchestrator import StockQueryOrchestrator

__all__ = [
    "StockQueryOrchestrator",
]
