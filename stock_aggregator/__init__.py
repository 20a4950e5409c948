# Stock Price Aggregator
"""
Stock price aggregation service.

Fetches per-minute price history from the upstream evaluation service and
derives average prices and pairwise Pearson correlation.
"""

__version__ = "0.1.0"
