"""
Funding Rate Aggregator

Polls perpetual-futures funding rates from several exchanges, averages their
recent history and writes the results as flat tables for a dashboard.
"""

__version__ = "1.0.0"
