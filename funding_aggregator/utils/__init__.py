"""
Utility modules for the funding rate aggregator
"""
