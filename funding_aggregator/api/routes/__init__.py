"""
API routes
"""

from funding_aggregator.api.routes import tables, tasks

__all__ = [
    "tables",
    "tasks",
]
