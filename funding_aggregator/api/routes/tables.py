"""
Table API Routes

Serve the persisted funding tables as JSON rows.
"""

from pathlib import Path
from typing import Any, Dict

from fastapi import APIRouter, Depends, HTTPException

from funding_aggregator.api.dependencies import get_combined_table_path, get_matrix_table_path
from funding_aggregator.output import TableUnavailableError, read_table
from funding_aggregator.utils.logger import logger


router = APIRouter()


def _table_response(path: Path) -> Dict[str, Any]:
    try:
        snapshot = read_table(path)
    except TableUnavailableError as e:
        logger.warning(f"Table request failed: {e}")
        raise HTTPException(status_code=503, detail=f"Table not available yet: {path.name}")

    return {
        "columns": snapshot.columns,
        "data": snapshot.rows,
        "count": len(snapshot.rows),
        "updated_at": snapshot.modified_at.isoformat(),
    }


@router.get("/data")
async def get_funding_matrix(path: Path = Depends(get_matrix_table_path)) -> Dict[str, Any]:
    """Latest symbol × exchange funding matrix (percent, 2 decimals)"""
    return _table_response(path)


@router.get("/combined-data")
async def get_combined_funding(path: Path = Depends(get_combined_table_path)) -> Dict[str, Any]:
    """Latest combined history + live table"""
    return _table_response(path)
