"""
Shared dependencies for the operator API routers.
"""
from fastapi import Header, Request

from orchestrator.core import PoolRiskEngine


CALLER_HEADER = "X-Caller-Address"


def get_engine(request: Request) -> PoolRiskEngine:
    return request.app.state.engine


def get_caller(x_caller_address: str = Header(..., alias=CALLER_HEADER, min_length=1)) -> str:
    """Caller identity, authenticated upstream of this API."""
    return x_caller_address
