from fastapi import APIRouter, Depends

from dashboard.dependencies import get_engine
from dashboard.schemas import (
    PoolRiskRecord,
    PoolRiskResponse,
    PositionRiskResponse,
    SystemRiskRecord,
    SystemRiskResponse,
    UserRiskResponse,
)
from orchestrator.core import PoolRiskEngine

router = APIRouter(prefix="/risk", tags=["Risk"])


@router.get("/pools/{pool_id}", response_model=PoolRiskResponse)
async def get_pool_risk(pool_id: str, engine: PoolRiskEngine = Depends(get_engine)):
    """
    Composite risk of a pool with its component scores.

    Served from the cache while fresh; recomputed otherwise.
    """
    breakdown = engine.get_pool_risk(pool_id)
    return PoolRiskResponse(data=PoolRiskRecord(**breakdown.to_dict()))


@router.get("/users/{user}", response_model=UserRiskResponse)
async def get_user_risk(user: str, engine: PoolRiskEngine = Depends(get_engine)):
    return UserRiskResponse(user=user, risk_score=engine.get_user_risk(user))


@router.get("/positions/{user}/{pool_id}", response_model=PositionRiskResponse)
async def get_position_risk(user: str, pool_id: str, engine: PoolRiskEngine = Depends(get_engine)):
    return PositionRiskResponse(
        user=user,
        pool_id=pool_id,
        risk_score=engine.get_position_risk(user, pool_id),
    )


@router.get("/system", response_model=SystemRiskResponse)
async def get_system_risk(engine: PoolRiskEngine = Depends(get_engine)):
    metrics = engine.get_system_risk()
    return SystemRiskResponse(data=SystemRiskRecord(**metrics.to_dict()))
