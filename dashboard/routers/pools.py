from typing import List

from fastapi import APIRouter, Depends

from dashboard.dependencies import get_caller, get_engine
from dashboard.schemas import (
    LiquidityChangeRecord,
    LiquidityChangeRequest,
    LiquidityChangeResponse,
    ManagerRequest,
    PoolListResponse,
    PoolParametersRequest,
    PoolRecord,
    PoolResponse,
    RegisterPoolRequest,
    TokenInfoRequest,
    TokenInfoResponse,
    TradeRecord,
    TradeRequest,
    TradeResponse,
)
from orchestrator.core import PoolRiskEngine
from risk_management import PoolRiskParameters

router = APIRouter(prefix="/pools", tags=["Pools"])
tokens_router = APIRouter(prefix="/tokens", tags=["Tokens"])


def _pool_record(engine: PoolRiskEngine, pool_id: str) -> PoolRecord:
    params = engine.registry.get_parameters(pool_id)
    return PoolRecord(
        pool_id=pool_id,
        volatility_threshold=params.volatility_threshold,
        liquidity_threshold=params.liquidity_threshold,
        concentration_threshold=params.concentration_threshold,
        is_active=params.is_active,
        managers=engine.registry.managers(pool_id),
    )


def _parameters(body: PoolParametersRequest) -> PoolRiskParameters:
    return PoolRiskParameters(
        volatility_threshold=body.volatility_threshold,
        liquidity_threshold=body.liquidity_threshold,
        concentration_threshold=body.concentration_threshold,
    )


@router.get("", response_model=PoolListResponse)
async def list_pools(engine: PoolRiskEngine = Depends(get_engine)):
    records: List[PoolRecord] = [
        _pool_record(engine, pool_id) for pool_id in engine.registry.registered_pools()
    ]
    return PoolListResponse(data=records)


@router.post("", response_model=PoolResponse, status_code=201)
async def register_pool(
    body: RegisterPoolRequest,
    engine: PoolRiskEngine = Depends(get_engine),
    caller: str = Depends(get_caller),
):
    engine.register_pool(body.pool_id, _parameters(body), caller, window_size=body.window_size)
    return PoolResponse(message="Pool registered", data=_pool_record(engine, body.pool_id))


@router.get("/{pool_id}", response_model=PoolResponse)
async def get_pool(pool_id: str, engine: PoolRiskEngine = Depends(get_engine)):
    return PoolResponse(data=_pool_record(engine, pool_id))


@router.put("/{pool_id}", response_model=PoolResponse)
async def update_pool(
    pool_id: str,
    body: PoolParametersRequest,
    engine: PoolRiskEngine = Depends(get_engine),
    caller: str = Depends(get_caller),
):
    engine.update_pool_parameters(pool_id, _parameters(body), caller)
    return PoolResponse(message="Pool parameters updated", data=_pool_record(engine, pool_id))


@router.post("/{pool_id}/managers", response_model=PoolResponse)
async def add_manager(
    pool_id: str,
    body: ManagerRequest,
    engine: PoolRiskEngine = Depends(get_engine),
    caller: str = Depends(get_caller),
):
    engine.registry.require_registered(pool_id)
    engine.registry.add_manager(pool_id, body.address, caller)
    return PoolResponse(message="Manager added", data=_pool_record(engine, pool_id))


@router.delete("/{pool_id}/managers/{address}", response_model=PoolResponse)
async def remove_manager(
    pool_id: str,
    address: str,
    engine: PoolRiskEngine = Depends(get_engine),
    caller: str = Depends(get_caller),
):
    engine.registry.require_registered(pool_id)
    engine.registry.remove_manager(pool_id, address, caller)
    return PoolResponse(message="Manager removed", data=_pool_record(engine, pool_id))


@router.post("/{pool_id}/trades", response_model=TradeResponse)
async def ingest_trade(
    pool_id: str,
    body: TradeRequest,
    engine: PoolRiskEngine = Depends(get_engine),
    caller: str = Depends(get_caller),
):
    result = engine.on_trade(pool_id, body.price, caller)
    return TradeResponse(data=TradeRecord(**result.to_dict()))


@router.post("/{pool_id}/liquidity", response_model=LiquidityChangeResponse)
async def ingest_liquidity_change(
    pool_id: str,
    body: LiquidityChangeRequest,
    engine: PoolRiskEngine = Depends(get_engine),
    caller: str = Depends(get_caller),
):
    result = engine.on_liquidity_change(
        pool_id,
        body.total_liquidity,
        body.price,
        body.token0,
        body.token1,
        body.tick_lower,
        body.tick_upper,
        caller,
    )
    return LiquidityChangeResponse(data=LiquidityChangeRecord(**result.to_dict()))


@tokens_router.put("/{token}", response_model=TokenInfoResponse)
async def update_token_info(
    token: str,
    body: TokenInfoRequest,
    engine: PoolRiskEngine = Depends(get_engine),
    caller: str = Depends(get_caller),
):
    info = engine.liquidity.update_token_info(token, body.market_cap, body.daily_volume, caller)
    return TokenInfoResponse(
        token=token,
        market_cap=info.market_cap,
        daily_volume=info.daily_volume,
        last_update=info.last_update,
    )
