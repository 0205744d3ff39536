from fastapi import APIRouter, Depends

from dashboard.dependencies import get_caller, get_engine
from dashboard.schemas import (
    ControlActionRequest,
    ControlActionResponse,
    ControlStatusRecord,
    ControlStatusResponse,
    EngineStatusResponse,
    ShutdownRequest,
)
from orchestrator.core import PoolRiskEngine

router = APIRouter(prefix="/controls", tags=["Controls"])


def _status_response(engine: PoolRiskEngine, pool_id: str, message: str = None) -> ControlStatusResponse:
    status = engine.controller.get_status(pool_id)
    return ControlStatusResponse(
        message=message,
        pool_id=pool_id,
        throttle_active=engine.controller.is_pool_throttled(pool_id),
        data=ControlStatusRecord(**status.to_dict()),
    )


# ============================================================
# Engine-wide
# ============================================================

@router.post("/shutdown", response_model=EngineStatusResponse)
async def emergency_shutdown(
    body: ShutdownRequest,
    engine: PoolRiskEngine = Depends(get_engine),
    caller: str = Depends(get_caller),
):
    engine.emergency_shutdown(caller, reason=body.reason)
    return EngineStatusResponse(message="Engine paused", data=engine.get_status())


@router.post("/resume", response_model=EngineStatusResponse)
async def resume_operations(
    engine: PoolRiskEngine = Depends(get_engine),
    caller: str = Depends(get_caller),
):
    engine.resume_operations(caller)
    return EngineStatusResponse(message="Engine resumed", data=engine.get_status())


# ============================================================
# Per pool
# ============================================================

@router.get("/{pool_id}", response_model=ControlStatusResponse)
async def get_control_status(pool_id: str, engine: PoolRiskEngine = Depends(get_engine)):
    engine.registry.require_registered(pool_id)
    return _status_response(engine, pool_id)


@router.post("/{pool_id}/actions", response_model=ControlActionResponse)
async def execute_action(
    pool_id: str,
    body: ControlActionRequest,
    engine: PoolRiskEngine = Depends(get_engine),
    caller: str = Depends(get_caller),
):
    result = engine.controller.execute_action(pool_id, body.action, caller)
    return ControlActionResponse(
        message=f"{result.action.value} executed",
        pool_id=result.pool_id,
        action=result.action,
        executed_at=result.executed_at,
        action_count=result.action_count,
        escalated_to_throttle=result.escalated_to_throttle,
    )


@router.post("/{pool_id}/reset", response_model=ControlStatusResponse)
async def reset_controls(
    pool_id: str,
    engine: PoolRiskEngine = Depends(get_engine),
    caller: str = Depends(get_caller),
):
    engine.controller.reset_controls(pool_id, caller)
    return _status_response(engine, pool_id, message="Controls reset")
