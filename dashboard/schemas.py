"""
Pydantic schemas for the operator API.
"""
from datetime import datetime, timezone
from typing import List, Optional, Dict, Any
from pydantic import BaseModel, ConfigDict, Field

from system_risk_controller.types import ActionType


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


# =======================
# COMMON
# =======================

class BaseResponse(BaseModel):
    success: bool = True
    message: Optional[str] = None
    timestamp: datetime = Field(default_factory=_utc_now)

class ErrorResponse(BaseResponse):
    success: bool = False
    error: Dict[str, Any]

# =======================
# 1. POOLS
# =======================

class PoolParametersRequest(BaseModel):
    volatility_threshold: int
    liquidity_threshold: int
    concentration_threshold: int

class RegisterPoolRequest(PoolParametersRequest):
    pool_id: str = Field(min_length=1)
    window_size: Optional[int] = None

class PoolRecord(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    pool_id: str
    volatility_threshold: int
    liquidity_threshold: int
    concentration_threshold: int
    is_active: bool
    managers: List[str] = []

class PoolResponse(BaseResponse):
    data: PoolRecord

class PoolListResponse(BaseResponse):
    data: List[PoolRecord]

class ManagerRequest(BaseModel):
    address: str = Field(min_length=1)

# =======================
# 2. POOL EVENTS
# =======================

class TradeRequest(BaseModel):
    price: int

class TradeRecord(BaseModel):
    pool_id: str
    price: int
    timestamp: int
    volatility_score: Optional[int] = None

class TradeResponse(BaseResponse):
    data: TradeRecord

class LiquidityChangeRequest(BaseModel):
    total_liquidity: int
    price: int
    token0: str
    token1: str
    tick_lower: int
    tick_upper: int

class LiquidityChangeRecord(BaseModel):
    pool_id: str
    timestamp: int
    liquidity: Dict[str, int]
    concentration: int
    concentration_breached: bool
    risk_score: Optional[int] = None
    action: Optional[str] = None
    action_executed: bool
    action_skipped_reason: Optional[str] = None

class LiquidityChangeResponse(BaseResponse):
    data: LiquidityChangeRecord

class TokenInfoRequest(BaseModel):
    market_cap: int
    daily_volume: int

# =======================
# 3. RISK
# =======================

class PoolRiskRecord(BaseModel):
    pool_id: str
    volatility_score: int
    liquidity_score: int
    position_score: int
    risk_score: int
    computed_at: int

class PoolRiskResponse(BaseResponse):
    data: PoolRiskRecord

class UserRiskResponse(BaseResponse):
    user: str
    risk_score: int

class PositionRiskResponse(BaseResponse):
    user: str
    pool_id: str
    risk_score: int

class SystemRiskRecord(BaseModel):
    total_risk: int
    risk_count: int
    high_risk_count: int
    average_risk: int
    last_update: int

class SystemRiskResponse(BaseResponse):
    data: SystemRiskRecord

# =======================
# 4. CONTROLS
# =======================

class ControlActionRequest(BaseModel):
    action: ActionType

class ControlStatusRecord(BaseModel):
    is_paused: bool
    is_throttled: bool
    last_action_timestamp: int
    throttle_end_time: int
    action_count: int
    last_action: Optional[str] = None

class ControlStatusResponse(BaseResponse):
    pool_id: str
    throttle_active: bool
    data: ControlStatusRecord

class ControlActionResponse(BaseResponse):
    pool_id: str
    action: ActionType
    executed_at: int
    action_count: int
    escalated_to_throttle: bool

class ShutdownRequest(BaseModel):
    reason: str = "emergency shutdown"

class EngineStatusResponse(BaseResponse):
    data: Dict[str, Any]

# =======================
# 5. NOTIFICATIONS
# =======================

class NotificationRecord(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    risk_level: int
    message: str
    timestamp: int

class NotificationsResponse(BaseResponse):
    user: str
    total: int
    offset: int
    data: List[NotificationRecord]

class ClearNotificationsResponse(BaseResponse):
    user: str
    removed: int

# =======================
# 6. TOKENS
# =======================

class TokenInfoResponse(BaseResponse):
    token: str
    market_cap: int
    daily_volume: int
    last_update: int
