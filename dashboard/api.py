"""
Dashboard - API.

============================================================
RESPONSIBILITY
============================================================
Operator REST API over the PoolRiskEngine facade.

- Caller identity comes from the X-Caller-Address header set
  by the authenticating proxy in front of this service
- Engine errors map onto HTTP status codes by category
- Handlers are coroutines so that every engine call runs on
  the event loop thread, one at a time

STATUS MAPPING:
    validation          400
    authorization       403
    state               409
    insufficient data   422
    rate limit          429
    paused              503
============================================================
"""

import logging
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from core.exceptions import ErrorCategory, RiskEngineError
from orchestrator.core import PoolRiskEngine, create_pool_risk_engine
from risk_scoring import __version__

from .routers import controls, notifications, pools, risk
from .schemas import EngineStatusResponse, ErrorResponse

logger = logging.getLogger(__name__)


STATUS_BY_CATEGORY = {
    ErrorCategory.VALIDATION: 400,
    ErrorCategory.AUTHORIZATION: 403,
    ErrorCategory.STATE: 409,
    ErrorCategory.INSUFFICIENT_DATA: 422,
    ErrorCategory.RATE_LIMIT: 429,
    ErrorCategory.PAUSED: 503,
}


async def risk_engine_error_handler(request: Request, exc: RiskEngineError) -> JSONResponse:
    status_code = STATUS_BY_CATEGORY.get(exc.category, 400)
    if status_code >= 500 or exc.requires_immediate_action:
        logger.error(f"{request.method} {request.url.path}: {exc.to_log_format()}")
    else:
        logger.info(f"{request.method} {request.url.path} rejected: {exc.to_log_format()}")
    return JSONResponse(
        status_code=status_code,
        content=jsonable_encoder(ErrorResponse(message=exc.message, error=exc.to_dict())),
    )


# ============================================================
# FastAPI Application
# ============================================================

def create_app(engine: Optional[PoolRiskEngine] = None) -> FastAPI:
    """
    Build the operator API around an engine.

    Args:
        engine: Engine to serve (created from the environment if None)
    """
    app = FastAPI(
        title="Pool Risk Engine API",
        description="Risk scores and graduated controls for liquidity pools",
        version=__version__,
        docs_url="/docs",
        redoc_url="/redoc",
    )
    app.state.engine = engine or create_pool_risk_engine()

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.add_exception_handler(RiskEngineError, risk_engine_error_handler)

    app.include_router(pools.router)
    app.include_router(pools.tokens_router)
    app.include_router(risk.router)
    app.include_router(controls.router)
    app.include_router(notifications.router)

    @app.get("/health", response_model=EngineStatusResponse, tags=["Health"])
    async def health_check():
        """Engine status; reads stay available while the engine is paused."""
        return EngineStatusResponse(data=app.state.engine.get_status())

    return app
