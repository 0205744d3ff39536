"""
Shared fixtures for the pool risk engine tests.

Every component is wired to one MockClock, one EventLog, one
AccessControl and one PauseGuard, as the engine facade does.
"""

import pytest

from core.access_control import AccessControl
from core.clock import MockClock
from core.constants import (
    RESOURCE_NOTIFIER,
    RESOURCE_PRICE_FEEDER,
    RESOURCE_REGISTRY_CONTROL,
)
from core.events import EventLog
from core.fixed_math import to_fixed
from core.guards import PauseGuard
from orchestrator import EngineConfig, PoolRiskEngine
from risk_management import PoolRiskParameters, PositionManager, RiskRegistry
from risk_scoring import LiquidityScoring, RiskAggregator, VolatilityOracle
from system_risk_controller import RiskController, RiskNotifier


OWNER = "0xowner"
FEEDER = "0xfeeder"
MANAGER = "0xmanager"
OUTSIDER = "0xoutsider"

START_TIME = 1_700_000_000
POOL = "ETH-USDC"
OTHER_POOL = "WBTC-ETH"

DEFAULT_PARAMS = PoolRiskParameters(
    volatility_threshold=500,
    liquidity_threshold=10_000,
    concentration_threshold=5_000,
)


def price(value: int) -> int:
    """Whole-unit price in fixed-point scale."""
    return to_fixed(value)


# =============================================================
# CORE
# =============================================================

@pytest.fixture
def clock():
    return MockClock(START_TIME)


@pytest.fixture
def events(clock):
    return EventLog(clock)


@pytest.fixture
def access():
    return AccessControl(OWNER)


@pytest.fixture
def pause_guard():
    return PauseGuard()


# =============================================================
# COMPONENTS
# =============================================================

@pytest.fixture
def registry(access, events, pause_guard):
    return RiskRegistry(access, events, pause_guard)


@pytest.fixture
def positions(registry, access, clock, events, pause_guard):
    return PositionManager(registry, access, clock, events, pause_guard)


@pytest.fixture
def volatility(registry, access, clock, events, pause_guard):
    access.grant(RESOURCE_PRICE_FEEDER, FEEDER, OWNER)
    return VolatilityOracle(registry, access, clock, events, pause_guard=pause_guard)


@pytest.fixture
def liquidity(registry, access, clock, events, pause_guard):
    return LiquidityScoring(registry, access, clock, events, pause_guard=pause_guard)


@pytest.fixture
def aggregator(registry, volatility, liquidity, positions, access, clock, events, pause_guard):
    return RiskAggregator(
        registry, volatility, liquidity, positions,
        access, clock, events, pause_guard=pause_guard,
    )


@pytest.fixture
def notifier(access, clock, events, pause_guard):
    return RiskNotifier(access, clock, events, pause_guard=pause_guard)


@pytest.fixture
def controller(registry, notifier, access, clock, events, pause_guard):
    controller = RiskController(registry, notifier, access, clock, events, pause_guard=pause_guard)
    access.grant(RESOURCE_REGISTRY_CONTROL, controller.address, OWNER)
    access.grant(RESOURCE_NOTIFIER, controller.address, OWNER)
    return controller


@pytest.fixture
def pool(registry, volatility):
    """A registered pool with a 4-slot price window."""
    registry.register(POOL, DEFAULT_PARAMS, OWNER)
    volatility.initialize(POOL, 4, OWNER)
    return POOL


# =============================================================
# FACADE
# =============================================================

@pytest.fixture
def engine(clock):
    engine = PoolRiskEngine(EngineConfig(owner=OWNER), clock=clock)
    engine.access.grant(RESOURCE_PRICE_FEEDER, FEEDER, OWNER)
    return engine
