"""
Tests for the PoolRiskEngine facade.

Tests cover:
- Pool provisioning on registration
- Trade and liquidity-change ingestion
- Score bands mapped to automatic control actions
- Engine-wide shutdown and resume
- Configuration and logging setup
"""

import logging
from unittest.mock import patch

import pytest

from core.constants import PRECISION, RESOURCE_REGISTRY_CONTROL
from core.exceptions import (
    AlreadyInStateError,
    AuthorizationError,
    PoolNotRegisteredError,
    StaleDataError,
    SystemPausedError,
    ValidationError,
)
from orchestrator import (
    ControlBands,
    EngineConfig,
    PoolRiskEngine,
    create_pool_risk_engine,
    setup_logging,
)
from risk_management import PoolRiskParameters
from system_risk_controller import ActionType

from tests.conftest import DEFAULT_PARAMS, FEEDER, OUTSIDER, OWNER, POOL, price


@pytest.fixture
def live_pool(engine):
    engine.register_pool(POOL, DEFAULT_PARAMS, OWNER)
    engine.liquidity.update_token_info("WETH", 100_000, 5_000, OWNER)
    engine.liquidity.update_token_info("USDC", 50_000, 2_000, OWNER)
    return POOL


def change_liquidity(engine, pool_id, total_liquidity):
    return engine.on_liquidity_change(
        pool_id, total_liquidity, PRECISION, "WETH", "USDC", -100, 100, FEEDER,
    )


# =============================================================
# TEST: Construction
# =============================================================

class TestConstruction:
    """Component wiring."""

    def test_controller_grants(self, engine):
        assert engine.notifier.is_notifier(engine.controller.address)
        assert engine.access.is_authorized(engine.controller.address, RESOURCE_REGISTRY_CONTROL)

    def test_invalid_config_rejected(self):
        with pytest.raises(ValidationError):
            PoolRiskEngine(EngineConfig(owner=OWNER, log_format="xml"))

    def test_status(self, engine, live_pool, clock):
        status = engine.get_status()

        assert status["owner"] == OWNER
        assert status["paused"] is False
        assert status["registered_pools"] == 1
        assert status["active_pools"] == 1
        assert status["current_time"] == clock.timestamp()
        assert status["audit_trail"] is False


# =============================================================
# TEST: Pool Lifecycle
# =============================================================

class TestRegisterPool:
    """Registration with provisioning."""

    def test_provisions_window_and_controller(self, engine, live_pool):
        assert engine.volatility.window(live_pool).window_size == 24
        assert engine.registry.is_manager(live_pool, engine.controller.address)

    def test_custom_window(self, engine):
        engine.register_pool(POOL, DEFAULT_PARAMS, OWNER, window_size=8)
        assert engine.volatility.window(POOL).window_size == 8

    def test_reregistration_keeps_window(self, engine, live_pool):
        engine.on_trade(live_pool, price(100), FEEDER)
        engine.registry.deactivate(live_pool, OWNER)

        engine.register_pool(live_pool, DEFAULT_PARAMS, OWNER)
        assert engine.volatility.samples(live_pool) == [price(100)]

    def test_failed_provisioning_rolls_back(self, engine):
        with pytest.raises(ValidationError):
            engine.register_pool(POOL, DEFAULT_PARAMS, OWNER, window_size=1)

        assert not engine.registry.is_registered(POOL)
        assert not engine.registry.is_manager(POOL, engine.controller.address)
        assert engine.events.last("PoolRegistered") is None

    def test_zero_window_rejected(self, engine):
        with pytest.raises(ValidationError) as exc_info:
            engine.register_pool(POOL, DEFAULT_PARAMS, OWNER, window_size=0)

        assert exc_info.value.context["field"] == "window_size"
        assert not engine.registry.is_registered(POOL)

    def test_outsider_cannot_register(self, engine):
        with pytest.raises(AuthorizationError):
            engine.register_pool(POOL, DEFAULT_PARAMS, OUTSIDER)

    def test_update_parameters(self, engine, live_pool):
        params = engine.update_pool_parameters(
            live_pool, PoolRiskParameters(400, 8_000, 3_000), OWNER,
        )
        assert params.volatility_threshold == 400
        assert params.is_active


# =============================================================
# TEST: Event Ingestion
# =============================================================

class TestOnTrade:
    """Trade prices feed the volatility window."""

    def test_first_trade_has_no_score(self, engine, live_pool, clock):
        result = engine.on_trade(live_pool, price(100), FEEDER)

        assert result.volatility_score is None
        assert result.timestamp == clock.timestamp()
        assert engine.volatility.samples(live_pool) == [price(100)]

    def test_scores_from_second_trade(self, engine, live_pool):
        for value in (100, 102, 98):
            engine.on_trade(live_pool, price(value), FEEDER)
        result = engine.on_trade(live_pool, price(101), FEEDER)

        assert result.volatility_score == 147
        assert result.to_dict()["volatility_score"] == 147

    def test_feeder_only(self, engine, live_pool):
        with pytest.raises(AuthorizationError):
            engine.on_trade(live_pool, price(100), OUTSIDER)

    def test_unregistered_pool(self, engine):
        with pytest.raises(PoolNotRegisteredError):
            engine.on_trade(POOL, price(100), FEEDER)


class TestOnLiquidityChange:
    """Scoring, concentration and automatic actions."""

    def test_warming_up(self, engine, live_pool):
        result = change_liquidity(engine, live_pool, 1000)

        assert result.liquidity.composite_score == 9861
        assert result.risk_score is None
        assert result.action is None
        assert not result.concentration_breached
        assert not result.action_executed

    def test_concentration_breach_warns(self, engine, live_pool):
        engine.positions.update("0xwhale", live_pool, 900, -100, 100, OWNER)
        engine.positions.update("0xminnow", live_pool, 100, -100, 100, OWNER)

        result = change_liquidity(engine, live_pool, 1000)

        assert result.concentration == 9000
        assert result.concentration_breached
        assert result.action == ActionType.WARNING
        assert result.action_executed
        assert engine.events.last("ConcentrationBreached").payload["threshold"] == 5000
        assert engine.notifier.get_notifications(live_pool)[0].risk_level == 1

    def test_escalates_to_pause(self, engine, live_pool, clock):
        for value in (-10, 12):
            engine.on_trade(live_pool, price(value), FEEDER)
        engine.positions.update(live_pool, live_pool, 100, -100, 100, OWNER)
        engine.positions.update_risk(live_pool, live_pool, 7_000, OWNER)

        first = change_liquidity(engine, live_pool, 1000)
        assert first.risk_score is None
        assert first.action == ActionType.WARNING

        # volatility 10000, liquidity shortfall 10000, position 7000
        second = change_liquidity(engine, live_pool, 5000)
        assert second.risk_score == 9100
        assert second.action == ActionType.PAUSE
        assert second.action_executed
        assert engine.controller.is_pool_paused(live_pool)
        assert not engine.registry.is_active(live_pool)

        third = change_liquidity(engine, live_pool, 5000)
        assert third.action == ActionType.PAUSE
        assert not third.action_executed
        assert "cooldown" in third.action_skipped_reason.lower()

    def test_already_in_state_is_skipped(self, engine, live_pool):
        engine.controller.execute_action(live_pool, ActionType.THROTTLE, OWNER)
        engine.controller.execute_action(live_pool, ActionType.WARNING, OWNER)

        with patch.object(engine.aggregator, "pool_risk", return_value=8_000):
            result = change_liquidity(engine, live_pool, 1000)

        assert result.action == ActionType.THROTTLE
        assert not result.action_executed
        assert "throttled" in result.action_skipped_reason

    @pytest.mark.parametrize("score,action", [
        (4_999, None),
        (5_000, ActionType.WARNING),
        (7_499, ActionType.WARNING),
        (7_500, ActionType.THROTTLE),
        (8_999, ActionType.THROTTLE),
        (9_000, ActionType.PAUSE),
    ])
    def test_score_bands(self, engine, live_pool, score, action):
        with patch.object(engine.aggregator, "pool_risk", return_value=score):
            result = change_liquidity(engine, live_pool, 1000)

        assert result.risk_score == score
        assert result.action == action
        assert result.action_executed is (action is not None)

    def test_feeder_only(self, engine, live_pool):
        with pytest.raises(AuthorizationError):
            engine.on_liquidity_change(live_pool, 1000, PRECISION, "WETH", "USDC", -100, 100, OUTSIDER)

    def test_invalid_reading_records_nothing(self, engine, live_pool):
        with pytest.raises(ValidationError):
            change_liquidity(engine, live_pool, 0)
        assert engine.liquidity.liquidity_history(live_pool) == []

    def test_result_serializes(self, engine, live_pool):
        data = change_liquidity(engine, live_pool, 1000).to_dict()

        assert data["pool_id"] == live_pool
        assert data["liquidity"]["composite_score"] == 9861
        assert data["action"] is None


# =============================================================
# TEST: Reads
# =============================================================

class TestReads:
    """Facade read paths."""

    def test_position_risk(self, engine, live_pool):
        engine.positions.update("0xuser", live_pool, 100, -100, 100, OWNER)
        engine.positions.update_risk("0xuser", live_pool, 4_200, OWNER)

        assert engine.get_position_risk("0xuser", live_pool) == 4_200

    def test_pool_and_system_risk(self, engine, live_pool):
        for value in (100, 102, 98, 101):
            engine.on_trade(live_pool, price(value), FEEDER)
        change_liquidity(engine, live_pool, 1000)
        change_liquidity(engine, live_pool, 1100)

        breakdown = engine.get_pool_risk(live_pool)
        assert breakdown.volatility_score == 147
        assert breakdown.liquidity_score == 1000
        assert engine.get_system_risk().risk_count == 1

    def test_system_risk_stale_at_start(self, engine):
        with pytest.raises(StaleDataError):
            engine.get_system_risk()

    def test_user_risk_without_positions(self, engine, live_pool):
        assert engine.get_user_risk("0xuser") == 0

    def test_notifications_page(self, engine, live_pool):
        for i in range(3):
            engine.notifier.notify("0xuser", 1, f"n{i}", OWNER)

        page = engine.get_notifications("0xuser", offset=1, limit=1)
        assert [n.message for n in page] == ["n1"]


# =============================================================
# TEST: Engine-Wide Controls
# =============================================================

class TestShutdown:
    """Global pause."""

    def test_shutdown_blocks_writes(self, engine, live_pool):
        engine.emergency_shutdown(OWNER, reason="oracle outage")

        assert engine.is_paused
        assert engine.get_status()["pause_reason"] == "oracle outage"
        assert engine.events.last("EnginePaused").payload["reason"] == "oracle outage"
        with pytest.raises(SystemPausedError):
            engine.on_trade(live_pool, price(100), FEEDER)
        with pytest.raises(SystemPausedError):
            change_liquidity(engine, live_pool, 1000)

    def test_reads_available_while_paused(self, engine, live_pool):
        engine.emergency_shutdown(OWNER)

        assert engine.get_user_risk("0xuser") == 0
        assert engine.registry.is_active(live_pool)

    def test_owner_only(self, engine):
        with pytest.raises(AuthorizationError):
            engine.emergency_shutdown(OUTSIDER)

    def test_double_shutdown(self, engine):
        engine.emergency_shutdown(OWNER)
        with pytest.raises(AlreadyInStateError):
            engine.emergency_shutdown(OWNER)

    def test_resume(self, engine, live_pool):
        engine.emergency_shutdown(OWNER)
        engine.resume_operations(OWNER)

        assert not engine.is_paused
        assert engine.events.last("EngineResumed") is not None
        engine.on_trade(live_pool, price(100), FEEDER)

    def test_resume_when_running(self, engine):
        with pytest.raises(AlreadyInStateError):
            engine.resume_operations(OWNER)


# =============================================================
# TEST: Configuration
# =============================================================

class TestEngineConfig:
    """Configuration validation and environment loading."""

    def test_defaults_valid(self):
        assert EngineConfig().validate() == []

    def test_unordered_bands(self):
        config = EngineConfig(bands=ControlBands(warning=8_000, throttle=7_500, pause=9_000))
        assert any("bands" in e for e in config.validate())

    def test_threshold_range(self):
        assert EngineConfig(high_risk_threshold=0).validate()
        assert EngineConfig(high_risk_threshold=10_001).validate()

    def test_from_env(self, monkeypatch):
        monkeypatch.setenv("POOL_RISK_OWNER", "0xenvowner")
        monkeypatch.setenv("POOL_RISK_CACHE_DURATION_SECONDS", "60")
        monkeypatch.setenv("POOL_RISK_HIGH_RISK_THRESHOLD", "8000")
        monkeypatch.setenv("POOL_RISK_MAX_NOTIFICATIONS", "10")
        monkeypatch.setenv("POOL_RISK_VOLATILITY_WINDOW", "12")
        monkeypatch.setenv("POOL_RISK_LOG_FORMAT", "json")
        monkeypatch.delenv("POOL_RISK_DATABASE_URL", raising=False)

        with patch("orchestrator.config.load_dotenv"):
            config = EngineConfig.from_env()

        assert config.owner == "0xenvowner"
        assert config.scoring.aggregator.cache_duration_seconds == 60
        assert config.scoring.aggregator.high_risk_threshold == 8_000
        assert config.bands.throttle == 8_000
        assert config.controller.notifier.max_notifications_per_user == 10
        assert config.scoring.volatility.default_window_size == 12
        assert config.log_format == "json"
        assert config.database_url is None

    def test_to_dict(self):
        data = EngineConfig(owner=OWNER).to_dict()
        assert data["owner"] == OWNER
        assert data["bands"] == {"warning": 5_000, "throttle": 7_500, "pause": 9_000}
        assert data["database_persistence"] is False


class TestFactory:
    """Engine factory."""

    def test_attaches_audit_trail(self, clock):
        config = EngineConfig(owner=OWNER, database_url="sqlite:///:memory:")
        engine = create_pool_risk_engine(config, clock=clock)

        assert engine.get_status()["audit_trail"] is True
        engine.register_pool(POOL, DEFAULT_PARAMS, OWNER)
        assert engine._audit_writer.written > 0

    def test_without_database(self, clock):
        engine = create_pool_risk_engine(EngineConfig(owner=OWNER), clock=clock)
        assert engine.get_status()["audit_trail"] is False


# =============================================================
# TEST: Logging
# =============================================================

class TestSetupLogging:
    """Root logger configuration."""

    @pytest.fixture(autouse=True)
    def restore_root_logger(self):
        root = logging.getLogger()
        handlers, level = list(root.handlers), root.level
        yield
        root.handlers = handlers
        root.setLevel(level)

    def test_json_format(self):
        setup_logging("DEBUG", "json")

        root = logging.getLogger()
        assert root.level == logging.DEBUG
        assert len(root.handlers) == 1
        assert '"level": "%(levelname)s"' in root.handlers[0].formatter._fmt

    def test_text_format(self):
        setup_logging("warning", "text")

        root = logging.getLogger()
        assert root.level == logging.WARNING
        assert "%(levelname)-8s" in root.handlers[0].formatter._fmt
