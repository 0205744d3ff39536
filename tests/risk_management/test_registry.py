"""
Tests for RiskRegistry.

Tests cover:
- Registration and re-registration
- Threshold updates by managers
- Batch updates that skip bad entries
- Activation lifecycle and manager allow-lists
"""

import pytest

from core.constants import RESOURCE_REGISTRY_ADMIN, RESOURCE_REGISTRY_CONTROL
from core.exceptions import (
    AlreadyInStateError,
    AuthorizationError,
    PoolAlreadyRegisteredError,
    PoolInactiveError,
    PoolNotRegisteredError,
    SystemPausedError,
    ValidationError,
)
from risk_management import PoolRiskParameters

from tests.conftest import DEFAULT_PARAMS, MANAGER, OTHER_POOL, OUTSIDER, OWNER, POOL


TIGHT_PARAMS = PoolRiskParameters(
    volatility_threshold=300,
    liquidity_threshold=20_000,
    concentration_threshold=4_000,
)


@pytest.fixture
def registered(registry):
    registry.register(POOL, DEFAULT_PARAMS, OWNER)
    return POOL


# =============================================================
# TEST: Registration
# =============================================================

class TestRegister:
    """Pool registration."""

    def test_register_activates(self, registry, events):
        registry.register(POOL, DEFAULT_PARAMS, OWNER)

        params = registry.get_parameters(POOL)
        assert params.is_active
        assert params.volatility_threshold == 500
        assert registry.registered_pools() == [POOL]
        assert events.last("PoolRegistered").payload["pool_id"] == POOL

    def test_caller_flag_ignored(self, registry):
        registry.register(POOL, DEFAULT_PARAMS.with_active(False), OWNER)
        assert registry.is_active(POOL)

    def test_register_twice_fails(self, registry, registered):
        with pytest.raises(PoolAlreadyRegisteredError):
            registry.register(POOL, TIGHT_PARAMS, OWNER)
        assert registry.get_parameters(POOL).volatility_threshold == 500

    def test_reregister_inactive_pool(self, registry, registered):
        registry.deactivate(POOL, OWNER)
        registry.register(POOL, TIGHT_PARAMS, OWNER)

        assert registry.is_active(POOL)
        assert registry.get_parameters(POOL).volatility_threshold == 300
        assert registry.registered_pools() == [POOL]

    @pytest.mark.parametrize("field_name", [
        "volatility_threshold", "liquidity_threshold", "concentration_threshold",
    ])
    def test_zero_threshold_rejected(self, registry, field_name):
        params = PoolRiskParameters(**{**DEFAULT_PARAMS.to_dict(), field_name: 0})
        with pytest.raises(ValidationError) as exc_info:
            registry.register(POOL, params, OWNER)
        assert exc_info.value.context["field"] == field_name
        assert not registry.is_registered(POOL)

    def test_admin_grant_may_register(self, registry, access):
        access.grant(RESOURCE_REGISTRY_ADMIN, MANAGER, OWNER)
        registry.register(POOL, DEFAULT_PARAMS, MANAGER)
        assert registry.is_active(POOL)

    def test_outsider_cannot_register(self, registry):
        with pytest.raises(AuthorizationError):
            registry.register(POOL, DEFAULT_PARAMS, OUTSIDER)

    def test_blocked_while_paused(self, registry, pause_guard):
        pause_guard.pause("test")
        with pytest.raises(SystemPausedError):
            registry.register(POOL, DEFAULT_PARAMS, OWNER)

    def test_unknown_pool_reads(self, registry):
        assert not registry.is_registered(POOL)
        assert not registry.is_active(POOL)
        with pytest.raises(PoolNotRegisteredError):
            registry.get_parameters(POOL)


# =============================================================
# TEST: Updates
# =============================================================

class TestUpdate:
    """Threshold updates."""

    def test_manager_updates(self, registry, registered):
        registry.add_manager(POOL, MANAGER, OWNER)
        registry.update(POOL, TIGHT_PARAMS, MANAGER)
        assert registry.get_parameters(POOL).liquidity_threshold == 20_000

    def test_granting_manager_unlocks_update(self, registry, events):
        initial = PoolRiskParameters(
            volatility_threshold=1_000,
            liquidity_threshold=1_000_000,
            concentration_threshold=7_500,
        )
        registry.register(POOL, initial, OWNER)

        with pytest.raises(AuthorizationError):
            registry.update(POOL, TIGHT_PARAMS, OUTSIDER)
        assert registry.get_parameters(POOL) == initial.with_active(True)
        assert events.last("PoolParametersUpdated") is None

        registry.add_manager(POOL, OUTSIDER, OWNER)
        registry.update(POOL, TIGHT_PARAMS, OUTSIDER)

        assert registry.get_parameters(POOL) == TIGHT_PARAMS.with_active(True)
        assert OUTSIDER in registry.managers(POOL)

    def test_manager_of_other_pool_denied(self, registry, registered):
        registry.register(OTHER_POOL, DEFAULT_PARAMS, OWNER)
        registry.add_manager(OTHER_POOL, MANAGER, OWNER)
        with pytest.raises(AuthorizationError):
            registry.update(POOL, TIGHT_PARAMS, MANAGER)

    def test_inactive_pool_rejected(self, registry, registered):
        registry.deactivate(POOL, OWNER)
        with pytest.raises(PoolInactiveError):
            registry.update(POOL, TIGHT_PARAMS, OWNER)

    def test_unregistered_pool_rejected(self, registry):
        with pytest.raises(PoolInactiveError):
            registry.update(POOL, TIGHT_PARAMS, OWNER)


class TestBatchUpdate:
    """Owner batch update with per-entry skipping."""

    def test_skips_invalid_and_inactive(self, registry, registered):
        registry.register(OTHER_POOL, DEFAULT_PARAMS, OWNER)
        registry.deactivate(OTHER_POOL, OWNER)
        invalid = PoolRiskParameters(0, 1, 1)

        updated = registry.batch_update(
            [POOL, OTHER_POOL, "UNKNOWN", POOL],
            [TIGHT_PARAMS, TIGHT_PARAMS, TIGHT_PARAMS, invalid],
            OWNER,
        )

        assert updated == [POOL]
        assert registry.get_parameters(POOL).volatility_threshold == 300
        assert registry.get_parameters(OTHER_POOL).volatility_threshold == 500

    def test_length_mismatch(self, registry, registered):
        with pytest.raises(ValidationError):
            registry.batch_update([POOL], [], OWNER)

    def test_empty_batch(self, registry):
        with pytest.raises(ValidationError):
            registry.batch_update([], [], OWNER)

    def test_owner_only(self, registry, registered):
        registry.add_manager(POOL, MANAGER, OWNER)
        with pytest.raises(AuthorizationError):
            registry.batch_update([POOL], [TIGHT_PARAMS], MANAGER)


# =============================================================
# TEST: Lifecycle
# =============================================================

class TestLifecycle:
    """Activation, deactivation and managers."""

    def test_deactivate_keeps_record(self, registry, registered, events):
        registry.deactivate(POOL, OWNER)

        assert registry.is_registered(POOL)
        assert not registry.is_active(POOL)
        assert events.last("PoolDeactivated").payload["caller"] == OWNER

    def test_deactivate_twice(self, registry, registered):
        registry.deactivate(POOL, OWNER)
        with pytest.raises(AlreadyInStateError):
            registry.deactivate(POOL, OWNER)

    def test_activate(self, registry, registered):
        registry.deactivate(POOL, OWNER)
        registry.activate(POOL, OWNER)
        assert registry.is_active(POOL)

    def test_activate_active_pool(self, registry, registered):
        with pytest.raises(AlreadyInStateError):
            registry.activate(POOL, OWNER)

    def test_control_grant(self, registry, registered, access):
        with pytest.raises(AuthorizationError):
            registry.deactivate(POOL, MANAGER)

        access.grant(RESOURCE_REGISTRY_CONTROL, MANAGER, OWNER)
        registry.deactivate(POOL, MANAGER)
        assert not registry.is_active(POOL)

    def test_managers(self, registry, registered):
        registry.add_manager(POOL, MANAGER, OWNER)
        assert registry.is_manager(POOL, MANAGER)
        assert registry.is_manager(POOL, OWNER)
        assert registry.managers(POOL) == [MANAGER]

        registry.remove_manager(POOL, MANAGER, OWNER)
        assert not registry.is_manager(POOL, MANAGER)

    def test_only_owner_adds_managers(self, registry, registered, events):
        with pytest.raises(AuthorizationError):
            registry.add_manager(POOL, OUTSIDER, MANAGER)
        assert events.last("ManagerAdded") is None
