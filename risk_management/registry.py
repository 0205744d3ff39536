"""
Risk Management - Pool Registry.

============================================================
RESPONSIBILITY
============================================================
Source of truth for which pools are under monitoring.

- Registers pools with their thresholds
- Lets pool managers tune thresholds
- Activates / deactivates pools (never deletes)
- Keeps the per-pool manager allow-list

============================================================
RULES
============================================================
1. Every active pool has all thresholds > 0
2. Registering an active pool fails ("already registered")
3. Updating an inactive pool fails ("pool inactive")
4. batch_update skips invalid entries instead of aborting

============================================================
"""

import logging
from typing import Dict, List, Optional, Sequence

from core.access_control import AccessControl
from core.constants import (
    RESOURCE_REGISTRY_ADMIN,
    RESOURCE_REGISTRY_CONTROL,
    pool_manager_resource,
)
from core.events import EventLog
from core.exceptions import (
    AlreadyInStateError,
    PoolAlreadyRegisteredError,
    PoolInactiveError,
    PoolNotRegisteredError,
    ValidationError,
)
from core.guards import PauseGuard, ReentrancyGuard, Transactional, atomic

from .types import PoolRiskParameters


logger = logging.getLogger(__name__)


class RiskRegistry(Transactional):
    """Per-pool risk configuration and manager allow-lists."""

    _transactional_fields = ("_parameters", "_registered_pools")
    _keyed_fields = ("_parameters",)

    def __init__(
        self,
        access: AccessControl,
        events: EventLog,
        pause_guard: Optional[PauseGuard] = None,
    ):
        self._access = access
        self._events = events
        self._pause_guard = pause_guard or PauseGuard()
        self._reentrancy = ReentrancyGuard("registry")
        self._parameters: Dict[str, PoolRiskParameters] = {}
        self._registered_pools: List[str] = []

    # --------------------------------------------------------
    # VALIDATION
    # --------------------------------------------------------

    @staticmethod
    def _validate_thresholds(params: PoolRiskParameters) -> None:
        if params.volatility_threshold <= 0:
            raise ValidationError(
                "Volatility threshold must be positive",
                field_name="volatility_threshold",
                value=params.volatility_threshold,
            )
        if params.liquidity_threshold <= 0:
            raise ValidationError(
                "Liquidity threshold must be positive",
                field_name="liquidity_threshold",
                value=params.liquidity_threshold,
            )
        if params.concentration_threshold <= 0:
            raise ValidationError(
                "Concentration threshold must be positive",
                field_name="concentration_threshold",
                value=params.concentration_threshold,
            )

    # --------------------------------------------------------
    # WRITE OPERATIONS
    # --------------------------------------------------------

    def register(self, pool_id: str, params: PoolRiskParameters, caller: str) -> None:
        """Register (or re-register a deactivated) pool and activate it."""
        self._pause_guard.require_not_paused("registry.register")
        self._access.require(caller, RESOURCE_REGISTRY_ADMIN)
        self._validate_thresholds(params)

        with self._reentrancy.guard("register"), atomic(self.scoped(pool_id), events=self._events):
            current = self._parameters.get(pool_id)
            if current is not None and current.is_active:
                raise PoolAlreadyRegisteredError(pool_id)

            self._parameters[pool_id] = params.with_active(True)
            if pool_id not in self._registered_pools:
                self._registered_pools.append(pool_id)

            self._events.emit("PoolRegistered", pool_id=pool_id, **params.with_active(True).to_dict())
            logger.info(f"Pool registered: {pool_id} {params.to_dict()}")

    def update(self, pool_id: str, params: PoolRiskParameters, caller: str) -> None:
        """Replace the thresholds of an active pool. Manager or owner."""
        self._pause_guard.require_not_paused("registry.update")
        self._access.require(caller, pool_manager_resource(pool_id))
        self._validate_thresholds(params)

        with self._reentrancy.guard("update"), atomic(self.scoped(pool_id), events=self._events):
            self._apply_update(pool_id, params)

    def _apply_update(self, pool_id: str, params: PoolRiskParameters) -> None:
        current = self._parameters.get(pool_id)
        if current is None or not current.is_active:
            raise PoolInactiveError(pool_id)

        self._parameters[pool_id] = params.with_active(True)
        self._events.emit("PoolParametersUpdated", pool_id=pool_id, **params.with_active(True).to_dict())
        logger.info(f"Pool parameters updated: {pool_id} {params.to_dict()}")

    def batch_update(
        self,
        pool_ids: Sequence[str],
        params_list: Sequence[PoolRiskParameters],
        caller: str,
    ) -> List[str]:
        """
        Update many pools at once. Owner-only.

        Entries with invalid thresholds or an inactive pool are
        skipped silently; returns the pool ids that were updated.
        """
        self._pause_guard.require_not_paused("registry.batch_update")
        self._access.require_owner(caller)
        if not pool_ids:
            raise ValidationError("Empty batch", field_name="pool_ids")
        if len(pool_ids) != len(params_list):
            raise ValidationError(
                f"Array length mismatch: {len(pool_ids)} pools, {len(params_list)} parameter sets",
                field_name="params_list",
            )

        updated: List[str] = []
        with self._reentrancy.guard("batch_update"), \
                atomic(self.scoped(*pool_ids), events=self._events):
            for pool_id, params in zip(pool_ids, params_list):
                if not params.has_valid_thresholds:
                    logger.warning(f"Batch update skipped {pool_id}: invalid thresholds")
                    continue
                try:
                    with atomic(self.scoped(pool_id), events=self._events):
                        self._apply_update(pool_id, params)
                except PoolInactiveError:
                    logger.warning(f"Batch update skipped {pool_id}: pool inactive")
                    continue
                updated.append(pool_id)

        return updated

    def deactivate(self, pool_id: str, caller: str) -> None:
        """Stop monitoring a pool. Owner or registry-control grant."""
        self._pause_guard.require_not_paused("registry.deactivate")
        self._access.require(caller, RESOURCE_REGISTRY_CONTROL)

        with self._reentrancy.guard("deactivate"), \
                atomic(self.scoped(pool_id), events=self._events):
            current = self.require_registered(pool_id)
            if not current.is_active:
                raise AlreadyInStateError(f"Pool already inactive: {pool_id}")
            self._parameters[pool_id] = current.with_active(False)
            self._events.emit("PoolDeactivated", pool_id=pool_id, caller=caller)
            logger.info(f"Pool deactivated: {pool_id} by {caller}")

    def activate(self, pool_id: str, caller: str) -> None:
        """Resume monitoring a previously registered pool."""
        self._pause_guard.require_not_paused("registry.activate")
        self._access.require(caller, RESOURCE_REGISTRY_CONTROL)

        with self._reentrancy.guard("activate"), atomic(self.scoped(pool_id), events=self._events):
            current = self.require_registered(pool_id)
            if current.is_active:
                raise AlreadyInStateError(f"Pool already active: {pool_id}")
            self._parameters[pool_id] = current.with_active(True)
            self._events.emit("PoolActivated", pool_id=pool_id, caller=caller)
            logger.info(f"Pool activated: {pool_id} by {caller}")

    # --------------------------------------------------------
    # MANAGERS
    # --------------------------------------------------------

    def add_manager(self, pool_id: str, address: str, caller: str) -> None:
        self._pause_guard.require_not_paused("registry.add_manager")
        with atomic(self._access.scoped(pool_manager_resource(pool_id)), events=self._events):
            self._access.grant(pool_manager_resource(pool_id), address, caller)
            self._events.emit("ManagerAdded", pool_id=pool_id, manager=address)

    def remove_manager(self, pool_id: str, address: str, caller: str) -> None:
        self._pause_guard.require_not_paused("registry.remove_manager")
        with atomic(self._access.scoped(pool_manager_resource(pool_id)), events=self._events):
            self._access.revoke(pool_manager_resource(pool_id), address, caller)
            self._events.emit("ManagerRemoved", pool_id=pool_id, manager=address)

    def is_manager(self, pool_id: str, address: str) -> bool:
        """Owner is always a manager."""
        return self._access.is_authorized(address, pool_manager_resource(pool_id))

    def managers(self, pool_id: str) -> List[str]:
        return sorted(self._access.members(pool_manager_resource(pool_id)))

    # --------------------------------------------------------
    # READS
    # --------------------------------------------------------

    def get_parameters(self, pool_id: str) -> PoolRiskParameters:
        return self.require_registered(pool_id)

    def is_active(self, pool_id: str) -> bool:
        params = self._parameters.get(pool_id)
        return params is not None and params.is_active

    def is_registered(self, pool_id: str) -> bool:
        params = self._parameters.get(pool_id)
        return params is not None and params.was_registered

    def require_registered(self, pool_id: str) -> PoolRiskParameters:
        params = self._parameters.get(pool_id)
        if params is None or not params.was_registered:
            raise PoolNotRegisteredError(pool_id)
        return params

    def registered_pools(self) -> List[str]:
        return list(self._registered_pools)


__all__ = ["RiskRegistry"]
