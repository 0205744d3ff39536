"""
Core Module - Access Control.

============================================================
RESPONSIBILITY
============================================================
Explicit authorization: a single check taking (caller, resource)
against an explicit permission map.

- The owner is implicitly authorized for every resource
- Every other grant is an entry in the allow-list of a resource
- Only the owner grants, revokes or transfers ownership

Resources are plain strings (see core.constants), e.g.
"notifier" or "pool.manager:<pool id>".

============================================================
"""

import logging
from typing import Dict, Set

from .exceptions import AuthorizationError, ValidationError
from .guards import Transactional
from .constants import RESOURCE_OWNER


logger = logging.getLogger(__name__)


class AccessControl(Transactional):
    """Owner plus per-resource allow-lists."""

    _transactional_fields = ("_owner", "_permissions")
    _keyed_fields = ("_permissions",)

    def __init__(self, owner: str):
        if not owner:
            raise ValidationError("Owner address is required", field_name="owner")
        self._owner = owner
        self._permissions: Dict[str, Set[str]] = {}

    @property
    def owner(self) -> str:
        return self._owner

    def is_owner(self, caller: str) -> bool:
        return caller == self._owner

    def is_authorized(self, caller: str, resource: str) -> bool:
        """True if caller is the owner or on the resource's allow-list."""
        if self.is_owner(caller):
            return True
        return caller in self._permissions.get(resource, set())

    def require(self, caller: str, resource: str) -> None:
        """Raise AuthorizationError unless caller may act on resource."""
        if not self.is_authorized(caller, resource):
            logger.warning(f"Authorization denied: caller={caller} resource={resource}")
            raise AuthorizationError(caller, resource)

    def require_owner(self, caller: str) -> None:
        if not self.is_owner(caller):
            logger.warning(f"Owner-only call denied: caller={caller}")
            raise AuthorizationError(caller, RESOURCE_OWNER)

    def grant(self, resource: str, address: str, caller: str) -> None:
        """Add address to the allow-list of resource. Owner-only."""
        self.require_owner(caller)
        if not address:
            raise ValidationError("Address is required", field_name="address")
        self._permissions.setdefault(resource, set()).add(address)
        logger.info(f"Granted {resource} to {address}")

    def revoke(self, resource: str, address: str, caller: str) -> None:
        """Remove address from the allow-list of resource. Owner-only."""
        self.require_owner(caller)
        members = self._permissions.get(resource)
        if members is not None:
            members.discard(address)
            if not members:
                del self._permissions[resource]
        logger.info(f"Revoked {resource} from {address}")

    def members(self, resource: str) -> Set[str]:
        """Explicit grants for resource (the implicit owner is not listed)."""
        return set(self._permissions.get(resource, set()))

    def transfer_ownership(self, new_owner: str, caller: str) -> None:
        self.require_owner(caller)
        if not new_owner:
            raise ValidationError("New owner address is required", field_name="new_owner")
        logger.info(f"Ownership transferred: {self._owner} -> {new_owner}")
        self._owner = new_owner
