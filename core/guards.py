"""
Core Module - Operation Guards.

============================================================
RESPONSIBILITY
============================================================
Explicit guards wrapped around every state-mutating operation.

1. PauseGuard: global pause flag, checked at the top of every
   mutating call, raises SystemPausedError
2. ReentrancyGuard: per-component in-progress flag, released
   on every exit path
3. atomic(): all-or-nothing execution; on failure every
   participant is restored and pending events are dropped

============================================================
USAGE
============================================================
    def update(self, pool_id, params, caller):
        self._pause_guard.require_not_paused("registry.update")
        with self._reentrancy.guard("registry.update"), \\
                atomic(self.scoped(pool_id), events=self._events):
            ...

============================================================
"""

import copy
import logging
from contextlib import contextmanager
from typing import Any, Dict, Generator, Hashable, Iterable, Optional, Tuple, Union, TYPE_CHECKING

from .exceptions import ReentrantCallError, SystemPausedError

if TYPE_CHECKING:
    from .events import EventLog


logger = logging.getLogger(__name__)


# ============================================================
# TRANSACTIONAL STATE
# ============================================================

_ABSENT = object()


class KeyedSnapshot:
    """Saved entries of a dict field; _ABSENT marks keys that did not exist."""

    def __init__(self, entries: Dict[Hashable, Any]):
        self.entries = entries

    def restore_into(self, target: Dict[Hashable, Any]) -> None:
        for key, saved in self.entries.items():
            if saved is _ABSENT:
                target.pop(key, None)
            else:
                target[key] = saved


class Transactional:
    """
    Mixin for components whose state can be rolled back.

    Subclasses list the attribute names holding their mutable
    state in `_transactional_fields`. Dict fields named in
    `_keyed_fields` can be snapshotted per key through scoped():
    only the entries an operation touches are copied. A scoped
    block must not rebind a keyed field.
    """

    _transactional_fields: Tuple[str, ...] = ()
    _keyed_fields: Tuple[str, ...] = ()

    def snapshot_state(self, keys: Optional[Iterable[Hashable]] = None) -> Dict[str, Any]:
        if keys is not None:
            keys = list(keys)
        snapshot: Dict[str, Any] = {}
        for name in self._transactional_fields:
            value = getattr(self, name)
            if keys is not None and name in self._keyed_fields:
                snapshot[name] = KeyedSnapshot({
                    key: copy.deepcopy(value[key]) if key in value else _ABSENT
                    for key in keys
                })
            else:
                snapshot[name] = copy.deepcopy(value)
        return snapshot

    def restore_state(self, snapshot: Dict[str, Any]) -> None:
        for name, value in snapshot.items():
            if isinstance(value, KeyedSnapshot):
                value.restore_into(getattr(self, name))
            else:
                setattr(self, name, value)

    def scoped(self, *keys: Hashable) -> "ScopedState":
        """Participant for atomic() that snapshots only the given keys."""
        return ScopedState(self, keys)


class ScopedState:
    """A Transactional restricted to a set of keys."""

    def __init__(self, owner: Transactional, keys: Iterable[Hashable]):
        self._owner = owner
        self._keys = tuple(keys)

    def snapshot_state(self) -> Dict[str, Any]:
        return self._owner.snapshot_state(self._keys)

    def restore_state(self, snapshot: Dict[str, Any]) -> None:
        self._owner.restore_state(snapshot)


@contextmanager
def atomic(
    *participants: Union[Transactional, ScopedState],
    events: Optional["EventLog"] = None,
) -> Generator[None, None, None]:
    """
    Run a block all-or-nothing across participants.

    Nested blocks snapshot again; an inner failure that is caught
    by the caller (batch skip semantics) only undoes the inner block.
    """
    snapshots = [(p, p.snapshot_state()) for p in participants]
    if events is not None:
        events.begin()
    try:
        yield
    except BaseException:
        for participant, snapshot in reversed(snapshots):
            participant.restore_state(snapshot)
        if events is not None:
            events.rollback()
        raise
    else:
        if events is not None:
            events.commit()


# ============================================================
# REENTRANCY GUARD
# ============================================================

class ReentrancyGuard:
    """Per-component in-progress flag."""

    def __init__(self, name: str):
        self._name = name
        self._active: Optional[str] = None

    @property
    def in_progress(self) -> bool:
        return self._active is not None

    @contextmanager
    def guard(self, operation: str) -> Generator[None, None, None]:
        if self._active is not None:
            logger.error(
                f"Reentrant call blocked on {self._name}: {operation} "
                f"while {self._active} in progress"
            )
            raise ReentrantCallError(f"{self._name}.{operation}")
        self._active = operation
        try:
            yield
        finally:
            self._active = None


# ============================================================
# PAUSE GUARD
# ============================================================

class PauseGuard(Transactional):
    """Global pause switch shared by all engine components."""

    _transactional_fields = ("_paused", "_reason")

    def __init__(self):
        self._paused = False
        self._reason: Optional[str] = None

    @property
    def is_paused(self) -> bool:
        return self._paused

    @property
    def reason(self) -> Optional[str]:
        return self._reason

    def pause(self, reason: str) -> None:
        self._paused = True
        self._reason = reason
        logger.critical(f"Engine paused: {reason}")

    def unpause(self) -> None:
        self._paused = False
        self._reason = None
        logger.info("Engine resumed")

    def require_not_paused(self, operation: str) -> None:
        if self._paused:
            raise SystemPausedError(operation)
