"""Per-session compaction overrides keyed by session-manager identity.

A session manager is an opaque object owned by the agent runtime. Overrides
are attached to it by identity (never by value), so two managers with equal
contents never share an entry. Weak references let an entry disappear together
with its manager; objects that cannot be weakly referenced (dict, list,
__slots__ classes) are held strongly until their entry is removed.
"""

import threading
import weakref
from dataclasses import dataclass
from typing import Any, Callable, Dict, Optional, Tuple

from transcript_guard.utils.logger import get_logger

logger = get_logger(__name__)

# Values that cannot serve as identity keys
_NON_OBJECT_TYPES = (str, bytes, int, float, complex, bool)


@dataclass(frozen=True)
class CompactionRuntimeConfig:
    """Compaction overrides for one session."""

    max_history_share: Optional[float] = None
    context_window_tokens: Optional[int] = None


class CompactionRuntimeRegistry:
    """Identity-keyed map from session managers to CompactionRuntimeConfig."""

    def __init__(self):
        self._entries: Dict[int, Tuple[weakref.ref, CompactionRuntimeConfig]] = {}
        self._strong_entries: Dict[int, Tuple[Any, CompactionRuntimeConfig]] = {}
        # Re-entrant: weakref callbacks can fire during GC inside a locked section
        self._lock = threading.RLock()

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries) + len(self._strong_entries)

    def _make_remover(self, key_id: int) -> Callable[[weakref.ref], None]:
        registry_ref = weakref.ref(self)

        def _remove(ref: weakref.ref) -> None:
            registry = registry_ref()
            if registry is None:
                return
            with registry._lock:
                entry = registry._entries.get(key_id)
                # The id may already belong to a newer object
                if entry is not None and entry[0] is ref:
                    del registry._entries[key_id]

        return _remove

    @staticmethod
    def _is_identity_key(session_manager: Any) -> bool:
        return session_manager is not None and not isinstance(
            session_manager, _NON_OBJECT_TYPES
        )

    def set(
        self, session_manager: Any, value: Optional[CompactionRuntimeConfig]
    ) -> None:
        """Attach ``value`` to ``session_manager``; None removes the entry.

        Keys that are None or primitives are ignored.
        """
        if not self._is_identity_key(session_manager):
            return
        key_id = id(session_manager)

        if value is None:
            with self._lock:
                entry = self._entries.get(key_id)
                if entry is not None and entry[0]() is session_manager:
                    del self._entries[key_id]
                strong = self._strong_entries.get(key_id)
                if strong is not None and strong[0] is session_manager:
                    del self._strong_entries[key_id]
            return

        try:
            ref = weakref.ref(session_manager, self._make_remover(key_id))
        except TypeError:
            logger.debug(
                "Holding compaction runtime key strongly",
                key_type=type(session_manager).__name__,
            )
            with self._lock:
                self._entries.pop(key_id, None)
                self._strong_entries[key_id] = (session_manager, value)
            return

        with self._lock:
            self._strong_entries.pop(key_id, None)
            self._entries[key_id] = (ref, value)

    def get(self, session_manager: Any) -> Optional[CompactionRuntimeConfig]:
        """Return the override for ``session_manager``, or None when absent."""
        if not self._is_identity_key(session_manager):
            return None
        key_id = id(session_manager)
        with self._lock:
            entry = self._entries.get(key_id)
            strong = self._strong_entries.get(key_id)
        if entry is not None and entry[0]() is session_manager:
            return entry[1]
        if strong is not None and strong[0] is session_manager:
            return strong[1]
        return None

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()
            self._strong_entries.clear()


_default_registry: Optional[CompactionRuntimeRegistry] = None
_default_lock = threading.Lock()


def get_default_registry() -> CompactionRuntimeRegistry:
    """Process-wide registry, created on first use."""
    global _default_registry
    with _default_lock:
        if _default_registry is None:
            _default_registry = CompactionRuntimeRegistry()
        return _default_registry


def reset_default_registry() -> None:
    """Drop the process-wide registry (useful for tests)."""
    global _default_registry
    with _default_lock:
        _default_registry = None


def set_compaction_runtime(
    session_manager: Any,
    value: Optional[CompactionRuntimeConfig],
    registry: Optional[CompactionRuntimeRegistry] = None,
) -> None:
    if registry is None:
        registry = get_default_registry()
    registry.set(session_manager, value)


def get_compaction_runtime(
    session_manager: Any,
    registry: Optional[CompactionRuntimeRegistry] = None,
) -> Optional[CompactionRuntimeConfig]:
    if registry is None:
        registry = get_default_registry()
    return registry.get(session_manager)
