"""
core/quote_store.py - In-memory quote data store.

Single source of truth for component parameters and enabled flags. Serves
as the params provider consumed by the calculation orchestrator and
notifies listeners on every change so the owner can schedule
recalculation.
"""

from __future__ import annotations
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Callable, Dict, Iterable, List, Optional, Protocol
import copy
import logging

logger = logging.getLogger(__name__)


class ParamsProvider(Protocol):
    """What the orchestrator needs from the data layer."""

    def get_component_params(self, component_id: str) -> Dict[str, Any]:
        """Current params; defaults for a never-configured component."""
        ...

    def is_component_enabled(self, component_id: str) -> bool:
        """Whether the component is part of the quote."""
        ...


@dataclass
class ComponentState:
    """Enabled flag and params for one component."""
    enabled: bool = False
    params: Dict[str, Any] = field(default_factory=dict)
    updated_at: Optional[datetime] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "enabled": self.enabled,
            "params": copy.deepcopy(self.params),
        }


@dataclass(frozen=True)
class StoreChange:
    """Notification payload sent to store listeners."""
    component_id: str
    change_type: str  # "params" | "enabled" | "component" | "load" | "clear"
    source: str = "unknown"


StoreListener = Callable[[StoreChange], None]


class QuoteStore:
    """
    In-memory quote data store.

    Params are deep-copied on the way in and out, so neither the UI layer
    nor a calculator can mutate stored state through a shared reference.
    """

    def __init__(self, component_ids: Iterable[str] = ()):
        self._components: Dict[str, ComponentState] = {
            cid: ComponentState() for cid in component_ids
        }
        self._listeners: List[StoreListener] = []
        self._project: Dict[str, Any] = {}

    # ==================== Params provider ====================

    def get_component_params(self, component_id: str) -> Dict[str, Any]:
        state = self._components.get(component_id)
        if state is None:
            return {}
        return copy.deepcopy(state.params)

    def is_component_enabled(self, component_id: str) -> bool:
        state = self._components.get(component_id)
        return bool(state and state.enabled)

    # ==================== Mutation ====================

    def update_params(
        self,
        component_id: str,
        params: Dict[str, Any],
        source: str = "user",
        merge: bool = True,
    ) -> None:
        """Update params for a component (merged into existing by default)."""
        state = self._components.setdefault(component_id, ComponentState())
        new_params = copy.deepcopy(params)
        if merge:
            state.params.update(new_params)
        else:
            state.params = new_params
        state.updated_at = datetime.now(timezone.utc)
        self._notify(StoreChange(component_id, "params", source))

    def set_enabled(self, component_id: str, enabled: bool, source: str = "user") -> None:
        state = self._components.setdefault(component_id, ComponentState())
        if state.enabled == enabled:
            return
        state.enabled = enabled
        state.updated_at = datetime.now(timezone.utc)
        self._notify(StoreChange(component_id, "enabled", source))

    def update_component(
        self,
        component_id: str,
        enabled: Optional[bool] = None,
        params: Optional[Dict[str, Any]] = None,
        source: str = "user",
    ) -> None:
        """Set enabled flag and/or params with a single notification."""
        state = self._components.setdefault(component_id, ComponentState())
        if enabled is not None:
            state.enabled = enabled
        if params is not None:
            state.params = copy.deepcopy(params)
        state.updated_at = datetime.now(timezone.utc)
        self._notify(StoreChange(component_id, "component", source))

    def update_project(self, project: Dict[str, Any]) -> None:
        self._project.update(copy.deepcopy(project))

    def get_project(self) -> Dict[str, Any]:
        return copy.deepcopy(self._project)

    # ==================== Queries ====================

    def get_component(self, component_id: str) -> ComponentState:
        state = self._components.get(component_id)
        if state is None:
            return ComponentState()
        return ComponentState(
            enabled=state.enabled,
            params=copy.deepcopy(state.params),
            updated_at=state.updated_at,
        )

    def get_enabled_components(self) -> List[str]:
        return [cid for cid, s in self._components.items() if s.enabled]

    @property
    def component_ids(self) -> List[str]:
        return list(self._components)

    # ==================== Listeners ====================

    def subscribe(self, listener: StoreListener) -> Callable[[], None]:
        """Register a change listener. Returns an unsubscribe function."""
        if listener not in self._listeners:
            self._listeners.append(listener)
        return lambda: self.unsubscribe(listener)

    def unsubscribe(self, listener: StoreListener) -> bool:
        try:
            self._listeners.remove(listener)
            return True
        except ValueError:
            return False

    def _notify(self, change: StoreChange) -> None:
        for listener in list(self._listeners):
            try:
                listener(change)
            except Exception as e:
                logger.error(
                    f"Store listener failed for {change.component_id} "
                    f"({change.change_type}): {e}"
                )

    # ==================== Serialization ====================

    def to_dict(self) -> Dict[str, Any]:
        return {
            "project": copy.deepcopy(self._project),
            "components": {cid: s.to_dict() for cid, s in self._components.items()},
        }

    def load_dict(self, data: Dict[str, Any], source: str = "load") -> List[str]:
        """
        Replace component state from a quote dict.

        Components missing from ``data`` are reset to disabled defaults.
        Returns the ids that were loaded.
        """
        components = data.get("components", {}) or {}
        self._project = copy.deepcopy(data.get("project", {}) or {})

        for cid in self._components:
            if cid not in components:
                self._components[cid] = ComponentState()

        loaded = []
        for cid, raw in components.items():
            raw = raw or {}
            self._components[cid] = ComponentState(
                enabled=bool(raw.get("enabled", False)),
                params=copy.deepcopy(raw.get("params", {}) or {}),
                updated_at=datetime.now(timezone.utc),
            )
            loaded.append(cid)

        for cid in loaded:
            self._notify(StoreChange(cid, "load", source))

        logger.info(f"Loaded quote with {len(loaded)} components")
        return loaded

    def clear(self, source: str = "user") -> None:
        for cid in list(self._components):
            self._components[cid] = ComponentState()
            self._notify(StoreChange(cid, "clear", source))
        self._project = {}
