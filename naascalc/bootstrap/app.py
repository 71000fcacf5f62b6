"""
bootstrap/app.py - Application builder and lifecycle

Wires one calculation engine instance:

    config -> graph -> quote store -> registry -> dispatcher
           -> result store -> orchestrator (subscribed to the store)

Nothing here is global; two apps built side by side share no state.
"""

from __future__ import annotations
from typing import Any, Callable, Dict, List, Mapping, Optional, Sequence
from dataclasses import dataclass, field
from enum import Enum
import inspect
import logging
import time

from .config import NaaSCalcConfig, load_config
from naascalc.core.quote_store import QuoteStore
from naascalc.dependencies.graph import ComponentDefinition, DependencyGraph, DEFAULT_COMPONENTS
from naascalc.dependencies.history import ResultStore
from naascalc.kernel.event_dispatcher import EventDispatcher
from naascalc.kernel.orchestrator import CalculationOrchestrator
from naascalc.kernel.registry import CalculatorRegistry, default_registry
from naascalc.kernel.timers import TimerService
from naascalc.pricing.quote import Quote, build_quote

logger = logging.getLogger("naascalc.bootstrap.app")


class AppState(Enum):
    """Application lifecycle states."""
    CREATED = "created"
    BUILT = "built"
    RUNNING = "running"
    STOPPED = "stopped"
    FAILED = "failed"


@dataclass
class AppContext:
    """Runtime application context."""
    config: Optional[NaaSCalcConfig] = None
    state: AppState = AppState.CREATED
    start_time: float = 0
    metadata: Dict[str, Any] = field(default_factory=dict)

    def get_uptime(self) -> float:
        """Get application uptime in seconds."""
        if self.start_time == 0:
            return 0
        return time.time() - self.start_time


class NaaSCalcApp:
    """Main application class."""

    def __init__(
        self,
        config: Optional[NaaSCalcConfig] = None,
        config_file: Optional[str] = None,
        components: Sequence[ComponentDefinition] = DEFAULT_COMPONENTS,
        registry: Optional[CalculatorRegistry] = None,
        timers: Optional[TimerService] = None,
    ):
        self._config_file = config_file
        self._context = AppContext(config=config)
        self._components = list(components)
        self._registry = registry
        self._timers = timers
        self._startup_hooks: List[Callable] = []
        self._shutdown_hooks: List[Callable] = []
        self._unsubscribe: Optional[Callable[[], Any]] = None

        self.graph: Optional[DependencyGraph] = None
        self.store: Optional[QuoteStore] = None
        self.dispatcher: Optional[EventDispatcher] = None
        self.results: Optional[ResultStore] = None
        self.orchestrator: Optional[CalculationOrchestrator] = None

    @property
    def config(self) -> NaaSCalcConfig:
        return self._context.config

    @property
    def context(self) -> AppContext:
        return self._context

    @property
    def registry(self) -> Optional[CalculatorRegistry]:
        return self._registry

    @property
    def is_built(self) -> bool:
        return self.orchestrator is not None

    def build(self) -> "NaaSCalcApp":
        """
        Build every service in dependency order.

        Raises:
            GraphConstructionError: the component definitions are invalid
        """
        if self._context.config is None:
            self._context.config = load_config(self._config_file)
        config = self._context.config

        try:
            self.graph = DependencyGraph(self._components)
        except Exception:
            self._context.state = AppState.FAILED
            raise

        self.store = QuoteStore(self.graph.component_ids)
        if self._registry is None:
            self._registry = default_registry(config.pricing.to_rates())
        self.dispatcher = EventDispatcher()
        self.results = ResultStore(
            history_size=config.calculation.history_size,
            batch_history_size=config.calculation.batch_history_size,
        )
        self.orchestrator = CalculationOrchestrator(
            graph=self.graph,
            provider=self.store,
            registry=self._registry,
            dispatcher=self.dispatcher,
            results=self.results,
            timers=self._timers,
            debounce_ms=config.calculation.debounce_ms,
            max_wait_ms=config.calculation.max_wait_ms,
        )
        self._unsubscribe = self.store.subscribe(self.orchestrator.handle_store_change)

        self._context.state = AppState.BUILT
        logger.info(
            f"Application built: {len(self.graph)} components, "
            f"{len(self._registry)} calculators"
        )
        return self

    # ==================== Lifecycle ====================

    async def _call_hook(self, hook: Callable) -> None:
        outcome = hook(self._context)
        if inspect.isawaitable(outcome):
            await outcome

    async def start(self) -> None:
        """Build if needed, then run startup hooks in registration order."""
        if not self.is_built:
            self.build()

        self._context.start_time = time.time()
        for hook in self._startup_hooks:
            try:
                await self._call_hook(hook)
            except Exception as e:
                logger.error(f"Startup hook {getattr(hook, '__name__', hook)!r} failed: {e}")
                self._context.state = AppState.FAILED
                raise

        self._context.state = AppState.RUNNING
        logger.info(f"naascalc {self.config.version} running ({self.config.environment})")

    async def stop(self) -> None:
        """Detach from the store, cancel the batch timer, run shutdown hooks last-first."""
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None
        if self.orchestrator is not None:
            self.orchestrator.close()

        for hook in reversed(self._shutdown_hooks):
            try:
                await self._call_hook(hook)
            except Exception as e:
                # later hooks still run
                logger.error(f"Shutdown hook {getattr(hook, '__name__', hook)!r} failed: {e}")

        self._context.state = AppState.STOPPED
        logger.info(f"naascalc stopped after {self._context.get_uptime():.1f}s")

    def on_startup(self, hook: Callable) -> "NaaSCalcApp":
        """Add a hook called with the AppContext on start(); may be async."""
        self._startup_hooks.append(hook)
        return self

    def on_shutdown(self, hook: Callable) -> "NaaSCalcApp":
        self._shutdown_hooks.append(hook)
        return self

    # ==================== Headless quoting ====================

    async def calculate_quote(self, data: Mapping[str, Any]) -> Quote:
        """
        Load a saved quote, recalculate every enabled component and
        combine the results.

        ``data`` has the QuoteStore.to_dict() shape.
        """
        if not self.is_built:
            self.build()

        # store notifications schedule each loaded component
        loaded = self.store.load_dict(data, source="load")
        logger.debug(f"Recalculating {len(loaded)} loaded components")
        await self.orchestrator.flush()

        results = {
            cid: result for cid, result in self.orchestrator.get_results().items()
            if self.store.is_component_enabled(cid)
        }
        return build_quote(results, self.graph)


def create_app(config_file: Optional[str] = None) -> NaaSCalcApp:
    """Create and build an application."""
    return NaaSCalcApp(config_file=config_file).build()
