"""
naascalc Dependency Engine

Provides:
- DependencyGraph: validated DAG of pricing components
- Debouncer: coalescing request buffer
- ResultStore: latest results and rolling execution history
"""

from .graph import (
    DependencyGraph,
    ComponentDefinition,
    DependencyRef,
    Fixed,
    AllEnabled,
    ALL_ENABLED,
    GraphViolation,
    ViolationType,
    RelationshipReport,
    DEFAULT_COMPONENTS,
    build_default_graph,
    parse_dependency,
)
from .debounce import (
    Debouncer,
    DebounceState,
    ScheduledTask,
)
from .history import (
    ResultStore,
    ExecutionRecord,
    BatchRecord,
)

__all__ = [
    # Graph
    "DependencyGraph",
    "ComponentDefinition",
    "DependencyRef",
    "Fixed",
    "AllEnabled",
    "ALL_ENABLED",
    "GraphViolation",
    "ViolationType",
    "RelationshipReport",
    "DEFAULT_COMPONENTS",
    "build_default_graph",
    "parse_dependency",
    # Debounce
    "Debouncer",
    "DebounceState",
    "ScheduledTask",
    # History
    "ResultStore",
    "ExecutionRecord",
    "BatchRecord",
]
