"""
naascalc Dependency Graph

Directed acyclic graph of pricing components. Edges point from a
dependency to the component that consumes its result. A component may
depend on specific components (Fixed) or on every enabled non-wildcard
component (AllEnabled), which is how the contract components see the
rest of the quote.

The graph is validated once at construction and is immutable afterwards.
"""

from __future__ import annotations
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from itertools import islice
from typing import Any, Dict, FrozenSet, Iterable, List, Optional, Set, Tuple, Union
from collections import Counter, deque
import heapq
import logging
import re

import networkx as nx

from naascalc.errors import ErrorCode, GraphConstructionError, UnknownComponentError

logger = logging.getLogger(__name__)

# Upper bound on cycles reported per validation run.
MAX_REPORTED_CYCLES = 10


# =============================================================================
# DEPENDENCY REFERENCES
# =============================================================================

@dataclass(frozen=True)
class Fixed:
    """Dependency on one named component."""
    component_id: str

    def __str__(self) -> str:
        return self.component_id


@dataclass(frozen=True)
class AllEnabled:
    """Dependency on every currently enabled non-wildcard component."""

    def __str__(self) -> str:
        return "*"


ALL_ENABLED = AllEnabled()

DependencyRef = Union[Fixed, AllEnabled]


def parse_dependency(raw: Union[str, DependencyRef]) -> DependencyRef:
    """Accept "*" / component id strings as well as explicit refs."""
    if isinstance(raw, (Fixed, AllEnabled)):
        return raw
    if raw == "*":
        return ALL_ENABLED
    return Fixed(raw)


# =============================================================================
# COMPONENT DEFINITION
# =============================================================================

@dataclass(frozen=True)
class ComponentDefinition:
    """Static description of one pricing component."""
    id: str
    dependencies: Tuple[DependencyRef, ...] = ()
    category: str = "general"
    component_type: str = ""
    description: str = ""
    display_name: str = ""
    level: Optional[int] = None

    def __post_init__(self):
        object.__setattr__(
            self, "dependencies", tuple(parse_dependency(d) for d in self.dependencies)
        )
        if not self.component_type:
            object.__setattr__(self, "component_type", self.id)
        if not self.display_name:
            object.__setattr__(self, "display_name", self.id)

    @property
    def is_wildcard(self) -> bool:
        return any(isinstance(d, AllEnabled) for d in self.dependencies)

    @property
    def fixed_dependencies(self) -> List[str]:
        return [d.component_id for d in self.dependencies if isinstance(d, Fixed)]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "dependencies": [str(d) for d in self.dependencies],
            "category": self.category,
            "component_type": self.component_type,
            "description": self.description,
            "display_name": self.display_name,
            "level": self.level,
        }


# =============================================================================
# VALIDATION RESULTS
# =============================================================================

class ViolationType(Enum):
    """Kinds of structural graph problems."""
    DUPLICATE = "duplicate"
    SELF_REFERENCE = "self_reference"
    DANGLING = "dangling"
    CYCLE = "cycle"
    LEVEL = "level"


_VIOLATION_CODES = {
    ViolationType.DUPLICATE: ErrorCode.GRF_DUPLICATE,
    ViolationType.SELF_REFERENCE: ErrorCode.GRF_SELF_REFERENCE,
    ViolationType.DANGLING: ErrorCode.GRF_DANGLING,
    ViolationType.CYCLE: ErrorCode.GRF_CYCLE,
    ViolationType.LEVEL: ErrorCode.GRF_LEVEL,
}


@dataclass(frozen=True)
class GraphViolation:
    """One structural problem found while validating the graph."""
    violation_type: ViolationType
    component_id: str
    message: str
    path: Tuple[str, ...] = ()

    @property
    def code(self) -> ErrorCode:
        return _VIOLATION_CODES[self.violation_type]

    def __str__(self) -> str:
        return f"[{self.violation_type.value}] {self.message}"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "type": self.violation_type.value,
            "code": self.code.value,
            "component_id": self.component_id,
            "message": self.message,
            "path": list(self.path),
        }


@dataclass
class RelationshipReport:
    """Enabled-state relationship check. Diagnostic only."""
    errors: List[str] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)

    @property
    def is_valid(self) -> bool:
        return not self.errors

    def to_dict(self) -> Dict[str, Any]:
        return {"errors": list(self.errors), "warnings": list(self.warnings)}


# =============================================================================
# DEPENDENCY GRAPH
# =============================================================================

class DependencyGraph:
    """
    Validated, immutable component dependency graph.

    Levels are derived: 0 for components without dependencies, otherwise
    one more than the highest dependency level. Wildcard components sit one
    level above every non-wildcard component. A declared level is honoured
    only if it is strictly greater than every dependency's level.
    """

    def __init__(self, definitions: Iterable[ComponentDefinition]):
        self._order: List[str] = []
        self._definitions: Dict[str, ComponentDefinition] = {}
        self._levels: Dict[str, int] = {}
        self._duplicates: List[str] = []

        for definition in definitions:
            if definition.id in self._definitions:
                self._duplicates.append(definition.id)
                continue
            self._definitions[definition.id] = definition
            self._order.append(definition.id)

        self._index: Dict[str, int] = {cid: i for i, cid in enumerate(self._order)}
        self._wildcards: List[str] = [
            cid for cid in self._order if self._definitions[cid].is_wildcard
        ]
        self._plain: List[str] = [
            cid for cid in self._order if not self._definitions[cid].is_wildcard
        ]

        # Direct fixed dependents, in registration order
        self._fixed_dependents: Dict[str, List[str]] = {cid: [] for cid in self._order}
        for cid in self._order:
            for dep in self._definitions[cid].fixed_dependencies:
                if dep in self._fixed_dependents and dep != cid:
                    self._fixed_dependents[dep].append(cid)

        violations = self.validate()
        if violations:
            for v in violations:
                logger.error(f"Graph violation: {v}")
            raise GraphConstructionError(violations)

        self._built_at = datetime.now(timezone.utc)
        logger.info(
            f"Dependency graph built: {len(self._order)} components, "
            f"{len(self._wildcards)} wildcard, max level {self.max_level}"
        )

    # ==================== Validation ====================

    def validate(self) -> List[GraphViolation]:
        """
        Collect every structural violation.

        Levels are (re)computed as a side effect when the graph is acyclic.
        """
        violations: List[GraphViolation] = []

        for cid in self._duplicates:
            violations.append(GraphViolation(
                ViolationType.DUPLICATE, cid, f"Component '{cid}' registered more than once"
            ))

        for cid in self._order:
            for dep in self._definitions[cid].fixed_dependencies:
                if dep == cid:
                    violations.append(GraphViolation(
                        ViolationType.SELF_REFERENCE, cid,
                        f"Component '{cid}' depends on itself", (cid, cid),
                    ))
                elif dep not in self._definitions:
                    violations.append(GraphViolation(
                        ViolationType.DANGLING, cid,
                        f"Component '{cid}' depends on unknown component '{dep}'",
                    ))

        expanded = self._expanded_digraph()
        cycles = list(islice(nx.simple_cycles(expanded), MAX_REPORTED_CYCLES))
        for cycle in cycles:
            path = tuple(cycle) + (cycle[0],)
            violations.append(GraphViolation(
                ViolationType.CYCLE, cycle[0],
                f"Cyclic dependency detected: {' -> '.join(path)}", path,
            ))

        if not cycles:
            violations.extend(self._compute_levels(expanded))

        return violations

    def _expanded_digraph(self) -> "nx.DiGraph":
        """Every component with wildcard edges expanded; self-loops and dangling refs left out."""
        g = nx.DiGraph()
        g.add_nodes_from(self._order)
        for cid in self._order:
            for dep in self._dependency_ids_unchecked(cid, None):
                if dep != cid and dep in self._definitions:
                    g.add_edge(dep, cid)
        return g

    def _compute_levels(self, expanded: "nx.DiGraph") -> List[GraphViolation]:
        violations = []
        self._levels = {}
        order = nx.lexicographical_topological_sort(expanded, key=self._index.__getitem__)
        for cid in order:
            deps = list(expanded.predecessors(cid))
            dep_levels = [self._levels[d] for d in deps]
            derived = 1 + max(dep_levels) if dep_levels else 0
            declared = self._definitions[cid].level
            if declared is None:
                self._levels[cid] = derived
                continue
            if declared < derived:
                worst = max(deps, key=lambda d: self._levels[d])
                violations.append(GraphViolation(
                    ViolationType.LEVEL, cid,
                    f"Component '{cid}' declares level {declared} but depends on "
                    f"'{worst}' at level {self._levels[worst]}",
                ))
                self._levels[cid] = derived
            else:
                self._levels[cid] = declared
        return violations

    # ==================== Lookups ====================

    def _require(self, component_id: str) -> ComponentDefinition:
        definition = self._definitions.get(component_id)
        if definition is None:
            raise UnknownComponentError(component_id)
        return definition

    def has_component(self, component_id: str) -> bool:
        return component_id in self._definitions

    def get_definition(self, component_id: str) -> ComponentDefinition:
        return self._require(component_id)

    @property
    def component_ids(self) -> List[str]:
        """All component ids in registration order."""
        return list(self._order)

    @property
    def wildcard_ids(self) -> List[str]:
        return list(self._wildcards)

    def is_wildcard(self, component_id: str) -> bool:
        return self._require(component_id).is_wildcard

    def get_level(self, component_id: str) -> int:
        self._require(component_id)
        return self._levels[component_id]

    @property
    def max_level(self) -> int:
        return max(self._levels.values(), default=0)

    def get_display_name(self, component_id: str) -> str:
        definition = self._definitions.get(component_id)
        return definition.display_name if definition else component_id

    def get_dependencies(self, component_id: str) -> Tuple[DependencyRef, ...]:
        """Declared dependency refs, in declaration order."""
        return self._require(component_id).dependencies

    def get_dependency_ids(
        self,
        component_id: str,
        enabled: Optional[Iterable[str]] = None,
    ) -> List[str]:
        """
        Concrete dependency ids for a component.

        The wildcard expands to every non-wildcard component other than
        the component itself, restricted to ``enabled`` when given.
        """
        self._require(component_id)
        enabled_set = None if enabled is None else frozenset(enabled)
        return self._dependency_ids_unchecked(component_id, enabled_set)

    def _dependency_ids_unchecked(
        self,
        component_id: str,
        enabled: Optional[FrozenSet[str]],
    ) -> List[str]:
        result: List[str] = []
        seen: Set[str] = set()
        for dep in self._definitions[component_id].dependencies:
            if isinstance(dep, Fixed):
                if dep.component_id not in seen:
                    seen.add(dep.component_id)
                    result.append(dep.component_id)
                continue
            for other in self._plain:
                if other == component_id or other in seen:
                    continue
                if enabled is not None and other not in enabled:
                    continue
                seen.add(other)
                result.append(other)
        return result

    def get_dependents(
        self,
        component_id: str,
        enabled: Optional[Iterable[str]] = None,
    ) -> Set[str]:
        """
        Direct dependents of a component.

        Wildcard components count as dependents of a non-wildcard component
        only while it is enabled (always, when ``enabled`` is None).
        """
        definition = self._require(component_id)
        dependents = set(self._fixed_dependents[component_id])
        if not definition.is_wildcard:
            if enabled is None or component_id in set(enabled):
                dependents.update(w for w in self._wildcards if w != component_id)
        return dependents

    def get_affected_closure(
        self,
        component_id: str,
        enabled: Optional[Iterable[str]] = None,
    ) -> Set[str]:
        """The component plus every transitive dependent."""
        self._require(component_id)
        enabled_set = None if enabled is None else frozenset(enabled)

        closure = {component_id}
        queue = deque([component_id])
        while queue:
            current = queue.popleft()
            for dependent in self.get_dependents(current, enabled_set):
                if dependent not in closure:
                    closure.add(dependent)
                    queue.append(dependent)
        return closure

    # ==================== Scheduling ====================

    def topological_order(
        self,
        candidates: Iterable[str],
        enabled: Optional[Iterable[str]] = None,
    ) -> List[str]:
        """
        Order candidates so every dependency precedes its dependents.

        Kahn's algorithm over the subgraph induced by ``candidates``;
        dependencies outside the set are treated as satisfied. Ready
        components are released by (level, registration order), so the
        result is deterministic.
        """
        nodes: List[str] = []
        for cid in candidates:
            self._require(cid)
            if cid not in nodes:
                nodes.append(cid)
        node_set = set(nodes)
        enabled_set = None if enabled is None else frozenset(enabled)

        in_degree: Dict[str, int] = {}
        dependents: Dict[str, List[str]] = {cid: [] for cid in nodes}
        for cid in nodes:
            deps = [
                d for d in self._dependency_ids_unchecked(cid, enabled_set)
                if d in node_set and d != cid
            ]
            in_degree[cid] = len(deps)
            for dep in deps:
                dependents[dep].append(cid)

        ready = [(self._levels[c], self._index[c], c) for c in nodes if in_degree[c] == 0]
        heapq.heapify(ready)

        order: List[str] = []
        while ready:
            _, _, cid = heapq.heappop(ready)
            order.append(cid)
            for dependent in dependents[cid]:
                in_degree[dependent] -= 1
                if in_degree[dependent] == 0:
                    heapq.heappush(
                        ready, (self._levels[dependent], self._index[dependent], dependent)
                    )

        return order

    # ==================== Relationship checks ====================

    def check_relationships(self, enabled: Iterable[str]) -> RelationshipReport:
        """Report enabled components whose dependencies are not enabled."""
        enabled_set = set(enabled)
        report = RelationshipReport()

        for cid in self._order:
            if cid not in enabled_set:
                continue
            definition = self._definitions[cid]
            for dep in definition.dependencies:
                if isinstance(dep, AllEnabled):
                    if not (enabled_set - {cid}):
                        report.warnings.append(
                            f"{cid} requires other components to be enabled"
                        )
                elif dep.component_id not in enabled_set:
                    report.errors.append(
                        f"{cid} requires {dep.component_id} to be enabled"
                    )

        for cid in sorted(enabled_set - set(self._order)):
            report.errors.append(f"Unknown component type: {cid}")

        return report

    # ==================== Diagnostics ====================

    def to_networkx(self, enabled: Optional[Iterable[str]] = None) -> "nx.DiGraph":
        """Export as a networkx DiGraph (edge dependency -> dependent)."""
        enabled_set = None if enabled is None else frozenset(enabled)
        members = self._order if enabled_set is None else [
            c for c in self._order if c in enabled_set
        ]
        member_set = set(members)

        g = nx.DiGraph()
        for cid in members:
            d = self._definitions[cid]
            g.add_node(
                cid,
                label=d.display_name,
                level=self._levels[cid],
                category=d.category,
                wildcard=d.is_wildcard,
            )
        for cid in members:
            d = self._definitions[cid]
            for dep in d.dependencies:
                if isinstance(dep, Fixed):
                    if dep.component_id in member_set:
                        g.add_edge(dep.component_id, cid, type="direct")
                else:
                    for other in self._dependency_ids_unchecked(cid, enabled_set):
                        if other in member_set and not g.has_edge(other, cid):
                            g.add_edge(other, cid, type="wildcard")
        return g

    def generate_visualization_data(
        self, enabled: Optional[Iterable[str]] = None
    ) -> Dict[str, List[Dict[str, Any]]]:
        """Nodes and edges for a UI graph view."""
        enabled_set = None if enabled is None else frozenset(enabled)
        g = self.to_networkx(enabled_set)
        nodes = [
            {
                "id": cid,
                "label": data["label"],
                "level": data["level"],
                "category": data["category"],
                "description": self._definitions[cid].description,
                "enabled": True if enabled_set is None else cid in enabled_set,
            }
            for cid, data in g.nodes(data=True)
        ]
        edges = [
            {"from": src, "to": dst, "type": data["type"]}
            for src, dst, data in g.edges(data=True)
        ]
        return {"nodes": nodes, "edges": edges}

    def generate_mermaid(self, enabled: Optional[Iterable[str]] = None) -> str:
        """Mermaid flowchart of the (enabled) graph, coloured by level."""
        palette = ["#e1f5fe", "#f3e5f5", "#e8f5e8", "#fff3e0", "#fce4ec"]
        data = self.generate_visualization_data(enabled)

        def node_id(cid: str) -> str:
            return re.sub(r"[^a-zA-Z0-9]", "_", cid)

        lines = ["graph TD"]
        for level in range(self.max_level + 1):
            lines.append(f"    classDef level{level} fill:{palette[level % len(palette)]}")
        lines.append("")

        for node in data["nodes"]:
            nid = node_id(node["id"])
            lines.append(f'    {nid}["{node["label"]}"]')
            lines.append(f"    class {nid} level{node['level']}")
        lines.append("")

        for edge in data["edges"]:
            arrow = "-.->|depends on all|" if edge["type"] == "wildcard" else "-->"
            lines.append(f"    {node_id(edge['from'])} {arrow} {node_id(edge['to'])}")

        return "\n".join(lines) + "\n"

    def get_statistics(self) -> Dict[str, Any]:
        levels = Counter(f"Level {self._levels[c]}" for c in self._order)
        categories = Counter(self._definitions[c].category for c in self._order)
        return {
            "total_components": len(self._order),
            "total_edges": sum(len(self._definitions[c].dependencies) for c in self._order),
            "expanded_edges": self.to_networkx().number_of_edges(),
            "wildcard_components": len(self._wildcards),
            "level_distribution": dict(sorted(levels.items())),
            "category_distribution": dict(categories),
            "max_level": self.max_level,
            "circular_dependencies": [],
        }

    def to_dict(self) -> Dict[str, Any]:
        return {
            "version": "1.0",
            "timestamp": self._built_at.isoformat(),
            "components": [
                dict(self._definitions[c].to_dict(), level=self._levels[c])
                for c in self._order
            ],
            "statistics": self.get_statistics(),
        }

    def __len__(self) -> int:
        return len(self._order)

    def __contains__(self, component_id: object) -> bool:
        return component_id in self._definitions

    def __repr__(self) -> str:
        return f"DependencyGraph(components={len(self._order)}, max_level={self.max_level})"


# =============================================================================
# DEFAULT COMPONENTS
# =============================================================================

DEFAULT_COMPONENTS: Tuple[ComponentDefinition, ...] = (
    ComponentDefinition(
        "help", category="documentation",
        display_name="Help & Instructions",
        description="User guide and calculator instructions",
    ),
    ComponentDefinition(
        "assessment", category="services",
        display_name="Platform Assessment",
        description="Network assessment and discovery",
    ),
    ComponentDefinition(
        "admin", category="services",
        display_name="Admin Services",
        description="Administrative and review services",
    ),
    ComponentDefinition(
        "otherCosts", category="flexible",
        display_name="Other Costs",
        description="Additional costs and custom services",
    ),
    ComponentDefinition(
        "prtg", category="monitoring",
        display_name="PRTG Monitoring",
        description="PRTG network monitoring setup and licensing",
    ),
    ComponentDefinition(
        "capital", category="infrastructure",
        display_name="Capital Equipment",
        description="Capital equipment and hardware costs",
    ),
    ComponentDefinition(
        "onboarding", category="services",
        display_name="Onboarding",
        description="Initial setup and implementation services",
    ),
    ComponentDefinition(
        "pbsFoundation", category="platform",
        display_name="PBS Foundation",
        description="PBS foundation platform services",
    ),
    ComponentDefinition(
        "support", (Fixed("capital"),), category="services",
        display_name="Support Services",
        description="24/7 support and maintenance services",
    ),
    ComponentDefinition(
        "enhancedSupport", (Fixed("support"),), category="services",
        display_name="Enhanced Support",
        description="Premium support and monitoring services",
    ),
    ComponentDefinition(
        "naasStandard", (Fixed("prtg"), Fixed("support")), category="packages",
        component_type="naas",
        display_name="NaaS Standard",
        description="Standard NaaS service package",
    ),
    ComponentDefinition(
        "naasEnhanced", (Fixed("naasStandard"), Fixed("enhancedSupport")),
        category="packages",
        component_type="naas",
        display_name="NaaS Enhanced",
        description="Enhanced NaaS service package",
    ),
    ComponentDefinition(
        "dynamics1Year", (ALL_ENABLED,), category="contracts",
        component_type="dynamics",
        display_name="Dynamics 1 Year",
        description="1-year dynamic pricing options",
    ),
    ComponentDefinition(
        "dynamics3Year", (ALL_ENABLED,), category="contracts",
        component_type="dynamics",
        display_name="Dynamics 3 Year",
        description="3-year dynamic pricing options",
    ),
    ComponentDefinition(
        "dynamics5Year", (ALL_ENABLED,), category="contracts",
        component_type="dynamics",
        display_name="Dynamics 5 Year",
        description="5-year dynamic pricing options",
    ),
)


def build_default_graph() -> DependencyGraph:
    """Graph of the calculator's standard components."""
    return DependencyGraph(DEFAULT_COMPONENTS)
