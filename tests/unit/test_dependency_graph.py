"""
Unit tests for DependencyGraph.

Tests validation, level derivation, wildcard expansion, closures and
topological ordering.
"""

import networkx as nx
import pytest

from naascalc.dependencies.graph import (
    ALL_ENABLED,
    AllEnabled,
    ComponentDefinition,
    DependencyGraph,
    Fixed,
    ViolationType,
    build_default_graph,
    parse_dependency,
)
from naascalc.errors import ErrorCode, GraphConstructionError, UnknownComponentError


def chain_graph():
    """a <- b <- c, plus a wildcard w."""
    return DependencyGraph([
        ComponentDefinition("a"),
        ComponentDefinition("b", ("a",)),
        ComponentDefinition("c", ("b",)),
        ComponentDefinition("w", ("*",)),
    ])


class TestDependencyRefs:
    """Tests for dependency reference parsing."""

    def test_parse_star_is_wildcard(self):
        assert parse_dependency("*") is ALL_ENABLED

    def test_parse_plain_id(self):
        assert parse_dependency("capital") == Fixed("capital")

    def test_refs_pass_through(self):
        ref = Fixed("x")
        assert parse_dependency(ref) is ref

    def test_definition_normalizes_strings(self):
        d = ComponentDefinition("support", ("capital", "*"))
        assert d.dependencies == (Fixed("capital"), ALL_ENABLED)
        assert d.is_wildcard
        assert d.fixed_dependencies == ["capital"]

    def test_definition_defaults(self):
        d = ComponentDefinition("prtg")
        assert d.component_type == "prtg"
        assert d.display_name == "prtg"
        assert d.to_dict()["dependencies"] == []

    def test_str_forms(self):
        assert str(Fixed("a")) == "a"
        assert str(AllEnabled()) == "*"


class TestValidation:
    """Graph construction rejects structural problems."""

    def test_valid_graph_builds(self):
        graph = chain_graph()
        assert len(graph) == 4
        assert "a" in graph
        assert graph.validate() == []

    def test_cycle_rejected(self):
        with pytest.raises(GraphConstructionError) as exc_info:
            DependencyGraph([
                ComponentDefinition("a", ("c",)),
                ComponentDefinition("b", ("a",)),
                ComponentDefinition("c", ("b",)),
            ])
        violations = exc_info.value.violations
        assert any(v.violation_type is ViolationType.CYCLE for v in violations)
        cycle = next(v for v in violations if v.violation_type is ViolationType.CYCLE)
        assert cycle.path[0] == cycle.path[-1]
        assert set(cycle.path) == {"a", "b", "c"}

    def test_self_reference_rejected(self):
        with pytest.raises(GraphConstructionError) as exc_info:
            DependencyGraph([ComponentDefinition("a", ("a",))])
        violation = exc_info.value.violations[0]
        assert violation.violation_type is ViolationType.SELF_REFERENCE
        assert violation.code is ErrorCode.GRF_SELF_REFERENCE

    def test_dangling_reference_rejected(self):
        with pytest.raises(GraphConstructionError) as exc_info:
            DependencyGraph([ComponentDefinition("a", ("missing",))])
        violation = exc_info.value.violations[0]
        assert violation.violation_type is ViolationType.DANGLING
        assert "missing" in violation.message

    def test_duplicate_rejected(self):
        with pytest.raises(GraphConstructionError) as exc_info:
            DependencyGraph([ComponentDefinition("a"), ComponentDefinition("a")])
        assert exc_info.value.violations[0].violation_type is ViolationType.DUPLICATE

    def test_cycle_through_wildcard_rejected(self):
        """A plain component depending on a wildcard closes a cycle."""
        with pytest.raises(GraphConstructionError):
            DependencyGraph([
                ComponentDefinition("a", ("w",)),
                ComponentDefinition("w", ("*",)),
            ])

    def test_all_violations_reported(self):
        with pytest.raises(GraphConstructionError) as exc_info:
            DependencyGraph([
                ComponentDefinition("a", ("a",)),
                ComponentDefinition("b", ("nope",)),
            ])
        types = {v.violation_type for v in exc_info.value.violations}
        assert types == {ViolationType.SELF_REFERENCE, ViolationType.DANGLING}

    def test_violation_to_dict(self):
        with pytest.raises(GraphConstructionError) as exc_info:
            DependencyGraph([ComponentDefinition("a", ("nope",))])
        data = exc_info.value.violations[0].to_dict()
        assert data["type"] == "dangling"
        assert data["code"] == ErrorCode.GRF_DANGLING.value
        assert data["component_id"] == "a"


class TestLevels:
    """Levels are derived from the dependency structure."""

    def test_derived_levels(self):
        graph = chain_graph()
        assert graph.get_level("a") == 0
        assert graph.get_level("b") == 1
        assert graph.get_level("c") == 2
        assert graph.get_level("w") == 3
        assert graph.max_level == 3

    def test_declared_level_higher_is_kept(self):
        graph = DependencyGraph([
            ComponentDefinition("a"),
            ComponentDefinition("b", ("a",), level=5),
        ])
        assert graph.get_level("b") == 5

    def test_declared_level_too_low_rejected(self):
        with pytest.raises(GraphConstructionError) as exc_info:
            DependencyGraph([
                ComponentDefinition("a", level=2),
                ComponentDefinition("b", ("a",), level=1),
            ])
        violation = exc_info.value.violations[0]
        assert violation.violation_type is ViolationType.LEVEL
        assert violation.component_id == "b"

    def test_declared_level_equal_to_dependency_rejected(self):
        with pytest.raises(GraphConstructionError):
            DependencyGraph([
                ComponentDefinition("a", level=1),
                ComponentDefinition("b", ("a",), level=1),
            ])

    def test_default_graph_levels(self, graph):
        assert graph.get_level("capital") == 0
        assert graph.get_level("support") == 1
        assert graph.get_level("enhancedSupport") == 2
        assert graph.get_level("naasStandard") == 2
        assert graph.get_level("naasEnhanced") == 3
        for cid in graph.wildcard_ids:
            assert graph.get_level(cid) == 4

    def test_unknown_component_level(self, graph):
        with pytest.raises(UnknownComponentError) as exc_info:
            graph.get_level("nonexistent")
        assert str(exc_info.value) == "Unknown component type: nonexistent"
        assert isinstance(exc_info.value, KeyError)


class TestDependencies:
    """Wildcard expansion and dependent lookup."""

    def test_wildcard_expands_to_all_plain(self):
        graph = chain_graph()
        assert graph.get_dependency_ids("w") == ["a", "b", "c"]

    def test_wildcard_expansion_filtered_by_enabled(self):
        graph = chain_graph()
        assert graph.get_dependency_ids("w", enabled={"a", "c"}) == ["a", "c"]

    def test_wildcard_excludes_other_wildcards(self, graph):
        deps = graph.get_dependency_ids("dynamics3Year")
        assert "dynamics1Year" not in deps
        assert "dynamics3Year" not in deps
        assert "capital" in deps

    def test_fixed_dependency_ids(self, graph):
        assert graph.get_dependency_ids("naasStandard") == ["prtg", "support"]

    def test_direct_dependents(self):
        graph = chain_graph()
        assert graph.get_dependents("a") == {"b", "w"}
        assert graph.get_dependents("c") == {"w"}

    def test_wildcard_not_dependent_of_disabled(self):
        graph = chain_graph()
        assert graph.get_dependents("a", enabled={"b"}) == {"b"}
        assert graph.get_dependents("a", enabled={"a"}) == {"b", "w"}

    def test_wildcard_has_no_wildcard_dependents(self):
        graph = chain_graph()
        assert graph.get_dependents("w") == set()


class TestAffectedClosure:
    """Closure contains the component and every transitive dependent."""

    def test_closure_includes_self(self):
        graph = chain_graph()
        assert "c" in graph.get_affected_closure("c")

    def test_closure_transitive(self):
        graph = chain_graph()
        assert graph.get_affected_closure("a") == {"a", "b", "c", "w"}

    def test_closure_of_capital(self, graph):
        closure = graph.get_affected_closure("capital")
        assert {"capital", "support", "enhancedSupport", "naasStandard", "naasEnhanced"} <= closure
        assert set(graph.wildcard_ids) <= closure
        assert "prtg" not in closure

    def test_closure_with_enabled_set(self, graph):
        closure = graph.get_affected_closure("help", enabled={"capital"})
        assert closure == {"help"}

    def test_closure_unknown_component(self, graph):
        with pytest.raises(UnknownComponentError):
            graph.get_affected_closure("bogus")


class TestTopologicalOrder:
    """Scheduling order respects dependencies and is deterministic."""

    def test_chain_order(self):
        graph = chain_graph()
        assert graph.topological_order({"w", "c", "b", "a"}) == ["a", "b", "c", "w"]

    def test_outside_dependencies_are_satisfied(self):
        graph = chain_graph()
        assert graph.topological_order(["c", "w"]) == ["c", "w"]

    def test_wildcards_last(self, graph):
        order = graph.topological_order(graph.component_ids)
        wildcard_positions = [order.index(w) for w in graph.wildcard_ids]
        plain_positions = [i for i, c in enumerate(order) if c not in graph.wildcard_ids]
        assert min(wildcard_positions) > max(plain_positions)

    def test_order_is_deterministic(self, graph):
        ids = graph.component_ids
        assert graph.topological_order(ids) == graph.topological_order(list(reversed(ids)))

    def test_level_then_registration_order(self, graph):
        order = graph.topological_order(["support", "prtg", "capital"])
        assert order == ["prtg", "capital", "support"]

    def test_duplicates_collapse(self):
        graph = chain_graph()
        assert graph.topological_order(["a", "a", "b"]) == ["a", "b"]

    def test_unknown_candidate_rejected(self):
        with pytest.raises(UnknownComponentError):
            chain_graph().topological_order(["a", "zzz"])


class TestRelationshipChecks:
    """Enabled-state dependency checks."""

    def test_missing_dependency_reported(self, graph):
        report = graph.check_relationships({"support"})
        assert "support requires capital to be enabled" in report.errors
        assert not report.is_valid

    def test_wildcard_alone_warns(self, graph):
        report = graph.check_relationships({"dynamics3Year"})
        assert report.errors == []
        assert report.warnings == ["dynamics3Year requires other components to be enabled"]

    def test_unknown_component_reported(self, graph):
        report = graph.check_relationships({"capital", "mystery"})
        assert "Unknown component type: mystery" in report.errors

    def test_satisfied(self, graph):
        report = graph.check_relationships({"capital", "support", "dynamics3Year"})
        assert report.is_valid
        assert report.to_dict() == {"errors": [], "warnings": []}


class TestDiagnostics:
    """Export and visualisation helpers."""

    def test_to_networkx(self):
        g = chain_graph().to_networkx()
        assert isinstance(g, nx.DiGraph)
        assert g.has_edge("a", "b")
        assert g.edges["a", "w"]["type"] == "wildcard"
        assert g.edges["a", "b"]["type"] == "direct"
        assert g.nodes["w"]["wildcard"] is True
        assert nx.is_directed_acyclic_graph(g)

    def test_to_networkx_enabled_subset(self):
        g = chain_graph().to_networkx(enabled={"a", "w"})
        assert set(g.nodes) == {"a", "w"}
        assert list(g.edges) == [("a", "w")]

    def test_visualization_data(self, graph):
        data = graph.generate_visualization_data(enabled={"capital", "support"})
        assert {n["id"] for n in data["nodes"]} == {"capital", "support"}
        assert data["edges"] == [{"from": "capital", "to": "support", "type": "direct"}]

    def test_mermaid(self, graph):
        text = graph.generate_mermaid()
        assert text.startswith("graph TD")
        assert "classDef level0" in text
        assert "capital --> support" in text
        assert "-.->|depends on all| dynamics3Year" in text
        assert "class dynamics3Year level4" in text

    def test_statistics(self, graph):
        stats = graph.get_statistics()
        assert stats["total_components"] == 15
        assert stats["wildcard_components"] == 3
        assert stats["max_level"] == 4
        assert stats["level_distribution"]["Level 0"] == 8
        assert stats["category_distribution"]["contracts"] == 3

    def test_to_dict(self, graph):
        data = graph.to_dict()
        assert len(data["components"]) == 15
        assert data["components"][0]["id"] == "help"

    def test_display_name(self, graph):
        assert graph.get_display_name("capital") == "Capital Equipment"
        assert graph.get_display_name("unknown") == "unknown"

    def test_default_graph_is_fresh(self):
        assert build_default_graph() is not build_default_graph()
