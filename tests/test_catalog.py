"""Test the workflow node catalog."""

import pytest

from nodeflow.catalog import (
    BUILTIN_WORKFLOW_NODES,
    WORKFLOW_NODE_CATEGORIES,
    CategoryId,
    NodeCatalog,
    NodeSource,
    WorkflowNodeCatalogEntry,
    map_custom_node_to_catalog_entry,
)
from nodeflow.catalog.catalog import DEFAULT_ICON_GLYPH, map_custom_node_category, resolve_icon_glyph
from nodeflow.metrics import metrics


def extension(node_id="weather", name="Weather Lookup", category="http"):
    """Extension entry payload."""
    return {
        "id": node_id,
        "name": name,
        "description": "Fetch the forecast",
        "icon": "cloud",
        "category": category,
        "color": "text-sky-500",
        "bgColor": "bg-sky-500/10",
        "borderColor": "border-sky-500/20",
    }


@pytest.mark.unit
class TestBuiltinCatalog:
    """Test built-in entries and ordering."""

    def test_builtin_ids_are_unique(self):
        ids = [node.id for node in BUILTIN_WORKFLOW_NODES]
        assert len(ids) == len(set(ids))
        assert all(node.source == NodeSource.BUILTIN for node in BUILTIN_WORKFLOW_NODES)

    def test_category_order(self):
        assert [c.id for c in WORKFLOW_NODE_CATEGORIES] == [
            CategoryId.AI, CategoryId.HTTP, CategoryId.DB, CategoryId.UI, CategoryId.UTILITY,
        ]

    def test_nodes_sorted_by_category_then_name(self, catalog):
        nodes = catalog.list_workflow_nodes()
        order = [c.id for c in WORKFLOW_NODE_CATEGORIES]
        keys = [(order.index(node.category), node.name.casefold()) for node in nodes]

        assert keys == sorted(keys)
        assert nodes[0].category == CategoryId.AI

    def test_category_summary_counts(self, catalog):
        result = catalog.build_workflow_node_catalog()
        counts = {summary.id: summary.count for summary in result.categories}

        assert sum(counts.values()) == len(BUILTIN_WORKFLOW_NODES)
        assert counts[CategoryId.AI] == 2
        assert counts[CategoryId.DB] == 1

    def test_serializes_with_camel_case(self, catalog):
        payload = catalog.build_workflow_node_catalog().model_dump(by_alias=True)
        assert "bgColor" in payload["nodes"][0]
        assert "iconGlyph" in payload["nodes"][0]


@pytest.mark.unit
class TestExtensions:
    """Test runtime extension registration."""

    def test_register_extension(self, catalog):
        assert catalog.register_workflow_node(extension()) is True

        ids = [node.id for node in catalog.list_workflow_nodes()]
        assert "weather" in ids
        assert metrics.get_gauge("catalog_extension_nodes") == 1

    def test_builtin_id_collision_is_ignored(self, catalog):
        original = next(node for node in BUILTIN_WORKFLOW_NODES if node.id == "http-request")

        assert catalog.register_workflow_node(extension("http-request", "Hijacked")) is False

        nodes = {node.id: node for node in catalog.list_workflow_nodes()}
        assert nodes["http-request"] == original
        assert len(catalog.list_workflow_nodes()) == len(BUILTIN_WORKFLOW_NODES)
        assert metrics.get_counter("catalog_registrations_rejected_total") == 1

    def test_extension_replaces_extension(self, catalog):
        catalog.register_workflow_node(extension(name="First"))
        catalog.register_workflow_node(WorkflowNodeCatalogEntry.model_validate(extension(name="Second")))

        names = [node.name for node in catalog.list_workflow_nodes() if node.id == "weather"]
        assert names == ["Second"]

    def test_register_many_and_unregister(self, catalog):
        accepted = catalog.register_workflow_nodes([extension("a"), extension("b"), extension("condition")])

        assert accepted == 2
        assert catalog.unregister_workflow_node("a") is True
        assert catalog.unregister_workflow_node("a") is False
        assert catalog.unregister_workflow_node("condition") is False

    def test_include_flags(self, catalog):
        catalog.register_workflow_node(extension())

        assert [n.id for n in catalog.list_workflow_nodes(include_builtin=False)] == ["weather"]
        assert "weather" not in [n.id for n in catalog.list_workflow_nodes(include_extensions=False)]

    def test_catalogs_are_independent(self, test_settings):
        first, second = NodeCatalog(test_settings), NodeCatalog(test_settings)
        first.register_workflow_node(extension())

        assert len(second.list_workflow_nodes()) == len(BUILTIN_WORKFLOW_NODES)


@pytest.mark.unit
class TestCustomNodes:
    """Test mapping of custom node records."""

    def test_map_custom_node(self, test_settings):
        entry = map_custom_node_to_catalog_entry({
            "slug": "sentiment",
            "displayName": "Sentiment",
            "description": "Score text",
            "category": "AI",
            "version": "2.1.0",
            "icon": "\U0001F600",
            "tags": ["nlp"],
        }, settings=test_settings)

        assert entry.id == "custom:sentiment"
        assert entry.name == "Sentiment"
        assert entry.category == CategoryId.AI
        assert entry.source == NodeSource.CUSTOM
        assert entry.icon_glyph == "\U0001F600"
        assert entry.version == "2.1.0"
        assert entry.tags == ["nlp"]
        assert entry.color == "text-purple-500"
        assert entry.compatibility.compatible is True

    def test_defaults(self, test_settings):
        entry = map_custom_node_to_catalog_entry({"id": 17, "name": "Thing", "latestVersion": "0.3.0"},
                                                 settings=test_settings)

        assert entry.id == "custom:17"
        assert entry.category == CategoryId.UTILITY
        assert entry.icon == "package"
        assert entry.icon_glyph == DEFAULT_ICON_GLYPH
        assert entry.version == "0.3.0"

    def test_sdk_compatibility(self, test_settings):
        entry = map_custom_node_to_catalog_entry(
            {"slug": "future", "name": "Future", "minSdkVersion": "9.0.0"},
            settings=test_settings,
        )
        assert entry.compatibility.compatible is False

        entry = map_custom_node_to_catalog_entry(
            {"slug": "future", "name": "Future", "minSdkVersion": "9.0.0"},
            {"sdkVersion": "9.1.0"},
            settings=test_settings,
        )
        assert entry.compatibility.compatible is True

    def test_build_catalog_merges_custom_nodes(self, catalog):
        catalog.register_workflow_node(extension())
        result = catalog.build_workflow_node_catalog(
            custom_nodes=[
                {"slug": "summarize", "name": "Summarize", "category": "ai"},
                {"slug": "summarize", "name": "Summarize v2", "category": "ai"},
            ],
        )

        ids = [node.id for node in result.nodes]
        assert ids.count("custom:summarize") == 1
        assert next(n for n in result.nodes if n.id == "custom:summarize").name == "Summarize v2"
        assert "weather" in ids
        assert len(result.nodes) == len(BUILTIN_WORKFLOW_NODES) + 2

    def test_build_catalog_without_builtins(self, catalog):
        result = catalog.build_workflow_node_catalog(
            custom_nodes=[{"slug": "x", "name": "X"}],
            include_builtin=False,
        )
        assert [node.id for node in result.nodes] == ["custom:x"]
        assert next(s for s in result.categories if s.id == CategoryId.UTILITY).count == 1


@pytest.mark.unit
def test_category_and_icon_helpers():
    """Test category mapping and emoji detection."""
    assert map_custom_node_category("Storage") == CategoryId.DB
    assert map_custom_node_category("communication") == CategoryId.HTTP
    assert map_custom_node_category(None) == CategoryId.UTILITY
    assert resolve_icon_glyph("cloud") is None
    assert resolve_icon_glyph("  ") is None
    assert resolve_icon_glyph("✨") == "✨"


@pytest.mark.unit
def test_catalog_metrics_follow_settings(test_settings):
    """Test that catalog metrics are skipped when metrics are disabled."""
    quiet = NodeCatalog(test_settings.model_copy(update={"metrics_enabled": False}))

    assert quiet.register_workflow_node(extension()) is True
    assert quiet.register_workflow_node(extension("condition")) is False

    assert metrics.get_gauge("catalog_extension_nodes") is None
    assert metrics.get_counter("catalog_registrations_rejected_total") == 0
