"""Workflow node catalog: built-in, extension and custom node descriptors."""

from typing import Any, Dict, Iterable, List, Mapping, Optional, Union

import structlog

from nodeflow.config import Settings, get_settings
from nodeflow.metrics import metrics
from .schemas import (
    CategoryId,
    CustomNode,
    NodeCompatibilityContext,
    NodeSource,
    NodeVersionBounds,
    WorkflowNodeCatalog,
    WorkflowNodeCatalogEntry,
    WorkflowNodeCategory,
    WorkflowNodeCategorySummary,
)
from .versioning import check_node_compatibility

logger = structlog.get_logger()

DEFAULT_ICON_GLYPH = "\U0001F4E6"

WORKFLOW_NODE_CATEGORIES = [
    WorkflowNodeCategory(id=CategoryId.AI, name="AI", description="Generation and inference", icon="bot", color="#8B5CF6"),
    WorkflowNodeCategory(id=CategoryId.HTTP, name="HTTP", description="APIs and integrations", icon="globe", color="#3B82F6"),
    WorkflowNodeCategory(id=CategoryId.DB, name="DB", description="Data and storage", icon="database", color="#10B981"),
    WorkflowNodeCategory(id=CategoryId.UI, name="UI", description="Interaction and display", icon="mouse-pointer-click", color="#F97316"),
    WorkflowNodeCategory(id=CategoryId.UTILITY, name="Utility", description="Flow control and tools", icon="settings", color="#64748B"),
]

CATEGORY_ORDER = [category.id for category in WORKFLOW_NODE_CATEGORIES]

CATEGORY_STYLES: Dict[CategoryId, Dict[str, str]] = {
    CategoryId.AI: {"color": "text-purple-500", "bg_color": "bg-purple-500/10", "border_color": "border-purple-500/20"},
    CategoryId.HTTP: {"color": "text-blue-500", "bg_color": "bg-blue-500/10", "border_color": "border-blue-500/20"},
    CategoryId.DB: {"color": "text-emerald-500", "bg_color": "bg-emerald-500/10", "border_color": "border-emerald-500/20"},
    CategoryId.UI: {"color": "text-orange-500", "bg_color": "bg-orange-500/10", "border_color": "border-orange-500/20"},
    CategoryId.UTILITY: {"color": "text-foreground-light", "bg_color": "bg-muted/50", "border_color": "border-border"},
}

CUSTOM_CATEGORY_MAP: Dict[str, CategoryId] = {
    "ai": CategoryId.AI,
    "data": CategoryId.DB,
    "storage": CategoryId.DB,
    "integration": CategoryId.HTTP,
    "communication": CategoryId.HTTP,
}


def _builtin(node_id: str, name: str, description: str, icon: str, category: CategoryId, tone: str) -> WorkflowNodeCatalogEntry:
    return WorkflowNodeCatalogEntry(
        id=node_id,
        name=name,
        description=description,
        icon=icon,
        category=category,
        color=f"text-{tone}-500",
        bg_color=f"bg-{tone}-500/10",
        border_color=f"border-{tone}-500/20",
        version="1.0.0",
        source=NodeSource.BUILTIN,
    )


BUILTIN_WORKFLOW_NODES = (
    _builtin("webhook", "Webhook Trigger", "Trigger the workflow from an HTTP request", "webhook", CategoryId.HTTP, "orange"),
    _builtin("schedule", "Scheduled Trigger", "Run the workflow on a schedule", "clock", CategoryId.UTILITY, "blue"),
    _builtin("manual", "Manual Trigger", "Run the workflow by hand", "play", CategoryId.UI, "green"),
    _builtin("ai-chat", "AI Conversation", "Call an AI model in a conversation", "message-square", CategoryId.AI, "purple"),
    _builtin("ai-agent", "AI Agent", "Call a custom AI agent", "bot", CategoryId.AI, "violet"),
    _builtin("http-request", "HTTP Request", "Send an HTTP API request", "globe", CategoryId.HTTP, "cyan"),
    _builtin("email", "Send Email", "Send email notifications", "mail", CategoryId.HTTP, "red"),
    _builtin("database", "Database Action", "Read database data", "database", CategoryId.DB, "emerald"),
    _builtin("condition", "Condition", "Branch execution on a condition", "git-branch", CategoryId.UTILITY, "amber"),
    _builtin("loop", "Loop", "Repeat a group of actions", "repeat", CategoryId.UTILITY, "pink"),
    _builtin("filter", "Filter", "Filter and transform data", "filter", CategoryId.UTILITY, "indigo"),
    WorkflowNodeCatalogEntry(
        id="code",
        name="Code Execution",
        description="Execute custom code",
        icon="code",
        category=CategoryId.UTILITY,
        source=NodeSource.BUILTIN,
        **CATEGORY_STYLES[CategoryId.UTILITY],
    ),
    WorkflowNodeCatalogEntry(
        id="transform",
        name="Data Transform",
        description="Convert and reshape data",
        icon="settings",
        category=CategoryId.UTILITY,
        source=NodeSource.BUILTIN,
        **CATEGORY_STYLES[CategoryId.UTILITY],
    ),
    _builtin("file", "File Action", "Read and process files", "file-text", CategoryId.UTILITY, "teal"),
    _builtin("input", "Form Input", "Collect user input", "mouse-pointer-click", CategoryId.UI, "orange"),
    _builtin("output", "Result Output", "Show or return a result", "check-circle-2", CategoryId.UI, "emerald"),
)

BUILTIN_NODE_IDS = frozenset(node.id for node in BUILTIN_WORKFLOW_NODES)


def map_custom_node_category(category: Optional[str]) -> CategoryId:
    """Normalize a custom node category into one of the catalog categories."""
    return CUSTOM_CATEGORY_MAP.get((category or "").strip().lower(), CategoryId.UTILITY)


def resolve_icon_glyph(value: Optional[str]) -> Optional[str]:
    """Use the icon value as a glyph when it contains non-ASCII text (an emoji)."""
    trimmed = (value or "").strip()
    if not trimmed or trimmed.isascii():
        return None
    return trimmed


def sort_nodes(nodes: Iterable[WorkflowNodeCatalogEntry]) -> List[WorkflowNodeCatalogEntry]:
    """Order by category, then by case-insensitive name."""
    return sorted(nodes, key=lambda node: (CATEGORY_ORDER.index(node.category), node.name.casefold()))


def get_workflow_category_summary(nodes: Iterable[WorkflowNodeCatalogEntry]) -> List[WorkflowNodeCategorySummary]:
    nodes = list(nodes)
    return [
        WorkflowNodeCategorySummary(
            **category.model_dump(),
            count=sum(1 for node in nodes if node.category == category.id),
        )
        for category in WORKFLOW_NODE_CATEGORIES
    ]


def map_custom_node_to_catalog_entry(
    node: Union[CustomNode, Mapping[str, Any]],
    context: Union[NodeCompatibilityContext, Mapping[str, Any], None] = None,
    settings: Optional[Settings] = None,
) -> WorkflowNodeCatalogEntry:
    """Map a custom node record into a namespaced ``custom:<slug>`` entry."""
    settings = settings or get_settings()
    if not isinstance(node, CustomNode):
        node = CustomNode.model_validate(dict(node))
    if context is None:
        context = NodeCompatibilityContext()
    elif not isinstance(context, NodeCompatibilityContext):
        context = NodeCompatibilityContext.model_validate(dict(context))

    category = map_custom_node_category(node.category)
    name = node.display_name or node.name or "CustomNode"
    slug = node.slug or node.id or name

    compatibility = check_node_compatibility(
        NodeVersionBounds(min_sdk_version=node.min_sdk_version, max_sdk_version=node.max_sdk_version),
        NodeCompatibilityContext(
            sdk_version=context.sdk_version or settings.node_sdk_version,
            app_version=context.app_version,
        ),
    )

    return WorkflowNodeCatalogEntry(
        id=f"custom:{slug}",
        name=name,
        description=node.description or "",
        icon="package",
        icon_glyph=resolve_icon_glyph(node.icon or node.icon_url) or DEFAULT_ICON_GLYPH,
        category=category,
        version=node.version or node.latest_version or "1.0.0",
        source=NodeSource.CUSTOM,
        tags=list(node.tags or []),
        compatibility=compatibility,
        **CATEGORY_STYLES[category],
    )


class NodeCatalog:
    """Catalog of node types available to the workflow editor.

    Built-in entries are fixed. Extensions can be registered at runtime but
    can never replace a built-in id.
    """

    def __init__(self, settings: Optional[Settings] = None):
        self.settings = settings or get_settings()
        self._extensions: Dict[str, WorkflowNodeCatalogEntry] = {}
        self.logger = logger.bind(component="node_catalog")

    def register_workflow_node(self, entry: Union[WorkflowNodeCatalogEntry, Mapping[str, Any]]) -> bool:
        """Add an extension entry. Returns False when the id is a built-in id."""
        if not isinstance(entry, WorkflowNodeCatalogEntry):
            entry = WorkflowNodeCatalogEntry.model_validate(dict(entry))
        if entry.id in BUILTIN_NODE_IDS:
            self.logger.debug("Ignoring extension node with built-in id", node_id=entry.id)
            if self.settings.metrics_enabled:
                metrics.increment("catalog_registrations_rejected_total")
            return False
        self._extensions[entry.id] = entry
        self._record_size()
        return True

    def register_workflow_nodes(self, entries: Iterable[Union[WorkflowNodeCatalogEntry, Mapping[str, Any]]]) -> int:
        """Register several entries; returns how many were accepted."""
        return sum(1 for entry in entries if self.register_workflow_node(entry))

    def unregister_workflow_node(self, node_id: str) -> bool:
        removed = self._extensions.pop(node_id, None) is not None
        if removed:
            self._record_size()
        return removed

    def _record_size(self) -> None:
        if self.settings.metrics_enabled:
            metrics.gauge("catalog_extension_nodes", len(self._extensions))

    def list_workflow_nodes(
        self,
        include_builtin: bool = True,
        include_extensions: bool = True,
    ) -> List[WorkflowNodeCatalogEntry]:
        nodes: List[WorkflowNodeCatalogEntry] = []
        if include_builtin:
            nodes.extend(BUILTIN_WORKFLOW_NODES)
        if include_extensions:
            nodes.extend(self._extensions.values())
        return sort_nodes(nodes)

    def build_workflow_node_catalog(
        self,
        custom_nodes: Optional[Iterable[Union[CustomNode, Mapping[str, Any]]]] = None,
        include_builtin: bool = True,
        include_extensions: bool = True,
        compatibility_context: Optional[Union[NodeCompatibilityContext, Mapping[str, Any]]] = None,
    ) -> WorkflowNodeCatalog:
        """Merge built-in, extension and custom entries into one sorted catalog.

        Entries are de-duplicated by id with the later entry winning, except
        that built-in ids always keep the built-in entry.
        """
        if compatibility_context is not None and not isinstance(compatibility_context, NodeCompatibilityContext):
            compatibility_context = NodeCompatibilityContext.model_validate(dict(compatibility_context))

        base_nodes = self.list_workflow_nodes(include_builtin, include_extensions)
        custom_entries = [
            map_custom_node_to_catalog_entry(node, compatibility_context, self.settings)
            for node in custom_nodes or []
        ]

        merged: Dict[str, WorkflowNodeCatalogEntry] = {}
        for entry in [*base_nodes, *custom_entries]:
            if entry.id in BUILTIN_NODE_IDS and entry.source != NodeSource.BUILTIN:
                self.logger.debug("Custom node id collides with a built-in node", node_id=entry.id)
                continue
            merged[entry.id] = entry

        nodes = sort_nodes(merged.values())
        return WorkflowNodeCatalog(nodes=nodes, categories=get_workflow_category_summary(nodes))
