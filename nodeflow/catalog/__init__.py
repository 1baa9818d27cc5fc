"""Node catalog and version compatibility."""

from .catalog import (
    BUILTIN_NODE_IDS,
    BUILTIN_WORKFLOW_NODES,
    WORKFLOW_NODE_CATEGORIES,
    NodeCatalog,
    map_custom_node_to_catalog_entry,
)
from .schemas import (
    CategoryId,
    CustomNode,
    NodeCompatibilityContext,
    NodeCompatibilityIssue,
    NodeCompatibilityResult,
    NodeSource,
    NodeVersionBounds,
    WorkflowNodeCatalog,
    WorkflowNodeCatalogEntry,
    WorkflowNodeCategorySummary,
)
from .versioning import (
    Semver,
    UpgradeType,
    bump_version,
    check_node_compatibility,
    compare_semver,
    format_semver,
    get_node_upgrade_type,
    is_semver,
    parse_semver,
    satisfies_range,
    should_auto_upgrade,
)

__all__ = [
    "BUILTIN_NODE_IDS",
    "BUILTIN_WORKFLOW_NODES",
    "WORKFLOW_NODE_CATEGORIES",
    "NodeCatalog",
    "map_custom_node_to_catalog_entry",
    "CategoryId",
    "CustomNode",
    "NodeCompatibilityContext",
    "NodeCompatibilityIssue",
    "NodeCompatibilityResult",
    "NodeSource",
    "NodeVersionBounds",
    "WorkflowNodeCatalog",
    "WorkflowNodeCatalogEntry",
    "WorkflowNodeCategorySummary",
    "Semver",
    "UpgradeType",
    "bump_version",
    "check_node_compatibility",
    "compare_semver",
    "format_semver",
    "get_node_upgrade_type",
    "is_semver",
    "parse_semver",
    "satisfies_range",
    "should_auto_upgrade",
]
