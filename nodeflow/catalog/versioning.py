"""Semantic versions for node definitions and SDK/app compatibility checks."""

import re
from enum import Enum
from typing import Any, List, Mapping, Optional, Union

from pydantic import BaseModel, ConfigDict

from .schemas import (
    CompatibilitySeverity,
    CompatibilityType,
    NodeCompatibilityContext,
    NodeCompatibilityIssue,
    NodeCompatibilityResult,
    NodeVersionBounds,
)

SEMVER_PATTERN = re.compile(r"(0|[1-9]\d*)\.(0|[1-9]\d*)\.(0|[1-9]\d*)(?:-([0-9A-Za-z.-]+))?")
CONSTRAINT_PATTERN = re.compile(r"^(==|>=|<=|=|>|<|\^|~)?(.+)$")


class Semver(BaseModel):
    """Parsed ``MAJOR.MINOR.PATCH[-PRERELEASE]`` version."""

    major: int
    minor: int
    patch: int
    prerelease: Optional[str] = None

    model_config = ConfigDict(frozen=True)

    def __str__(self) -> str:
        return format_semver(self)


class UpgradeType(str, Enum):
    """Kind of change between two versions."""

    MAJOR = "major"
    MINOR = "minor"
    PATCH = "patch"
    PRERELEASE = "prerelease"
    NONE = "none"
    UNKNOWN = "unknown"


def parse_semver(version: Any) -> Optional[Semver]:
    """Strictly parse a version string; None when it is not semver."""
    if not isinstance(version, str):
        return None
    match = SEMVER_PATTERN.fullmatch(version)
    if not match:
        return None
    major, minor, patch, prerelease = match.groups()
    return Semver(major=int(major), minor=int(minor), patch=int(patch), prerelease=prerelease)


def is_semver(version: Any) -> bool:
    return parse_semver(version) is not None


def format_semver(version: Semver) -> str:
    text = f"{version.major}.{version.minor}.{version.patch}"
    if version.prerelease:
        text += f"-{version.prerelease}"
    return text


def _cmp(a: Any, b: Any) -> int:
    return (a > b) - (a < b)


def compare_semver(a: str, b: str) -> int:
    """Compare two versions, returning -1, 0 or 1.

    A prerelease sorts before the release it precedes; two prereleases
    compare as strings. Non-semver input falls back to string comparison.
    """
    left, right = parse_semver(a), parse_semver(b)
    if left is None or right is None:
        return _cmp(str(a), str(b))

    core = _cmp((left.major, left.minor, left.patch), (right.major, right.minor, right.patch))
    if core:
        return core
    if left.prerelease is None and right.prerelease is None:
        return 0
    if left.prerelease is None:
        return 1
    if right.prerelease is None:
        return -1
    return _cmp(left.prerelease, right.prerelease)


def _satisfies_constraint(version: str, constraint: str) -> bool:
    match = CONSTRAINT_PATTERN.match(constraint)
    if not match:
        return False
    operator = match.group(1) or "="
    target = match.group(2)
    result = compare_semver(version, target)

    if operator in ("=", "=="):
        return result == 0
    if operator == ">":
        return result > 0
    if operator == ">=":
        return result >= 0
    if operator == "<":
        return result < 0
    if operator == "<=":
        return result <= 0

    v, t = parse_semver(version), parse_semver(target)
    if v is None or t is None:
        return False
    if operator == "~":
        return v.major == t.major and v.minor == t.minor and result >= 0
    # caret: the left-most non-zero component is fixed
    if t.major > 0:
        return v.major == t.major and result >= 0
    if t.minor > 0:
        return v.major == 0 and v.minor == t.minor and result >= 0
    return v.major == 0 and v.minor == 0 and v.patch == t.patch


def satisfies_range(version: str, version_range: str) -> bool:
    """Check ``version`` against a range such as ``^1.2.0`` or ``>=1.0.0 <2.0.0``.

    Space-separated constraints must all hold; a bare version means equality.
    """
    constraints = version_range.split()
    if not constraints:
        return False
    return all(_satisfies_constraint(version, constraint) for constraint in constraints)


def bump_version(version: str, bump: str, prerelease_id: Optional[str] = None) -> str:
    """Increment one component of ``version``; non-semver input is returned unchanged."""
    v = parse_semver(version)
    if v is None:
        return version

    if bump == UpgradeType.MAJOR:
        return f"{v.major + 1}.0.0"
    if bump == UpgradeType.MINOR:
        return f"{v.major}.{v.minor + 1}.0"
    if bump == UpgradeType.PATCH:
        return f"{v.major}.{v.minor}.{v.patch + 1}"
    if bump == UpgradeType.PRERELEASE:
        if v.prerelease:
            parts = v.prerelease.split(".")
            if parts[-1].isdigit():
                parts[-1] = str(int(parts[-1]) + 1)
                return f"{v.major}.{v.minor}.{v.patch}-{'.'.join(parts)}"
        return f"{v.major}.{v.minor}.{v.patch}-{prerelease_id or 'alpha'}.0"
    return version


def get_node_upgrade_type(from_version: str, to_version: str) -> UpgradeType:
    """Classify the first differing component between two versions."""
    old, new = parse_semver(from_version), parse_semver(to_version)
    if old is None or new is None:
        return UpgradeType.UNKNOWN
    if old.major != new.major:
        return UpgradeType.MAJOR
    if old.minor != new.minor:
        return UpgradeType.MINOR
    if old.patch != new.patch:
        return UpgradeType.PATCH
    if old.prerelease != new.prerelease:
        return UpgradeType.PRERELEASE
    return UpgradeType.NONE


def should_auto_upgrade(upgrade_type: Union[UpgradeType, str]) -> bool:
    return upgrade_type in (UpgradeType.PATCH, UpgradeType.MINOR)


def _check_dimension(
    kind: CompatibilityType,
    label: str,
    minimum: Optional[str],
    maximum: Optional[str],
    current: Optional[str],
) -> List[NodeCompatibilityIssue]:
    if not minimum and not maximum:
        return []
    if not current:
        return [NodeCompatibilityIssue(
            type=kind,
            severity=CompatibilitySeverity.WARNING,
            message=f"{label} version is unknown; cannot verify the node's {label} requirements",
        )]

    issues = []
    if minimum and compare_semver(current, minimum) < 0:
        issues.append(NodeCompatibilityIssue(
            type=kind,
            severity=CompatibilitySeverity.ERROR,
            message=f"Requires {label} version {minimum} or higher (current: {current})",
        ))
    if maximum and compare_semver(current, maximum) > 0:
        issues.append(NodeCompatibilityIssue(
            type=kind,
            severity=CompatibilitySeverity.ERROR,
            message=f"Supports {label} version up to {maximum} (current: {current})",
        ))
    return issues


def check_node_compatibility(
    node: Union[NodeVersionBounds, Mapping[str, Any]],
    context: Union[NodeCompatibilityContext, Mapping[str, Any], None] = None,
) -> NodeCompatibilityResult:
    """Check a node's SDK and app version bounds against the running versions."""
    bounds = node if isinstance(node, NodeVersionBounds) else NodeVersionBounds.model_validate(dict(node))
    if context is None:
        context = NodeCompatibilityContext()
    elif not isinstance(context, NodeCompatibilityContext):
        context = NodeCompatibilityContext.model_validate(dict(context))

    issues = [
        *_check_dimension(
            CompatibilityType.SDK, "SDK",
            bounds.min_sdk_version, bounds.max_sdk_version, context.sdk_version,
        ),
        *_check_dimension(
            CompatibilityType.APP, "app",
            bounds.min_app_version, bounds.max_app_version, context.app_version,
        ),
    ]
    return NodeCompatibilityResult(
        compatible=not any(issue.severity == CompatibilitySeverity.ERROR for issue in issues),
        issues=issues,
    )
