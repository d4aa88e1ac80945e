"""Keyword heuristics that bucket a failure message into a category.

Rules are evaluated in order and the first match wins. Several rules can
match the same message, so the order below is the priority order.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass, field

from testtrend.model import (
    CONFIG_GAP,
    MISSING_COMPONENT,
    PLATFORM_ISSUE,
    UPGRADE_PREREQ,
    UPSTREAM_REGRESSION,
    Run,
)


# Optional components whose absence breaks the pipeline tests
_MISSING_COMPONENT_WORDS = ("chains", "knative", "serverless", "manualapprovalgate")


def _is_missing_component(text: str) -> bool:
    return any(word in text for word in _MISSING_COMPONENT_WORDS)


def _is_upgrade_prereq(text: str) -> bool:
    return "upgrade" in text and (
        "namespace" in text or "setup" in text or "prerequisite" in text
    )


def _is_platform_issue(text: str) -> bool:
    return "uid_map" in text or ("buildah" in text and "namespace" in text)


def _is_config_gap(text: str) -> bool:
    if "secret" in text and ("missing" in text or "not found" in text):
        return True
    return "auth" in text and ("secret" in text or "credential" in text)


RULES: tuple[tuple[str, Callable[[str], bool]], ...] = (
    (MISSING_COMPONENT, _is_missing_component),
    (UPGRADE_PREREQ, _is_upgrade_prereq),
    (PLATFORM_ISSUE, _is_platform_issue),
    (CONFIG_GAP, _is_config_gap),
)

DEFAULT_CATEGORY = UPSTREAM_REGRESSION


def categorize(error_message: str | None) -> str:
    """Classify a failure message.

    Args:
        error_message: Failure text, possibly None or empty.

    Returns:
        The category of the first matching rule, or UpstreamRegression
        when nothing matches.
    """
    text = (error_message or "").lower()
    if not text:
        return DEFAULT_CATEGORY
    for category, matches in RULES:
        if matches(text):
            return category
    return DEFAULT_CATEGORY


@dataclass
class CategoryGroup:
    """Failed tests of one run that share a category."""

    category: str
    count: int = 0
    tests: list[str] = field(default_factory=list)


def group_failures(run: Run) -> list[CategoryGroup]:
    """Group the failed tests of a run by failure category.

    A test without an explicit category is classified from its error text.

    Returns:
        Groups sorted by count descending, ties broken by category name.
    """
    groups: dict[str, CategoryGroup] = {}
    for test in run.tests:
        if not test.failed:
            continue
        category = test.category or categorize(test.error)
        group = groups.setdefault(category, CategoryGroup(category=category))
        group.tests.append(test.key)
        group.count += 1

    return sorted(groups.values(), key=lambda g: (-g.count, g.category))
