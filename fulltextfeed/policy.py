"""Extraction policy resolution.

Combines the configured defaults, the caller's overrides and the operator's
limits into the policy for one patch operation. Overrides win over
defaults field by field; ``max_items`` is then bounded by the limit, which
always wins.
"""

import sys

from .models import ExtractionLimits, ExtractionOverrides, ExtractionPolicy

# Largest item count a list can hold; bigger requests mean "all items"
MAX_ITEMS_CEILING = sys.maxsize


def _bounded(value: int | None, limit: int | None) -> int | None:
    """Return the smaller of two optional bounds, None meaning unbounded."""
    if value is None:
        return limit
    if limit is None:
        return value
    return min(value, limit)


def resolve_policy(
    defaults: ExtractionPolicy,
    overrides: ExtractionOverrides | None = None,
    limits: ExtractionLimits | None = None,
) -> ExtractionPolicy:
    """Resolve the effective extraction policy.

    Args:
        defaults: Configured default policy
        overrides: Values supplied by the caller, if any
        limits: Configured ceilings, if any

    Returns:
        The effective ExtractionPolicy
    """
    overrides = overrides or ExtractionOverrides()
    limits = limits or ExtractionLimits()

    max_items = (
        overrides.max_items if overrides.max_items is not None else defaults.max_items
    )
    if max_items is not None:
        max_items = min(max_items, MAX_ITEMS_CEILING)

    keep_failed = (
        overrides.keep_failed
        if overrides.keep_failed is not None
        else defaults.keep_failed
    )
    keep_original_content = (
        overrides.keep_original_content
        if overrides.keep_original_content is not None
        else defaults.keep_original_content
    )

    return ExtractionPolicy(
        max_items=_bounded(max_items, limits.max_items),
        keep_failed=keep_failed,
        keep_original_content=keep_original_content,
    )
