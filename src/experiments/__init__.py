"""A/B testing: deterministic variant assignment and result summaries."""

from experiments.allocator import (
    ABVariantAllocator,
    VariantSummary,
    fnv1a_64,
    is_included,
    merge_weights,
    select_variant,
    stable_hash,
    summarize_variant_results,
)

__all__ = [
    "ABVariantAllocator",
    "VariantSummary",
    "fnv1a_64",
    "is_included",
    "merge_weights",
    "select_variant",
    "stable_hash",
    "summarize_variant_results",
]
