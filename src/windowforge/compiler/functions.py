"""Aggregation function tables and validation.

two tables on purpose. the per-bucket table says how raw events are folded
into one bucket, the combine table says how already-folded buckets are folded
into a window. they differ: a window COUNT is the sum of bucket counts, not a
count of buckets.

each table is a chain of function names applied outermost first, so
("cardinality", "merge") means cardinality(merge(col)).
"""

from collections.abc import Iterable, Mapping
from types import MappingProxyType

from windowforge.errors import NotSupported, UnsupportedAggregation
from windowforge.models.report import AggregationType

FunctionChain = tuple[str, ...]

BUCKET_FUNCTIONS: Mapping[AggregationType, FunctionChain] = MappingProxyType(
    {
        AggregationType.COUNT: ("count",),
        AggregationType.SUM: ("sum",),
        AggregationType.MINIMUM: ("min",),
        AggregationType.MAXIMUM: ("max",),
        # a mergeable sketch, not a number - the combine step turns it into one
        AggregationType.APPROXIMATE_UNIQUE: ("approx_set",),
    }
)

COMBINE_FUNCTIONS: Mapping[AggregationType, FunctionChain] = MappingProxyType(
    {
        AggregationType.COUNT: ("sum",),
        AggregationType.SUM: ("sum",),
        AggregationType.MINIMUM: ("min",),
        AggregationType.MAXIMUM: ("max",),
        AggregationType.APPROXIMATE_UNIQUE: ("cardinality", "merge"),
    }
)


def bucket_function(aggregation: AggregationType) -> FunctionChain:
    """Per-bucket function chain for an aggregation type."""
    try:
        return BUCKET_FUNCTIONS[aggregation]
    except KeyError:
        raise NotSupported(
            f"{aggregation.value} can't be maintained incrementally in a continuous aggregate"
        ) from None


def combine_function(aggregation: AggregationType) -> FunctionChain:
    """Function chain that merges bucket values of an aggregation type."""
    try:
        return COMBINE_FUNCTIONS[aggregation]
    except KeyError:
        raise NotSupported(
            f"{aggregation.value} buckets can't be combined into a window"
        ) from None


def validate_aggregations(
    requested: Iterable[AggregationType], enabled: Iterable[AggregationType]
) -> None:
    """Check requested aggregations before anything gets generated.

    structural problems (AVERAGE and friends) win over permission problems,
    since enabling them wouldn't help. otherwise every disabled type is
    reported in one go so the user doesn't fix them one at a time.
    """
    requested = list(requested)
    enabled_set = set(enabled)

    for aggregation in requested:
        bucket_function(aggregation)

    unsupported = [a.value for a in dict.fromkeys(requested) if a not in enabled_set]
    if unsupported:
        raise UnsupportedAggregation(unsupported)
