"""Tests for aggregation function tables and validation."""

import pytest

from windowforge.compiler.functions import (
    BUCKET_FUNCTIONS,
    COMBINE_FUNCTIONS,
    bucket_function,
    combine_function,
    validate_aggregations,
)
from windowforge.errors import NotSupported, ReportValidationError, UnsupportedAggregation
from windowforge.models.report import MERGEABLE_AGGREGATIONS, AggregationType


class TestFunctionTables:
    def test_every_bucket_function_can_be_combined(self):
        """Anything we can bucket we can also recombine."""
        assert set(BUCKET_FUNCTIONS) == set(COMBINE_FUNCTIONS)

    def test_tables_cover_exactly_the_mergeable_types(self):
        assert set(BUCKET_FUNCTIONS) == set(MERGEABLE_AGGREGATIONS)

    def test_combine_differs_from_bucket_for_count(self):
        """A window count sums bucket counts."""
        assert bucket_function(AggregationType.COUNT) == ("count",)
        assert combine_function(AggregationType.COUNT) == ("sum",)

    def test_approximate_unique_merges_sketches(self):
        assert bucket_function(AggregationType.APPROXIMATE_UNIQUE) == ("approx_set",)
        assert combine_function(AggregationType.APPROXIMATE_UNIQUE) == ("cardinality", "merge")

    @pytest.mark.parametrize(
        "aggregation",
        [
            AggregationType.AVERAGE,
            AggregationType.STANDARD_DEVIATION,
            AggregationType.POPULATION_VARIANCE,
        ],
    )
    def test_non_mergeable_types_not_supported(self, aggregation: AggregationType):
        """No silent default for types missing from a table."""
        with pytest.raises(NotSupported):
            bucket_function(aggregation)
        with pytest.raises(NotSupported):
            combine_function(aggregation)

    def test_tables_are_read_only(self):
        with pytest.raises(TypeError):
            BUCKET_FUNCTIONS[AggregationType.AVERAGE] = ("avg",)  # type: ignore[index]


class TestValidateAggregations:
    def test_enabled_types_pass(self):
        validate_aggregations(
            [AggregationType.COUNT, AggregationType.SUM], MERGEABLE_AGGREGATIONS
        )

    def test_reports_every_disabled_type(self):
        """All offending types are named in one error."""
        with pytest.raises(UnsupportedAggregation) as exc_info:
            validate_aggregations(
                [AggregationType.COUNT, AggregationType.SUM, AggregationType.MAXIMUM],
                [AggregationType.COUNT],
            )
        assert exc_info.value.aggregations == ["SUM", "MAXIMUM"]
        assert "SUM, MAXIMUM" in str(exc_info.value)

    def test_unsupported_aggregation_is_a_validation_error(self):
        with pytest.raises(ReportValidationError):
            validate_aggregations([AggregationType.SUM], [])

    def test_average_is_not_supported_even_when_enabled(self):
        """Averages can't be merged, enabling them doesn't help."""
        with pytest.raises(NotSupported):
            validate_aggregations([AggregationType.AVERAGE], list(AggregationType))

    def test_average_wins_over_disabled_types(self):
        with pytest.raises(NotSupported):
            validate_aggregations([AggregationType.SUM, AggregationType.AVERAGE], [])

    def test_not_supported_is_not_a_validation_error(self):
        assert not issubclass(NotSupported, ReportValidationError)
