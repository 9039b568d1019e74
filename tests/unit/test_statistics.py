import pandas as pd
import pytest
from normaize.core import ingest, statistics, summary
from normaize.core.descriptive import (
    correlation_matrix,
    count_outliers,
    iqr_fences,
    kurtosis,
    median,
    pearson_correlation,
    quartile,
    skewness,
    standard_deviation,
)
from normaize.core.profiling import infer_column_type, profile_column
from normaize.models import ColumnType

# --- Tests for Descriptive Statistics ---

def test_quartile_interpolates():
    """Test linear interpolation at p*(n-1)."""
    assert quartile([1, 2, 3, 4], 0.25) == pytest.approx(1.75)
    assert quartile([4, 1, 3, 2], 0.75) == pytest.approx(3.25)
    assert quartile([], 0.5) == 0.0

def test_quartile_half_equals_median():
    """Test that quartile(0.5) is the median for arbitrary vectors."""
    for data in ([3, 1, 2], [1, 2, 3, 4], [7.5], [10, -2, 3.3, 8, 8, 0]):
        assert quartile(data, 0.5) == median(data)
    assert median([3, 1, 2]) == 2.0
    assert median([1, 2, 3, 4]) == 2.5

def test_standard_deviation_is_population():
    """Test that the standard deviation divides by N."""
    assert standard_deviation([2, 4, 4, 4, 5, 5, 7, 9]) == pytest.approx(2.0)
    assert standard_deviation([5]) == 0.0

def test_shape_moments_small_samples():
    """Test that skewness/kurtosis are zero for too-small or constant vectors."""
    assert skewness([1, 2]) == 0.0
    assert kurtosis([1, 2, 3]) == 0.0
    assert skewness([4, 4, 4, 4]) == 0.0
    assert kurtosis([4, 4, 4, 4, 4]) == 0.0

def test_shape_moments_match_pandas():
    """Test that the corrected skewness and kurtosis agree with pandas."""
    data = [1, 2, 3, 4, 100, 7, 3, 2.5]
    series = pd.Series(data)
    assert skewness(data) == pytest.approx(series.skew())
    assert kurtosis(data) == pytest.approx(series.kurt())

def test_shape_moments_are_scale_free():
    """Test that tiny-magnitude data keeps its shape moments."""
    data = [1.0, 2.0, 3.0, 4.0, 100.0, 7.0]
    micro = [v * 1e-9 for v in data]
    assert skewness(micro) == pytest.approx(skewness(data))
    assert kurtosis(micro) == pytest.approx(kurtosis(data))
    assert skewness([0.1, 0.1, 0.1]) == 0.0

def test_non_finite_values_are_excluded():
    """Test best-effort handling of NaN/inf."""
    assert median([1, 2, float("nan"), 3]) == 2.0
    assert standard_deviation([1, float("inf"), 1]) == 0.0

# --- Tests for Outliers ---

def test_outlier_count_matches_fences():
    """Test the IQR rule on [1, 2, 3, 4, 100]."""
    data = [1, 2, 3, 4, 100]
    lo, hi = iqr_fences(data)
    assert (lo, hi) == (pytest.approx(-1.0), pytest.approx(7.0))
    expected = sum(1 for v in data if v < lo or v > hi)
    assert count_outliers(data) == expected
    assert count_outliers(data) >= 1

def test_no_outliers_in_uniform_data():
    """Test that evenly spread values have no outliers."""
    assert count_outliers([1, 2, 3, 4, 5]) == 0

# --- Tests for Correlation ---

def test_correlation_properties():
    """Test self-correlation, constants and degenerate inputs."""
    x = [1.0, 2.0, 4.0, 8.0]
    assert pearson_correlation(x, x) == pytest.approx(1.0)
    assert pearson_correlation(x, [-v for v in x]) == pytest.approx(-1.0)
    assert pearson_correlation(x, [5.0, 5.0, 5.0, 5.0]) == 0.0
    assert pearson_correlation([1.0], [2.0]) == 0.0
    assert pearson_correlation([1.0, 2.0], [1.0, 2.0, 3.0]) == 0.0

def test_correlation_of_micro_scale_values():
    """Test that small magnitudes are not mistaken for constants."""
    x = [1e-6, 2e-6, 3e-6, 5e-6]
    assert pearson_correlation(x, x) == pytest.approx(1.0)
    assert pearson_correlation(x, [v * 1e-6 for v in x]) == pytest.approx(1.0)
    assert pearson_correlation(x, [3e-9, 3e-9, 3e-9, 3e-9]) == 0.0

def test_correlation_matrix_keys():
    """Test pair ordering and the equal-length rule."""
    matrix = correlation_matrix({"a": [1, 2, 3], "b": [2, 4, 7], "c": [1, 2]})
    assert list(matrix) == ["a_b"]
    assert -1.0 <= matrix["a_b"] <= 1.0

def test_correlation_matrix_pairs_by_row():
    """Test that values are matched on the rows both columns share."""
    matrix = correlation_matrix(
        {"a": [1, 2, 3, 9], "b": [5, 1, 3, 2]},
        {"a": [1, 2, 3, 4], "b": [0, 1, 2, 3]},
    )
    assert matrix["a_b"] == pytest.approx(0.5)

# --- Tests for Column Profiling ---

def test_infer_column_type():
    """Test the type precedence."""
    assert infer_column_type(["1", "2.5", None]) is ColumnType.NUMERIC
    assert infer_column_type(["2024-01-01", "2024-02-01"]) is ColumnType.DATETIME
    assert infer_column_type(["Jan 5 2024", "2024.01.05", "5-Jan-2024"]) is ColumnType.DATETIME
    assert infer_column_type(["true", "False"]) is ColumnType.BOOLEAN
    assert infer_column_type(["1", "x"]) is ColumnType.STRING
    assert infer_column_type([None, ""]) is ColumnType.UNKNOWN

def test_profile_column_counts():
    """Test null/unique counts and samples."""
    profile = profile_column("c", ["x", "y", None, "x", "z", "w", "v", "u"])
    assert profile.non_null_count == 7
    assert profile.null_count == 1
    assert profile.unique_count == 6
    assert profile.sample_values == ["x", "y", "x", "z", "w"]

# --- Tests for Dataset Summaries ---

def test_statistics_outliers_and_indices():
    """Test outlier columns and row indices over a dataset."""
    dataset = ingest(b"v,w\n1,5\n2,6\n3,7\n4,8\n100,9\n", ".csv")
    result = statistics(dataset)
    assert result.outlier_columns == ["v"]
    assert result.outlier_indices == [4]
    assert result.column_statistics["v"].outlier_count == 1
    assert result.column_statistics["v"].q2 == result.column_statistics["v"].median

def test_statistics_omits_non_numeric_columns():
    """Test that text columns have no statistics."""
    dataset = ingest(b"name,v\nx,1\ny,2\n", ".csv")
    result = statistics(dataset)
    assert list(result.column_statistics) == ["v"]
    assert result.correlation_matrix == {}

def test_statistics_skip_unequal_series():
    """Test that columns with different value counts are not correlated."""
    dataset = ingest(b"a,b\n1,\n2,5\n3,6\n", ".csv")
    result = statistics(dataset)
    assert set(result.column_statistics) == {"a", "b"}
    assert "a_b" not in result.correlation_matrix

def test_statistics_micro_scale_correlation():
    """Test correlation over a dataset of tiny values."""
    dataset = ingest(b"a,b\n0.000001,0.000002\n0.000002,0.000004\n0.000003,0.000007\n", ".csv")
    result = statistics(dataset)
    assert result.correlation_matrix["a_b"] == pytest.approx(0.99339, abs=1e-4)

def test_statistics_correlation_uses_shared_rows():
    """Test that nulls in different rows do not shift the pairing."""
    dataset = ingest(b"a,b\n,5\n1,1\n2,3\n3,2\n9,\n", ".csv")
    result = statistics(dataset)
    assert result.correlation_matrix["a_b"] == pytest.approx(0.5)

def test_statistics_serialized_keys():
    """Test camelCase serialization of the statistical summary."""
    dataset = ingest(b"a,b\n1,10\n2,20\n3,30\n", ".csv")
    payload = statistics(dataset).model_dump(by_alias=True)
    assert payload["columnStatistics"]["b"]["mean"] == 20.0
    assert "a_b" in payload["correlationMatrix"]

def test_summary_counts():
    """Test missing values, duplicate rows and column summaries."""
    dataset = ingest(b"a,b\n1,x\n1,x\n,y\n", ".csv")
    result = summary(dataset)
    assert result.total_rows == 3
    assert result.total_columns == 2
    assert result.missing_values == 1
    assert result.duplicate_rows == 1

    a = result.column_summaries["a"]
    assert a.data_type is ColumnType.NUMERIC
    assert a.null_count == 1
    assert a.unique_count == 1
    assert a.mean == 1.0
    assert a.standard_deviation == 0.0

    b = result.column_summaries["b"]
    assert b.data_type is ColumnType.STRING
    assert b.mean is None
    assert b.sample_values == ["x", "x", "y"]

def test_summary_unknown_column():
    """Test that an all-null column is Unknown."""
    dataset = ingest(b"a,b\n1,\n2,\n", ".csv")
    assert summary(dataset).column_summaries["b"].data_type is ColumnType.UNKNOWN
