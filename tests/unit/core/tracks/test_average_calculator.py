"""Tests for album average calculation."""

from __future__ import annotations

import pytest

from core.models.track_models import AveragingMethod
from core.tracks.album_aggregator import AlbumAccumulator, build_album_map
from core.tracks.average_calculator import compute_album_average, median_of
from tests.factories import make_album


def _album(bpms: list[str | float | None], *, exclude: bool = True) -> AlbumAccumulator:
    return next(iter(build_album_map(make_album(bpms), exclude_over_cutoff=exclude).values()))


@pytest.mark.unit
class TestMedianOf:
    """Tests for median_of."""

    @pytest.mark.parametrize(
        ("values", "expected"),
        [
            ([100, 120], 110.0),
            ([90, 100, 140], 100.0),
            ([140, 90, 100], 100.0),
            ([5], 5),
            ([], None),
        ],
    )
    def test_median(self, values: list[float], expected: float | None) -> None:
        """Even lengths average the middle pair."""
        assert median_of(values) == expected


@pytest.mark.unit
class TestComputeAlbumAverage:
    """Tests for compute_album_average."""

    def test_mean(self) -> None:
        """Plain arithmetic mean."""
        assert compute_album_average(_album([120, 122, 124])) == 122.0

    def test_mean_rounded_to_two_decimals(self) -> None:
        """Results are rounded to two decimals."""
        assert compute_album_average(_album([100, 100, 101])) == 100.33

    def test_mean_excludes_outliers_and_missing(self) -> None:
        """Over-cutoff and missing values do not affect the mean."""
        assert compute_album_average(_album([100, 120, 999, ""])) == 110.0

    def test_mean_counts_zero(self) -> None:
        """Zero is a real value for the mean."""
        assert compute_album_average(_album([0, 100])) == 50.0

    def test_mean_with_outliers_included(self) -> None:
        """Disabling exclusion lets outliers in."""
        album = _album([100, 500], exclude=False)
        assert compute_album_average(album, exclude_over_cutoff=False) == 300.0

    def test_median(self) -> None:
        """Median over averageable members."""
        album = _album([90, 140, 100, 999])
        assert compute_album_average(album, AveragingMethod.MEDIAN) == 100.0

    def test_median_even(self) -> None:
        """Even count averages the middle pair."""
        assert compute_album_average(_album([100, 120]), AveragingMethod.MEDIAN) == 110.0

    def test_method_accepts_plain_string(self) -> None:
        """String method names work like the enum."""
        assert compute_album_average(_album([100, 120, 200]), "median") == 120.0

    @pytest.mark.parametrize("method", [AveragingMethod.MEAN, AveragingMethod.MEDIAN])
    def test_undefined_when_nothing_averageable(self, method: AveragingMethod) -> None:
        """An album of outliers and blanks has no average."""
        assert compute_album_average(_album([999, "", "x"]), method) is None
