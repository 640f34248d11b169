"""Tests for resampling module."""

from collections import Counter

import numpy as np
import pytest

from biomass_index.errors import InsufficientDataError, InvalidConfigurationError
from biomass_index.metrics.biomass import make_biomass_statistic
from biomass_index.metrics.resampling import draw_stratified_resample, resample_and_compute
from biomass_index.processing.grouping import partition


class TestDrawStratifiedResample:
    """Tests for draw_stratified_resample function."""

    def test_preserves_stratum_counts(self, survey_dataset):
        """Test that every stratum keeps its size in each resample."""
        rng = np.random.default_rng(0)
        for group in partition(survey_dataset):
            strata = group.strata
            original = Counter(strata.tolist())
            for _ in range(20):
                idx = draw_stratified_resample(strata, rng)
                assert len(idx) == len(strata)
                assert Counter(strata[idx].tolist()) == original

    def test_draws_stay_within_stratum(self):
        """Test that indices are only drawn from their own stratum."""
        strata = np.array(["a", "b", "a", "b", "b"])
        idx = draw_stratified_resample(strata, np.random.default_rng(1))

        assert set(idx[:2]) <= {0, 2}
        assert set(idx[2:]) <= {1, 3, 4}

    def test_single_observation_stratum(self):
        """Test that a stratum of one always resamples itself."""
        strata = np.array(["solo", "pair", "pair"])
        rng = np.random.default_rng(2)

        for _ in range(10):
            idx = draw_stratified_resample(strata, rng)
            assert idx[-1] == 0

    def test_empty_strata(self):
        """Test that no observations is an error."""
        with pytest.raises(InsufficientDataError):
            draw_stratified_resample(np.array([]), np.random.default_rng(0))


class TestResampleAndCompute:
    """Tests for resample_and_compute function."""

    def test_length(self, two_year_dataset):
        """Test one value per repetition."""
        group = partition(two_year_dataset)[0]
        values = resample_and_compute(group, make_biomass_statistic(), repetitions=50, seed=1)

        assert values.shape == (50,)
        assert np.isfinite(values).all()

    def test_same_seed_reproducible(self, two_year_dataset):
        """Test that the same seed reproduces the same sequence."""
        group = partition(two_year_dataset)[0]
        fn = make_biomass_statistic()

        first = resample_and_compute(group, fn, repetitions=30, seed=42)
        second = resample_and_compute(group, fn, repetitions=30, seed=42)

        np.testing.assert_array_equal(first, second)

    def test_different_seeds_differ(self, two_year_dataset):
        """Test that different seeds give different draws."""
        group = partition(two_year_dataset)[0]
        fn = make_biomass_statistic()

        first = resample_and_compute(group, fn, repetitions=30, seed=1)
        second = resample_and_compute(group, fn, repetitions=30, seed=2)

        assert not np.array_equal(first, second)

    def test_seed_sequence_accepted(self, two_year_dataset):
        """Test seeding from a SeedSequence."""
        group = partition(two_year_dataset)[0]
        fn = make_biomass_statistic()
        seed = np.random.SeedSequence(7)

        first = resample_and_compute(group, fn, repetitions=10, seed=seed)
        second = resample_and_compute(group, fn, repetitions=10, seed=np.random.SeedSequence(7))

        np.testing.assert_array_equal(first, second)

    def test_constant_densities_have_no_variance(self, constant_dataset):
        """Test that equal densities give the same value every repetition."""
        group = partition(constant_dataset)[0]
        values = resample_and_compute(group, make_biomass_statistic(4.0), repetitions=25, seed=0)

        assert np.ptp(values) == 0
        assert values[0] == pytest.approx(0.25 * 4.0 * 3)

    @pytest.mark.parametrize("repetitions", [0, 1])
    def test_too_few_repetitions(self, two_year_dataset, repetitions):
        """Test that fewer than two repetitions is rejected."""
        group = partition(two_year_dataset)[0]

        with pytest.raises(InvalidConfigurationError):
            resample_and_compute(group, make_biomass_statistic(), repetitions=repetitions, seed=0)
