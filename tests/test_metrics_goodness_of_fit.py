"""
Tests for the Hosmer-Lemeshow goodness-of-fit test.
"""

import numpy as np
import pytest
from scipy.stats import chi2

from bayes_crm.metrics.goodness_of_fit import HLTestResult, choose_n_groups, hosmer_lemeshow_test


class TestChooseGroups:
    @pytest.mark.parametrize(
        "n_events, expected",
        [(0, 5), (24, 5), (30, 6), (49, 9), (50, 10), (500, 10)],
    )
    def test_clamped(self, n_events, expected):
        assert choose_n_groups(n_events) == expected

    def test_custom_bounds(self):
        assert choose_n_groups(100, min_groups=3, max_groups=20, events_per_group=10) == 10


class TestHosmerLemeshow:
    def test_hand_computed(self):
        y = np.array([0, 0, 1, 0, 1, 1, 0, 1, 1, 1])
        p = np.array([0.1, 0.2, 0.3, 0.4, 0.5, 0.6, 0.7, 0.8, 0.9, 0.95])
        result = hosmer_lemeshow_test(y, p, min_groups=5, max_groups=5)

        statistic = 0.0
        for idx in np.array_split(np.arange(10), 5):
            o, e, n = y[idx].sum(), p[idx].sum(), idx.size
            statistic += (o - e) ** 2 / (e * (1 - e / n))

        assert result.n_groups == 5
        assert result.dof == 3
        assert result.statistic == pytest.approx(statistic)
        assert result.p_value == pytest.approx(chi2.sf(statistic, 3))
        assert list(result.groups.columns) == [
            "group",
            "n",
            "observed",
            "expected",
            "mean_predicted",
            "p_min",
            "p_max",
        ]
        assert result.groups["n"].sum() == 10

    def test_groups_sorted_by_prediction(self):
        rng = np.random.default_rng(0)
        p = rng.uniform(size=300)
        y = rng.binomial(1, p)
        result = hosmer_lemeshow_test(y, p)
        groups = result.groups
        assert (groups["p_min"].to_numpy()[1:] >= groups["p_max"].to_numpy()[:-1]).all()

    def test_calibrated_versus_shifted(self):
        rng = np.random.default_rng(1)
        calibrated, shifted = [], []
        for _ in range(20):
            p = rng.uniform(0.05, 0.6, size=400)
            y = rng.binomial(1, p)
            calibrated.append(hosmer_lemeshow_test(y, p).p_value)
            shifted.append(hosmer_lemeshow_test(y, np.clip(p + 0.15, 0, 0.99)).p_value)
        assert np.median(calibrated) > 0.1
        assert np.median(shifted) < 0.01

    def test_to_dict(self):
        rng = np.random.default_rng(2)
        p = rng.uniform(size=100)
        result = hosmer_lemeshow_test(rng.binomial(1, p), p)
        assert isinstance(result, HLTestResult)
        assert set(result.to_dict()) == {"n_groups", "statistic", "p_value", "dof"}

    def test_length_mismatch(self):
        with pytest.raises(ValueError):
            hosmer_lemeshow_test(np.zeros(5), np.zeros(6))

    def test_too_few_subjects(self):
        with pytest.raises(ValueError, match="at least"):
            hosmer_lemeshow_test(np.array([0, 1, 1]), np.array([0.2, 0.5, 0.7]))
