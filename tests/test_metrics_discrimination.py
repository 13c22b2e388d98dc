"""
Tests for discrimination metrics and the AUC posterior.
"""

import numpy as np
import pytest
from sklearn.metrics import roc_auc_score

from bayes_crm.metrics.discrimination import (
    auc_posterior,
    auc_posterior_mode,
    auroc,
    summarize_auc,
)


class TestAuroc:
    def test_perfect(self):
        assert auroc(np.array([0, 0, 1, 1]), np.array([0.1, 0.4, 0.6, 0.9])) == 1.0

    def test_single_class_nan(self):
        with pytest.warns(UserWarning):
            assert np.isnan(auroc(np.zeros(5), np.linspace(0, 1, 5)))


class TestAucPosterior:
    def test_matches_sklearn_per_draw(self):
        rng = np.random.default_rng(0)
        y = rng.binomial(1, 0.3, size=150)
        P = rng.uniform(size=(40, 150)) * 0.5 + 0.4 * y
        # Ties exercise average ranks
        P[:, :10] = 0.5

        auc = auc_posterior(P, y)
        expected = [roc_auc_score(y, row) for row in P]
        np.testing.assert_allclose(auc, expected)

    def test_uninformative_near_half(self):
        rng = np.random.default_rng(1)
        y = rng.binomial(1, 0.3, size=2000)
        P = rng.uniform(size=(200, 2000))
        auc = auc_posterior(P, y)
        assert np.mean(auc) == pytest.approx(0.5, abs=0.02)

    def test_one_dimensional_input(self):
        auc = auc_posterior(np.array([0.1, 0.9]), np.array([0, 1]))
        assert auc.tolist() == [1.0]

    def test_single_class(self):
        with pytest.warns(UserWarning):
            auc = auc_posterior(np.ones((3, 4)), np.zeros(4))
        assert np.isnan(auc).all()

    def test_length_mismatch(self):
        with pytest.raises(ValueError):
            auc_posterior(np.ones((3, 4)), np.zeros(5))


class TestAucMode:
    def test_mode_of_normal_draws(self):
        draws = np.random.default_rng(2).normal(0.75, 0.02, size=4000)
        assert auc_posterior_mode(draws) == pytest.approx(0.75, abs=0.01)

    def test_identical_draws(self):
        assert auc_posterior_mode(np.full(50, 0.8)) == 0.8

    def test_empty_and_single(self):
        assert np.isnan(auc_posterior_mode(np.array([np.nan])))
        assert auc_posterior_mode(np.array([0.7])) == 0.7

    def test_summary(self):
        draws = np.random.default_rng(3).normal(0.7, 0.03, size=2000)
        summary = summarize_auc(draws)
        assert set(summary) == {"mode", "median", "mean", "lower", "upper"}
        assert summary["lower"] < summary["median"] < summary["upper"]
        assert summary["lower"] == pytest.approx(np.percentile(draws, 2.5))

    def test_summary_all_nan(self):
        summary = summarize_auc(np.full(5, np.nan))
        assert all(np.isnan(v) for v in summary.values())
