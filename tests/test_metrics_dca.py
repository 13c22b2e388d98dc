"""
Tests for Decision Curve Analysis (DCA) module.

Validates:
- Net benefit calculations (cohort and case-control weighting)
- Bootstrap decision curves
- Summary statistics
- Threshold grids
"""

import numpy as np
import pandas as pd
import pytest

from bayes_crm.metrics.dca import (
    DCA_COLUMNS,
    compute_dca_summary,
    decision_curve_analysis,
    generate_dca_thresholds,
    net_benefit,
    net_benefit_treat_all,
)

# =============================================================================
# Fixtures
# =============================================================================


@pytest.fixture
def binary_classification_data():
    """Reproducible informative predictions, 30% prevalence."""
    rng = np.random.default_rng(42)
    y_ctrl = np.zeros(140)
    p_ctrl = rng.beta(2, 6, size=140)
    y_case = np.ones(60)
    p_case = rng.beta(6, 2, size=60)
    return np.concatenate([y_ctrl, y_case]), np.concatenate([p_ctrl, p_case])


# =============================================================================
# Test: Net Benefit Calculations
# =============================================================================


class TestNetBenefit:
    def test_perfect_model(self):
        y = np.array([0, 0, 0, 0, 1, 1, 1, 1])
        p = np.array([0.0, 0.0, 0.0, 0.0, 1.0, 1.0, 1.0, 1.0])
        # TP=4, FP=0, n=8
        assert net_benefit(y, p, threshold=0.5) == pytest.approx(0.5)

    def test_cohort_formula(self):
        y = np.array([1, 1, 0, 0, 0])
        p = np.array([0.9, 0.2, 0.6, 0.1, 0.1])
        # TP=1, FP=1 at t=0.25 -> 1/5 - 1/5 * (1/3)
        assert net_benefit(y, p, 0.25) == pytest.approx(0.2 - 0.2 / 3)

    def test_weighted_formula(self):
        y = np.array([1, 1, 0, 0, 0])
        p = np.array([0.9, 0.2, 0.6, 0.1, 0.1])
        # sens=1/2, fpr=1/3
        expected = 0.1 * 0.5 - 0.9 * (1 / 3) * (1 / 3)
        assert net_benefit(y, p, 0.25, prevalence=0.1) == pytest.approx(expected)

    def test_weighted_equals_cohort_at_observed_prevalence(self, binary_classification_data):
        y, p = binary_classification_data
        for t in (0.1, 0.3, 0.6):
            assert net_benefit(y, p, t, prevalence=float(np.mean(y))) == pytest.approx(
                net_benefit(y, p, t)
            )

    def test_invalid_threshold(self):
        assert np.isnan(net_benefit(np.array([0, 1]), np.array([0.2, 0.8]), 0.0))
        assert np.isnan(net_benefit(np.array([0, 1]), np.array([0.2, 0.8]), 1.0))

    def test_treat_all_zero_at_prevalence(self):
        for prevalence in (0.05, 0.1, 0.3):
            assert net_benefit_treat_all(prevalence, prevalence) == pytest.approx(0.0, abs=1e-12)

    def test_treat_all_formula(self):
        assert net_benefit_treat_all(0.2, 0.1) == pytest.approx(0.2 - 0.8 / 9)


# =============================================================================
# Test: Decision Curves
# =============================================================================


class TestDecisionCurveAnalysis:
    def test_columns_and_grid(self, binary_classification_data):
        y, p = binary_classification_data
        dca = decision_curve_analysis(y, p, n_boot=50, seed=1)
        assert list(dca.columns) == DCA_COLUMNS
        assert len(dca) == 91
        assert (dca["net_benefit_none"] == 0).all()

    def test_interval_brackets_median(self, binary_classification_data):
        y, p = binary_classification_data
        dca = decision_curve_analysis(y, p, n_boot=200, seed=2)
        assert (dca["nb_lower"] <= dca["net_benefit"] + 1e-12).all()
        assert (dca["net_benefit"] <= dca["nb_upper"] + 1e-12).all()

    def test_bootstrap_median_near_point_estimate(self, binary_classification_data):
        y, p = binary_classification_data
        dca = decision_curve_analysis(y, p, n_boot=500, seed=3)
        np.testing.assert_allclose(dca["net_benefit"], dca["net_benefit_point"], atol=0.05)

    def test_reproducible(self, binary_classification_data):
        y, p = binary_classification_data
        a = decision_curve_analysis(y, p, n_boot=30, seed=7)
        b = decision_curve_analysis(y, p, n_boot=30, seed=7)
        pd.testing.assert_frame_equal(a, b)

    def test_case_control_requires_prevalence(self, binary_classification_data):
        y, p = binary_classification_data
        with pytest.raises(ValueError, match="target_prevalence"):
            decision_curve_analysis(y, p, n_boot=10, case_control=True)

    def test_case_control_uses_target_prevalence(self, binary_classification_data):
        y, p = binary_classification_data
        dca = decision_curve_analysis(
            y, p, n_boot=20, seed=4, case_control=True, target_prevalence=0.1
        )
        row = dca[np.isclose(dca["threshold"], 0.1)].iloc[0]
        assert row["net_benefit_all"] == pytest.approx(0.0, abs=1e-12)
        assert row["net_benefit_point"] == pytest.approx(net_benefit(y, p, 0.1, prevalence=0.1))

    def test_cohort_treat_all_uses_observed_prevalence(self, binary_classification_data):
        y, p = binary_classification_data
        dca = decision_curve_analysis(y, p, n_boot=20, seed=5)
        row = dca[np.isclose(dca["threshold"], 0.3)].iloc[0]
        assert row["net_benefit_all"] == pytest.approx(0.0, abs=1e-12)

    def test_sensitivity_specificity(self):
        y = np.array([0, 0, 1, 1])
        p = np.array([0.1, 0.6, 0.4, 0.9])
        dca = decision_curve_analysis(y, p, thresholds=[0.5], n_boot=10, seed=0)
        row = dca.iloc[0]
        assert row["sensitivity"] == 0.5
        assert row["specificity"] == 0.5
        assert row["n_treat"] == 2

    def test_empty_input(self):
        dca = decision_curve_analysis(np.array([]), np.array([]), n_boot=10)
        assert dca.empty
        assert list(dca.columns) == DCA_COLUMNS

    def test_thresholds_outside_unit_interval_dropped(self, binary_classification_data):
        y, p = binary_classification_data
        dca = decision_curve_analysis(y, p, thresholds=[0.0, 0.2, 1.0], n_boot=10, seed=0)
        assert dca["threshold"].tolist() == [0.2]


# =============================================================================
# Test: Summary
# =============================================================================


class TestDcaSummary:
    def test_report_points(self, binary_classification_data):
        y, p = binary_classification_data
        dca = decision_curve_analysis(y, p, n_boot=50, seed=6)
        summary = compute_dca_summary(dca, [0.1, 0.2, 0.3])
        assert summary["dca_computed"]
        assert summary["n_thresholds"] == 91
        for key in ("10", "20", "30"):
            assert f"nb_model_at_{key}pct" in summary
            assert summary[f"nb_lower_at_{key}pct"] <= summary[f"nb_upper_at_{key}pct"]
        assert "integrated_nb_model" in summary

    def test_informative_model_beats_defaults(self, binary_classification_data):
        y, p = binary_classification_data
        dca = decision_curve_analysis(y, p, n_boot=100, seed=8)
        summary = compute_dca_summary(dca)
        assert summary["model_beats_all_range"] != "Never"
        assert summary["integrated_nb_improvement"] > 0

    def test_empty(self):
        assert compute_dca_summary(pd.DataFrame(columns=DCA_COLUMNS)) == {"dca_computed": False}


# =============================================================================
# Test: Threshold Grids
# =============================================================================


class TestThresholdGrid:
    def test_default_grid_has_91_points(self):
        grid = generate_dca_thresholds(0.05, 0.95, 0.01)
        assert len(grid) == 91
        assert grid[0] == pytest.approx(0.05)
        assert grid[-1] == pytest.approx(0.95)
        assert 0.1 in grid.tolist()

    def test_clamping(self):
        grid = generate_dca_thresholds(0.0, 1.0, 0.1)
        assert grid[0] > 0
        assert grid[-1] < 1
