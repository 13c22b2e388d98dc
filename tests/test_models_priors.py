"""
Tests for prior specification.
"""

import numpy as np
import pytest

from bayes_crm.config.schema import PriorConfig
from bayes_crm.models.priors import PriorEntry, PriorSpec, build_prior_spec, flat_prior_spec


class TestBuildPriorSpec:
    def test_group_columns_use_group_scale(self, design):
        spec = build_prior_spec(design, PriorConfig(group_scale=1.0, other_scale=2.5))
        for name in design.group_columns:
            entry = spec.entry(name)
            assert entry.scale == 1.0
            assert not entry.autoscale
        assert spec.entry("age").scale == 2.5
        assert spec.entry("age").autoscale
        assert spec.intercept.scale == 5.0
        assert spec.names == design.columns

    def test_autoscale_uses_sd_and_range(self, design):
        spec = build_prior_spec(design, PriorConfig())
        _, scales = spec.resolved(design.X)

        age = design.X[:, design.columns.index("age")]
        assert scales[design.columns.index("age")] == pytest.approx(2.5 / np.std(age, ddof=1))
        # Binary predictor: divided by its range (1)
        assert scales[design.columns.index("sex[male]")] == pytest.approx(2.5)
        # Group dummies are not autoscaled
        assert scales[0] == pytest.approx(1.0)

    def test_autoscale_off(self, design):
        spec = build_prior_spec(design, PriorConfig(autoscale=False))
        _, scales = spec.resolved(design.X)
        assert scales[design.columns.index("age")] == pytest.approx(2.5)

    def test_flat_prior(self, design):
        spec = flat_prior_spec(design, scale=2.5, intercept_scale=5.0)
        _, scales = spec.resolved(design.X)
        np.testing.assert_allclose(scales, 2.5)

    def test_coefficients_zero_centred(self, design):
        spec = build_prior_spec(design, PriorConfig())
        locations, _ = spec.resolved(design.X)
        np.testing.assert_array_equal(locations, 0.0)
        assert spec.intercept.location == 0.0

    def test_location_not_configurable(self):
        with pytest.raises(ValueError):
            PriorConfig(location=1.0)


class TestPriorSpec:
    def test_non_positive_scale(self):
        with pytest.raises(ValueError):
            PriorEntry(0.0, 0.0)
        with pytest.raises(ValueError):
            PriorEntry(0.0, float("inf"))

    def test_check_columns(self, design):
        spec = build_prior_spec(design, PriorConfig())
        spec.check_columns(design.columns)
        with pytest.raises(ValueError, match="do not match"):
            spec.check_columns(design.columns[::-1])

    def test_unknown_entry(self):
        spec = PriorSpec(intercept=PriorEntry(0.0, 5.0), coefficients=(("a", PriorEntry(0.0, 1.0)),))
        with pytest.raises(KeyError):
            spec.entry("b")

    def test_constant_column_keeps_scale(self):
        spec = PriorSpec(
            intercept=PriorEntry(0.0, 5.0),
            coefficients=(("a", PriorEntry(0.0, 2.0, autoscale=True)),),
        )
        _, scales = spec.resolved(np.ones((10, 1)))
        assert scales[0] == 2.0
