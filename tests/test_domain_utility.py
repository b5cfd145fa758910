"""Unit tests for the utility builder (pure functions)."""

import numpy as np
import pytest

from allocator_api.domain.entities import MarketStats, ObjectiveSpec
from allocator_api.domain.services.utility import (
    build_utility_function,
    covariance_to_correlation,
    entanglement_penalty,
    portfolio_variance,
    sharpe_term,
)

DIAGONAL_MARKET = MarketStats(
    means=[0.1, 0.2],
    cov=[[0.04, 0.0], [0.0, 0.09]],
)


class TestCovarianceToCorrelation:
    """Tests for covariance_to_correlation."""

    def test_unit_diagonal(self):
        cov = np.array([[0.04, 0.01], [0.01, 0.09]])
        corr = covariance_to_correlation(cov)

        assert corr[0, 0] == pytest.approx(1.0, rel=1e-6)
        assert corr[1, 1] == pytest.approx(1.0, rel=1e-6)

    def test_off_diagonal(self):
        cov = np.array([[0.04, 0.01], [0.01, 0.09]])
        corr = covariance_to_correlation(cov)

        # 0.01 / (0.2 * 0.3)
        assert corr[0, 1] == pytest.approx(1 / 6, rel=1e-6)
        assert corr[0, 1] == corr[1, 0]

    def test_zero_variance_is_finite(self):
        """Zero-variance assets must not divide by zero."""
        cov = np.array([[0.0, 0.0], [0.0, 0.04]])
        corr = covariance_to_correlation(cov)

        assert np.all(np.isfinite(corr))


class TestPortfolioTerms:
    """Tests for portfolio_variance, sharpe_term and entanglement_penalty."""

    def test_portfolio_variance(self):
        w = np.array([0.5, 0.5])
        cov = np.array([[0.04, 0.0], [0.0, 0.09]])

        # 0.25 * 0.04 + 0.25 * 0.09
        assert portfolio_variance(w, cov) == pytest.approx(0.0325)

    def test_sharpe_zero_variance_is_finite(self):
        w = np.array([1.0])
        value = sharpe_term(w, np.array([0.05]), np.array([[0.0]]))

        assert np.isfinite(value)

    def test_sharpe_with_risk_free_rate(self):
        w = np.array([1.0])
        value = sharpe_term(w, np.array([0.10]), np.array([[0.04]]), risk_free_rate=0.02)

        assert value == pytest.approx(0.08 / 0.2, rel=1e-6)

    def test_penalty_zero_for_uncorrelated(self):
        corr = np.eye(3)

        assert entanglement_penalty(np.array([0.2, 0.3, 0.5]), corr, gamma=1.0) == 0.0

    def test_penalty_counts_both_orderings(self):
        """Sum over i != j counts each pair twice."""
        corr = np.array([[1.0, 1.0], [1.0, 1.0]])

        assert entanglement_penalty(np.array([0.5, 0.5]), corr, gamma=1.0) == pytest.approx(0.5)

    def test_penalty_scales_with_gamma(self):
        corr = np.array([[1.0, 0.5], [0.5, 1.0]])
        w = np.array([0.5, 0.5])

        assert entanglement_penalty(w, corr, 2.0) == pytest.approx(
            2 * entanglement_penalty(w, corr, 1.0)
        )


class TestBuildUtilityFunction:
    """Tests for build_utility_function."""

    def test_return_objective(self):
        utility = build_utility_function([ObjectiveSpec("return", 1.0)], DIAGONAL_MARKET, gamma=0.0)

        assert utility(np.array([0.5, 0.5])) == pytest.approx(0.15)

    def test_variance_objective_is_subtracted(self):
        utility = build_utility_function([ObjectiveSpec("variance", 2.0)], DIAGONAL_MARKET, gamma=0.0)

        assert utility(np.array([0.5, 0.5])) == pytest.approx(-2 * 0.0325)

    def test_sharpe_objective(self):
        utility = build_utility_function([ObjectiveSpec("sharpe", 1.0)], DIAGONAL_MARKET, gamma=0.0)

        assert utility(np.array([1.0, 0.0])) == pytest.approx(0.1 / 0.2, rel=1e-6)

    def test_objectives_combine_linearly(self):
        w = np.array([0.3, 0.7])
        combined = build_utility_function(
            [ObjectiveSpec("return", 1.0), ObjectiveSpec("variance", 0.8)],
            DIAGONAL_MARKET,
            gamma=0.0,
        )
        ret = build_utility_function([ObjectiveSpec("return", 1.0)], DIAGONAL_MARKET, 0.0)
        var = build_utility_function([ObjectiveSpec("variance", 0.8)], DIAGONAL_MARKET, 0.0)

        assert combined(w) == pytest.approx(ret(w) + var(w))

    def test_custom_scorer_receives_weights_and_market(self):
        calls = []

        def scorer(weights, market):
            calls.append((weights.copy(), market))
            return 3.0

        utility = build_utility_function(
            [ObjectiveSpec("custom", 0.5, scorer=scorer)], DIAGONAL_MARKET, gamma=0.0
        )

        assert utility(np.array([0.5, 0.5])) == pytest.approx(1.5)
        assert calls[0][1] is DIAGONAL_MARKET

    def test_custom_without_scorer_contributes_zero(self):
        utility = build_utility_function([ObjectiveSpec("custom", 5.0)], DIAGONAL_MARKET, gamma=0.0)

        assert utility(np.array([0.5, 0.5])) == 0.0

    def test_unknown_objective_contributes_zero(self):
        utility = build_utility_function([ObjectiveSpec("alpha", 5.0)], DIAGONAL_MARKET, gamma=0.0)

        assert utility(np.array([0.5, 0.5])) == 0.0

    def test_entanglement_penalty_always_applied(self):
        market = MarketStats(means=[0.0, 0.0], cov=[[1.0, 1.0], [1.0, 1.0]])
        utility = build_utility_function([], market, gamma=1.0)

        assert utility(np.array([0.5, 0.5])) == pytest.approx(-0.5)

    def test_penalty_matches_entanglement_penalty(self):
        cov = np.array([[0.04, 0.01, 0.0], [0.01, 0.09, -0.02], [0.0, -0.02, 0.16]])
        market = MarketStats(means=[0.0, 0.0, 0.0], cov=cov)
        utility = build_utility_function([], market, gamma=0.7)
        w = np.array([0.2, 0.3, 0.5])

        expected = -entanglement_penalty(w, covariance_to_correlation(cov), 0.7)
        assert utility(w) == pytest.approx(expected)

    def test_pure(self):
        """Same weights give the same score on repeated calls."""
        utility = build_utility_function(
            [ObjectiveSpec("return", 1.0), ObjectiveSpec("sharpe", 0.4)],
            DIAGONAL_MARKET,
            gamma=0.7,
        )
        w = np.array([0.4, 0.6])

        assert utility(w) == utility(w)
