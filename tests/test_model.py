#   Copyright 2024 - present The poissoncp Developers
#
#   Licensed under the Apache License, Version 2.0 (the "License");
#   you may not use this file except in compliance with the License.
#   You may obtain a copy of the License at
#
#       http://www.apache.org/licenses/LICENSE-2.0
#
#   Unless required by applicable law or agreed to in writing, software
#   distributed under the License is distributed on an "AS IS" BASIS,
#   WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
#   See the License for the specific language governing permissions and
#   limitations under the License.

import itertools

import numpy as np
import numpy.testing as npt
import pytest

from scipy import stats
from scipy.special import logsumexp

from poissoncp.data import ObservationSequence
from poissoncp.exceptions import InvalidConfig, InvalidInput
from poissoncp.model import ChangepointModel, PriorConfig
from poissoncp.util import get_random_generator
from tests.helpers import is_left_to_right


class TestPriorConfig:
    @pytest.mark.parametrize(
        "kwargs",
        [
            {"c0": 0.0},
            {"d0": -1.0},
            {"a": 0.0},
            {"b": np.nan},
            {"c0": np.inf},
            {"d0": "one"},
        ],
    )
    def test_invalid(self, kwargs):
        with pytest.raises(InvalidConfig):
            PriorConfig(**kwargs)

    def test_non_numeric_hides_conversion_error(self):
        with pytest.raises(InvalidConfig, match="must be a number") as excinfo:
            PriorConfig(d0="one")
        assert excinfo.value.__cause__ is None
        assert excinfo.value.__suppress_context__

    def test_default_transition_prior(self):
        priors = PriorConfig().resolve(n=400, n_changepoints=1)
        assert priors.b == 0.1
        assert priors.a == pytest.approx(20.0)
        assert priors.is_resolved

    def test_explicit_transition_prior_is_kept(self):
        priors = PriorConfig(a=2.0, b=3.0)
        assert priors.resolve(400, 3) is priors

    def test_partial_transition_prior(self):
        priors = PriorConfig(b=1.0).resolve(n=90, n_changepoints=2)
        assert priors.a == pytest.approx(30.0)
        assert priors.b == 1.0


class TestChangepointModel:
    def test_wraps_arrays(self):
        model = ChangepointModel([1, 2, 3, 4], 1, name="Bolivia/marches")
        assert isinstance(model.data, ObservationSequence)
        assert model.name == "Bolivia/marches"
        assert model.n == 4
        assert model.n_states == 2

    @pytest.mark.parametrize("m", [5, 6, -1])
    def test_unidentifiable(self, m):
        with pytest.raises(InvalidInput) as excinfo:
            ChangepointModel([1, 2, 3, 4, 5], m, name="x")
        assert excinfo.value.n_changepoints == m

    @pytest.mark.parametrize("m", [1.0, "2", True])
    def test_non_integer_changepoints(self, m):
        with pytest.raises(InvalidInput):
            ChangepointModel([1, 2, 3], m)

    def test_invalid_priors(self):
        with pytest.raises(InvalidConfig):
            ChangepointModel([1, 2, 3], 1, priors={"c0": 1.0})

    def test_maximum_changepoints(self):
        model = ChangepointModel([1, 2, 3, 4, 5], 4)
        npt.assert_array_equal(model.initial_path(), np.arange(5))

    @pytest.mark.parametrize("n, m", [(6, 2), (7, 0), (10, 3), (400, 1), (5, 4)])
    def test_initial_path(self, n, m):
        model = ChangepointModel(np.ones(n, dtype=int), m)
        path = model.initial_path()
        assert is_left_to_right(path, m)
        counts = np.bincount(path)
        assert counts.max() - counts.min() <= 1

    def test_regime_statistics(self):
        model = ChangepointModel([1, 2, 3, 4], 1)
        sums, counts = model.regime_statistics(np.array([0, 0, 1, 1]))
        npt.assert_array_equal(sums, [3, 7])
        npt.assert_array_equal(counts, [2, 2])

    def test_transition_counts(self):
        model = ChangepointModel(np.zeros(6, dtype=int), 2)
        stays, advances = model.transition_counts(np.array([0, 0, 1, 1, 1, 2]))
        npt.assert_array_equal(stays, [1, 2])
        npt.assert_array_equal(advances, [1, 1])

    def test_transition_counts_single_regime(self):
        model = ChangepointModel([3], 0)
        stays, advances = model.transition_counts(np.array([0]))
        assert stays.shape == advances.shape == (0,)

    def test_changepoints_of(self):
        npt.assert_array_equal(
            ChangepointModel.changepoints_of(np.array([0, 0, 1, 1, 1, 2])), [2, 5]
        )

    @pytest.mark.parametrize(
        "path",
        [
            [1, 1, 1, 2, 2],
            [0, 0, 1, 1, 1],
            [0, 2, 2, 2, 2],
            [0, 1, 0, 1, 2],
            [0, 1, 2],
        ],
    )
    def test_check_path(self, path):
        model = ChangepointModel(np.ones(5, dtype=int), 2)
        with pytest.raises(InvalidInput):
            model.check_path(path)

    def test_loglik_single_regime(self):
        y = np.array([0, 3, 1, 4, 2])
        model = ChangepointModel(y, 0)
        expected = stats.poisson.logpmf(y, 2.5).sum()
        assert model.loglik(np.array([2.5]), np.empty(0)) == pytest.approx(expected)

    def test_loglik_sums_over_paths(self):
        y = np.array([0, 1, 0, 4, 3, 5])
        rates = np.array([0.5, 4.0])
        p = 0.7
        model = ChangepointModel(y, 1)

        terms = []
        for k in range(1, len(y)):
            path_logp = (k - 1) * np.log(p) + np.log(1 - p)
            terms.append(
                path_logp
                + stats.poisson.logpmf(y[:k], rates[0]).sum()
                + stats.poisson.logpmf(y[k:], rates[1]).sum()
            )
        assert model.loglik(rates, np.array([p])) == pytest.approx(logsumexp(terms))

    def test_loglik_sums_over_paths_two_changepoints(self):
        y = np.array([2, 0, 5, 6, 1, 0, 1])
        rates = np.array([1.0, 5.0, 0.5])
        p = np.array([0.6, 0.8])
        model = ChangepointModel(y, 2)

        terms = []
        for k1, k2 in itertools.combinations(range(1, len(y)), 2):
            path = np.repeat([0, 1, 2], [k1, k2 - k1, len(y) - k2])
            stays, advances = model.transition_counts(path)
            terms.append(
                (stays * np.log(p)).sum()
                + (advances * np.log1p(-p)).sum()
                + stats.poisson.logpmf(y, rates[path]).sum()
            )
        assert model.loglik(rates, p) == pytest.approx(logsumexp(terms))

    def test_log_prior(self):
        model = ChangepointModel(np.ones(10, dtype=int), 1, priors=PriorConfig(2.0, 0.5, 3.0, 1.5))
        rates = np.array([1.0, 3.0])
        transitions = np.array([0.9])
        expected = (
            stats.gamma.logpdf(rates, 2.0, scale=2.0).sum()
            + stats.beta.logpdf(0.9, 3.0, 1.5)
        )
        assert model.log_prior(rates, transitions) == pytest.approx(expected)

    @pytest.mark.parametrize("init", ["path", "prior"])
    def test_initial_point(self, init):
        model = ChangepointModel(np.arange(20), 2)
        point = model.initial_point(get_random_generator(3), init=init)
        assert point["rates"].shape == (3,)
        assert np.all(point["rates"] > 0)
        assert point["transitions"].shape == (2,)
        assert np.all((point["transitions"] > 0) & (point["transitions"] <= 1))
        assert is_left_to_right(point["path"], 2)

    @pytest.mark.parametrize("init", ["path", "prior"])
    def test_initial_point_vague_prior(self, init):
        model = ChangepointModel(np.zeros(30, dtype=int), 2, priors=PriorConfig(c0=1e-3, d0=1e-3))
        for seed in range(20):
            point = model.initial_point(get_random_generator(seed), init=init)
            assert np.all(point["rates"] > 0)

    def test_initial_point_unknown_method(self):
        model = ChangepointModel(np.arange(20), 2)
        with pytest.raises(InvalidConfig, match="initialization"):
            model.initial_point(get_random_generator(3), init="zeros")
