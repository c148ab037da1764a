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

import pickle

import numpy as np
import numpy.testing as npt
import pytest

import poissoncp as pcp

from poissoncp.backends import PosteriorDraws, SamplerReport
from poissoncp.stats.convergence import SamplerWarning, WarningType
from tests.helpers import make_draws


@pytest.fixture
def model():
    return pcp.ChangepointModel([0, 1, 0, 4, 5, 3, 2], 2, name="backend")


def make_point(model, i):
    return {
        "rates": np.array([0.5, 4.0, 2.0]) + i,
        "transitions": np.array([0.5, 0.6]),
        "path": model.initial_path(),
    }


class TestPosteriorDraws:
    def test_record(self, model):
        draws = PosteriorDraws(model, {"loglik": (np.float64, [])})
        draws.setup(3)
        for i in range(3):
            draws.record(make_point(model, i), {"loglik": -float(i), "unknown": 1.0})
        draws.close()
        assert len(draws) == draws.n_draws == 3
        assert draws.varnames == ["rates", "transitions", "path"]
        assert draws.stat_names == {"loglik"}
        npt.assert_allclose(draws["rates"][:, 0], [0.5, 1.5, 2.5])
        npt.assert_allclose(draws.get_sampler_stats("loglik"), [0.0, -1.0, -2.0])
        assert draws["path"].dtype == np.int8
        assert repr(draws) == "<PosteriorDraws: ChangepointModel('backend', n=7, m=2), 3 draws>"

    def test_closed(self, model):
        draws = make_draws(model, [make_point(model, 0)])
        with pytest.raises(ValueError, match="closed"):
            draws.record(make_point(model, 1))
        with pytest.raises(ValueError):
            draws["rates"][0, 0] = 2.0

    def test_closed_after_pickling(self, model):
        draws = make_draws(model, [make_point(model, 0), make_point(model, 1)], stats=[1.0, 2.0])
        restored = pickle.loads(pickle.dumps(draws))
        assert restored.closed
        npt.assert_array_equal(restored["rates"], draws["rates"])
        for name in (*restored.varnames, *restored.stat_names):
            assert not restored[name].flags.writeable
        with pytest.raises(ValueError):
            restored["path"][0, 0] = 1

    def test_early_close(self, model):
        draws = PosteriorDraws(model)
        draws.setup(10)
        draws.record(make_point(model, 0))
        draws.record(make_point(model, 1))
        draws.close()
        assert len(draws) == 2
        assert draws["rates"].shape == (2, 3)
        assert draws.samples["path"].shape == (2, 7)

    def test_unknown_name(self, model):
        draws = make_draws(model, [make_point(model, 0)])
        with pytest.raises(KeyError, match="sigma"):
            draws["sigma"]

    def test_point_is_a_copy(self, model):
        draws = make_draws(model, [make_point(model, 0)])
        point = draws.point(0)
        point["rates"][0] = 100.0
        assert draws["rates"][0, 0] == 0.5

    def test_slice(self, model):
        points = [make_point(model, i) for i in range(6)]
        draws = make_draws(model, points, stats=np.arange(6.0))
        draws.report._add_warnings(
            [
                SamplerWarning(WarningType.CONVERGENCE, "everywhere", "warn"),
                SamplerWarning(WarningType.INTERRUPTED, "at 4", "warn", step=4),
                SamplerWarning(WarningType.INTERRUPTED, "at 3", "warn", step=3),
            ]
        )
        sliced = draws[::2]
        assert len(sliced) == 3
        npt.assert_allclose(sliced["rates"][:, 0], [0.5, 2.5, 4.5])
        npt.assert_allclose(sliced["loglik"], [0.0, 2.0, 4.0])
        assert sliced.closed
        assert [(w.message, w.step) for w in sliced.report.warnings] == [
            ("everywhere", None),
            ("at 4", 2),
        ]

    def test_changepoints(self, model):
        point = make_point(model, 0)
        point["path"] = np.array([0, 0, 1, 1, 1, 2, 2])
        draws = make_draws(model, [point, make_point(model, 1)])
        npt.assert_array_equal(draws.changepoints(), [[2, 5], [3, 5]])

    def test_wide_paths(self):
        model = pcp.ChangepointModel(np.ones(200, dtype=int), 150)
        draws = PosteriorDraws(model)
        draws.setup(1)
        draws.record(model.initial_point(np.random.default_rng(0)))
        assert draws["path"].dtype == np.int32
        assert draws["path"].max() == 150

    def test_observed(self, model):
        draws = make_draws(model, [make_point(model, 0)])
        npt.assert_array_equal(draws.observed, [0, 1, 0, 4, 5, 3, 2])


class TestSamplerReport:
    def test_counts(self):
        report = SamplerReport(burnin=10, mcmc=20, thin=4)
        assert report.total_iterations == 30
        assert report.expected_draws == 5
        report._record_iteration(0, -3.0)
        report._record_iteration(1, -2.0)
        npt.assert_allclose(report.loglik_trace, [-3.0, -2.0])

    def test_ok(self):
        report = SamplerReport()
        report._add_warnings([SamplerWarning(WarningType.BAD_PARAMS, "few", "info")])
        assert report.ok
        report.raise_ok()
        report._add_warnings([SamplerWarning(WarningType.CONVERGENCE, "bad", "error")])
        assert not report.ok
        with pytest.raises(pcp.SamplingError):
            report.raise_ok()
