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

import threading

import numpy as np
import numpy.testing as npt
import pytest

import poissoncp as pcp

from tests.helpers import three_regime_series


@pytest.fixture(scope="module")
def models():
    y = three_regime_series()
    return [pcp.ChangepointModel(y, m) for m in range(3)]


SAMPLE_KWARGS = dict(mcmc=40, burnin=10, progressbar=False, compute_convergence_checks=False)


def test_sequential(models):
    results = pcp.sample_models(models, cores=1, random_seed=10, **SAMPLE_KWARGS)
    assert [r.model.n_changepoints for r in results] == [0, 1, 2]
    assert all(len(r) == 40 for r in results)


def test_seeds_per_model(models):
    results = pcp.sample_models(models, cores=1, random_seed=[1, 2, 3], **SAMPLE_KWARGS)
    expected = pcp.sample(models[1], random_seed=2, **SAMPLE_KWARGS)
    npt.assert_array_equal(results[1]["rates"], expected["rates"])
    npt.assert_array_equal(results[1]["path"], expected["path"])


def test_results_do_not_depend_on_cores(models):
    sequential = pcp.sample_models(models, cores=1, random_seed=10, **SAMPLE_KWARGS)
    parallel = pcp.sample_models(models, cores=2, random_seed=10, **SAMPLE_KWARGS)
    for a, b in zip(sequential, parallel):
        assert a.model.n_changepoints == b.model.n_changepoints
        for name in ("rates", "transitions", "path", "loglik"):
            npt.assert_array_equal(a[name], b[name])


def test_cancel_needs_one_core(models):
    with pytest.raises(ValueError, match="cores=1"):
        pcp.sample_models(models, cores=2, cancel=threading.Event(), **SAMPLE_KWARGS)


def test_worker_errors_propagate(models):
    with pytest.raises(pcp.InvalidConfig):
        pcp.sample_models(models, cores=2, random_seed=1, mcmc=10, thin=3, progressbar=False)


def test_empty():
    assert pcp.sample_models([]) == []
