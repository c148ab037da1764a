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

import warnings

import pytest

import poissoncp as pcp

from tests.helpers import two_regime_series


@pytest.fixture(scope="session")
def two_regime():
    return two_regime_series()


@pytest.fixture(scope="session")
def two_regime_fit(two_regime):
    model = pcp.ChangepointModel(two_regime, n_changepoints=1)
    return pcp.sample(model, mcmc=1000, burnin=500, random_seed=1, progressbar=False)


@pytest.fixture
def fail_on_warning():
    with warnings.catch_warnings():
        warnings.simplefilter("error")
        yield
