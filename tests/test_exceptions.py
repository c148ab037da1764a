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

import pytest

from poissoncp.exceptions import (
    DegenerateLikelihood,
    InvalidConfig,
    InvalidInput,
    MarginalLikelihoodUnstable,
    SamplingError,
)


def test_message_context():
    err = DegenerateLikelihood("no mass", series="Chile/riots", n_changepoints=3, iteration=17)
    assert str(err) == "no mass (series='Chile/riots', m=3, iteration=17)"
    assert err.reason == "no mass"
    assert err.iteration == 17


def test_message_without_context():
    assert str(InvalidConfig("`thin` must be positive")) == "`thin` must be positive"


@pytest.mark.parametrize(
    "cls, base",
    [
        (InvalidInput, ValueError),
        (InvalidConfig, ValueError),
        (DegenerateLikelihood, SamplingError),
        (MarginalLikelihoodUnstable, SamplingError),
    ],
)
def test_hierarchy(cls, base):
    assert issubclass(cls, base)


def test_pickle_keeps_context():
    err = MarginalLikelihoodUnstable("infinite ordinate", series="Peru", n_changepoints=2)
    restored = pickle.loads(pickle.dumps(err))
    assert type(restored) is MarginalLikelihoodUnstable
    assert restored.series == "Peru"
    assert restored.n_changepoints == 2
    assert restored.iteration is None
    assert str(restored) == str(err)
