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

"""Forward simulation of count series with known changepoints."""

import numpy as np

from poissoncp.data import ObservationSequence
from poissoncp.exceptions import InvalidConfig
from poissoncp.math import draw_gamma
from poissoncp.model import _MAX_STAY, ChangepointModel, PointType
from poissoncp.step_methods.ffbs import backward_sample, forward_filter
from poissoncp.util import RandomGenerator, get_random_generator

__all__ = ["draw_from_prior", "simulate_series"]


def simulate_series(
    rates,
    durations,
    random_seed: RandomGenerator = None,
    name=None,
) -> ObservationSequence:
    """Simulate Poisson counts whose rate is piecewise constant.

    Parameters
    ----------
    rates : array_like
        Poisson rate of every regime.
    durations : array_like of int
        Number of observations of every regime. Regime ``j`` starts at index
        ``sum(durations[:j])``.
    random_seed : int, array-like of int, or Generator, optional
    name : str, optional
        Identity of the simulated series.

    Examples
    --------
    .. code:: python

        y = simulate_series([0.2, 2.0], [200, 200], random_seed=1)
        # the changepoint is at index 200
    """
    rates = np.asarray(rates, dtype=float)
    durations = np.asarray(durations)
    if rates.ndim != 1 or rates.shape != durations.shape or rates.size == 0:
        raise InvalidConfig(
            f"`rates` and `durations` must be 1-D of equal length, got {rates.shape} "
            f"and {durations.shape}",
            series=name,
        )
    if np.any(rates < 0) or not np.all(np.isfinite(rates)):
        raise InvalidConfig("Rates must be non-negative and finite", series=name)
    if durations.dtype.kind not in "iu" or np.any(durations < 1):
        raise InvalidConfig("Durations must be positive integers", series=name)

    rng = get_random_generator(random_seed)
    lam = np.repeat(rates, durations)
    return ObservationSequence(rng.poisson(lam), name=name)


def draw_from_prior(model: ChangepointModel, random_seed: RandomGenerator = None) -> PointType:
    """Draw rates, stay probabilities, a regime path and counts from the model's prior.

    The path is drawn from the Markov chain conditioned on finishing in the final
    regime, by backward sampling against an uninformative observation table.
    The counts are returned under ``"observed"``.
    """
    rng = get_random_generator(random_seed)
    priors = model.priors
    rates = draw_gamma(rng, priors.c0, priors.d0, size=model.n_states)
    transitions = np.minimum(rng.beta(priors.a, priors.b, size=model.n_changepoints), _MAX_STAY)
    if model.n_changepoints == 0:
        path = np.zeros(model.n, dtype=np.int64)
    else:
        filtered, _ = forward_filter(np.zeros((model.n, model.n_states)), transitions)
        path = backward_sample(filtered, transitions, rng)
    observed = rng.poisson(rates[path])
    return {"rates": rates, "transitions": transitions, "path": path, "observed": observed}
