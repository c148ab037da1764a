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

import numpy as np

import poissoncp as pcp

from poissoncp.backends import PosteriorDraws


def two_regime_series(seed=20240101):
    """Rates 0.2 and 2.0 over 200 observations each; the changepoint is at index 200."""
    return pcp.simulate_series([0.2, 2.0], [200, 200], random_seed=seed, name="synthetic/two")


def three_regime_series(seed=20240102):
    return pcp.simulate_series([1.0, 6.0, 2.0], [20, 20, 20], random_seed=seed, name="synthetic/three")


def make_draws(model, points, stats=None):
    """Fill a PosteriorDraws with hand-made points."""
    sampler_vars = {"loglik": (np.float64, [])} if stats is not None else None
    draws = PosteriorDraws(model, sampler_vars)
    draws.setup(len(points))
    for i, point in enumerate(points):
        draws.record(point, None if stats is None else {"loglik": stats[i]})
    draws.close()
    return draws


def is_left_to_right(paths, n_changepoints):
    paths = np.atleast_2d(paths)
    steps = np.diff(paths, axis=1)
    return (
        np.all(paths[:, 0] == 0)
        and np.all(paths[:, -1] == n_changepoints)
        and np.all((steps == 0) | (steps == 1))
    )
