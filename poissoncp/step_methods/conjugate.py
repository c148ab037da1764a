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

"""Conjugate updates of the regime rates and the stay probabilities."""

import numpy as np

from poissoncp.math import draw_gamma
from poissoncp.step_methods.compound import BlockedStep

__all__ = ["RateSampler", "TransitionSampler"]


class RateSampler(BlockedStep):
    """Draw every regime rate from its Gamma-Poisson posterior given the path.

    Regime ``j`` gets ``Gamma(c0 + sum(y[s == j]), d0 + count(s == j))``; a regime
    without observations falls back to the prior. All rates are drawn in a single
    call, independently given the path.
    """

    updates = ("rates",)

    def posterior_params(self, path) -> tuple[np.ndarray, np.ndarray]:
        sums, counts = self.model.regime_statistics(path)
        priors = self.model.priors
        return priors.c0 + sums, priors.d0 + counts

    def step(self, point):
        shape, rate = self.posterior_params(point["path"])
        rates = draw_gamma(self.rng, shape, rate)
        return {**point, "rates": rates}, []


class TransitionSampler(BlockedStep):
    """Draw the stay probability of every non-final regime from its Beta posterior.

    Regime ``j < m`` gets ``Beta(a + stays[j], b + advances[j])``. The final regime is
    absorbing and has no stay probability.
    """

    updates = ("transitions",)

    def posterior_params(self, path) -> tuple[np.ndarray, np.ndarray]:
        stays, advances = self.model.transition_counts(path)
        priors = self.model.priors
        return priors.a + stays, priors.b + advances

    def step(self, point):
        if self.model.n_changepoints == 0:
            return {**point, "transitions": np.empty(0)}, []
        alpha, beta = self.posterior_params(point["path"])
        transitions = self.rng.beta(alpha, beta)
        return {**point, "transitions": transitions}, []
