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

from scipy.special import betaln, gammaln, logsumexp, xlogy

__all__ = [
    "logsumexp",
    "logmeanexp",
    "poisson_logpmf_table",
    "gamma_poisson_log_marginal",
    "beta_geometric_log_marginal",
    "draw_gamma",
]

_TINY = np.finfo(float).tiny


def logmeanexp(x, axis=None):
    """Log of the mean of ``exp(x)``, computed without leaving log space."""
    x = np.asarray(x, dtype=float)
    size = x.size if axis is None else x.shape[axis]
    return logsumexp(x, axis=axis) - np.log(size)


def poisson_logpmf_table(y, rates):
    """Return the ``(n, k)`` table of ``log Pois(y[t] | rates[j])``."""
    y = np.asarray(y, dtype=float)[:, None]
    rates = np.asarray(rates, dtype=float)[None, :]
    return xlogy(y, rates) - rates - gammaln(y + 1.0)


def gamma_poisson_log_marginal(sums, counts, c0, d0, log_factorials=0.0):
    """Log marginal likelihood of Poisson segments under a Gamma(c0, d0) rate prior.

    ``sums`` and ``counts`` hold the total count and the number of observations of
    each segment; ``log_factorials`` is the sum of ``log y!`` over the same segment.
    """
    sums = np.asarray(sums, dtype=float)
    counts = np.asarray(counts, dtype=float)
    return (
        c0 * np.log(d0)
        - gammaln(c0)
        + gammaln(c0 + sums)
        - (c0 + sums) * np.log(d0 + counts)
        - log_factorials
    )


def beta_geometric_log_marginal(stays, advances, a, b):
    """Log of the integral of ``p**stays * (1 - p)**advances`` under a Beta(a, b) prior."""
    return betaln(a + np.asarray(stays, dtype=float), b + np.asarray(advances, dtype=float)) - betaln(
        a, b
    )


def draw_gamma(rng, shape, rate, size=None):
    """Draw from ``Gamma(shape, rate)``, floored at the smallest positive double.

    With shapes well below one the draws underflow to exactly zero, which is not a
    valid Poisson rate.
    """
    return np.maximum(rng.gamma(shape, 1.0 / np.asarray(rate, dtype=float), size=size), _TINY)
