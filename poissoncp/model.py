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

"""Multiple-changepoint Poisson model.

The model for a count sequence ``y[0..n-1]`` with ``m`` changepoints is a left-to-right
hidden Markov chain over the states ``0..m``::

    s[0] = 0,  s[n-1] = m
    P(s[t+1] = j | s[t] = j) = p[j],   P(s[t+1] = j+1 | s[t] = j) = 1 - p[j]
    y[t] | s[t] = j ~ Poisson(rates[j])
    rates[j] ~ Gamma(c0, d0),   p[j] ~ Beta(a, b)

The final state is absorbing and the path is conditioned to finish in it, so every
regime holds at least one observation.
"""

import dataclasses
import logging
import math

import numpy as np

from scipy import stats

from poissoncp.data import ObservationSequence
from poissoncp.exceptions import InvalidConfig, InvalidInput
from poissoncp.math import draw_gamma, poisson_logpmf_table

__all__ = ["PriorConfig", "ChangepointModel"]

_log = logging.getLogger(__name__)

PointType = dict[str, np.ndarray]

_MAX_STAY = np.nextafter(1.0, 0.0)


def _check_positive(name, value, series=None):
    try:
        value = float(value)
    except (TypeError, ValueError):
        raise InvalidConfig(f"`{name}` must be a number, got {value!r}", series=series) from None
    if not math.isfinite(value) or value <= 0:
        raise InvalidConfig(f"`{name}` must be positive and finite, got {value}", series=series)
    return value


@dataclasses.dataclass(frozen=True)
class PriorConfig:
    """Hyperparameters of the changepoint model.

    Parameters
    ----------
    c0, d0 : float
        Shape and rate of the Gamma prior on every regime rate.
    a, b : float, optional
        Beta prior on the probability of staying in a regime. If omitted, ``b = 0.1``
        and ``a`` is chosen so that the prior expected regime duration is ``n / (m + 1)``.
    """

    c0: float = 1.0
    d0: float = 1.0
    a: float | None = None
    b: float | None = None

    def __post_init__(self):
        object.__setattr__(self, "c0", _check_positive("c0", self.c0))
        object.__setattr__(self, "d0", _check_positive("d0", self.d0))
        if self.a is not None:
            object.__setattr__(self, "a", _check_positive("a", self.a))
        if self.b is not None:
            object.__setattr__(self, "b", _check_positive("b", self.b))

    @property
    def is_resolved(self) -> bool:
        return self.a is not None and self.b is not None

    def resolve(self, n: int, n_changepoints: int) -> "PriorConfig":
        """Fill in the default transition prior for a series of length ``n``."""
        if self.is_resolved:
            return self
        b = 0.1 if self.b is None else self.b
        if self.a is None:
            expected_duration = max(1, round(n / (n_changepoints + 1)))
            a = b * expected_duration
        else:
            a = self.a
        return dataclasses.replace(self, a=a, b=b)


class ChangepointModel:
    """A Poisson changepoint model with a fixed number of changepoints for one series.

    Parameters
    ----------
    data : ObservationSequence or array_like
        The observed counts.
    n_changepoints : int
        Number of changepoints ``m``; the model has ``m + 1`` regimes.
    priors : PriorConfig, optional
    name : str, optional
        Series identity, used when ``data`` is not already an ``ObservationSequence``.
    """

    def __init__(self, data, n_changepoints: int, priors: PriorConfig | None = None, name=None):
        if not isinstance(data, ObservationSequence):
            data = ObservationSequence(data, name=name)
        self.data = data
        if isinstance(n_changepoints, bool) or not isinstance(n_changepoints, int | np.integer):
            raise InvalidInput(
                f"The number of changepoints must be an integer, got {n_changepoints!r}",
                series=data.name,
            )
        n_changepoints = int(n_changepoints)
        if n_changepoints < 0:
            raise InvalidInput(
                "The number of changepoints must be non-negative",
                series=data.name,
                n_changepoints=n_changepoints,
            )
        if n_changepoints >= data.n:
            raise InvalidInput(
                f"{n_changepoints + 1} regimes cannot be identified from {data.n} observations",
                series=data.name,
                n_changepoints=n_changepoints,
            )
        self.n_changepoints = n_changepoints
        if priors is None:
            priors = PriorConfig()
        elif not isinstance(priors, PriorConfig):
            raise InvalidConfig(
                f"`priors` must be a PriorConfig, got {type(priors).__name__}",
                series=data.name,
                n_changepoints=n_changepoints,
            )
        self.priors = priors.resolve(data.n, n_changepoints)

    @property
    def name(self):
        return self.data.name

    @property
    def observed(self) -> np.ndarray:
        return self.data.values

    @property
    def n(self) -> int:
        return self.data.n

    @property
    def n_states(self) -> int:
        return self.n_changepoints + 1

    def __repr__(self):
        name = f"{self.name!r}, " if self.name is not None else ""
        return f"ChangepointModel({name}n={self.n}, m={self.n_changepoints})"

    # Structure of regime paths

    def initial_path(self) -> np.ndarray:
        """Evenly spaced regimes, deterministic for a given ``n`` and ``m``."""
        return (np.arange(self.n) * self.n_states // self.n).astype(np.int64)

    def check_path(self, path) -> np.ndarray:
        path = np.asarray(path)
        if path.shape != (self.n,):
            raise InvalidInput(
                f"A regime path must have shape ({self.n},), got {path.shape}",
                series=self.name,
                n_changepoints=self.n_changepoints,
            )
        steps = np.diff(path)
        if path[0] != 0 or path[-1] != self.n_changepoints or np.any((steps != 0) & (steps != 1)):
            raise InvalidInput(
                "A regime path must start in regime 0, advance one regime at a time "
                f"and finish in regime {self.n_changepoints}",
                series=self.name,
                n_changepoints=self.n_changepoints,
            )
        return path.astype(np.int64)

    def regime_statistics(self, path) -> tuple[np.ndarray, np.ndarray]:
        """Total count and number of observations assigned to each regime."""
        sums = np.bincount(path, weights=self.observed, minlength=self.n_states)
        counts = np.bincount(path, minlength=self.n_states)
        return sums, counts

    def transition_counts(self, path) -> tuple[np.ndarray, np.ndarray]:
        """Number of stays in and advances out of each non-final regime."""
        m = self.n_changepoints
        path = np.asarray(path)
        moved = np.diff(path) == 1
        origin = path[:-1]
        stays = np.bincount(origin[~moved], minlength=self.n_states)[:m]
        advances = np.bincount(origin[moved], minlength=self.n_states)[:m]
        return stays, advances

    @staticmethod
    def changepoints_of(path) -> np.ndarray:
        """Index of the first observation of every regime after the first."""
        return np.flatnonzero(np.diff(path)) + 1

    # Densities

    def log_obs(self, rates) -> np.ndarray:
        return poisson_logpmf_table(self.observed, rates)

    def log_prior(self, rates, transitions) -> float:
        c0, d0, a, b = self.priors.c0, self.priors.d0, self.priors.a, self.priors.b
        logp = stats.gamma.logpdf(rates, c0, scale=1.0 / d0).sum()
        if self.n_changepoints > 0:
            logp += stats.beta.logpdf(transitions, a, b).sum()
        return float(logp)

    def loglik(self, rates, transitions) -> float:
        """``log p(y, s[n-1] = m | rates, transitions)`` by forward filtering."""
        from poissoncp.step_methods.ffbs import forward_filter

        _, loglik = forward_filter(self.log_obs(rates), transitions)
        return loglik

    def logp(self, point: PointType) -> float:
        """Unnormalized log posterior of the parameters in ``point``, path summed out."""
        return self.loglik(point["rates"], point["transitions"]) + self.log_prior(
            point["rates"], point["transitions"]
        )

    # Starting values

    def initial_point(self, rng: np.random.Generator, init: str = "path") -> PointType:
        """Starting values for the Gibbs sampler.

        ``init="path"`` draws rates and stay probabilities from their full conditionals
        given the evenly spaced path. ``init="prior"`` draws them from the priors.
        """
        path = self.initial_path()
        c0, d0, a, b = self.priors.c0, self.priors.d0, self.priors.a, self.priors.b
        if init == "path":
            sums, counts = self.regime_statistics(path)
            stays, advances = self.transition_counts(path)
            rates = draw_gamma(rng, c0 + sums, d0 + counts)
            transitions = rng.beta(a + stays, b + advances)
        elif init == "prior":
            rates = draw_gamma(rng, c0, d0, size=self.n_states)
            # A draw that rounds to 1 would leave the final regime unreachable.
            transitions = np.minimum(rng.beta(a, b, size=self.n_changepoints), _MAX_STAY)
        else:
            raise InvalidConfig(
                f"Unknown initialization method {init!r}, expected 'path' or 'prior'",
                series=self.name,
                n_changepoints=self.n_changepoints,
            )
        return {"rates": rates, "transitions": transitions, "path": path}
