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

"""Forward filtering, backward sampling of regime paths."""

import numpy as np

from poissoncp.exceptions import DegenerateLikelihood
from poissoncp.step_methods.compound import BlockedStep

__all__ = ["StateSampler", "forward_filter", "backward_sample"]


def _stay_advance(transitions, n_states):
    stay = np.ones(n_states)
    stay[:-1] = transitions
    return stay, 1.0 - stay


def forward_filter(logp_obs, transitions):
    """Filtered regime probabilities of a left-to-right chain.

    Parameters
    ----------
    logp_obs : ndarray
        ``(n, m + 1)`` table of observation log-likelihoods under each regime.
    transitions : array_like
        Probabilities ``p[j]`` of staying in regime ``j`` for ``j < m``.

    Returns
    -------
    filtered : ndarray
        ``(n, m + 1)`` table whose row ``t`` is ``P(s[t] = j | y[0..t])``.
    loglik : float
        ``log p(y, s[n-1] = m)``, the log-likelihood with the path summed out.

    Raises
    ------
    DegenerateLikelihood
        If every regime has zero probability at some time, or the final regime is
        unreachable at the last observation.
    """
    logp_obs = np.asarray(logp_obs, dtype=float)
    n, n_states = logp_obs.shape
    stay, advance = _stay_advance(transitions, n_states)

    # Rows are rescaled by their maximum before exponentiating and the
    # filtered rows are renormalized at every step.
    shift = logp_obs.max(axis=1)
    lik = np.exp(logp_obs - shift[:, None])

    filtered = np.zeros((n, n_states))
    log_norm = np.zeros(n)
    predicted = np.zeros(n_states)
    predicted[0] = 1.0
    for t in range(n):
        if t > 0:
            prev = filtered[t - 1]
            predicted = prev * stay
            predicted[1:] += prev[:-1] * advance[:-1]
        joint = predicted * lik[t]
        total = joint.sum()
        if not total > 0:
            raise DegenerateLikelihood(
                f"Every regime has zero filtered probability at time index {t}"
            )
        filtered[t] = joint / total
        log_norm[t] = np.log(total)

    terminal = filtered[-1, -1]
    if not terminal > 0:
        raise DegenerateLikelihood(
            f"The final regime {n_states - 1} is unreachable at time index {n - 1}"
        )
    loglik = float(shift.sum() + log_norm.sum() + np.log(terminal))
    return filtered, loglik


def backward_sample(filtered, transitions, rng: np.random.Generator) -> np.ndarray:
    """Draw a regime path given the filtered probabilities.

    The path finishes in the final regime. Going backwards, the regime at ``t`` is
    either the one drawn for ``t + 1`` or the one just below it, with probabilities
    proportional to ``filtered[t, j] * P(j -> s[t + 1])``.
    """
    n, n_states = filtered.shape
    stay, advance = _stay_advance(transitions, n_states)
    stay = stay.tolist()
    advance = advance.tolist()
    rows = filtered.tolist()
    uniforms = rng.random(n - 1).tolist()

    path = np.empty(n, dtype=np.int64)
    state = n_states - 1
    path[-1] = state
    for t in range(n - 2, -1, -1):
        row = rows[t]
        w_stay = row[state] * stay[state]
        w_advance = row[state - 1] * advance[state - 1] if state > 0 else 0.0
        total = w_stay + w_advance
        if not total > 0:
            raise DegenerateLikelihood(
                f"No admissible regime at time index {t} precedes regime {state}"
            )
        if uniforms[t] * total < w_advance:
            state -= 1
        path[t] = state
    return path


class StateSampler(BlockedStep):
    """Draw the regime path from its full conditional by forward filtering, backward sampling.

    With no changepoints every observation belongs to regime 0 and nothing is drawn.
    """

    stats_dtypes_shapes = {"loglik": (np.float64, [])}
    updates = ("path",)

    def step(self, point):
        model = self.model
        logp_obs = model.log_obs(point["rates"])
        if model.n_changepoints == 0:
            path = np.zeros(model.n, dtype=np.int64)
            loglik = float(logp_obs.sum())
        else:
            filtered, loglik = forward_filter(logp_obs, point["transitions"])
            path = backward_sample(filtered, point["transitions"], self.rng)
        point = {**point, "path": path}
        return point, [{"loglik": loglik}]
