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

r"""Marginal likelihoods and Bayes factors of changepoint models.

Chib's method rests on the identity

.. math::

    \log m(y) = \log p(y \mid \theta^*) + \log p(\theta^*) - \log p(\theta^* \mid y)

which holds at any parameter value :math:`\theta^* = (\lambda^*, p^*)`. The posterior
ordinate is split into :math:`p(\lambda^* \mid y)`, averaged over the regime paths of
the posterior draws, and :math:`p(p^* \mid y, \lambda^*)`, averaged over a reduced
Gibbs run with the rates held at :math:`\lambda^*` (Chib, 1995, 1998).
"""

import dataclasses
import logging

from collections.abc import Mapping, Sequence
from typing import TYPE_CHECKING, Any

import numpy as np

from scipy import stats
from scipy.special import gammaln, logsumexp

from poissoncp.exceptions import (
    DegenerateLikelihood,
    InvalidConfig,
    MarginalLikelihoodUnstable,
)
from poissoncp.math import beta_geometric_log_marginal, gamma_poisson_log_marginal, logmeanexp
from poissoncp.model import ChangepointModel
from poissoncp.step_methods import StateSampler, TransitionSampler
from poissoncp.util import RandomGenerator, get_random_generator

if TYPE_CHECKING:
    from poissoncp.backends import PosteriorDraws

__all__ = [
    "MarginalLikelihood",
    "ModelComparison",
    "bayes_factor",
    "compare",
    "exact_log_marginal_likelihood",
    "marginal_likelihood",
]

_log = logging.getLogger(__name__)


@dataclasses.dataclass(frozen=True)
class MarginalLikelihood:
    """Log marginal likelihood of one fitted model and the terms it was built from."""

    log_marginal: float
    n_changepoints: int
    method: str = "chib"
    series: Any = None
    log_likelihood: float = np.nan
    log_prior: float = np.nan
    log_posterior_rates: float = np.nan
    log_posterior_transitions: float = np.nan
    point: dict | None = None

    def __float__(self):
        return float(self.log_marginal)


def _unstable(msg, model):
    return MarginalLikelihoodUnstable(msg, series=model.name, n_changepoints=model.n_changepoints)


def _evaluation_point(draws: "PosteriorDraws", point) -> tuple[np.ndarray, np.ndarray]:
    model = draws.model
    if isinstance(point, Mapping):
        rates = np.asarray(point["rates"], dtype=float)
        transitions = np.asarray(point.get("transitions", np.empty(0)), dtype=float)
        if rates.shape != (model.n_states,) or transitions.shape != (model.n_changepoints,):
            raise InvalidConfig(
                "The evaluation point does not match the number of regimes",
                series=model.name,
                n_changepoints=model.n_changepoints,
            )
    elif point == "mean":
        rates = draws["rates"].mean(axis=0)
        transitions = draws["transitions"].mean(axis=0)
    elif point == "median":
        rates = np.median(draws["rates"], axis=0)
        transitions = np.median(draws["transitions"], axis=0)
    elif point == "map":
        best, best_logp = None, -np.inf
        for idx in range(len(draws)):
            candidate = draws.point(idx)
            try:
                logp = model.logp(candidate)
            except DegenerateLikelihood:
                continue
            if np.isfinite(logp) and logp > best_logp:
                best, best_logp = candidate, logp
        if best is None:
            raise _unstable("No posterior draw has a finite log posterior density", model)
        rates, transitions = best["rates"], best["transitions"]
    else:
        raise InvalidConfig(
            f"Unknown evaluation point {point!r}, expected 'mean', 'median', 'map' or a dict",
            series=model.name,
            n_changepoints=model.n_changepoints,
        )

    if not np.all(np.isfinite(rates) & (rates > 0)):
        raise _unstable(f"Rates at the evaluation point must be positive, got {rates}", model)
    if not np.all((transitions > 0) & (transitions < 1)):
        raise _unstable(
            f"Stay probabilities at the evaluation point must lie in (0, 1), got {transitions}",
            model,
        )
    return np.array(rates, dtype=float), np.array(transitions, dtype=float)


def _log_rate_ordinate(model: ChangepointModel, paths: np.ndarray, rates: np.ndarray) -> float:
    """``log p(rates | y)``, Rao-Blackwellized over the regime paths of the draws."""
    priors = model.priors
    onehot = paths[:, :, None] == np.arange(model.n_states)[None, None, :]
    counts = onehot.sum(axis=1)
    sums = (onehot * model.observed[None, :, None]).sum(axis=1)
    logdens = stats.gamma.logpdf(
        rates[None, :], priors.c0 + sums, scale=1.0 / (priors.d0 + counts)
    ).sum(axis=1)
    return float(logmeanexp(logdens))


def _log_transition_ordinate(
    model: ChangepointModel,
    rates: np.ndarray,
    transitions: np.ndarray,
    start: dict,
    n_reduced: int,
    rng: np.random.Generator,
) -> float:
    """``log p(transitions | y, rates)`` from a reduced run with the rates held fixed."""
    state_step = StateSampler(model, rng)
    transition_step = TransitionSampler(model, rng)
    point = {"rates": rates, "transitions": start["transitions"], "path": start["path"]}
    logdens = np.empty(n_reduced)
    for g in range(n_reduced):
        try:
            point, _ = state_step.step(point)
        except DegenerateLikelihood as err:
            raise MarginalLikelihoodUnstable(
                f"Reduced run failed: {err.reason}",
                series=model.name,
                n_changepoints=model.n_changepoints,
                iteration=g,
            ) from err
        alpha, beta = transition_step.posterior_params(point["path"])
        logdens[g] = stats.beta.logpdf(transitions, alpha, beta).sum()
        point, _ = transition_step.step(point)
    return float(logmeanexp(logdens))


def marginal_likelihood(
    draws: "PosteriorDraws",
    method: str = "chib",
    point: str | Mapping[str, Any] = "mean",
    n_reduced: int | None = None,
    random_seed: RandomGenerator = None,
) -> MarginalLikelihood:
    """Estimate the log marginal likelihood of the model that produced ``draws``.

    Parameters
    ----------
    draws : PosteriorDraws
        Retained draws of a finished run.
    method : {"chib", "exact"}
        Chib's estimate, or the exact value obtained by summing over every admissible
        placement of the changepoints (quadratic in the series length).
    point : {"mean", "median", "map"} or dict
        Where Chib's identity is evaluated: the posterior mean or median of the draws,
        the draw with the highest unnormalized posterior density, or explicit
        ``rates`` and ``transitions``.
    n_reduced : int, optional
        Length of the reduced run for the stay probabilities. Defaults to the number
        of draws.
    random_seed : int, array-like of int, or Generator, optional
        Seed of the reduced run.

    Returns
    -------
    MarginalLikelihood

    Raises
    ------
    MarginalLikelihoodUnstable
        If no valid evaluation point exists or the estimate is not finite.
    """
    model = draws.model
    if method == "exact":
        return MarginalLikelihood(
            log_marginal=exact_log_marginal_likelihood(model),
            n_changepoints=model.n_changepoints,
            method="exact",
            series=model.name,
        )
    if method != "chib":
        raise InvalidConfig(
            f"Unknown method {method!r}, expected 'chib' or 'exact'",
            series=model.name,
            n_changepoints=model.n_changepoints,
        )
    if len(draws) == 0:
        raise _unstable("Chib's method needs at least one posterior draw", model)

    rates, transitions = _evaluation_point(draws, point)
    try:
        loglik = model.loglik(rates, transitions)
    except DegenerateLikelihood as err:
        raise _unstable(
            f"The likelihood vanishes at the evaluation point: {err.reason}", model
        ) from err
    log_prior = model.log_prior(rates, transitions)
    log_post_rates = _log_rate_ordinate(model, draws["path"], rates)

    log_post_transitions = 0.0
    if model.n_changepoints > 0:
        if n_reduced is None:
            n_reduced = len(draws)
        if n_reduced < 1:
            raise InvalidConfig(
                f"`n_reduced` must be positive, got {n_reduced}",
                series=model.name,
                n_changepoints=model.n_changepoints,
            )
        rng = get_random_generator(random_seed)
        log_post_transitions = _log_transition_ordinate(
            model, rates, transitions, draws.point(len(draws) - 1), n_reduced, rng
        )

    log_marginal = loglik + log_prior - log_post_rates - log_post_transitions
    if not np.isfinite(log_marginal):
        raise _unstable(
            f"Chib's estimate is not finite (log-likelihood {loglik}, log prior {log_prior}, "
            f"posterior ordinates {log_post_rates} and {log_post_transitions})",
            model,
        )
    _log.debug(f"Log marginal likelihood of {model!r}: {log_marginal:.3f}")
    return MarginalLikelihood(
        log_marginal=float(log_marginal),
        n_changepoints=model.n_changepoints,
        method="chib",
        series=model.name,
        log_likelihood=loglik,
        log_prior=log_prior,
        log_posterior_rates=log_post_rates,
        log_posterior_transitions=log_post_transitions,
        point={"rates": rates, "transitions": transitions},
    )


def exact_log_marginal_likelihood(model: ChangepointModel) -> float:
    """Log marginal likelihood summed over every admissible changepoint configuration.

    Rates and stay probabilities are integrated out in closed form, so the result is
    exact up to rounding. The cost grows as ``m * n**2``.
    """
    y = model.observed
    n, m = model.n, model.n_changepoints
    priors = model.priors
    csum = np.concatenate([[0], np.cumsum(y)])
    clogf = np.concatenate([[0.0], np.cumsum(gammaln(y + 1.0))])

    def segment(starts, end):
        return gamma_poisson_log_marginal(
            csum[end] - csum[starts],
            end - starts,
            priors.c0,
            priors.d0,
            clogf[end] - clogf[starts],
        )

    def leave(length):
        return beta_geometric_log_marginal(length - 1, 1, priors.a, priors.b)

    # logz[e]: regimes 0..k cover y[0:e] exactly, with regime k left at e
    ends = np.arange(1, n + 1)
    logz = np.full(n + 1, -np.inf)
    logz[1:] = segment(0, ends)
    if m > 0:
        logz[1:] += leave(ends)
    for k in range(1, m + 1):
        new = np.full(n + 1, -np.inf)
        final = k == m
        for end in range(n if final else k + 1, n + 1):
            starts = np.arange(k, end)
            terms = logz[starts] + segment(starts, end)
            if not final:
                terms = terms + leave(end - starts)
            new[end] = logsumexp(terms)
        logz = new
    return float(logz[n])


def bayes_factor(ml1, ml2) -> float:
    """Log Bayes factor of the first model against the second."""
    return float(ml1) - float(ml2)


@dataclasses.dataclass(frozen=True)
class ModelComparison:
    """Log Bayes factors and posterior probabilities of competing models.

    ``log_bayes_factors[i, j]`` is the log Bayes factor of model ``i`` against model
    ``j``. Posterior probabilities assume equal prior weights. ``best`` is the label
    of the model with the strictly greatest marginal likelihood, or ``None`` on a tie.
    """

    labels: tuple
    log_marginals: np.ndarray
    log_bayes_factors: np.ndarray
    posterior_probabilities: np.ndarray
    best: Any

    def table(self) -> list[dict]:
        return [
            {
                "model": label,
                "log_marginal": float(lml),
                "posterior_probability": float(prob),
            }
            for label, lml, prob in zip(
                self.labels, self.log_marginals, self.posterior_probabilities
            )
        ]


def compare(marginals: Mapping[Any, Any] | Sequence[MarginalLikelihood]) -> ModelComparison:
    """Compare models by their log marginal likelihoods.

    Parameters
    ----------
    marginals : dict or sequence
        Log marginal likelihoods (floats or :class:`MarginalLikelihood`) keyed by a
        model label, or a sequence of :class:`MarginalLikelihood` labelled by their
        number of changepoints.
    """
    if isinstance(marginals, Mapping):
        labels = tuple(marginals)
        values = [float(v) for v in marginals.values()]
    else:
        labels = tuple(ml.n_changepoints for ml in marginals)
        values = [float(ml) for ml in marginals]
    if not labels:
        raise ValueError("Nothing to compare")
    if len(set(labels)) != len(labels):
        raise ValueError(f"Model labels must be unique, got {labels}")
    lml = np.asarray(values)
    if not np.all(np.isfinite(lml)):
        raise MarginalLikelihoodUnstable(f"Log marginal likelihoods must be finite, got {values}")

    log_bf = lml[:, None] - lml[None, :]
    probs = np.exp(lml - logsumexp(lml))
    top = np.flatnonzero(lml == lml.max())
    best = labels[top[0]] if top.size == 1 else None
    return ModelComparison(
        labels=labels,
        log_marginals=lml,
        log_bayes_factors=log_bf,
        posterior_probabilities=probs,
        best=best,
    )
