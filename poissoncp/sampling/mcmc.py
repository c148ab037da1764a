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

"""Gibbs sampling of Poisson changepoint models."""

import logging
import math
import time

from collections import namedtuple
from collections.abc import Callable, Iterator, Mapping
from typing import Any, Protocol

import numpy as np

from arviz import InferenceData
from rich.theme import Theme

from poissoncp.backends import PosteriorDraws, SamplerReport, to_inference_data
from poissoncp.exceptions import DegenerateLikelihood, InvalidConfig
from poissoncp.model import ChangepointModel, PointType
from poissoncp.progress_bar import default_progress_theme, gibbs_progress
from poissoncp.stats.convergence import (
    SamplerWarning,
    WarningType,
    log_warnings,
    run_convergence_checks,
)
from poissoncp.step_methods import CompoundStep, gibbs_steps
from poissoncp.util import RandomGenerator, get_random_generator

__all__ = ["Draw", "sample"]

_log = logging.getLogger(__name__)

Draw = namedtuple("Draw", ["iteration", "total", "burnin", "retained", "stats", "point"])
Draw.__doc__ = """State of the chain after one Gibbs iteration, handed to sampling callbacks."""


class SamplingIteratorCallback(Protocol):
    """Signature of the callback function."""

    def __call__(self, draws: PosteriorDraws, draw: Draw): ...


def _check_count(name: str, value, minimum: int, model: ChangepointModel) -> int:
    if isinstance(value, bool) or not isinstance(value, int | np.integer) or value < minimum:
        raise InvalidConfig(
            f"`{name}` must be an integer >= {minimum}, got {value!r}",
            series=model.name,
            n_changepoints=model.n_changepoints,
        )
    return int(value)


def _check_sampler_settings(model, mcmc, burnin, thin) -> tuple[int, int, int]:
    mcmc = _check_count("mcmc", mcmc, 1, model)
    burnin = _check_count("burnin", burnin, 0, model)
    thin = _check_count("thin", thin, 1, model)
    if mcmc % thin != 0:
        raise InvalidConfig(
            f"`mcmc` ({mcmc}) must be divisible by `thin` ({thin})",
            series=model.name,
            n_changepoints=model.n_changepoints,
        )
    return mcmc, burnin, thin


def _check_random_seed(random_seed: RandomGenerator, model: ChangepointModel):
    if isinstance(random_seed, bool):
        raise InvalidConfig(
            f"Invalid random seed {random_seed!r}",
            series=model.name,
            n_changepoints=model.n_changepoints,
        )
    if isinstance(random_seed, int | np.integer) and random_seed < 0:
        raise InvalidConfig(
            f"The random seed must be non-negative, got {random_seed}",
            series=model.name,
            n_changepoints=model.n_changepoints,
        )
    return get_random_generator(random_seed)


def _make_initial_point(
    model: ChangepointModel,
    rng: np.random.Generator,
    initial_point: Mapping[str, Any] | None,
    init: str,
) -> PointType:
    point = model.initial_point(rng, init=init)
    if initial_point is None:
        return point

    unknown = set(initial_point) - set(point)
    if unknown:
        raise InvalidConfig(
            f"Unknown initial values {sorted(unknown)}",
            series=model.name,
            n_changepoints=model.n_changepoints,
        )
    if "rates" in initial_point:
        rates = np.asarray(initial_point["rates"], dtype=float)
        if rates.shape != (model.n_states,) or not np.all((rates > 0) & np.isfinite(rates)):
            raise InvalidConfig(
                f"Initial rates must be {model.n_states} positive numbers, got {rates}",
                series=model.name,
                n_changepoints=model.n_changepoints,
            )
        point["rates"] = rates
    if "transitions" in initial_point:
        transitions = np.asarray(initial_point["transitions"], dtype=float)
        if transitions.shape != (model.n_changepoints,) or not np.all(
            (transitions > 0) & (transitions < 1)
        ):
            raise InvalidConfig(
                f"Initial stay probabilities must be {model.n_changepoints} numbers "
                f"in (0, 1), got {transitions}",
                series=model.name,
                n_changepoints=model.n_changepoints,
            )
        point["transitions"] = transitions
    if "path" in initial_point:
        point["path"] = model.check_path(initial_point["path"])
    return point


def _is_cancelled(cancel) -> bool:
    if cancel is None:
        return False
    is_set = getattr(cancel, "is_set", None)
    if is_set is not None:
        return bool(is_set())
    return bool(cancel())


def sample(
    model: ChangepointModel,
    mcmc: int = 1000,
    burnin: int = 1000,
    thin: int = 1,
    *,
    random_seed: RandomGenerator = None,
    initial_point: Mapping[str, Any] | None = None,
    init: str = "path",
    step: CompoundStep | None = None,
    progressbar: bool = True,
    progressbar_theme: Theme | None = default_progress_theme,
    callback: SamplingIteratorCallback | None = None,
    cancel: Callable[[], bool] | Any | None = None,
    compute_convergence_checks: bool = True,
    return_inferencedata: bool = False,
) -> PosteriorDraws | InferenceData:
    r"""Draw samples from the posterior of a changepoint model by Gibbs sampling.

    Every iteration draws the regime path, then the regime rates, then the stay
    probabilities, each from its full conditional distribution. The first ``burnin``
    iterations are discarded, and every ``thin``-th of the following ``mcmc``
    iterations is retained.

    Parameters
    ----------
    model : ChangepointModel
        The series and the number of changepoints to fit.
    mcmc : int
        Number of iterations after burn-in. Must be divisible by ``thin``.
    burnin : int
        Number of initial iterations to discard.
    thin : int
        Keep every ``thin``-th iteration after burn-in; ``mcmc / thin`` draws are retained.
    random_seed : int, array-like of int, or Generator, optional
        Seed of the random stream. Identical inputs and seeds produce identical draws.
        A ``Generator`` is copied, never advanced.
    initial_point : dict, optional
        Starting ``rates``, ``transitions`` and/or ``path``. Missing entries are filled in
        according to ``init``.
    init : {"path", "prior"}
        How to draw missing starting values: from the full conditionals given evenly
        spaced regimes, or from the priors.
    step : CompoundStep, optional
        Step methods to use instead of the state, rate and transition samplers.
    progressbar : bool
        Whether or not to display a progress bar in the command line.
    progressbar_theme : Theme
        Optional custom theme for the progress bar.
    callback : function, optional
        Called after every iteration as ``callback(draws=draws, draw=draw)`` where
        ``draw`` is a :class:`Draw`.
    cancel : threading.Event or callable, optional
        Checked before every iteration; sampling stops when ``cancel.is_set()`` (or
        ``cancel()``) is true. The draws retained so far are returned.
    compute_convergence_checks : bool, default True
        Whether to compute effective sample sizes of the retained draws.
    return_inferencedata : bool, default False
        Return an ``arviz.InferenceData`` instead of :class:`PosteriorDraws`.

    Returns
    -------
    draws : PosteriorDraws or InferenceData

    Raises
    ------
    InvalidConfig
        If a sampler setting or the random seed is out of range.
    DegenerateLikelihood
        If the forward filter assigns zero probability to every regime.

    Examples
    --------
    .. code:: python

        import poissoncp as pcp

        model = pcp.ChangepointModel(counts, n_changepoints=1)
        draws = pcp.sample(model, mcmc=2000, burnin=1000, random_seed=42)
        summary = pcp.summarize(draws)
    """
    mcmc, burnin, thin = _check_sampler_settings(model, mcmc, burnin, thin)
    rng = _check_random_seed(random_seed, model)

    if step is None:
        step = gibbs_steps(model)
    step.set_rng(rng)
    start = _make_initial_point(model, rng, initial_point, init)

    report = SamplerReport(burnin=burnin, mcmc=mcmc, thin=thin)
    if not isinstance(random_seed, np.random.Generator):
        report.random_seed = random_seed
    draws = PosteriorDraws(model, step.stats_dtypes_shapes)
    draws.setup(mcmc // thin, report)

    _log.info(
        f"Gibbs sampling {model!r} with {burnin:_d} burn-in and {mcmc:_d} iterations "
        f"(thin={thin})"
    )
    t_start = time.time()
    _sample(
        draws=draws,
        step=step,
        start=start,
        burnin=burnin,
        mcmc=mcmc,
        thin=thin,
        progressbar=progressbar,
        progressbar_theme=progressbar_theme,
        callback=callback,
        cancel=cancel,
    )
    report.t_sampling = time.time() - t_start

    if report.cancelled:
        msg = (
            f"Sampling stopped after {report.n_iterations:_d} of "
            f"{report.total_iterations:_d} iterations with {len(draws):_d} retained draws."
        )
        warn = SamplerWarning(WarningType.INTERRUPTED, msg, "warn", step=report.n_iterations)
        report._add_warnings([warn])
        log_warnings([warn])
    _log.info(
        f"Sampling {report.n_iterations:_d} iterations ({len(draws):_d} retained draws) "
        f"took {report.t_sampling:.0f} seconds."
    )

    if compute_convergence_checks:
        warns = run_convergence_checks(draws)
        report._add_warnings(warns)
        log_warnings(warns)

    if return_inferencedata:
        return to_inference_data(draws)
    return draws


def _sample(
    *,
    draws: PosteriorDraws,
    step: CompoundStep,
    start: PointType,
    burnin: int,
    mcmc: int,
    thin: int,
    progressbar: bool,
    progressbar_theme: Theme | None = default_progress_theme,
    callback: SamplingIteratorCallback | None = None,
    cancel=None,
) -> None:
    """Run one chain, showing progress and turning a keyboard interrupt into a partial result."""
    sampling_gen = _iter_sample(
        draws=draws,
        step=step,
        start=start,
        burnin=burnin,
        mcmc=mcmc,
        thin=thin,
        callback=callback,
        cancel=cancel,
    )
    total = burnin + mcmc
    _desc = "Sampling m={m:d}, {phase}"
    m = draws.model.n_changepoints

    progress = gibbs_progress(progressbar, progressbar_theme)
    with progress:
        try:
            task = progress.add_task(
                _desc.format(m=m, phase="burn-in" if burnin else "draws"), completed=0, total=total
            )
            for draw in sampling_gen:
                phase = "burn-in" if draw.burnin else "draws"
                progress.update(
                    task, description=_desc.format(m=m, phase=phase), completed=draw.iteration + 1
                )
            progress.update(task, refresh=True)
        except KeyboardInterrupt:
            draws.report.cancelled = True
        finally:
            draws.close()


def _iter_sample(
    *,
    draws: PosteriorDraws,
    step: CompoundStep,
    start: PointType,
    burnin: int,
    mcmc: int,
    thin: int,
    callback: SamplingIteratorCallback | None = None,
    cancel=None,
) -> Iterator[Draw]:
    """Sample one chain with a generator.

    Parameters
    ----------
    draws : PosteriorDraws
        Storage for the retained draws, already set up.
    step : CompoundStep
        Step methods with their random generator set.
    start : dict
        Starting rates, transitions and path.
    burnin, mcmc, thin : int
        Iteration schedule.

    Yields
    ------
    draw : Draw
        The state of the chain after every iteration.
    """
    model = draws.model
    report = draws.report
    total = burnin + mcmc
    point = start

    try:
        for i in range(total):
            if _is_cancelled(cancel):
                report.cancelled = True
                break
            try:
                point, stats = step.step(point)
            except DegenerateLikelihood as err:
                raise DegenerateLikelihood(
                    err.reason,
                    series=model.name,
                    n_changepoints=model.n_changepoints,
                    iteration=i,
                ) from err
            flat = {}
            for sts in stats:
                flat.update(sts)
            report._record_iteration(i, flat.get("loglik", math.nan))

            retained = i >= burnin and (i - burnin + 1) % thin == 0
            if retained:
                draws.record(point, flat)
            draw = Draw(i, total, i < burnin, retained, flat, point)
            if callback is not None:
                callback(draws=draws, draw=draw)
            yield draw
    finally:
        draws.close()
