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

"""Independent fits of several (series, number of changepoints) pairs."""

import logging
import multiprocessing
import time

from collections.abc import Sequence
from concurrent.futures import ProcessPoolExecutor

from poissoncp.backends import PosteriorDraws
from poissoncp.model import ChangepointModel
from poissoncp.sampling.mcmc import sample
from poissoncp.util import RandomState, _get_seeds_per_run

__all__ = ["sample_models"]

logger = logging.getLogger(__name__)


def _cpu_count():
    """Try to guess the number of CPUs in the system.

    We use the number provided by multiprocessing, but assume that half of the cpus
    are only hardware threads and ignore those.
    """
    try:
        cpus = multiprocessing.cpu_count() // 2
    except NotImplementedError:
        cpus = 1
    return max(cpus, 1)


def _sample_one(model, seed, kwargs):
    return sample(model, random_seed=seed, **kwargs)


def sample_models(
    models: Sequence[ChangepointModel],
    *,
    cores: int | None = None,
    random_seed: RandomState = None,
    mp_ctx=None,
    **kwargs,
) -> list[PosteriorDraws]:
    """Fit several changepoint models that share no state.

    Typical uses are one series with ``m = 0, 1, 2, 3``, or many series with the same
    ``m``. Each model gets its own seed, derived from ``random_seed``, so results do not
    depend on ``cores``.

    Parameters
    ----------
    models : sequence of ChangepointModel
    cores : int, optional
        Number of worker processes. Defaults to half the CPU count, capped at the number
        of models. With ``cores=1`` the models are fitted one after the other in this process.
    random_seed : int, array-like of int, or Generator, optional
        One seed for the whole batch, or one seed per model.
    mp_ctx : str or multiprocessing context, optional
        Start method of the worker processes.
    **kwargs
        Passed to :func:`~poissoncp.sample`.

    Returns
    -------
    list of PosteriorDraws
        In the order of ``models``.
    """
    models = list(models)
    if not models:
        return []
    seeds = _get_seeds_per_run(random_seed, len(models))
    if cores is None:
        cores = min(_cpu_count(), len(models))
    cores = max(1, min(int(cores), len(models)))

    t_start = time.time()
    if cores == 1:
        logger.info(f"Sequential sampling ({len(models)} models in 1 job)")
        results = [_sample_one(model, seed, kwargs) for model, seed in zip(models, seeds)]
    else:
        logger.info(f"Multiprocess sampling ({len(models)} models in {cores} jobs)")
        if kwargs.get("cancel") is not None:
            raise ValueError("`cancel` is only supported with cores=1")
        kwargs = {**kwargs, "progressbar": False}
        if mp_ctx is None or isinstance(mp_ctx, str):
            mp_ctx = multiprocessing.get_context(mp_ctx)
        with ProcessPoolExecutor(max_workers=cores, mp_context=mp_ctx) as executor:
            futures = [
                executor.submit(_sample_one, model, seed, kwargs)
                for model, seed in zip(models, seeds)
            ]
            results = []
            try:
                for model, future in zip(models, futures):
                    try:
                        results.append(future.result())
                    except Exception:
                        logger.error(f"Sampling {model!r} (model {len(results)}) failed")
                        raise
            except BaseException:
                for future in futures:
                    future.cancel()
                raise
    logger.info(f"Sampling {len(models)} models took {time.time() - t_start:.0f} seconds.")
    return results
