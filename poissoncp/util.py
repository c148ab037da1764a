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

from collections import namedtuple
from collections.abc import Sequence
from copy import deepcopy
from typing import TypeAlias

import numpy as np

RandomSeed: TypeAlias = None | int | Sequence[int] | np.ndarray
RandomState: TypeAlias = RandomSeed | np.random.Generator
RandomGenerator: TypeAlias = RandomSeed | np.random.Generator | np.random.BitGenerator


RandomGeneratorState = namedtuple("RandomGeneratorState", ["bit_generator_state", "seed_seq_state"])


def get_state_from_generator(
    rng: np.random.Generator | np.random.BitGenerator,
) -> RandomGeneratorState:
    bit_gen: np.random.BitGenerator = (
        rng.bit_generator if isinstance(rng, np.random.Generator) else rng
    )

    return RandomGeneratorState(
        bit_generator_state=bit_gen.state,
        seed_seq_state=bit_gen.seed_seq.state,  # type: ignore[attr-defined]
    )


def random_generator_from_state(state: RandomGeneratorState) -> np.random.Generator:
    seed_seq = np.random.SeedSequence(**state.seed_seq_state)
    bit_generator_class = getattr(np.random, state.bit_generator_state["bit_generator"])
    bit_generator = bit_generator_class(seed_seq)
    bit_generator.state = state.bit_generator_state
    return np.random.Generator(bit_generator)


def get_random_generator(
    seed: RandomGenerator | np.random.RandomState = None, copy: bool = True
) -> np.random.Generator:
    """Build a :py:class:`~numpy.random.Generator` object from a suitable seed.

    Parameters
    ----------
    seed : None | int | Sequence[int] | numpy.random.Generator | numpy.random.BitGenerator
        A suitable seed to use to generate the :py:class:`~numpy.random.Generator` object.
        For more details on suitable seeds, refer to :py:func:`numpy.random.default_rng`.
    copy : bool
        Boolean flag that indicates whether to copy the seed object before feeding
        it to :py:func:`numpy.random.default_rng`. If `copy` is `False` and the seed
        is a ``Generator``, that same object is returned and every draw advances the
        caller's stream.

    Returns
    -------
    rng : numpy.random.Generator

    Raises
    ------
    TypeError:
        If the supplied ``seed`` is a :py:class:`~numpy.random.RandomState` object. We
        do not support using these legacy objects because their seeding strategy is not
        amenable to spawning new independent random streams.
    """
    if isinstance(seed, np.random.RandomState):
        raise TypeError(
            "Cannot create a random Generator from a RandomState object. "
            "Please provide a random seed, BitGenerator or Generator instead."
        )
    if copy:
        if isinstance(seed, np.random.Generator | np.random.BitGenerator):
            return random_generator_from_state(get_state_from_generator(seed))
        seed = deepcopy(seed)
    return np.random.default_rng(seed)


def _get_seeds_per_run(random_state: RandomState, runs: int) -> Sequence[int] | np.ndarray:
    """Return one integer seed per sampling run.

    A sequence with one entry per run is passed through unchanged. A single integer is
    used as is for a single run and otherwise seeds a Generator that draws distinct
    seeds, as does ``None``. A Generator is copied first, so the caller's stream is not
    advanced.

    Raises
    ------
    ValueError
        If ``random_state`` is none of these, or holds the wrong number of seeds.
    """
    if isinstance(random_state, list | tuple | np.ndarray):
        if len(random_state) != runs:
            raise ValueError(
                f"Number of seeds ({len(random_state)}) does not match the number of runs ({runs})."
            )
        return random_state

    if isinstance(random_state, np.random.Generator):
        rng = get_random_generator(random_state)
    elif random_state is None or (
        isinstance(random_state, int | np.integer) and not isinstance(random_state, bool)
    ):
        if runs == 1 and random_state is not None:
            return (int(random_state),)
        rng = np.random.default_rng(random_state)
    else:
        raise ValueError(
            "The `seeds` must be an integer, a Generator or one seed per run. "
            f"Got {type(random_state)} instead."
        )

    seeds: list[int] = []
    while len(set(seeds)) != runs:
        seeds = [int(seed) for seed in rng.integers(2**30, dtype=np.int64, size=runs)]
    return seeds
