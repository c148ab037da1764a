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

from abc import ABC, abstractmethod
from collections.abc import Sequence

import numpy as np

from poissoncp.model import ChangepointModel, PointType

__all__ = ("BlockedStep", "CompoundStep")

StatDtype = type | np.dtype
StatShape = Sequence[int | None] | None
StatsType = list[dict[str, object]]


class BlockedStep(ABC):
    """A Gibbs update of one block of the changepoint model's unknowns."""

    stats_dtypes_shapes: dict[str, tuple[StatDtype, StatShape]] = {}
    """Maps stat names to dtypes and shapes.

    Shapes are interpreted in the following ways:
    - `[]` is a scalar.
    - `[3,]` is a length-3 vector.
    """

    updates: tuple[str, ...] = ()
    """Keys of the point that the step method overwrites."""

    def __init__(self, model: ChangepointModel, rng=None):
        self.model = model
        self.rng = rng

    @abstractmethod
    def step(self, point: PointType) -> tuple[PointType, StatsType]:
        """Perform a single step of the sampler."""

    def set_rng(self, rng: np.random.Generator):
        self.rng = rng

    def __repr__(self):
        return f"{self.__class__.__name__}([{', '.join(self.updates)}])"


class CompoundStep:
    """Step method composed of a list of several other step methods applied in sequence."""

    def __init__(self, methods: Sequence[BlockedStep]):
        self.methods = list(methods)
        self.stats_dtypes_shapes = {}
        for method in self.methods:
            self.stats_dtypes_shapes.update(method.stats_dtypes_shapes)

    def step(self, point) -> tuple[PointType, StatsType]:
        stats = []
        for method in self.methods:
            point, sts = method.step(point)
            stats.extend(sts)
        return point, stats

    def set_rng(self, rng: np.random.Generator):
        for method in self.methods:
            method.set_rng(rng)

    @property
    def updates(self) -> tuple[str, ...]:
        return tuple(key for method in self.methods for key in method.updates)

    def __repr__(self):
        return f"CompoundStep({', '.join(repr(m) for m in self.methods)})"
