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

"""Observed count sequences handed to the sampler by data-loading code."""

import numpy as np

from poissoncp.exceptions import InvalidInput

__all__ = ["ObservationSequence"]


class ObservationSequence:
    """An immutable, ordered sequence of non-negative integer counts.

    Parameters
    ----------
    values : array_like
        Counts for successive time units (e.g. months).
    name : str, optional
        Identity of the series, such as ``"Chile/demonstrations"``. It is attached to
        every error raised while fitting models to this sequence.
    index : array_like, optional
        Time labels of the observations. Defaults to ``1..n``.
    """

    def __init__(self, values, name=None, index=None):
        self.name = name
        arr = np.asarray(values)
        if arr.ndim != 1:
            raise InvalidInput(
                f"Observations must be one-dimensional, got shape {arr.shape}", series=name
            )
        if arr.size == 0:
            raise InvalidInput("The observation sequence is empty", series=name)
        if arr.dtype.kind == "f":
            if not np.all(np.isfinite(arr)):
                raise InvalidInput("Observations must be finite", series=name)
            if not np.all(arr == np.round(arr)):
                raise InvalidInput("Observations must be integer counts", series=name)
        elif arr.dtype.kind not in "iub":
            raise InvalidInput(f"Observations must be integer counts, got {arr.dtype}", series=name)
        arr = arr.astype(np.int64)
        if np.any(arr < 0):
            first = int(np.flatnonzero(arr < 0)[0])
            raise InvalidInput(
                f"Observations must be non-negative, found {arr[first]} at position {first}",
                series=name,
            )
        arr.setflags(write=False)
        self._values = arr

        if index is None:
            index = np.arange(1, arr.size + 1)
        index = np.array(index)
        if index.shape != arr.shape:
            raise InvalidInput(
                f"The time index has shape {index.shape}, expected {arr.shape}", series=name
            )
        index.setflags(write=False)
        self._index = index

    def __setstate__(self, state):
        self.__dict__.update(state)
        # pickling drops the write flag
        for arr in (self._values, self._index):
            arr.setflags(write=False)

    @property
    def values(self) -> np.ndarray:
        return self._values

    @property
    def index(self) -> np.ndarray:
        return self._index

    @property
    def n(self) -> int:
        return self._values.size

    @property
    def total(self) -> int:
        return int(self._values.sum())

    def __len__(self):
        return self.n

    def __repr__(self):
        name = f"{self.name!r}, " if self.name is not None else ""
        return f"ObservationSequence({name}n={self.n}, total={self.total})"
