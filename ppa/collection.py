#!/usr/bin/env python

"""File: collection.py
Module defining collections of point patterns and batch computation of
summary characteristics over them.

"""
# Copyright 2015 Daniel Wennberg
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.

import logging
from collections import namedtuple
from collections.abc import Sequence

import numpy
import pandas

from . import statistics
from .curves import FunctionCurve
from .errors import InvalidParameter, PPAError
from .pointpatterns import PointPattern
from .simulation import simulate, spawn_seeds
from .utils import AlmostImmutable

logger = logging.getLogger(__name__)


class BatchResult(namedtuple('BatchResult', ['curves', 'failures'])):
    """
    Outcome of computing a summary characteristic over a collection

    Attributes
    ----------
    curves : dict
        Maps the index of each pattern where the computation succeeded to its
        `FunctionCurve`.
    failures : dict
        Maps the index of each pattern where the computation failed to the
        exception raised.

    """
    __slots__ = ()

    @property
    def ok(self):
        return not self.failures


class PointPatternCollection(AlmostImmutable, Sequence):
    """
    Represent a collection of point patterns, and provide methods to compute
    statistics over them

    Parameters
    ----------
    patterns : sequence
        List of PointPattern instances to include in the collection.

    """

    def __init__(self, patterns):
        patterns = list(patterns)
        for pp in patterns:
            if not isinstance(pp, PointPattern):
                raise InvalidParameter("expected PointPattern instances, got "
                                       "{}".format(type(pp).__name__))
        self.patterns = patterns

    @classmethod
    def from_simulation(cls, nsims, window, process, seed=0):
        """
        Create a PointPatternCollection instance by simulating a number of
        point patterns in the same window

        Parameters
        ----------
        nsims : integer
            The number of point patterns to generate.
        window : Window
            Window instance to simulate the process within.
        process : point process
            Process to simulate, see `simulation.simulate`.
        seed : int or SeedSequence, optional
            Root seed. Pattern `k` is simulated with the `k`th child of
            `SeedSequence(seed)`.

        Returns
        -------
        PointPatternCollection
            Collection of the simulated patterns

        """
        if int(nsims) != nsims or nsims < 0:
            raise InvalidParameter("nsims must be a non-negative integer, "
                                   "got {}".format(nsims))
        seeds = spawn_seeds(seed, int(nsims))
        return cls(simulate(window, process, s) for s in seeds)

    # Implement abstract methods
    def __getitem__(self, index):
        return self.patterns[index]

    def __len__(self):
        return len(self.patterns)

    # Override possibly slow mixins
    def __iter__(self):
        return iter(self.patterns)

    @property
    def npoints(self):
        """
        The total number of points in the whole collection

        """
        return sum(len(pp) for pp in self.patterns)

    def nweights(self):
        """
        List of the fractions of the total number of points in the collection
        coming from each of the patterns

        """
        npoints = self.npoints
        return [len(pp) / npoints for pp in self.patterns]

    def rmax(self):
        """
        Compute the largest default radius shared by all patterns in the
        collection

        """
        if not self.patterns:
            raise InvalidParameter("empty collection")
        return min(pp.rmax() for pp in self.patterns)

    def _radii(self, radii):
        if radii is None:
            return numpy.linspace(0.0, self.rmax(), statistics.RSAMPLES)
        return radii

    def compute(self, statistic, radii=None, **kwargs):
        """
        Compute a summary characteristic for every pattern in the collection

        A failure for one pattern does not stop the computation for the
        others.

        Parameters
        ----------
        statistic : str {'G', 'F', 'K', 'L', 'pcf'}
            Characteristic to compute.
        radii : array-like, optional
            Radii to evaluate at. Defaults to `RSAMPLES` radii up to
            `self.rmax()`.
        **kwargs : dict, optional
            Other arguments to pass to the estimator.

        Returns
        -------
        BatchResult
            Curves for the patterns that succeeded, errors for those that did
            not.

        """
        name = statistics.statistic_name(statistic)
        radii = self._radii(radii)
        curves, failures = {}, {}
        for (i, pp) in enumerate(self.patterns):
            try:
                curves[i] = statistics.compute(pp, name, radii=radii,
                                               **kwargs)
            except PPAError as exc:
                logger.warning("%s failed for pattern %d: %s", name, i, exc)
                failures[i] = exc
        return BatchResult(curves, failures)

    def frame(self, statistic, radii=None, **kwargs):
        """
        Compute a DataFrame containing the values of a summary characteristic
        for every pattern

        Patterns where the characteristic could not be computed, or radii
        where a curve stops short, hold nan.

        Returns
        -------
        DataFrame
            DataFrame where each row contains the values from one pattern,
            with radii as columns.

        """
        result = self.compute(statistic, radii=radii, **kwargs)
        rows = [result.curves[i].to_series() if i in result.curves else
                pandas.Series(dtype=numpy.float64)
                for i in range(len(self))]
        frame = pandas.DataFrame(rows).reset_index(drop=True)
        return frame.reindex(columns=sorted(frame.columns))

    def mean(self, statistic, radii=None, **kwargs):
        """
        Compute the mean of a summary characteristic over the collection

        :returns: FunctionCurve of the means, skipping missing values

        """
        name = statistics.statistic_name(statistic)
        means = self.frame(name, radii=radii, **kwargs).mean(axis=0,
                                                              skipna=True)
        return FunctionCurve(means.index.to_numpy(dtype=numpy.float64),
                             means.to_numpy(), name,
                             kwargs.get('correction'))

    def critical(self, statistic, alpha, radii=None, **kwargs):
        """
        Compute critical values of a summary characteristic over the
        collection

        :alpha: quantile defining the critical values, between 0 and 1
        :returns: pandas Series of critical values indexed by radius

        """
        if not 0.0 <= alpha <= 1.0:
            raise InvalidParameter("alpha must lie between 0 and 1, got {}"
                                   .format(alpha))
        return self.frame(statistic, radii=radii, **kwargs).quantile(
            q=alpha, axis=0)
