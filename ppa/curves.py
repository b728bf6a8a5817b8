#!/usr/bin/env python

"""File: curves.py
Module defining the function-valued results of summary statistics and
envelope tests.

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

from collections.abc import Sequence

import numpy
import pandas

from .errors import InvalidParameter
from .utils import AlmostImmutable, read_only


def check_radii(radii):
    """
    Validate a grid of radii

    :radii: array-like of radii
    :returns: read-only float array of radii. An `InvalidParameter` error is
              raised unless the radii are finite, non-negative and strictly
              increasing.

    """
    r = numpy.asarray(radii, dtype=numpy.float64)
    if r.ndim != 1:
        raise InvalidParameter("radii must be a one-dimensional sequence")
    if not numpy.all(numpy.isfinite(r)):
        raise InvalidParameter("radii must be finite")
    if numpy.any(r < 0.0):
        raise InvalidParameter("radii must be non-negative")
    if numpy.any(numpy.diff(r) <= 0.0):
        raise InvalidParameter("radii must be strictly increasing")
    return read_only(r)


class FunctionCurve(AlmostImmutable, Sequence):
    """
    Represent a summary characteristic sampled at a grid of radii

    Indexing and iteration give `(radius, value)` tuples.

    Parameters
    ----------
    r : array-like
        Non-negative, strictly increasing radii.
    values : array-like
        Value of the characteristic at each radius.
    statistic : str
        Name of the characteristic, such as 'K' or 'pcf'.
    correction : str, optional
        Name of the edge correction used in the estimate.

    """

    def __init__(self, r, values, statistic, correction=None):
        r = check_radii(r)
        values = read_only(values)
        if values.shape != r.shape:
            raise InvalidParameter("got {} values for {} radii"
                                   .format(values.size, r.size))
        self.r = r
        self.values = values
        self.statistic = statistic
        self.correction = correction

    def __getitem__(self, index):
        if isinstance(index, slice):
            return type(self)(self.r[index], self.values[index],
                              self.statistic, self.correction)
        return float(self.r[index]), float(self.values[index])

    def __len__(self):
        return len(self.r)

    def __iter__(self):
        return zip(self.r.tolist(), self.values.tolist())

    def __repr__(self):
        return ("FunctionCurve(statistic={!r}, correction={!r}, {} radii)"
                .format(self.statistic, self.correction, len(self)))

    def truncated(self, rmax):
        """
        Return the part of the curve at radii no larger than `rmax`

        """
        keep = self.r <= rmax
        return type(self)(self.r[keep], self.values[keep], self.statistic,
                          self.correction)

    def to_series(self):
        """
        Return the curve as a pandas Series indexed by radius

        """
        return pandas.Series(self.values, index=pandas.Index(self.r,
                                                             name='r'),
                             name=self.statistic)

    def to_frame(self):
        """
        Return the curve as a pandas DataFrame with columns 'r' and the name
        of the statistic

        """
        return pandas.DataFrame({'r': self.r, self.statistic: self.values})


class Envelope(AlmostImmutable):
    """
    Represent the outcome of a Monte Carlo envelope test

    Parameters
    ----------
    r : array-like
        Radii at which the statistic was evaluated.
    observed : array-like
        Statistic of the observed pattern.
    lower, upper : array-like
        Envelope bounds from the simulated patterns.
    mean : array-like
        Mean of the simulated curves.
    pvalues : array-like
        Rank-based two-sided p-value at each radius.
    pvalue : scalar
        Global p-value based on the maximum absolute deviation from the
        simulated mean.
    statistic : str
        Name of the statistic.
    kind : str {'pointwise', 'global'}
        How the bounds were computed.
    alpha : scalar
        Significance level.
    nsims : int
        Number of simulations that produced a curve.
    nfailed : int, optional
        Number of simulations that did not.

    """

    def __init__(self, r, observed, lower, upper, mean, pvalues, pvalue,
                 statistic, kind, alpha, nsims, nfailed=0):
        self.r = check_radii(r)
        self.observed = read_only(observed)
        self.lower = read_only(lower)
        self.upper = read_only(upper)
        self.mean = read_only(mean)
        self.pvalues = read_only(pvalues)
        self.pvalue = float(pvalue)
        self.statistic = statistic
        self.kind = kind
        self.alpha = alpha
        self.nsims = nsims
        self.nfailed = nfailed

    def __len__(self):
        return len(self.r)

    def __repr__(self):
        return ("Envelope(statistic={!r}, kind={!r}, nsims={}, pvalue={:.4g})"
                .format(self.statistic, self.kind, self.nsims, self.pvalue))

    @property
    def curve(self):
        """
        The observed curve

        """
        return FunctionCurve(self.r, self.observed, self.statistic)

    def outside(self):
        """
        Find the radii where the observed curve leaves the envelope

        :returns: boolean array

        """
        return numpy.logical_or(self.observed < self.lower,
                                self.observed > self.upper)

    def to_frame(self):
        """
        Return the envelope as a pandas DataFrame with one row per radius

        """
        return pandas.DataFrame({
            'r': self.r,
            'observed': self.observed,
            'lower': self.lower,
            'upper': self.upper,
            'mean': self.mean,
            'pvalue': self.pvalues,
        })
