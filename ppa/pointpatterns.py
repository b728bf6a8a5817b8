#!/usr/bin/env python

"""File: pointpatterns.py
Module defining point patterns: point sets observed in a window, with cached
neighbor structures and methods for estimating their summary
characteristics.

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
import threading
from collections.abc import Sequence

import numpy
import pandas

from . import edgecorrection, statistics
from .errors import (GeometryError, InsufficientPoints, InvalidParameter,
                     PointOutsideWindow)
from .geometry import RMAX_FRACTION, TOLERANCE, Window
from .index import GridIndex
from .utils import AlmostImmutable, memoize_method, read_only

logger = logging.getLogger(__name__)

_PI = numpy.pi

RSAMPLES = statistics.RSAMPLES
COLUMNS = ('x', 'y', 'z')


class PointPattern(AlmostImmutable, Sequence):
    """
    Represent a point pattern in two or three dimensions and its associated
    window, and provide methods for analyzing its statistical properties

    The pattern is immutable. Neighbor structures (the spatial index,
    nearest-neighbor distances, pairs within a distance and their edge
    correction weights) are computed when first needed and cached for the
    lifetime of the pattern. The cache is guarded by a per-instance lock, so
    a pattern can be shared between threads.

    Parameters
    ----------
    points : array-like, shape (n, dim)
        Coordinates of the points in the pattern. Duplicates are allowed.
    window : Window or sequence
        Window within which the points take values. Anything that is not a
        `Window` is taken as the vertices of a polygon window. A
        `PointOutsideWindow` error is raised if any point lies outside the
        window.
    tol : scalar, optional
        Points within this distance outside the window boundary are accepted.

    """

    def __init__(self, points, window, tol=TOLERANCE):
        if not isinstance(window, Window):
            window = Window.polygon(window)
        self.window = window

        points = numpy.asarray(points, dtype=numpy.float64)
        if points.size == 0:
            points = numpy.empty((0, window.dim))
        elif points.ndim == 1 and points.size == window.dim:
            points = points[numpy.newaxis, :]
        if points.ndim != 2 or points.shape[1] != window.dim:
            raise GeometryError("points of shape {} do not match a {}-"
                                "dimensional window"
                                .format(points.shape, window.dim))
        if not numpy.all(numpy.isfinite(points)):
            raise GeometryError("point coordinates must be finite")

        outside, = numpy.nonzero(~window.contains(points, tol=tol))
        if len(outside) > 0:
            raise PointOutsideWindow(outside)

        self._points = read_only(points)
        self._memoize_lock = threading.RLock()

    # Implement abstract methods
    def __getitem__(self, index):
        return self._points[index]

    def __len__(self):
        return len(self._points)

    # Override possibly slow mixins
    def __iter__(self):
        return iter(self._points)

    def __repr__(self):
        return "PointPattern({} points, {!r})".format(len(self), self.window)

    @property
    def points(self):
        """
        Read-only array of shape (n, dim) with the coordinates of the points

        """
        return self._points

    @property
    def dim(self):
        return self.window.dim

    @memoize_method
    def spatial_index(self):
        """
        Return the spatial index over the points in the pattern, building it
        on first use

        :returns: GridIndex instance

        """
        return GridIndex(self._points, area=self.window.area)

    def intensity(self):
        """
        Compute the standard intensity estimate: the number of points divided
        by the area of the window

        """
        return len(self) / self.window.area

    def squared_intensity(self):
        """
        Compute an unbiased estimate of the squared intensity, assuming a
        stationary point pattern

        The estimate is the square of the standard intensity estimate,
        multiplied with (n - 1) / n.

        """
        n = len(self)
        if n == 0:
            return 0.0
        lambda_ = self.intensity()
        return lambda_ * lambda_ * (n - 1) / n

    @memoize_method
    def _nearest(self):
        n = len(self)
        if n < 2:
            raise InsufficientPoints("nearest-neighbor distances", 2, n)
        indices, dists = self.spatial_index().nearest_many(
            self._points, exclude=numpy.arange(n))
        indices.setflags(write=False)
        return indices, read_only(dists)

    def nearest_neighbors(self):
        """
        Find the nearest other point of each point in the pattern

        :returns: integer array of indices. Ties go to the lowest index.

        """
        return self._nearest()[0]

    def nearest_distances(self):
        """
        Compute the distance from each point to its nearest other point in the
        pattern

        :returns: read-only array of distances

        """
        return self._nearest()[1]

    def mean_nearest_distance(self):
        """
        Compute the mean nearest-neighbor distance

        """
        return float(numpy.mean(self.nearest_distances()))

    def clark_evans(self):
        """
        Compute the Clark-Evans aggregation index of a planar pattern

        The index is the ratio of the mean nearest-neighbor distance to its
        expectation `0.5 / sqrt(intensity)` under complete spatial
        randomness. Values below 1 suggest clustering, values above 1
        regularity. No edge correction is applied.

        """
        if self.dim != 2:
            raise InvalidParameter("the Clark-Evans index is defined for "
                                   "planar patterns only")
        expected = 0.5 / numpy.sqrt(self.intensity())
        return self.mean_nearest_distance() / expected

    @memoize_method
    def boundary_distances(self):
        """
        Compute the distance from each point to the window boundary

        """
        return read_only(self.window.distance_to_boundary(self._points))

    @memoize_method
    def pair_distances(self, rmax):
        """
        Find all ordered pairs of distinct points at most `rmax` apart

        :rmax: largest pair distance to include
        :returns: tuple (i, j, d) of read-only arrays with the pair indices and
                  distances, sorted by i and then j

        """
        i, j, d = self.spatial_index().pairs(rmax)
        i.setflags(write=False)
        j.setflags(write=False)
        return i, j, read_only(d)

    @memoize_method
    def pair_weights(self, correction, rmax):
        """
        Compute the edge correction weights of all ordered pairs of points at
        most `rmax` apart

        :correction: edge correction method, see
                     `edgecorrection.pair_weights`
        :rmax: largest pair distance to include
        :returns: tuple (i, j, d, w) of arrays, as for `pair_distances`, with
                  the weight of each pair in `w`

        """
        correction = edgecorrection.check_correction(correction)
        i, j, d = self.pair_distances(rmax)
        points = self._points
        w = edgecorrection.pair_weights(
            self.window, points[i], d, correction, neighbors=points[j],
            boundary_distances=self.boundary_distances()[i])
        logger.debug("%s weights for %d pairs within %g", correction, len(d),
                     rmax)
        return i, j, d, read_only(w)

    def rmax(self, fraction=RMAX_FRACTION):
        """
        Return the largest radius at which summary characteristics are
        estimated by default

        :fraction: fraction of the shorter window side
        :returns: scalar

        """
        return self.window.default_rmax(fraction=fraction)

    def rvals(self, rmax=None, rsamples=RSAMPLES, steps=False):
        """
        Construct an array of r values for evaluating summary characteristics

        Parameters
        ----------
        rmax : scalar, optional
            Largest r value. Defaults to `self.rmax()`.
        rsamples : int, optional
            Number of evenly spaced r values.
        steps : bool, optional
            If True, add a pair of tightly spaced values around each pair
            distance below `rmax`, so that the vertical steps of the empirical
            K/L-functions are resolved.

        Returns
        -------
        array
            Strictly increasing array of r values.

        """
        if rmax is None:
            rmax = self.rmax()
        rvals = numpy.linspace(0.0, rmax, rsamples)
        if not steps or len(self) < 2:
            return rvals

        __, __, rsteps = self.pair_distances(rmax)
        micrormax = 1.e-6 * rmax
        rstep_values = numpy.repeat(rsteps, 2)
        rstep_values[0::2] -= micrormax
        rstep_values[1::2] += micrormax
        rstep_values = rstep_values[(rstep_values > 0.0) &
                                    (rstep_values < rmax)]
        return numpy.union1d(rvals, rstep_values)

    def gfunction(self, r=None, correction='none', **kwargs):
        """
        Evaluate the empirical nearest-neighbor distance distribution
        function. See `statistics.compute_g`.

        """
        return statistics.compute_g(self, radii=r, correction=correction,
                                    **kwargs)

    def ffunction(self, r=None, correction='none', **kwargs):
        """
        Evaluate the empirical empty-space function. See
        `statistics.compute_f`.

        """
        return statistics.compute_f(self, radii=r, correction=correction,
                                    **kwargs)

    def kfunction(self, r=None, correction='isotropic', **kwargs):
        """
        Evaluate the empirical K-function. See `statistics.compute_k`.

        """
        return statistics.compute_k(self, radii=r, correction=correction,
                                    **kwargs)

    def lfunction(self, r=None, correction='isotropic', **kwargs):
        """
        Evaluate the empirical L-function. See `statistics.compute_l`.

        """
        return statistics.compute_l(self, radii=r, correction=correction,
                                    **kwargs)

    def pair_corr_function(self, r=None, bandwidth='stoyan',
                           correction='translation', **kwargs):
        """
        Evaluate the empirical pair correlation function. See
        `statistics.compute_pcf`.

        """
        return statistics.compute_pcf(self, radii=r, bandwidth=bandwidth,
                                      correction=correction, **kwargs)

    def to_frame(self, columns=None):
        """
        Return the coordinates as a pandas DataFrame

        :columns: column names. Defaults to 'x', 'y' (and 'z').
        :returns: DataFrame with one row per point

        """
        if columns is None:
            columns = COLUMNS[:self.dim]
        if len(columns) != self.dim:
            raise InvalidParameter("need {} column names, got {}"
                                   .format(self.dim, len(columns)))
        return pandas.DataFrame(numpy.array(self._points),
                                columns=list(columns))

    @classmethod
    def from_frame(cls, frame, window, columns=None, **kwargs):
        """
        Create a point pattern from a pandas DataFrame

        :frame: DataFrame with a column per coordinate
        :window: the window of the pattern
        :columns: coordinate column names. Defaults to 'x', 'y' (and 'z').
        :returns: PointPattern instance

        """
        if not isinstance(window, Window):
            window = Window.polygon(window)
        if columns is None:
            columns = COLUMNS[:window.dim]
        missing = [c for c in columns if c not in frame.columns]
        if missing:
            raise InvalidParameter("columns not found in frame: {}"
                                   .format(missing))
        points = frame[list(columns)].to_numpy(dtype=numpy.float64)
        return cls(points, window, **kwargs)
