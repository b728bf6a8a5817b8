#!/usr/bin/env python

"""File: geometry.py
Module defining the observation windows that point patterns live in, and
distance helpers shared by the rest of the package.

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

from abc import ABCMeta, abstractmethod

import numpy
import shapely
from scipy.spatial import distance
from shapely import geometry

from .errors import InvalidGeometry, InvalidParameter
from .utils import AlmostImmutable, read_only

_PI = numpy.pi

TOLERANCE = 1e-9
RMAX_FRACTION = 0.25
QUAD_SEGS = 64


def as_points(points, dim):
    """
    Coerce a point or a sequence of points to a float array of shape
    (n, dim)

    :points: a single coordinate tuple or a sequence of them
    :dim: the expected dimension
    :returns: tuple (array, single) where `single` is True if a single
              coordinate tuple was given

    """
    arr = numpy.asarray(points, dtype=numpy.float64)
    single = (arr.ndim == 1 and arr.size == dim)
    if arr.size == 0:
        return numpy.empty((0, dim)), False
    arr = numpy.atleast_2d(arr)
    if arr.ndim != 2 or arr.shape[1] != dim:
        raise InvalidParameter("expected {}-dimensional points, got array of "
                               "shape {}".format(dim, numpy.shape(points)))
    return arr, single


def pairwise_distances(p1, p2=None):
    """
    Return a matrix of distances between points

    :p1: array of shape (m, dim) containing the points to find distances
         between
    :p2: if not None, distances are calculated from points in p1 to points in
         p2 instead of between points in p1
    :returns: numpy array where element [i, j] contains the distance from
              p1[i] to p1[j], or if p2 is not None, from p1[i] to p2[j]

    """
    ap1 = numpy.asarray(p1, dtype=numpy.float64)
    ap2 = ap1 if p2 is None else numpy.asarray(p2, dtype=numpy.float64)
    if ap1.shape[0] == 0 or ap2.shape[0] == 0:
        return numpy.empty((ap1.shape[0], ap2.shape[0]))
    return distance.cdist(ap1, ap2)


class Window(AlmostImmutable, metaclass=ABCMeta):
    """
    Represent an observation window: a bounded region of the plane (or of
    space, for `Box`) within which a point pattern is observed

    The set of window types is closed: `Rectangle`, `Disc` and `Polygon` in
    two dimensions and `Box` in three. Use the static constructors
    `Window.rectangle`, `Window.disc`, `Window.polygon` and `Window.box`.

    """

    dim = 2

    @staticmethod
    def rectangle(xmin, xmax, ymin, ymax):
        return Rectangle(xmin, xmax, ymin, ymax)

    @staticmethod
    def disc(center, radius):
        return Disc(center, radius)

    @staticmethod
    def polygon(vertices):
        return Polygon(vertices)

    @staticmethod
    def box(xmin, xmax, ymin, ymax, zmin, zmax):
        return Box(xmin, xmax, ymin, ymax, zmin, zmax)

    @property
    @abstractmethod
    def area(self):
        """
        Area of the window (volume, for three-dimensional windows)

        """

    @property
    @abstractmethod
    def bounds(self):
        """
        Tuple (lower, upper) of arrays with the corners of the bounding box

        """

    @abstractmethod
    def _contains(self, points, tol):
        pass

    @abstractmethod
    def _distance_to_boundary(self, points):
        pass

    @abstractmethod
    def _key(self):
        pass

    def contains(self, points, tol=TOLERANCE):
        """
        Test whether points lie inside the window

        :points: a coordinate tuple or an array of shape (n, dim)
        :tol: points within this distance outside the boundary still count as
              contained
        :returns: bool for a single point, otherwise a boolean array

        """
        arr, single = as_points(points, self.dim)
        inside = self._contains(arr, tol)
        return bool(inside[0]) if single else inside

    def distance_to_boundary(self, points):
        """
        Compute the distance from points to the window boundary

        Points outside the window get distance zero.

        :points: a coordinate tuple or an array of shape (n, dim)
        :returns: scalar for a single point, otherwise an array

        """
        arr, single = as_points(points, self.dim)
        dist = numpy.clip(self._distance_to_boundary(arr), 0.0, None)
        return float(dist[0]) if single else dist

    @property
    def shorter_side(self):
        """
        Length of the shortest side of the bounding box

        """
        lower, upper = self.bounds
        return float(numpy.min(upper - lower))

    @property
    def diameter(self):
        """
        Largest distance between two points in the window

        """
        lower, upper = self.bounds
        return float(numpy.sqrt(numpy.sum((upper - lower) ** 2)))

    def default_rmax(self, fraction=RMAX_FRACTION):
        """
        The default largest radius at which summary statistics are evaluated:
        a fraction of the shorter side of the window

        """
        return fraction * self.shorter_side

    def sample(self, n, rng):
        """
        Draw points uniformly from the window by rejection sampling in the
        bounding box

        :n: number of points to draw
        :rng: numpy.random.Generator to draw from
        :returns: array of shape (n, dim)

        """
        n = int(n)
        if n < 0:
            raise InvalidParameter("cannot sample a negative number of points")
        lower, upper = self.bounds
        area_factor = numpy.prod(upper - lower) / self.area

        chunks = []
        left = n
        while left > 0:
            ndraw = int(area_factor * left) + 1
            draw = rng.uniform(lower, upper, size=(ndraw, self.dim))
            draw = draw[self._contains(draw, 0.0)][:left]
            chunks.append(draw)
            left -= len(draw)
        if not chunks:
            return numpy.empty((0, self.dim))
        return numpy.vstack(chunks)

    def dilated_bounds(self, reach):
        """
        Return the bounding box of the window, expanded by a distance

        :reach: distance to expand the bounding box by on all sides
        :returns: Rectangle or Box instance

        """
        lower, upper = self.bounds
        lower, upper = lower - reach, upper + reach
        limits = numpy.column_stack((lower, upper)).ravel()
        if self.dim == 2:
            return Rectangle(*limits)
        return Box(*limits)

    def __eq__(self, other):
        return type(self) is type(other) and self._key() == other._key()

    def __ne__(self, other):
        return not self == other

    def __hash__(self):
        return hash((type(self).__name__, self._key()))


class _AxisAligned(Window):
    """
    Common implementation of axis-aligned box windows in any dimension

    """

    def __init__(self, limits):
        limits = numpy.asarray(limits, dtype=numpy.float64).reshape(-1, 2)
        if not numpy.all(numpy.isfinite(limits)):
            raise InvalidGeometry("window limits must be finite")
        if not numpy.all(limits[:, 0] < limits[:, 1]):
            raise InvalidGeometry("window limits must satisfy min < max "
                                  "along every axis, got {}"
                                  .format(limits.tolist()))
        self.lower = read_only(limits[:, 0])
        self.upper = read_only(limits[:, 1])

    @property
    def area(self):
        return float(numpy.prod(self.upper - self.lower))

    @property
    def bounds(self):
        return self.lower, self.upper

    @property
    def sides(self):
        return self.upper - self.lower

    def _contains(self, points, tol):
        return numpy.all((points >= self.lower - tol) &
                         (points <= self.upper + tol), axis=1)

    def _distance_to_boundary(self, points):
        if len(points) == 0:
            return numpy.empty((0,))
        return numpy.min(numpy.minimum(points - self.lower,
                                       self.upper - points), axis=1)

    def _key(self):
        return tuple(self.lower) + tuple(self.upper)

    def __repr__(self):
        limits = ', '.join('{!r}'.format(float(v)) for v in
                           numpy.column_stack((self.lower,
                                               self.upper)).ravel())
        return '{}({})'.format(type(self).__name__, limits)


class Rectangle(_AxisAligned):
    """
    Represent an axis-aligned rectangular window

    Parameters
    ----------
    xmin, xmax, ymin, ymax : scalar
        Limits of the rectangle. An `InvalidGeometry` error is raised unless
        `xmin < xmax` and `ymin < ymax`.

    """

    dim = 2

    def __init__(self, xmin, xmax, ymin, ymax):
        super().__init__((xmin, xmax, ymin, ymax))


class Box(_AxisAligned):
    """
    Represent an axis-aligned box in three dimensions

    Parameters
    ----------
    xmin, xmax, ymin, ymax, zmin, zmax : scalar
        Limits of the box. An `InvalidGeometry` error is raised unless the
        minimum is smaller than the maximum along every axis.

    """

    dim = 3

    def __init__(self, xmin, xmax, ymin, ymax, zmin, zmax):
        super().__init__((xmin, xmax, ymin, ymax, zmin, zmax))

    @property
    def volume(self):
        return self.area


class Disc(Window):
    """
    Represent a circular window

    Parameters
    ----------
    center : sequence
        Coordinates of the center of the disc.
    radius : scalar
        Radius of the disc. Must be positive.

    """

    dim = 2

    def __init__(self, center, radius):
        center = numpy.asarray(center, dtype=numpy.float64)
        if center.shape != (2,) or not numpy.all(numpy.isfinite(center)):
            raise InvalidGeometry("disc center must be a finite coordinate "
                                  "pair")
        radius = float(radius)
        if not (numpy.isfinite(radius) and radius > 0.0):
            raise InvalidGeometry("disc radius must be positive and finite, "
                                  "got {}".format(radius))
        self.center = read_only(center)
        self.radius = radius

    @property
    def area(self):
        return _PI * self.radius * self.radius

    @property
    def bounds(self):
        return self.center - self.radius, self.center + self.radius

    @property
    def diameter(self):
        return 2.0 * self.radius

    def _center_distance(self, points):
        diff = points - self.center
        return numpy.sqrt(numpy.sum(diff * diff, axis=1))

    def _contains(self, points, tol):
        return self._center_distance(points) <= self.radius + tol

    def _distance_to_boundary(self, points):
        return self.radius - self._center_distance(points)

    def _key(self):
        return tuple(self.center) + (self.radius,)

    def __repr__(self):
        return 'Disc(({!r}, {!r}), {!r})'.format(float(self.center[0]),
                                                 float(self.center[1]),
                                                 self.radius)


class Polygon(Window):
    """
    Represent a window bounded by a simple polygon

    Parameters
    ----------
    vertices : sequence
        Sequence of coordinate pairs, with or without the first vertex
        repeated at the end. An `InvalidGeometry` error is raised if there are
        fewer than three distinct vertices, if any coordinate is non-finite,
        or if the boundary intersects itself.

    """

    dim = 2

    def __init__(self, vertices):
        vertices = numpy.asarray(vertices, dtype=numpy.float64)
        if vertices.ndim != 2 or vertices.shape[1] != 2:
            raise InvalidGeometry("polygon vertices must be coordinate pairs")
        if not numpy.all(numpy.isfinite(vertices)):
            raise InvalidGeometry("polygon vertices must be finite")
        if len(vertices) > 1 and numpy.array_equal(vertices[0], vertices[-1]):
            vertices = vertices[:-1]
        if len(vertices) < 3:
            raise InvalidGeometry("a polygon needs at least three vertices")

        ring = geometry.LinearRing(vertices)
        if not ring.is_simple:
            raise InvalidGeometry("polygon boundary intersects itself")
        shape = geometry.Polygon(ring)
        if not shape.is_valid or not shape.area > 0.0:
            raise InvalidGeometry("polygon is degenerate: {}"
                                  .format(shapely.is_valid_reason(shape)))
        shapely.prepare(shape)

        self.shape = shape
        self.vertices = read_only(vertices)

    @property
    def area(self):
        return float(self.shape.area)

    @property
    def bounds(self):
        xmin, ymin, xmax, ymax = self.shape.bounds
        return (numpy.array((xmin, ymin)), numpy.array((xmax, ymax)))

    @property
    def diameter(self):
        return float(numpy.max(pairwise_distances(self.vertices)))

    def _contains(self, points, tol):
        if len(points) == 0:
            return numpy.zeros((0,), dtype=bool)
        inside = shapely.contains_xy(self.shape, points[:, 0], points[:, 1])
        if tol > 0.0:
            near = (shapely.distance(self.shape.exterior,
                                     shapely.points(points)) <= tol)
            inside = numpy.logical_or(inside, near)
        return inside

    def _distance_to_boundary(self, points):
        if len(points) == 0:
            return numpy.empty((0,))
        dist = shapely.distance(self.shape.exterior, shapely.points(points))
        inside = shapely.contains_xy(self.shape, points[:, 0], points[:, 1])
        return numpy.where(inside, dist, 0.0)

    def _key(self):
        return tuple(map(tuple, self.vertices))

    def __repr__(self):
        return 'Polygon({!r})'.format(self.vertices.tolist())
