#!/usr/bin/env python

"""File: edgecorrection.py
Module computing edge correction weights that compensate for neighbors of
points near the window boundary going unobserved.

Supported methods:

``none``
    Every pair has weight 1.
``border``
    A pair (or point) at distance r counts only if the point is at least r
    from the window boundary.
``isotropic``
    Ripley's rotational correction: the weight is the inverse of the fraction
    of the circle (sphere) of radius r about the point that lies inside the
    window.
``translation``
    The weight is `area(W) / area(W ∩ (W + v))`, where v is the vector
    from the point to its neighbor.

Isotropic and translation weights are never smaller than one. Where their
denominator drops below `EPSILON`, the pair falls back to the border rule.

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
from functools import lru_cache, singledispatch

import numpy
import shapely

from .errors import InvalidParameter, NumericInstability
from .geometry import Box, Disc, Polygon, Rectangle, QUAD_SEGS, as_points

logger = logging.getLogger(__name__)

_PI = numpy.pi
_2PI = 2.0 * _PI
_PI_2 = 0.5 * _PI

CORRECTIONS = ('none', 'border', 'isotropic', 'translation')
EPSILON = 1e-6
SPHERE_SAMPLES = 2000
_CHUNK = 256


def check_correction(method):
    """
    Validate and normalize the name of an edge correction method

    """
    name = str(method).lower()
    if name not in CORRECTIONS:
        raise InvalidParameter("unknown edge correction: {}. Choose from {}"
                               .format(method, CORRECTIONS))
    return name


@lru_cache(maxsize=None)
def _sphere_directions(n):
    # Fibonacci lattice: near-uniform unit vectors
    i = numpy.arange(n) + 0.5
    z = 1.0 - 2.0 * i / n
    phi = i * _PI * (3.0 - numpy.sqrt(5.0))
    rho = numpy.sqrt(1.0 - z * z)
    return numpy.column_stack((rho * numpy.cos(phi), rho * numpy.sin(phi), z))


@singledispatch
def circle_fraction(window, centers, radii):
    """
    Compute the fraction of circles (spheres in 3D) that lies inside a window

    :window: Window instance
    :centers: array of shape (m, dim) with the circle centers
    :radii: array of shape (m,) with the circle radii
    :returns: array of shape (m,) with fractions in [0, 1]. Circles of radius
              zero count as fully inside.

    """
    raise InvalidParameter("isotropic correction is not available for {}"
                           .format(type(window).__name__))


@circle_fraction.register(Rectangle)
def _(window, centers, radii):
    (xmin, ymin), (xmax, ymax) = window.bounds
    x, y = centers[:, 0], centers[:, 1]
    # Right, top, left, bottom: adjacent edges are adjacent in this list
    edges = numpy.clip(numpy.column_stack((xmax - x, ymax - y,
                                           x - xmin, y - ymin)), 0.0, None)
    r = radii[:, numpy.newaxis]
    with numpy.errstate(divide='ignore', invalid='ignore'):
        ratio = numpy.where(r > 0.0, edges / r, numpy.inf)
    # Half-angle of the arc beyond each edge
    half = numpy.where(ratio < 1.0, numpy.arccos(numpy.minimum(ratio, 1.0)),
                       0.0)
    outside = 2.0 * numpy.sum(half, axis=1)
    # Arcs beyond two adjacent edges overlap around the corner
    corners = half + numpy.roll(half, -1, axis=1) - _PI_2
    outside -= numpy.sum(numpy.clip(corners, 0.0, None), axis=1)
    return numpy.clip(1.0 - outside / _2PI, 0.0, 1.0)


@circle_fraction.register(Disc)
def _(window, centers, radii):
    diff = centers - window.center
    d = numpy.sqrt(numpy.sum(diff * diff, axis=1))
    rad = window.radius
    with numpy.errstate(divide='ignore', invalid='ignore'):
        t = (d * d + radii * radii - rad * rad) / (2.0 * d * radii)
    frac = numpy.arccos(numpy.clip(t, -1.0, 1.0)) / _PI
    # Concentric circles and circles of radius zero
    frac = numpy.where(d == 0.0, (radii <= rad).astype(float), frac)
    return numpy.where(radii == 0.0, 1.0, frac)


@circle_fraction.register(Polygon)
def _(window, centers, radii):
    frac = numpy.ones(len(radii))
    positive = radii > 0.0
    if not numpy.any(positive):
        return frac
    circles = shapely.buffer(shapely.points(centers[positive]),
                             radii[positive], quad_segs=QUAD_SEGS)
    rings = shapely.get_exterior_ring(circles)
    inside = shapely.intersection(rings, window.shape)
    frac[positive] = shapely.length(inside) / shapely.length(rings)
    return numpy.clip(frac, 0.0, 1.0)


@circle_fraction.register(Box)
def _(window, centers, radii, nsamples=SPHERE_SAMPLES):
    directions = _sphere_directions(nsamples)
    lower, upper = window.bounds
    frac = numpy.empty(len(radii))
    for start in range(0, len(radii), _CHUNK):
        stop = start + _CHUNK
        q = (centers[start:stop, numpy.newaxis, :] +
             radii[start:stop, numpy.newaxis, numpy.newaxis] * directions)
        inside = numpy.all((q >= lower) & (q <= upper), axis=-1)
        frac[start:stop] = numpy.mean(inside, axis=1)
    return frac


@singledispatch
def overlap_area(window, vectors):
    """
    Compute the area of the intersection of a window with translated copies of
    itself (the set covariance of the window)

    :window: Window instance
    :vectors: array of shape (m, dim) with translation vectors
    :returns: array of shape (m,) with intersection areas (volumes)

    """
    raise InvalidParameter("translation correction is not available for {}"
                           .format(type(window).__name__))


@overlap_area.register(Rectangle)
@overlap_area.register(Box)
def _(window, vectors):
    overlap = numpy.clip(window.sides - numpy.abs(vectors), 0.0, None)
    return numpy.prod(overlap, axis=1)


@overlap_area.register(Disc)
def _(window, vectors):
    h = numpy.sqrt(numpy.sum(vectors * vectors, axis=1))
    rad = window.radius
    u = numpy.clip(h / (2.0 * rad), 0.0, 1.0)
    return 2.0 * rad * rad * (numpy.arccos(u) - u * numpy.sqrt(1.0 - u * u))


@overlap_area.register(Polygon)
def _(window, vectors):
    vertices = numpy.vstack((window.vertices, window.vertices[:1]))
    shells = (vertices[numpy.newaxis, :, :] +
              vectors[:, numpy.newaxis, :])
    translated = shapely.polygons(shells)
    return shapely.area(shapely.intersection(translated, window.shape))


def pair_weights(window, points, distances, method, neighbors=None,
                 boundary_distances=None, epsilon=EPSILON):
    """
    Compute the weights that pairs of points in a window contribute in the
    estimation of second-order summary characteristics

    Parameters
    ----------
    window : Window
        Window in which the points take values.
    points : array, shape (m, dim)
        The first point of each pair.
    distances : array, shape (m,)
        Distance between the points of each pair. For point-wise use, this is
        the radius at which to correct.
    method : str {'none', 'border', 'isotropic', 'translation'}
        Edge correction method.
    neighbors : array, shape (m, dim), optional
        The second point of each pair. Required for translation correction.
    boundary_distances : array, shape (m,), optional
        Precomputed distances from `points` to the window boundary.
    epsilon : scalar, optional
        Denominators below this value fall back to the border rule.

    Returns
    -------
    array
        Array of shape (m,) with the weight of each pair.

    """
    method = check_correction(method)
    distances = numpy.asarray(distances, dtype=numpy.float64)
    if method == 'none':
        return numpy.ones_like(distances)

    points = numpy.asarray(points, dtype=numpy.float64)
    if boundary_distances is None:
        boundary_distances = window.distance_to_boundary(points)
    border = (boundary_distances >= distances).astype(numpy.float64)
    if method == 'border':
        return border

    if method == 'isotropic':
        denom = circle_fraction(window, points, distances)
    else:
        if neighbors is None:
            raise InvalidParameter("translation correction requires the "
                                   "neighbor of each point")
        neighbors = numpy.asarray(neighbors, dtype=numpy.float64)
        denom = overlap_area(window, neighbors - points) / window.area

    small = numpy.logical_not(denom >= epsilon)
    with numpy.errstate(divide='ignore'):
        weights = numpy.maximum(1.0 / numpy.where(small, 1.0, denom), 1.0)
    weights = numpy.where(small, border, weights)
    if numpy.any(small):
        logger.debug("%s correction fell back to border rule for %d of %d "
                     "pairs", method, numpy.count_nonzero(small), len(small))
    if not numpy.all(numpy.isfinite(weights)):
        raise NumericInstability("{} correction produced non-finite weights"
                                 .format(method))
    return weights


def correction_weight(point, radius, window, method, neighbor=None):
    """
    Compute the edge correction weight for a single point

    :point: coordinates of the point
    :radius: the distance at which to correct
    :window: Window instance containing the point
    :method: edge correction method, see `pair_weights`
    :neighbor: coordinates of the neighbor, required for translation
               correction
    :returns: the weight, a scalar. Zero means the point is excluded at this
              radius (border rule).

    """
    if not (numpy.isfinite(radius) and radius >= 0.0):
        raise InvalidParameter("radius must be non-negative, got {}"
                               .format(radius))
    point, __ = as_points(point, window.dim)
    neighbors = None
    if neighbor is not None:
        neighbors, __ = as_points(neighbor, window.dim)
    weights = pair_weights(window, point, numpy.array((radius,)), method,
                           neighbors=neighbors)
    return float(weights[0])
