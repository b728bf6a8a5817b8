#!/usr/bin/env python

"""File: index.py
Module providing a grid-bucket spatial index for proximity queries on point
sets in two or three dimensions.

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
from functools import lru_cache
from itertools import product

import numpy
from scipy.spatial import distance

from .errors import InvalidParameter
from .utils import read_only

logger = logging.getLogger(__name__)

BRUTE_FORCE_LIMIT = 32

_EMPTY_INDEX = numpy.empty((0,), dtype=numpy.intp)


@lru_cache(maxsize=None)
def _cube_offsets(m, dim):
    return numpy.array(list(product(range(-m, m + 1), repeat=dim)),
                       dtype=numpy.intp)


def _bucket(coords):
    """
    Group point indices by integer cell coordinates

    :coords: integer array of shape (n, dim)
    :returns: dict mapping cell tuples to ascending arrays of point indices

    """
    if len(coords) == 0:
        return {}
    order = numpy.lexsort(coords.T[::-1])
    sorted_coords = coords[order]
    change = numpy.any(numpy.diff(sorted_coords, axis=0) != 0, axis=1)
    starts = numpy.concatenate(([0], numpy.nonzero(change)[0] + 1))
    groups = numpy.split(order, starts[1:])
    return {tuple(sorted_coords[s]): numpy.sort(g)
            for (s, g) in zip(starts, groups)}


class GridIndex(object):
    """
    Index a set of points in square (cubic) buckets for fast neighbor queries

    The bucket size is chosen such that the expected number of points per
    bucket is one: `(area / n) ** (1 / dim)`. For fewer points than
    `brute_force_limit`, all queries fall back to a linear scan.

    The index never modifies or copies-out its points, and all queries are
    read-only, so an index can be queried from several threads at once.

    Query centers can be given as coordinates or as the integer index of an
    indexed point. Where `exclude_self` is accepted, it excludes the query
    point itself: the given member index, or for coordinates, the lowest-index
    member with exactly the same coordinates (other members at the same
    location are still reported). Ties at equal distance are broken by
    index.

    Parameters
    ----------
    points : array-like, shape (n, dim)
        Points to index.
    area : scalar, optional
        Area (volume) of the region the points are spread over, used to size
        the buckets. If None, the bounding box of the points is used.
    brute_force_limit : int, optional
        Point count below which no buckets are built.

    """

    def __init__(self, points, area=None, brute_force_limit=BRUTE_FORCE_LIMIT):
        points = numpy.asarray(points, dtype=numpy.float64)
        if points.ndim != 2:
            raise InvalidParameter("points must be an array of shape "
                                   "(n, dim)")
        self.points = read_only(points)
        self.n, self.dim = points.shape
        self.brute_force = self.n < brute_force_limit

        self.cell_size = None
        self._cells = {}
        if self.n == 0 or self.brute_force:
            logger.debug("index over %d points uses linear scans", self.n)
            return

        lower, upper = points.min(axis=0), points.max(axis=0)
        if area is None:
            area = numpy.prod(upper - lower)
        cell_size = (area / self.n) ** (1.0 / self.dim)
        if not (numpy.isfinite(cell_size) and cell_size > 0.0):
            # Degenerate spread, e.g. all points on a line
            cell_size = max(numpy.max(upper - lower), 1.0) / self.n
        self.cell_size = float(cell_size)
        self.origin = read_only(lower)

        coords = self._cell_coords(points)
        self.shape = coords.max(axis=0) + 1
        self._cells = _bucket(coords)
        self._keys = numpy.array(list(self._cells.keys()), dtype=numpy.intp)
        self._members = list(self._cells.values())
        logger.debug("grid index over %d points: cell size %g, %d cells",
                     self.n, self.cell_size, len(self._cells))

    def __len__(self):
        return self.n

    def _cell_coords(self, points):
        return numpy.floor((points - self.origin) /
                           self.cell_size).astype(numpy.intp)

    def _max_ring(self, cell):
        cell = numpy.asarray(cell)
        return int(numpy.max(numpy.maximum(numpy.abs(cell),
                                           numpy.abs(self.shape - 1 - cell))))

    def _gather(self, cell, m):
        """
        Collect the indices of the points in all buckets within Chebyshev
        distance m of a bucket, in ascending order

        """
        cell = numpy.asarray(cell, dtype=numpy.intp)
        if (2 * m + 1) ** self.dim > len(self._cells):
            near = numpy.max(numpy.abs(self._keys - cell), axis=1) <= m
            members = [self._members[i] for i in numpy.nonzero(near)[0]]
        else:
            members = []
            for offset in _cube_offsets(m, self.dim):
                found = self._cells.get(tuple(cell + offset))
                if found is not None:
                    members.append(found)
        if not members:
            return _EMPTY_INDEX
        return numpy.sort(numpy.concatenate(members))

    def _resolve(self, center, exclude_self):
        """
        Turn a query center into coordinates and the index of the member to
        skip, if any

        """
        if isinstance(center, (int, numpy.integer)):
            index = int(center)
            if not 0 <= index < self.n:
                raise InvalidParameter("point index {} out of range for index "
                                       "of {} points".format(index, self.n))
            return self.points[index], (index if exclude_self else None)

        center = numpy.asarray(center, dtype=numpy.float64)
        if center.shape != (self.dim,):
            raise InvalidParameter("query center must have {} coordinates"
                                   .format(self.dim))
        skip = None
        if exclude_self and self.n > 0:
            same, = numpy.nonzero(numpy.all(self.points == center, axis=1))
            if len(same) > 0:
                skip = int(same[0])
        return center, skip

    def _distances(self, center, candidates):
        diff = self.points[candidates] - center
        return numpy.sqrt(numpy.sum(diff * diff, axis=1))

    def query_radius(self, center, r):
        """
        Find the points within a distance of a location

        :center: coordinates, or the index of an indexed point
        :r: search radius; points at distance exactly `r` are included
        :returns: array of the indices of the points found, in ascending order

        """
        if not (numpy.isfinite(r) and r >= 0.0):
            raise InvalidParameter("search radius must be non-negative, got "
                                   "{}".format(r))
        center, __ = self._resolve(center, False)
        if self.n == 0:
            return _EMPTY_INDEX

        if self.brute_force:
            candidates = numpy.arange(self.n)
        else:
            cell = self._cell_coords(center)
            m = min(int(numpy.ceil(r / self.cell_size)), self._max_ring(cell))
            candidates = self._gather(cell, m)
        if len(candidates) == 0:
            return _EMPTY_INDEX
        return candidates[self._distances(center, candidates) <= r]

    def k_nearest(self, center, k, exclude_self=False):
        """
        Find the k points nearest to a location

        :center: coordinates, or the index of an indexed point
        :k: number of neighbors to find
        :exclude_self: if True, the query point itself is not reported
        :returns: list of (index, distance) tuples ordered by distance and
                  then by index. Shorter than k if the index holds too few
                  points.

        """
        if int(k) != k or k < 1:
            raise InvalidParameter("k must be a positive integer, got {}"
                                   .format(k))
        k = int(k)
        center, skip = self._resolve(center, exclude_self)
        if self.n == 0:
            return []

        if self.brute_force:
            candidates = numpy.arange(self.n)
        else:
            cell = self._cell_coords(center)
            max_ring = self._max_ring(cell)
            ring = 0
            while True:
                candidates = self._gather(cell, ring)
                if skip is not None:
                    candidates = candidates[candidates != skip]
                if len(candidates) >= k:
                    dists = self._distances(center, candidates)
                    kth = numpy.partition(dists, k - 1)[k - 1]
                    # Points outside the gathered buckets are at least this
                    # far away
                    if kth <= ring * self.cell_size:
                        break
                if ring >= max_ring:
                    break
                ring += 1

        if skip is not None:
            candidates = candidates[candidates != skip]
        dists = self._distances(center, candidates)
        order = numpy.lexsort((candidates, dists))[:k]
        return [(int(candidates[i]), float(dists[i])) for i in order]

    def nearest(self, center, exclude_self=False):
        """
        Find the point nearest to a location

        :center: coordinates, or the index of an indexed point
        :exclude_self: if True, the query point itself is not reported
        :returns: tuple (index, distance), or None if there is no candidate

        """
        found = self.k_nearest(center, 1, exclude_self=exclude_self)
        return found[0] if found else None

    def nearest_many(self, centers, exclude=None):
        """
        Find the nearest indexed point for each of several locations

        :centers: array of shape (m, dim) with query locations
        :exclude: optional integer array of shape (m,) giving for each query
                  the index of a point to skip (negative for none)
        :returns: tuple (indices, distances) of arrays of shape (m,). Queries
                  without any candidate get index -1 and distance inf.

        """
        centers = numpy.asarray(centers, dtype=numpy.float64)
        m = len(centers)
        indices = numpy.full(m, -1, dtype=numpy.intp)
        dists = numpy.full(m, numpy.inf)
        if exclude is None:
            exclude = numpy.full(m, -1, dtype=numpy.intp)
        else:
            exclude = numpy.asarray(exclude, dtype=numpy.intp)
        if self.n == 0 or m == 0:
            return indices, dists

        if self.brute_force:
            groups = [(None, numpy.arange(m))]
        else:
            qcells = self._cell_coords(centers)
            groups = list(_bucket(qcells).items())

        for (cell, queries) in groups:
            if cell is None:
                candidates = numpy.arange(self.n)
                ring = max_ring = 0
            else:
                max_ring = self._max_ring(cell)
                ring = 1
            while True:
                if cell is not None:
                    candidates = self._gather(cell, ring)
                if len(candidates) == 0:
                    best_d = numpy.full(len(queries), numpy.inf)
                    best_i = numpy.full(len(queries), -1, dtype=numpy.intp)
                else:
                    d = distance.cdist(centers[queries],
                                       self.points[candidates])
                    d[candidates[numpy.newaxis, :] ==
                      exclude[queries][:, numpy.newaxis]] = numpy.inf
                    best = numpy.argmin(d, axis=1)
                    best_d = d[numpy.arange(len(queries)), best]
                    best_i = numpy.where(numpy.isfinite(best_d),
                                         candidates[best], -1)
                if (ring >= max_ring or
                        numpy.all(best_d <= ring * self.cell_size)):
                    break
                ring += 1
            indices[queries] = best_i
            dists[queries] = best_d

        return indices, dists

    def pairs(self, r):
        """
        Find all ordered pairs of distinct indexed points within a distance of
        each other

        :r: largest pair distance to report (inclusive)
        :returns: tuple (i, j, d) of arrays, sorted by i and then j, such
                  that the points i[k] and j[k] are at distance d[k] <= r.
                  Each unordered pair is reported in both orders.

        """
        if not (numpy.isfinite(r) and r >= 0.0):
            raise InvalidParameter("pair distance must be non-negative, got "
                                   "{}".format(r))
        if self.n < 2:
            return _EMPTY_INDEX, _EMPTY_INDEX, numpy.empty((0,))

        if self.brute_force:
            d = distance.cdist(self.points, self.points)
            i, j = numpy.nonzero(d <= r)
            keep = i != j
            i, j = i[keep], j[keep]
            return i, j, d[i, j]

        # Coarse buckets at least as wide as r only need direct neighbors
        size = max(self.cell_size, r)
        coords = numpy.floor((self.points - self.origin) /
                             size).astype(numpy.intp)
        cells = _bucket(coords)
        offsets = _cube_offsets(1, self.dim)
        ilist, jlist, dlist = [], [], []
        for (cell, members) in cells.items():
            found = [cells.get(tuple(numpy.add(cell, off)))
                     for off in offsets]
            candidates = numpy.sort(numpy.concatenate(
                [f for f in found if f is not None]))
            d = distance.cdist(self.points[members], self.points[candidates])
            ii, jj = numpy.nonzero(d <= r)
            i, j = members[ii], candidates[jj]
            keep = i != j
            ilist.append(i[keep])
            jlist.append(j[keep])
            dlist.append(d[ii, jj][keep])

        i = numpy.concatenate(ilist)
        j = numpy.concatenate(jlist)
        d = numpy.concatenate(dlist)
        order = numpy.lexsort((j, i))
        return i[order], j[order], d[order]
