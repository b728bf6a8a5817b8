#!/usr/bin/env python

"""File: simulation.py
Module for simulating point patterns from reference point processes: complete
spatial randomness (Poisson and binomial) and the Matérn and Thomas cluster
processes.

Every simulation draws from an explicitly seeded `numpy.random.Generator`;
no global random state is used, so a given seed always gives the same
pattern.

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

import numpy

from .errors import InvalidParameter
from .pointpatterns import PointPattern
from .utils import as_generator

logger = logging.getLogger(__name__)

# Reach of Thomas offspring in units of sigma
THOMAS_REACH = 4.0


def _positive(name, value):
    value = float(value)
    if not (numpy.isfinite(value) and value > 0.0):
        raise InvalidParameter("{} must be positive and finite, got {}"
                               .format(name, value))
    return value


class PoissonProcess(namedtuple('PoissonProcess', ['intensity'])):
    """
    Homogeneous Poisson process (complete spatial randomness)

    The number of points is Poisson distributed with mean
    `intensity * area`, and the points are uniformly distributed in the
    window.

    """
    __slots__ = ()

    def __new__(cls, intensity):
        return super().__new__(cls, _positive('intensity', intensity))


class BinomialProcess(namedtuple('BinomialProcess', ['npoints'])):
    """
    Binomial process: a fixed number of points uniformly distributed in the
    window

    """
    __slots__ = ()

    def __new__(cls, npoints):
        if int(npoints) != npoints or npoints < 0:
            raise InvalidParameter("npoints must be a non-negative integer, "
                                   "got {}".format(npoints))
        return super().__new__(cls, int(npoints))


class MaternCluster(namedtuple('MaternCluster', ['parent_intensity',
                                                 'cluster_radius',
                                                 'points_per_cluster'])):
    """
    Matérn cluster process

    Parents form a Poisson process with intensity `parent_intensity`. Each
    parent has a Poisson distributed number of offspring with mean
    `points_per_cluster`, uniformly distributed in the disc (ball) of radius
    `cluster_radius` about the parent. Only the offspring in the window are
    kept.

    """
    __slots__ = ()

    def __new__(cls, parent_intensity, cluster_radius, points_per_cluster):
        return super().__new__(
            cls, _positive('parent_intensity', parent_intensity),
            _positive('cluster_radius', cluster_radius),
            _positive('points_per_cluster', points_per_cluster))

    @property
    def reach(self):
        return self.cluster_radius


class ThomasCluster(namedtuple('ThomasCluster', ['parent_intensity', 'sigma',
                                                 'mean_offspring'])):
    """
    Thomas cluster process

    Like `MaternCluster`, but the offspring are displaced from their parent by
    isotropic Gaussian offsets with standard deviation `sigma` along each
    axis.

    """
    __slots__ = ()

    def __new__(cls, parent_intensity, sigma, mean_offspring):
        return super().__new__(
            cls, _positive('parent_intensity', parent_intensity),
            _positive('sigma', sigma),
            _positive('mean_offspring', mean_offspring))

    @property
    def reach(self):
        return THOMAS_REACH * self.sigma


class SimulationResult(namedtuple('SimulationResult',
                                  ['pattern', 'process', 'seed'])):
    """
    A simulated point pattern tagged with the process and seed that
    generated it

    """
    __slots__ = ()


def _uniform_ball(n, dim, radius, rng):
    directions = rng.standard_normal(size=(n, dim))
    norms = numpy.sqrt(numpy.sum(directions * directions, axis=1))
    radii = radius * rng.uniform(size=n) ** (1.0 / dim)
    return directions * (radii / norms)[:, numpy.newaxis]


def _cluster_points(window, process, rng):
    # Parents outside the window may have offspring inside it
    parent_window = window.dilated_bounds(process.reach)
    nparents = rng.poisson(process.parent_intensity * parent_window.area)
    parents = parent_window.sample(nparents, rng)

    if isinstance(process, MaternCluster):
        mean = process.points_per_cluster
    else:
        mean = process.mean_offspring
    counts = rng.poisson(mean, size=nparents)
    total = int(numpy.sum(counts))
    centers = numpy.repeat(parents, counts, axis=0)

    if isinstance(process, MaternCluster):
        offsets = _uniform_ball(total, window.dim, process.cluster_radius,
                                rng)
    else:
        offsets = rng.normal(0.0, process.sigma, size=(total, window.dim))

    offspring = centers + offsets
    if total == 0:
        return numpy.empty((0, window.dim))
    keep = window.contains(offspring, tol=0.0)
    logger.debug("%d parents, %d offspring, %d inside the window", nparents,
                 total, numpy.count_nonzero(keep))
    return offspring[keep]


def sample_points(window, process, rng):
    """
    Draw the points of a realization of a point process in a window

    :window: Window instance
    :process: PoissonProcess, BinomialProcess, MaternCluster or ThomasCluster
              instance
    :rng: numpy.random.Generator to draw from
    :returns: array of shape (n, dim)

    """
    if isinstance(process, PoissonProcess):
        n = rng.poisson(process.intensity * window.area)
        return window.sample(n, rng)
    elif isinstance(process, BinomialProcess):
        return window.sample(process.npoints, rng)
    elif isinstance(process, (MaternCluster, ThomasCluster)):
        return _cluster_points(window, process, rng)
    else:
        raise InvalidParameter("unknown point process: {!r}".format(process))


def simulate(window, process, seed):
    """
    Simulate a point pattern from a point process in a window

    Parameters
    ----------
    window : Window
        Window to simulate in.
    process : PoissonProcess, BinomialProcess, MaternCluster or ThomasCluster
        Process to simulate.
    seed : int, SeedSequence or Generator
        Seed of the random source. Equal seeds and parameters give equal
        patterns.

    Returns
    -------
    PointPattern
        The simulated pattern.

    """
    rng = as_generator(seed)
    return PointPattern(sample_points(window, process, rng), window)


def generate(window, process, seed):
    """
    Simulate a point pattern, and return it tagged with the process and seed

    :returns: SimulationResult instance

    """
    return SimulationResult(simulate(window, process, seed), process, seed)


def spawn_seeds(seed, n):
    """
    Derive independent seeds for `n` simulations from a single seed

    :seed: int or SeedSequence
    :n: number of seeds
    :returns: list of SeedSequence instances

    """
    if isinstance(seed, numpy.random.SeedSequence):
        root = seed
    elif isinstance(seed, (int, numpy.integer)):
        root = numpy.random.SeedSequence(int(seed))
    else:
        raise InvalidParameter("seed must be an int or a SeedSequence, got "
                               "{!r}".format(seed))
    return root.spawn(n)
