#!/usr/bin/env python

"""File: statistics.py
Module implementing estimators of distance-based summary characteristics of
point patterns: the nearest-neighbor distance distribution G, the
empty-space function F, Ripley's K- and L-functions, and the pair
correlation function.

All estimators take a point pattern and return a `FunctionCurve`. The point
pattern is only accessed through its public interface, so this module does
not depend on `pointpatterns`.

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

import numpy

from .curves import FunctionCurve, check_radii
from .edgecorrection import check_correction
from .errors import InsufficientPoints, InvalidParameter
from .utils import as_generator

logger = logging.getLogger(__name__)

_PI = numpy.pi

RSAMPLES = 49
FSAMPLES_PER_POINT = 100
FSAMPLES_MAX = 10000
STOYAN = 0.15

MIN_POINTS = {'G': 2, 'F': 1, 'K': 2, 'L': 2, 'pcf': 2}
_NAMES = {'g': 'G', 'f': 'F', 'k': 'K', 'l': 'L', 'pcf': 'pcf'}


def statistic_name(statistic):
    """
    Return the canonical name of a statistic: one of 'G', 'F', 'K', 'L' and
    'pcf' (case insensitive)

    """
    try:
        return _NAMES[str(statistic).lower()]
    except KeyError:
        raise InvalidParameter("unknown statistic: {}. Choose from {}"
                               .format(statistic, tuple(_NAMES.values())))


def _require(pattern, statistic):
    n = len(pattern)
    need = MIN_POINTS[statistic]
    if n < need:
        raise InsufficientPoints(statistic, need, n)
    return n


def resolve_radii(pattern, radii=None, rmax=None, rsamples=RSAMPLES):
    """
    Determine the radii at which to evaluate a summary characteristic

    Parameters
    ----------
    pattern : PointPattern
        The pattern under study.
    radii : array-like, optional
        Radii supplied by the caller. They must be finite, non-negative and
        strictly increasing.
    rmax : scalar, optional
        Largest radius. Caller radii above `rmax` are dropped. If neither
        `radii` nor `rmax` is given, `rmax` defaults to a fraction of the
        shorter side of the window.
    rsamples : int, optional
        Number of evenly spaced radii on [0, rmax] when `radii` is None.

    Returns
    -------
    array
        Radii to use.

    """
    if rmax is not None and not (numpy.isfinite(rmax) and rmax >= 0.0):
        raise InvalidParameter("rmax must be non-negative, got {}"
                               .format(rmax))
    if radii is None:
        if rmax is None:
            rmax = pattern.window.default_rmax()
        if int(rsamples) < 2:
            raise InvalidParameter("need at least two radii, got rsamples={}"
                                   .format(rsamples))
        return check_radii(numpy.linspace(0.0, rmax, int(rsamples)))

    r = check_radii(radii)
    if rmax is not None:
        r = r[r <= rmax]
    return r


def _cdf_correction(statistic, correction):
    correction = check_correction(correction)
    if correction not in ('none', 'border'):
        raise InvalidParameter("{} supports edge corrections 'none' and "
                               "'border', got {!r}"
                               .format(statistic, correction))
    return correction


def _distribution(statistic, distances, boundaries, radii, correction):
    """
    Estimate a distance distribution function

    Without correction, this is the empirical distribution function of the
    distances. With border correction, only distances not exceeding the
    distance to the window boundary are observed, giving the Hanisch-type
    estimator sum 1(d <= r, d <= b) / sum 1(d <= b).

    """
    if correction == 'border':
        observed = distances <= boundaries
        distances = distances[observed]
        if len(distances) == 0:
            raise InsufficientPoints("border-corrected " + statistic, 1, 0)
    d = numpy.sort(distances)
    return numpy.searchsorted(d, radii, side='right') / len(d)


def compute_g(pattern, radii=None, correction='none', rmax=None,
              rsamples=RSAMPLES):
    """
    Estimate the nearest-neighbor distance distribution function G

    Parameters
    ----------
    pattern : PointPattern
        Pattern with at least two points.
    radii, rmax, rsamples
        See `resolve_radii`.
    correction : str {'none', 'border'}, optional
        Edge correction.

    Returns
    -------
    FunctionCurve
        Non-decreasing values in [0, 1].

    """
    correction = _cdf_correction('G', correction)
    _require(pattern, 'G')
    r = resolve_radii(pattern, radii=radii, rmax=rmax, rsamples=rsamples)
    values = _distribution('G', pattern.nearest_distances(),
                           pattern.boundary_distances(), r, correction)
    return FunctionCurve(r, values, 'G', correction)


def compute_f(pattern, radii=None, correction='none', rmax=None,
              rsamples=RSAMPLES, nsamples=None, seed=0):
    """
    Estimate the empty-space function F

    The distances from uniformly sampled locations in the window to the
    nearest point of the pattern are collected, and their distribution is
    estimated like in `compute_g`.

    Parameters
    ----------
    pattern : PointPattern
        Pattern with at least one point.
    radii, rmax, rsamples
        See `resolve_radii`.
    correction : str {'none', 'border'}, optional
        Edge correction.
    nsamples : int, optional
        Number of sample locations. Defaults to `FSAMPLES_PER_POINT` per point
        in the pattern, but at most `FSAMPLES_MAX`.
    seed : int, SeedSequence or Generator, optional
        Seed for drawing the sample locations.

    Returns
    -------
    FunctionCurve
        Non-decreasing values in [0, 1].

    """
    correction = _cdf_correction('F', correction)
    n = _require(pattern, 'F')
    r = resolve_radii(pattern, radii=radii, rmax=rmax, rsamples=rsamples)
    if nsamples is None:
        nsamples = min(FSAMPLES_PER_POINT * n, FSAMPLES_MAX)
    if int(nsamples) < 1:
        raise InvalidParameter("nsamples must be positive, got {}"
                               .format(nsamples))

    window = pattern.window
    samples = window.sample(int(nsamples), as_generator(seed))
    __, dists = pattern.spatial_index().nearest_many(samples)
    values = _distribution('F', dists, window.distance_to_boundary(samples),
                           r, correction)
    return FunctionCurve(r, values, 'F', correction)


def _border_kvalues(pattern, r):
    # Reduced-sample estimator: only points at least r from the boundary
    # are used as centers at radius r
    n = len(pattern)
    i, __, d = pattern.pair_distances(r[-1])
    b = pattern.boundary_distances()
    nr = n - numpy.searchsorted(numpy.sort(b), r, side='left')

    # Pair (i, j) counts at all radii in [d_ij, b_i]
    start = numpy.searchsorted(r, d, side='left')
    stop = numpy.searchsorted(r, b[i], side='right')
    valid = start < stop
    nbins = len(r) + 1
    counts = numpy.cumsum(
        numpy.bincount(start[valid], minlength=nbins) -
        numpy.bincount(stop[valid], minlength=nbins))[:-1]

    # nr is non-increasing, so the radii to keep form a prefix
    keep = nr > 0
    if not numpy.all(keep):
        logger.debug("border-corrected K truncated at r = %g: no points "
                     "farther from the boundary", r[numpy.argmin(keep)])
    r, counts, nr = r[keep], counts[keep], nr[keep]
    return r, pattern.window.area * counts / (n * nr)


def _kvalues(pattern, r, correction):
    if len(r) == 0:
        return r, numpy.empty((0,))
    if correction == 'border':
        return _border_kvalues(pattern, r)

    n = len(pattern)
    __, __, d, w = pattern.pair_weights(correction, r[-1])
    order = numpy.argsort(d, kind='stable')
    cweights = numpy.hstack((0.0, numpy.cumsum(w[order])))
    indices = numpy.searchsorted(d[order], r, side='right')
    return r, pattern.window.area * cweights[indices] / (n * n)


def compute_k(pattern, radii=None, correction='isotropic', rmax=None,
              rsamples=RSAMPLES):
    """
    Estimate Ripley's K-function

    The estimate is `area / n**2` times the sum of the edge correction
    weights of all ordered pairs of points at most r apart. With border
    correction, the reduced-sample estimator `area / (n * n_r)` times the
    number of pairs whose first point is at least r from the boundary is used
    instead, where `n_r` is the number of such points. The curve stops at the
    first radius where `n_r` is zero.

    Parameters
    ----------
    pattern : PointPattern
        Pattern with at least two points.
    radii, rmax, rsamples
        See `resolve_radii`.
    correction : str {'none', 'border', 'isotropic', 'translation'}, optional
        Edge correction.

    Returns
    -------
    FunctionCurve

    """
    correction = check_correction(correction)
    _require(pattern, 'K')
    r = resolve_radii(pattern, radii=radii, rmax=rmax, rsamples=rsamples)
    r, values = _kvalues(pattern, r, correction)
    return FunctionCurve(r, values, 'K', correction)


def compute_l(pattern, radii=None, correction='isotropic', rmax=None,
              rsamples=RSAMPLES):
    """
    Estimate the centered L-function

    L(r) = sqrt(K(r) / pi) - r in the plane and cbrt(3 K(r) / (4 pi)) - r in
    space, so that L is zero under complete spatial randomness. Arguments are
    as for `compute_k`.

    """
    correction = check_correction(correction)
    _require(pattern, 'L')
    r = resolve_radii(pattern, radii=radii, rmax=rmax, rsamples=rsamples)
    r, kvalues = _kvalues(pattern, r, correction)
    if pattern.dim == 2:
        values = numpy.sqrt(kvalues / _PI) - r
    else:
        values = numpy.cbrt(0.75 * kvalues / _PI) - r
    return FunctionCurve(r, values, 'L', correction)


def pcf_bandwidth(pattern, bandwidth='stoyan', rmax=None):
    """
    Select the kernel bandwidth for pair correlation function estimation

    :pattern: PointPattern instance
    :bandwidth: 'stoyan' for Stoyan's rule `0.15 / intensity**(1 / dim)`,
                'silverman' for Silverman's rule of thumb applied to the pair
                distances up to `rmax`, or a positive number
    :rmax: largest pair distance to consider for Silverman's rule
    :returns: the bandwidth, a positive scalar

    """
    if isinstance(bandwidth, str):
        rule = bandwidth.lower()
        stoyan = STOYAN / pattern.intensity() ** (1.0 / pattern.dim)
        if rule == 'stoyan':
            return stoyan
        if rule == 'silverman':
            if rmax is None:
                rmax = pattern.rmax()
            __, __, d = pattern.pair_distances(rmax)
            if len(d) > 1:
                spread = numpy.std(d, ddof=1)
                q75, q25 = numpy.percentile(d, [75, 25])
                if q75 > q25:
                    spread = min(spread, (q75 - q25) / 1.34)
                h = 0.9 * spread * len(d) ** -0.2
                if h > 0.0:
                    return float(h)
            logger.debug("too few pairs for Silverman's rule, using Stoyan's")
            return stoyan
        raise InvalidParameter("unknown bandwidth rule: {}"
                               .format(bandwidth))

    h = float(bandwidth)
    if not (numpy.isfinite(h) and h > 0.0):
        raise InvalidParameter("bandwidth must be positive, got {}"
                               .format(bandwidth))
    return h


def compute_pcf(pattern, radii=None, correction='translation', rmax=None,
                rsamples=RSAMPLES, bandwidth='stoyan'):
    """
    Estimate the pair correlation function

    The weighted pair distances are smoothed with an Epanechnikov kernel and
    divided by the circumference 2 pi r of the circle (the area 4 pi r**2 of
    the sphere) at each radius. The radius zero, where the estimator is
    undefined, is dropped from the output.

    Parameters
    ----------
    pattern : PointPattern
        Pattern with at least two points.
    radii, rmax, rsamples
        See `resolve_radii`.
    correction : str {'none', 'border', 'isotropic', 'translation'}, optional
        Edge correction. With 'border', only the points at least r from the
        boundary contribute at radius r, and the curve stops before the
        first radius where there are none.
    bandwidth : str or scalar, optional
        See `pcf_bandwidth`.

    Returns
    -------
    FunctionCurve

    """
    correction = check_correction(correction)
    n = _require(pattern, 'pcf')
    r = resolve_radii(pattern, radii=radii, rmax=rmax, rsamples=rsamples)
    r = r[r > 0.0]
    if len(r) == 0:
        return FunctionCurve(r, r, 'pcf', correction)

    h = pcf_bandwidth(pattern, bandwidth=bandwidth, rmax=r[-1])
    border = correction == 'border'
    if border:
        # Reduced-sample estimator: only points at least r from the
        # boundary are used as centers at radius r
        i, __, d = pattern.pair_distances(r[-1] + h)
        b = pattern.boundary_distances()
        w = b[i]
        ncenters = n - numpy.searchsorted(numpy.sort(b), r, side='left')
        keep = ncenters > 0
        if not numpy.all(keep):
            logger.debug("border-corrected pcf truncated at r = %g: no "
                         "points farther from the boundary",
                         r[numpy.argmin(keep)])
        r, ncenters = r[keep], ncenters[keep]
    else:
        __, __, d, w = pattern.pair_weights(correction, r[-1] + h)
        ncenters = n
    order = numpy.argsort(d, kind='stable')
    d, w = d[order], w[order]

    lo = numpy.searchsorted(d, r - h, side='left')
    hi = numpy.searchsorted(d, r + h, side='right')
    density = numpy.empty(len(r))
    for (k, (rk, start, stop)) in enumerate(zip(r, lo, hi)):
        u = (rk - d[start:stop]) / h
        kernel = 0.75 * numpy.clip(1.0 - u * u, 0.0, None)
        if border:
            weights = w[start:stop] >= rk
        else:
            weights = w[start:stop]
        density[k] = numpy.sum(kernel * weights) / h

    if pattern.dim == 2:
        surface = 2.0 * _PI * r
    else:
        surface = 4.0 * _PI * r * r
    values = pattern.window.area * density / (n * ncenters * surface)
    return FunctionCurve(r, values, 'pcf', correction)


_COMPUTERS = {
    'G': compute_g,
    'F': compute_f,
    'K': compute_k,
    'L': compute_l,
    'pcf': compute_pcf,
}


def compute(pattern, statistic, **kwargs):
    """
    Estimate a summary characteristic by name

    :pattern: PointPattern instance
    :statistic: one of 'G', 'F', 'K', 'L' and 'pcf' (case insensitive)
    :kwargs: passed on to the estimator
    :returns: FunctionCurve

    """
    return _COMPUTERS[statistic_name(statistic)](pattern, **kwargs)
