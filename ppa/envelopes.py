#!/usr/bin/env python

"""File: envelopes.py
Module implementing Monte Carlo envelope tests of point patterns against
reference point processes.

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
from concurrent.futures import ThreadPoolExecutor, as_completed

import numpy
import pandas

from . import statistics
from .curves import Envelope
from .errors import InsufficientPoints, InvalidParameter, SimulationCancelled
from .simulation import PoissonProcess, simulate, spawn_seeds

logger = logging.getLogger(__name__)

KINDS = ('pointwise', 'global')

# Returned by a simulation task that observed the cancellation signal
_CANCELLED = object()


def _check_arguments(nsims, alpha, kind):
    if int(nsims) != nsims or nsims < 1:
        raise InvalidParameter("nsims must be a positive integer, got {}"
                               .format(nsims))
    if not 0.0 < alpha < 1.0:
        raise InvalidParameter("alpha must lie strictly between 0 and 1, got "
                               "{}".format(alpha))
    if kind not in KINDS:
        raise InvalidParameter("unknown envelope kind: {}. Choose from {}"
                               .format(kind, KINDS))


def _rank_pvalues(observed, frame, mean):
    """
    Compute two-sided rank-based p-values

    A simulated curve is at least as extreme as the observed curve at a
    radius if its absolute deviation from the simulated mean is at least as
    large. The pointwise p-values use the deviations at each radius, the
    global p-value the maximum absolute deviation over all radii.

    """
    deviations = frame.sub(mean, axis=1).abs()
    obs_deviation = numpy.abs(observed - mean.to_numpy())

    nvalid = deviations.count(axis=0).to_numpy()
    extreme = (deviations >= obs_deviation).sum(axis=0).to_numpy()
    with numpy.errstate(invalid='ignore'):
        pvalues = numpy.where(numpy.isnan(obs_deviation), numpy.nan,
                              (1.0 + extreme) / (nvalid + 1.0))

    finite = numpy.isfinite(obs_deviation)
    if not numpy.any(finite):
        return pvalues, 1.0
    obs_max = numpy.max(obs_deviation[finite])
    sim_max = deviations.max(axis=1)
    pvalue = (1.0 + int((sim_max >= obs_max).sum())) / (len(frame) + 1.0)
    return pvalues, pvalue


def envelope_test(pattern, statistic, process=None, nsims=99, alpha=0.05,
                  radii=None, kind='pointwise', seed=0, workers=None,
                  cancel=None, **kwargs):
    """
    Test a point pattern against a reference point process using Monte Carlo
    envelopes of a summary characteristic

    The characteristic is computed for the observed pattern and for `nsims`
    patterns simulated from `process` in the same window, at the same radii.

    Parameters
    ----------
    pattern : PointPattern
        The observed pattern.
    statistic : str {'G', 'F', 'K', 'L', 'pcf'}
        Summary characteristic to compare.
    process : point process, optional
        Reference process. Defaults to a Poisson process with the intensity of
        the observed pattern.
    nsims : int, optional
        Number of simulations. Must be at least 1.
    alpha : scalar, optional
        Significance level, strictly between 0 and 1.
    radii : array-like, optional
        Radii at which to evaluate the characteristic. Defaults to the
        default radii of the characteristic for the observed pattern.
    kind : str {'pointwise', 'global'}, optional
        ``pointwise``
            The envelope is bounded by the `alpha / 2` and `1 - alpha / 2`
            quantiles of the simulated values at each radius.
        ``global``
            The envelope is bounded by the minimum and maximum of the
            simulated values at each radius.
    seed : int or SeedSequence, optional
        Root seed. Simulation `k` is seeded with the `k`th child of
        `SeedSequence(seed)`, so results do not depend on `workers`.
    workers : int, optional
        If larger than one, simulations run on a thread pool of this size.
    cancel : object with an `is_set()` method, optional
        Cancellation signal, such as a `threading.Event`, checked before each
        simulation. If set, a `SimulationCancelled` error is raised.
    **kwargs
        Further arguments for the estimator, such as `correction` or
        `bandwidth`.

    Returns
    -------
    Envelope
        The envelope, the observed curve and the p-values. Simulations with
        too few points for the characteristic are left out, and so are the
        radii that no simulated curve reaches.

    """
    _check_arguments(nsims, alpha, kind)
    name = statistics.statistic_name(statistic)
    nsims = int(nsims)
    seeds = spawn_seeds(seed, nsims)
    if process is None:
        process = PoissonProcess(pattern.intensity())

    observed = statistics.compute(pattern, name, radii=radii, **kwargs)
    r = observed.r
    if len(r) == 0:
        raise InvalidParameter("no radii left to evaluate {} at".format(name))
    window = pattern.window
    logger.info("running %d simulations of %r for %s", nsims, process, name)

    def run(k):
        if cancel is not None and cancel.is_set():
            return k, _CANCELLED
        simulated = simulate(window, process, seeds[k])
        try:
            curve = statistics.compute(simulated, name, radii=r, **kwargs)
        except InsufficientPoints as exc:
            logger.warning("simulation %d skipped: %s", k, exc)
            return k, None
        # Truncated curves are padded with nan
        values = numpy.full(len(r), numpy.nan)
        values[:len(curve)] = curve.values
        return k, values

    results = [None] * nsims
    cancelled = False
    if workers is None or workers <= 1:
        for k in range(nsims):
            __, values = run(k)
            if values is _CANCELLED:
                raise SimulationCancelled(k)
            results[k] = values
    else:
        with ThreadPoolExecutor(max_workers=workers) as executor:
            futures = [executor.submit(run, k) for k in range(nsims)]
            try:
                for future in as_completed(futures):
                    k, values = future.result()
                    if values is _CANCELLED:
                        cancelled = True
                        continue
                    results[k] = values
            except BaseException:
                for future in futures:
                    future.cancel()
                raise
        if cancelled:
            completed = sum(1 for f in futures
                            if f.done() and not f.cancelled() and
                            f.result()[1] is not _CANCELLED)
            raise SimulationCancelled(completed)

    curves = [values for values in results if values is not None]
    nfailed = nsims - len(curves)
    if not curves:
        raise InsufficientPoints(name, statistics.MIN_POINTS[name], 0)
    if nfailed:
        logger.warning("%d of %d simulations had too few points for %s",
                       nfailed, nsims, name)

    frame = pandas.DataFrame(numpy.vstack(curves), columns=r)
    observed_values = observed.values
    # Radii that no simulated curve reaches are dropped
    keep = frame.count(axis=0).to_numpy() > 0
    if not numpy.all(keep):
        logger.warning("envelope truncated at r = %g: no simulated values",
                       r[numpy.argmin(keep)])
        r, observed_values = r[keep], observed_values[keep]
        frame = frame.iloc[:, numpy.flatnonzero(keep)]
    mean = frame.mean(axis=0)
    if kind == 'global':
        lower = frame.min(axis=0)
        upper = frame.max(axis=0)
    else:
        lower = frame.quantile(0.5 * alpha, axis=0)
        upper = frame.quantile(1.0 - 0.5 * alpha, axis=0)

    pvalues, pvalue = _rank_pvalues(observed_values, frame, mean)
    return Envelope(r, observed_values, lower.to_numpy(), upper.to_numpy(),
                    mean.to_numpy(), pvalues, pvalue, name, kind, alpha,
                    len(curves), nfailed=nfailed)
