#!/usr/bin/env python

"""File: errors.py
Module defining the exceptions raised throughout the package

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


class PPAError(Exception):
    """
    Base class for all errors raised by the package

    """


class GeometryError(PPAError, ValueError):
    """
    Raised when a window or point pattern has invalid geometry

    """


class InvalidGeometry(GeometryError):
    """
    Raised when a window cannot be constructed: degenerate extent, non-finite
    coordinates or a self-intersecting polygon

    """


class PointOutsideWindow(GeometryError):
    """
    Raised when a point pattern is constructed with points that are not
    contained in its window

    Parameters
    ----------
    indices : sequence of int
        Indices of the offending points.

    """

    def __init__(self, indices):
        self.indices = tuple(int(i) for i in indices)
        shown = ', '.join(str(i) for i in self.indices[:10])
        if len(self.indices) > 10:
            shown += ', ...'
        super().__init__("{} point(s) not contained in the window (indices: "
                         "{})".format(len(self.indices), shown))


class InvalidParameter(PPAError, ValueError):
    """
    Raised when an argument is out of its valid range: negative radius,
    non-positive intensity, zero simulations, unknown method names and the
    like

    """


class StatError(PPAError):
    """
    Base class for errors raised while computing summary statistics

    """


class InsufficientPoints(StatError, ValueError):
    """
    Raised when a statistic is undefined for the number of points in the
    pattern

    Parameters
    ----------
    statistic : str
        Name of the statistic.
    required, actual : int
        The minimum number of points required, and the number present.

    """

    def __init__(self, statistic, required, actual):
        self.statistic = statistic
        self.required = required
        self.actual = actual
        super().__init__("{} requires at least {} point(s), got {}"
                         .format(statistic, required, actual))


class NumericInstability(StatError, ArithmeticError):
    """
    Raised when an edge correction cannot produce a finite weight even after
    falling back to the border rule

    """


class SimulationCancelled(PPAError):
    """
    Raised when an envelope test is cancelled between simulations

    Parameters
    ----------
    completed : int
        Number of simulations finished before the cancellation was observed.

    """

    def __init__(self, completed):
        self.completed = completed
        super().__init__("cancelled after {} simulation(s)".format(completed))


class FormatError(PPAError):
    """
    Raised when a point file cannot be parsed

    """
