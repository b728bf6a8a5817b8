#!/usr/bin/env python

"""File: utils.py
Module defining classes and functions that may come in handy throughout the
package

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

import threading
from functools import partial, update_wrapper
from inspect import signature

import numpy

from .errors import InvalidParameter


class AlmostImmutable(object):
    """
    A base class for "almost immutable" objects: instance attributes that have
    already been assigned cannot (easily) be reassigned or deleted, but
    creating new attributes is allowed.

    """

    def __setattr__(self, name, value):
        """
        Override the __setattr__() method to avoid member reassigment

        """
        if hasattr(self, name):
            raise TypeError("{} instances do not support attribute "
                            "reassignment".format(self.__class__.__name__))
        object.__setattr__(self, name, value)

    def __delattr__(self, name):
        """
        Override the __detattr__() method to avoid member deletion

        """
        raise TypeError("{} instances do not support attribute deletion"
                        .format(self.__class__.__name__))


class memoize_method(object):
    """Cache the return value of a method

    This class is meant to be used as a decorator of methods. The return value
    from a given method invocation will be cached on the instance whose method
    was invoked. All arguments passed to a method decorated with memoize must
    be hashable. If the argument list is not hashable, the result is returned
    as usual, but not cached.

    The computation runs while holding the instance's `_memoize_lock`
    attribute if it has one (a `threading.RLock` is expected), or a lock
    shared by all instances otherwise, so each result is computed at most once
    even when several threads ask for it concurrently.

    Adapted from
    http://code.activestate.com/recipes/577452-a-memoize-decorator-for-instance-methods/  # noqa

    Parameters
    ----------
    f : method
        Method to memoize.

    Examples
    --------
    >>> class AddToThree(object):
    >>>     base = 3
    >>>     @memoize_method
    >>>     def add(self, addend):
    >>>         return self.base + addend
    >>>
    >>> adder = AddToThree()
    >>> adder.add(4)  # result will be cached
    7

    """
    cache_name = '_memoize_method_cache'
    lock_name = '_memoize_lock'

    def __init__(self, f):
        self._f = f
        self._signature = signature(f)
        self._fallback_lock = threading.RLock()
        update_wrapper(self, f)

    def __get__(self, obj, otype=None):
        if obj is None:
            return self._f
        return partial(self, obj)

    def __call__(self, obj, *args, **kwargs):
        f = self._f
        bound = self._signature.bind(obj, *args, **kwargs)
        bound.apply_defaults()
        callargs = tuple(bound.arguments.items())[1:]
        key = (f.__name__, callargs)

        lock = getattr(obj, self.lock_name, self._fallback_lock)
        with lock:
            try:
                cache = obj.__dict__[self.cache_name]
            except KeyError:
                cache = {}
                setattr(obj, self.cache_name, cache)

            try:
                return cache[key]
            except KeyError:
                res = cache[key] = f(obj, *args, **kwargs)
            except TypeError:
                # Unhashable arguments
                res = f(obj, *args, **kwargs)
        return res


def as_generator(seed):
    """
    Turn a seed into a `numpy.random.Generator`

    :seed: int, `numpy.random.SeedSequence` or `numpy.random.Generator`. A
           Generator is returned as is, so that a single random source can be
           threaded through several calls. None is rejected: every random
           draw in the package is explicitly seeded.
    :returns: Generator instance

    """
    if isinstance(seed, numpy.random.Generator):
        return seed
    if seed is None:
        raise InvalidParameter("an explicit seed is required")
    if isinstance(seed, (numpy.random.SeedSequence, numpy.integer, int)):
        return numpy.random.default_rng(seed)
    raise InvalidParameter("cannot seed a random generator with {!r}"
                           .format(seed))


def read_only(arr):
    """
    Return a read-only float view of an array

    """
    arr = numpy.array(arr, dtype=numpy.float64)
    arr.setflags(write=False)
    return arr
