#!/usr/bin/env python

"""File: formats.py
Module to read point collections from delimited text files, and to write
point patterns, curves and envelopes back out in the same format.

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
import pandas

from .errors import FormatError, InvalidParameter
from .pointpatterns import PointPattern
from .utils import AlmostImmutable, read_only

logger = logging.getLogger(__name__)

COLUMNS = ('X', 'Y')
DELIMITER = ';'
NO_DATA = 'NA'


class PointCollection(AlmostImmutable):
    """
    Represent raw point records read from a file: coordinates and optional
    identifiers, not yet tied to a window

    Parameters
    ----------
    points : array-like, shape (n, dim)
        Point coordinates. Missing values are nan.
    ids : sequence of str, optional
        One identifier per point.

    """

    def __init__(self, points, ids=None):
        points = numpy.asarray(points, dtype=numpy.float64)
        if points.ndim != 2:
            raise InvalidParameter("points must be an array of shape "
                                   "(n, dim)")
        if ids is not None:
            ids = tuple(ids)
            if len(ids) != len(points):
                raise InvalidParameter(
                    "data length ({}) does not match number of IDs ({})"
                    .format(len(points), len(ids)))
        self.points = read_only(points)
        self.ids = ids

    def __len__(self):
        return len(self.points)

    @property
    def dim(self):
        return self.points.shape[1]

    def complete(self):
        """
        Return a boolean array marking the points without missing coordinates

        """
        return numpy.all(numpy.isfinite(self.points), axis=1)

    def to_pattern(self, window):
        """
        Create a point pattern from the complete points of the collection

        Points with missing coordinates are skipped with a warning.

        :window: the window of the pattern
        :returns: PointPattern instance

        """
        complete = self.complete()
        nskipped = len(self) - numpy.count_nonzero(complete)
        if nskipped:
            logger.warning("skipping %d of %d points with missing "
                           "coordinates", nskipped, len(self))
        return PointPattern(self.points[complete], window)


def _read_frame(path, delimiter):
    try:
        return pandas.read_csv(path, sep=delimiter, dtype=str,
                               keep_default_na=False)
    except (pandas.errors.ParserError, pandas.errors.EmptyDataError,
            UnicodeDecodeError) as exc:
        raise FormatError("unable to read {}: {}".format(path, exc))


def read_points(path, columns=COLUMNS, id_column=None, delimiter=DELIMITER,
                no_data=NO_DATA):
    """
    Read a point collection from a delimited text file with a header row

    :path: file path or object
    :columns: names of the coordinate columns, two or three of them
    :id_column: name of a column with point identifiers, or None
    :delimiter: field delimiter
    :no_data: string marking a missing value, read as nan
    :returns: PointCollection instance. A `FormatError` is raised if a column
              is not found or a value cannot be parsed as a number.

    """
    if len(columns) not in (2, 3):
        raise InvalidParameter("need two or three coordinate columns, got {}"
                               .format(len(columns)))
    frame = _read_frame(path, delimiter)
    wanted = list(columns) + ([id_column] if id_column is not None else [])
    for column in wanted:
        if column not in frame.columns:
            raise FormatError("column {} not found".format(column))

    data = numpy.empty((len(frame), len(columns)))
    for (k, column) in enumerate(columns):
        values = frame[column].str.strip()
        missing = (values == no_data).to_numpy()
        try:
            data[:, k] = pandas.to_numeric(values.where(~missing, 'nan'),
                                           errors='raise')
        except ValueError as exc:
            raise FormatError("unable to parse column {} to float: {}"
                              .format(column, exc))

    ids = None
    if id_column is not None:
        ids = frame[id_column].tolist()
    logger.debug("read %d points from %s", len(data), path)
    return PointCollection(data, ids=ids)


def read_pattern(path, window, columns=COLUMNS, delimiter=DELIMITER,
                 no_data=NO_DATA):
    """
    Read a point pattern from a delimited text file

    Rows with missing coordinates are skipped with a warning. Arguments are
    as for `read_points`.

    :window: the window of the pattern
    :returns: PointPattern instance

    """
    collection = read_points(path, columns=columns, delimiter=delimiter,
                             no_data=no_data)
    return collection.to_pattern(window)


def write_pattern(pattern, path, columns=None, delimiter=DELIMITER):
    """
    Write the coordinates of a point pattern to a delimited text file

    Coordinates are written with full precision, so reading the file back
    gives the same points.

    :pattern: PointPattern instance
    :path: file path or object
    :columns: column names. Defaults to 'X', 'Y' (and 'Z').

    """
    if columns is None:
        columns = ('X', 'Y', 'Z')[:pattern.dim]
    pattern.to_frame(columns=columns).to_csv(path, sep=delimiter,
                                             index=False)


def write_curve(curve, path, delimiter=DELIMITER):
    """
    Write a FunctionCurve to a delimited text file

    """
    curve.to_frame().to_csv(path, sep=delimiter, index=False)


def write_envelope(envelope, path, delimiter=DELIMITER):
    """
    Write an Envelope to a delimited text file

    """
    envelope.to_frame().to_csv(path, sep=delimiter, index=False)
