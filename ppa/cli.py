#!/usr/bin/env python

"""File: cli.py
Command line interface for point pattern analysis of delimited point files.

Examples::

    ppa --pattern "data/*.csv" avg-nn
    ppa --pattern "data/*.csv" --output results/ stat --statistic L
    ppa --pattern "data/*.csv" --window 0,1,0,1 envelope --statistic K \\
        --nsims 199 --kind global --workers 4
    ppa options.txt

A single argument that is not an option or a command is the path of an
options file holding the actual arguments.

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

import argparse
import glob
import logging
import shlex
import sys
from os import path

import numpy
import pandas

from . import formats, statistics
from .edgecorrection import CORRECTIONS
from .envelopes import KINDS, envelope_test
from .errors import InvalidGeometry, PPAError
from .geometry import Window

logger = logging.getLogger(__name__)

COMMANDS = ('avg-nn', 'stat', 'envelope')
STATISTICS = ('G', 'F', 'K', 'L', 'pcf')


def parse_window(text):
    """
    Parse a window from comma-separated numbers: 'xmin,xmax,ymin,ymax' for a
    rectangle, 'xmin,xmax,ymin,ymax,zmin,zmax' for a box, or 'x,y,radius'
    for a disc

    """
    try:
        values = [float(v) for v in text.split(',')]
    except ValueError:
        raise argparse.ArgumentTypeError("invalid window: {}".format(text))
    try:
        if len(values) == 4:
            return Window.rectangle(*values)
        elif len(values) == 6:
            return Window.box(*values)
        elif len(values) == 3:
            return Window.disc(values[:2], values[2])
    except InvalidGeometry as exc:
        raise argparse.ArgumentTypeError(str(exc))
    raise argparse.ArgumentTypeError("a window needs 3, 4 or 6 numbers, got "
                                     "{}".format(len(values)))


def parse_columns(text):
    columns = tuple(c.strip() for c in text.split(','))
    if len(columns) not in (2, 3) or not all(columns):
        raise argparse.ArgumentTypeError("need two or three column names, "
                                         "got {!r}".format(text))
    return columns


def parse_bandwidth(text):
    """
    Parse a pcf bandwidth: the name of a rule or a positive number

    """
    if text.lower() in ('stoyan', 'silverman'):
        return text.lower()
    try:
        value = float(text)
    except ValueError:
        raise argparse.ArgumentTypeError("invalid bandwidth: {}".format(text))
    if not value > 0.0:
        raise argparse.ArgumentTypeError("bandwidth must be positive, got "
                                         "{}".format(text))
    return value


def bounding_window(points):
    """
    Return the bounding box of a set of points as a window

    """
    if len(points) == 0:
        raise InvalidGeometry("no points to derive a window from")
    lower, upper = numpy.min(points, axis=0), numpy.max(points, axis=0)
    limits = numpy.column_stack((lower, upper)).ravel()
    if len(lower) == 2:
        return Window.rectangle(*limits)
    return Window.box(*limits)


def read_options_file(filename):
    """
    Read command line arguments from a file, splitting on whitespace and
    keeping double-quoted strings together

    """
    with open(filename) as f:
        return shlex.split(f.read())


def _load(filename, args):
    collection = formats.read_points(filename, columns=args.columns,
                                     delimiter=args.delimiter,
                                     no_data=args.no_data)
    window = args.window
    if window is None:
        window = bounding_window(collection.points[collection.complete()])
    return collection.to_pattern(window)


def _write(frame, args, name):
    if args.output is None:
        frame.to_csv(sys.stdout, sep=args.delimiter, index=False)
        return
    filename = args.output + name
    frame.to_csv(filename, sep=args.delimiter, index=False)
    logger.info("wrote %s", filename)


def _stem(filename):
    return path.splitext(path.basename(filename))[0]


def _estimator_kwargs(args):
    kwargs = {'rmax': args.rmax}
    if args.correction is not None:
        kwargs['correction'] = args.correction
    if args.statistic == 'pcf':
        kwargs['bandwidth'] = args.bandwidth
    return kwargs


def cmd_avg_nn(args, filenames):
    rows, failed = [], 0
    for filename in filenames:
        try:
            pattern = _load(filename, args)
            ce = pattern.clark_evans() if pattern.dim == 2 else numpy.nan
            rows.append({'file': filename, 'npoints': len(pattern),
                         'avg_nn': pattern.mean_nearest_distance(),
                         'clark_evans': ce})
        except (PPAError, OSError) as exc:
            logger.error("%s: %s", filename, exc)
            failed += 1
    frame = pandas.DataFrame(rows,
                             columns=['file', 'npoints', 'avg_nn',
                                      'clark_evans'])
    _write(frame, args, 'avg-nn.csv')
    return 1 if failed else 0


def cmd_stat(args, filenames):
    kwargs = _estimator_kwargs(args)
    failed = 0
    for filename in filenames:
        try:
            pattern = _load(filename, args)
            curve = statistics.compute(pattern, args.statistic,
                                       rsamples=args.rsamples, **kwargs)
        except (PPAError, OSError) as exc:
            logger.error("%s: %s", filename, exc)
            failed += 1
            continue
        _write(curve.to_frame(), args,
               '{}_{}.csv'.format(_stem(filename), args.statistic))
    return 1 if failed else 0


def cmd_envelope(args, filenames):
    kwargs = _estimator_kwargs(args)
    failed = 0
    for filename in filenames:
        try:
            pattern = _load(filename, args)
            envelope = envelope_test(pattern, args.statistic,
                                     nsims=args.nsims, alpha=args.alpha,
                                     kind=args.kind, seed=args.seed,
                                     workers=args.workers, **kwargs)
        except (PPAError, OSError) as exc:
            logger.error("%s: %s", filename, exc)
            failed += 1
            continue
        logger.info("%s: %s p-value %.4g (%d simulations)", filename,
                    args.statistic, envelope.pvalue, envelope.nsims)
        _write(envelope.to_frame(), args,
               '{}_{}_envelope.csv'.format(_stem(filename), args.statistic))
    return 1 if failed else 0


def _add_estimator_args(parser):
    parser.add_argument(
        "-s", "--statistic",
        choices=STATISTICS,
        default='L',
        help="Summary characteristic (default: L)"
    )
    parser.add_argument(
        "-c", "--correction",
        choices=CORRECTIONS,
        help="Edge correction (default: depends on the statistic)"
    )
    parser.add_argument(
        "--rmax",
        type=float,
        help="Largest radius (default: a quarter of the shorter window side)"
    )
    parser.add_argument(
        "--bandwidth",
        type=parse_bandwidth,
        default='stoyan',
        help="Kernel bandwidth for pcf: 'stoyan', 'silverman' or a number "
             "(default: stoyan)"
    )


def build_parser():
    parser = argparse.ArgumentParser(
        prog="ppa",
        description="Point pattern analysis of delimited point files",
        epilog="A single argument that is not an option is read as an "
               "options file."
    )
    parser.add_argument(
        "-p", "--pattern",
        required=True,
        help="File search pattern. Must be quoted on Unix systems!"
    )
    parser.add_argument(
        "-o", "--output",
        metavar="PATH",
        help="Output file name prefix (default: write to stdout)"
    )
    parser.add_argument(
        "--columns",
        type=parse_columns,
        default=formats.COLUMNS,
        help="Comma-separated coordinate column names (default: X,Y)"
    )
    parser.add_argument(
        "--delimiter",
        default=formats.DELIMITER,
        help="Field delimiter (default: ;)"
    )
    parser.add_argument(
        "--no-data",
        default=formats.NO_DATA,
        help="Missing value marker (default: NA)"
    )
    parser.add_argument(
        "-w", "--window",
        type=parse_window,
        help="Window as xmin,xmax,ymin,ymax (rectangle), "
             "xmin,xmax,ymin,ymax,zmin,zmax (box) or x,y,radius (disc). "
             "Default: bounding box of each file's points"
    )
    parser.add_argument(
        "-v", "--verbose",
        action="count",
        default=0,
        help="Log progress (-v) or debug information (-vv)"
    )

    subparsers = parser.add_subparsers(
        title="commands",
        dest="command",
        metavar="<command>"
    )

    avg_nn_parser = subparsers.add_parser(
        "avg-nn",
        help="Average nearest neighbor distance of a set of points"
    )
    avg_nn_parser.set_defaults(func=cmd_avg_nn)

    stat_parser = subparsers.add_parser(
        "stat",
        help="Estimate a summary characteristic"
    )
    _add_estimator_args(stat_parser)
    stat_parser.add_argument(
        "--rsamples",
        type=int,
        default=statistics.RSAMPLES,
        help="Number of radii (default: {})".format(statistics.RSAMPLES)
    )
    stat_parser.set_defaults(func=cmd_stat)

    envelope_parser = subparsers.add_parser(
        "envelope",
        help="Test against complete spatial randomness with Monte Carlo "
             "envelopes"
    )
    _add_estimator_args(envelope_parser)
    envelope_parser.add_argument(
        "-n", "--nsims",
        type=int,
        default=99,
        help="Number of simulations (default: 99)"
    )
    envelope_parser.add_argument(
        "-a", "--alpha",
        type=float,
        default=0.05,
        help="Significance level (default: 0.05)"
    )
    envelope_parser.add_argument(
        "--kind",
        choices=KINDS,
        default='pointwise',
        help="Envelope kind (default: pointwise)"
    )
    envelope_parser.add_argument(
        "--seed",
        type=int,
        default=0,
        help="Random seed (default: 0)"
    )
    envelope_parser.add_argument(
        "--workers",
        type=int,
        help="Number of simulation threads"
    )
    envelope_parser.set_defaults(func=cmd_envelope)
    return parser


def main(argv=None):
    """Main entry point."""
    if argv is None:
        argv = sys.argv[1:]
    argv = list(argv)
    if (len(argv) == 1 and not argv[0].startswith('-') and
            argv[0] not in COMMANDS):
        try:
            argv = read_options_file(argv[0])
        except OSError as exc:
            print("ppa: cannot read options file {}: {}".format(argv[0], exc),
                  file=sys.stderr)
            return 2

    parser = build_parser()
    args = parser.parse_args(argv)

    level = {0: logging.WARNING, 1: logging.INFO}.get(args.verbose,
                                                     logging.DEBUG)
    logging.basicConfig(level=level,
                        format="%(levelname)s %(name)s: %(message)s")

    if args.command is None:
        parser.print_help()
        return 1

    filenames = sorted(glob.glob(args.pattern, recursive=True))
    if not filenames:
        logger.error("no files match %s", args.pattern)
        return 1
    logger.info("%d file(s) match %s", len(filenames), args.pattern)

    try:
        return args.func(args, filenames)
    except KeyboardInterrupt:
        print("\nInterrupted by user", file=sys.stderr)
        return 130


if __name__ == "__main__":
    sys.exit(main())
