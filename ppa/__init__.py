"""
ppa: point pattern analysis

Windows, point patterns, distance-based summary characteristics (G, F, K, L
and the pair correlation function) with edge correction, simulation of
reference point processes, and Monte Carlo envelope tests.

"""

import logging

from .collection import BatchResult, PointPatternCollection
from .curves import Envelope, FunctionCurve
from .edgecorrection import correction_weight, pair_weights
from .envelopes import envelope_test
from .errors import (FormatError, GeometryError, InsufficientPoints,
                     InvalidGeometry, InvalidParameter, NumericInstability,
                     PointOutsideWindow, PPAError, SimulationCancelled,
                     StatError)
from .formats import (PointCollection, read_pattern, read_points,
                      write_curve, write_envelope, write_pattern)
from .geometry import Box, Disc, Polygon, Rectangle, Window
from .index import GridIndex
from .pointpatterns import PointPattern
from .simulation import (BinomialProcess, MaternCluster, PoissonProcess,
                         SimulationResult, ThomasCluster, generate, simulate)
from .statistics import (compute, compute_f, compute_g, compute_k, compute_l,
                         compute_pcf)

logging.getLogger(__name__).addHandler(logging.NullHandler())

__version__ = '0.1.0'
