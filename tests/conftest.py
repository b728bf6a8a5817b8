import numpy
import pytest

from ppa import PointPattern, PoissonProcess, Window, simulate


@pytest.fixture
def unit_square():
    return Window.rectangle(0.0, 1.0, 0.0, 1.0)


@pytest.fixture
def csr_pattern(unit_square):
    return simulate(unit_square, PoissonProcess(100.0), seed=42)


@pytest.fixture
def two_points():
    return PointPattern([(0.0, 0.0), (1.0, 0.0)],
                        Window.rectangle(0.0, 2.0, 0.0, 1.0))


@pytest.fixture
def lattice_pattern(unit_square):
    ticks = (numpy.arange(10) + 0.5) / 10.0
    xx, yy = numpy.meshgrid(ticks, ticks)
    return PointPattern(numpy.column_stack((xx.ravel(), yy.ravel())),
                        unit_square)


@pytest.fixture
def rng():
    return numpy.random.default_rng(1234)
