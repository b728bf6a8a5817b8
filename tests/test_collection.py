import numpy
import pytest

from ppa import (BatchResult, FunctionCurve, PointPattern,
                 PointPatternCollection, Window)
from ppa.errors import InsufficientPoints, InvalidParameter
from ppa.simulation import PoissonProcess


@pytest.fixture
def collection(unit_square):
    return PointPatternCollection.from_simulation(5, unit_square,
                                                  PoissonProcess(50.0),
                                                  seed=2)


def test_from_simulation(collection, unit_square):
    assert len(collection) == 5
    assert all(pp.window == unit_square for pp in collection)
    again = PointPatternCollection.from_simulation(5, unit_square,
                                                   PoissonProcess(50.0),
                                                   seed=2)
    for (a, b) in zip(collection, again):
        assert numpy.array_equal(a.points, b.points)


def test_counts(collection):
    assert collection.npoints == sum(len(pp) for pp in collection)
    assert sum(collection.nweights()) == pytest.approx(1.0)


def test_rmax(unit_square):
    small = PointPattern([(0.1, 0.1), (0.2, 0.2)],
                         Window.rectangle(0.0, 0.4, 0.0, 1.0))
    large = PointPattern([(0.1, 0.1), (0.2, 0.2)], unit_square)
    assert PointPatternCollection([small, large]).rmax() == \
        pytest.approx(0.1)
    with pytest.raises(InvalidParameter):
        PointPatternCollection([]).rmax()


def test_invalid_members():
    with pytest.raises(InvalidParameter):
        PointPatternCollection([[(0.0, 0.0)]])
    with pytest.raises(InvalidParameter):
        PointPatternCollection.from_simulation(-1, Window.rectangle(0, 1, 0,
                                                                    1),
                                               PoissonProcess(1.0))


def test_compute_with_failures(collection, unit_square):
    single = PointPattern([(0.5, 0.5)], unit_square)
    mixed = PointPatternCollection(list(collection) + [single])
    result = mixed.compute('K')
    assert isinstance(result, BatchResult)
    assert not result.ok
    assert sorted(result.curves) == [0, 1, 2, 3, 4]
    assert isinstance(result.failures[5], InsufficientPoints)
    assert all(isinstance(c, FunctionCurve) for c in result.curves.values())

    frame = mixed.frame('K')
    assert frame.shape == (6, 49)
    assert frame.iloc[5].isna().all()
    assert not frame.iloc[:5].isna().any().any()


def test_mean(collection):
    curve = collection.mean('L', radii=[0.0, 0.05, 0.1])
    assert curve.statistic == 'L'
    assert curve.r.tolist() == [0.0, 0.05, 0.1]
    frame = collection.frame('L', radii=[0.0, 0.05, 0.1])
    assert curve.values == pytest.approx(frame.mean(axis=0).to_numpy())


def test_critical(collection):
    lower = collection.critical('K', 0.1, radii=[0.05, 0.1])
    upper = collection.critical('K', 0.9, radii=[0.05, 0.1])
    assert list(lower.index) == [0.05, 0.1]
    assert numpy.all(lower.to_numpy() <= upper.to_numpy())
    with pytest.raises(InvalidParameter):
        collection.critical('K', 1.5)
