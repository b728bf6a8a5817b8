import numpy
import pytest

from ppa import PointPattern, Window
from ppa.errors import InvalidParameter
from ppa.simulation import (BinomialProcess, MaternCluster, PoissonProcess,
                            SimulationResult, ThomasCluster, generate,
                            sample_points, simulate, spawn_seeds)

PROCESSES = [
    PoissonProcess(50.0),
    BinomialProcess(25),
    MaternCluster(5.0, 0.1, 8.0),
    ThomasCluster(5.0, 0.05, 8.0),
]


@pytest.mark.parametrize('process', PROCESSES)
def test_deterministic(unit_square, process):
    first = simulate(unit_square, process, seed=11)
    second = simulate(unit_square, process, seed=11)
    assert isinstance(first, PointPattern)
    assert numpy.array_equal(first.points, second.points)
    third = simulate(unit_square, process, seed=12)
    assert not numpy.array_equal(first.points, third.points)


def test_binomial_count(unit_square):
    pattern = simulate(unit_square, BinomialProcess(37), seed=0)
    assert len(pattern) == 37
    assert len(simulate(unit_square, BinomialProcess(0), seed=0)) == 0


def test_poisson_count(unit_square):
    counts = [len(simulate(unit_square, PoissonProcess(100.0), seed=s))
              for s in range(20)]
    assert 85.0 < numpy.mean(counts) < 115.0


def test_cluster_intensity(unit_square):
    counts = [len(simulate(unit_square, MaternCluster(10.0, 0.05, 10.0),
                           seed=s))
              for s in range(20)]
    assert 70.0 < numpy.mean(counts) < 130.0


@pytest.mark.parametrize('window', [
    Window.disc((0.0, 0.0), 1.0),
    Window.polygon([(0, 0), (2, 0), (2, 2), (1, 1), (0, 2)]),
    Window.box(0, 1, 0, 1, 0, 1),
])
@pytest.mark.parametrize('process', PROCESSES)
def test_other_windows(window, process):
    pattern = simulate(window, process, seed=3)
    assert pattern.window == window
    assert pattern.points.shape[1] == window.dim
    assert numpy.all(window.contains(pattern.points))


@pytest.mark.parametrize('args', [
    (PoissonProcess, (0.0,)),
    (PoissonProcess, (-1.0,)),
    (PoissonProcess, (numpy.inf,)),
    (BinomialProcess, (-1,)),
    (BinomialProcess, (2.5,)),
    (MaternCluster, (1.0, 0.0, 1.0)),
    (ThomasCluster, (1.0, 0.1, -2.0)),
])
def test_invalid_parameters(args):
    cls, params = args
    with pytest.raises(InvalidParameter):
        cls(*params)


def test_seed_required(unit_square):
    with pytest.raises(InvalidParameter):
        simulate(unit_square, PoissonProcess(10.0), seed=None)


def test_generator_seed(unit_square):
    rng = numpy.random.default_rng(5)
    first = simulate(unit_square, BinomialProcess(5), seed=rng)
    second = simulate(unit_square, BinomialProcess(5), seed=rng)
    assert not numpy.array_equal(first.points, second.points)


def test_generate(unit_square):
    process = PoissonProcess(20.0)
    result = generate(unit_square, process, seed=4)
    assert isinstance(result, SimulationResult)
    assert result.process == process
    assert result.seed == 4
    assert numpy.array_equal(result.pattern.points,
                             simulate(unit_square, process, seed=4).points)


def test_unknown_process(unit_square, rng):
    with pytest.raises(InvalidParameter):
        sample_points(unit_square, ('poisson', 10.0), rng)


def test_spawn_seeds():
    seeds = spawn_seeds(8, 3)
    assert len(seeds) == 3
    again = spawn_seeds(numpy.random.SeedSequence(8), 3)
    for (a, b) in zip(seeds, again):
        assert numpy.array_equal(a.generate_state(4), b.generate_state(4))
    with pytest.raises(InvalidParameter):
        spawn_seeds('8', 3)


def test_reach():
    assert MaternCluster(1.0, 0.2, 3.0).reach == 0.2
    assert ThomasCluster(1.0, 0.1, 3.0).reach == pytest.approx(0.4)
