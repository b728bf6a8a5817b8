import threading

import numpy
import pytest

from ppa import Envelope, PointPattern, Window, envelope_test, simulate
from ppa.errors import (InsufficientPoints, InvalidParameter,
                        SimulationCancelled)
from ppa.simulation import BinomialProcess, PoissonProcess, ThomasCluster
from ppa.statistics import compute_k


class CountingSignal(object):
    """Cancellation signal that turns on after a number of checks"""

    def __init__(self, after):
        self.after = after
        self.calls = 0
        self._lock = threading.Lock()

    def is_set(self):
        with self._lock:
            self.calls += 1
            return self.calls > self.after


@pytest.fixture
def clustered(unit_square):
    return simulate(unit_square, ThomasCluster(10.0, 0.02, 10.0), seed=7)


class TestArguments:
    @pytest.mark.parametrize('kwargs', [
        {'nsims': 0},
        {'nsims': 2.5},
        {'alpha': 0.0},
        {'alpha': 1.0},
        {'kind': 'band'},
    ])
    def test_invalid(self, csr_pattern, kwargs):
        with pytest.raises(InvalidParameter):
            envelope_test(csr_pattern, 'L', **kwargs)

    def test_unknown_statistic(self, csr_pattern):
        with pytest.raises(InvalidParameter):
            envelope_test(csr_pattern, 'J', nsims=5)

    def test_no_radii(self, csr_pattern):
        with pytest.raises(InvalidParameter):
            envelope_test(csr_pattern, 'pcf', nsims=5, radii=[0.0])


class TestEnvelope:
    def test_result(self, csr_pattern):
        envelope = envelope_test(csr_pattern, 'L', nsims=19, seed=3)
        assert isinstance(envelope, Envelope)
        assert envelope.nsims == 19
        assert envelope.nfailed == 0
        assert envelope.statistic == 'L'
        assert len(envelope) == 49
        assert envelope.curve.values.tolist() == envelope.observed.tolist()
        assert numpy.all(envelope.lower <= envelope.upper)
        assert 1.0 / 20.0 <= envelope.pvalue <= 1.0
        pvalues = envelope.pvalues
        assert numpy.all((pvalues >= 1.0 / 20.0) & (pvalues <= 1.0))
        frame = envelope.to_frame()
        assert list(frame.columns) == ['r', 'observed', 'lower', 'upper',
                                       'mean', 'pvalue']

    def test_global_bounds(self, csr_pattern):
        pointwise = envelope_test(csr_pattern, 'K', nsims=19, seed=3)
        extreme = envelope_test(csr_pattern, 'K', nsims=19, seed=3,
                                kind='global')
        assert numpy.all(extreme.lower <= pointwise.lower + 1e-12)
        assert numpy.all(extreme.upper >= pointwise.upper - 1e-12)
        assert extreme.pvalue == pointwise.pvalue

    def test_workers_do_not_change_result(self, csr_pattern):
        sequential = envelope_test(csr_pattern, 'L', nsims=12, seed=9,
                                   workers=1)
        threaded = envelope_test(csr_pattern, 'L', nsims=12, seed=9,
                                 workers=4)
        numpy.testing.assert_array_equal(sequential.lower, threaded.lower)
        numpy.testing.assert_array_equal(sequential.upper, threaded.upper)
        numpy.testing.assert_array_equal(sequential.pvalues,
                                         threaded.pvalues)
        assert sequential.pvalue == threaded.pvalue

    def test_clustered_rejected(self, clustered):
        envelope = envelope_test(clustered, 'L', nsims=99, seed=1)
        assert envelope.pvalue <= 0.05
        assert numpy.any(envelope.outside())

    def test_csr_accepted(self, unit_square):
        accepted = 0
        for seed in range(10):
            pattern = simulate(unit_square, PoissonProcess(100.0),
                               seed=100 + seed)
            envelope = envelope_test(pattern, 'L', nsims=19, seed=seed,
                                     kind='global')
            accepted += envelope.pvalue > 0.05
        assert accepted >= 7

    def test_estimator_arguments(self, csr_pattern):
        envelope = envelope_test(csr_pattern, 'pcf', nsims=5,
                                 correction='isotropic', bandwidth=0.02,
                                 radii=numpy.arange(1, 11) * 0.01)
        assert len(envelope) == 10
        assert envelope.statistic == 'pcf'

    def test_custom_process_and_window(self):
        window = Window.disc((0.0, 0.0), 1.0)
        pattern = simulate(window, BinomialProcess(60), seed=2)
        envelope = envelope_test(pattern, 'G', process=BinomialProcess(60),
                                 nsims=9, seed=2)
        assert envelope.nsims == 9


class TestFailures:
    def test_partial_failures(self, csr_pattern):
        envelope = envelope_test(csr_pattern, 'G',
                                 process=PoissonProcess(1.0), nsims=30)
        assert envelope.nfailed > 0
        assert envelope.nsims + envelope.nfailed == 30

    def test_all_failed(self, csr_pattern):
        with pytest.raises(InsufficientPoints):
            envelope_test(csr_pattern, 'G', process=BinomialProcess(1),
                          nsims=10)

    def test_truncated_curves_padded(self, csr_pattern):
        radii = [0.0, 0.1, 0.2, 0.3, 0.45, 0.49]
        envelope = envelope_test(csr_pattern, 'K', correction='border',
                                 process=BinomialProcess(3), nsims=20,
                                 radii=radii)
        assert envelope.nsims == 20
        assert envelope.r[:4].tolist() == radii[:4]
        assert len(envelope) <= len(radii)
        for values in (envelope.observed, envelope.lower, envelope.upper,
                       envelope.mean, envelope.pvalues):
            assert numpy.all(numpy.isfinite(values))
        pvalues = envelope.pvalues
        assert numpy.all((pvalues >= 1.0 / 21.0) & (pvalues <= 1.0))
        expected = compute_k(csr_pattern, radii=envelope.r,
                             correction='border')
        numpy.testing.assert_allclose(envelope.observed, expected.values)

    def test_unreached_radii_dropped(self):
        # Both points lie on the midline, exactly 1 from the boundary, where
        # uniformly simulated points almost surely never fall
        window = Window.rectangle(0.0, 4.0, 0.0, 2.0)
        pattern = PointPattern([(1.5, 1.0), (2.5, 1.0)], window)
        envelope = envelope_test(pattern, 'K', correction='border',
                                 process=BinomialProcess(2), nsims=20,
                                 radii=[0.0, 0.5, 1.0])
        assert envelope.r.tolist() == [0.0, 0.5]
        assert envelope.observed.tolist() == [0.0, 0.0]
        assert numpy.all(numpy.isfinite(envelope.pvalues))
        assert 1.0 / 21.0 <= envelope.pvalue <= 1.0


class TestCancellation:
    @pytest.mark.parametrize('workers', [None, 4])
    def test_cancelled_before_start(self, csr_pattern, workers):
        cancel = threading.Event()
        cancel.set()
        with pytest.raises(SimulationCancelled) as excinfo:
            envelope_test(csr_pattern, 'L', nsims=10, cancel=cancel,
                          workers=workers)
        assert excinfo.value.completed == 0

    def test_cancelled_midway(self, csr_pattern):
        with pytest.raises(SimulationCancelled) as excinfo:
            envelope_test(csr_pattern, 'L', nsims=10,
                          cancel=CountingSignal(3))
        assert excinfo.value.completed == 3

    def test_cancelled_on_pool(self, csr_pattern):
        with pytest.raises(SimulationCancelled) as excinfo:
            envelope_test(csr_pattern, 'L', nsims=20, workers=2,
                          cancel=CountingSignal(5))
        assert excinfo.value.completed == 5

    def test_unset_signal(self, csr_pattern):
        envelope = envelope_test(csr_pattern, 'L', nsims=4,
                                 cancel=threading.Event())
        assert envelope.nsims == 4
