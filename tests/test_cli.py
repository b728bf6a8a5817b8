import argparse

import pandas
import pytest

from ppa.cli import (bounding_window, build_parser, main, parse_bandwidth,
                     parse_columns, parse_window, read_options_file)
from ppa.errors import InvalidGeometry
from ppa.formats import write_pattern
from ppa.geometry import Box, Disc, Rectangle


@pytest.fixture
def data_dir(tmp_path, csr_pattern, lattice_pattern):
    directory = tmp_path / 'data'
    directory.mkdir()
    write_pattern(csr_pattern, str(directory / 'random.csv'))
    write_pattern(lattice_pattern, str(directory / 'lattice.csv'))
    return directory


def test_avg_nn_to_stdout(data_dir, capsys):
    status = main(['--pattern', str(data_dir / '*.csv'), 'avg-nn'])
    assert status == 0
    lines = capsys.readouterr().out.splitlines()
    assert lines[0] == 'file;npoints;avg_nn;clark_evans'
    assert len(lines) == 3
    # Files are processed in sorted order
    assert lines[1].startswith(str(data_dir / 'lattice.csv'))
    assert lines[1].split(';')[1] == '100'


def test_stat_to_files(data_dir, tmp_path):
    prefix = str(tmp_path / 'out_')
    status = main(['-p', str(data_dir / '*.csv'), '-o', prefix,
                   '-w', '0,1,0,1', 'stat', '-s', 'K', '-c', 'translation',
                   '--rsamples', '11'])
    assert status == 0
    frame = pandas.read_csv(prefix + 'random_K.csv', sep=';')
    assert list(frame.columns) == ['r', 'K']
    assert len(frame) == 11
    assert (tmp_path / 'out_lattice_K.csv').exists()


def test_pcf_bandwidth_option(data_dir, tmp_path):
    prefix = str(tmp_path / 'out_')
    status = main(['-p', str(data_dir / 'random.csv'), '-o', prefix,
                   '-w', '0,1,0,1', 'stat', '-s', 'pcf',
                   '--bandwidth', '0.02'])
    assert status == 0
    frame = pandas.read_csv(prefix + 'random_pcf.csv', sep=';')
    assert list(frame.columns) == ['r', 'pcf']


def test_envelope(data_dir, tmp_path):
    prefix = str(tmp_path / 'out_')
    status = main(['-p', str(data_dir / 'random.csv'), '-o', prefix,
                   '-w', '0,1,0,1', 'envelope', '-s', 'L', '-n', '5',
                   '--seed', '1', '--kind', 'global'])
    assert status == 0
    frame = pandas.read_csv(prefix + 'random_L_envelope.csv', sep=';')
    assert list(frame.columns) == ['r', 'observed', 'lower', 'upper',
                                   'mean', 'pvalue']
    assert (frame['lower'] <= frame['upper']).all()


def test_options_file(data_dir, tmp_path, capsys):
    options = tmp_path / 'options.txt'
    options.write_text('--pattern "{}"\n--delimiter ;\navg-nn\n'
                       .format(data_dir / 'random.csv'))
    assert read_options_file(str(options)) == [
        '--pattern', str(data_dir / 'random.csv'), '--delimiter', ';',
        'avg-nn']
    assert main([str(options)]) == 0
    assert len(capsys.readouterr().out.splitlines()) == 2


def test_missing_options_file(tmp_path):
    assert main([str(tmp_path / 'missing.txt')]) == 2


def test_no_match(tmp_path):
    assert main(['-p', str(tmp_path / '*.csv'), 'avg-nn']) == 1


def test_no_command(data_dir, capsys):
    assert main(['-p', str(data_dir / '*.csv')]) == 1
    assert 'usage' in capsys.readouterr().out


def test_failing_file_reported(data_dir, tmp_path, capsys):
    (data_dir / 'broken.csv').write_text("A;B\n1;2\n")
    status = main(['-p', str(data_dir / '*.csv'), 'avg-nn'])
    assert status == 1
    lines = capsys.readouterr().out.splitlines()
    assert len(lines) == 3


def test_parse_window():
    assert isinstance(parse_window('0,1,0,2'), Rectangle)
    assert isinstance(parse_window('0,1,0,1,0,1'), Box)
    disc = parse_window('1,1,0.5')
    assert isinstance(disc, Disc)
    assert disc.radius == 0.5
    for bad in ('1,2', 'a,b,c,d', '1,0,0,1', '0,0,0'):
        with pytest.raises(argparse.ArgumentTypeError):
            parse_window(bad)


def test_parse_columns_and_bandwidth():
    assert parse_columns('lon, lat') == ('lon', 'lat')
    with pytest.raises(argparse.ArgumentTypeError):
        parse_columns('X')
    assert parse_bandwidth('Silverman') == 'silverman'
    assert parse_bandwidth('0.5') == 0.5
    for bad in ('-1', 'scott'):
        with pytest.raises(argparse.ArgumentTypeError):
            parse_bandwidth(bad)


def test_bounding_window():
    window = bounding_window([(0.0, 1.0), (2.0, 3.0)])
    assert window == Rectangle(0.0, 2.0, 1.0, 3.0)
    with pytest.raises(InvalidGeometry):
        bounding_window([])


def test_parser_defaults():
    args = build_parser().parse_args(['-p', 'x.csv', 'envelope'])
    assert args.statistic == 'L'
    assert args.nsims == 99
    assert args.alpha == 0.05
    assert args.kind == 'pointwise'
    assert args.bandwidth == 'stoyan'
    assert args.columns == ('X', 'Y')
