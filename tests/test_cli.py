"""End-to-end tests for the command-line interface."""

import numpy as np

from adaptsr.core.cli import main
from adaptsr.core.imageio import load_image
from adaptsr.core.serializer import read_field, write_field


def test_no_command_prints_help(capsys):
    assert main([]) == 0
    assert 'usage' in capsys.readouterr().out.lower()


def test_methods(capsys):
    assert main(['methods', '-v']) == 0
    out = capsys.readouterr().out
    for name in ['nearest', 'bilinear', 'bicubic', 'lanczos', 'adaptive_bicubic']:
        assert name in out


def test_synthetic_generate_validate(tmp_path, capsys):
    hr = tmp_path / 'hr'
    data = tmp_path / 'data'
    assert main(['synthetic', '-o', str(hr), '--size', '32']) == 0
    assert len(list(hr.glob('*.png'))) == 8

    assert main(['generate', str(hr), '-o', str(data), '--scale', '4', '-q']) == 0
    assert read_field(data / 'Y' / 'mixed.bin').shape == (32, 32, 16)

    assert main(['validate', str(data), '--reconstruct']) == 0
    assert 'Validation passed' in capsys.readouterr().out

    path = data / 'Y' / 'noise.bin'
    weights = read_field(path).copy()
    weights[0, 0, 0] = np.nan
    write_field(path, weights)
    assert main(['validate', str(data), '-q']) == 1
    assert 'Validation failed' in capsys.readouterr().out


def test_generate_patches_lanczos(tmp_path):
    hr = tmp_path / 'hr'
    main(['synthetic', '-o', str(hr), '--size', '32'])
    data = tmp_path / 'data'
    assert main(['generate', str(hr), '-o', str(data), '--kernel', 'lanczos',
                 '--window-radius', '2', '--mode', 'patches', '--convention', 'corner', '-q']) == 0
    assert read_field(data / 'X' / 'sine_waves.bin').shape == (32, 32, 16 * 4 + 2)
    assert main(['validate', str(data), '-q']) == 0


def test_generate_errors(tmp_path):
    assert main(['generate', str(tmp_path / 'missing'), '-o', str(tmp_path / 'o')]) == 1
    assert main(['generate', str(tmp_path), '-o', str(tmp_path / 'o'), '--scale', '2.5']) == 1


def test_validate_missing_dataset(tmp_path):
    assert main(['validate', str(tmp_path)]) == 1


def test_downsample_rebuild_compare(tmp_path, capsys):
    hr = tmp_path / 'hr'
    lr = tmp_path / 'lr'
    rebuilt = tmp_path / 'rebuilt'
    main(['synthetic', '-o', str(hr), '--size', '32'])

    assert main(['downsample', str(hr), '-o', str(lr), '--scale', '4']) == 0
    assert load_image(lr / 'mixed.png').shape == (8, 8, 4)

    assert main(['rebuild', str(lr / 'mixed.png'), '-o', str(rebuilt), '--scale', '4',
                 '-m', 'bicubic', 'adaptive_bicubic']) == 0
    assert load_image(rebuilt / 'mixed' / 'bicubic.png').shape == (32, 32, 4)
    assert (rebuilt / 'mixed' / 'adaptive_bicubic.png').exists()

    capsys.readouterr()
    assert main(['compare', str(hr / 'mixed.png'),
                 str(rebuilt / 'mixed' / 'bicubic.png'),
                 str(rebuilt / 'mixed' / 'adaptive_bicubic.png'),
                 '--diff-dir', str(tmp_path / 'diff')]) == 0
    out = capsys.readouterr().out
    assert 'mixed/bicubic.png' in out
    assert len(list((tmp_path / 'diff').glob('*.png'))) == 2

    # LR vs HR sizes differ
    assert main(['compare', str(hr / 'mixed.png'), str(lr / 'mixed.png')]) == 1


def test_rebuild_unknown_method(tmp_path):
    assert main(['rebuild', str(tmp_path), '-o', str(tmp_path / 'o'), '-m', 'sinc']) == 1
