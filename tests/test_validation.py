"""Tests for the dataset validation pass."""

import json

import numpy as np
import pytest

from adaptsr.core.config import ResampleConfig
from adaptsr.core.errors import ValidationError, ShapeMismatchError, NumericalAnomalyError
from adaptsr.core.generator import generate_dataset
from adaptsr.core.serializer import read_field, write_field
from adaptsr.core.validation import validate_dataset, validate_sample


@pytest.fixture
def dataset(gen_config):
    generate_dataset(gen_config, ResampleConfig(scale=4), verbose=False)
    return gen_config.output_dir


def _metadata(dataset):
    return json.loads((dataset / 'metadata.json').read_text())


def test_generated_dataset_is_valid(dataset):
    report = validate_dataset(dataset, reconstruct=True, verbose=False)
    assert report['samples'] == 3
    assert report['fields']['Y']['files'] == 3
    assert report['fields']['offset']['min'] >= -0.5
    assert report['fields']['offset']['max'] < 0.5


def test_patches_dataset_is_valid(hr_dir, tmp_path):
    from adaptsr.core.config import GeneratorConfig
    gen_config = GeneratorConfig(hr_dir=hr_dir, output_dir=tmp_path / 'p', mode='patches')
    generate_dataset(gen_config, ResampleConfig(scale=4), verbose=False)
    report = validate_dataset(tmp_path / 'p', verbose=False)
    assert set(report['fields']) == {'X', 'Y', 'weight'}


def test_selected_ids(dataset):
    assert validate_dataset(dataset, sample_ids=['step'], verbose=False)['samples'] == 1
    with pytest.raises(KeyError):
        validate_dataset(dataset, sample_ids=['nope'], verbose=False)


def test_missing_metadata(tmp_path):
    with pytest.raises(FileNotFoundError):
        validate_dataset(tmp_path, verbose=False)


def test_missing_file(dataset):
    (dataset / 'offset' / 'mixed.bin').unlink()
    with pytest.raises(ValidationError) as info:
        validate_dataset(dataset, verbose=False)
    assert info.value.check == 'exists'


def test_header_disagrees_with_metadata(dataset):
    meta = _metadata(dataset)
    meta['step']['H_sr'] = 44
    (dataset / 'metadata.json').write_text(json.dumps(meta))
    with pytest.raises(ShapeMismatchError) as info:
        validate_sample(dataset, 'step', meta['step'])
    assert info.value.check == 'metadata_shape'


def test_truncated_file(dataset):
    path = dataset / 'Y' / 'gradient.bin'
    path.write_bytes(path.read_bytes()[:-8])
    with pytest.raises(ShapeMismatchError) as info:
        validate_dataset(dataset, verbose=False)
    assert info.value.check == 'byte_length'


def test_bad_weight_sums(dataset):
    path = dataset / 'weight' / 'mixed.bin'
    weights = read_field(path).copy()
    weights[3, 4] *= 1.01
    write_field(path, weights)
    with pytest.raises(NumericalAnomalyError) as info:
        validate_dataset(dataset, verbose=False)
    assert info.value.check == 'weight_sum'
    assert info.value.sample_id == 'mixed'
    assert info.value.location == (3, 4)


def test_offsets_out_of_range(dataset):
    path = dataset / 'offset' / 'step.bin'
    offsets = read_field(path).copy()
    offsets[0, 0, 0] = 0.75
    write_field(path, offsets)
    with pytest.raises(NumericalAnomalyError) as info:
        validate_dataset(dataset, verbose=False)
    assert info.value.check == 'offset_range'


def test_nan_in_lr_image(dataset):
    path = dataset / 'X' / 'gradient.bin'
    lr = read_field(path).copy()
    lr[2, 2, 1] = np.nan
    write_field(path, lr)
    with pytest.raises(NumericalAnomalyError) as info:
        validate_dataset(dataset, verbose=False)
    assert info.value.check == 'finite'


def test_reconstruction_catches_misordered_weights(dataset):
    # Reversed vectors still sum to 1 but point at the wrong neighbors
    path = dataset / 'Y' / 'step.bin'
    write_field(path, read_field(path)[..., ::-1])
    validate_dataset(dataset, verbose=False)
    with pytest.raises(NumericalAnomalyError) as info:
        validate_dataset(dataset, reconstruct=True, verbose=False)
    assert info.value.check == 'reconstruction'


def test_summary_printed(dataset, capsys):
    validate_dataset(dataset, verbose=True)
    out = capsys.readouterr().out
    assert 'Validated 3 sample(s)' in out
    assert 'offset' in out
