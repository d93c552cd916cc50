"""Shared fixtures for the adaptsr test-suite."""

import numpy as np
import pytest

from adaptsr.core.config import ResampleConfig, GeneratorConfig
from adaptsr.core.imageio import save_image
from adaptsr.core.synthetic import generate_mixed, generate_step_edge, generate_gradient


@pytest.fixture
def rng():
    return np.random.default_rng(1234)


@pytest.fixture
def corner_config():
    return ResampleConfig(scale=4, convention='corner')


@pytest.fixture
def center_config():
    return ResampleConfig(scale=4, convention='center')


@pytest.fixture
def lr_image(rng):
    """10x10 RGBA float LR image in [0, 1]."""
    image = rng.random((10, 10, 4))
    image[..., 3] = 1.0
    return image


@pytest.fixture
def hr_dir(tmp_path):
    """Directory with three 40x40 synthetic HR images."""
    directory = tmp_path / 'hr'
    directory.mkdir()
    save_image(directory / 'mixed.png', generate_mixed((40, 40), seed=7))
    save_image(directory / 'step.png', generate_step_edge((40, 40)))
    save_image(directory / 'gradient.png', generate_gradient((40, 40)))
    return directory


@pytest.fixture
def gen_config(hr_dir, tmp_path):
    return GeneratorConfig(hr_dir=hr_dir, output_dir=tmp_path / 'dataset')
