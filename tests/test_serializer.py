"""Tests for the binary field serializer."""

import struct

import numpy as np
import pytest

from adaptsr.core.errors import MalformedInputError, ShapeMismatchError, NumericalAnomalyError
from adaptsr.core.serializer import (
    HEADER_BYTES,
    FieldStreamWriter,
    read_field,
    read_header,
    write_field,
    write_fields,
)


def test_write_read_bit_identical(tmp_path, rng):
    field = rng.standard_normal((7, 5, 3)).astype(np.float32)
    path = write_field(tmp_path / 'f.bin', field)
    data = read_field(path)
    assert data.dtype == np.float32
    assert data.shape == field.shape
    assert data.tobytes() == field.tobytes()


def test_header_layout(tmp_path):
    path = write_field(tmp_path / 'sub' / 'f.bin', np.zeros((3, 4, 2)))
    raw = path.read_bytes()
    assert struct.unpack('<III', raw[:12]) == (3, 4, 2)
    assert len(raw) == HEADER_BYTES + 3 * 4 * 2 * 4
    assert read_header(path).shape == (3, 4, 2)


def test_two_dimensional_field_gets_one_channel(tmp_path):
    path = write_field(tmp_path / 'f.bin', np.ones((2, 3)))
    assert read_field(path).shape == (2, 3, 1)


def test_truncated_payload(tmp_path):
    path = write_field(tmp_path / 'f.bin', np.zeros((4, 4, 2)))
    path.write_bytes(path.read_bytes()[:-4])
    with pytest.raises(ShapeMismatchError) as info:
        read_field(path)
    assert info.value.check == 'byte_length'
    assert info.value.path == path


def test_short_header(tmp_path):
    path = tmp_path / 'f.bin'
    path.write_bytes(b'\x01\x00\x00')
    with pytest.raises(ShapeMismatchError) as info:
        read_field(path)
    assert info.value.check == 'header'


def test_empty_file(tmp_path):
    path = tmp_path / 'f.bin'
    path.write_bytes(b'')
    with pytest.raises(MalformedInputError):
        read_field(path)


def test_channel_mismatch(tmp_path):
    path = write_field(tmp_path / 'f.bin', np.full((2, 2, 4), 0.25))
    with pytest.raises(ShapeMismatchError) as info:
        read_field(path, expected_channels=16)
    assert info.value.check == 'channels'


def test_non_finite_rejected(tmp_path):
    field = np.zeros((3, 3, 2), dtype=np.float32)
    field[1, 2, 0] = np.nan
    path = write_field(tmp_path / '0007.bin', field)
    with pytest.raises(NumericalAnomalyError) as info:
        read_field(path)
    assert info.value.check == 'finite'
    assert info.value.sample_id == '0007'
    assert info.value.location == (1, 2, 0)


def test_weight_sums(tmp_path):
    good = np.full((2, 3, 16), 1.0 / 16)
    read_field(write_field(tmp_path / 'good.bin', good), weight_field=True)

    bad = good.copy()
    bad[1, 1, 0] += 1e-3
    path = write_field(tmp_path / 'bad.bin', bad)
    # Only weight fields are checked
    read_field(path)
    with pytest.raises(NumericalAnomalyError) as info:
        read_field(path, weight_field=True)
    assert info.value.check == 'weight_sum'
    assert info.value.location == (1, 1)


def test_validate_off_skips_checks(tmp_path):
    field = np.full((1, 1, 2), np.inf)
    data = read_field(write_field(tmp_path / 'f.bin', field), validate=False)
    assert np.isinf(data).all()


class TestStreamWriter:
    def test_streams_same_layout(self, tmp_path, rng):
        records = rng.random((12, 66)).astype(np.float32)
        path = tmp_path / 'X' / 'a.bin'
        with FieldStreamWriter(path, (3, 4, 66)) as writer:
            writer.write(records[:5])
            writer.write(records[5:])
        assert not (tmp_path / 'X' / 'a.bin.tmp').exists()
        data = read_field(path)
        assert data.shape == (3, 4, 66)
        np.testing.assert_array_equal(data.reshape(12, 66), records)
        assert path.read_bytes() == write_field(tmp_path / 'b.bin', records.reshape(3, 4, 66)).read_bytes()

    def test_short_stream_leaves_no_file(self, tmp_path):
        path = tmp_path / 'a.bin'
        with pytest.raises(ShapeMismatchError) as info:
            with FieldStreamWriter(path, (2, 2, 3)) as writer:
                writer.write(np.zeros((3, 3)))
        assert info.value.check == 'record_count'
        assert not path.exists()
        assert not (tmp_path / 'a.bin.tmp').exists()

    def test_overflow_rejected(self, tmp_path):
        path = tmp_path / 'a.bin'
        with pytest.raises(ShapeMismatchError):
            with FieldStreamWriter(path, (1, 2, 3)) as writer:
                writer.write(np.zeros((3, 3)))
        assert not path.exists()

    def test_error_inside_block_aborts(self, tmp_path):
        path = tmp_path / 'a.bin'
        with pytest.raises(RuntimeError):
            with FieldStreamWriter(path, (1, 1, 2)) as writer:
                writer.write(np.zeros((1, 2)))
                raise RuntimeError("boom")
        assert not path.exists()
        assert not (tmp_path / 'a.bin.tmp').exists()

    def test_write_requires_open(self, tmp_path):
        with pytest.raises(RuntimeError):
            FieldStreamWriter(tmp_path / 'a.bin', (1, 1, 1)).write(np.zeros(1))

    def test_close_requires_open(self, tmp_path):
        with pytest.raises(RuntimeError):
            FieldStreamWriter(tmp_path / 'a.bin', (1, 1, 1)).close()

    def test_double_close(self, tmp_path):
        writer = FieldStreamWriter(tmp_path / 'a.bin', (1, 1, 1)).open()
        writer.write(np.zeros(1))
        assert writer.close() == tmp_path / 'a.bin'
        with pytest.raises(RuntimeError):
            writer.close()
        assert read_field(tmp_path / 'a.bin').shape == (1, 1, 1)


class TestWriteFields:
    def test_all_fields_land(self, tmp_path, rng):
        a, b = rng.random((2, 3, 4)), rng.random((2, 3, 2))
        paths = write_fields({tmp_path / 'X' / 's.bin': a, tmp_path / 'offset' / 's.bin': b})
        assert paths == [tmp_path / 'X' / 's.bin', tmp_path / 'offset' / 's.bin']
        np.testing.assert_array_equal(read_field(paths[1]), b.astype(np.float32))
        assert not list(tmp_path.glob('*/*.tmp'))

    def test_failure_writes_nothing(self, tmp_path, rng):
        good = rng.random((2, 3, 4))
        with pytest.raises(ValueError):
            write_fields({
                tmp_path / 'X' / 's.bin': good,
                tmp_path / 'Y' / 's.bin': np.zeros((2, 3, 4, 5)),
            })
        assert not (tmp_path / 'X' / 's.bin').exists()
        assert not list(tmp_path.glob('*/*'))
