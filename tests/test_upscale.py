from pathlib import Path

import numpy as np
import pytest

from data_prep import read_image, write_image
from sr_patches import QUAD_PATTERN, block_pattern
from upscale import apply, apply_passes, destination, output_path, source, upscale_file

from conftest import RecordingModel, gradient_image


def checkerboard(size=4):
    a = np.array([0.0, 0.0, 1.0], dtype=np.float32)
    b = np.array([1.0, 1.0, 0.0], dtype=np.float32)
    img = np.empty((size, size, 3), dtype=np.float32)
    for y in range(size):
        for x in range(size):
            img[y, x] = a if (x + y) % 2 == 0 else b
    return img


@pytest.mark.parametrize("scale", [2, 4])
def test_destination_maps_back_to_anchor(scale):
    for y in range(1, 6):
        for x in range(1, 6):
            for offset in block_pattern(scale):
                assert source(destination((x, y), offset, scale), scale) == (x, y)


def test_one_pixel_image(recording_model):
    img = np.array([[[0.2, 0.4, 0.6]]], dtype=np.float32)
    out = apply(img, recording_model)

    assert out.shape == (2, 2, 3)
    assert len(recording_model.inputs) == 1
    patch = recording_model.inputs[0]
    # no neighbours exist: everything around the center is fill
    np.testing.assert_array_equal(patch[3:], np.zeros(24, dtype=np.float32))
    for y in range(2):
        for x in range(2):
            np.testing.assert_allclose(out[y, x], img[0, 0])


def test_checkerboard_identity_is_exact(identity_model):
    img = checkerboard(4)
    out = apply(img, identity_model)

    assert out.shape == (8, 8, 3)
    for y in range(4):
        for x in range(4):
            for dx, dy in QUAD_PATTERN:
                np.testing.assert_array_equal(out[2 * y + dy, 2 * x + dx], img[y, x])


def test_block_colors_land_on_their_offsets():
    class OffsetModel(RecordingModel):
        def forward(self, patch):
            return np.arange(12, dtype=np.float32)

    out = apply(np.zeros((1, 1, 3), dtype=np.float32), OffsetModel())
    for i, (dx, dy) in enumerate(QUAD_PATTERN):
        np.testing.assert_array_equal(out[dy, dx], [3 * i, 3 * i + 1, 3 * i + 2])


def test_passes_compose(identity_model):
    img = gradient_image(3, 2)
    out = apply_passes(img, identity_model, passes=2)
    assert out.shape == (8, 12, 3)
    np.testing.assert_allclose(out[::4, ::4], img, atol=1e-6)


def test_zero_passes_rejected(identity_model):
    with pytest.raises(ValueError):
        apply_passes(gradient_image(2, 2), identity_model, passes=0)


def test_output_path_encodes_passes():
    assert output_path("dir/photo.png", 1) == Path("dir/photo_ups.png")
    assert output_path("dir/photo.png", 3) == Path("dir/photo_ups3.png")
    assert output_path("a.b.jpg", 2) == Path("a.b_ups2.jpg")


def test_upscale_file(tmp_path, identity_model):
    src = tmp_path / "small.png"
    write_image(src, checkerboard(4))

    out = upscale_file(src, identity_model, passes=2)
    assert out == tmp_path / "small_ups2.png"
    result = read_image(out)
    assert result.shape == (16, 16, 3)
    np.testing.assert_array_equal(result[:4, :4], np.broadcast_to(result[0, 0], (4, 4, 3)))


def test_write_failure_propagates(tmp_path, identity_model):
    src = tmp_path / "small.png"
    write_image(src, checkerboard(2))
    with pytest.raises(OSError):
        upscale_file(src, identity_model, out_path=tmp_path / "missing" / "out.png")
