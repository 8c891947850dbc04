# sr_patches.py
"""
Patch sampling geometry shared by training and inference.

An image is an (H, W, 3) float32 RGB array. A patch vector is the
concatenation of the RGB values found at every offset of a pattern around an
anchor pixel. Offsets that leave the image read FILL_COLOR instead, so anchors
on the border mix black into their patch and come out darker than interior
anchors of the same content. That border loss is accepted; coordinates are
never clamped.
"""

import numpy as np

# --- Geometry ---
N_CHANNELS = 3

# Center first, then the 8 neighbours going round from "up".
INPUT_PATTERN = (
    (0, 0),
    (0, -1), (-1, -1), (-1, 0), (-1, 1),
    (0, 1), (1, 1), (1, 0), (1, -1),
)

# One value for every out-of-bounds read: training inputs, training targets
# and inference inputs all sample through this constant.
FILL_COLOR = np.zeros(N_CHANNELS, dtype=np.float32)


class ShapeError(ValueError):
    """A patch vector of the wrong width reached the model."""


def block_pattern(scale):
    """Offsets of the scale x scale output block, x outer and y inner."""
    return tuple((dx, dy) for dx in range(scale) for dy in range(scale))


QUAD_PATTERN = block_pattern(2)


def input_width():
    return len(INPUT_PATTERN) * N_CHANNELS


def output_width(scale):
    return scale * scale * N_CHANNELS


def in_bounds(image, x, y):
    h, w = image.shape[:2]
    return 0 <= x < w and 0 <= y < h


def sample(image, anchor, pattern, fill=FILL_COLOR):
    """Flatten the colors at `anchor + offset` for each offset of `pattern`."""
    x, y = anchor
    out = np.empty(len(pattern) * N_CHANNELS, dtype=np.float32)
    for i, (dx, dy) in enumerate(pattern):
        cx, cy = x + dx, y + dy
        pixel = image[cy, cx] if in_bounds(image, cx, cy) else fill
        out[i * N_CHANNELS:(i + 1) * N_CHANNELS] = pixel
    return out


def input_patch(image, anchor):
    """Model input around `anchor`; the same call serves training and inference."""
    return sample(image, anchor, INPUT_PATTERN)


def target_block(image, anchor, scale):
    """The scale x scale block whose top-left corner is `anchor`."""
    return sample(image, anchor, block_pattern(scale))


def check_width(vector, expected):
    if vector.ndim != 1 or vector.shape[0] != expected:
        raise ShapeError(f"expected a vector of {expected} values, got shape {tuple(vector.shape)}")
    return vector
