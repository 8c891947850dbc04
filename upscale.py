# upscale.py
# Applies a trained patch model to whole images, one anchor pixel at a time.

import logging
import os
from pathlib import Path

import numpy as np

from data_prep import read_image, write_image
from sr_patches import N_CHANNELS, block_pattern, in_bounds, input_patch

logger = logging.getLogger(__name__)


def destination(anchor, offset, scale):
    """Output pixel written for block `offset` of input `anchor`."""
    (x, y), (dx, dy) = anchor, offset
    return x * scale + dx, y * scale + dy


def source(dest, scale):
    """Input anchor whose block covers output pixel `dest`."""
    x, y = dest
    return x // scale, y // scale


def apply(image, model):
    """One pass: an (H, W, 3) image becomes (H*s, W*s, 3)."""
    scale = model.scale_factor
    h, w = image.shape[:2]
    pattern = block_pattern(scale)
    output_image = np.zeros((h * scale, w * scale, N_CHANNELS), dtype=np.float32)

    for y in range(h):
        for x in range(w):
            block = model.forward(input_patch(image, (x, y)))
            for i, offset in enumerate(pattern):
                dx, dy = destination((x, y), offset, scale)
                if in_bounds(output_image, dx, dy):
                    output_image[dy, dx] = block[i * N_CHANNELS:(i + 1) * N_CHANNELS]
    return output_image


def apply_passes(image, model, passes=1):
    """Feed each pass's output back in: `passes` passes magnify by scale**passes."""
    if passes < 1:
        raise ValueError(f"passes must be >= 1, got {passes}")
    for n in range(passes):
        image = np.clip(apply(image, model), 0.0, 1.0)
        h, w = image.shape[:2]
        logger.info("Pass %d/%d done (%dx%d)", n + 1, passes, w, h)
    return image


def output_path(path, passes=1):
    """photo.png -> photo_ups.png for one pass, photo_ups3.png for three."""
    path = Path(path)
    tag = "" if passes == 1 else str(passes)
    return path.with_name(f"{path.stem}_ups{tag}{path.suffix}")


def upscale_file(path, model, passes=1, out_path=None):
    image = read_image(path)
    result = apply_passes(image, model, passes)
    out_path = out_path or output_path(path, passes)
    write_image(out_path, result)
    logger.info("Saved %s -> %s", os.fspath(path), os.fspath(out_path))
    return Path(out_path)
