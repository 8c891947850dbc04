import cv2
import os           # directory walking
import logging
import numpy as np

logger = logging.getLogger(__name__)

# Extensions OpenCV can decode; anything else in the corpus is ignored
IMAGE_EXTENSIONS = {
    ".bmp", ".dib", ".jpg", ".jpeg", ".jpe", ".jp2", ".png", ".webp",
    ".pbm", ".pgm", ".ppm", ".pxm", ".pnm", ".sr", ".ras", ".tif", ".tiff",
    ".exr", ".hdr", ".pic",
}

SUPPORTED_DTYPES = (np.uint8, np.uint16, np.float32)


class DecodeError(Exception):
    """A corpus file could not be decoded as an image."""


def is_image_file(path):
    return os.path.splitext(path)[1].lower() in IMAGE_EXTENSIONS


def iter_corpus(root):
    """Yield every candidate image under `root` in sorted, reproducible order."""
    if not os.path.isdir(root):
        raise FileNotFoundError(f"corpus directory not found: {root}")

    for dirpath, dirnames, filenames in os.walk(root, onerror=_raise):
        dirnames.sort()     # os.walk descends in this order
        for name in sorted(filenames):
            path = os.path.join(dirpath, name)
            if os.path.isfile(path) and is_image_file(name):
                yield path


def _raise(err):
    raise err


def read_image(path):
    """Decode to an (H, W, 3) float32 RGB array in [0, 1]."""
    # IMREAD_UNCHANGED keeps 16-bit and float data intact before normalising
    try:
        img = cv2.imread(str(path), cv2.IMREAD_UNCHANGED)
    except cv2.error as exc:
        raise DecodeError(f"{path}: {exc}") from exc
    if img is None or img.size == 0:
        raise DecodeError(f"{path} is unreadable or not a supported image")

    channels = 1 if img.ndim == 2 else img.shape[2]
    if img.dtype not in SUPPORTED_DTYPES or channels not in (1, 3, 4):
        raise DecodeError(f"{path}: unsupported pixel format ({img.dtype}, {channels} channels)")

    try:
        if channels == 1:
            img = cv2.cvtColor(img, cv2.COLOR_GRAY2BGR)
        elif channels == 4:
            img = cv2.cvtColor(img, cv2.COLOR_BGRA2BGR)
        img = cv2.cvtColor(img, cv2.COLOR_BGR2RGB)
    except cv2.error as exc:
        raise DecodeError(f"{path}: {exc}") from exc

    if img.dtype == np.uint8:
        return img.astype(np.float32) / 255.0
    if img.dtype == np.uint16:
        return img.astype(np.float32) / 65535.0
    return np.clip(img, 0.0, 1.0)


def write_image(path, image):
    """Encode a [0, 1] RGB float image as 8-bit. Raises OSError on failure."""
    out = np.clip(image * 255.0 + 0.5, 0, 255).astype(np.uint8)
    out = cv2.cvtColor(out, cv2.COLOR_RGB2BGR)
    try:
        ok = cv2.imwrite(str(path), out)
    except cv2.error as exc:
        raise OSError(f"could not write {path}: {exc}") from exc
    if not ok:
        raise OSError(f"could not write {path}")
    return path


def low_res_size(width, height, scale):
    # ceil division keeps the last odd row/column represented
    return -(-width // scale), -(-height // scale)


def downsample(image, scale):
    """Bicubic shrink by an integer factor; the degradation the model learns to undo."""
    h, w = image.shape[:2]
    lr_dsize = low_res_size(w, h, scale)
    lr_image = cv2.resize(image, lr_dsize, interpolation=cv2.INTER_CUBIC)
    # bicubic overshoots at hard edges
    return np.clip(lr_image, 0.0, 1.0).astype(np.float32)
