import cv2
import logging
import math
import numpy as np
from dataclasses import dataclass, field
from typing import List

from skimage.metrics import peak_signal_noise_ratio as psnr
from skimage.metrics import structural_similarity as ssim

from data_prep import DecodeError, downsample, iter_corpus, read_image
from upscale import apply

logger = logging.getLogger(__name__)

SSIM_MIN_SIDE = 7   # skimage's default window


def rgb2y(img):
    """
    Luminance (Y of YCbCr) of an RGB image in [0, 1].
    Y = 16 + 65.481 R + 128.553 G + 24.966 B, divided by 255 (MATLAB convention
    used throughout the SR literature).
    """
    y = 16. + (65.481 * img[:, :, 0] + 128.553 * img[:, :, 1] + 24.966 * img[:, :, 2])
    return y / 255.0


@dataclass
class ImageScore:
    name: str
    psnr_rgb: float
    ssim_rgb: float
    psnr_y: float
    ssim_y: float
    bicubic_psnr_y: float
    bicubic_ssim_y: float


@dataclass
class EvaluationReport:
    scores: List[ImageScore] = field(default_factory=list)
    skipped: List[str] = field(default_factory=list)

    def mean(self, attr):
        values = [getattr(s, attr) for s in self.scores if not math.isnan(getattr(s, attr))]
        return float(np.mean(values)) if values else float("nan")

    @property
    def gain_db(self):
        """Average Y-PSNR advantage over bicubic."""
        return self.mean("psnr_y") - self.mean("bicubic_psnr_y")


def _ssim(a, b, **kwargs):
    if min(a.shape[:2]) < SSIM_MIN_SIDE:
        return float("nan")
    return float(ssim(a, b, data_range=1.0, **kwargs))


def score_image(model, hr_img, name="<array>"):
    """Shrink `hr_img`, upscale it back with the model and with bicubic, compare both."""
    scale = model.scale_factor
    h, w = hr_img.shape[:2]
    lr_img = downsample(hr_img, scale)

    # the model output covers ceil(w/s)*s columns; crop to the original size
    sr_img = np.clip(apply(lr_img, model), 0.0, 1.0)[:h, :w]
    bic_img = np.clip(cv2.resize(lr_img, (w, h), interpolation=cv2.INTER_CUBIC), 0.0, 1.0)

    hr_y, sr_y, bic_y = rgb2y(hr_img), rgb2y(sr_img), rgb2y(bic_img)
    return ImageScore(
        name=name,
        psnr_rgb=float(psnr(hr_img, sr_img, data_range=1.0)),
        ssim_rgb=_ssim(hr_img, sr_img, channel_axis=2),
        psnr_y=float(psnr(hr_y, sr_y, data_range=1.0)),
        ssim_y=_ssim(hr_y, sr_y),
        bicubic_psnr_y=float(psnr(hr_y, bic_y, data_range=1.0)),
        bicubic_ssim_y=_ssim(hr_y, bic_y),
    )


def evaluate_model(model, image_dir):
    report = EvaluationReport()
    for path in iter_corpus(image_dir):
        try:
            hr_img = read_image(path)
        except DecodeError as exc:
            logger.warning("Skipping %s: %s", path, exc)
            report.skipped.append(path)
            continue
        report.scores.append(score_image(model, hr_img, name=path))
    return report


def print_report(report):
    print("-" * 60)
    print(f"{'File':<20} | {'Model (Y) PSNR':<15} | {'Bicubic (Y) PSNR':<15}")
    print("-" * 60)
    for s in report.scores:
        print(f"{s.name[-20:]:<20} | {s.psnr_y:.2f} dB        | {s.bicubic_psnr_y:.2f} dB")
    print("-" * 60)
    print(f"Images evaluated         : {len(report.scores)} ({len(report.skipped)} unreadable)")
    print(f"Mean Y-PSNR (model)      : {report.mean('psnr_y'):.4f} dB")
    print(f"Mean Y-PSNR (bicubic)    : {report.mean('bicubic_psnr_y'):.4f} dB")
    print(f"Mean Y-SSIM (model)      : {report.mean('ssim_y'):.4f}")
    print(f"Mean RGB-PSNR (model)    : {report.mean('psnr_rgb'):.4f} dB")
    print("-" * 60)
    if report.gain_db > 0:
        print(f"Model beats bicubic by {report.gain_db:.4f} dB on average.")
    else:
        print("Model is behind bicubic on average.")
