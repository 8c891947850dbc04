# sr_config.py
# Default settings. Every constant can be overridden with an UPSCALER_* env var.

import os
from dataclasses import dataclass, replace

# --- Settings ---
CORPUS_DIR = os.environ.get("UPSCALER_CORPUS_DIR", "hr_images")     # images to learn from
MODEL_DIR = os.environ.get("UPSCALER_MODEL_DIR", "models")          # checkpoints land here
SCALE_FACTOR = int(os.environ.get("UPSCALER_SCALE_FACTOR", "2"))    # magnification per pass
LEARNING_RATE = float(os.environ.get("UPSCALER_LEARNING_RATE", "1e-2"))
MOMENTUM = float(os.environ.get("UPSCALER_MOMENTUM", "0.9"))
PROGRESS_STEP = int(os.environ.get("UPSCALER_PROGRESS_STEP", "10"))  # percent of an image


@dataclass(frozen=True)
class TrainConfig:
    corpus_dir: str = CORPUS_DIR
    model_dir: str = MODEL_DIR
    scale_factor: int = SCALE_FACTOR
    learning_rate: float = LEARNING_RATE
    momentum: float = MOMENTUM
    progress_step: int = PROGRESS_STEP

    def __post_init__(self):
        s = self.scale_factor
        if s < 2 or s & (s - 1):
            raise ValueError(f"scale_factor must be a power of two >= 2, got {s}")
        if not 0 < self.progress_step <= 100:
            raise ValueError("progress_step must be within 1..100")

    def with_overrides(self, **changes):
        """Copy with the given non-None fields replaced (CLI flags)."""
        return replace(self, **{k: v for k, v in changes.items() if v is not None})
