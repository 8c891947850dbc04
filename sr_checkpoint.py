# sr_checkpoint.py
"""
Checkpoint naming and the load-or-initialize policy.

Checkpoints are named ``[0-<count>].pth`` inside the model directory, where
``count`` is the number of corpus files trained so far. Each payload also
carries that count and the ordered names of the files it covers, so resuming
does not depend on filesystem order.
"""

import logging
import os
import re
from dataclasses import dataclass, field
from typing import List, Optional

from sr_model import CheckpointError, PatchModel

logger = logging.getLogger(__name__)

_NAME_RE = re.compile(r"^\[0-(\d+)\]\.pth$")


@dataclass
class Progress:
    processed_files: int = 0
    processed_names: List[str] = field(default_factory=list)

    def advance(self, name):
        self.processed_files += 1
        self.processed_names.append(name)
        return self.processed_files


def checkpoint_path(model_dir, count):
    return os.path.join(model_dir, f"[0-{count}].pth")


def checkpoint_count(path) -> Optional[int]:
    match = _NAME_RE.match(os.path.basename(path))
    return int(match.group(1)) if match else None


def list_checkpoints(model_dir):
    """(count, path) pairs in ascending count order."""
    if not os.path.isdir(model_dir):
        return []
    found = []
    for name in os.listdir(model_dir):
        count = checkpoint_count(name)
        if count is not None:
            found.append((count, os.path.join(model_dir, name)))
    return sorted(found)


def latest_checkpoint(model_dir):
    found = list_checkpoints(model_dir)
    return found[-1][1] if found else None


def save_checkpoint(model, model_dir, progress):
    path = checkpoint_path(model_dir, progress.processed_files)
    model.save(
        path,
        processed_files=progress.processed_files,
        processed_names=list(progress.processed_names),
    )
    logger.info("Checkpoint written: %s", path)
    return path


def load_checkpoint(model, path):
    """Restore `model` from `path`. Weights saved without progress count as a fresh start."""
    payload = model.load(path)
    count = payload.get("processed_files", checkpoint_count(path))
    if not isinstance(count, int):
        logger.info("%s carries no progress counter, counting from 0", path)
        return Progress()
    names = list(payload.get("processed_names", []))
    return Progress(count, names)


def open_model(model_dir, scale_factor=2, lr=1e-2, momentum=0.9, path=None):
    """
    Resume from `path`, or from the newest checkpoint in `model_dir` when no
    path is given. Without either, start from random parameters.

    Returns (model, progress). An explicit `path` that does not exist, or a
    checkpoint that exists but does not load, raises CheckpointError.
    """
    if path is not None and not os.path.exists(path):
        raise CheckpointError(f"checkpoint not found: {path}")
    path = path or latest_checkpoint(model_dir)
    if path is None:
        logger.info("No checkpoint in %s, starting from random parameters", model_dir)
        return PatchModel.random_init(scale_factor, lr=lr, momentum=momentum), Progress()

    model = PatchModel(scale_factor, lr=lr, momentum=momentum)
    progress = load_checkpoint(model, path)
    logger.info("Resumed %s after %d file(s)", path, progress.processed_files)
    return model, progress
