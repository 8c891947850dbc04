import itertools
import logging
import os
import time
from dataclasses import dataclass, field
from typing import List

from data_prep import DecodeError, iter_corpus, read_image
from sr_checkpoint import Progress, open_model, save_checkpoint
from sr_config import TrainConfig
from sr_dataset import PatchPairDataset

logger = logging.getLogger(__name__)


@dataclass
class TrainSummary:
    visited: List[str] = field(default_factory=list)       # every candidate looked at
    completed: List[str] = field(default_factory=list)
    skipped_corrupt: List[str] = field(default_factory=list)
    checkpoints: List[str] = field(default_factory=list)
    mean_loss: List[float] = field(default_factory=list)   # one per completed file


class Trainer:
    """
    Walks the corpus once, training the model pixel by pixel on each image
    and writing a checkpoint after every image that finishes.
    """

    def __init__(self, config=None, model=None, progress=None):
        self.config = config or TrainConfig()
        if model is None:
            model, loaded = open_model(
                self.config.model_dir,
                scale_factor=self.config.scale_factor,
                lr=self.config.learning_rate,
                momentum=self.config.momentum,
            )
            progress = progress or loaded
        if model.scale_factor != self.config.scale_factor:
            raise ValueError(
                f"model scale {model.scale_factor} != configured scale {self.config.scale_factor}"
            )
        self.model = model
        self.progress = progress or Progress()

    def train_on_image(self, image, name="<array>"):
        """One pass over every anchor of the downsampled image. Returns the mean loss."""
        scale = self.config.scale_factor
        dataset = PatchPairDataset(image, scale)
        total = len(dataset)
        step = max(1, total * self.config.progress_step // 100)

        running_loss = 0.0
        for i, (lr_patch, hr_block) in enumerate(dataset):
            running_loss += self.model.train_step(lr_patch, hr_block)
            if (i + 1) % step == 0 and i + 1 < total:
                logger.info("%s: %d%%", name, (i + 1) * 100 // total)
        return running_loss / total if total else 0.0

    def run(self, skip_n_images=0):
        """Train over the corpus, skipping its first `skip_n_images` entries."""
        summary = TrainSummary()
        files = iter_corpus(self.config.corpus_dir)
        start_time = time.time()

        for path in itertools.islice(files, skip_n_images, None):
            name = os.path.relpath(path, self.config.corpus_dir)
            summary.visited.append(name)
            try:
                image = read_image(path)
            except DecodeError as exc:
                logger.warning("Error at file #%d \"%s\": %s",
                               self.progress.processed_files, name, exc)
                summary.skipped_corrupt.append(name)
                continue

            h, w = image.shape[:2]
            logger.info("Training on \"%s\" (%dx%d)", name, w, h)
            avg_loss = self.train_on_image(image, name)

            self.progress.advance(name)
            logger.info("Finished file #%d \"%s\" - loss: %.6f",
                        self.progress.processed_files, name, avg_loss)
            checkpoint = save_checkpoint(self.model, self.config.model_dir, self.progress)

            summary.completed.append(name)
            summary.mean_loss.append(avg_loss)
            summary.checkpoints.append(checkpoint)

        logger.info("Corpus done: %d trained, %d unreadable, %.1f s",
                    len(summary.completed), len(summary.skipped_corrupt),
                    time.time() - start_time)
        return summary


def train_model(config=None, skip_n_images=0):
    return Trainer(config).run(skip_n_images)


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO)
    train_model()
