"""
Command line entry point.

    python main.py --apply photo.png --times 2   # writes photo_ups2.png (x4)
    python main.py --skip 10                     # train, ignoring the first 10 corpus files
    python main.py --evaluate test_images        # PSNR/SSIM against bicubic
"""

import argparse
import logging
import sys

from data_prep import DecodeError
from evaluate import evaluate_model, print_report
from sr_checkpoint import CheckpointError, open_model
from sr_config import TrainConfig
from train import Trainer
from upscale import upscale_file

logger = logging.getLogger(__name__)


def build_parser():
    parser = argparse.ArgumentParser(description="Learned patch upscaler")
    parser.add_argument("-a", "--apply", metavar="PATH", help="upscale the image at PATH")
    parser.add_argument("-t", "--times", type=int, default=1,
                        help="apply the model recursively this many times")
    parser.add_argument("-s", "--skip", type=int, default=0,
                        help="skip the first n corpus images when training")
    parser.add_argument("-e", "--evaluate", metavar="DIR",
                        help="score the model on the images in DIR")
    parser.add_argument("--corpus", help="training image directory")
    parser.add_argument("--models", help="checkpoint directory")
    parser.add_argument("--scale", type=int, help="magnification per pass")
    parser.add_argument("--checkpoint", help="load this checkpoint instead of the newest one")
    parser.add_argument("-v", "--verbose", action="store_true", help="debug logging")
    return parser


def main(argv=None):
    args = build_parser().parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    try:
        config = TrainConfig().with_overrides(
            corpus_dir=args.corpus, model_dir=args.models, scale_factor=args.scale,
        )
        if args.times < 1 or args.skip < 0:
            raise ValueError("--times must be >= 1 and --skip >= 0")

        model, progress = open_model(
            config.model_dir, config.scale_factor,
            lr=config.learning_rate, momentum=config.momentum, path=args.checkpoint,
        )
        if args.apply:
            upscale_file(args.apply, model, args.times)
        elif args.evaluate:
            print_report(evaluate_model(model, args.evaluate))
        else:
            Trainer(config, model, progress).run(args.skip)
    except (CheckpointError, DecodeError, OSError, ValueError) as exc:
        logger.error("%s", exc)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
