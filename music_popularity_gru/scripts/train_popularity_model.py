# scripts/train_popularity_model.py
import argparse
import json
import logging
import sys

import torch
import wandb

from ..config.data_config import DataConfig
from ..config.training_config import TrainingConfig
from ..data.data_loader import load_observations
from ..evaluation.evaluator import Evaluator
from ..exceptions import MusicPopularityError
from ..pipeline import model_config_for, prepare_dataset
from ..training.callbacks import LoggingProgressCallback, WandbProgressCallback
from ..training.trainer import SequenceClassifier

logger = logging.getLogger(__name__)


def parse_args(argv=None):
    parser = argparse.ArgumentParser(description="Train the GRU stream-trend classifier on a daily streaming CSV.")
    parser.add_argument("csv_path", help="CSV with date, track id, streams and audio feature columns")
    parser.add_argument("--top-n", type=int, default=DataConfig.top_n)
    parser.add_argument("--window-size", type=int, default=DataConfig.window_size)
    parser.add_argument("--train-ratio", type=float, default=DataConfig.train_ratio)
    parser.add_argument("--epochs", type=int, default=TrainingConfig.num_epochs)
    parser.add_argument("--batch-size", type=int, default=TrainingConfig.batch_size)
    parser.add_argument("--patience", type=int, default=TrainingConfig.patience)
    parser.add_argument("--learning-rate", type=float, default=TrainingConfig.learning_rate)
    parser.add_argument("--seed", type=int, default=TrainingConfig.seed)
    parser.add_argument("--no-seed", action="store_true", help="Unseeded run (fresh randomness each time)")
    parser.add_argument("--device", default=TrainingConfig.device)
    parser.add_argument("--uncertainty", action="store_true", help="Average several dropout passes for predictions")
    parser.add_argument("--passes", type=int, default=TrainingConfig.uncertainty_passes)
    parser.add_argument("--no-importance", action="store_true", help="Skip permutation feature importance")
    parser.add_argument("--output", help="Write the evaluation report as JSON to this path")
    parser.add_argument("--save-model", help="Save the trained weights to this path")
    parser.add_argument("--wandb", action="store_true", help="Log epoch metrics to Weights & Biases")
    parser.add_argument("--progress", action="store_true", help="Show per-batch progress bars")
    return parser.parse_args(argv)


def main(argv=None):
    """Load CSV -> build dataset -> train -> evaluate -> report."""
    args = parse_args(argv)
    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s: %(message)s")

    data_config = DataConfig(top_n=args.top_n, window_size=args.window_size, train_ratio=args.train_ratio)
    training_config = TrainingConfig(
        batch_size=args.batch_size,
        learning_rate=args.learning_rate,
        num_epochs=args.epochs,
        patience=args.patience,
        uncertainty_passes=args.passes,
        seed=None if args.no_seed else args.seed,
        device=args.device,
        show_progress=args.progress,
        use_wandb=args.wandb,
    )

    run = None
    try:
        logger.info("🎵 Music popularity GRU training")
        store = load_observations(args.csv_path)
        split = prepare_dataset(store, data_config)

        if training_config.use_wandb:
            run = wandb.init(project=training_config.wandb_project, config={
                "data": vars(data_config), "training": vars(training_config),
            })
        callbacks = [LoggingProgressCallback(training_config.num_epochs)]
        if run is not None:
            callbacks.append(WandbProgressCallback(run))

        def on_progress(event):
            for callback in callbacks:
                callback(event)

        with split, SequenceClassifier(model_config_for(split, data_config), training_config) as classifier:
            classifier.build()
            logger.info(classifier.summary())
            classifier.fit(split.X_train, split.y_train, split.X_test, split.y_test,
                           progress_callback=on_progress)

            report = Evaluator(classifier).evaluate(
                split,
                use_uncertainty=args.uncertainty,
                passes=args.passes,
                compute_importance=not args.no_importance,
            )
            if args.save_model:
                classifier.save(args.save_model)

        logger.info(f"✅ Pooled accuracy: {report.pooled_accuracy:.2f}%")
        for track in report.top_breakouts():
            logger.info(f"   Breakout: {track.track_name} score {track.breakout_score:.1f}% "
                        f"({track.trend}, {track.risk_level} risk)")

        if args.output:
            with open(args.output, "w") as f:
                json.dump(report.to_dict(), f, indent=2)
            logger.info(f"Report written to {args.output}")
        return 0
    except MusicPopularityError as e:
        logger.error(f"❌ {e}")
        return 1
    finally:
        if run is not None:
            run.finish()
        if torch.cuda.is_available():
            torch.cuda.empty_cache()


if __name__ == "__main__":
    sys.exit(main())
