"""
Command line entry point.

Usage:
    python -m ground_cover.main train --csv data/tables/pixel_table.csv --model boosted
    python -m ground_cover.main predict --model-dir data/results/model --csv data/tables/new_pixels.csv
"""

import argparse
from typing import List, Optional

from ground_cover.class_models import MODEL_REGISTRY, build_model
from ground_cover.cste import DataPath, GeneralConfig, ResultPath
from ground_cover.logger import get_logger
from ground_cover.trainer import predict_from_saved, train_and_evaluate_model

log = get_logger("main")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Ground-cover composition modelling.")
    subparsers = parser.add_subparsers(dest="command", required=True)

    train = subparsers.add_parser("train", help="Fit a model on a grouped split and evaluate it.")
    train.add_argument("--csv", default=DataPath.PIXEL_TABLE, help="Pixel table CSV.")
    train.add_argument("--model", choices=sorted(MODEL_REGISTRY), default="multinomial", help="Model type.")
    train.add_argument("--output", default=DataPath.RESULT_PATH, help="Output directory.")
    train.add_argument("--test-size", type=float, default=GeneralConfig.TEST_SIZE, help="Fraction of photos held out.")
    train.add_argument("--seed", type=int, default=GeneralConfig.RANDOM_SEED, help="Random seed.")
    train.add_argument("--exclude", nargs="*", default=[], help="Numeric columns not used as predictors.")
    train.add_argument("--label-column", default=None, help="Single-label column instead of class counts.")
    train.add_argument("--no-plots", action="store_true", help="Skip evaluation plots.")

    predict = subparsers.add_parser("predict", help="Predict compositions with a saved model.")
    predict.add_argument("--model-dir", default=DataPath.MODEL_DIR, help="Saved model directory.")
    predict.add_argument("--csv", default=DataPath.PIXEL_TABLE_NEW, help="New pixel table CSV.")
    predict.add_argument("--output", default=ResultPath.PREDICTION_CSV_PATH, help="Predictions CSV.")
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)

    if args.command == "train":
        model = build_model(args.model, random_state=args.seed)
        results = train_and_evaluate_model(
            model,
            csv_path=args.csv,
            output_dir=args.output,
            test_size=args.test_size,
            random_state=args.seed,
            exclude_columns=args.exclude,
            label_column=args.label_column,
            plots=not args.no_plots,
        )
        log.info(f"Test RMSE: {results['evaluation']['rmse']:.4f}")
    else:
        predict_from_saved(args.model_dir, args.csv, args.output)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
