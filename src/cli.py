"""Command-line interface for analysing label photos without the API.

Provides subcommands for analysing a single image and for processing a
folder of images into a CSV summary. Nothing is persisted and no
authentication is involved.
"""

import argparse
import csv
import json
import sys
import time
from pathlib import Path
from typing import Any

from src.analysis.completion import CompletionClient
from src.analysis.pipeline import AnalysisPipeline, AnalysisRequest
from src.errors import ScanError
from src.ocr.tesseract_engine import TesseractEngine
from src.utils.config import AppConfig, load_config
from src.utils.logger import get_logger, setup_logging

logger = get_logger(__name__)

_SUPPORTED_EXTENSIONS = ("*.png", "*.jpg", "*.jpeg", "*.webp", "*.tiff", "*.tif")
_CSV_COLUMNS = [
    "filename",
    "status",
    "processing_time_s",
    "verdict",
    "total_alerts",
    "ingredient_count",
    "alternatives",
    "error",
]


def build_pipeline(config: AppConfig, schema_version: str | None = None) -> AnalysisPipeline:
    """Create a pipeline that analyses images without storing them.

    Args:
        config: Application configuration.
        schema_version: Overrides the configured result schema.

    Returns:
        Analysis pipeline with persistence disabled.
    """
    return AnalysisPipeline(
        ocr_engine=TesseractEngine(config.ocr, config.preprocessing),
        completion=CompletionClient(config.completion),
        store=None,
        schema_version=schema_version or config.analysis.schema_version,
    )


def _find_images(input_dir: Path) -> list[Path]:
    """Find all supported image files in a directory.

    Args:
        input_dir: Directory to scan.

    Returns:
        Sorted list of image paths.
    """
    files: list[Path] = []
    for ext in _SUPPORTED_EXTENSIONS:
        files.extend(input_dir.glob(ext))
        files.extend(input_dir.glob(ext.upper()))
    return sorted(set(files))


def summarize_result(result: dict[str, Any]) -> dict[str, Any]:
    """Reduce an analysis result of either schema version to CSV columns."""
    if "ingredients_analyzed" in result:
        labels = result.get("product_labels", [])
        verdict = "; ".join(labels)
        total_alerts = result.get("total_alerts", 0)
        ingredient_count = len(result.get("ingredients_analyzed", []))
    else:
        verdict = result.get("is_healthy", "")
        total_alerts = len(result.get("unhealthy_ingredients", {}))
        ingredient_count = len(result.get("health_impacts", {}))

    alternatives = "; ".join(
        alt.get("name", "") for alt in result.get("suggested_alternatives", [])
    )
    return {
        "verdict": verdict,
        "total_alerts": total_alerts,
        "ingredient_count": ingredient_count,
        "alternatives": alternatives,
    }


def analyze_image(pipeline: AnalysisPipeline, file_path: Path) -> dict[str, Any]:
    """Analyse one image file and return the result object."""
    outcome = pipeline.run(AnalysisRequest(image=file_path.read_bytes()))
    return outcome.result


def process_folder(
    pipeline: AnalysisPipeline,
    input_dir: Path,
    output_csv: Path,
    verbose: bool = False,
) -> dict[str, int]:
    """Analyse every image in a folder and write a CSV summary.

    Args:
        pipeline: Analysis pipeline.
        input_dir: Directory containing label photos.
        output_csv: Path for the output CSV file.
        verbose: Whether to print per-file progress.

    Returns:
        Summary dict with total, successful, and failed counts.
    """
    files = _find_images(input_dir)
    if not files:
        logger.warning("No images found in %s", input_dir)
        return {"total": 0, "successful": 0, "failed": 0}

    logger.info("Found %d images to analyse", len(files))

    rows: list[dict[str, Any]] = []
    successful = 0

    for i, file_path in enumerate(files, 1):
        if verbose:
            print(f"Analysing [{i}/{len(files)}]: {file_path.name}")

        start_time = time.time()
        row: dict[str, Any] = {"filename": file_path.name}
        try:
            result = analyze_image(pipeline, file_path)
            row.update(summarize_result(result))
            row["status"] = "success"
            successful += 1
        except ScanError as exc:
            logger.error("Failed to analyse %s: %s", file_path.name, exc.message)
            row.update({"status": "failed", "error": exc.message})
        row["processing_time_s"] = round(time.time() - start_time, 2)
        rows.append(row)

    _write_csv(rows, output_csv)
    logger.info("Results written to %s", output_csv)

    summary = {"total": len(files), "successful": successful, "failed": len(files) - successful}
    _print_summary(summary, output_csv)
    return summary


def _write_csv(rows: list[dict[str, Any]], output_path: Path) -> None:
    """Write per-image rows to a CSV file."""
    output_path.parent.mkdir(parents=True, exist_ok=True)
    with open(output_path, "w", newline="") as f:
        writer = csv.DictWriter(f, fieldnames=_CSV_COLUMNS, extrasaction="ignore")
        writer.writeheader()
        writer.writerows(rows)


def _print_summary(summary: dict[str, int], output_csv: Path) -> None:
    print(f"\n{'=' * 50}")
    print("Batch Analysis Complete")
    print(f"{'=' * 50}")
    print(f"Total:      {summary['total']}")
    print(f"Successful: {summary['successful']}")
    print(f"Failed:     {summary['failed']}")
    print(f"Output:     {output_csv}")


def main(argv: list[str] | None = None) -> None:
    """Parse CLI arguments and dispatch to the appropriate command.

    Args:
        argv: Command-line arguments (defaults to sys.argv).
    """
    parser = argparse.ArgumentParser(description="Ingredient label analyser")
    parser.add_argument("--config", type=Path, help="Path to a YAML config file")
    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    single_parser = subparsers.add_parser("analyze", help="Analyse a single image")
    single_parser.add_argument("file", type=Path, help="Label photo to analyse")
    single_parser.add_argument("-o", "--output", type=Path, help="Output JSON file")
    single_parser.add_argument(
        "-s",
        "--schema",
        choices=["v1", "v2"],
        help="Result schema version (default: from config)",
    )

    batch_parser = subparsers.add_parser("batch", help="Analyse a folder of images")
    batch_parser.add_argument("input_dir", type=Path, help="Directory with label photos")
    batch_parser.add_argument(
        "-o",
        "--output",
        type=Path,
        default=Path("results.csv"),
        help="Output CSV file (default: results.csv)",
    )
    batch_parser.add_argument(
        "-s",
        "--schema",
        choices=["v1", "v2"],
        help="Result schema version (default: from config)",
    )
    batch_parser.add_argument("-v", "--verbose", action="store_true", help="Verbose output")

    args = parser.parse_args(argv)

    if args.command is None:
        parser.print_help()
        sys.exit(0)

    config = load_config(args.config)
    setup_logging(config.log_level)

    if args.command == "analyze":
        if not args.file.exists():
            print(f"Error: {args.file} does not exist", file=sys.stderr)
            sys.exit(1)
        pipeline = build_pipeline(config, args.schema)
        try:
            result = analyze_image(pipeline, args.file)
        except ScanError as exc:
            print(f"Error: {exc.message}", file=sys.stderr)
            sys.exit(1)
        output_str = json.dumps(result, indent=2, ensure_ascii=False)
        if args.output:
            args.output.parent.mkdir(parents=True, exist_ok=True)
            args.output.write_text(output_str)
            print(f"Output written to {args.output}")
        else:
            print(output_str)
    elif args.command == "batch":
        if not args.input_dir.is_dir():
            print(f"Error: {args.input_dir} is not a directory", file=sys.stderr)
            sys.exit(1)
        pipeline = build_pipeline(config, args.schema)
        process_folder(pipeline, args.input_dir, args.output, args.verbose)


if __name__ == "__main__":
    main()
