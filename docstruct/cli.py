"""Command-line interface for single-document and batch extraction.

``.json`` inputs are stored layout output and go straight through the
extraction pipeline; ``.pdf`` inputs are sent to the configured processors.
"""

import argparse
import csv
import json
import sys
import time
from pathlib import Path

from docstruct.extraction.schemas import ProcessedDocument
from docstruct.processing.orchestrator import build_orchestrator
from docstruct.processing.pipeline import ExtractionPipeline
from docstruct.processing.processors import JsonLayoutProcessor, validate_upload
from docstruct.utils.config import AppConfig, load_config
from docstruct.utils.logger import get_logger, setup_logging

logger = get_logger(__name__)

_SUPPORTED_EXTENSIONS = ("*.json", "*.pdf")
_CSV_COLUMNS = [
    "filename",
    "status",
    "page_count",
    "processing_time_s",
    "confidence",
    "overall_quality",
    "primary_language",
    "tables",
    "form_pages",
    "error",
]


def _find_documents(input_dir: Path) -> list[Path]:
    """Find all supported document files in a directory.

    Args:
        input_dir: Directory to scan for documents.

    Returns:
        Sorted list of document file paths.
    """
    files: list[Path] = []
    for ext in _SUPPORTED_EXTENSIONS:
        files.extend(input_dir.glob(ext))
        files.extend(input_dir.glob(ext.upper()))
    return sorted(set(files))


def process_document(
    file_path: Path,
    config: AppConfig,
    enable_form_parsing: bool = False,
) -> ProcessedDocument:
    """Process one layout JSON or PDF file.

    Args:
        file_path: Document to process.
        config: Application configuration.
        enable_form_parsing: Whether to run the form parser on PDFs.

    Returns:
        The processed document.

    Raises:
        ProcessingError: If the file is invalid or processing fails.
        ValueError: If a PDF is given but no processor is configured.
    """
    content = file_path.read_bytes()
    if file_path.suffix.lower() == ".json":
        layout = JsonLayoutProcessor().process(content)
        return ExtractionPipeline(config.extraction).process(layout)

    validate_upload(content, file_path.name, config.processors.max_file_size_mb)
    orchestrator = build_orchestrator(config)
    try:
        return orchestrator.run(content, enable_form_parsing=enable_form_parsing)
    finally:
        orchestrator.close()


def extract_single(
    file_path: Path, enable_form_parsing: bool = False
) -> dict[str, object]:
    """Process a single document and return its JSON-ready result."""
    config = load_config()
    result = process_document(file_path, config, enable_form_parsing)
    return result.to_dict()


def _summarize(file_path: Path, result: ProcessedDocument) -> dict[str, object]:
    return {
        "filename": file_path.name,
        "status": "success",
        "page_count": result.page_count,
        "confidence": result.confidence,
        "overall_quality": (
            result.ocr_quality.overall_quality if result.ocr_quality else ""
        ),
        "primary_language": (
            result.language.primary_language if result.language else ""
        ),
        "tables": len(result.structure.tables) if result.structure else 0,
        "form_pages": len(result.forms) if result.forms else 0,
    }


def process_folder(
    input_dir: Path,
    output_csv: Path,
    enable_form_parsing: bool = False,
    verbose: bool = False,
) -> dict[str, int]:
    """Process all documents in a folder and export a summary CSV.

    Args:
        input_dir: Directory containing layout JSON or PDF files.
        output_csv: Path for the output CSV file.
        enable_form_parsing: Whether to run the form parser on PDFs.
        verbose: Whether to print per-file progress.

    Returns:
        Summary dict with total, successful, and failed counts.
    """
    config = load_config()

    files = _find_documents(input_dir)
    if not files:
        logger.warning("No documents found in %s", input_dir)
        return {"total": 0, "successful": 0, "failed": 0}

    logger.info("Found %d documents to process", len(files))

    results: list[dict[str, object]] = []
    successful = 0
    failed = 0

    for i, file_path in enumerate(files, 1):
        if verbose:
            print(f"Processing [{i}/{len(files)}]: {file_path.name}")

        start_time = time.time()
        try:
            document = process_document(file_path, config, enable_form_parsing)
            row = _summarize(file_path, document)
            row["processing_time_s"] = round(time.time() - start_time, 2)
            results.append(row)
            successful += 1
        except Exception as exc:
            logger.error("Failed to process %s: %s", file_path.name, exc)
            results.append(
                {
                    "filename": file_path.name,
                    "status": "failed",
                    "error": str(exc),
                }
            )
            failed += 1

    _write_csv(results, output_csv)
    logger.info("Results written to %s", output_csv)

    summary = {"total": len(files), "successful": successful, "failed": failed}
    _print_summary(summary, output_csv)
    return summary


def _write_csv(results: list[dict[str, object]], output_path: Path) -> None:
    """Write per-document summaries to a CSV file."""
    if not results:
        return

    output_path.parent.mkdir(parents=True, exist_ok=True)
    with open(output_path, "w", newline="") as f:
        writer = csv.DictWriter(f, fieldnames=_CSV_COLUMNS, extrasaction="ignore")
        writer.writeheader()
        writer.writerows(results)


def _print_summary(summary: dict[str, int], output_csv: Path) -> None:
    print(f"\n{'=' * 50}")
    print("Batch Processing Complete")
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
    parser = argparse.ArgumentParser(
        description="Structured document extraction",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    batch_parser = subparsers.add_parser("batch", help="Process a folder of documents")
    batch_parser.add_argument(
        "input_dir", type=Path, help="Directory with layout JSON or PDF files"
    )
    batch_parser.add_argument(
        "-o",
        "--output",
        type=Path,
        default=Path("results.csv"),
        help="Output CSV file (default: results.csv)",
    )
    batch_parser.add_argument(
        "--forms", action="store_true", help="Run the form parser on PDFs"
    )
    batch_parser.add_argument(
        "-v", "--verbose", action="store_true", help="Verbose output"
    )

    single_parser = subparsers.add_parser("extract", help="Process a single document")
    single_parser.add_argument("file", type=Path, help="Layout JSON or PDF file")
    single_parser.add_argument(
        "--forms", action="store_true", help="Run the form parser on PDFs"
    )
    single_parser.add_argument("-o", "--output", type=Path, help="Output JSON file")

    args = parser.parse_args(argv)

    setup_logging()

    if args.command == "batch":
        if not args.input_dir.is_dir():
            print(f"Error: {args.input_dir} is not a directory", file=sys.stderr)
            sys.exit(1)
        process_folder(args.input_dir, args.output, args.forms, args.verbose)
    elif args.command == "extract":
        if not args.file.exists():
            print(f"Error: {args.file} does not exist", file=sys.stderr)
            sys.exit(1)
        try:
            result = extract_single(args.file, args.forms)
        except Exception as exc:
            print(f"Error: {exc}", file=sys.stderr)
            sys.exit(1)
        output_str = json.dumps(result, indent=2, ensure_ascii=False)
        if args.output:
            args.output.parent.mkdir(parents=True, exist_ok=True)
            args.output.write_text(output_str)
            print(f"Output written to {args.output}")
        else:
            print(output_str)
    else:
        parser.print_help()
        sys.exit(0)


if __name__ == "__main__":
    main()
