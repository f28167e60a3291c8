"""Command-line interface for single, batch and QR-only processing.

Provides subcommands for running one document through the pipeline,
processing a folder of documents into a CSV, and decoding a QR code.
"""

import argparse
import asyncio
import csv
import json
import sys
import time
from pathlib import Path

from credocr.ocr import mime_types
from credocr.pipeline import DocumentPipeline
from credocr.qr.detector import QRCodeDetector
from credocr.utils.config import AppConfig, load_config
from credocr.utils.errors import CredOCRError, QRRequiredError
from credocr.utils.logger import get_logger, setup_logging

logger = get_logger(__name__)

_SUPPORTED_EXTENSIONS = ("*.png", "*.jpg", "*.jpeg", "*.webp", "*.heic", "*.pdf")
_META_COLUMNS = [
    "filename",
    "status",
    "mime_type",
    "ocr_provider",
    "ocr_confidence",
    "processing_method",
    "confidence",
    "missing_fields",
    "processing_time_s",
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


def guess_mime_type(file_path: Path) -> str:
    return mime_types.detect_mime_type_from_url(file_path.name)


async def _process_single_file(
    pipeline: DocumentPipeline,
    file_path: Path,
    doc_sub_type: str | None,
    doc_type: str | None = None,
    mime_type: str | None = None,
) -> dict[str, object]:
    """Run one file through the pipeline and flatten it into a CSV row.

    Args:
        pipeline: Configured document pipeline.
        file_path: Document to process.
        doc_sub_type: Document sub-type.
        doc_type: Document type override.
        mime_type: MIME type override; guessed from the extension otherwise.

    Returns:
        Row dictionary with meta columns and mapped fields.
    """
    mime_type = mime_type or guess_mime_type(file_path)
    result = await pipeline.process(file_path.read_bytes(), mime_type, doc_type, doc_sub_type)

    row: dict[str, object] = {
        "filename": file_path.name,
        "status": "success",
        "mime_type": mime_type,
        "ocr_provider": result.extracted_text.provider,
        "ocr_confidence": result.extracted_text.confidence,
        "processing_method": result.mapping.processing_method,
        "confidence": result.mapping.confidence,
        "missing_fields": ";".join(result.mapping.missing_fields),
        "error": None,
    }
    for name, value in result.mapping.mapped_data.items():
        row[name] = json.dumps(value) if isinstance(value, (dict, list)) else value
    return row


async def process_folder(
    input_dir: Path,
    output_csv: Path,
    doc_sub_type: str | None,
    doc_type: str | None = None,
    verbose: bool = False,
    config: AppConfig | None = None,
) -> dict[str, int]:
    """Process all documents in a folder and export results to CSV.

    Args:
        input_dir: Directory containing document files.
        output_csv: Path for the output CSV file.
        doc_sub_type: Document sub-type applied to every file.
        doc_type: Document type override.
        verbose: Whether to print per-file progress.
        config: Application configuration. Loaded from disk if omitted.

    Returns:
        Summary dict with total, successful, and failed counts.
    """
    files = _find_documents(input_dir)
    if not files:
        logger.warning("No documents found in %s", input_dir)
        return {"total": 0, "successful": 0, "failed": 0}

    logger.info("Found %d documents to process", len(files))
    pipeline = DocumentPipeline(config or load_config())

    results: list[dict[str, object]] = []
    successful = 0
    failed = 0
    try:
        for i, file_path in enumerate(files, 1):
            if verbose:
                print(f"Processing [{i}/{len(files)}]: {file_path.name}")

            start_time = time.time()
            try:
                row = await _process_single_file(pipeline, file_path, doc_sub_type, doc_type)
                successful += 1
            except CredOCRError as exc:
                logger.error("Failed to process %s: %s", file_path.name, exc)
                row = {"filename": file_path.name, "status": "failed", "error": str(exc)}
                failed += 1
            row["processing_time_s"] = round(time.time() - start_time, 2)
            results.append(row)
    finally:
        await pipeline.aclose()

    _write_csv(results, output_csv)
    logger.info("Results written to %s", output_csv)

    summary = {"total": len(files), "successful": successful, "failed": failed}
    _print_summary(summary, output_csv)
    return summary


def _write_csv(results: list[dict[str, object]], output_path: Path) -> None:
    """Write pipeline results to a CSV file.

    Args:
        results: List of result dictionaries.
        output_path: Path for the output CSV file.
    """
    if not results:
        return

    all_keys: set[str] = set()
    for r in results:
        all_keys.update(r.keys())

    field_columns = sorted(all_keys - set(_META_COLUMNS))
    columns = [c for c in _META_COLUMNS if c in all_keys] + field_columns

    output_path.parent.mkdir(parents=True, exist_ok=True)
    with open(output_path, "w", newline="") as f:
        writer = csv.DictWriter(f, fieldnames=columns, extrasaction="ignore")
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


async def extract_single(
    file_path: Path,
    doc_sub_type: str | None,
    doc_type: str | None = None,
    mime_type: str | None = None,
    config: AppConfig | None = None,
) -> dict[str, object]:
    """Process a single document and return the full pipeline result.

    Args:
        file_path: Path to the document file.
        doc_sub_type: Document sub-type.
        doc_type: Document type override.
        mime_type: MIME type override.
        config: Application configuration. Loaded from disk if omitted.

    Returns:
        Dictionary with the filename and the pipeline result.
    """
    pipeline = DocumentPipeline(config or load_config())
    try:
        result = await pipeline.process(
            file_path.read_bytes(),
            mime_type or guess_mime_type(file_path),
            doc_type,
            doc_sub_type,
        )
    finally:
        await pipeline.aclose()
    return {"filename": file_path.name, **result.to_dict()}


async def decode_qr(file_path: Path, config: AppConfig | None = None) -> str | None:
    """Decode the QR code of an image file without any routing."""
    config = config or load_config()
    detector = QRCodeDetector(config.qr)
    try:
        return await detector.detect_qr_code(file_path.read_bytes(), guess_mime_type(file_path))
    finally:
        await detector.aclose()


def main(argv: list[str] | None = None) -> None:
    """Parse CLI arguments and dispatch to the appropriate command.

    Args:
        argv: Command-line arguments (defaults to sys.argv).
    """
    parser = argparse.ArgumentParser(
        description="Credential document OCR and mapping",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument("-c", "--config", type=Path, help="YAML configuration file")

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    batch_parser = subparsers.add_parser("batch", help="Process a folder of documents")
    batch_parser.add_argument("input_dir", type=Path, help="Input directory with documents")
    batch_parser.add_argument(
        "-o",
        "--output",
        type=Path,
        default=Path("results.csv"),
        help="Output CSV file (default: results.csv)",
    )
    batch_parser.add_argument("-s", "--sub-type", dest="sub_type", help="Document sub-type")
    batch_parser.add_argument("-t", "--doc-type", dest="doc_type", help="Document type")
    batch_parser.add_argument("-v", "--verbose", action="store_true", help="Verbose output")

    single_parser = subparsers.add_parser("extract", help="Process a single document")
    single_parser.add_argument("file", type=Path, help="Document file to process")
    single_parser.add_argument("-s", "--sub-type", dest="sub_type", help="Document sub-type")
    single_parser.add_argument("-t", "--doc-type", dest="doc_type", help="Document type")
    single_parser.add_argument("--mime", help="MIME type (guessed from extension by default)")
    single_parser.add_argument("-o", "--output", type=Path, help="Output JSON file")

    qr_parser = subparsers.add_parser("qr", help="Decode the QR code of an image")
    qr_parser.add_argument("file", type=Path, help="Image file")

    args = parser.parse_args(argv)

    config = load_config(args.config)
    setup_logging(config.log_level)

    if args.command == "batch":
        if not args.input_dir.is_dir():
            print(f"Error: {args.input_dir} is not a directory", file=sys.stderr)
            sys.exit(1)
        asyncio.run(
            process_folder(
                args.input_dir,
                args.output,
                args.sub_type,
                args.doc_type,
                args.verbose,
                config,
            )
        )
    elif args.command == "extract":
        if not args.file.exists():
            print(f"Error: {args.file} does not exist", file=sys.stderr)
            sys.exit(1)
        try:
            result = asyncio.run(
                extract_single(args.file, args.sub_type, args.doc_type, args.mime, config)
            )
        except QRRequiredError as exc:
            print(f"Error: {exc}", file=sys.stderr)
            sys.exit(2)
        except CredOCRError as exc:
            print(f"Error: {exc}", file=sys.stderr)
            sys.exit(1)
        output_str = json.dumps(result, indent=2, default=str)
        if args.output:
            args.output.parent.mkdir(parents=True, exist_ok=True)
            args.output.write_text(output_str)
            print(f"Output written to {args.output}")
        else:
            print(output_str)
    elif args.command == "qr":
        if not args.file.exists():
            print(f"Error: {args.file} does not exist", file=sys.stderr)
            sys.exit(1)
        payload = asyncio.run(decode_qr(args.file, config))
        if payload is None:
            print("No QR code found", file=sys.stderr)
            sys.exit(1)
        print(payload)
    else:
        parser.print_help()
        sys.exit(0)


if __name__ == "__main__":
    main()
