"""PDF text extraction service -- application entry point.

Startup sequence:
    1. Load service configuration (needed for log_dir and listener settings)
    2. Setup logging (must happen before any code that logs)
    3. Load extraction and provider configuration
    4. Run the requested command:
         extract <pdf>  -- run ExtractText once and print the JSON response
         serve          -- run the HTTP API under uvicorn

Exit status is 0 when the response reports success, 1 otherwise.
"""

import argparse
import asyncio
import json
import logging
import sys
from pathlib import Path

import httpx

from pdf_text_extractor.config import (
    ExtractionSettings,
    OcrSettings,
    ParseJobSettings,
    ServiceSettings,
)
from pdf_text_extractor.extractor import ExtractionPipeline, ExtractTextResponse
from pdf_text_extractor.logging import setup_logging

logger = logging.getLogger(__name__)


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="pdf-text-extractor",
        description="Extract plain text from (possibly scanned, Hebrew) PDFs.",
    )
    sub = parser.add_subparsers(dest="command", required=True)

    extract = sub.add_parser("extract", help="Extract text from a local PDF file")
    extract.add_argument("pdf", type=Path, help="Path to the PDF file")

    serve = sub.add_parser("serve", help="Run the HTTP API")
    serve.add_argument("--host", help="Bind address (default from config)")
    serve.add_argument("--port", type=int, help="Port (default from config)")
    return parser


async def _extract_file(
    pdf: Path,
    extraction: ExtractionSettings,
    parse_job: ParseJobSettings,
    ocr: OcrSettings,
) -> ExtractTextResponse:
    data = pdf.read_bytes() if pdf.is_file() else None
    async with httpx.AsyncClient(follow_redirects=True) as client:
        pipeline = ExtractionPipeline(extraction, parse_job, ocr, client)
        return await pipeline.extract_text(data, filename=pdf.name)


def main(argv: list[str] | None = None) -> int:
    """Run the PDF text extraction CLI."""
    args = _build_parser().parse_args(argv)

    # 1. Load service config first -- needed for logging paths
    service = ServiceSettings()

    # 2. Setup logging BEFORE anything else logs
    setup_logging(
        log_dir=service.log_dir,
        log_filename=service.log_filename,
        max_bytes=service.log_max_bytes,
        backup_count=service.log_backup_count,
    )

    # 3. Load remaining configuration
    extraction = ExtractionSettings()
    parse_job = ParseJobSettings()
    ocr = OcrSettings()

    # Log non-sensitive config values (never log API keys)
    logger.info(
        "Config loaded -- extraction: threshold=%s, ranges=%s",
        extraction.script_ratio_threshold,
        [f"{a:#06x}-{b:#06x}" for a, b in extraction.script_ranges],
    )
    logger.info(
        "Config loaded -- parse_job: configured=%s, base_url=%s, interval=%ss, deadline=%ss",
        parse_job.is_configured,
        parse_job.base_url or "-",
        parse_job.poll_interval_seconds,
        parse_job.job_deadline_seconds,
    )
    logger.info(
        "Config loaded -- ocr: configured=%s, base_url=%s, timeout=%ss",
        ocr.is_configured,
        ocr.base_url,
        ocr.timeout_seconds,
    )

    # 4. Run command
    if args.command == "serve":
        import uvicorn

        from pdf_text_extractor.api import create_app

        uvicorn.run(
            create_app(service.cors_origins),
            host=args.host or service.host,
            port=args.port or service.port,
        )
        return 0

    response = asyncio.run(_extract_file(args.pdf, extraction, parse_job, ocr))
    print(json.dumps(response.to_payload(), ensure_ascii=False, indent=2))
    return 0 if response.success else 1


if __name__ == "__main__":
    sys.exit(main())
