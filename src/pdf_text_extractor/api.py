"""FastAPI surface for the ExtractText operation.

``POST /api/parse-pdf`` takes a multipart upload in field ``file`` and
returns ``{success, text, pages}``. A missing or empty file is a 400 and an
unexpected fault a 500, both with ``{success: false, error}``. The shared
``httpx.AsyncClient`` and the pipeline live for the app's lifespan.
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import Optional

import httpx
from fastapi import Depends, FastAPI, File, Request, UploadFile
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from pdf_text_extractor.config import load_all_settings
from pdf_text_extractor.extractor import ExtractionPipeline
from pdf_text_extractor.extractor.schemas import INTERNAL_ERROR, ExtractTextResponse
from pdf_text_extractor.logging import setup_logging

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    extraction, parse_job, ocr, service = load_all_settings()
    setup_logging(
        log_dir=service.log_dir,
        log_filename=service.log_filename,
        max_bytes=service.log_max_bytes,
        backup_count=service.log_backup_count,
    )
    logger.info("PDF text extraction service starting")

    async with httpx.AsyncClient(follow_redirects=True) as client:
        app.state.pipeline = ExtractionPipeline(extraction, parse_job, ocr, client)
        yield

    logger.info("PDF text extraction service stopped")


def get_pipeline(request: Request) -> ExtractionPipeline:
    return request.app.state.pipeline


def create_app(cors_origins: Optional[list[str]] = None) -> FastAPI:
    app = FastAPI(title="PDF Text Extraction", lifespan=lifespan)

    if cors_origins:
        app.add_middleware(
            CORSMiddleware,
            allow_origins=cors_origins,
            allow_methods=["GET", "POST"],
            allow_headers=["*"],
        )

    @app.exception_handler(Exception)
    async def unhandled_exception_handler(request: Request, exc: Exception):
        logger.error("Unhandled exception: %s", exc, exc_info=True)
        return JSONResponse(
            status_code=500,
            content=ExtractTextResponse.failure(INTERNAL_ERROR).to_payload(),
        )

    @app.get("/health", tags=["health"])
    async def health_check():
        return {"status": "healthy"}

    @app.post("/api/parse-pdf", tags=["extraction"])
    async def parse_pdf(
        file: Optional[UploadFile] = File(None),
        pipeline: ExtractionPipeline = Depends(get_pipeline),
    ):
        data = await file.read() if file is not None else None
        response = await pipeline.extract_text(
            data,
            filename=file.filename if file is not None else None,
            content_type=file.content_type if file is not None else None,
        )
        if response.success:
            status_code = 200
        elif response.error == INTERNAL_ERROR:
            status_code = 500
        else:
            status_code = 400
        return JSONResponse(status_code=status_code, content=response.to_payload())

    return app
