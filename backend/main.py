"""
FastAPI application - Insurance Card OCR API
"""
from fastapi import FastAPI, UploadFile, File, HTTPException, Depends, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from typing import List
from contextlib import asynccontextmanager
from functools import lru_cache
import logging
import os
import shutil
import uuid

import config
from card_parser import extract
from errors import RecognitionError
from ocr_service import OCRService
from schemas import (
    CardExtractionResponse, CardFieldResponse, ErrorResponse, ParseTextRequest
)

logging.basicConfig(
    level=config.LOG_LEVEL,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Lifespan context manager for startup and shutdown events"""
    os.makedirs(os.path.join(config.UPLOAD_DIR, "temp"), exist_ok=True)
    logger.info(f"Upload directory: {config.UPLOAD_DIR}")
    yield


app = FastAPI(
    title="Insurance Card OCR API",
    description="API for extracting insurance card fields using OCR",
    version="1.0.0",
    lifespan=lifespan
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=config.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@lru_cache()
def get_ocr_service() -> OCRService:
    """OCR engine is loaded on first use and shared afterwards"""
    return OCRService()


@app.exception_handler(RecognitionError)
async def recognition_error_handler(request: Request, exc: RecognitionError):
    logger.error(f"Recognition failed for {exc.file_path}: {exc.message}")
    error = ErrorResponse(
        error="recognition_failed",
        message=exc.message,
        recommendation="Retake the photo with the whole card in frame and good lighting",
    )
    return JSONResponse(status_code=422, content=error.model_dump())


@app.get("/")
async def root():
    """Service banner"""
    return {
        "status": "ok",
        "message": "Insurance Card OCR API is running",
        "version": "1.0.0"
    }


@app.get("/api/health")
async def health():
    """Health check endpoint"""
    return {"status": "ok", "message": "Server is running"}


@app.get("/api/insurance/fields", response_model=List[CardFieldResponse])
async def get_card_fields():
    """List the card fields the parser extracts and the labels it looks for"""
    return [
        CardFieldResponse(
            key=key,
            name=template["name"],
            keywords=template["detect_keywords"]
        )
        for key, template in config.CARD_FIELDS.items()
    ]


@app.post("/api/insurance/upload", response_model=CardExtractionResponse, status_code=201)
def upload_card(
    image: UploadFile = File(...),
    ocr_service: OCRService = Depends(get_ocr_service)
):
    """
    Upload an insurance card image and extract its fields.
    The file is only kept while it is being processed.
    """
    filename = image.filename or ""
    file_ext = filename.rsplit(".", 1)[-1].lower() if "." in filename else ""
    if file_ext not in config.ALLOWED_EXTENSIONS:
        raise HTTPException(
            status_code=400,
            detail=f"Invalid file type. Allowed: {', '.join(sorted(config.ALLOWED_EXTENSIONS))}"
        )

    work_dir = os.path.join(config.UPLOAD_DIR, "temp", uuid.uuid4().hex)
    os.makedirs(work_dir, exist_ok=True)
    file_path = os.path.join(work_dir, f"card.{file_ext}")

    try:
        with open(file_path, "wb") as buffer:
            shutil.copyfileobj(image.file, buffer)

        if os.path.getsize(file_path) > config.MAX_UPLOAD_SIZE:
            raise HTTPException(
                status_code=413,
                detail=f"File too large. Maximum size: {config.MAX_UPLOAD_SIZE // (1024 * 1024)}MB"
            )

        logger.info(f"Processing card image: {filename}")
        result = ocr_service.process_card(file_path, work_dir)
    finally:
        shutil.rmtree(work_dir, ignore_errors=True)

    return CardExtractionResponse(
        message="Insurance card processed successfully",
        status=result['status'],
        ocr_confidence=result['ocr_confidence'],
        processing_time=result['processing_time'],
        data=result['fields']
    )


@app.post("/api/insurance/parse", response_model=CardExtractionResponse)
async def parse_card_text(request: ParseTextRequest):
    """
    Parse already recognized card text (no OCR)
    """
    fields = extract(request.text)
    status = "completed" if fields.extracted_count() > 0 else "partial"

    return CardExtractionResponse(
        message="Card text parsed successfully",
        status=status,
        data=fields
    )


if __name__ == "__main__":
    import uvicorn
    uvicorn.run("main:app", host="0.0.0.0", port=int(os.getenv("PORT", "8000")), reload=True)
