"""
OCR processing service for insurance cards using EasyOCR
"""
import easyocr
import os
import time
import logging
from typing import Dict, List, Optional, Tuple
from pdf2image import convert_from_path

import config
from card_parser import extract
from errors import RecognitionError
from image_preprocessor import ImagePreprocessor

logger = logging.getLogger(__name__)


class OCRService:
    def __init__(self, languages: Optional[List[str]] = None, gpu: Optional[bool] = None):
        """Initialize OCR service with EasyOCR and the image preprocessor"""
        languages = languages or config.OCR_LANGUAGES
        gpu = config.OCR_GPU if gpu is None else gpu

        logger.info(f"Initializing EasyOCR for {languages} (this may take a minute first time)...")
        self.reader = easyocr.Reader(languages, gpu=gpu, verbose=False)
        self.preprocessor = ImagePreprocessor()
        logger.info("EasyOCR initialized successfully")

    def extract_text_from_image(self, image_path: str) -> Tuple[str, float]:
        """
        Extract text from image using EasyOCR
        Returns: (extracted_text, confidence_score)
        """
        try:
            result = self.reader.readtext(image_path, detail=1, paragraph=False)
        except Exception as e:
            logger.error(f"Error extracting text from image: {str(e)}")
            raise RecognitionError(f"Text recognition failed: {str(e)}", file_path=image_path) from e

        # Sort results by vertical position (top to bottom, left to right)
        result = sorted(result, key=lambda x: (x[0][0][1], x[0][0][0]))

        text_lines = []
        confidences = []
        for (bbox, text, confidence) in result:
            text_lines.append(text)
            confidences.append(confidence * 100)  # Convert to percentage

        full_text = '\n'.join(text_lines)
        avg_confidence = sum(confidences) / len(confidences) if confidences else 0.0

        return full_text.strip(), avg_confidence

    def extract_text(self, file_path: str, temp_dir: str) -> Tuple[str, float]:
        """
        Preprocess a card image (or first PDF page) and run OCR on it
        Returns: (extracted_text, confidence_score)
        """
        file_ext = os.path.splitext(file_path)[1].lower().lstrip('.')
        if file_ext not in config.ALLOWED_EXTENSIONS:
            raise RecognitionError(
                f"Unsupported file format: {file_ext or 'none'}", file_path=file_path
            )

        image_path = file_path
        if file_ext == 'pdf':
            image_path = self._pdf_first_page(file_path, temp_dir)

        processed_path = self.preprocessor.preprocess(image_path, output_dir=temp_dir)
        try:
            return self.extract_text_from_image(processed_path)
        finally:
            if os.path.exists(processed_path):
                os.remove(processed_path)

    def process_card(self, file_path: str, temp_dir: str) -> Dict:
        """
        Recognize and parse an insurance card
        Returns: {
            'fields': InsuranceCardFields,
            'ocr_confidence': float,
            'processing_time': float,
            'status': 'completed' | 'partial'
        }
        """
        start = time.time()
        text, confidence = self.extract_text(file_path, temp_dir)
        fields = extract(text)

        status = 'completed' if fields.extracted_count() > 0 else 'partial'
        processing_time = time.time() - start
        logger.info(
            f"Card processed in {processing_time:.2f}s: "
            f"{fields.extracted_count()} fields, confidence {confidence:.1f}%"
        )

        return {
            'fields': fields,
            'ocr_confidence': confidence,
            'processing_time': processing_time,
            'status': status,
        }

    def _pdf_first_page(self, pdf_path: str, temp_dir: str) -> str:
        """Convert the first PDF page to a PNG in temp_dir"""
        try:
            images = convert_from_path(pdf_path, dpi=300, first_page=1, last_page=1)
        except Exception as e:
            logger.error(f"PDF conversion error: {e}")
            raise RecognitionError(
                f"PDF conversion failed: {str(e)}. Make sure Poppler is installed",
                file_path=pdf_path,
            ) from e

        if not images:
            raise RecognitionError("PDF has no pages", file_path=pdf_path)

        page_path = os.path.join(temp_dir, 'page_1.png')
        images[0].save(page_path, 'PNG')
        return page_path
