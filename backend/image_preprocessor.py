"""
Image Preprocessor
Prepares card photos for OCR: orientation fix, grayscale, contrast
normalization and sharpening.
"""

import cv2
import numpy as np
from PIL import Image, ImageOps, UnidentifiedImageError
from typing import Optional
import logging
from pathlib import Path

from errors import RecognitionError

logger = logging.getLogger(__name__)


class ImagePreprocessor:
    """Grayscale / contrast / sharpen pipeline for card images."""

    def __init__(self):
        """Initialize the sharpening kernel."""
        self.sharpen_kernel = np.array(
            [[0, -1, 0],
             [-1, 5, -1],
             [0, -1, 0]],
            dtype=np.float32,
        )

    def preprocess(self, image_path: str, output_dir: Optional[str] = None) -> str:
        """
        Preprocess an image and write the result as PNG.

        Args:
            image_path: Path to the source image
            output_dir: Directory for the processed copy (defaults to the
                source directory)

        Returns:
            Path of the processed image
        """
        image = self._load_image(image_path)

        gray = cv2.cvtColor(image, cv2.COLOR_RGB2GRAY) if len(image.shape) == 3 else image
        normalized = self._normalize_contrast(gray)
        sharpened = self._sharpen(normalized)

        source = Path(image_path)
        target_dir = Path(output_dir) if output_dir else source.parent
        processed_path = target_dir / f"{source.stem}_processed.png"

        if not cv2.imwrite(str(processed_path), sharpened):
            raise RecognitionError("Failed to write preprocessed image", file_path=image_path)

        logger.info(f"Preprocessed image saved to {processed_path}")
        return str(processed_path)

    def _load_image(self, image_path: str) -> np.ndarray:
        """Load image with Pillow, applying EXIF orientation (phone photos)."""
        try:
            with Image.open(image_path) as pil_image:
                pil_image = ImageOps.exif_transpose(pil_image)
                return np.array(pil_image.convert("RGB"))
        except (FileNotFoundError, UnidentifiedImageError, OSError) as e:
            logger.error(f"Failed to load image {image_path}: {str(e)}")
            raise RecognitionError(f"Unreadable image: {str(e)}", file_path=image_path) from e

    def _normalize_contrast(self, gray_image: np.ndarray) -> np.ndarray:
        """Stretch intensities to the full 0-255 range."""
        return cv2.normalize(gray_image, None, 0, 255, cv2.NORM_MINMAX)

    def _sharpen(self, gray_image: np.ndarray) -> np.ndarray:
        """Sharpen with a 3x3 Laplacian-style kernel."""
        return cv2.filter2D(gray_image, -1, self.sharpen_kernel)
