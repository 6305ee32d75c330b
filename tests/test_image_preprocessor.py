import os

import cv2
import numpy as np
import pytest

from errors import RecognitionError
from image_preprocessor import ImagePreprocessor


@pytest.fixture
def card_image(tmp_path):
    image = np.full((120, 240, 3), 140, dtype=np.uint8)
    cv2.putText(image, "POLICE 123", (10, 60), cv2.FONT_HERSHEY_SIMPLEX, 1, (60, 60, 60), 2)
    path = tmp_path / "card.jpg"
    cv2.imwrite(str(path), image)
    return path


def test_preprocess_writes_grayscale_png(card_image):
    processed = ImagePreprocessor().preprocess(str(card_image))

    assert processed.endswith("card_processed.png")
    assert os.path.exists(processed)
    result = cv2.imread(processed, cv2.IMREAD_UNCHANGED)
    assert result.shape == (120, 240)


def test_preprocess_into_output_dir(card_image, tmp_path):
    out_dir = tmp_path / "out"
    out_dir.mkdir()
    processed = ImagePreprocessor().preprocess(str(card_image), output_dir=str(out_dir))
    assert os.path.dirname(processed) == str(out_dir)


def test_normalize_contrast_stretches_range():
    gray = np.linspace(100, 150, 64, dtype=np.uint8).reshape(8, 8)
    normalized = ImagePreprocessor()._normalize_contrast(gray)
    assert normalized.min() == 0
    assert normalized.max() == 255


def test_unreadable_image(tmp_path):
    path = tmp_path / "broken.jpg"
    path.write_bytes(b"not an image")
    with pytest.raises(RecognitionError) as exc_info:
        ImagePreprocessor().preprocess(str(path))
    assert exc_info.value.file_path == str(path)


def test_missing_image(tmp_path):
    with pytest.raises(RecognitionError):
        ImagePreprocessor().preprocess(str(tmp_path / "missing.png"))
