import os
from unittest.mock import MagicMock, patch

import cv2
import numpy as np
import pytest
from PIL import Image

from errors import RecognitionError
from ocr_service import OCRService


def _box(x, y):
    return [[x, y], [x + 100, y], [x + 100, y + 20], [x, y + 20]]


@pytest.fixture
def reader():
    with patch("ocr_service.easyocr.Reader") as reader_cls:
        instance = MagicMock()
        reader_cls.return_value = instance
        yield reader_cls, instance


@pytest.fixture
def service(reader):
    return OCRService(languages=["fr"], gpu=False)


@pytest.fixture
def card_png(tmp_path):
    path = tmp_path / "card.png"
    cv2.imwrite(str(path), np.full((100, 200, 3), 200, dtype=np.uint8))
    return path


def test_reader_created_with_languages(reader, service):
    reader_cls, _ = reader
    reader_cls.assert_called_once_with(["fr"], gpu=False, verbose=False)


def test_text_sorted_top_to_bottom(reader, service):
    _, instance = reader
    instance.readtext.return_value = [
        (_box(0, 50), "Police: ABC-123", 0.8),
        (_box(0, 10), "Souscripteur: ACME SARL", 0.9),
    ]
    text, confidence = service.extract_text_from_image("card.png")
    assert text == "Souscripteur: ACME SARL\nPolice: ABC-123"
    assert confidence == pytest.approx(85.0)


def test_engine_failure_raises_recognition_error(reader, service):
    _, instance = reader
    instance.readtext.side_effect = RuntimeError("engine crashed")
    with pytest.raises(RecognitionError):
        service.extract_text_from_image("card.png")


def test_process_card(reader, service, card_png, tmp_path):
    _, instance = reader
    instance.readtext.return_value = [
        (_box(0, 10), "Souscripteur: ACME SARL", 0.9),
        (_box(0, 40), "Police: ABC-123", 0.8),
    ]

    result = service.process_card(str(card_png), str(tmp_path))

    assert result['status'] == 'completed'
    assert result['fields'].policy_number == "ABC-123"
    assert result['fields'].subscriber_name == "ACME SARL"
    assert result['ocr_confidence'] == pytest.approx(85.0)
    called_path = instance.readtext.call_args[0][0]
    assert called_path.endswith("card_processed.png")
    # processed copy is removed afterwards
    assert sorted(os.listdir(tmp_path)) == ["card.png"]


def test_process_card_without_fields_is_partial(reader, service, card_png, tmp_path):
    _, instance = reader
    instance.readtext.return_value = []

    result = service.process_card(str(card_png), str(tmp_path))

    assert result['status'] == 'partial'
    assert result['fields'].raw_text == ""
    assert result['ocr_confidence'] == 0.0


def test_unsupported_format(service, tmp_path):
    with pytest.raises(RecognitionError):
        service.extract_text(str(tmp_path / "card.gif"), str(tmp_path))


def test_pdf_first_page(reader, service, tmp_path):
    _, instance = reader
    instance.readtext.return_value = [(_box(0, 10), "N° Assuré: 456789", 0.95)]
    pdf_path = tmp_path / "card.pdf"
    pdf_path.write_bytes(b"%PDF-1.4")

    with patch("ocr_service.convert_from_path") as convert:
        convert.return_value = [Image.new("RGB", (200, 100), "white")]
        result = service.process_card(str(pdf_path), str(tmp_path))

    convert.assert_called_once_with(str(pdf_path), dpi=300, first_page=1, last_page=1)
    assert result['fields'].member_number == "456789"


def test_pdf_conversion_failure(reader, service, tmp_path):
    pdf_path = tmp_path / "card.pdf"
    pdf_path.write_bytes(b"%PDF-1.4")

    with patch("ocr_service.convert_from_path", side_effect=OSError("poppler missing")):
        with pytest.raises(RecognitionError):
            service.process_card(str(pdf_path), str(tmp_path))
