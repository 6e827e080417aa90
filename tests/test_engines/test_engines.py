"""
Tests for OCR engine construction and Vision response handling.
"""

import asyncio
from types import SimpleNamespace

import pytest
from google.api_core import exceptions as gexc

from statement_desk.classifiers.factory import build_classifier
from statement_desk.config import Settings
from statement_desk.engines.base import OcrAuthFailed, OcrError, OcrQuotaExceeded, OcrTransientError
from statement_desk.engines.factory import build_ocr_engine
from statement_desk.engines.google_vision import GoogleVisionEngine
from statement_desk.engines.tesseract_engine import TesseractEngine


def _status(code=0, message=""):
    return SimpleNamespace(code=code, message=message)


def _vision_response(texts, file_error=None, page_error=None):
    pages = [
        SimpleNamespace(error=page_error or _status(), full_text_annotation=SimpleNamespace(text=t))
        for t in texts
    ]
    return SimpleNamespace(responses=[SimpleNamespace(error=file_error or _status(), responses=pages)])


def _engine(response=None, error=None):
    def batch_annotate_files(requests):
        if error is not None:
            raise error
        return response

    client = SimpleNamespace(batch_annotate_files=batch_annotate_files)
    return GoogleVisionEngine(client=client, cost_per_1000_pages=1.5)


class TestGoogleVisionEngine:
    """Test response parsing and error mapping."""

    def test_text(self):
        engine = _engine(_vision_response(["01/15/2024 WALMART 125.67"]))
        assert asyncio.run(engine.recognize(b"%PDF-1.7")) == "01/15/2024 WALMART 125.67"

    def test_empty_response_is_blank_page(self):
        engine = _engine(SimpleNamespace(responses=[]))
        assert asyncio.run(engine.recognize(b"%PDF-1.7")) == ""

    def test_cost_per_page(self):
        assert _engine().cost_per_page_usd == pytest.approx(0.0015)

    def test_quota_exception(self):
        engine = _engine(error=gexc.ResourceExhausted("quota"))
        with pytest.raises(OcrQuotaExceeded):
            asyncio.run(engine.recognize(b"%PDF-1.7"))

    def test_transient_exception(self):
        engine = _engine(error=gexc.ServiceUnavailable("down"))
        with pytest.raises(OcrTransientError):
            asyncio.run(engine.recognize(b"%PDF-1.7"))

    def test_permission_denied_payload_is_auth(self):
        engine = _engine(_vision_response([], file_error=_status(7, "denied")))
        with pytest.raises(OcrAuthFailed):
            asyncio.run(engine.recognize(b"%PDF-1.7"))

    def test_unknown_payload_error(self):
        engine = _engine(_vision_response(["x"], page_error=_status(13, "internal")))
        with pytest.raises(OcrError):
            asyncio.run(engine.recognize(b"%PDF-1.7"))


class TestFactories:
    """Test engine and classifier selection from settings."""

    def test_ocr_disabled(self):
        assert build_ocr_engine(Settings(OCR_ENGINE="none")) is None

    def test_vision_without_credentials(self):
        config = Settings(OCR_ENGINE="google_vision", GOOGLE_APPLICATION_CREDENTIALS=None, GOOGLE_CLOUD_VISION_KEY=None)
        assert build_ocr_engine(config) is None

    def test_vision_missing_credentials_file(self):
        config = Settings(OCR_ENGINE="google_vision", GOOGLE_APPLICATION_CREDENTIALS="/nonexistent/key.json")
        assert build_ocr_engine(config) is None

    def test_tesseract(self):
        engine = build_ocr_engine(Settings(OCR_ENGINE="tesseract"))
        assert isinstance(engine, TesseractEngine)
        assert engine.engine_name == "tesseract"

    def test_unknown_engine(self):
        with pytest.raises(ValueError):
            build_ocr_engine(Settings(OCR_ENGINE="abbyy"))

    def test_classifier_needs_api_key(self):
        assert build_classifier(Settings(ANTHROPIC_API_KEY=None)) is None

    def test_claude_classifier(self):
        classifier = build_classifier(Settings(ANTHROPIC_API_KEY="sk-test"))
        assert classifier.classifier_name == "claude"
