"""
Google Cloud Vision OCR engine.
Sends each one-page PDF to document text detection as a file request,
so no local rasterisation is needed.
"""

import asyncio
import os
from typing import Optional

import structlog
from google.api_core import exceptions as gexc
from google.auth.exceptions import DefaultCredentialsError
from google.cloud import vision

from statement_desk.engines.base import (
    OcrAuthFailed,
    OcrEngine,
    OcrError,
    OcrInvalidFormat,
    OcrNotConfigured,
    OcrQuotaExceeded,
    OcrTransientError,
)

logger = structlog.get_logger(__name__)

PDF_MIME_TYPE = "application/pdf"

# google.rpc.Code values carried in per-request error payloads
_RPC_INVALID_ARGUMENT = 3
_RPC_PERMISSION_DENIED = 7
_RPC_RESOURCE_EXHAUSTED = 8
_RPC_UNAVAILABLE = 14
_RPC_UNAUTHENTICATED = 16


class GoogleVisionEngine(OcrEngine):
    """
    Document text detection over single-page PDFs.

    Credentials come from a service-account file (GOOGLE_APPLICATION_CREDENTIALS)
    or an API key (GOOGLE_CLOUD_VISION_KEY). The client is created once and
    reused for every page.
    """

    engine_name = "google_vision"
    engine_version = "v1"

    def __init__(
        self,
        credentials_path: Optional[str] = None,
        api_key: Optional[str] = None,
        cost_per_1000_pages: float = 1.50,
        client: Optional[vision.ImageAnnotatorClient] = None,
    ):
        self._cost_per_page = cost_per_1000_pages / 1000
        if client is not None:
            self._client = client
            return

        try:
            if credentials_path:
                if not os.path.exists(credentials_path):
                    raise OcrNotConfigured(
                        self.engine_name,
                        f"Credentials file not found: {credentials_path}",
                    )
                self._client = vision.ImageAnnotatorClient.from_service_account_file(credentials_path)
            elif api_key:
                self._client = vision.ImageAnnotatorClient(client_options={"api_key": api_key})
            else:
                raise OcrNotConfigured(
                    self.engine_name,
                    "Google Cloud Vision credentials not configured. Set "
                    "GOOGLE_APPLICATION_CREDENTIALS or GOOGLE_CLOUD_VISION_KEY.",
                )
        except DefaultCredentialsError as e:
            raise OcrNotConfigured(self.engine_name, f"Invalid credentials: {e}") from e

    @property
    def cost_per_page_usd(self) -> float:
        return self._cost_per_page

    async def recognize(self, page_pdf: bytes, page_number: int = 1) -> str:
        request = vision.AnnotateFileRequest(
            input_config=vision.InputConfig(content=page_pdf, mime_type=PDF_MIME_TYPE),
            features=[vision.Feature(type_=vision.Feature.Type.DOCUMENT_TEXT_DETECTION)],
            pages=[1],
        )

        try:
            response = await asyncio.to_thread(
                self._client.batch_annotate_files, requests=[request]
            )
        except gexc.ResourceExhausted as e:
            raise OcrQuotaExceeded(self.engine_name, f"Vision API quota exceeded: {e.message}") from e
        except (gexc.Unauthenticated, gexc.PermissionDenied) as e:
            raise OcrAuthFailed(self.engine_name, f"Vision API authentication failed: {e.message}") from e
        except gexc.InvalidArgument as e:
            raise OcrInvalidFormat(self.engine_name, f"Invalid page content: {e.message}") from e
        except (gexc.ServiceUnavailable, gexc.DeadlineExceeded, gexc.InternalServerError) as e:
            raise OcrTransientError(self.engine_name, str(e)) from e
        except gexc.GoogleAPICallError as e:
            raise OcrError(self.engine_name, str(e)) from e

        return self._text_from_response(response, page_number)

    def _text_from_response(self, response, page_number: int) -> str:
        if not response.responses:
            return ""
        file_response = response.responses[0]
        if file_response.error.message:
            self._raise_for_status(file_response.error.code, file_response.error.message)

        texts = []
        for image_response in file_response.responses:
            if image_response.error.message:
                self._raise_for_status(image_response.error.code, image_response.error.message)
            texts.append(image_response.full_text_annotation.text or "")

        text = "\n".join(t for t in texts if t)
        logger.debug("vision_page_recognized", page_number=page_number, char_count=len(text))
        return text

    def _raise_for_status(self, code: int, message: str) -> None:
        if code == _RPC_RESOURCE_EXHAUSTED:
            raise OcrQuotaExceeded(self.engine_name, f"Vision API quota exceeded: {message}")
        if code in (_RPC_UNAUTHENTICATED, _RPC_PERMISSION_DENIED):
            raise OcrAuthFailed(self.engine_name, f"Vision API authentication failed: {message}")
        if code == _RPC_INVALID_ARGUMENT:
            raise OcrInvalidFormat(self.engine_name, f"Invalid page content: {message}")
        if code == _RPC_UNAVAILABLE:
            raise OcrTransientError(self.engine_name, message)
        raise OcrError(self.engine_name, message)

    async def health_check(self) -> bool:
        return self._client is not None
