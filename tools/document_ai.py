"""
Document AI integration tools for Fundex receipt OCR.
"""

import io
import os
import logging
from functools import lru_cache
from typing import Any, Dict, Optional, Union

import requests
from PIL import Image, UnidentifiedImageError
from google.api_core.client_options import ClientOptions
from google.cloud import documentai_v1 as documentai

from utils.error_handling import DocumentProcessingError, ErrorBoundary

# Initialize logger
logger = logging.getLogger("fundex.tools.document_ai")

DEFAULT_OCR_TIMEOUT_SECONDS = 60
DEFAULT_DOWNLOAD_TIMEOUT_SECONDS = 15

ImageRef = Union[str, bytes]


@lru_cache(maxsize=1)
def get_ocr_settings() -> Dict[str, Any]:
    """Processor name and timeouts from the ``google_cloud`` and ``ocr`` config sections."""
    from config.config_loader import ConfigLoader

    loader = ConfigLoader()
    cloud_config = loader.get_section("google_cloud")
    ocr_config = loader.get_section("ocr")
    return {
        "processor_id": cloud_config.get("ocr_processor_id"),
        "timeout_seconds": ocr_config.get("timeout_seconds", DEFAULT_OCR_TIMEOUT_SECONDS),
        "download_timeout_seconds": ocr_config.get(
            "download_timeout_seconds", DEFAULT_DOWNLOAD_TIMEOUT_SECONDS
        ),
    }


def load_image_bytes(image_ref: ImageRef, timeout: float = DEFAULT_DOWNLOAD_TIMEOUT_SECONDS) -> bytes:
    """
    Resolve a receipt reference to raw bytes.

    Args:
        image_ref: Raw bytes, an http(s) URL or a local file path
        timeout: Download timeout for URLs

    Returns:
        bytes: Image content

    Raises:
        DocumentProcessingError: If the reference cannot be resolved
    """
    if isinstance(image_ref, (bytes, bytearray)):
        return bytes(image_ref)

    if image_ref.startswith(("http://", "https://")):
        try:
            response = requests.get(image_ref, timeout=timeout)
            response.raise_for_status()
        except requests.RequestException as e:
            raise DocumentProcessingError(
                f"Could not download receipt: {e}", document_ref=image_ref, cause=e
            ) from e
        return response.content

    if not os.path.isfile(image_ref):
        raise DocumentProcessingError(f"Receipt not found: {image_ref}", document_ref=image_ref)

    with open(image_ref, "rb") as f:
        return f.read()


def detect_mime_type(content: bytes) -> str:
    """
    Detect the MIME type of receipt content.

    Args:
        content: Image or PDF bytes

    Returns:
        str: MIME type accepted by Document AI

    Raises:
        DocumentProcessingError: If the content is not a recognizable image
    """
    if content.startswith(b"%PDF"):
        return "application/pdf"

    try:
        with Image.open(io.BytesIO(content)) as img:
            image_format = img.format
    except (UnidentifiedImageError, OSError) as e:
        raise DocumentProcessingError("Unsupported receipt format", cause=e) from e

    mime_type = Image.MIME.get(image_format or "")
    if not mime_type:
        raise DocumentProcessingError(f"Unsupported receipt format: {image_format}")
    return mime_type


def _client_for(processor_id: str) -> documentai.DocumentProcessorServiceClient:
    """Create a client bound to the processor's regional endpoint."""
    parts = processor_id.split("/")
    if len(parts) > 3 and parts[2] == "locations" and parts[3] != "us":
        options = ClientOptions(api_endpoint=f"{parts[3]}-documentai.googleapis.com")
        return documentai.DocumentProcessorServiceClient(client_options=options)
    return documentai.DocumentProcessorServiceClient()


def process_document(
    content: bytes,
    processor_id: str,
    mime_type: str = "application/pdf",
    timeout: Optional[float] = None,
) -> Dict[str, Any]:
    """
    Process a document using Google Document AI.

    Args:
        content: Document bytes content
        processor_id: Document AI processor resource name
        mime_type: MIME type of the content
        timeout: Request timeout in seconds

    Returns:
        dict: Extracted text and page count
    """
    client = _client_for(processor_id)

    raw_document = documentai.RawDocument(content=content, mime_type=mime_type)
    request = documentai.ProcessRequest(name=processor_id, raw_document=raw_document)

    result = client.process_document(request=request, timeout=timeout)
    return _extract_document_text(result.document)


def _extract_document_text(document: Any) -> Dict[str, Any]:
    """
    Pull the full text out of a Document AI result.

    Args:
        document: Document AI document result

    Returns:
        dict: Document text and page count
    """
    return {
        "text": str(document.text) if getattr(document, "text", None) else "",
        "pages": len(document.pages) if hasattr(document, "pages") else 0,
    }


def extract_text_from_image(
    image_ref: ImageRef,
    processor_id: Optional[str] = None,
    timeout: Optional[float] = None,
) -> Optional[str]:
    """
    Run OCR over a receipt image and return its full text.

    Never raises: any failure is reported to the error manager and
    yields None.

    Args:
        image_ref: Raw bytes, an http(s) URL or a local file path
        processor_id: Document AI processor resource name, defaults to config
        timeout: OCR timeout in seconds, defaults to config

    Returns:
        Optional[str]: Extracted text, or None when nothing was read
    """
    boundary = ErrorBoundary("receipt_ocr", fallback_value=None)
    return boundary.execute(_extract_text, image_ref, processor_id, timeout)


def _extract_text(
    image_ref: ImageRef,
    processor_id: Optional[str],
    timeout: Optional[float],
) -> Optional[str]:
    if processor_id is None or timeout is None:
        settings = get_ocr_settings()
        processor_id = processor_id or settings["processor_id"]
        timeout = timeout if timeout is not None else settings["timeout_seconds"]
        download_timeout = settings["download_timeout_seconds"]
    else:
        download_timeout = DEFAULT_DOWNLOAD_TIMEOUT_SECONDS

    if not processor_id:
        raise DocumentProcessingError("No OCR processor configured")

    content = load_image_bytes(image_ref, timeout=download_timeout)
    mime_type = detect_mime_type(content)

    logger.info(f"Running OCR on {len(content)} bytes ({mime_type})")
    doc_info = process_document(content, processor_id, mime_type=mime_type, timeout=timeout)

    text = doc_info["text"]
    if not text:
        logger.warning("OCR returned no text")
        return None

    logger.debug(f"OCR extracted {len(text)} characters from {doc_info['pages']} page(s)")
    return text
