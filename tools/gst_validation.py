"""
GSTIN validation tools for Fundex.

A GSTIN is 15 characters: a 2-digit state code, a 10-character PAN
(5 letters, 4 digits, 1 letter), a 1-character entity code, the literal
``Z`` and a 1-character checksum, e.g. ``29ABCDE1234F1Z5``.
"""

import re
import logging
from functools import lru_cache
from typing import Any, Dict, Optional

import requests
from pydantic import ValidationError as PydanticValidationError

from models.expense import GSTValidationResult
from utils.error_handling import ErrorManager, ErrorSeverity, ExternalServiceError

logger = logging.getLogger("fundex.tools.gst_validation")

GST_FORMAT_PATTERN = re.compile(r"^[0-9]{2}[A-Z]{5}[0-9]{4}[A-Z]{1}[1-9A-Z]{1}Z[0-9A-Z]{1}$")

# Same structure, unanchored, for finding a GSTIN inside free text
GST_SEARCH_PATTERN = re.compile(
    r"\b[0-9]{2}[A-Z]{5}[0-9]{4}[A-Z]{1}[1-9A-Z]{1}Z[0-9A-Z]{1}\b",
    re.IGNORECASE,
)

DEFAULT_REGISTRY_URL = "https://sheet.gstincheck.co.in/check"
DEFAULT_TIMEOUT_SECONDS = 5
DEFAULT_USER_AGENT = "Fundex-App"


def clean_gst_number(gst_number: str) -> str:
    """Remove all whitespace and upper-case a GSTIN."""
    return re.sub(r"\s", "", gst_number).upper()


def validate_gst_format(gst_number: Optional[str]) -> bool:
    """
    Check a GSTIN against the structural pattern.

    Args:
        gst_number: Candidate GSTIN, whitespace and case are ignored

    Returns:
        bool: True if the format is valid
    """
    if not gst_number:
        return False
    return bool(GST_FORMAT_PATTERN.match(clean_gst_number(gst_number)))


@lru_cache(maxsize=1)
def get_registry_settings() -> Dict[str, Any]:
    """Registry URL, timeout and user agent from the ``gst`` config section."""
    from config.config_loader import ConfigLoader

    gst_config = ConfigLoader().get_section("gst")
    return {
        "registry_url": gst_config.get("registry_url", DEFAULT_REGISTRY_URL),
        "timeout_seconds": gst_config.get("timeout_seconds", DEFAULT_TIMEOUT_SECONDS),
        "user_agent": gst_config.get("user_agent", DEFAULT_USER_AGENT),
    }


def lookup_gst_registry(
    gst_number: str,
    registry_url: str = DEFAULT_REGISTRY_URL,
    timeout: float = DEFAULT_TIMEOUT_SECONDS,
    user_agent: str = DEFAULT_USER_AGENT,
) -> Dict[str, Any]:
    """
    Query the public GST registry for a GSTIN.

    Args:
        gst_number: Cleaned GSTIN
        registry_url: Base URL of the registry lookup endpoint
        timeout: Request timeout in seconds
        user_agent: User-Agent header sent with the request

    Returns:
        dict: Decoded registry response

    Raises:
        ExternalServiceError: If the registry cannot be reached or answers badly
    """
    url = f"{registry_url.rstrip('/')}/{gst_number}"
    try:
        response = requests.get(url, timeout=timeout, headers={"User-Agent": user_agent})
        response.raise_for_status()
        return response.json()
    except (requests.RequestException, ValueError) as e:
        raise ExternalServiceError(
            f"GST registry lookup failed: {e}",
            service_name="gst_registry",
            severity=ErrorSeverity.LOW,
            details={"gst_number": gst_number},
            cause=e,
        ) from e


def _registry_result(clean_gst: str, data: Any) -> GSTValidationResult:
    """Build the validation result from a decoded registry reply."""
    if not (isinstance(data, dict) and data.get("flag")):
        logger.info(f"GST {clean_gst} not found in registry")
        return GSTValidationResult(
            found=True,
            valid=False,
            error="GST number not found in registry",
            gst_number=clean_gst,
            api_verified=False,
        )

    address = data.get("pradr") or {}
    try:
        result = GSTValidationResult(
            found=True,
            valid=True,
            gst_number=clean_gst,
            business_name=data.get("tradeNam") or data.get("lgnm") or "N/A",
            status=data.get("sts") or "Active",
            registration_date=data.get("rgdt"),
            address=address.get("adr") or "N/A" if isinstance(address, dict) else "N/A",
            state_code=clean_gst[:2],
            api_verified=True,
        )
    except PydanticValidationError as e:
        raise ExternalServiceError(
            f"GST registry returned a malformed record: {e.error_count()} invalid field(s)",
            service_name="gst_registry",
            severity=ErrorSeverity.LOW,
            details={"gst_number": clean_gst},
            cause=e,
        ) from e

    logger.info(f"GST {clean_gst} verified online: {result.business_name}")
    return result


def validate_gst_online(
    gst_number: Optional[str],
    registry_url: Optional[str] = None,
    timeout: Optional[float] = None,
) -> GSTValidationResult:
    """
    Validate a GSTIN by format and against the public registry.

    Never raises. A registry outage or a malformed registry record falls back
    to format-only acceptance with ``api_verified`` False; any other failure
    yields an invalid result carrying the error.

    Args:
        gst_number: GSTIN to validate
        registry_url: Optional registry URL override
        timeout: Optional timeout override in seconds

    Returns:
        GSTValidationResult: Validation outcome
    """
    if not gst_number:
        return GSTValidationResult(valid=False, error="GST number is required")

    clean_gst = clean_gst_number(gst_number)

    if not validate_gst_format(clean_gst):
        logger.info(f"Rejected GST number with invalid format: {clean_gst}")
        return GSTValidationResult(
            found=True,
            valid=False,
            error="Invalid GST number format",
            gst_number=clean_gst,
        )

    try:
        settings = get_registry_settings()
        registry_url = registry_url or settings["registry_url"]
        timeout = timeout if timeout is not None else settings["timeout_seconds"]

        data = lookup_gst_registry(clean_gst, registry_url, timeout, settings["user_agent"])
        return _registry_result(clean_gst, data)
    except ExternalServiceError as e:
        ErrorManager.get_instance().handle_error(e)
        logger.warning(f"GST API verification failed, falling back to format validation: {e.message}")
        return GSTValidationResult(
            found=True,
            valid=True,
            gst_number=clean_gst,
            error="API verification unavailable - format validated only",
            api_verified=False,
            format_valid=True,
        )
    except Exception as e:
        logger.error(f"GST validation error for {clean_gst}: {e}", exc_info=True)
        return GSTValidationResult(
            found=True,
            valid=False,
            error=str(e),
            gst_number=clean_gst,
        )


def extract_gst_from_text(text: Optional[str]) -> Optional[str]:
    """
    Return the first GSTIN-shaped token in free text, upper-cased.

    Args:
        text: Text to search

    Returns:
        Optional[str]: The GSTIN or None
    """
    if not text:
        return None

    match = GST_SEARCH_PATTERN.search(text)
    return match.group(0).upper() if match else None


def validate_and_extract_gst(text: Optional[str]) -> GSTValidationResult:
    """
    Find a GSTIN in text and validate it online.

    Args:
        text: Receipt text, or a bare GSTIN

    Returns:
        GSTValidationResult: With ``found`` and ``extracted`` populated
    """
    extracted = extract_gst_from_text(text)

    if not extracted:
        return GSTValidationResult(
            found=False,
            valid=False,
            error="No GST number found in the text",
        )

    result = validate_gst_online(extracted)
    return result.model_copy(update={"found": True, "extracted": extracted})
