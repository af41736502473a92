"""
HTTP error mapping
------------------

Translates pipeline errors into HTTP status codes and SECOM response bodies:

    ValidationError / UnsupportedAlgorithmError -> 400
    DecryptionError                             -> 400
    InvalidCertificateError                     -> 403
    SignatureVerificationError                  -> 403
    EncryptionError                             -> 500
    anything else                               -> 500 (generic body)

Bodies never carry internal detail for unexpected errors.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, Optional, Tuple

from ..protocol.enums import ErrorCode, SecomResponseCode
from ..protocol.errors import (
    DecryptionError,
    EncryptionError,
    InvalidCertificateError,
    SecomError,
    SignatureVerificationError,
    ValidationError,
)

logger = logging.getLogger(__name__)

_GENERIC_MESSAGE = "Internal server error"

# Order matters: subclasses before their bases
_MAPPING: Tuple[Tuple[type, int, Optional[SecomResponseCode], str], ...] = (
    (InvalidCertificateError, 403, SecomResponseCode.INVALID_CERTIFICATE, "Invalid Certificate"),
    (SignatureVerificationError, 403, SecomResponseCode.FAILED_SIGNATURE_VERIFICATION, "Failed signature verification"),
    (ValidationError, 400, SecomResponseCode.SCHEMA_VALIDATION_ERROR, "Schema validation error"),
    (DecryptionError, 400, SecomResponseCode.MISSING_REQUIRED_DATA_FOR_SERVICE, "Unable to decrypt the provided data"),
    (EncryptionError, 500, None, _GENERIC_MESSAGE),
)


def _lookup(exc: BaseException):
    for exc_type, status, response_code, text in _MAPPING:
        if isinstance(exc, exc_type):
            return status, response_code, text
    return 500, None, _GENERIC_MESSAGE


def status_for_exception(exc: BaseException) -> int:
    return _lookup(exc)[0]


def error_body(exc: BaseException) -> Dict[str, Any]:
    status, response_code, text = _lookup(exc)
    known = isinstance(exc, SecomError) and status < 500

    body: Dict[str, Any] = {
        "SECOM_ResponseCode": response_code.value if response_code is not None else None,
        "responseText": f"{text}: {exc}" if known else text,
        "code": exc.code.value if known else ErrorCode.INTERNAL_ERROR.value,
    }
    if isinstance(exc, InvalidCertificateError):
        body["reason"] = exc.reason.value
    return body


def install_exception_handlers(app) -> None:
    """Register the SECOM error mapping on a FastAPI application."""
    try:
        from fastapi import Request
        from fastapi.responses import JSONResponse
    except ImportError:
        raise RuntimeError(
            "SECOM exception handlers require fastapi. "
            "Install with: pip install secomnet[server]"
        )

    async def handle_secom_error(request: Request, exc: SecomError):
        status = status_for_exception(exc)
        if status >= 500:
            logger.error("Unexpected failure processing %s", request.url.path, exc_info=exc)
        else:
            logger.warning("Rejected request to %s: %s", request.url.path, exc)
        return JSONResponse(status_code=status, content=error_body(exc))

    async def handle_unexpected_error(request: Request, exc: Exception):
        logger.error("Unhandled error processing %s", request.url.path, exc_info=exc)
        return JSONResponse(status_code=500, content=error_body(exc))

    app.add_exception_handler(SecomError, handle_secom_error)
    app.add_exception_handler(Exception, handle_unexpected_error)
