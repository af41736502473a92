"""
Secure HTTP Transport for secomnet

- Runs the writer pipeline on every outgoing envelope
- Runs the reader pipeline on every signed response
- No change required in application code: it works with plain envelopes
"""

from __future__ import annotations

import logging
from typing import Any, Dict, Optional, Type

import requests

from ..core.reader import ReadResult, SecomReader
from ..core.writer import SecomWriter
from ..protocol.errors import ValidationError
from ..protocol.models import AbstractEnvelope, SignedEnvelope
from ..utils.json import json_dumps, json_loads

logger = logging.getLogger(__name__)


class SecureHTTPTransport:
    """
    requests-based SECOM client.

    The caller ALWAYS works with:
        AbstractEnvelope -> ReadResult

    Signing, protection and verification are fully automatic.
    """

    def __init__(
        self,
        base_url: str,
        writer: SecomWriter,
        reader: SecomReader,
        timeout: float = 10.0,
        session: Optional[requests.Session] = None,
    ):
        self._base_url = base_url.rstrip("/")
        self._writer = writer
        self._reader = reader
        self._timeout = timeout
        self._session = session or requests.Session()

    # ------------------------------------------------------------------
    # Main API
    # ------------------------------------------------------------------
    def post_envelope(
        self,
        path: str,
        envelope: AbstractEnvelope,
        response_type: Optional[Type[AbstractEnvelope]] = None,
    ) -> Optional[ReadResult]:
        signed = self._writer.write(envelope)

        response = self._session.post(
            self._url(path),
            data=json_dumps(signed.to_dict()),
            headers={"Content-Type": "application/json"},
            timeout=self._timeout,
        )
        response.raise_for_status()
        logger.debug("POST %s -> %s", path, response.status_code)

        if response_type is None:
            return None
        return self._read(response.text, response_type)

    def get_envelope(
        self,
        path: str,
        response_type: Type[AbstractEnvelope],
        params: Optional[Dict[str, Any]] = None,
    ) -> ReadResult:
        response = self._session.get(
            self._url(path),
            params=params,
            headers={"Accept": "application/json"},
            timeout=self._timeout,
        )
        response.raise_for_status()
        logger.debug("GET %s -> %s", path, response.status_code)
        return self._read(response.text, response_type)

    # ------------------------------------------------------------------
    def _url(self, path: str) -> str:
        return f"{self._base_url}/{path.lstrip('/')}"

    def _read(self, text: str, response_type: Type[AbstractEnvelope]) -> ReadResult:
        try:
            decoded = json_loads(text)
        except ValueError as e:
            raise ValidationError(f"Response is not valid JSON: {e}") from e

        signed = SignedEnvelope.from_dict(decoded, response_type)
        return self._reader.read(signed)
