"""
Signature validation
--------------------

Authenticates a received envelope (or a data payload) before anything is
decrypted:

    RECEIVED -> CERT_VALIDATED -> SIGNATURE_VERIFIED -> ACCEPTED
        \\____________________________________________-> REJECTED

1. Extract the signer chain and root thumbprint from the signature value.
2. Validate the chain (InvalidCertificateError on failure).
3. Recompute the canonical payload from the received fields and verify it
   with the declared algorithm (SignatureVerificationError on failure).
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import List, Optional

from cryptography import x509

from secomnet.protocol.algorithms import DigitalSignatureAlgorithm
from secomnet.protocol.canonical import Canonicalizer
from secomnet.protocol.enums import CertificateFailureReason, ValidationState
from secomnet.protocol.errors import (
    InvalidCertificateError,
    SecomError,
    SignatureVerificationError,
    UnsupportedAlgorithmError,
)
from secomnet.protocol.models import (
    DigitalSignatureValue,
    ExchangeMetadata,
    SignedEnvelope,
)

from .certificates import CertificateChainValidator, CertificateValidationResult
from .pem import minified_pem_to_chain
from .signing import algorithm_for_key, verify_payload

logger = logging.getLogger(__name__)


def _carries_signer(value: Optional[DigitalSignatureValue]) -> bool:
    if value is None:
        return False
    return bool(
        value.digitalSignature or value.publicCertificate or value.publicRootCertificateThumbprint
    )


def envelope_claims_signature(signed: SignedEnvelope) -> bool:
    """True when any part of the envelope signature block is present."""
    return _carries_signer(signed.signature_value()) or signed.envelope.envelopeSignatureTime is not None


def data_claims_signature(metadata: ExchangeMetadata) -> bool:
    """True when the exchange metadata declares a data signature."""
    return _carries_signer(metadata.digitalSignatureValue) or metadata.digitalSignatureReference is not None


@dataclass
class ValidationReport:
    """Outcome of validating one signature."""
    state: ValidationState = ValidationState.RECEIVED
    history: List[ValidationState] = field(default_factory=lambda: [ValidationState.RECEIVED])
    signed: bool = True
    signer: Optional[x509.Certificate] = None
    certificate_result: Optional[CertificateValidationResult] = None
    error: Optional[SecomError] = None

    def advance(self, state: ValidationState) -> None:
        self.state = state
        self.history.append(state)

    @property
    def accepted(self) -> bool:
        return self.state is ValidationState.ACCEPTED


class SignatureValidator:
    def __init__(
        self,
        chain_validator: CertificateChainValidator,
        canonicalizer: Optional[Canonicalizer] = None,
        require_signature: bool = True,
    ):
        self._chain_validator = chain_validator
        self._canonicalizer = canonicalizer or Canonicalizer()
        self._require_signature = require_signature

    # --- Public API --------------------------------------------------

    def validate_envelope(
        self, signed: SignedEnvelope, raise_on_failure: bool = True
    ) -> ValidationReport:
        """Verify the envelope signature over the canonical envelope string."""
        envelope = signed.envelope
        payload = self._canonicalizer.signing_payload(envelope)
        return self._run(
            signed.signature_value(),
            payload,
            envelope.signature_algorithm,
            claimed=envelope_claims_signature(signed),
            what=f"{envelope.envelope_type} envelope",
            raise_on_failure=raise_on_failure,
        )

    def validate_data(
        self, data: Optional[bytes], metadata: ExchangeMetadata, raise_on_failure: bool = True
    ) -> ValidationReport:
        """Verify the data signature carried in exchange metadata."""
        return self._run(
            metadata.digitalSignatureValue or DigitalSignatureValue(),
            data or b"",
            metadata.digitalSignatureReference,
            claimed=data_claims_signature(metadata),
            what="data payload",
            raise_on_failure=raise_on_failure,
        )

    # --- Internals ---------------------------------------------------

    def _run(
        self,
        value: DigitalSignatureValue,
        payload: bytes,
        algorithm: Optional[DigitalSignatureAlgorithm],
        claimed: bool,
        what: str,
        raise_on_failure: bool,
    ) -> ValidationReport:
        report = ValidationReport()
        try:
            self._check(report, value, payload, algorithm, claimed, what)
        except SecomError as e:
            report.advance(ValidationState.REJECTED)
            report.error = e
            logger.warning("Rejected %s: %s", what, e)
            if raise_on_failure:
                raise
        return report

    def _check(
        self,
        report: ValidationReport,
        value: DigitalSignatureValue,
        payload: bytes,
        algorithm: Optional[DigitalSignatureAlgorithm],
        claimed: bool,
        what: str,
    ) -> None:
        # Only a message with no trace of a signer may take the unsigned path
        if not claimed:
            if self._require_signature:
                raise SignatureVerificationError(f"Missing signature on {what}")
            report.signed = False
            report.advance(ValidationState.ACCEPTED)
            logger.debug("Accepted unsigned %s", what)
            return

        if not value.digitalSignature:
            raise SignatureVerificationError(f"Signer present but signature missing on {what}")
        if not value.publicCertificate:
            raise InvalidCertificateError(
                f"Signature on {what} carries no signer certificate",
                CertificateFailureReason.MALFORMED,
            )

        chain = minified_pem_to_chain(value.publicCertificate)
        leaf = chain[0]
        report.signer = leaf

        result = self._chain_validator.validate_certificate(
            leaf,
            intermediates=chain[1:],
            expected_root_thumbprint=value.publicRootCertificateThumbprint,
        )
        report.certificate_result = result
        if not result.valid:
            raise InvalidCertificateError(result.message, result.reason)
        report.advance(ValidationState.CERT_VALIDATED)

        if algorithm is None:
            try:
                algorithm = algorithm_for_key(leaf.public_key())
            except UnsupportedAlgorithmError as e:
                raise SignatureVerificationError(str(e)) from e

        if not verify_payload(leaf, algorithm, payload, value.digitalSignature):
            raise SignatureVerificationError(f"Signature verification failed for {what}")
        report.advance(ValidationState.SIGNATURE_VERIFIED)

        report.advance(ValidationState.ACCEPTED)
        logger.debug("Accepted %s signed by %s", what, leaf.subject.rfc4514_string())
