"""
Central configuration for secomnet.

This module provides a single, typed configuration object that reads from
environment variables (12-factor style) using pydantic-settings.

Usage:

    from secomnet.core.settings import get_settings, build_writer, build_reader

    settings = get_settings()
    writer = build_writer(settings)
    reader = build_reader(settings)
"""

from __future__ import annotations

import logging
from functools import lru_cache
from typing import List, Optional

from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from ..protocol.algorithms import (
    CompressionAlgorithm,
    DigitalSignatureAlgorithm,
    EncryptionAlgorithm,
)
from ..protocol.errors import UnsupportedAlgorithmError
from ..security.certificates import CertificateChainValidator
from ..security.compression import ZipCompressionProvider
from ..security.encryption import AesCbcEncryptionProvider, SymmetricKey, TransactionKeyStore
from ..security.revocation import (
    CompositeRevocationChecker,
    CrlRevocationChecker,
    OcspRevocationChecker,
)
from ..security.signing import X509SignatureProvider
from ..security.trust import TrustContext
from ..security.validator import SignatureValidator
from ..utils.logs import configure_logging
from .capability import CapabilityDocument
from .reader import SecomReader
from .writer import SecomWriter

logger = logging.getLogger(__name__)


def _algorithm_token(enum_cls, value: str) -> str:
    try:
        return enum_cls.from_value(value.lower()).token
    except UnsupportedAlgorithmError as e:
        raise ValueError(str(e)) from e


class CompressionSettings(BaseSettings):
    model_config = SettingsConfigDict(env_prefix="SECOMNET_COMPRESSION_")

    enabled: bool = Field(
        default=False,
        description="Compress outgoing payloads.",
    )
    algorithm: str = Field(
        default=CompressionAlgorithm.ZIP.token,
        description="Compression algorithm token ('zip').",
    )

    @field_validator("algorithm")
    @classmethod
    def _validate_algorithm(cls, v: str) -> str:
        return _algorithm_token(CompressionAlgorithm, v)


class EncryptionSettings(BaseSettings):
    model_config = SettingsConfigDict(env_prefix="SECOMNET_ENCRYPTION_")

    enabled: bool = Field(
        default=False,
        description="Encrypt outgoing payloads.",
    )
    algorithm: str = Field(
        default=EncryptionAlgorithm.AES_CBC_PKCS7.token,
        description="Encryption algorithm token ('aes_cbc_pkcs7').",
    )
    key: str = Field(
        default="",
        description="Default AES key, hex encoded (16, 24 or 32 bytes).",
    )
    iv: str = Field(
        default="",
        description="Default AES-CBC IV, hex encoded (16 bytes).",
    )

    @field_validator("algorithm")
    @classmethod
    def _validate_algorithm(cls, v: str) -> str:
        return _algorithm_token(EncryptionAlgorithm, v)

    @model_validator(mode="after")
    def _validate_key_material(self):
        if bool(self.key) != bool(self.iv):
            raise ValueError("SECOMNET_ENCRYPTION_KEY and SECOMNET_ENCRYPTION_IV must be set together")
        return self


class SignatureSettings(BaseSettings):
    model_config = SettingsConfigDict(env_prefix="SECOMNET_SIGNATURE_")

    enabled: bool = Field(
        default=False,
        description="Sign outgoing envelopes and payloads.",
    )
    algorithm: Optional[str] = Field(
        default=None,
        description="Expected signature algorithm ('dsa' or 'ecdsa'); inferred from the key if unset.",
    )
    keystore_type: str = Field(
        default="pem",
        description="'pem' (key + certificate files) or 'pkcs12'.",
    )
    private_key_path: Optional[str] = Field(
        default=None,
        description="PEM private key, or the PKCS#12 keystore when keystore_type is 'pkcs12'.",
    )
    certificate_path: Optional[str] = Field(
        default=None,
        description="PEM certificate chain, leaf first.",
    )
    key_password: Optional[str] = Field(
        default=None,
        description="Password of the private key or keystore.",
    )

    @field_validator("algorithm")
    @classmethod
    def _validate_algorithm(cls, v: Optional[str]) -> Optional[str]:
        if not v:
            return None
        return _algorithm_token(DigitalSignatureAlgorithm, v)

    @field_validator("keystore_type")
    @classmethod
    def _normalize_keystore_type(cls, v: str) -> str:
        v = (v or "pem").lower()
        if v not in ("pem", "pkcs12"):
            raise ValueError("keystore_type must be 'pem' or 'pkcs12'")
        return v

    @model_validator(mode="after")
    def _validate_paths(self):
        if not self.enabled:
            return self
        if not self.private_key_path:
            raise ValueError("SECOMNET_SIGNATURE_PRIVATE_KEY_PATH is required when signing is enabled")
        if self.keystore_type == "pem" and not self.certificate_path:
            raise ValueError("SECOMNET_SIGNATURE_CERTIFICATE_PATH is required for PEM keystores")
        return self


class TrustSettings(BaseSettings):
    model_config = SettingsConfigDict(env_prefix="SECOMNET_TRUST_")

    truststore_path: Optional[str] = Field(
        default=None,
        description="Trust anchors and intermediates (PEM bundle or PKCS#12).",
    )
    truststore_type: str = Field(
        default="pem",
        description="'pem' or 'pkcs12'.",
    )
    truststore_password: Optional[str] = Field(
        default=None,
        description="Password of a PKCS#12 trust store.",
    )
    require_signature: bool = Field(
        default=True,
        description="Reject incoming envelopes that carry no signature.",
    )
    revocation_enabled: bool = Field(
        default=True,
        description="Check revocation status (soft-fail).",
    )
    crl_paths: str = Field(
        default="",
        description="Comma-separated CRL files (PEM or DER) preloaded for revocation checking.",
    )
    ocsp_enabled: bool = Field(
        default=True,
        description="Query OCSP responders named in certificates.",
    )
    ocsp_timeout: float = Field(
        default=5.0,
        description="Timeout in seconds for OCSP requests.",
    )

    @field_validator("truststore_type")
    @classmethod
    def _normalize_truststore_type(cls, v: str) -> str:
        v = (v or "pem").lower()
        if v not in ("pem", "pkcs12"):
            raise ValueError("truststore_type must be 'pem' or 'pkcs12'")
        return v

    @property
    def crl_path_list(self) -> List[str]:
        return [x.strip() for x in self.crl_paths.split(",") if x.strip()]


class RuntimeSettings(BaseSettings):
    model_config = SettingsConfigDict(env_prefix="SECOMNET_")

    log_level: str = Field(
        default="INFO",
        description="Log level of the secomnet logger (DEBUG/INFO/WARNING/ERROR).",
    )


class SecomSettings(BaseSettings):
    """
    Root configuration object for secomnet.

    Aggregates:
      - Compression
      - Encryption
      - Signature
      - Trust
      - Runtime
    """

    model_config = SettingsConfigDict(env_prefix="SECOMNET_")

    compression: CompressionSettings = Field(default_factory=CompressionSettings)
    encryption: EncryptionSettings = Field(default_factory=EncryptionSettings)
    signature: SignatureSettings = Field(default_factory=SignatureSettings)
    trust: TrustSettings = Field(default_factory=TrustSettings)
    runtime: RuntimeSettings = Field(default_factory=RuntimeSettings)


@lru_cache(maxsize=1)
def get_settings() -> SecomSettings:
    """
    Cached accessor for SecomSettings.

    Usage:
        from secomnet.core.settings import get_settings
        settings = get_settings()
    """
    settings = SecomSettings()
    configure_logging(settings.runtime.log_level)
    return settings


# ----------------------------------------------------------------------
# Provider factories
# ----------------------------------------------------------------------

def create_compression_provider(settings: SecomSettings) -> Optional[ZipCompressionProvider]:
    if not settings.compression.enabled:
        return None
    return ZipCompressionProvider()


def create_encryption_provider(
    settings: SecomSettings,
    key_store: Optional[TransactionKeyStore] = None,
) -> Optional[AesCbcEncryptionProvider]:
    if not settings.encryption.enabled:
        return None

    default_key = None
    if settings.encryption.key:
        default_key = SymmetricKey.from_hex(settings.encryption.key, settings.encryption.iv)
    return AesCbcEncryptionProvider(key=default_key, key_store=key_store)


def create_signature_provider(settings: SecomSettings) -> Optional[X509SignatureProvider]:
    cfg = settings.signature
    if not cfg.enabled:
        return None

    if cfg.keystore_type == "pkcs12":
        return X509SignatureProvider.from_pkcs12(
            cfg.private_key_path, cfg.key_password, algorithm=cfg.algorithm
        )
    return X509SignatureProvider.from_pem_files(
        cfg.private_key_path, cfg.certificate_path, cfg.key_password, algorithm=cfg.algorithm
    )


def create_trust_context(settings: SecomSettings) -> Optional[TrustContext]:
    cfg = settings.trust
    if not cfg.truststore_path:
        return None
    if cfg.truststore_type == "pkcs12":
        return TrustContext.from_pkcs12(cfg.truststore_path, cfg.truststore_password)
    return TrustContext.from_pem_bundle(cfg.truststore_path)


def create_revocation_checker(settings: SecomSettings):
    cfg = settings.trust
    if not cfg.revocation_enabled:
        return None

    checkers = []
    if cfg.crl_path_list:
        checkers.append(CrlRevocationChecker.from_files(cfg.crl_path_list))
    if cfg.ocsp_enabled:
        checkers.append(OcspRevocationChecker(timeout=cfg.ocsp_timeout))
    if not checkers:
        return None
    return CompositeRevocationChecker(checkers)


def create_signature_validator(
    settings: SecomSettings,
    trust_context: Optional[TrustContext] = None,
) -> Optional[SignatureValidator]:
    trust_context = trust_context or create_trust_context(settings)
    if trust_context is None:
        if settings.trust.require_signature:
            raise ValueError(
                "SECOMNET_TRUST_TRUSTSTORE_PATH is required when signatures are required"
            )
        logger.warning("No trust store configured, incoming signatures will not be verified")
        return None

    chain_validator = CertificateChainValidator(
        trust_context,
        revocation_checker=create_revocation_checker(settings),
    )
    return SignatureValidator(
        chain_validator,
        require_signature=settings.trust.require_signature,
    )


def build_writer(settings: Optional[SecomSettings] = None, **overrides) -> SecomWriter:
    """Build the outbound pipeline from settings. Keyword overrides replace providers."""
    settings = settings or get_settings()
    components = dict(
        compression_provider=create_compression_provider(settings),
        encryption_provider=create_encryption_provider(settings),
        signature_provider=create_signature_provider(settings),
    )
    components.update(overrides)
    return SecomWriter(**components)


def build_reader(settings: Optional[SecomSettings] = None, **overrides) -> SecomReader:
    """Build the inbound pipeline from settings. Keyword overrides replace providers."""
    settings = settings or get_settings()
    compression = overrides.pop("compression_provider", None) or ZipCompressionProvider()
    encryption = overrides.pop("encryption_provider", None) or create_encryption_provider(settings)
    if "signature_validator" in overrides:
        validator = overrides.pop("signature_validator")
    else:
        validator = create_signature_validator(settings)

    capabilities = overrides.pop("capabilities", None) or CapabilityDocument(
        compression_algorithms=[compression.algorithm],
        encryption_algorithms=[encryption.algorithm] if encryption else [],
        signature_algorithms=list(DigitalSignatureAlgorithm),
    )
    return SecomReader(
        signature_validator=validator,
        compression_provider=compression,
        encryption_provider=encryption,
        capabilities=capabilities,
        **overrides,
    )
