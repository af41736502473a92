# FILE: src/secomnet/protocol/models.py
from __future__ import annotations

import binascii
import dataclasses
import datetime as _dt
import typing
import uuid
from dataclasses import dataclass, field
from typing import Any, ClassVar, Dict, List, Optional, Type

from secomnet.utils.encoding import b64_decode, b64_encode
from secomnet.utils.timestamps import from_iso, to_iso

from .algorithms import (
    CompressionAlgorithm,
    DigitalSignatureAlgorithm,
    EncryptionAlgorithm,
    _TaggedAlgorithm,
)
from .canonical import csv_string
from .enums import AckRequest, AckType, ContainerType, NackType, SecomEnum
from .errors import UnsupportedAlgorithmError, ValidationError

SECOM_PROTECTION_SCHEME = "SECOM"


# -------------------------
# WIRE CODEC
# -------------------------

def _encode_value(value: Any) -> Any:
    if value is None:
        return None
    if isinstance(value, WireModel):
        return value.to_dict()
    if isinstance(value, _TaggedAlgorithm):
        return value.token
    if isinstance(value, SecomEnum):
        return value.value
    if isinstance(value, (bytes, bytearray)):
        return b64_encode(bytes(value))
    if isinstance(value, _dt.datetime):
        return to_iso(value)
    if isinstance(value, uuid.UUID):
        return str(value)
    if isinstance(value, (list, tuple)):
        return [_encode_value(v) for v in value]
    return value


def _decode_value(name: str, hint: Any, raw: Any) -> Any:
    if raw is None:
        return None

    origin = typing.get_origin(hint)
    if origin is typing.Union:
        inner = [a for a in typing.get_args(hint) if a is not type(None)]
        return _decode_value(name, inner[0], raw)
    if origin in (list, List):
        if not isinstance(raw, list):
            raise ValidationError(f"Field '{name}' must be a list")
        (item_hint,) = typing.get_args(hint) or (Any,)
        return [_decode_value(name, item_hint, v) for v in raw]

    try:
        if hint is bytes:
            if not isinstance(raw, str):
                raise ValidationError(f"Field '{name}' must be a Base64 string")
            return b64_decode(raw)
        if hint is _dt.datetime:
            return from_iso(raw)
        if hint is uuid.UUID:
            return uuid.UUID(str(raw))
        if hint is bool:
            if not isinstance(raw, bool):
                raise ValidationError(f"Field '{name}' must be a boolean")
            return raw
        if hint is int:
            if isinstance(raw, bool) or not isinstance(raw, int):
                raise ValidationError(f"Field '{name}' must be an integer")
            return raw
        if hint is str:
            if not isinstance(raw, str):
                raise ValidationError(f"Field '{name}' must be a string")
            return raw
        if isinstance(hint, type) and issubclass(hint, _TaggedAlgorithm):
            return hint.from_value(raw)
        if isinstance(hint, type) and issubclass(hint, SecomEnum):
            if isinstance(raw, str):
                return hint[raw.upper()]
            return hint(raw)
        if isinstance(hint, type) and issubclass(hint, WireModel):
            return hint.from_dict(raw)
    except (UnsupportedAlgorithmError, ValidationError):
        raise
    except (binascii.Error, KeyError, TypeError, ValueError) as e:
        raise ValidationError(f"Invalid value for field '{name}': {e}") from e
    return raw


class WireModel:
    """JSON (de)serialisation shared by every SECOM object."""

    def to_dict(self) -> Dict[str, Any]:
        return {f.name: _encode_value(getattr(self, f.name)) for f in dataclasses.fields(self)}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]):
        if not isinstance(data, dict):
            raise ValidationError(f"{cls.__name__} must be a JSON object")

        hints = typing.get_type_hints(cls)
        known = {f.name for f in dataclasses.fields(cls)}
        unknown = set(data) - known
        if unknown:
            raise ValidationError(
                f"Unknown fields for {cls.__name__}: {', '.join(sorted(unknown))}"
            )

        kwargs = {name: _decode_value(name, hints[name], data[name]) for name in data}
        return cls(**kwargs)


# -------------------------
# SIGNATURE & METADATA
# -------------------------

@dataclass
class DigitalSignatureValue(WireModel):
    publicRootCertificateThumbprint: Optional[str] = None
    publicCertificate: Optional[List[str]] = None
    digitalSignature: Optional[str] = None

    def attribute_array(self) -> List[Any]:
        return [
            self.publicRootCertificateThumbprint,
            self.publicCertificate,
            self.digitalSignature,
        ]


@dataclass
class ExchangeMetadata(WireModel):
    dataProtection: bool = False
    protectionScheme: Optional[str] = None
    digitalSignatureReference: Optional[DigitalSignatureAlgorithm] = None
    digitalSignatureValue: Optional[DigitalSignatureValue] = None
    compressionFlag: bool = False
    compressionAlgorithm: Optional[CompressionAlgorithm] = None
    encryptionAlgorithm: Optional[EncryptionAlgorithm] = None

    def attribute_array(self) -> List[Any]:
        return [
            self.dataProtection,
            self.protectionScheme,
            self.digitalSignatureReference,
            self.digitalSignatureValue,
            self.compressionFlag,
        ]


@dataclass
class SummaryObject(WireModel):
    dataReference: Optional[uuid.UUID] = None
    dataProtection: Optional[bool] = None
    dataCompression: Optional[bool] = None
    containerType: Optional[ContainerType] = None
    dataProductType: Optional[str] = None
    info_identifier: Optional[str] = None
    info_name: Optional[str] = None
    info_status: Optional[str] = None
    info_description: Optional[str] = None
    info_lastModifiedDate: Optional[_dt.datetime] = None
    info_productVersion: Optional[str] = None
    info_size: Optional[int] = None

    def attribute_array(self) -> List[Any]:
        return [
            self.dataReference,
            self.dataProtection,
            self.dataCompression,
            self.containerType,
            self.dataProductType,
            self.info_identifier,
            self.info_name,
            self.info_status,
            self.info_description,
            self.info_lastModifiedDate,
            self.info_productVersion,
            self.info_size,
        ]


@dataclass
class SearchParameters(WireModel):
    """Query part of a search filter; signed as its own dotted string in field order."""

    name: Optional[str] = None
    status: Optional[str] = None
    version: Optional[str] = None
    keywords: Optional[str] = None
    description: Optional[str] = None
    dataProductType: Optional[str] = None
    specificationId: Optional[str] = None
    designId: Optional[str] = None
    instanceId: Optional[str] = None
    mmsi: Optional[str] = None
    imo: Optional[str] = None
    serviceType: Optional[str] = None
    unlocode: Optional[str] = None
    endpointUri: Optional[str] = None
    page: Optional[int] = None
    pageSize: Optional[int] = None

    def attribute_array(self) -> List[Any]:
        return [getattr(self, f.name) for f in dataclasses.fields(self)]


# -------------------------
# ENVELOPES
# -------------------------

@dataclass
class AbstractEnvelope(WireModel):
    """
    Base of every signed SECOM envelope.

    Subclasses define ``attribute_array()``: the fixed, full-length list of
    signable fields in protocol order.
    """

    envelopeSignatureCertificate: Optional[List[str]] = None
    envelopeRootCertificateThumbprint: Optional[str] = None
    envelopeSignatureTime: Optional[_dt.datetime] = None

    envelope_type: ClassVar[str] = "envelope"
    data_bearing: ClassVar[bool] = False
    required_fields: ClassVar[tuple] = ()

    def attribute_array(self) -> List[Any]:
        raise NotImplementedError("Envelopes must implement attribute_array()")

    def csv_string(self) -> str:
        return csv_string(self)

    @property
    def signature_algorithm(self) -> Optional[DigitalSignatureAlgorithm]:
        return getattr(self, "digitalSignatureReference", None)


@dataclass
class EnvelopeAckObject(AbstractEnvelope):
    createdAt: Optional[_dt.datetime] = None
    transactionIdentifier: Optional[uuid.UUID] = None
    ackType: Optional[AckType] = None
    nackType: Optional[NackType] = None

    envelope_type: ClassVar[str] = "acknowledgement"
    required_fields: ClassVar[tuple] = ("createdAt", "transactionIdentifier", "ackType")

    def attribute_array(self) -> List[Any]:
        return [
            self.createdAt,
            self.envelopeSignatureCertificate,
            self.envelopeRootCertificateThumbprint,
            self.transactionIdentifier,
            self.ackType,
            self.nackType,
            self.envelopeSignatureTime,
        ]


@dataclass
class EnvelopeAccessNotificationObject(AbstractEnvelope):
    decision: Optional[bool] = None
    decisionReason: Optional[str] = None
    transactionIdentifier: Optional[uuid.UUID] = None
    digitalSignatureReference: Optional[DigitalSignatureAlgorithm] = None

    envelope_type: ClassVar[str] = "access_notification"
    required_fields: ClassVar[tuple] = ("decision", "transactionIdentifier")

    def attribute_array(self) -> List[Any]:
        return [
            self.decision,
            self.decisionReason,
            self.transactionIdentifier,
            self.envelopeSignatureCertificate,
            self.envelopeRootCertificateThumbprint,
            self.envelopeSignatureTime,
            self.digitalSignatureReference,
        ]


@dataclass
class EnvelopeAccessObject(AbstractEnvelope):
    reason: Optional[str] = None
    reasonEnum: Optional[str] = None
    containerType: Optional[ContainerType] = None
    dataProductType: Optional[str] = None
    dataReference: Optional[uuid.UUID] = None
    productVersion: Optional[str] = None
    callbackEndpoint: Optional[str] = None
    digitalSignatureReference: Optional[DigitalSignatureAlgorithm] = None

    envelope_type: ClassVar[str] = "access"
    required_fields: ClassVar[tuple] = ("reason",)

    def attribute_array(self) -> List[Any]:
        return [
            self.reason,
            self.reasonEnum,
            self.containerType,
            self.dataProductType,
            self.dataReference,
            self.productVersion,
            self.callbackEndpoint,
            self.envelopeSignatureCertificate,
            self.envelopeRootCertificateThumbprint,
            self.envelopeSignatureTime,
            self.digitalSignatureReference,
        ]


@dataclass
class EnvelopeKeyObject(AbstractEnvelope):
    encryptionKey: Optional[bytes] = None
    iv: Optional[bytes] = None
    transactionIdentifier: Optional[uuid.UUID] = None
    digitalSignatureValue: Optional[DigitalSignatureValue] = None

    envelope_type: ClassVar[str] = "encryption_key"
    required_fields: ClassVar[tuple] = ("encryptionKey", "iv", "transactionIdentifier")

    def attribute_array(self) -> List[Any]:
        return [
            self.encryptionKey,
            self.iv,
            self.transactionIdentifier,
            self.digitalSignatureValue,
            self.envelopeSignatureCertificate,
            self.envelopeRootCertificateThumbprint,
            self.envelopeSignatureTime,
        ]


@dataclass
class EnvelopeKeyNotificationObject(AbstractEnvelope):
    dataReference: Optional[uuid.UUID] = None
    callbackEndpoint: Optional[str] = None
    digitalSignatureReference: Optional[DigitalSignatureAlgorithm] = None

    envelope_type: ClassVar[str] = "encryption_key_notification"
    required_fields: ClassVar[tuple] = ("dataReference",)

    def attribute_array(self) -> List[Any]:
        return [
            self.dataReference,
            self.callbackEndpoint,
            self.envelopeSignatureCertificate,
            self.envelopeRootCertificateThumbprint,
            self.envelopeSignatureTime,
            self.digitalSignatureReference,
        ]


@dataclass
class EnvelopePublicKeyRequestObject(AbstractEnvelope):
    publicCertificate: Optional[List[str]] = None
    digitalSignatureReference: Optional[DigitalSignatureAlgorithm] = None

    envelope_type: ClassVar[str] = "public_key"
    required_fields: ClassVar[tuple] = ("publicCertificate",)

    def attribute_array(self) -> List[Any]:
        return [
            self.publicCertificate,
            self.digitalSignatureReference,
            self.envelopeSignatureCertificate,
            self.envelopeRootCertificateThumbprint,
            self.envelopeSignatureTime,
        ]


@dataclass
class EnvelopeUploadObject(AbstractEnvelope):
    data: Optional[bytes] = None
    containerType: Optional[ContainerType] = None
    dataProductType: Optional[str] = None
    exchangeMetadata: ExchangeMetadata = field(default_factory=ExchangeMetadata)
    fromSubscription: Optional[bool] = None
    subscriptionIdentifier: Optional[uuid.UUID] = None
    ackRequest: Optional[AckRequest] = None
    callbackEndpoint: Optional[str] = None
    transactionIdentifier: Optional[uuid.UUID] = None

    envelope_type: ClassVar[str] = "upload"
    data_bearing: ClassVar[bool] = True
    required_fields: ClassVar[tuple] = (
        "data",
        "containerType",
        "dataProductType",
        "exchangeMetadata",
        "transactionIdentifier",
    )

    @property
    def signature_algorithm(self) -> Optional[DigitalSignatureAlgorithm]:
        if self.exchangeMetadata is None:
            return None
        return self.exchangeMetadata.digitalSignatureReference

    def attribute_array(self) -> List[Any]:
        return [
            self.data,
            self.containerType,
            self.dataProductType,
            self.exchangeMetadata,
            self.fromSubscription,
            self.subscriptionIdentifier,
            self.ackRequest,
            self.callbackEndpoint,
            self.transactionIdentifier,
            self.envelopeSignatureCertificate,
            self.envelopeRootCertificateThumbprint,
            self.envelopeSignatureTime,
        ]


@dataclass
class EnvelopeLinkObject(AbstractEnvelope):
    """Upload of a link to data held elsewhere, valid until ``timeToLive``."""

    containerType: Optional[ContainerType] = None
    dataProductType: Optional[str] = None
    exchangeMetadata: ExchangeMetadata = field(default_factory=ExchangeMetadata)
    fromSubscription: Optional[bool] = None
    ackRequest: Optional[AckRequest] = None
    transactionIdentifier: Optional[uuid.UUID] = None
    size: Optional[int] = None
    timeToLive: Optional[_dt.datetime] = None

    envelope_type: ClassVar[str] = "upload_link"
    required_fields: ClassVar[tuple] = (
        "containerType",
        "dataProductType",
        "exchangeMetadata",
        "fromSubscription",
        "ackRequest",
        "transactionIdentifier",
        "size",
        "timeToLive",
    )

    @property
    def signature_algorithm(self) -> Optional[DigitalSignatureAlgorithm]:
        if self.exchangeMetadata is None:
            return None
        return self.exchangeMetadata.digitalSignatureReference

    def attribute_array(self) -> List[Any]:
        return [
            self.containerType,
            self.dataProductType,
            self.exchangeMetadata,
            self.fromSubscription,
            self.ackRequest,
            self.transactionIdentifier,
            self.envelopeSignatureCertificate,
            self.envelopeRootCertificateThumbprint,
            self.size,
            self.timeToLive,
            self.envelopeSignatureTime,
        ]


@dataclass
class EnvelopeKeyRequestObject(AbstractEnvelope):
    # publicCertificate travels with the request but is not part of the signed string
    dataReference: Optional[uuid.UUID] = None
    publicCertificate: Optional[str] = None

    envelope_type: ClassVar[str] = "encryption_key_request"
    required_fields: ClassVar[tuple] = ("dataReference", "publicCertificate")

    def attribute_array(self) -> List[Any]:
        return [
            self.dataReference,
            self.envelopeSignatureCertificate,
            self.envelopeRootCertificateThumbprint,
            self.envelopeSignatureTime,
        ]


@dataclass
class EnvelopeSearchFilterObject(AbstractEnvelope):
    query: Optional[SearchParameters] = None
    geometry: Optional[str] = None
    includeXml: Optional[bool] = None
    localOnly: Optional[bool] = None
    digitalSignatureReference: Optional[DigitalSignatureAlgorithm] = None

    envelope_type: ClassVar[str] = "search_filter"

    def attribute_array(self) -> List[Any]:
        return [
            self.query,
            self.geometry,
            self.includeXml,
            self.localOnly,
            self.envelopeSignatureCertificate,
            self.envelopeRootCertificateThumbprint,
            self.envelopeSignatureTime,
            self.digitalSignatureReference,
        ]


ENVELOPE_TYPES: Dict[str, Type[AbstractEnvelope]] = {
    cls.envelope_type: cls
    for cls in (
        EnvelopeAckObject,
        EnvelopeAccessNotificationObject,
        EnvelopeAccessObject,
        EnvelopeKeyObject,
        EnvelopeKeyNotificationObject,
        EnvelopeKeyRequestObject,
        EnvelopeLinkObject,
        EnvelopePublicKeyRequestObject,
        EnvelopeSearchFilterObject,
        EnvelopeUploadObject,
    )
}


# -------------------------
# SIGNATURE BEARER
# -------------------------

@dataclass
class SignedEnvelope:
    """An envelope together with the signature over its canonical string."""

    envelope: AbstractEnvelope
    envelopeSignature: Optional[str] = None

    def signature_value(self) -> DigitalSignatureValue:
        return DigitalSignatureValue(
            publicRootCertificateThumbprint=self.envelope.envelopeRootCertificateThumbprint,
            publicCertificate=self.envelope.envelopeSignatureCertificate,
            digitalSignature=self.envelopeSignature,
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "envelope": self.envelope.to_dict(),
            "envelopeSignature": self.envelopeSignature,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any], envelope_type) -> "SignedEnvelope":
        if isinstance(envelope_type, str):
            try:
                envelope_type = ENVELOPE_TYPES[envelope_type]
            except KeyError:
                raise ValidationError(f"Unknown envelope type: {envelope_type!r}")

        if not isinstance(data, dict):
            raise ValidationError("Signed envelope must be a JSON object")
        unknown = set(data) - {"envelope", "envelopeSignature"}
        if unknown:
            raise ValidationError(f"Unknown fields: {', '.join(sorted(unknown))}")
        if data.get("envelope") is None:
            raise ValidationError("Signed envelope is missing 'envelope'")

        signature = data.get("envelopeSignature")
        if signature is not None and not isinstance(signature, str):
            raise ValidationError("'envelopeSignature' must be a string")

        return cls(
            envelope=envelope_type.from_dict(data["envelope"]),
            envelopeSignature=signature,
        )
