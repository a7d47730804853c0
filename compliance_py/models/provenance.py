"""Data models for provenance records and signer identities."""

import json
from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import Optional, List, Dict, Any, Mapping, Tuple, Union

from cryptography import x509
from cryptography.hazmat.primitives.serialization import Encoding
from cryptography.x509.oid import ExtensionOID

# Fulcio certificate extension carrying the OIDC issuer of a keyless signer
FULCIO_ISSUER_OID = x509.ObjectIdentifier("1.3.6.1.4.1.57264.1.1")
FULCIO_ISSUER_V2_OID = x509.ObjectIdentifier("1.3.6.1.4.1.57264.1.8")


class SignerKind(Enum):
    """How the signer identity of an attestation was established."""
    SIGNATURE = "signature"
    CERTIFICATE = "certificate"


@dataclass(frozen=True)
class EnvelopeSignature:
    """A signature entry declared inside a DSSE envelope."""
    keyid: str = ""
    sig: str = ""

    def to_dict(self) -> Dict[str, str]:
        return {"keyid": self.keyid, "sig": self.sig}


@dataclass(frozen=True)
class SignatureSigner:
    """Signer identified by the signature attached to the attestation."""
    signature: str
    signatures: Tuple[EnvelopeSignature, ...] = ()
    kind: SignerKind = field(default=SignerKind.SIGNATURE, init=False)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "kind": self.kind.value,
            "signature": self.signature,
            "signatures": [s.to_dict() for s in self.signatures],
        }


@dataclass(frozen=True)
class CertificateSigner:
    """Signer identified by a (keyless) signing certificate and its chain."""
    certificate: x509.Certificate
    chain: Tuple[x509.Certificate, ...] = ()
    signatures: Tuple[EnvelopeSignature, ...] = ()
    kind: SignerKind = field(default=SignerKind.CERTIFICATE, init=False)

    @property
    def subject(self) -> str:
        return self.certificate.subject.rfc4514_string()

    @property
    def issuer(self) -> str:
        return self.certificate.issuer.rfc4514_string()

    @property
    def identities(self) -> List[str]:
        """URI and email subject alternative names of the certificate."""
        try:
            san = self.certificate.extensions.get_extension_for_oid(
                ExtensionOID.SUBJECT_ALTERNATIVE_NAME
            ).value
        except x509.ExtensionNotFound:
            return []
        return (
            san.get_values_for_type(x509.UniformResourceIdentifier)
            + san.get_values_for_type(x509.RFC822Name)
        )

    @property
    def oidc_issuer(self) -> Optional[str]:
        """OIDC issuer recorded by Fulcio, if present."""
        for oid in (FULCIO_ISSUER_V2_OID, FULCIO_ISSUER_OID):
            try:
                ext = self.certificate.extensions.get_extension_for_oid(oid)
            except x509.ExtensionNotFound:
                continue
            raw = ext.value.value
            # v2 extension is a DER UTF8String, v1 is the bare string
            if oid == FULCIO_ISSUER_V2_OID:
                raw = _der_utf8_string(raw)
            return raw.decode("utf-8", errors="replace")
        return None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "kind": self.kind.value,
            "certificate": _pem(self.certificate),
            "chain": [_pem(c) for c in self.chain],
            "signatures": [s.to_dict() for s in self.signatures],
            "metadata": {
                "subject": self.subject,
                "issuer": self.issuer,
                "identities": self.identities,
                "oidc_issuer": self.oidc_issuer,
            },
        }


ResolvedSigner = Union[SignatureSigner, CertificateSigner]


def _der_utf8_string(raw: bytes) -> bytes:
    """Content octets of a DER UTF8String, or ``raw`` if it is not one."""
    if len(raw) < 2 or raw[0] != 0x0C:
        return raw
    length, offset = raw[1], 2
    if length & 0x80:
        size = length & 0x7F
        if size == 0 or len(raw) < offset + size:
            return raw
        length = int.from_bytes(raw[offset:offset + size], "big")
        offset += size
    if len(raw) != offset + length:
        return raw
    return raw[offset:]


def _pem(cert: x509.Certificate) -> str:
    return cert.public_bytes(Encoding.PEM).decode("ascii")


@dataclass(frozen=True)
class ProvenanceStatement:
    """An in-toto statement carrying a SLSA provenance predicate."""
    type: str
    predicate_type: str
    subject: Tuple[Mapping[str, Any], ...]
    predicate: Mapping[str, Any]
    raw_payload: bytes = field(repr=False, default=b"")

    def __post_init__(self):
        # Read-only copies, so the statement cannot drift from raw_payload
        object.__setattr__(self, "subject", _freeze(tuple(self.subject)))
        object.__setattr__(self, "predicate", _freeze(self.predicate))

    def to_dict(self) -> Dict[str, Any]:
        return {
            "_type": self.type,
            "predicateType": self.predicate_type,
            "subject": _thaw(self.subject),
            "predicate": _thaw(self.predicate),
        }


@dataclass(frozen=True)
class ProvenanceRecord:
    """A validated provenance statement with its resolved signer."""
    statement: ProvenanceStatement
    signer: ResolvedSigner

    @property
    def data(self) -> bytes:
        """The decoded statement exactly as it was signed."""
        return self.statement.raw_payload

    @property
    def predicate_type(self) -> str:
        return self.statement.predicate_type

    @property
    def signer_kind(self) -> SignerKind:
        return self.signer.kind

    def statement_json(self) -> bytes:
        """Structured statement serialized as JSON."""
        return json.dumps(self.statement.to_dict()).encode("utf-8")

    def build_scm(self) -> Optional[str]:
        """Source repository URL the artifact was built from."""
        source = self._build_source()
        return source[0] if source else None

    def build_commit_sha(self) -> Optional[str]:
        """Commit the artifact was built from."""
        source = self._build_source()
        return source[1] if source else None

    def _build_source(self) -> Optional[Tuple[str, str]]:
        predicate = self.statement.predicate
        invocation = predicate.get("invocation") or {}
        if not isinstance(invocation, Mapping):
            invocation = {}
        candidates = [invocation.get("configSource") or {}]
        materials = predicate.get("materials") or ()
        if isinstance(materials, tuple):
            candidates.extend(materials)

        for candidate in candidates:
            if not isinstance(candidate, Mapping):
                continue
            uri = candidate.get("uri")
            digest = candidate.get("digest") or {}
            sha = digest.get("sha1") if isinstance(digest, Mapping) else None
            if isinstance(uri, str) and isinstance(sha, str) and uri and sha:
                return _normalize_scm_uri(uri), sha

        return None

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return {
            "statement": self.statement.to_dict(),
            "signer": self.signer.to_dict(),
        }


def _normalize_scm_uri(uri: str) -> str:
    """Strip the ``git+`` scheme prefix and ``@ref`` suffix of a material URI."""
    if uri.startswith("git+"):
        uri = uri[len("git+"):]
    scheme, sep, rest = uri.partition("://")
    host, slash, path = rest.partition("/")
    path = path.split("@", 1)[0]
    return f"{scheme}{sep}{host}{slash}{path}"


@dataclass
class SignOffRecord:
    """Sign-off evidence recovered for one provenance record."""
    references: List[str]
    source: str = ""
    commit: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "references": list(self.references),
            "source": self.source,
            "commit": self.commit,
        }


def _freeze(value: Any) -> Any:
    """Read-only copy of decoded JSON: objects become mappings, arrays tuples."""
    if isinstance(value, Mapping):
        return MappingProxyType({k: _freeze(v) for k, v in value.items()})
    if isinstance(value, (list, tuple)):
        return tuple(_freeze(v) for v in value)
    return value


def _thaw(value: Any) -> Any:
    """Plain JSON-serialisable copy of a frozen value."""
    if isinstance(value, Mapping):
        return {k: _thaw(v) for k, v in value.items()}
    if isinstance(value, tuple):
        return [_thaw(v) for v in value]
    return value
