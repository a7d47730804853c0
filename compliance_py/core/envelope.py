"""Envelope sources: access to one signed attestation and its signing material."""

import io
from typing import Optional, List, Dict, Callable, BinaryIO, Protocol

from cryptography import x509

from ..utils.logging import get_logger

logger = get_logger(__name__)

DSSE_MEDIA_TYPE = "application/vnd.dsse.envelope.v1+json"

# Annotations cosign attaches to attestation layers
SIGNATURE_ANNOTATION = "dev.cosignproject.cosign/signature"
CERTIFICATE_ANNOTATION = "dev.sigstore.cosign/certificate"
CHAIN_ANNOTATION = "dev.sigstore.cosign/chain"


class EnvelopeSource(Protocol):
    """Capabilities needed to validate one signed attestation."""

    def media_type(self) -> str:
        ...

    def uncompressed_payload(self) -> BinaryIO:
        ...

    def base64_signature(self) -> str:
        ...

    def certificate(self) -> Optional[x509.Certificate]:
        ...

    def certificate_chain(self) -> List[x509.Certificate]:
        ...


class StaticEnvelopeSource:
    """
    Envelope source backed by in-memory values.

    Useful for envelopes obtained out of band (files, bundles) and in tests.
    """

    def __init__(
        self,
        payload: bytes,
        media_type: str = DSSE_MEDIA_TYPE,
        signature: str = "",
        certificate: Optional[x509.Certificate] = None,
        chain: Optional[List[x509.Certificate]] = None,
    ):
        self._payload = payload
        self._media_type = media_type
        self._signature = signature
        self._certificate = certificate
        self._chain = list(chain or [])

    def media_type(self) -> str:
        return self._media_type

    def uncompressed_payload(self) -> BinaryIO:
        return io.BytesIO(self._payload)

    def base64_signature(self) -> str:
        return self._signature

    def certificate(self) -> Optional[x509.Certificate]:
        return self._certificate

    def certificate_chain(self) -> List[x509.Certificate]:
        return list(self._chain)


class LayerEnvelopeSource:
    """
    Envelope source for a layer of a cosign attestation image.

    The layer content is fetched lazily through ``fetch_blob``; signing
    material comes from the layer annotations.
    """

    def __init__(
        self,
        media_type: str,
        digest: str,
        annotations: Optional[Dict[str, str]],
        fetch_blob: Callable[[str], bytes],
    ):
        """
        Initialize the source.

        Args:
            media_type: Layer media type from the manifest
            digest: Layer digest
            annotations: Layer annotations from the manifest
            fetch_blob: Callable returning the blob content for a digest
        """
        self._media_type = media_type
        self.digest = digest
        self.annotations = dict(annotations or {})
        self._fetch_blob = fetch_blob

    def media_type(self) -> str:
        return self._media_type

    def uncompressed_payload(self) -> BinaryIO:
        logger.debug(f"Fetching attestation layer {self.digest}")
        return io.BytesIO(self._fetch_blob(self.digest))

    def base64_signature(self) -> str:
        return self.annotations.get(SIGNATURE_ANNOTATION, "")

    def certificate(self) -> Optional[x509.Certificate]:
        pem = self.annotations.get(CERTIFICATE_ANNOTATION)
        if not pem:
            return None
        return x509.load_pem_x509_certificate(pem.encode("utf-8"))

    def certificate_chain(self) -> List[x509.Certificate]:
        pem = self.annotations.get(CHAIN_ANNOTATION)
        if not pem:
            return []
        return x509.load_pem_x509_certificates(pem.encode("utf-8"))
