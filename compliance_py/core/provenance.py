"""SLSA provenance extraction from signed attestation envelopes.

An attestation is a DSSE envelope::

    {"payload": "<base64 in-toto statement>",
     "signatures": [{"keyid": "...", "sig": "..."}]}

The statement inside must carry a SLSA v0.2 provenance predicate. The signer
is resolved from the signature attached to the attestation (key based
signing) or, failing that, from the signing certificate and its chain
(keyless signing), so callers never branch on how an image was signed.
"""

import base64
import binascii
import json
from typing import Optional, List, Dict, Any, Tuple

from ..errors import (
    InputMissingError,
    MediaTypeUnreadableError,
    MediaTypeMismatchError,
    PayloadUnreadableError,
    PayloadMalformedError,
    EmptyPredicateError,
    UnexpectedPredicateTypeError,
    SignerResolutionFailedError,
)
from ..models.provenance import (
    EnvelopeSignature,
    SignatureSigner,
    CertificateSigner,
    ResolvedSigner,
    ProvenanceStatement,
    ProvenanceRecord,
)
from ..utils.logging import get_logger
from .envelope import EnvelopeSource, DSSE_MEDIA_TYPE

logger = get_logger(__name__)

SLSA_PROVENANCE_V02 = "https://slsa.dev/provenance/v0.2"
STATEMENT_FIELDS = ("_type", "predicateType", "subject", "predicate")


class ProvenanceExtractor:
    """
    Turn envelope sources into provenance records.

    Each failure is raised as a specific ``AttestationError`` subclass with
    the underlying error chained.
    """

    MEDIA_TYPE = DSSE_MEDIA_TYPE
    PREDICATE_TYPE = SLSA_PROVENANCE_V02

    def __init__(
        self,
        media_type: str = MEDIA_TYPE,
        predicate_type: str = PREDICATE_TYPE,
    ):
        """
        Initialize the extractor.

        Args:
            media_type: Required envelope media type
            predicate_type: Required statement predicate type
        """
        self.media_type = media_type
        self.predicate_type = predicate_type

    def extract(self, source: Optional[EnvelopeSource]) -> ProvenanceRecord:
        """
        Validate an envelope and extract its provenance record.

        Args:
            source: Envelope source to read from

        Returns:
            ProvenanceRecord for the envelope

        Raises:
            AttestationError: if the envelope is not a valid, signed
                SLSA provenance attestation
        """
        if source is None:
            raise InputMissingError("no attestation given")

        self._check_media_type(source)
        envelope = self._read_envelope(source)
        signatures = self._declared_signatures(envelope)
        statement = self._decode_statement(envelope)
        signer = self._resolve_signer(source, signatures)

        logger.debug(
            f"Extracted {statement.predicate_type} provenance signed by {signer.kind.value}"
        )
        return ProvenanceRecord(statement=statement, signer=signer)

    def _check_media_type(self, source: EnvelopeSource) -> None:
        try:
            media_type = source.media_type()
        except Exception as e:
            raise MediaTypeUnreadableError() from e

        if media_type != self.media_type:
            raise MediaTypeMismatchError(self.media_type, media_type or "")

    def _read_envelope(self, source: EnvelopeSource) -> Dict[str, Any]:
        try:
            with source.uncompressed_payload() as stream:
                content = stream.read()
        except Exception as e:
            raise PayloadUnreadableError() from e

        try:
            envelope = json.loads(content)
        except (json.JSONDecodeError, UnicodeDecodeError) as e:
            raise PayloadMalformedError() from e

        if not isinstance(envelope, dict):
            raise PayloadMalformedError("envelope is not a JSON object")
        return envelope

    @staticmethod
    def _declared_signatures(envelope: Dict[str, Any]) -> Tuple[EnvelopeSignature, ...]:
        entries = envelope.get("signatures") or []
        if not isinstance(entries, list):
            raise PayloadMalformedError("envelope signatures is not a list")

        signatures = []
        for entry in entries:
            if not isinstance(entry, dict):
                raise PayloadMalformedError("envelope signature is not a JSON object")
            signatures.append(
                EnvelopeSignature(
                    keyid=str(entry.get("keyid") or ""),
                    sig=str(entry.get("sig") or ""),
                )
            )
        return tuple(signatures)

    def _decode_statement(self, envelope: Dict[str, Any]) -> ProvenanceStatement:
        payload = envelope.get("payload")
        if not isinstance(payload, str) or not payload:
            raise PayloadMalformedError("envelope has no payload")

        try:
            raw = base64.b64decode(payload, validate=True)
        except (binascii.Error, ValueError) as e:
            raise PayloadMalformedError() from e

        try:
            data = json.loads(raw)
        except (json.JSONDecodeError, UnicodeDecodeError) as e:
            raise PayloadMalformedError() from e

        # JSON null decodes to an empty statement
        if data is None:
            raise EmptyPredicateError()
        if not isinstance(data, dict):
            raise PayloadMalformedError("statement is not a JSON object")

        if not any(data.get(name) for name in STATEMENT_FIELDS):
            raise EmptyPredicateError()

        predicate_type = data.get("predicateType")
        if predicate_type != self.predicate_type:
            raise UnexpectedPredicateTypeError(
                str(predicate_type or ""), expected=self.predicate_type
            )

        statement_type = data.get("_type")
        predicate = data.get("predicate")
        subject = data.get("subject") or []
        if not isinstance(statement_type, str) or not statement_type:
            raise PayloadMalformedError("statement has no _type")
        if not isinstance(predicate, dict):
            raise PayloadMalformedError("statement predicate is not a JSON object")
        if not isinstance(subject, list) or not all(isinstance(s, dict) for s in subject):
            raise PayloadMalformedError("statement subject is not a list of objects")

        return ProvenanceStatement(
            type=statement_type,
            predicate_type=predicate_type,
            subject=tuple(subject),
            predicate=predicate,
            raw_payload=raw,
        )

    @staticmethod
    def _resolve_signer(
        source: EnvelopeSource,
        signatures: Tuple[EnvelopeSignature, ...],
    ) -> ResolvedSigner:
        try:
            signature = source.base64_signature()
        except Exception as e:
            logger.debug(f"No attached signature, trying certificate: {e}")
            signature = ""

        if signature:
            return SignatureSigner(signature=signature, signatures=signatures)

        try:
            certificate = source.certificate()
            chain: List = source.certificate_chain()
        except Exception as e:
            raise SignerResolutionFailedError() from e

        if certificate is not None:
            return CertificateSigner(
                certificate=certificate,
                chain=tuple(chain or ()),
                signatures=signatures,
            )

        # Neither attached signature nor certificate: the envelope's own
        # signature entries are all there is.
        declared = [s.sig for s in signatures if s.sig]
        if declared:
            return SignatureSigner(signature=declared[0], signatures=signatures)

        raise SignerResolutionFailedError("no signature or certificate found")
