"""Data models for the compliance package."""

from .policy import (
    VolatileRule,
    LegacyConfiguration,
    PolicySource,
    BoundSubstitution,
    EffectiveCriteria,
)
from .provenance import (
    SignerKind,
    EnvelopeSignature,
    SignatureSigner,
    CertificateSigner,
    ResolvedSigner,
    ProvenanceStatement,
    ProvenanceRecord,
    SignOffRecord,
)
from .report import AttestationFailure, ImageReport, Report

__all__ = [
    "VolatileRule",
    "LegacyConfiguration",
    "PolicySource",
    "BoundSubstitution",
    "EffectiveCriteria",
    "SignerKind",
    "EnvelopeSignature",
    "SignatureSigner",
    "CertificateSigner",
    "ResolvedSigner",
    "ProvenanceStatement",
    "ProvenanceRecord",
    "SignOffRecord",
    "AttestationFailure",
    "ImageReport",
    "Report",
]
