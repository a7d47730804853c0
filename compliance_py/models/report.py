"""Data models for validation reports."""

import json
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import List, Optional, Dict, Any

from .policy import EffectiveCriteria
from .provenance import ProvenanceRecord, SignOffRecord


@dataclass
class AttestationFailure:
    """An attestation that could not be turned into a provenance record."""
    index: int
    code: str
    message: str

    def to_dict(self) -> Dict[str, Any]:
        return {"index": self.index, "code": self.code, "message": self.message}


@dataclass
class ImageReport:
    """Result of validating the attestations of a single image."""
    image: str
    digest: Optional[str] = None
    error: Optional[str] = None
    records: List[ProvenanceRecord] = field(default_factory=list)
    failures: List[AttestationFailure] = field(default_factory=list)
    sign_offs: List[SignOffRecord] = field(default_factory=list)
    sign_off_errors: List[str] = field(default_factory=list)
    criteria: Optional[EffectiveCriteria] = None
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    @property
    def success(self) -> bool:
        """At least one attestation yielded a provenance record."""
        return bool(self.records)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return {
            "image": self.image,
            "digest": self.digest,
            "success": self.success,
            "error": self.error,
            "timestamp": self.timestamp.isoformat(),
            "attestations": [r.to_dict() for r in self.records],
            "failures": [f.to_dict() for f in self.failures],
            "sign_offs": [s.to_dict() for s in self.sign_offs],
            "sign_off_errors": list(self.sign_off_errors),
            "criteria": self.criteria.to_dict() if self.criteria else None,
        }

    def to_json(self) -> str:
        """Convert to JSON string."""
        return json.dumps(self.to_dict(), indent=2)


@dataclass
class Report:
    """Validation results for a set of images."""
    images: List[ImageReport] = field(default_factory=list)

    @property
    def success(self) -> bool:
        return bool(self.images) and all(i.success for i in self.images)

    def render_attestations(self) -> bytes:
        """Render every provenance statement, one JSON document per line."""
        lines = [
            record.statement_json()
            for image in self.images
            for record in image.records
        ]
        return b"\n".join(lines)

    def attestations(self) -> List[Dict[str, Any]]:
        """Parsed provenance statements of every image."""
        return [
            json.loads(record.statement_json())
            for image in self.images
            for record in image.records
        ]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "success": self.success,
            "images": [i.to_dict() for i in self.images],
        }

    def to_json(self) -> str:
        return json.dumps(self.to_dict(), indent=2)

    def save_attestations(self, filepath: str) -> None:
        """Write the line-delimited statements to a file."""
        with open(filepath, "wb") as f:
            f.write(self.render_attestations())
