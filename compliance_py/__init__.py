"""
Container image compliance checks.

Provides functionality for:
- SLSA provenance extraction from signed attestations
- Signer resolution for key based and keyless signing
- Time-scoped policy criteria resolution
- Sign-off evidence from build commits
"""

__version__ = "1.0.0"

from .core.criteria import CriteriaResolver
from .core.provenance import ProvenanceExtractor
from .core.signoff import CommitSignOffResolver, IssueTrackerSignOffResolver
from .core.validator import ImageValidator

__all__ = [
    "CriteriaResolver",
    "ProvenanceExtractor",
    "CommitSignOffResolver",
    "IssueTrackerSignOffResolver",
    "ImageValidator",
]
