"""Core functionality for the compliance package."""

from .clock import SystemClock, FixedClock
from .criteria import CriteriaResolver
from .envelope import StaticEnvelopeSource, LayerEnvelopeSource
from .provenance import ProvenanceExtractor
from .signoff import (
    CommitSignOffResolver,
    IssueTrackerSignOffResolver,
    GitCommitMessageProvider,
)
from .registry import OrasEnvelopeProvider
from .config import load_policy_source, policy_source_from_dict
from .validator import ImageValidator

__all__ = [
    "SystemClock",
    "FixedClock",
    "CriteriaResolver",
    "StaticEnvelopeSource",
    "LayerEnvelopeSource",
    "ProvenanceExtractor",
    "CommitSignOffResolver",
    "IssueTrackerSignOffResolver",
    "GitCommitMessageProvider",
    "OrasEnvelopeProvider",
    "load_policy_source",
    "policy_source_from_dict",
    "ImageValidator",
]
