"""Sign-off evidence from build history.

A sign-off is accountability evidence for a build, such as the issue tracker
reference recorded in the commit the image was built from. Every source of
sign-off implements the same ``SignOffResolver`` contract.
"""

import re
import shutil
import tempfile
from abc import ABC, abstractmethod
from typing import Mapping, Optional, Protocol, Union

from ..errors import (
    NoSignOffReferenceError,
    SignOffSourceUnavailableError,
    CommitLookupError,
)
from ..models.provenance import ProvenanceRecord, SignOffRecord
from ..utils.logging import get_logger
from ..utils.subprocess import run_command

logger = get_logger(__name__)

DEFAULT_SIGN_OFF_PATTERN = r"RedHat JIRA Issue: ([a-zA-Z]+-\d+)"

# Abbreviated or full SHA-1/SHA-256 object name
COMMIT_SHA_PATTERN = re.compile(r"[0-9a-fA-F]{7,64}")


class CommitMessageProvider(Protocol):
    """Looks up the message of a commit in a source repository."""

    def commit_message(self, scm_url: str, commit_sha: str) -> str:
        ...


class GitCommitMessageProvider:
    """
    Resolve commit messages with git.

    Clones only the repository metadata (no blobs, no checkout) into a
    temporary directory, which is removed afterwards.
    """

    def __init__(self, timeout: int = 120):
        """
        Initialize the provider.

        Args:
            timeout: Timeout in seconds for each git operation
        """
        self.timeout = timeout

    def commit_message(self, scm_url: str, commit_sha: str) -> str:
        # Both values come from attestation content and end up in git's argv
        if not COMMIT_SHA_PATTERN.fullmatch(commit_sha or ""):
            raise CommitLookupError(f"invalid commit id {commit_sha!r}")
        if not scm_url:
            raise CommitLookupError("no source repository given")

        workdir = tempfile.mkdtemp(prefix="compliance-git-")
        try:
            logger.debug(f"Cloning {scm_url} to look up {commit_sha}")
            result = run_command(
                ["git", "clone", "--bare", "--filter=blob:none", "--quiet",
                 "--", scm_url, workdir],
                timeout=self.timeout,
            )
            if not result.success:
                raise CommitLookupError(
                    f"unable to clone {scm_url}: {result.describe_failure()}"
                )

            result = run_command(
                ["git", "--git-dir", workdir, "log", "-1", "--format=%B",
                 "--end-of-options", commit_sha],
                timeout=self.timeout,
            )
            if not result.success:
                raise CommitLookupError(
                    f"unable to read commit {commit_sha}: {result.describe_failure()}"
                )
            return result.stdout
        finally:
            shutil.rmtree(workdir, ignore_errors=True)


class SignOffResolver(ABC):
    """Derives sign-off evidence for a provenance record."""

    @abstractmethod
    def resolve(
        self,
        record: ProvenanceRecord,
        commit_lookup: Optional[CommitMessageProvider] = None,
    ) -> SignOffRecord:
        """
        Resolve sign-off evidence.

        Raises:
            SignOffError: when no evidence can be established
        """


class CommitSignOffResolver(SignOffResolver):
    """Find issue tracker references in the message of the build commit."""

    DEFAULT_PATTERN = DEFAULT_SIGN_OFF_PATTERN

    def __init__(self, pattern: Union[str, "re.Pattern[str]"] = DEFAULT_PATTERN):
        """
        Initialize the resolver.

        Args:
            pattern: Reference pattern; string patterns are matched case
                insensitively. The last capture group is the reference.
        """
        if isinstance(pattern, str):
            pattern = re.compile(pattern, re.IGNORECASE)
        self.pattern = pattern

    def resolve(
        self,
        record: ProvenanceRecord,
        commit_lookup: Optional[CommitMessageProvider] = None,
    ) -> SignOffRecord:
        scm_url = record.build_scm()
        commit_sha = record.build_commit_sha()
        if not scm_url or not commit_sha:
            raise SignOffSourceUnavailableError(
                "provenance does not record a source repository and commit"
            )
        if commit_lookup is None:
            raise CommitLookupError("no commit message provider configured")

        try:
            message = commit_lookup.commit_message(scm_url, commit_sha)
        except CommitLookupError:
            raise
        except Exception as e:
            raise CommitLookupError(f"{scm_url}@{commit_sha}") from e

        reference = self.match(message)
        logger.debug(f"Commit {commit_sha} signed off by {reference}")
        return SignOffRecord(references=[reference], source=scm_url, commit=commit_sha)

    def match(self, message: str) -> str:
        """Return the reference found in ``message``."""
        match = self.pattern.search(message or "")
        if match is None:
            raise NoSignOffReferenceError("there were no issue references found")
        if match.re.groups == 0:
            return match.group(0)
        return match.group(match.re.groups)


class IssueTrackerSignOffResolver(SignOffResolver):
    """Use the issue id recorded in the build parameters of the provenance."""

    def __init__(self, parameter: str = "jira-issue", tracker: str = "jira"):
        """
        Initialize the resolver.

        Args:
            parameter: Name of the build parameter holding the issue id
            tracker: Name of the issue tracker, reported as the source
        """
        self.parameter = parameter
        self.tracker = tracker

    def resolve(
        self,
        record: ProvenanceRecord,
        commit_lookup: Optional[CommitMessageProvider] = None,
    ) -> SignOffRecord:
        invocation = record.statement.predicate.get("invocation") or {}
        parameters = invocation.get("parameters") if isinstance(invocation, Mapping) else None
        issue = parameters.get(self.parameter) if isinstance(parameters, Mapping) else None
        if not issue:
            raise NoSignOffReferenceError(
                f"build parameter {self.parameter!r} is not set"
            )
        return SignOffRecord(
            references=[str(issue)],
            source=self.tracker,
            commit=record.build_commit_sha(),
        )
