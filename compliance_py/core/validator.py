"""Image validation: every attestation of an image, one report per image."""

from concurrent.futures import ThreadPoolExecutor
from typing import Optional, List, Iterable, Protocol, Union

from ..errors import AttestationError, ComplianceError, SignOffError
from ..models.policy import PolicySource
from ..models.provenance import ProvenanceRecord
from ..models.report import AttestationFailure, ImageReport, Report
from ..utils.logging import get_logger
from .criteria import CriteriaResolver
from .envelope import EnvelopeSource
from .provenance import ProvenanceExtractor
from .signoff import SignOffResolver, CommitMessageProvider

logger = get_logger(__name__)


class EnvelopeProvider(Protocol):
    """Supplies the envelope sources attached to an image."""

    def resolve_digest(self, image: str) -> str:
        ...

    def envelopes(self, image: str, digest: Optional[str] = None) -> List[EnvelopeSource]:
        ...


class ImageValidator:
    """
    Validate the attestations of images.

    A malformed attestation is recorded as a failure and does not stop the
    remaining attestations of the same image from being validated.
    """

    def __init__(
        self,
        provider: EnvelopeProvider,
        extractor: Optional[ProvenanceExtractor] = None,
        criteria_resolver: Optional[CriteriaResolver] = None,
        sign_off_resolver: Optional[SignOffResolver] = None,
        commit_lookup: Optional[CommitMessageProvider] = None,
        max_workers: int = 5,
    ):
        """
        Initialize the validator.

        Args:
            provider: Source of attestation envelopes
            extractor: Provenance extractor (default settings if None)
            criteria_resolver: Resolver used when a policy source is given
            sign_off_resolver: Resolver for sign-off evidence (skipped if None)
            commit_lookup: Commit message provider for sign-off resolution
            max_workers: Maximum attestations extracted in parallel
        """
        self.provider = provider
        self.extractor = extractor or ProvenanceExtractor()
        self.criteria_resolver = criteria_resolver or CriteriaResolver()
        self.sign_off_resolver = sign_off_resolver
        self.commit_lookup = commit_lookup
        self.max_workers = max_workers

    def validate(
        self, image: str, policy_source: Optional[PolicySource] = None
    ) -> ImageReport:
        """
        Validate one image.

        Args:
            image: Image reference
            policy_source: Policy source to resolve criteria for (optional)

        Returns:
            ImageReport for the image

        Raises:
            RegistryError: if the attestations cannot be listed
        """
        logger.step(f"Validating {image}")
        digest = self.provider.resolve_digest(image)
        report = ImageReport(image=image, digest=digest)

        if policy_source is not None:
            report.criteria = self.criteria_resolver.resolve(policy_source, image)
            for substitution in report.criteria.substitutions:
                logger.warning(f"{image}: {substitution.describe()}")

        sources = self.provider.envelopes(image, digest)
        for index, outcome in enumerate(self._extract_all(sources)):
            if isinstance(outcome, AttestationError):
                logger.error_verbose(f"Attestation {index} of {image}: {outcome}")
                report.failures.append(
                    AttestationFailure(index=index, code=outcome.code, message=str(outcome))
                )
            else:
                report.records.append(outcome)

        if self.sign_off_resolver is not None:
            for record in report.records:
                try:
                    report.sign_offs.append(
                        self.sign_off_resolver.resolve(record, self.commit_lookup)
                    )
                except SignOffError as e:
                    logger.error_verbose(f"Sign-off for {image}: {e}")
                    report.sign_off_errors.append(str(e))

        logger.result(
            f"{image}: {len(report.records)} valid, {len(report.failures)} invalid attestation(s)"
        )
        return report

    def validate_all(
        self, images: Iterable[str], policy_source: Optional[PolicySource] = None
    ) -> Report:
        """Validate several images; a failing image does not stop the others."""
        result = Report()
        for image in images:
            try:
                result.images.append(self.validate(image, policy_source))
            except ComplianceError as e:
                logger.error_verbose(f"Unable to validate {image}: {e}")
                result.images.append(ImageReport(image=image, error=str(e)))
        return result

    def _extract_all(
        self, sources: List[EnvelopeSource]
    ) -> List[Union[ProvenanceRecord, AttestationError]]:
        if not sources:
            return []

        def extract(source: EnvelopeSource) -> Union[ProvenanceRecord, AttestationError]:
            try:
                return self.extractor.extract(source)
            except AttestationError as e:
                return e

        workers = max(1, min(len(sources), self.max_workers))
        with ThreadPoolExecutor(max_workers=workers) as executor:
            return list(executor.map(extract, sources))
