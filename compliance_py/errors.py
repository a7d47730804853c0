"""Exceptions raised by the compliance package.

Every error carries a stable ``code``. Underlying failures are chained with
``raise ... from exc`` and are available through ``cause``.
"""

from typing import Optional


class ComplianceError(Exception):
    """Base class for compliance errors."""

    code = "CE000"
    title = "Compliance check failed"

    def __init__(self, message: str = ""):
        self.message = message
        super().__init__(message)

    @property
    def cause(self) -> Optional[BaseException]:
        """The chained underlying error, if any."""
        return self.__cause__

    def alike(self, other: object) -> bool:
        """True when ``other`` is a compliance error of the same kind."""
        return isinstance(other, ComplianceError) and other.code == self.code

    def __str__(self) -> str:
        detail = self.message
        if not detail and self.__cause__ is not None:
            detail = str(self.__cause__)
        if detail:
            return f"{self.code}: {self.title}, caused by: {detail}"
        return f"{self.code}: {self.title}"


class AttestationError(ComplianceError):
    """An attestation envelope could not be turned into a provenance record."""


class InputMissingError(AttestationError):
    code = "AT001"
    title = "No attestation data"


class MediaTypeError(AttestationError):
    code = "AT002"
    title = "Malformed attestation data"


class MediaTypeUnreadableError(MediaTypeError):
    """The envelope media type could not be read."""


class MediaTypeMismatchError(MediaTypeError):
    """The envelope is not a DSSE envelope."""

    def __init__(self, expected: str, received: str):
        self.expected = expected
        self.received = received
        super().__init__(
            f"Expecting media type of `{expected}`, received: `{received}`"
        )


class PayloadError(AttestationError):
    code = "AT002"
    title = "Malformed attestation data"


class PayloadUnreadableError(PayloadError):
    """The envelope payload stream could not be read."""


class PayloadMalformedError(PayloadError):
    """The envelope or the statement inside it is not valid."""


class EmptyPredicateError(AttestationError):
    code = "AT003"
    title = "Empty attestation data"


class UnexpectedPredicateTypeError(AttestationError):
    code = "AT004"
    title = "Unsupported attestation predicate type"

    def __init__(self, received: str, expected: str = ""):
        self.received = received
        self.expected = expected
        super().__init__(received)


class SignerResolutionFailedError(AttestationError):
    code = "AT005"
    title = "Unable to create signature"


class SignOffError(ComplianceError):
    """Sign-off evidence could not be established."""


class NoSignOffReferenceError(SignOffError):
    code = "SO001"
    title = "No sign-off references found"


class SignOffSourceUnavailableError(SignOffError):
    code = "SO002"
    title = "Build source not recorded in provenance"


class CommitLookupError(SignOffError):
    code = "SO003"
    title = "Unable to retrieve build commit"


class RegistryError(ComplianceError):
    code = "RG001"
    title = "Unable to fetch attestations"


class PolicyConfigError(ComplianceError):
    code = "CF001"
    title = "Invalid policy configuration"
