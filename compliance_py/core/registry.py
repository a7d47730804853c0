"""Attestation discovery in an OCI registry.

Uses cosign to locate the attestation image of an image, oras to read its
manifest and layers, and crane to pin the image to a digest. Each layer of
the attestation image holds one DSSE envelope.
"""

import json
from typing import Optional, List, Dict, Any

from ..errors import RegistryError
from ..utils.logging import get_logger
from ..utils.subprocess import run_command
from .envelope import LayerEnvelopeSource

logger = get_logger(__name__)


def repository_of(reference: str) -> str:
    """
    Strip tag and digest from an image reference.

    Args:
        reference: Image reference, e.g. ``registry:5000/app:v1@sha256:...``

    Returns:
        Repository part, e.g. ``registry:5000/app``
    """
    name = reference.split("@", 1)[0]
    head, slash, last = name.rpartition("/")
    if ":" in last:
        last = last.split(":", 1)[0]
    return f"{head}{slash}{last}"


class OrasEnvelopeProvider:
    """
    Fetch the attestation envelopes attached to an image.

    Network failures are raised as ``RegistryError``; there are no retries.
    """

    def __init__(self, timeout: int = 60):
        """
        Initialize the provider.

        Args:
            timeout: Timeout in seconds for each registry operation
        """
        self.timeout = timeout

    def resolve_digest(self, image: str) -> str:
        """
        Resolve an image reference to its digest.

        Args:
            image: Image reference

        Returns:
            Digest, e.g. ``sha256:...``
        """
        if "@" in image:
            return image.split("@", 1)[1]

        result = run_command(["crane", "digest", image], timeout=self.timeout)
        if not result.success:
            raise RegistryError(
                f"unable to resolve digest of {image}: {result.describe_failure()}"
            )
        return result.stdout.strip()

    def attestation_reference(self, image_with_digest: str) -> str:
        """Reference of the attestation image for an image."""
        result = run_command(
            ["cosign", "triangulate", "--type", "attestation", image_with_digest],
            timeout=self.timeout,
        )
        if not result.success:
            raise RegistryError(
                f"unable to locate attestations of {image_with_digest}: "
                f"{result.describe_failure()}"
            )
        return result.stdout.strip()

    def fetch_manifest(self, reference: str) -> Dict[str, Any]:
        """Fetch and parse an image manifest."""
        result = run_command(
            ["oras", "manifest", "fetch", reference],
            timeout=self.timeout,
        )
        if not result.success:
            raise RegistryError(
                f"unable to fetch manifest {reference}: {result.describe_failure()}"
            )
        try:
            manifest = json.loads(result.stdout)
        except json.JSONDecodeError as e:
            raise RegistryError(f"invalid manifest {reference}") from e
        if not isinstance(manifest, dict):
            raise RegistryError(f"invalid manifest {reference}")
        return manifest

    def fetch_blob(self, repository: str, digest: str) -> bytes:
        """Fetch the content of a blob."""
        result = run_command(
            ["oras", "blob", "fetch", "--output", "-", f"{repository}@{digest}"],
            timeout=self.timeout,
        )
        if not result.success:
            raise RegistryError(
                f"unable to fetch blob {repository}@{digest}: {result.describe_failure()}"
            )
        return result.stdout.encode("utf-8")

    def envelopes(
        self, image: str, digest: Optional[str] = None
    ) -> List[LayerEnvelopeSource]:
        """
        List the envelope sources attached to an image.

        Args:
            image: Image reference
            digest: Image digest, resolved when not given

        Returns:
            One envelope source per attestation layer, in manifest order
        """
        digest = digest or self.resolve_digest(image)
        image_with_digest = f"{repository_of(image)}@{digest}"
        logger.debug(f"Listing attestations for: {image_with_digest}")

        reference = self.attestation_reference(image_with_digest)
        manifest = self.fetch_manifest(reference)
        repository = repository_of(reference)

        def fetch(layer_digest: str) -> bytes:
            return self.fetch_blob(repository, layer_digest)

        sources = []
        for layer in manifest.get("layers") or []:
            layer_digest = layer.get("digest")
            if not layer_digest:
                continue
            sources.append(
                LayerEnvelopeSource(
                    media_type=layer.get("mediaType", ""),
                    digest=layer_digest,
                    annotations=layer.get("annotations"),
                    fetch_blob=fetch,
                )
            )

        logger.debug(f"Found {len(sources)} attestation(s) for {image_with_digest}")
        return sources
