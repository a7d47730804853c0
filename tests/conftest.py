import base64
import io
import json
from datetime import datetime, timedelta, timezone

import pytest
from cryptography import x509
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.asymmetric import ec
from cryptography.x509.oid import NameOID

from compliance_py.core.envelope import DSSE_MEDIA_TYPE
from compliance_py.core.provenance import SLSA_PROVENANCE_V02
from compliance_py.models.provenance import FULCIO_ISSUER_OID, FULCIO_ISSUER_V2_OID

STATEMENT_TYPE = "https://in-toto.io/Statement/v0.1"
BUILD_COMMIT = "4be9282d0c47ff3046fd56c8067e6f0e83822a77"
BUILD_REPO = "https://github.com/example/app.git"


def encode(payload: str) -> str:
    return base64.b64encode(payload.encode("utf-8")).decode("ascii")


def statement(predicate=None, predicate_type=SLSA_PROVENANCE_V02, subject=None) -> dict:
    return {
        "_type": STATEMENT_TYPE,
        "predicateType": predicate_type,
        "subject": subject if subject is not None else [
            {"name": "registry.io/app", "digest": {"sha256": "abc123"}}
        ],
        "predicate": predicate if predicate is not None else {
            "buildType": "https://my.build.type"
        },
    }


def envelope(payload: dict, signatures=None) -> bytes:
    if signatures is None:
        signatures = [{"keyid": "key-id-1", "sig": "sig-1"}]
    return json.dumps({
        "payload": encode(json.dumps(payload)),
        "signatures": signatures,
    }).encode("utf-8")


def provenance_predicate(uri=f"git+{BUILD_REPO}@refs/heads/main", sha=BUILD_COMMIT, parameters=None):
    return {
        "buildType": "tekton.dev/v1beta1/TaskRun",
        "builder": {"id": "https://tekton.dev/chains/v2"},
        "invocation": {
            "configSource": {
                "uri": uri,
                "digest": {"sha1": sha},
                "entryPoint": "build.yaml",
            },
            "parameters": parameters or {},
        },
        "materials": [],
    }


class FakeEnvelopeSource:
    """Envelope source double; any value given as an exception is raised."""

    def __init__(
        self,
        payload=b"",
        media_type=DSSE_MEDIA_TYPE,
        signature="",
        certificate=None,
        chain=None,
    ):
        self._payload = payload
        self._media_type = media_type
        self._signature = signature
        self._certificate = certificate
        self._chain = chain if chain is not None else []
        self.calls = []

    def _answer(self, name, value):
        self.calls.append(name)
        if isinstance(value, Exception):
            raise value
        return value

    def media_type(self):
        return self._answer("media_type", self._media_type)

    def uncompressed_payload(self):
        return io.BytesIO(self._answer("uncompressed_payload", self._payload))

    def base64_signature(self):
        return self._answer("base64_signature", self._signature)

    def certificate(self):
        return self._answer("certificate", self._certificate)

    def certificate_chain(self):
        return self._answer("certificate_chain", self._chain)


def der_utf8_string(text):
    """DER encode ``text`` as a UTF8String, long form length when needed."""
    content = text.encode("utf-8")
    length = len(content)
    if length < 0x80:
        header = bytes([length])
    else:
        size = (length.bit_length() + 7) // 8
        header = bytes([0x80 | size]) + length.to_bytes(size, "big")
    return b"\x0c" + header + content


def make_certificate(common_name, issuer=None, identity=None, oidc_issuer=None,
                     oidc_issuer_v2=None):
    """Create a certificate, self-signed unless ``issuer`` (cert, key) is given."""
    key = ec.generate_private_key(ec.SECP256R1())
    name = x509.Name([x509.NameAttribute(NameOID.COMMON_NAME, common_name)])
    issuer_name, signing_key = (issuer[0].subject, issuer[1]) if issuer else (name, key)
    now = datetime.now(timezone.utc)

    builder = (
        x509.CertificateBuilder()
        .subject_name(name)
        .issuer_name(issuer_name)
        .public_key(key.public_key())
        .serial_number(x509.random_serial_number())
        .not_valid_before(now - timedelta(minutes=1))
        .not_valid_after(now + timedelta(minutes=10))
    )
    if identity:
        builder = builder.add_extension(
            x509.SubjectAlternativeName([x509.UniformResourceIdentifier(identity)]),
            critical=False,
        )
    if oidc_issuer:
        builder = builder.add_extension(
            x509.UnrecognizedExtension(FULCIO_ISSUER_OID, oidc_issuer.encode("utf-8")),
            critical=False,
        )
    if oidc_issuer_v2:
        builder = builder.add_extension(
            x509.UnrecognizedExtension(FULCIO_ISSUER_V2_OID, der_utf8_string(oidc_issuer_v2)),
            critical=False,
        )
    return builder.sign(signing_key, hashes.SHA256()), key


@pytest.fixture(scope="session")
def signing_chain():
    """A keyless style leaf certificate and its issuing chain."""
    root = make_certificate("sigstore")
    intermediate = make_certificate("sigstore-intermediate", issuer=root)
    leaf, _ = make_certificate(
        "release-signer",
        issuer=intermediate,
        identity="https://github.com/example/app/.github/workflows/release.yaml@refs/heads/main",
        oidc_issuer="https://token.actions.githubusercontent.com",
    )
    return leaf, [intermediate[0], root[0]]
