import json

from compliance_py.core.envelope import StaticEnvelopeSource
from compliance_py.core.provenance import ProvenanceExtractor
from compliance_py.models.report import AttestationFailure, ImageReport, Report

from conftest import envelope, statement


def record(build_type):
    source = StaticEnvelopeSource(
        payload=envelope(statement(predicate={"buildType": build_type})),
        signature="c2ln",
    )
    return ProvenanceExtractor().extract(source)


def make_report():
    return Report(images=[
        ImageReport(image="registry.io/a:v1", records=[record("one"), record("two")]),
        ImageReport(
            image="registry.io/b:v1",
            records=[record("three")],
            failures=[AttestationFailure(index=0, code="AT004", message="kaboom")],
        ),
    ])


def test_render_attestations_line_delimited():
    lines = make_report().render_attestations().split(b"\n")
    assert len(lines) == 3
    assert [json.loads(line)["predicate"]["buildType"] for line in lines] == [
        "one", "two", "three",
    ]
    assert all(json.loads(line)["predicateType"] == "https://slsa.dev/provenance/v0.2" for line in lines)


def test_attestations_parsed():
    statements = make_report().attestations()
    assert statements[0]["_type"] == "https://in-toto.io/Statement/v0.1"
    assert statements[2]["subject"][0]["digest"] == {"sha256": "abc123"}


def test_empty_report():
    report = Report()
    assert report.render_attestations() == b""
    assert not report.success


def test_save_attestations(tmp_path):
    path = tmp_path / "attestations.jsonl"
    report = make_report()
    report.save_attestations(str(path))
    assert path.read_bytes() == report.render_attestations()


def test_report_json():
    data = json.loads(make_report().to_json())
    assert data["success"] is True
    assert data["images"][1]["failures"] == [
        {"index": 0, "code": "AT004", "message": "kaboom"}
    ]
    assert data["images"][0]["attestations"][0]["signer"]["kind"] == "signature"
