import json
from datetime import datetime, timezone

import pytest

from compliance_py.core.config import load_policy_source, policy_source_from_dict
from compliance_py.core.criteria import CriteriaResolver
from compliance_py.errors import PolicyConfigError
from compliance_py.models.policy import LegacyConfiguration, VolatileRule

POLICY_YAML = """
configuration:
  include: ["@minimal"]
  exclude: ["test.no_skipped"]
volatileConfig:
  include:
    - value: cve.high
      effectiveOn: 2023-01-01T00:00:00Z
      effectiveUntil: "2023-12-31T00:00:00Z"
      imageRef: registry.io/app@sha256:abc
    - value: cve.any
      effectiveOn: 2023-01-01
  exclude:
    - value: slsa3
legacy:
  collections: [minimal]
"""


def test_load_yaml(tmp_path):
    path = tmp_path / "policy.yaml"
    path.write_text(POLICY_YAML)

    source = load_policy_source(path)

    assert source.include == ("@minimal",)
    assert source.exclude == ("test.no_skipped",)
    high, anything = source.volatile_include
    assert high.value == "cve.high"
    assert high.image_ref == "registry.io/app@sha256:abc"
    assert high.effective_until == "2023-12-31T00:00:00Z"
    assert anything.image_ref is None
    assert source.volatile_exclude == (VolatileRule(value="slsa3"),)
    assert source.legacy == LegacyConfiguration(collections=("minimal",))


def test_yaml_timestamps_stay_comparable(tmp_path):
    path = tmp_path / "policy.yaml"
    path.write_text(POLICY_YAML)
    source = load_policy_source(path)

    criteria = CriteriaResolver().resolve(
        source,
        "registry.io/app@sha256:abc",
        now=datetime(2023, 6, 1, tzinfo=timezone.utc),
    )
    assert criteria.include == ["@minimal", "cve.high", "cve.any"]
    assert criteria.exclude == ["test.no_skipped", "slsa3"]
    # only missing bounds are substituted, every configured one parsed
    assert len(criteria.substitutions) == 3
    assert not any(s.given for s in criteria.substitutions)


def test_load_json(tmp_path):
    path = tmp_path / "policy.json"
    path.write_text(json.dumps({"configuration": {"include": ["a"]}}))
    assert load_policy_source(path).include == ("a",)


def test_empty_file(tmp_path):
    path = tmp_path / "policy.yaml"
    path.write_text("")
    source = load_policy_source(path)
    assert source.include == ()
    assert source.legacy is None


def test_missing_file(tmp_path):
    with pytest.raises(PolicyConfigError) as exc:
        load_policy_source(tmp_path / "nope.yaml")
    assert isinstance(exc.value.cause, OSError)


def test_invalid_yaml(tmp_path):
    path = tmp_path / "policy.yaml"
    path.write_text("configuration: [unclosed")
    with pytest.raises(PolicyConfigError):
        load_policy_source(path)


@pytest.mark.parametrize("data", [
    ["not", "a", "mapping"],
    {"configuration": ["a"]},
    {"configuration": {"include": "a"}},
    {"volatileConfig": {"include": [{"effectiveOn": "2023-01-01T00:00:00Z"}]}},
    {"volatileConfig": {"exclude": "x"}},
    {"legacy": "minimal"},
])
def test_structural_errors(data):
    with pytest.raises(PolicyConfigError):
        policy_source_from_dict(data)
