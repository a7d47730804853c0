"""Policy source configuration loading.

Reads the include/exclude configuration of a policy source from YAML (or
JSON, which YAML accepts)::

    configuration:
      include: ["@minimal"]
      exclude: ["test.no_skipped"]
    volatileConfig:
      include:
        - value: "cve.high"
          effectiveOn: "2024-01-01T00:00:00Z"
          effectiveUntil: "2024-06-30T00:00:00Z"
          imageRef: "registry.io/app@sha256:..."
      exclude: []
    legacy:
      include: []
      exclude: []
      collections: ["minimal"]
"""

from datetime import datetime, date, timezone
from pathlib import Path
from typing import Optional, Dict, Any, Tuple, Union

import yaml

from ..errors import PolicyConfigError
from ..models.policy import PolicySource, VolatileRule, LegacyConfiguration
from ..utils.logging import get_logger

logger = get_logger(__name__)


def load_policy_source(path: Union[str, Path]) -> PolicySource:
    """
    Load a policy source configuration file.

    Args:
        path: Path to a YAML or JSON file

    Returns:
        PolicySource
    """
    path = Path(path)
    try:
        with open(path) as f:
            data = yaml.safe_load(f)
    except OSError as e:
        raise PolicyConfigError(f"unable to read {path}") from e
    except yaml.YAMLError as e:
        raise PolicyConfigError(f"unable to parse {path}") from e

    logger.debug(f"Loaded policy configuration from {path}")
    return policy_source_from_dict(data or {})


def policy_source_from_dict(data: Dict[str, Any]) -> PolicySource:
    """Build a PolicySource from parsed configuration data."""
    if not isinstance(data, dict):
        raise PolicyConfigError("policy configuration must be a mapping")

    static = _mapping(data, "configuration")
    volatile = _mapping(data, "volatileConfig")
    legacy_data = data.get("legacy")

    legacy = None
    if legacy_data is not None:
        legacy_data = _mapping(data, "legacy")
        legacy = LegacyConfiguration(
            include=_strings(legacy_data, "include"),
            exclude=_strings(legacy_data, "exclude"),
            collections=_strings(legacy_data, "collections"),
        )

    return PolicySource(
        include=_strings(static, "include"),
        exclude=_strings(static, "exclude"),
        volatile_include=_rules(volatile, "include"),
        volatile_exclude=_rules(volatile, "exclude"),
        legacy=legacy,
    )


def _mapping(data: Dict[str, Any], key: str) -> Dict[str, Any]:
    value = data.get(key) or {}
    if not isinstance(value, dict):
        raise PolicyConfigError(f"{key} must be a mapping")
    return value


def _strings(data: Dict[str, Any], key: str) -> Tuple[str, ...]:
    value = data.get(key) or []
    if not isinstance(value, list):
        raise PolicyConfigError(f"{key} must be a list")
    return tuple(str(v) for v in value)


def _rules(data: Dict[str, Any], key: str) -> Tuple[VolatileRule, ...]:
    entries = data.get(key) or []
    if not isinstance(entries, list):
        raise PolicyConfigError(f"volatileConfig.{key} must be a list")

    rules = []
    for entry in entries:
        if not isinstance(entry, dict) or not entry.get("value"):
            raise PolicyConfigError(f"volatileConfig.{key} entries need a value")
        rules.append(
            VolatileRule(
                value=str(entry["value"]),
                effective_on=_timestamp(entry.get("effectiveOn")),
                effective_until=_timestamp(entry.get("effectiveUntil")),
                image_ref=entry.get("imageRef") or None,
            )
        )
    return tuple(rules)


def _timestamp(value: Any) -> Optional[str]:
    """Normalise YAML timestamps back to RFC 3339 strings."""
    if value is None:
        return None
    if isinstance(value, datetime):
        if value.tzinfo is None:
            value = value.replace(tzinfo=timezone.utc)
        return value.isoformat()
    if isinstance(value, date):
        return datetime(value.year, value.month, value.day, tzinfo=timezone.utc).isoformat()
    return str(value)
