"""Data models for policy sources and resolved criteria."""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional, List, Tuple, Dict, Any


@dataclass(frozen=True)
class VolatileRule:
    """A policy rule with an optional activation window and image scope.

    Bounds are RFC 3339 strings as written in the policy configuration.
    """
    value: str
    effective_on: Optional[str] = None
    effective_until: Optional[str] = None
    image_ref: Optional[str] = None


@dataclass(frozen=True)
class LegacyConfiguration:
    """Deprecated policy configuration shape."""
    include: Tuple[str, ...] = ()
    exclude: Tuple[str, ...] = ()
    collections: Tuple[str, ...] = ()


@dataclass(frozen=True)
class PolicySource:
    """Include/exclude configuration of one policy source."""
    include: Tuple[str, ...] = ()
    exclude: Tuple[str, ...] = ()
    volatile_include: Tuple[VolatileRule, ...] = ()
    volatile_exclude: Tuple[VolatileRule, ...] = ()
    legacy: Optional[LegacyConfiguration] = None

    @property
    def has_static_config(self) -> bool:
        return bool(self.include or self.exclude)


@dataclass(frozen=True)
class BoundSubstitution:
    """A volatile rule bound that was replaced with the evaluation time."""
    value: str
    bound: str
    given: Optional[str]
    substituted: datetime

    @property
    def missing(self) -> bool:
        """True when no bound was configured at all."""
        return not self.given

    def describe(self) -> str:
        if self.missing:
            return (
                f"criteria {self.value!r} has no {self.bound}, "
                f"using {self.substituted.isoformat()}"
            )
        return (
            f"unable to parse {self.bound} for criteria {self.value!r}, "
            f"was given {self.given!r}, using {self.substituted.isoformat()}"
        )


@dataclass
class EffectiveCriteria:
    """Rules that apply to one image at one point in time."""
    include: List[str] = field(default_factory=lambda: ["*"])
    exclude: List[str] = field(default_factory=list)
    substitutions: List[BoundSubstitution] = field(
        default_factory=list, compare=False, repr=False
    )

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return {
            "include": list(self.include),
            "exclude": list(self.exclude),
            "substitutions": [s.describe() for s in self.substitutions],
        }
