"""Policy criteria resolution.

Computes which include/exclude rules of a policy source apply to an image at
a given point in time. Volatile rules let a rule be rolled out (or retired)
on a schedule, and optionally only for one image, without touching the
static configuration.
"""

from datetime import datetime
from typing import Optional, List, Iterable

from ..models.policy import (
    PolicySource,
    VolatileRule,
    EffectiveCriteria,
    BoundSubstitution,
)
from ..utils.logging import get_logger
from .clock import EffectiveTimeProvider, SystemClock, ensure_utc, parse_rfc3339

logger = get_logger(__name__)

WILDCARD = "*"


class CriteriaResolver:
    """
    Resolve the effective criteria of a policy source for an image.

    Resolution never fails: bad rule bounds are substituted with the
    evaluation time and reported, and an empty result falls back to
    including everything.
    """

    def __init__(self, clock: Optional[EffectiveTimeProvider] = None):
        """
        Initialize the resolver.

        Args:
            clock: Provider of the default evaluation time
        """
        self.clock = clock or SystemClock()

    def resolve(
        self,
        source: PolicySource,
        image: str,
        now: Optional[datetime] = None,
    ) -> EffectiveCriteria:
        """
        Compute the criteria that apply to ``image``.

        Args:
            source: Policy source configuration
            image: Image reference the criteria are evaluated for
            now: Evaluation time (defaults to the clock's effective time)

        Returns:
            EffectiveCriteria with freshly allocated lists
        """
        at = ensure_utc(now) if now is not None else ensure_utc(self.clock.effective_time())
        include: List[str] = []
        exclude: List[str] = []
        substitutions: List[BoundSubstitution] = []

        if source.has_static_config:
            include.extend(source.include)
            exclude.extend(source.exclude)

        include.extend(self._active(source.volatile_include, image, at, substitutions))
        exclude.extend(self._active(source.volatile_exclude, image, at, substitutions))

        if not include and not exclude and source.legacy is not None:
            logger.debug("Using deprecated policy configuration")
            include.extend(source.legacy.include)
            exclude.extend(source.legacy.exclude)
            include.extend(f"@{collection}" for collection in source.legacy.collections)

        if not include:
            include = [WILDCARD]

        logger.debug(f"Effective criteria for {image}: include={include} exclude={exclude}")
        return EffectiveCriteria(include=include, exclude=exclude, substitutions=substitutions)

    def _active(
        self,
        rules: Iterable[VolatileRule],
        image: str,
        at: datetime,
        substitutions: List[BoundSubstitution],
    ) -> List[str]:
        """Values of the rules active at ``at`` for ``image``, in order."""
        values = []
        for rule in rules:
            since = self._bound(rule, "effectiveOn", rule.effective_on, at, substitutions)
            until = self._bound(rule, "effectiveUntil", rule.effective_until, at, substitutions)
            if not since <= at <= until:
                continue
            if rule.image_ref and rule.image_ref != image:
                continue
            values.append(rule.value)
        return values

    @staticmethod
    def _bound(
        rule: VolatileRule,
        name: str,
        given: Optional[str],
        at: datetime,
        substitutions: List[BoundSubstitution],
    ) -> datetime:
        try:
            parsed = parse_rfc3339(given)
        except ValueError as e:
            logger.warning(
                f"unable to parse time for criteria {rule.value!r}, was given {given!r}: {e}"
            )
            parsed = None

        if parsed is None:
            substitutions.append(
                BoundSubstitution(value=rule.value, bound=name, given=given, substituted=at)
            )
            return at
        return parsed
