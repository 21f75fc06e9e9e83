"""
Identity matching: find the enrolled identity closest to a probe descriptor.

IdentityMatcher is the seam for swapping in an indexed nearest-neighbour
search; LinearScanMatcher compares the probe against every stored descriptor.
"""

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Optional

from faceauth.clients.base import IdentityRepository
from faceauth.models.internal_models import Identity
from faceauth.services.descriptor_service import (
    DescriptorLengthMismatchError,
    DescriptorValidationError,
    DescriptorValidator,
    DistanceScorer,
)

logger = logging.getLogger(__name__)


@dataclass
class MatchResult:
    """
    Best matching identity for a probe.

    Attributes:
        identity: The matched identity.
        distance: Distance between the probe and the identity's closest
                  stored descriptor; always below the matcher threshold.
    """

    identity: Identity
    distance: float


class IdentityMatcher(ABC):
    """Abstract base class for probe-to-identity matching."""

    @abstractmethod
    async def find_match(self, probe: Any) -> Optional[MatchResult]:
        """
        Find the enrolled identity matching a probe descriptor.

        Returns:
            MatchResult, or None when nothing clears the threshold. Invalid
            probes also yield None.
        """


class LinearScanMatcher(IdentityMatcher):
    """
    Scan every stored descriptor of every identity and keep the global best.

    Identities are enumerated in store order and descriptors in enrollment
    order. On equal distances the pair evaluated first wins; this tie-break
    is arbitrary and callers must not depend on it.
    """

    def __init__(
        self,
        identities: IdentityRepository,
        scorer: DistanceScorer,
        validator: DescriptorValidator
    ):
        self.identities = identities
        self.scorer = scorer
        self.validator = validator

    async def find_match(self, probe: Any) -> Optional[MatchResult]:
        try:
            probe = self.validator.validate(probe)
        except DescriptorValidationError as e:
            logger.warning(f"Rejected probe descriptor ({e.reason}): {e}")
            return None

        candidates = await self.identities.list_all()

        best: Optional[MatchResult] = None
        skipped = 0
        for identity in candidates:
            for stored in identity.descriptors:
                try:
                    distance = self.scorer.distance(probe, stored)
                except DescriptorLengthMismatchError:
                    skipped += 1
                    continue
                if best is None or distance < best.distance:
                    best = MatchResult(identity=identity, distance=distance)

        if skipped:
            logger.warning(f"Skipped {skipped} stored descriptors with mismatched length")

        if best is None:
            logger.info(f"No comparable descriptors among {len(candidates)} identities")
            return None

        if best.distance >= self.scorer.threshold:
            logger.info(
                f"Best candidate {best.identity.id} at distance {best.distance:.4f} "
                f"did not clear threshold {self.scorer.threshold}"
            )
            return None

        logger.info(f"Matched identity {best.identity.id} at distance {best.distance:.4f}")
        return best
