"""
Descriptor validation and distance scoring for face descriptors.

Face descriptors are produced by an external detector/embedder as fixed-length
numeric vectors. This module only checks their shape and compares them.
"""

import logging
import math
import numbers
from typing import Any, Optional

import numpy as np

from faceauth.services.errors import ClientInputError

logger = logging.getLogger(__name__)


class DescriptorValidationError(ClientInputError):
    """Base class for rejected face descriptors."""

    reason = "InvalidDescriptor"


class NotAnArrayError(DescriptorValidationError):
    reason = "NotAnArray"


class EmptyDescriptorError(DescriptorValidationError):
    reason = "Empty"


class NonNumericDescriptorError(DescriptorValidationError):
    reason = "NonNumeric"


class DescriptorTooShortError(DescriptorValidationError):
    reason = "TooShort"


class DescriptorLengthMismatchError(ValueError):
    """Raised when two descriptors of different lengths are compared."""


class DescriptorValidator:
    """Checks shape and numeric sanity of incoming face descriptors."""

    def __init__(self, min_dimension: int = 128):
        self.min_dimension = min_dimension

    def validate(self, vector: Any) -> np.ndarray:
        """
        Validate a face descriptor.

        Args:
            vector: Candidate descriptor (list, tuple or 1-D numpy array)

        Returns:
            numpy.ndarray: The descriptor as a 1-D float64 array

        Raises:
            NotAnArrayError: If the input is not a one-dimensional sequence
            EmptyDescriptorError: If the input has no elements
            NonNumericDescriptorError: If any element is not a finite real number
            DescriptorTooShortError: If the input is shorter than min_dimension
        """
        if isinstance(vector, np.ndarray):
            if vector.ndim != 1:
                raise NotAnArrayError(f"Face descriptor must be one-dimensional, got {vector.ndim} dimensions")
            items = vector.tolist()
        elif isinstance(vector, (list, tuple)):
            items = list(vector)
        else:
            raise NotAnArrayError("Face descriptor must be an array of numbers")

        if not items:
            raise EmptyDescriptorError("Face descriptor is empty")

        for index, item in enumerate(items):
            if isinstance(item, (list, tuple, np.ndarray)):
                raise NotAnArrayError("Face descriptor must be one-dimensional")
            if isinstance(item, bool) or not isinstance(item, numbers.Real):
                raise NonNumericDescriptorError(f"Face descriptor element {index} is not a number")
            try:
                finite = math.isfinite(item)
            except OverflowError:
                # Integers beyond float range
                finite = False
            if not finite:
                raise NonNumericDescriptorError(f"Face descriptor element {index} is not finite")

        if len(items) < self.min_dimension:
            raise DescriptorTooShortError(
                f"Face descriptor has {len(items)} values, at least {self.min_dimension} required"
            )

        return np.asarray(items, dtype=np.float64)

    def is_valid(self, vector: Any) -> bool:
        try:
            self.validate(vector)
            return True
        except DescriptorValidationError:
            return False


class DistanceScorer:
    """
    Euclidean distance between face descriptors with a single match threshold.

    When normalize is enabled, both operands of every comparison are scaled to
    unit length, so stored and probe descriptors are always treated alike.
    """

    def __init__(self, threshold: float = 0.6, normalize: bool = False):
        if threshold <= 0.0:
            raise ValueError(f"Threshold must be greater than 0, got: {threshold}")
        self.threshold = threshold
        self.normalize = normalize

    def _prepare(self, descriptor: np.ndarray) -> np.ndarray:
        descriptor = np.asarray(descriptor, dtype=np.float64)
        if self.normalize:
            norm = np.linalg.norm(descriptor)
            if norm > 0:
                descriptor = descriptor / norm
        return descriptor

    def distance(self, descriptor1: np.ndarray, descriptor2: np.ndarray) -> float:
        """
        Compute the distance between two descriptors.

        Raises:
            DescriptorLengthMismatchError: If the descriptors differ in length
        """
        a = self._prepare(descriptor1)
        b = self._prepare(descriptor2)

        if a.shape != b.shape:
            raise DescriptorLengthMismatchError(f"Descriptor lengths don't match: {a.shape} vs {b.shape}")

        return float(np.linalg.norm(a - b))

    def is_match(self, descriptor1: np.ndarray, descriptor2: np.ndarray, threshold: Optional[float] = None) -> bool:
        threshold = self.threshold if threshold is None else threshold
        distance = self.distance(descriptor1, descriptor2)
        is_match = distance < threshold

        logger.debug(f"Face comparison: distance={distance:.4f}, threshold={threshold}, match={is_match}")
        return is_match
