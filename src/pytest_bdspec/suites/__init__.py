"""Public suite vocabularies."""

from .base import BaseSuite
from .feature import FeatureSuite
from .spec import SpecSuite

__all__ = (
    'BaseSuite',
    'FeatureSuite',
    'SpecSuite',
)
