"""Response normalization package."""

from budgetbot.normalization.normalizer import normalize, normalize_as

__all__ = ["normalize", "normalize_as"]
