"""
Shannon entropy helpers used to tell random-looking secrets from
placeholders and plain words.
"""

import math
from collections import Counter

# Bits per character of a uniformly random base64 string. Entropy is
# normalized against this ceiling when blended into a confidence score.
ENTROPY_CEILING = 6.0


def shannon_entropy(text: str) -> float:
    """
    Compute the Shannon entropy of ``text`` in bits per character.

    Args:
        text: String to measure

    Returns:
        Entropy in bits; 0.0 for empty or single-symbol strings
    """
    if not text:
        return 0.0

    length = len(text)
    entropy = 0.0
    for count in Counter(text).values():
        p = count / length
        entropy -= p * math.log2(p)
    # -0.0 for single-symbol strings
    return abs(entropy)


def normalized_entropy(entropy: float, ceiling: float = ENTROPY_CEILING) -> float:
    """Scale an entropy value into [0, 1] against ``ceiling``."""
    if ceiling <= 0:
        return 0.0
    return max(0.0, min(entropy / ceiling, 1.0))
