"""String similarity metrics used to merge near-duplicate problem phrases.

Both metrics are pure; callers lower-case their inputs first.
"""

from collections import Counter


def _bigrams(value: str) -> Counter:
    return Counter(value[i:i + 2] for i in range(len(value) - 1))


def dice_coefficient(a: str, b: str) -> float:
    """Sorensen-Dice coefficient over character bigram multisets.

    Args:
        a: First string.
        b: Second string.

    Returns:
        Similarity in [0, 1]. Empty input scores 0, identical input scores 1.
    """
    if not a or not b:
        return 0.0
    if a == b:
        return 1.0
    if len(a) < 2 or len(b) < 2:
        return 0.0

    bigrams_a = _bigrams(a)
    bigrams_b = _bigrams(b)
    overlap = sum((bigrams_a & bigrams_b).values())
    total = sum(bigrams_a.values()) + sum(bigrams_b.values())
    return 2.0 * overlap / total


def jaro(a: str, b: str) -> float:
    """Jaro similarity with the standard matching window and transpositions."""
    if not a or not b:
        return 0.0
    if a == b:
        return 1.0

    window = max(0, max(len(a), len(b)) // 2 - 1)
    a_matched = [False] * len(a)
    b_matched = [False] * len(b)

    matches = 0
    for i, char in enumerate(a):
        start = max(0, i - window)
        end = min(i + window + 1, len(b))
        for j in range(start, end):
            if b_matched[j] or b[j] != char:
                continue
            a_matched[i] = True
            b_matched[j] = True
            matches += 1
            break

    if matches == 0:
        return 0.0

    # Count half-transpositions between the matched sequences
    transpositions = 0
    k = 0
    for i, char in enumerate(a):
        if not a_matched[i]:
            continue
        while not b_matched[k]:
            k += 1
        if char != b[k]:
            transpositions += 1
        k += 1

    m = float(matches)
    return (m / len(a) + m / len(b) + (m - transpositions / 2) / m) / 3


def jaro_winkler(a: str, b: str, prefix_scale: float = 0.1, max_prefix: int = 4) -> float:
    """Jaro-Winkler similarity.

    Args:
        a: First string.
        b: Second string.
        prefix_scale: Weight given to the shared prefix.
        max_prefix: Longest prefix that earns a bonus.

    Returns:
        Similarity in [0, 1].
    """
    score = jaro(a, b)
    if score == 0.0 or score == 1.0:
        return score

    prefix = 0
    for char_a, char_b in zip(a[:max_prefix], b[:max_prefix]):
        if char_a != char_b:
            break
        prefix += 1

    return score + prefix * prefix_scale * (1 - score)


def phrase_similarity(a: str, b: str) -> float:
    """Either metric signalling a strong match is enough."""
    return max(dice_coefficient(a, b), jaro_winkler(a, b))
