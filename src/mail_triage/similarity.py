"""Edit-distance similarity between a generated draft and its edited form.

Comparison is exact: case-sensitive, whitespace-sensitive, no
normalization. Cost is O(len(a) * len(b)) time, which is fine for
draft-sized text but quadratic for very long inputs.
"""

from __future__ import annotations

from dataclasses import dataclass

# Above this similarity the user's edit is considered a near-verbatim accept.
LEARNING_STYLE_THRESHOLD = 0.95


@dataclass(frozen=True)
class DraftComparison:
    """Result of scoring a final draft against the generated one."""

    edit_distance: int
    similarity: float
    exact_match: bool
    length_delta: int


def edit_distance(a: str, b: str) -> int:
    """Levenshtein distance: single-character inserts, deletes and substitutions."""
    if a == b:
        return 0
    # Rows run over the longer string so only the shorter one is held per row.
    if len(a) < len(b):
        a, b = b, a
    if not b:
        return len(a)

    previous = list(range(len(b) + 1))
    for i, ca in enumerate(a, start=1):
        current = [i]
        for j, cb in enumerate(b, start=1):
            cost = 0 if ca == cb else 1
            current.append(min(
                previous[j - 1] + cost,
                current[j - 1] + 1,
                previous[j] + 1,
            ))
        previous = current
    return previous[-1]


def similarity(a: str, b: str) -> float:
    """Normalized inverse of edit distance, in [0, 1]. Two empty strings score 1.0."""
    longest = max(len(a), len(b))
    if longest == 0:
        return 1.0
    return (longest - edit_distance(a, b)) / longest


def compare(generated: str, final: str) -> DraftComparison:
    distance = edit_distance(generated, final)
    longest = max(len(generated), len(final))
    score = 1.0 if longest == 0 else (longest - distance) / longest
    return DraftComparison(
        edit_distance=distance,
        similarity=score,
        exact_match=distance == 0,
        length_delta=len(final) - len(generated),
    )


def is_learning_style(generated: str, final: str) -> bool:
    """True when the edit kept the draft nearly intact."""
    return similarity(generated, final) > LEARNING_STYLE_THRESHOLD
