"""Map a free-text model answer onto a configured label.

Models rarely answer with exactly one of the offered label names. The
resolver tries progressively looser rules and returns the first label that
matches:

1. Exact, case-insensitive equality with the trimmed answer.
2. The answer contains a label.
3. A label contains the answer.
4. Alias groups: bug/fix/error -> a "bug" label,
   enhancement/feature/improve -> an "enhancement" or "feature" label,
   doc/readme -> a "doc" label, question/help -> a "question" label.

Within each rule labels are tried in configuration order, so the same
(answer, labels) pair always resolves to the same label.
"""

from typing import Optional, Sequence


# (answer keywords, label stems). A group applies only when the label set
# has a label containing one of its stems.
ALIAS_GROUPS: tuple[tuple[tuple[str, ...], tuple[str, ...]], ...] = (
    (("bug", "fix", "error"), ("bug",)),
    (("enhancement", "feature", "improve"), ("enhancement", "feature")),
    (("doc", "readme"), ("doc",)),
    (("question", "help"), ("question",)),
)


def resolve_label(
    model_answer: Optional[str],
    labels: Sequence[str],
) -> Optional[str]:
    """Resolve a model answer to one of the candidate labels.

    Args:
        model_answer: Raw answer returned by the classifier oracle.
        labels: Candidate label names in configuration order.

    Returns:
        The matching label exactly as configured, or None if no rule
        matches.
    """
    if not model_answer:
        return None

    answer = model_answer.strip().lower()
    if not answer:
        return None

    candidates = [(label, label.strip().lower()) for label in labels]
    candidates = [(label, key) for label, key in candidates if key]

    for label, key in candidates:
        if key == answer:
            return label

    for label, key in candidates:
        if key in answer:
            return label

    for label, key in candidates:
        if answer in key:
            return label

    for keywords, stems in ALIAS_GROUPS:
        if not any(keyword in answer for keyword in keywords):
            continue
        for label, key in candidates:
            if any(stem in key for stem in stems):
                return label

    return None
