"""Mapping from classifier scores to user-facing results."""
from __future__ import annotations

from dataclasses import dataclass

CANCER = "Cancer"
NON_CANCER = "Non-cancer"

SUGGESTIONS = {
    CANCER: "Segera periksa ke dokter!",
    NON_CANCER: "Penyakit kanker tidak terdeteksi.",
}


@dataclass(frozen=True, slots=True)
class Interpretation:
    label: str
    suggestion: str


def interpret_score(score: float, threshold: float = 0.5) -> Interpretation:
    """Scores strictly above ``threshold`` are labelled as cancer."""
    label = CANCER if score > threshold else NON_CANCER
    return Interpretation(label=label, suggestion=SUGGESTIONS[label])
