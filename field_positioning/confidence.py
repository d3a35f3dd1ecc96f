"""
Confidence report for positioned fields: a weighted blend of how well the label
matched, how certain the position is and how certain the field type is.
"""

from dataclasses import dataclass
from typing import Any, Dict

LABEL_WEIGHT = 0.3
POSITION_WEIGHT = 0.5
TYPE_WEIGHT = 0.2
VISUAL_BOUNDARY_BONUS = 0.05

HIGH_QUALITY = 0.85
MEDIUM_QUALITY = 0.70


@dataclass(frozen=True)
class ConfidenceReport:
    overall: float
    label_match: float
    position_certainty: float
    type_certainty: float
    quality: str  # "high" | "medium" | "low"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "overall": self.overall,
            "breakdown": {
                "labelMatch": self.label_match,
                "positionCertainty": self.position_certainty,
                "typeCertainty": self.type_certainty,
            },
            "quality": self.quality,
        }


def quality_for(score: float) -> str:
    if score >= HIGH_QUALITY:
        return "high"
    if score >= MEDIUM_QUALITY:
        return "medium"
    return "low"


def calculate_confidence(
    label_match: float,
    position_certainty: float,
    type_certainty: float,
    visual_boundary: bool = False,
) -> ConfidenceReport:
    overall = (
        label_match * LABEL_WEIGHT
        + position_certainty * POSITION_WEIGHT
        + type_certainty * TYPE_WEIGHT
    )
    if visual_boundary:
        overall += VISUAL_BOUNDARY_BONUS
    overall = min(1.0, round(overall, 9))
    return ConfidenceReport(
        overall=overall,
        label_match=label_match,
        position_certainty=position_certainty,
        type_certainty=type_certainty,
        quality=quality_for(overall),
    )
