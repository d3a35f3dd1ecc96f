"""
Radio Group Detector.
Checkboxes printed in a tight, aligned run ("male / female", "yes / no") are one
mutually exclusive choice. Clusters them into single radio fields; isolated
checkboxes stay checkboxes.
"""

import logging
from collections import OrderedDict
from typing import Dict, List, Optional, Sequence, Union

from .config import PipelineConfig
from .naming import derive_field_name
from .types import (
    Box,
    InputType,
    Orientation,
    PositionedField,
    RadioGroupField,
)

logger = logging.getLogger(__name__)

OutputField = Union[PositionedField, RadioGroupField]


def _edge_gap(a0: float, a1: float, b0: float, b1: float) -> float:
    """Distance between two intervals; 0 if they touch or overlap."""
    return max(0.0, max(a0, b0) - min(a1, b1))


def common_label_prefix(labels: Sequence[str]) -> Optional[str]:
    """Longest shared prefix of at least 2 chars, stripped; None if there is none."""
    labels = [l for l in labels if l]
    if not labels:
        return None
    first = labels[0]
    for length in range(len(first), 1, -1):
        prefix = first[:length]
        if all(l.startswith(prefix) for l in labels):
            return prefix.strip() or None
    return None


def detect_orientation(fields: Sequence[PositionedField]) -> Orientation:
    if len(fields) < 2:
        return Orientation.VERTICAL
    x_spread = max(f.x for f in fields) - min(f.x for f in fields)
    y_spread = max(f.y for f in fields) - min(f.y for f in fields)
    return Orientation.HORIZONTAL if x_spread > y_spread else Orientation.VERTICAL


class RadioGroupDetector:
    """Connected-component clustering of aligned, nearby checkboxes."""

    def __init__(self, config: Optional[PipelineConfig] = None) -> None:
        self.config = config or PipelineConfig()
        self._group_counter = 0

    def are_neighbors(self, a: PositionedField, b: PositionedField) -> bool:
        if a.page_number != b.page_number:
            return False
        align = self.config.radio_alignment_tolerance
        proximity = self.config.radio_proximity
        if abs(a.y - b.y) <= align:
            if _edge_gap(a.x, a.box.right, b.x, b.box.right) <= proximity:
                return True
        if abs(a.x - b.x) <= align:
            if _edge_gap(a.y, a.box.bottom, b.y, b.box.bottom) <= proximity:
                return True
        return False

    def cluster(self, checkboxes: Sequence[PositionedField]) -> List[List[int]]:
        """Indices of connected components, each in discovery order."""
        seen = [False] * len(checkboxes)
        groups: List[List[int]] = []
        for start in range(len(checkboxes)):
            if seen[start]:
                continue
            seen[start] = True
            group = [start]
            k = 0
            while k < len(group):
                current = checkboxes[group[k]]
                for other in range(len(checkboxes)):
                    if not seen[other] and self.are_neighbors(current, checkboxes[other]):
                        seen[other] = True
                        group.append(other)
                k += 1
            groups.append(group)
        return groups

    def detect_groups(
        self,
        fields: Sequence[OutputField],
        direction: Optional[str] = None,
    ) -> List[OutputField]:
        """
        Replace each cluster of >= 2 checkboxes with one RadioGroupField, placed
        where its first member was. Other fields pass through unchanged.
        """
        direction = direction or self.config.direction
        checkbox_positions = [
            i for i, f in enumerate(fields)
            if isinstance(f, PositionedField) and f.type is InputType.CHECKBOX
        ]
        checkboxes = [fields[i] for i in checkbox_positions]
        max_options = self.config.radio_max_options

        replacement: Dict[int, Optional[OutputField]] = {}
        for group in self.cluster(checkboxes):
            if len(group) < 2 or (max_options is not None and len(group) > max_options):
                continue
            members = [checkboxes[g] for g in group]
            radio = self._build_group(members, direction)
            positions = sorted(checkbox_positions[g] for g in group)
            replacement[positions[0]] = radio
            for pos in positions[1:]:
                replacement[pos] = None
            logger.info(
                "Grouped %d checkboxes on page %d into radio %r (%s): %s",
                len(members),
                radio.page_number,
                radio.name,
                radio.orientation.value,
                list(radio.options),
            )

        out: List[OutputField] = []
        for i, f in enumerate(fields):
            if i not in replacement:
                out.append(f)
            elif replacement[i] is not None:
                out.append(replacement[i])
        return out

    def merge_radios_by_group(self, fields: Sequence[OutputField]) -> List[OutputField]:
        """Radio fields sharing a row_group become one RadioGroupField."""
        by_group: "OrderedDict[str, List[int]]" = OrderedDict()
        for i, f in enumerate(fields):
            if isinstance(f, PositionedField) and f.type is InputType.RADIO and f.row_group:
                by_group.setdefault("%d:%s" % (f.page_number, f.row_group), []).append(i)

        replacement: Dict[int, Optional[OutputField]] = {}
        for key, positions in by_group.items():
            if len(positions) < 2:
                continue
            members = [fields[p] for p in positions]
            radio = self._build_group(members, self.config.direction, group_label=members[0].row_group)
            replacement[positions[0]] = radio
            for pos in positions[1:]:
                replacement[pos] = None
            logger.debug("Merged %d radios of group %s", len(members), key)

        out: List[OutputField] = []
        for i, f in enumerate(fields):
            if i not in replacement:
                out.append(f)
            elif replacement[i] is not None:
                out.append(replacement[i])
        return out

    def _build_group(
        self,
        members: List[PositionedField],
        direction: str,
        group_label: Optional[str] = None,
    ) -> RadioGroupField:
        orientation = detect_orientation(members)
        if orientation is Orientation.HORIZONTAL:
            rtl = direction == "rtl"
            ordered = sorted(members, key=lambda f: -f.x if rtl else f.x)
        else:
            ordered = sorted(members, key=lambda f: f.y)

        option_labels = tuple(f.label or f.name for f in ordered)
        label = group_label or common_label_prefix(option_labels) or " / ".join(option_labels)
        self._group_counter += 1
        fallback = "radio_group_%d" % self._group_counter
        first = ordered[0]
        return RadioGroupField(
            name=derive_field_name(label, lambda _label: fallback),
            label=label,
            box=Box.union([f.box for f in ordered]),
            page_number=first.page_number,
            options=tuple(f.name for f in ordered),
            option_labels=option_labels,
            orientation=orientation,
            members=tuple(ordered),
            direction=first.direction,
            required=any(f.required for f in ordered),
            confidence=min(f.confidence for f in ordered),
            section_name=first.section_name,
        )
