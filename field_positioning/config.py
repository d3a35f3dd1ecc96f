"""
Pipeline configuration. Central place for tunable parameters.
Defaults reproduce the behaviour of the production matcher for Hebrew RTL forms.
"""

from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional


@dataclass
class PipelineConfig:
    """Configuration for the field positioning pipeline."""

    # Paths
    input_path: Optional[Path] = None
    output_excel_path: Path = field(default_factory=lambda: Path("fields_output.xlsx"))
    debug_output_dir: Optional[Path] = None  # If set, write per-document debug JSON

    # Label matching
    match_threshold: float = 0.85  # Minimum similarity for a label to count as found

    # Field geometry (points)
    left_margin: float = 50.0
    label_gap: float = 5.0
    default_width_cap: float = 200.0
    signature_width_cap: float = 200.0
    signature_height: float = 50.0
    digit_boxes_width_cap: float = 150.0
    digit_boxes_height: float = 25.0
    selection_mark_size: float = 15.0
    exact_match_confidence: float = 0.9
    partial_match_confidence: float = 0.75

    # Boundary validation
    min_viable_size: float = 0.0  # 0 = accept any positive adjusted size

    # Overlap resolution
    overlap_threshold_pct: float = 30.0
    overlap_remove_pct: float = 80.0  # Lower-confidence field removed above this
    confidence_similarity: float = 0.1
    adjust_gap: float = 5.0
    overlap_max_passes: int = 1  # >1 re-checks adjusted boxes for cascading overlaps

    # Tab order
    row_tolerance: float = 10.0
    direction: str = "rtl"

    # Radio groups
    radio_alignment_tolerance: float = 5.0
    radio_proximity: float = 30.0
    radio_max_options: Optional[int] = 6  # larger clusters stay checkboxes; None = no cap

    # Position verification (PDF text layer)
    verify_positions: bool = False
    verify_search_radius: float = 100.0
    verify_similarity_threshold: float = 0.6
    verify_max_workers: int = 4

    log_level: str = "INFO"

    def __post_init__(self) -> None:
        if isinstance(self.input_path, str):
            self.input_path = Path(self.input_path)
        if isinstance(self.output_excel_path, str):
            self.output_excel_path = Path(self.output_excel_path)
        if self.debug_output_dir is not None and isinstance(self.debug_output_dir, str):
            self.debug_output_dir = Path(self.debug_output_dir)
        if self.direction not in ("rtl", "ltr"):
            raise ValueError("direction must be 'rtl' or 'ltr', got %r" % (self.direction,))
        if not 0.0 <= self.match_threshold <= 1.0:
            raise ValueError("match_threshold must be within [0, 1]")
        if self.overlap_max_passes < 1:
            raise ValueError("overlap_max_passes must be >= 1")
