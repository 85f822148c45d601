# signature/models/signature_placement.py
from __future__ import annotations
from dataclasses import dataclass
from datetime import datetime

# stamp box size in points
STAMP_WIDTH = 200.0
STAMP_HEIGHT = 40.0


@dataclass(frozen=True)
class SignaturePlacement:
    """
    Absolute placement on a PDF page (points; 1 pt = 1/72 inch), origin top-left.
    The stamp box extends right and down from (x, y).
    """
    page_index: int = 0
    x: float = 0.0
    y: float = 0.0

    def bottom_left_y(self, page_height: float) -> float:
        """Convert to the PDF user-space origin (bottom-left) for the box's lower edge."""
        return page_height - self.y - STAMP_HEIGHT


@dataclass(frozen=True)
class StampSpec:
    """One visible stamp: who signed, where, and when."""
    identity: str
    placement: SignaturePlacement
    signed_at: datetime
