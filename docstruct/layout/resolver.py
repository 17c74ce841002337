"""Resolve layout regions against the document text buffer."""

import numpy as np

from docstruct.extraction.schemas import BoundingBox

from .schemas import BoundingPoly, Layout


class LayoutTextResolver:
    """Resolves text anchors into the text they reference.

    Args:
        text: Full document text buffer that anchors index into.
    """

    def __init__(self, text: str) -> None:
        self.text = text or ""

    def resolve(self, layout: Layout | None) -> str:
        """Concatenate the text of every segment of ``layout``, in order.

        Segments missing either index contribute nothing. A missing
        layout, anchor or document text yields an empty string.

        Args:
            layout: Layout region to resolve.

        Returns:
            The referenced text.
        """
        if layout is None or layout.text_anchor is None or not self.text:
            return ""

        parts: list[str] = []
        for segment in layout.text_anchor.text_segments:
            if segment.start_index is None or segment.end_index is None:
                continue
            parts.append(self.text[segment.start_index : segment.end_index])
        return "".join(parts)


def bounding_box(poly: BoundingPoly | None) -> BoundingBox | None:
    """Compute the enclosing box of a polygon's normalized vertices.

    Missing coordinates count as ``0``.

    Args:
        poly: Bounding polygon from a layout region.

    Returns:
        Enclosing bounding box, or ``None`` if no normalized vertices exist.
    """
    if poly is None or not poly.normalized_vertices:
        return None

    xs = np.array([v.x or 0.0 for v in poly.normalized_vertices])
    ys = np.array([v.y or 0.0 for v in poly.normalized_vertices])
    return BoundingBox(
        x=float(xs.min()),
        y=float(ys.min()),
        width=float(xs.max() - xs.min()),
        height=float(ys.max() - ys.min()),
    )
