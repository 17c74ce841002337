"""OCR quality assessment from confidences and word recognizability."""

import re
from dataclasses import dataclass, field

import numpy as np

from docstruct.extraction.schemas import OCRQualityInfo, QualityLevel
from docstruct.utils.logger import get_logger

logger = get_logger(__name__)

# (level, minimum confidence, minimum readability); both must hold.
QUALITY_THRESHOLDS: list[tuple[QualityLevel, float, float]] = [
    (QualityLevel.EXCELLENT, 0.95, 95.0),
    (QualityLevel.GOOD, 0.85, 85.0),
    (QualityLevel.FAIR, 0.70, 70.0),
]

_ALPHA = re.compile(r"[a-zA-Z]")


@dataclass
class PageSample:
    """Paragraph confidences and resolved paragraph texts of one page."""

    confidences: list[float] = field(default_factory=list)
    texts: list[str] = field(default_factory=list)


def classify_quality(confidence: float, readability: float) -> QualityLevel:
    """Map document confidence (0-1) and readability (0-100) to a bucket."""
    for level, min_confidence, min_readability in QUALITY_THRESHOLDS:
        if confidence >= min_confidence and readability >= min_readability:
            return level
    return QualityLevel.POOR


def readability_score(texts: list[str]) -> float:
    """Percentage of whitespace-separated words containing a letter.

    Args:
        texts: Texts whose words are counted together.

    Returns:
        Score in ``[0, 100]``; ``0`` when there are no words.
    """
    words = [w for text in texts for w in text.split()]
    if not words:
        return 0.0
    recognized = sum(1 for w in words if _ALPHA.search(w))
    return recognized / len(words) * 100


class OCRQualityAssessor:
    """Scores OCR output per page and for the whole document.

    Args:
        low_confidence_threshold: Pages averaging below this are flagged.
    """

    def __init__(self, low_confidence_threshold: float = 0.7) -> None:
        self.low_confidence_threshold = low_confidence_threshold

    def assess(
        self,
        pages: list[PageSample],
        average_confidence: float,
        fallback_text: str = "",
    ) -> OCRQualityInfo:
        """Assess OCR quality.

        Args:
            pages: One sample per page, in document order.
            average_confidence: Document-level average paragraph confidence;
                also used for pages that report no confidences.
            fallback_text: Text used for readability when no page has any
                paragraph text.

        Returns:
            Quality bucket, rounded averages and low-confidence pages.
        """
        low_pages: list[int] = []
        for page_number, sample in enumerate(pages, start=1):
            if sample.confidences:
                page_confidence = float(np.mean(sample.confidences))
            else:
                page_confidence = average_confidence
            if page_confidence < self.low_confidence_threshold:
                low_pages.append(page_number)

        texts = [t for sample in pages for t in sample.texts]
        if not any(t.strip() for t in texts) and fallback_text:
            texts = [fallback_text]
        readability = readability_score(texts)

        level = classify_quality(average_confidence, readability)
        logger.info(
            "OCR quality %s (confidence %.2f, readability %.1f)",
            level,
            average_confidence,
            readability,
        )
        return OCRQualityInfo(
            overall_quality=level,
            average_confidence=round(average_confidence, 2),
            low_confidence_pages=low_pages,
            readability_score=round(readability, 2),
        )
