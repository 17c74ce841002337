"""Aggregation of page- and paragraph-level language signals."""

from dataclasses import dataclass, field

from docstruct.extraction.schemas import DetectedLanguageInfo, LanguageInfo
from docstruct.layout.schemas import DetectedLanguage, Page
from docstruct.utils.logger import get_logger

logger = get_logger(__name__)

DEFAULT_LANGUAGE = "en"
MULTILINGUAL_THRESHOLD = 0.5


@dataclass
class _LanguageStats:
    confidence: float
    pages: set[int] = field(default_factory=set)


class LanguageDetector:
    """Builds a ranked language list from layout language signals.

    A language keeps the highest confidence seen for it anywhere in the
    document and the set of pages it was seen on.
    """

    def detect(self, pages: list[Page]) -> LanguageInfo:
        """Rank the languages detected across ``pages``.

        Args:
            pages: Layout pages in document order.

        Returns:
            Language summary sorted by descending confidence.
        """
        stats: dict[str, _LanguageStats] = {}

        for page_number, page in enumerate(pages, start=1):
            self._record(stats, page.detected_languages, page_number)
            for paragraph in page.paragraphs:
                self._record(stats, paragraph.detected_languages, page_number)

        detected = sorted(
            (
                DetectedLanguageInfo(
                    language_code=code,
                    confidence=info.confidence,
                    page_numbers=sorted(info.pages),
                )
                for code, info in stats.items()
            ),
            key=lambda lang: lang.confidence,
            reverse=True,
        )

        primary = detected[0].language_code if detected else DEFAULT_LANGUAGE
        is_multilingual = (
            len(detected) > 1 and detected[1].confidence > MULTILINGUAL_THRESHOLD
        )

        logger.debug(
            "Detected %d languages, primary=%s", len(detected), primary
        )
        return LanguageInfo(
            primary_language=primary,
            detected_languages=detected,
            is_multilingual=is_multilingual,
        )

    def _record(
        self,
        stats: dict[str, _LanguageStats],
        signals: list[DetectedLanguage],
        page_number: int,
    ) -> None:
        for signal in signals:
            code = signal.language_code or "unknown"
            confidence = signal.confidence or 0.0
            entry = stats.setdefault(code, _LanguageStats(confidence))
            entry.confidence = max(entry.confidence, confidence)
            entry.pages.add(page_number)
