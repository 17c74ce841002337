"""Pattern-based detection of mathematical notation in text.

Scans paragraph text with an ordered list of rules. Earlier rules claim
their spans first; a later match that overlaps an already claimed span
is discarded, so a LaTeX block is reported once as an equation rather
than again as an inline expression or its inner pieces.
"""

import re
from dataclasses import dataclass

from docstruct.utils.logger import get_logger

from .schemas import MathematicalContent, MathType

logger = get_logger(__name__)


@dataclass(frozen=True)
class MathRule:
    """A detection rule: pattern, classification and LaTeX capture."""

    name: str
    pattern: re.Pattern[str]
    math_type: MathType
    is_latex: bool = False


_GREEK = "αβγδεζηθικλμνξοπρστυφχψωΑΒΓΔΕΖΗΘΙΚΛΜΝΞΟΠΡΣΤΥΦΧΨΩ"

MATH_RULES: list[MathRule] = [
    MathRule("latex_block", re.compile(r"\$\$([^$]+)\$\$"), MathType.EQUATION, True),
    MathRule("latex_inline", re.compile(r"\$([^$]+)\$"), MathType.EQUATION, True),
    MathRule(
        "arithmetic",
        re.compile(r"(\d+\s*[+\-*/÷×]\s*\d+\s*=\s*\d+)"),
        MathType.FORMULA,
    ),
    MathRule("fraction", re.compile(r"(\d+/\d+)"), MathType.FORMULA),
    MathRule("square_root", re.compile(r"(√\d+|√\([^)]+\))"), MathType.FORMULA),
    MathRule("exponent", re.compile(r"(\d+\^[\d+\-*/()]+)"), MathType.FORMULA),
    MathRule("integral", re.compile(r"(∫[^∫]+d[a-zA-Z])"), MathType.FORMULA),
    MathRule("summation", re.compile(r"(Σ[^Σ]+)"), MathType.FORMULA),
    MathRule("greek_letter", re.compile(f"([{_GREEK}])"), MathType.SYMBOL),
]


class MathPatternExtractor:
    """Finds equations, formulas and mathematical symbols in text.

    Args:
        confidence: Confidence assigned to every match. Pattern matching
            has no recognition score of its own.
        rules: Ordered detection rules. Defaults to ``MATH_RULES``.
    """

    def __init__(
        self,
        confidence: float = 0.8,
        rules: list[MathRule] | None = None,
    ) -> None:
        self.confidence = confidence
        self.rules = rules if rules is not None else MATH_RULES

    def extract(self, text: str, page: int) -> list[MathematicalContent]:
        """Detect mathematical content in ``text``.

        Args:
            text: Resolved paragraph (or document) text.
            page: 1-based page number the text belongs to.

        Returns:
            Non-overlapping matches in rule order.
        """
        if not text:
            return []

        claimed: list[tuple[int, int]] = []
        results: list[MathematicalContent] = []

        for rule in self.rules:
            for match in rule.pattern.finditer(text):
                start, end = match.span()
                if any(start < c_end and c_start < end for c_start, c_end in claimed):
                    continue
                claimed.append((start, end))

                content = match.group(1) if match.groups() else match.group(0)
                results.append(
                    MathematicalContent(
                        content=content,
                        type=rule.math_type,
                        page=page,
                        confidence=self.confidence,
                        latex=content if rule.is_latex else None,
                    )
                )

        if results:
            logger.debug("Found %d math expressions on page %d", len(results), page)
        return results
