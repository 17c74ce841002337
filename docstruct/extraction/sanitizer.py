"""Sanitization of extracted text.

Removes active markup and control characters that may appear in text
recognized from untrusted documents, and normalizes whitespace and
line endings.
"""

import re

from docstruct.utils.logger import get_logger

logger = get_logger(__name__)

# Unicode spaces and line terminators; unlike Python's \s this excludes the
# \x1c-\x1f separators and \x85, which are removed as control characters.
_WHITESPACE = (
    "\t\n\x0b\x0c\r \xa0\u1680"
    + "".join(chr(code) for code in range(0x2000, 0x200B))
    + "\u2028\u2029\u202f\u205f\u3000\ufeff"
)

# Ordered (pattern, replacement) steps applied on every pass.
_STEPS: list[tuple[re.Pattern[str], str]] = [
    (re.compile(r"<script\b[^<]*(?:(?!</script>)<[^<]*)*</script>", re.IGNORECASE), ""),
    (re.compile(r"\bon\w+\s*=\s*[\"'][^\"']*[\"']", re.IGNORECASE), ""),
    (re.compile(r"javascript:", re.IGNORECASE), ""),
    (re.compile(r"data:(?!image/(?:png|jpe?g|gif|svg\+xml))[^;]+;", re.IGNORECASE), ""),
    (re.compile(f"[{re.escape(_WHITESPACE)}]{{3,}}"), "  "),
    (re.compile(r"[\x00-\x08\x0B\x0C\x0E-\x1F\x7F]"), ""),
    (re.compile(r"\r\n"), "\n"),
    (re.compile(r"\r"), "\n"),
]


class ContentSanitizer:
    """Cleans extracted text before it is handed to consumers.

    The ordered steps are repeated until the text stops changing, since
    one removal can expose another match (for example a control
    character separating two runs of spaces). Each pass never grows the
    text, so the loop terminates and ``sanitize`` is idempotent.
    """

    def sanitize(self, text: str) -> str:
        """Return the sanitized form of ``text``.

        Args:
            text: Raw extracted text.

        Returns:
            Sanitized text, trimmed of surrounding whitespace.
        """
        current = text or ""
        while True:
            cleaned = self._single_pass(current)
            if cleaned == current:
                return cleaned
            current = cleaned

    def _single_pass(self, text: str) -> str:
        for pattern, replacement in _STEPS:
            text = pattern.sub(replacement, text)
        text = self._validate_encoding(text)
        return text.strip(_WHITESPACE)

    def _validate_encoding(self, text: str) -> str:
        try:
            return text.encode("utf-8").decode("utf-8")
        except UnicodeError as exc:
            logger.warning("Content encoding issue, using cleaned text: %s", exc)
            return text
