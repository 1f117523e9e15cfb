"""
Text Normalizer
===============

Deterministic cleanup applied to every extracted text before it is
returned. Applying it to already normalized text is a no-op.
"""

import re

_HORIZONTAL_WS_RUN = re.compile(r"[^\S\n]{2,}")
_NEWLINE_RUN = re.compile(r"\n{3,}")

_O_BETWEEN_DIGITS = re.compile(r"(?<=\d)O(?=\d)")
_ONE_BETWEEN_LOWERCASE = re.compile(r"(?<=[a-z])1(?=[a-z])")
_MISSING_SPACE_AFTER_PERIOD = re.compile(r"([.\u2026])(?=[A-Z])")

_SENTENCE_END = re.compile(r"[.!?]$")
_HEADING_MAX_LENGTH = 50

_CHAR_REPLACEMENTS = str.maketrans({
    "\u2018": "'",
    "\u2019": "'",
    "\u201c": '"',
    "\u201d": '"',
    "\u2013": "-",
    "\u2014": "-",
    "\u2022": "*",
    "\u2026": "...",
    "\u00a0": " ",
})


def normalize_text(text: str | None) -> str:
    """
    Clean raw extracted text.

    Steps: collapse whitespace runs, cap blank lines, repair common OCR
    artifacts, rebuild paragraphs, map typographic characters to ASCII,
    trim.
    """
    if not text:
        return ""

    cleaned = _HORIZONTAL_WS_RUN.sub(" ", text)
    cleaned = _NEWLINE_RUN.sub("\n\n", cleaned)
    cleaned = fix_ocr_artifacts(cleaned)
    cleaned = rebuild_paragraphs(cleaned)
    cleaned = normalize_characters(cleaned)
    return cleaned.strip()


def fix_ocr_artifacts(text: str) -> str:
    """Repair digit/letter confusions and missing spaces after periods."""
    fixed = _O_BETWEEN_DIGITS.sub("0", text)
    fixed = _ONE_BETWEEN_LOWERCASE.sub("l", fixed)
    fixed = _MISSING_SPACE_AFTER_PERIOD.sub(r"\1 ", fixed)
    return fixed


def rebuild_paragraphs(text: str) -> str:
    """
    Regroup hard-wrapped lines into paragraphs.

    Blank lines end a paragraph, short all-caps lines become their own
    paragraph (headings), and lines ending a sentence close the running
    paragraph. Paragraphs are separated by one blank line.
    """
    paragraphs: list[str] = []
    current: list[str] = []

    for raw_line in text.split("\n"):
        line = raw_line.strip()

        if not line:
            if current:
                paragraphs.append(" ".join(current))
                current = []
            continue

        if line.upper() == line and len(line) < _HEADING_MAX_LENGTH:
            if current:
                paragraphs.append(" ".join(current))
                current = []
            paragraphs.append(line)
            continue

        current.append(line)
        if _SENTENCE_END.search(line):
            paragraphs.append(" ".join(current))
            current = []

    if current:
        paragraphs.append(" ".join(current))

    return "\n\n".join(paragraphs)


def normalize_characters(text: str) -> str:
    """Map typographic quotes, dashes, bullets, ellipses and NBSP to ASCII."""
    return text.translate(_CHAR_REPLACEMENTS)


def count_words(text: str) -> int:
    return len(text.split())
