"""Text preprocessing before the generation call.

1. Drop repeated header/footer lines and page-number artifacts
2. Normalize ellipses and dashes
3. If the text still exceeds the character budget (token budget x 4), keep
   the leading sections plus keyword-bearing sections until the budget is full

The reduction is lossy and relevance-biased; the output is bounded in
characters, not an exact token count.
"""

import logging
import re
from collections import Counter

logger = logging.getLogger(__name__)

CHARS_PER_TOKEN = 4
LEAD_SECTIONS = 3  # header/intro context
SECTION_MAX_CHARS = 2000
HEADER_REPEAT_THRESHOLD = 3
HEADER_MAX_CHARS = 80
SECTION_SEPARATOR = "\n\n"

DOMAIN_KEYWORDS: tuple[str, ...] = (
    # contracts
    "agreement", "contract", "party", "parties", "principal", "contractor",
    "payment", "progress claim", "retention", "deposit", "variation",
    "scope", "works", "termination", "warranty", "liability", "insurance",
    "defects", "completion", "commencement", "signed", "signature",
    # drawings
    "drawing", "sheet", "revision", "rev", "scale", "elevation", "section",
    "floor plan", "site plan", "architect", "designer", "site area", "m2",
    # specifications
    "specification", "material", "materials", "finish", "standard",
    # invoices
    "invoice", "tax invoice", "subtotal", "total", "gst", "tax", "amount",
    "qty", "quantity", "rate", "due date", "abn", "supplier",
)

_KEYWORD_RE = re.compile(
    r"\b(" + "|".join(re.escape(k) for k in sorted(DOMAIN_KEYWORDS, key=len, reverse=True)) + r")\b",
    re.IGNORECASE,
)
_PAGE_NUMBER_LINE_RE = re.compile(
    r"^[ \t]*(?:page[ \t]+\d+(?:[ \t]+of[ \t]+\d+)?|-[ \t]*\d+[ \t]*-|\d+[ \t]*/[ \t]*\d+|\d{1,4})[ \t]*$\n?",
    re.IGNORECASE | re.MULTILINE,
)
_PAGE_MARKER_RE = re.compile(r"^\[Page \d+\]$")
_ELLIPSIS_RE = re.compile(r"…|\.{4,}|(?:\. ){2,}\.")
_DASH_RE = re.compile(r"[‐‑‒–—―−]")
_SECTION_SPLIT_RE = re.compile(r"\n[ \t]*\n")
_BLANK_LINES_RE = re.compile(r"\n{3,}")


def reduce_text(text: str, token_budget: int) -> str:
    """Normalize ``text`` and truncate it to roughly ``token_budget`` tokens."""
    char_budget = max(token_budget, 0) * CHARS_PER_TOKEN
    if not text or char_budget == 0:
        return ""

    original_len = len(text)
    text = normalize_structure(text)
    if len(text) <= char_budget:
        return text

    sections = split_sections(text)
    chosen = _select_sections(sections, char_budget)
    if not chosen:
        logger.info("preprocessing: no section fits %d chars, hard truncating", char_budget)
        return text[:char_budget]

    reduced = SECTION_SEPARATOR.join(sections[i] for i in sorted(chosen))
    logger.info(
        "preprocessing: reduced %d -> %d chars (%d of %d sections kept)",
        original_len, len(reduced), len(chosen), len(sections),
    )
    return reduced[:char_budget]


def normalize_structure(text: str) -> str:
    """Collapse repeated headers/footers, strip page numbers, normalize punctuation."""
    text = _drop_repeated_lines(text)
    text = _PAGE_NUMBER_LINE_RE.sub("", text)
    text = _ELLIPSIS_RE.sub("...", text)
    text = _DASH_RE.sub("-", text)
    text = _BLANK_LINES_RE.sub("\n\n", text)
    return text.strip()


def split_sections(text: str) -> list[str]:
    """Split into paragraph-level sections, breaking oversized ones on whitespace."""
    sections = []
    for block in _SECTION_SPLIT_RE.split(text):
        block = block.strip()
        while len(block) > SECTION_MAX_CHARS:
            cut = block.rfind(" ", 0, SECTION_MAX_CHARS)
            if cut <= 0:
                cut = SECTION_MAX_CHARS
            sections.append(block[:cut].strip())
            block = block[cut:].strip()
        if block:
            sections.append(block)
    return sections


def score_section(section: str) -> int:
    """Number of distinct domain keywords present in the section."""
    return len({match.lower() for match in _KEYWORD_RE.findall(section)})


def _drop_repeated_lines(text: str) -> str:
    lines = text.split("\n")
    counts = Counter(line.strip() for line in lines if line.strip())
    repeated = {
        line for line, count in counts.items()
        if count >= HEADER_REPEAT_THRESHOLD
        and len(line) <= HEADER_MAX_CHARS
        and not _PAGE_MARKER_RE.match(line)
    }
    if not repeated:
        return text

    seen: set[str] = set()
    kept = []
    for line in lines:
        key = line.strip()
        if key in repeated:
            if key in seen:
                continue
            seen.add(key)
        kept.append(line)
    return "\n".join(kept)


def _select_sections(sections: list[str], char_budget: int) -> set[int]:
    """Pick lead sections, then keyword sections by score, while the budget allows."""
    scores = [score_section(s) for s in sections]
    lead = list(range(min(LEAD_SECTIONS, len(sections))))
    relevant = sorted(
        (i for i in range(LEAD_SECTIONS, len(sections)) if scores[i] > 0),
        key=lambda i: (-scores[i], i),
    )

    chosen: set[int] = set()
    seen: set[str] = set()
    used = 0
    for i in lead + relevant:
        key = " ".join(sections[i].lower().split())
        if key in seen:
            continue
        cost = len(sections[i]) + (len(SECTION_SEPARATOR) if chosen else 0)
        if used + cost > char_budget:
            continue
        chosen.add(i)
        seen.add(key)
        used += cost
    return chosen
