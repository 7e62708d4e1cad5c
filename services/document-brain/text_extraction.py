"""PDF text extraction with bounded cost.

1. Structured parse with PyMuPDF over a position-biased page subset
   (head, tail and a small middle sample)
2. Clean the concatenated page texts
3. If that fails or yields almost nothing, scan the raw bytes for PDF text
   operands (string literals and hex strings inside text objects)

Never raises: the worst case is ``EXTRACTION_FAILED_TEXT``, so the generation
call always has input and the result simply comes back with low confidence.
"""

import logging
import re
import zlib
from typing import Iterator

import fitz  # PyMuPDF

from errors import ExtractionFailure

logger = logging.getLogger(__name__)

EXTRACTION_FAILED_TEXT = (
    "extraction failed: no readable text could be recovered from this document"
)

# Page-selection heuristic
HEAD_PAGES = 5  # cover, TOC, key terms
TAIL_PAGES = 2  # signatures, appendices
MIDDLE_PAGES = 3
MIDDLE_THRESHOLD = 10  # sample the middle only above this page count
MIDDLE_RANGE = (0.3, 0.7)

MIN_TEXT_CHARS = 50
MIN_FRAGMENT_CHARS = 3
MAX_RAW_STREAMS = 500
MAX_RAW_SCAN_BYTES = 8 * 1024 * 1024  # raw bytes plus inflated streams
MAX_TEXT_OBJECT_BYTES = 64 * 1024
MAX_LITERAL_BYTES = 4096

_CONTROL_CHARS_RE = re.compile(r"[\x00-\x08\x0B\x0C\x0E-\x1F\x7F-\x9F\uFFFD]")
_SPACES_RE = re.compile(r"[ \t\u00A0]+")
_TRAILING_SPACE_RE = re.compile(r" *\n *")
_BLANK_LINES_RE = re.compile(r"\n{3,}")
_REPEATED_PUNCT_RE = re.compile(r"([^\w\s])\1{3,}")

# Delimiters are paired in a single left-to-right pass, never by backtracking
_STREAM_MARK_RE = re.compile(rb"(?P<end>\r?\nendstream)|(?<!end)stream\r?\n")
_TEXT_MARK_RE = re.compile(rb"\b(?:(?P<end>ET)|BT)\b")
_LITERAL_TOKEN_RE = re.compile(rb"\\.|[()]", re.DOTALL)
_HEX_RE = re.compile(rb"<([0-9A-Fa-f\s]{4,})>")
_ESCAPE_RE = re.compile(rb"\\([0-7]{1,3}|.)", re.DOTALL)

_ESCAPES = {
    b"n": b"\n",
    b"r": b"\r",
    b"t": b"\t",
    b"b": b"\b",
    b"f": b"\f",
    b"(": b"(",
    b")": b")",
    b"\\": b"\\",
    b"\n": b"",
    b"\r": b"",
}


def extract_text(data: bytes) -> str:
    """Convert PDF bytes into bounded, cleaned plain text. Never raises."""
    try:
        return _recover_text(data)
    except ExtractionFailure as e:
        logger.warning("text extraction: %s", e)
        return EXTRACTION_FAILED_TEXT


def _recover_text(data: bytes) -> str:
    """Structured parse first, raw scan second. Raises ExtractionFailure if both come up empty."""
    structured = ""
    try:
        structured = _extract_structured(data)
    except Exception as e:
        logger.warning("text extraction: structured parse failed: %s", e)

    if len(structured) >= MIN_TEXT_CHARS:
        return structured

    logger.info(
        "text extraction: structured parse yielded %d chars, scanning raw bytes",
        len(structured),
    )
    scanned = ""
    try:
        scanned = _scan_raw_text(data)
    except Exception as e:
        logger.warning("text extraction: raw scan failed: %s", e)

    best = scanned if len(scanned) > len(structured) else structured
    if not best:
        raise ExtractionFailure(f"no text recovered from {len(data)} bytes")
    return best


def select_pages(page_count: int) -> list[int]:
    """Return the zero-based page indices worth extracting, in order."""
    if page_count <= 0:
        return []

    selected = set(range(min(HEAD_PAGES, page_count)))
    selected.update(range(max(page_count - TAIL_PAGES, 0), page_count))

    if page_count > MIDDLE_THRESHOLD:
        start = int(page_count * MIDDLE_RANGE[0])
        end = int(page_count * MIDDLE_RANGE[1])
        step = max(1, (end - start) // (MIDDLE_PAGES + 1))
        for i in range(MIDDLE_PAGES):
            index = start + step * (i + 1)
            if index < end:
                selected.add(index)

    return sorted(selected)


def clean_text(text: str) -> str:
    """Strip non-printables and collapse whitespace and punctuation runs."""
    if not text:
        return ""

    text = text.replace("\r\n", "\n").replace("\r", "\n").replace("\f", "\n")
    text = _CONTROL_CHARS_RE.sub("", text)
    text = _SPACES_RE.sub(" ", text)
    text = _TRAILING_SPACE_RE.sub("\n", text)
    text = _BLANK_LINES_RE.sub("\n\n", text)
    text = _REPEATED_PUNCT_RE.sub(r"\1\1\1", text)
    return text.strip()


def _extract_structured(data: bytes) -> str:
    """Extract text from the selected pages using PyMuPDF."""
    with fitz.open(stream=data, filetype="pdf") as doc:
        if doc.needs_pass:
            raise ExtractionFailure("document is encrypted")

        page_count = doc.page_count
        indices = select_pages(page_count)
        logger.debug(
            "text extraction: %d pages, extracting %d (%s)",
            page_count, len(indices), indices,
        )

        parts = []
        for index in indices:
            page_text = clean_text(doc.load_page(index).get_text("text"))
            if page_text:
                parts.append(f"[Page {index + 1}]\n{page_text}")

    return clean_text("\n\n".join(parts))


def _scan_raw_text(data: bytes) -> str:
    """Recover text operands directly from the (inflated) PDF byte streams.

    Linear in the input and reads at most ``MAX_RAW_SCAN_BYTES`` in total.
    """
    if not data:
        return ""

    data = data[:MAX_RAW_SCAN_BYTES]
    sources = [data] + _inflate_streams(data, MAX_RAW_SCAN_BYTES - len(data))

    fragments: list[str] = []
    for source in sources:
        for block in _paired_spans(_TEXT_MARK_RE, source, MAX_TEXT_OBJECT_BYTES):
            fragments.extend(_decode_operands(block))

    if not fragments:
        # No text objects at all; fall back to bare literals anywhere
        for source in sources:
            fragments.extend(_decode_literal(m) for m in _string_literals(source))

    kept = []
    for fragment in fragments:
        cleaned = clean_text(fragment)
        if len(cleaned) >= MIN_FRAGMENT_CHARS and _is_readable(cleaned):
            kept.append(cleaned)

    logger.debug("text extraction: raw scan kept %d of %d fragments", len(kept), len(fragments))
    return clean_text(" ".join(kept))


def _paired_spans(marks: re.Pattern, source: bytes, max_len: int | None = None) -> Iterator[bytes]:
    """Yield the bytes between each opening mark and the next closing mark.

    Unclosed openings are dropped, and extra openings inside an open span are
    part of it.
    """
    start = None
    for match in marks.finditer(source):
        if match.group("end") is None:
            if start is None:
                start = match.end()
        elif start is not None:
            end = match.start() if max_len is None else min(match.start(), start + max_len)
            yield source[start:end]
            start = None


def _string_literals(source: bytes) -> Iterator[bytes]:
    """Yield the raw contents of each balanced ``( ... )`` string literal.

    A literal still open after ``MAX_LITERAL_BYTES`` is abandoned.
    """
    depth = 0
    start = 0
    for match in _LITERAL_TOKEN_RE.finditer(source):
        if depth and match.start() - start > MAX_LITERAL_BYTES:
            depth = 0
        token = match.group(0)
        if token == b"(":
            if not depth:
                start = match.end()
            depth += 1
        elif token == b")" and depth:
            depth -= 1
            if not depth:
                yield source[start:match.start()]


def _inflate_streams(data: bytes, budget: int) -> list[bytes]:
    """Decompress FlateDecode content streams, up to ``budget`` inflated bytes in total.

    Undecodable streams are skipped.
    """
    inflated = []
    for i, body in enumerate(_paired_spans(_STREAM_MARK_RE, data)):
        if i >= MAX_RAW_STREAMS or budget <= 0:
            break
        try:
            chunk = zlib.decompressobj().decompress(body, budget)
        except zlib.error:
            continue
        budget -= len(chunk)
        inflated.append(chunk)
    return inflated


def _decode_operands(block: bytes) -> list[str]:
    """Decode string literals and hex strings inside one BT ... ET text object."""
    texts = [_decode_literal(m) for m in _string_literals(block)]
    texts.extend(_decode_hex(m) for m in _HEX_RE.findall(block))
    # Operands of one text object form a single run of text
    return [" ".join(t for t in texts if t)]


def _decode_literal(raw: bytes) -> str:
    def _unescape(match: re.Match) -> bytes:
        token = match.group(1)
        if token.isdigit():
            return bytes([int(token, 8) & 0xFF])
        return _ESCAPES.get(token, token)

    return _ESCAPE_RE.sub(_unescape, raw).decode("latin-1")


def _decode_hex(raw: bytes) -> str:
    digits = re.sub(rb"\s+", b"", raw)
    if len(digits) % 2:
        digits += b"0"
    decoded = bytes.fromhex(digits.decode("ascii"))
    if decoded.startswith(b"\xfe\xff"):
        return decoded[2:].decode("utf-16-be", errors="ignore")
    return decoded.decode("latin-1")


def _is_readable(fragment: str) -> bool:
    """Mostly letters, digits, spaces and common punctuation."""
    readable = sum(1 for ch in fragment if ch.isalnum() or ch in " .,;:-/$%()&'\"\n")
    return readable / len(fragment) >= 0.6 and any(ch.isalpha() for ch in fragment)
