"""
Text extraction for uploaded documents.

Real parsers (PyMuPDF for PDF, python-docx for DOCX) run first. Byte-level
heuristics follow as fallbacks. A wrapping policy guarantees the caller
always receives usable text: when every strategy comes up short, a
placeholder describing the file is returned instead.
"""

import io
import logging
import re
import zlib
from collections.abc import Callable
from dataclasses import dataclass

import docx
import pymupdf

from legalease.core.text import clean_text, to_printable_ascii
from legalease.models.document import FileType

logger = logging.getLogger(__name__)

MIN_TEXT_LENGTH = 50
PLACEHOLDER_BELOW = 20

_STREAM_BLOCK = re.compile(rb"stream\r?\n(.*?)\r?\n?endstream", re.DOTALL)
# Literal string: balanced by skipping escaped characters
_LITERAL = r"\((?:\\.|[^\\)])*\)"
# BT ... ET text object, stepping over literal strings whole
_TEXT_OBJECT = re.compile(rf"\bBT\b((?:{_LITERAL}|[^(])*?)\bET\b", re.DOTALL)
_SHOW_STRING = re.compile(rf"({_LITERAL})\s*(?:Tj|'|\")", re.DOTALL)
_SHOW_ARRAY = re.compile(r"\[((?:[^\]\\]|\\.)*)\]\s*TJ", re.DOTALL)
_ARRAY_LITERAL = re.compile(_LITERAL, re.DOTALL)
_OCTAL_ESCAPE = re.compile(r"\\([0-7]{1,3})")
_SIMPLE_ESCAPES = {
    "n": "\n",
    "r": "\r",
    "t": "\t",
    "b": "\b",
    "f": "\f",
    "(": "(",
    ")": ")",
    "\\": "\\",
}


@dataclass(frozen=True)
class ExtractionResult:
    text: str
    method: str
    used_placeholder: bool = False


def unescape_pdf_string(literal: str) -> str:
    """
    Decode the body of a PDF literal string (without the outer parentheses).

    Handles the single-character escapes, octal escapes (\\ddd) and
    backslash-newline line continuations.
    """
    out = []
    i = 0
    while i < len(literal):
        char = literal[i]
        if char != "\\" or i + 1 >= len(literal):
            out.append(char)
            i += 1
            continue

        nxt = literal[i + 1]
        octal = _OCTAL_ESCAPE.match(literal, i)
        if octal:
            out.append(chr(int(octal.group(1), 8) & 0xFF))
            i = octal.end()
        elif nxt in "\r\n":
            # line continuation
            i += 3 if literal[i + 1 : i + 3] == "\r\n" else 2
        else:
            out.append(_SIMPLE_ESCAPES.get(nxt, nxt))
            i += 2
    return "".join(out)


def _decoded_streams(data: bytes) -> list[str]:
    """Return every stream body, inflated when it is Flate-compressed."""
    streams = []
    for match in _STREAM_BLOCK.finditer(data):
        body = match.group(1)
        try:
            body = zlib.decompress(body)
        except zlib.error:
            pass
        streams.append(body.decode("latin-1"))
    return streams


def pdf_text_operators(data: bytes) -> str:
    """Concatenate the strings shown by Tj/TJ operators inside BT/ET blocks."""
    sources = _decoded_streams(data) or [data.decode("latin-1")]
    parts = []
    for source in sources:
        for text_object in _TEXT_OBJECT.finditer(source):
            body = text_object.group(1)
            line = []
            # Walk both operator forms in document order
            for match in re.finditer(rf"{_SHOW_STRING.pattern}|{_SHOW_ARRAY.pattern}", body, re.DOTALL):
                if match.group(1):
                    line.append(unescape_pdf_string(match.group(1)[1:-1]))
                else:
                    for literal in _ARRAY_LITERAL.findall(match.group(2)):
                        line.append(unescape_pdf_string(literal[1:-1]))
            if line:
                parts.append("".join(line))
    return "\n".join(parts)


def pdf_stream_blocks(data: bytes) -> str:
    """Return the printable content of every stream block."""
    return "\n".join(filter(None, (to_printable_ascii(stream) for stream in _decoded_streams(data))))


def pdf_pymupdf(data: bytes) -> str:
    with pymupdf.open(stream=data, filetype="pdf") as pdf:
        pages = [page.get_text("text").strip() for page in pdf]
    return "\n\n".join(page for page in pages if page)


def docx_paragraphs(data: bytes) -> str:
    document = docx.Document(io.BytesIO(data))
    lines = [p.text for p in document.paragraphs if p.text.strip()]
    for table in document.tables:
        for row in table.rows:
            cells = [cell.text.strip() for cell in row.cells if cell.text.strip()]
            if cells:
                lines.append(" | ".join(cells))
    return "\n".join(lines)


def printable_utf8(data: bytes) -> str:
    return to_printable_ascii(data.decode("utf-8", errors="ignore"))


def plain_text(data: bytes) -> str:
    return data.decode("utf-8", errors="replace")


def placeholder_text(filename: str, file_type: str, file_size: int) -> str:
    """Synthetic description of a file whose text could not be extracted."""
    return (
        f"Document: {filename}\n"
        f"File type: {file_type.upper()}\n"
        f"File size: {file_size} bytes\n\n"
        "The text of this document could not be extracted automatically. "
        "Base the analysis on the document's name and type, describe what a "
        "document of this kind usually contains, and recommend reviewing the "
        "full original document."
    )


class TextExtractor:
    """
    Turns raw file bytes into plain text.

    Never raises for malformed input: strategy failures are logged and count
    as empty output.
    """

    def __init__(self, min_chars: int = MIN_TEXT_LENGTH, placeholder_below: int = PLACEHOLDER_BELOW):
        self.min_chars = min_chars
        self.placeholder_below = placeholder_below

    def strategies(self, file_type: str) -> list[tuple[str, Callable[[bytes], str]]]:
        if file_type == FileType.TXT:
            return [("plain_text", plain_text)]
        if file_type == FileType.PDF:
            return [
                ("pymupdf", pdf_pymupdf),
                ("pdf_text_operators", pdf_text_operators),
                ("pdf_stream_blocks", pdf_stream_blocks),
                ("printable_ascii", printable_utf8),
            ]
        if file_type == FileType.DOCX:
            return [("python_docx", docx_paragraphs), ("printable_ascii", printable_utf8)]
        return [("printable_ascii", printable_utf8)]

    def run(self, data: bytes, file_type: str, filename: str) -> ExtractionResult:
        """
        Extract text, trying each strategy for the file type in order.

        The first strategy producing at least `min_chars` characters wins;
        otherwise the longest candidate is kept. Output shorter than
        `placeholder_below` is replaced by a placeholder describing the file.
        """
        best = ExtractionResult(text="", method="none")

        for method, strategy in self.strategies(file_type):
            try:
                text = clean_text(strategy(data))
            except Exception as e:
                logger.warning(f"Extraction strategy '{method}' failed for {filename}: {e}")
                continue

            if len(text) >= self.min_chars:
                logger.info(f"Extracted {len(text)} characters from {filename} using {method}")
                return ExtractionResult(text=text, method=method)
            if len(text) > len(best.text):
                best = ExtractionResult(text=text, method=method)

        if len(best.text) >= self.placeholder_below:
            logger.info(f"Extracted {len(best.text)} characters from {filename} using {best.method}")
            return best

        logger.warning(
            f"Extraction for {filename} yielded {len(best.text)} characters "
            f"(< {self.placeholder_below}); substituting placeholder text"
        )
        return ExtractionResult(
            text=placeholder_text(filename, file_type, len(data)),
            method="placeholder",
            used_placeholder=True,
        )

    def extract(self, data: bytes, file_type: str, filename: str) -> str:
        return self.run(data, file_type, filename).text
