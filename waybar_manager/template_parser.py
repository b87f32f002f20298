"""Template parser for comment-annotated JSON (JSONC) Waybar templates.

A template is a JSON array of Waybar bar configurations. Line (``//``) and
block (``/* */``) comments are allowed. A comment carrying ``TPL:FULL`` or
``TPL:SIMPLE`` tags the top-level element that follows it:

    [
      // TPL:FULL
      { "output": "CONFIGURED_FROM_SCRIPT", "modules-left": [...] },
      // TPL:SIMPLE
      { "output": "CONFIGURED_FROM_SCRIPT", "modules-left": [...] }
    ]

Parsing runs in two phases: a tolerant preprocessor blanks out comments
(keeping every character offset intact) and records them, then the cleaned
text is decoded strictly, element by element, so each marker can be bound
to the element following it by offset.
"""

import json
import logging
import re
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, List, Tuple

from .errors import ParseError, TemplateNotFoundError
from .models import OUTPUT_FIELD, SENTINEL, TemplateDocument, Variant, VariantName

logger = logging.getLogger(__name__)

MARKER_PATTERN = re.compile(r"\bTPL:([A-Za-z0-9_-]+)")
JSON_WHITESPACE = " \t\n\r"
# Markers are case-sensitive: only TPL:FULL and TPL:SIMPLE bind
VARIANT_TAGS = {v.value.upper(): v for v in VariantName}


@dataclass(frozen=True)
class Comment:
    """A comment found by the preprocessor.

    Attributes:
        offset: Index of the first delimiter character in the source
        end: Index just past the comment
        line: 1-based line where the comment starts
        text: Comment body without delimiters
    """

    offset: int
    end: int
    line: int
    text: str

    @property
    def markers(self) -> List[str]:
        return MARKER_PATTERN.findall(self.text)


@dataclass(frozen=True)
class Element:
    """A decoded top-level array element and its span in the source."""

    start: int
    end: int
    value: Any


def strip_comments(text: str) -> Tuple[str, List[Comment]]:
    """Replace comments with whitespace of equal length.

    String literals are copied verbatim, so ``"http://..."`` survives.
    Newlines inside block comments are kept so line numbers reported by
    the JSON decoder still match the source.

    Returns:
        Tuple of (cleaned text, comments in source order)

    Raises:
        ParseError: Unterminated string literal or block comment
    """
    parts: List[str] = []
    comments: List[Comment] = []
    n = len(text)
    i = 0
    line = 1

    while i < n:
        ch = text[i]

        if ch == '"':
            j = i + 1
            while True:
                if j >= n or text[j] == "\n":
                    raise ParseError.malformed("unterminated string literal", line)
                if text[j] == "\\":
                    j += 2
                    continue
                if text[j] == '"':
                    break
                j += 1
            parts.append(text[i:j + 1])
            i = j + 1
            continue

        if text.startswith("//", i):
            end = text.find("\n", i)
            if end == -1:
                end = n
            comments.append(Comment(offset=i, end=end, line=line, text=text[i + 2:end]))
            parts.append(" " * (end - i))
            i = end
            continue

        if text.startswith("/*", i):
            close = text.find("*/", i + 2)
            if close == -1:
                raise ParseError.malformed("unterminated block comment", line)
            end = close + 2
            comments.append(Comment(offset=i, end=end, line=line, text=text[i + 2:close]))
            parts.append("".join(c if c == "\n" else " " for c in text[i:end]))
            line += text.count("\n", i, end)
            i = end
            continue

        if ch == "\n":
            line += 1
        parts.append(ch)
        i += 1

    return "".join(parts), comments


def _skip_whitespace(text: str, idx: int) -> int:
    while idx < len(text) and text[idx] in JSON_WHITESPACE:
        idx += 1
    return idx


def _line_at(text: str, idx: int) -> int:
    return text.count("\n", 0, idx) + 1


def decode_elements(cleaned: str) -> List[Element]:
    """Strictly decode a JSON array, returning each element with its span.

    Raises:
        ParseError: Not an array, or any JSON syntax error
    """
    decoder = json.JSONDecoder()
    n = len(cleaned)
    idx = _skip_whitespace(cleaned, 0)

    if idx >= n or cleaned[idx] != "[":
        raise ParseError.malformed("top level must be a JSON array", _line_at(cleaned, idx))

    elements: List[Element] = []
    idx = _skip_whitespace(cleaned, idx + 1)

    if idx < n and cleaned[idx] == "]":
        idx += 1
    else:
        while True:
            try:
                value, end = decoder.raw_decode(cleaned, idx)
            except json.JSONDecodeError as e:
                raise ParseError.malformed(f"{e.msg} at line {e.lineno} column {e.colno}", e.lineno)
            except RecursionError:
                raise ParseError.malformed("nesting too deep", _line_at(cleaned, idx))
            elements.append(Element(start=idx, end=end, value=value))

            idx = _skip_whitespace(cleaned, end)
            if idx >= n:
                raise ParseError.malformed("unterminated top-level array", _line_at(cleaned, idx))
            if cleaned[idx] == ",":
                idx = _skip_whitespace(cleaned, idx + 1)
                continue
            if cleaned[idx] == "]":
                idx += 1
                break
            raise ParseError.malformed("expected ',' or ']' after array element", _line_at(cleaned, idx))

    if _skip_whitespace(cleaned, idx) != n:
        raise ParseError.malformed("unexpected content after the top-level array", _line_at(cleaned, idx))

    return elements


def sentinel_count(value: Any) -> int:
    """Count sentinel occurrences in an ``output`` value (string or list)."""
    if isinstance(value, str):
        return 1 if value == SENTINEL else 0
    if isinstance(value, list):
        return sum(1 for item in value if item == SENTINEL)
    return 0


def _check_sentinel(name: VariantName, body: Any) -> None:
    if not isinstance(body, dict):
        raise ParseError.missing_sentinel(name.value, "is not a JSON object")
    if OUTPUT_FIELD not in body:
        raise ParseError.missing_sentinel(name.value, f"has no '{OUTPUT_FIELD}' field")
    if sentinel_count(body[OUTPUT_FIELD]) != 1:
        raise ParseError.missing_sentinel(
            name.value, f"must hold \"{SENTINEL}\" exactly once in '{OUTPUT_FIELD}'"
        )


def bind_markers(comments: List[Comment], elements: List[Element]) -> Dict[VariantName, Element]:
    """Bind each TPL marker to the top-level element that follows it.

    Markers inside an element body are not considered.

    Raises:
        ParseError: Duplicate marker, dangling marker, or an element tagged twice
    """
    bound: Dict[VariantName, Element] = {}
    tagged: Dict[int, VariantName] = {}

    for comment in comments:
        tags = comment.markers
        if not tags:
            continue

        if any(e.start <= comment.offset < e.end for e in elements):
            logger.debug("Ignoring nested marker on line %d: %s", comment.line, comment.text.strip())
            continue

        following = next((e for e in elements if e.start >= comment.end), None)

        for tag in tags:
            name = VARIANT_TAGS.get(tag)
            if name is None:
                logger.debug("Ignoring unknown template tag 'TPL:%s' on line %d", tag, comment.line)
                continue

            if name in bound:
                raise ParseError.duplicate_variant(name.value, comment.line)
            if following is None:
                raise ParseError.malformed(f"marker '{name.marker}' is not followed by an array element", comment.line)
            if following.start in tagged:
                raise ParseError.malformed(
                    f"marker '{name.marker}' tags the same element as '{tagged[following.start].marker}'",
                    comment.line,
                )

            logger.debug("Marker %s on line %d bound to element at offset %d", name.marker, comment.line, following.start)
            bound[name] = following
            tagged[following.start] = name

    return bound


def parse_template(raw_text: str) -> TemplateDocument:
    """Parse template text into a TemplateDocument.

    Args:
        raw_text: JSONC template content

    Returns:
        Document holding exactly one full and one simple variant

    Raises:
        ParseError: MALFORMED_SYNTAX, MISSING_VARIANT, DUPLICATE_VARIANT or MISSING_SENTINEL
    """
    cleaned, comments = strip_comments(raw_text)
    elements = decode_elements(cleaned)
    bound = bind_markers(comments, elements)

    for name in VariantName:
        if name not in bound:
            raise ParseError.missing_variant(name.value)

    variants: Dict[VariantName, Variant] = {}
    for name in VariantName:
        body = bound[name].value
        _check_sentinel(name, body)
        variants[name] = Variant(name=name, body=body)

    logger.debug("Template parsed: %d top-level elements, %d comments", len(elements), len(comments))
    return TemplateDocument(raw_text=raw_text, variants=variants)


def load_template(path: Path) -> TemplateDocument:
    """Read and parse a template file.

    Raises:
        TemplateNotFoundError: File does not exist
        ParseError: File unreadable or structurally invalid
    """
    logger.info("Looking for templates in: %s", path)

    if not path.exists():
        raise TemplateNotFoundError(str(path))

    try:
        with open(path, "r", encoding="utf-8") as f:
            raw_text = f.read()
    except (OSError, UnicodeDecodeError) as e:
        raise ParseError.malformed(f"could not read {path}: {e}")

    return parse_template(raw_text)
