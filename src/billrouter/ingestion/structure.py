"""Message structure from IMAP FETCH responses.

``enumerate`` asks the server for ``BODYSTRUCTURE`` instead of the whole
message, so the part list is built from the parenthesized response
(RFC 3501 section 7.4.2) rather than from a parsed MIME tree.
"""

import re
from email.header import decode_header
from itertools import takewhile
from typing import Any, Iterable, Iterator, Optional, Union
from urllib.parse import unquote

from .base import MessagePart

_TOKEN = re.compile(
    rb'\s*(?:(?P<open>\()|(?P<close>\))|"(?P<quoted>(?:[^"\\]|\\.)*)"|\{(?P<literal>\d+)\}|(?P<atom>[^\s()"]+))'
)
_ESCAPE = re.compile(rb"\\(.)")

ResponseItem = Union[bytes, tuple[bytes, bytes]]


def decode_filename(value: Optional[str]) -> Optional[str]:
    """Decode an RFC 2047 encoded filename.

    Args:
        value: Raw filename from a MIME header or BODYSTRUCTURE parameter

    Returns:
        Decoded filename, or None if there is none
    """
    if not value:
        return None

    result = []
    for chunk, encoding in decode_header(value):
        if isinstance(chunk, bytes):
            try:
                result.append(chunk.decode(encoding or "utf-8", errors="ignore"))
            except LookupError:
                result.append(chunk.decode("utf-8", errors="ignore"))
        else:
            result.append(chunk)

    return "".join(result)


# ============================================================================
# Response parsing
# ============================================================================


def split_responses(data: Iterable[Optional[ResponseItem]]) -> Iterator[list[ResponseItem]]:
    """Group imaplib FETCH data into one item list per untagged response.

    imaplib returns each literal as ``(text_before_literal, literal)`` and the
    rest of that line as plain bytes, so every plain bytes item ends a response.
    """
    response: list[ResponseItem] = []
    for item in data:
        if item is None:
            continue
        response.append(item)
        if isinstance(item, bytes):
            yield response
            response = []

    if response:
        yield response


def _tokens(response: list[ResponseItem]) -> Iterator[tuple[str, bytes]]:
    for item in response:
        text, literal = item if isinstance(item, tuple) else (item, None)

        pos = 0
        while True:
            match = _TOKEN.match(text, pos)
            if match is None:
                break
            pos = match.end()
            if match.lastgroup != "literal":
                yield match.lastgroup, match.group(match.lastgroup)

        if text[pos:].strip():
            raise ValueError(f"Unexpected data in FETCH response: {text[pos:pos + 40]!r}")

        if literal is not None:
            yield "string", literal


def parse_response(response: list[ResponseItem]) -> list[Any]:
    """Parse one untagged response into nested lists of bytes (NIL becomes None).

    Raises:
        ValueError: If the response is not well-formed
    """
    stack: list[list[Any]] = [[]]

    for kind, value in _tokens(response):
        if kind == "open":
            stack.append([])
        elif kind == "close":
            if len(stack) == 1:
                raise ValueError("Unbalanced parenthesis in FETCH response")
            node = stack.pop()
            stack[-1].append(node)
        elif kind == "atom":
            stack[-1].append(None if value.upper() == b"NIL" else value)
        elif kind == "quoted":
            stack[-1].append(_ESCAPE.sub(rb"\1", value))
        else:
            stack[-1].append(value)

    if len(stack) != 1:
        raise ValueError("Unterminated list in FETCH response")

    return stack[0]


def fetch_attributes(response: list[ResponseItem]) -> dict[str, Any]:
    """Attribute map of a ``<seq> FETCH (<name> <value> ...)`` response.

    imaplib strips the ``FETCH`` keyword, so ``5 (UID 9 BODYSTRUCTURE (...))``
    gives ``{"UID": b"9", "BODYSTRUCTURE": [...]}``. Anything else yields ``{}``.

    Raises:
        ValueError: If the response is not well-formed
    """
    tree = parse_response(response)
    if len(tree) < 2 or not isinstance(tree[1], list):
        return {}

    items = tree[1]
    return {
        _text(name).upper(): value
        for name, value in zip(items[::2], items[1::2])
        if isinstance(name, bytes)
    }


# ============================================================================
# BODYSTRUCTURE
# ============================================================================


def _text(value: Any) -> Optional[str]:
    if isinstance(value, bytes):
        return value.decode("utf-8", errors="replace")
    return None


def _at(fields: list[Any], index: int) -> Any:
    return fields[index] if index < len(fields) else None


def _param(params: Any, name: str) -> Optional[str]:
    """Look up a body parameter, honouring the RFC 2231 ``name*`` form."""
    if not isinstance(params, list):
        return None

    values = {
        _text(key).lower(): _text(value)
        for key, value in zip(params[::2], params[1::2])
        if isinstance(key, bytes) and isinstance(value, bytes)
    }

    if values.get(name):
        return values[name]

    extended = values.get(f"{name}*")
    if not extended or extended.count("'") < 2:
        return extended

    charset, _, encoded = extended.split("'", 2)
    try:
        return unquote(encoded, encoding=charset or "utf-8", errors="replace")
    except LookupError:
        return unquote(encoded, errors="replace")


def _disposition_index(content_type: str) -> int:
    # Extension data follows the type-specific fields
    if content_type.startswith("text/"):
        return 9
    if content_type == "message/rfc822":
        return 11
    return 8


def _leaf(fields: list[Any], path: str) -> MessagePart:
    maintype = _text(_at(fields, 0)) or "application"
    subtype = _text(_at(fields, 1)) or "octet-stream"
    content_type = f"{maintype}/{subtype}".lower()

    filename = None
    disposition = _at(fields, _disposition_index(content_type))
    if isinstance(disposition, list):
        filename = _param(_at(disposition, 1), "filename") or _param(_at(fields, 2), "name")

    size = _at(fields, 6)
    return MessagePart(
        part=path,
        filename=decode_filename(filename),
        content_type=content_type,
        size_bytes=int(size) if isinstance(size, bytes) and size.isdigit() else 0,
    )


def describe_structure(structure: Any, prefix: str = "") -> list[MessagePart]:
    """List the leaf parts of a BODYSTRUCTURE with their IMAP section paths.

    Args:
        structure: Parsed BODYSTRUCTURE value
        prefix: Section path of ``structure`` itself, empty for the top level

    Returns:
        list[MessagePart]: Leaf parts in document order

    Raises:
        ValueError: If the structure is not a body list
    """
    if not isinstance(structure, list) or not structure:
        raise ValueError(f"Malformed BODYSTRUCTURE at section {prefix or '1'}")

    if not isinstance(structure[0], list):
        return [_leaf(structure, prefix or "1")]

    # Multipart: child bodies come first, then the subtype and extension data
    parts = []
    children = takewhile(lambda node: isinstance(node, list), structure)
    for index, child in enumerate(children, start=1):
        path = f"{prefix}.{index}" if prefix else str(index)
        parts.extend(describe_structure(child, path))

    return parts
