"""Substring extraction helpers for StoreFront responses.

StoreFront answers with loosely structured XML, HTML fragments and custom
headers rather than a stable API, so these helpers scan by offset instead of
parsing. Matching is literal: tag names match by prefix and attribute
names by their first substring hit.

All four helpers raise ExtractionError when a boundary is missing and never
modify their inputs.
"""

import re
from collections.abc import Iterable, Mapping

import httpx

from .exceptions import ExtractionError

HeadersLike = httpx.Headers | Mapping[str, str]


def _header_items(headers: HeadersLike) -> Iterable[tuple[str, str]]:
    """Yield (name, value) pairs, keeping repeated headers such as Set-Cookie."""
    if isinstance(headers, httpx.Headers):
        return headers.multi_items()
    return headers.items()


def tag_inner_text(body: str, tag_name: str) -> str:
    """Return the text between the first <tag_name ...> and its closing tag.

    Matching is case-insensitive and a prefix match, so ``<StateContextX>``
    also satisfies ``StateContext``.

    Example:
        tag_inner_text("<Foo>bar</foo>", "Foo") -> "bar"
    """
    open_match = re.compile(re.escape(f"<{tag_name}"), re.IGNORECASE).search(body)
    if open_match is None:
        raise ExtractionError(tag_name, f"Element not found: {tag_name}")

    tag_end = body.find(">", open_match.end())
    if tag_end == -1:
        raise ExtractionError(tag_name, f"Element tag failed to terminate: {tag_name}")
    start = tag_end + 1

    close_match = re.compile(re.escape(f"</{tag_name}"), re.IGNORECASE).search(body, start)
    if close_match is None:
        raise ExtractionError(tag_name, f'Element value "{tag_name}" failed to terminate')
    return body[start:close_match.start()]


def attribute_value(body: str, element_marker: str, attribute_name: str) -> str:
    """Return the double-quoted value following attribute_name inside an element.

    ``element_marker`` is matched literally (case-sensitive) as
    ``<element_marker `` and may carry extra text to pick one of several
    sibling tags, e.g. ``method name="ExplicitForms"``. The first occurrence of
    ``attribute_name`` after the marker wins, even when it is part of another
    attribute's name.

    Example:
        attribute_value('<a href="http://x">', "a", "href") -> "http://x"
    """
    element_tag = f"<{element_marker} "
    start = body.find(element_tag)
    if start == -1:
        raise ExtractionError(element_marker, f"Element not found: {element_marker}")
    start += len(element_tag)

    start = body.find(attribute_name, start)
    if start == -1:
        raise ExtractionError(attribute_name, f"Attribute not found: {attribute_name}")
    start += len(attribute_name)

    start = body.find('"', start)
    if start == -1:
        raise ExtractionError(attribute_name, f"Attribute value not found: {attribute_name}")
    start += 1

    end = body.find('"', start)
    if end == -1:
        raise ExtractionError(attribute_name, f"Attribute value failed to terminate: {attribute_name}")
    return body[start:end]


def cookie_value(headers: HeadersLike, cookie_name: str) -> str:
    """Return a cookie's value from the first Set-Cookie header that mentions it."""
    for name, value in _header_items(headers):
        if name.lower() != "set-cookie" or cookie_name not in value:
            continue
        start = value.find(cookie_name) + len(cookie_name) + 1
        end = value.find(";", start)
        if end == -1:
            end = len(value)
        return value[start:end]
    raise ExtractionError(cookie_name, f"Cookie not found: {cookie_name}")


def header_attribute(headers: HeadersLike, header_name: str, sub_attribute: str) -> str:
    """Return ``sub_attribute``'s quoted value from inside a header value.

    Assumes the attribute is written as ``sub_attribute="value"``: reading
    starts two characters past the attribute name and stops at the next
    double quote (or the end of the header value).
    """
    wanted = header_name.lower()
    for name, value in _header_items(headers):
        if name.lower() != wanted:
            continue
        index = value.find(sub_attribute)
        if index == -1:
            continue
        start = index + len(sub_attribute) + 2
        if start > len(value):
            continue
        end = value.find('"', start)
        if end == -1:
            end = len(value)
        return value[start:end]
    raise ExtractionError(sub_attribute, f"Attribute not found: {sub_attribute}")
