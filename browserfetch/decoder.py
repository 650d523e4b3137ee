from __future__ import annotations

import json
import logging
from typing import Any
from xml.etree import ElementTree

from browserfetch.content import TEXT_PREFIXES, detect_charset, resolve_content_type
from browserfetch.errors import DecodeError, ParseError
from browserfetch.models import ContentInfo, FetchRequest, FetchResponse

LOGGER = logging.getLogger(__name__)

PREVIEW_LIMIT = 32


def _preview(text: str) -> str:
    return text if len(text) <= PREVIEW_LIMIT else text[: PREVIEW_LIMIT - 3] + "..."


def _element_to_data(elem: ElementTree.Element) -> Any:
    children = list(elem)
    text = (elem.text or "").strip()
    if not children and not elem.attrib:
        return text

    node: dict[str, Any] = {}
    if elem.attrib:
        node["$"] = dict(elem.attrib)
    for child in children:
        value = _element_to_data(child)
        if child.tag in node:
            existing = node[child.tag]
            if not isinstance(existing, list):
                node[child.tag] = existing = [existing]
            existing.append(value)
        else:
            node[child.tag] = value
    if text:
        node["_"] = text
    return node


def parse_xml(text: str) -> Any:
    """Convert an XML document to plain data, unwrapping the root element.

    ``<xml><foo>Hello</foo><bar>World</bar></xml>`` -> ``{"foo": "Hello", "bar": "World"}``.
    """
    root = ElementTree.fromstring(text)
    return _element_to_data(root)


def decode_forced(
    data: bytes,
    info: ContentInfo,
    response_type: str,
    *,
    response_charset: str | None = None,
    accept_language: str = "",
) -> tuple[str, Any]:
    """Decode for a caller that asked for a specific type. Failures raise."""
    if response_type == "buffer":
        return "buffer", data

    if not data:
        return "text", ""

    charset = response_charset or info.charset or detect_charset(data, accept_language)
    if not charset:
        raise DecodeError(
            f"Cannot decode the data as {response_type}, try again with the 'response_charset' option"
        )
    try:
        text = data.decode(charset)
    except (LookupError, UnicodeDecodeError) as exc:
        if response_charset:
            raise DecodeError(f"Cannot decode the data by charset {response_charset}") from exc
        raise DecodeError(f"Cannot decode the data as {response_type}") from exc

    if response_type != "json":
        return "text", text

    try:
        if info.type == "xml":
            return "json", parse_xml(text)
        return "json", json.loads(text)
    except (ValueError, ElementTree.ParseError) as exc:
        raise ParseError(f"Cannot decode the data '{_preview(text)}' as JSON") from exc


def decode_auto(
    data: bytes,
    info: ContentInfo,
    *,
    response_charset: str | None = None,
    accept_language: str = "",
) -> tuple[str, Any]:
    """Best-effort decode driven by the response metadata. Never raises."""
    if info.type in ("buffer", "octet-stream") or info.prefix not in TEXT_PREFIXES:
        return "buffer", data

    if not data:
        return "text", ""

    charset = response_charset or info.charset or detect_charset(data, accept_language)
    if not charset:
        return "buffer", data

    try:
        text = data.decode(charset)
        if info.type == "json":
            return "json", json.loads(text)
        if info.type == "xml":
            return "json", parse_xml(text)
        return "text", text
    except (LookupError, ValueError, ElementTree.ParseError) as exc:
        LOGGER.debug(f"Falling back to buffer: {type(exc).__name__}: {exc}")
        return "buffer", data


def resolve_response(response: FetchResponse, request: FetchRequest) -> FetchResponse:
    """Turn the raw body of ``response`` into ``text``/``json``/``buffer`` data."""
    if response.type is not None:
        return response

    raw = response.data
    if raw is None:
        raw = b""
    elif isinstance(raw, str):
        raw = raw.encode("utf-8")

    info = resolve_content_type(response.headers, request.headers)
    accept_language = request.headers.get("accept-language") or ""
    if isinstance(accept_language, list):
        accept_language = ",".join(accept_language)

    if request.response_type:
        kind, data = decode_forced(
            raw,
            info,
            request.response_type,
            response_charset=request.response_charset,
            accept_language=accept_language,
        )
    else:
        kind, data = decode_auto(
            raw,
            info,
            response_charset=request.response_charset,
            accept_language=accept_language,
        )

    response.type = kind
    response.data = data
    return response
