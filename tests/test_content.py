from __future__ import annotations

import pytest

from browserfetch.content import (
    detect_charset,
    extract_content_type,
    preferred_codecs,
    prefers_east_asian,
    resolve_content_type,
)


def test_extract_content_type_splits_mime_and_charset() -> None:
    info = extract_content_type("text/html; Charset=GBK")
    assert (info.prefix, info.type, info.charset) == ("text", "html", "gbk")


def test_extract_content_type_without_value() -> None:
    info = extract_content_type(None)
    assert (info.prefix, info.type, info.charset) == ("", "", None)


@pytest.mark.parametrize(
    ("content_type", "expected_type", "expected_prefix"),
    [
        ("application/json; charset=utf-8", "json", "application"),
        ("application/ld+json", "json", "application"),
        ("application/xml", "xml", "application"),
        ("text/xml", "xml", "text"),
        ("application/rss+xml", "xml", "application"),
        ("text/html", "text", "text"),
        ("application/javascript", "text", "application"),
        ("application/octet-stream", "octet-stream", "application"),
        ("image/png", "buffer", "image"),
    ],
)
def test_resolve_content_type_structural_types(content_type, expected_type, expected_prefix) -> None:
    info = resolve_content_type({"content-type": content_type})
    assert info.type == expected_type
    assert info.prefix == expected_prefix


def test_missing_content_type_falls_back_to_accept() -> None:
    info = resolve_content_type({}, {"accept": "image/png,*/*;q=0.9"})
    assert (info.type, info.prefix, info.charset) == ("buffer", "image", None)

    wildcard = resolve_content_type({}, {"accept": "*/*"})
    assert (wildcard.type, wildcard.prefix) == ("text", "*")

    bare = resolve_content_type({})
    assert bare.prefix == "*"


def test_prefers_east_asian() -> None:
    assert prefers_east_asian("zh-CN,zh;q=0.9")
    assert prefers_east_asian("ko-KR")
    assert not prefers_east_asian("en-US,en;q=0.9")


def test_detect_charset_utf8_text() -> None:
    text = "这是一个用于检测字符集的中文句子，内容足够长以便统计检测器得出结论。" * 3
    assert detect_charset(text.encode("utf-8"), "zh-CN") == "utf_8"
    assert detect_charset(text.encode("utf-8")) == "utf_8"


def test_detect_charset_empty() -> None:
    assert detect_charset(b"") is None


def test_preferred_codecs_follow_header_order() -> None:
    assert preferred_codecs("en-US,ko;q=0.9,zh-CN;q=0.8") == ["cp949", "euc_kr", "gb18030", "big5"]
    assert preferred_codecs("ja-JP") == ["shift_jis", "euc_jp"]
    assert preferred_codecs("en-US,en;q=0.9") == []


@pytest.mark.parametrize(
    ("text", "codec", "accept_language", "expected"),
    [
        ("你好，世界！", "gbk", "en-US,en;q=0.9,zh-CN;q=0.8,zh;q=0.7", "gb18030"),
        ("こんにちは", "shift_jis", "ja-JP,ja;q=0.9", "shift_jis"),
        ("안녕하세요", "euc_kr", "ko-KR", "cp949"),
    ],
)
def test_detect_charset_short_cjk_body(text, codec, accept_language, expected) -> None:
    data = text.encode(codec)
    charset = detect_charset(data, accept_language)

    assert charset == expected
    assert data.decode(charset) == text
