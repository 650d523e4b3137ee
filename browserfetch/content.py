from __future__ import annotations

from collections.abc import Mapping

from charset_normalizer import from_bytes

from browserfetch.models import ContentInfo, HeaderValue

TEXT_PREFIXES = {"text", "application", "*"}

# Candidate codecs when the caller prefers Chinese, Japanese or Korean content.
EAST_ASIAN_CODECS = [
    "utf_8",
    "gb18030",
    "big5",
    "euc_jp",
    "shift_jis",
    "iso2022_jp",
    "euc_kr",
    "cp949",
]


def _first(value: HeaderValue | None) -> str:
    if isinstance(value, list):
        return value[0] if value else ""
    return value or ""


def extract_content_type(value: str | None) -> ContentInfo:
    """Split ``text/html; charset=UTF-8`` into ``ContentInfo("html", "utf-8", "text")``."""
    if not value:
        return ContentInfo(type="", charset=None, prefix="")

    mime, *params = [part.strip() for part in value.split(";")]
    prefix, _, subtype = mime.lower().partition("/")
    charset = None
    for param in params:
        key, _, val = param.partition("=")
        if key.strip().lower() == "charset" and val.strip():
            charset = val.strip().strip("\"'").lower()
            break

    return ContentInfo(type=subtype or prefix, charset=charset, prefix=prefix)


def _structural_type(prefix: str, subtype: str) -> str:
    if subtype == "json" or subtype.endswith("+json"):
        return "json"
    if subtype == "xml" or subtype.endswith("+xml"):
        return "xml"
    if subtype == "octet-stream":
        return "octet-stream"
    if prefix in TEXT_PREFIXES:
        return "text"
    return "buffer"


def resolve_content_type(
    response_headers: Mapping[str, HeaderValue],
    request_headers: Mapping[str, HeaderValue] | None = None,
) -> ContentInfo:
    declared = _first(response_headers.get("content-type"))
    if declared:
        info = extract_content_type(declared)
    else:
        # Undetermined body: borrow the prefix from what we asked for.
        accept = _first((request_headers or {}).get("accept")) or "*/*"
        info = extract_content_type(accept.split(",")[0])
        info.charset = None

    return ContentInfo(
        type=_structural_type(info.prefix, info.type),
        charset=info.charset,
        prefix=info.prefix or "*",
    )


# Below this many bytes the statistical guess is unreliable for CJK text.
SHORT_BODY = 64

# Codecs to try first for each preferred language, best guess first.
LANGUAGE_CODECS = {
    "zh": ["gb18030", "big5"],
    "ja": ["shift_jis", "euc_jp"],
    "jp": ["shift_jis", "euc_jp"],
    "ko": ["cp949", "euc_kr"],
}


def preferred_codecs(accept_language: str) -> list[str]:
    """East Asian codecs for the languages in ``accept_language``, in header order."""
    codecs: list[str] = []
    for entry in accept_language.split(","):
        tag = entry.split(";", 1)[0].strip().lower()
        for codec in LANGUAGE_CODECS.get(tag.split("-", 1)[0], []):
            if codec not in codecs:
                codecs.append(codec)
    return codecs


def prefers_east_asian(accept_language: str) -> bool:
    return bool(preferred_codecs(accept_language))


def _decodes(data: bytes, codec: str) -> bool:
    try:
        data.decode(codec)
    except UnicodeDecodeError:
        return False
    return True


def detect_charset(data: bytes, accept_language: str = "") -> str | None:
    if not data:
        return None
    if _decodes(data, "utf-8"):
        return "utf_8"

    preferred = preferred_codecs(accept_language)
    if not preferred:
        best = from_bytes(data).best()
        return best.encoding if best is not None else None

    best = from_bytes(data, cp_isolation=EAST_ASIAN_CODECS).best()
    if best is not None and len(data) >= SHORT_BODY:
        return best.encoding

    # Too little text for the detector; trust the reader's languages.
    for codec in preferred:
        if _decodes(data, codec):
            return codec
    return best.encoding if best is not None else None
