"""Named regex extractors for inline scripts and raw page bodies.

Every function returns ``None`` or an empty list when its pattern is
absent; a missing pattern is an expected outcome, never an exception.

Covers JWPlayer ``file``/``label`` source lists, subtitle tracks, HLS
playlist URLs, ``var x = '...'`` assignments, base64-wrapped URLs and
Dean Edwards packed JavaScript.
"""

from __future__ import annotations

import base64
import binascii
import re

_FILE_LABEL_RE = re.compile(
    r"""["']?file["']?\s*:\s*["']([^"']+)["']\s*,\s*["']?label["']?\s*:\s*["']([^"']*)["']"""
)

_TRACK_RE = re.compile(
    r"""["']?file["']?\s*:\s*["']([^"']*?\.(?:vtt|srt)[^"']*)["'][^}]*?["']?label["']?\s*:\s*["']([^"']+)["']""",
    re.DOTALL,
)

_QUOTED_M3U8_RE = re.compile(r"""["']([^"'\s]*?\.m3u8[^"'\s]*)["']""")

_MASTER_SUFFIX_RE = re.compile(r'master\.m3u8(.*?)"')

_VIDEO_URL_RE = re.compile(
    r"""(https?://[^\s"'<>]+\.(?:mp4|mkv|m3u8)[^\s"'<>]*)""", re.IGNORECASE
)

_ENCODED_URL_RE = re.compile(r"""['"](aHR0c[A-Za-z0-9+/=]+)['"]""")

_PACKED_RE = re.compile(
    r"eval\s*\(\s*function\s*\(\s*p\s*,\s*a\s*,\s*c\s*,\s*k\s*,\s*e\s*,\s*d\s*\)"
)

_SUBTITLE_SUFFIXES = (".vtt", ".srt")


def unescape_js_url(value: str) -> str:
    """Undo JSON/JS slash escaping (``https:\\/\\/x`` -> ``https://x``)."""
    return value.replace("\\/", "/")


def find_file_label_pairs(body: str) -> list[tuple[str, str]]:
    """Return **all** ``file``/``label`` pairs declared in *body*.

    Pages often list one pair per quality variant.  Subtitle tracks share
    the same shape and are excluded.
    """
    pairs: list[tuple[str, str]] = []
    for match in _FILE_LABEL_RE.finditer(body):
        url = unescape_js_url(match.group(1))
        if url.lower().split("?")[0].endswith(_SUBTITLE_SUFFIXES):
            continue
        pairs.append((url, match.group(2)))
    return pairs


def find_subtitle_tracks(body: str) -> list[tuple[str, str]]:
    """Return ``(url, label)`` for every ``.vtt``/``.srt`` track in *body*."""
    return [
        (unescape_js_url(m.group(1)), m.group(2)) for m in _TRACK_RE.finditer(body)
    ]


def find_m3u8_url(body: str) -> str | None:
    """Return the first quoted HLS playlist URL in *body*."""
    match = _QUOTED_M3U8_RE.search(body)
    if not match:
        return None
    return unescape_js_url(match.group(1))


def find_master_playlist_suffix(body: str) -> str | None:
    """Return the text following ``master.m3u8`` up to the closing quote.

    Usually a query string such as ``?t=abc&s=123``.
    """
    match = _MASTER_SUFFIX_RE.search(body)
    return match.group(1) if match else None


def find_video_urls(body: str) -> list[str]:
    """Return every absolute ``.mp4``/``.mkv``/``.m3u8`` URL in *body*."""
    return [unescape_js_url(m.group(1)) for m in _VIDEO_URL_RE.finditer(body)]


def find_script_var(body: str, name: str) -> str | None:
    """Return the string assigned by ``var <name> = '...'``."""
    match = re.search(
        rf"""var\s+{re.escape(name)}\s*=\s*["']([^"']*)["']""",
        body,
    )
    return match.group(1) if match else None


def decode_base64_text(value: str) -> str | None:
    """Decode base64 text, tolerating stripped ``=`` padding."""
    try:
        return base64.b64decode(value + "=" * (-len(value) % 4)).decode("utf-8")
    except (binascii.Error, UnicodeDecodeError):
        return None


def find_encoded_urls(body: str) -> list[str]:
    """Decode base64 string literals that wrap an ``http`` URL."""
    urls: list[str] = []
    for match in _ENCODED_URL_RE.finditer(body):
        try:
            decoded = base64.b64decode(match.group(1)).decode("utf-8")
        except (binascii.Error, UnicodeDecodeError):
            continue
        if decoded.startswith("http"):
            urls.append(decoded)
    return urls


def unpack_p_a_c_k(packed: str) -> str | None:
    """Unpack Dean Edwards packed JavaScript.

    Format: eval(function(p,a,c,k,e,d){...}('payload',base,count,'dict'.split('|')))

    Base-N encoded tokens in the payload are replaced with words from the
    dictionary.
    """
    match = re.search(
        r"}\('(.*?)',\s*(\d+),\s*(\d+),\s*'([^']*)'\s*\.split\('\|'\)",
        packed,
        re.DOTALL,
    )
    if not match:
        return None

    payload = match.group(1)
    base = int(match.group(2))
    count = int(match.group(3))
    keywords = match.group(4).split("|")
    if len(keywords) < count:
        keywords.extend([""] * (count - len(keywords)))

    def _replace_word(m: re.Match[str]) -> str:
        word = m.group(0)
        try:
            index = int(word, base)
        except ValueError:
            return word
        if index < len(keywords) and keywords[index]:
            return keywords[index]
        return word

    return re.sub(r"\b\w+\b", _replace_word, payload)


def _video_url_in_player_config(js: str) -> str | None:
    """Find the source URL in a JWPlayer config (plain or unpacked)."""
    normalized = js.replace("\\'", "'").replace('\\"', '"')
    for pattern in (
        r"""sources\s*:\s*\[\s*\{[^}]*file\s*:\s*["'](https?://[^"']+\.(?:m3u8|mp4)[^"']*)""",
        r"""file\s*:\s*["'](https?://[^"']+\.m3u8[^"']*)""",
        r"""(?:source|src)\s*:\s*["'](https?://[^"']+\.(?:m3u8|mp4)[^"']*)""",
    ):
        m = re.search(pattern, normalized)
        if m and "thumbnail" not in m.group(1).lower():
            return m.group(1)
    return None


def find_player_video_url(html: str) -> str | None:
    """Best-effort playable URL from an unknown embed page.

    Order: ``"hls2"`` JSON key, packed JS blocks, JWPlayer config in the
    page, then any absolute video URL.
    """
    m = re.search(r'"hls2"\s*:\s*"(https?:\\?/\\?/[^"]+)"', html)
    if m:
        return unescape_js_url(m.group(1))

    for pm in _PACKED_RE.finditer(html):
        unpacked = unpack_p_a_c_k(html[pm.start() : pm.start() + 65536])
        if unpacked:
            url = _video_url_in_player_config(unpacked)
            if url:
                return url

    url = _video_url_in_player_config(html)
    if url:
        return url

    urls = find_video_urls(html)
    return urls[0] if urls else None
