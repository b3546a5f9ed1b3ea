"""Domain entities for link resolution.

Pure value objects without framework dependencies or I/O.  Every entity is
created and discarded within a single resolution call.
"""

from __future__ import annotations

import re
from collections.abc import Iterator, Mapping
from dataclasses import dataclass, field
from enum import Enum, IntEnum

_RESOLUTION_TOKEN_RE = re.compile(r"(?<!\d)(\d{3,4})[pP]")


class QualityRank(IntEnum):
    """Ranked quality levels (value = vertical resolution, 0 = unknown)."""

    UNKNOWN = 0
    P240 = 240
    P360 = 360
    P480 = 480
    P720 = 720
    P1080 = 1080
    P1440 = 1440
    P2160 = 2160

    @classmethod
    def from_height(cls, height: int) -> QualityRank:
        """Map a pixel height to the highest rank not above it."""
        best = cls.UNKNOWN
        for rank in cls:
            if rank.value <= height and rank.value > best.value:
                best = rank
        return best

    @classmethod
    def from_text(cls, text: str | None) -> QualityRank:
        """Scan free text for a resolution token such as ``1080p``.

        Returns ``UNKNOWN`` when no token is present.
        """
        match = _RESOLUTION_TOKEN_RE.search(text or "")
        if not match:
            return cls.UNKNOWN
        return cls.from_height(int(match.group(1)))


class SourceFamily(str, Enum):
    """Backend type of a candidate link; decides its downstream handling."""

    DIRECT_FILE_HOST = "direct-file-host"
    FAST_DOWNLOAD_PROXY = "fast-download-proxy"
    REDIRECT_PROXY = "redirect-proxy"
    EMBED_PAGE = "embed-page"
    ADAPTIVE_STREAM = "adaptive-stream-embed"
    GENERIC_FALLBACK = "generic-fallback"


@dataclass(frozen=True)
class ResolutionRequest:
    """A page URL to resolve, with the referer the caller saw it on."""

    page_url: str
    referer: str | None = None


@dataclass(frozen=True)
class PageDetails:
    """Descriptive text pulled from a resolved page."""

    title: str = ""
    file_name: str = ""
    file_size: str = ""
    header: str = ""


@dataclass(frozen=True)
class RawCandidate:
    """A link or embed found on a page before it is confirmed playable."""

    display_text: str
    href: str
    family: SourceFamily
    quality_hint: str = ""  # "1080p" label next to the link, if any
    server: str = ""  # "FSL Server", "10Gbps", ...
    redirect_header: str = "location"  # header read by a redirect lookup
    # Keep following redirects until the header value contains this marker.
    redirect_until: str = ""
    referer: str = ""
    # Set when the candidate came from an embed page describing its own file.
    details: PageDetails | None = None


@dataclass(frozen=True)
class StreamDescriptor:
    """A playable stream returned to the caller."""

    source_label: str  # "HubCloud[FSL Server]"
    display_name: str  # "HubCloud[FSL Server] Movie.1080p.mkv[2.1 GB]"
    direct_url: str
    referer: str = ""
    quality: QualityRank = QualityRank.UNKNOWN
    is_adaptive: bool = False  # True for .m3u8 playlists
    family: SourceFamily = SourceFamily.DIRECT_FILE_HOST
    # Excluded from hashing so descriptors can live in sets.
    headers: Mapping[str, str] = field(default_factory=dict, hash=False)


@dataclass(frozen=True)
class SubtitleDescriptor:
    """A subtitle track found next to the streams."""

    url: str
    label: str = ""


@dataclass(frozen=True)
class CandidateFailure:
    """A candidate whose hop or extraction failed."""

    index: int
    href: str
    reason: str


@dataclass(frozen=True)
class HopOutcome:
    """Candidates after their network hops, ready for normalisation.

    ``candidates`` hold final URLs in page order; ``subtitles`` were found
    on embed pages along the way.
    """

    candidates: tuple[RawCandidate, ...] = ()
    subtitles: tuple[SubtitleDescriptor, ...] = ()
    failures: tuple[CandidateFailure, ...] = ()


@dataclass(frozen=True)
class Resolution:
    """Outcome of one resolution call.

    ``streams`` and ``subtitles`` are independent output channels; either
    may be empty.  ``failures`` lists candidates that were skipped.
    """

    request: ResolutionRequest
    streams: tuple[StreamDescriptor, ...] = ()
    subtitles: tuple[SubtitleDescriptor, ...] = ()
    failures: tuple[CandidateFailure, ...] = ()

    def iter_streams(self) -> Iterator[StreamDescriptor]:
        return iter(self.streams)

    def iter_subtitles(self) -> Iterator[SubtitleDescriptor]:
        return iter(self.subtitles)

    @property
    def is_empty(self) -> bool:
        return not self.streams and not self.subtitles
