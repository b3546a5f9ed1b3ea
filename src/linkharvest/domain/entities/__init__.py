from .streams import (
    CandidateFailure,
    HopOutcome,
    PageDetails,
    QualityRank,
    RawCandidate,
    Resolution,
    ResolutionRequest,
    SourceFamily,
    StreamDescriptor,
    SubtitleDescriptor,
)

__all__ = [
    "CandidateFailure",
    "HopOutcome",
    "PageDetails",
    "QualityRank",
    "RawCandidate",
    "Resolution",
    "ResolutionRequest",
    "SourceFamily",
    "StreamDescriptor",
    "SubtitleDescriptor",
]
