from .dmarc_aggregate_report import (
    AlignmentMode,
    AuthResult,
    DmarcReport,
    MalformedReport,
    PolicyAction,
    PolicyPublished,
    ProtocolToken,
    Record,
    ReportMetadata,
    UnrecognizedToken,
)

__all__ = [
    "AlignmentMode",
    "AuthResult",
    "DmarcReport",
    "MalformedReport",
    "PolicyAction",
    "PolicyPublished",
    "ProtocolToken",
    "Record",
    "ReportMetadata",
    "UnrecognizedToken",
]
