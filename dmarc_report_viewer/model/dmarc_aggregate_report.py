from dataclasses import dataclass
from enum import Enum
from typing import Optional, Tuple, Type, TypeVar, Union

TokenT = TypeVar("TokenT", bound="ProtocolToken")


@dataclass(frozen=True)
class UnrecognizedToken:
    """A protocol token that does not match any known value.

    The raw string is kept exactly as it appeared in the report.
    """

    raw: str

    def __str__(self) -> str:
        return self.raw


class ProtocolToken(Enum):
    @classmethod
    def from_token(
        cls: Type[TokenT], raw: Union[str, TokenT, UnrecognizedToken]
    ) -> Union[TokenT, UnrecognizedToken]:
        if isinstance(raw, (cls, UnrecognizedToken)):
            return raw
        normalized = raw.strip().lower()
        for member in cls:
            if member.value == normalized:
                return member
        return UnrecognizedToken(raw)


class AlignmentMode(ProtocolToken):
    RELAXED = "r"
    STRICT = "s"


class PolicyAction(ProtocolToken):
    NONE_VALUE = "none"
    QUARANTINE = "quarantine"
    REJECT = "reject"


class AuthResult(ProtocolToken):
    PASS_VALUE = "pass"
    FAIL = "fail"
    SOFTFAIL = "softfail"
    NONE_VALUE = "none"


AlignmentModeValue = Union[AlignmentMode, UnrecognizedToken]
PolicyActionValue = Union[PolicyAction, UnrecognizedToken]
AuthResultValue = Union[AuthResult, UnrecognizedToken]


@dataclass(frozen=True)
class ReportMetadata:
    org_name: Optional[str] = None
    email: Optional[str] = None
    report_id: Optional[str] = None
    period_begin: Optional[int] = None
    period_end: Optional[int] = None


@dataclass(frozen=True)
class PolicyPublished:
    domain: Optional[str] = None
    adkim: Optional[AlignmentModeValue] = None
    aspf: Optional[AlignmentModeValue] = None
    p: Optional[PolicyActionValue] = None
    sp: Optional[PolicyActionValue] = None
    pct: Optional[int] = None


@dataclass(frozen=True)
class Record:
    source_ip: Optional[str] = None
    count: Optional[int] = None
    disposition: Optional[PolicyActionValue] = None
    dkim: Optional[AuthResultValue] = None
    spf: Optional[AuthResultValue] = None


@dataclass(frozen=True)
class DmarcReport:
    metadata: Optional[ReportMetadata] = None
    policy: Optional[PolicyPublished] = None
    records: Tuple[Record, ...] = ()


@dataclass(frozen=True)
class MalformedReport:
    """Marker for a report payload that is not well-formed XML."""

    reason: str
