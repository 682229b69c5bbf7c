from dataclasses import dataclass
from datetime import datetime, tzinfo
from enum import Enum
from typing import Mapping, Optional, Sequence, Union

from dmarc_report_viewer.model.dmarc_aggregate_report import (
    AlignmentMode,
    AuthResult,
    PolicyAction,
    UnrecognizedToken,
)

WEEKDAY_NAMES: Mapping[str, Sequence[str]] = {
    "en": ("Mon", "Tue", "Wed", "Thu", "Fri", "Sat", "Sun"),
    "ja": ("月", "火", "水", "木", "金", "土", "日"),
}

POLICY_ACTION_EXPLANATIONS: Mapping[PolicyAction, str] = {
    PolicyAction.NONE_VALUE: "none (no action)",
    PolicyAction.QUARANTINE: "quarantine (recommend isolation)",
    PolicyAction.REJECT: "reject (refuse)",
}

ALIGNMENT_MODE_EXPLANATIONS: Mapping[AlignmentMode, str] = {
    AlignmentMode.RELAXED: "r (relaxed; loose match permitted)",
    AlignmentMode.STRICT: "s (strict; exact match required)",
}


class MarkerKind(Enum):
    PASS_VALUE = "pass"
    FAIL = "fail"
    WARNING = "warning"


@dataclass(frozen=True)
class AuthResultMarker:
    kind: MarkerKind
    text: str


AUTH_RESULT_MARKERS: Mapping[AuthResult, AuthResultMarker] = {
    AuthResult.PASS_VALUE: AuthResultMarker(MarkerKind.PASS_VALUE, "pass"),
    AuthResult.FAIL: AuthResultMarker(MarkerKind.FAIL, "fail"),
    AuthResult.SOFTFAIL: AuthResultMarker(MarkerKind.WARNING, "softfail"),
    AuthResult.NONE_VALUE: AuthResultMarker(MarkerKind.WARNING, "none"),
}


def explain_policy_action(raw: Union[str, PolicyAction, UnrecognizedToken]) -> str:
    action = PolicyAction.from_token(raw)
    if isinstance(action, UnrecognizedToken):
        return action.raw
    return POLICY_ACTION_EXPLANATIONS[action]


def explain_alignment_mode(raw: Union[str, AlignmentMode, UnrecognizedToken]) -> str:
    mode = AlignmentMode.from_token(raw)
    if isinstance(mode, UnrecognizedToken):
        return mode.raw
    return ALIGNMENT_MODE_EXPLANATIONS[mode]


def explain_auth_result(
    raw: Union[str, AuthResult, UnrecognizedToken]
) -> Union[AuthResultMarker, str]:
    """Map an authentication result to a pass, fail or warning marker.

    Unknown results are returned as the unchanged raw string so that callers
    can tell them apart from the markers.
    """
    result = AuthResult.from_token(raw)
    if isinstance(result, UnrecognizedToken):
        return result.raw
    return AUTH_RESULT_MARKERS[result]


def format_timestamp(
    timestamp: int,
    weekday_names: Sequence[str] = WEEKDAY_NAMES["en"],
    tz: Optional[tzinfo] = None,
) -> str:
    """Format seconds since the epoch as ``YYYY-MM-DD(weekday) HH:MM:SS``.

    Without an explicit ``tz`` the local timezone is used.
    """
    moment = datetime.fromtimestamp(timestamp, tz)
    weekday = weekday_names[moment.weekday()]
    return moment.strftime(f"%Y-%m-%d({weekday}) %H:%M:%S")
