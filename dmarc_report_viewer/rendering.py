from html import escape
from typing import Callable, Iterable, List, Optional, Sequence, Tuple, Union

import structlog

from dmarc_report_viewer.annotation import (
    WEEKDAY_NAMES,
    AuthResultMarker,
    MarkerKind,
    explain_alignment_mode,
    explain_auth_result,
    explain_policy_action,
    format_timestamp,
)
from dmarc_report_viewer.model.dmarc_aggregate_report import (
    DmarcReport,
    MalformedReport,
    PolicyPublished,
    Record,
    ReportMetadata,
)

logger = structlog.get_logger()

MALFORMED_REPORT_MESSAGE = "Failed to parse the DMARC report XML"

MARKER_STYLES = {
    MarkerKind.PASS_VALUE: ("green", "\N{WHITE HEAVY CHECK MARK}"),
    MarkerKind.FAIL: ("red", "\N{CROSS MARK}"),
    MarkerKind.WARNING: ("orange", "\N{WARNING SIGN}"),
}

STYLESHEET = """
.dmarcTable th {
  min-width: 140px;
  padding: 8px 12px;
  background: #f9f9f9;
  white-space: nowrap;
}
.dmarcTable td { padding: 8px 12px; }
.dmarcTable tr:nth-child(odd) td { background: #fff; }
.dmarcTable tr:nth-child(even) td { background: #f4f4f4; }
.dmarcTable tr.section td {
  background: #ddd;
  font-weight: bold;
  text-align: center;
  padding: 10px;
}
"""

# A section title or a (label, value) pair; values are display strings or
# authentication markers.
Value = Union[str, AuthResultMarker]
Line = Union[str, Tuple[str, Value]]


def _metadata_lines(
    metadata: ReportMetadata, weekday_names: Sequence[str]
) -> Iterable[Line]:
    yield "Report metadata"
    if metadata.period_begin is not None and metadata.period_end is not None:
        try:
            begin = format_timestamp(metadata.period_begin, weekday_names)
            end = format_timestamp(metadata.period_end, weekday_names)
        except (ValueError, OverflowError, OSError) as err:
            logger.warning(
                "Omitting unrepresentable reporting period.",
                begin=metadata.period_begin,
                end=metadata.period_end,
                reason=str(err),
            )
        else:
            yield ("Reporting period", f"{begin} ~ {end}")
    for label, value in (
        ("Organization", metadata.org_name),
        ("Contact", metadata.email),
        ("Report ID", metadata.report_id),
    ):
        if value is not None:
            yield (label, value)


def _policy_lines(policy: PolicyPublished) -> Iterable[Line]:
    yield "Published policy"
    if policy.domain is not None:
        yield ("Domain", policy.domain)
    if policy.adkim is not None:
        yield ("adkim", explain_alignment_mode(policy.adkim))
    if policy.aspf is not None:
        yield ("aspf", explain_alignment_mode(policy.aspf))
    if policy.p is not None:
        yield ("Policy (p)", explain_policy_action(policy.p))
    if policy.sp is not None:
        yield ("Subdomain policy (sp)", explain_policy_action(policy.sp))
    if policy.pct is not None:
        yield ("Percentage (pct)", str(policy.pct))


def _record_lines(number: int, record: Record) -> Iterable[Line]:
    yield f"Record #{number}"
    if record.source_ip is not None:
        yield ("Source IP", record.source_ip)
    if record.count is not None:
        yield ("Count", str(record.count))
    if record.disposition is not None:
        yield ("Disposition", explain_policy_action(record.disposition))
    if record.dkim is not None:
        yield ("DKIM", explain_auth_result(record.dkim))
    if record.spf is not None:
        yield ("SPF", explain_auth_result(record.spf))


def report_lines(report: DmarcReport, locale: str = "en") -> List[Line]:
    weekday_names = WEEKDAY_NAMES[locale]
    lines: List[Line] = []
    if report.metadata is not None:
        lines.extend(_metadata_lines(report.metadata, weekday_names))
    if report.policy is not None:
        lines.extend(_policy_lines(report.policy))
    for number, record in enumerate(report.records, start=1):
        lines.extend(_record_lines(number, record))
    return lines


def _html_value(value: Value) -> str:
    if isinstance(value, AuthResultMarker):
        color, symbol = MARKER_STYLES[value.kind]
        return f'<span style="color:{color};">{symbol} {escape(value.text)}</span>'
    return escape(value)


def _text_value(value: Value) -> str:
    if isinstance(value, AuthResultMarker):
        _, symbol = MARKER_STYLES[value.kind]
        return f"{symbol} {value.text}"
    return value


def _render(
    model: Optional[Union[DmarcReport, MalformedReport]],
    locale: str,
    render_section: Callable[[str], str],
    render_pair: Callable[[str, Value], str],
    render_error: Callable[[str], str],
) -> str:
    if model is None:
        return ""
    if isinstance(model, MalformedReport):
        return render_error(MALFORMED_REPORT_MESSAGE)
    return "\n".join(
        render_section(line) if isinstance(line, str) else render_pair(*line)
        for line in report_lines(model, locale)
    )


def render_rows(
    model: Optional[Union[DmarcReport, MalformedReport]], locale: str = "en"
) -> str:
    return _render(
        model,
        locale,
        render_section=lambda title: (
            f'<tr class="section"><td colspan="2">{escape(title)}</td></tr>'
        ),
        render_pair=lambda label, value: (
            f"<tr><th>{escape(label)}</th><td>{_html_value(value)}</td></tr>"
        ),
        render_error=lambda message: (
            f'<tr><td colspan="2" style="color:red;">{escape(message)}</td></tr>'
        ),
    )


def render_html(
    model: Optional[Union[DmarcReport, MalformedReport]], locale: str = "en"
) -> str:
    rows = render_rows(model, locale)
    if not rows:
        return ""
    return (
        '<div style="margin:10px 0;font-size:small;">\n'
        '<h3 style="margin:0 0 8px;">DMARC report details</h3>\n'
        '<table class="dmarcTable" style="width:auto;border-collapse:collapse;'
        'text-align:left;margin-left:8px;">\n'
        f"<tbody>\n{rows}\n</tbody>\n"
        "</table>\n"
        f"<style>{STYLESHEET}</style>\n"
        "</div>"
    )


def render_text(
    model: Optional[Union[DmarcReport, MalformedReport]], locale: str = "en"
) -> str:
    return _render(
        model,
        locale,
        render_section=lambda title: f"== {title} ==",
        render_pair=lambda label, value: f"{label}: {_text_value(value)}",
        render_error=lambda message: f"!! {message}",
    )
