import traceback
from dataclasses import dataclass
from typing import Optional, Union

import structlog

from dmarc_report_viewer.classification import is_aggregate_report
from dmarc_report_viewer.deserialization import (
    MalformedReportError,
    ReportError,
    decompress_report,
    locate_report_attachment,
    parse_aggregate_report,
)
from dmarc_report_viewer.message_store import MessageStore
from dmarc_report_viewer.model.dmarc_aggregate_report import (
    DmarcReport,
    MalformedReport,
)

logger = structlog.get_logger()

RenderModel = Optional[Union[DmarcReport, MalformedReport]]


class NoDisplayedMessageError(ReportError):
    def __str__(self):
        return "No displayed message is available."


@dataclass(frozen=True)
class AnalysisSuccess:
    result: RenderModel


@dataclass(frozen=True)
class AnalysisFailure:
    error: str
    detail: str


AnalysisResult = Union[AnalysisSuccess, AnalysisFailure]


async def extract_report(store: MessageStore, message_id: str) -> RenderModel:
    log = logger.bind(message_id=message_id)
    headers = await store.get_full_headers(message_id)
    subject = next(iter(headers.get("subject", ())), "")
    if not is_aggregate_report(subject, headers.get("to", ())):
        await log.adebug("Message is not a DMARC aggregate report.")
        return None

    attachment = locate_report_attachment(await store.list_attachments(message_id))
    await log.adebug("Located report attachment.", attachment=attachment.display_name)
    content = await store.get_attachment_bytes(message_id, attachment.part_ref)
    xml_text = decompress_report(attachment.display_name, content)
    try:
        return parse_aggregate_report(xml_text)
    except MalformedReportError as err:
        await log.awarning("Report XML is malformed.", reason=str(err))
        return MalformedReport(reason=str(err))


async def analyze(store: MessageStore, message_id: str) -> AnalysisResult:
    try:
        return AnalysisSuccess(await extract_report(store, message_id))
    except Exception as err:  # pylint: disable=broad-except
        await logger.awarning(
            "Failed to analyze message.", message_id=message_id, exc_info=err
        )
        return _failure(err)


async def analyze_displayed_message(store: MessageStore) -> AnalysisResult:
    try:
        header = await store.get_displayed_message()
        if header is None:
            raise NoDisplayedMessageError()
    except Exception as err:  # pylint: disable=broad-except
        await logger.awarning("Failed to get the displayed message.", exc_info=err)
        return _failure(err)
    return await analyze(store, header.id)


def _failure(err: Exception) -> AnalysisFailure:
    return AnalysisFailure(
        error=str(err) or err.__class__.__name__,
        detail="".join(
            traceback.format_exception(type(err), err, err.__traceback__)
        ),
    )
