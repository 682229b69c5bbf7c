import gzip
import io
import re
import zlib
from typing import Callable, Iterator, Mapping, Optional, Sequence, Type, Union
from zipfile import BadZipFile, ZipFile

import structlog
from lxml import etree

from dmarc_report_viewer.message_store import AttachmentDescriptor
from dmarc_report_viewer.model.dmarc_aggregate_report import (
    AlignmentMode,
    AuthResult,
    DmarcReport,
    PolicyAction,
    PolicyPublished,
    ProtocolToken,
    Record,
    ReportMetadata,
    UnrecognizedToken,
)

logger = structlog.get_logger()

REPORT_ARCHIVE_EXTENSIONS = (".zip", ".gz")
INTEGER_PATTERN = re.compile(r"[+-]?[0-9]+")


class ReportError(Exception):
    """Fatal error while extracting a report from a message."""


class AttachmentNotFoundError(ReportError):
    def __init__(self, attachments: Sequence[AttachmentDescriptor]):
        super().__init__()
        self.attachments = attachments

    def __str__(self):
        names = ", ".join(a.display_name for a in self.attachments) or "<none>"
        return f"No DMARC report archive among the attachments ({names})."


class DecompressError(ReportError):
    def __init__(self, filename: str, reason: str):
        super().__init__(filename, reason)
        self.filename = filename
        self.reason = reason

    def __str__(self):
        return f"Failed to decompress '{self.filename}': {self.reason}"


class UnsupportedFormatError(DecompressError):
    def __init__(self, filename: str):
        super().__init__(filename, "unsupported archive format")


class NoXmlMemberError(DecompressError):
    def __init__(self, filename: str):
        super().__init__(filename, "the ZIP archive contains no XML file")


class CorruptArchiveError(DecompressError):
    pass


class MalformedReportError(Exception):
    """The report payload is not well-formed XML.

    Unlike :class:`ReportError` this is recoverable: it is rendered as an
    explicit error marker instead of aborting the display.
    """


def locate_report_attachment(
    attachments: Sequence[AttachmentDescriptor],
) -> AttachmentDescriptor:
    for attachment in attachments:
        if attachment.display_name.lower().endswith(REPORT_ARCHIVE_EXTENSIONS):
            return attachment
    raise AttachmentNotFoundError(attachments)


def decompress_gzip(filename: str, gzip_bytes: bytes) -> str:
    try:
        return gzip.decompress(gzip_bytes).decode("utf-8")
    except (OSError, EOFError, zlib.error, UnicodeDecodeError) as err:
        raise CorruptArchiveError(filename, str(err)) from err


def decompress_zip(filename: str, zip_bytes: bytes) -> str:
    try:
        with ZipFile(io.BytesIO(zip_bytes), "r") as zip_file:
            xml_name = _first_xml_member(zip_file.namelist())
            if xml_name is None:
                raise NoXmlMemberError(filename)
            logger.debug("Selected ZIP member.", archive=filename, member=xml_name)
            with zip_file.open(xml_name, "r") as f:
                return f.read().decode("utf-8")
    except (BadZipFile, OSError, EOFError, zlib.error, UnicodeDecodeError) as err:
        raise CorruptArchiveError(filename, str(err)) from err


def _first_xml_member(names: Sequence[str]) -> Optional[str]:
    for name in names:
        if name.lower().endswith(".xml"):
            return name
    return None


file_extension_handlers: Mapping[str, Callable[[str, bytes], str]] = {
    ".gz": decompress_gzip,
    ".zip": decompress_zip,
}


def decompress_report(filename: str, content: bytes) -> str:
    lowered = filename.lower()
    for file_extension, handler in file_extension_handlers.items():
        if lowered.endswith(file_extension):
            return handler(filename, content)
    raise UnsupportedFormatError(filename)


def _local_name(element: etree._Element) -> str:
    return etree.QName(element).localname


def _descendants(element: etree._Element, name: str) -> Iterator[etree._Element]:
    for descendant in element.iterdescendants(etree.Element):
        if _local_name(descendant) == name:
            yield descendant


def _select(element: etree._Element, selector: str) -> Optional[etree._Element]:
    """Find the first descendant matching ``parent>child`` style selectors."""
    *parents, name = selector.split(">")
    for candidate in _descendants(element, name):
        node = candidate
        for parent_name in reversed(parents):
            node = node.getparent()
            if node is None or _local_name(node) != parent_name:
                break
        else:
            return candidate
    return None


def _text(element: etree._Element, selector: str) -> Optional[str]:
    found = _select(element, selector)
    if found is None:
        return None
    text = "".join(found.itertext()).strip()
    return text or None


def _integer(element: etree._Element, selector: str) -> Optional[int]:
    text = _text(element, selector)
    if text is None:
        return None
    if INTEGER_PATTERN.fullmatch(text) is None:
        logger.warning("Ignoring non-integer report field.", field=selector, value=text)
        return None
    return int(text)


def _token(
    element: etree._Element, selector: str, token_cls: Type[ProtocolToken]
) -> Optional[Union[ProtocolToken, UnrecognizedToken]]:
    text = _text(element, selector)
    return token_cls.from_token(text) if text is not None else None


def _parse_metadata(element: etree._Element) -> ReportMetadata:
    return ReportMetadata(
        org_name=_text(element, "org_name"),
        email=_text(element, "email"),
        report_id=_text(element, "report_id"),
        period_begin=_integer(element, "date_range>begin"),
        period_end=_integer(element, "date_range>end"),
    )


def _parse_policy(element: etree._Element) -> PolicyPublished:
    return PolicyPublished(
        domain=_text(element, "domain"),
        adkim=_token(element, "adkim", AlignmentMode),
        aspf=_token(element, "aspf", AlignmentMode),
        p=_token(element, "p", PolicyAction),
        sp=_token(element, "sp", PolicyAction),
        pct=_integer(element, "pct"),
    )


def _parse_record(element: etree._Element) -> Record:
    row = _select(element, "row")
    if row is None:
        return Record()

    return Record(
        source_ip=_text(row, "source_ip"),
        count=_integer(row, "count"),
        disposition=_token(row, "policy_evaluated>disposition", PolicyAction),
        dkim=_token(row, "policy_evaluated>dkim", AuthResult),
        spf=_token(row, "policy_evaluated>spf", AuthResult),
    )


def _report_parser() -> etree.XMLParser:
    return etree.XMLParser(resolve_entities=False, no_network=True)


def parse_aggregate_report(xml_text: str) -> DmarcReport:
    if not xml_text.strip():
        raise MalformedReportError("empty document")
    try:
        root = etree.fromstring(xml_text.encode("utf-8"), _report_parser())
    except etree.XMLSyntaxError as err:
        raise MalformedReportError(str(err)) from err

    metadata = next(_descendants_or_self(root, "report_metadata"), None)
    policy = next(_descendants_or_self(root, "policy_published"), None)
    report = DmarcReport(
        metadata=_parse_metadata(metadata) if metadata is not None else None,
        policy=_parse_policy(policy) if policy is not None else None,
        records=tuple(
            _parse_record(record) for record in _descendants_or_self(root, "record")
        ),
    )
    logger.debug("Parsed aggregate report.", record_count=len(report.records))
    return report


def _descendants_or_self(
    element: etree._Element, name: str
) -> Iterator[etree._Element]:
    if _local_name(element) == name:
        yield element
    yield from _descendants(element, name)
