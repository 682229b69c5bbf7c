import gzip

import pytest

from dmarc_report_viewer.message_store import (
    EmailMessageStore,
    MessageHeader,
    UnknownMessageError,
)

from .sample_emails import (
    REPORT_BASENAME,
    REPORT_SUBJECT,
    create_email_with_attachment,
    create_gzip_report,
    create_minimal_email,
    create_text_attachment,
)


@pytest.mark.asyncio
async def test_returns_displayed_message(report_eml):
    store = EmailMessageStore.from_files(report_eml)
    assert await store.get_displayed_message() == MessageHeader(
        id=str(report_eml), subject=REPORT_SUBJECT
    )


@pytest.mark.asyncio
async def test_returns_no_displayed_message_if_none_is_set():
    store = EmailMessageStore({"msg-1": create_minimal_email()})
    assert await store.get_displayed_message() is None


@pytest.mark.asyncio
async def test_returns_lower_cased_headers_and_recipient_addresses():
    store = EmailMessageStore(
        {"msg-1": create_minimal_email(to="DMARC <DMARC-Report@Example.com>, x@y.z")}
    )
    headers = await store.get_full_headers("msg-1")
    assert headers["subject"] == ["Minimal email"]
    assert headers["to"] == ["DMARC-Report@Example.com", "x@y.z"]


@pytest.mark.asyncio
async def test_lists_attachments_in_document_order():
    msg = create_email_with_attachment(
        create_text_attachment("Hello", "notes.txt"), create_gzip_report()
    )
    store = EmailMessageStore({"msg-1": msg})
    attachments = await store.list_attachments("msg-1")
    assert [a.display_name for a in attachments] == [
        "notes.txt",
        f"{REPORT_BASENAME}.xml.gz",
    ]


@pytest.mark.asyncio
async def test_returns_attachment_bytes(report_eml):
    store = EmailMessageStore.from_files(report_eml)
    message_id = str(report_eml)
    (attachment,) = await store.list_attachments(message_id)
    content = await store.get_attachment_bytes(message_id, attachment.part_ref)
    assert content.startswith(b"PK")


@pytest.mark.asyncio
async def test_returns_gzip_attachment_bytes():
    store = EmailMessageStore(
        {"msg-1": create_email_with_attachment(create_gzip_report("<feedback/>"))}
    )
    (attachment,) = await store.list_attachments("msg-1")
    content = await store.get_attachment_bytes("msg-1", attachment.part_ref)
    assert gzip.decompress(content) == b"<feedback/>"


@pytest.mark.asyncio
async def test_raises_for_unknown_message():
    store = EmailMessageStore({})
    with pytest.raises(UnknownMessageError):
        await store.get_full_headers("missing")


@pytest.mark.asyncio
async def test_raises_for_unknown_part():
    store = EmailMessageStore({"msg-1": create_minimal_email()})
    with pytest.raises(KeyError):
        await store.get_attachment_bytes("msg-1", "42")
