from email.message import EmailMessage
from pathlib import Path

import pytest
import structlog

from dmarc_report_viewer.message_store import EmailMessageStore

from .sample_emails import create_email_with_attachment, create_zip_report


@pytest.fixture(autouse=True)
def reset_structlog_config():
    yield None
    structlog.reset_defaults()


def create_store(msg: EmailMessage, message_id: str = "msg-1") -> EmailMessageStore:
    return EmailMessageStore({message_id: msg}, displayed_message_id=message_id)


@pytest.fixture(name="report_email")
def fixture_report_email() -> EmailMessage:
    return create_email_with_attachment(create_zip_report())


@pytest.fixture(name="report_eml")
def fixture_report_eml(tmp_path: Path, report_email: EmailMessage) -> Path:
    path = tmp_path / "report.eml"
    path.write_bytes(report_email.as_bytes())
    return path
