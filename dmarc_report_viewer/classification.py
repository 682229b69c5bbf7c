import re
from typing import Iterable

SUBJECT_PATTERN = re.compile(r"^\s*report\s+domain:", re.IGNORECASE)
REPORT_RECIPIENT_PREFIX = "dmarc-report@"


def has_report_subject(subject: str) -> bool:
    return SUBJECT_PATTERN.match(subject) is not None


def has_report_recipient(recipients: Iterable[str]) -> bool:
    return any(
        address.lower().startswith(REPORT_RECIPIENT_PREFIX) for address in recipients
    )


def is_aggregate_report(subject: str, recipients: Iterable[str]) -> bool:
    """Decide from the headers whether a message is a DMARC aggregate report.

    Both the subject line and one of the recipients have to match. A negative
    result is not an error, it just means there is nothing to display.
    """
    return has_report_subject(subject) and has_report_recipient(recipients)
