import pytest

from dmarc_report_viewer.classification import (
    has_report_recipient,
    has_report_subject,
    is_aggregate_report,
)


def test_classifies_report_by_subject_and_recipient():
    assert is_aggregate_report(
        "Report Domain: example.com", ["DMARC-Report@Example.com"]
    )


def test_rejects_other_subject():
    assert not is_aggregate_report("Hello", ["DMARC-Report@Example.com"])


def test_rejects_other_recipients():
    assert not is_aggregate_report("Report Domain: example.com", ["other@example.com"])


@pytest.mark.parametrize(
    "subject",
    [
        "Report Domain: example.com Submitter: google.com Report-ID: 123",
        "  report domain: example.com",
        "REPORT  DOMAIN:",
        "Report\tdomain: anything at all",
    ],
)
def test_report_subjects(subject):
    assert has_report_subject(subject)


@pytest.mark.parametrize(
    "subject",
    [
        "",
        "Fwd: Report Domain: example.com",
        "Report Domain example.com",
        "Reportdomain: example.com",
    ],
)
def test_non_report_subjects(subject):
    assert not has_report_subject(subject)


def test_any_recipient_may_match():
    assert has_report_recipient(["someone@example.com", "dmarc-report@example.com"])


def test_no_recipients_do_not_match():
    assert not has_report_recipient([])
    assert not has_report_recipient(["x-dmarc-report@example.com"])
