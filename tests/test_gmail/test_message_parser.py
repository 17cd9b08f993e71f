"""Tests for Gmail payload parsing."""

import base64
from datetime import datetime, timezone

from mail_triage.gmail.parser import parse_message
from mail_triage.models import Message


def _encode(text):
    return base64.urlsafe_b64encode(text.encode()).decode()


def _make_raw_message(body_text="Hello world", mime_type="text/plain", **extra):
    raw = {
        "id": "msg123",
        "threadId": "thread456",
        "snippet": "Hello",
        "labelIds": ["INBOX", "UNREAD"],
        "payload": {
            "mimeType": mime_type,
            "headers": [
                {"name": "From", "value": "Alice <alice@example.com>"},
                {"name": "To", "value": "bob@example.com"},
                {"name": "Subject", "value": "Test Subject"},
                {"name": "Date", "value": "Mon, 1 Jan 2024 12:00:00 +0000"},
            ],
            "body": {"data": _encode(body_text)},
        },
    }
    raw.update(extra)
    return raw


def test_parse_plain_message():
    result = parse_message(_make_raw_message("Hello world"), account_id="bob@example.com")
    assert isinstance(result, Message)
    assert result.id == "msg123"
    assert result.thread_id == "thread456"
    assert result.sender == "Alice <alice@example.com>"
    assert result.subject == "Test Subject"
    assert result.body == "Hello world"
    assert result.snippet == "Hello"
    assert result.account_id == "bob@example.com"
    assert result.attachments == []
    assert result.category is None


def test_received_at_from_date_header():
    result = parse_message(_make_raw_message())
    assert result.received_at == datetime(2024, 1, 1, 12, 0, tzinfo=timezone.utc)


def test_received_at_prefers_internal_date():
    result = parse_message(_make_raw_message(internalDate="1704110400000"))
    assert result.received_at == datetime(2024, 1, 1, 12, 0, tzinfo=timezone.utc)


def test_body_excerpt_truncated():
    result = parse_message(_make_raw_message("x" * 2000))
    assert len(result.body_excerpt) == 500
    assert len(result.body) == 2000


def test_html_body_is_stripped():
    result = parse_message(_make_raw_message(
        "<html><head><style>p {}</style></head><body><p>Hi   there</p></body></html>",
        mime_type="text/html",
    ))
    assert result.body == "Hi there"


def test_attachments_collected_from_nested_parts():
    raw = {
        "id": "m2",
        "threadId": "t2",
        "payload": {
            "mimeType": "multipart/mixed",
            "headers": [{"name": "Subject", "value": "Court order"}],
            "parts": [
                {
                    "mimeType": "multipart/alternative",
                    "parts": [
                        {"mimeType": "text/plain", "body": {"data": _encode("See attached")}},
                    ],
                },
                {
                    "mimeType": "application/pdf",
                    "filename": "order.pdf",
                    "body": {"attachmentId": "att-1", "size": 2048},
                },
            ],
        },
    }
    result = parse_message(raw)
    assert result.body == "See attached"
    assert len(result.attachments) == 1
    att = result.attachments[0]
    assert att.filename == "order.pdf"
    assert att.mime_type == "application/pdf"
    assert att.size == 2048
    assert att.attachment_id == "att-1"
    assert result.has_attachments is True


def test_parse_missing_headers():
    raw = {
        "id": "msg789",
        "threadId": "thread000",
        "payload": {"mimeType": "text/plain", "headers": [], "body": {"data": ""}},
    }
    result = parse_message(raw)
    assert result.subject == "(no subject)"
    assert result.sender == ""
    assert result.received_at is None
