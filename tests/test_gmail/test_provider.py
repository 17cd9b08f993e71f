"""Tests for the Gmail mailbox provider."""

import asyncio
import base64
import time
from unittest.mock import MagicMock

import pytest
from googleapiclient.errors import HttpError

from mail_triage.config import TriageSettings
from mail_triage.exceptions import ProviderError
from mail_triage.gmail.provider import GmailProvider
from mail_triage.models import Account, MessageFilter, OutgoingReply


def _raw(msg_id, body="Hello"):
    return {
        "id": msg_id,
        "threadId": f"t-{msg_id}",
        "payload": {
            "mimeType": "text/plain",
            "headers": [
                {"name": "From", "value": "alice@example.com"},
                {"name": "Subject", "value": f"Subject {msg_id}"},
            ],
            "body": {"data": base64.urlsafe_b64encode(body.encode()).decode()},
        },
    }


@pytest.fixture
def gmail():
    service = MagicMock()
    provider = GmailProvider(service_factory=lambda account: service, timeout=5)
    account = Account(id="me@example.com", mailbox_address="me@example.com", credential="tok")
    return provider, service, account


def _reply():
    return OutgoingReply(
        thread_id="t1", to="alice@example.com", subject="Re: Hi", body="Thanks", in_reply_to="m1",
    )


def _http_error(status):
    resp = MagicMock(status=status, reason="Service Unavailable")
    return HttpError(resp, b"")


def _get_by_id(failing=()):
    def get(userId, id, format):
        request = MagicMock()
        if id in failing:
            request.execute.side_effect = _http_error(404)
        else:
            request.execute.return_value = _raw(id)
        return request
    return get


def test_list_recent_fetches_details_up_to_limit(gmail):
    provider, service, account = gmail
    service.users().messages().list().execute.return_value = {
        "messages": [{"id": f"m{i}"} for i in range(5)],
    }
    service.users().messages().get.side_effect = _get_by_id()

    messages = asyncio.run(provider.list_recent(account, MessageFilter(detail_limit=3)))

    assert [m.id for m in messages] == ["m0", "m1", "m2"]
    assert all(m.account_id == "me@example.com" for m in messages)


def test_list_recent_skips_messages_that_fail(gmail):
    provider, service, account = gmail
    service.users().messages().list().execute.return_value = {
        "messages": [{"id": "m0"}, {"id": "m1"}],
    }
    service.users().messages().get.side_effect = _get_by_id(failing=("m1",))

    messages = asyncio.run(provider.list_recent(account, MessageFilter()))

    assert [m.id for m in messages] == ["m0"]


def test_list_recent_failure_raises_provider_error(gmail):
    provider, service, account = gmail
    service.users().messages().list().execute.side_effect = _http_error(503)

    with pytest.raises(ProviderError) as excinfo:
        asyncio.run(provider.list_recent(account, MessageFilter()))
    assert excinfo.value.status == 503


def test_create_draft_threads_reply(gmail):
    provider, service, account = gmail
    service.users().drafts().create().execute.return_value = {"id": "d1"}

    draft_id = asyncio.run(provider.create_draft(account, _reply()))

    assert draft_id == "d1"
    body = service.users().drafts().create.call_args.kwargs["body"]
    assert body["message"]["threadId"] == "t1"
    raw = base64.urlsafe_b64decode(body["message"]["raw"]).decode()
    assert "To: alice@example.com" in raw
    assert "Subject: Re: Hi" in raw
    assert "In-Reply-To: m1" in raw


def test_send_returns_sent_id(gmail):
    provider, service, account = gmail
    service.users().messages().send().execute.return_value = {"id": "s1"}

    assert asyncio.run(provider.send(account, _reply())) == "s1"
    body = service.users().messages().send.call_args.kwargs["body"]
    assert body["threadId"] == "t1"


def test_send_failure_is_not_retried(gmail):
    provider, service, account = gmail
    send = service.users().messages().send()
    send.execute.side_effect = _http_error(500)
    send.execute.reset_mock()

    with pytest.raises(ProviderError) as excinfo:
        asyncio.run(provider.send(account, _reply()))

    assert excinfo.value.status == 500
    assert send.execute.call_count == 1


def test_archive_removes_inbox_label(gmail):
    provider, service, account = gmail
    service.users().messages().modify().execute.return_value = {}

    asyncio.run(provider.archive(account, "m1"))

    kwargs = service.users().messages().modify.call_args.kwargs
    assert kwargs["id"] == "m1"
    assert kwargs["body"] == {"addLabelIds": [], "removeLabelIds": ["INBOX"]}


def test_non_response_is_reported_as_failure():
    service = MagicMock()
    service.users().messages().modify().execute.side_effect = lambda: time.sleep(0.3)
    provider = GmailProvider(service_factory=lambda account: service, timeout=0.01)
    account = Account(id="a", mailbox_address="a@example.com", credential="tok")

    with pytest.raises(ProviderError, match="timed out") as excinfo:
        asyncio.run(provider.archive(account, "m1"))
    assert excinfo.value.status == 408


def test_each_detail_fetch_uses_its_own_service():
    services = []

    def factory(account):
        service = MagicMock()
        service.users().messages().list().execute.return_value = {
            "messages": [{"id": f"m{i}"} for i in range(3)],
        }
        service.users().messages().get.side_effect = _get_by_id()
        services.append(service)
        return service

    provider = GmailProvider(service_factory=factory, timeout=5)
    account = Account(id="me@example.com", mailbox_address="me@example.com", credential="tok")

    messages = asyncio.run(provider.list_recent(account, MessageFilter()))

    assert sorted(m.id for m in messages) == ["m0", "m1", "m2"]
    assert len(services) == 4
    for service in services[1:]:
        assert service.users().messages().get.call_count == 1


def test_from_settings_applies_timeout_and_excerpt_length():
    settings = TriageSettings(provider_timeout=7.5, body_excerpt_length=40, fetch_concurrency=2)
    factory = MagicMock()

    provider = GmailProvider.from_settings(settings, service_factory=factory)

    assert provider.timeout == 7.5
    assert provider.excerpt_length == 40
    assert provider.concurrency == 2


def test_excerpt_length_is_applied_to_parsed_messages(gmail):
    _, service, account = gmail
    provider = GmailProvider.from_settings(
        TriageSettings(body_excerpt_length=4), service_factory=lambda account: service,
    )
    service.users().messages().get.side_effect = _get_by_id()

    message = asyncio.run(provider.get_detail(account, "m1"))

    assert message.body == "Hello"
    assert message.body_excerpt == "Hell"


def test_network_error_becomes_provider_error(gmail):
    provider, service, account = gmail
    service.users().messages().send().execute.side_effect = ConnectionResetError("reset")

    with pytest.raises(ProviderError, match="reset") as excinfo:
        asyncio.run(provider.send(account, _reply()))
    assert excinfo.value.status is None


def test_programming_errors_are_not_masked(gmail):
    provider, service, account = gmail
    service.users().messages().send().execute.side_effect = KeyError("threadId")

    with pytest.raises(KeyError):
        asyncio.run(provider.send(account, _reply()))
