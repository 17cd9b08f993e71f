"""Gmail implementation of ``MailboxProvider``.

The Google client is synchronous, so each API call runs in a worker
thread under a timeout. A call that does not answer in time is reported
as a ``ProviderError``; nothing is retried.
"""

from __future__ import annotations

import asyncio
import base64
import logging
from email.mime.text import MIMEText
from typing import Any, Callable

from google.auth.exceptions import GoogleAuthError
from google.oauth2.credentials import Credentials
from googleapiclient.discovery import Resource, build
from googleapiclient.errors import HttpError

from mail_triage.config import TriageSettings
from mail_triage.exceptions import ProviderError
from mail_triage.gmail.parser import parse_message
from mail_triage.gmail.query import build_query
from mail_triage.mailbox.base import MailboxProvider
from mail_triage.models import Account, Message, MessageFilter, OutgoingReply

logger = logging.getLogger(__name__)


def default_service_factory(account: Account) -> Resource:
    """Build a new API resource. One is never shared between worker threads."""
    creds = Credentials(token=account.credential)
    return build("gmail", "v1", credentials=creds, cache_discovery=False)


class GmailProvider(MailboxProvider):
    """Mailbox operations against the Gmail v1 API.

    Args:
        service_factory: builds an API resource for an account.
        timeout: seconds before a call is reported as failed.
        concurrency: parallel detail fetches in ``list_recent``.
        excerpt_length: characters kept in ``Message.body_excerpt``.
    """

    def __init__(
        self,
        service_factory: Callable[[Account], Resource] = default_service_factory,
        timeout: float = 30.0,
        concurrency: int = 5,
        excerpt_length: int = 500,
    ):
        self._service_factory = service_factory
        self.timeout = timeout
        self.concurrency = concurrency
        self.excerpt_length = excerpt_length

    @classmethod
    def from_settings(
        cls,
        settings: TriageSettings,
        service_factory: Callable[[Account], Resource] = default_service_factory,
    ) -> GmailProvider:
        return cls(
            service_factory=service_factory,
            timeout=settings.provider_timeout,
            concurrency=settings.fetch_concurrency,
            excerpt_length=settings.body_excerpt_length,
        )

    async def _call(self, what: str, fn: Callable[[], Any]) -> Any:
        try:
            return await asyncio.wait_for(asyncio.to_thread(fn), timeout=self.timeout)
        except asyncio.TimeoutError as e:
            raise ProviderError(f"{what} timed out after {self.timeout}s", status=408) from e
        except HttpError as e:
            reason = getattr(e, "reason", None) or str(e)
            raise ProviderError(f"{what} failed: {reason}", status=int(e.resp.status)) from e
        except (OSError, GoogleAuthError) as e:
            raise ProviderError(f"{what} failed: {e}") from e

    async def list_recent(self, account: Account, filter: MessageFilter) -> list[Message]:
        query = build_query(filter)
        logger.info(f"Listing messages for {account.mailbox_address} with query: {query}")

        all_ids = await self._call(
            "List messages",
            lambda: _list_message_ids(
                self._service_factory(account), query, filter.max_results,
            ),
        )
        message_ids = all_ids[:filter.detail_limit]
        logger.info(f"Found {len(all_ids)} messages, fetching {len(message_ids)}")

        semaphore = asyncio.Semaphore(self.concurrency)

        async def fetch(msg_id: str) -> Message | None:
            async with semaphore:
                try:
                    return await self.get_detail(account, msg_id)
                except ProviderError as e:
                    logger.warning(f"Failed to fetch message {msg_id}: {e}")
                    return None

        results = await asyncio.gather(*(fetch(m) for m in message_ids))
        return [m for m in results if m is not None]

    async def get_detail(self, account: Account, message_id: str) -> Message:
        service = self._service_factory(account)
        raw = await self._call(
            f"Get message {message_id}",
            lambda: service.users().messages().get(
                userId="me", id=message_id, format="full",
            ).execute(),
        )
        return parse_message(raw, account_id=account.id, excerpt_length=self.excerpt_length)

    async def create_draft(self, account: Account, reply: OutgoingReply) -> str:
        service = self._service_factory(account)
        body = {"message": {"raw": _encode_reply(reply), "threadId": reply.thread_id}}
        result = await self._call(
            "Create draft",
            lambda: service.users().drafts().create(userId="me", body=body).execute(),
        )
        logger.info(f"Saved draft {result.get('id')} in thread {reply.thread_id}")
        return result.get("id", "")

    async def send(self, account: Account, reply: OutgoingReply) -> str:
        service = self._service_factory(account)
        body = {"raw": _encode_reply(reply), "threadId": reply.thread_id}
        result = await self._call(
            "Send message",
            lambda: service.users().messages().send(userId="me", body=body).execute(),
        )
        logger.info(f"Sent {result.get('id')} in thread {reply.thread_id}")
        return result.get("id", "")

    async def modify_labels(
        self,
        account: Account,
        message_id: str,
        add: list[str] | None = None,
        remove: list[str] | None = None,
    ) -> None:
        service = self._service_factory(account)
        body = {"addLabelIds": add or [], "removeLabelIds": remove or []}
        await self._call(
            f"Modify labels on {message_id}",
            lambda: service.users().messages().modify(
                userId="me", id=message_id, body=body,
            ).execute(),
        )


def _list_message_ids(service: Resource, query: str, max_results: int) -> list[str]:
    """List message IDs matching the query, handling pagination."""
    ids: list[str] = []
    page_token = None

    while len(ids) < max_results:
        kwargs: dict = {
            "userId": "me",
            "q": query,
            "maxResults": min(max_results - len(ids), 100),
        }
        if page_token:
            kwargs["pageToken"] = page_token

        response = service.users().messages().list(**kwargs).execute()
        messages = response.get("messages", [])
        if not messages:
            break

        ids.extend(msg["id"] for msg in messages)
        page_token = response.get("nextPageToken")
        if not page_token:
            break

    return ids[:max_results]


def _encode_reply(reply: OutgoingReply) -> str:
    message = MIMEText(reply.body)
    message["To"] = reply.to
    message["Subject"] = reply.subject
    if reply.in_reply_to:
        message["In-Reply-To"] = reply.in_reply_to
        message["References"] = reply.in_reply_to
    return base64.urlsafe_b64encode(message.as_bytes()).decode()
