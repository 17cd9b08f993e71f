"""Parse Gmail API message payloads into ``Message`` objects."""

from __future__ import annotations

import base64
import re
from datetime import datetime, timezone

import dateutil.parser
from bs4 import BeautifulSoup

from mail_triage.models import AttachmentInfo, Message


def parse_message(
    raw_message: dict,
    account_id: str = "",
    excerpt_length: int = 500,
    max_body_length: int = 10000,
) -> Message:
    """Extract a ``Message`` from a Gmail API payload (format=full).

    Pure parsing; no network calls.
    """
    payload = raw_message.get("payload", {})
    headers = _extract_headers(payload)

    body = _extract_body(payload)
    if len(body) > max_body_length:
        body = body[:max_body_length]

    return Message(
        id=raw_message["id"],
        thread_id=raw_message.get("threadId", ""),
        sender=headers.get("from", ""),
        subject=headers.get("subject", "(no subject)"),
        received_at=_received_at(raw_message, headers),
        snippet=raw_message.get("snippet", ""),
        body_excerpt=body[:excerpt_length],
        body=body,
        attachments=_collect_attachments(payload),
        account_id=account_id,
    )


def _extract_headers(payload: dict) -> dict[str, str]:
    return {
        h["name"].lower(): h["value"]
        for h in payload.get("headers", [])
    }


def _received_at(raw_message: dict, headers: dict[str, str]) -> datetime | None:
    internal = raw_message.get("internalDate")
    if internal:
        try:
            return datetime.fromtimestamp(int(internal) / 1000, tz=timezone.utc)
        except (TypeError, ValueError):
            pass
    date_header = headers.get("date")
    if not date_header:
        return None
    try:
        parsed = dateutil.parser.parse(date_header)
    except (ValueError, OverflowError):
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def _extract_body(payload: dict) -> str:
    mime_type = payload.get("mimeType", "")

    if mime_type == "text/plain":
        return _decode_body_data(payload)

    if mime_type.startswith("multipart/"):
        parts = payload.get("parts", [])
        for part in parts:
            if part.get("mimeType") == "text/plain":
                text = _decode_body_data(part)
                if text:
                    return text
        for part in parts:
            text = _extract_body(part)
            if text:
                return text

    if mime_type == "text/html":
        html = _decode_body_data(payload)
        return _strip_html(html) if html else ""

    return ""


def _decode_body_data(payload: dict) -> str:
    data = payload.get("body", {}).get("data", "")
    if not data:
        return ""
    try:
        return base64.urlsafe_b64decode(data).decode("utf-8", errors="replace")
    except Exception:
        return ""


def _strip_html(html: str) -> str:
    soup = BeautifulSoup(html, "html.parser")
    for tag in soup(["script", "style", "head"]):
        tag.decompose()
    text = soup.get_text(separator=" ")
    return re.sub(r"\s+", " ", text).strip()


def _collect_attachments(payload: dict) -> list[AttachmentInfo]:
    found: list[AttachmentInfo] = []
    for part in payload.get("parts", []):
        if part.get("filename"):
            body = part.get("body", {})
            found.append(AttachmentInfo(
                filename=part["filename"],
                mime_type=part.get("mimeType", "application/octet-stream"),
                size=int(body.get("size", 0) or 0),
                attachment_id=body.get("attachmentId"),
            ))
        if part.get("parts"):
            found.extend(_collect_attachments(part))
    return found
