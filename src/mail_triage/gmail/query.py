"""Gmail search query building for ``MessageFilter``."""

from typing import List

from mail_triage.models import MessageFilter


def build_query(message_filter: MessageFilter) -> str:
    """Render a filter as a Gmail search query.

    Unread mail and the recent window are or'd, so older unread messages
    still show up. Labels are and'd on top.
    """
    window = []
    if message_filter.include_unread:
        window.append('is:unread')
    if message_filter.newer_than_days > 0:
        window.append(f'newer_than:{message_filter.newer_than_days}d')

    terms = []
    if window:
        terms.append(_or(window))
    terms.extend(f'label:{lbl}' for lbl in message_filter.labels)
    return _and(terms) if terms else ''


def _and(queries: List[str]) -> str:
    if len(queries) == 1:
        return queries[0]
    return f'({" ".join(queries)})'


def _or(queries: List[str]) -> str:
    if len(queries) == 1:
        return queries[0]
    return '{' + ' '.join(queries) + '}'
