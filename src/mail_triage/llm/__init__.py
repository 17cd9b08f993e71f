"""LLM client wrapper (Anthropic Claude)."""

from mail_triage.llm.client import AsyncLLMClient, parse_json_reply

__all__ = ["AsyncLLMClient", "parse_json_reply"]
