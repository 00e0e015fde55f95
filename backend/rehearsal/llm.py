"""
Thin async client for an OpenAI-compatible chat-completions endpoint.

Every failure mode (transport error, non-200, unparseable body, blank content)
surfaces as RemoteFailure so ResilientCaller can route to fallback content.
"""

from __future__ import annotations

import json
import logging
import re
from typing import Any, Callable, Dict, Optional

import httpx

from rehearsal import config
from rehearsal.errors import RemoteFailure, RemoteUnavailable

LOG = logging.getLogger("rehearsal.llm")


class ChatClient:
    def __init__(
        self,
        api_key: Optional[Callable[[], Optional[str]]] = None,
        url: Optional[str] = None,
        model: Optional[str] = None,
        timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self._api_key = api_key or config.llm_api_key
        self.url = url or config.LLM_URL
        self.model = model or config.LLM_MODEL
        self.timeout = timeout if timeout is not None else config.LLM_TIMEOUT
        self._transport = transport

    @property
    def configured(self) -> bool:
        return bool(self._api_key())

    async def complete(
        self,
        system: str,
        user: str,
        *,
        op: str = "chat",
        max_tokens: int = 800,
        temperature: float = 0.7,
    ) -> str:
        api_key = self._api_key()
        if not api_key:
            raise RemoteUnavailable("OPENAI_API_KEY is not configured")
        headers = {
            "Authorization": f"Bearer {api_key}",
            "Accept": "application/json",
            "Content-Type": "application/json",
        }
        payload = {
            "model": self.model,
            "messages": [
                {"role": "system", "content": system},
                {"role": "user", "content": user},
            ],
            "max_tokens": max_tokens,
            "temperature": temperature,
            "stream": False,
        }
        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
                LOG.info("Calling LLM (%s): model=%s prompt_len=%s", op, self.model, len(user))
                resp = await client.post(self.url, headers=headers, json=payload)
        except httpx.HTTPError as exc:
            raise RemoteFailure(f"{op} request failed: {exc}") from exc

        if resp.status_code != 200:
            raise RemoteFailure(f"{op} responded with {resp.status_code}: {resp.text[:200]}")

        try:
            data = resp.json()
            choices = data.get("choices") or []
            content = (choices[0].get("message", {}).get("content") or "") if choices else ""
        except (ValueError, AttributeError, IndexError) as exc:
            raise RemoteFailure(f"{op} returned an unreadable body") from exc
        content = str(content).strip()
        if not content:
            raise RemoteFailure(f"{op} returned empty content")
        return content


def extract_json_block(text: str) -> Optional[Dict[str, Any]]:
    """Tolerant JSON extraction so we survive code fences or preambles."""
    try:
        data = json.loads(text)
    except json.JSONDecodeError:
        match = re.search(r"\{.*\}", text, flags=re.DOTALL)
        if not match:
            return None
        try:
            data = json.loads(match.group(0))
        except json.JSONDecodeError:
            return None
    return data if isinstance(data, dict) else None
