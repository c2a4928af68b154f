"""Text completion collaborator, backed by OpenAI chat completions.

Every component that needs an LLM goes through ``CompletionClient.complete``.
This ensures:
  - Model and HTTP timeout are read from env.
  - JSON response format is requested (callers parse with ``sanitize_json``).
  - 1 retry on transport failure / non-200 / empty output.
  - Failures surface as ``ExternalServiceError`` so every caller can fall
    back deterministically.
"""

from __future__ import annotations

import json
import re
import time
from typing import Any, Dict, List, Optional, Protocol

import httpx

from ..config import get_openai_key, get_openai_model, get_openai_request_timeout
from ..exceptions import ExternalServiceError

_OPENAI_API_URL = "https://api.openai.com/v1/chat/completions"


class CompletionClient(Protocol):
    async def complete(
        self,
        system_prompt: str,
        user_prompt: str,
        max_tokens: int,
        temperature: float,
    ) -> str:
        ...


# ---------------------------------------------------------------------------
# JSON sanitizer: extracts valid JSON from LLM output
# ---------------------------------------------------------------------------
def sanitize_json(raw: str) -> str:
    """Extract a JSON object from raw LLM output.

    Handles:
      - Markdown fences (```json ... ```)
      - Leading/trailing whitespace and BOM
      - Prose before/after JSON
      - Trailing commas before } or ]

    Raises ValueError if no JSON object is found.
    """
    text = raw.strip().lstrip("\ufeff")

    if text.startswith("```"):
        parts = text.split("```")
        text = parts[1] if len(parts) >= 3 else text[3:]

    text = text.strip()
    if text.lower().startswith("json"):
        text = text[4:].strip()

    brace_idx = text.find("{")
    if brace_idx == -1:
        raise ValueError("LLM did not return a JSON object (no '{' found)")
    text = text[brace_idx:]

    rbrace_idx = text.rfind("}")
    if rbrace_idx == -1:
        raise ValueError("LLM did not return a JSON object (no '}' found)")
    text = text[: rbrace_idx + 1]

    return re.sub(r",\s*([}\]])", r"\1", text)


def parse_json_object(raw: str) -> Dict[str, Any]:
    """``sanitize_json`` + ``json.loads``; raises ValueError on any problem."""
    try:
        parsed = json.loads(sanitize_json(raw))
    except json.JSONDecodeError as exc:
        raise ValueError(f"invalid JSON: {exc}") from exc
    if not isinstance(parsed, dict):
        raise ValueError("JSON root is not an object")
    return parsed


def build_payload(
    *,
    model: str,
    messages: List[Dict[str, str]],
    max_tokens: int,
    temperature: float,
) -> Dict[str, Any]:
    return {
        "model": model,
        "messages": messages,
        "max_tokens": max_tokens,
        "temperature": temperature,
        "response_format": {"type": "json_object"},
    }


class OpenAICompletionClient:
    """``CompletionClient`` over the OpenAI HTTP API.

    ``transport`` lets tests plug in an ``httpx.MockTransport``.
    """

    def __init__(
        self,
        *,
        api_key: Optional[str] = None,
        model: Optional[str] = None,
        timeout: Optional[float] = None,
        max_retries: int = 1,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.api_key = get_openai_key() if api_key is None else api_key
        self.model = model or get_openai_model()
        self.timeout = timeout if timeout is not None else get_openai_request_timeout()
        self.max_retries = max_retries
        self._transport = transport

    @property
    def available(self) -> bool:
        return bool(self.api_key)

    async def complete(
        self,
        system_prompt: str,
        user_prompt: str,
        max_tokens: int,
        temperature: float,
    ) -> str:
        if not self.available:
            print("⚠️  [COMPLETION] API key missing (OPENAI_API_KEY)")
            raise ExternalServiceError("openai", "OPENAI_API_KEY not set")

        headers = {
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json",
        }
        payload = build_payload(
            model=self.model,
            messages=[
                {"role": "system", "content": system_prompt},
                {"role": "user", "content": user_prompt},
            ],
            max_tokens=max_tokens,
            temperature=temperature,
        )

        last_error = "no attempt made"
        for attempt in range(self.max_retries + 1):
            t0 = time.time()
            try:
                print(f"🧠 [COMPLETION] Calling {self.model} (attempt {attempt + 1}/{self.max_retries + 1})")
                async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
                    response = await client.post(_OPENAI_API_URL, headers=headers, json=payload)
                duration = time.time() - t0
                print(f"📦 [COMPLETION] HTTP {response.status_code} ({duration:.1f}s)")

                if response.status_code != 200:
                    last_error = f"HTTP {response.status_code}: {response.text[:200]}"
                    continue

                data = response.json()
                content = (data["choices"][0]["message"]["content"] or "").strip()
                if not content:
                    last_error = "empty completion"
                    continue
                return content

            except httpx.TimeoutException:
                last_error = f"timeout after {time.time() - t0:.1f}s"
                print(f"❌ [COMPLETION] Timeout (attempt {attempt + 1})")
            except httpx.HTTPError as exc:
                last_error = f"transport error: {exc}"
                print(f"❌ [COMPLETION] Transport error: {exc}")
            except (KeyError, IndexError, TypeError, AttributeError, ValueError) as exc:
                last_error = f"unexpected response shape: {exc}"
                print(f"❌ [COMPLETION] Unexpected response: {exc}")

        raise ExternalServiceError("openai", last_error)
