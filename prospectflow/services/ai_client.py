"""OpenAI-compatible chat completion client used for light message personalization."""

import json
import logging
import re
from typing import Optional

import httpx

logger = logging.getLogger(__name__)

_JSON_OBJECT = re.compile(r"\{[\s\S]*\}")


class AICompletionClient:
    """Best-effort completions. Callers must treat every failure as "no answer"."""

    def __init__(
        self,
        api_key: str = "",
        api_url: str = "https://ai.gateway.lovable.dev/v1/chat/completions",
        model: str = "google/gemini-2.5-flash",
        timeout: float = 30.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.api_key = api_key
        self.api_url = api_url
        self.model = model
        self.timeout = timeout
        self.transport = transport

    @property
    def enabled(self) -> bool:
        return bool(self.api_key)

    async def complete(self, prompt: str, system: Optional[str] = None) -> str:
        """Return the first choice's text. Raises RuntimeError / httpx.HTTPError on failure."""
        if not self.enabled:
            raise RuntimeError("AI completion is not configured")

        messages = []
        if system:
            messages.append({"role": "system", "content": system})
        messages.append({"role": "user", "content": prompt})

        headers = {
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json",
        }
        payload = {"model": self.model, "messages": messages}

        async with httpx.AsyncClient(timeout=self.timeout, transport=self.transport) as client:
            response = await client.post(self.api_url, headers=headers, json=payload)

            if response.status_code != 200:
                raise RuntimeError(f"AI completion error: {response.status_code} - {response.text[:200]}")

            result = response.json()
            return (result["choices"][0]["message"]["content"] or "").strip()


def extract_json_object(text: str) -> Optional[dict]:
    """Pull the first {...} block out of a model answer (models like to add prose or fences)."""
    match = _JSON_OBJECT.search(text or "")
    if not match:
        return None
    try:
        parsed = json.loads(match.group(0))
    except json.JSONDecodeError:
        return None
    return parsed if isinstance(parsed, dict) else None
