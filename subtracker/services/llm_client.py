"""Quote of the day from a Large Language Model provider over HTTP.

Supported providers are ``gemini``, ``openai`` and ``ollama``. A key (or, for
Ollama, the URL or model) of ``stub`` or ``debug`` short-circuits to a canned
quote, so local runs and tests never leave the machine.
"""
from __future__ import annotations

import os
from typing import Any, Awaitable, Callable

import httpx

from subtracker.core.config import settings

QUOTE_PROMPT = "tell me a inspiring quote. response and author only"
QUOTE_TEMPERATURE = 0.8
REQUEST_TIMEOUT_SECONDS = 30.0
STUB_QUOTE = '"Beware of little expenses; a small leak will sink a great ship." - Benjamin Franklin'
STUB_VALUES = {"stub", "debug"}


def _setting(name: str) -> str:
    """Environment wins over ``Settings`` so a running process can be repointed."""
    return (os.getenv(name) or str(getattr(settings, name, "") or "")).strip()


def _is_stub(*values: str) -> bool:
    return any(value.lower() in STUB_VALUES for value in values)


async def _post_json(url: str, payload: dict[str, Any], **kwargs: Any) -> Any:
    async with httpx.AsyncClient(timeout=REQUEST_TIMEOUT_SECONDS) as client:
        response = await client.post(url, json=payload, **kwargs)
        response.raise_for_status()
    return response.json()


async def _ask_gemini(prompt: str) -> str:
    api_key = _setting("GEMINI_API_KEY")
    if not api_key:
        raise ValueError("GEMINI_API_KEY is not configured.")
    if _is_stub(api_key):
        return STUB_QUOTE

    model = _setting("GEMINI_MODEL") or "gemini-2.5-flash"
    data = await _post_json(
        f"https://generativelanguage.googleapis.com/v1beta/models/{model}:generateContent",
        {
            "contents": [{"parts": [{"text": prompt}]}],
            "generationConfig": {"temperature": QUOTE_TEMPERATURE},
        },
        params={"key": api_key},
    )
    try:
        return data["candidates"][0]["content"]["parts"][0]["text"].strip()
    except (KeyError, IndexError, TypeError) as exc:
        raise ValueError("Invalid response received from Gemini.") from exc


async def _ask_openai(prompt: str) -> str:
    api_key = _setting("OPENAI_API_KEY")
    if not api_key:
        raise ValueError("OPENAI_API_KEY is not configured.")
    if _is_stub(api_key):
        return STUB_QUOTE

    data = await _post_json(
        "https://api.openai.com/v1/chat/completions",
        {
            "model": _setting("OPENAI_MODEL") or "gpt-4.1-mini",
            "messages": [{"role": "user", "content": prompt}],
            "temperature": QUOTE_TEMPERATURE,
        },
        headers={"Authorization": f"Bearer {api_key}"},
    )
    try:
        return data["choices"][0]["message"]["content"].strip()
    except (KeyError, IndexError, TypeError) as exc:
        raise ValueError("Invalid response received from OpenAI.") from exc


async def _ask_ollama(prompt: str) -> str:
    base_url = _setting("OLLAMA_URL")
    model = _setting("OLLAMA_MODEL") or "phi3"
    if not base_url:
        raise ValueError("OLLAMA_URL is not configured.")
    if _is_stub(base_url, model):
        return STUB_QUOTE

    data = await _post_json(base_url, {"model": model, "prompt": prompt, "stream": False})
    text = ""
    if isinstance(data, dict):
        text = data.get("response") or (data.get("message") or {}).get("content") or ""
    if not text:
        raise ValueError("Invalid response received from Ollama.")
    return str(text).strip()


PROVIDERS: dict[str, Callable[[str], Awaitable[str]]] = {
    "gemini": _ask_gemini,
    "openai": _ask_openai,
    "ollama": _ask_ollama,
}


async def generate_quote() -> str:
    """Return a short inspiring quote with its author from the configured provider.

    Raises ``ValueError`` for missing configuration or an unusable response,
    and lets ``httpx.HTTPError`` through for transport failures.
    """
    provider = _setting("LLM_PROVIDER").lower() or "gemini"
    ask = PROVIDERS.get(provider)
    if ask is None:
        raise ValueError("Invalid LLM_PROVIDER. Use 'gemini', 'openai' or 'ollama'.")
    return await ask(QUOTE_PROMPT)
