"""
OpenAI client for structured blueprint extraction.

Requests run in JSON mode and every failure surfaces as ExtractionError:
a missing API key, an API error, an empty reply or a reply cut off at the
token limit (a truncated blueprint would silently lose domains).
"""

import logging
import os
from typing import Optional

from openai import AsyncOpenAI, OpenAIError

from services.errors import ExtractionError

log = logging.getLogger(__name__)

GPT_MODEL = os.getenv("GPT_MODEL", "gpt-4o-mini")

EXTRACTION_SYSTEM_PROMPT = (
    "You extract certification exam outlines from exam guides. "
    "Reply with a single JSON object and nothing else."
)

_client: Optional[AsyncOpenAI] = None


def _get_client() -> AsyncOpenAI:
    global _client
    if _client is None:
        api_key = os.getenv("OPENAI_API_KEY")
        if not api_key:
            raise ExtractionError("LLM call failed: OPENAI_API_KEY is not set")
        _client = AsyncOpenAI(api_key=api_key)
    return _client


async def request_json(prompt: str, max_tokens: int, model: Optional[str] = None) -> str:
    """Send one extraction prompt and return the model's JSON text."""
    model = model or GPT_MODEL
    client = _get_client()
    try:
        response = await client.chat.completions.create(
            model=model,
            messages=[
                {"role": "system", "content": EXTRACTION_SYSTEM_PROMPT},
                {"role": "user", "content": prompt},
            ],
            temperature=0.1,
            max_tokens=max_tokens,
            response_format={"type": "json_object"},
        )
    except OpenAIError as e:
        log.exception("OpenAI request to %s failed", model)
        raise ExtractionError(f"LLM call failed: {e}") from e

    choice = response.choices[0]
    if response.usage is not None:
        log.info(
            "%s used %d prompt + %d completion tokens",
            model, response.usage.prompt_tokens, response.usage.completion_tokens,
        )
    if choice.finish_reason == "length":
        raise ExtractionError(
            f"LLM reply was truncated at {max_tokens} tokens; raise BLUEPRINT_EXTRACTION_MAX_TOKENS"
        )
    content = choice.message.content
    if not content:
        raise ExtractionError("LLM call failed: empty reply")
    return content
