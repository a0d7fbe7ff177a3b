"""OpenAI chat completions client for JSON responses."""

import json
import re
from typing import Any

import httpx
import structlog

from cpq.config import settings
from cpq.utils.request_retry import RequestRetryConfig, get_request_retrying

logger = structlog.get_logger(__name__)

# Completions are slow; retry only network and gateway failures
OPENAI_RETRY_CONFIG = RequestRetryConfig(max_attempts=3, min_wait=2.0, max_wait=10.0, retry_server_errors=True)

_FENCE_RE = re.compile(r"^\s*```(?:json)?\s*(.*?)\s*```\s*$", re.DOTALL)


class OpenAIError(Exception):
    """OpenAI API error."""

    pass


class OpenAIRateLimitError(OpenAIError):
    """OpenAI API rate limit exceeded (HTTP 429)."""

    pass


class OpenAIConfigurationError(OpenAIError):
    """API key missing or rejected (HTTP 401)."""

    pass


def strip_markdown_fences(content: str) -> str:
    """Remove a ```json ... ``` wrapper some models put around JSON output."""
    match = _FENCE_RE.match(content)
    return match.group(1) if match else content.strip()


class OpenAIService:
    """Minimal client for the chat completions endpoint."""

    def __init__(self, transport: httpx.AsyncBaseTransport | None = None):
        self._transport = transport

    async def complete_json(
        self,
        system_prompt: str,
        user_prompt: str,
        *,
        temperature: float = 0.7,
    ) -> dict[str, Any]:
        """Run a chat completion and parse the reply as a JSON object.

        Raises:
            OpenAIRateLimitError: The API answered 429
            OpenAIConfigurationError: The API key is missing or invalid
            OpenAIError: Any other failure, including unparsable output
        """
        if not settings.openai_api_key:
            raise OpenAIConfigurationError("OpenAI API key not configured")

        payload = {
            "model": settings.openai_model,
            "messages": [
                {"role": "system", "content": system_prompt},
                {"role": "user", "content": user_prompt},
            ],
            "response_format": {"type": "json_object"},
            "temperature": temperature,
        }

        async def make_request(client: httpx.AsyncClient) -> dict[str, Any]:
            response = await client.post(
                f"{settings.openai_api_url.rstrip('/')}/chat/completions",
                json=payload,
                headers={"Authorization": f"Bearer {settings.openai_api_key}"},
                timeout=settings.openai_timeout,
            )
            if response.status_code == 429:
                raise OpenAIRateLimitError("OpenAI rate limit exceeded, try again shortly")
            if response.status_code == 401:
                raise OpenAIConfigurationError("OpenAI rejected the API key")
            response.raise_for_status()
            data: dict[str, Any] = response.json()
            return data

        try:
            async with httpx.AsyncClient(transport=self._transport) as client:
                async for attempt in get_request_retrying(OPENAI_RETRY_CONFIG):
                    with attempt:
                        if attempt.retry_state.attempt_number > 1:
                            logger.warning(
                                "Retrying OpenAI request",
                                attempt=attempt.retry_state.attempt_number,
                            )
                        completion = await make_request(client)
        except httpx.HTTPStatusError as e:
            logger.error(
                "OpenAI API error",
                status_code=e.response.status_code,
                response_body=e.response.text[:1000],
            )
            raise OpenAIError(f"OpenAI API returned status {e.response.status_code}") from e
        except httpx.RequestError as e:
            raise OpenAIError(
                f"OpenAI request failed after {OPENAI_RETRY_CONFIG.max_attempts} attempts: {e}"
            ) from e

        try:
            content = completion["choices"][0]["message"]["content"]
            result = json.loads(strip_markdown_fences(content))
        except (KeyError, IndexError, TypeError, json.JSONDecodeError) as e:
            raise OpenAIError("OpenAI returned an unparsable response") from e
        if not isinstance(result, dict):
            raise OpenAIError("OpenAI response is not a JSON object")

        logger.info(
            "OpenAI completion finished",
            model=completion.get("model"),
            total_tokens=(completion.get("usage") or {}).get("total_tokens"),
        )
        return result
