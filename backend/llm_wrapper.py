"""
LLM gateway for GraphQL query generation (Anthropic Messages API).

One synchronous call per generation, SDK retries disabled:
  POST /v1/messages  headers: x-api-key, anthropic-version
  body: {model, max_tokens, messages: [{role: "user", content: <prompt>}]}
  expects: {content: [{type: "text", text: "..."}, ...]}

Failures:
  - missing key / non-2xx / connection error -> UpstreamError
  - 2xx with no usable text block            -> MalformedUpstreamResponse
The API key never appears in a raised message or details string.

Usage:
  from backend.llm_wrapper import LLMGatewayClient
  gw = LLMGatewayClient(api_key=settings.anthropic_api_key)
  query = gw.generate(prompt)
"""

import re
import time
from typing import Any, Optional

import httpx
from anthropic import (
    Anthropic,
    APIConnectionError,
    APIError,
    APIResponseValidationError,
    APIStatusError,
)

from backend import monitoring
from backend.config import DEFAULT_MODEL, DEFAULT_MAX_TOKENS, DEFAULT_TIMEOUT
from backend.errors import UpstreamError, MalformedUpstreamResponse

MOCK_QUERY = "query {\n  __typename\n}"

# ```graphql ... ``` wrapping the whole answer
_WRAPPING_FENCE = re.compile(r"^(`{3,})[\w-]*[ \t]*\n(.*?)\n?\1\s*$", re.DOTALL)


def normalize_query_text(text: str) -> str:
    """Strip whitespace and one markdown fence wrapping the whole answer."""
    text = text.strip()
    m = _WRAPPING_FENCE.match(text)
    if m:
        text = m.group(2).strip()
    return text


def _upstream_message(body: Any, status_code: Optional[int]) -> str:
    """Pull the provider's diagnostic out of an error body."""
    if isinstance(body, dict):
        err = body.get("error")
        if isinstance(err, dict):
            msg = err.get("message") or err.get("type")
            if msg:
                return str(msg)
        elif isinstance(err, str) and err:
            return err
        if isinstance(body.get("message"), str) and body["message"]:
            return body["message"]
    elif isinstance(body, str) and body.strip():
        return body.strip()[:500]
    return f"upstream returned status {status_code}"


def _first_text(resp: Any) -> str:
    content = getattr(resp, "content", None)
    if not content:
        raise MalformedUpstreamResponse("LLM response contained no content")
    for block in content:
        text = block.get("text") if isinstance(block, dict) else getattr(block, "text", None)
        if text is None:
            continue
        if not isinstance(text, str) or not text.strip():
            break
        return text
    raise MalformedUpstreamResponse("LLM response contained no text block")


class LLMGatewayClient:
    def __init__(self, api_key: str, model: str = DEFAULT_MODEL,
                 max_tokens: int = DEFAULT_MAX_TOKENS,
                 base_url: Optional[str] = None,
                 timeout: float = DEFAULT_TIMEOUT,
                 http_client: Optional[httpx.Client] = None,
                 mock: bool = False):
        self.api_key = api_key or ""
        self.model = model
        self.max_tokens = max_tokens
        self.base_url = base_url
        self.timeout = timeout
        self.http_client = http_client
        self.mock = mock
        self._anthropic: Optional[Anthropic] = None

    def _client(self) -> Anthropic:
        if not self.api_key:
            raise UpstreamError("LLM provider is not configured (missing ANTHROPIC_API_KEY)")
        if self._anthropic is None:
            kwargs = {
                "api_key": self.api_key,
                "max_retries": 0,
                "timeout": self.timeout,
            }
            if self.base_url:
                kwargs["base_url"] = self.base_url
            if self.http_client is not None:
                kwargs["http_client"] = self.http_client
            self._anthropic = Anthropic(**kwargs)
        return self._anthropic

    def _redact(self, text: Optional[str]) -> Optional[str]:
        if text and self.api_key:
            return text.replace(self.api_key, "[redacted]")
        return text

    def generate(self, prompt: str) -> str:
        """Send one prompt, return the normalized query text."""
        if self.mock:
            monitoring.logger.info("Mock LLM call", extra={"prompt_chars": len(prompt)})
            return MOCK_QUERY

        client = self._client()
        start = time.time()
        try:
            resp = client.messages.create(
                model=self.model,
                max_tokens=self.max_tokens,
                messages=[{"role": "user", "content": prompt}],
            )
        except APIStatusError as e:
            monitoring.observe_upstream(start, "error")
            raw = self._redact(e.response.text)
            monitoring.logger.error("LLM provider returned an error",
                                    extra={"status_code": e.status_code, "body_chars": len(raw or "")})
            msg = self._redact(_upstream_message(e.body, e.status_code))
            raise UpstreamError(f"Failed to generate query: {msg}",
                                details=raw, status_code=e.status_code) from e
        except APIConnectionError as e:
            monitoring.observe_upstream(start, "error")
            monitoring.logger.error("LLM provider unreachable", extra={"reason": type(e).__name__})
            raise UpstreamError("Failed to generate query: LLM provider unreachable") from e
        except APIResponseValidationError as e:
            monitoring.observe_upstream(start, "malformed")
            raise MalformedUpstreamResponse("LLM response had an unexpected shape") from e
        except APIError as e:
            monitoring.observe_upstream(start, "error")
            raise UpstreamError(f"Failed to generate query: {self._redact(e.message)}") from e

        try:
            text = _first_text(resp)
        except MalformedUpstreamResponse:
            monitoring.observe_upstream(start, "malformed")
            monitoring.logger.error("LLM response had no usable text",
                                    extra={"response_id": getattr(resp, "id", None)})
            raise
        query = normalize_query_text(text)
        if not query:
            monitoring.observe_upstream(start, "malformed")
            raise MalformedUpstreamResponse("LLM response contained an empty query")
        monitoring.observe_upstream(start, "success")
        return query
