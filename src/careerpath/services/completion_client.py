"""Client for an OpenAI-compatible chat completion service."""

import asyncio
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Optional

import httpx

from careerpath.models.config import LLMConfig
from careerpath.services.exceptions import (
    ClassifiedTransportError,
    CompletionStatus,
    QuotaExceededError,
    RateLimitedError,
    TransportError,
)
from careerpath.utils.logging import get_logger


logger = get_logger(__name__)


def classify_status(status_code: int) -> CompletionStatus:
    """Map an HTTP status code to a completion outcome."""
    if status_code == 429:
        return CompletionStatus.RATE_LIMITED
    if status_code == 402:
        return CompletionStatus.QUOTA_EXCEEDED
    if 200 <= status_code < 300 and status_code != 204:
        return CompletionStatus.OK
    return CompletionStatus.TRANSPORT_ERROR


def _error_for(status: CompletionStatus, status_code: int) -> ClassifiedTransportError:
    if status is CompletionStatus.RATE_LIMITED:
        return RateLimitedError(status_code=status_code)
    if status is CompletionStatus.QUOTA_EXCEEDED:
        return QuotaExceededError(status_code=status_code)
    return TransportError(f"AI gateway error: {status_code}", status_code=status_code)


def _resolve_request_id(request_id: Optional[str]) -> str:
    if request_id:
        return request_id
    current_task = asyncio.current_task()
    task_name = current_task.get_name() if current_task else None
    if task_name and task_name != "None":
        return task_name
    return "unknown"


class CompletionClient:
    """
    HTTP client for the completion service.

    One request per call, no automatic retry. Failures are raised as
    subclasses of ClassifiedTransportError so callers can tell a rate limit
    from a quota problem from everything else.
    """

    def __init__(self, config: LLMConfig):
        """
        Initialize completion client.

        Args:
            config: LLM configuration (endpoint, API key, model)
        """
        self.config = config
        self.timeout = httpx.Timeout(
            connect=10.0,
            read=60.0,  # Per-read timeout for streaming
            write=10.0,
            pool=10.0
        )

    @property
    def url(self) -> str:
        return str(self.config.endpoint).rstrip("/") + "/chat/completions"

    def _headers(self, bearer_token: Optional[str]) -> dict[str, str]:
        return {
            "Authorization": f"Bearer {bearer_token or self.config.api_key}",
            "Content-Type": "application/json",
        }

    def _payload(self, messages: list[dict[str, str]], stream: bool) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "model": self.config.model,
            "messages": messages,
        }
        if stream:
            payload["stream"] = True
        return payload

    async def _raise_for_status(self, response: httpx.Response, request_id: str) -> None:
        status = classify_status(response.status_code)
        if status is CompletionStatus.OK:
            return

        try:
            body = (await response.aread()).decode("utf-8", errors="replace")
        except httpx.HTTPError:
            body = ""

        log = logger.warning if status is not CompletionStatus.TRANSPORT_ERROR else logger.error
        log(
            "llm_http_error",
            request_id=request_id,
            status_code=response.status_code,
            status=status.value,
            body=body[:500],
        )
        raise _error_for(status, response.status_code)

    async def complete(
        self,
        messages: list[dict[str, str]],
        bearer_token: Optional[str] = None,
        request_id: Optional[str] = None,
    ) -> str:
        """
        Issue a non-streaming completion request.

        Args:
            messages: Ordered chat messages ({"role", "content"} dicts)
            bearer_token: Credential for the Authorization header (defaults to the API key)
            request_id: Optional identifier for logging

        Returns:
            ``choices[0].message.content`` as free text

        Raises:
            RateLimitedError: On HTTP 429
            QuotaExceededError: On HTTP 402
            TransportError: On any other failure, or when the body has no content
        """
        request_id = _resolve_request_id(request_id)
        payload = self._payload(messages, stream=False)

        logger.info(
            "llm_request_started",
            request_id=request_id,
            model=self.config.model,
            endpoint=str(self.config.endpoint),
            message_count=len(messages),
            stream=False,
        )
        logger.debug("llm_request_payload", request_id=request_id, payload=payload)

        try:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                response = await client.post(self.url, json=payload, headers=self._headers(bearer_token))
                await self._raise_for_status(response, request_id)
                data = response.json()
        except httpx.HTTPError as e:
            logger.error("llm_request_failed", request_id=request_id, error=str(e))
            raise TransportError(f"Request failed: {e}") from e
        except ValueError as e:
            logger.error("llm_response_not_json", request_id=request_id, error=str(e))
            raise TransportError("Response body is not valid JSON") from e

        try:
            content = data["choices"][0]["message"]["content"]
        except (KeyError, IndexError, TypeError):
            content = None

        if not isinstance(content, str):
            logger.error("llm_response_missing_content", request_id=request_id, response=data)
            raise TransportError("Response body has no message content")

        logger.info("llm_request_completed", request_id=request_id, content_length=len(content))
        logger.debug("llm_response_content", request_id=request_id, content=content)
        return content

    @asynccontextmanager
    async def stream(
        self,
        messages: list[dict[str, str]],
        bearer_token: Optional[str] = None,
        request_id: Optional[str] = None,
    ) -> AsyncIterator[AsyncIterator[bytes]]:
        """
        Open a streaming completion request.

        The response body is handed over untouched as an async iterator of
        byte chunks. Leaving the context closes the response and releases the
        connection, even if the body was not fully read.

        Example:
            >>> async with client.stream(messages, bearer_token=token) as body:
            ...     async for chunk in body:
            ...         frames = decoder.feed(chunk)

        Raises:
            RateLimitedError: On HTTP 429
            QuotaExceededError: On HTTP 402
            TransportError: On any other failure, including mid-stream read errors
        """
        request_id = _resolve_request_id(request_id)
        payload = self._payload(messages, stream=True)

        logger.info(
            "llm_request_started",
            request_id=request_id,
            model=self.config.model,
            endpoint=str(self.config.endpoint),
            message_count=len(messages),
            stream=True,
        )
        logger.debug("llm_request_payload", request_id=request_id, payload=payload)

        try:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                async with client.stream(
                    "POST", self.url, json=payload, headers=self._headers(bearer_token)
                ) as response:
                    await self._raise_for_status(response, request_id)
                    yield self._iter_body(response, request_id)
        except httpx.HTTPError as e:
            logger.error("llm_request_failed", request_id=request_id, error=str(e))
            raise TransportError(f"Request failed: {e}") from e

        logger.debug("llm_stream_closed", request_id=request_id)

    async def _iter_body(self, response: httpx.Response, request_id: str) -> AsyncIterator[bytes]:
        chunk_count = 0
        try:
            async for chunk in response.aiter_bytes():
                chunk_count += 1
                yield chunk
        except httpx.HTTPError as e:
            logger.error(
                "llm_stream_interrupted",
                request_id=request_id,
                chunk_count=chunk_count,
                error=str(e),
            )
            raise TransportError(f"Stream interrupted: {e}") from e

        logger.info("llm_request_completed", request_id=request_id, chunk_count=chunk_count)
