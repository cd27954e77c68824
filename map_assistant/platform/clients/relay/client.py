"""HTTP client for the chat relay.

Provides the transport used by the run coordinator: one method per relay
endpoint, each a single request/response exchange. Failures of any kind
surface as ``TransportError`` subclasses.
"""

from typing import Any

import httpx
import structlog
from pydantic import ValidationError

from map_assistant.platform.clients.relay.config import RelayClientConfig
from map_assistant.platform.clients.relay.exceptions import (
    RelayConnectionError,
    RelayHTTPError,
    RelayProtocolError,
    RelayTimeoutError,
)
from map_assistant.platform.clients.relay.models import ListResponse, ToolResult
from map_assistant.platform.observability import correlation_id_ctx, relay_timer

logger = structlog.get_logger(__name__)


async def _inject_request_id(request: httpx.Request) -> None:
    """Tag each outgoing request with the current correlation ID.

    Note: Must be async because httpx AsyncClient awaits event hooks.
    """
    correlation_id = correlation_id_ctx.get()
    if correlation_id:
        request.headers["X-Request-ID"] = correlation_id


class RelayClient:
    """Async client for the relay backend.

    Endpoints:
        POST /chat/new     -> {"threadId"}
        POST /chat/send    -> {"runId"}
        POST /chat/list    -> {"messages", "run", "status"}
        POST /chat/submit  -> 200
        POST /chat/audio   -> {"runId"}
    """

    def __init__(
        self,
        base_url: str,
        config: RelayClientConfig | None = None,
        httpx_client: httpx.AsyncClient | None = None,
    ):
        """Initialize the client.

        Args:
            base_url: Base URL of the relay.
            config: Optional client configuration.
            httpx_client: Optional pre-configured HTTP client.
        """
        self._base_url = base_url.rstrip("/")
        self._config = config or RelayClientConfig()
        self._httpx_client = httpx_client
        self._owns_httpx_client = httpx_client is None

    @property
    def base_url(self) -> str:
        return self._base_url

    async def close(self) -> None:
        """Close the underlying HTTP client if this instance created it."""
        if self._owns_httpx_client and self._httpx_client is not None:
            await self._httpx_client.aclose()
            self._httpx_client = None

    async def __aenter__(self) -> "RelayClient":
        """Async context manager entry."""
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        """Async context manager exit."""
        await self.close()

    async def create_conversation(self) -> str:
        """Create a new conversation thread.

        Returns:
            The new conversation ID.
        """
        body = await self._post("create_conversation", "/chat/new")
        return self._require_str(body, "threadId", "create_conversation")

    async def send_message(self, conversation_id: str, text: str) -> str:
        """Add a user message to a conversation and start a run.

        The relay performs both remote steps in order; a failure of either
        fails this call.

        Args:
            conversation_id: The conversation to add the message to.
            text: The user's message.

        Returns:
            The ID of the started run.
        """
        body = await self._post(
            "send_message",
            "/chat/send",
            json={"threadId": conversation_id, "text": text},
        )
        return self._require_str(body, "runId", "send_message")

    async def send_audio(
        self,
        conversation_id: str,
        audio: bytes,
        content_type: str = "audio/webm",
    ) -> str:
        """Upload recorded audio; the relay transcribes it and starts a run.

        Args:
            conversation_id: The conversation to add the message to.
            audio: Raw encoded audio.
            content_type: MIME type of ``audio``.

        Returns:
            The ID of the started run.
        """
        body = await self._post(
            "send_audio",
            "/chat/audio",
            params={"threadId": conversation_id},
            content=audio,
            headers={"Content-Type": content_type},
        )
        return self._require_str(body, "runId", "send_audio")

    async def list_messages(self, conversation_id: str, run_id: str | None = None) -> ListResponse:
        """Fetch the message snapshot and, when ``run_id`` is given, the run.

        Args:
            conversation_id: The conversation to list.
            run_id: Optional run whose status should be included.

        Returns:
            The parsed listing. Messages are in the order the relay sent them.
        """
        payload: dict[str, Any] = {"threadId": conversation_id}
        if run_id is not None:
            payload["runId"] = run_id
        body = await self._post("poll", "/chat/list", json=payload)
        try:
            return ListResponse.model_validate(body)
        except ValidationError as e:
            raise RelayProtocolError(f"malformed listing: {e}", operation="poll") from e

    async def submit_tool_outputs(
        self,
        conversation_id: str,
        run_id: str,
        results: list[ToolResult],
    ) -> None:
        """Submit a complete batch of tool outputs for a run.

        Args:
            conversation_id: The run's conversation.
            run_id: The run waiting on the outputs.
            results: One result per pending invocation.
        """
        await self._post(
            "submit_tool_outputs",
            "/chat/submit",
            json={
                "threadId": conversation_id,
                "runId": run_id,
                "outputs": [result.to_wire() for result in results],
            },
            expect_json=False,
        )

    def _get_http_client(self) -> httpx.AsyncClient:
        if self._httpx_client is None:
            headers = {}
            if self._config.api_key:
                headers["Authorization"] = f"Bearer {self._config.api_key}"
            self._httpx_client = httpx.AsyncClient(
                headers=headers,
                timeout=httpx.Timeout(self._config.timeout_seconds),
                event_hooks={"request": [_inject_request_id]},
            )
            self._owns_httpx_client = True
        return self._httpx_client

    async def _post(
        self,
        operation: str,
        path: str,
        *,
        expect_json: bool = True,
        **kwargs: Any,
    ) -> Any:
        """POST to the relay and decode the response.

        Args:
            operation: Operation name for logs, metrics and errors.
            path: Endpoint path below the base URL.
            expect_json: Whether the response body must be JSON.
            **kwargs: Passed through to ``httpx.AsyncClient.post``.

        Returns:
            The decoded JSON body, or None when ``expect_json`` is False.

        Raises:
            TransportError: For any failure reaching the relay or reading its answer.
        """
        url = f"{self._base_url}{path}"
        client = self._get_http_client()

        with relay_timer(operation):
            try:
                response = await client.post(url, **kwargs)
            except httpx.TimeoutException as e:
                raise RelayTimeoutError(
                    str(e) or type(e).__name__,
                    operation=operation,
                    timeout_seconds=self._config.timeout_seconds,
                ) from e
            except httpx.HTTPError as e:
                raise RelayConnectionError(
                    str(e) or type(e).__name__,
                    operation=operation,
                    url=url,
                ) from e

            if response.is_error:
                logger.warning(
                    "relay_request_failed",
                    operation=operation,
                    status_code=response.status_code,
                )
                raise RelayHTTPError(response.status_code, response.text[:200], operation=operation)

            if not expect_json:
                return None

            try:
                return response.json()
            except ValueError as e:
                raise RelayProtocolError(f"response is not JSON: {e}", operation=operation) from e

    @staticmethod
    def _require_str(body: Any, key: str, operation: str) -> str:
        if not isinstance(body, dict):
            raise RelayProtocolError(f"expected a JSON object, got {type(body).__name__}", operation=operation)
        value = body.get(key)
        if not isinstance(value, str) or not value:
            raise RelayProtocolError(f"response has no '{key}'", operation=operation)
        return value

