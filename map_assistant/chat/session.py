"""Chat session wiring for front ends.

Bundles the coordinator, poll loop, tool registry, map view and message
log for one conversation.
"""

import asyncio
from collections.abc import Callable

import structlog

from map_assistant.chat.coordinator import CoordinatorConfig, PollResult, RunCoordinator
from map_assistant.chat.exceptions import ChatError
from map_assistant.chat.map_view import MapView, create_map_registry
from map_assistant.chat.message_log import MessageLogView
from map_assistant.chat.poller import PollerConfig, RunPoller
from map_assistant.chat.storage import ConversationStore
from map_assistant.platform.clients.relay.client import RelayClient
from map_assistant.platform.clients.relay.exceptions import TransportError
from map_assistant.platform.clients.relay.models import RunStatus
from map_assistant.platform.settings import ChatSettings

logger = structlog.get_logger(__name__)


class ChatSession:
    """A conversation with the map assistant.

    Attributes:
        map_view: Map state changed by the assistant's function calls.
        log_view: Rendered message history.
        coordinator: The run coordinator.
        poller: The poll loop for the active run.
    """

    def __init__(
        self,
        transport: RelayClient,
        store: ConversationStore,
        *,
        coordinator_config: CoordinatorConfig | None = None,
        poller_config: PollerConfig | None = None,
        map_view: MapView | None = None,
        on_update: Callable[[PollResult], None] | None = None,
        on_error: Callable[[Exception], None] | None = None,
    ):
        self.map_view = map_view or MapView()
        self.log_view = MessageLogView()
        self.coordinator = RunCoordinator(
            transport,
            store,
            create_map_registry(self.map_view),
            log_view=self.log_view,
            config=coordinator_config,
        )
        self.poller = RunPoller(self.coordinator, poller_config, on_update=on_update, on_error=on_error)

    @classmethod
    def from_settings(
        cls,
        settings: ChatSettings,
        transport: RelayClient,
        on_update: Callable[[PollResult], None] | None = None,
        on_error: Callable[[Exception], None] | None = None,
    ) -> "ChatSession":
        """Create a session configured from chat settings."""
        return cls(
            transport,
            ConversationStore(settings.state_path),
            coordinator_config=CoordinatorConfig(settle_delay_seconds=settings.settle_delay_seconds),
            poller_config=PollerConfig(
                interval_seconds=settings.poll_interval_seconds,
                max_consecutive_failures=settings.max_poll_failures,
            ),
            on_update=on_update,
            on_error=on_error,
        )

    @property
    def conversation_id(self) -> str | None:
        return self.coordinator.state.conversation_id

    @property
    def is_running(self) -> bool:
        return self.coordinator.state.is_running

    async def open(self) -> str:
        """Start or restore the conversation and load its history.

        A run restored from the store is picked up by the poll loop.

        Returns:
            The conversation ID.
        """
        conversation_id = await self.coordinator.start_conversation()
        await self.coordinator.poll(conversation_id)
        run_id = self.coordinator.state.active_run_id
        if run_id is not None and not self.poller.is_running:
            self.poller.start(conversation_id, run_id)
        return conversation_id

    async def send(self, text: str) -> str:
        """Submit a typed turn and start polling its run."""
        conversation_id = await self.coordinator.start_conversation()
        await self._drain_finished_loop()
        run_id = await self.coordinator.submit_turn(conversation_id, text)
        self.poller.start(conversation_id, run_id)
        return run_id

    async def send_audio(self, audio: bytes, content_type: str = "audio/webm") -> str:
        """Submit a recorded turn and start polling its run."""
        conversation_id = await self.coordinator.start_conversation()
        await self._drain_finished_loop()
        run_id = await self.coordinator.submit_audio(conversation_id, audio, content_type)
        self.poller.start(conversation_id, run_id)
        return run_id

    async def wait_for_reply(self) -> RunStatus | None:
        """Wait for the active run's poll loop to finish."""
        return await self.poller.wait()

    def reset(self) -> None:
        """Stop polling and discard the conversation."""
        self.poller.cancel()
        self.coordinator.reset()

    async def _drain_finished_loop(self) -> None:
        # a loop whose run already cleared may still be doing its final refresh
        if not self.poller.is_running or self.coordinator.state.is_running:
            return
        try:
            await self.poller.wait()
        except (ChatError, TransportError) as e:
            logger.info("previous_poll_loop_failed", run_id=self.poller.run_id, error=str(e))
        except asyncio.CancelledError:
            # re-raise only when this task itself is being cancelled
            current = asyncio.current_task()
            if current is not None and current.cancelling():
                raise
