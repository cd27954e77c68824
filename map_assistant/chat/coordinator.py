"""Run coordination for one conversation.

The coordinator owns the conversation handle and the single active-run
slot. It submits turns, polls the relay, dispatches tool invocations to the
local registry and submits their outputs, and releases the slot once a run
reaches a terminal status.

It never schedules anything itself: polling cadence and the decision to
dispatch belong to the caller (see ``RunPoller``).
"""

import asyncio
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field

import structlog

from map_assistant.chat.exceptions import ConflictError, PartialSubmissionError
from map_assistant.chat.message_log import MessageLogView, order_oldest_first
from map_assistant.chat.storage import ConversationStore
from map_assistant.chat.tools import ToolRegistry, ToolSpec
from map_assistant.platform.clients.relay.client import RelayClient
from map_assistant.platform.clients.relay.models import (
    Message,
    Run,
    RunStatus,
    ToolInvocation,
    ToolResult,
)
from map_assistant.platform.observability import record_tool_call, start_turn

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class CoordinatorConfig:
    """Configuration for the run coordinator.

    Attributes:
        settle_delay_seconds: How long to keep the run slot after a run
            completes, while the remote side finishes writing its reply.
    """

    settle_delay_seconds: float = 5.0


@dataclass(frozen=True)
class CoordinatorState:
    """Read-only snapshot of the coordinator's state."""

    conversation_id: str | None = None
    active_run_id: str | None = None
    last_known_status: RunStatus | None = None

    @property
    def is_running(self) -> bool:
        return self.active_run_id is not None


@dataclass(frozen=True)
class PollResult:
    """Outcome of one poll.

    Attributes:
        messages: Message snapshot, oldest first.
        status: Run status, or None when no run was polled.
        pending_invocations: Tool invocations awaiting local results.
        run: The raw run object, when one was polled.
    """

    messages: list[Message] = field(default_factory=list)
    status: RunStatus | None = None
    pending_invocations: list[ToolInvocation] = field(default_factory=list)
    run: Run | None = None

    @property
    def requires_action(self) -> bool:
        return self.status == RunStatus.REQUIRES_ACTION and bool(self.pending_invocations)


class RunCoordinator:
    """Drives turns of a conversation through remote runs."""

    def __init__(
        self,
        transport: RelayClient,
        store: ConversationStore,
        registry: ToolRegistry,
        log_view: MessageLogView | None = None,
        config: CoordinatorConfig | None = None,
    ):
        """Initialize the coordinator.

        Args:
            transport: Relay client used for every remote call.
            store: Local persistence for the conversation and active run IDs.
            registry: Default registry for tool dispatch.
            log_view: View refreshed on every poll.
            config: Optional coordinator configuration.
        """
        self._transport = transport
        self._store = store
        self._registry = registry
        self._log_view = log_view or MessageLogView()
        self._config = config or CoordinatorConfig()

        self._conversation_id: str | None = None
        self._active_run_id: str | None = None
        self._last_status: RunStatus | None = None
        self._submitting = False
        self._pending: dict[str, ToolInvocation] = {}
        self._submitted: set[str] = set()

    @property
    def state(self) -> CoordinatorState:
        return CoordinatorState(
            conversation_id=self._conversation_id,
            active_run_id=self._active_run_id,
            last_known_status=self._last_status,
        )

    @property
    def log_view(self) -> MessageLogView:
        return self._log_view

    @property
    def registry(self) -> ToolRegistry:
        return self._registry

    async def start_conversation(self) -> str:
        """Return the conversation ID, restoring or creating it if needed.

        A stored active run ID is restored along with the conversation so the
        caller can resume polling it.

        Returns:
            The conversation ID.

        Raises:
            TransportError: If a new conversation could not be created. The
                conversation stays unset so a later call tries again.
        """
        if self._conversation_id is not None:
            return self._conversation_id

        stored = self._store.load()
        if stored is not None:
            self._conversation_id = stored.conversation_id
            self._active_run_id = stored.run_id
            self._last_status = None
            logger.info(
                "conversation_restored",
                conversation_id=stored.conversation_id,
                run_id=stored.run_id,
            )
            return stored.conversation_id

        conversation_id = await self._transport.create_conversation()
        self._conversation_id = conversation_id
        self._store.save_conversation(conversation_id)
        logger.info("conversation_created", conversation_id=conversation_id)
        return conversation_id

    async def submit_turn(self, conversation_id: str, text: str) -> str:
        """Send a user message and start a run.

        Args:
            conversation_id: The held conversation.
            text: The user's message; surrounding whitespace is dropped.

        Returns:
            The new active run ID.

        Raises:
            ConflictError: If a run is active or a submission is in flight.
            ValueError: If the text is blank or the conversation is not the held one.
            TransportError: If the relay call fails. No run is left active.
        """
        text = text.strip()
        if not text:
            raise ValueError("Message text is empty")
        return await self._start_run(
            conversation_id,
            lambda: self._transport.send_message(conversation_id, text),
        )

    async def submit_audio(
        self,
        conversation_id: str,
        audio: bytes,
        content_type: str = "audio/webm",
    ) -> str:
        """Upload recorded audio as a user turn and start a run.

        Same slot semantics as ``submit_turn``.
        """
        if not audio:
            raise ValueError("Audio clip is empty")
        return await self._start_run(
            conversation_id,
            lambda: self._transport.send_audio(conversation_id, audio, content_type),
        )

    async def poll(self, conversation_id: str, run_id: str | None = None) -> PollResult:
        """Fetch the message snapshot and run status in one step.

        The message log view is refreshed whatever the status. Tool
        invocations are returned, never dispatched.

        Args:
            conversation_id: The held conversation.
            run_id: Run to report on; None only refreshes messages.

        Returns:
            The poll result.

        Raises:
            TransportError: If the relay call fails.
        """
        self._check_conversation(conversation_id)
        listing = await self._transport.list_messages(conversation_id, run_id)

        self._log_view.render(listing.messages)
        messages = order_oldest_first(listing.messages)

        run = listing.run
        status = run.status if run is not None else listing.status
        if run_id is None or status is None:
            return PollResult(messages=messages, status=status, run=run)

        is_active = run_id == self._active_run_id
        if is_active:
            status = self._record_status(run_id, status)

        pending: list[ToolInvocation] = []
        if status == RunStatus.REQUIRES_ACTION and run is not None:
            pending = [inv for inv in run.tool_invocations() if inv.invocation_id not in self._submitted]
            if is_active:
                self._pending = {inv.invocation_id: inv for inv in pending}

        if status == RunStatus.FAILED:
            error = run.last_error if run is not None else None
            logger.warning(
                "run_failed",
                run_id=run_id,
                code=error.code if error else None,
                message=error.message if error else None,
            )

        return PollResult(messages=messages, status=status, pending_invocations=pending, run=run)

    def dispatch_tools(
        self,
        pending: list[ToolInvocation],
        registry: ToolRegistry | None = None,
    ) -> list[ToolResult]:
        """Run pending tool invocations locally.

        Every invocation is resolved before any handler runs, so an unknown
        function leaves all local state untouched. Invocations run in the
        given order; a handler that raises yields a failed result instead of
        propagating.

        Args:
            pending: Invocations from a ``requires_action`` poll.
            registry: Registry to dispatch through; defaults to the coordinator's.

        Returns:
            One result per invocation, with matching IDs.

        Raises:
            UnknownFunctionError: If any invocation names an unregistered function.
        """
        registry = registry if registry is not None else self._registry
        resolved = [(inv, registry.resolve(inv.function_name, inv.invocation_id)) for inv in pending]
        return [self._invoke(invocation, spec) for invocation, spec in resolved]

    async def submit_tool_results(
        self,
        conversation_id: str,
        run_id: str,
        results: list[ToolResult],
    ) -> None:
        """Submit the full batch of tool results for the active run.

        Raises:
            ConflictError: If ``run_id`` is not the active run.
            PartialSubmissionError: If the results do not cover exactly the
                pending invocations of the last poll.
            TransportError: If the relay call fails; the pending set is kept.
        """
        self._check_conversation(conversation_id)
        if run_id != self._active_run_id:
            raise ConflictError("Tool results submitted for a run that is not active", run_id=run_id)

        result_ids = [result.invocation_id for result in results]
        expected = set(self._pending)
        missing = expected - set(result_ids)
        unexpected = set(result_ids) - expected
        duplicated = {rid for rid in result_ids if result_ids.count(rid) > 1}
        if missing or unexpected or duplicated or not expected:
            raise PartialSubmissionError(missing=missing, unexpected=unexpected | duplicated)

        await self._transport.submit_tool_outputs(conversation_id, run_id, results)
        self._submitted.update(expected)
        self._pending = {}
        logger.info("tool_outputs_submitted", run_id=run_id, count=len(results))

    async def clear_run_if_terminal(self, run_id: str, status: RunStatus) -> bool:
        """Release the run slot once ``status`` is terminal.

        ``completed`` keeps the slot for the settle delay first; other
        terminal statuses release it at once.

        Returns:
            True if the slot was released.
        """
        if not status.is_terminal or run_id != self._active_run_id:
            return False

        if status == RunStatus.COMPLETED and self._config.settle_delay_seconds > 0:
            await asyncio.sleep(self._config.settle_delay_seconds)
            if run_id != self._active_run_id:
                return False

        self._last_status = status
        self._release_run()
        logger.info("run_cleared", run_id=run_id, status=str(status))
        return True

    def abandon_run(self) -> None:
        """Drop the active run locally. The remote run is not cancelled."""
        if self._active_run_id is None:
            return
        logger.info("run_abandoned", run_id=self._active_run_id)
        self._release_run()

    def reset(self) -> None:
        """Forget the conversation, its stored handle and the rendered log."""
        self.abandon_run()
        logger.info("conversation_reset", conversation_id=self._conversation_id)
        self._conversation_id = None
        self._last_status = None
        self._store.clear()
        self._log_view.clear()

    async def _start_run(self, conversation_id: str, start: Callable[[], Awaitable[str]]) -> str:
        self._check_conversation(conversation_id)
        if self._active_run_id is not None:
            raise ConflictError("A run is already active", run_id=self._active_run_id)
        if self._submitting:
            raise ConflictError("A turn is already being submitted")

        start_turn()
        self._submitting = True
        try:
            run_id = await start()
        finally:
            self._submitting = False

        if self._conversation_id != conversation_id:
            raise ConflictError("Conversation was reset while the turn was being submitted", run_id=run_id)

        self._active_run_id = run_id
        self._last_status = None
        self._pending = {}
        self._submitted = set()
        self._store.save_run(run_id)
        logger.info("turn_submitted", conversation_id=conversation_id, run_id=run_id)
        return run_id

    def _record_status(self, run_id: str, status: RunStatus) -> RunStatus:
        previous = self._last_status
        if previous is not None and status.is_regression_from(previous):
            logger.warning(
                "stale_run_status",
                run_id=run_id,
                reported=str(status),
                known=str(previous),
            )
            return previous
        self._last_status = status
        return status

    def _invoke(self, invocation: ToolInvocation, spec: ToolSpec) -> ToolResult:
        log = logger.bind(function=invocation.function_name, invocation_id=invocation.invocation_id)

        if invocation.argument_error is not None:
            log.warning("tool_arguments_invalid", error=invocation.argument_error)
            record_tool_call(invocation.function_name, ok=False)
            return ToolResult(invocation.invocation_id, f"Error: {invocation.argument_error}", failed=True)

        try:
            output = spec.invoke(invocation.arguments)
        except Exception as e:
            log.exception("tool_handler_failed", error=str(e))
            record_tool_call(invocation.function_name, ok=False)
            return ToolResult(invocation.invocation_id, f"Error: {e}", failed=True)

        log.info("tool_invoked")
        record_tool_call(invocation.function_name, ok=True)
        return ToolResult(invocation.invocation_id, str(output))

    def _release_run(self) -> None:
        self._active_run_id = None
        self._pending = {}
        self._submitted = set()
        self._store.save_run(None)

    def _check_conversation(self, conversation_id: str) -> None:
        if self._conversation_id is None:
            raise ValueError("No conversation has been started")
        if conversation_id != self._conversation_id:
            raise ValueError(f"Unknown conversation: {conversation_id}")
