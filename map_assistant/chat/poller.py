"""Fixed-interval poll loop for an active run.

One ``asyncio.Task`` per run. Each tick awaits the previous relay call
before sleeping again, so polls for a run never overlap. The task ends when
the run clears, when the coordinator no longer holds the run, or on a fatal
error; ``cancel()`` stops it early.
"""

import asyncio
from collections.abc import Callable
from dataclasses import dataclass

import structlog

from map_assistant.chat.coordinator import PollResult, RunCoordinator
from map_assistant.chat.exceptions import ConflictError, RunFailedError, UnknownFunctionError
from map_assistant.platform.clients.relay.exceptions import TransportError
from map_assistant.platform.clients.relay.models import RunStatus
from map_assistant.platform.observability import bind_run

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class PollerConfig:
    """Configuration for the poll loop.

    Attributes:
        interval_seconds: Delay before each poll (default: 10s).
        max_consecutive_failures: Transport failures in a row before the
            loop gives up (default: 3).
    """

    interval_seconds: float = 10.0
    max_consecutive_failures: int = 3


class RunPoller:
    """Polls a run until it clears, dispatching tool calls along the way."""

    def __init__(
        self,
        coordinator: RunCoordinator,
        config: PollerConfig | None = None,
        on_update: Callable[[PollResult], None] | None = None,
        on_error: Callable[[Exception], None] | None = None,
    ):
        """Initialize the poller.

        Args:
            coordinator: Coordinator holding the run.
            config: Optional poller configuration.
            on_update: Called with every successful poll result.
            on_error: Called with every error the loop meets, fatal or not.
        """
        self._coordinator = coordinator
        self._config = config or PollerConfig()
        self._on_update = on_update
        self._on_error = on_error
        self._task: asyncio.Task[RunStatus | None] | None = None
        self._run_id: str | None = None

    @property
    def is_running(self) -> bool:
        return self._task is not None and not self._task.done()

    @property
    def run_id(self) -> str | None:
        return self._run_id

    def start(self, conversation_id: str, run_id: str) -> "asyncio.Task[RunStatus | None]":
        """Start polling ``run_id``.

        Raises:
            ConflictError: If a loop is still running.
        """
        if self.is_running:
            raise ConflictError("A poll loop is already running", run_id=self._run_id)
        self._run_id = run_id
        self._task = asyncio.create_task(self._run(conversation_id, run_id), name=f"poll-{run_id}")
        return self._task

    def cancel(self) -> None:
        if self._task is not None and not self._task.done():
            logger.info("poll_loop_cancelled", run_id=self._run_id)
            self._task.cancel()

    async def wait(self) -> RunStatus | None:
        """Wait for the loop to end.

        Returns:
            The terminal status, or None if the run was dropped locally.

        Raises:
            RuntimeError: If no loop was started.
            RunFailedError: If the run ended in a terminal status other than completed.
            UnknownFunctionError: If the run requested an unregistered function.
            TransportError: If the relay failed too many times in a row.
            asyncio.CancelledError: If the loop was cancelled.
        """
        if self._task is None:
            raise RuntimeError("No poll loop has been started")
        return await self._task

    async def _run(self, conversation_id: str, run_id: str) -> RunStatus | None:
        bind_run(conversation_id, run_id)
        failures = 0

        while True:
            await asyncio.sleep(self._config.interval_seconds)

            if self._coordinator.state.active_run_id != run_id:
                logger.info("poll_loop_orphaned")
                return None

            try:
                result = await self._coordinator.poll(conversation_id, run_id)
                self._notify_update(result)
                if result.requires_action:
                    await self._handle_tool_calls(conversation_id, run_id, result)
                    failures = 0
                    continue
            except TransportError as e:
                failures += 1
                logger.warning("poll_failed", attempt=failures, error=str(e))
                self._notify_error(e)
                if failures >= self._config.max_consecutive_failures:
                    logger.error("poll_loop_stopped", failures=failures)
                    raise
                continue

            failures = 0
            if result.status is not None and result.status.is_terminal:
                return await self._finish(conversation_id, run_id, result.status, result)

    async def _handle_tool_calls(self, conversation_id: str, run_id: str, result: PollResult) -> None:
        try:
            results = self._coordinator.dispatch_tools(result.pending_invocations)
        except UnknownFunctionError as e:
            logger.error("unknown_function", function=e.function_name)
            self._coordinator.abandon_run()
            self._notify_error(e)
            raise
        await self._coordinator.submit_tool_results(conversation_id, run_id, results)

    async def _finish(
        self,
        conversation_id: str,
        run_id: str,
        status: RunStatus,
        result: PollResult,
    ) -> RunStatus:
        await self._coordinator.clear_run_if_terminal(run_id, status)

        if status == RunStatus.COMPLETED:
            # the reply may have landed during the settle delay
            try:
                self._notify_update(await self._coordinator.poll(conversation_id))
            except TransportError as e:
                logger.warning("final_refresh_failed", error=str(e))
                self._notify_error(e)
            return status

        error = result.run.last_error if result.run is not None else None
        failure = RunFailedError(run_id, str(status), message=error.message if error else None)
        self._notify_error(failure)
        raise failure

    def _notify_update(self, result: PollResult) -> None:
        if self._on_update is not None:
            self._on_update(result)

    def _notify_error(self, error: Exception) -> None:
        if self._on_error is not None:
            self._on_error(error)
