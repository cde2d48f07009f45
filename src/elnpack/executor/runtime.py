"""Single-writer event loop feeding executor results back into the reducer."""

from __future__ import annotations

import logging
import queue
import time
from concurrent.futures import ThreadPoolExecutor
from typing import Callable, Optional, Union

from elnpack.state.models import AppModel
from elnpack.update import messages as m
from elnpack.update.commands import Command, SaveArchive
from elnpack.update.reducer import update

from .service import CommandExecutor

LOGGER = logging.getLogger(__name__)

_Outcome = Union[list, BaseException]
Listener = Callable[[AppModel, m.Message], None]


class Runtime:
    """Own the application model and run commands on a worker pool.

    Only the thread calling :meth:`dispatch` and :meth:`run_until_idle` ever
    applies messages, so the model is replaced atomically between messages.
    Workers hand their results back through a queue.
    """

    def __init__(
        self,
        executor: CommandExecutor,
        model: AppModel | None = None,
        *,
        max_workers: int = 4,
        listener: Optional[Listener] = None,
    ) -> None:
        self._executor = executor
        self._model = model or AppModel()
        self._pool = ThreadPoolExecutor(max_workers=max_workers, thread_name_prefix="elnpack")
        self._inbox: queue.Queue[_Outcome] = queue.Queue()
        self._pending = 0
        self._listener = listener

    @property
    def model(self) -> AppModel:
        return self._model

    @property
    def pending(self) -> int:
        """Number of submitted commands whose results have not been applied yet."""
        return self._pending

    def dispatch(self, msg: m.Message) -> AppModel:
        """Apply ``msg`` and submit the commands it produces.

        Args:
            msg: Message to apply.

        Returns:
            AppModel: The model after ``msg`` was applied.
        """
        self._model, commands = update(self._model, msg)
        if self._listener is not None:
            self._listener(self._model, msg)
        for command in commands:
            self._submit(command)
        return self._model

    def run_until_idle(self, timeout: float | None = None) -> AppModel:
        """Apply worker results until no command is outstanding.

        Args:
            timeout: Maximum number of seconds to wait overall.

        Returns:
            AppModel: The settled model.

        Raises:
            TimeoutError: If commands are still outstanding after ``timeout``.
        """
        deadline = time.monotonic() + timeout if timeout is not None else None
        while self._pending:
            remaining = None if deadline is None else max(0.0, deadline - time.monotonic())
            try:
                outcome = self._inbox.get(timeout=remaining)
            except queue.Empty as exc:
                raise TimeoutError(f"{self._pending} command(s) still running") from exc
            self._pending -= 1
            if isinstance(outcome, BaseException):
                raise outcome
            for msg in outcome:
                self.dispatch(msg)
        return self._model

    def close(self) -> None:
        self._pool.shutdown(wait=True)

    def __enter__(self) -> Runtime:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def _submit(self, command: Command) -> None:
        if isinstance(command, SaveArchive):
            self.dispatch(m.SaveStarted())
        self._pending += 1
        self._pool.submit(self._run, command)

    def _run(self, command: Command) -> None:
        try:
            outcome: _Outcome = self._executor.execute(command)
        except BaseException as exc:  # noqa: BLE001
            LOGGER.exception("Command %s raised", type(command).__name__)
            outcome = exc
        self._inbox.put(outcome)


__all__ = ["Listener", "Runtime"]
