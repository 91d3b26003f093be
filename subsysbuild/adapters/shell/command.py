"""
Subsystem shell adapter — run a command string inside the execution subsystem.

Every subsystem-side command (package queries and installs, the
configure/build/install phases) goes through here as
``<shell> -c "<command>"``. This is the single place where a
subprocess is spawned for subsystem work.

Output is streamed: stderr is merged into stdout and each line is
logged on the ``subsysbuild.output`` logger as soon as it arrives, so
a long ``make`` shows progress while it runs.
"""

from __future__ import annotations

import logging
import subprocess
import threading
import time
from collections import deque

from subsysbuild.adapters.base import Adapter, ExecutionContext
from subsysbuild.core.models.action import Receipt
from subsysbuild.core.observability.logging_config import OUTPUT_LOGGER

logger = logging.getLogger(__name__)
output_logger = logging.getLogger(OUTPUT_LOGGER)

# Keep receipts small; the full output already went to the output logger
_TAIL_LINES = 200
_TAIL_CHARS = 2000


class SubsystemShellAdapter(Adapter):
    """Execute command strings through the subsystem's shell.

    No timeout is applied unless one is given: a build may legitimately
    run for a very long time and cancellation is left to the operator.
    """

    def __init__(self, shell: str, timeout: int | None = None):
        self._shell = shell
        self._timeout = timeout

    @property
    def name(self) -> str:
        return "subsystem"

    @property
    def shell(self) -> str:
        return self._shell

    def execute(self, context: ExecutionContext) -> Receipt:
        command = context.command
        action_id = context.action.id

        if not command:
            return Receipt.failure(
                adapter=self.name,
                action_id=action_id,
                error="Missing required param: 'command'",
            )

        if context.dry_run:
            logger.info("[dry-run] %s: %s", action_id, command)
            return Receipt.skip(
                adapter=self.name,
                action_id=action_id,
                reason="dry run",
                metadata={"command": command},
            )

        logger.debug("Executing %s: %s", action_id, command)
        start = time.monotonic()

        try:
            proc = subprocess.Popen(
                [self._shell, "-c", command],
                stdout=subprocess.PIPE,
                stderr=subprocess.STDOUT,
                text=True,
            )
        except OSError as e:
            return Receipt.failure(
                adapter=self.name,
                action_id=action_id,
                error=f"Cannot start {self._shell}: {e}",
                metadata={"command": command},
            )

        expired = threading.Event()

        def _kill() -> None:
            expired.set()
            proc.kill()

        timer = threading.Timer(self._timeout, _kill) if self._timeout else None
        if timer:
            timer.start()

        tail: deque[str] = deque(maxlen=_TAIL_LINES)
        try:
            if proc.stdout:
                for line in proc.stdout:
                    line = line.rstrip()
                    output_logger.info(line)
                    tail.append(line)
            proc.wait()
        finally:
            if timer:
                timer.cancel()

        elapsed_ms = int((time.monotonic() - start) * 1000)
        output = "\n".join(tail).strip()[-_TAIL_CHARS:]
        metadata = {"command": command, "return_code": proc.returncode}

        if expired.is_set():
            return Receipt.failure(
                adapter=self.name,
                action_id=action_id,
                error=f"Command timed out after {self._timeout}s",
                duration_ms=elapsed_ms,
                metadata={**metadata, "timeout": self._timeout},
            )

        if proc.returncode == 0:
            return Receipt.success(
                adapter=self.name,
                action_id=action_id,
                output=output,
                duration_ms=elapsed_ms,
                metadata=metadata,
            )

        return Receipt.failure(
            adapter=self.name,
            action_id=action_id,
            error=output or f"Command exited with code {proc.returncode}",
            duration_ms=elapsed_ms,
            metadata=metadata,
        )
