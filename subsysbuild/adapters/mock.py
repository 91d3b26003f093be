"""
Mock adapter — test double for the subsystem shell.

Records every execution context it receives and returns success by
default. Individual action IDs (``query:gcc``, ``install:make``,
``configure``...) can be scripted to fail with a given exit status.
"""

from __future__ import annotations

from subsysbuild.adapters.base import Adapter, ExecutionContext
from subsysbuild.core.models.action import Receipt


class MockAdapter(Adapter):
    """Universal mock adapter for testing."""

    def __init__(
        self,
        adapter_name: str = "mock",
        default_output: str = "[mock] executed",
    ):
        self._name = adapter_name
        self._default_output = default_output
        self._responses: dict[str, Receipt] = {}
        self._call_log: list[ExecutionContext] = []

    @property
    def name(self) -> str:
        return self._name

    @property
    def call_log(self) -> list[ExecutionContext]:
        """All execution contexts this mock has received."""
        return self._call_log

    @property
    def call_count(self) -> int:
        """Number of times execute has been called."""
        return len(self._call_log)

    @property
    def called_ids(self) -> list[str]:
        """Action IDs in call order."""
        return [ctx.action.id for ctx in self._call_log]

    def commands(self) -> dict[str, str]:
        """Command string of each executed action, keyed by action ID."""
        return {ctx.action.id: ctx.command for ctx in self._call_log}

    def set_response(self, action_id: str, receipt: Receipt) -> None:
        """Set a custom response for a specific action ID."""
        self._responses[action_id] = receipt

    def set_failure(
        self,
        action_id: str,
        error: str = "Mock failure",
        return_code: int = 1,
    ) -> None:
        """Configure a specific action to fail with an exit status."""
        self._responses[action_id] = Receipt.failure(
            adapter=self._name,
            action_id=action_id,
            error=error,
            metadata={"return_code": return_code},
        )

    def execute(self, context: ExecutionContext) -> Receipt:
        self._call_log.append(context)

        if context.dry_run:
            return Receipt.skip(
                adapter=self._name,
                action_id=context.action.id,
                reason="dry run",
                metadata={"command": context.command},
            )

        if context.action.id in self._responses:
            return self._responses[context.action.id]

        return Receipt.success(
            adapter=self._name,
            action_id=context.action.id,
            output=self._default_output,
            metadata={"mock": True, "return_code": 0},
        )

    def reset(self) -> None:
        """Clear call log and custom responses."""
        self._call_log.clear()
        self._responses.clear()
