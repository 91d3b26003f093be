"""
Adapter base — the protocol contract between services and subprocesses.

Services never spawn processes themselves. They build an ``Action``,
wrap it in an ``ExecutionContext``, and hand it to an adapter which
returns a ``Receipt``. This keeps the resolver and the orchestrator
testable with ``MockAdapter``.
"""

from __future__ import annotations

from abc import ABC, abstractmethod

from pydantic import BaseModel

from subsysbuild.core.models.action import Action, Receipt


class ExecutionContext(BaseModel):
    """Everything an adapter needs to execute an action.

    Variables meant for the build are exported inside the composed
    command, so the context carries no environment of its own.
    """

    action: Action
    dry_run: bool = False

    @property
    def command(self) -> str:
        """The command string carried by the action."""
        return self.action.params.get("command", "")


class Adapter(ABC):
    """Abstract base class for all adapters.

    Adapters perform external side effects and return receipts.
    They NEVER raise exceptions — failures are captured in the Receipt.
    """

    @property
    @abstractmethod
    def name(self) -> str:
        """The adapter identifier (e.g., 'subsystem', 'mock')."""

    @abstractmethod
    def execute(self, context: ExecutionContext) -> Receipt:
        """Execute the action and return a receipt.

        MUST never raise exceptions. All failures are captured
        in the Receipt with status='failed'.
        """

    def run(
        self,
        action_id: str,
        command: str,
        *,
        name: str = "",
        dry_run: bool = False,
    ) -> Receipt:
        """Convenience wrapper: build the Action/context pair and execute it."""
        action = Action(
            id=action_id,
            name=name or action_id,
            adapter=self.name,
            params={"command": command},
        )
        return self.execute(ExecutionContext(action=action, dry_run=dry_run))

    def __repr__(self) -> str:
        return f"<{self.__class__.__name__} name={self.name!r}>"
