"""Generic loading/data/error lifecycle for one asynchronous action.

`AsyncOperation` does not queue or coalesce invocations: a
second `invoke` while loading starts a second execution, and whichever
finishes last publishes the final state. Every published state carries the
generation of the invocation that produced it so callers can detect and
drop stale results; callers that need single-flight check `is_loading`
before invoking.
"""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from enum import Enum
from typing import Generic, TypeVar


logger = logging.getLogger(__name__)

InT = TypeVar("InT")
OutT = TypeVar("OutT")


class OperationStatus(str, Enum):
    IDLE = "idle"
    LOADING = "loading"
    SUCCESS = "success"
    ERROR = "error"


@dataclass(frozen=True, slots=True)
class Idle:
    generation: int = 0
    status: OperationStatus = OperationStatus.IDLE


@dataclass(frozen=True, slots=True)
class Loading:
    generation: int
    status: OperationStatus = OperationStatus.LOADING


@dataclass(frozen=True, slots=True)
class Success(Generic[OutT]):  # noqa: UP046
    value: OutT
    generation: int
    status: OperationStatus = OperationStatus.SUCCESS


@dataclass(frozen=True, slots=True)
class Failure:
    error: Exception
    generation: int
    status: OperationStatus = OperationStatus.ERROR


OperationState = Idle | Loading | Success[OutT] | Failure
StateListener = Callable[[OperationState[OutT]], None]


class AsyncOperation(Generic[InT, OutT]):  # noqa: UP046
    """Wrap `action` with an observable idle/loading/success/error state."""

    def __init__(
        self, action: Callable[[InT], Awaitable[OutT]], name: str = "operation"
    ) -> None:
        self._action = action
        self.name = name
        self._generation = 0
        self._state: OperationState[OutT] = Idle()
        self._listeners: list[StateListener[OutT]] = []

    @property
    def state(self) -> OperationState[OutT]:
        return self._state

    @property
    def generation(self) -> int:
        return self._generation

    @property
    def is_loading(self) -> bool:
        return isinstance(self._state, Loading)

    def is_current(self, generation: int) -> bool:
        return generation == self._generation

    def subscribe(self, listener: StateListener[OutT]) -> Callable[[], None]:
        """Call `listener` on every transition; returns an unsubscribe hook."""
        self._listeners.append(listener)

        def _unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return _unsubscribe

    async def invoke(self, value: InT) -> OperationState[OutT]:
        """Run the action once and return the state this invocation published."""
        self._generation += 1
        generation = self._generation
        self._publish(Loading(generation=generation))

        state: OperationState[OutT]
        try:
            result = await self._action(value)
        except Exception as exc:  # noqa: BLE001 - captured into Failure
            logger.warning(
                "%s failed (generation %d): %s", self.name, generation, exc
            )
            state = Failure(error=exc, generation=generation)
        else:
            state = Success(value=result, generation=generation)

        self._publish(state)
        return state

    def reset(self) -> None:
        """Return to idle; anything still in flight becomes stale."""
        self._generation += 1
        self._publish(Idle(generation=self._generation))

    def _publish(self, state: OperationState[OutT]) -> None:
        self._state = state
        for listener in list(self._listeners):
            listener(state)
