"""
Fan-out of one log call to every eligible target.

Each eligible target is rendered and delivered in its own task; the call
settles once every task has settled. A failed delivery is handled by the
target's error policy:

- THROW: the first such failure (in target order) is raised after all settle.
- IGNORE: dropped.
- LOG: reported as a recovery event at ERROR (or the original level, if more
  severe), dispatched to the same targets with every policy forced to IGNORE.
  A failure while reporting a failure therefore never recurses further.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from typing import Any, Optional, Protocol, Sequence

from multisink.logging import get_logger

from .colors import Style
from .events import Clock, LogEvent
from .exceptions import FactoryDestroyedError
from .formatters import render_payload
from .levels import ErrorPolicy, Level
from .targets import Target

logger = get_logger("multisink.dispatch")

RECOVERY_LEVEL = Level.ERROR


class DispatchOwner(Protocol):
    @property
    def destroyed(self) -> bool: ...

    @property
    def max_name_length(self) -> int: ...

    @property
    def clock(self) -> Clock: ...


class EventSource(Protocol):
    @property
    def component(self) -> str: ...

    @property
    def source(self) -> Optional[str]: ...

    @property
    def color(self) -> Style: ...


@dataclass(frozen=True)
class _Outcome:
    result: Any = None
    error: Optional[BaseException] = None


def recovery_messages(index: int, event: LogEvent, error: BaseException) -> tuple[Any, ...]:
    return (
        f"Failed to log to target {index}:",
        {
            "timestamp": event.timestamp,
            "level": event.level.name,
            "messages": list(event.messages),
            "error": error,
        },
    )


async def _deliver(
    owner: DispatchOwner,
    emitter: EventSource,
    targets: Sequence[Target],
    index: int,
    event: LogEvent,
    max_name_length: int,
    policy_override: Optional[ErrorPolicy],
) -> _Outcome:
    target = targets[index]
    policy = policy_override or target.error_policy
    try:
        payload = render_payload(
            event,
            target,
            max_name_length=max_name_length,
            source_style=emitter.color,
        )
        return _Outcome(result=await target.deliver(payload))
    except Exception as exc:
        logger.debug(
            "target_delivery_failed",
            target=index,
            kind=target.kind,
            policy=policy.value,
            error=repr(exc),
        )
        if policy == ErrorPolicy.THROW:
            return _Outcome(error=exc)
        if policy == ErrorPolicy.IGNORE or owner.destroyed:
            return _Outcome()

        recovered = await dispatch(
            owner,
            emitter,
            targets,
            min(event.level, RECOVERY_LEVEL),
            recovery_messages(index, event, exc),
            policy_override=ErrorPolicy.IGNORE,
        )
        return _Outcome(result=recovered)


async def dispatch(
    owner: DispatchOwner,
    emitter: EventSource,
    targets: Sequence[Target],
    level: Level,
    messages: Sequence[Any],
    *,
    policy_override: Optional[ErrorPolicy] = None,
) -> list[Any]:
    """Deliver one event to every target that accepts ``level``.

    Returns the per-target results of the eligible targets, in target order.
    ``policy_override`` replaces every target's error policy for this call only.

    Raises:
        FactoryDestroyedError: the owner was destroyed before the call started
        Exception: the first failure of a THROW-policy target
    """
    if owner.destroyed:
        raise FactoryDestroyedError("Logger")

    event = LogEvent(
        level=level,
        timestamp=owner.clock(),
        component=emitter.component,
        source=emitter.source,
        messages=tuple(messages),
    )
    max_name_length = owner.max_name_length

    # Tasks start in target order; completion order is unspecified
    tasks = [
        asyncio.ensure_future(_deliver(owner, emitter, targets, index, event, max_name_length, policy_override))
        for index, target in enumerate(targets)
        if target.accepts(level)
    ]
    outcomes: list[_Outcome] = await asyncio.gather(*tasks)

    failure = next((outcome.error for outcome in outcomes if outcome.error is not None), None)
    if failure is not None:
        raise failure
    return [outcome.result for outcome in outcomes]
