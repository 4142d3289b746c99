"""Domain events and the bus that ships them to the harness.

The window classifier emits one domain event per wallet window it
recognizes. The bus wraps each event in an ``Event`` envelope and fans it
out to every registered ``EventSink``:

* ``JsonlSink``: one JSON line per event on a stream (stdout for the CLI).
* ``LoggingSink``: DEBUG log line per event.
* ``InMemorySink``: collects events, useful for testing.

Usage::

    bus = EventBus()
    bus.add_sink(LoggingSink())
    await bus.emit(RequestAccountsEvent(id="3f2a9c0d1b7e"))
"""

from __future__ import annotations

import json
import logging
from datetime import datetime, timezone
from enum import Enum
from typing import Any, ClassVar, Protocol, runtime_checkable

from pydantic import BaseModel, ConfigDict, Field

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Event types
# ---------------------------------------------------------------------------


class EventType(str, Enum):
    """Event names as the harness knows them."""

    REQUEST_ACCOUNTS = "requestaccounts"
    SIGN_MESSAGE = "signmessage"
    SEND_TRANSACTION = "sendtransaction"


# ---------------------------------------------------------------------------
# Domain events
# ---------------------------------------------------------------------------


class DomainEvent(BaseModel):
    """Base for wallet-initiated events.

    Attributes:
        id: Handle of the wallet window that raised the event. The harness
            echoes it back in the command that answers the event.
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    event_type: ClassVar[EventType]

    id: str


class RequestAccountsEvent(DomainEvent):
    """The dapp asked for accounts and the wallet opened its connect prompt."""

    event_type: ClassVar[EventType] = EventType.REQUEST_ACCOUNTS

    accounts: list[str] = Field(default_factory=list)


class SignMessageEvent(DomainEvent):
    """The wallet is asking the user to sign *message*."""

    event_type: ClassVar[EventType] = EventType.SIGN_MESSAGE

    message: str


class SendTransactionEvent(DomainEvent):
    """The wallet is asking the user to confirm a transaction.

    ``value`` is in wei, parsed from the cost the wallet displays.
    """

    event_type: ClassVar[EventType] = EventType.SEND_TRANSACTION

    from_: str = Field(alias="from")
    to: str
    data: str = ""
    value: int = 0


# ---------------------------------------------------------------------------
# Envelope
# ---------------------------------------------------------------------------


class Event(BaseModel):
    """Structured envelope delivered to sinks."""

    event_type: EventType
    timestamp: str = Field(default_factory=lambda: datetime.now(timezone.utc).isoformat())
    data: dict[str, Any] = Field(default_factory=dict)

    @classmethod
    def wrap(cls, event: DomainEvent) -> Event:
        """Build an envelope around a domain event using its wire field names."""
        return cls(event_type=event.event_type, data=event.model_dump(by_alias=True))

    def to_jsonl(self) -> str:
        """Serialize to a single JSON line (no trailing newline)."""
        return self.model_dump_json()


# ---------------------------------------------------------------------------
# Sink protocol
# ---------------------------------------------------------------------------


@runtime_checkable
class EventSink(Protocol):
    """Protocol for event consumers."""

    async def handle_event(self, event: Event) -> None:
        """Process a single event."""
        ...


# ---------------------------------------------------------------------------
# Built-in sinks
# ---------------------------------------------------------------------------


class LoggingSink:
    """Emit events to the Python logger at DEBUG level."""

    def __init__(self, logger_name: str = "coinbase_glue.events") -> None:
        self._logger = logging.getLogger(logger_name)

    async def handle_event(self, event: Event) -> None:
        """Log the event."""
        self._logger.debug(
            "%s: %s",
            event.event_type.value,
            json.dumps(event.data, default=str)[:200],
        )


class InMemorySink:
    """Collect events in a list, useful for testing."""

    def __init__(self) -> None:
        self.events: list[Event] = []

    async def handle_event(self, event: Event) -> None:
        """Append the event to the in-memory list."""
        self.events.append(event)

    def clear(self) -> None:
        """Clear all collected events."""
        self.events.clear()

    @property
    def count(self) -> int:
        """Return the number of collected events."""
        return len(self.events)


class JsonlSink:
    """Write events as JSONL lines to a file-like object.

    Works with ``sys.stdout``, ``sys.stderr``, or an open file handle.
    """

    def __init__(self, stream: Any) -> None:
        self._stream = stream

    async def handle_event(self, event: Event) -> None:
        """Write one JSON line to the stream."""
        self._stream.write(event.to_jsonl() + "\n")
        if hasattr(self._stream, "flush"):
            self._stream.flush()


# ---------------------------------------------------------------------------
# Event bus
# ---------------------------------------------------------------------------


class EventBus:
    """Fans domain events out to every registered sink.

    Emission is fire-and-forget from the emitter's point of view: a failing
    sink is logged and does not stop the other sinks or the emitter.
    """

    def __init__(self) -> None:
        self._sinks: list[EventSink] = []

    def add_sink(self, sink: EventSink) -> None:
        """Register an event sink."""
        self._sinks.append(sink)

    def remove_sink(self, sink: EventSink) -> None:
        """Remove a previously registered sink."""
        self._sinks = [s for s in self._sinks if s is not sink]

    @property
    def sink_count(self) -> int:
        """Return the number of registered sinks."""
        return len(self._sinks)

    async def emit(self, event: DomainEvent) -> None:
        """Emit a domain event to all registered sinks."""
        envelope = Event.wrap(event)
        logger.debug("emitting %s for window %s", envelope.event_type.value, event.id)

        for sink in self._sinks:
            try:
                await sink.handle_event(envelope)
            except Exception as exc:
                logger.warning("EventBus sink error (%s): %s", type(sink).__name__, exc)
