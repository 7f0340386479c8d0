"""Messages and the interfaces that publish, receive and marshal them."""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Iterator, Mapping


@dataclass(eq=False)
class Message:
    """A unit of data passed between publishers and subscribers."""

    uuid: str
    payload: bytes = b""
    metadata: dict[str, str] = field(default_factory=dict)
    context: Mapping[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        if not isinstance(self.payload, (bytes, bytearray, memoryview)):
            raise TypeError(f"payload must be bytes, not {type(self.payload).__name__}")
        self.payload = bytes(self.payload)
        self.metadata = dict(self.metadata)

    def equals(self, other: "Message") -> bool:
        """Compare uuid, metadata and payload; the context is ignored."""
        return (
            self.uuid == other.uuid
            and self.metadata == other.metadata
            and self.payload == other.payload
        )


class Publisher(ABC):
    """Sends messages to topics."""

    @abstractmethod
    def publish(self, topic: str, *args: Message) -> None:
        """Publish the given messages to ``topic``."""

    @abstractmethod
    def close(self) -> None:
        """Release the publisher's resources."""

    def __enter__(self) -> "Publisher":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()


class Subscriber(ABC):
    """Receives messages from topics."""

    @abstractmethod
    def subscribe(self, topic: str) -> Iterator[Message]:
        """Return an iterator over the messages arriving on ``topic``."""

    @abstractmethod
    def close(self) -> None:
        """Stop all subscriptions and release resources."""

    def __enter__(self) -> "Subscriber":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()


class CommandEventMarshaler(ABC):
    """Turns commands and events into messages and back."""

    @abstractmethod
    def marshal(self, v: Any) -> Message:
        """Encode a command or event into a message."""

    @abstractmethod
    def unmarshal(self, msg: Message, cls: type) -> Any:
        """Decode the message payload into a new instance of ``cls``."""

    @abstractmethod
    def name(self, v: Any) -> str:
        """Return the name of a command or event."""

    @abstractmethod
    def name_from_message(self, msg: Message) -> str:
        """Return the command or event name stored in a marshaled message."""