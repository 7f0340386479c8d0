"""Envelopes carrying a destination topic and a publisher that sends them."""

from __future__ import annotations

import base64
import binascii
import json
import uuid
from dataclasses import dataclass
from typing import Optional

from .message import Message, Publisher

_DEFAULT_FORWARDER_TOPIC = "forwarder_topic"


def wrap_message_in_envelope(destination_topic: str, msg: Message) -> Message:
    """Wrap ``msg`` in a JSON envelope addressed to ``destination_topic``."""
    if not destination_topic:
        raise ValueError(
            "cannot envelope a message: cannot create a message envelope: unknown destination topic"
        )
    envelope = {
        "destination_topic": destination_topic,
        "uuid": msg.uuid,
        "payload": base64.b64encode(msg.payload).decode("ascii"),
        "metadata": {key: msg.metadata[key] for key in sorted(msg.metadata)},
    }
    payload = json.dumps(envelope, separators=(",", ":")).encode("utf-8")
    return Message(str(uuid.uuid4()), payload, context=msg.context)


def _unmarshal_error(reason: str) -> ValueError:
    return ValueError(f"cannot unmarshal message wrapped in an envelope: {reason}")


def unwrap_message_from_envelope(msg: Message) -> tuple[str, Message]:
    """Return the destination topic and the message carried in an envelope."""
    try:
        data = json.loads(msg.payload)
    except ValueError as err:
        raise _unmarshal_error(str(err)) from err
    if not isinstance(data, dict):
        raise _unmarshal_error("envelope is not a JSON object")

    topic = data.get("destination_topic") or ""
    msg_uuid = data.get("uuid") or ""
    encoded_payload = data.get("payload") or ""
    metadata = data.get("metadata") or {}
    if not isinstance(topic, str) or not isinstance(msg_uuid, str) or not isinstance(encoded_payload, str):
        raise _unmarshal_error("envelope field has a wrong type")
    if not isinstance(metadata, dict) or not all(
        isinstance(key, str) and isinstance(value, str) for key, value in metadata.items()
    ):
        raise _unmarshal_error("envelope metadata must map strings to strings")
    try:
        payload = base64.b64decode(encoded_payload, validate=True)
    except binascii.Error as err:
        raise _unmarshal_error(str(err)) from err

    if not topic:
        raise ValueError("an unmarshalled message envelope is invalid: unknown destination topic")

    return topic, Message(msg_uuid, payload, metadata)


@dataclass
class PublisherConfig:
    """Settings of ForwarderPublisher."""

    forwarder_topic: str = _DEFAULT_FORWARDER_TOPIC

    def __post_init__(self) -> None:
        if not self.forwarder_topic:
            self.forwarder_topic = _DEFAULT_FORWARDER_TOPIC


class ForwarderPublisher(Publisher):
    """Wraps published messages in envelopes and sends them to the forwarder topic."""

    def __init__(self, publisher: Publisher, config: Optional[PublisherConfig] = None) -> None:
        self._wrapped = publisher
        self._config = config if config is not None else PublisherConfig()

    def publish(self, topic: str, *args: Message) -> None:
        enveloped = []
        for msg in args:
            try:
                enveloped.append(wrap_message_in_envelope(topic, msg))
            except Exception as err:
                raise ValueError(
                    f"cannot wrap message, target topic: '{topic}', uuid: '{msg.uuid}': {err}"
                ) from err
        try:
            self._wrapped.publish(self._config.forwarder_topic, *enveloped)
        except Exception as err:
            raise RuntimeError(
                f"cannot publish messages to forwarder topic: '{self._config.forwarder_topic}': {err}"
            ) from err

    def close(self) -> None:
        self._wrapped.close()