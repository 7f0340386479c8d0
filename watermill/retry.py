"""A publisher decorator that retries failed publishing."""

from __future__ import annotations

import time
from dataclasses import dataclass
from typing import Mapping, Optional

from .log import LoggerAdapter, NopLogger
from .message import Message, Publisher


class CouldNotPublishError(Exception):
    """Collects the errors of messages that could not be published, by uuid."""

    def __init__(self, reasons: Optional[Mapping[str, BaseException]] = None) -> None:
        super().__init__()
        self.reasons: dict[str, BaseException] = dict(reasons or {})

    def _add(self, msg: Message, reason: BaseException) -> None:
        self.reasons[msg.uuid] = reason

    def __len__(self) -> int:
        return len(self.reasons)

    def __bool__(self) -> bool:
        return True

    def __str__(self) -> str:
        if not self.reasons:
            return ""
        lines = "".join(f"{uuid} : {reason}\n" for uuid, reason in self.reasons.items())
        return "Could not publish the messages:\n" + lines


@dataclass
class RetryPublisherConfig:
    """Settings of RetryPublisher; zero values are replaced by defaults."""

    max_retries: int = 0
    time_to_first_retry: float = 0.0
    logger: Optional[LoggerAdapter] = None

    def __post_init__(self) -> None:
        if self.max_retries == 0:
            self.max_retries = 5
        if self.time_to_first_retry == 0:
            self.time_to_first_retry = 1.0
        if self.logger is None:
            self.logger = NopLogger()


class RetryPublisher(Publisher):
    """Publishes messages one by one, retrying each with doubling delays."""

    def __init__(self, pub: Publisher, config: Optional[RetryPublisherConfig] = None) -> None:
        config = config if config is not None else RetryPublisherConfig()
        if config.max_retries <= 0:
            raise ValueError("invalid RetryPublisher config: number of retries should be positive")
        if config.time_to_first_retry <= 0:
            raise ValueError("invalid RetryPublisher config: time to first retry should be positive")
        self._pub = pub
        self._config = config

    def publish(self, topic: str, *args: Message) -> None:
        failed = CouldNotPublishError()
        for msg in args:
            err = self._send(topic, msg)
            if err is not None:
                failed._add(msg, err)
        if len(failed) > 0:
            raise failed

    def close(self) -> None:
        self._pub.close()

    def _send(self, topic: str, msg: Message) -> Optional[Exception]:
        last_error: Optional[Exception] = None
        delay = self._config.time_to_first_retry
        for _ in range(self._config.max_retries):
            try:
                self._pub.publish(topic, msg)
            except Exception as err:
                last_error = err
            else:
                return None
            self._config.logger.info(f"Publish failed, retrying in {delay:g}s", {"error": last_error})
            time.sleep(delay)
            delay *= 2
        return last_error