"""A subscriber decorator that subscribes several times to raise throughput."""

from __future__ import annotations

import queue
import threading
from typing import Callable, Iterable, Iterator

from .message import Message, Subscriber

_DONE = object()


class _Failure:
    def __init__(self, error: BaseException) -> None:
        self.error = error


class Multiplier(Subscriber):
    """Creates ``subscribers_count`` subscribers and merges their messages."""

    def __init__(self, constructor: Callable[[], Subscriber], subscribers_count: int) -> None:
        self._constructor = constructor
        self._count = subscribers_count
        self._subscribers: list[Subscriber] = []

    def subscribe(self, topic: str) -> Iterator[Message]:
        streams = []
        try:
            for _ in range(self._count):
                try:
                    sub = self._constructor()
                except Exception as err:
                    raise RuntimeError(f"cannot create subscriber: {err}") from err
                self._subscribers.append(sub)
                try:
                    streams.append(sub.subscribe(topic))
                except Exception as err:
                    raise RuntimeError(f"cannot subscribe: {err}") from err
        except Exception as err:
            try:
                self.close()
            except Exception as close_err:
                raise RuntimeError(f"{err}; {close_err}") from err
            raise
        return self._merge(streams)

    def close(self) -> None:
        errors = []
        for sub in self._subscribers:
            try:
                sub.close()
            except Exception as err:
                errors.append(err)
        if len(errors) == 1:
            raise errors[0]
        if errors:
            raise RuntimeError("; ".join(str(err) for err in errors))

    @staticmethod
    def _merge(streams: list[Iterable[Message]]) -> Iterator[Message]:
        out: queue.Queue = queue.Queue(maxsize=1)

        def pump(stream: Iterable[Message]) -> None:
            try:
                for msg in stream:
                    out.put(msg)
            except Exception as err:
                out.put(_Failure(err))
            finally:
                out.put(_DONE)

        for stream in streams:
            threading.Thread(target=pump, args=(stream,), daemon=True).start()

        def drain() -> Iterator[Message]:
            remaining = len(streams)
            while remaining:
                item = out.get()
                if item is _DONE:
                    remaining -= 1
                    continue
                if isinstance(item, _Failure):
                    raise item.error
                yield item

        return drain()