import pytest

from watermill.message import Message, Subscriber
from watermill.multiplier import Multiplier


class ListSubscriber(Subscriber):
    def __init__(self, uuids, fail_subscribe=False, fail_close=None, fail_stream=None):
        self.uuids = uuids
        self.fail_subscribe = fail_subscribe
        self.fail_close = fail_close
        self.fail_stream = fail_stream
        self.closed = False
        self.topics = []

    def subscribe(self, topic):
        if self.fail_subscribe:
            raise RuntimeError("boom")
        self.topics.append(topic)
        return self._stream()

    def _stream(self):
        for uuid in self.uuids:
            yield Message(uuid)
        if self.fail_stream is not None:
            raise self.fail_stream

    def close(self):
        if self.fail_close is not None:
            raise self.fail_close
        self.closed = True


def _factory(created, **kwargs):
    def construct():
        sub = ListSubscriber(["a", "b"], **kwargs)
        created.append(sub)
        return sub

    return construct


def test_merges_messages_from_all_subscribers():
    created = []
    multiplier = Multiplier(_factory(created), 3)
    received = sorted(msg.uuid for msg in multiplier.subscribe("topic"))
    assert received == sorted(["a", "b"] * len(created))
    assert len(created) == 3
    assert all(sub.topics == ["topic"] for sub in created)


def test_close_closes_every_subscriber():
    created = []
    multiplier = Multiplier(_factory(created), 2)
    list(multiplier.subscribe("topic"))
    multiplier.close()
    assert [sub.closed for sub in created] == [True, True]


def test_zero_subscribers_yields_nothing():
    multiplier = Multiplier(_factory([]), 0)
    assert list(multiplier.subscribe("topic")) == []


def test_constructor_failure_closes_created_subscribers():
    created = []
    calls = []

    def construct():
        calls.append(1)
        if len(calls) > 1:
            raise ValueError("no more")
        sub = ListSubscriber([])
        created.append(sub)
        return sub

    multiplier = Multiplier(construct, 3)
    with pytest.raises(RuntimeError, match="cannot create subscriber"):
        multiplier.subscribe("topic")
    assert created[0].closed is True


def test_subscribe_failure_closes_subscribers():
    created = []
    multiplier = Multiplier(_factory(created, fail_subscribe=True), 2)
    with pytest.raises(RuntimeError, match="cannot subscribe"):
        multiplier.subscribe("topic")
    assert [sub.closed for sub in created] == [True]


def test_single_close_error_is_raised_as_is():
    failure = OSError("close failed")
    created = []
    multiplier = Multiplier(_factory(created, fail_close=failure), 1)
    list(multiplier.subscribe("topic"))
    with pytest.raises(OSError) as exc_info:
        multiplier.close()
    assert exc_info.value is failure


def test_many_close_errors_are_combined():
    created = []
    multiplier = Multiplier(_factory(created, fail_close=OSError("close failed")), 2)
    list(multiplier.subscribe("topic"))
    with pytest.raises(RuntimeError, match="close failed; close failed"):
        multiplier.close()


def test_stream_error_is_raised_by_merged_iterator():
    failure = ValueError("stream broke")
    created = []
    multiplier = Multiplier(_factory(created, fail_stream=failure), 1)
    with pytest.raises(ValueError) as exc_info:
        list(multiplier.subscribe("topic"))
    assert exc_info.value is failure