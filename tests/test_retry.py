import pytest

from watermill.log import NopLogger
from watermill.message import Message, Publisher
from watermill.retry import CouldNotPublishError, RetryPublisher, RetryPublisherConfig

ERR_COULD_NOT_PUBLISH = RuntimeError("could not publish, try again")
ERR_COULD_NOT_CLOSE = RuntimeError("this publisher fails on Close()")


class FailingPublisher(Publisher):
    def __init__(self, how_many_fails):
        self.how_many_fails = dict(how_many_fails)
        self.how_many_published = {}

    def publish(self, topic, *args):
        for msg in args:
            if self.how_many_fails.get(msg.uuid, 0) <= 0:
                self.how_many_published[msg.uuid] = self.how_many_published.get(msg.uuid, 0) + 1
                continue
            self.how_many_fails[msg.uuid] -= 1
            raise ERR_COULD_NOT_PUBLISH

    def close(self):
        pass


class ClosingPublisher(Publisher):
    def __init__(self, fail_on_close=False):
        self.closed = False
        self.fail_on_close = fail_on_close

    def publish(self, topic, *args):
        pass

    def close(self):
        if self.fail_on_close:
            raise ERR_COULD_NOT_CLOSE
        self.closed = True


def _config():
    return RetryPublisherConfig(max_retries=5, time_to_first_retry=0.001, logger=NopLogger())


def test_publish_after_retries():
    msg = Message("uuid")
    pub = FailingPublisher({msg.uuid: 4})
    conf = _config()
    retry_pub = RetryPublisher(pub, conf)
    assert pub.how_many_fails[msg.uuid] < conf.max_retries

    retry_pub.publish("topic", msg)

    assert pub.how_many_published[msg.uuid] == 1


def test_publish_too_many_retries():
    msg = Message("uuid")
    pub = FailingPublisher({msg.uuid: 5})
    conf = _config()
    retry_pub = RetryPublisher(pub, conf)
    assert pub.how_many_fails[msg.uuid] >= conf.max_retries

    with pytest.raises(CouldNotPublishError) as exc_info:
        retry_pub.publish("topic", msg)

    err = exc_info.value
    assert len(err) == 1
    assert err.reasons[msg.uuid] is ERR_COULD_NOT_PUBLISH
    assert msg.uuid not in pub.how_many_published
    assert str(err) == "Could not publish the messages:\nuuid : could not publish, try again\n"


def test_publish_each_message_only_once():
    msg1 = Message("uuid1")
    msg2 = Message("uuid2")
    pub = FailingPublisher({msg1.uuid: 2, msg2.uuid: 4})
    retry_pub = RetryPublisher(pub, _config())

    retry_pub.publish("topic", msg1, msg2)

    assert pub.how_many_published[msg1.uuid] == 1
    assert pub.how_many_published[msg2.uuid] == 1


def test_close():
    pub = ClosingPublisher()
    retry_pub = RetryPublisher(pub, RetryPublisherConfig())
    assert pub.closed is False
    retry_pub.close()
    assert pub.closed is True


def test_close_failed():
    pub = ClosingPublisher(fail_on_close=True)
    retry_pub = RetryPublisher(pub, RetryPublisherConfig())
    with pytest.raises(RuntimeError) as exc_info:
        retry_pub.close()
    assert exc_info.value is ERR_COULD_NOT_CLOSE
    assert pub.closed is False


def test_config_defaults():
    config = RetryPublisherConfig()
    assert config.max_retries == 5
    assert config.time_to_first_retry == 1.0
    assert isinstance(config.logger, NopLogger)


@pytest.mark.parametrize(
    "config, match",
    [
        (RetryPublisherConfig(max_retries=-1), "number of retries should be positive"),
        (RetryPublisherConfig(time_to_first_retry=-1), "time to first retry should be positive"),
    ],
)
def test_invalid_config(config, match):
    with pytest.raises(ValueError, match=match):
        RetryPublisher(ClosingPublisher(), config)


def test_empty_error_string():
    assert str(CouldNotPublishError()) == ""