# watermill

Building blocks for Python applications that work with message streams.

## What is inside

- `watermill.log` holds logging adapters that carry key-value fields.
  - `LogFields` is a `dict` with `add` and `copy`.
  - `LoggerAdapter` is the interface: `error`, `info`, `debug`, `trace` and
    `with_fields`.
  - `NopLogger` discards everything.
  - `StdLoggerAdapter` writes lines in the form
    `[watermill] <time> <file:line>: level=... msg="..." key=value`. Fields
    are sorted by key, and a value that contains a space is quoted. Create one
    with `new_std_logger(debug, trace)`, which writes to standard error, or
    with `new_std_logger_with_out(out, debug, trace)`. The debug and trace
    levels are written only when they are enabled.
  - `CaptureLoggerAdapter` keeps every record as a `CapturedMessage`, grouped
    by `LogLevel`. Read the records with `captured()`, `has(msg)` and
    `has_error(err)`.
- `watermill.message` defines `Message`, which holds a uuid, a bytes payload,
  string metadata and a context mapping. `Message.equals` compares the uuid,
  the metadata and the payload. The module also defines the abstract
  `Publisher`, `Subscriber` and `CommandEventMarshaler` interfaces. A
  publisher or subscriber works as a context manager and is closed on exit.
- `watermill.retry` has `RetryPublisher`, which wraps a publisher and sends
  each message on its own. When a send fails it waits and tries again,
  doubling the wait every time. `RetryPublisherConfig` sets this up: by
  default there are 5 attempts, the first wait is 1 second and the logger is
  a `NopLogger`. Messages that still fail are collected by uuid in a
  `CouldNotPublishError`, which is then raised.
- `watermill.multiplier` has `Multiplier`. It calls a subscriber constructor
  `subscribers_count` times, subscribes each subscriber to the topic and
  merges all the streams into one iterator. `close()` closes every subscriber
  it created.
- `watermill.forwarding` turns messages into envelopes and back.
  `wrap_message_in_envelope(topic, msg)` stores the destination topic, the
  uuid, the base64-encoded payload and the metadata of a message as a JSON
  envelope. `unwrap_message_from_envelope(msg)` gives back the topic and the
  original message. `ForwarderPublisher` wraps every published message this
  way and publishes the envelopes to one forwarder topic, which
  `PublisherConfig` sets and which defaults to `forwarder_topic`.

## Logging

```python
from watermill.log import CaptureLoggerAdapter, LogFields, LogLevel

logger = CaptureLoggerAdapter().with_fields(LogFields({"service": "orders"}))
logger.info("order placed", LogFields({"order_id": "42"}))

record = logger.captured()[LogLevel.INFO][0]
assert record.fields == {"service": "orders", "order_id": "42"}
```

## Retrying a publisher

```python
from watermill.message import Message, Publisher
from watermill.retry import RetryPublisher, RetryPublisherConfig


class FlakyPublisher(Publisher):
    def __init__(self):
        self.failures_left = 2
        self.sent = []

    def publish(self, topic, *args):
        if self.failures_left:
            self.failures_left -= 1
            raise ConnectionError("broker unavailable")
        self.sent.extend(args)

    def close(self):
        pass


inner = FlakyPublisher()
publisher = RetryPublisher(inner, RetryPublisherConfig(time_to_first_retry=0.01))
publisher.publish("orders", Message("1", b"payload"))
assert [m.uuid for m in inner.sent] == ["1"]
```

## What the package does not do

The package defines the `Publisher` and `Subscriber` interfaces, but it does
not connect to a message broker. It has no in-memory pub/sub either, and no
router that dispatches messages to handler functions. You supply the
transport yourself by implementing the interfaces. The package also provides
`CommandEventMarshaler` only as an interface and includes no concrete
marshaler.

## Installation

```
pip install .
```

To include the test dependencies:

```
pip install ".[test]"
```

## Command-line tools

Three maintenance commands are installed for repositories that hold many
nested Go example modules. Each one takes an optional root directory.

```
watermill-validate-examples [ROOT]
```

Walks `ROOT` (default `../../`) and finds every `.validate_example*.yml` file.
For each file it runs `validation_cmd` in the file's directory and waits up
to `timeout` seconds for an output line that matches the regular expression
`expected_output`. Afterwards it kills the process and runs `teardown_cmd`,
if one is set. The first example that fails stops the run with an error.

```
watermill-consolidate-gomods [ROOT]
```

Collects every nested `go.mod` under `ROOT` (default `.`), skipping paths that
contain `/vendor/`. The `module` and `go` lines are dropped and the remaining
lines of each file are printed under a `// <path>` header. The nested files
are then deleted. The `go.mod` at the root itself is left alone.

```
watermill-update-examples-deps [ROOT]
```

For every nested `go.mod` under `ROOT` (default `.`), five at a time, it
first runs `go get -u ./...`. It then pins the enclosing module, read from
the nearest `go.mod` in a parent directory, to `v1.2.0-rc.11` with `go get`.
Finally it runs `go mod tidy -go=1.19`. These steps need the `go` tool on
`PATH`.