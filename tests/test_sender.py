#
# Copyright (C) 2022 Intel Corporation
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#    http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.
#
from typing import Any, Callable, List

import pytest

from counterpublisher.counter_types import CounterSampleCollection
from counterpublisher.exceptions import SendIntervalOutOfRangeError, ThreadStopTimeoutError
from counterpublisher.sender import CounterSampleSender
from counterpublisher.settings import CloudWatchSettings
from counterpublisher.system_counters import CountersCollectorBase, NoopCountersCollector
from counterpublisher.writers import CloudWatchWriter, NoopWriter
from tests.utils import RecordingClient, make_collection


class ListCollector(CountersCollectorBase):
    def __init__(self) -> None:
        self.pending: List[CounterSampleCollection] = []
        self.started = False
        self.stopped = False

    def start(self) -> None:
        self.started = True

    def stop(self) -> None:
        self.stopped = True

    def drain(self) -> List[CounterSampleCollection]:
        drained, self.pending = self.pending, []
        return drained


@pytest.fixture
def collector() -> ListCollector:
    return ListCollector()


@pytest.fixture
def make_sender(
    make_settings: Callable[..., CloudWatchSettings],
    make_writer: Callable[..., CloudWatchWriter],
    collector: ListCollector,
) -> Callable[..., CounterSampleSender]:
    def _make_sender(**overrides: Any) -> CounterSampleSender:
        return CounterSampleSender(make_settings(**overrides), make_writer(**overrides), collector)

    return _make_sender


def test_start_and_stop(
    make_sender: Callable[..., CounterSampleSender], collector: ListCollector, client: RecordingClient
) -> None:
    with make_sender(send_interval=3600):
        assert collector.started
    assert collector.stopped
    assert client.closed == 1


def test_stop_flushes_pending_collections(
    make_sender: Callable[..., CounterSampleSender], collector: ListCollector, client: RecordingClient
) -> None:
    with make_sender(send_interval=3600):
        collector.pending = [make_collection("QueueLength")]
    assert client.sent_names() == ["QueueLength"]


def test_start_fails_on_short_interval(
    make_sender: Callable[..., CounterSampleSender], collector: ListCollector
) -> None:
    sender = make_sender(send_interval=10)
    with pytest.raises(SendIntervalOutOfRangeError):
        sender.start()
    assert not collector.started
    sender.stop()


def test_publish_once(
    make_sender: Callable[..., CounterSampleSender], collector: ListCollector, client: RecordingClient
) -> None:
    sender = make_sender(sender_id="master")
    sender._writer.start(sender)
    collector.pending = [make_collection("QueueLength"), make_collection("CpuUsagePercent")]

    assert sender.publish_once()
    assert client.sent_names() == ["QueueLength", "CpuUsagePercent"]
    assert sender.queue_length == 0
    _, points = client.calls[0]
    assert points[0].dimensions[-1].value == "master"

    # nothing new to publish
    assert sender.publish_once()
    assert len(client.calls) == 1


def test_failed_publish_is_retried(
    make_sender: Callable[..., CounterSampleSender], collector: ListCollector, client: RecordingClient
) -> None:
    sender = make_sender(max_retry_count=2)
    sender._writer.start(sender)
    client.fail = True

    collector.pending = [make_collection("First")]
    assert not sender.publish_once()
    collector.pending = [make_collection("Second")]
    assert not sender.publish_once()
    assert sender.queue_length == 2

    client.fail = False
    assert sender.publish_once()
    assert client.sent_names() == ["First", "Second"]
    assert sender.queue_length == 0


def test_queue_is_discarded_after_max_retries(
    make_sender: Callable[..., CounterSampleSender], collector: ListCollector, client: RecordingClient
) -> None:
    sender = make_sender(max_retry_count=1)
    sender._writer.start(sender)
    client.fail = True

    collector.pending = [make_collection("First")]
    assert not sender.publish_once()
    assert sender.queue_length == 1
    assert not sender.publish_once()
    assert sender.queue_length == 0


def test_queue_length_is_bounded(
    make_sender: Callable[..., CounterSampleSender], collector: ListCollector, client: RecordingClient
) -> None:
    sender = make_sender(max_queue_length=3, max_retry_count=10)
    sender._writer.start(sender)
    client.fail = True

    collector.pending = [make_collection(f"Counter{i}") for i in range(5)]
    assert not sender.publish_once()
    assert sender.queue_length == 3

    client.fail = False
    assert sender.publish_once()
    assert client.sent_names() == ["Counter2", "Counter3", "Counter4"]


def test_not_ready_keeps_queue(
    make_sender: Callable[..., CounterSampleSender], collector: ListCollector, client: RecordingClient
) -> None:
    disconnected: List[bool] = []
    sender = make_sender()
    sender.add_on_disconnected_callback(lambda: disconnected.append(True))
    writer = sender._writer
    writer.start(sender)
    assert isinstance(writer, CloudWatchWriter)

    writer.ready = False
    collector.pending = [make_collection("QueueLength")]
    assert not sender.publish_once()
    assert disconnected == [True]
    assert client.calls == []
    assert sender.queue_length == 1

    writer.ready = True
    assert sender.publish_once()
    assert client.sent_names() == ["QueueLength"]


def test_noop_writer(make_settings: Callable[..., CloudWatchSettings], collector: ListCollector) -> None:
    sender = CounterSampleSender(make_settings(), NoopWriter(), collector)
    sender._writer.start(sender)
    collector.pending = [make_collection("QueueLength")]
    assert sender.publish_once()
    assert sender.queue_length == 0
    sender.stop()


def test_noop_collector(make_settings: Callable[..., CloudWatchSettings]) -> None:
    sender = CounterSampleSender(make_settings(), NoopWriter(), NoopCountersCollector())
    sender._writer.start(sender)
    assert sender.publish_once()
    assert sender.queue_length == 0


def test_partially_published_queue_is_not_sent_twice(
    make_sender: Callable[..., CounterSampleSender], collector: ListCollector, client: RecordingClient
) -> None:
    sender = make_sender()
    sender._writer.start(sender)
    client.fail_after = 1

    collector.pending = [make_collection(f"Counter{i}") for i in range(25)]
    assert not sender.publish_once()
    assert sender.queue_length == 5

    client.fail_after = None
    assert sender.publish_once()
    sent = client.sent_names()
    assert sorted(sent) == sorted(f"Counter{i}" for i in range(25))
    assert len(sent) == len(set(sent))


def test_writer_is_disposed_when_collector_fails_to_stop(
    make_settings: Callable[..., CloudWatchSettings],
    make_writer: Callable[..., CloudWatchWriter],
    client: RecordingClient,
) -> None:
    class StuckCollector(ListCollector):
        def stop(self) -> None:
            raise ThreadStopTimeoutError("collector thread is stuck")

    sender = CounterSampleSender(make_settings(), make_writer(), StuckCollector())
    sender._writer.start(sender)
    with pytest.raises(ThreadStopTimeoutError):
        sender.stop()
    assert client.closed == 1
