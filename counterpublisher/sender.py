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
import time
from threading import Event, Thread
from typing import Callable, List, Optional

from counterpublisher.counter_types import CounterSampleCollection
from counterpublisher.exceptions import ThreadStopTimeoutError
from counterpublisher.log import get_logger_adapter
from counterpublisher.settings import CounterSampleSenderSettings
from counterpublisher.system_counters import CountersCollectorBase
from counterpublisher.writers.writer_base import CounterSampleWriterInterface

STOP_TIMEOUT_SECONDS = 30

logger = get_logger_adapter(__name__)


class CounterSampleSenderBase:
    def __init__(self, sender_id: str, send_interval: int):
        self._sender_id = sender_id
        self._send_interval = send_interval
        self._on_disconnected: List[Callable[[], None]] = []

    @property
    def sender_id(self) -> str:
        return self._sender_id

    @property
    def send_interval(self) -> int:
        return self._send_interval

    def add_on_disconnected_callback(self, callback: Callable[[], None]) -> None:
        self._on_disconnected.append(callback)

    def raise_on_disconnected_event(self) -> None:
        logger.warning(f"Writer of sender {self._sender_id!r} is not ready, counters were not published")
        for callback in self._on_disconnected:
            callback()


class CounterSampleSender(CounterSampleSenderBase):
    """
    Every send interval, drains the collector and publishes the collections through the writer.

    Collections that were not sent because of an error stay queued (up to max_queue_length of them) and are published
    again with the next interval's collections. Once consecutive failures exceed max_retry_count the queue is discarded.
    """

    def __init__(
        self,
        settings: CounterSampleSenderSettings,
        writer: CounterSampleWriterInterface,
        collector: CountersCollectorBase,
    ):
        super().__init__(settings.sender_id, settings.send_interval)
        self._writer = writer
        self._collector = collector
        self._max_queue_length = settings.max_queue_length
        self._max_retry_count = settings.max_retry_count
        self._queue: List[CounterSampleCollection] = []
        self._consecutive_failures = 0
        self._stop_event = Event()
        self._thread: Optional[Thread] = None

    @property
    def queue_length(self) -> int:
        return len(self._queue)

    def start(self) -> None:
        assert self._thread is None, "CounterSampleSender is already running"
        self._writer.start(self)
        self._collector.start()
        self._stop_event.clear()
        self._thread = Thread(target=self._send_loop, name="counter-sample-sender")
        self._thread.start()

    def _send_loop(self) -> None:
        while not self._stop_event.is_set():
            cycle_start = time.monotonic()
            self._stop_event.wait(self._send_interval)
            # also flush on stop, so the last partial interval isn't lost
            try:
                self.publish_once()
            except Exception:
                logger.exception("Unexpected error while publishing counters")
            logger.debug(f"Publish cycle took {time.monotonic() - cycle_start:.3f} seconds")

    def _enqueue(self, collections: List[CounterSampleCollection]) -> None:
        self._queue.extend(collections)
        overflow = len(self._queue) - self._max_queue_length
        if overflow > 0:
            logger.warning(f"Counters queue is full (max {self._max_queue_length}), dropping {overflow} oldest")
            del self._queue[:overflow]

    def _drop_published(self) -> None:
        # collections sent before a failure must not be sent again
        published = {id(collection) for collection in self._writer.published_collections}
        if published:
            self._queue = [collection for collection in self._queue if id(collection) not in published]

    def publish_once(self) -> bool:
        """
        Drains the collector and publishes everything queued.
        :returns: whether publishing succeeded.
        """
        self._enqueue(self._collector.drain())
        if not self._queue:
            return True

        try:
            self._writer.publish(self._queue)
        except Exception:
            self._drop_published()
            self._consecutive_failures += 1
            logger.exception(
                f"Failed to publish {len(self._queue)} counter collections"
                f" (attempt {self._consecutive_failures}/{self._max_retry_count + 1})"
            )
            if self._consecutive_failures > self._max_retry_count:
                logger.error(f"Giving up on {len(self._queue)} counter collections after repeated failures")
                self._queue = []
                self._consecutive_failures = 0
            return False

        if not self._writer.ready:
            # nothing was sent, keep the collections for the next cycle
            return False

        logger.debug(f"Published {len(self._queue)} counter collections")
        self._queue = []
        self._consecutive_failures = 0
        return True

    def stop(self) -> None:
        self._stop_event.set()
        try:
            if self._thread is not None:
                self._thread.join(STOP_TIMEOUT_SECONDS)
                if self._thread.is_alive():
                    raise ThreadStopTimeoutError("Timed out while waiting for the sender thread to stop")
                self._thread = None
        finally:
            try:
                self._collector.stop()
            finally:
                self._writer.dispose()

    def __enter__(self):
        self.start()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.stop()
