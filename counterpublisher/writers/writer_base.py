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
from typing import TYPE_CHECKING, List, Optional, Sequence

from counterpublisher.counter_types import CounterSampleCollection
from counterpublisher.exceptions import InvalidStateError, SendIntervalOutOfRangeError
from counterpublisher.log import get_logger_adapter

if TYPE_CHECKING:
    from counterpublisher.sender import CounterSampleSenderBase

logger = get_logger_adapter(__name__)


class CounterSampleWriterInterface:
    """
    Interface class for all writers. A writer is started once by its sender, publishes the collections the sender
    hands it every interval, and is disposed once.
    """

    @property
    def ready(self) -> bool:
        return True

    @property
    def published_collections(self) -> Sequence[CounterSampleCollection]:
        """
        The collections the last publish() call has fully sent, even if it raised afterwards.
        """
        return []

    def start(self, sender: "CounterSampleSenderBase") -> None:
        raise NotImplementedError

    def publish(self, collections: Sequence[CounterSampleCollection]) -> None:
        raise NotImplementedError

    def dispose(self) -> None:
        pass

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.dispose()


class CounterSampleWriterBase(CounterSampleWriterInterface):
    """
    Base writer class, implementing the Uninitialized -> Started -> Disposed lifecycle.
    Subclasses implement _start(), _publish() and _dispose().
    """

    MIN_SEND_INTERVAL: Optional[int] = None

    def __init__(self) -> None:
        self._sender: Optional["CounterSampleSenderBase"] = None
        self._disposed = False
        self._ready = True
        self._published: List[CounterSampleCollection] = []

    @property
    def ready(self) -> bool:
        return self._ready

    @ready.setter
    def ready(self, value: bool) -> None:
        self._ready = value

    @property
    def published_collections(self) -> Sequence[CounterSampleCollection]:
        return self._published

    @property
    def sender_id(self) -> str:
        return self._sender.sender_id if self._sender is not None else ""

    def _check_not_disposed(self) -> None:
        if self._disposed:
            raise InvalidStateError(f"{self.__class__.__name__} was disposed")

    def start(self, sender: "CounterSampleSenderBase") -> None:
        self._check_not_disposed()
        if self._sender is not None:
            raise InvalidStateError(f"{self.__class__.__name__} already started, can't start it a second time")

        if self.MIN_SEND_INTERVAL is not None and sender.send_interval < self.MIN_SEND_INTERVAL:
            raise SendIntervalOutOfRangeError(sender.send_interval, self.MIN_SEND_INTERVAL)

        self._sender = sender
        self._start()
        logger.info(f"Started {self.__class__.__name__} (send interval: {sender.send_interval}s)")

    def publish(self, collections: Sequence[CounterSampleCollection]) -> None:
        self._check_not_disposed()
        if self._sender is None:
            raise InvalidStateError(f"{self.__class__.__name__} was not started")

        self._published = []
        if not self.ready:
            self._sender.raise_on_disconnected_event()
            return

        self._publish(collections)

    def dispose(self) -> None:
        if self._disposed:
            return
        try:
            self._dispose()
        finally:
            self._sender = None
            self._disposed = True

    def _start(self) -> None:
        pass

    def _publish(self, collections: Sequence[CounterSampleCollection]) -> None:
        raise NotImplementedError

    def _mark_published(self, collection: CounterSampleCollection) -> None:
        self._published.append(collection)

    def _dispose(self) -> None:
        pass


class NoopWriter(CounterSampleWriterBase):
    """
    No-op writer - used as a drop-in replacement for the real writers when uploading is disabled.
    """

    def _publish(self, collections: Sequence[CounterSampleCollection]) -> None:
        logger.debug(f"Not uploading {len(collections)} counter collections (uploading is disabled)")
