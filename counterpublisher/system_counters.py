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
from abc import ABCMeta, abstractmethod
from datetime import datetime, timezone
from threading import Event, RLock, Thread
from typing import Dict, List, Optional, Tuple

import psutil

from counterpublisher.counter_types import CounterSample, CounterSampleCollection
from counterpublisher.exceptions import ThreadStopTimeoutError
from counterpublisher.log import get_logger_adapter

DEFAULT_POLLING_INTERVAL_SECONDS = 5
STOP_TIMEOUT_SECONDS = 30

CPU_USAGE_PERCENT = "System.CpuUsagePercent"
MEMORY_USED_BYTES = "System.MemoryUsedBytes"
MEMORY_USAGE_PERCENT = "System.MemoryUsagePercent"
NETWORK_BYTES_SENT_PER_SEC = "Network.BytesSentPerSec"
NETWORK_BYTES_RECV_PER_SEC = "Network.BytesRecvPerSec"
DISK_READ_BYTES_PER_SEC = "Disk.ReadBytesPerSec"
DISK_WRITE_BYTES_PER_SEC = "Disk.WriteBytesPerSec"

SYSTEM_COUNTERS = (
    CPU_USAGE_PERCENT,
    MEMORY_USED_BYTES,
    MEMORY_USAGE_PERCENT,
    NETWORK_BYTES_SENT_PER_SEC,
    NETWORK_BYTES_RECV_PER_SEC,
    DISK_READ_BYTES_PER_SEC,
    DISK_WRITE_BYTES_PER_SEC,
)

logger = get_logger_adapter(__name__)


class CountersCollectorBase(metaclass=ABCMeta):
    @abstractmethod
    def start(self) -> None:
        pass

    @abstractmethod
    def stop(self) -> None:
        pass

    @abstractmethod
    def drain(self) -> List[CounterSampleCollection]:
        """
        Returns the samples gathered since the last call, one collection per counter.
        """
        raise NotImplementedError


class SystemCountersCollector(CountersCollectorBase):
    def __init__(self, stop_event: Event, polling_rate_seconds: int = DEFAULT_POLLING_INTERVAL_SECONDS):
        self._polling_rate_seconds = polling_rate_seconds
        self._stop_event = stop_event
        self._thread: Optional[Thread] = None
        self._lock = RLock()
        self._samples: Dict[str, List[CounterSample]] = {name: [] for name in SYSTEM_COUNTERS}
        self._last_poll_time: Optional[float] = None
        self._last_io_counters: Optional[Tuple[int, int, int, int]] = None

        psutil.cpu_percent()  # Call this once so the first poll measures from now

    def start(self) -> None:
        assert self._thread is None, "SystemCountersCollector is already running"
        self._stop_event.clear()
        self._thread = Thread(target=self._continuously_poll, args=(self._polling_rate_seconds,))
        self._thread.start()

    def stop(self) -> None:
        self._stop_event.set()
        if self._thread is None:
            return
        self._thread.join(STOP_TIMEOUT_SECONDS)
        if self._thread.is_alive():
            raise ThreadStopTimeoutError("Timed out while waiting for the SystemCountersCollector thread to stop")
        self._thread = None

    def _continuously_poll(self, polling_rate_seconds: int) -> None:
        while not self._stop_event.is_set():
            start_time = time.monotonic()
            try:
                self.poll()
            except Exception:
                logger.exception("Failed to poll system counters")
            elapsed = time.monotonic() - start_time
            self._stop_event.wait(timeout=max(polling_rate_seconds - elapsed, 0))

    @staticmethod
    def _read_io_counters() -> Tuple[int, int, int, int]:
        net = psutil.net_io_counters()
        disk = psutil.disk_io_counters()
        disk_read, disk_write = (disk.read_bytes, disk.write_bytes) if disk is not None else (0, 0)
        return net.bytes_sent, net.bytes_recv, disk_read, disk_write

    def poll(self) -> None:
        now = datetime.now(timezone.utc)
        poll_time = time.monotonic()
        memory = psutil.virtual_memory()
        values = {
            CPU_USAGE_PERCENT: psutil.cpu_percent(),
            MEMORY_USED_BYTES: float(memory.used),
            MEMORY_USAGE_PERCENT: memory.percent,
        }

        io_counters = self._read_io_counters()
        if self._last_io_counters is not None and self._last_poll_time is not None:
            elapsed = poll_time - self._last_poll_time
            if elapsed > 0:
                rates = [(current - last) / elapsed for current, last in zip(io_counters, self._last_io_counters)]
                values[NETWORK_BYTES_SENT_PER_SEC] = rates[0]
                values[NETWORK_BYTES_RECV_PER_SEC] = rates[1]
                values[DISK_READ_BYTES_PER_SEC] = rates[2]
                values[DISK_WRITE_BYTES_PER_SEC] = rates[3]
        self._last_io_counters = io_counters
        self._last_poll_time = poll_time

        with self._lock:
            for name, value in values.items():
                self._samples[name].append(CounterSample(value, now))

    def drain(self) -> List[CounterSampleCollection]:
        with self._lock:
            # Make sure there's only one thread that takes out the samples
            collections = [CounterSampleCollection(name, samples) for name, samples in self._samples.items()]
            self._samples = {name: [] for name in SYSTEM_COUNTERS}
        return collections


class NoopCountersCollector(CountersCollectorBase):
    def start(self) -> None:
        pass

    def stop(self) -> None:
        pass

    def drain(self) -> List[CounterSampleCollection]:
        return []
