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
from datetime import timedelta
from typing import List, Optional, Sequence, Tuple

from counterpublisher.client import MetricsClient
from counterpublisher.counter_types import CounterSample, CounterSampleCollection
from counterpublisher.metrics import MetricDataPoint
from counterpublisher.sender import CounterSampleSenderBase
from counterpublisher.settings import CloudWatchSettings
from tests import BASE_TIME


def make_collection(name: str, values: Sequence[float] = (1.0,)) -> CounterSampleCollection:
    return CounterSampleCollection(
        name, [CounterSample(value, BASE_TIME + timedelta(seconds=i)) for i, value in enumerate(values)]
    )


class RecordingClient(MetricsClient):
    def __init__(self, settings: CloudWatchSettings = None, fail: bool = False, fail_after: Optional[int] = None):
        self.settings = settings
        self.fail = fail
        # fail every call once this many calls went through
        self.fail_after = fail_after
        self.calls: List[Tuple[str, List[MetricDataPoint]]] = []
        self.closed = 0

    def put_metric_data(self, namespace: str, points: Sequence[MetricDataPoint]) -> None:
        if self.fail or (self.fail_after is not None and len(self.calls) >= self.fail_after):
            raise ConnectionError("remote is unreachable")
        self.calls.append((namespace, list(points)))

    def close(self) -> None:
        self.closed += 1

    def sent_names(self) -> List[str]:
        return [point.name for _, points in self.calls for point in points]


class FakeSender(CounterSampleSenderBase):
    def __init__(self, sender_id: str = "sender-1", send_interval: int = 60):
        super().__init__(sender_id, send_interval)
        self.disconnected = 0
        self.add_on_disconnected_callback(self._count_disconnected)

    def _count_disconnected(self) -> None:
        self.disconnected += 1
