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
"""
Publishes metric data points to Amazon CloudWatch.

CloudWatch creates a metric the first time a data point is published for it; it can take up to fifteen minutes
for a new metric to show up in list-metrics.
A PutMetricData request is limited to 20 data points and 40KB (HTTP POST), and metric names to 255 characters.
CloudWatch aggregates the data to a minimum granularity of one minute, so the send interval must be at least
one minute.
"""
import logging
from typing import Callable, List, Optional, Sequence, Tuple

from counterpublisher.client import CloudWatchClient, MetricsClient
from counterpublisher.counter_types import CounterSampleCollection
from counterpublisher.instance_metadata import resolve_auto_scaling_group_name, resolve_instance_id
from counterpublisher.log import get_logger_adapter
from counterpublisher.metrics import MetricDataPoint
from counterpublisher.metrics.aggregation import build_metric_data_point, get_dimensions
from counterpublisher.settings import CloudWatchSettings
from counterpublisher.writers.writer_base import CounterSampleWriterBase

MAX_METRIC_NAME_LENGTH = 255
MIN_SEND_INTERVAL = 60
METRICS_MAX_BATCH_SIZE = 20

NAMESPACE_SEPARATOR = "/"

# (namespace, [(index in the batch, name to publish under)])
RoutedGroup = Tuple[str, List[Tuple[int, str]]]

logger = get_logger_adapter(__name__)


def route_by_namespace(names: Sequence[str], namespace: str, auto_namespace: bool) -> List[RoutedGroup]:
    """
    Splits a batch of metric names into namespace groups.

    Without auto_namespace the whole batch goes to namespace.
    With auto_namespace, a name "A.B.name" goes to "<namespace>/A/B" and is renamed to "name". Names with no
    dot (or only a leading one) go to namespace as-is.
    Names are taken from the end of the batch, and each group is filled by scanning the rest of the batch from its
    end, so the order of the groups (and inside them) follows that scan.
    """
    if not names:
        return []
    if not auto_namespace:
        return [(namespace, list(enumerate(names)))]

    groups: List[RoutedGroup] = []
    remaining = list(range(len(names)))
    while remaining:
        first = remaining.pop()
        first_name = names[first]
        nsi = first_name.rfind(".")
        if nsi > 0:
            prefix = first_name[: nsi + 1]
            target = namespace + NAMESPACE_SEPARATOR + first_name[:nsi].replace(".", NAMESPACE_SEPARATOR)
            members = [(first, first_name[nsi + 1 :])]
            for i in range(len(remaining) - 1, -1, -1):
                if names[remaining[i]].startswith(prefix):
                    index = remaining.pop(i)
                    members.append((index, names[index][nsi + 1 :]))
        else:
            # collect all the names without dots
            target = namespace
            members = [(first, first_name)]
            for i in range(len(remaining) - 1, -1, -1):
                if "." not in names[remaining[i]]:
                    index = remaining.pop(i)
                    members.append((index, names[index]))

        groups.append((target, members))

    return groups


class CloudWatchWriter(CounterSampleWriterBase):
    MIN_SEND_INTERVAL = MIN_SEND_INTERVAL

    def __init__(
        self,
        settings: CloudWatchSettings,
        client_factory: Callable[[CloudWatchSettings], MetricsClient] = CloudWatchClient,
    ):
        super().__init__()
        self._settings = settings
        self._client_factory = client_factory
        self._client: Optional[MetricsClient] = None
        self._instance_id: Optional[str] = None
        self._auto_scaling_group_name: Optional[str] = None

    @property
    def instance_id(self) -> Optional[str]:
        return self._instance_id

    @property
    def auto_scaling_group_name(self) -> Optional[str]:
        return self._auto_scaling_group_name

    def _start(self) -> None:
        self._instance_id = resolve_instance_id(self._settings.instance_id_lookup_url)
        self._auto_scaling_group_name = resolve_auto_scaling_group_name(self._settings.auto_scaling_config_file_path)
        # errors here (bad credentials / endpoint) can't be degraded, let them propagate.
        self._client = self._client_factory(self._settings)

    def _publish(self, collections: Sequence[CounterSampleCollection]) -> None:
        dimensions = get_dimensions(self._instance_id, self._auto_scaling_group_name, self.sender_id)

        batch: List[Tuple[MetricDataPoint, CounterSampleCollection]] = []
        for collection in collections:
            point = build_metric_data_point(collection, dimensions)
            if len(point.name) > MAX_METRIC_NAME_LENGTH:
                logger.warning(f"Metric name is too long (max {MAX_METRIC_NAME_LENGTH}): {point.describe()}")
                # dropped for good, there's no point in retrying it
                self._mark_published(collection)
                continue
            batch.append((point, collection))
            if len(batch) == METRICS_MAX_BATCH_SIZE:
                self._flush(batch)
                batch = []

        # publish the remainder, if any
        self._flush(batch)

    def _flush(self, batch: List[Tuple[MetricDataPoint, CounterSampleCollection]]) -> None:
        assert self._client is not None, "didn't call start()?"
        names = [point.name for point, _ in batch]
        for namespace, members in route_by_namespace(names, self._settings.namespace, self._settings.auto_namespace):
            group = [batch[i][0] if batch[i][0].name == name else batch[i][0].renamed(name) for i, name in members]
            if logger.isEnabledFor(logging.DEBUG):
                for point in group:
                    logger.debug(f"Report metric at ns://{namespace}: {point.describe()}")
            self._client.put_metric_data(namespace, group)
            for i, _ in members:
                self._mark_published(batch[i][1])

    def _dispose(self) -> None:
        if self._client is not None:
            self._client.close()
            self._client = None
