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
Turns the samples of a single counter into one metric data point: the unit is guessed from the counter name,
and the samples are summarized into min / max / count / sum.
"""
from typing import Iterable, List, Optional, Tuple

from counterpublisher.counter_types import CounterSampleCollection
from counterpublisher.metrics import EPOCH, Dimension, MetricDataPoint, StandardUnit, StatisticSet

DATA_SIZE_UNITS: Tuple[StandardUnit, ...] = (
    StandardUnit.BITS,
    StandardUnit.BYTES,
    StandardUnit.GIGABITS,
    StandardUnit.GIGABYTES,
    StandardUnit.KILOBITS,
    StandardUnit.KILOBYTES,
    StandardUnit.MEGABITS,
    StandardUnit.MEGABYTES,
    StandardUnit.TERABITS,
    StandardUnit.TERABYTES,
)

OTHER_UNITS: Tuple[StandardUnit, ...] = (
    StandardUnit.MICROSECONDS,
    StandardUnit.MILLISECONDS,
    StandardUnit.SECONDS,
    StandardUnit.COUNT,
    StandardUnit.PERCENT,
)

PER_SECOND_MARKER = "persec"

INSTANCE_ID_DIMENSION = "InstanceId"
AUTO_SCALING_GROUP_DIMENSION = "AutoScalingGroupName"
SENDER_ID_DIMENSION = "SenderId"


def _last_matching_unit(name: str, units: Iterable[StandardUnit], default: StandardUnit) -> StandardUnit:
    # The whole table is scanned, so a later entry overrides an earlier one.
    unit = default
    for candidate in units:
        if candidate.value in name:
            unit = candidate
    return unit


def infer_unit(name: str) -> StandardUnit:
    unit = _last_matching_unit(name, DATA_SIZE_UNITS, StandardUnit.COUNT)
    if PER_SECOND_MARKER in name.lower():
        return unit.per_second()
    return _last_matching_unit(name, OTHER_UNITS, unit)


def get_dimensions(
    instance_id: Optional[str], auto_scaling_group_name: Optional[str], sender_id: Optional[str]
) -> List[Dimension]:
    candidates = [
        (INSTANCE_ID_DIMENSION, instance_id),
        (AUTO_SCALING_GROUP_DIMENSION, auto_scaling_group_name),
        (SENDER_ID_DIMENSION, sender_id),
    ]
    return [Dimension(name, value) for name, value in candidates if value]


def build_metric_data_point(collection: CounterSampleCollection, dimensions: List[Dimension]) -> MetricDataPoint:
    stats = StatisticSet()
    timestamp = EPOCH
    for sample in collection:
        # min and max start at 0 like the other statistics, so they always include 0
        stats.minimum = min(stats.minimum, sample.value)
        stats.maximum = max(stats.maximum, sample.value)
        stats.sample_count += 1
        stats.sum += sample.value
        timestamp = max(timestamp, sample.timestamp)

    return MetricDataPoint(
        name=collection.counter_name,
        unit=infer_unit(collection.counter_name),
        timestamp=timestamp,
        statistic_values=stats,
        dimensions=list(dimensions),
    )
