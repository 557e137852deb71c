from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional

EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)


class StandardUnit(str, Enum):
    BITS = "Bits"
    BYTES = "Bytes"
    KILOBITS = "Kilobits"
    KILOBYTES = "Kilobytes"
    MEGABITS = "Megabits"
    MEGABYTES = "Megabytes"
    GIGABITS = "Gigabits"
    GIGABYTES = "Gigabytes"
    TERABITS = "Terabits"
    TERABYTES = "Terabytes"
    MICROSECONDS = "Microseconds"
    MILLISECONDS = "Milliseconds"
    SECONDS = "Seconds"
    COUNT = "Count"
    PERCENT = "Percent"
    BITS_PER_SECOND = "Bits/Second"
    BYTES_PER_SECOND = "Bytes/Second"
    KILOBITS_PER_SECOND = "Kilobits/Second"
    KILOBYTES_PER_SECOND = "Kilobytes/Second"
    MEGABITS_PER_SECOND = "Megabits/Second"
    MEGABYTES_PER_SECOND = "Megabytes/Second"
    GIGABITS_PER_SECOND = "Gigabits/Second"
    GIGABYTES_PER_SECOND = "Gigabytes/Second"
    TERABITS_PER_SECOND = "Terabits/Second"
    TERABYTES_PER_SECOND = "Terabytes/Second"
    COUNT_PER_SECOND = "Count/Second"

    def per_second(self) -> "StandardUnit":
        return StandardUnit(f"{self.value}/Second")


@dataclass(frozen=True)
class Dimension:
    name: str
    value: str


@dataclass
class StatisticSet:
    minimum: float = 0.0
    maximum: float = 0.0
    sample_count: float = 0.0
    sum: float = 0.0


@dataclass
class MetricDataPoint:
    # Either statistic_values or value is set, never both.
    name: str
    unit: StandardUnit = StandardUnit.COUNT
    timestamp: datetime = EPOCH
    statistic_values: Optional[StatisticSet] = None
    value: Optional[float] = None
    dimensions: List[Dimension] = field(default_factory=list)

    def renamed(self, name: str) -> "MetricDataPoint":
        return replace(self, name=name)

    def to_request(self) -> Dict[str, Any]:
        """
        Renders this point as an entry of the MetricData list of a PutMetricData request.
        """
        datum: Dict[str, Any] = {
            "MetricName": self.name,
            "Dimensions": [{"Name": d.name, "Value": d.value} for d in self.dimensions],
            "Timestamp": self.timestamp,
            "Unit": self.unit.value,
        }
        if self.statistic_values is not None:
            datum["StatisticValues"] = {
                "SampleCount": self.statistic_values.sample_count,
                "Sum": self.statistic_values.sum,
                "Minimum": self.statistic_values.minimum,
                "Maximum": self.statistic_values.maximum,
            }
        else:
            datum["Value"] = self.value
        return datum

    def describe(self) -> str:
        parts = ["(Metric", f"name = {self.name}"]
        if self.statistic_values is not None:
            stats = self.statistic_values
            parts.append(
                f"stats = (min {stats.minimum}, max {stats.maximum}, count {stats.sample_count}, sum {stats.sum})"
            )
        else:
            parts.append(f"val = {self.value}")
        parts.append(f"unit = {self.unit.value}")
        parts.append(f"ts = {self.timestamp.isoformat()}")
        return ", ".join(parts) + ")"
