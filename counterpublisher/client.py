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
import json
from typing import Any, Dict, List, Optional, Sequence

import boto3
from botocore.config import Config

from counterpublisher.log import get_logger_adapter
from counterpublisher.metrics import MetricDataPoint
from counterpublisher.settings import CloudWatchSettings

DEFAULT_CONNECT_TIMEOUT = 10
DEFAULT_READ_TIMEOUT = 30

# PutMetricData is limited to 40KB for HTTP POST requests
MAX_PAYLOAD_SIZE = 40 * 1024

logger = get_logger_adapter(__name__)


class MetricsClient:
    """
    Interface class for the transports the writers push metric data points through.
    """

    def put_metric_data(self, namespace: str, points: Sequence[MetricDataPoint]) -> None:
        raise NotImplementedError

    def close(self) -> None:
        pass


def get_payload_size(metric_data: List[Dict[str, Any]]) -> int:
    """
    Estimates the request size from the JSON encoding of MetricData. botocore sends the request in its own wire
    protocol (query or CBOR), so the actual size differs somewhat; MAX_PAYLOAD_SIZE is compared against this estimate.
    """
    return len(json.dumps(metric_data, default=str).encode("utf-8"))


def split_by_payload_size(
    points: Sequence[MetricDataPoint], max_payload_size: Optional[int] = None
) -> List[List[MetricDataPoint]]:
    """
    Splits points into consecutive chunks whose encoded MetricData fits in max_payload_size (default:
    MAX_PAYLOAD_SIZE). A single point is never split further, even if it doesn't fit.
    """
    if max_payload_size is None:
        max_payload_size = MAX_PAYLOAD_SIZE
    if len(points) <= 1 or get_payload_size([p.to_request() for p in points]) <= max_payload_size:
        return [list(points)]
    middle = len(points) // 2
    return split_by_payload_size(points[:middle], max_payload_size) + split_by_payload_size(
        points[middle:], max_payload_size
    )


class CloudWatchClient(MetricsClient):
    def __init__(self, settings: CloudWatchSettings):
        self._client = boto3.client(
            "cloudwatch",
            aws_access_key_id=settings.access_key,
            aws_secret_access_key=settings.secret_key,
            endpoint_url=settings.service_url,
            region_name=settings.region_name,
            config=Config(
                # a single attempt per call: failed publishes are retried by the sender on its next interval
                retries={"total_max_attempts": 1, "mode": "standard"},
                connect_timeout=DEFAULT_CONNECT_TIMEOUT,
                read_timeout=DEFAULT_READ_TIMEOUT,
            ),
        )
        logger.info(f"Created CloudWatch client for {settings.service_url} in region {settings.region_name}")

    def put_metric_data(self, namespace: str, points: Sequence[MetricDataPoint]) -> None:
        for chunk in split_by_payload_size(points):
            if len(chunk) < len(points):
                logger.debug(f"Payload for ns://{namespace} is too large, sent as {len(chunk)}/{len(points)} points")
            self._client.put_metric_data(Namespace=namespace, MetricData=[p.to_request() for p in chunk])

    def close(self) -> None:
        self._client.close()
