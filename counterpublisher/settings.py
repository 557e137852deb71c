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
import re
from dataclasses import dataclass
from typing import Optional
from urllib.parse import urlparse

import configargparse

from counterpublisher.exceptions import InvalidSettingsError

DEFAULT_SEND_INTERVAL = 60
DEFAULT_MAX_RETRY_COUNT = 3
DEFAULT_MAX_QUEUE_LENGTH = 120
DEFAULT_REGION = "us-east-1"

# monitoring.us-east-1.amazonaws.com
REGION_FROM_HOST_RE = re.compile(r"^monitoring\.([a-z0-9-]+)\.amazonaws\.com(?:\.cn)?$")


@dataclass(frozen=True)
class CounterSampleSenderSettings:
    send_interval: int = DEFAULT_SEND_INTERVAL
    max_retry_count: int = DEFAULT_MAX_RETRY_COUNT
    max_queue_length: int = DEFAULT_MAX_QUEUE_LENGTH
    sender_id: str = ""

    def __post_init__(self) -> None:
        if self.send_interval <= 0:
            raise InvalidSettingsError("send_interval", f"must be positive, got {self.send_interval!r}")
        if self.max_queue_length <= 0:
            raise InvalidSettingsError("max_queue_length", f"must be positive, got {self.max_queue_length!r}")
        if self.max_retry_count < 0:
            raise InvalidSettingsError("max_retry_count", f"must be non-negative, got {self.max_retry_count!r}")


@dataclass(frozen=True)
class CloudWatchSettings(CounterSampleSenderSettings):
    # required fields default to "" and are checked in __post_init__
    access_key: str = ""
    secret_key: str = ""
    service_url: str = ""
    namespace: str = ""
    # "Namespace.Metric" is written to namespace "<namespace>/Namespace" with name "Metric"
    auto_namespace: bool = False
    instance_id_lookup_url: Optional[str] = None
    auto_scaling_config_file_path: Optional[str] = None
    region: Optional[str] = None

    def __post_init__(self) -> None:
        super().__post_init__()
        for required in ("access_key", "secret_key", "service_url", "namespace"):
            if not getattr(self, required):
                raise InvalidSettingsError(required, "is required")

        url = urlparse(self.service_url)
        if url.scheme not in ("http", "https") or not url.hostname:
            raise InvalidSettingsError("service_url", f"{self.service_url!r} is not a valid http(s) URL")

    @property
    def region_name(self) -> str:
        if self.region:
            return self.region
        hostname = urlparse(self.service_url).hostname or ""
        m = REGION_FROM_HOST_RE.match(hostname)
        return m.group(1) if m is not None else DEFAULT_REGION

    @classmethod
    def from_args(cls, args: configargparse.Namespace) -> "CloudWatchSettings":
        return cls(
            send_interval=args.send_interval,
            max_retry_count=args.max_retry_count,
            max_queue_length=args.max_queue_length,
            sender_id=args.sender_id or "",
            access_key=args.access_key,
            secret_key=args.secret_key,
            service_url=args.service_url,
            namespace=args.namespace,
            auto_namespace=args.auto_namespace,
            instance_id_lookup_url=args.instance_id_lookup_url,
            auto_scaling_config_file_path=args.auto_scaling_config_file_path,
            region=args.region,
        )
