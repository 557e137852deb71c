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
import socket
from pathlib import Path
from typing import Optional

import requests
from requests import Response

from counterpublisher.exceptions import BadResponseCode
from counterpublisher.log import get_logger_adapter

LOOKUP_TIMEOUT = 5

# EC2 instance metadata service, usable as --instance-id-lookup-url
AWS_INSTANCE_ID_URL = "http://169.254.169.254/latest/meta-data/instance-id"

logger = get_logger_adapter(__name__)


def get_hostname() -> str:
    return socket.gethostname()


def send_request(url: str) -> Response:
    response = requests.get(url, timeout=LOOKUP_TIMEOUT)
    if not response.ok:
        raise BadResponseCode(response.status_code)
    return response


def resolve_instance_id(lookup_url: Optional[str]) -> str:
    """
    Returns the instance id served by lookup_url, or the local hostname if there's no URL or the lookup fails
    (which is expected when not running on EC2).
    """
    hostname = get_hostname()
    if not lookup_url:
        return hostname

    try:
        return send_request(lookup_url).text.strip()
    except Exception:
        logger.exception(
            f"Failed to retrieve instance id. Using hostname {hostname!r} instead (lookup URL was {lookup_url})"
        )
        return hostname


def resolve_auto_scaling_group_name(config_file_path: Optional[str]) -> Optional[str]:
    if not config_file_path:
        return None

    path = Path(config_file_path)
    try:
        if not path.is_file():
            logger.warning(f"Auto scaling config file not found: {config_file_path}")
            return None
        group_name = path.read_text().strip()
    except Exception:
        logger.exception(f"Failed to read auto scaling group name from config file {config_file_path}")
        return None

    logger.info(f"Auto scaling group name {group_name!r} read from config file {path.resolve()}")
    return group_name
