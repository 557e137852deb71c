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
import logging
import logging.handlers
import os
import re
import sys
import time

ROOT_LOGGER_NAME = "counterpublisher"
LOGGER_NAME_RE = re.compile(r"counterpublisher(?:\..+)?")

VERBOSE_FORMAT = "[%(asctime)s] %(levelname)s: %(name)s: %(message)s"
SHORT_FORMAT = "[%(asctime)s] %(message)s"


def get_logger_adapter(logger_name: str) -> logging.LoggerAdapter:
    # Validate the name starts with counterpublisher (the root logger name), so logging parent logger propagation
    # will work.
    assert LOGGER_NAME_RE.match(logger_name) is not None, f"logger name must start with {ROOT_LOGGER_NAME!r}"
    return logging.LoggerAdapter(logging.getLogger(logger_name), {})


class UTCFormatter(logging.Formatter):
    # Patch formatTime to be GMT (UTC) for all formatters,
    # see https://docs.python.org/3/library/logging.html?highlight=formattime#logging.Formatter.formatTime
    converter = time.gmtime


def initial_root_logger_setup(
    stream_level: int,
    log_file_path: str,
    rotate_max_bytes: int,
    rotate_backup_count: int,
) -> logging.LoggerAdapter:
    logger_adapter = get_logger_adapter(ROOT_LOGGER_NAME)
    logger_adapter.logger.setLevel(logging.DEBUG)

    stream_handler = logging.StreamHandler(stream=sys.stdout)
    stream_handler.setLevel(stream_level)
    if stream_level < logging.INFO:
        stream_handler.setFormatter(UTCFormatter(VERBOSE_FORMAT))
    else:
        stream_handler.setFormatter(UTCFormatter(SHORT_FORMAT, "%H:%M:%S"))
    logger_adapter.logger.addHandler(stream_handler)

    log_dir = os.path.dirname(log_file_path)
    if log_dir:
        os.makedirs(log_dir, exist_ok=True)
    file_handler = logging.handlers.RotatingFileHandler(
        log_file_path,
        maxBytes=rotate_max_bytes,
        backupCount=rotate_backup_count,
    )
    file_handler.setLevel(logging.DEBUG)
    file_handler.setFormatter(UTCFormatter(VERBOSE_FORMAT))
    logger_adapter.logger.addHandler(file_handler)

    return logger_adapter
