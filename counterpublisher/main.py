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
import signal
import sys
import time
from threading import Event
from types import FrameType
from typing import List, Optional

import configargparse

from counterpublisher import __version__
from counterpublisher.counter_types import nonnegative_integer, positive_integer
from counterpublisher.exceptions import InvalidSettingsError, SendIntervalOutOfRangeError
from counterpublisher.instance_metadata import AWS_INSTANCE_ID_URL, get_hostname
from counterpublisher.log import initial_root_logger_setup
from counterpublisher.sender import CounterSampleSender
from counterpublisher.settings import (
    DEFAULT_MAX_QUEUE_LENGTH,
    DEFAULT_MAX_RETRY_COUNT,
    DEFAULT_SEND_INTERVAL,
    CloudWatchSettings,
)
from counterpublisher.system_counters import DEFAULT_POLLING_INTERVAL_SECONDS, SystemCountersCollector
from counterpublisher.writers import CloudWatchWriter, NoopWriter
from counterpublisher.writers.writer_base import CounterSampleWriterInterface

logger: logging.LoggerAdapter

DEFAULT_LOG_FILE = "/var/log/counterpublisher/counterpublisher.log"
DEFAULT_LOG_MAX_SIZE = 1024 * 1024 * 5
DEFAULT_LOG_BACKUP_COUNT = 1

# 1 KeyboardInterrupt raised per this many seconds, no matter how many SIGINTs we get.
SIGINT_RATELIMIT = 0.5

last_signal_ts: Optional[float] = None


def sigint_handler(sig: int, frame: Optional[FrameType]) -> None:
    global last_signal_ts
    ts = time.monotonic()
    # no need for atomicity here: we can't get another SIGINT before this one returns.
    if last_signal_ts is None or ts > last_signal_ts + SIGINT_RATELIMIT:
        last_signal_ts = ts
        raise KeyboardInterrupt


def setup_signals() -> None:
    signal.signal(signal.SIGINT, sigint_handler)
    # handle SIGTERM in the same manner - gracefully stop.
    signal.signal(signal.SIGTERM, sigint_handler)


def parse_cmd_args(argv: List[str] = None) -> configargparse.Namespace:
    parser = configargparse.ArgumentParser(
        description="Publishes performance counters to Amazon CloudWatch.",
        auto_env_var_prefix="counterpublisher_",
        add_config_file_help=True,
        add_env_var_help=False,
        default_config_files=["/etc/counterpublisher/config.ini"],
    )
    parser.add_argument("--config", is_config_file=True, help="Config file path")
    parser.add_argument("--version", action="version", version=__version__)
    parser.add_argument("-v", "--verbose", action="store_true", default=False, dest="verbose")

    cloudwatch_options = parser.add_argument_group("CloudWatch")
    cloudwatch_options.add_argument("--access-key", dest="access_key", help="AWS access key of the account")
    cloudwatch_options.add_argument("--secret-key", dest="secret_key", help="AWS secret access key of the account")
    cloudwatch_options.add_argument(
        "--service-url",
        dest="service_url",
        help="CloudWatch endpoint, for example https://monitoring.us-east-1.amazonaws.com",
    )
    cloudwatch_options.add_argument(
        "--region", dest="region", default=None, help="AWS region (default: derived from --service-url)"
    )
    cloudwatch_options.add_argument("--namespace", dest="namespace", help="CloudWatch namespace of the metrics")
    cloudwatch_options.add_argument(
        "--auto-namespace",
        action="store_true",
        dest="auto_namespace",
        default=False,
        help="Write counters named 'Namespace.Metric' as 'Metric' to the '<namespace>/Namespace' namespace",
    )
    cloudwatch_options.add_argument(
        "--instance-id-lookup-url",
        dest="instance_id_lookup_url",
        default=None,
        help="URL returning the instance id to use as the InstanceId dimension (default: the hostname),"
        f" for example {AWS_INSTANCE_ID_URL} on EC2",
    )
    cloudwatch_options.add_argument(
        "--auto-scaling-config-file",
        dest="auto_scaling_config_file_path",
        default=None,
        help="File containing the auto scaling group name to use as the AutoScalingGroupName dimension",
    )

    sender_options = parser.add_argument_group("sender")
    sender_options.add_argument(
        "--send-interval",
        type=positive_integer,
        dest="send_interval",
        default=DEFAULT_SEND_INTERVAL,
        help="Publish interval in seconds (default: %(default)s)",
    )
    sender_options.add_argument(
        "--max-retry-count",
        type=nonnegative_integer,
        dest="max_retry_count",
        default=DEFAULT_MAX_RETRY_COUNT,
        help="Consecutive failed publishes before queued counters are discarded (default: %(default)s)",
    )
    sender_options.add_argument(
        "--max-queue-length",
        type=positive_integer,
        dest="max_queue_length",
        default=DEFAULT_MAX_QUEUE_LENGTH,
        help="Max counter collections kept queued between failed publishes (default: %(default)s)",
    )
    sender_options.add_argument(
        "--sender-id", dest="sender_id", default=None, help="Value of the SenderId dimension (default: the hostname)"
    )
    sender_options.add_argument(
        "--polling-interval",
        type=positive_integer,
        dest="polling_interval",
        default=DEFAULT_POLLING_INTERVAL_SECONDS,
        help="System counters sampling interval in seconds (default: %(default)s)",
    )
    sender_options.add_argument(
        "--no-upload",
        action="store_false",
        dest="upload",
        default=True,
        help="Collect counters without publishing them",
    )

    logging_options = parser.add_argument_group("logging")
    logging_options.add_argument("--log-file", action="store", type=str, dest="log_file", default=DEFAULT_LOG_FILE)
    logging_options.add_argument(
        "--log-rotate-max-size",
        action="store",
        type=positive_integer,
        dest="log_rotate_max_size",
        default=DEFAULT_LOG_MAX_SIZE,
    )
    logging_options.add_argument(
        "--log-rotate-backup-count",
        action="store",
        type=positive_integer,
        dest="log_rotate_backup_count",
        default=DEFAULT_LOG_BACKUP_COUNT,
    )

    args = parser.parse_args(argv)
    if args.sender_id is None:
        args.sender_id = get_hostname()
    return args


def get_writer(args: configargparse.Namespace, settings: CloudWatchSettings) -> CounterSampleWriterInterface:
    if not args.upload:
        return NoopWriter()
    return CloudWatchWriter(settings)


def main() -> None:
    args = parse_cmd_args()

    global logger
    logger = initial_root_logger_setup(
        logging.DEBUG if args.verbose else logging.INFO,
        args.log_file,
        args.log_rotate_max_size,
        args.log_rotate_backup_count,
    )
    setup_signals()

    try:
        settings = CloudWatchSettings.from_args(args)
    except InvalidSettingsError as e:
        logger.error(f"Bad configuration: {e}")
        sys.exit(1)

    logger.info(f"Running counterpublisher {__version__} (namespace {settings.namespace!r})")
    sender = CounterSampleSender(
        settings,
        get_writer(args, settings),
        SystemCountersCollector(Event(), args.polling_interval),
    )
    try:
        sender.start()
        logger.info("counterpublisher started")
        while True:
            time.sleep(1)
    except KeyboardInterrupt:
        pass
    except SendIntervalOutOfRangeError as e:
        logger.error(str(e))
        sys.exit(1)
    except Exception:
        logger.exception("Unexpected error occurred")
        sys.exit(1)
    finally:
        logger.info("Stopping ...")
        sender.stop()


if __name__ == "__main__":
    main()
