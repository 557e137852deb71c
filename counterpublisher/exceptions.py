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


class InvalidStateError(RuntimeError):
    pass


class InvalidSettingsError(ValueError):
    def __init__(self, field: str, reason: str):
        super().__init__(f"Invalid setting {field!r}: {reason}")
        self.field = field
        self.reason = reason


class SendIntervalOutOfRangeError(ValueError):
    def __init__(self, send_interval: int, min_send_interval: int):
        super().__init__(
            f"Send interval {send_interval!r} is out of range, minimum value is {min_send_interval!r} seconds"
        )
        self.send_interval = send_interval
        self.min_send_interval = min_send_interval


class BadResponseCode(Exception):
    def __init__(self, response_code: int):
        super().__init__(f"Got a bad HTTP response code {response_code}")
        self.response_code = response_code


class ThreadStopTimeoutError(Exception):
    pass
