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
from dataclasses import dataclass, field
from datetime import datetime
from typing import Iterator, List

import configargparse


@dataclass(frozen=True)
class CounterSample:
    value: float
    timestamp: datetime


@dataclass
class CounterSampleCollection:
    """
    All samples of a single counter, gathered during one reporting interval.
    Samples are kept in the order they were taken.
    """

    counter_name: str
    samples: List[CounterSample] = field(default_factory=list)

    def __iter__(self) -> Iterator[CounterSample]:
        return iter(self.samples)

    def __len__(self) -> int:
        return len(self.samples)


def positive_integer(value_str: str) -> int:
    value = int(value_str)
    if value <= 0:
        raise configargparse.ArgumentTypeError("invalid positive integer value: {!r}".format(value))
    return value


def nonnegative_integer(value_str: str) -> int:
    value = int(value_str)
    if value < 0:
        raise configargparse.ArgumentTypeError("invalid non-negative integer value: {!r}".format(value))
    return value
