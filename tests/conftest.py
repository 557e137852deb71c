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
from typing import Any, Callable

from pytest import MonkeyPatch, fixture

from counterpublisher.settings import CloudWatchSettings
from counterpublisher.writers import CloudWatchWriter
from tests import NAMESPACE
from tests.utils import FakeSender, RecordingClient

HOSTNAME = "test-host"


@fixture(autouse=True)
def fixed_hostname(monkeypatch: MonkeyPatch) -> str:
    monkeypatch.setattr("counterpublisher.instance_metadata.get_hostname", lambda: HOSTNAME)
    return HOSTNAME


@fixture
def make_settings() -> Callable[..., CloudWatchSettings]:
    def _make_settings(**overrides: Any) -> CloudWatchSettings:
        kwargs: dict = dict(
            access_key="AKIAEXAMPLE",
            secret_key="secret",
            service_url="https://monitoring.eu-west-1.amazonaws.com",
            namespace=NAMESPACE,
        )
        kwargs.update(overrides)
        return CloudWatchSettings(**kwargs)

    return _make_settings


@fixture
def settings(make_settings: Callable[..., CloudWatchSettings]) -> CloudWatchSettings:
    return make_settings()


@fixture
def client() -> RecordingClient:
    return RecordingClient()


@fixture
def sender() -> FakeSender:
    return FakeSender()


@fixture
def make_writer(
    client: RecordingClient, make_settings: Callable[..., CloudWatchSettings]
) -> Callable[..., CloudWatchWriter]:
    def _make_writer(**overrides: Any) -> CloudWatchWriter:
        def client_factory(s: CloudWatchSettings) -> RecordingClient:
            client.settings = s
            return client

        return CloudWatchWriter(make_settings(**overrides), client_factory=client_factory)

    return _make_writer


@fixture
def started_writer(make_writer: Callable[..., CloudWatchWriter], sender: FakeSender) -> CloudWatchWriter:
    writer = make_writer()
    writer.start(sender)
    return writer
