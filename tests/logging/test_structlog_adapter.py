# Copyright 2026 Firefly Software Solutions Inc.
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.
"""Tests for StructlogAdapter and the kvsession processors."""

import logging

import pytest
import structlog

from kvsession.core.config import Config
from kvsession.kernel.exceptions import ConfigurationException
from kvsession.logging import StructlogAdapter, build_processors, mask_secrets, short_id


class TestConfigure:
    def test_defaults(self):
        adapter = StructlogAdapter()
        adapter.configure(Config({}))
        assert adapter.root_level == "INFO"
        assert adapter.log_format == "console"
        assert adapter.module_levels == {}

    def test_reads_root_level(self):
        adapter = StructlogAdapter()
        adapter.configure(Config({"kvsession": {"logging": {"level": {"root": "debug"}}}}))
        assert adapter.root_level == "DEBUG"
        assert logging.getLogger().level == logging.DEBUG

    def test_reads_format(self):
        adapter = StructlogAdapter()
        adapter.configure(Config({"kvsession": {"logging": {"format": "json"}}}))
        assert adapter.log_format == "json"

    def test_format_env_override(self, monkeypatch):
        monkeypatch.setenv("KVSESSION_LOGGING_FORMAT", "JSON")
        adapter = StructlogAdapter()
        adapter.configure(Config({}))
        assert adapter.log_format == "json"

    def test_applies_per_module_levels(self):
        adapter = StructlogAdapter()
        config = Config({"kvsession": {"logging": {"level": {"kvsession.session.store": "debug"}}}})
        adapter.configure(config)
        assert adapter.root_level == "INFO"
        assert adapter.module_levels == {"kvsession.session.store": "DEBUG"}
        assert logging.getLogger("kvsession.session.store").level == logging.DEBUG

    def test_unknown_format(self):
        with pytest.raises(ConfigurationException):
            StructlogAdapter().configure(Config({"kvsession": {"logging": {"format": "xml"}}}))

    def test_get_logger(self):
        assert StructlogAdapter().get_logger("kvsession.test") is not None


class TestSetLevel:
    def test_set_level(self):
        StructlogAdapter().set_level("kvsession.test.a", "warning")
        assert logging.getLogger("kvsession.test.a").level == logging.WARNING

    def test_unknown_level_falls_back_to_info(self):
        StructlogAdapter().set_level("kvsession.test.b", "chatty")
        assert logging.getLogger("kvsession.test.b").level == logging.INFO


class TestProcessors:
    def test_json_chain_ends_with_json_renderer(self):
        assert isinstance(build_processors("json")[-1], structlog.processors.JSONRenderer)

    def test_console_chain_ends_with_console_renderer(self):
        assert isinstance(build_processors("console")[-1], structlog.dev.ConsoleRenderer)

    def test_chain_masks_secrets(self):
        assert mask_secrets in build_processors("json")

    def test_masks_cookie_and_keys(self):
        event = {"event": "x", "cookie": "abc", "hash_key": b"k", "block_key": b"b", "name": "session"}
        result = mask_secrets(None, "info", event)
        assert result["cookie"] == "***"
        assert result["hash_key"] == "***"
        assert result["block_key"] == "***"
        assert result["name"] == "session"

    def test_shortens_session_id(self):
        result = mask_secrets(None, "debug", {"event": "session_saved", "session_id": "cv37img5tppgl4002kb0"})
        assert result["session_id"] == "cv37im..."

    def test_short_id(self):
        assert short_id("abc") == "abc"
        assert short_id("abcdefgh") == "abcdef..."

    def test_leaves_other_events_alone(self):
        event = {"event": "session_saved", "ttl": 60, "session_id": "abc"}
        assert mask_secrets(None, "debug", dict(event)) == event
