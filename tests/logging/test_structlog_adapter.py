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
"""Tests for StructlogAdapter — default LoggingPort implementation."""

import json
import logging

from interpose.core.config import Config
from interpose.logging.structlog_adapter import StructlogAdapter, tag_engine_area


class TestStructlogAdapterConfigure:
    def test_configure_with_defaults(self):
        adapter = StructlogAdapter()
        adapter.configure(Config({}))
        assert adapter._root_level == "INFO"
        assert adapter._format == "console"

    def test_configure_reads_root_level(self):
        adapter = StructlogAdapter()
        adapter.configure(Config({"interpose": {"logging": {"level": {"root": "debug"}}}}))
        assert adapter._root_level == "DEBUG"

    def test_configure_reads_format(self):
        adapter = StructlogAdapter()
        adapter.configure(Config({"interpose": {"logging": {"format": "JSON"}}}))
        assert adapter._format == "json"

    def test_configure_applies_per_module_levels(self):
        adapter = StructlogAdapter()
        config = Config({"interpose": {"logging": {"level": {"root": "INFO", "interpose.aop": "ERROR"}}}})
        adapter.configure(config)
        assert adapter._module_levels == {"interpose.aop": "ERROR", "interpose": "WARNING"}
        assert logging.getLogger("interpose.aop").level == logging.ERROR

    def test_framework_defaults_quiet_the_engine(self):
        adapter = StructlogAdapter()
        adapter.configure(Config.defaults())
        assert logging.getLogger("interpose").level == logging.WARNING


class TestStructlogAdapterGetLogger:
    def test_get_logger_returns_bound_logger(self):
        adapter = StructlogAdapter()
        adapter.configure(Config({}))
        logger = adapter.get_logger("interpose.test")
        assert callable(getattr(logger, "info", None))
        assert callable(getattr(logger, "debug", None))


class TestStructlogAdapterSetLevel:
    def test_set_level_updates_module_level(self):
        adapter = StructlogAdapter()
        adapter.set_level("interpose.aop.dispatcher", "DEBUG")
        assert logging.getLogger("interpose.aop.dispatcher").level == logging.DEBUG

    def test_unknown_level_falls_back_to_info(self):
        adapter = StructlogAdapter()
        adapter.set_level("interpose.aop.tracker", "chatty")
        assert logging.getLogger("interpose.aop.tracker").level == logging.INFO

    def test_engine_level_defaults_to_warning(self):
        adapter = StructlogAdapter()
        adapter.configure(Config({}))
        assert logging.getLogger("interpose").level == logging.WARNING

    def test_engine_level_can_be_raised(self):
        adapter = StructlogAdapter()
        adapter.configure(Config({"interpose": {"logging": {"level": {"interpose": "debug"}}}}))
        assert logging.getLogger("interpose").level == logging.DEBUG


class TestEngineAreaProcessor:
    def test_tags_engine_loggers(self):
        event = tag_engine_area(None, "debug", {"event": "hook_installed", "logger": "interpose.aop.patcher"})
        assert event["area"] == "patcher"

    def test_leaves_other_loggers_alone(self):
        event = tag_engine_area(None, "info", {"event": "started", "logger": "app.service"})
        assert "area" not in event

    def test_engine_record_keeps_its_fields(self, capsys):
        adapter = StructlogAdapter()
        config = {"interpose": {"logging": {"format": "json", "level": {"interpose.aop.tracker": "DEBUG"}}}}
        adapter.configure(Config(config))
        logging.getLogger("interpose.aop.tracker").debug(
            "hierarchy_tracked", extra={"method": "area", "cls": "Shape", "depth": 1}
        )
        payload = json.loads(capsys.readouterr().out.strip().splitlines()[-1])
        assert payload["event"] == "hierarchy_tracked"
        assert payload["area"] == "tracker"
        assert payload["cls"] == "Shape"
        assert payload["logger"] == "interpose.aop.tracker"
