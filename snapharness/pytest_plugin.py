"""pytest plugin providing the ``snapshot`` fixture.

Enable it from a conftest with ``pytest_plugins = ["snapharness.pytest_plugin"]``.
Mismatches recorded during a test fail that test after its body returns;
the shared style context is reset when each test finishes.
"""

from __future__ import annotations

import logging
import os
from pathlib import Path

import pytest

from snapharness.harness.harness import SnapshotHarness, harness_for_test
from snapharness.harness.style import StyleContext
from snapharness.models.config import HarnessConfig
from snapharness.models.result import FailureRecord
from snapharness.reporter.json_report import generate_json_report

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_FILE = "snapshot-config.json"

config_key = pytest.StashKey[HarnessConfig]()
style_key = pytest.StashKey[StyleContext]()
failures_key = pytest.StashKey[list[FailureRecord]]()
tests_run_key = pytest.StashKey[int]()


def pytest_addoption(parser: pytest.Parser) -> None:
    group = parser.getgroup("snapharness", "snapshot testing")
    group.addoption("--snapshot-config", default=None, help="Harness config JSON file")
    group.addoption(
        "--snapshot-record",
        action="store_true",
        default=False,
        help="Overwrite reference images instead of comparing",
    )
    group.addoption("--snapshot-report", default=None, help="Write a JSON failure report to this path")


def _load_config(config: pytest.Config) -> HarnessConfig:
    path = config.getoption("--snapshot-config")
    if path:
        cfg = HarnessConfig.load(path)
    elif Path(config.rootpath, DEFAULT_CONFIG_FILE).exists():
        cfg = HarnessConfig.load(Path(config.rootpath, DEFAULT_CONFIG_FILE))
    else:
        cfg = HarnessConfig()

    if config.getoption("--snapshot-record") or os.environ.get("SNAPHARNESS_RECORD") == "1":
        cfg.record_mode = True
    report = config.getoption("--snapshot-report")
    if report:
        cfg.report_path = report
    return cfg


def pytest_configure(config: pytest.Config) -> None:
    config.stash[config_key] = _load_config(config)
    config.stash[style_key] = StyleContext()
    config.stash[failures_key] = []
    config.stash[tests_run_key] = 0


@pytest.fixture
def snapshot_config(request: pytest.FixtureRequest) -> HarnessConfig:
    return request.config.stash[config_key]


@pytest.fixture
def snapshot_style(request: pytest.FixtureRequest) -> StyleContext:
    return request.config.stash[style_key]


@pytest.fixture
def snapshot_host_factory():
    """Override to provide a host for ``verify_transient_presentation``."""
    return None


@pytest.fixture
def snapshot(request, snapshot_config, snapshot_style, snapshot_host_factory) -> SnapshotHarness:
    harness = harness_for_test(
        request.node.nodeid,
        snapshot_config,
        snapshot_style,
        host_factory=snapshot_host_factory,
    )
    yield harness
    harness.reset_process_wide_style_state()
    request.config.stash[failures_key].extend(harness.reporter.failures)
    request.config.stash[tests_run_key] += 1


@pytest.hookimpl(wrapper=True)
def pytest_runtest_call(item: pytest.Item):
    result = yield
    harness = getattr(item, "funcargs", {}).get("snapshot")
    if isinstance(harness, SnapshotHarness):
        harness.reporter.raise_if_failed()
    return result


def pytest_sessionfinish(session: pytest.Session, exitstatus: int) -> None:
    cfg = session.config.stash.get(config_key, None)
    if cfg is None or not cfg.report_path:
        return
    failures = session.config.stash[failures_key]
    generate_json_report(failures, session.config.stash[tests_run_key], Path(cfg.report_path))
    logger.info("Snapshot report: %s (%d failures)", cfg.report_path, len(failures))
