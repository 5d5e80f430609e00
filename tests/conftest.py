# Ensure the repository root is on sys.path so `label_print_service` can be imported in tests.

import logging
import sys
from pathlib import Path

import pytest


def _ensure_repo_root_on_syspath() -> None:
    here = Path(__file__).resolve()
    repo_str = str(here.parent.parent)
    if repo_str not in sys.path:
        sys.path.insert(0, repo_str)


_ensure_repo_root_on_syspath()

from label_print_service.drivers import BaseDriver, FileDriver  # noqa: E402
from label_print_service.labels import LabelService  # noqa: E402
from label_print_service.processor import PrintJobProcessor  # noqa: E402
from label_print_service.store import JobStore, PrinterStore  # noqa: E402


class RecordingDriver(BaseDriver):
    """Driver double that records calls and returns a fixed artifact (or raises)."""

    def __init__(self, name, artifact='artifact', error=None):
        self.name = name
        self.artifact = artifact
        self.error = error
        self.calls = []

    def deliver(self, payload, destination):
        self.calls.append((payload, destination))
        if self.error is not None:
            raise self.error
        return self.artifact


@pytest.fixture
def jobs():
    return JobStore()


@pytest.fixture
def printers():
    return PrinterStore()


@pytest.fixture
def storage_root(tmp_path):
    root = tmp_path / "storage"
    root.mkdir()
    return root


@pytest.fixture
def fake_drivers(storage_root):
    return {
        "tcp": RecordingDriver("tcp", artifact="tcp://fake:9100?bytes=0"),
        "ipp": RecordingDriver("ipp", artifact="ipp://fake#job-id=1"),
        "file": FileDriver(str(storage_root)),
    }


@pytest.fixture
def processor(jobs, printers, fake_drivers):
    return PrintJobProcessor(jobs, printers, labels=LabelService(), drivers=fake_drivers)


@pytest.fixture(autouse=True)
def _restore_root_logging():
    # configure_logging() replaces root handlers; put pytest's back afterwards
    root = logging.getLogger()
    handlers, level = list(root.handlers), root.level
    yield
    root.handlers = handlers
    root.setLevel(level)
