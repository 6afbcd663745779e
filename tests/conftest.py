# tests/conftest.py
import sys
import time
import psutil
import pytest
from pathlib import Path

from distbundle.config import effective_settings as config
from distbundle.descriptor import ServiceDescriptor
from distbundle.assembly import DistributionAssembler, SourceRoots
from distbundle.supervisor import ServiceSupervisor

# Small Python "applications" shipped in service/lib and run with `python -m`.
TEST_APPS = {
    "testapp": (
        "import time\n"
        "print('Test started')\n"
        "time.sleep(100)\n"
    ),
    "crashapp": (
        "import sys\n"
        "print('boom')\n"
        "sys.exit(3)\n"
    ),
    "stubbornapp": (
        "import signal, time\n"
        "signal.signal(signal.SIGTERM, signal.SIG_IGN)\n"
        "print('ready')\n"
        "time.sleep(100)\n"
    ),
}


def wait_for_text(path: Path, text: str, timeout: float = 10.0) -> str:
    """Polls a file until it contains `text`; returns the final content."""
    deadline = time.monotonic() + timeout
    content = ""
    while time.monotonic() < deadline:
        if path.exists():
            content = path.read_text()
            if text in content:
                return content
        time.sleep(0.05)
    return content


def kill_pid(pid: int) -> None:
    try:
        proc = psutil.Process(pid)
        proc.kill()
        proc.wait(timeout=5)
    except (psutil.NoSuchProcess, psutil.TimeoutExpired):
        pass


@pytest.fixture(autouse=True)
def fast_settings(monkeypatch):
    """Shorter timings so lifecycle tests run quickly; restored after each test."""
    monkeypatch.setattr(config, "START_CONFIRM_SECONDS", 0.3)
    monkeypatch.setattr(config, "STOP_TIMEOUT_SECONDS", 10.0)
    monkeypatch.setattr(config, "STOP_POLL_INTERVAL_SECONDS", 0.05)
    monkeypatch.setattr(config, "PYTHON_EXECUTABLE", sys.executable)
    monkeypatch.setattr(config, "BUNDLE_HOME", "")


@pytest.fixture(autouse=True)
def reap_test_apps():
    """Kills any test application a test left running as a child of this process."""
    yield
    for child in psutil.Process().children(recursive=True):
        try:
            cmdline = child.cmdline()
        except psutil.Error:
            continue
        if any(name in cmdline for name in TEST_APPS):
            kill_pid(child.pid)


@pytest.fixture
def project(tmp_path: Path) -> Path:
    """A source project with build artifacts under build/ (lib/<app>.py)."""
    lib = tmp_path / "build" / "lib"
    lib.mkdir(parents=True)
    for name, source in TEST_APPS.items():
        (lib / f"{name}.py").write_text(source)
    return tmp_path


@pytest.fixture
def descriptor() -> ServiceDescriptor:
    return ServiceDescriptor(service_name="service-name", version="0.1", entrypoint="testapp")


@pytest.fixture
def bundle(project: Path, descriptor: ServiceDescriptor) -> Path:
    """An assembled bundle at <project>/dist/service-name-0.1."""
    assembler = DistributionAssembler(descriptor, SourceRoots(build_artifacts=project / "build"))
    return assembler.assemble(project / "dist")


@pytest.fixture
def supervisor(bundle: Path):
    sup = ServiceSupervisor.from_bundle(bundle)
    yield sup
    pid = sup.pid_file.read()
    if pid:
        kill_pid(pid)
