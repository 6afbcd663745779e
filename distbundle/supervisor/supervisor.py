import sys
import time
import logging
import subprocess
from enum import Enum
from pathlib import Path
from typing import Optional, TextIO, Tuple
from distbundle.config import effective_settings as config
from distbundle.errors import ProcessLifecycleError
from distbundle.supervisor import process_utils
from distbundle.supervisor.persistence import LaunchConfig, PidFile, load_launch_config

log = logging.getLogger(__name__)


class ServiceState(str, Enum):
    STOPPED = "STOPPED"
    RUNNING = "RUNNING"
    # PID file present but the process is gone (crash or reboot).
    UNKNOWN = "UNKNOWN"


class ServiceSupervisor:
    """
    Manages the single long-running process of one bundle.

    Each method is one transition of the start/stop/status/restart state
    machine. Every invocation starts from what the PID file and the process
    table say, so independent invocations from different shells agree.
    Reports go to `out` (stdout by default); diagnostics go to the log.
    """

    def __init__(self, bundle_root: Path, launch: LaunchConfig, out: Optional[TextIO] = None) -> None:
        self.bundle_root = bundle_root.resolve()
        self.launch = launch
        self.service_name = launch.service_name
        self.pid_file = PidFile(self.bundle_root / config.RUN_DIR / f"{self.service_name}.pid")
        self.startup_log = self.bundle_root / config.LOG_DIR / f"{self.service_name}-startup.log"
        self._out = out

    @classmethod
    def from_bundle(cls, bundle_root: Path, out: Optional[TextIO] = None) -> "ServiceSupervisor":
        """
        Creates a supervisor from a bundle's launcher.yml, applying the bundle's
        var/conf/supervisor-overrides.json when present.
        """
        config.load_overrides(bundle_root / config.CONF_DIR / config.OVERRIDES_FILE_NAME)
        return cls(bundle_root, load_launch_config(bundle_root), out)

    @property
    def out(self) -> TextIO:
        return self._out if self._out is not None else sys.stdout

    def _report(self, message: str) -> None:
        print(message, file=self.out, flush=True)

    #* --- State ---
    def state(self) -> Tuple[ServiceState, Optional[int]]:
        """
        Derives the current state from the PID file and the process table.

        :return: (state, tracked pid or None).
        """
        pid = self.pid_file.read()
        if pid is None:
            return ServiceState.STOPPED, None
        if process_utils.is_alive(pid):
            return ServiceState.RUNNING, pid
        return ServiceState.UNKNOWN, pid

    #* --- Transitions ---
    def status(self) -> ServiceState:
        """Reports whether the service is running. A stale PID file is left for stop/start."""
        self._report(f"Checking '{self.service_name}'...")
        state, pid = self.state()
        if state is ServiceState.RUNNING:
            self._report(f"Running ({pid})")
        elif state is ServiceState.UNKNOWN:
            log.warning(f"PID file '{self.pid_file.path}' refers to PID {pid}, which is not running.")
            self._report(f"Not running (stale pid {pid})")
        else:
            self._report("Not running")
        return state

    def start(self) -> int:
        """
        Starts the service unless it is already running.

        :return: The pid of the running instance.
        :raises ProcessLifecycleError: If the process exits during startup confirmation.
        """
        self._report(f"Running '{self.service_name}'...")
        state, pid = self.state()
        if state is ServiceState.RUNNING:
            log.info(f"'{self.service_name}' is already running with PID {pid}.")
            self._report(f"Already running ({pid})")
            return pid
        if state is ServiceState.UNKNOWN:
            log.warning(f"Replacing stale PID file for PID {pid}.")
        else:
            self._discard_unreadable_pid_file()

        try:
            pid = self._spawn()
        except ProcessLifecycleError as e:
            self._report(f"Failed to start ({e.pid})" if e.pid else "Failed to start")
            raise
        self._report(f"Started ({pid})")
        return pid

    def stop(self) -> Optional[int]:
        """
        Stops the service: SIGTERM, then poll until it exits or the timeout elapses.

        :return: The pid that was stopped, or None if nothing was tracked.
        :raises ProcessLifecycleError: If the process outlives the timeout. The PID file is kept.
        """
        self._report(f"Stopping '{self.service_name}'...")
        state, pid = self.state()
        if state is ServiceState.STOPPED:
            self._discard_unreadable_pid_file()
            self._report("Not running, nothing to stop")
            return None

        if state is ServiceState.RUNNING:
            log.info(f"Sending SIGTERM to '{self.service_name}' (PID {pid}).")
            process_utils.terminate(pid)
            timeout = config.STOP_TIMEOUT_SECONDS
            if not process_utils.wait_for_exit(pid, timeout, config.STOP_POLL_INTERVAL_SECONDS):
                self._report(f"Failed to stop ({pid})")
                raise ProcessLifecycleError(
                    f"'{self.service_name}' (PID {pid}) did not exit within {timeout:g} seconds.", pid
                )
        else:
            log.warning(f"Process {pid} was already gone. Cleaning up its PID file.")

        self.pid_file.delete()
        self._report(f"Stopped ({pid})")
        return pid

    def restart(self) -> int:
        """Stops (if needed) then starts. Not atomic: a concurrent status may see STOPPED."""
        self.stop()
        return self.start()

    #* --- Helpers ---
    def _discard_unreadable_pid_file(self) -> None:
        """Removes a PID file that exists but holds no usable pid (state() reported STOPPED)."""
        if self.pid_file.exists():
            log.warning(f"Removing unreadable PID file '{self.pid_file.path}'.")
            self.pid_file.delete()

    def _spawn(self) -> int:
        """Launches the process, records it and confirms it survives startup."""
        for directory in (self.startup_log.parent, self.pid_file.path.parent):
            directory.mkdir(parents=True, exist_ok=True)

        args, env = process_utils.build_command(self.launch, self.bundle_root)
        try:
            process = process_utils.launch_process(args, self.bundle_root, env, self.startup_log)
        except OSError as e:
            raise ProcessLifecycleError(f"Could not launch {args[0]!r}: {e}") from e
        log.info(f"Launched '{self.service_name}' with PID {process.pid}.")

        try:
            self.pid_file.write(process.pid)
        except OSError as e:
            process.terminate()
            raise ProcessLifecycleError(f"Could not record PID {process.pid}: {e}", process.pid) from e

        if not self._confirm_started(process):
            self.pid_file.delete()
            raise ProcessLifecycleError(
                f"'{self.service_name}' exited during startup with code {process.returncode}. "
                f"See '{self.startup_log}'.",
                process.pid,
            )
        return process.pid

    def _confirm_started(self, process: subprocess.Popen) -> bool:
        """Watches the new process for START_CONFIRM_SECONDS; False if it exits meanwhile."""
        deadline = time.monotonic() + config.START_CONFIRM_SECONDS
        while time.monotonic() < deadline:
            if process.poll() is not None:
                return False
            time.sleep(min(config.STOP_POLL_INTERVAL_SECONDS, max(deadline - time.monotonic(), 0)))
        return process.poll() is None and process_utils.is_alive(process.pid)
