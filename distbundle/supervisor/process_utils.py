import os
import sys
import time
import psutil
import logging
import subprocess
from pathlib import Path
from typing import Any, Dict, List, Tuple
from distbundle.config import effective_settings as config
from distbundle.supervisor.persistence import LaunchConfig

log = logging.getLogger(__name__)


#* --- Process Status & Monitoring ---
def is_alive(pid: int) -> bool:
    """
    Checks whether a process with this pid exists and has not exited.

    Works for processes started by earlier supervisor invocations: it never
    waits on a child handle. Zombies count as dead; a process we may not
    inspect counts as alive.
    """
    if pid <= 0:
        return False
    try:
        proc = psutil.Process(pid)
        return proc.is_running() and proc.status() != psutil.STATUS_ZOMBIE
    except psutil.NoSuchProcess:
        return False
    except psutil.AccessDenied:
        return True


def wait_for_exit(pid: int, timeout: float, interval: float) -> bool:
    """
    Polls until the process is gone or the timeout elapses.

    :return: True if the process exited, False on timeout.
    """
    deadline = time.monotonic() + timeout
    while is_alive(pid):
        if time.monotonic() >= deadline:
            return False
        time.sleep(interval)
    return True


def terminate(pid: int) -> bool:
    """
    Sends the graceful termination signal (SIGTERM on POSIX).

    :return: False if the process was already gone.
    """
    try:
        psutil.Process(pid).terminate()
        return True
    except psutil.NoSuchProcess:
        log.warning(f"Process {pid} no longer exists, skipping termination.")
        return False


#* --- Process Creation ---
def _get_popen_creation_flags() -> Dict[str, Any]:
    """Returns platform-specific keyword arguments that detach the child from the supervisor."""
    if sys.platform == "win32":
        return {"creationflags": subprocess.DETACHED_PROCESS | subprocess.CREATE_NO_WINDOW}
    return {"start_new_session": True}


def build_command(launch: LaunchConfig, bundle_root: Path) -> Tuple[List[str], Dict[str, str]]:
    """
    Returns the argv and environment for the managed process.

    The entrypoint module is run with `python -m`, with service/lib first on PYTHONPATH.
    """
    args = [config.PYTHON_EXECUTABLE, "-m", launch.entrypoint, *launch.args]

    env = dict(os.environ)
    env.update(launch.env)
    lib_dir = str((bundle_root / config.SERVICE_LIB_DIR).resolve())
    existing = env.get("PYTHONPATH")
    env["PYTHONPATH"] = os.pathsep.join([lib_dir, existing]) if existing else lib_dir
    # Output goes to a file; unbuffered keeps the startup log current.
    env["PYTHONUNBUFFERED"] = "1"
    return args, env


def launch_process(args: List[str], cwd: Path, env: Dict[str, str], log_path: Path) -> subprocess.Popen:
    """
    Starts the managed process detached, with stdout and stderr going to `log_path`.

    The log file is truncated first.
    """
    log.debug(f"Launching {args} in '{cwd}'")
    with open(log_path, "wb") as log_file:
        return subprocess.Popen(
            args,
            stdin=subprocess.DEVNULL,
            stdout=log_file,
            stderr=subprocess.STDOUT,
            cwd=str(cwd),
            env=env,
            close_fds=True,
            **_get_popen_creation_flags(),
        )
