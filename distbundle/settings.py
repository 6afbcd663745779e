"""
This module contains the default configuration settings for distbundle.
It defines the bundle layout, supervisor timings, logging configuration and
the templates for every file the assembler generates.
It is used by both the packaging side and the supervisor so that the two
agree on paths without depending on each other at runtime.
"""

import os
import sys
from dotenv import load_dotenv

# Load environment variables from .env file
load_dotenv(override=False)

#* --- Bundle Layout (relative to the bundle root) ---
SERVICE_DIR_NAME = "service"
SERVICE_BIN_DIR = "service/bin"
SERVICE_LIB_DIR = "service/lib"
DEPLOYMENT_DIR_NAME = "deployment"
VAR_DIR_NAME = "var"
LOG_DIR = "var/log"
RUN_DIR = "var/run"
CONF_DIR = "var/conf"

INIT_SCRIPT_NAME = "init.sh"
LAUNCHER_CONFIG_NAME = "launcher.yml"
MANIFEST_FILE_NAME = "manifest.yaml"
OVERRIDES_FILE_NAME = "supervisor-overrides.json"
ARCHIVE_SUFFIX = ".tgz"

# Copy of the supervisor shipped in each bundle; init.sh puts it first on PYTHONPATH.
SUPERVISOR_RUNTIME_DIR = "service/supervisor"
# Packaging-time modules (top level of the package) left out of the shipped copy.
SUPERVISOR_RUNTIME_EXCLUDES = ("assembly", "descriptor.py")
SUPERVISOR_REQUIREMENTS_NAME = "requirements.txt"
# Third-party libraries the shipped supervisor imports. They must be installed for the interpreter init.sh uses.
SUPERVISOR_REQUIREMENTS = (
    "psutil>=5.9",
    "python-dotenv>=1.0",
    "PyYAML>=6.0",
    "requests>=2.31",
    "setproctitle>=1.3",
)

# Top-level 'var/' directories that never ship. Runtime state only.
ALWAYS_EXCLUDED_VAR_DIRS = ("log", "run")

#* --- Supervisor Settings ---
# Bundle the supervisor manages. Empty means the working directory (init.sh cds there).
BUNDLE_HOME = os.getenv("DISTBUNDLE_HOME", "")
STOP_TIMEOUT_SECONDS = float(os.getenv("DISTBUNDLE_STOP_TIMEOUT", "30"))
STOP_POLL_INTERVAL_SECONDS = float(os.getenv("DISTBUNDLE_STOP_POLL_INTERVAL", "0.1"))
START_CONFIRM_SECONDS = float(os.getenv("DISTBUNDLE_START_CONFIRM", "1.0"))
PROCESS_TITLE_PREFIX = "distbundle-supervisor"

#* --- Python Executable Configuration ---
# Interpreter used to run the packaged entrypoint. Defaults to the one running the supervisor.
PYTHON_EXECUTABLE = os.getenv("DISTBUNDLE_PYTHON", sys.executable)
# Interpreter baked into init.sh when DISTBUNDLE_PYTHON is unset at deployment time.
INIT_SCRIPT_PYTHON = os.getenv("DISTBUNDLE_INIT_PYTHON", "python3")

#* --- Logging ---
LOG_LEVEL = os.getenv("DISTBUNDLE_LOG_LEVEL", "").upper()
LOG_FORMAT = "%(asctime)s - %(levelname)-8s - [%(name)s] - %(message)s"
LOG_BUFFER_FLUSH_INTERVAL = 5
LOG_BUFFER_SIZE = 100

# Grafana Loki (optional shipping of supervisor and assembler logs)
LOKI_ENABLED = os.getenv("LOKI_ENABLED", "False").lower() in ('true', '1', 't')
LOKI_URL = os.getenv("LOKI_URL", "http://localhost:3100")
LOKI_ORG_ID = os.getenv("LOKI_ORG_ID", "")

#* --- MODIFIABLE SETTINGS (Changeable per bundle via var/conf/supervisor-overrides.json) ---
MODIFIABLE_SETTINGS = {
    "STOP_TIMEOUT_SECONDS",
    "STOP_POLL_INTERVAL_SECONDS",
    "START_CONFIRM_SECONDS",
}

#* --- Generated File Templates ---
MANIFEST_TEMPLATE = """\
productName: {product_name}
productVersion: {product_version}
"""

INIT_SCRIPT_TEMPLATE = """\
#!/bin/sh
# This file is auto-generated by distbundle. Do not edit directly.
#
# Usage: {init_script} start|stop|restart|status

cd "$(dirname "$0")/../.." || exit 1
PYTHONPATH="$PWD/{runtime_dir}${{PYTHONPATH:+:$PYTHONPATH}}"
export PYTHONPATH
exec "${{DISTBUNDLE_PYTHON:-{python}}}" -m distbundle.main "$@"
"""
