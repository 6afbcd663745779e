import math
import json
import logging
from pathlib import Path
from typing import Dict, Any

import distbundle.settings as default_settings

log = logging.getLogger(__name__)


class MergedSettings:
    """
    A singleton class that merges default settings with per-bundle overrides.

    This class provides a unified, attribute-based access point for all
    configuration. It follows a clear precedence:
    1. Base values from `settings.py`.
    2. Overrides from the environment / `.env` file (handled by `python-dotenv` in settings.py).
    3. Overrides from a bundle's `var/conf/supervisor-overrides.json` for keys in `MODIFIABLE_SETTINGS`.
       Values that are not positive numbers of seconds are rejected.
    """

    def __init__(self) -> None:
        """Initializes the settings object by loading defaults."""
        self._load_defaults()

    def _load_defaults(self) -> None:
        """
        Loads all uppercase attributes from the settings.py module as defaults.
        """
        for key in dir(default_settings):
            if key.isupper():
                setattr(self, key, getattr(default_settings, key))

    def load_overrides(self, overrides_path: Path) -> Dict[str, Any]:
        """
        Loads and applies settings from an overrides JSON file.

        It will only apply overrides for keys that are explicitly listed in
        the `MODIFIABLE_SETTINGS` set in `settings.py`. A missing file is not an error.

        :param overrides_path: Path to the JSON overrides file.
        :return: The overrides that were applied.
        """
        if not overrides_path.exists():
            return {}

        applied: Dict[str, Any] = {}
        try:
            with overrides_path.open('r') as f:
                overrides = json.load(f)
        except (json.JSONDecodeError, IOError) as e:
            log.error(f"Failed to load or parse overrides file '{overrides_path}': {e}")
            return {}

        if not isinstance(overrides, dict):
            log.error(f"Overrides file '{overrides_path}' does not contain a JSON object. Ignoring.")
            return {}

        log.info(f"Loading configuration overrides from {overrides_path}")
        for key, value in overrides.items():
            if not hasattr(self, key):
                log.warning(f"Override setting '{key}' not found in default settings. Ignoring.")
                continue
            if key not in self.MODIFIABLE_SETTINGS:
                log.warning(f"Attempted to override non-modifiable setting '{key}'. Ignoring.")
                continue

            # Coerce the new value to the type of the default
            original_value = getattr(self, key)
            try:
                new_value = type(original_value)(value)
            except (ValueError, TypeError) as e:
                log.error(f"Could not convert value '{value}' for key '{key}'. Error: {e}")
                continue
            # Every modifiable setting is a duration used with time.sleep and deadlines.
            if isinstance(new_value, (int, float)) and not (math.isfinite(new_value) and new_value > 0):
                log.error(f"Override for '{key}' must be a positive number of seconds, got {value!r}. Ignoring.")
                continue

            setattr(self, key, new_value)
            applied[key] = new_value
            log.debug(f"Overridden setting: {key} = {new_value}")
        return applied

    def reset(self) -> None:
        """Restores every setting to its default from settings.py."""
        self._load_defaults()

    def get(self, item: str, default: Any = None) -> Any:
        """Provides dictionary-like access to settings with a default value."""
        return getattr(self, item, default)


# Create a singleton instance to be imported by other modules
effective_settings = MergedSettings()
