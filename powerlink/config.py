"""
PowerLink - Configuration Manager
=================================
Handles loading and saving of the front end's settings from two sources:

1. config.yaml  - Non-sensitive settings (bind address, device name, auth toggle)
2. .env         - The shared secret (POWERLINK_PASSWORD)

The control server itself persists nothing; this module is what lets the
command-line front end remember its settings between runs, the way the
desktop app kept them in its preferences.

Usage:
    config = ConfigManager(project_dir="/path/to/powerlink")
    settings = config.load()                    # Returns merged config dict
    config.update({"device": {"name": "Den"}})  # Updates config.yaml
    config.set_password("abc123")               # Updates .env
"""

import copy
import os
import socket

import yaml
from dotenv import dotenv_values

from powerlink import PORT


# Default configuration values used when config.yaml is missing or incomplete.
DEFAULTS = {
    "web": {
        "host": "0.0.0.0",
        "port": PORT,
    },
    "device": {
        "name": "",
        "auth_required": True,
    },
}

PASSWORD_KEY = "POWERLINK_PASSWORD"


class ConfigError(ValueError):
    """Settings that cannot be used to start the server."""


class ConfigManager:
    """
    Configuration manager for PowerLink.

    Attributes:
        project_dir: Directory holding config.yaml and .env.
        config_path: Full path to config.yaml.
        env_path:    Full path to .env file.
    """

    def __init__(self, project_dir: str):
        self.project_dir = project_dir
        self.config_path = os.path.join(project_dir, "config.yaml")
        self.env_path = os.path.join(project_dir, ".env")

    def load(self) -> dict:
        """
        Load and merge configuration from config.yaml with defaults.

        Returns:
            The full configuration. If the YAML file is unreadable the
            defaults are returned with the error under '_config_error'.
        """
        config = copy.deepcopy(DEFAULTS)

        if os.path.exists(self.config_path):
            try:
                with open(self.config_path, "r", encoding="utf-8") as f:
                    user_config = yaml.safe_load(f) or {}
                if not isinstance(user_config, dict):
                    raise yaml.YAMLError("top level must be a mapping")
                _deep_merge(config, user_config)
            except (yaml.YAMLError, OSError) as e:
                config["_config_error"] = str(e)

        return config

    def save(self, config: dict) -> None:
        """
        Save the 'web' and 'device' sections back to config.yaml.
        Internal keys (prefixed with '_') are dropped.
        """
        clean = {}
        for section in ["web", "device"]:
            if section in config:
                clean[section] = config[section]

        os.makedirs(self.project_dir, exist_ok=True)
        with open(self.config_path, "w", encoding="utf-8") as f:
            yaml.dump(
                clean,
                f,
                default_flow_style=False,
                allow_unicode=True,
                sort_keys=False,
            )

    def update(self, updates: dict) -> dict:
        """
        Merge a partial update into the current config and save it.

        Returns:
            The full updated configuration.
        """
        config = self.load()
        _deep_merge(config, updates)
        config.pop("_config_error", None)
        self.save(config)
        return config

    # -- Shared secret ----------------------------------------------------------

    def get_password(self) -> str:
        """Return the stored shared secret, or "" if none is set."""
        if not os.path.exists(self.env_path):
            return ""
        return dotenv_values(self.env_path).get(PASSWORD_KEY) or ""

    def set_password(self, value: str) -> None:
        """
        Set or replace the shared secret in the .env file.

        If the key already exists its line is replaced in place, otherwise
        it is appended. Other lines in the file are left alone.
        """
        lines = []
        if os.path.exists(self.env_path):
            with open(self.env_path, "r", encoding="utf-8") as f:
                lines = f.readlines()

        found = False
        new_lines = []
        for line in lines:
            if line.strip().startswith(f"{PASSWORD_KEY}="):
                new_lines.append(f"{PASSWORD_KEY}={_quote(value)}\n")
                found = True
            else:
                new_lines.append(line)

        if not found:
            new_lines.append(f"{PASSWORD_KEY}={_quote(value)}\n")

        os.makedirs(self.project_dir, exist_ok=True)
        with open(self.env_path, "w", encoding="utf-8") as f:
            f.writelines(new_lines)

    # -- Derived values -----------------------------------------------------------

    @staticmethod
    def device_name(config: dict) -> str:
        """Configured device name, falling back to the machine's hostname."""
        name = (config.get("device") or {}).get("name") or ""
        return name.strip() or socket.gethostname()

    @staticmethod
    def validate(config: dict, password: str) -> None:
        """
        Check that the settings can be used to start the server.

        Raises:
            ConfigError: If auth is required but no secret is set, or the
                         port is outside 0-65535.
        """
        device = config.get("device") or {}
        if device.get("auth_required", True) and not password:
            raise ConfigError("Please set a password or disable authentication")

        port = (config.get("web") or {}).get("port", PORT)
        if not isinstance(port, int) or isinstance(port, bool) or not 0 <= port <= 65535:
            raise ConfigError(f"Invalid port: {port!r}")


# -- Helper Functions ---------------------------------------------------------

def _deep_merge(base: dict, override: dict) -> None:
    """
    Recursively merge 'override' into 'base' (in-place).

    For nested dicts, values are merged recursively.
    For all other types, override replaces base.
    """
    for key, value in override.items():
        if key in base and isinstance(base[key], dict) and isinstance(value, dict):
            _deep_merge(base[key], value)
        else:
            base[key] = value


def _quote(value: str) -> str:
    """Single-quote a value for .env so '#' and spaces survive."""
    return "'" + value.replace("\\", "\\\\").replace("'", "\\'") + "'"


def mask_secret(value: str) -> str:
    """
    Mask a secret for safe display.

    Shows the first 4 and last 4 characters; secrets shorter than 12
    characters are fully masked.
    """
    if not value or len(value) < 12:
        return "****" if value else ""
    return f"{value[:4]}****{value[-4:]}"
