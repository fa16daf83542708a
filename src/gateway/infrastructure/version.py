"""Version of the running gateway.

Reported by the health endpoint and the OpenAPI document. Installed
distributions carry it in their metadata; a source checkout reads it from
the project's pyproject.toml.
"""

import tomllib
from importlib.metadata import PackageNotFoundError, version
from pathlib import Path

DISTRIBUTION_NAME = "graph-gateway"

# src/gateway/infrastructure/version.py -> repository root
PYPROJECT_PATH = Path(__file__).resolve().parents[3] / "pyproject.toml"

UNKNOWN_VERSION = "0.0.0+unknown"


def _version_from_pyproject(path: Path) -> str:
    try:
        with open(path, "rb") as f:
            return tomllib.load(f)["project"]["version"]
    except (OSError, KeyError, tomllib.TOMLDecodeError):
        return UNKNOWN_VERSION


def get_version() -> str:
    """Get the gateway version, e.g. "1.0.0"."""
    try:
        return version(DISTRIBUTION_NAME)
    except PackageNotFoundError:
        return _version_from_pyproject(PYPROJECT_PATH)


__version__ = get_version()
