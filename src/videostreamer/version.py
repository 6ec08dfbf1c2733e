"""Version management for VideoStreamer."""

import tomllib
from importlib import metadata
from pathlib import Path


def get_version() -> str:
    """Installed distribution version, else the one in a source checkout's pyproject.toml."""
    try:
        return metadata.version("videostreamer")
    except metadata.PackageNotFoundError:
        pass

    pyproject_path = Path(__file__).parent.parent.parent / "pyproject.toml"
    try:
        with open(pyproject_path, "rb") as f:
            return tomllib.load(f)["project"]["version"]
    except (OSError, KeyError, tomllib.TOMLDecodeError):
        return "0.0.0"


__version__ = get_version()
