"""Package version and repository URL, read from git."""

from __future__ import annotations

import subprocess
from pathlib import Path

from docgen.core.config import find_ecosystem_config, load_ecosystem_config
from docgen.core.errors import ConfigLoadError

DEFAULT_VERSION = "latest"


def _git(args: list[str], cwd: Path) -> str:
    try:
        result = subprocess.run(
            ["git", *args],
            cwd=cwd,
            capture_output=True,
            text=True,
            timeout=10,
            check=False,
        )
    except (OSError, subprocess.SubprocessError):
        return ""
    if result.returncode != 0:
        return ""
    return result.stdout.strip()


def package_version(workspace_path: Path) -> str:
    """Latest tag, else the workspace's own ``grove.yml`` version, else ``latest``."""
    workspace_path = Path(workspace_path)
    tag = _git(["describe", "--tags", "--abbrev=0"], workspace_path)
    if tag:
        return tag

    config_path = find_ecosystem_config(workspace_path)
    if config_path is not None:
        try:
            version = load_ecosystem_config(config_path).version
        except ConfigLoadError:
            version = ""
        if version:
            return version

    return DEFAULT_VERSION


def normalize_repo_url(url: str) -> str:
    """``git@github.com:org/repo.git`` -> ``https://github.com/org/repo``."""
    url = url.strip()
    if url.startswith("git@github.com:"):
        url = "https://github.com/" + url[len("git@github.com:"):]
    if url.endswith(".git"):
        url = url[: -len(".git")]
    return url


def repo_url(workspace_path: Path) -> str:
    """HTTPS URL of the ``origin`` remote, or empty when there is none."""
    url = _git(["remote", "get-url", "origin"], Path(workspace_path))
    return normalize_repo_url(url) if url else ""


__all__ = ["DEFAULT_VERSION", "package_version", "repo_url", "normalize_repo_url"]
