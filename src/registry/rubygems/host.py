"""Queries against the host Ruby toolchain (``gem``, ``bundler``, ``ruby``).

Every call blocks until the tool exits. A missing tool or a non-zero exit
yields ``None`` rather than an exception; callers decide whether that
matters.
"""
from __future__ import annotations

import logging
import os
import platform
import re
import subprocess
import sys
from dataclasses import dataclass, field
from typing import List, Optional, Sequence

from constants import Constants
from common.logging_utils import extra_context, is_debug_enabled

logger = logging.getLogger(__name__)

_VERSION_TOKEN = re.compile(r"\d+(?:\.[0-9A-Za-z]+)*")


@dataclass
class GemEnvironment:
    """Install locations reported by ``gem env``."""
    gem_paths: List[str] = field(default_factory=list)
    installation_dir: str = ""
    user_installation_dir: str = ""

    def cache_dirs(self) -> List[str]:
        """Package cache directories of the installation and user roots."""
        dirs = []
        for base in (self.user_installation_dir, self.installation_dir):
            if base:
                dirs.append(os.path.join(base, Constants.CACHE_DIR))
        return dirs


def run_command(args: Sequence[str]) -> Optional[str]:
    """Run a host command and return its stdout, or None on any failure."""
    try:
        result = subprocess.run(
            list(args),
            capture_output=True,
            text=True,
            check=False,
            timeout=Constants.SUBPROCESS_TIMEOUT,
        )
    except (OSError, subprocess.SubprocessError) as exc:
        logger.debug("Command %s failed to run: %s", args[0], exc)
        return None
    if result.returncode != 0:
        if is_debug_enabled(logger):
            logger.debug("Host command failed", extra=extra_context(
                event="subprocess", component="host", action=args[0],
                outcome="nonzero_exit", returncode=result.returncode
            ))
        return None
    return result.stdout


def host_os() -> str:
    """Normalize the running OS to ``linux``, ``darwin`` or ``windows``."""
    name = sys.platform.lower()
    if name.startswith("linux"):
        return "linux"
    if name.startswith("darwin"):
        return "darwin"
    if name.startswith(("win", "cygwin", "msys")):
        return "windows"
    return name


def parse_gem_env(text: str) -> GemEnvironment:
    """Extract install roots from ``gem env`` output."""
    env = GemEnvironment()
    header_indent: Optional[int] = None
    for line in text.splitlines():
        if not line.strip():
            continue
        indent = len(line) - len(line.lstrip())
        item = line.strip()
        if item.startswith("- "):
            item = item[2:].strip()

        if header_indent is not None:
            if indent > header_indent:
                env.gem_paths.append(item)
                continue
            header_indent = None

        if item == "GEM PATHS:":
            header_indent = indent
        elif item.startswith("INSTALLATION DIRECTORY:"):
            env.installation_dir = item.split(":", 1)[1].strip()
        elif item.startswith("USER INSTALLATION DIRECTORY:"):
            env.user_installation_dir = item.split(":", 1)[1].strip()
    return env


def gem_environment() -> GemEnvironment:
    """Ask ``gem env`` where gems are installed."""
    output = run_command(["gem", "env"])
    if output is None:
        logger.warning("Unable to query 'gem env'; only project-local gems will be indexed.")
        return GemEnvironment()
    return parse_gem_env(output)


def gem_dir() -> str:
    """Default gem installation directory (``gem environment gemdir``), or ''."""
    output = run_command(["gem", "environment", "gemdir"])
    if not output or not output.split():
        return ""
    return output.split()[0]


def parse_installed_version(text: str) -> str:
    """First version in ``gem list`` output such as ``rake (13.0.6, 12.3.3)``."""
    start = text.find("(")
    scope = text[start + 1:] if start != -1 else text
    match = _VERSION_TOKEN.search(scope)
    return match.group(0) if match else ""


def installed_version(name: str) -> str:
    """Version of ``name`` installed on the host, or '' when unknown."""
    output = run_command(["gem", "list", "--exact", name])
    if not output:
        return ""
    for line in output.splitlines():
        if line.split(" ", 1)[0] == name:
            return parse_installed_version(line)
    return ""


def bundler_version_output() -> Optional[str]:
    """Raw ``bundler version`` output."""
    return run_command(["bundler", "version"])


def local_platform() -> str:
    """The host's Gem platform string (``x86_64-linux``)."""
    output = run_command(["ruby", "-e", "print Gem::Platform.local"])
    if output and output.strip():
        return output.strip()
    machine = platform.machine().lower() or "ruby"
    return f"{machine}-{host_os()}"
