"""In-memory index of every gem installed on the host and in the project.

The index is filled once by ``warm``: each install root's
``specifications`` directory is listed and its gemspecs are parsed in a
thread pool. Afterwards it is only read.
"""
from __future__ import annotations

import logging
import os
import threading
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from typing import Callable, Dict, Iterator, List, Optional, Set, Tuple

from constants import Constants
from common.logging_utils import Timer, extra_context, is_debug_enabled, log_discovered_files
from registry.rubygems import host
from registry.rubygems.checksum import checksum_or_none
from registry.rubygems.detect import vendor_roots
from registry.rubygems.errors import FilesystemError, LicenseNotFound
from registry.rubygems.gemspec_parser import load_gemspec, split_stem
from registry.rubygems.license import extract_license
from registry.rubygems.models import Spec, VersionMap

logger = logging.getLogger(__name__)

# Lower rank wins when two roots install the same name and version.
RANK_VENDOR = 0
RANK_USER = 1
RANK_INSTALLATION = 2
RANK_GEM_PATH = 3


@dataclass(frozen=True)
class InstallRoot:
    """A directory holding ``specifications``, ``gems`` and ``cache``."""
    path: str
    rank: int


def _same_path(a: str, b: str) -> bool:
    return os.path.normcase(os.path.normpath(a)) == os.path.normcase(os.path.normpath(b))


def _within(path: str, directory: str) -> bool:
    """True when ``path`` is ``directory`` or lies below it."""
    path = os.path.normcase(os.path.normpath(path))
    directory = os.path.normcase(os.path.normpath(directory))
    return path == directory or path.startswith(directory + os.sep)


def install_roots(env: host.GemEnvironment, project_root: Optional[str] = None) -> List[InstallRoot]:
    """Install roots in precedence order, without duplicates."""
    candidates: List[InstallRoot] = []
    if project_root:
        candidates.extend(InstallRoot(p, RANK_VENDOR) for p in vendor_roots(project_root))
    if env.user_installation_dir:
        candidates.append(InstallRoot(env.user_installation_dir, RANK_USER))
    if env.installation_dir:
        candidates.append(InstallRoot(env.installation_dir, RANK_INSTALLATION))
    candidates.extend(InstallRoot(p, RANK_GEM_PATH) for p in env.gem_paths)

    roots: List[InstallRoot] = []
    for candidate in candidates:
        if any(_same_path(candidate.path, seen.path) for seen in roots):
            continue
        roots.append(candidate)
    return roots


class DependencyCache:
    """Map of gem name to every installed version of that gem.

    ``warm`` is safe to call from several threads; callers block until the
    running population finishes. Roots that were fully indexed are skipped
    on later calls, so only newly requested or previously failed roots are
    read again.
    """

    def __init__(
        self,
        environment: Optional[Callable[[], host.GemEnvironment]] = None,
        workers: Optional[int] = None,
    ):
        self._environment_loader = environment or host.gem_environment
        self._workers = workers
        self._entries: Dict[str, VersionMap] = {}
        self._ranks: Dict[Tuple[str, str], int] = {}
        self._completed: Set[str] = set()
        self._env: Optional[host.GemEnvironment] = None
        self._default_cache: Optional[str] = None
        self._lock = threading.Lock()
        self._ready = threading.Event()
        self.errors: List[FilesystemError] = []

    # -- population --------------------------------------------------------

    def warm(self, project_root: Optional[str] = None) -> "DependencyCache":
        """Index the host install roots and, when given, the project's vendor roots."""
        with self._lock:
            with Timer() as timer:
                self._populate(project_root)
            self._ready.set()
        if is_debug_enabled(logger):
            logger.debug(
                "Dependency cache warm",
                extra=extra_context(
                    event="cache_warm",
                    component="cache",
                    action="warm",
                    outcome="success" if not self.errors else "partial",
                    gems=len(self._entries),
                    errors=len(self.errors),
                    duration_ms=timer.duration_ms(),
                ),
            )
        return self

    def ensure_warm(self, project_root: Optional[str] = None) -> "DependencyCache":
        """Block until the cache is populated for ``project_root``."""
        self.warm(project_root)
        self._ready.wait()
        return self

    @property
    def is_warm(self) -> bool:
        """True once at least one population pass has finished."""
        return self._ready.is_set()

    def _environment(self) -> host.GemEnvironment:
        if self._env is None:
            self._env = self._environment_loader()
        return self._env

    def _resolve_default_cache(self) -> None:
        if self._default_cache is None:
            gem_dir = host.gem_dir()
            self._default_cache = os.path.join(gem_dir, Constants.CACHE_DIR) if gem_dir else ""

    def _cache_dirs(self, root: InstallRoot) -> List[str]:
        dirs = [os.path.join(root.path, Constants.CACHE_DIR)]
        dirs.extend(self._environment().cache_dirs())
        if self._default_cache:
            dirs.append(self._default_cache)
        return list(dict.fromkeys(dirs))

    def _populate(self, project_root: Optional[str]) -> None:
        roots = [
            root for root in install_roots(self._environment(), project_root)
            if os.path.normpath(root.path) not in self._completed
        ]
        if not roots:
            return
        # A retried root reports only the outcome of this pass.
        self.errors = [
            error for error in self.errors
            if not any(_within(error.path, root.path) for root in roots)
        ]
        # Resolved here so worker threads only read it.
        self._resolve_default_cache()
        log_discovered_files(logger, "rubygems", {"install_root": [r.path for r in roots]})

        jobs: List[Tuple[InstallRoot, str]] = []
        for root in roots:
            spec_dir = os.path.join(root.path, Constants.SPEC_DIR)
            if not os.path.isdir(spec_dir):
                logger.debug("Skipping %s: no %s directory", root.path, Constants.SPEC_DIR)
                self._completed.add(os.path.normpath(root.path))
                continue
            try:
                entries = sorted(os.listdir(spec_dir))
            except OSError as exc:
                error = FilesystemError(spec_dir, exc)
                self.errors.append(error)
                logger.warning("%s", error)
                continue
            jobs.extend(
                (root, entry) for entry in entries
                if entry.endswith(Constants.SPEC_EXTENSION)
            )
            self._completed.add(os.path.normpath(root.path))

        workers = self._workers or Constants.PARSE_WORKERS
        with ThreadPoolExecutor(max_workers=max(1, workers)) as executor:
            futures = [executor.submit(self._index_spec, root, entry) for root, entry in jobs]
            # Merged in submission order by this thread only.
            for (root, entry), future in zip(jobs, futures):
                try:
                    spec = future.result()
                except FilesystemError as exc:
                    self.errors.append(exc)
                    logger.warning("%s", exc)
                    continue
                self.put(spec, root.rank)

    def _index_spec(self, root: InstallRoot, filename: str) -> Spec:
        stem = filename[: -len(Constants.SPEC_EXTENSION)]
        spec = load_gemspec(os.path.join(root.path, Constants.SPEC_DIR, filename))
        stem_name, stem_version = split_stem(stem)
        if not spec.name:
            spec.name = stem_name
        if not spec.version:
            spec.version = stem_version or host.installed_version(spec.name)

        spec.install_dir = os.path.join(root.path, Constants.GEM_DIR, stem)
        spec.checksum = checksum_or_none(self._cache_dirs(root), stem)
        try:
            info = extract_license(spec.install_dir)
        except LicenseNotFound as exc:
            logger.debug("%s", exc)
        else:
            spec.license_text = info.text
            spec.copyright = info.copyright
        return spec

    # -- access ------------------------------------------------------------

    def put(self, spec: Spec, rank: int = RANK_GEM_PATH) -> bool:
        """Store ``spec`` unless a higher-precedence root already supplied it."""
        if not spec.name:
            return False
        key = (spec.name, spec.version)
        held = self._ranks.get(key)
        if held is not None and held <= rank:
            return False
        self._ranks[key] = rank
        self._entries.setdefault(spec.name, VersionMap()).versions[spec.version] = spec
        return True

    def get(self, name: str) -> Optional[VersionMap]:
        """Every installed version of ``name``, or None."""
        return self._entries.get(name)

    def lookup(self, name: str, version: str) -> Optional[Spec]:
        """The Spec for an exact ``name`` and ``version``, or None."""
        versions = self._entries.get(name)
        if versions is None:
            return None
        return versions.versions.get(version)

    def names(self) -> List[str]:
        """Indexed gem names, sorted."""
        return sorted(self._entries)

    def __contains__(self, name: object) -> bool:
        return name in self._entries

    def __len__(self) -> int:
        return len(self._entries)

    def __iter__(self) -> Iterator[str]:
        return iter(self.names())
