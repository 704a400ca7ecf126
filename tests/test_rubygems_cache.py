"""Tests for the installed-gem index."""

import hashlib
import os
import threading

from constants import Constants
from registry.rubygems import host
from registry.rubygems.cache import (
    RANK_GEM_PATH,
    RANK_VENDOR,
    DependencyCache,
    install_roots,
)
from registry.rubygems.errors import FilesystemError
from registry.rubygems.host import GemEnvironment
from registry.rubygems.models import Spec


def _env(*paths, installation="", user=""):
    return lambda: GemEnvironment(gem_paths=list(paths), installation_dir=installation,
                                  user_installation_dir=user)


class TestInstallRoots:
    """Test install root ordering."""

    def test_precedence_order(self, gem_project):
        """Vendor, user, installation and gem paths come in that order."""
        env = GemEnvironment(
            gem_paths=["/opt/gems", "/usr/lib/gems"],
            installation_dir="/usr/lib/gems",
            user_installation_dir="/home/u/.gem",
        )
        roots = install_roots(env, gem_project.root)

        assert [r.path for r in roots] == [
            gem_project.vendor.path, "/home/u/.gem", "/usr/lib/gems", "/opt/gems",
        ]
        assert roots[0].rank == RANK_VENDOR

    def test_without_project(self):
        """Without a project only host roots are listed."""
        roots = install_roots(GemEnvironment(gem_paths=["/opt/gems"]))
        assert [(r.path, r.rank) for r in roots] == [("/opt/gems", RANK_GEM_PATH)]


class TestWarm:
    """Test population of the cache."""

    def test_indexes_every_version(self, install_root):
        """Every installed version of a gem is indexed with its license."""
        install_root.add("rake", "13.0.6")
        install_root.add("rake", "12.3.3")
        install_root.add("json", "2.6.3")

        cache = DependencyCache(environment=_env(install_root.path)).warm()

        assert cache.names() == ["json", "rake"]
        assert cache.get("rake").count == 2
        spec = cache.lookup("rake", "13.0.6")
        assert spec.install_dir == os.path.join(install_root.path, "gems", "rake-13.0.6")
        assert spec.copyright == "Copyright (c) 2020 Jane Doe"
        assert "MIT License" in spec.license_text

    def test_checksum_from_root_cache(self, install_root, monkeypatch):
        """The checksum comes from the root's cached archive."""
        monkeypatch.setattr(host, "host_os", lambda: "windows")
        install_root.add("rake", "13.0.6", archive=b"archive-bytes")

        cache = DependencyCache(environment=_env(install_root.path)).warm()

        expected = hashlib.sha256(b"archive-bytes").hexdigest()
        assert cache.lookup("rake", "13.0.6").checksum == expected

    def test_missing_archive_gives_sentinel(self, install_root):
        """A gem without a cached archive gets the NONE checksum."""
        install_root.add("rake", "13.0.6", archive=None)
        cache = DependencyCache(environment=_env(install_root.path)).warm()
        assert cache.lookup("rake", "13.0.6").checksum == Constants.CHECKSUM_NONE

    def test_version_from_file_stem(self, install_root):
        """A gemspec without a version takes it from the file stem."""
        stem = "oddball-0.4.1"
        path = os.path.join(install_root.path, Constants.SPEC_DIR, stem + Constants.SPEC_EXTENSION)
        with open(path, "w", encoding="utf-8") as fh:
            fh.write('Gem::Specification.new do |s|\n  s.name = "oddball"\nend\n')

        cache = DependencyCache(environment=_env(install_root.path)).warm()
        assert cache.lookup("oddball", "0.4.1") is not None

    def test_version_from_host_tool(self, install_root, monkeypatch):
        """A stem without a version falls back to the gem tool."""
        path = os.path.join(install_root.path, Constants.SPEC_DIR, "mystery" + Constants.SPEC_EXTENSION)
        with open(path, "w", encoding="utf-8") as fh:
            fh.write('Gem::Specification.new do |s|\n  s.name = "mystery"\nend\n')
        monkeypatch.setattr(host, "installed_version", lambda name: "9.9.9")

        cache = DependencyCache(environment=_env(install_root.path)).warm()
        assert cache.lookup("mystery", "9.9.9") is not None

    def test_vendor_root_wins_over_system_root(self, gem_project, install_root):
        """A vendored copy wins over the system copy."""
        install_root.add("rake", "13.0.6", homepage="https://system.example")
        gem_project.vendor.add("rake", "13.0.6", homepage="https://vendor.example")

        cache = DependencyCache(environment=_env(install_root.path)).warm(gem_project.root)
        assert cache.lookup("rake", "13.0.6").homepage == "https://vendor.example"

    def test_vendor_added_after_system_warm(self, gem_project, install_root):
        """A later warm for the project still lets vendored gems take precedence."""
        install_root.add("rake", "13.0.6", homepage="https://system.example")
        gem_project.vendor.add("rake", "13.0.6", homepage="https://vendor.example")
        cache = DependencyCache(environment=_env(install_root.path))

        cache.warm()
        assert cache.lookup("rake", "13.0.6").homepage == "https://system.example"
        cache.warm(gem_project.root)
        assert cache.lookup("rake", "13.0.6").homepage == "https://vendor.example"

    def test_earlier_gem_path_wins(self, tmp_path):
        """The earlier GEM PATHS entry wins a collision."""
        from conftest import InstallRootBuilder

        first = InstallRootBuilder(str(tmp_path / "first"))
        second = InstallRootBuilder(str(tmp_path / "second"))
        first.add("rake", "13.0.6", homepage="https://first.example")
        second.add("rake", "13.0.6", homepage="https://second.example")

        cache = DependencyCache(environment=_env(first.path, second.path)).warm()
        assert cache.lookup("rake", "13.0.6").homepage == "https://first.example"

    def test_warm_is_idempotent(self, install_root, monkeypatch):
        """A second warm does not parse completed roots."""
        install_root.add("rake", "13.0.6")
        cache = DependencyCache(environment=_env(install_root.path)).warm()

        def fail(*args, **kwargs):
            raise AssertionError("completed roots must not be parsed again")

        monkeypatch.setattr("registry.rubygems.cache.load_gemspec", fail)
        cache.warm()
        assert cache.names() == ["rake"]

    def test_missing_root_is_skipped(self, tmp_path):
        """A root that does not exist is empty, not an error."""
        cache = DependencyCache(environment=_env(str(tmp_path / "absent"))).warm()
        assert len(cache) == 0
        assert cache.errors == []
        assert cache.is_warm

    def test_concurrent_callers_share_one_population(self, install_root):
        """Concurrent warm callers share one population."""
        install_root.add("rake", "13.0.6")
        calls = []

        def env():
            calls.append(1)
            return GemEnvironment(gem_paths=[install_root.path])

        cache = DependencyCache(environment=env, workers=2)
        threads = [threading.Thread(target=cache.ensure_warm) for _ in range(4)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert len(calls) == 1
        assert "rake" in cache

    def test_unreadable_root_is_reported_then_retried(self, tmp_path, monkeypatch):
        """An unlistable root is recorded, other roots still index, and a later warm clears it."""
        from conftest import InstallRootBuilder

        good = InstallRootBuilder(str(tmp_path / "good"))
        flaky = InstallRootBuilder(str(tmp_path / "flaky"))
        good.add("rake", "13.0.6")
        flaky.add("json", "2.6.3")
        blocked = os.path.join(flaky.path, Constants.SPEC_DIR)
        real_listdir = os.listdir
        denied = []

        def listdir(path):
            if os.path.normpath(path) == os.path.normpath(blocked) and not denied:
                denied.append(path)
                raise PermissionError(13, "Permission denied", path)
            return real_listdir(path)

        monkeypatch.setattr(os, "listdir", listdir)
        cache = DependencyCache(environment=_env(good.path, flaky.path))

        cache.warm()
        assert len(cache.errors) == 1
        assert isinstance(cache.errors[0], FilesystemError)
        assert cache.errors[0].path == blocked
        assert cache.names() == ["rake"]

        cache.warm()
        assert cache.errors == []
        assert cache.names() == ["json", "rake"]

    def test_default_cache_resolved_once(self, install_root, monkeypatch):
        """The gem directory is asked for once, before parsing starts."""
        for index in range(6):
            install_root.add(f"gem{index}", "1.0.0")
        calls = []

        def gem_dir():
            calls.append(1)
            return ""

        monkeypatch.setattr(host, "gem_dir", gem_dir)
        DependencyCache(environment=_env(install_root.path), workers=4).warm()
        assert len(calls) == 1


class TestPut:
    """Test precedence-aware insertion."""

    def test_lower_rank_wins(self):
        """A higher-precedence spec replaces a lower one, never the reverse."""
        cache = DependencyCache(environment=_env())
        assert cache.put(Spec(name="rake", version="1.0", homepage="sys"), RANK_GEM_PATH)
        assert cache.put(Spec(name="rake", version="1.0", homepage="vendor"), RANK_VENDOR)
        assert not cache.put(Spec(name="rake", version="1.0", homepage="late"), RANK_GEM_PATH)
        assert cache.lookup("rake", "1.0").homepage == "vendor"

    def test_nameless_spec_rejected(self):
        """A spec without a name is not stored."""
        cache = DependencyCache(environment=_env())
        assert cache.put(Spec(version="1.0")) is False
        assert len(cache) == 0
