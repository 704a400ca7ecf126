"""Shared fixtures: fake gem install trees and a host without Ruby tools."""

import os

import pytest

from constants import Constants
from registry.rubygems import host


def gemspec_text(name, version=None, runtime=(), development=(), licenses=("MIT",),
                 authors=("Jane Doe",), homepage=None):
    """Render a gemspec the way ``gem install`` writes it under specifications/."""
    lines = [
        "# -*- encoding: utf-8 -*-",
        f"# stub: {name} {version or '0'} ruby lib",
        "",
        "Gem::Specification.new do |s|",
        f"  s.name = \"{name}\".freeze",
    ]
    if version:
        lines.append(f"  s.version = \"{version}\"")
    lines.append("  s.require_paths = [\"lib\".freeze]")
    if authors:
        lines.append("  s.authors = [" + ", ".join(f"\"{a}\".freeze" for a in authors) + "]")
    if homepage:
        lines.append(f"  s.homepage = \"{homepage}\".freeze")
    if licenses:
        lines.append("  s.licenses = [" + ", ".join(f"\"{l}\".freeze" for l in licenses) + "]")
    lines.append(f"  s.summary = \"The {name} gem\".freeze")
    for dep, req in runtime:
        lines.append(f"  s.add_runtime_dependency(%q<{dep}>.freeze, [\"{req}\".freeze])")
    for dep, req in development:
        lines.append(f"  s.add_development_dependency(%q<{dep}>.freeze, [\"{req}\".freeze])")
    lines.append("end")
    return "\n".join(lines) + "\n"


class InstallRootBuilder:
    """Writes gems into an install root (``specifications``, ``gems``, ``cache``)."""

    def __init__(self, path):
        self.path = path
        for sub in (Constants.SPEC_DIR, Constants.GEM_DIR, Constants.CACHE_DIR):
            os.makedirs(os.path.join(path, sub), exist_ok=True)

    def add(self, name, version, runtime=(), license_text="Copyright (c) 2020 Jane Doe\n\nMIT License\n",
            archive=b"gem-archive", **kwargs):
        stem = f"{name}-{version}"
        with open(os.path.join(self.path, Constants.SPEC_DIR, stem + Constants.SPEC_EXTENSION),
                  "w", encoding="utf-8") as fh:
            fh.write(gemspec_text(name, version, runtime=runtime, **kwargs))
        gem_dir = os.path.join(self.path, Constants.GEM_DIR, stem)
        os.makedirs(gem_dir, exist_ok=True)
        if license_text is not None:
            with open(os.path.join(gem_dir, "LICENSE.txt"), "w", encoding="utf-8") as fh:
                fh.write(license_text)
        if archive is not None:
            with open(os.path.join(self.path, Constants.CACHE_DIR, stem + Constants.GEM_EXTENSION), "wb") as fh:
                fh.write(archive)
        return stem


@pytest.fixture(autouse=True)
def no_host_tools(monkeypatch):
    """Every host command behaves as if the tool were missing."""
    monkeypatch.setattr(host, "run_command", lambda args: None)


@pytest.fixture(autouse=True)
def restore_constants():
    """Undo Constants overrides made by a test."""
    saved = {k: v for k, v in vars(Constants).items() if k.isupper()}
    yield
    for key, value in saved.items():
        setattr(Constants, key, value)


@pytest.fixture
def gem_project(tmp_path):
    """A project root with a gemspec writer and a vendored install root."""

    class Project:
        root = str(tmp_path / "demo")

        def __init__(self):
            os.makedirs(self.root, exist_ok=True)
            self.vendor = InstallRootBuilder(
                os.path.join(self.root, Constants.VENDOR_PATH, "3.2.0")
            )

        def write_gemspec(self, name="demo", version="1.0.0", runtime=(), **kwargs):
            path = os.path.join(self.root, f"{name}.gemspec")
            with open(path, "w", encoding="utf-8") as fh:
                fh.write(gemspec_text(name, version, runtime=runtime, **kwargs))
            return path

    return Project()


@pytest.fixture
def install_root(tmp_path):
    """A standalone (system-like) install root."""
    return InstallRootBuilder(str(tmp_path / "system" / "gems" / "3.2.0"))
