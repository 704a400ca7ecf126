"""End-to-end tests for graph building over fake install trees."""

import logging

import pytest

from constants import Constants
from registry.rubygems.cache import DependencyCache
from registry.rubygems.client import GemMetadata
from registry.rubygems.errors import ManifestNotFound
from registry.rubygems.graph import BuildState, GraphBuilder
from registry.rubygems.host import GemEnvironment
from sbom_module import TypeContact, walk


@pytest.fixture
def builder():
    """A builder whose cache only sees the project's vendored gems."""
    return GraphBuilder(cache=DependencyCache(environment=GemEnvironment))


def _assert_child_maps_unique(modules):
    for module in modules:
        names = list(module.modules.keys())
        assert len(names) == len(set(names))


class TestBuild:
    """Test root discovery and layered expansion."""

    def test_demo_with_rake(self, gem_project, builder):
        """A root with one installed dependency yields two modules."""
        gem_project.write_gemspec("demo", "1.0.0", runtime=[("rake", ">= 12.0")])
        gem_project.vendor.add("rake", "13.0.6", authors=("Hiroshi SHIBATA",),
                               homepage="https://github.com/ruby/rake")

        modules = builder.build(gem_project.root)

        assert [(m.name, m.version) for m in modules] == [("demo", "1.0.0"), ("rake", "13.0.6")]
        root, rake = modules
        assert root.root is True
        assert list(root.modules) == ["rake"]
        assert root.modules["rake"] is rake
        assert rake.root is False
        assert rake.supplier.type == TypeContact.PERSON
        assert rake.supplier.name == "Hiroshi SHIBATA"
        assert rake.package_home_page == "https://github.com/ruby/rake"
        assert rake.package_download_location == "https://github.com/ruby/rake"
        assert rake.license_declared == "MIT"
        assert rake.copyright == "Copyright (c) 2020 Jane Doe"
        assert builder.state == BuildState.DONE

    def test_missing_dependency_warns(self, gem_project, builder, caplog):
        """An uninstalled dependency is skipped with one warning."""
        gem_project.write_gemspec("demo", "1.0.0", runtime=[("rake", ">= 12.0")])

        with caplog.at_level(logging.WARNING):
            modules = builder.build(gem_project.root)

        assert [m.name for m in modules] == ["demo"]
        assert modules[0].modules == {}
        warnings = [r for r in caplog.records if r.levelno == logging.WARNING]
        assert len(warnings) == 1
        assert "rake" in warnings[0].getMessage()
        assert "demo" in warnings[0].getMessage()

    def test_one_warning_per_occurrence(self, gem_project, builder, caplog):
        """Each unresolved occurrence gets its own warning."""
        gem_project.write_gemspec("demo", "1.0.0", runtime=[("a", "~> 1.0"), ("b", "~> 1.0")])
        gem_project.vendor.add("a", "1.0.0", runtime=[("ghost", ">= 0")])
        gem_project.vendor.add("b", "1.0.0", runtime=[("ghost", ">= 0")])

        with caplog.at_level(logging.WARNING):
            builder.build(gem_project.root)

        ghost = [r for r in caplog.records if "ghost" in r.getMessage()]
        assert len(ghost) == 2

    def test_depth_is_bounded(self, gem_project, builder):
        """Expansion stops at the default depth."""
        chain = ["l1", "l2", "l3", "l4", "l5"]
        gem_project.write_gemspec("demo", "1.0.0", runtime=[("l1", ">= 0")])
        for current, following in zip(chain, chain[1:] + [None]):
            runtime = [(following, ">= 0")] if following else []
            gem_project.vendor.add(current, "1.0.0", runtime=runtime)

        modules = builder.build(gem_project.root)

        assert [m.name for m in modules] == ["demo", "l1", "l2", "l3"]
        assert max(depth for _, depth in walk(modules[0])) == 3
        assert modules[-1].modules == {}

    def test_custom_depth(self, gem_project):
        """A smaller max_depth stops expansion earlier."""
        gem_project.write_gemspec("demo", "1.0.0", runtime=[("l1", ">= 0")])
        gem_project.vendor.add("l1", "1.0.0", runtime=[("l2", ">= 0")])
        gem_project.vendor.add("l2", "1.0.0")

        builder = GraphBuilder(cache=DependencyCache(environment=GemEnvironment), max_depth=1)
        assert [m.name for m in builder.build(gem_project.root)] == ["demo", "l1"]

    def test_shared_dependency_deduplicated_per_layer(self, gem_project, builder):
        """Parents in one layer share a single child module."""
        gem_project.write_gemspec("demo", "1.0.0", runtime=[("a", ">= 0"), ("b", ">= 0")])
        gem_project.vendor.add("a", "1.0.0", runtime=[("common", ">= 0")])
        gem_project.vendor.add("b", "1.0.0", runtime=[("common", ">= 0")])
        gem_project.vendor.add("common", "2.0.0")

        modules = builder.build(gem_project.root)

        assert [m.name for m in modules] == ["demo", "a", "b", "common"]
        a, b, common = modules[1:]
        assert a.modules["common"] is common
        assert b.modules["common"] is common
        assert sum(1 for m in modules if m.root) == 1
        _assert_child_maps_unique(modules)

    def test_same_gem_in_two_layers(self, gem_project, builder):
        """A gem reachable at two depths appears once in each layer."""
        gem_project.write_gemspec("demo", "1.0.0", runtime=[("a", ">= 0"), ("b", ">= 0")])
        gem_project.vendor.add("a", "1.0.0", runtime=[("b", ">= 0")])
        gem_project.vendor.add("b", "1.0.0")

        modules = builder.build(gem_project.root)
        assert [m.name for m in modules] == ["demo", "a", "b", "b"]

    def test_duplicate_requirements_single_child(self, gem_project, builder):
        """Repeated requirements for a gem give one child."""
        gem_project.write_gemspec("demo", "1.0.0", runtime=[("rake", ">= 12"), ("rake", "< 14")])
        gem_project.vendor.add("rake", "13.0.6")

        modules = builder.build(gem_project.root)
        assert list(modules[0].modules) == ["rake"]
        assert len(modules) == 2


class TestRootModule:
    """Test root module resolution."""

    def test_missing_gemspec(self, tmp_path, builder):
        """A project without a gemspec raises ManifestNotFound."""
        with pytest.raises(ManifestNotFound):
            builder.root_module(str(tmp_path))

    def test_version_recovered_from_vendor(self, gem_project, builder):
        """A root without a literal version takes the vendored one."""
        gem_project.write_gemspec("demo", None)
        gem_project.vendor.add("demo", "0.3.0")

        root = builder.root_module(gem_project.root)
        assert root.version == "0.3.0"
        assert builder.state == BuildState.ROOT_RESOLVED

    def test_checksum_from_vendor_cache(self, gem_project, builder, monkeypatch):
        """The root checksum comes from the vendor cache."""
        from registry.rubygems import host
        monkeypatch.setattr(host, "host_os", lambda: "windows")
        gem_project.write_gemspec("demo", "1.0.0")
        gem_project.vendor.add("demo", "1.0.0", archive=b"demo")

        root = builder.root_module(gem_project.root)
        assert root.checksum.value != Constants.CHECKSUM_NONE
        assert len(root.checksum.value) == 64

    def test_root_license(self, gem_project, builder):
        """The root copyright comes from the project's LICENSE."""
        gem_project.write_gemspec("demo", "1.0.0")
        with open(f"{gem_project.root}/LICENSE", "w", encoding="utf-8") as fh:
            fh.write("Copyright (c) 2024 Demo Authors\n")

        root = builder.root_module(gem_project.root)
        assert root.copyright == "Copyright (c) 2024 Demo Authors"
        assert root.local_path == root.path


class TestRemoteEnrichment:
    """Test registry enrichment of incomplete modules."""

    def test_fills_checksum_and_license(self, gem_project):
        """Registry data fills a missing checksum and license."""
        gem_project.write_gemspec("demo", "1.0.0", runtime=[("rake", ">= 0")])
        gem_project.vendor.add("rake", "13.0.6", licenses=(), archive=None)
        calls = []

        def lookup(name):
            calls.append(name)
            return GemMetadata(name=name, version="13.0.6", sha="ab" * 32, licenses=["MIT"])

        builder = GraphBuilder(cache=DependencyCache(environment=GemEnvironment), remote=lookup)
        rake = builder.build(gem_project.root)[1]

        assert calls == ["rake"]
        assert rake.checksum.value == "ab" * 32
        assert rake.license_declared == "MIT"

    def test_other_version_sha_ignored(self, gem_project):
        """A registry sha for another version is not used."""
        gem_project.write_gemspec("demo", "1.0.0", runtime=[("rake", ">= 0")])
        gem_project.vendor.add("rake", "13.0.6", archive=None)

        builder = GraphBuilder(
            cache=DependencyCache(environment=GemEnvironment),
            remote=lambda name: GemMetadata(name=name, version="13.1.0", sha="cd" * 32),
        )
        rake = builder.build(gem_project.root)[1]
        assert rake.checksum.value == Constants.CHECKSUM_NONE


class TestHandwrittenRoot:
    """Test a handwritten root gemspec against a host GEM PATHS root."""

    ROOT_GEMSPEC = (
        "Gem::Specification.new do |s|\n"
        "  s.name = \"demo\".freeze\n"
        "  s.version = \"0.1.0\"\n"
        "  s.add_dependency \"rake\", [\">= 10.0\"]\n"
        "end\n"
    )

    def _builder(self, gem_project, install_root):
        with open(f"{gem_project.root}/demo.gemspec", "w", encoding="utf-8") as fh:
            fh.write(self.ROOT_GEMSPEC)
        cache = DependencyCache(environment=lambda: GemEnvironment(gem_paths=[install_root.path]))
        return GraphBuilder(cache=cache)

    def test_rake_from_gem_path(self, gem_project, install_root):
        """rake 13.0.6 in a GEM PATHS root becomes the only child of demo."""
        install_root.add("rake", "13.0.6")

        modules = self._builder(gem_project, install_root).build(gem_project.root)

        assert [(m.name, m.version) for m in modules] == [("demo", "0.1.0"), ("rake", "13.0.6")]
        assert modules[0].root is True
        assert modules[0].modules == {"rake": modules[1]}
        assert modules[1].path.startswith(install_root.path)

    def test_rake_missing_warns_once(self, gem_project, install_root, caplog):
        """Without rake installed only the root is returned, with one warning."""
        with caplog.at_level(logging.WARNING):
            modules = self._builder(gem_project, install_root).build(gem_project.root)

        assert [(m.name, m.version) for m in modules] == [("demo", "0.1.0")]
        assert modules[0].modules == {}
        warnings = [r for r in caplog.records if r.levelno == logging.WARNING]
        assert len(warnings) == 1
        assert "rake" in warnings[0].getMessage()
