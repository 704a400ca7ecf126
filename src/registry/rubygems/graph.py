"""Root discovery and bounded transitive expansion of a gem project."""
from __future__ import annotations

import logging
import os
from enum import Enum
from typing import Callable, Dict, List, Optional, Tuple

from constants import Constants, DetectionMode
from common.logging_utils import Timer, extra_context, is_debug_enabled
from registry.rubygems.cache import DependencyCache
from registry.rubygems.checksum import checksum_or_none
from registry.rubygems.client import GemMetadata
from registry.rubygems.detect import detect_manifest, vendor_roots
from registry.rubygems.errors import DescendantUnresolved, LicenseNotFound
from registry.rubygems.gemspec_parser import clean_name, clean_uri, load_gemspec
from registry.rubygems.license import declared_license, extract_license
from registry.rubygems.models import Spec
from sbom_module import CheckSum, Module, SupplierContact, TypeContact
from versioning.parser import parse_requirement
from versioning.resolvers.rubygems import RubyGemsVersionResolver

logger = logging.getLogger(__name__)

RemoteLookup = Callable[[str], Optional[GemMetadata]]


class BuildState(Enum):
    """Progress of one ``GraphBuilder.build`` call."""
    INIT = "init"
    CACHE_WARMING = "cache_warming"
    ROOT_RESOLVED = "root_resolved"
    EXPANDING = "expanding"
    DONE = "done"


def _supplier(spec: Spec) -> SupplierContact:
    if not spec.authors:
        return SupplierContact()
    email = spec.emails[0] if spec.emails else ""
    return SupplierContact(type=TypeContact.PERSON, name=spec.authors[0], email=email)


def module_from_spec(spec: Spec, root: bool = False) -> Module:
    """Wrap a parsed Spec in a Module with its license and checksum attached."""
    homepage = clean_uri(spec.homepage)
    license_expr = declared_license(spec)
    module = Module(
        name=clean_name(spec.name),
        version=spec.version,
        root=root,
        path=spec.install_dir,
        supplier=_supplier(spec),
        package_url=homepage,
        package_home_page=homepage,
        package_download_location=homepage,
        checksum=CheckSum(value=spec.checksum or Constants.CHECKSUM_NONE),
        license_declared=license_expr,
        license_concluded=license_expr,
        copyright=spec.copyright,
        package_comment=spec.summary,
    )
    if spec.license_text:
        module.local_path = spec.install_dir
    return module


class GraphBuilder:
    """Builds the flat module list for a gem project.

    The output starts with the root module, followed by each expansion
    layer in order. A module appears at most once per layer; within a layer
    every parent that requires a gem points at the same Module object.
    """

    def __init__(
        self,
        cache: Optional[DependencyCache] = None,
        resolver: Optional[RubyGemsVersionResolver] = None,
        max_depth: Optional[int] = None,
        remote: Optional[RemoteLookup] = None,
    ):
        self.cache = cache if cache is not None else DependencyCache()
        self.resolver = resolver if resolver is not None else RubyGemsVersionResolver(self.cache)
        self.max_depth = Constants.MAX_DEPTH if max_depth is None else max_depth
        self.remote = remote
        self.state = BuildState.INIT
        self.unresolved: List[Tuple[str, str]] = []
        self._root_spec: Optional[Spec] = None

    def root_module(self, path: str) -> Module:
        """Resolve the project's own gem from its gemspec.

        Raises:
            ManifestNotFound: no gemspec in ``path``.
            FilesystemError: ``path`` or the gemspec cannot be read.
        """
        self.state = BuildState.CACHE_WARMING
        self.cache.ensure_warm(path)

        manifest = detect_manifest(path, DetectionMode.SPEC)
        spec = load_gemspec(os.path.join(path, manifest))
        if not spec.name:
            spec.name = os.path.splitext(manifest)[0]
        spec.install_dir = os.path.abspath(path)
        self._recover_from_vendor(spec, path)
        try:
            info = extract_license(path)
        except LicenseNotFound as exc:
            logger.debug("%s", exc)
        else:
            spec.license_text = info.text
            spec.copyright = info.copyright

        self._root_spec = spec
        module = module_from_spec(spec, root=True)
        self.state = BuildState.ROOT_RESOLVED
        return module

    def _recover_from_vendor(self, spec: Spec, path: str) -> None:
        """Fill the root's version and checksum from the project's installed copy."""
        if not spec.version:
            req = parse_requirement(f'"{spec.name}"')
            spec.version, _, _ = self.resolver.pick(req, self.resolver.fetch_candidates(req))
            spec.version = spec.version or ""
        if not spec.version:
            spec.checksum = Constants.CHECKSUM_NONE
            return
        stem = f"{spec.name}-{spec.version}"
        cache_dirs = [os.path.join(root, Constants.CACHE_DIR) for root in vendor_roots(path)]
        spec.checksum = checksum_or_none(cache_dirs, stem)

    def build(self, path: str) -> List[Module]:
        """Resolve the root and expand its runtime dependencies layer by layer.

        Returns:
            Root module first, then the modules discovered in each layer.
        """
        self.state = BuildState.INIT
        self.unresolved = []
        with Timer() as timer:
            root = self.root_module(path)
            modules: List[Module] = [root]
            parents: List[Tuple[Module, Spec]] = [(root, self._root_spec)]

            self.state = BuildState.EXPANDING
            for layer in range(1, self.max_depth + 1):
                if not parents:
                    break
                parents = self._expand_layer(layer, parents)
                modules.extend(module for module, _ in parents)

            if self.remote is not None:
                self._enrich(modules)
            self.state = BuildState.DONE

        for requirement, parent in self.unresolved:
            logger.warning("manifest for %s runtime dependency of %s not found in gem paths",
                           requirement, parent)
        if is_debug_enabled(logger):
            logger.debug(
                "Dependency graph built",
                extra=extra_context(
                    event="graph_built",
                    component="graph",
                    action="build",
                    outcome="success",
                    target=root.name,
                    modules=len(modules),
                    unresolved=len(self.unresolved),
                    duration_ms=timer.duration_ms(),
                ),
            )
        return modules

    def _expand_layer(self, layer: int, parents: List[Tuple[Module, Spec]]) -> List[Tuple[Module, Spec]]:
        """Resolve every runtime requirement of ``parents``.

        Returns the modules first seen in this layer, in discovery order.
        """
        seen: Dict[str, Module] = {}
        found: List[Tuple[Module, Spec]] = []
        for parent, parent_spec in parents:
            for requirement in parent_spec.runtime_dependencies:
                try:
                    spec = self.resolver.resolve(requirement)
                except DescendantUnresolved as exc:
                    self.unresolved.append((exc.requirement, parent_spec.name))
                    continue
                name = clean_name(spec.name)
                child = seen.get(name)
                if child is None:
                    child = module_from_spec(spec)
                    seen[name] = child
                    found.append((child, spec))
                if name not in parent.modules:
                    parent.modules[name] = child
        logger.debug("Layer %d resolved %d module(s)", layer, len(found))
        return found

    def _enrich(self, modules: List[Module]) -> None:
        """Fill missing checksums and licenses from the registry."""
        for module in modules:
            if module.root:
                continue
            needs_checksum = module.checksum is None or module.checksum.value == Constants.CHECKSUM_NONE
            needs_license = module.license_declared == Constants.NO_ASSERTION
            if not (needs_checksum or needs_license):
                continue
            meta = self.remote(module.name)
            if meta is None:
                continue
            if needs_checksum and meta.sha and meta.version == module.version:
                module.checksum = CheckSum(value=meta.sha)
            if needs_license and meta.licenses:
                expr = " OR ".join(meta.licenses)
                module.license_declared = expr
                module.license_concluded = expr
            if not module.package_home_page and meta.homepage_uri:
                module.package_home_page = meta.homepage_uri
                module.package_url = meta.homepage_uri
                module.package_download_location = meta.homepage_uri
