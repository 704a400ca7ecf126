"""Ecosystem-agnostic module records handed to the SBOM serializer."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional


class TypeContact(Enum):
    """Kind of supplier contact."""
    PERSON = "Person"
    ORGANIZATION = "Organization"


class HashAlgorithm(Enum):
    """Checksum algorithms understood by the serializer."""
    SHA1 = "SHA1"
    SHA256 = "SHA256"
    SHA512 = "SHA512"
    MD5 = "MD5"


@dataclass
class SupplierContact:
    """Who supplies a package."""
    type: Optional[TypeContact] = None
    name: str = ""
    email: str = ""


@dataclass
class CheckSum:
    """Digest of a packaged artifact."""
    algorithm: HashAlgorithm = HashAlgorithm.SHA256
    value: str = ""

    def __str__(self) -> str:
        return f"{self.algorithm.value}: {self.value}"


@dataclass
class Module:
    """One package in the dependency graph.

    ``modules`` maps a gem name to the Module for each direct dependency.
    """
    name: str
    version: str = ""
    root: bool = False
    path: str = ""
    local_path: str = ""
    supplier: SupplierContact = field(default_factory=SupplierContact)
    package_url: str = ""
    package_home_page: str = ""
    package_download_location: str = ""
    checksum: Optional[CheckSum] = None
    license_declared: str = ""
    license_concluded: str = ""
    comments_license: str = ""
    copyright: str = ""
    package_comment: str = ""
    modules: Dict[str, "Module"] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        """JSON-friendly view; children are listed by name and version."""
        return {
            "name": self.name,
            "version": self.version,
            "root": self.root,
            "path": self.path,
            "supplier": {
                "type": self.supplier.type.value if self.supplier.type else None,
                "name": self.supplier.name,
                "email": self.supplier.email,
            },
            "packageURL": self.package_url,
            "packageHomePage": self.package_home_page,
            "packageDownloadLocation": self.package_download_location,
            "checksum": {
                "algorithm": self.checksum.algorithm.value,
                "value": self.checksum.value,
            } if self.checksum else None,
            "licenseDeclared": self.license_declared,
            "licenseConcluded": self.license_concluded,
            "copyright": self.copyright,
            "comment": self.package_comment,
            "dependsOn": [
                {"name": child.name, "version": child.version}
                for child in self.modules.values()
            ],
        }


def walk(module: Module, depth: int = 0) -> List[tuple]:
    """Return ``(module, depth)`` pairs for every node reachable from ``module``.

    Nodes are visited depth-first; a node reached along several paths is
    reported once per path.
    """
    out = [(module, depth)]
    for child in module.modules.values():
        out.extend(walk(child, depth + 1))
    return out
