"""
Package.swift for the temporary generator module.
"""

from __future__ import annotations

from typing import List, Sequence

from ..tags.model import IncludePackage

MANIFEST_FILE_NAME = "Package.swift"
MANIFEST_ENCODING = "utf-8"
SWIFT_TOOLS_VERSION = "5.0"


def package_dependency(package: IncludePackage) -> str:
    return f".package(url: \"{package.url}\", {package.requirement.argument})"


def render_manifest(module_name: str, packages: Sequence[IncludePackage]) -> str:
    """
    Renders the manifest of an executable module named module_name
    that depends on every declared package product.
    """
    dependencies = ",\n".join(f"        {package_dependency(p)}" for p in packages)
    products: List[str] = []
    for package in packages:
        products.extend(n for n in package.package_names if n not in products)
    target_deps = ", ".join(f"\"{n}\"" for n in products)

    lines = [
        f"// swift-tools-version:{SWIFT_TOOLS_VERSION}",
        "// The swift-tools-version declares the minimum version of Swift required to build this package.",
        "",
        "import PackageDescription",
        "",
        "let package = Package(",
        f"    name: \"{module_name}\",",
        "    dependencies: [",
    ]
    if dependencies:
        lines.append(dependencies)
    lines += [
        "    ],",
        "    targets: [",
        "        .target(",
        f"            name: \"{module_name}\",",
        f"            dependencies: [{target_deps}])",
        "    ]",
        ")",
        "",
    ]
    return "\n".join(lines)


__all__ = ["MANIFEST_FILE_NAME", "MANIFEST_ENCODING", "SWIFT_TOOLS_VERSION", "package_dependency", "render_manifest"]
