"""
Project context: root path, declared text encodings and dswift.yaml settings.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Optional

from ruamel.yaml import YAML

from .errors import ProjectConfigError

CONFIG_FILE_NAME = "dswift.yaml"

_yaml = YAML(typ="safe")

_KNOWN_KEYS = {"swift", "lock_generated_files", "keep_temp_modules", "temp_dir", "encodings"}


def _read_yaml_map(path: Path) -> dict:
    """Reads a YAML file and returns its mapping (empty when the file is absent)."""
    if not path.is_file():
        return {}
    raw = _yaml.load(path.read_text(encoding="utf-8")) or {}
    if not isinstance(raw, dict):
        raise ProjectConfigError(f"YAML must be a mapping: {path}")
    return raw


@dataclass(frozen=True)
class ProjectSettings:
    swift: str = "swift"
    lock_generated_files: bool = False
    keep_temp_modules: bool = False
    temp_dir: Optional[str] = None

    @staticmethod
    def from_dict(d: dict) -> "ProjectSettings":
        unknown = sorted(set(d) - _KNOWN_KEYS)
        if unknown:
            raise ProjectConfigError(f"Unknown keys in {CONFIG_FILE_NAME}: {', '.join(unknown)}")
        for key in ("lock_generated_files", "keep_temp_modules"):
            if key in d and not isinstance(d[key], bool):
                raise ProjectConfigError(f"{CONFIG_FILE_NAME}: '{key}' must be a boolean")
        swift = os.environ.get("DSWIFT_SWIFT") or str(d.get("swift") or "swift")
        temp_dir = d.get("temp_dir")
        return ProjectSettings(
            swift=swift,
            lock_generated_files=bool(d.get("lock_generated_files", False)),
            keep_temp_modules=bool(d.get("keep_temp_modules", False)),
            temp_dir=str(temp_dir) if temp_dir else None,
        )


@dataclass(frozen=True)
class SwiftProject:
    """
    Project that owns the templates.

    `encodings` maps absolute file paths to codec names declared by the project;
    files without an entry have their encoding detected on read.
    """
    root: Path
    encodings: Dict[str, str] = field(default_factory=dict)
    settings: ProjectSettings = field(default_factory=ProjectSettings)

    @property
    def root_path(self) -> str:
        return str(self.root)

    def encoding_for(self, path: str) -> Optional[str]:
        return self.encodings.get(os.path.normpath(os.path.abspath(path)))


def load_project(root: Path) -> SwiftProject:
    """
    Loads the project context from `<root>/dswift.yaml` (optional).
    """
    root = root.resolve()
    raw = _read_yaml_map(root / CONFIG_FILE_NAME)
    settings = ProjectSettings.from_dict(raw)

    enc_raw = raw.get("encodings") or {}
    if not isinstance(enc_raw, dict):
        raise ProjectConfigError(f"{CONFIG_FILE_NAME}: 'encodings' must be a mapping")
    encodings: Dict[str, str] = {}
    for rel, codec in enc_raw.items():
        full = os.path.normpath(os.path.join(str(root), str(rel)))
        encodings[full] = str(codec)

    return SwiftProject(root=root, encodings=encodings, settings=settings)


__all__ = ["SwiftProject", "ProjectSettings", "load_project", "CONFIG_FILE_NAME"]
