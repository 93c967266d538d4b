"""
Типизированные записи тегов dswift.

Тег — это сумма вариантов include (file / folder / package) и
reference (file / folder) плюс диапазон тега в исходном тексте.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field, replace
from typing import ClassVar, Dict, List, Optional, Tuple, Union

from ..errors import MinimumToolsVersionNotMetError
from ..versions import SingleVersion

TAG_MINIMUM_VERSION = SingleVersion.parse("1.0.18")
FOLDER_MINIMUM_VERSION = SingleVersion.parse("2.0.0")


# --------------------------- Package requirements --------------------------- #

@dataclass(frozen=True)
class From:
    version: SingleVersion

    @property
    def display(self) -> str:
        return f"From: \"{self.version}\""

    @property
    def argument(self) -> str:
        return f"from: \"{self.version}\""


@dataclass(frozen=True)
class ClosedRange:
    lower: SingleVersion
    upper: SingleVersion

    @property
    def display(self) -> str:
        return f"Range: \"{self.lower}\"...\"{self.upper}\""

    @property
    def argument(self) -> str:
        return f"\"{self.lower}\"...\"{self.upper}\""


@dataclass(frozen=True)
class OpenRange:
    lower: SingleVersion
    upper: SingleVersion

    @property
    def display(self) -> str:
        return f"Range: \"{self.lower}\"..<\"{self.upper}\""

    @property
    def argument(self) -> str:
        return f"\"{self.lower}\"..<\"{self.upper}\""


@dataclass(frozen=True)
class Exact:
    version: SingleVersion

    @property
    def display(self) -> str:
        return f"Exact: \"{self.version}\""

    @property
    def argument(self) -> str:
        return f".exact(\"{self.version}\")"


@dataclass(frozen=True)
class Branch:
    name: str

    @property
    def display(self) -> str:
        return f"Branch: \"{self.name}\""

    @property
    def argument(self) -> str:
        return f".branch(\"{self.name}\")"


@dataclass(frozen=True)
class Revision:
    hash: str

    @property
    def display(self) -> str:
        return f"Revision: \"{self.hash}\""

    @property
    def argument(self) -> str:
        return f".revision(\"{self.hash}\")"


Requirement = Union[From, ClosedRange, OpenRange, Exact, Branch, Revision]


# --------------------------- Variants --------------------------- #

class _Versioned:
    """Общая проверка минимальной версии инструментов для тегов."""

    minimum_version: ClassVar[SingleVersion] = TAG_MINIMUM_VERSION
    kind_label: ClassVar[str] = ""
    tag_name: str

    def verify_tools_version(self, declared: SingleVersion, path: str, line: Optional[int] = None) -> None:
        if declared < self.minimum_version:
            raise MinimumToolsVersionNotMetError(
                path,
                str(self.minimum_version),
                str(declared),
                f"Tag {self.tag_name}[{self.kind_label}] requires a minimum version of '{self.minimum_version}'",
                line=line,
            )


@dataclass(frozen=True)
class IncludeFile(_Versioned):
    kind_label: ClassVar[str] = "file"

    tag_name: str
    path: str
    absolute_path: str
    include_only_once: bool = False
    only_once_explicit: bool = False
    quiet: bool = False


@dataclass
class FolderRule(_Versioned):
    """
    Правило папки (include или reference) с деревом дочерних правил.

    Инвариант: все children лежат строго внутри absolute_path,
    не пересекаются между собой и отсортированы по пути.
    """
    minimum_version: ClassVar[SingleVersion] = FOLDER_MINIMUM_VERSION
    kind_label: ClassVar[str] = "folder"

    tag_name: str
    path: str
    absolute_path: str
    include_extensions: Tuple[str, ...] = ()
    exclude_extensions: Tuple[str, ...] = ()
    filter: Optional[re.Pattern] = None
    propagate_attributes: bool = True
    children: List["FolderRule"] = field(default_factory=list)

    @property
    def extension_mapping(self) -> Dict[str, str]:
        return {}

    def absorb_attributes(self, other: "FolderRule") -> None:
        """Слияние атрибутов правила с тем же путём (для reference ничего не делает)."""
        pass


@dataclass
class IncludeFolder(FolderRule):
    mapping: Dict[str, str] = field(default_factory=dict)
    quiet: bool = False

    @property
    def extension_mapping(self) -> Dict[str, str]:
        return self.mapping

    def absorb_attributes(self, other: FolderRule) -> None:
        # существующие значения имеют приоритет
        for k, v in other.extension_mapping.items():
            self.mapping.setdefault(k, v)


@dataclass
class ReferenceFolder(FolderRule):
    pass


@dataclass(frozen=True)
class IncludePackage(_Versioned):
    minimum_version: ClassVar[SingleVersion] = FOLDER_MINIMUM_VERSION
    kind_label: ClassVar[str] = "package"

    tag_name: str
    url: str
    requirement: Requirement
    package_names: Tuple[str, ...]
    quiet: bool = False


@dataclass(frozen=True)
class ReferenceFile(_Versioned):
    minimum_version: ClassVar[SingleVersion] = FOLDER_MINIMUM_VERSION
    kind_label: ClassVar[str] = "file"

    tag_name: str
    path: str
    absolute_path: str


IncludeVariant = Union[IncludeFile, IncludeFolder, IncludePackage]
ReferenceVariant = Union[ReferenceFile, ReferenceFolder]
TagVariant = Union[IncludeVariant, ReferenceVariant]


def root_folder(children: Optional[List[FolderRule]] = None) -> IncludeFolder:
    """Корневое правило-контейнер для леса папок."""
    return IncludeFolder(
        tag_name="",
        path="",
        absolute_path="/",
        propagate_attributes=False,
        quiet=True,
        children=list(children or []),
    )


@dataclass(frozen=True)
class Tag:
    """
    Найденный тег: вариант и полуоткрытый диапазон [start, end) в исходном тексте.
    """
    variant: TagVariant
    start: int
    end: int
    line: int

    @property
    def is_include(self) -> bool:
        return isinstance(self.variant, (IncludeFile, IncludeFolder, IncludePackage))

    @property
    def is_reference(self) -> bool:
        return not self.is_include

    def text(self, source: str) -> str:
        return source[self.start:self.end]

    def shifted(self, delta: int) -> "Tag":
        if delta == 0:
            return self
        return replace(self, start=self.start + delta, end=self.end + delta)

    def verify_tools_version(self, declared: SingleVersion, path: str) -> None:
        self.variant.verify_tools_version(declared, path, self.line)


__all__ = [
    "From",
    "ClosedRange",
    "OpenRange",
    "Exact",
    "Branch",
    "Revision",
    "Requirement",
    "IncludeFile",
    "FolderRule",
    "IncludeFolder",
    "ReferenceFolder",
    "IncludePackage",
    "ReferenceFile",
    "IncludeVariant",
    "ReferenceVariant",
    "TagVariant",
    "Tag",
    "root_folder",
    "TAG_MINIMUM_VERSION",
    "FOLDER_MINIMUM_VERSION",
]
