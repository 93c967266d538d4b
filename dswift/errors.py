"""
Base exceptions for user-facing errors.

All expected errors that should be displayed to the user
as clean messages (without stack traces) must inherit from DSwiftUserError.

Engine invariant violations (UnprocessedTagError) deliberately do NOT
inherit from DSwiftUserError: they signal a bug and propagate with a traceback.
A tag in a file without a dswift-tools-version header is a user error
(ToolsVersionRequiredError) and is reported before compilation.
"""

from __future__ import annotations

from typing import List, Optional, Sequence


class DSwiftUserError(Exception):
    """
    Base class for all user-facing errors in dswift.

    These errors indicate problems that the user can fix:
    malformed templates, invalid tag attributes, missing files, etc.
    """
    pass


class TemplateError(DSwiftUserError):
    """Error located in a template file."""

    def __init__(self, message: str, path: str, line: Optional[int] = None):
        super().__init__(message)
        self.path = path
        self.line = line


# --------------------------- Block structure --------------------------- #

class MissingOpeningBlockError(TemplateError):
    def __init__(self, path: str, closing: str, line: int):
        super().__init__(
            f"{path}: Missing opening block for '{closing}' finishing on line {line}",
            path, line,
        )
        self.closing = closing


class MissingClosingBlockError(TemplateError):
    def __init__(self, path: str, closing: str, opening: str, line: int):
        super().__init__(
            f"{path}: Missing closing '{closing}' for '{opening}' starting on line {line}",
            path, line,
        )
        self.closing = closing
        self.opening = opening


class UnknownBlockKindError(TemplateError):
    def __init__(self, path: str, opening: str, line: int):
        super().__init__(
            f"{path}: Unknown block type following '{opening}' on line {line}",
            path, line,
        )
        self.opening = opening


# --------------------------- Tags --------------------------- #

class InvalidTagError(TemplateError):
    def __init__(self, path: str, tag: str, line: int, reason: Optional[str] = None):
        msg = f"{path}: Invalid tag '{tag}' on line {line}"
        if reason:
            msg += f": {reason}"
        super().__init__(msg, path, line)
        self.tag = tag
        self.reason = reason


def _quoted(items: Sequence[str], sep: str) -> str:
    return sep.join(f"'{i}'" for i in items)


class InvalidTagAttributesError(TemplateError):
    def __init__(self, path: str, tag: str, attributes: Sequence[str], line: int):
        attributes = sorted(attributes)
        if len(attributes) > 1:
            what = f"Invalid Attributes {_quoted(attributes, ', ')}"
        else:
            what = f"Invalid Attribute '{attributes[0]}'"
        super().__init__(
            f"{path}: {what} in tag '{tag}' on line {line} "
            f"OR dswift may need to be updated to a newer version",
            path, line,
        )
        self.tag = tag
        self.attributes: List[str] = list(attributes)


class MissingTagAttributesError(TemplateError):
    def __init__(self, path: str, tag: str, attributes: Sequence[str], line: int):
        if len(attributes) > 1:
            what = f"Missing Attributes {_quoted(attributes, ' OR ')}"
        else:
            what = f"Missing Attribute '{attributes[0]}'"
        super().__init__(f"{path}: {what} in tag '{tag}' on line {line}", path, line)
        self.tag = tag
        self.attributes: List[str] = list(attributes)


class InvalidTagAttributeValueError(TemplateError):
    def __init__(
        self,
        path: str,
        tag: str,
        attribute: str,
        value: str,
        line: int,
        expecting: Optional[Sequence[str]] = None,
    ):
        msg = f"{path}: Attribute '{tag}/{attribute}' has an invalid value '{value}'"
        if expecting:
            msg += f". Expecting {_quoted(expecting, ' OR ')}"
        msg += f" on line {line}"
        super().__init__(msg, path, line)
        self.tag = tag
        self.attribute = attribute
        self.value = value
        self.expecting = list(expecting) if expecting else None


class InvalidTagAttributeRegExValueError(TemplateError):
    def __init__(self, path: str, tag: str, attribute: str, value: str, line: int, error: Exception):
        super().__init__(
            f"{path}: Attribute '{tag}/{attribute}' has an invalid regular expression "
            f"value '{value}' on line {line}: {error}",
            path, line,
        )
        self.tag = tag
        self.attribute = attribute
        self.value = value


class InvalidVersionError(TemplateError):
    def __init__(self, path: str, tag: str, attribute: str, version: str, line: int):
        super().__init__(
            f"{path}: Invalid Version '{version}' in attribute '{attribute}' on tag '{tag}' on line {line}",
            path, line,
        )
        self.version = version


class InvalidVersionRangeError(TemplateError):
    def __init__(self, path: str, tag: str, attribute: str, value: str, line: int):
        super().__init__(
            f"{path}: Invalid Version Range '{value}' in attribute '{attribute}' on tag '{tag}' on line {line}",
            path, line,
        )
        self.value = value


class IncludedResourceNotFoundError(TemplateError):
    def __init__(self, path: str, include: str, full_path: str, line: int):
        super().__init__(
            f"{path}: Include resource '{include}' / '{full_path}' on line {line} not found",
            path, line,
        )
        self.include = include
        self.full_path = full_path


class IncludeCycleError(TemplateError):
    def __init__(self, path: str, include: str, line: int):
        super().__init__(f"{path}: Include of '{include}' on line {line} forms a cycle", path, line)
        self.include = include


# --------------------------- Tool versions --------------------------- #

class InvalidToolsVersionError(TemplateError):
    def __init__(self, path: str, version: str):
        super().__init__(f"{path}: Invalid dswift-tools-version '{version}'", path, 1)
        self.version = version


class MinimumToolsVersionNotMetError(TemplateError):
    def __init__(
        self,
        path: str,
        expected: str,
        found: str,
        description: Optional[str] = None,
        line: Optional[int] = None,
    ):
        msg = f"{path}: Minimum dswift-tools-version '{expected}' not met.  Current version is '{found}'"
        if line is not None:
            msg += f" (tag on line {line})"
        if description:
            msg += f". {description}"
        super().__init__(msg, path, line)
        self.expected = expected
        self.found = found


class ToolsVersionRequiredError(TemplateError):
    """Tags are only expanded in files that declare a dswift-tools-version."""

    def __init__(self, path: str, tag: str, line: int):
        super().__init__(
            f"{path}: Tag '{tag}' on line {line} requires a dswift-tools-version header "
            f"on the first line of the file",
            path, line,
        )
        self.tag = tag


# --------------------------- Engine invariants --------------------------- #

class UnprocessedTagError(RuntimeError):
    """A tag block reached the compiler stage without being expanded."""

    def __init__(self, path: str, tag: str, line: int):
        super().__init__(f"{path}: Found unprocessed tag '{tag}' on line {line}")
        self.path = path
        self.tag = tag
        self.line = line


# --------------------------- Generation --------------------------- #

class GenerationError(DSwiftUserError):
    """Failure while building or running the generator program."""
    pass


class MissingSourceError(GenerationError):
    def __init__(self, path: str):
        super().__init__(f"Missing source file '{path}'")
        self.path = path


class SwiftNotFoundError(GenerationError):
    def __init__(self, swift: str):
        super().__init__(f"Swift was not found at location '{swift}'")
        self.swift = swift


class BuildModuleFailedError(GenerationError):
    def __init__(self, path: str, code: int, output: Optional[str] = None):
        msg = f"Building '{path}' failed with a return code {code}"
        if output:
            msg += f": {output}"
        super().__init__(msg)
        self.path = path
        self.code = code


class RunModuleFailedError(GenerationError):
    def __init__(self, path: str, code: int, output: Optional[str] = None):
        msg = f"Running module '{path}' failed with a return code {code}"
        if output:
            msg += f": {output}"
        super().__init__(msg)
        self.path = path
        self.code = code


class CopyFilesError(GenerationError):
    def __init__(self, source: str, destination: str, error: Exception):
        super().__init__(f"Failed to copy file from '{source}' to '{destination}': {error}")
        self.source = source
        self.destination = destination


class FolderReadError(GenerationError):
    def __init__(self, path: str, error: Exception):
        super().__init__(f"Failed to get the content of the directory '{path}': {error}")
        self.path = path


class StaticSourceError(GenerationError):
    """Invalid .dswift-static descriptor or unreadable embedded file."""

    def __init__(self, path: str, reason: str):
        super().__init__(f"Unable to compile dswift static file '{path}': {reason}")
        self.path = path
        self.reason = reason


class NoSupportedGeneratorError(GenerationError):
    def __init__(self, path: str, extension: str):
        super().__init__(f"No supported generator found for extension '{extension}' ('{path}')")
        self.path = path
        self.extension = extension


class ProjectConfigError(DSwiftUserError):
    """Invalid dswift.yaml project configuration."""
    pass


__all__ = [
    "DSwiftUserError",
    "TemplateError",
    "MissingOpeningBlockError",
    "MissingClosingBlockError",
    "UnknownBlockKindError",
    "InvalidTagError",
    "InvalidTagAttributesError",
    "MissingTagAttributesError",
    "InvalidTagAttributeValueError",
    "InvalidTagAttributeRegExValueError",
    "InvalidVersionError",
    "InvalidVersionRangeError",
    "IncludedResourceNotFoundError",
    "IncludeCycleError",
    "InvalidToolsVersionError",
    "MinimumToolsVersionNotMetError",
    "ToolsVersionRequiredError",
    "UnprocessedTagError",
    "GenerationError",
    "MissingSourceError",
    "SwiftNotFoundError",
    "BuildModuleFailedError",
    "RunModuleFailedError",
    "CopyFilesError",
    "FolderReadError",
    "StaticSourceError",
    "NoSupportedGeneratorError",
    "ProjectConfigError",
]
