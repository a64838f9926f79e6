"""Exception hierarchy for manifest generation.

Every error raised by the pipeline derives from :class:`BindplaneACAError`
so the CLI can map the whole family to a single exit code while still
printing the manifest name and path that caused the failure.
"""

from __future__ import annotations

from pathlib import Path
from typing import Iterable, List, Optional, Union

PathLike = Union[str, Path]


class BindplaneACAError(Exception):
    """Base exception for generation failures."""


class ConfigValidationError(BindplaneACAError):
    """One or more required configuration values are missing.

    *missing* holds the canonical flag names (e.g. ``postgres-host``) of
    every absent field, sorted, so the operator can fix them in one pass.
    """

    def __init__(self, missing: Iterable[str]) -> None:
        self.missing: List[str] = sorted(missing)
        super().__init__(f"missing required flags: {', '.join(self.missing)}")


class RenderError(BindplaneACAError):
    """Base for per-manifest rendering failures."""

    def __init__(self, message: str, *, template: str, path: Optional[PathLike] = None) -> None:
        self.template = template
        self.path = str(path) if path is not None else ""
        super().__init__(message)


class TemplateNotFoundError(RenderError):
    """The template file for a manifest does not exist."""

    def __init__(self, template: str, path: PathLike) -> None:
        super().__init__(
            f"template {template} not found at {path}", template=template, path=path,
        )


class TemplateSyntaxError(RenderError):
    """A ``{{ ... }}`` directive in the template is malformed."""

    def __init__(self, template: str, line: int, reason: str) -> None:
        self.line = line
        super().__init__(
            f"failed to parse template {template}: line {line}: {reason}",
            template=template,
        )


class TemplateExecutionError(RenderError):
    """A placeholder references a variable the VariableSet does not define."""

    def __init__(self, template: str, variable: str, line: int) -> None:
        self.variable = variable
        self.line = line
        super().__init__(
            f"failed to execute template {template}: line {line}: "
            f"undefined variable .{variable}",
            template=template,
        )


class RenderIOError(RenderError):
    """The output directory or a rendered file could not be written."""


class ScriptWriteError(BindplaneACAError):
    """The deployment script could not be written.

    Manifests rendered before this point are left in place.
    """

    def __init__(self, path: PathLike, reason: str) -> None:
        self.path = str(path)
        super().__init__(f"failed to write deployment script {path}: {reason}")
