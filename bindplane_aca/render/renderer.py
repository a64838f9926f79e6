"""Manifest template renderer: replaces ``{{.Name}}`` placeholders.

Templates use the Go ``text/template`` placeholder subset the manifests
need:

* ``{{.Name}}`` — substitute variable ``Name``
* ``{{- .Name -}}`` — same, trimming adjacent whitespace
* ``{{/* comment */}}`` — removed from the output

Any other directive is a :class:`TemplateSyntaxError`; a placeholder naming
a variable that is not in the VariableSet is a
:class:`TemplateExecutionError`.  Replacement is text-level, so YAML key
ordering and comments are preserved byte-for-byte across runs.
"""

from __future__ import annotations

import logging
import os
import re
import tempfile
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from pathlib import Path
from typing import Iterable, List, Mapping, Optional, Sequence, Tuple, Union

from bindplane_aca.errors import (
    RenderIOError,
    TemplateExecutionError,
    TemplateNotFoundError,
    TemplateSyntaxError,
)
from bindplane_aca.plan.manifests import get_manifest

logger = logging.getLogger(__name__)

#: Templates shipped inside the package.
BUNDLED_TEMPLATES_DIR: Path = Path(__file__).resolve().parent.parent / "templates"

_OPEN = "{{"
_CLOSE = "}}"
_FIELD_RE = re.compile(r"^\.([A-Za-z_][A-Za-z0-9_]*)$")
_COMMENT_RE = re.compile(r"^/\*.*\*/$", re.DOTALL)


# ── parsed template ──────────────────────────────────────────────────


@dataclass(frozen=True)
class _Placeholder:
    name: str
    line: int


Node = Union[str, _Placeholder]


@dataclass(frozen=True)
class Template:
    """A parsed template: literal text interleaved with placeholders."""

    name: str
    nodes: Tuple[Node, ...]

    @property
    def variables(self) -> List[str]:
        """Variable names referenced, in first-use order."""
        seen: List[str] = []
        for node in self.nodes:
            if isinstance(node, _Placeholder) and node.name not in seen:
                seen.append(node.name)
        return seen

    def execute(self, variables: Mapping[str, str]) -> str:
        """Substitute *variables*; raise on the first undefined name."""
        parts: List[str] = []
        for node in self.nodes:
            if isinstance(node, str):
                parts.append(node)
                continue
            if node.name not in variables:
                raise TemplateExecutionError(self.name, node.name, node.line)
            parts.append(str(variables[node.name]))
        return "".join(parts)


def parse_template(name: str, text: str) -> Template:
    """Parse *text* into a :class:`Template`.

    A stray ``}}`` outside an action is literal text, as in Go templates.
    """
    nodes: List[Node] = []
    pos = 0
    trim_next = False

    while True:
        start = text.find(_OPEN, pos)
        literal = text[pos:] if start == -1 else text[pos:start]
        if trim_next:
            literal = literal.lstrip()
        if start == -1:
            if literal:
                nodes.append(literal)
            break

        line = text.count("\n", 0, start) + 1
        end = text.find(_CLOSE, start + len(_OPEN))
        if end == -1:
            raise TemplateSyntaxError(name, line, "unclosed action")

        body = text[start + len(_OPEN):end]
        trim_before = len(body) >= 2 and body[0] == "-" and body[1].isspace()
        trim_after = len(body) >= 2 and body[-1] == "-" and body[-2].isspace()
        if trim_before:
            body = body[1:]
            literal = literal.rstrip()
        if trim_after:
            body = body[:-1]
        body = body.strip()

        if literal:
            nodes.append(literal)

        if not body:
            raise TemplateSyntaxError(name, line, "missing value for command")
        if _COMMENT_RE.match(body):
            pass
        else:
            match = _FIELD_RE.match(body)
            if match is None:
                raise TemplateSyntaxError(
                    name, line, f"unsupported directive {{{{{body}}}}}",
                )
            nodes.append(_Placeholder(match.group(1), line))

        trim_next = trim_after
        pos = end + len(_CLOSE)

    return Template(name=name, nodes=tuple(nodes))


def render_template(
    template_text: str,
    variables: Mapping[str, str],
    *,
    name: str = "template",
) -> str:
    """Parse and execute *template_text* against *variables*."""
    return parse_template(name, template_text).execute(variables)


# ── file rendering ───────────────────────────────────────────────────


@dataclass(frozen=True)
class RenderedManifest:
    """One rendered manifest file."""

    manifest: str
    template_path: Path
    output_path: Path


@dataclass
class RenderResult:
    """Outcome of :func:`render`, in plan order."""

    output_dir: Path
    rendered: List[RenderedManifest] = field(default_factory=list)

    @property
    def manifests(self) -> Tuple[str, ...]:
        return tuple(r.manifest for r in self.rendered)

    @property
    def output_paths(self) -> List[Path]:
        return [r.output_path for r in self.rendered]


def ensure_output_dir(output_dir: Union[str, Path]) -> Path:
    """Create *output_dir* (and parents) if absent.  Safe to call repeatedly."""
    path = Path(output_dir)
    try:
        path.mkdir(parents=True, exist_ok=True)
    except OSError as exc:
        raise RenderIOError(
            f"failed to create output directory {path}: {exc}",
            template="",
            path=path,
        ) from exc
    return path


def _current_umask() -> int:
    mask = os.umask(0)
    os.umask(mask)
    return mask


#: Mode for rendered manifests, as a plain `open()` would create them.
#: Read once at import; `os.umask` is process-wide and not thread-safe.
OUTPUT_FILE_MODE: int = 0o666 & ~_current_umask()


def _atomic_write(path: Path, content: str, manifest: str) -> None:
    """Write *content* to *path* via a temp file + rename in the same directory."""
    tmp_name: Optional[str] = None
    try:
        fd, tmp_name = tempfile.mkstemp(
            dir=str(path.parent), prefix=f".{path.name}.", suffix=".tmp",
        )
        with os.fdopen(fd, "w", encoding="utf-8", newline="") as fh:
            fh.write(content)
        os.chmod(tmp_name, OUTPUT_FILE_MODE)
        os.replace(tmp_name, path)
        tmp_name = None
    except OSError as exc:
        raise RenderIOError(
            f"failed to write output file {path}: {exc}",
            template=manifest,
            path=path,
        ) from exc
    finally:
        if tmp_name is not None and os.path.exists(tmp_name):
            os.unlink(tmp_name)


def render_manifest(
    manifest_id: str,
    variables: Mapping[str, str],
    templates_dir: Union[str, Path],
    output_dir: Union[str, Path],
) -> RenderedManifest:
    """Render one manifest template into *output_dir*.

    The output file is only created after the template executes
    successfully, so a failure never leaves a half-substituted document.

    Raises:
        TemplateNotFoundError: The template file does not exist.
        TemplateSyntaxError: The template has a malformed directive.
        TemplateExecutionError: The template references an undefined variable.
        RenderIOError: The template could not be read or the output written.
    """
    manifest = get_manifest(manifest_id)
    template_path = Path(templates_dir) / manifest.filename
    output_path = Path(output_dir) / manifest.filename

    logger.info("Processing template: %s -> %s", template_path, output_path)

    if not template_path.is_file():
        raise TemplateNotFoundError(manifest.filename, template_path)
    try:
        text = template_path.read_text(encoding="utf-8")
    except OSError as exc:
        raise RenderIOError(
            f"failed to read template file {template_path}: {exc}",
            template=manifest.filename,
            path=template_path,
        ) from exc

    rendered = parse_template(manifest.filename, text).execute(variables)
    _atomic_write(output_path, rendered, manifest.filename)

    logger.info("Generated: %s", output_path)
    return RenderedManifest(manifest_id, template_path, output_path)


def render(
    plan: Sequence[str],
    variables: Mapping[str, str],
    templates_dir: Union[str, Path, None] = None,
    output_dir: Union[str, Path] = "out",
    *,
    workers: int = 1,
) -> RenderResult:
    """Render every manifest in *plan*.

    With ``workers == 1`` manifests render in plan order and the first
    failure stops the sequence.  With ``workers > 1`` they render on a
    thread pool; each touches distinct files and *variables* is read-only,
    so no coordination beyond joining is needed.  The first failure in plan
    order is raised.  Files already written are never rolled back.
    """
    tdir = Path(templates_dir) if templates_dir is not None else BUNDLED_TEMPLATES_DIR
    odir = ensure_output_dir(output_dir)
    result = RenderResult(output_dir=odir)

    if workers <= 1 or len(plan) <= 1:
        for manifest_id in plan:
            result.rendered.append(render_manifest(manifest_id, variables, tdir, odir))
        return result

    with ThreadPoolExecutor(max_workers=workers) as pool:
        futures = [
            pool.submit(render_manifest, manifest_id, variables, tdir, odir)
            for manifest_id in plan
        ]
        for future in futures:
            result.rendered.append(future.result())
    return result


def template_paths(plan: Iterable[str], templates_dir: Union[str, Path, None] = None) -> List[Path]:
    """Return the template path each manifest in *plan* will be read from."""
    tdir = Path(templates_dir) if templates_dir is not None else BUNDLED_TEMPLATES_DIR
    return [tdir / get_manifest(m).filename for m in plan]
