"""Template variables and manifest rendering."""

from bindplane_aca.render.renderer import (
    BUNDLED_TEMPLATES_DIR,
    RenderedManifest,
    RenderResult,
    Template,
    ensure_output_dir,
    parse_template,
    render,
    render_manifest,
    render_template,
)
from bindplane_aca.render.variables import (
    ALL_VARIABLES,
    VariableSet,
    build_variable_set,
    decode_secret,
    encode_secret,
)

__all__ = [
    "ALL_VARIABLES",
    "BUNDLED_TEMPLATES_DIR",
    "RenderResult",
    "RenderedManifest",
    "Template",
    "VariableSet",
    "build_variable_set",
    "decode_secret",
    "encode_secret",
    "ensure_output_dir",
    "parse_template",
    "render",
    "render_manifest",
    "render_template",
]
