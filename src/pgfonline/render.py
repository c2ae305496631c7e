"""
PGF code generation for scene trees.

Emits the basic-layer PGF commands understood by pgfcore under LaTeX,
ConTeXt and plain TeX. Only the picture and scope environments differ
between dialects; everything inside them is the same.
"""

import logging
from dataclasses import dataclass, field, replace
from typing import List, Optional, Tuple

from .scene import BoundingBox, Group, Node, Path, Style, Text
from .surface import Surface, TexFormat, default_surface, run_page_size_template

logger = logging.getLogger(__name__)

SizeSpec = Tuple[Optional[float], Optional[float]]

_ENVIRONMENTS = {
    TexFormat.LATEX: {
        "picture": ("\\begin{pgfpicture}", "\\end{pgfpicture}"),
        "scope": ("\\begin{pgfscope}", "\\end{pgfscope}"),
    },
    TexFormat.CONTEXT: {
        "picture": ("\\startpgfpicture", "\\stoppgfpicture"),
        "scope": ("\\startpgfscope", "\\stoppgfscope"),
    },
    TexFormat.PLAINTEX: {
        "picture": ("\\pgfpicture", "\\endpgfpicture"),
        "scope": ("\\pgfscope", "\\endpgfscope"),
    },
}


@dataclass(frozen=True)
class RenderOptions:
    """Options for one render."""

    surface: Surface = field(default_factory=default_surface)
    # Output (width, height) in bp; None in either slot means "keep ratio".
    size: Optional[SizeSpec] = None
    # One command per line, indented by scope depth.
    readable: bool = True
    # Wrap the picture in the surface's document boilerplate.
    standalone: bool = False

    def with_surface(self, surface: Surface) -> "RenderOptions":
        return replace(self, surface=surface)

    def with_size(self, size: Optional[SizeSpec]) -> "RenderOptions":
        return replace(self, size=size)

    def with_readable(self, readable: bool) -> "RenderOptions":
        return replace(self, readable=readable)

    def with_standalone(self, standalone: bool) -> "RenderOptions":
        return replace(self, standalone=standalone)


def fmt_num(value: float) -> str:
    """Shortest fixed-point form TeX accepts as a dimension factor."""
    text = f"{value:.4f}".rstrip("0").rstrip(".")
    if text in ("-0", ""):
        return "0"
    return text


def point(x: float, y: float) -> str:
    return f"\\pgfqpoint{{{fmt_num(x)}bp}}{{{fmt_num(y)}bp}}"


def scale_factor(box: Optional[BoundingBox], size: Optional[SizeSpec]) -> float:
    """Uniform scale that fits box into size."""
    if box is None or size is None:
        return 1.0
    width, height = size
    factors = []
    if width is not None and box.width > 0:
        factors.append(width / box.width)
    if height is not None and box.height > 0:
        factors.append(height / box.height)
    return min(factors) if factors else 1.0


def output_size(scene: Node, size: Optional[SizeSpec] = None) -> Tuple[float, float]:
    """Width and height of the rendered picture in bp."""
    box = scene.envelope()
    if box is None:
        return (0.0, 0.0)
    s = scale_factor(box, size)
    return (box.width * s, box.height * s)


class _Emitter:
    def __init__(self, tex_format: TexFormat):
        self.envs = _ENVIRONMENTS[tex_format]
        self.commands: List[Tuple[int, str]] = []
        self.depth = 0

    def emit(self, command: str) -> None:
        self.commands.append((self.depth, command))

    def begin(self, env: str) -> None:
        self.emit(self.envs[env][0])
        self.depth += 1

    def end(self, env: str) -> None:
        self.depth -= 1
        self.emit(self.envs[env][1])

    def render(self, readable: bool) -> str:
        if readable:
            return "\n".join("  " * depth + cmd for depth, cmd in self.commands) + "\n"
        return "".join(cmd for _, cmd in self.commands) + "\n"


def _style_commands(style: Style) -> List[str]:
    commands = []
    if style.line_width is not None:
        commands.append(f"\\pgfsetlinewidth{{{fmt_num(style.line_width)}bp}}")
    if style.stroke is not None:
        commands.append(f"\\pgfsetstrokecolor{{{style.stroke}}}")
    if style.fill is not None:
        commands.append(f"\\pgfsetfillcolor{{{style.fill}}}")
    return commands


def _emit_path(out: _Emitter, path: Path, inherited: Style) -> None:
    """Fill and stroke follow the path style merged with its enclosing groups."""
    if not path.points:
        return
    style_cmds = _style_commands(path.style)
    if style_cmds:
        out.begin("scope")
        for cmd in style_cmds:
            out.emit(cmd)
    first, *rest = path.points
    out.emit(f"\\pgfpathmoveto{{{point(*first)}}}")
    for p in rest:
        out.emit(f"\\pgfpathlineto{{{point(*p)}}}")
    if path.closed:
        out.emit("\\pgfpathclose")
    effective = path.style.merged(inherited)
    usage = []
    if effective.fill is not None:
        usage.append("fill")
    if effective.stroke is not None or effective.fill is None:
        usage.append("stroke")
    out.emit(f"\\pgfusepath{{{','.join(usage)}}}")
    if style_cmds:
        out.end("scope")


def _emit_text(out: _Emitter, text: Text) -> None:
    out.emit(f"\\pgftext[left,base,at={{{point(text.x, text.y)}}}]{{{text.content}}}")


def _emit_node(out: _Emitter, node: Node, inherited: Style = Style()) -> None:
    if isinstance(node, Path):
        _emit_path(out, node, inherited)
    elif isinstance(node, Text):
        _emit_text(out, node)
    elif isinstance(node, Group):
        _emit_group(out, node, inherited)
    else:
        raise TypeError(f"Cannot render {type(node).__name__}")


def _emit_group(out: _Emitter, group: Group, inherited: Style) -> None:
    dx, dy = group.offset
    style_cmds = _style_commands(group.style)
    scoped = bool(style_cmds) or dx != 0 or dy != 0
    if scoped:
        out.begin("scope")
        if dx != 0 or dy != 0:
            out.emit(f"\\pgftransformshift{{{point(dx, dy)}}}")
        for cmd in style_cmds:
            out.emit(cmd)
    style = group.style.merged(inherited)
    for child in group.children:
        _emit_node(out, child, style)
    if scoped:
        out.end("scope")


def render_picture(scene: Node, options: RenderOptions) -> str:
    """The picture environment for scene, without document boilerplate."""
    out = _Emitter(options.surface.tex_format)
    box = scene.envelope()
    s = scale_factor(box, options.size)

    out.begin("picture")
    if box is not None:
        out.emit(
            f"\\pgfpathrectangle{{\\pgfpointorigin}}{{{point(box.width * s, box.height * s)}}}"
        )
        out.emit("\\pgfusepath{use as bounding box}")
    if s != 1.0:
        out.emit(f"\\pgflowlevel{{\\pgftransformscale{{{fmt_num(s)}}}}}")
    if box is not None and (box.x0 != 0 or box.y0 != 0):
        out.emit(f"\\pgftransformshift{{{point(-box.x0, -box.y0)}}}")
    _emit_node(out, scene)
    out.end("picture")
    return out.render(options.readable)


def render_document(scene: Node, options: RenderOptions) -> str:
    """PGF code for scene, wrapped in a document when options.standalone."""
    picture = render_picture(scene, options)
    if not options.standalone:
        return picture

    surface = options.surface
    width, height = output_size(scene, options.size)
    # A zero sized page is rejected by every engine.
    page_size = run_page_size_template(
        max(round(width), 1), max(round(height), 1), surface.page_size_template
    )
    parts = [surface.preamble, page_size, surface.begin_doc, picture, surface.end_doc]
    return "\n".join(part for part in parts if part) + "\n"
