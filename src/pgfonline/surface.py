"""
Surfaces: how a pgfpicture is placed in a document and compiled.

A Surface names the TeX dialect, the command used to run it, and the
boilerplate wrapped around the picture (preamble, page size, begin/end
document). Surfaces are also what an online session uses to start its
engine, so they must be hashable and never change after construction.

Surfaces for LaTeX, ConTeXt and plain TeX are provided. Use the ``with_*``
methods to derive adjusted copies.
"""

from dataclasses import dataclass, replace
from enum import Enum
from typing import Iterable, Tuple

from .exceptions import InvalidFormatError


class TexFormat(Enum):
    """TeX dialect; selects which PGF commands are emitted."""

    LATEX = "LaTeX"
    CONTEXT = "ConTeXt"
    PLAINTEX = "PlainTeX"

    def __str__(self) -> str:
        return self.value


_FORMAT_PREFIXES = {
    "l": TexFormat.LATEX,
    "c": TexFormat.CONTEXT,
    "p": TexFormat.PLAINTEX,
    "t": TexFormat.PLAINTEX,
}


def parse_format(value: str) -> TexFormat:
    """Resolve a format name by its first letter.

    l -> LaTeX, c -> ConTeXt, p or t -> plain TeX.

    Raises:
        InvalidFormatError: For anything else, including the empty string
    """
    if not value:
        raise InvalidFormatError(value)
    fmt = _FORMAT_PREFIXES.get(value[0])
    if fmt is None:
        raise InvalidFormatError(value)
    return fmt


@dataclass(frozen=True)
class Surface:
    """Everything needed to turn PGF code into a document for one dialect."""

    tex_format: TexFormat
    # System command to call for rendering PDFs and online sessions.
    command: str
    arguments: Tuple[str, ...] = ()
    # Page size with ${w} and ${h} interpolated as integer bp values.
    page_size_template: str = ""
    # Should at least load pgfcore.
    preamble: str = ""
    begin_doc: str = ""
    end_doc: str = ""

    def __post_init__(self):
        # Lists would make the surface unhashable.
        if not isinstance(self.arguments, tuple):
            object.__setattr__(self, "arguments", tuple(self.arguments))

    @property
    def argv(self) -> list:
        return [self.command, *self.arguments]

    def with_command(self, command: str) -> "Surface":
        return replace(self, command=command)

    def with_arguments(self, arguments: Iterable[str]) -> "Surface":
        return replace(self, arguments=tuple(arguments))

    def with_page_size_template(self, template: str) -> "Surface":
        return replace(self, page_size_template=template)

    def with_preamble(self, preamble: str) -> "Surface":
        return replace(self, preamble=preamble)

    def with_begin_doc(self, begin_doc: str) -> "Surface":
        return replace(self, begin_doc=begin_doc)

    def with_end_doc(self, end_doc: str) -> "Surface":
        return replace(self, end_doc=end_doc)


def run_page_size_template(width: int, height: int, template: str) -> str:
    """Interpolate ${w} and ${h} in a page size template.

    Only the exact tokens ``${w}`` and ``${h}`` are replaced; any other text,
    including other ``${...}`` forms, is copied through unchanged.
    """
    out = []
    i = 0
    n = len(template)
    while i < n:
        if template.startswith("${w}", i):
            out.append(str(int(width)))
            i += 4
        elif template.startswith("${h}", i):
            out.append(str(int(height)))
            i += 4
        else:
            out.append(template[i])
            i += 1
    return "".join(out)


# Predefined surfaces -------------------------------------------------

LATEX_SURFACE = Surface(
    tex_format=TexFormat.LATEX,
    command="pdflatex",
    arguments=(),
    page_size_template=(
        "\\ifLuaTeX\n"
        "  \\edef\\pdfhorigin{\\pdfvariable horigin}\n"
        "  \\edef\\pdfvorigin{\\pdfvariable vorigin}\n"
        "\\fi\n"
        "\\usepackage[paperwidth=${w}bp,paperheight=${h}bp,margin=0bp]{geometry}\n"
        "\\pdfhorigin=57.0bp\n"
        "\\pdfvorigin=72.0bp\n"
    ),
    preamble=(
        "\\documentclass{article}\n"
        "\\usepackage{pgfcore}\n"
        "\\usepackage{iftex}\n"
        "\\pagenumbering{gobble}"
    ),
    begin_doc="\\begin{document}",
    end_doc="\\end{document}",
)

CONTEXT_SURFACE = Surface(
    tex_format=TexFormat.CONTEXT,
    command="context",
    arguments=("--pipe", "--once"),
    page_size_template=(
        "\\definepapersize[diagram][width=${w}bp,height=${h}bp]\n"
        "\\setuppapersize[diagram][diagram]\n"
        "\\setuplayout\n"
        "  [ topspace=0bp\n"
        "  , backspace=0bp\n"
        "  , header=0bp\n"
        "  , footer=0bp\n"
        "  , width=${w}bp\n"
        "  , height=${h}bp\n"
        "  ]\n"
    ),
    # pgfcore doesn't work under ConTeXt
    preamble="\\usemodule[pgf]\n\\setuppagenumbering[location=]",
    begin_doc="\\starttext",
    end_doc="\\stoptext",
)

PLAINTEX_SURFACE = Surface(
    tex_format=TexFormat.PLAINTEX,
    command="pdftex",
    arguments=(),
    page_size_template=(
        "\\pdfpagewidth=${w}bp\n"
        "\\pdfpageheight=${h}bp\n"
        "\\pdfhorigin=-20bp\n"
        "\\pdfvorigin=0bp\n"
    ),
    preamble=(
        "\\input eplain\n"
        "\\beginpackages\n\\usepackage{color}\n\\endpackages\n"
        "\\input pgfcore\n"
        "\\def\\frac#1#2{{\\begingroup #1\\endgroup\\over #2}}"
        "\\nopagenumbers"
    ),
    begin_doc="",
    end_doc="\\bye",
)

_SURFACES = {
    TexFormat.LATEX: LATEX_SURFACE,
    TexFormat.CONTEXT: CONTEXT_SURFACE,
    TexFormat.PLAINTEX: PLAINTEX_SURFACE,
}


def surface_for_format(tex_format: TexFormat) -> Surface:
    """Get the predefined surface for a dialect."""
    return _SURFACES[tex_format]


def default_surface() -> Surface:
    """LaTeX is the default surface."""
    return LATEX_SURFACE


def sample_surface_output(surface: Surface) -> str:
    """Show how a surface lays out a standalone document."""
    return "\n".join([
        f"command: {surface.command} {' '.join(surface.arguments)}".rstrip(),
        "\n% preamble",
        surface.preamble,
        "\n% pageSizeTemplate",
        surface.page_size_template,
        "\n% beginDoc",
        surface.begin_doc,
        f"\n<{surface.tex_format} pgf code>",
        "\n% endDoc",
        surface.end_doc,
    ]) + "\n"
