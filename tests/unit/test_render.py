"""
Unit tests for PGF code generation.
"""

import pytest

from pgfonline.render import (
    RenderOptions,
    fmt_num,
    output_size,
    render_document,
    render_picture,
    scale_factor,
)
from pgfonline.scene import BoundingBox, Group, Path, Style, Text, group, line, rect
from pgfonline.surface import CONTEXT_SURFACE, LATEX_SURFACE, PLAINTEX_SURFACE


def box_scene():
    """A 100x50 rectangle with its lower-left corner at the origin."""
    return rect(100, 50).translate(50, 25)


class TestNumbers:
    """Tests for number formatting and scaling."""

    @pytest.mark.parametrize("value,expected", [
        (1.0, "1"),
        (0.5, "0.5"),
        (-2.25, "-2.25"),
        (1 / 3, "0.3333"),
        (-0.00001, "0"),
        (0, "0"),
    ])
    def test_fmt_num(self, value, expected):
        assert fmt_num(value) == expected

    def test_scale_to_width(self):
        assert scale_factor(BoundingBox(0, 0, 100, 50), (200, None)) == 2.0

    def test_scale_fits_both(self):
        assert scale_factor(BoundingBox(0, 0, 100, 50), (200, 50)) == 1.0

    def test_no_size_no_scale(self):
        assert scale_factor(BoundingBox(0, 0, 100, 50), None) == 1.0
        assert scale_factor(None, (10, 10)) == 1.0
        assert scale_factor(BoundingBox(0, 0, 100, 50), (None, None)) == 1.0

    def test_output_size(self):
        assert output_size(box_scene(), (None, 25)) == (50.0, 25.0)
        assert output_size(Text("x")) == (0.0, 0.0)


class TestPicture:
    """Tests for render_picture."""

    def test_latex_environment(self):
        code = render_picture(box_scene(), RenderOptions(surface=LATEX_SURFACE))
        lines = code.splitlines()
        assert lines[0] == "\\begin{pgfpicture}"
        assert lines[-1] == "\\end{pgfpicture}"

    def test_context_environment(self):
        code = render_picture(box_scene(), RenderOptions(surface=CONTEXT_SURFACE))
        assert code.startswith("\\startpgfpicture")
        assert code.rstrip().endswith("\\stoppgfpicture")

    def test_plaintex_environment(self):
        code = render_picture(box_scene(), RenderOptions(surface=PLAINTEX_SURFACE))
        assert code.startswith("\\pgfpicture")
        assert code.rstrip().endswith("\\endpgfpicture")

    def test_bounding_box_and_path(self):
        code = render_picture(box_scene(), RenderOptions())
        assert "\\pgfpathrectangle{\\pgfpointorigin}{\\pgfqpoint{100bp}{50bp}}" in code
        assert "\\pgfusepath{use as bounding box}" in code
        assert "\\pgfpathmoveto{\\pgfqpoint{0bp}{0bp}}" in code
        assert "\\pgfpathlineto{\\pgfqpoint{100bp}{50bp}}" in code
        assert "\\pgfpathclose" in code
        assert "\\pgfusepath{stroke}" in code
        assert "pgftransformscale" not in code
        assert "pgftransformshift" not in code

    def test_size_spec_scales(self):
        code = render_picture(box_scene(), RenderOptions(size=(200, None)))
        assert "\\pgflowlevel{\\pgftransformscale{2}}" in code
        assert "{\\pgfqpoint{200bp}{100bp}}" in code

    def test_origin_shift(self):
        code = render_picture(rect(10, 10), RenderOptions())
        assert "\\pgftransformshift{\\pgfqpoint{5bp}{5bp}}" in code

    def test_text_node(self):
        text = Text("$\\sum_i i$", width=20, height=8, depth=3, x=1, y=2)
        code = render_picture(text, RenderOptions())
        assert "\\pgftext[left,base,at={\\pgfqpoint{1bp}{2bp}}]{$\\sum_i i$}" in code

    def test_styles_scoped(self):
        path = Path(points=((0, 0), (1, 1)), style=Style(stroke="red", fill="blue", line_width=0.4))
        code = render_picture(path, RenderOptions())
        assert "\\begin{pgfscope}" in code
        assert "\\pgfsetlinewidth{0.4bp}" in code
        assert "\\pgfsetstrokecolor{red}" in code
        assert "\\pgfsetfillcolor{blue}" in code
        assert "\\pgfusepath{fill,stroke}" in code

    def test_fill_only(self):
        path = Path(points=((0, 0), (1, 1)), closed=True, style=Style(fill="gray"))
        assert "\\pgfusepath{fill}" in render_picture(path, RenderOptions())

    def test_fill_inherited_from_group(self):
        scene = Group(children=(rect(4, 4),), style=Style(fill="blue"))
        code = render_picture(scene, RenderOptions())
        assert "\\pgfsetfillcolor{blue}" in code
        assert "\\pgfusepath{fill}" in code

    def test_styles_accumulate_through_nested_groups(self):
        inner = Group(children=(rect(4, 4),), style=Style(stroke="red"))
        scene = Group(children=(inner,), style=Style(fill="blue"))
        assert "\\pgfusepath{fill,stroke}" in render_picture(scene, RenderOptions())

    def test_group_offset_becomes_shift(self):
        scene = group([line((0, 0), (10, 10)), Group(children=(rect(2, 2),), offset=(20, 0))])
        code = render_picture(scene, RenderOptions())
        assert "\\pgftransformshift{\\pgfqpoint{20bp}{0bp}}" in code

    def test_readable_indents_by_depth(self):
        scene = Group(children=(line((0, 0), (1, 1)),), style=Style(stroke="red"))
        lines = render_picture(scene, RenderOptions(readable=True)).splitlines()
        assert lines[1].startswith("  \\pgfpathrectangle")
        assert any(l.startswith("    \\pgfpathmoveto") for l in lines)

    def test_compact_has_no_line_breaks(self):
        code = render_picture(box_scene(), RenderOptions(readable=False))
        assert code.count("\n") == 1
        assert code.startswith("\\begin{pgfpicture}\\pgfpathrectangle")

    def test_unknown_node_type(self):
        with pytest.raises(TypeError):
            render_picture(
                Group(children=("not a node",), bounds=BoundingBox(0, 0, 1, 1)),
                RenderOptions(),
            )


class TestDocument:
    """Standalone documents wrap the picture in surface boilerplate."""

    def test_not_standalone_is_just_picture(self):
        options = RenderOptions(standalone=False)
        assert render_document(box_scene(), options) == render_picture(box_scene(), options)

    def test_latex_standalone(self):
        doc = render_document(box_scene(), RenderOptions(standalone=True))

        assert doc.startswith("\\documentclass{article}")
        assert "paperwidth=100bp,paperheight=50bp" in doc
        assert doc.index("\\usepackage[paperwidth") < doc.index("\\begin{document}")
        assert doc.index("\\begin{document}") < doc.index("\\begin{pgfpicture}")
        assert doc.rstrip().endswith("\\end{document}")

    def test_page_size_uses_scaled_rounded_size(self):
        scene = rect(10.4, 20.6)
        doc = render_document(scene, RenderOptions(surface=PLAINTEX_SURFACE, standalone=True,
                                                   size=(None, 41.2)))
        assert "\\pdfpagewidth=21bp" in doc
        assert "\\pdfpageheight=41bp" in doc
        assert doc.rstrip().endswith("\\bye")

    def test_context_standalone(self):
        doc = render_document(box_scene(), RenderOptions(surface=CONTEXT_SURFACE, standalone=True))
        assert "\\definepapersize[diagram][width=100bp,height=50bp]" in doc
        assert doc.index("\\starttext") < doc.index("\\startpgfpicture")

    def test_empty_scene_gets_a_page(self):
        doc = render_document(Text("x"), RenderOptions(surface=PLAINTEX_SURFACE, standalone=True))
        assert "\\pdfpagewidth=1bp" in doc


class TestRenderOptions:
    """Copy-on-write setters."""

    def test_setters(self):
        options = (
            RenderOptions()
            .with_surface(CONTEXT_SURFACE)
            .with_size((10, None))
            .with_readable(False)
            .with_standalone(True)
        )
        assert options.surface is CONTEXT_SURFACE
        assert options.size == (10, None)
        assert not options.readable
        assert options.standalone
        assert RenderOptions().surface is LATEX_SURFACE
