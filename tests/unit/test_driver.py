"""
Tests for the document driver.
"""

import sys
from unittest.mock import patch

import pytest

from fixtures import MOCK_TEX, ScriptedChannel, scripted_factory
from pgfonline.driver import (
    default_options,
    render_online_pgf,
    render_online_pgf_with_options,
    render_pgf,
    render_pgf_with_options,
    write_tex_file,
)
from pgfonline.exceptions import EngineReportedError, NoOutputError
from pgfonline.render import RenderOptions
from pgfonline.runner import TexRun
from pgfonline.scene import center_xy, frame, rect
from pgfonline.session import OnlineSession
from pgfonline.surface import LATEX_SURFACE, PLAINTEX_SURFACE


def scene():
    return frame(rect(30, 10), 5)


def scripted_sessions(channel=None):
    channel = channel or ScriptedChannel()

    def factory(surface, **options):
        return OnlineSession.open(surface, channel_factory=scripted_factory(channel), **options)
    return factory


class TestDefaultOptions:
    """PDF targets are compact standalone documents."""

    def test_pdf(self):
        options = default_options("out.PDF", LATEX_SURFACE, (100, None))
        assert options.standalone and not options.readable
        assert options.size == (100, None)

    def test_tex(self):
        options = default_options("out.tex", LATEX_SURFACE)
        assert not options.standalone and options.readable


class TestRenderPgf:
    """Offline rendering."""

    def test_tex_file(self, tmp_path):
        out = tmp_path / "diagram.tex"
        render_pgf(out, scene(), LATEX_SURFACE)

        text = out.read_text()
        assert text.startswith("\\begin{pgfpicture}")
        assert "\\documentclass" not in text

    def test_write_tex_file_ignores_extension(self, tmp_path):
        out = tmp_path / "diagram.pdf"
        write_tex_file(out, RenderOptions(standalone=True), scene())
        assert out.read_text().startswith("\\documentclass")

    def test_pdf_via_one_shot_run(self, tmp_path, scenario):
        surface = PLAINTEX_SURFACE.with_command(sys.executable).with_arguments([str(MOCK_TEX)])
        out = tmp_path / "diagram.pdf"

        render_pgf(out, scene(), surface)

        pdf = out.read_bytes()
        assert pdf.startswith(b"%PDF")
        # standalone, compact source went through the engine
        assert b"\\pdfpagewidth=40bp" in pdf
        assert b"\\pgfpicture\\pgfpathrectangle" in pdf

    def test_no_pdf_raises_with_log(self, tmp_path):
        with patch("pgfonline.driver.run_tex", return_value=TexRun(1, "! Emergency stop.", None)):
            with pytest.raises(NoOutputError) as exc:
                render_pgf(tmp_path / "x.pdf", scene(), LATEX_SURFACE)
        assert exc.value.log == "! Emergency stop."
        assert not (tmp_path / "x.pdf").exists()

    def test_search_dirs_include_target(self, tmp_path, monkeypatch):
        monkeypatch.chdir(tmp_path)
        sub = tmp_path / "figures"
        sub.mkdir()
        with patch("pgfonline.driver.run_tex", return_value=TexRun(0, "", b"%PDF")) as mock_run:
            render_pgf_with_options("figures/x.pdf", RenderOptions(), scene())

        search_dirs = mock_run.call_args[0][2]
        assert search_dirs == [str(tmp_path), str(sub.resolve())]
        source = mock_run.call_args[0][3]
        assert source.startswith("\\documentclass")


class TestRenderOnlinePgf:
    """Online rendering measures first, then renders."""

    def test_tex_output_uses_measured_sizes(self, tmp_path):
        out = tmp_path / "label.tex"

        def program(online):
            return frame(center_xy(online.hbox("Hello")), 1)

        outcome = render_online_pgf(
            out, program, LATEX_SURFACE, session_factory=scripted_sessions()
        )

        text = out.read_text()
        assert "]{Hello}" in text
        assert outcome.queries == 1
        # 25pt + 2bp margin wide
        assert "\\pgfqpoint{26.9066bp}" in text

    def test_pdf_output(self, tmp_path):
        out = tmp_path / "label.pdf"
        with patch("pgfonline.driver.run_tex", return_value=TexRun(0, "", b"%PDF-mock")) as mock_run:
            render_online_pgf_with_options(
                out,
                RenderOptions(surface=LATEX_SURFACE),
                lambda online: online.hbox("A"),
                session_factory=scripted_sessions(),
            )

        assert out.read_bytes() == b"%PDF-mock"
        source = mock_run.call_args[0][3]
        assert source.count("\\begin{document}") == 1

    def test_measurement_failure_writes_nothing(self, tmp_path):
        out = tmp_path / "label.tex"
        channel = ScriptedChannel(lambda line: ["PGF-READY"] if "READY" in line
                                  else ["! Undefined control sequence."] if "hbox" in line else [])
        with pytest.raises(EngineReportedError):
            render_online_pgf(out, lambda online: online.hbox("\\oops"), LATEX_SURFACE,
                              session_factory=scripted_sessions(channel))
        assert not out.exists()
