"""
End-to-end tests: builder programs against the mock engine process.

Every test spawns tests/mock_tex.py as a real subprocess, so the channel,
session, builder thread and driver are all exercised together.
"""

import threading

import pytest

from pgfonline.builder import run_online, surf_online_tex
from pgfonline.demo import MAX_SUM, sums_diagram
from pgfonline.driver import render_online_pgf
from pgfonline.exceptions import (
    EngineReportedError,
    NoMeasurementError,
    ProcessExitedError,
    TexTimeoutError,
)
from pgfonline.session import OnlineSession


pytestmark = pytest.mark.e2e


class TestSumsDiagram:
    """The demo diagram rendered through the mock engine."""

    def test_tex_output(self, tmp_path, mock_surface, scenario):
        out = tmp_path / "sums.tex"
        outcome = render_online_pgf(out, sums_diagram, mock_surface)

        assert outcome.queries == MAX_SUM + 1
        assert outcome.exit_code == 0
        text = out.read_text()
        assert text.startswith("\\pgfpicture")
        assert text.count("\\pgftext") == MAX_SUM + 1
        assert "\\sum_{i=1}^{6} i" in text
        assert text.rstrip().endswith("\\endpgfpicture")

    def test_pdf_output(self, tmp_path, mock_surface, scenario):
        out = tmp_path / "sums.pdf"
        render_online_pgf(out, sums_diagram, mock_surface, size=(200, None))

        data = out.read_bytes()
        assert data.startswith(b"%PDF")
        # mock PDF embeds the compiled source
        assert b"\\pdfpagewidth=200bp" in data
        assert b"\\bye" in data

    def test_noisy_engine(self, tmp_path, mock_surface, scenario):
        """Warnings and prompt characters do not disturb the answers."""
        quiet = tmp_path / "quiet.tex"
        noisy = tmp_path / "noisy.tex"

        scenario("normal")
        render_online_pgf(quiet, sums_diagram, mock_surface)
        scenario("noise")
        render_online_pgf(noisy, sums_diagram, mock_surface)

        assert noisy.read_text() == quiet.read_text()


class TestEngineFailures:
    """Engine failures surface as errors and leave no process behind."""

    def test_undefined_macro(self, mock_surface, scenario):
        def program(online):
            online.hbox("fine")
            return online.hbox("\\undefined")

        with pytest.raises(EngineReportedError) as exc_info:
            run_online(mock_surface, program)
        assert "Undefined control sequence" in exc_info.value.log

    def test_crash(self, mock_surface, scenario):
        scenario("crash")
        with pytest.raises(ProcessExitedError):
            surf_online_tex(mock_surface, lambda online: online.hbox("X"))

    def test_silent_engine_times_out(self, mock_surface, scenario):
        scenario("silent")
        with pytest.raises(TexTimeoutError):
            surf_online_tex(mock_surface, lambda online: online.hbox("X"), timeout=0.5)

    def test_shipout_instead_of_answer(self, mock_surface, scenario):
        scenario("shipout")
        with pytest.raises(NoMeasurementError) as exc_info:
            surf_online_tex(mock_surface, lambda online: online.hbox("X"))
        assert "shipped out" in str(exc_info.value)

    def test_preamble_error(self, mock_surface, scenario):
        scenario("preamble_error")
        with pytest.raises(EngineReportedError) as exc_info:
            OnlineSession.open(mock_surface)
        assert "pgfcore.sty" in str(exc_info.value)

    def test_stubborn_engine_is_killed(self, mock_surface, scenario):
        scenario("stubborn")
        session = OnlineSession.open(mock_surface, grace_period=0.5)
        assert session.hbox("X").width > 0

        session.close()
        assert not session.channel.is_alive
        assert session.exit_code != 0

    def test_no_builder_thread_left(self, mock_surface, scenario):
        scenario("crash")
        with pytest.raises(ProcessExitedError):
            surf_online_tex(mock_surface, lambda online: online.hbox("X"))
        assert not any(t.name == "pgfonline-builder" for t in threading.enumerate())
