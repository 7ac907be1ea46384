"""Tests for the command-line entry point."""

import matplotlib

matplotlib.use("Agg")

import pytest

from py_voronoi.cli import build_diagram, build_parser, main


class TestParser:
    """Test argument parsing."""

    def test_random_defaults(self):
        args = build_parser().parse_args(["random"])
        assert args.mode == "random"
        assert args.count == 100
        assert args.size == 600.0
        assert args.seed is None
        assert args.output is None

    def test_mode_required(self):
        with pytest.raises(SystemExit) as exc_info:
            build_parser().parse_args([])
        assert exc_info.value.code == 2

    @pytest.mark.parametrize("count", ["-3", "many"])
    def test_invalid_count(self, count):
        """Negative or non-numeric counts are usage errors."""
        with pytest.raises(SystemExit) as exc_info:
            main(["random", count])
        assert exc_info.value.code == 2


class TestBuildDiagram:
    """Test diagram construction per mode."""

    def test_blank(self):
        diagram = build_diagram(build_parser().parse_args(["blank", "--size", "50"]))
        assert diagram.size() == 50.0
        assert len(diagram.cells()) == 3

    def test_random(self):
        args = build_parser().parse_args(["random", "25", "--size", "100", "--seed", "4"])
        diagram = build_diagram(args)
        assert len(diagram.cells()) == 3 + diagram.stats.inserted
        assert diagram.stats.inserted + diagram.stats.degenerate == 25

    def test_file(self, tmp_path):
        path = tmp_path / "points.txt"
        path.write_text("100\n20 20\n80 20\n50 80\n500 500\n")
        diagram = build_diagram(build_parser().parse_args(["file", str(path)]))
        assert diagram.size() == 100.0
        assert len(diagram.real_cells()) == 3


class TestMain:
    """Test end-to-end runs."""

    def test_blank_validates(self):
        assert main(["--log-level", "WARNING", "blank", "--validate"]) == 0

    def test_random_validates(self):
        assert main(["random", "40", "--size", "100", "--seed", "2", "--validate"]) == 0

    def test_bad_file(self, tmp_path):
        """Unreadable and malformed files exit with status 1."""
        assert main(["file", str(tmp_path / "missing.txt")]) == 1

        path = tmp_path / "bad.txt"
        path.write_text("100\n1 2\nnot a point\n")
        assert main(["file", str(path)]) == 1

    def test_summary_logged(self, capsys):
        assert main(["--log-format", "json", "blank"]) == 0
        assert "Diagram ready" in capsys.readouterr().err

    def test_output_image(self, tmp_path):
        output = tmp_path / "diagram.png"
        assert main(["random", "20", "--size", "100", "--seed", "3", "-o", str(output)]) == 0
        assert output.stat().st_size > 0
