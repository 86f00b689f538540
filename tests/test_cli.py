"""Tests for the command-line front end and settings."""

import io
import json

import numpy as np
import pytest

from aariba.cli import main, repl, run_files
from aariba.config import Settings


class TestEval:
    def test_eval_expression(self, capsys):
        assert main(["eval", "1 - 2 + 6 / 2 ^ 3"]) == 0
        assert capsys.readouterr().out.strip() == "-0.25"

    def test_eval_with_globals(self, capsys):
        assert main(["eval", "2 * $x", "--set", "x=4"]) == 0
        assert capsys.readouterr().out.strip() == "8.0"

    def test_eval_parse_error(self, capsys):
        assert main(["eval", "2^-2"]) == 1
        assert "error:" in capsys.readouterr().err

    def test_eval_missing_variable(self, capsys):
        assert main(["eval", "$nope"]) == 1
        assert "nope" in capsys.readouterr().err

    def test_seeded_rand_is_reproducible(self, capsys):
        main(["eval", "rand(0, 100)", "--seed", "11"])
        first = capsys.readouterr().out
        main(["eval", "rand(0, 100)", "--seed", "11"])
        assert capsys.readouterr().out == first

    def test_bad_assignment_flag(self):
        with pytest.raises(SystemExit):
            main(["eval", "1", "--set", "x"])


class TestRun:
    def test_files_share_globals(self, tmp_path, capsys):
        base = tmp_path / "base.rules"
        base.write_text("$a = 2 * $level;")
        bonus = tmp_path / "bonus.rules"
        bonus.write_text("if $a > 3 { $b = $a * 10; }")

        assert main(["run", str(base), str(bonus), "--set", "level=2"]) == 0
        assert json.loads(capsys.readouterr().out) == {"level": 2.0, "a": 4.0, "b": 40.0}

    def test_bad_file_reports_and_fails(self, tmp_path, capsys):
        good = tmp_path / "good.rules"
        good.write_text("$a = 1;")
        bad = tmp_path / "bad.rules"
        bad.write_text("$b = ;")

        assert main(["run", str(bad), str(good)]) == 1
        captured = capsys.readouterr()
        assert "bad.rules" in captured.err
        assert json.loads(captured.out) == {"a": 1.0}

    def test_missing_file(self, tmp_path):
        err = io.StringIO()
        ok = run_files([tmp_path / "absent.rules"], {}, np.random.default_rng(0), err=err)
        assert not ok
        assert "absent.rules" in err.getvalue()


class TestRepl:
    def test_accumulates_successful_lines(self):
        out = io.StringIO()
        lines = ["x = 2;\n", "$y = x * 3;\n"]
        assert repl(lines, out) == "x = 2;\n$y = x * 3;\n"
        assert '"y": 6.0' in out.getvalue()

    def test_failed_lines_are_dropped(self):
        out = io.StringIO()
        lines = ["$a = 1;\n", "$b = $nope;\n", "$c = ;\n", "$d = $a;\n"]
        assert repl(lines, out) == "$a = 1;\n$d = $a;\n"
        text = out.getvalue()
        assert "Evaluation error" in text
        assert "Parsing error" in text

    def test_clear(self):
        out = io.StringIO()
        assert repl(["$a = 1;\n", "clear;\n", "$b = 2;\n"], out) == "$b = 2;\n"

    def test_initial_globals(self):
        out = io.StringIO()
        initial = {"x": 1.0}
        assert repl(["$y = $x + 1;\n", "$x = 5;\n"], out, initial=initial) == "$y = $x + 1;\n$x = 5;\n"
        assert '"y": 2.0' in out.getvalue()
        assert initial == {"x": 1.0}

    def test_set_flag_seeds_repl(self, monkeypatch, capsys):
        monkeypatch.setattr("sys.stdin", io.StringIO("$y = $x + 1;\n"))
        assert main(["repl", "--set", "x=1"]) == 0
        out = capsys.readouterr().out
        assert "Evaluation error" not in out
        assert '"y": 2.0' in out


class TestSettings:
    def test_defaults(self, monkeypatch):
        monkeypatch.delenv("AARIBA_LOG_LEVEL", raising=False)
        monkeypatch.delenv("AARIBA_SEED", raising=False)
        settings = Settings()
        assert settings.log_level == "warning"
        assert settings.seed is None

    def test_environment(self, monkeypatch):
        monkeypatch.setenv("AARIBA_LOG_LEVEL", "debug")
        monkeypatch.setenv("AARIBA_SEED", "5")
        settings = Settings()
        assert settings.log_level == "debug"
        assert settings.seed == 5
