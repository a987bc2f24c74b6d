"""
Command line entry point.
"""

import pytest

from circflow.__main__ import main


pytestmark = pytest.mark.integration


def _write(tmp_path, source: str, name: str = "circuit.circom"):
    path = tmp_path / name
    path.write_text(source, encoding="utf-8")
    return path


class TestCli:
    """Exit codes and output streams"""

    def test_clean_circuit(self, tmp_path, capsys, monkeypatch):
        monkeypatch.setenv("NO_COLOR", "1")
        path = _write(tmp_path, """
        template T() {
            signal input a;
            signal output b;
            b <== a * a;
        }
        """)
        assert main([str(path)]) == 0
        captured = capsys.readouterr()
        assert captured.err == ""

    def test_notes_do_not_fail(self, tmp_path, capsys, monkeypatch):
        monkeypatch.setenv("NO_COLOR", "1")
        path = _write(tmp_path, "template T() { signal c; c <== 5; }")
        assert main([str(path)]) == 0
        assert "note[L0102]: Constant signal: `c`" in capsys.readouterr().err

    def test_errors_exit_with_one(self, tmp_path, capsys, monkeypatch):
        monkeypatch.setenv("NO_COLOR", "1")
        path = _write(tmp_path, """
        template T() {
            signal mid;
            signal output out;
            out <== mid;
        }
        """)
        assert main([str(path)]) == 1
        err = capsys.readouterr().err
        assert "error[L0301]" in err
        assert "aborting due to 1 previous error" in err

    def test_parse_error(self, tmp_path, capsys, monkeypatch):
        monkeypatch.setenv("NO_COLOR", "1")
        path = _write(tmp_path, "template T( {")
        assert main([str(path)]) == 1
        assert "error[E0001]" in capsys.readouterr().err

    def test_missing_file(self, tmp_path, capsys):
        assert main([str(tmp_path / "absent.circom")]) == 1
        assert "file not found" in capsys.readouterr().err

    def test_directory_is_rejected(self, tmp_path, capsys):
        assert main([str(tmp_path)]) == 1
        assert "not a file" in capsys.readouterr().err

    def test_dot_output(self, tmp_path, capsys, monkeypatch):
        monkeypatch.setenv("NO_COLOR", "1")
        path = _write(tmp_path, """
        template T() {
            signal input a;
            signal output b;
            b <== a;
        }
        """)
        assert main([str(path), "--dot", "T"]) == 0
        out = capsys.readouterr().out
        assert out.startswith("digraph")
        assert "b <== a" in out

    def test_dot_unknown_template(self, tmp_path, capsys, monkeypatch):
        monkeypatch.setenv("NO_COLOR", "1")
        path = _write(tmp_path, "template T() { signal input a; }")
        assert main([str(path), "--dot", "Missing"]) == 1
        captured = capsys.readouterr()
        assert "no template named `Missing`" in captured.err
        assert "internal error" not in captured.err
        assert captured.out == ""

    def test_included_templates(self, tmp_path, capsys, monkeypatch):
        monkeypatch.setenv("NO_COLOR", "1")
        path = _write(tmp_path, """
        include "circomlib/poseidon.circom";
        template T() {
            signal input a;
            signal output b;
            component h = Poseidon(1);
            h.inputs[0] <== a;
            b <== h.out;
        }
        """)
        assert main([str(path)]) == 0
        assert "internal error" not in capsys.readouterr().err
