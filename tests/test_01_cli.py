"""CLI tests for the squishi entry point.

Test cases live in 01_cli/*.tests files. Format:

    === test name
    args: --output-type js
    source code here
    (stdin for the compiler)
    ---
    exit: 0
    stderr: error: some message
    stdout: exact stdout (repeatable, one line each)
    stdout-contains: "keyword"
    stderr-contains: "Line 1"
    stdout-empty: true
    stderr-empty: true
    ---
"""

import subprocess
import sys
from pathlib import Path

import pytest

from squishi.cli import FileIOError, load_source, main, save_output

CLI_DIR = Path(__file__).parent / "01_cli"
ROOT_DIR = Path(__file__).parent.parent


def parse_cli_test_file(path: Path) -> list[tuple[str, dict]]:
    """Parse a .tests file into (name, spec) tuples."""
    lines = path.read_text(encoding="utf-8").split("\n")
    result: list[tuple[str, dict]] = []
    i = 0
    while i < len(lines):
        line = lines[i]
        if line.startswith("=== "):
            test_name = line[4:].strip()
            i += 1
            input_lines: list[str] = []
            while i < len(lines) and not lines[i].startswith("---"):
                input_lines.append(lines[i])
                i += 1
            if i < len(lines) and lines[i] == "---":
                i += 1
            expected_lines: list[str] = []
            while i < len(lines) and not lines[i].startswith("---"):
                expected_lines.append(lines[i])
                i += 1
            if i < len(lines) and lines[i] == "---":
                i += 1
            result.append((test_name, _parse_spec(input_lines, expected_lines)))
        else:
            i += 1
    return result


def _parse_spec(input_lines: list[str], expected_lines: list[str]) -> dict:
    """Parse input + expected lines into a test spec dict."""
    spec: dict = {"args": [], "stdin": "", "stdout": [], "assertions": []}
    body_start = 0
    if input_lines and input_lines[0].startswith("args:"):
        args_str = input_lines[0][5:].strip()
        spec["args"] = args_str.split() if args_str else []
        body_start = 1
    spec["stdin"] = "\n".join(input_lines[body_start:])
    for line in expected_lines:
        if line.startswith("stdout:"):
            # Leading spaces after "stdout: " are significant
            spec["stdout"].append(line[8:] if line.startswith("stdout: ") else "")
            continue
        line = line.strip()
        if line.startswith("exit:"):
            spec["assertions"].append(("exit", int(line[5:].strip())))
        elif line.startswith("stderr:"):
            spec["assertions"].append(("stderr", line[7:].strip()))
        elif line.startswith("stderr-contains:"):
            spec["assertions"].append(("stderr-contains", line[16:].strip()))
        elif line.startswith("stderr-empty:"):
            spec["assertions"].append(("stderr-empty", None))
        elif line.startswith("stdout-contains:"):
            spec["assertions"].append(("stdout-contains", line[16:].strip()))
        elif line.startswith("stdout-empty:"):
            spec["assertions"].append(("stdout-empty", None))
    return spec


def discover_cli_tests() -> list[tuple[str, dict]]:
    """Find all CLI tests across .tests files."""
    results = []
    for test_file in sorted(CLI_DIR.glob("*.tests")):
        for name, spec in parse_cli_test_file(test_file):
            results.append((f"{test_file.stem}/{name}", spec))
    return results


def run_cli(spec: dict) -> subprocess.CompletedProcess[bytes]:
    """Run the squishi CLI from a test spec."""
    cmd = [sys.executable, "-m", "squishi.cli", *spec["args"]]
    return subprocess.run(
        cmd,
        input=spec["stdin"].encode(),
        capture_output=True,
        cwd=ROOT_DIR,
    )


def check_assertions(result: subprocess.CompletedProcess[bytes], spec: dict) -> None:
    """Check all assertions against a CLI result."""
    stdout = result.stdout.decode(errors="replace")
    stderr = result.stderr.decode(errors="replace")
    if spec["stdout"]:
        expected = "\n".join(spec["stdout"])
        assert stdout.rstrip("\n") == expected, f"expected stdout {expected!r}, got {stdout!r}"
    for kind, value in spec["assertions"]:
        if kind == "exit":
            assert result.returncode == value, (
                f"expected exit {value}, got {result.returncode}\nstderr: {stderr}"
            )
        elif kind == "stderr":
            actual = stderr.rstrip("\n")
            assert actual == value, f"expected stderr {value!r}, got {actual!r}"
        elif kind == "stderr-contains":
            assert value in stderr, f"expected stderr to contain {value!r}, got {stderr!r}"
        elif kind == "stderr-empty":
            assert stderr == "", f"expected empty stderr, got {stderr!r}"
        elif kind == "stdout-contains":
            assert value in stdout, f"expected stdout to contain {value!r}, got {stdout!r}"
        elif kind == "stdout-empty":
            assert stdout == "", f"expected empty stdout, got {stdout[:200]!r}"


def pytest_generate_tests(metafunc):
    """Parametrize test_cli over all .tests files."""
    if "cli_spec" in metafunc.fixturenames:
        params = [pytest.param(spec, id=test_id) for test_id, spec in discover_cli_tests()]
        metafunc.parametrize("cli_spec", params)


def test_cli(cli_spec: dict) -> None:
    """Run a single CLI test case from .tests file."""
    check_assertions(run_cli(cli_spec), cli_spec)


def test_reads_file_and_writes_output(tmp_path, capsys):
    src = tmp_path / "prog.squishi"
    out = tmp_path / "prog.js"
    src.write_text("pencil x = 3 * 7;\nspeak x;\n", encoding="utf-8")
    assert main([str(src), "-o", str(out)]) == 0
    assert out.read_text(encoding="utf-8") == "let x_1 = 21;\nconsole.log(x_1);\n"
    assert capsys.readouterr().out == ""


def test_missing_input_file(tmp_path, capsys):
    missing = tmp_path / "nope.squishi"
    assert main([str(missing)]) == 1
    assert capsys.readouterr().err == f"error: cannot open '{missing}'\n"


def test_unwritable_output(tmp_path, capsys):
    src = tmp_path / "prog.squishi"
    src.write_text("speak 1;", encoding="utf-8")
    target = tmp_path / "missing-dir" / "out.js"
    assert main([str(src), "-o", str(target)]) == 1
    assert "cannot write" in capsys.readouterr().err


def test_invalid_utf8_input(tmp_path, capsys):
    src = tmp_path / "bad.squishi"
    src.write_bytes(b"speak \xff;")
    assert main([str(src)]) == 1
    assert capsys.readouterr().err == "error: invalid utf-8 in input\n"


def test_load_source_reports_path(tmp_path):
    missing = tmp_path / "gone.squishi"
    with pytest.raises(FileIOError, match="cannot open"):
        load_source(str(missing))


def test_save_output_terminates_file(tmp_path):
    out = tmp_path / "out.js"
    save_output("speak", str(out))
    assert out.read_text(encoding="utf-8") == "speak\n"
    with pytest.raises(FileIOError, match="cannot write"):
        save_output("x", str(tmp_path / "no" / "out.js"))


def test_compile_error_leaves_output_unwritten(tmp_path):
    src = tmp_path / "prog.squishi"
    src.write_text("speak y;", encoding="utf-8")
    out = tmp_path / "prog.js"
    assert main([str(src), "-o", str(out)]) == 1
    assert not out.exists()
