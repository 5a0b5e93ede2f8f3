import io
import sys

import pytest

from magekit.capture import record_stderr, record_stdout
from magekit.command import VERBOSE_ENV, CommandError, command, is_verbose
from magekit.mgx import FatalError

ECHO = (
    "import sys\n"
    "if sys.argv[1:] == ['-']:\n"
    "    sys.stdout.buffer.write(sys.stdin.buffer.read())\n"
    "else:\n"
    "    sys.stdout.buffer.write((' '.join(sys.argv[1:]) + '\\n').encode())\n"
)
FAIL = "import sys; sys.stderr.write('no files listed\\n'); sys.exit(2)"


def echo(*words):
    return command(sys.executable, "-c", ECHO, *words)


def failing():
    return command(sys.executable, "-c", FAIL)


@pytest.fixture(autouse=True)
def quiet(monkeypatch):
    monkeypatch.delenv(VERBOSE_ENV, raising=False)


@pytest.fixture
def verbose(monkeypatch):
    monkeypatch.setenv(VERBOSE_ENV, "true")


def recorded(action):
    stdout = record_stdout()
    stderr = record_stderr()
    try:
        result = action()
    finally:
        got_stderr = stderr.output()
        got_stdout = stdout.output()
    return result, got_stdout, got_stderr


def test_is_verbose(monkeypatch):
    assert is_verbose() is False
    monkeypatch.setenv(VERBOSE_ENV, "1")
    assert is_verbose() is True
    monkeypatch.setenv(VERBOSE_ENV, "yes")
    assert is_verbose() is False


def test_run():
    _, out, err = recorded(lambda: echo("hello world").run())
    assert out == ""
    assert err == ""


def test_run_fail():
    stderr = record_stderr()
    try:
        with pytest.raises(CommandError) as exc:
            failing().run()
    finally:
        got = stderr.output()
    assert "no files listed" in got
    assert exc.value.code == 2
    assert exc.value.ran is True


def test_run_verbose(verbose):
    _, out, err = recorded(lambda: echo("hello world").run())
    assert out == "hello world\n"
    assert "exec:" in err
    assert "hello world" in err


def test_run_v():
    _, out, _ = recorded(lambda: echo("hello world").run_v())
    assert out == "hello world\n"


def test_args():
    cmd = echo().args("hello", "world")
    _, out, _ = recorded(cmd.run_v)
    assert out == "hello world\n"


def test_run_e_verbose(verbose):
    _, out, err = recorded(lambda: echo("hello world").run_e())
    assert out == ""
    assert "hello world" in err


def test_run_e_fail():
    stderr = record_stderr()
    try:
        with pytest.raises(CommandError):
            failing().run_e()
    finally:
        got = stderr.output()
    assert "no files listed" in got


def test_run_s():
    _, out, err = recorded(lambda: echo("hello world").run_s())
    assert out == ""
    assert err == ""


def test_run_s_fail():
    stderr = record_stderr()
    try:
        with pytest.raises(CommandError):
            failing().run_s()
    finally:
        got = stderr.output()
    assert got == ""


def test_collapse_args():
    with pytest.raises(CommandError):
        command(sys.executable, "", "-c", ECHO, "hello world").run_s()

    cmd = command(sys.executable).args("", "-c", ECHO, "", "hello world", "")
    assert cmd.argv == [sys.executable, "", "-c", ECHO, "", "hello world", ""]
    with pytest.raises(CommandError):
        cmd.run_s()

    collapsed = command(sys.executable, "", "-c", "", ECHO, "hello world", "").collapse_args()
    assert collapsed.argv == [sys.executable, "-c", ECHO, "hello world"]
    assert collapsed.output_s() == "hello world"


def test_output():
    result, out, err = recorded(lambda: echo("hello world").output())
    assert result == "hello world"
    assert out == ""
    assert err == ""


def test_output_fail():
    stderr = record_stderr()
    try:
        with pytest.raises(CommandError) as exc:
            failing().output()
    finally:
        got = stderr.output()
    assert "no files listed" in got
    assert exc.value.output == ""


def test_output_verbose(verbose):
    result, out, err = recorded(lambda: echo("hello world").output())
    assert result == "hello world"
    assert out == "hello world\n"
    assert "hello world" in err


def test_output_v():
    result, out, _ = recorded(lambda: echo("hello world").output_v())
    assert result == "hello world"
    assert out == "hello world\n"


def test_output_e_verbose(verbose):
    result, out, err = recorded(lambda: echo("hello world").output_e())
    assert result == "hello world"
    assert out == ""
    assert "exec:" in err


def test_output_e_fail():
    stderr = record_stderr()
    try:
        with pytest.raises(CommandError) as exc:
            failing().output_e()
    finally:
        got = stderr.output()
    assert "no files listed" in got
    assert exc.value.output == ""


def test_output_s():
    result, out, err = recorded(lambda: echo("hello world").output_s())
    assert result == "hello world"
    assert out == ""
    assert err == ""


def test_output_s_verbose(verbose):
    result, out, err = recorded(lambda: echo("hello world").output_s())
    assert result == "hello world"
    assert out == ""
    assert "hello world" in err


def test_output_s_fail():
    stderr = record_stderr()
    try:
        with pytest.raises(CommandError) as exc:
            failing().output_s()
    finally:
        got = stderr.output()
    assert got == ""
    assert exc.value.output == ""


def test_stdin_text():
    assert echo("-").stdin("hello world").output_e() == "hello world"


def test_stdin_reader():
    assert echo("-").stdin(io.StringIO("hello world")).output_s() == "hello world"


def test_in_dir(tmp_path):
    (tmp_path / "test_main.py").write_text("print('hello world')\n")
    _, out, _ = recorded(lambda: command(sys.executable, "test_main.py").in_dir(tmp_path).output_s())
    assert out == ""
    result = command(sys.executable, "test_main.py").in_dir(str(tmp_path)).output_s()
    assert result.strip() == "hello world"


def test_env():
    script = "import os, sys; sys.stdout.write(os.environ['MAGEKIT_X'])"
    cmd = command(sys.executable, "-c", script).env("MAGEKIT_X=1", "MAGEKIT_X=2")
    assert cmd.output_s() == "2"


def test_custom_stdout_writer():
    buffer = io.StringIO()
    assert echo("hi").stdout(buffer).exec() == (True, 0)
    assert buffer.getvalue() == "hi\n"


def test_missing_executable():
    with pytest.raises(CommandError) as exc:
        command("magekit-definitely-missing-command").run_s()
    assert exc.value.ran is False
    assert "failed to run" in str(exc.value)


def test_exit_code_message():
    with pytest.raises(CommandError) as exc:
        failing().run_s()
    assert "failed with exit code 2" in str(exc.value)


def test_must_flags():
    assert echo().must().stop_on_error is True
    assert echo().must(False).stop_on_error is False
    with pytest.raises(FatalError):
        echo().must(True, False)


def test_must_turns_failure_fatal():
    with pytest.raises(FatalError) as exc:
        failing().must().run_s()
    assert exc.value.code == 1
    assert isinstance(exc.value.__cause__, CommandError)


def test_str():
    assert str(command("go", "run", "echo.go")) == "go run echo.go"