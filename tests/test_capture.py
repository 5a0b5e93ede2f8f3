import sys

import pytest

from magekit.capture import Capture, record_stderr, record_stdout


def test_record_stderr():
    msg = "printed to sys.stderr"
    orig = sys.stderr

    stderr = record_stderr()
    redirected = sys.stderr is not orig
    sys.stderr.write(msg)
    got = stderr.output()

    assert redirected
    assert got == msg
    assert sys.stderr is orig


def test_record_stdout():
    msg = "printed to sys.stdout"
    orig = sys.stdout

    stdout = record_stdout()
    redirected = sys.stdout is not orig
    sys.stdout.write(msg)
    got = stdout.output()

    assert redirected
    assert got == msg
    assert sys.stdout is orig


def test_print_is_recorded():
    stdout = record_stdout()
    print("hello", "world")
    assert stdout.output() == "hello world\n"


def test_release_twice_keeps_original():
    orig = sys.stdout
    stdout = record_stdout()
    sys.stdout.write("recorded")
    stdout.release()
    stdout.release()
    assert sys.stdout is orig
    assert stdout.output() == "recorded"
    assert sys.stdout is orig


def test_output_after_release_keeps_text():
    stdout = record_stdout()
    sys.stdout.write("kept")
    stdout.release()
    sys.stdout.write("")
    assert stdout.output() == "kept"


def test_context_manager_restores_stream():
    orig = sys.stderr
    with record_stderr() as stderr:
        sys.stderr.write("inside")
    assert sys.stderr is orig
    assert stderr.output() == "inside"


def test_nested_captures():
    outer = record_stdout()
    sys.stdout.write("outer ")
    inner = record_stdout()
    sys.stdout.write("inner")
    assert inner.output() == "inner"
    sys.stdout.write("again")
    assert outer.output() == "outer again"


def test_unknown_stream_rejected():
    with pytest.raises(ValueError):
        Capture("stdin")