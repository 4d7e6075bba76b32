import sys

import pytest

from snapvault.errors import ToolFailure
from snapvault.tools import ToolRunner


def py(code):
    return [sys.executable, ["-c", code]]


def test_captures_output():
    exe, args = py("import sys; print('out'); print('err', file=sys.stderr)")
    result = ToolRunner().run(exe, args)
    assert result.ok
    assert result.stdout == "out\n"
    assert result.stderr == "err\n"


def test_non_zero_exit_raises_with_stderr():
    exe, args = py("import sys; print('boom', file=sys.stderr); sys.exit(3)")
    with pytest.raises(ToolFailure) as excinfo:
        ToolRunner().run(exe, args)
    assert excinfo.value.returncode == 3
    assert "boom" in str(excinfo.value)


def test_check_false_returns_result():
    exe, args = py("import sys; sys.exit(1)")
    result = ToolRunner().run(exe, args, check=False)
    assert result.returncode == 1
    assert not result.ok


def test_input_is_fed_to_stdin():
    exe, args = py("import sys; print(sys.stdin.read().upper())")
    assert ToolRunner().run(exe, args, input="secret").stdout == "SECRET\n"


def test_missing_executable():
    with pytest.raises(ToolFailure, match="executable not found"):
        ToolRunner().run("snapvault-no-such-tool", ["x"])


def test_timeout():
    exe, args = py("import time; time.sleep(5)")
    with pytest.raises(ToolFailure, match="timed out"):
        ToolRunner(timeout=0.2).run(exe, args)


def test_arguments_are_not_shell_interpreted(tmp_path):
    exe, args = py("import sys; print(sys.argv[1])")
    result = ToolRunner().run(exe, args + ["$(echo hi); rm -rf /"], cwd=tmp_path)
    assert result.stdout == "$(echo hi); rm -rf /\n"


def test_trace_receives_command():
    seen = []
    exe, args = py("pass")
    ToolRunner(trace=seen.append).run(exe, args)
    assert seen and seen[0].startswith(sys.executable)
