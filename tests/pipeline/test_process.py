"""Tests for the cmdpipe.pipeline.process module."""

from __future__ import annotations

import sys
from pathlib import Path

import pytest

from cmdpipe.pipeline.exceptions import StepFailedError
from cmdpipe.pipeline.models import Pipeline, Step, StepStatus
from cmdpipe.pipeline.process import ProcessRunner, SubprocessRunner, env_lines_to_dict
from cmdpipe.pipeline.runner import PipelineRunner


class TestEnvLinesToDict:
    """Tests for env_lines_to_dict."""

    def test_split_on_first_equals(self) -> None:
        """Values may contain '='."""
        assert env_lines_to_dict(["A=1", "OPTS=--x=y"]) == {"A": "1", "OPTS": "--x=y"}

    def test_empty_value(self) -> None:
        """KEY= yields an empty value."""
        assert env_lines_to_dict(["EMPTY="]) == {"EMPTY": ""}


class TestSubprocessRunner:
    """Tests for SubprocessRunner."""

    def test_is_process_runner(self) -> None:
        """SubprocessRunner satisfies the protocol."""
        assert isinstance(SubprocessRunner(), ProcessRunner)

    def test_exit_code(self) -> None:
        """Return the child's exit code."""
        runner = SubprocessRunner()
        assert runner.run(sys.executable, ["-c", "raise SystemExit(0)"], []) == 0
        assert runner.run(sys.executable, ["-c", "raise SystemExit(4)"], []) == 4

    def test_exact_environment(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        """The child sees only the given variables."""
        monkeypatch.setenv("CMDPIPE_SHOULD_NOT_LEAK", "1")
        out = tmp_path / "env.txt"
        code = "import os, sys; open(sys.argv[1], 'w').write(repr(sorted(k for k in os.environ if k != 'LC_CTYPE')))"
        runner = SubprocessRunner()
        assert runner.run(sys.executable, ["-c", code, str(out)], ["ONLY=1"]) == 0
        assert out.read_text() == "['ONLY']"

    def test_output_sinks(self, tmp_path: Path) -> None:
        """Child streams go to the given sinks."""
        out_path = tmp_path / "out.txt"
        err_path = tmp_path / "err.txt"
        code = "import sys; print('to-out'); print('to-err', file=sys.stderr)"
        with out_path.open("w") as out, err_path.open("w") as err:
            SubprocessRunner().run(sys.executable, ["-c", code], [], stdout=out, stderr=err)
        assert out_path.read_text().strip() == "to-out"
        assert err_path.read_text().strip() == "to-err"

    def test_spawn_failure_raises(self, tmp_path: Path) -> None:
        """Missing executables raise OSError."""
        with pytest.raises(OSError):
            SubprocessRunner().run(str(tmp_path / "no-such-binary"), [], [])


class TestPipelineWithSubprocesses:
    """End-to-end runs with real processes."""

    def test_failure_stops_pipeline(self, tmp_path: Path) -> None:
        """A failing process stops the pipeline before the next step."""
        marker = tmp_path / "marker"
        pipeline = Pipeline(
            steps=(
                Step(name="ok", command=sys.executable, args=("-c", "pass")),
                Step(name="boom", command=sys.executable, args=("-c", "raise SystemExit(2)")),
                Step(name="never", command=sys.executable, args=("-c", f"open({str(marker)!r}, 'w')")),
            )
        )
        with pytest.raises(StepFailedError) as exc_info:
            PipelineRunner(pipeline).run()
        assert exc_info.value.step_name == "boom"
        assert exc_info.value.return_code == 2
        assert not marker.exists()

    def test_successful_run(self) -> None:
        """All steps succeed."""
        pipeline = Pipeline(steps=(Step(name="ok", command=sys.executable, args=("-c", "pass")),))
        result = PipelineRunner(pipeline).run()
        assert result.success is True
        assert result.results[0].status == StepStatus.SUCCESS
