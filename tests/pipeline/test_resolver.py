"""Tests for the cmdpipe.pipeline.resolver module."""

from __future__ import annotations

from collections.abc import Callable, Mapping
from pathlib import Path
from typing import Any

import pytest

from cmdpipe.exceptions import TemplateError
from cmdpipe.pipeline.exceptions import (
    InvalidFieldError,
    MalformedDocumentError,
    MissingFieldError,
    PipelineConfigError,
    TypeMismatchError,
    UnknownStepTypeError,
)
from cmdpipe.pipeline.models import Step
from cmdpipe.pipeline.registry import StepRegistry, default_registry
from cmdpipe.pipeline.resolver import load_pipeline, load_pipeline_file, resolve

THREE_STEPS = """
steps:
  - name: build
    command: make
    args: ["all"]
  - command: echo
    args: ["middle"]
  - name: package
    type: docker
    image: alpine
    command: tar
    args: ["-czf", "out.tgz", "dist"]
"""


class TestResolve:
    """Tests for resolve."""

    def test_one_step_per_record_in_order(self) -> None:
        """N records resolve to N steps in document order."""
        pipeline = resolve(THREE_STEPS)
        assert len(pipeline) == 3
        assert pipeline.names == ("build", "step-1", "package")
        assert [s.command for s in pipeline] == ["make", "echo", "docker"]

    def test_default_name_uses_index(self) -> None:
        """Records without a name are called step-<index>."""
        pipeline = resolve("steps: [{command: a}, {command: b}, {name: c, command: c}, {command: d}]")
        assert pipeline.names == ("step-0", "step-1", "c", "step-3")

    def test_empty_name_uses_default(self) -> None:
        """An empty name falls back to the default."""
        pipeline = resolve("steps: [{name: '', command: ls}]")
        assert pipeline.steps[0].name == "step-0"

    def test_default_type_is_command(self) -> None:
        """Records without a type use the command parser."""
        step = resolve("steps: [{command: ls, args: ['-l']}]").steps[0]
        assert step.type == "command"
        assert step.command_line == ("ls", "-l")

    def test_docker_step(self) -> None:
        """Container records expand into docker run."""
        step = resolve('steps: [{type: docker, image: "alpine", command: "echo", args: ["hi"]}]').steps[0]
        assert step.type == "docker"
        assert step.command == "docker"
        assert step.args == ("run", "-t", "--entrypoint=", "alpine", "echo", "hi")

    def test_conditions_from_when(self) -> None:
        """The when mapping becomes the step conditions."""
        payload = """
steps:
  - command: deploy
    env: {TARGET: prod}
    when:
      TARGET: prod
      CI: "true"
"""
        step = resolve(payload).steps[0]
        assert step.conditions == {"TARGET": "prod", "CI": "true"}
        assert step.env == {"TARGET": "prod"}

    def test_no_conditions(self) -> None:
        """Steps without when have no conditions."""
        assert resolve("steps: [{command: ls}]").steps[0].conditions == {}

    def test_args_order_preserved(self) -> None:
        """Argument order survives resolution."""
        step = resolve("steps: [{command: x, args: [c, a, b, a]}]").steps[0]
        assert step.args == ("c", "a", "b", "a")

    def test_deterministic(self) -> None:
        """Resolving the same payload twice gives equal pipelines."""
        assert resolve(THREE_STEPS) == resolve(THREE_STEPS)

    def test_missing_steps_is_empty(self) -> None:
        """A document without steps resolves to an empty pipeline."""
        assert len(resolve("other: value")) == 0
        assert len(resolve("steps:")) == 0
        assert len(resolve("steps: []")) == 0

    def test_custom_registry(self) -> None:
        """Types dispatch to parsers added to the registry."""

        def parse_greeting(record: Mapping[str, Any]) -> Step:
            return Step(command="echo", args=(f"hello {record['who']}",))

        registry = default_registry().register("greeting", parse_greeting)
        step = resolve("steps: [{type: greeting, who: world, name: hi}]", registry).steps[0]
        assert step.name == "hi"
        assert step.type == "greeting"
        assert step.command_line == ("echo", "hello world")


class TestResolveErrors:
    """Tests for resolution failures."""

    @pytest.mark.parametrize(
        "payload",
        [
            "",
            "- command: ls",
            "just text",
            "steps: {command: ls}",
            "steps: command",
            "steps: [ls]",
            "steps: [{command: ls}, [nested]]",
            "steps: [unclosed",
        ],
    )
    def test_malformed_document(self, payload: str) -> None:
        """Wrong top-level shapes are rejected."""
        with pytest.raises(MalformedDocumentError):
            resolve(payload)

    def test_malformed_step_reports_index(self) -> None:
        """Non-mapping step records report their index."""
        with pytest.raises(MalformedDocumentError) as exc_info:
            resolve("steps: [{command: ls}, 42]")
        assert exc_info.value.step_index == 1
        assert str(exc_info.value).startswith("step 1:")

    def test_invalid_yaml_chained(self) -> None:
        """YAML errors are chained as the cause."""
        with pytest.raises(MalformedDocumentError) as exc_info:
            resolve("steps: [{command: ls")
        assert exc_info.value.__cause__ is not None

    def test_non_string_name(self) -> None:
        """A non-string name is an invalid field."""
        with pytest.raises(InvalidFieldError) as exc_info:
            resolve("steps: [{command: ls}, {name: [a], command: ls}]")
        assert exc_info.value.field == "name"
        assert exc_info.value.step_index == 1

    def test_non_string_type(self) -> None:
        """A non-string type is an invalid field."""
        with pytest.raises(InvalidFieldError) as exc_info:
            resolve("steps: [{name: x, type: 3, command: ls}]")
        assert exc_info.value.field == "type"
        assert exc_info.value.step_name == "x"

    def test_when_not_a_mapping(self) -> None:
        """when must be a mapping."""
        with pytest.raises(InvalidFieldError) as exc_info:
            resolve("steps: [{command: ls, when: [CI]}]")
        assert exc_info.value.field == "when"

    def test_when_non_string_value(self) -> None:
        """Unquoted booleans in when are rejected."""
        with pytest.raises(InvalidFieldError) as exc_info:
            resolve("steps: [{command: ls, when: {CI: true}}]")
        assert "CI" in str(exc_info.value)

    def test_unknown_step_type(self) -> None:
        """An unregistered type names the index and the tag."""
        with pytest.raises(UnknownStepTypeError) as exc_info:
            resolve("steps: [{command: ls}, {type: nonexistent}]")
        exc = exc_info.value
        assert exc.step_index == 1
        assert exc.step_type == "nonexistent"
        assert "step 1" in str(exc)
        assert "nonexistent" in str(exc)

    def test_unknown_type_with_empty_registry(self) -> None:
        """Even command is unknown to an empty registry."""
        with pytest.raises(UnknownStepTypeError):
            resolve("steps: [{command: ls}]", StepRegistry())

    def test_docker_missing_image(self) -> None:
        """Parser errors are annotated with the step name."""
        with pytest.raises(MissingFieldError) as exc_info:
            resolve("steps: [{name: ok, command: ls}, {name: box, type: docker, command: echo}]")
        exc = exc_info.value
        assert exc.field == "image"
        assert exc.step_name == "box"
        assert exc.step_index == 1
        assert str(exc) == "step 1 ('box'): 'image' is required"

    def test_type_mismatch_annotated(self) -> None:
        """Decoder errors carry the default step name."""
        with pytest.raises(TypeMismatchError) as exc_info:
            resolve("steps: [{command: ls, args: -l}]")
        assert exc_info.value.step_name == "step-0"

    def test_custom_parser_exception_annotated(self) -> None:
        """Arbitrary parser exceptions become located configuration errors."""

        def parse_broken(record: Mapping[str, Any]) -> Step:
            raise ValueError("boom")

        registry = default_registry().register("broken", parse_broken)
        with pytest.raises(PipelineConfigError) as exc_info:
            resolve("steps: [{command: ls}, {name: s1, type: broken}]", registry)
        exc = exc_info.value
        assert exc.step_index == 1
        assert exc.step_name == "s1"
        assert isinstance(exc.__cause__, ValueError)
        assert str(exc) == "step 1 ('s1'): parser for type 'broken' failed: boom"

    def test_custom_parser_key_error(self) -> None:
        """A parser indexing a missing key fails resolution, not the caller."""
        registry = default_registry().register("strict", lambda record: Step(command=record["binary"]))
        with pytest.raises(PipelineConfigError) as exc_info:
            resolve("steps: [{type: strict}]", registry)
        assert exc_info.value.step_name == "step-0"
        assert isinstance(exc_info.value.__cause__, KeyError)

    def test_custom_parser_wrong_return_type(self) -> None:
        """Parsers must return a Step."""
        registry = default_registry().register("lazy", lambda record: None)
        with pytest.raises(PipelineConfigError, match="returned null, expected Step"):
            resolve("steps: [{name: idle, type: lazy}]", registry)

    def test_all_or_nothing(self) -> None:
        """A bad record anywhere fails the whole resolution."""
        with pytest.raises(PipelineConfigError):
            resolve("steps: [{command: a}, {command: b}, {type: docker}]")


class TestLoadPipeline:
    """Tests for load_pipeline and load_pipeline_file."""

    def test_substitutes_environment(self) -> None:
        """Variables come from the given environment."""
        text = "steps: [{command: echo, args: ['${GREETING}'], env: {TAG: '${TAG:-latest}'}}]"
        step = load_pipeline(text, {"GREETING": "hello"}).steps[0]
        assert step.args == ("hello",)
        assert step.env == {"TAG": "latest"}

    def test_renders_template(self) -> None:
        """Template expressions expand into steps."""
        text = """
steps:
{% for target in ['lint', 'test'] %}
  - name: {{ target }}
    command: make
    args: [{{ target | quote }}]
{% endfor %}
"""
        pipeline = load_pipeline(text, {})
        assert pipeline.names == ("lint", "test")
        assert pipeline.steps[1].args == ("test",)

    def test_template_error(self) -> None:
        """Templating problems surface as TemplateError."""
        with pytest.raises(TemplateError):
            load_pipeline("steps: {{ missing }}", {}, source="p.yml")

    def test_uses_registry(self) -> None:
        """The registry is passed through to resolution."""
        with pytest.raises(UnknownStepTypeError):
            load_pipeline("steps: [{command: ls}]", {}, StepRegistry())

    def test_load_file(self, write_pipeline: Callable[..., Path]) -> None:
        """Files are read, templated and resolved."""
        path = write_pipeline("steps:\n  - name: hi\n    command: echo\n    args: [$WHO]\n")
        pipeline = load_pipeline_file(path, {"WHO": "world"})
        assert pipeline.steps[0].args == ("world",)

    def test_load_file_missing(self, tmp_path: Path) -> None:
        """Missing files raise OSError."""
        with pytest.raises(OSError):
            load_pipeline_file(tmp_path / "absent.yml", {})

    def test_load_file_not_utf8(self, tmp_path: Path) -> None:
        """Undecodable bytes are a malformed document."""
        path = tmp_path / "latin1.yml"
        path.write_bytes(b"steps: [{command: '\xff'}]\n")
        with pytest.raises(MalformedDocumentError, match="not valid UTF-8") as exc_info:
            load_pipeline_file(path, {})
        assert isinstance(exc_info.value.__cause__, UnicodeDecodeError)

    def test_load_file_template_error_names_file(self, write_pipeline: Callable[..., Path]) -> None:
        """Template errors mention the file."""
        path = write_pipeline("steps: ${BROKEN\n")
        with pytest.raises(TemplateError) as exc_info:
            load_pipeline_file(path, {})
        assert str(path) in str(exc_info.value)
