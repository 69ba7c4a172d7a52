"""Templating front end for pipeline documents.

A pipeline document goes through two passes before it is parsed as YAML:

1. :func:`substitute` expands shell-style variables (``$HOME``,
   ``${TAG:-latest}``) against the environment snapshot.
2. :func:`render` evaluates the result as a sandboxed Jinja2 template with a
   small helper library (``b64enc``, ``sha256sum``, ``to_yaml``...).

The environment is only reachable through the first pass. Templates get no
``env`` helper, so the set of variables a document reads is visible in its
``$`` references.

Examples:
    >>> render_pipeline("image: ${IMAGE:-alpine}:{{ '3' ~ '.20' }}", {})
    'image: alpine:3.20'
"""

from __future__ import annotations

import base64
import hashlib
import json
import logging
import os
import re
import uuid
from collections.abc import Callable, Mapping
from datetime import datetime, timezone
from typing import Any

import jinja2
import yaml
from jinja2.sandbox import SandboxedEnvironment

from cmdpipe.exceptions import TemplateError

logger = logging.getLogger(__name__)

#: Looks a variable up; None means unset.
Lookup = Callable[[str], "str | None"]

_NAME = r"[A-Za-z_][A-Za-z0-9_]*"
_BARE_NAME_PATTERN = re.compile(_NAME)
_PLAIN_PATTERN = re.compile(rf"^({_NAME})$")
_LENGTH_PATTERN = re.compile(rf"^#({_NAME})$")
_CASE_PATTERN = re.compile(rf"^({_NAME})(\^\^|,,|\^|,)$")
_DEFAULT_PATTERN = re.compile(rf"^({_NAME})(:?[-=+])(.*)$", re.DOTALL)


def ambient_environ() -> dict[str, str]:
    """Return a snapshot of the current process environment."""
    return dict(os.environ)


# ============================================================================
# Pass 1: variable substitution
# ============================================================================


def _find_closing_brace(text: str, start: int) -> int:
    """Return the index of the ``}`` closing the ``${`` opened before ``start``."""
    depth = 1
    i = start
    while i < len(text):
        char = text[i]
        if char == "$" and text.startswith("${", i):
            depth += 1
            i += 2
            continue
        if char == "}":
            depth -= 1
            if depth == 0:
                return i
        i += 1
    return -1


class _Substitution:
    """One substitution pass. ``${VAR:=x}`` assignments live for the pass only."""

    def __init__(self, lookup: Lookup, source: str | None) -> None:
        self._lookup = lookup
        self._source = source
        self._assigned: dict[str, str] = {}

    def get(self, name: str) -> str | None:
        if name in self._assigned:
            return self._assigned[name]
        return self._lookup(name)

    def expand(self, text: str) -> str:
        out: list[str] = []
        i = 0
        while i < len(text):
            char = text[i]
            if char != "$" or i + 1 >= len(text):
                out.append(char)
                i += 1
                continue

            nxt = text[i + 1]
            if nxt == "$":
                out.append("$")
                i += 2
            elif nxt == "{":
                end = _find_closing_brace(text, i + 2)
                if end < 0:
                    raise TemplateError(f"unterminated '${{' at offset {i}", source=self._source)
                out.append(self._expression(text[i + 2 : end]))
                i = end + 1
            else:
                match = _BARE_NAME_PATTERN.match(text, i + 1)
                if match:
                    out.append(self.get(match.group(0)) or "")
                    i = match.end()
                else:
                    out.append(char)
                    i += 1
        return "".join(out)

    def _expression(self, expr: str) -> str:
        match = _PLAIN_PATTERN.match(expr)
        if match:
            return self.get(match.group(1)) or ""

        match = _LENGTH_PATTERN.match(expr)
        if match:
            return str(len(self.get(match.group(1)) or ""))

        match = _CASE_PATTERN.match(expr)
        if match:
            value = self.get(match.group(1)) or ""
            op = match.group(2)
            if op == "^^":
                return value.upper()
            if op == ",,":
                return value.lower()
            if op == "^":
                return value[:1].upper() + value[1:]
            return value[:1].lower() + value[1:]

        match = _DEFAULT_PATTERN.match(expr)
        if match:
            name, op, word = match.groups()
            value = self.get(name)
            # With ':' an empty value counts as unset.
            is_set = value is not None and (not op.startswith(":") or value != "")
            if op.endswith("+"):
                return self.expand(word) if is_set else ""
            if is_set:
                return value or ""
            fallback = self.expand(word)
            if op.endswith("="):
                self._assigned[name] = fallback
            return fallback

        raise TemplateError(f"bad substitution '${{{expr}}}'", source=self._source)


def substitute(text: str, lookup: Lookup | Mapping[str, str], *, source: str | None = None) -> str:
    """Expand shell-style variable references in ``text``.

    Supported forms: ``$VAR``, ``${VAR}``, ``${VAR:-default}``,
    ``${VAR-default}``, ``${VAR:=default}``, ``${VAR=default}``,
    ``${VAR:+alt}``, ``${VAR+alt}``, ``${#VAR}``, ``${VAR^^}``, ``${VAR,,}``,
    ``${VAR^}``, ``${VAR,}``. ``$$`` produces a literal ``$``. Unset
    variables expand to the empty string.

    Args:
        text: Raw document text.
        lookup: Variable lookup function or mapping.
        source: Document origin used in error messages.

    Returns:
        The substituted text.

    Raises:
        TemplateError: On an unterminated or unsupported ``${...}`` form.

    Examples:
        >>> substitute("${USER:-nobody} pays $$5", {})
        'nobody pays $5'
        >>> substitute("${NAME^^}", {"NAME": "ci"})
        'CI'
    """
    if isinstance(lookup, Mapping):
        lookup = lookup.get
    return _Substitution(lookup, source).expand(text)


# ============================================================================
# Pass 2: template rendering
# ============================================================================


def _b64enc(value: Any) -> str:
    return base64.b64encode(str(value).encode("utf-8")).decode("ascii")


def _b64dec(value: Any) -> str:
    return base64.b64decode(str(value)).decode("utf-8")


def _sha256sum(value: Any) -> str:
    return hashlib.sha256(str(value).encode("utf-8")).hexdigest()


def _quote(value: Any) -> str:
    return json.dumps(str(value))


def _squote(value: Any) -> str:
    return "'" + str(value).replace("'", "''") + "'"


def _trim_prefix(value: Any, prefix: str) -> str:
    text = str(value)
    return text[len(prefix) :] if prefix and text.startswith(prefix) else text


def _trim_suffix(value: Any, suffix: str) -> str:
    text = str(value)
    return text[: -len(suffix)] if suffix and text.endswith(suffix) else text


def _to_yaml(value: Any) -> str:
    return yaml.safe_dump(value, default_flow_style=False, sort_keys=False).rstrip("\n")


def _to_json(value: Any) -> str:
    return json.dumps(value, sort_keys=True)


def _now(fmt: str | None = None) -> str:
    moment = datetime.now(timezone.utc)
    return moment.strftime(fmt) if fmt else moment.isoformat()


def _uuidv4() -> str:
    return str(uuid.uuid4())


FILTERS: dict[str, Callable[..., str]] = {
    "b64enc": _b64enc,
    "b64dec": _b64dec,
    "sha256sum": _sha256sum,
    "quote": _quote,
    "squote": _squote,
    "trim_prefix": _trim_prefix,
    "trim_suffix": _trim_suffix,
    "to_yaml": _to_yaml,
    "to_json": _to_json,
}

GLOBALS: dict[str, Callable[..., str]] = {
    "now": _now,
    "uuidv4": _uuidv4,
}


def create_environment() -> SandboxedEnvironment:
    """Build the Jinja2 environment used to render pipeline documents."""
    env = SandboxedEnvironment(
        undefined=jinja2.StrictUndefined,
        keep_trailing_newline=True,
        autoescape=False,
    )
    env.filters.update(FILTERS)
    env.globals.update(GLOBALS)
    return env


def render(text: str, *, source: str | None = None) -> str:
    """Render ``text`` as a Jinja2 template with the helper library.

    Args:
        text: Substituted document text.
        source: Document origin used in error messages.

    Returns:
        The rendered text.

    Raises:
        TemplateError: On syntax errors, undefined names or sandbox violations.

    Examples:
        >>> render("{{ 'abc' | b64enc }}")
        'YWJj'
    """
    try:
        return create_environment().from_string(text).render()
    except jinja2.TemplateError as exc:
        raise TemplateError(str(exc), source=source) from exc


def render_pipeline(
    text: str,
    environ: Mapping[str, str] | None = None,
    *,
    source: str | None = None,
) -> str:
    """Run both templating passes over a pipeline document.

    Args:
        text: Raw document text.
        environ: Variables for substitution (defaults to the process environment).
        source: Document origin used in error messages.

    Returns:
        The payload handed to the resolver.

    Raises:
        TemplateError: If either pass fails.
    """
    if environ is None:
        environ = ambient_environ()
    rendered = render(substitute(text, environ, source=source), source=source)
    logger.debug("Rendered pipeline document%s:\n%s", f" {source}" if source else "", rendered)
    return rendered


__all__ = [
    "FILTERS",
    "GLOBALS",
    "Lookup",
    "ambient_environ",
    "create_environment",
    "render",
    "render_pipeline",
    "substitute",
]
