"""
EZQ preamble construction and merging.

Every enqueued message starts with a YAML document holding the EZQ preamble,
terminated by the YAML document-end marker, followed by the task body:

    ---
    EZQ:
      result_queue_name: <job id>
      get_s3_files:
      - bucket: my-bucket
        key: input.csv
    ...
    <task body>

A task may carry its own preamble, either as such a leading block or as an
"EZQ" key in a mapping task. It is merged over the run preamble (task values
win) and stripped from the body.

Dependencies: PyYAML, json
System role: Envelope handling for the task enqueuer
"""

import copy
import json
import re
from collections.abc import Iterable, Mapping
from typing import Any

import yaml

from job_breaker.core.exceptions import ConfigurationError, TaskFormatError
from job_breaker.core.models import PushedFile

PREAMBLE_KEY = "EZQ"
DOCUMENT_END = "..."

_LEADING_BLOCK = re.compile(
    r"\A(?:---[ \t]*\r?\n)?(?P<block>.*?)^\.\.\.[ \t]*(?:\r?\n|\Z)",
    re.DOTALL | re.MULTILINE,
)


def deep_merge(base: Mapping[str, Any], override: Mapping[str, Any]) -> dict[str, Any]:
    """
    Recursively merge override into a copy of base.

    Only mappings merge; every other value type (lists included) in override
    replaces the value in base. Neither input is modified.

    Args:
        base: Lower-precedence mapping
        override: Higher-precedence mapping

    Returns:
        dict: New merged mapping
    """
    merged = copy.deepcopy(dict(base))
    for key, value in override.items():
        current = merged.get(key)
        if isinstance(value, Mapping) and isinstance(current, Mapping):
            merged[key] = deep_merge(current, value)
        else:
            merged[key] = copy.deepcopy(value)
    return merged


def build_run_preamble(
    base: Mapping[str, Any],
    result_queue_name: str,
    pushed_files: Iterable[PushedFile] = (),
) -> dict[str, Any]:
    """
    Build the run preamble for the next task.

    Args:
        base: Configured preamble (may already contain an EZQ section)
        result_queue_name: Result queue for this run
        pushed_files: Files pushed so far, in request order

    Returns:
        dict: {"EZQ": {...}, **other configured keys}
    """
    others = copy.deepcopy({k: v for k, v in base.items() if k != PREAMBLE_KEY})
    configured = base.get(PREAMBLE_KEY) or {}
    if not isinstance(configured, Mapping):
        raise ConfigurationError(
            f"Configured {PREAMBLE_KEY} preamble must be a mapping", setting="preamble"
        )

    ezq = copy.deepcopy(dict(configured))
    ezq.setdefault("result_queue_name", result_queue_name)
    files = [f.as_preamble_entry() for f in pushed_files]
    if files:
        ezq["get_s3_files"] = files
    return {PREAMBLE_KEY: ezq, **others}


def parse_structured(text: str) -> tuple[Any, str]:
    """
    Parse text as JSON, falling back to YAML.

    Args:
        text: Serialized document

    Returns:
        tuple: (parsed value, "json" or "yaml")

    Raises:
        TaskFormatError: Text is neither valid JSON nor valid YAML
    """
    try:
        return json.loads(text), "json"
    except json.JSONDecodeError:
        pass
    try:
        return yaml.safe_load(text), "yaml"
    except yaml.YAMLError as e:
        raise TaskFormatError(f"Task is not valid structured data: {e}") from e


def _check_structured(value: Any, fmt: str, text: str) -> None:
    # One physical line of YAML accepts almost any prose ("Error: x" is a
    # mapping), so single-line bodies must be JSON
    if fmt == "yaml" and "\n" not in text.strip():
        raise TaskFormatError("Single-line task must be a JSON object or array")
    if not isinstance(value, (dict, list)):
        raise TaskFormatError(
            f"Task must be a mapping or sequence, got {type(value).__name__}"
        )


def split_task_preamble(
    task_text: str, require_structured: bool = False
) -> tuple[str, dict[str, Any] | None]:
    """
    Separate an embedded preamble from a task.

    Args:
        task_text: Serialized task, possibly carrying its own preamble
        require_structured: Reject bodies that are not a mapping or sequence
            (generator output, where stray text must not become a task)

    Returns:
        tuple: (cleaned task text, task preamble mapping or None)

    Raises:
        TaskFormatError: Task or embedded preamble cannot be parsed
    """
    match = _LEADING_BLOCK.match(task_text)
    if match:
        try:
            block = yaml.safe_load(match.group("block"))
        except yaml.YAMLError:
            block = None
        if isinstance(block, dict) and PREAMBLE_KEY in block:
            if not isinstance(block[PREAMBLE_KEY], Mapping):
                raise TaskFormatError(f"Embedded {PREAMBLE_KEY} block must be a mapping")
            remainder = task_text[match.end():]
            if remainder.strip():
                value, fmt = parse_structured(remainder)
                if require_structured:
                    _check_structured(value, fmt, remainder)
            elif require_structured:
                raise TaskFormatError("Task body after the preamble block is empty")
            return remainder, block

    value, fmt = parse_structured(task_text)
    if require_structured:
        _check_structured(value, fmt, task_text)
    if isinstance(value, dict) and PREAMBLE_KEY in value:
        embedded = value.pop(PREAMBLE_KEY)
        if not isinstance(embedded, Mapping):
            raise TaskFormatError(f"Embedded {PREAMBLE_KEY} value must be a mapping")
        if fmt == "json":
            cleaned = json.dumps(value)
        else:
            cleaned = yaml.safe_dump(value, default_flow_style=False, sort_keys=False)
        return cleaned, {PREAMBLE_KEY: embedded}
    return task_text, None


def merge_preamble(
    task_text: str,
    run_preamble: Mapping[str, Any],
    require_structured: bool = False,
) -> tuple[str, dict[str, Any]]:
    """
    Merge a task's embedded preamble over the run preamble.

    Pure: run_preamble is never modified, so one task's overrides cannot leak
    into the next task.

    Args:
        task_text: Serialized task
        run_preamble: Preamble built for this run
        require_structured: See split_task_preamble

    Returns:
        tuple: (cleaned task text, merged preamble)

    Raises:
        TaskFormatError: Task cannot be parsed
    """
    cleaned, task_preamble = split_task_preamble(task_text, require_structured)
    if task_preamble is None:
        return cleaned, copy.deepcopy(dict(run_preamble))
    return cleaned, deep_merge(run_preamble, task_preamble)


def render_message(cleaned_body: str, preamble: Mapping[str, Any]) -> str:
    """
    Render the wire text of a message.

    Args:
        cleaned_body: Task body without embedded preamble
        preamble: Merged preamble

    Returns:
        str: YAML preamble document, end marker line, then the body
    """
    header = yaml.safe_dump(
        dict(preamble),
        explicit_start=True,
        default_flow_style=False,
        sort_keys=False,
    )
    return f"{header}{DOCUMENT_END}\n{cleaned_body}"
