# resolver.py
from __future__ import annotations

import copy
import sys
from typing import Any, Callable, Dict, Optional, Tuple

import click

from .document import Tagged
from .errors import (
    MissingFieldError,
    ResolveError,
    ShapeError,
    UnknownTagError,
    ValueTypeError,
    WorkflowError,
)

PromptReader = Callable[[str], str]


def prompt_line(prompt: str) -> str:
    """Print the prompt (no newline) and read one raw line from stdin."""
    click.echo(prompt, nl=False)
    sys.stdout.flush()
    return sys.stdin.readline()


def prompt_hidden(prompt: str) -> str:
    return click.prompt(
        prompt,
        default="",
        hide_input=True,
        show_default=False,
        prompt_suffix="",
    )


def _strip_line_end(text: str) -> str:
    while text.endswith("\n") or text.endswith("\r"):
        text = text[:-1]
    return text


class Resolver:
    """
    Single depth-first pass that replaces every `Tagged` node of a document.

    Order is pre-order over mapping values, then sequence elements, matching
    the textual order of the document. That order decides which `!Id`
    occurrence fills the cache and in which order the operator is prompted.

    Supported tags:
      - StrF:        concatenation of a sequence of strings
      - Input:       prompt on stdin, optional default
      - HiddenInput: like Input, but masked
      - Id:          first occurrence of an id wins, later ones reuse it
    """

    def __init__(
        self,
        read_line: Optional[PromptReader] = None,
        read_hidden: Optional[PromptReader] = None,
    ):
        self.ids: Dict[str, Any] = {}
        self._read_line = read_line or prompt_line
        self._read_hidden = read_hidden or prompt_hidden
        self._handlers: Dict[str, Callable[[Any], Any]] = {
            "Input": lambda value: self._resolve_input(value, hidden=False),
            "HiddenInput": lambda value: self._resolve_input(value, hidden=True),
            "StrF": self._resolve_strf,
            "Id": self._resolve_id,
        }

    def resolve(self, value: Any) -> Any:
        if isinstance(value, dict):
            for key, child in value.items():
                value[key] = self.resolve(child)
            return value
        if isinstance(value, list):
            for idx, item in enumerate(value):
                value[idx] = self.resolve(item)
            return value
        if isinstance(value, Tagged):
            return self._resolve_tagged(value)
        return value

    def _resolve_tagged(self, tagged: Tagged) -> Any:
        handler = self._handlers.get(tagged.tag)
        if handler is None:
            raise UnknownTagError(f"!{tagged.tag} is not a valid tag")
        try:
            return handler(tagged.value)
        except (WorkflowError, OSError) as e:
            raise ResolveError(f"failed to resolve !{tagged.tag}") from e

    # ------------------------------------------------------------------
    # !StrF
    # ------------------------------------------------------------------

    def _resolve_strf(self, value: Any) -> str:
        if not isinstance(value, list):
            raise ValueTypeError("!StrF needs to be a sequence of strings")
        parts = []
        for idx, item in enumerate(value):
            item = self.resolve(item)
            if not isinstance(item, str):
                raise ValueTypeError(
                    f"!StrF element {idx} is not a string: {item!r}"
                )
            parts.append(item)
        return "".join(parts)

    # ------------------------------------------------------------------
    # !Input / !HiddenInput
    # ------------------------------------------------------------------

    def _resolve_input(self, value: Any, hidden: bool) -> str:
        value = self.resolve(value)
        prompt, default = _input_shape(value)

        raw = self._read_hidden(prompt) if hidden else self._read_line(prompt)
        text = _strip_line_end(raw or "")

        if default is not None and text == "":
            text = default
        return text

    # ------------------------------------------------------------------
    # !Id
    # ------------------------------------------------------------------

    def _resolve_id(self, value: Any) -> Any:
        ident = _id_key(value)

        if ident not in self.ids:
            self.ids[ident] = self.resolve(_id_value(value))

        return copy.deepcopy(self.ids[ident])


def _input_shape(value: Any) -> Tuple[str, Optional[str]]:
    if isinstance(value, str):
        return value, None

    if isinstance(value, list):
        if len(value) not in (1, 2):
            raise ShapeError(
                f"!Input and !HiddenInput take 1 or 2 arguments but got {len(value)}"
            )
        if not isinstance(value[0], str):
            raise ValueTypeError("Input prompt is not a valid string")
        if len(value) == 2 and not isinstance(value[1], str):
            raise ValueTypeError("Input default value is not a valid string")
        return value[0], value[1] if len(value) == 2 else None

    if isinstance(value, dict):
        if "prompt" not in value:
            raise MissingFieldError("prompt was not provided in !Input")
        prompt = value["prompt"]
        if not isinstance(prompt, str):
            raise ValueTypeError("prompt is not of type string")
        default = value.get("default")
        if default is not None and not isinstance(default, str):
            raise ValueTypeError("default is not of type string")
        return prompt, default

    raise ShapeError("Input prompt is not a valid string, sequence or map")


def _id_key(value: Any) -> str:
    if isinstance(value, dict):
        if "id" not in value:
            raise MissingFieldError("id key not given in !Id map")
        ident = value["id"]
    elif isinstance(value, list):
        if not value:
            raise MissingFieldError("!Id tag is missing its id")
        ident = value[0]
    else:
        raise ShapeError("!Id value needs to be a map or sequence")

    if not isinstance(ident, str):
        raise ValueTypeError(f"invalid !Id id {ident!r}, value is not a string")
    return ident


def _id_value(value: Any) -> Any:
    if isinstance(value, dict):
        if "value" not in value:
            raise MissingFieldError("value key not given in !Id map")
        return value["value"]
    if len(value) != 2:
        raise ShapeError(f"!Id takes an id and a value but got {len(value)} entries")
    return value[1]


def resolve_document(
    value: Any,
    read_line: Optional[PromptReader] = None,
    read_hidden: Optional[PromptReader] = None,
) -> Any:
    """Resolve a whole document with a fresh Id cache."""
    return Resolver(read_line=read_line, read_hidden=read_hidden).resolve(value)
