from __future__ import annotations

from typing import Iterable, List

import allure
import pytest

from workflowo.document import Tagged, loads
from workflowo.errors import (
    MissingFieldError,
    ResolveError,
    ShapeError,
    UnknownTagError,
    ValueTypeError,
    find_cause,
)
from workflowo.resolver import Resolver, resolve_document

pytestmark = [
    allure.epic("Document"),
    allure.feature("Tag Resolution"),
]


class Answers:
    """Scripted operator input; records every prompt it was asked."""

    def __init__(self, answers: Iterable[str] = ()):
        self.answers = list(answers)
        self.prompts: List[str] = []

    def __call__(self, prompt: str) -> str:
        self.prompts.append(prompt)
        return self.answers.pop(0)


def never_prompt(prompt: str) -> str:
    raise AssertionError(f"unexpected prompt {prompt!r}")


def _contains_tagged(value) -> bool:
    if isinstance(value, Tagged):
        return True
    if isinstance(value, dict):
        return any(_contains_tagged(v) for v in value.values())
    if isinstance(value, list):
        return any(_contains_tagged(v) for v in value)
    return False


def test_loader_keeps_custom_tags_as_tagged_nodes() -> None:
    doc = loads("a: !StrF ['x', 'y']\nb: !Input 'Name: '\n")

    assert doc["a"] == Tagged(tag="StrF", value=["x", "y"])
    assert doc["b"] == Tagged(tag="Input", value="Name: ")


def test_loader_applies_merge_keys() -> None:
    doc = loads(
        """
        IGNORE:
          base: &base
            username: root
        job:
          - ssh:
              <<: *base
              address: 10.0.0.1
        """
    )

    assert doc["job"][0]["ssh"] == {"username": "root", "address": "10.0.0.1"}


def test_strf_concatenates() -> None:
    assert resolve_document(loads("!StrF ['foo', 'bar']")) == "foobar"


def test_strf_resolves_nested_tags() -> None:
    doc = loads("!StrF ['/home/', !Input 'User: ', '/data']")

    assert resolve_document(doc, read_line=Answers(["alice\n"])) == "/home/alice/data"


def test_strf_on_non_sequence_is_shape_error() -> None:
    with pytest.raises(ResolveError) as info:
        resolve_document(loads("!StrF 'foo'"))

    assert find_cause(info.value, ShapeError) is not None


def test_strf_with_non_string_element_is_type_error() -> None:
    with pytest.raises(ResolveError) as info:
        resolve_document(loads("!StrF ['foo', [1, 2]]"))

    assert isinstance(find_cause(info.value, ShapeError), ValueTypeError)


def test_strf_everywhere_in_tree() -> None:
    doc = loads(
        """
        key1: !StrF ['test', 'testa']
        key2:
          - !StrF ['test', 'testa']
        key3:
          key3-1:
            - !StrF ['test', 'testa']
        """
    )

    resolved = resolve_document(doc)

    assert resolved == {
        "key1": "testtesta",
        "key2": ["testtesta"],
        "key3": {"key3-1": ["testtesta"]},
    }
    assert not _contains_tagged(resolved)


def test_input_default_used_on_empty_line() -> None:
    doc = loads("!Input ['Enter:', 'fallback']")

    assert resolve_document(doc, read_line=Answers(["\n"])) == "fallback"


def test_input_value_beats_default() -> None:
    doc = loads("!Input ['Enter:', 'fallback']")

    assert resolve_document(doc, read_line=Answers(["x\r\n"])) == "x"


def test_input_without_default_may_be_empty() -> None:
    assert resolve_document(loads("!Input 'Enter:'"), read_line=Answers([""])) == ""


def test_input_map_form() -> None:
    doc = loads("!Input {prompt: 'Host: ', default: 'localhost'}")
    answers = Answers(["\n"])

    assert resolve_document(doc, read_line=answers) == "localhost"
    assert answers.prompts == ["Host: "]


def test_input_map_without_prompt_is_missing_field() -> None:
    with pytest.raises(ResolveError) as info:
        resolve_document(loads("!Input {default: 'x'}"), read_line=never_prompt)

    assert find_cause(info.value, MissingFieldError) is not None


def test_input_with_too_many_arguments_is_shape_error() -> None:
    with pytest.raises(ResolveError) as info:
        resolve_document(loads("!Input ['a', 'b', 'c']"), read_line=never_prompt)

    assert find_cause(info.value, ShapeError) is not None


def test_hidden_input_uses_masked_reader_and_default() -> None:
    hidden = Answers([""])
    doc = loads("!HiddenInput ['Password: ', 'secret']")

    value = resolve_document(doc, read_line=never_prompt, read_hidden=hidden)

    assert value == "secret"
    assert hidden.prompts == ["Password: "]


def test_prompts_follow_document_order() -> None:
    doc = loads(
        """
        first: !Input 'one'
        second:
          - !Input 'two'
          - nested: !Input 'three'
        third: !Input 'four'
        """
    )
    answers = Answers(["1", "2", "3", "4"])

    resolve_document(doc, read_line=answers)

    assert answers.prompts == ["one", "two", "three", "four"]


def test_id_first_occurrence_wins() -> None:
    doc = loads("key1: !Id ['id', 'A']\nkey2: !Id ['id', 'B']\n")

    assert resolve_document(doc) == {"key1": "A", "key2": "A"}


def test_id_map_and_sequence_forms_share_cache() -> None:
    doc = loads(
        """
        key1: !Id {id: 'id', value: 'First Value'}
        key2: !Id ['id', 'Second Value']
        key3: !Id {id: 'id', value: 'Third Value'}
        """
    )

    resolved = resolve_document(doc)

    assert set(resolved.values()) == {"First Value"}


def test_id_cache_hit_never_evaluates_payload() -> None:
    doc = loads(
        """
        first: !Id [user, !Input 'User: ']
        later: !Id [user, !Input 'Never asked: ']
        """
    )
    answers = Answers(["alice\n"])

    resolved = resolve_document(doc, read_line=answers)

    assert resolved == {"first": "alice", "later": "alice"}
    assert answers.prompts == ["User: "]


def test_id_order_is_depth_first_textual() -> None:
    doc = loads(
        """
        outer:
          inner:
            - !Id [x, 'deep first']
        later: !Id [x, 'shallow later']
        """
    )

    resolved = resolve_document(doc)

    assert resolved["later"] == "deep first"


def test_id_caches_structured_values() -> None:
    doc = loads(
        """
        a: !Id [cfg, {host: !StrF ['10.0.', '0.1'], port: 22}]
        b: !Id [cfg, ignored]
        """
    )

    resolved = resolve_document(doc)

    assert resolved["a"] == {"host": "10.0.0.1", "port": 22}
    assert resolved["b"] == resolved["a"]
    assert resolved["b"] is not resolved["a"]


def test_id_cache_is_per_resolver() -> None:
    resolver = Resolver()
    resolver.resolve(loads("!Id [k, 'one']"))

    assert resolver.ids == {"k": "one"}
    assert Resolver().resolve(loads("!Id [k, 'two']")) == "two"


def test_id_with_non_string_id_fails() -> None:
    with pytest.raises(ResolveError) as info:
        resolve_document(loads("!Id [[1], 'value']"))

    assert find_cause(info.value, ValueTypeError) is not None


def test_id_map_without_value_is_missing_field() -> None:
    with pytest.raises(ResolveError) as info:
        resolve_document(loads("!Id {id: 'x'}"))

    assert find_cause(info.value, MissingFieldError) is not None


def test_unknown_tag() -> None:
    with pytest.raises(UnknownTagError, match="!Frobnicate"):
        resolve_document(loads("key: !Frobnicate 'x'"))
