# document.py
from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Any

import yaml

from .errors import LocalIOError, ShapeError


@dataclass
class Tagged:
    """A `!Name value` node the resolver still has to interpret."""
    tag: str
    value: Any


class DocumentLoader(yaml.SafeLoader):
    """SafeLoader that keeps every local `!Tag` as a `Tagged` node."""


def _construct_tagged(loader: DocumentLoader, tag_suffix: str, node: yaml.Node) -> Tagged:
    if isinstance(node, yaml.MappingNode):
        value = loader.construct_mapping(node, deep=True)
    elif isinstance(node, yaml.SequenceNode):
        value = loader.construct_sequence(node, deep=True)
    else:
        value = loader.construct_scalar(node)
    return Tagged(tag=tag_suffix, value=value)


DocumentLoader.add_multi_constructor("!", _construct_tagged)


def loads(text: str) -> Any:
    """Parse YAML text into the generic value tree (merge keys applied)."""
    try:
        return yaml.load(text, Loader=DocumentLoader)
    except yaml.YAMLError as e:
        raise ShapeError(f"Incorrect YAML: {e}") from e


def load_document(path: str | Path) -> Any:
    doc_path = Path(path)
    try:
        text = doc_path.read_text(encoding="utf-8")
    except OSError as e:
        raise LocalIOError(f"Error while opening file {doc_path}") from e
    return loads(text)
