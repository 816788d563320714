"""
go-patch operations applied to YAML documents.

Ops files are YAML lists of operation definitions::

    - type: replace
      path: /instance_groups/name=api/instances
      value: 3
    - type: remove
      path: /releases/name=unused?
    - type: test
      path: /name
      value: cf

Operations mutate the document they are applied to; values are copied so
the same operation can be applied to several documents.
"""

import copy
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Sequence, Tuple

import yaml

from ..errors import ParseError, RenderError
from .loader import load_text
from .pointer import (
    Pointer,
    Token,
    KeyToken,
    IndexToken,
    AfterLastIndexToken,
    MatchingIndexToken,
)


def _expect_list(obj: Any, pointer: Pointer, depth: int) -> list:
    if not isinstance(obj, list):
        raise RenderError(
            f"expected to find an array at path '{_prefix(pointer, depth)}' but found '{type(obj).__name__}'"
        )
    return obj


def _expect_map(obj: Any, pointer: Pointer, depth: int) -> dict:
    if not isinstance(obj, dict):
        raise RenderError(
            f"expected to find a map at path '{_prefix(pointer, depth)}' but found '{type(obj).__name__}'"
        )
    return obj


def _prefix(pointer: Pointer, depth: int) -> str:
    return str(Pointer(pointer.tokens[:depth + 1]))


def _check_index(idx: int, items: list, pointer: Pointer, depth: int) -> int:
    if idx < 0 or idx >= len(items):
        raise RenderError(
            f"expected to find array index '{idx}' but found array of length '{len(items)}' "
            f"for path '{_prefix(pointer, depth)}'"
        )
    return idx


def _matches(items: list, token: MatchingIndexToken) -> List[int]:
    return [
        i for i, item in enumerate(items)
        if isinstance(item, dict) and token.key in item and str(item[token.key]) == token.value
    ]


def _new_container(next_token: Token) -> Any:
    if isinstance(next_token, (AfterLastIndexToken, MatchingIndexToken, IndexToken)):
        return []
    return {}


def find(doc: Any, pointer: Pointer) -> Tuple[bool, Any]:
    """
    Look up the node addressed by ``pointer``.

    Returns:
        ``(found, value)``; optional tokens that do not match yield
        ``(False, None)`` instead of an error
    """
    obj = doc
    for depth, token in enumerate(pointer.tokens[1:], start=1):
        if isinstance(token, IndexToken):
            items = _expect_list(obj, pointer, depth)
            idx = token.resolve(len(items))
            obj = items[_check_index(idx, items, pointer, depth)]
        elif isinstance(token, AfterLastIndexToken):
            raise RenderError(f"expected not to find after last index token in path '{pointer}'")
        elif isinstance(token, MatchingIndexToken):
            items = _expect_list(obj, pointer, depth)
            found = _matches(items, token)
            if not found and token.optional:
                return False, None
            if len(found) != 1:
                raise RenderError(
                    f"expected to find exactly one matching array item for path '{_prefix(pointer, depth)}' "
                    f"but found {len(found)}"
                )
            idx = token.shift(found[0])
            obj = items[_check_index(idx, items, pointer, depth)]
        elif isinstance(token, KeyToken):
            mapping = _expect_map(obj, pointer, depth)
            if token.key not in mapping:
                if token.optional:
                    return False, None
                raise RenderError(f"expected to find a map key '{token.key}' for path '{_prefix(pointer, depth)}'")
            obj = mapping[token.key]
    return True, obj


class Op:
    """Base class of go-patch operations."""

    def apply(self, doc: Any) -> Any:
        raise NotImplementedError


@dataclass
class ReplaceOp(Op):
    """Replace (or create) the node at ``path`` with ``value``."""
    path: Pointer
    value: Any

    def apply(self, doc: Any) -> Any:
        tokens = self.path.tokens
        value = copy.deepcopy(self.value)
        if len(tokens) == 1:
            return value

        obj = doc
        last = len(tokens) - 1
        for depth in range(1, len(tokens)):
            token = tokens[depth]
            is_last = depth == last

            if isinstance(token, IndexToken):
                items = _expect_list(obj, self.path, depth)
                idx = token.resolve(len(items))
                if is_last and token.insertion:
                    if token.insertion == 'after':
                        idx += 1
                    if idx < 0 or idx > len(items):
                        raise RenderError(
                            f"expected to insert at array index '{idx}' but found array of length "
                            f"'{len(items)}' for path '{_prefix(self.path, depth)}'"
                        )
                    items.insert(idx, value)
                elif is_last:
                    items[_check_index(idx, items, self.path, depth)] = value
                else:
                    obj = items[_check_index(idx, items, self.path, depth)]

            elif isinstance(token, AfterLastIndexToken):
                items = _expect_list(obj, self.path, depth)
                items.append(value)

            elif isinstance(token, MatchingIndexToken):
                items = _expect_list(obj, self.path, depth)
                found = _matches(items, token)
                if not found and token.optional:
                    if is_last:
                        items.append(value)
                    else:
                        created = {token.key: token.value}
                        items.append(created)
                        obj = created
                    continue
                if len(found) != 1:
                    raise RenderError(
                        f"expected to find exactly one matching array item for path "
                        f"'{_prefix(self.path, depth)}' but found {len(found)}"
                    )
                idx = token.shift(found[0])
                if is_last and token.insertion:
                    items.insert(idx + 1 if token.insertion == 'after' else idx, value)
                elif is_last:
                    items[_check_index(idx, items, self.path, depth)] = value
                else:
                    obj = items[_check_index(idx, items, self.path, depth)]

            elif isinstance(token, KeyToken):
                mapping = _expect_map(obj, self.path, depth)
                if is_last:
                    mapping[token.key] = value
                    continue
                if mapping.get(token.key) is None:
                    if token.key not in mapping and not token.optional:
                        raise RenderError(
                            f"expected to find a map key '{token.key}' for path '{_prefix(self.path, depth)}'"
                        )
                    mapping[token.key] = _new_container(tokens[depth + 1])
                obj = mapping[token.key]

        return doc


@dataclass
class RemoveOp(Op):
    """Remove the node at ``path``; optional paths that do not match are ignored."""
    path: Pointer

    def apply(self, doc: Any) -> Any:
        tokens = self.path.tokens
        if len(tokens) == 1:
            raise RenderError("cannot remove entire document")

        obj = doc
        last = len(tokens) - 1
        for depth in range(1, len(tokens)):
            token = tokens[depth]
            is_last = depth == last

            if isinstance(token, IndexToken):
                items = _expect_list(obj, self.path, depth)
                idx = _check_index(token.resolve(len(items)), items, self.path, depth)
                if is_last:
                    del items[idx]
                else:
                    obj = items[idx]

            elif isinstance(token, AfterLastIndexToken):
                raise RenderError(f"expected not to find after last index token in path '{self.path}'")

            elif isinstance(token, MatchingIndexToken):
                items = _expect_list(obj, self.path, depth)
                found = _matches(items, token)
                if not found and token.optional:
                    return doc
                if len(found) != 1:
                    raise RenderError(
                        f"expected to find exactly one matching array item for path "
                        f"'{_prefix(self.path, depth)}' but found {len(found)}"
                    )
                idx = _check_index(token.shift(found[0]), items, self.path, depth)
                if is_last:
                    del items[idx]
                else:
                    obj = items[idx]

            elif isinstance(token, KeyToken):
                mapping = _expect_map(obj, self.path, depth)
                if token.key not in mapping:
                    if token.optional:
                        return doc
                    raise RenderError(
                        f"expected to find a map key '{token.key}' for path '{_prefix(self.path, depth)}'"
                    )
                if is_last:
                    del mapping[token.key]
                else:
                    obj = mapping[token.key]

        return doc


@dataclass
class TestOp(Op):
    """Assert the node at ``path`` equals ``value``, or is absent."""
    __test__ = False  # not a pytest test class

    path: Pointer
    value: Any = None
    absent: bool = False

    def apply(self, doc: Any) -> Any:
        if self.absent:
            try:
                found, _ = find(doc, self.path)
            except RenderError:
                found = False
            if found:
                raise RenderError(f"expected to not find '{self.path}'")
            return doc

        found, value = find(doc, self.path)
        if not found:
            raise RenderError(f"expected to find '{self.path}'")
        if value != self.value:
            raise RenderError(f"found value does not match expected value at '{self.path}'")
        return doc


@dataclass
class DescriptiveErrorOp(Op):
    """Wraps an operation so failures carry the ops file's ``error`` message."""
    op: Op
    message: str

    def apply(self, doc: Any) -> Any:
        try:
            return self.op.apply(doc)
        except RenderError as e:
            raise RenderError(f"{self.message}: {e}") from e


class Ops(Op):
    """Ordered chain of operations, itself an operation."""

    def __init__(self, ops: Optional[Sequence[Op]] = None):
        self.ops: List[Op] = list(ops or [])

    def append(self, op: Op) -> None:
        self.ops.append(op)

    def extend(self, ops: 'Ops') -> None:
        self.ops.extend(ops.ops)

    def apply(self, doc: Any) -> Any:
        for op in self.ops:
            doc = op.apply(doc)
        return doc

    def __len__(self) -> int:
        return len(self.ops)

    def __iter__(self):
        return iter(self.ops)


def op_from_definition(definition: Dict[str, Any], index: int = 0) -> Op:
    """
    Build one operation from its ops-file definition.

    Raises:
        ParseError: If the definition is invalid
    """
    if not isinstance(definition, dict):
        raise ParseError(f"operation {index}: expected a map, found '{type(definition).__name__}'")

    op_type = definition.get('type')
    path = definition.get('path')
    if path is None:
        raise ParseError(f"operation {index}: missing path")
    pointer = Pointer.parse(path)

    if op_type == 'replace':
        if 'value' not in definition:
            raise ParseError(f"operation {index}: replace requires a value")
        op: Op = ReplaceOp(pointer, definition['value'])
    elif op_type == 'remove':
        if 'value' in definition:
            raise ParseError(f"operation {index}: remove cannot specify a value")
        op = RemoveOp(pointer)
    elif op_type == 'test':
        absent = bool(definition.get('absent', False))
        if absent and 'value' in definition:
            raise ParseError(f"operation {index}: test cannot specify both value and absent")
        if not absent and 'value' not in definition:
            raise ParseError(f"operation {index}: test requires a value or absent")
        op = TestOp(pointer, definition.get('value'), absent)
    else:
        raise ParseError(f"operation {index}: unknown operation type '{op_type}'")

    if definition.get('error'):
        op = DescriptiveErrorOp(op, str(definition['error']))
    return op


def ops_from_definitions(definitions: Any) -> Ops:
    """
    Build an operation chain from a decoded ops file.

    Raises:
        ParseError: If the document is not a list of valid definitions
    """
    if definitions is None:
        return Ops()
    if not isinstance(definitions, list):
        raise ParseError(f"expected ops file to be a list, found '{type(definitions).__name__}'")
    return Ops([op_from_definition(d, i) for i, d in enumerate(definitions)])


def parse_ops(content: bytes) -> Ops:
    """
    Parse raw ops file content.

    Raises:
        ParseError: On invalid YAML or invalid definitions
    """
    try:
        definitions = load_text(content)
    except yaml.YAMLError as e:
        raise ParseError(f"invalid ops file: {e}") from e
    return ops_from_definitions(definitions)
