"""
go-patch pointers.

A pointer addresses a node of a YAML document::

    /                       the whole document
    /key                    map key (must exist)
    /key?                   optional map key, every later token is optional too
    /0, /-1                 array index (negative counts from the end)
    /-                      after the last array element
    /name=value             array element whose ``name`` key equals ``value``
    /0:before, /0:after     insertion around an index (replace only)
    /0:prev, /0:next        neighbour of an index

``~1`` and ``~0`` escape ``/`` and ``~`` inside tokens.
"""

from dataclasses import dataclass
from typing import Optional, Tuple, Union

from ..errors import ParseError

MODIFIERS = ('prev', 'next', 'before', 'after')


@dataclass(frozen=True)
class RootToken:
    pass


@dataclass(frozen=True)
class KeyToken:
    key: str
    optional: bool = False

    def __str__(self) -> str:
        return escape(self.key) + ('?' if self.optional else '')


@dataclass(frozen=True)
class IndexToken:
    index: int
    modifiers: Tuple[str, ...] = ()

    def resolve(self, length: int) -> int:
        """Absolute index after applying negative indexing and prev/next."""
        idx = self.index
        if idx < 0:
            idx += length
        for modifier in self.modifiers:
            if modifier == 'prev':
                idx -= 1
            elif modifier == 'next':
                idx += 1
        return idx

    @property
    def insertion(self) -> Optional[str]:
        for modifier in self.modifiers:
            if modifier in ('before', 'after'):
                return modifier
        return None

    def __str__(self) -> str:
        return ':'.join([str(self.index), *self.modifiers])


@dataclass(frozen=True)
class AfterLastIndexToken:

    def __str__(self) -> str:
        return '-'


@dataclass(frozen=True)
class MatchingIndexToken:
    key: str
    value: str
    optional: bool = False
    modifiers: Tuple[str, ...] = ()

    @property
    def insertion(self) -> Optional[str]:
        for modifier in self.modifiers:
            if modifier in ('before', 'after'):
                return modifier
        return None

    def shift(self, idx: int) -> int:
        for modifier in self.modifiers:
            if modifier == 'prev':
                idx -= 1
            elif modifier == 'next':
                idx += 1
        return idx

    def __str__(self) -> str:
        text = f"{escape(self.key)}={escape(self.value)}"
        if self.modifiers:
            text = ':'.join([text, *self.modifiers])
        return text + ('?' if self.optional else '')


Token = Union[RootToken, KeyToken, IndexToken, AfterLastIndexToken, MatchingIndexToken]


def escape(text: str) -> str:
    return text.replace('~', '~0').replace('/', '~1')


def unescape(text: str) -> str:
    return text.replace('~1', '/').replace('~0', '~')


def _split_modifiers(text: str) -> Tuple[str, Tuple[str, ...]]:
    """Split trailing ``:prev`` style modifiers off a token."""
    parts = text.split(':')
    modifiers = []
    while len(parts) > 1 and parts[-1] in MODIFIERS:
        modifiers.insert(0, parts.pop())
    return ':'.join(parts), tuple(modifiers)


def _parse_int(text: str) -> Optional[int]:
    try:
        return int(text)
    except ValueError:
        return None


@dataclass(frozen=True)
class Pointer:
    """Parsed go-patch pointer, always starting with a RootToken."""
    tokens: Tuple[Token, ...]

    @classmethod
    def parse(cls, text: str) -> 'Pointer':
        """
        Parse a pointer string.

        Raises:
            ParseError: If the pointer is malformed
        """
        if not isinstance(text, str) or not text.startswith('/'):
            raise ParseError(f"expected pointer '{text}' to start with '/'")

        tokens = [RootToken()]
        if text == '/':
            return cls(tuple(tokens))

        raw_tokens = text.split('/')[1:]
        optional = False
        for i, raw in enumerate(raw_tokens):
            is_last = i == len(raw_tokens) - 1
            if not raw:
                raise ParseError(f"expected pointer '{text}' token {i} to be non-empty")

            if raw.endswith('?'):
                raw = raw[:-1]
                optional = True

            if raw == '-':
                if not is_last:
                    raise ParseError(f"expected '-' in pointer '{text}' to be the last token")
                tokens.append(AfterLastIndexToken())
                continue

            body, modifiers = _split_modifiers(raw)
            idx = _parse_int(body)
            if idx is not None:
                tokens.append(IndexToken(idx, modifiers))
                continue

            if '=' in body:
                key, _, value = body.partition('=')
                tokens.append(MatchingIndexToken(unescape(key), unescape(value), optional, modifiers))
                continue

            tokens.append(KeyToken(unescape(raw), optional))

        return cls(tuple(tokens))

    def __str__(self) -> str:
        if len(self.tokens) == 1:
            return '/'
        return '/' + '/'.join(str(t) for t in self.tokens[1:])
