"""
Version formatting for releasedrift.

Turns a raw git reference (``v1.2.3``) into a display version (``1.2.3``)
with the source's match/replace pair. Formatting is best effort: a
reference the pattern does not match is returned unchanged.

Replacement templates use ``$1``, ``${1}`` or ``${name}`` back-references
and ``$$`` for a literal dollar sign. A reference to a group that did not
participate in the match expands to an empty string.
"""

import re
from typing import Dict, Pattern

from ..domain import Formatter

_NAME_RE = re.compile(r'[A-Za-z0-9_]+')


def expand_template(match: 're.Match', template: str) -> str:
    """Expand a ``$``-style replacement template for one regex match."""
    out = []
    i = 0
    while i < len(template):
        char = template[i]
        if char != '$':
            out.append(char)
            i += 1
            continue

        if template.startswith('$$', i):
            out.append('$')
            i += 2
            continue

        if template.startswith('${', i):
            end = template.find('}', i + 2)
            name = template[i + 2:end] if end != -1 else ''
            if end == -1 or not _NAME_RE.fullmatch(name):
                # malformed reference, keep the dollar as raw text
                out.append('$')
                i += 1
                continue
            i = end + 1
        else:
            named = _NAME_RE.match(template, i + 1)
            if not named:
                out.append('$')
                i += 1
                continue
            name = named.group(0)
            i = named.end()

        out.append(_group(match, name))
    return ''.join(out)


def _group(match: 're.Match', name: str) -> str:
    try:
        value = match.group(int(name) if name.isdigit() else name)
    except IndexError:
        # unknown group number or name
        return ''
    return value or ''


class VersionFormatter:
    """
    Applies source formatters to git references.

    Compiled patterns are cached per match expression.

    Example:
        formatter = VersionFormatter()
        formatter.format("v1.2.3", Formatter())   # "1.2.3"
        formatter.format("nightly", Formatter())  # "nightly"
    """

    def __init__(self):
        self._patterns: Dict[str, Pattern] = {}

    def _compile(self, expression: str) -> Pattern:
        pattern = self._patterns.get(expression)
        if pattern is None:
            pattern = re.compile(expression)
            self._patterns[expression] = pattern
        return pattern

    def format(self, ref: str, formatter: Formatter) -> str:
        """Format ``ref``, replacing every match of the formatter's pattern."""
        pattern = self._compile(formatter.match)
        return pattern.sub(lambda m: expand_template(m, formatter.replace), ref)

    def matches(self, ref: str, formatter: Formatter) -> bool:
        """Tell whether the formatter's pattern matches ``ref``."""
        return self._compile(formatter.match).search(ref) is not None
