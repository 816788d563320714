"""
Variable interpolation for BOSH manifests.

``((name))`` placeholders are resolved against a variables mapping:
- a placeholder spanning a whole value is replaced by the variable, keeping
  its type (maps and lists included)
- placeholders inside a longer string only accept string or number values
- ``((name.key.sub))`` descends into a map variable
- ``((!name))`` resolves ``name``; the ``!`` marker is dropped

Evaluation is non-strict: unknown variables are left untouched.
"""

import re
from typing import Any, Dict, Mapping, Optional, Set, Tuple

import yaml

from ..errors import ParseError, RenderError
from .loader import load_text

VARIABLE_RE = re.compile(r'\(\((!?[-/\.\w]+)\)\)')

_MISSING = object()


def parse_variables(content: bytes) -> Dict[str, Any]:
    """
    Parse a variables file into a static key/value mapping.

    Raises:
        ParseError: On invalid YAML or a document that is not a map
    """
    try:
        data = load_text(content)
    except yaml.YAMLError as e:
        raise ParseError(f"invalid variables file: {e}") from e
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ParseError(f"expected variables file to be a map, found '{type(data).__name__}'")
    return {str(k): v for k, v in data.items()}


class VariableResolver:
    """Resolves placeholders against a mapping and records unresolved names."""

    def __init__(self, variables: Optional[Mapping[str, Any]] = None):
        self.variables = dict(variables or {})
        self.missing: Set[str] = set()

    def lookup(self, name: str) -> Any:
        """Value of variable ``name`` (dotted path allowed), or the missing sentinel."""
        name = name.lstrip('!')
        head, *keys = name.split('.')
        if head not in self.variables:
            self.missing.add(name)
            return _MISSING
        value = self.variables[head]
        for key in keys:
            if not isinstance(value, dict) or key not in value:
                self.missing.add(name)
                return _MISSING
            value = value[key]
        return value

    def interpolate(self, obj: Any) -> Any:
        """Return a copy of ``obj`` with every resolvable placeholder replaced."""
        if isinstance(obj, dict):
            result = {}
            for key, value in obj.items():
                new_key = self.interpolate(key)
                if isinstance(new_key, (dict, list)):
                    raise RenderError(
                        f"invalid map key '{key}': interpolates to a '{type(new_key).__name__}'"
                    )
                result[new_key] = self.interpolate(value)
            return result
        if isinstance(obj, list):
            return [self.interpolate(item) for item in obj]
        if isinstance(obj, str):
            return self._interpolate_string(obj)
        return obj

    def _interpolate_string(self, text: str) -> Any:
        whole = VARIABLE_RE.fullmatch(text)
        if whole:
            value = self.lookup(whole.group(1))
            return text if value is _MISSING else value

        def substitute(match: 're.Match') -> str:
            value = self.lookup(match.group(1))
            if value is _MISSING:
                return match.group(0)
            if isinstance(value, bool) or not isinstance(value, (str, int, float)):
                raise RenderError(
                    f"invalid type '{type(value).__name__}' for variable '{match.group(1)}': "
                    f"only strings and numbers can be interpolated within a string"
                )
            return str(value)

        return VARIABLE_RE.sub(substitute, text)


def interpolate(obj: Any, variables: Optional[Mapping[str, Any]] = None) -> Tuple[Any, Set[str]]:
    """
    Interpolate ``variables`` into ``obj``.

    Returns:
        The interpolated copy and the set of unresolved variable names
    """
    resolver = VariableResolver(variables)
    try:
        return resolver.interpolate(obj), resolver.missing
    except RecursionError as e:
        raise RenderError("unable to interpolate a recursive document") from e
