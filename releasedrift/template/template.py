"""
BOSH manifest template evaluation.

A template is evaluated by applying an operation chain to the decoded
document and then interpolating variables into the result.
"""

import logging
from typing import Any, Mapping, Optional

import yaml

from ..errors import ParseError, RenderError
from .loader import load_text
from .patch import Op
from .variables import interpolate

logger = logging.getLogger(__name__)


class Template:
    """
    A YAML document with ``((variables))`` and go-patch operations.

    Example:
        tpl = Template(manifest_bytes)
        rendered = tpl.evaluate({'system_domain': 'example.com'}, ops)
    """

    def __init__(self, content: bytes):
        self.content = content

    def _load(self) -> Any:
        try:
            return load_text(self.content)
        except yaml.YAMLError as e:
            raise ParseError(f"invalid manifest template: {e}") from e

    def evaluate(self, variables: Optional[Mapping[str, Any]] = None, ops: Optional[Op] = None) -> bytes:
        """
        Evaluate the template.

        Args:
            variables: Variables to interpolate (unknown placeholders are kept)
            ops: Operation (or chain) applied before interpolation

        Returns:
            Rendered YAML document

        Raises:
            ParseError: If the template is not valid YAML
            RenderError: If an operation or an interpolation fails
        """
        doc = self._load()
        if ops is not None:
            doc = ops.apply(doc)

        doc, missing = interpolate(doc, variables)
        if missing:
            logger.debug(f"unresolved variables left in template: {', '.join(sorted(missing))}")

        try:
            return yaml.safe_dump(doc, default_flow_style=False, sort_keys=False).encode('utf-8')
        except yaml.YAMLError as e:
            raise RenderError(f"unable to serialize rendered template: {e}") from e
