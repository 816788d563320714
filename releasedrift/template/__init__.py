"""
Manifest templating for releasedrift.

Implements the subset of the BOSH CLI templating used to render release
manifests: go-patch operations (replace, remove, test) addressed with
go-patch pointers, and ``((variable))`` interpolation.
"""

from .loader import load_manifest, load_text
from .pointer import Pointer
from .patch import Op, Ops, ReplaceOp, RemoveOp, TestOp, find, ops_from_definitions, parse_ops
from .variables import interpolate, parse_variables
from .template import Template

__all__ = [
    'load_manifest',
    'load_text',
    'Pointer',
    'Op',
    'Ops',
    'ReplaceOp',
    'RemoveOp',
    'TestOp',
    'find',
    'ops_from_definitions',
    'parse_ops',
    'interpolate',
    'parse_variables',
    'Template',
]
