"""Tests for go-patch pointers, operations and variable interpolation."""

import pytest
import yaml

from releasedrift.errors import ParseError, RenderError
from releasedrift.template import (
    Pointer,
    Ops,
    ReplaceOp,
    RemoveOp,
    TestOp,
    Template,
    find,
    interpolate,
    ops_from_definitions,
    parse_ops,
    parse_variables,
)
from releasedrift.template.pointer import (
    RootToken,
    KeyToken,
    IndexToken,
    AfterLastIndexToken,
    MatchingIndexToken,
)


def manifest():
    return {
        'name': 'cf',
        'releases': [
            {'name': 'capi', 'version': '1.0'},
            {'name': 'uaa', 'version': '2.0'},
        ],
        'instance_groups': [
            {'name': 'api', 'instances': 2},
        ],
    }


class TestPointer:
    """Tests for Pointer.parse."""

    def test_root(self):
        assert Pointer.parse('/').tokens == (RootToken(),)

    def test_tokens(self):
        """Each token kind is recognized."""
        pointer = Pointer.parse('/releases/name=uaa/version')
        assert pointer.tokens == (
            RootToken(),
            KeyToken('releases'),
            MatchingIndexToken('name', 'uaa'),
            KeyToken('version'),
        )

    def test_optional_is_sticky(self):
        """Tokens after an optional one are optional too."""
        pointer = Pointer.parse('/a?/b')
        assert pointer.tokens[1] == KeyToken('a', optional=True)
        assert pointer.tokens[2] == KeyToken('b', optional=True)

    def test_indexes_and_modifiers(self):
        pointer = Pointer.parse('/list/-1/0:before/-')
        assert pointer.tokens[2] == IndexToken(-1)
        assert pointer.tokens[3] == IndexToken(0, ('before',))
        assert pointer.tokens[4] == AfterLastIndexToken()

    def test_escapes(self):
        """~1 and ~0 decode to / and ~."""
        pointer = Pointer.parse('/a~1b/c~0d')
        assert pointer.tokens[1] == KeyToken('a/b')
        assert pointer.tokens[2] == KeyToken('c~d')
        assert str(pointer) == '/a~1b/c~0d'

    @pytest.mark.parametrize("text", ['', 'name', '/a//b', '/-/a'])
    def test_invalid(self, text):
        with pytest.raises(ParseError):
            Pointer.parse(text)


class TestOperations:
    """Tests for replace, remove and test operations."""

    def test_replace_existing_key(self):
        doc = ReplaceOp(Pointer.parse('/name'), 'cf-prod').apply(manifest())
        assert doc['name'] == 'cf-prod'

    def test_replace_matching_item(self):
        doc = ReplaceOp(Pointer.parse('/releases/name=uaa/version'), '3.0').apply(manifest())
        assert doc['releases'][1] == {'name': 'uaa', 'version': '3.0'}

    def test_replace_append(self):
        """/- appends to an array."""
        doc = ReplaceOp(Pointer.parse('/releases/-'), {'name': 'bpm'}).apply(manifest())
        assert doc['releases'][-1] == {'name': 'bpm'}

    def test_replace_insert_before(self):
        doc = ReplaceOp(Pointer.parse('/releases/0:before'), {'name': 'bpm'}).apply(manifest())
        assert [r['name'] for r in doc['releases']] == ['bpm', 'capi', 'uaa']

    def test_replace_insert_after_matching(self):
        doc = ReplaceOp(Pointer.parse('/releases/name=capi:after'), {'name': 'bpm'}).apply(manifest())
        assert [r['name'] for r in doc['releases']] == ['capi', 'bpm', 'uaa']

    def test_replace_creates_optional_path(self):
        """Missing optional keys are created as maps or arrays."""
        doc = ReplaceOp(Pointer.parse('/features?/flags/-'), 'x').apply(manifest())
        assert doc['features'] == {'flags': ['x']}

    def test_replace_creates_optional_matching_item(self):
        doc = ReplaceOp(Pointer.parse('/releases/name=bpm?/version'), '1.1').apply(manifest())
        assert doc['releases'][-1] == {'name': 'bpm', 'version': '1.1'}

    def test_replace_missing_key_fails(self):
        with pytest.raises(RenderError):
            ReplaceOp(Pointer.parse('/missing/key'), 1).apply(manifest())

    def test_replace_root(self):
        assert ReplaceOp(Pointer.parse('/'), {'a': 1}).apply(manifest()) == {'a': 1}

    def test_replace_value_is_copied(self):
        """Applying the same op twice does not share the value object."""
        op = ReplaceOp(Pointer.parse('/extra?'), {'k': []})
        first = op.apply({})
        first['extra']['k'].append(1)
        assert op.apply({}) == {'extra': {'k': []}}

    def test_remove(self):
        doc = RemoveOp(Pointer.parse('/releases/name=capi')).apply(manifest())
        assert [r['name'] for r in doc['releases']] == ['uaa']

    def test_remove_optional_missing_is_noop(self):
        doc = RemoveOp(Pointer.parse('/releases/name=bpm?')).apply(manifest())
        assert doc == manifest()

    def test_remove_missing_fails(self):
        with pytest.raises(RenderError):
            RemoveOp(Pointer.parse('/releases/name=bpm')).apply(manifest())

    def test_remove_index_out_of_range(self):
        with pytest.raises(RenderError):
            RemoveOp(Pointer.parse('/releases/5')).apply(manifest())

    def test_test_value(self):
        TestOp(Pointer.parse('/name'), 'cf').apply(manifest())
        with pytest.raises(RenderError):
            TestOp(Pointer.parse('/name'), 'other').apply(manifest())

    def test_test_absent(self):
        TestOp(Pointer.parse('/missing'), absent=True).apply(manifest())
        with pytest.raises(RenderError):
            TestOp(Pointer.parse('/name'), absent=True).apply(manifest())

    def test_find_negative_index(self):
        assert find(manifest(), Pointer.parse('/releases/-1/name')) == (True, 'uaa')

    def test_find_optional_missing(self):
        assert find(manifest(), Pointer.parse('/nope?/deeper')) == (False, None)


class TestOpsDefinitions:
    """Tests for ops file parsing."""

    def test_chain_applies_in_order(self):
        ops = parse_ops(b"""
- type: replace
  path: /releases/name=capi/version
  value: "1.1"
- type: remove
  path: /releases/name=uaa
""")
        assert len(ops) == 2
        doc = ops.apply(manifest())
        assert doc['releases'] == [{'name': 'capi', 'version': '1.1'}]

    def test_custom_error_message(self):
        ops = ops_from_definitions([{'type': 'remove', 'path': '/nope', 'error': 'nope is required'}])
        with pytest.raises(RenderError, match='nope is required'):
            ops.apply(manifest())

    def test_empty_file(self):
        assert len(parse_ops(b"")) == 0

    @pytest.mark.parametrize("definitions", [
        {'type': 'replace'},
        [{'type': 'replace', 'path': '/a'}],
        [{'type': 'remove', 'path': '/a', 'value': 1}],
        [{'type': 'test', 'path': '/a'}],
        [{'type': 'test', 'path': '/a', 'value': 1, 'absent': True}],
        [{'type': 'move', 'path': '/a'}],
        [{'type': 'replace', 'value': 1}],
        ['replace'],
    ])
    def test_invalid_definitions(self, definitions):
        with pytest.raises(ParseError):
            ops_from_definitions(definitions)

    def test_invalid_yaml(self):
        with pytest.raises(ParseError):
            parse_ops(b"- type: [unterminated")

    def test_ops_extend(self):
        chain = Ops()
        chain.extend(ops_from_definitions([{'type': 'replace', 'path': '/name', 'value': 'x'}]))
        assert chain.apply(manifest())['name'] == 'x'


class TestVariables:
    """Tests for ((variable)) interpolation."""

    def test_whole_value_keeps_type(self):
        doc, missing = interpolate({'instances': '((count))', 'props': '((props))'},
                                   {'count': 3, 'props': {'a': [1]}})
        assert doc == {'instances': 3, 'props': {'a': [1]}}
        assert missing == set()

    def test_inline_substitution(self):
        doc, _ = interpolate({'url': 'https://api.((domain)):((port))'}, {'domain': 'example.com', 'port': 443})
        assert doc == {'url': 'https://api.example.com:443'}

    def test_inline_non_scalar_fails(self):
        with pytest.raises(RenderError):
            interpolate({'url': 'x-((props))'}, {'props': {'a': 1}})

    def test_dotted_lookup(self):
        doc, _ = interpolate(['((cert.ca))'], {'cert': {'ca': 'PEM'}})
        assert doc == ['PEM']

    def test_missing_variables_are_kept(self):
        doc, missing = interpolate({'a': '((nope))', 'b': 'x-((other))'}, {})
        assert doc == {'a': '((nope))', 'b': 'x-((other))'}
        assert missing == {'nope', 'other'}

    def test_bang_prefix_resolves_name(self):
        doc, _ = interpolate({'a': '((!name))'}, {'name': 'v'})
        assert doc == {'a': 'v'}

    def test_parse_variables(self):
        """Numbers are kept as written."""
        assert parse_variables(b"domain: example.com\nport: 443\nuaa: 1.10\n") == {
            'domain': 'example.com',
            'port': '443',
            'uaa': '1.10',
        }
        assert parse_variables(b"") == {}

    def test_map_key_interpolated_to_map_fails(self):
        with pytest.raises(RenderError, match='invalid map key'):
            interpolate({'((k))': 1}, {'k': {'a': 1}})

    def test_recursive_document_fails(self):
        doc = []
        doc.append(doc)
        with pytest.raises(RenderError):
            interpolate(doc, {})

    def test_parse_variables_not_a_map(self):
        with pytest.raises(ParseError):
            parse_variables(b"- a\n- b\n")


class TestTemplate:
    """Tests for Template.evaluate."""

    def test_ops_then_variables(self):
        """Variables introduced by ops are interpolated too."""
        tpl = Template(b"name: cf\nreleases: []\n")
        ops = ops_from_definitions([
            {'type': 'replace', 'path': '/releases/-', 'value': {'name': 'capi', 'version': '((capi_version))'}},
        ])
        rendered = yaml.safe_load(tpl.evaluate({'capi_version': '1.2'}, ops))
        assert rendered == {'name': 'cf', 'releases': [{'name': 'capi', 'version': '1.2'}]}

    def test_evaluation_does_not_mutate_source(self):
        """A template can be evaluated repeatedly with different ops."""
        tpl = Template(b"name: cf\n")
        tpl.evaluate(None, ops_from_definitions([{'type': 'replace', 'path': '/name', 'value': 'x'}]))
        assert yaml.safe_load(tpl.evaluate()) == {'name': 'cf'}

    def test_invalid_yaml(self):
        with pytest.raises(ParseError):
            Template(b"a: [").evaluate()

    def test_numbers_keep_their_text(self):
        rendered = Template(b"releases:\n- {name: capi, version: 1.10}\n").evaluate()
        assert yaml.safe_load(rendered) == {'releases': [{'name': 'capi', 'version': '1.10'}]}

    def test_recursive_alias(self):
        with pytest.raises(RenderError):
            Template(b"a: &x\n- *x\n").evaluate()

    def test_ops_booleans_are_kept(self):
        """Ops files still read ``absent: true`` as a boolean."""
        ops = parse_ops(b"- type: test\n  path: /missing\n  absent: true\n")
        assert ops.apply(manifest()) == manifest()
