"""Tests for variable scanning and template resolution."""

from __future__ import annotations

import copy

import pytest

from atomic_chain.chaining import (
    extract_variables,
    render_inline,
    resolve_arguments,
    resolve_path,
)
from atomic_chain.core import NO_VAL
from atomic_chain.core.Exceptions import TemplateResolutionError


CONTEXT = {
    "t1": {"count": 5, "files": ["a.py", "b.py"], "meta": {"size": 10}, "empty": None},
    "t2": {"path": "./out.txt", "ok": True},
}


class TestExtractVariables:
    def test_nested_structures_first_appearance_order(self):
        args = {
            "a": "{{t2.path}}",
            "b": ["x {{ t1.count }} y", {"c": "{{t2.path}} and {{t1.files}}"}],
            "n": 3,
        }
        assert extract_variables(args) == ["t2.path", "t1.count", "t1.files"]

    def test_keys_are_not_scanned(self):
        assert extract_variables({"{{t1.count}}": "plain"}) == []

    def test_non_string_scalars(self):
        assert extract_variables(42) == []
        assert extract_variables(None) == []

    def test_plain_string(self):
        assert extract_variables("Found {{t1.count}} files") == ["t1.count"]


class TestResolvePath:
    def test_nested_mapping(self):
        assert resolve_path("t1.meta.size", CONTEXT) == 10

    def test_list_index(self):
        assert resolve_path("t1.files.1", CONTEXT) == "b.py"

    def test_missing_segment(self):
        assert resolve_path("t1.nope", CONTEXT) is NO_VAL
        assert resolve_path("t9.count", CONTEXT) is NO_VAL

    def test_descending_into_scalar(self):
        assert resolve_path("t1.count.value", CONTEXT) is NO_VAL

    def test_index_out_of_range(self):
        assert resolve_path("t1.files.7", CONTEXT) is NO_VAL

    def test_missing_marker_survives_copies(self):
        assert copy.deepcopy({"v": NO_VAL})["v"] is NO_VAL
        assert not NO_VAL

    def test_none_is_a_value(self):
        assert resolve_path("t1.empty", CONTEXT) is None


class TestWholeValueSubstitution:
    def test_number_keeps_type(self):
        assert resolve_arguments("{{t1.count}}", {"t1": {"count": 5}}) == 5

    def test_list_keeps_type(self):
        assert resolve_arguments({"items": "{{t1.files}}"}, CONTEXT) == {"items": ["a.py", "b.py"]}

    def test_bool_keeps_type(self):
        assert resolve_arguments("{{ t2.ok }}", CONTEXT) is True

    def test_unresolved_stays_literal(self):
        assert resolve_arguments({"x": "{{t9.missing}}"}, CONTEXT) == {"x": "{{t9.missing}}"}


class TestInlineInterpolation:
    def test_number_rendered_as_text(self):
        assert resolve_arguments("Found {{t1.count}} files", {"t1": {"count": 5}}) == "Found 5 files"

    def test_multiple_references(self):
        assert resolve_arguments("{{t1.count}} -> {{t2.path}}", CONTEXT) == "5 -> ./out.txt"

    def test_mapping_rendered_as_json(self):
        assert resolve_arguments("meta={{t1.meta}}", CONTEXT) == 'meta={"size": 10}'

    def test_none_rendered_empty(self):
        assert resolve_arguments("v={{t1.empty}}", CONTEXT) == "v="

    def test_unresolved_renders_empty(self):
        assert resolve_arguments("a {{t9.x}} b", CONTEXT) == "a  b"

    def test_result_keys_win_over_dict_methods(self):
        assert resolve_arguments("n={{t3.items}}", {"t3": {"items": 2}}) == "n=2"

    def test_render_error(self):
        with pytest.raises(TemplateResolutionError):
            render_inline("x {{ t1.count | no_such_filter }}", CONTEXT)

    def test_runtime_error_becomes_resolution_error(self):
        with pytest.raises(TemplateResolutionError):
            render_inline("n={{ t1.count / 0 }}", CONTEXT)

    def test_dunder_lookups_render_empty(self):
        assert resolve_arguments("x {{ t1.__class__ }}", CONTEXT) == "x "
        assert resolve_arguments("x {{ t1.__class__.__mro__ }}", CONTEXT) == "x "


class TestShapePreservation:
    def test_containers_and_scalars(self):
        args = {
            "path": "{{t2.path}}",
            "opts": {"n": 3, "flag": False, "tags": ["{{t1.count}}", "static"]},
            "pair": ("{{t1.count}}", None),
        }
        assert resolve_arguments(args, CONTEXT) == {
            "path": "./out.txt",
            "opts": {"n": 3, "flag": False, "tags": [5, "static"]},
            "pair": (5, None),
        }

    def test_strings_without_references_untouched(self):
        text = "literal {braces} and {{ unbalanced"
        assert resolve_arguments(text, CONTEXT) == text

    def test_input_not_mutated(self):
        args = {"a": ["{{t1.count}}"]}
        resolve_arguments(args, CONTEXT)
        assert args == {"a": ["{{t1.count}}"]}
