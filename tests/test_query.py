"""Tests for --query filtering."""

import pytest

from chatwoot_cli.errors import UserInputError
from chatwoot_cli.output.query import QueryError, apply_query, normalize_expression


DOC = {
    "items": [
        {"id": 1, "status": "open", "contact": {"name": "Ann"}},
        {"id": 2, "status": "resolved", "contact": {"name": "Bo"}},
    ],
    "has_more": False,
}


class TestApplyQuery:
    def test_empty_expression_returns_data(self):
        assert apply_query(DOC, "") is DOC

    def test_identity(self):
        assert apply_query(DOC, ".") == DOC

    def test_key(self):
        assert apply_query(DOC, ".has_more") is False

    def test_nested_keys_and_index(self):
        assert apply_query(DOC, ".items[1].contact.name") == "Bo"

    def test_negative_index(self):
        assert apply_query(DOC, ".items[-1].id") == 2

    def test_iterate_and_pipe(self):
        assert apply_query(DOC, ".items[] | .id") == [1, 2]

    def test_select(self):
        assert apply_query(DOC, '.items[] | select(.status == "open") | .id') == 1

    def test_length(self):
        assert apply_query(DOC, ".items | length") == 2

    def test_slice(self):
        assert apply_query(DOC, ".items[-1:] | map(.id)") == [2]

    def test_quoted_key(self):
        assert apply_query({"inbox id": 7}, '.["inbox id"]') == 7

    def test_missing_key_is_null(self):
        assert apply_query(DOC, ".nope") is None

    def test_zero_results_is_null(self):
        assert apply_query({"items": []}, ".items[]") is None

    def test_root_iteration_falls_back_to_items(self):
        assert apply_query(DOC, ".[] | .id") == [1, 2]

    def test_root_iteration_over_list(self):
        assert apply_query([{"id": 5}], ".[].id") == 5


class TestAliases:
    def test_aliases_expand(self):
        assert apply_query({"status": "open", "st": "o"}, ".st") == "open"

    def test_literal_keeps_short_keys(self):
        assert apply_query({"status": "open", "st": "o"}, ".st", literal=True) == "o"

    def test_unknown_names_untouched(self):
        assert apply_query({"title": "x"}, ".title") == "x"

    def test_paths_inside_filters(self):
        assert normalize_expression('.items[] | select(.st == "open") | .nm') == (
            '.items[] | select(.status == "open") | .name'
        )

    def test_strings_comments_and_brackets_preserved(self):
        expression = '.["st"] | "keep .st" # .st\n.ib'
        assert normalize_expression(expression) == '.["st"] | "keep .st" # .st\n.inbox_id'

    def test_variables_and_recursion(self):
        assert normalize_expression(".st as $st | ..ib") == ".status as $st | ..inbox_id"

    def test_shell_escaped_bang(self):
        assert apply_query(DOC, '.items[] | select(.status \\!= "open") | .id') == 2


class TestInvalidQueries:
    @pytest.mark.parametrize("expression", ["nosuchfunction", ".items[0", ".a b", "| ."])
    def test_compile_errors(self, expression):
        with pytest.raises(QueryError, match="invalid query"):
            apply_query(DOC, expression)

    def test_runtime_errors(self):
        with pytest.raises(QueryError, match="query failed"):
            apply_query({"id": 1}, ".id.name")

    def test_is_user_input_error(self):
        assert issubclass(QueryError, UserInputError)
