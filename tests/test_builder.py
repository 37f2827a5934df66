"""
Tests for the BrunoQuery Fluent Query Builder

The builder normalizes everything on the way in: whatever is asked of it,
the description it holds is deduplicated and canonical.
"""

import pytest

from brunoquery.builder import BrunoQuery, query
from brunoquery.ir.model import (
    DEFAULT_LIMIT,
    DEFAULT_PAGE,
    Filter,
    FilterGroup,
    PaginationAliases,
    QueryOperator,
    SortDirection,
    SortRule,
)
from brunoquery.ir.validation import BrunoQueryValidationError


class TestBuilderBasics:
    """Test basic builder functionality."""

    def test_empty_builder(self):
        q = query()
        assert q.to_object() == {}
        assert q.to_query_string() == ""
        assert q.limit is None
        assert q.optional is None

    def test_methods_chain(self):
        q = BrunoQuery()
        assert q.add_includes("a") is q
        assert q.set_limit(1) is q
        assert q.where("a", "eq", 1) is q

    def test_get_is_query_string(self):
        q = query().add_includes("a").set_page(2)
        assert q.get() == q.to_query_string() == "includes[]=a&page=2"


class TestIncludes:
    """Test includes."""

    def test_add_appends(self):
        q = query().add_includes("author").add_array_includes(["publisher.books"])
        assert q.includes == ["author", "publisher.books"]

    def test_set_replaces(self):
        q = query().add_includes("a", "b").set_includes("c")
        assert q.includes == ["c"]
        q.set_array_includes([])
        assert q.includes == []


class TestSort:
    """Test sort rules."""

    def test_same_key_replaced_in_place(self):
        q = (
            query()
            .add_sort({"key": "a", "direction": "ASC"}, {"key": "b", "direction": "DESC"})
            .add_sort({"key": "a", "direction": "DESC"})
        )
        assert q.sort == [
            SortRule("a", SortDirection.DESC),
            SortRule("b", SortDirection.DESC),
        ]

    def test_accepts_rules_and_tuples(self):
        q = query().add_array_sort([SortRule("a"), ("b", "desc"), ("c",)])
        assert q.sort == [
            SortRule("a", SortDirection.ASC),
            SortRule("b", SortDirection.DESC),
            SortRule("c", SortDirection.ASC),
        ]

    def test_set_replaces(self):
        q = query().add_sort(("a",)).set_sort(("b",), ("b", "DESC"))
        assert q.sort == [SortRule("b", SortDirection.DESC)]

    def test_missing_key_rejected(self):
        with pytest.raises(BrunoQueryValidationError):
            query().add_sort({"direction": "ASC"})


class TestFilterGroups:
    """Test filter groups."""

    def test_shorthand_normalized(self):
        q = query().add_filter_group({
            "or": True,
            "filters": [
                ["name", QueryOperator.CONTAINS, "John"],
                ["age", QueryOperator.GREATER_THAN, 18, True],
            ],
        })

        assert q.to_object() == {
            "filter_groups": [
                {
                    "or": True,
                    "filters": [
                        {"key": "name", "operator": "ct", "value": "John"},
                        {"key": "age", "operator": "gt", "value": 18, "not": True},
                    ],
                }
            ]
        }

    def test_duplicates_within_group_dropped(self):
        q = query().add_filter_group({
            "filters": [
                {"key": "name", "operator": QueryOperator.CONTAINS, "value": "John"},
                {"key": "name", "operator": QueryOperator.CONTAINS, "value": "John"},
                {"key": "age", "operator": QueryOperator.EQUALS, "value": 25},
            ]
        })
        assert len(q.filter_groups[0].filters) == 2

    def test_groups_kept_separate(self):
        group = {"filters": [["a", "eq", 1]]}
        q = query().add_filter_group(group, group)
        assert len(q.filter_groups) == 2

    def test_set_replaces(self):
        q = query().where("a", "eq", 1).set_filter_group({"filters": [["b", "eq", 2]]})
        assert [g.filters[0].key for g in q.filter_groups] == ["b"]

    def test_where(self):
        q = query().where("status", "in", ["a", "b"], or_=True)
        assert q.filter_groups == [
            FilterGroup(filters=[Filter("status", QueryOperator.IN, ["a", "b"])], or_=True)
        ]

    def test_bad_shorthand_rejected(self):
        with pytest.raises(BrunoQueryValidationError) as exc_info:
            query().add_filter_group({"filters": [["name", "ct"]]})
        assert "3 or 4 elements" in str(exc_info.value)


class TestPagination:
    """Test pagination setters."""

    def test_values_stored(self):
        q = query().set_limit(10).set_offset(0).set_per_page(20).set_page(3)
        assert (q.limit, q.offset, q.per_page, q.page) == (10, 0, 20, 3)

    def test_negative_values_fall_back(self):
        q = query().set_limit(-1).set_per_page(-5).set_page(-1).set_offset(-10)
        assert q.limit == DEFAULT_LIMIT
        assert q.per_page == DEFAULT_LIMIT
        assert q.page == DEFAULT_PAGE
        assert q.offset == DEFAULT_PAGE

    def test_none_removes(self):
        q = query().set_limit(10).set_limit(None)
        assert q.limit is None
        assert q.to_query_string() == ""

    def test_alias_kept_on_description(self):
        q = query().set_limit(10, alias="per_page")
        assert q.description.aliases == PaginationAliases(limit="per_page")


class TestOptional:
    """Test optional parameters."""

    def test_set_replaces(self):
        q = query().set_optional({"a": 1}).set_optional({"b": 2})
        assert q.optional == {"b": 2}

    def test_add_merges_mappings(self):
        q = query().add_optional({"a": 1, "b": 1}).add_optional({"b": 2, "c": 3})
        assert q.optional == {"a": 1, "b": 2, "c": 3}

    def test_add_mapping_to_list(self):
        q = query().set_optional([{"a": 1}]).add_optional({"b": 2})
        assert q.optional == [{"a": 1}, {"b": 2}]

    def test_add_list_to_mapping(self):
        q = query().set_optional({"a": 1}).add_optional([{"b": 2}, {"c": 3}])
        assert q.optional == [{"a": 1}, {"b": 2}, {"c": 3}]

    def test_add_list_to_list(self):
        q = query().add_optional([{"a": 1}]).add_optional([{"b": 2}])
        assert q.optional == [{"a": 1}, {"b": 2}]

    @pytest.mark.parametrize("payload", [
        "text",
        42,
        ["not a mapping"],
        {1: "non-string key"},
        {"a": object()},
        {"a": [{"nested": "mapping"}]},
        [{"user": {"tags": ["a", "b"]}}],
        [{"user": {"address": {"city": "Hanoi"}}}],
    ])
    def test_invalid_payload_rejected(self, payload):
        with pytest.raises(BrunoQueryValidationError):
            query().set_optional(payload)

    def test_list_form_with_flat_nested_values_accepted(self):
        payload = [{"user": {"name": "John", "age": 30}}, {"ids": [1, 2]}]
        assert query().set_optional(payload).optional == payload

    def test_add_rejects_deep_list_form(self):
        """Appending to a list payload applies the list-form rules."""
        q = query().set_optional([{"a": 1}])
        with pytest.raises(BrunoQueryValidationError) as exc_info:
            q.add_optional([{"user": {"tags": ["x"]}}])
        assert "optional[0].user.tags" in str(exc_info.value)
        assert q.optional == [{"a": 1}]

    def test_promotion_to_list_form_checked(self):
        q = query().set_optional({"user": {"address": {"city": "Hanoi"}}})
        with pytest.raises(BrunoQueryValidationError):
            q.add_optional([{"page_size": 10}])
        assert q.optional == {"user": {"address": {"city": "Hanoi"}}}

    def test_payload_copied_in(self):
        payload = {"user": {"name": "John"}}
        q = query().set_optional(payload)
        payload["user"]["name"] = "Jane"
        assert q.optional == {"user": {"name": "John"}}


class TestAccessorsReturnCopies:
    """Test that getters never expose the builder's state."""

    def test_includes(self):
        q = query().add_includes("a")
        q.includes.append("b")
        assert q.includes == ["a"]

    def test_optional(self):
        q = query().set_optional({"user": {"name": "John"}})
        q.optional["user"]["name"] = "Jane"
        assert q.optional == {"user": {"name": "John"}}

    def test_filter_groups(self):
        q = query().where("a", "eq", 1)
        q.filter_groups[0].filters.clear()
        assert len(q.filter_groups[0].filters) == 1


class TestLifecycle:
    """Test reset and clone."""

    def test_reset(self):
        q = (
            query()
            .add_includes("a")
            .add_sort(("b",))
            .where("c", "eq", 1)
            .set_limit(5, alias="per_page")
            .set_optional({"d": 1})
            .reset()
        )
        assert q.to_object() == {}
        assert q.description.aliases == PaginationAliases()

    def test_clone_is_independent(self):
        original = query().add_includes("a").set_optional({"user": {"name": "John"}})
        copy = original.clone()

        copy.add_includes("b").add_optional({"x": 1}).set_limit(10)

        assert original.includes == ["a"]
        assert original.optional == {"user": {"name": "John"}}
        assert original.limit is None
        assert copy.includes == ["a", "b"]

    def test_clone_keeps_aliases(self):
        copy = query().set_page(2, alias="p").clone()
        assert copy.to_query_string() == "p=2"


class TestConstruction:
    """Test classmethod constructors."""

    def test_build(self):
        q = BrunoQuery.build(
            filter_groups=[{"filters": [["age", "gt", 18]]}],
            includes=["author"],
            sort=[{"key": "name", "direction": "ASC"}],
            limit=20,
            page=1,
        )
        assert q.to_query_string() == (
            "includes[]=author"
            "&sort[0][key]=name&sort[0][direction]=ASC"
            "&filter_groups[0][filters][0][key]=age"
            "&filter_groups[0][filters][0][operator]=gt"
            "&filter_groups[0][filters][0][value]=18"
            "&limit=20&page=1"
        )

    def test_build_without_arguments(self):
        assert BrunoQuery.build().to_object() == {}

    def test_parse_is_from_query_string(self):
        q = BrunoQuery.parse("includes[]=user&limit=15")
        assert q.includes == ["user"]
        assert q.limit == 15

    def test_parse_with_aliases(self):
        q = BrunoQuery.from_query_string("p=4", PaginationAliases(page="p"))
        assert q.page == 4
        assert q.to_query_string() == "p=4"
