import pytest

from welore_node.config import DEFAULT_SCHEMA_PATH
from welore_node.errors import MappingResolutionError, OperationNotFoundError, SchemaLoadError
from welore_node.mapping import EXCLUDED_RESOURCE_SUFFIXES, MappingEngine, resource_name
from welore_node.models import ParamFieldSpec, ResolvedMapping
from welore_node.schema import SchemaLoader

ORIGIN = "https://api.welore.test"


def _field(name, location="body", description=""):
    return ParamFieldSpec(
        name=name,
        type="string",
        required=False,
        default="",
        description=description,
        location=location,
    )


class TestResourceName:
    def test_segment_two_is_the_resource(self):
        assert resource_name("/api/{account}/widgets/{id}") == "widgets"

    def test_manager_paths_use_segment_three(self):
        assert resource_name("/api/{account}/manager/tags") == "tags"

    def test_bare_manager_path_is_its_own_resource(self):
        assert resource_name("/api/{account}/manager") == "manager"

    def test_short_paths_have_no_resource(self):
        assert resource_name("/health") is None
        assert resource_name("/api/status") is None


class TestExtractResources:
    def test_resources_in_first_seen_order(self, engine):
        resources = engine.extract_resources()
        assert [r.value for r in resources] == ["widgets", "tags", "manager", "reports", "gadgets"]

    def test_labels_are_capitalised(self, engine):
        labels = {r.value: r.name for r in engine.extract_resources()}
        assert labels["tags"] == "Tags"
        assert labels["widgets"] == "Widgets"

    def test_no_duplicates_and_no_excluded_suffixes(self, engine):
        values = [r.value for r in engine.extract_resources()]
        assert len(values) == len(set(values))
        assert not any(value.endswith(EXCLUDED_RESOURCE_SUFFIXES) for value in values)
        assert "gadgetsupload" not in values


class TestExtractOperations:
    def test_widget_operations(self, engine):
        operations = engine.extract_operations("widgets")
        assert [op.value for op in operations] == [
            "getWidget",
            "updateWidget",
            "get__api_{account}_widgets",
            "createWidget",
            "downloadWidgets",
        ]

    def test_labels_fall_back_to_method_and_path(self, engine):
        labels = {op.value: op.name for op in engine.extract_operations("widgets")}
        assert labels["getWidget"] == "Get a widget"
        assert labels["get__api_{account}_widgets"] == "List widgets"
        assert labels["createWidget"] == "POST /api/{account}/widgets"

    def test_only_paths_with_resource_prefix_are_included(self, engine):
        engine.extract_operations("tags")
        records = engine._operations["tags"]
        prefixes = ("/api/{account}/tags", "/api/{account}/manager/tags")
        assert records
        assert all(record.path.startswith(prefixes) for record in records.values())
        assert "getWidget" not in records

    def test_prefix_match_is_literal(self, engine):
        values = [op.value for op in engine.extract_operations("gadgets")]
        assert values == ["listGadgets", "uploadGadgets"]

    def test_unknown_resource_has_no_operations(self, engine):
        assert engine.extract_operations("nothing") == []

    def test_cache_entry_is_overwritten(self, engine):
        engine.extract_operations("widgets")
        first = engine._operations["widgets"]
        engine.extract_operations("widgets")
        assert engine._operations["widgets"] is not first
        assert engine._operations["widgets"] == first


class TestGenerateProperties:
    def test_path_and_query_before_body(self, engine):
        engine.extract_operations("widgets")
        fields = engine.generate_properties("widgets", "updateWidget")

        assert [f.name for f in fields] == ["id", "notify", "label", "weight", "size"]
        assert [f.location for f in fields] == ["path", "query", "body", "body", "body"]

    def test_field_details(self, engine):
        engine.extract_operations("widgets")
        fields = {f.name: f for f in engine.generate_properties("widgets", "updateWidget")}

        assert fields["id"].required is True
        assert fields["id"].default == ""
        assert fields["label"].required is True
        assert fields["label"].description == "Widget label"
        assert fields["weight"].type == "number"
        assert fields["weight"].default == 1.5
        assert fields["weight"].required is False
        assert fields["size"].options == ("small", "large")

    def test_integer_query_parameter_is_number(self, engine):
        engine.extract_operations("widgets")
        (limit,) = engine.generate_properties("widgets", "get__api_{account}_widgets")
        assert limit.type == "number"
        assert limit.default == 10

    def test_operation_without_parameters(self, engine):
        engine.extract_operations("tags")
        assert engine.generate_properties("tags", "get__api_{account}_manager_tags") == []

    def test_declared_account_path_parameter_is_not_a_field(self, engine):
        fields = engine.generate_properties("gadgets", "listGadgets")
        assert [(f.name, f.location) for f in fields] == [("color", "query")]

    def test_packaged_schema_offers_no_account_field(self):
        engine = MappingEngine(SchemaLoader(DEFAULT_SCHEMA_PATH), ORIGIN)
        fields = engine.generate_properties("tags", "getTag")
        assert [f.name for f in fields] == ["id"]

    def test_unknown_operation_raises(self, engine):
        engine.extract_operations("widgets")
        with pytest.raises(OperationNotFoundError):
            engine.generate_properties("widgets", "nope")

    def test_missing_cache_entry_is_rebuilt(self, engine):
        fields = engine.generate_properties("widgets", "getWidget")
        assert [f.name for f in fields] == ["id"]

    def test_output_is_deterministic(self, engine):
        first = engine.generate_properties("widgets", "updateWidget")
        second = engine.generate_properties("widgets", "updateWidget")
        assert first == second


class TestResolveMapping:
    def test_path_parameters_become_placeholders(self, engine):
        mapping = engine.resolve_mapping("widgets", "getWidget", "acme")

        assert mapping.method == "GET"
        assert mapping.url == f"{ORIGIN}/api/acme/widgets/{{{{$parameter.id}}}}"
        assert [p.name for p in mapping.properties] == ["id"]

    def test_manager_tags_scenario(self, engine):
        resources = engine.extract_resources()
        assert any(r.name == "Tags" and r.value == "tags" for r in resources)

        operations = engine.extract_operations("tags")
        list_tags = [op for op in operations if op.name == "List tags"]
        assert len(list_tags) == 1

        mapping = engine.resolve_mapping("tags", list_tags[0].value, "acme")
        assert mapping.method == "GET"
        assert mapping.url == f"{ORIGIN}/api/acme/manager/tags"

        request = engine.finalize_request(mapping, [])
        assert request.query is None
        assert request.body is None

    def test_misspelt_account_placeholder_is_substituted(self, engine):
        mapping = engine.resolve_mapping("reports", "accountSummary", "acme")
        assert mapping.url == f"{ORIGIN}/api/acme/manager/reports/acme/summary"

    def test_cache_built_for_other_resource_is_rebuilt(self, engine):
        engine.extract_operations("tags")
        mapping = engine.resolve_mapping("widgets", "createWidget", "acme")
        assert mapping.method == "POST"
        assert "widgets" in engine._operations

    def test_unknown_operation_raises_operation_not_found(self, engine):
        with pytest.raises(OperationNotFoundError) as excinfo:
            engine.resolve_mapping("widgets", "doesNotExist", "acme")
        assert isinstance(excinfo.value, MappingResolutionError)
        assert excinfo.value.operation_id == "doesNotExist"

    def test_schema_failure_is_wrapped(self, tmp_path):
        engine = MappingEngine(SchemaLoader(tmp_path / "missing.yaml"), ORIGIN)
        with pytest.raises(MappingResolutionError) as excinfo:
            engine.resolve_mapping("widgets", "getWidget", "acme")
        assert isinstance(excinfo.value.__cause__, SchemaLoadError)

    def test_origin_trailing_slash_is_trimmed(self, loader):
        engine = MappingEngine(loader, ORIGIN + "/")
        mapping = engine.resolve_mapping("tags", "listTagMembers", "acme")
        assert mapping.url == f"{ORIGIN}/api/acme/manager/tags/{{{{$parameter.tagId}}}}/members"


class TestFinalizeRequest:
    def test_round_trip_path_parameter(self, engine):
        mapping = engine.resolve_mapping("widgets", "getWidget", "acme")
        request = engine.finalize_request(mapping, [{"name": "id", "value": "42"}])

        assert request.url == f"{ORIGIN}/api/acme/widgets/42"
        assert request.query is None
        assert request.body is None
        assert request.as_dict() == {"method": "GET", "url": f"{ORIGIN}/api/acme/widgets/42"}

    def test_values_are_routed_to_path_query_and_body(self, engine):
        mapping = engine.resolve_mapping("widgets", "updateWidget", "acme")
        request = engine.finalize_request(
            mapping,
            [
                {"name": "id", "value": "7"},
                {"name": "notify", "value": "yes"},
                {"name": "label", "value": "Blue"},
                {"name": "weight", "value": 3},
            ],
        )

        assert request.method == "PUT"
        assert request.url == f"{ORIGIN}/api/acme/widgets/7"
        assert request.query == {"notify": "yes"}
        assert request.body == {"label": "Blue", "weight": 3}

    def test_search_query_name_goes_to_query(self, engine):
        mapping = engine.resolve_mapping("tags", "addTagMember", "acme")
        request = engine.finalize_request(
            mapping,
            [
                {"name": "tagId", "value": 3},
                {"name": "searchQuery", "value": "ann"},
                {"name": "member", "value": "ann@example.com"},
            ],
        )

        assert request.url == f"{ORIGIN}/api/acme/manager/tags/3/members"
        assert request.query == {"searchQuery": "ann"}
        assert request.body == {"member": "ann@example.com"}

    def test_unknown_names_are_skipped(self, engine):
        mapping = engine.resolve_mapping("widgets", "getWidget", "acme")
        request = engine.finalize_request(
            mapping, [{"name": "id", "value": "1"}, {"name": "extra", "value": "x"}]
        )
        assert request.query is None
        assert request.body is None

    def test_declared_query_location_goes_to_query(self, engine):
        mapping = engine.resolve_mapping("widgets", "get__api_{account}_widgets", "acme")
        request = engine.finalize_request(mapping, [{"name": "limit", "value": 5}])
        assert request.query == {"limit": 5}

    def test_description_hint_routes_to_query(self, engine):
        mapping = ResolvedMapping(
            method="POST",
            url=f"{ORIGIN}/api/acme/things",
            properties=(
                _field("filter", description="Applied as in: query"),
                _field("term", description="A Query Parameter"),
                _field("name"),
            ),
        )
        request = engine.finalize_request(
            mapping,
            [
                {"name": "filter", "value": "a"},
                {"name": "term", "value": "b"},
                {"name": "name", "value": "c"},
            ],
        )
        assert request.query == {"filter": "a", "term": "b"}
        assert request.body == {"name": "c"}

    def test_account_value_is_not_sent_as_body_or_query(self, engine):
        mapping = engine.resolve_mapping("gadgets", "listGadgets", "acme")
        request = engine.finalize_request(
            mapping,
            [{"name": "account", "value": "other"}, {"name": "color", "value": "red"}],
        )
        assert request.url == f"{ORIGIN}/api/acme/gadgets"
        assert request.query == {"color": "red"}
        assert request.body is None

    def test_repeated_name_after_path_substitution(self, engine):
        mapping = engine.resolve_mapping("widgets", "getWidget", "acme")
        request = engine.finalize_request(
            mapping, [{"name": "id", "value": "1"}, {"name": "id", "value": "2"}]
        )
        assert request.url == f"{ORIGIN}/api/acme/widgets/1"
        assert request.body == {"id": "2"}

    def test_mapping_is_reusable_across_items(self, engine):
        mapping = engine.resolve_mapping("widgets", "getWidget", "acme")
        first = engine.finalize_request(mapping, [{"name": "id", "value": "1"}])
        second = engine.finalize_request(mapping, [{"name": "id", "value": "2"}])
        assert first.url.endswith("/widgets/1")
        assert second.url.endswith("/widgets/2")
