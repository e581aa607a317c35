"""
Tests for role -> subject mapping and key schema derivation.
"""

import json

from apps.provisioner.src.domain.schemas import SubjectMapping, build_key_schema
from libs.config import AppConfig

VALUE_SCHEMA = json.dumps(
    {
        "type": "record",
        "name": "OutputResult",
        "namespace": "com.example.pipeline",
        "fields": [
            {"name": "name", "type": "string"},
            {"name": "id", "type": "long"},
            {"name": "score", "type": "double"},
        ],
    }
)


class TestSubjectMapping:
    def test_from_config_uses_topic_names(self):
        mapping = SubjectMapping.from_config(AppConfig(_env_file=None))

        assert mapping.value_subject("input") == "input-events-value"
        assert mapping.value_subject("output") == "output-results-value"
        assert mapping.key_subject("output") == "output-results-key"

    def test_unmapped_role_uses_role_as_base(self):
        mapping = SubjectMapping({"input": "in"})

        assert not mapping.is_mapped("audit")
        assert mapping.value_subject("audit") == "audit-value"

    def test_only_sink_role_gets_key_subject(self):
        mapping = SubjectMapping({"input": "in", "output": "out"}, sink_role="output")

        assert mapping.subjects_for("input") == ["in-value"]
        assert mapping.subjects_for("output") == ["out-value", "out-key"]


class TestBuildKeySchema:
    def test_keeps_namespace_and_declared_type(self):
        key = json.loads(build_key_schema(VALUE_SCHEMA, ["name", "id"]))

        assert key == {
            "type": "record",
            "name": "OutputResultKey",
            "namespace": "com.example.pipeline",
            "fields": [
                {"name": "name", "type": "string"},
                {"name": "id", "type": "long"},
            ],
        }

    def test_missing_field_defaults_to_string(self):
        key = json.loads(build_key_schema(VALUE_SCHEMA, ["tenant"]))

        assert key["fields"] == [{"name": "tenant", "type": "string"}]

    def test_unparseable_value_schema_gets_default_record(self):
        key = json.loads(build_key_schema("not json", ["name"]))

        assert key == {
            "type": "record",
            "name": "OutputResultKey",
            "fields": [{"name": "name", "type": "string"}],
        }
