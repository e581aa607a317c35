"""
Logical mapping from schema roles to Schema Registry subjects.

No I/O happens here; this is pure configuration and schema shaping used by
infra.schema_registry.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Sequence

from libs.config import AppConfig

INPUT_ROLE = "input"
OUTPUT_ROLE = "output"

VALUE_SUFFIX = "-value"
KEY_SUFFIX = "-key"


@dataclass(frozen=True)
class SubjectMapping:
    """
    Role -> topic table used to name subjects.

    A mapped role registers under `<topic>-value`; an unmapped role falls
    back to `<role>-value`. Only `sink_role` additionally gets `<topic>-key`.
    """

    topics_by_role: Mapping[str, str] = field(default_factory=dict)
    sink_role: str = OUTPUT_ROLE

    @classmethod
    def from_config(cls, config: AppConfig, sink_role: str = OUTPUT_ROLE) -> "SubjectMapping":
        return cls(
            topics_by_role={
                INPUT_ROLE: config.kafka.input_topic,
                OUTPUT_ROLE: config.kafka.output_topic,
            },
            sink_role=sink_role,
        )

    def is_mapped(self, role: str) -> bool:
        return role in self.topics_by_role

    def is_sink(self, role: str) -> bool:
        return role == self.sink_role

    def _base(self, role: str) -> str:
        return self.topics_by_role.get(role, role)

    def value_subject(self, role: str) -> str:
        return f"{self._base(role)}{VALUE_SUFFIX}"

    def key_subject(self, role: str) -> str:
        return f"{self._base(role)}{KEY_SUFFIX}"

    def subjects_for(self, role: str) -> List[str]:
        """All subjects a registration of `role` touches, value first."""
        subjects = [self.value_subject(role)]
        if self.is_sink(role):
            subjects.append(self.key_subject(role))
        return subjects


def build_key_schema(value_schema: str, key_fields: Sequence[str]) -> str:
    """
    Derive a minimal Avro key record from a value schema.

    The key record is named `<ValueRecord>Key`, keeps the value namespace,
    and carries only `key_fields`. A key field present in the value schema
    keeps its declared type; a missing one is typed as string.

    Args:
        value_schema: Raw Avro JSON of the value schema.
        key_fields: Names of the key-bearing fields.

    Returns:
        Avro JSON of the key schema.
    """
    try:
        parsed: Any = json.loads(value_schema)
    except json.JSONDecodeError:
        parsed = {}
    if not isinstance(parsed, dict):
        parsed = {}

    declared: Dict[str, Any] = {
        f["name"]: f.get("type", "string")
        for f in parsed.get("fields", [])
        if isinstance(f, dict) and "name" in f
    }

    key: Dict[str, Any] = {
        "type": "record",
        "name": f"{parsed.get('name') or 'OutputResult'}Key",
    }
    if parsed.get("namespace"):
        key["namespace"] = parsed["namespace"]
    key["fields"] = [
        {"name": name, "type": declared.get(name, "string")} for name in key_fields
    ]

    return json.dumps(key, indent=2)
