"""
Local rendering of pipeline SQL.

Statements are written once for both cloud and local targets. Before a
local deployment the `${...}` placeholders are filled with in-cluster
addresses and any cloud authentication directive is dropped.
"""

from typing import Dict, Iterable, List, Mapping

from libs.config import AppConfig
from libs.models.artifacts import Statement

INPUT_TOPIC = "${INPUT_TOPIC}"
OUTPUT_TOPIC = "${OUTPUT_TOPIC}"
BOOTSTRAP_SERVERS = "${BOOTSTRAP_SERVERS}"
SCHEMA_REGISTRY_URL = "${SCHEMA_REGISTRY_URL}"

# Upper-cased substrings marking lines that only make sense against a cloud cluster.
AUTH_MARKERS = ("SASL", "SECURITY.PROTOCOL", "BASIC-AUTH")


def local_variables(config: AppConfig) -> Dict[str, str]:
    """Placeholder values for a local compose stack."""
    return {
        INPUT_TOPIC: config.kafka.input_topic,
        OUTPUT_TOPIC: config.kafka.output_topic,
        BOOTSTRAP_SERVERS: config.kafka.internal_bootstrap_servers,
        SCHEMA_REGISTRY_URL: config.schema_registry.internal_url,
    }


def substitute_variables(sql: str, variables: Mapping[str, str]) -> str:
    for placeholder, value in variables.items():
        sql = sql.replace(placeholder, value)
    return sql


def strip_auth_lines(sql: str) -> str:
    """Drop every line carrying an authentication directive (any case)."""
    kept = [
        line
        for line in sql.split("\n")
        if not any(marker in line.upper() for marker in AUTH_MARKERS)
    ]
    return "\n".join(kept)


def prepare_for_local(statement: Statement, variables: Mapping[str, str]) -> Statement:
    """
    Render one statement for a local deployment target.

    Substitution runs before stripping so that auth lines are dropped no
    matter which values they referenced.
    """
    content = strip_auth_lines(substitute_variables(statement.content, variables))
    return statement.model_copy(update={"content": content})


def in_deployment_order(statements: Iterable[Statement]) -> List[Statement]:
    """Sort by `order` ascending; ties keep their load order."""
    return sorted(statements, key=lambda s: s.order)
