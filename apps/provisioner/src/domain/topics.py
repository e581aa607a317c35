"""
Kafka topic naming for the provisioner.

Topics are derived from connector options inside the pipeline's SQL,
e.g. `'topic' = 'transactions'`, plus two fixed defaults.
"""

import re
from enum import Enum
from typing import Iterable, Set

from libs.models.artifacts import Statement

TOPIC_MARKER = "'TOPIC'"
PLACEHOLDER_MARKER = "$"
_TRIM_CHARS = " \t'\"(),;"
_TOPIC_OPTION = re.compile(r"'topic'\s*=\s*'([^']+)'", re.IGNORECASE)


class DefaultTopics(str, Enum):
    """Topics every local stack gets, whatever the SQL references."""

    INPUT = "input-events"
    OUTPUT = "output-results"


def _topic_from_line(line: str) -> str:
    """Return the value assigned on a `'topic' = ...` line, or ''."""
    if TOPIC_MARKER not in line.upper() or "=" not in line:
        return ""
    match = _TOPIC_OPTION.search(line)
    value = match.group(1).strip() if match else line.split("=")[1].strip(_TRIM_CHARS)
    if PLACEHOLDER_MARKER in value:
        return ""
    return value


def extract_topic_names(
    statements: Iterable[Statement],
    defaults: Iterable[str] = (DefaultTopics.INPUT.value, DefaultTopics.OUTPUT.value),
) -> Set[str]:
    """
    Collect every topic referenced by the statements.

    Args:
        statements: Loaded statements, in any order.
        defaults: Topics always included in the result.

    Returns:
        Deduplicated set of topic names. Values still holding an unresolved
        `${...}` placeholder are skipped.
    """
    topics: Set[str] = set(defaults)

    for statement in statements:
        if TOPIC_MARKER not in statement.content.upper():
            continue
        for line in statement.content.splitlines():
            topic = _topic_from_line(line)
            if topic:
                topics.add(topic)

    return topics
