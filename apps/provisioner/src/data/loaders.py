"""
Loaders for the pipeline project's SQL statements and Avro schemas.

Layout of a pipeline project:

    <project_dir>/sql/01_create_source_table.sql
    <project_dir>/sql/02_create_processing.sql
    <project_dir>/schemas/input_event.avsc
    <project_dir>/schemas/output_result.avsc
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, Dict, List

from libs.errors import ArtifactLoadError
from libs.models.artifacts import Schema, Statement

logger = logging.getLogger(__name__)

SQL_DIR = "sql"
SCHEMA_DIR = "schemas"
SCHEMA_SUFFIXES = (".avsc", ".json")
SUPPORTED_SCHEMA_TYPES = ("record", "array", "map")


def clean_sql(sql: str) -> str:
    """Drop blank lines and `--` comments, trimming every remaining line."""
    lines: List[str] = []
    for line in sql.splitlines():
        line = line.strip()
        if not line or line.startswith("--"):
            continue
        if "--" in line:
            line = line[: line.index("--")].strip()
        if line:
            lines.append(line)
    return "\n".join(lines)


class SqlLoader:
    """
    Reads `sql/*.sql`, sorted by file name; `order` is 1-based file position.
    """

    def __init__(self, project_dir: str | Path) -> None:
        self._sql_dir = Path(project_dir) / SQL_DIR

    def load_statements(self) -> List[Statement]:
        if not self._sql_dir.is_dir():
            raise ArtifactLoadError(f"sql directory not found: {self._sql_dir}")

        files = sorted(p for p in self._sql_dir.iterdir() if p.is_file() and p.suffix == ".sql")
        if not files:
            raise ArtifactLoadError(f"no SQL files found in {self._sql_dir}")

        statements: List[Statement] = []
        for order, path in enumerate(files, start=1):
            content = clean_sql(path.read_text(encoding="utf-8"))
            if not content:
                raise ArtifactLoadError(f"SQL file is empty: {path.name}")
            statements.append(
                Statement(name=path.stem, content=content, file_path=str(path), order=order)
            )

        logger.info(
            "Loaded SQL statements.",
            extra={"count": len(statements), "dir": str(self._sql_dir), "statements": [s.name for s in statements]},
        )
        return statements


def schema_role(filename: str) -> str:
    """
    Map a schema file name to its logical role.

    `input_event.avsc` -> "input", `output_result.avsc` -> "output",
    anything else -> the lower-cased stem without `_`/`-`.
    """
    key = Path(filename).stem.lower().replace("_", "").replace("-", "")
    if "input" in key or "event" in key:
        return "input"
    if "output" in key or "result" in key:
        return "output"
    return key


def validate_avro(document: Dict[str, Any]) -> None:
    """Basic structural checks; compatibility is the registry's business."""
    if not document.get("name"):
        raise ValueError("schema must have a name")
    schema_type = document.get("type")
    if not schema_type:
        raise ValueError("schema must have a type")
    if schema_type not in SUPPORTED_SCHEMA_TYPES:
        raise ValueError(f"unsupported schema type: {schema_type}")

    if schema_type == "record":
        fields = document.get("fields") or []
        if not fields:
            raise ValueError("record schema must have fields")
        seen = set()
        for field in fields:
            name = field.get("name") if isinstance(field, dict) else None
            if not name:
                raise ValueError("field must have a name")
            if name in seen:
                raise ValueError(f"duplicate field name: {name}")
            seen.add(name)


class SchemaLoader:
    """
    Reads `schemas/*.avsc|*.json` into role-keyed Schema records.
    """

    def __init__(self, project_dir: str | Path) -> None:
        self._schema_dir = Path(project_dir) / SCHEMA_DIR

    def load_schemas(self) -> Dict[str, Schema]:
        if not self._schema_dir.is_dir():
            raise ArtifactLoadError(f"schemas directory not found: {self._schema_dir}")

        schemas: Dict[str, Schema] = {}
        for path in sorted(self._schema_dir.iterdir()):
            if not path.is_file() or path.suffix not in SCHEMA_SUFFIXES:
                continue

            content = path.read_text(encoding="utf-8")
            try:
                document = json.loads(content)
                if not isinstance(document, dict):
                    raise ValueError("schema document must be a JSON object")
                validate_avro(document)
            except ValueError as exc:
                raise ArtifactLoadError(f"invalid schema {path.name}: {exc}") from exc

            role = schema_role(path.name)
            schemas[role] = Schema(name=role, content=content)

        if not schemas:
            raise ArtifactLoadError(f"no Avro schema files found in {self._schema_dir}")

        logger.info(
            "Loaded Avro schemas.",
            extra={"count": len(schemas), "dir": str(self._schema_dir), "roles": sorted(schemas)},
        )
        return schemas
