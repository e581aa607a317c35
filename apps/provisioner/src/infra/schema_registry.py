"""
Schema Registry registration for pipeline Avro schemas.

Every schema registers a value subject derived from its role. The sink
role additionally registers a synthesized key schema so upsert sinks can
serialize their primary key.

This layer performs no retry: the first failed registration aborts the
stage, and callers retry the whole setup if they want to.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, Iterable, List, Sequence

from confluent_kafka.schema_registry import Schema as RegistrySchema
from confluent_kafka.schema_registry import SchemaRegistryClient
from confluent_kafka.schema_registry.error import SchemaRegistryError

from apps.provisioner.src.domain.schemas import SubjectMapping, build_key_schema
from libs.errors import SchemaRegistrationError
from libs.models.artifacts import Schema

logger = logging.getLogger(__name__)

SUBJECT_NOT_FOUND = 40401


def build_registry_config(url: str, timeout_sec: float = 10.0) -> Dict[str, Any]:
    """Registry client configuration with client-side retries disabled."""
    return {
        "url": url,
        "timeout": timeout_sec,
        "max.retries": 0,
    }


class SchemaRegistrar:
    """
    Registers pipeline schemas under role-derived subjects.
    """

    def __init__(
        self,
        client: SchemaRegistryClient,
        mapping: SubjectMapping,
        key_fields: Sequence[str] = ("name",),
    ) -> None:
        self._client = client
        self._mapping = mapping
        self._key_fields = tuple(key_fields)

    @classmethod
    def from_url(
        cls,
        url: str,
        mapping: SubjectMapping,
        key_fields: Sequence[str] = ("name",),
        timeout_sec: float = 10.0,
    ) -> "SchemaRegistrar":
        return cls(SchemaRegistryClient(build_registry_config(url, timeout_sec)), mapping, key_fields)

    def register_schemas(self, schemas: Iterable[Schema]) -> List[str]:
        """
        Register value subjects for every schema, plus the sink key subject.

        Args:
            schemas: Schemas keyed by role through `Schema.name`.

        Returns:
            Subjects registered, in call order.

        Raises:
            SchemaRegistrationError: on the first failed registration.
        """
        registered: List[str] = []

        for schema in sorted(schemas, key=lambda s: s.name):
            if not self._mapping.is_mapped(schema.name):
                logger.warning(
                    "Schema role has no topic mapping; using role as subject base.",
                    extra={"role": schema.name},
                )

            value_subject = self._mapping.value_subject(schema.name)
            self._register(value_subject, schema.content)
            registered.append(value_subject)

            if self._mapping.is_sink(schema.name):
                key_subject = self._mapping.key_subject(schema.name)
                self._register(key_subject, build_key_schema(schema.content, self._key_fields))
                registered.append(key_subject)

        logger.info("Schema registration completed.", extra={"subjects": registered})
        return registered

    def _register(self, subject: str, schema_str: str) -> int:
        try:
            schema_id = self._client.register_schema(subject, RegistrySchema(schema_str, "AVRO"))
        except SchemaRegistryError as exc:
            logger.error(
                "Schema registration rejected.",
                extra={"subject": subject, "status_code": exc.http_status_code, "error": exc.error_message},
            )
            raise SchemaRegistrationError(
                subject, str(exc.error_message), status_code=exc.http_status_code
            ) from exc
        except Exception as exc:  # noqa: BLE001
            logger.error(
                "Schema registration request failed.",
                extra={"subject": subject, "error": str(exc)},
            )
            raise SchemaRegistrationError(subject, str(exc)) from exc

        logger.info(
            "Schema registered successfully.",
            extra={"subject": subject, "schema_id": schema_id},
        )
        return schema_id

    def delete_subjects(self, roles: Iterable[str]) -> List[str]:
        """
        Soft-delete the subjects a registration of `roles` would create.

        Missing subjects count as deleted.

        Returns:
            Subjects that were present and got deleted.
        """
        deleted: List[str] = []
        for role in sorted(roles):
            for subject in self._mapping.subjects_for(role):
                try:
                    self._client.delete_subject(subject)
                except SchemaRegistryError as exc:
                    if exc.error_code == SUBJECT_NOT_FOUND or exc.http_status_code == 404:
                        logger.info("Schema subject already absent.", extra={"subject": subject})
                        continue
                    raise SchemaRegistrationError(
                        subject, f"delete failed: {exc.error_message}", status_code=exc.http_status_code
                    ) from exc
                deleted.append(subject)
                logger.info("Schema subject deleted.", extra={"subject": subject})
        return deleted
