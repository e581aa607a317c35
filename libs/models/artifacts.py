"""
Declarative pipeline artifacts handed to the provisioner.

Loaders produce these records; provisioning stages only read them.
"""

from pydantic import BaseModel, ConfigDict


class Statement(BaseModel):
    """
    One SQL statement of a pipeline.

    `order` defines the deployment sequence (ascending). Records are frozen;
    stages that rewrite SQL return a copy via `model_copy(update=...)`.
    """

    model_config = ConfigDict(frozen=True)

    name: str
    content: str
    file_path: str = ""
    order: int = 0


class Schema(BaseModel):
    """
    Raw Avro schema document keyed by its logical role.

    `name` is a role such as "input" or "output", not a record name. It is
    resolved to a Schema Registry subject by `SubjectMapping`.
    """

    model_config = ConfigDict(frozen=True)

    name: str
    content: str
