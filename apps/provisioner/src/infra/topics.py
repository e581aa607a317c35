"""
Kafka topic management for the stack provisioner.
"""

from __future__ import annotations

import logging
import time
from typing import Any, Callable, Dict, Iterable, List, Optional

from confluent_kafka import KafkaError, KafkaException
from confluent_kafka.admin import AdminClient, NewTopic
from opentelemetry.metrics import Counter

from libs.errors import RetryExhaustedError, TopicProvisioningError
from libs.retry import AttemptFailed, RetryPolicy, retry_call

logger = logging.getLogger(__name__)

DEFAULT_PARTITIONS = 3
DEFAULT_REPLICATION_FACTOR = 1


def build_admin_config(bootstrap_servers: str, timeout_sec: float = 10.0) -> Dict[str, Any]:
    """
    Admin client configuration with bounded dial and idle timeouts.

    Args:
        bootstrap_servers: Broker list as host:port[,host:port].
        timeout_sec: Connection setup timeout in seconds.
    """
    if "://" in bootstrap_servers:
        bootstrap_servers = bootstrap_servers.split("://", 1)[1]
    return {
        "bootstrap.servers": bootstrap_servers,
        "socket.connection.setup.timeout.ms": int(timeout_sec * 1000),
        "connections.max.idle.ms": 30000,
    }


def _error_code(exc: BaseException) -> Optional[int]:
    err = exc.args[0] if exc.args else None
    return err.code() if isinstance(err, KafkaError) else None


def is_topic_already_exists(exc: BaseException) -> bool:
    if _error_code(exc) == KafkaError.TOPIC_ALREADY_EXISTS:
        return True
    message = str(exc)
    return "already exists" in message or "TOPIC_ALREADY_EXISTS" in message


def is_unknown_topic(exc: BaseException) -> bool:
    if _error_code(exc) == KafkaError.UNKNOWN_TOPIC_OR_PART:
        return True
    message = str(exc)
    return "does not exist" in message or "UNKNOWN_TOPIC_OR_PART" in message


class KafkaTopicProvisioner:
    """
    Idempotent topic creation over the Kafka admin protocol.

    Topics are created in one batch per attempt. Topics that already exist
    count as provisioned, so re-running against a provisioned cluster is a
    no-op. When any topic fails, the whole batch is retried with linear
    backoff (2s, 4s, 6s, ...).
    """

    def __init__(
        self,
        admin: AdminClient,
        partitions: int = DEFAULT_PARTITIONS,
        replication_factor: int = DEFAULT_REPLICATION_FACTOR,
        max_attempts: int = 5,
        backoff_step_sec: float = 2.0,
        request_timeout_sec: float = 10.0,
        attempts_counter: Optional[Counter] = None,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self._admin = admin
        self._partitions = partitions
        self._replication_factor = replication_factor
        self._policy = RetryPolicy.linear(max_attempts, backoff_step_sec)
        self._timeout = request_timeout_sec
        self._attempts_counter = attempts_counter
        self._sleep = sleep

    @classmethod
    def from_bootstrap(cls, bootstrap_servers: str, **kwargs: Any) -> "KafkaTopicProvisioner":
        timeout = kwargs.get("request_timeout_sec", 10.0)
        logger.info("Connecting Kafka admin client.", extra={"bootstrap_servers": bootstrap_servers})
        return cls(AdminClient(build_admin_config(bootstrap_servers, timeout)), **kwargs)

    def ensure_topics(self, topics: Iterable[str]) -> None:
        """
        Ensure every topic exists.

        Raises:
            TopicProvisioningError: the batch still had failures after the
                last attempt.
        """
        ordered = sorted(set(topics))
        if not ordered:
            return

        try:
            retry_call(
                "create kafka topics",
                lambda attempt: self._create_batch(ordered, attempt),
                self._policy,
                sleep=self._sleep,
            )
        except RetryExhaustedError as exc:
            raise TopicProvisioningError(
                f"failed to create topics after {exc.attempts} attempts: {exc.last_error}"
            ) from exc

        logger.info("All Kafka topics provisioned.", extra={"topics": ordered})

    def _create_batch(self, topics: List[str], attempt: int) -> None:
        if self._attempts_counter is not None:
            self._attempts_counter.add(1)

        logger.info(
            "Creating Kafka topics.",
            extra={
                "attempt": attempt,
                "topics": topics,
                "num_partitions": self._partitions,
                "replication_factor": self._replication_factor,
            },
        )

        new_topics = [
            NewTopic(
                topic,
                num_partitions=self._partitions,
                replication_factor=self._replication_factor,
            )
            for topic in topics
        ]

        try:
            futures = self._admin.create_topics(new_topics, request_timeout=self._timeout)
        except KafkaException as exc:
            raise AttemptFailed("create-topics request failed") from exc

        failed: List[str] = []
        last_error: Optional[BaseException] = None
        for topic, future in futures.items():
            try:
                future.result()
                logger.info("Created Kafka topic.", extra={"topic": topic})
            except Exception as exc:  # noqa: BLE001
                if is_topic_already_exists(exc):
                    logger.info("Kafka topic already exists.", extra={"topic": topic})
                    continue
                logger.warning(
                    "Topic creation failed.",
                    extra={"topic": topic, "error": str(exc)},
                )
                failed.append(topic)
                last_error = exc

        if failed:
            raise AttemptFailed(f"topics not created: {', '.join(failed)}") from last_error

    def delete_topics(self, topics: Iterable[str]) -> None:
        """
        Delete topics, treating unknown topics as already deleted.

        Raises:
            TopicProvisioningError: a topic could not be deleted.
        """
        ordered = sorted(set(topics))
        if not ordered:
            return

        futures = self._admin.delete_topics(ordered, request_timeout=self._timeout)
        for topic, future in futures.items():
            try:
                future.result()
                logger.info("Deleted Kafka topic.", extra={"topic": topic})
            except Exception as exc:  # noqa: BLE001
                if is_unknown_topic(exc):
                    logger.info("Kafka topic already deleted.", extra={"topic": topic})
                    continue
                raise TopicProvisioningError(f"failed to delete topic {topic}: {exc}") from exc
