"""
SQL gateway REST API client.

This client is used by the statement deployer to:
- Wait (best effort) until the gateway answers
- Open one session per deployment batch, with exponential backoff
- Submit SQL statements through that session
"""

from __future__ import annotations

import logging
import threading
import time
from typing import Any, Callable, Optional

import requests
from opentelemetry.metrics import Counter

from apps.provisioner.src.domain.models import Session
from libs.errors import (
    GatewayUnreachableError,
    RetryExhaustedError,
    SessionCreationError,
    StatementRejectedError,
)
from libs.retry import AttemptFailed, RetryPolicy, retry_call

SESSIONS_PATH = "/v1/sessions"

DEFAULT_SESSION_POLICY = RetryPolicy.exponential(max_attempts=6, initial_delay=1.5, cap=20.0)


def parse_session_handle(resp: requests.Response) -> Optional[str]:
    """Read `sessionHandle` from a session-creation response body."""
    try:
        data: Any = resp.json()
    except ValueError:
        return None
    if not isinstance(data, dict):
        return None
    handle = data.get("sessionHandle")
    return handle if isinstance(handle, str) and handle else None


class SqlGatewayClient:
    """
    Thin wrapper around the SQL gateway REST API.
    """

    def __init__(
        self,
        base_url: str,
        logger: logging.Logger,
        session_name: str = "pipestack-deploy-session",
        http: Optional[requests.Session] = None,
        readiness_timeout_sec: float = 8.0,
        readiness_interval_sec: float = 0.75,
        readiness_request_timeout_sec: float = 5.0,
        session_policy: RetryPolicy = DEFAULT_SESSION_POLICY,
        session_request_timeout_sec: float = 10.0,
        statement_timeout_sec: float = 30.0,
        attempts_counter: Optional[Counter] = None,
        sleep: Callable[[float], None] = time.sleep,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        """
        Create a new SqlGatewayClient.

        Args:
            base_url: Base URL for the gateway REST API (e.g. http://localhost:8083).
            logger: Logger instance for structured logging.
            session_name: Logical session name sent on session creation.
            http: requests session used for every call.
            readiness_timeout_sec: Overall budget of the readiness phase.
            readiness_interval_sec: Delay between readiness probes.
            readiness_request_timeout_sec: Timeout of one readiness probe.
            session_policy: Attempt budget and backoff for session creation.
            session_request_timeout_sec: Timeout of one session-creation call.
            statement_timeout_sec: Timeout of one statement submission.
            attempts_counter: Optional counter of session-creation attempts.
            sleep: Sleep function for non-cancellable waits.
            clock: Monotonic clock used for the readiness deadline.
        """
        self._base_url = base_url.rstrip("/")
        self._log = logger
        self._session_name = session_name
        self._http = http or requests.Session()
        self._readiness_timeout = readiness_timeout_sec
        self._readiness_interval = readiness_interval_sec
        self._readiness_request_timeout = readiness_request_timeout_sec
        self._session_policy = session_policy
        self._session_timeout = session_request_timeout_sec
        self._statement_timeout = statement_timeout_sec
        self._attempts_counter = attempts_counter
        self._sleep = sleep
        self._clock = clock

    def _url(self, path: str) -> str:
        return f"{self._base_url}{path}"

    def wait_until_ready(self, cancel_event: Optional[threading.Event] = None) -> bool:
        """
        Poll GET /v1/sessions until it answers 200 or the budget runs out.

        Never raises: a gateway that is still warming up only earns a warning,
        session creation retries on its own afterwards.

        Returns:
            True when the gateway answered 200.
        """
        url = self._url(SESSIONS_PATH)
        deadline = self._clock() + self._readiness_timeout
        last_error = "readiness budget elapsed before first probe"

        while self._clock() < deadline:
            if cancel_event is not None and cancel_event.is_set():
                last_error = "cancelled"
                break
            try:
                resp = self._http.get(url, timeout=self._readiness_request_timeout)
            except requests.RequestException as exc:
                last_error = str(exc)
                self._log.warning("SQL gateway readiness probe failed", extra={"url": url, "error": last_error})
            else:
                if resp.status_code == 200:
                    self._log.info("SQL gateway ready", extra={"url": url})
                    return True
                last_error = f"status {resp.status_code}"
                self._log.debug("SQL gateway not ready yet", extra={"status_code": resp.status_code})

            if cancel_event is not None:
                if cancel_event.wait(self._readiness_interval):
                    last_error = "cancelled"
                    break
            else:
                self._sleep(self._readiness_interval)

        self._log.warning(
            "SQL gateway readiness not confirmed before session attempts",
            extra={"url": url, "error": last_error},
        )
        return False

    def open_session(self, cancel_event: Optional[threading.Event] = None) -> Session:
        """
        Open a session for one deployment batch.

        Args:
            cancel_event: Checked before every attempt and during backoff.

        Returns:
            The session handle.

        Raises:
            SessionCreationError: every attempt failed.
            DeploymentCancelled: cancellation was observed.
        """
        self.wait_until_ready(cancel_event)

        try:
            return retry_call(
                "create sql gateway session",
                self._create_session,
                self._session_policy,
                cancel_event=cancel_event,
                sleep=self._sleep,
            )
        except RetryExhaustedError as exc:
            raise SessionCreationError(str(exc)) from exc

    def _create_session(self, attempt: int) -> Session:
        if self._attempts_counter is not None:
            self._attempts_counter.add(1)

        url = self._url(SESSIONS_PATH)
        payload = {"sessionName": self._session_name, "properties": {}}

        try:
            resp = self._http.post(url, json=payload, timeout=self._session_timeout)
        except requests.RequestException as exc:
            raise AttemptFailed(f"attempt {attempt}: session request failed") from exc

        if resp.status_code != 200:
            raise AttemptFailed(f"attempt {attempt}: non-200 status {resp.status_code}: {resp.text}")

        handle = parse_session_handle(resp)
        if handle is None:
            raise AttemptFailed(f"attempt {attempt}: session handle missing in response: {resp.text}")

        self._log.info("SQL session created", extra={"session_id": handle, "attempt": attempt})
        return Session(id=handle)

    def submit_statement(self, session: Session, name: str, sql: str) -> Optional[str]:
        """
        Submit one statement through an open session.

        Args:
            session: Session returned by open_session().
            name: Statement name, for logs and errors.
            sql: Statement text.

        Returns:
            The gateway's operation handle, if the response carried one.

        Raises:
            GatewayUnreachableError: the request failed at the transport level.
            StatementRejectedError: the gateway answered with status >= 400.
        """
        url = self._url(f"{SESSIONS_PATH}/{session.id}/statements")

        try:
            resp = self._http.post(url, json={"statement": sql}, timeout=self._statement_timeout)
        except requests.RequestException as exc:
            self._log.warning(
                "Statement submission failed at transport level",
                extra={"statement": name, "url": url, "error": str(exc)},
            )
            raise GatewayUnreachableError(f"statement {name!r} could not reach SQL gateway") from exc

        if resp.status_code >= 400:
            self._log.error(
                "Statement rejected by SQL gateway",
                extra={"statement": name, "status_code": resp.status_code, "body": resp.text},
            )
            raise StatementRejectedError(name, resp.status_code, resp.text)

        try:
            data: Any = resp.json()
        except ValueError:
            return None
        return data.get("operationHandle") if isinstance(data, dict) else None
