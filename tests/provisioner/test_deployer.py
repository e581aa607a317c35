"""
Tests for StatementDeployer.

Test Coverage:
    - Deployment order follows `order`, not load order
    - Statements are rendered for the local stack before submission
    - Session exhaustion writes every statement to the fallback directory
    - A transport failure falls back for that statement only
    - A rejected statement stops the batch and carries the partial report
"""

from unittest.mock import Mock

import pytest
import requests

from apps.provisioner.src.domain.models import DeploymentOutcome, Session
from apps.provisioner.src.infra.sql_gateway import SqlGatewayClient
from apps.provisioner.src.service.deployer import StatementDeployer
from libs.errors import (
    DeploymentCancelled,
    GatewayUnreachableError,
    SessionCreationError,
    StatementRejectedError,
)
from libs.retry import RetryPolicy

VARIABLES = {"${INPUT_TOPIC}": "input-events"}


@pytest.fixture
def gateway():
    gateway = Mock(spec=SqlGatewayClient)
    gateway.open_session.return_value = Session("sess-1")
    gateway.submit_statement.return_value = "op"
    return gateway


@pytest.fixture
def deployer(gateway, tmp_path, logger):
    return StatementDeployer(gateway, tmp_path, VARIABLES, logger)


def submitted_names(gateway):
    return [c.args[1] for c in gateway.submit_statement.call_args_list]


class TestDeploy:
    def test_deploys_in_order(self, deployer, gateway, make_statement):
        statements = [make_statement("s3", order=3), make_statement("s1", order=1), make_statement("s2", order=2)]

        report = deployer.deploy(statements)

        assert submitted_names(gateway) == ["s1", "s2", "s3"]
        assert report.order == ["s1", "s2", "s3"]
        assert report.deployed_count == 3
        assert report.succeeded
        gateway.open_session.assert_called_once()

    def test_submits_rendered_sql(self, deployer, gateway, make_statement):
        stmt = make_statement(
            "src",
            "'topic' = '${INPUT_TOPIC}',\n'properties.sasl.mechanism' = 'PLAIN',\n'format' = 'json'",
            order=1,
        )

        deployer.deploy([stmt])

        sql = gateway.submit_statement.call_args.args[2]
        assert sql == "'topic' = 'input-events',\n'format' = 'json'"

    def test_empty_batch_opens_no_session(self, deployer, gateway):
        report = deployer.deploy([])

        assert report.results == []
        gateway.open_session.assert_not_called()

    def test_counts_outcomes(self, gateway, tmp_path, logger, make_statement):
        counter = Mock()
        deployer = StatementDeployer(gateway, tmp_path, VARIABLES, logger, statements_counter=counter)

        deployer.deploy([make_statement("a", order=1)])

        counter.add.assert_called_once_with(1, {"outcome": "deployed-via-session"})


class TestFallback:
    def test_no_session_writes_every_statement(self, deployer, gateway, make_statement, tmp_path):
        gateway.open_session.side_effect = SessionCreationError("gateway down")
        statements = [
            make_statement("02_sink", "INSERT INTO sink SELECT * FROM src", order=2),
            make_statement("01_src", "'topic' = '${INPUT_TOPIC}'", order=1),
        ]

        report = deployer.deploy(statements)

        gateway.submit_statement.assert_not_called()
        assert report.fallback_count == 2
        assert report.succeeded
        assert (tmp_path / "deployed-sql" / "01_src.sql").read_text() == "'topic' = 'input-events'"
        assert (tmp_path / "deployed-sql" / "02_sink.sql").read_text() == "INSERT INTO sink SELECT * FROM src"
        assert report.results[0].fallback_path == str(tmp_path / "deployed-sql" / "01_src.sql")

    def test_transport_failure_falls_back_for_one_statement(self, deployer, gateway, make_statement, tmp_path):
        gateway.submit_statement.side_effect = ["op-1", GatewayUnreachableError("timeout"), "op-3"]
        statements = [make_statement(f"s{i}", order=i) for i in (1, 2, 3)]

        report = deployer.deploy(statements)

        assert [r.outcome for r in report.results] == [
            DeploymentOutcome.DEPLOYED_VIA_SESSION,
            DeploymentOutcome.DEPLOYED_VIA_FALLBACK,
            DeploymentOutcome.DEPLOYED_VIA_SESSION,
        ]
        assert (tmp_path / "deployed-sql" / "s2.sql").exists()
        assert not (tmp_path / "deployed-sql" / "s1.sql").exists()

    def test_custom_fallback_dir(self, gateway, tmp_path, logger, make_statement):
        gateway.open_session.side_effect = SessionCreationError("gateway down")
        deployer = StatementDeployer(gateway, tmp_path, {}, logger, fallback_dir="manual")

        deployer.deploy([make_statement("a", "SELECT 1", order=1)])

        assert (tmp_path / "manual" / "a.sql").read_text() == "SELECT 1"

    def test_unreachable_gateway_end_to_end(self, tmp_path, logger, make_statement):
        http = Mock(spec=requests.Session)
        http.get.side_effect = requests.ConnectionError("refused")
        http.post.side_effect = requests.ConnectionError("refused")
        gateway = SqlGatewayClient(
            "http://gateway:8083",
            logger,
            http=http,
            readiness_timeout_sec=0.0,
            session_policy=RetryPolicy.exponential(max_attempts=2, initial_delay=0.0, cap=0.0),
        )
        deployer = StatementDeployer(gateway, tmp_path, {}, logger)
        statements = [make_statement("a", "SELECT 1", order=1), make_statement("b", "SELECT 2", order=2)]

        report = deployer.deploy(statements)

        assert report.fallback_count == 2
        assert sorted(p.name for p in (tmp_path / "deployed-sql").iterdir()) == ["a.sql", "b.sql"]


class TestRejection:
    def test_rejection_stops_batch_with_partial_report(self, deployer, gateway, make_statement, tmp_path):
        gateway.submit_statement.side_effect = [
            "op-1",
            StatementRejectedError("s2", 400, "parse error"),
        ]
        statements = [make_statement(f"s{i}", order=i) for i in (1, 2, 3)]

        with pytest.raises(StatementRejectedError) as exc_info:
            deployer.deploy(statements)

        assert submitted_names(gateway) == ["s1", "s2"]
        report = exc_info.value.report
        assert report.order == ["s1", "s2"]
        assert report.results[1].outcome is DeploymentOutcome.FAILED
        assert not report.succeeded
        assert not (tmp_path / "deployed-sql").exists()

    def test_cancellation_propagates(self, deployer, gateway, make_statement):
        gateway.open_session.side_effect = DeploymentCancelled("cancelled")

        with pytest.raises(DeploymentCancelled):
            deployer.deploy([make_statement("a", order=1)])

        gateway.submit_statement.assert_not_called()
