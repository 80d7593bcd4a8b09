"""
Tests for the bdo command-line client.
"""
from unittest.mock import MagicMock, patch

import pytest
from click.testing import CliRunner

from betterdoit.cli import cli


@pytest.fixture
def runner():
    """Create CLI test runner."""
    return CliRunner()


@pytest.fixture
def mock_env(monkeypatch):
    """Set up environment variables for testing."""
    monkeypatch.setenv("BETTERDOIT_URL", "http://localhost:8004")
    monkeypatch.setenv("BETTERDOIT_TOKEN", "user-1.signature")


def mock_client(status_code=200, payload=None):
    client = MagicMock()
    response = MagicMock()
    response.status_code = status_code
    response.content = b"{}"
    response.json.return_value = payload if payload is not None else {}
    client.request.return_value = response
    client.__enter__.return_value = client
    client.__exit__.return_value = None
    return client


TASK = {
    "id": "t1",
    "title": "Write report",
    "isCompleted": False,
    "isActive": True,
    "sortOrder": 1000,
}


def test_list_tasks(runner, mock_env):
    overview = {
        "activeTasks": [dict(TASK, age={"daysOld": 9, "category": "aging"})],
        "masterTasks": [dict(TASK, id="t2", title="Backlog item", isActive=False)],
        "completedTasks": [],
        "completedThisWeek": 4,
        "completedLastWeek": 6,
    }
    client = mock_client(payload=overview)
    with patch("betterdoit.cli.HTTPClientAdapterFactory.create_client", return_value=client):
        result = runner.invoke(cli, ["list"])

    assert result.exit_code == 0, result.output
    assert "Write report" in result.output
    assert "9d aging" in result.output
    assert "Backlog item" in result.output
    assert "Completed this week: 4" in result.output
    assert "Completed last week: 6" in result.output
    method, url = client.request.call_args.args
    assert (method, url) == ("GET", "http://localhost:8004/api/tasks")
    assert client.request.call_args.kwargs["headers"]["Authorization"] == "Bearer user-1.signature"


def test_add_task(runner, mock_env):
    client = mock_client(201, TASK)
    with patch("betterdoit.cli.HTTPClientAdapterFactory.create_client", return_value=client):
        result = runner.invoke(cli, ["add", "Write report", "--active"])

    assert result.exit_code == 0, result.output
    assert client.request.call_args.kwargs["json"] == {"title": "Write report", "isActive": True}


@pytest.mark.parametrize("command,body", [
    ("complete", {"isCompleted": True}),
    ("reopen", {"isCompleted": False}),
    ("activate", {"isActive": True}),
    ("deactivate", {"isActive": False}),
])
def test_patch_commands(runner, mock_env, command, body):
    client = mock_client(payload=TASK)
    with patch("betterdoit.cli.HTTPClientAdapterFactory.create_client", return_value=client):
        result = runner.invoke(cli, [command, "t1"])

    assert result.exit_code == 0, result.output
    assert client.request.call_args.args == ("PATCH", "http://localhost:8004/api/tasks/t1")
    assert client.request.call_args.kwargs["json"] == body


def test_move(runner, mock_env):
    client = mock_client(payload=TASK)
    with patch("betterdoit.cli.HTTPClientAdapterFactory.create_client", return_value=client):
        result = runner.invoke(cli, ["move", "t1", "--to", "master", "--index", "2"])

    assert result.exit_code == 0, result.output
    assert client.request.call_args.kwargs["json"] == {"isActive": False, "index": 2}


def test_delete_requires_confirmation(runner, mock_env):
    client = mock_client(payload={"success": True})
    with patch("betterdoit.cli.HTTPClientAdapterFactory.create_client", return_value=client):
        aborted = runner.invoke(cli, ["delete", "t1"], input="n\n")
        assert aborted.exit_code != 0
        client.request.assert_not_called()

        result = runner.invoke(cli, ["delete", "t1", "--yes"])
    assert result.exit_code == 0, result.output
    assert client.request.call_args.args == ("DELETE", "http://localhost:8004/api/tasks/t1")


def test_rebalance(runner, mock_env):
    client = mock_client(payload={"activeTasksFixed": 2, "masterTasksFixed": 5})
    with patch("betterdoit.cli.HTTPClientAdapterFactory.create_client", return_value=client):
        result = runner.invoke(cli, ["rebalance"])

    assert result.exit_code == 0, result.output
    assert "2 active and 5 master" in result.output


def test_error_response_exits_nonzero(runner, mock_env):
    client = mock_client(404, {"error": "TaskNotFoundError", "message": "Task with ID 't9' not found"})
    with patch("betterdoit.cli.HTTPClientAdapterFactory.create_client", return_value=client):
        result = runner.invoke(cli, ["complete", "t9"])

    assert result.exit_code == 1
    assert "Error 404" in result.output
    assert "not found" in result.output
