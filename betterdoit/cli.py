#!/usr/bin/env python3
"""
Command-line client for the Better Do It HTTP API.
"""
import json
import os
import sys
from typing import Any, Dict, Optional

import click

from betterdoit.adapters import HTTPClientAdapterFactory, HTTPResponse, RequestError

SUPPORTED_METHODS = ("GET", "POST", "PATCH", "DELETE")


def get_service_url() -> str:
    """Get service URL from environment or default."""
    return os.getenv("BETTERDOIT_URL", "http://localhost:8000")


def get_session_token() -> Optional[str]:
    """Get session token from environment."""
    return os.getenv("BETTERDOIT_TOKEN")


def make_request(
    method: str,
    endpoint: str,
    token: Optional[str] = None,
    base_url: Optional[str] = None,
    **kwargs
) -> HTTPResponse:
    """Make an HTTP request to the service, exiting with an error message on failure."""
    method = method.upper()
    if method not in SUPPORTED_METHODS:
        raise ValueError(f"Unsupported method: {method}")

    base_url = base_url or get_service_url()
    url = f"{base_url.rstrip('/')}/{endpoint.lstrip('/')}"

    headers = kwargs.pop("headers", {})
    if token:
        headers["Authorization"] = f"Bearer {token}"

    with HTTPClientAdapterFactory.create_client(timeout=30.0) as client:
        try:
            response = client.request(method, url, headers=headers, **kwargs)
        except RequestError as e:
            click.echo(f"Error: could not reach {base_url}: {e}", err=True)
            sys.exit(1)

    if response.status_code >= 400:
        try:
            error_data = response.json() if response.content else {}
        except ValueError:
            error_data = {}
        message = error_data.get("message") or error_data.get("error") or "Unknown error"
        click.echo(f"Error {response.status_code}: {message}", err=True)
        sys.exit(1)
    return response


def format_task(task: Dict[str, Any]) -> str:
    """Format one task as a single line."""
    mark = "x" if task.get("isCompleted") else " "
    line = f"[{mark}] {task['title']}  ({task['id']})"
    age = task.get("age")
    if age:
        line += f"  {age['daysOld']}d {age['category']}"
    return line


def format_json(data: Any) -> str:
    """Format data as JSON."""
    return json.dumps(data, indent=2, default=str)


@click.group()
@click.option('--url', envvar='BETTERDOIT_URL', default=None,
              help='Service URL (default: http://localhost:8000)')
@click.option('--token', envvar='BETTERDOIT_TOKEN', default=None,
              help='Session token for authentication')
@click.pass_context
def cli(ctx, url, token):
    """Better Do It command-line client."""
    ctx.ensure_object(dict)
    ctx.obj['url'] = url or get_service_url()
    ctx.obj['token'] = token or get_session_token()


def _call(ctx, method: str, endpoint: str, **kwargs) -> Any:
    response = make_request(method, endpoint, token=ctx.obj['token'], base_url=ctx.obj['url'], **kwargs)
    return response.json()


@cli.command(name="list")
@click.option('--format', 'output_format', type=click.Choice(['table', 'json']),
              default='table', help='Output format')
@click.pass_context
def list_tasks(ctx, output_format):
    """Show active and master tasks."""
    data = _call(ctx, 'GET', '/api/tasks')
    if output_format == 'json':
        click.echo(format_json(data))
        return

    click.echo(f"Active ({len(data['activeTasks'])}):")
    for task in data['activeTasks']:
        click.echo(f"  {format_task(task)}")
    click.echo(f"Master ({len(data['masterTasks'])}):")
    for task in data['masterTasks']:
        click.echo(f"  {format_task(task)}")
    click.echo(f"Completed this week: {data['completedThisWeek']}")
    click.echo(f"Completed last week: {data['completedLastWeek']}")


@cli.command()
@click.argument('title')
@click.option('--active', is_flag=True, help='Add directly to the active list')
@click.pass_context
def add(ctx, title, active):
    """Add a task."""
    task = _call(ctx, 'POST', '/api/tasks', json={"title": title, "isActive": active})
    click.echo(f"Created {format_task(task)}")


def _patch(ctx, task_id: str, body: Dict[str, Any], verb: str) -> None:
    task = _call(ctx, 'PATCH', f'/api/tasks/{task_id}', json=body)
    click.echo(f"{verb} {format_task(task)}")


@cli.command()
@click.argument('task_id')
@click.pass_context
def complete(ctx, task_id):
    """Mark a task completed."""
    _patch(ctx, task_id, {"isCompleted": True}, "Completed")


@cli.command()
@click.argument('task_id')
@click.pass_context
def reopen(ctx, task_id):
    """Mark a completed task incomplete."""
    _patch(ctx, task_id, {"isCompleted": False}, "Reopened")


@cli.command()
@click.argument('task_id')
@click.pass_context
def activate(ctx, task_id):
    """Move a task to the active list."""
    _patch(ctx, task_id, {"isActive": True}, "Activated")


@cli.command()
@click.argument('task_id')
@click.pass_context
def deactivate(ctx, task_id):
    """Move a task back to the master list."""
    _patch(ctx, task_id, {"isActive": False}, "Deactivated")


@cli.command()
@click.argument('task_id')
@click.option('--to', 'destination', type=click.Choice(['active', 'master']), required=True,
              help='Destination list')
@click.option('--index', type=int, default=0, help='Position in the destination list (0 = top)')
@click.pass_context
def move(ctx, task_id, destination, index):
    """Move a task to a position in a list."""
    task = _call(ctx, 'POST', f'/api/tasks/{task_id}/move',
                 json={"isActive": destination == 'active', "index": index})
    click.echo(f"Moved {format_task(task)}")


@cli.command()
@click.argument('task_id')
@click.confirmation_option(prompt='Delete this task permanently?')
@click.pass_context
def delete(ctx, task_id):
    """Delete a task."""
    _call(ctx, 'DELETE', f'/api/tasks/{task_id}')
    click.echo(f"Deleted {task_id}")


@cli.command()
@click.pass_context
def rebalance(ctx):
    """Renumber sort keys of your open tasks."""
    data = _call(ctx, 'POST', '/api/tasks/rebalance')
    click.echo(f"Renumbered {data['activeTasksFixed']} active and {data['masterTasksFixed']} master tasks")


if __name__ == '__main__':
    cli()
