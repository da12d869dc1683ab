"""CLI entry point for the weLore node."""

from __future__ import annotations

import asyncio
import json
from typing import Optional, Tuple

import click

from .config import get_settings
from .credentials import CREDENTIAL_NAME
from .errors import WeLoreError
from .host import ExecutionContext
from .logging import configure_logging
from .node import WeLoreNode


def _build_node() -> WeLoreNode:
    return WeLoreNode.from_settings(get_settings())


def _parse_parameters(values: Tuple[str, ...]) -> list[dict]:
    entries = []
    for raw in values:
        name, sep, value = raw.partition("=")
        if not sep or not name:
            raise click.BadParameter(f"expected NAME=VALUE, got '{raw}'", param_hint="--param")
        entries.append({"name": name, "value": value})
    return entries


@click.group()
@click.option("--log-level", default=None, help="Override WELORE_LOG_LEVEL.")
def main(log_level: Optional[str]):
    """weLore API node: browse the OpenAPI mapping and run operations."""
    configure_logging(log_level or get_settings().welore_log_level)


@main.command()
def resources():
    """List the resources found in the schema."""
    node = _build_node()
    try:
        options = node.get_resources()
    except WeLoreError as exc:
        raise click.ClickException(str(exc)) from exc
    for option in options:
        click.echo(f"{option['value']}\t{option['name']}")


@main.command()
@click.argument("resource")
def operations(resource: str):
    """List the operations of RESOURCE."""
    node = _build_node()
    try:
        options = node.get_operations(resource)
    except WeLoreError as exc:
        raise click.ClickException(str(exc)) from exc
    if not options:
        click.echo(f"No operations found for resource '{resource}'.")
    for option in options:
        click.echo(f"{option['value']}\t{option['name']}")


@main.command()
@click.argument("account")
@click.argument("resource")
@click.argument("operation")
def fields(account: str, resource: str, operation: str):
    """Show the request template and fields of an operation."""
    node = _build_node()
    try:
        mapping = node.engine.resolve_mapping(resource, operation, account)
    except WeLoreError as exc:
        raise click.ClickException(str(exc)) from exc

    click.echo(f"{mapping.method} {mapping.url}")
    for prop in mapping.properties:
        required = "required" if prop.required else "optional"
        click.echo(f"  {prop.name}\t{prop.location}\t{prop.type}\t{required}\t{prop.description}")


@main.command()
@click.argument("account")
@click.argument("resource")
@click.argument("operation")
@click.option("-p", "--param", "params", multiple=True, help="Parameter as NAME=VALUE (repeatable).")
@click.option("--token", envvar="WELORE_TOKEN", default=None, help="Bearer token for the weLore API.")
@click.option("--continue-on-fail", is_flag=True, help="Report request errors instead of failing.")
def run(
    account: str,
    resource: str,
    operation: str,
    params: Tuple[str, ...],
    token: Optional[str],
    continue_on_fail: bool,
):
    """Execute one OPERATION on RESOURCE and print the JSON response."""
    node = _build_node()
    credentials = {CREDENTIAL_NAME: {"token": token}} if token else {}
    context = ExecutionContext(
        parameters={
            "account": account,
            "resource": resource,
            "operation": operation,
            "parameters": {"parameter": _parse_parameters(params)},
        },
        credentials=credentials,
        continue_on_fail=continue_on_fail,
    )

    try:
        results = asyncio.run(node.execute(context))
    except WeLoreError as exc:
        raise click.ClickException(str(exc)) from exc

    for result in results:
        click.echo(json.dumps(result, indent=2, ensure_ascii=False))


if __name__ == "__main__":
    main()
