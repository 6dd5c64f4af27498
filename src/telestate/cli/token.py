from __future__ import annotations

import typer

from ..errors import InvalidSeparator, MalformedToken
from ..state import DEFAULT_SEPARATOR, State

token_app = typer.Typer(help="Encode and decode state tokens.", no_args_is_help=True)


def _fail(error: Exception) -> typer.Exit:
    typer.echo(f"error: {error}", err=True)
    return typer.Exit(code=1)


@token_app.command("decode")
def token_decode(
    token: str = typer.Argument(..., help="State token from callback data."),
    separator: str = typer.Option(DEFAULT_SEPARATOR, "--separator", "-s"),
) -> None:
    """Print the fields of a state token."""
    try:
        state = State(separator=separator).deserialize(token)
    except (InvalidSeparator, MalformedToken) as e:
        raise _fail(e) from None
    typer.echo(f"prefix: {state.prefix}")
    typer.echo(f"state: {state.name}")
    typer.echo(f"action: {state.action}")
    if state.key:
        typer.echo(f"key: {state.key}")
    if state.value:
        typer.echo(f"value: {state.value}")


@token_app.command("encode")
def token_encode(
    prefix: str = typer.Option(..., "--prefix"),
    state: str = typer.Option(..., "--state"),
    action: str = typer.Option("", "--action"),
    key: str = typer.Option("", "--key"),
    value: str = typer.Option("", "--value"),
    separator: str = typer.Option(DEFAULT_SEPARATOR, "--separator", "-s"),
) -> None:
    """Print the state token for the given fields."""
    try:
        record = State(
            prefix=prefix,
            name=state,
            action=action,
            key=key,
            value=value,
            separator=separator,
        )
    except InvalidSeparator as e:
        raise _fail(e) from None
    typer.echo(record.serialize())
