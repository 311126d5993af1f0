"""Config commands -- view and modify the user configuration.

Provides the ``cachenet config`` sub-command group for reading, updating,
and resetting the user's configuration file
(:class:`~cachenet.models.ClientConfig`).  The settings are the defaults
every ``Networking`` client built by the CLI starts from.
"""

from __future__ import annotations

import typer
from pydantic import ValidationError

from cachenet.output import error, format_response, info, success


config_app = typer.Typer(no_args_is_help=True)


@config_app.command("show")
def config_show() -> None:
    """Show the current user configuration.

    Example::

        cachenet config show
        cachenet --json config show
    """
    from cachenet.config import config_path, load_config

    config = load_config()
    info(f"Config file: {config_path()}")
    format_response(config.model_dump(mode="json"))


def _coerce(key: str, current: object, value: str) -> object:
    if isinstance(current, bool):
        return value.lower() in ("true", "1", "yes")
    if isinstance(current, int):
        try:
            return int(value)
        except ValueError:
            error(f"Expected integer for {key}, got: {value}")
            raise typer.Exit(code=2) from None
    if isinstance(current, float):
        try:
            return float(value)
        except ValueError:
            error(f"Expected number for {key}, got: {value}")
            raise typer.Exit(code=2) from None
    return value


@config_app.command("set")
def config_set(
    key: str = typer.Argument(
        help="Config key (dot notation, e.g., 'cache.directory' or 'headers.X-Token')."
    ),
    value: str = typer.Argument(help="Value to set."),
) -> None:
    """Set a configuration value.

    Uses dot notation for nested keys.  The value is coerced to the type of
    the existing field (bool, int, float, or str) and the result is
    validated before saving.  Keys under ``headers`` may be new.

    Raises:
        typer.Exit: With code 2 if the key path is invalid, the value
            cannot be coerced, or validation fails.

    Example::

        cachenet config set base_url https://api.example.com
        cachenet config set timeout 10
        cachenet config set headers.Authorization "Bearer abc"
    """
    from cachenet.config import load_config, save_config
    from cachenet.models import ClientConfig

    data = load_config().model_dump(mode="json")

    keys = key.split(".")
    target = data
    for k in keys[:-1]:
        if k not in target or not isinstance(target[k], dict):
            error(f"Invalid config key: {key}")
            raise typer.Exit(code=2)
        target = target[k]

    final_key = keys[-1]
    if final_key not in target and keys[:-1] != ["headers"]:
        error(f"Unknown config key: {key}")
        raise typer.Exit(code=2)

    coerced = _coerce(key, target.get(final_key), value)
    target[final_key] = coerced

    try:
        new_config = ClientConfig.model_validate(data)
    except ValidationError as exc:
        error(f"Validation error: {exc}")
        raise typer.Exit(code=2) from None

    save_config(new_config)
    success(f"Set {key} = {coerced}")


@config_app.command("reset")
def config_reset(ctx: typer.Context) -> None:
    """Reset the configuration to defaults.

    Asks for confirmation unless ``--force`` is active.
    """
    from cachenet.config import save_config
    from cachenet.models import ClientConfig

    force = ctx.obj.get("force", False) if ctx.obj else False
    if not force:
        confirmed = typer.confirm("Reset all config to defaults?")
        if not confirmed:
            info("Cancelled.")
            raise typer.Exit()

    save_config(ClientConfig())
    success("Configuration reset to defaults.")
