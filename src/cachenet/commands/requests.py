"""Request commands -- issue one HTTP request and print the decoded result.

Each command builds a :class:`~cachenet.client.Networking` client from the
resolved configuration, dispatches a single request, waits for its
completion, and renders the result through the global
:class:`~cachenet.output.OutputManager`.  A failed request exits with the
code of its :class:`~cachenet.exceptions.CachenetError`.

Parameters are given as repeated ``-P key=value`` options; repeating a key
sends it as a list.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Callable, Optional

import typer

from cachenet.models import CachingLevel, Failure, FormDataPart, ParameterType, Result
from cachenet.output import error, format_response, get_output, info, success


def parse_pairs(pairs: Optional[list[str]]) -> Optional[dict[str, Any]]:
    """Turn ``["a=1", "b=2", "b=3"]`` into ``{"a": "1", "b": ["2", "3"]}``.

    Raises:
        typer.BadParameter: If an item has no ``=``.
    """
    if not pairs:
        return None
    result: dict[str, Any] = {}
    for pair in pairs:
        key, sep, value = pair.partition("=")
        if not sep or not key:
            raise typer.BadParameter(f"Expected key=value, got: {pair}")
        if key in result:
            existing = result[key]
            result[key] = existing + [value] if isinstance(existing, list) else [existing, value]
        else:
            result[key] = value
    return result


def _parse_parts(values: Optional[list[str]]) -> list[FormDataPart]:
    parts = []
    for value in values or []:
        name, sep, path = value.partition("=")
        if not sep or not name:
            raise typer.BadParameter(f"Expected field=path, got: {value}")
        file_path = Path(path)
        if not file_path.is_file():
            raise typer.BadParameter(f"No such file: {path}")
        parts.append(FormDataPart(file_path.read_bytes(), name, file_path.name))
    return parts


def _run(ctx: typer.Context, send: Callable[..., str]) -> Result:
    """Dispatch through *send* on a fresh client and block until it completes."""
    from cachenet.client import Networking
    from cachenet.config import get_cache_dir, resolve_config

    config = resolve_config(cli_base_url=(ctx.obj or {}).get("base_url"))
    cache_dir = config.cache.directory or (get_cache_dir() if config.cache.enabled else None)
    config = config.model_copy(update={"disable_error_logging": True})

    outcome: list[Result] = []
    with Networking(config=config, cache_dir=cache_dir) as net:
        send(net, outcome.append)
        net.wait()

    result = outcome[0]
    if isinstance(result, Failure):
        error(str(result.error))
        raise typer.Exit(code=result.error.exit_code)
    return result


def _show(result: Result) -> None:
    if result.from_cache:
        info("Served from cache.")
    if result.value is None:
        success("No content.")
        return
    format_response(result.value)


def get_command(
    ctx: typer.Context,
    path: str = typer.Argument(help="Request path, relative to the base URL."),
    param: Optional[list[str]] = typer.Option(
        None, "--param", "-P", help="Query parameter as key=value (repeatable)."
    ),
    cache: CachingLevel = typer.Option(
        CachingLevel.NONE, "--cache", help="Cache tiers to read from and store in."
    ),
) -> None:
    """Send a GET request and print the JSON response.

    Example::

        cachenet get /users -P page=2
        cachenet get /users --cache memory_and_file
    """
    parameters = parse_pairs(param)
    result = _run(
        ctx,
        lambda net, done: net.get(path, parameters=parameters, caching_level=cache, completion=done),
    )
    _show(result)


def delete_command(
    ctx: typer.Context,
    path: str = typer.Argument(help="Request path, relative to the base URL."),
    param: Optional[list[str]] = typer.Option(
        None, "--param", "-P", help="Query parameter as key=value (repeatable)."
    ),
) -> None:
    """Send a DELETE request."""
    parameters = parse_pairs(param)
    result = _run(ctx, lambda net, done: net.delete(path, parameters=parameters, completion=done))
    _show(result)


def _body_command(method: str) -> Callable[..., None]:
    def command(
        ctx: typer.Context,
        path: str = typer.Argument(help="Request path, relative to the base URL."),
        json_body: Optional[str] = typer.Option(
            None, "--json", "-j", help="JSON document to send as the body."
        ),
        field: Optional[list[str]] = typer.Option(
            None, "--field", "-F", help="Form field as key=value (repeatable)."
        ),
        part: Optional[list[str]] = typer.Option(
            None, "--part", help="File to upload as field=path (repeatable, forces multipart)."
        ),
    ) -> None:
        if json_body is not None and (field or part):
            error("--json cannot be combined with --field or --part")
            raise typer.Exit(code=2)

        parts = _parse_parts(part)
        if json_body is not None:
            try:
                parameters: Any = json.loads(json_body)
            except json.JSONDecodeError as exc:
                error(f"Invalid JSON body: {exc}")
                raise typer.Exit(code=2) from None
            parameter_type = ParameterType.JSON
        else:
            parameters = parse_pairs(field)
            parameter_type = ParameterType.FORM_URL_ENCODED if parameters else ParameterType.NONE

        def send(net: Any, done: Callable[[Result], None]) -> str:
            if method == "post":
                return net.post(path, parameter_type, parameters, parts=parts, completion=done)
            return getattr(net, method)(path, parameter_type, parameters, completion=done)

        _show(_run(ctx, send))

    command.__name__ = f"{method}_command"
    command.__doc__ = (
        f"Send a {method.upper()} request with a JSON or form body.\n\n"
        f"Example::\n\n    cachenet {method} /users --json '{{\"name\": \"ada\"}}'\n"
    )
    return command


post_command = _body_command("post")
put_command = _body_command("put")
patch_command = _body_command("patch")


def download_command(
    ctx: typer.Context,
    path: str = typer.Argument(help="Path of the image or file to download."),
    image: bool = typer.Option(
        False, "--image", "-i", help="Decode the payload as an image."
    ),
    cache_name: Optional[str] = typer.Option(
        None, "--cache-name", help="Cache key (defaults to the path)."
    ),
    cache: CachingLevel = typer.Option(
        CachingLevel.MEMORY_AND_FILE, "--cache", help="Cache tiers to read from and store in."
    ),
) -> None:
    """Download an image or raw data, using the cache.

    Use the global ``--output`` option to save the payload to a file.

    Example::

        cachenet -o avatar.png download /avatars/1.png --image
    """
    if image:
        result = _run(
            ctx,
            lambda net, done: net.download_image(
                path, cache_name=cache_name, caching_level=cache, completion=done
            ),
        )
        picture = result.value
        output_file = get_output().output_file
        if output_file:
            picture.save(output_file, format=picture.format or "PNG")
            success(f"Saved {picture.width}x{picture.height} image to {output_file}")
        else:
            info(f"{picture.format or 'image'} {picture.width}x{picture.height} {picture.mode}")
        return

    result = _run(
        ctx,
        lambda net, done: net.download_data(
            path, cache_name=cache_name, caching_level=cache, completion=done
        ),
    )
    format_response(result.value, "application/octet-stream")
