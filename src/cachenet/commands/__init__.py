"""Built-in CLI sub-commands for cachenet.

This package groups the Typer command modules that form the CLI's
top-level command tree:

* :mod:`~cachenet.commands.requests` -- ``get``, ``delete``, ``post``,
  ``put``, ``patch`` and ``download`` against the configured base URL.
* :mod:`~cachenet.commands.cache` -- inspect and maintain the response
  cache.
* :mod:`~cachenet.commands.config` -- view and modify the user
  configuration.

Request commands are plain callbacks registered directly on the root app;
``cache`` and ``config`` export :class:`typer.Typer` sub-applications.
"""
