"""Numeric process exit codes following `clig.dev <https://clig.dev/>`_ conventions.

Each constant maps to a specific error category and is referenced by the
corresponding :class:`~cachenet.exceptions.CachenetError` subclass.
Shell scripts can inspect the exit code of the ``cachenet`` CLI to learn
why a request failed without parsing stderr.

Example::

    $ cachenet get /missing
    $ echo $?
    4   # EXIT_TRANSPORT_ERROR -- the server answered with an error status
"""

EXIT_SUCCESS = 0
"""The command completed successfully."""

EXIT_GENERIC_FAILURE = 1
"""An unclassified error occurred."""

EXIT_INVALID_USAGE = 2
"""The command was invoked with invalid arguments or unencodable parameters."""

EXIT_CANCELLED = 3
"""The request was cancelled before it completed."""

EXIT_TRANSPORT_ERROR = 4
"""A network-level failure or a non-2xx HTTP status."""

EXIT_DECODING_ERROR = 5
"""The response body did not match the expected response type."""

EXIT_CACHE_ERROR = 6
"""The on-disk cache could not be read or written."""
