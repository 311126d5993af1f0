"""cachenet -- HTTP client facade with request cancellation and tiered caching.

The package exposes a :class:`~cachenet.client.Networking` client that issues
GET/POST/PUT/PATCH/DELETE requests, downloads images and raw data, and keeps
decoded responses in a two-tier cache (memory, then disk).

Typical usage::

    from cachenet import Networking

    with Networking("https://api.example.com") as net:
        net.get("/users", completion=print)
        net.wait()

Modules:
    app: Typer application factory and CLI entry point.
    models: Enums, Pydantic configuration models, and request/result types.
    config: XDG-aware configuration loading and precedence resolution.
    exceptions: Exception hierarchy with exit-code mapping.
    exit_codes: Numeric exit codes following clig.dev conventions.
    output: stdout/stderr formatting system with Rich support.
    cache: Two-tier (memory + disk) store for decoded responses.
    client: Dispatch engine, request registry, encoders, and the facade.
"""

__version__ = "0.1.0"

from cachenet.client.networking import Networking  # noqa: E402
from cachenet.models import CachingLevel, FormDataPart, ParameterType  # noqa: E402

__all__ = ["Networking", "CachingLevel", "FormDataPart", "ParameterType", "__version__"]
