"""Route table compilation and matching.

Patterns look like ``"GET /api/*"`` or ``"/items/[id]"``. ``*`` matches any
run of characters, ``[name]`` matches one path segment. A pattern without a
verb matches every method.
"""

import re
from dataclasses import dataclass
from typing import Any, Mapping, Optional
from urllib.parse import unquote

from x402_resource.exceptions import ConfigurationError
from x402_resource.http.types import RouteConfig, RoutesConfig

ANY_VERB = "*"

_TOKEN_RE = re.compile(r"(\*|\[[^\]]+\])")
_QUERY_OR_FRAGMENT_RE = re.compile(r"[?#]")
_REPEATED_SLASH_RE = re.compile(r"/+")
_TRAILING_SLASH_RE = re.compile(r"(.+?)/+$")


@dataclass(frozen=True)
class CompiledRoute:
    """A route pattern compiled for matching; immutable once built"""

    pattern: str
    verb: str
    regex: re.Pattern[str]
    config: RouteConfig


def parse_route_pattern(pattern: str) -> tuple[str, re.Pattern[str]]:
    """Split ``pattern`` into its verb and a compiled path matcher.

    Returns:
        (verb, regex) where verb is upper-cased or ``ANY_VERB``
    """
    parts = pattern.strip().split(None, 1)
    if len(parts) == 2:
        verb, path = parts[0].upper(), parts[1].strip()
    else:
        verb, path = ANY_VERB, parts[0] if parts else ""

    pieces = []
    for token in _TOKEN_RE.split(path):
        if not token:
            continue
        if token == "*":
            pieces.append(".*?")
        elif token.startswith("[") and token.endswith("]"):
            pieces.append("[^/]+")
        else:
            pieces.append(re.escape(token))

    return verb, re.compile(f"^{''.join(pieces)}$", re.IGNORECASE)


def normalize_path(path: str) -> str:
    """Normalize a request path for matching.

    Drops query and fragment, percent-decodes, turns backslashes into
    slashes, collapses repeated slashes and strips the trailing slash of any
    path but the root. Decoded ``%``, ``?`` and ``#`` are escaped again, so
    normalizing twice gives the same result.
    """
    without_query = _QUERY_OR_FRAGMENT_RE.split(path, 1)[0]
    decoded = unquote(without_query).replace("\\", "/")
    decoded = decoded.replace("%", "%25").replace("?", "%3F").replace("#", "%23")
    collapsed = _REPEATED_SLASH_RE.sub("/", decoded)
    return _TRAILING_SLASH_RE.sub(r"\1", collapsed)


def _as_route_config(pattern: str, config: Any) -> RouteConfig:
    if isinstance(config, RouteConfig):
        return config
    if isinstance(config, Mapping):
        try:
            return RouteConfig.from_dict(config)
        except (KeyError, ValueError) as e:
            raise ConfigurationError(f"Invalid route config for pattern {pattern!r}: {e}") from e
    raise ConfigurationError(f"Invalid route config for pattern {pattern!r}")


def route_entries(routes: RoutesConfig) -> list[tuple[str, RouteConfig]]:
    """Normalize both route table shapes into (pattern, config) pairs"""
    if isinstance(routes, RouteConfig):
        return [(ANY_VERB, routes)]
    if isinstance(routes, Mapping) and "accepts" in routes:
        return [(ANY_VERB, _as_route_config(ANY_VERB, routes))]
    if isinstance(routes, Mapping):
        return [(pattern, _as_route_config(pattern, cfg)) for pattern, cfg in routes.items()]
    raise ConfigurationError(f"Unsupported routes configuration: {type(routes).__name__}")


def compile_routes(routes: RoutesConfig) -> list[CompiledRoute]:
    """Compile a route table, preserving declaration order

    Raises:
        ConfigurationError: If a route is malformed or declares no payment options
    """
    compiled = []
    for pattern, config in route_entries(routes):
        if not config.payment_options():
            raise ConfigurationError(f"Route {pattern!r} declares no payment options")
        verb, regex = parse_route_pattern(pattern)
        compiled.append(CompiledRoute(pattern=pattern, verb=verb, regex=regex, config=config))
    return compiled


class RouteTable:
    """Ordered, read-only set of compiled routes; first match wins"""

    def __init__(self, routes: RoutesConfig) -> None:
        self._routes = tuple(compile_routes(routes))

    @property
    def routes(self) -> tuple[CompiledRoute, ...]:
        return self._routes

    def match(self, path: str, method: str) -> Optional[CompiledRoute]:
        normalized = normalize_path(path)
        verb = method.upper()
        for route in self._routes:
            if route.verb in (ANY_VERB, verb) and route.regex.match(normalized):
                return route
        return None
