"""
Traefik Route - Generate Traefik routing manifests from routes.yaml.

Each route maps an external path prefix to an internal service through a
redirect-regex Middleware, an optional strip-prefix Middleware and an
IngressRoute.
"""

from .types import (
    RouteSpec,
    RouteBundle,
    RoutesConfig,
    RoutesDefaults,
    ServiceDescriptor,
    ServicePort,
    RedirectRule,
    StripPrefixRule,
    Middleware,
    Route,
)
from .generators import (
    build_route_bundle,
    generate_bundle_manifests,
    generate_all_manifests,
    write_manifests,
)
from .schema import (
    load_routes_yaml,
    validate_routes_yaml,
    load_service_manifests,
    resolve_backends,
)

__version__ = "0.1.0"
__all__ = [
    "RouteSpec",
    "RouteBundle",
    "RoutesConfig",
    "RoutesDefaults",
    "ServiceDescriptor",
    "ServicePort",
    "RedirectRule",
    "StripPrefixRule",
    "Middleware",
    "Route",
    "build_route_bundle",
    "generate_bundle_manifests",
    "generate_all_manifests",
    "write_manifests",
    "load_routes_yaml",
    "validate_routes_yaml",
    "load_service_manifests",
    "resolve_backends",
]
