"""
Kubernetes manifest generators for Traefik route composition.

Each route becomes a redirect-regex Middleware, an optional strip-prefix
Middleware and an IngressRoute that references them in that order.
"""

import json
import logging
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional

import yaml

from .schema import resolve_backends
from .types import (
    DEFAULT_BACKEND_PORT,
    INGRESS_ROUTE_SUFFIX,
    STRIP_PREFIX_SUFFIX,
    TRAEFIK_API_VERSION,
    TRAILING_SLASH_SUFFIX,
    Middleware,
    RedirectRule,
    Route,
    RouteBundle,
    RoutesConfig,
    RouteSpec,
    ServiceDescriptor,
    StripPrefixRule,
)

logger = logging.getLogger(__name__)


def resolve_backend_port(spec: RouteSpec) -> Optional[int]:
    """
    Resolve the backend port for a route.

    An explicit port wins. Otherwise a resolved service contributes its
    first port, and a bare service name falls back to port 80.

    Args:
        spec: Route specification

    Returns:
        Backend port, or None for a resolved service without ports
    """
    if spec.port is not None:
        return spec.port
    if isinstance(spec.backend, ServiceDescriptor):
        return spec.backend.first_port
    return DEFAULT_BACKEND_PORT


def resolve_backend_name(spec: RouteSpec) -> str:
    """Get the backend service name from a name or a resolved service."""
    return spec.backend_name


def build_redirect_rule(prefix: str) -> RedirectRule:
    """
    Build the redirect from `<prefix>` to `<prefix>/`.

    The prefix is embedded in the regex as-is. Only the leading `/` is
    escaped, so regex metacharacters inside the prefix stay active.
    """
    return RedirectRule(
        regex=f"^.*\\{prefix}$",
        replacement=f"{prefix}/",
    )


def build_strip_prefix_rule(prefix: str) -> StripPrefixRule:
    return StripPrefixRule(prefixes=[prefix])


def build_route(
    spec: RouteSpec,
    middleware_names: List[str],
) -> Route:
    """
    Build the routing rule for a route.

    Args:
        spec: Route specification
        middleware_names: Middleware names in processing order

    Returns:
        Route matching the prefix and forwarding to the backend
    """
    return Route(
        match=f"PathPrefix(`{spec.prefix}`)",
        middlewares=list(middleware_names),
        services=[
            {
                "name": resolve_backend_name(spec),
                "port": resolve_backend_port(spec),
            }
        ],
    )


def build_route_bundle(spec: RouteSpec) -> RouteBundle:
    """
    Derive Middlewares and IngressRoute from a route specification.

    Derived names come from the route name plus a fixed suffix, so building
    the same spec twice yields the same objects. Nothing is validated here:
    malformed input is rejected when the manifests are applied.

    Args:
        spec: Route specification

    Returns:
        RouteBundle with explicit dependency edges
    """
    redirect = Middleware(
        name=f"{spec.name}{TRAILING_SLASH_SUFFIX}",
        namespace=spec.namespace,
        rule=build_redirect_rule(spec.prefix),
    )

    strip_prefix = None
    if spec.include_strip_prefix:
        strip_prefix = Middleware(
            name=f"{spec.name}{STRIP_PREFIX_SUFFIX}",
            namespace=spec.namespace,
            rule=build_strip_prefix_rule(spec.prefix),
        )

    middleware_names = [redirect.name]
    if strip_prefix is not None:
        middleware_names.append(strip_prefix.name)

    route_name = f"{spec.name}{INGRESS_ROUTE_SUFFIX}"
    route = build_route(spec, middleware_names)

    dependencies: Dict[str, List[str]] = {name: [] for name in middleware_names}
    dependencies[route_name] = list(middleware_names)

    logger.debug(
        "Built route %s: %s -> %s:%s (middlewares: %s)",
        spec.name,
        spec.prefix,
        route.services[0]["name"],
        route.services[0]["port"],
        ", ".join(middleware_names),
    )

    return RouteBundle(
        name=spec.name,
        namespace=spec.namespace,
        redirect=redirect,
        strip_prefix=strip_prefix,
        route=route,
        route_name=route_name,
        entry_points=list(spec.entry_points),
        dependencies=dependencies,
    )


def generate_middleware_manifest(
    middleware: Middleware,
    route_name: Optional[str] = None,
) -> Dict[str, Any]:
    """
    Generate a Traefik Middleware manifest.

    Args:
        middleware: Middleware to render
        route_name: Owning route name, used for labels

    Returns:
        Middleware manifest as dict
    """
    metadata: Dict[str, Any] = {
        "name": middleware.name,
        "namespace": middleware.namespace,
    }
    if route_name:
        metadata["labels"] = {
            "traefikroute.io/route": route_name,
            "traefikroute.io/component": "middleware",
        }

    return {
        "apiVersion": TRAEFIK_API_VERSION,
        "kind": "Middleware",
        "metadata": metadata,
        "spec": middleware.rule.to_spec(),
    }


def generate_ingressroute_manifest(bundle: RouteBundle) -> Dict[str, Any]:
    """Generate the Traefik IngressRoute manifest for a bundle."""
    return {
        "apiVersion": TRAEFIK_API_VERSION,
        "kind": "IngressRoute",
        "metadata": {
            "name": bundle.route_name,
            "namespace": bundle.namespace,
            "labels": {
                "traefikroute.io/route": bundle.name,
                "traefikroute.io/component": "ingressroute",
            },
        },
        "spec": {
            "entryPoints": list(bundle.entry_points),
            "routes": [bundle.route.to_spec()],
        },
    }


def generate_bundle_manifests(bundle: RouteBundle) -> List[Dict[str, Any]]:
    """
    Render every object of a bundle, ordered by its dependency edges.

    Middlewares always precede the IngressRoute referencing them.
    """
    rendered: Dict[str, Dict[str, Any]] = {}
    for middleware in bundle.middlewares:
        rendered[middleware.name] = generate_middleware_manifest(middleware, bundle.name)
    rendered[bundle.route_name] = generate_ingressroute_manifest(bundle)

    return [rendered[name] for name in bundle.emission_order()]


def generate_all_manifests(
    config: RoutesConfig,
    services: Optional[Mapping[str, ServiceDescriptor]] = None,
) -> List[Dict[str, Any]]:
    """
    Generate manifests for every route in routes.yaml.

    Args:
        config: Parsed routes.yaml
        services: Rendered services used to resolve bare backend names

    Returns:
        List of manifests, each bundle in dependency order
    """
    if services:
        config = resolve_backends(config, services)

    manifests: List[Dict[str, Any]] = []
    for spec in config.routes:
        bundle = build_route_bundle(spec)
        manifests.extend(generate_bundle_manifests(bundle))

    logger.info("Generated %d manifests for %d routes", len(manifests), len(config.routes))
    return manifests


def render_manifests(
    manifests: List[Dict[str, Any]],
    output_format: str = "yaml",
) -> str:
    """Render manifests as multi-document YAML or a JSON list."""
    if output_format == "json":
        return json.dumps(manifests, indent=2)

    docs = []
    for m in manifests:
        docs.append(yaml.dump(m, default_flow_style=False, sort_keys=False))
    return "---\n" + "---\n".join(docs)


def write_manifests(
    manifests: List[Dict[str, Any]],
    output_dir: str,
    output_format: str = "yaml",
    filename: str = "routes",
) -> Path:
    """
    Write manifests to the output directory.

    Args:
        manifests: Manifests to write, already in apply order
        output_dir: Output directory for manifests
        output_format: "yaml" or "json"
        filename: File name without extension

    Returns:
        Path of the written file
    """
    output_path = Path(output_dir)
    output_path.mkdir(parents=True, exist_ok=True)

    out_file = output_path / f"{filename}.{output_format}"
    out_file.write_text(render_manifests(manifests, output_format))
    logger.info("Wrote %d manifests to %s", len(manifests), out_file)
    return out_file
