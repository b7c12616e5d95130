"""
Type definitions for Traefik route composition.

These dataclasses represent a route declared in routes.yaml and the
objects derived from it: two Middlewares and one IngressRoute.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Union

TRAEFIK_API_VERSION = "traefik.io/v1alpha1"

DEFAULT_BACKEND_PORT = 80
DEFAULT_ENTRY_POINTS = ["web"]

# Derived object name suffixes
TRAILING_SLASH_SUFFIX = "-trailing-slash"
STRIP_PREFIX_SUFFIX = "-strip-prefix"
INGRESS_ROUTE_SUFFIX = "-ingress-route"


@dataclass
class ServicePort:
    """A single port entry of a Kubernetes Service."""
    port: int
    name: Optional[str] = None
    target_port: Optional[Union[int, str]] = None
    protocol: str = "TCP"

    @classmethod
    def from_dict(cls, data: Dict) -> "ServicePort":
        return cls(
            port=data["port"],
            name=data.get("name"),
            target_port=data.get("targetPort", data.get("target_port")),
            protocol=data.get("protocol", "TCP"),
        )


@dataclass
class ServiceDescriptor:
    """A resolved backend service: a name plus its ordered ports."""
    name: str
    ports: List[ServicePort] = field(default_factory=list)
    namespace: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Dict) -> "ServiceDescriptor":
        return cls(
            name=data["name"],
            ports=[ServicePort.from_dict(p) for p in data.get("ports", [])],
            namespace=data.get("namespace"),
        )

    @classmethod
    def from_manifest(cls, manifest: Dict[str, Any]) -> "ServiceDescriptor":
        """Build from a rendered v1/Service manifest (e.g. Helm chart output)."""
        metadata = manifest.get("metadata") or {}
        spec = manifest.get("spec") or {}
        return cls(
            name=metadata["name"],
            ports=[ServicePort.from_dict(p) for p in spec.get("ports") or []],
            namespace=metadata.get("namespace"),
        )

    @property
    def first_port(self) -> Optional[int]:
        """Port of the first entry, or None for a service without ports."""
        if not self.ports:
            return None
        return self.ports[0].port


# A bare string is an unresolved service name
ServiceReference = Union[str, ServiceDescriptor]


def service_reference_from_value(data: Any) -> ServiceReference:
    """Parse the `service` field of a route: a name or a service mapping."""
    if isinstance(data, str):
        return data
    elif isinstance(data, dict) and "name" in data:
        return ServiceDescriptor.from_dict(data)
    else:
        raise ValueError(f"Invalid service reference: {data}")


@dataclass
class RouteSpec:
    """A route mapping a path prefix to a backend service.

    `name` is the invocation name all derived object names are built from.
    `strip_prefix` left as None behaves like True.
    """
    name: str
    prefix: str
    backend: ServiceReference
    namespace: str = "default"
    strip_prefix: Optional[bool] = None
    port: Optional[int] = None
    entry_points: List[str] = field(default_factory=lambda: list(DEFAULT_ENTRY_POINTS))

    @classmethod
    def from_dict(
        cls,
        data: Dict,
        defaults: Optional["RoutesDefaults"] = None,
    ) -> "RouteSpec":
        defaults = defaults or RoutesDefaults()
        return cls(
            name=data["name"],
            prefix=data["prefix"],
            backend=service_reference_from_value(data["service"]),
            namespace=data.get("namespace", defaults.namespace),
            strip_prefix=data.get("strip_prefix"),
            port=data.get("port"),
            entry_points=data.get("entry_points", list(defaults.entry_points)),
        )

    @property
    def include_strip_prefix(self) -> bool:
        return self.strip_prefix or self.strip_prefix is None

    @property
    def backend_name(self) -> str:
        if isinstance(self.backend, ServiceDescriptor):
            return self.backend.name
        return self.backend

    @property
    def is_resolved(self) -> bool:
        """Whether the backend carries port information."""
        return isinstance(self.backend, ServiceDescriptor)


@dataclass
class RedirectRule:
    """Temporary redirect from `<prefix>` to `<prefix>/`."""
    regex: str
    replacement: str
    permanent: bool = False

    def to_spec(self) -> Dict[str, Any]:
        return {
            "redirectRegex": {
                "regex": self.regex,
                "replacement": self.replacement,
                "permanent": self.permanent,
            },
        }


@dataclass
class StripPrefixRule:
    """Removes the route prefix before forwarding to the backend."""
    prefixes: List[str]

    def to_spec(self) -> Dict[str, Any]:
        return {
            "stripPrefix": {
                "prefixes": list(self.prefixes),
            },
        }


@dataclass
class Middleware:
    """A named middleware object wrapping one rule."""
    name: str
    namespace: str
    rule: Union[RedirectRule, StripPrefixRule]


@dataclass
class Route:
    """A single IngressRoute routing rule."""
    match: str
    middlewares: List[str]
    services: List[Dict[str, Any]]
    kind: str = "Rule"

    def to_spec(self) -> Dict[str, Any]:
        return {
            "match": self.match,
            "kind": self.kind,
            "middlewares": [{"name": name} for name in self.middlewares],
            "services": [dict(s) for s in self.services],
        }


@dataclass
class RouteBundle:
    """Middlewares and IngressRoute derived from one RouteSpec."""
    name: str
    namespace: str
    redirect: Middleware
    route: Route
    route_name: str
    strip_prefix: Optional[Middleware] = None
    entry_points: List[str] = field(default_factory=lambda: list(DEFAULT_ENTRY_POINTS))
    dependencies: Dict[str, List[str]] = field(default_factory=dict)

    @property
    def middlewares(self) -> List[Middleware]:
        """Middlewares in processing order: redirect first, then strip-prefix."""
        result = [self.redirect]
        if self.strip_prefix is not None:
            result.append(self.strip_prefix)
        return result

    @property
    def middleware_names(self) -> List[str]:
        return [m.name for m in self.middlewares]

    @property
    def object_names(self) -> List[str]:
        return self.middleware_names + [self.route_name]

    def emission_order(self) -> List[str]:
        """
        Order object names so every object follows the objects it depends on.

        Ties keep declaration order (middlewares, then the route).

        Raises:
            ValueError: If the dependency edges form a cycle
        """
        pending = list(self.object_names)
        emitted: List[str] = []
        while pending:
            ready = [
                name for name in pending
                if all(dep in emitted for dep in self.dependencies.get(name, []))
            ]
            if not ready:
                raise ValueError(f"Dependency cycle between: {', '.join(pending)}")
            for name in ready:
                emitted.append(name)
                pending.remove(name)
        return emitted


@dataclass
class RoutesDefaults:
    """Default values applied to routes that omit them."""
    namespace: str = "default"
    entry_points: List[str] = field(default_factory=lambda: list(DEFAULT_ENTRY_POINTS))

    @classmethod
    def from_dict(cls, data: Optional[Dict]) -> "RoutesDefaults":
        if not data:
            return cls()
        return cls(
            namespace=data.get("namespace", "default"),
            entry_points=data.get("entry_points", list(DEFAULT_ENTRY_POINTS)),
        )


@dataclass
class RoutesConfig:
    """Complete routes.yaml configuration."""
    version: str = "1"
    defaults: RoutesDefaults = field(default_factory=RoutesDefaults)
    routes: List[RouteSpec] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: Optional[Dict]) -> "RoutesConfig":
        if not data:
            return cls()
        defaults = RoutesDefaults.from_dict(data.get("defaults"))
        return cls(
            version=str(data.get("version", "1")),
            defaults=defaults,
            routes=[RouteSpec.from_dict(r, defaults) for r in data.get("routes") or []],
        )

    def get_route(self, name: str) -> Optional[RouteSpec]:
        """Get a route by its invocation name."""
        for route in self.routes:
            if route.name == name:
                return route
        return None
