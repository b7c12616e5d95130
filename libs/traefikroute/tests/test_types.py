"""Tests for traefikroute types."""

import pytest

from traefikroute.types import (
    DEFAULT_ENTRY_POINTS,
    Middleware,
    RedirectRule,
    Route,
    RouteBundle,
    RoutesConfig,
    RoutesDefaults,
    RouteSpec,
    ServiceDescriptor,
    ServicePort,
    StripPrefixRule,
    service_reference_from_value,
)


class TestServicePort:
    def test_from_dict(self):
        port = ServicePort.from_dict({"port": 5000, "name": "http", "targetPort": "http"})
        assert port.port == 5000
        assert port.name == "http"
        assert port.target_port == "http"
        assert port.protocol == "TCP"

    def test_from_dict_minimal(self):
        port = ServicePort.from_dict({"port": 80})
        assert port.port == 80
        assert port.name is None
        assert port.target_port is None


class TestServiceDescriptor:
    def test_from_dict(self):
        service = ServiceDescriptor.from_dict({
            "name": "api-svc",
            "ports": [{"port": 3000}, {"port": 3001}],
        })
        assert service.name == "api-svc"
        assert [p.port for p in service.ports] == [3000, 3001]
        assert service.first_port == 3000

    def test_from_manifest(self):
        manifest = {
            "apiVersion": "v1",
            "kind": "Service",
            "metadata": {"name": "mlflow", "namespace": "default"},
            "spec": {
                "type": "ClusterIP",
                "ports": [{"port": 5000, "targetPort": 5000, "name": "mlflow"}],
            },
        }
        service = ServiceDescriptor.from_manifest(manifest)
        assert service.name == "mlflow"
        assert service.namespace == "default"
        assert service.first_port == 5000

    def test_first_port_without_ports(self):
        service = ServiceDescriptor(name="empty")
        assert service.ports == []
        assert service.first_port is None

    def test_from_manifest_without_ports(self):
        service = ServiceDescriptor.from_manifest({"metadata": {"name": "headless"}, "spec": {}})
        assert service.first_port is None


class TestServiceReference:
    def test_string_reference(self):
        assert service_reference_from_value("mlflow-svc") == "mlflow-svc"

    def test_mapping_reference(self):
        ref = service_reference_from_value({"name": "api-svc", "ports": [{"port": 3000}]})
        assert isinstance(ref, ServiceDescriptor)
        assert ref.first_port == 3000

    def test_invalid_reference(self):
        with pytest.raises(ValueError):
            service_reference_from_value(42)

    def test_mapping_without_name(self):
        with pytest.raises(ValueError):
            service_reference_from_value({"ports": [{"port": 80}]})


class TestRouteSpec:
    def test_default_values(self):
        spec = RouteSpec(name="mlflow-route", prefix="/mlflow", backend="mlflow-svc")
        assert spec.namespace == "default"
        assert spec.strip_prefix is None
        assert spec.port is None
        assert spec.entry_points == DEFAULT_ENTRY_POINTS

    def test_from_dict(self):
        spec = RouteSpec.from_dict({
            "name": "api",
            "prefix": "/api",
            "service": {"name": "api-svc", "ports": [{"port": 3000}]},
            "namespace": "apps",
            "strip_prefix": False,
            "port": 8080,
            "entry_points": ["websecure"],
        })
        assert spec.name == "api"
        assert spec.namespace == "apps"
        assert spec.strip_prefix is False
        assert spec.port == 8080
        assert spec.entry_points == ["websecure"]
        assert spec.backend_name == "api-svc"
        assert spec.is_resolved

    def test_from_dict_applies_defaults(self):
        defaults = RoutesDefaults(namespace="mlflow", entry_points=["web", "websecure"])
        spec = RouteSpec.from_dict(
            {"name": "mlflow-route", "prefix": "/mlflow", "service": "mlflow"},
            defaults,
        )
        assert spec.namespace == "mlflow"
        assert spec.entry_points == ["web", "websecure"]
        assert not spec.is_resolved

    def test_from_dict_missing_prefix(self):
        with pytest.raises(KeyError):
            RouteSpec.from_dict({"name": "broken", "service": "svc"})

    @pytest.mark.parametrize("value,expected", [
        (None, True),
        (True, True),
        (False, False),
    ])
    def test_include_strip_prefix(self, value, expected):
        spec = RouteSpec(name="r", prefix="/r", backend="svc", strip_prefix=value)
        assert spec.include_strip_prefix is expected

    def test_entry_points_not_shared(self):
        first = RouteSpec(name="a", prefix="/a", backend="svc")
        second = RouteSpec(name="b", prefix="/b", backend="svc")
        first.entry_points.append("websecure")
        assert second.entry_points == ["web"]


class TestRules:
    def test_redirect_to_spec(self):
        rule = RedirectRule(regex="^.*\\/mlflow$", replacement="/mlflow/")
        assert rule.to_spec() == {
            "redirectRegex": {
                "regex": "^.*\\/mlflow$",
                "replacement": "/mlflow/",
                "permanent": False,
            },
        }

    def test_strip_prefix_to_spec(self):
        rule = StripPrefixRule(prefixes=["/mlflow"])
        assert rule.to_spec() == {"stripPrefix": {"prefixes": ["/mlflow"]}}

    def test_route_to_spec(self):
        route = Route(
            match="PathPrefix(`/mlflow`)",
            middlewares=["a", "b"],
            services=[{"name": "mlflow", "port": 80}],
        )
        spec = route.to_spec()
        assert spec["kind"] == "Rule"
        assert spec["middlewares"] == [{"name": "a"}, {"name": "b"}]
        assert spec["services"] == [{"name": "mlflow", "port": 80}]


class TestRouteBundle:
    @pytest.fixture
    def bundle(self):
        redirect = Middleware("r-trailing-slash", "default", RedirectRule("^.*\\/r$", "/r/"))
        strip = Middleware("r-strip-prefix", "default", StripPrefixRule(["/r"]))
        return RouteBundle(
            name="r",
            namespace="default",
            redirect=redirect,
            strip_prefix=strip,
            route=Route("PathPrefix(`/r`)", [redirect.name, strip.name], [{"name": "svc", "port": 80}]),
            route_name="r-ingress-route",
            dependencies={
                "r-trailing-slash": [],
                "r-strip-prefix": [],
                "r-ingress-route": ["r-trailing-slash", "r-strip-prefix"],
            },
        )

    def test_middleware_names(self, bundle):
        assert bundle.middleware_names == ["r-trailing-slash", "r-strip-prefix"]

    def test_emission_order(self, bundle):
        assert bundle.emission_order() == [
            "r-trailing-slash",
            "r-strip-prefix",
            "r-ingress-route",
        ]

    def test_emission_order_follows_edges(self, bundle):
        # Strip-prefix declared as depending on the redirect
        bundle.dependencies["r-trailing-slash"] = ["r-strip-prefix"]
        assert bundle.emission_order() == [
            "r-strip-prefix",
            "r-trailing-slash",
            "r-ingress-route",
        ]

    def test_emission_order_cycle(self, bundle):
        bundle.dependencies["r-trailing-slash"] = ["r-ingress-route"]
        with pytest.raises(ValueError, match="cycle"):
            bundle.emission_order()


class TestRoutesConfig:
    def test_from_dict_empty(self):
        config = RoutesConfig.from_dict(None)
        assert config.routes == []
        assert config.defaults.namespace == "default"

    def test_from_dict(self):
        config = RoutesConfig.from_dict({
            "version": 1,
            "defaults": {"namespace": "mlplatform"},
            "routes": [
                {"name": "mlflow-route", "prefix": "/mlflow", "service": "mlflow"},
                {"name": "api", "prefix": "/api", "service": "api-svc", "namespace": "apps"},
            ],
        })
        assert config.version == "1"
        assert len(config.routes) == 2
        assert config.routes[0].namespace == "mlplatform"
        assert config.routes[1].namespace == "apps"

    def test_get_route(self):
        config = RoutesConfig.from_dict({
            "routes": [{"name": "mlflow-route", "prefix": "/mlflow", "service": "mlflow"}],
        })
        assert config.get_route("mlflow-route").prefix == "/mlflow"
        assert config.get_route("missing") is None
