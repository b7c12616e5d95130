"""
Schema loading, validation and backend resolution for routes.yaml.
"""

import json
import logging
from dataclasses import replace
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional

import jsonschema
import yaml

from .types import RoutesConfig, ServiceDescriptor

logger = logging.getLogger(__name__)

SCHEMA_PATH = Path(__file__).parent / "schemas" / "routes-schema.json"


def load_schema() -> Dict[str, Any]:
    """Load the JSON schema for routes.yaml."""
    with open(SCHEMA_PATH) as f:
        return json.load(f)


def validate_routes_yaml(data: Any) -> List[str]:
    """
    Validate routes.yaml data against the JSON schema.

    Only the structure is checked. Prefix shape, namespace names and
    service existence are left to the cluster at apply time.

    Returns list of validation errors (empty if valid).
    """
    validator = jsonschema.Draft7Validator(load_schema())
    errors = []
    for error in validator.iter_errors(data):
        path = ".".join(str(p) for p in error.absolute_path)
        errors.append(f"{path}: {error.message}" if path else error.message)
    return errors


def find_routes_yaml() -> Optional[Path]:
    """
    Find routes.yaml by searching up from current directory.

    Returns:
        Path to routes.yaml or None if not found
    """
    current = Path.cwd()
    for parent in [current] + list(current.parents):
        candidate = parent / "routes.yaml"
        if candidate.exists():
            return candidate
    return None


def load_routes_yaml(
    path: str = "routes.yaml",
    validate: bool = True,
) -> RoutesConfig:
    """
    Load and parse routes.yaml file.

    Args:
        path: Path to routes.yaml file
        validate: Whether to validate against schema

    Returns:
        Parsed RoutesConfig

    Raises:
        FileNotFoundError: If routes.yaml not found
        ValueError: If the file is not valid YAML, fails validation
            or misses a required key
    """
    routes_path = Path(path)
    if not routes_path.exists():
        raise FileNotFoundError(f"routes.yaml not found at {path}")

    with open(routes_path) as f:
        try:
            data = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise ValueError(f"routes.yaml is not valid YAML: {e}") from e

    if validate:
        errors = validate_routes_yaml(data)
        if errors:
            raise ValueError("routes.yaml validation failed:\n" + "\n".join(errors))

    try:
        config = RoutesConfig.from_dict(data)
    except KeyError as e:
        raise ValueError(f"routes.yaml is missing required key {e}") from e
    logger.debug("Loaded %d routes from %s", len(config.routes), routes_path)
    return config


def load_service_manifests(path: str) -> Dict[str, ServiceDescriptor]:
    """
    Index the v1/Service objects of a rendered manifest stream.

    Typically the output of `helm template` for the charts behind the routes.

    Args:
        path: Path to a multi-document YAML file

    Returns:
        Dict mapping service name to its resolved descriptor

    Raises:
        FileNotFoundError: If the file does not exist
        ValueError: If the file is not valid YAML or a Service is malformed
    """
    manifest_path = Path(path)
    if not manifest_path.exists():
        raise FileNotFoundError(f"Service manifests not found at {path}")

    services: Dict[str, ServiceDescriptor] = {}
    with open(manifest_path) as f:
        try:
            docs = list(yaml.safe_load_all(f))
        except yaml.YAMLError as e:
            raise ValueError(f"{path} is not valid YAML: {e}") from e

    for doc in docs:
        if not isinstance(doc, dict):
            continue
        if doc.get("apiVersion") != "v1" or doc.get("kind") != "Service":
            continue
        try:
            service = ServiceDescriptor.from_manifest(doc)
        except KeyError as e:
            raise ValueError(f"Malformed Service in {path}: missing key {e}") from e
        services[service.name] = service

    logger.debug("Indexed %d services from %s", len(services), manifest_path)
    return services


def resolve_backends(
    config: RoutesConfig,
    services: Mapping[str, ServiceDescriptor],
) -> RoutesConfig:
    """
    Replace bare backend names with resolved services where known.

    Routes whose backend is already resolved, or whose name has no match,
    are kept as they are. The input config is not modified.

    Args:
        config: Parsed routes.yaml
        services: Resolved services by name

    Returns:
        New RoutesConfig with resolved backends
    """
    routes = []
    for route in config.routes:
        if not route.is_resolved and route.backend in services:
            logger.debug("Resolved backend %s for route %s", route.backend, route.name)
            route = replace(route, backend=services[route.backend])
        elif not route.is_resolved:
            logger.debug(
                "Backend %s for route %s not found, keeping name reference",
                route.backend,
                route.name,
            )
        routes.append(route)
    return replace(config, routes=routes)
