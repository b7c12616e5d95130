"""
CLI for traefikroute - Traefik route manifest generator.

Commands:
    generate    Generate Middleware and IngressRoute manifests
    list        List routes from routes.yaml
    validate    Validate routes.yaml schema
"""

import argparse
import json
import logging
import sys
from typing import Dict, List, Optional

import yaml

from .generators import (
    build_route_bundle,
    generate_all_manifests,
    generate_bundle_manifests,
    render_manifests,
    resolve_backend_port,
    write_manifests,
)
from .schema import (
    find_routes_yaml,
    load_routes_yaml,
    load_service_manifests,
    resolve_backends,
    validate_routes_yaml,
)
from .types import RoutesConfig, ServiceDescriptor

logger = logging.getLogger(__name__)


def create_parser() -> argparse.ArgumentParser:
    """Create the argument parser."""
    parser = argparse.ArgumentParser(
        prog="traefikroute",
        description="Generate Traefik Middleware and IngressRoute manifests from routes.yaml",
    )
    parser.add_argument(
        "-f", "--file",
        default=None,
        help="Path to routes.yaml (default: auto-detect)",
    )
    parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Enable verbose output",
    )

    subparsers = parser.add_subparsers(dest="command", help="Commands")

    # generate command
    gen_parser = subparsers.add_parser(
        "generate",
        help="Generate manifests for all routes",
    )
    gen_parser.add_argument(
        "-o", "--output",
        help="Output directory (default: stdout)",
    )
    gen_parser.add_argument(
        "--format",
        choices=["yaml", "json"],
        default="yaml",
        help="Output format (default: yaml)",
    )
    gen_parser.add_argument(
        "--services",
        default=None,
        help="Rendered manifests used to resolve service ports (e.g. helm template output)",
    )
    gen_parser.add_argument(
        "--route",
        default=None,
        help="Only generate the named route",
    )

    # list command
    list_parser = subparsers.add_parser(
        "list",
        help="List routes from routes.yaml",
    )
    list_parser.add_argument(
        "--services",
        default=None,
        help="Rendered manifests used to resolve service ports",
    )
    list_parser.add_argument(
        "--json",
        action="store_true",
        help="Output as JSON",
    )

    # validate command
    subparsers.add_parser(
        "validate",
        help="Validate routes.yaml schema",
    )

    return parser


def get_routes_path(path: Optional[str] = None) -> str:
    """
    Get the routes.yaml path to use.

    Args:
        path: Explicit path from the command line

    Returns:
        The explicit path, else the nearest routes.yaml up from cwd,
        else "routes.yaml"
    """
    if path:
        return path
    found = find_routes_yaml()
    return str(found) if found else "routes.yaml"


def load_config(
    path: Optional[str],
    services_path: Optional[str] = None,
) -> RoutesConfig:
    """
    Load routes.yaml and resolve backends against rendered services.

    Raises:
        FileNotFoundError: If routes.yaml or the services file is missing
        ValueError: If either file is malformed or routes.yaml fails validation
    """
    config = load_routes_yaml(get_routes_path(path))
    if services_path:
        services: Dict[str, ServiceDescriptor] = load_service_manifests(services_path)
        config = resolve_backends(config, services)
    return config


def cmd_generate(args: argparse.Namespace) -> int:
    """Handle generate command."""
    routes_path = get_routes_path(args.file)
    try:
        config = load_config(routes_path, args.services)
    except (FileNotFoundError, ValueError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    if args.route:
        spec = config.get_route(args.route)
        if not spec:
            print(f"Error: Route '{args.route}' not found in {routes_path}", file=sys.stderr)
            print(f"Available routes: {', '.join(r.name for r in config.routes)}", file=sys.stderr)
            return 1
        manifests = generate_bundle_manifests(build_route_bundle(spec))
        filename = spec.name
    else:
        if not config.routes:
            print(f"No routes defined in {routes_path}", file=sys.stderr)
            return 0
        manifests = generate_all_manifests(config)
        filename = "routes"

    if args.output:
        out_file = write_manifests(manifests, args.output, args.format, filename=filename)
        print(f"Written: {out_file}", file=sys.stderr)
    else:
        print(render_manifests(manifests, args.format))

    logger.info("Generated %d manifests", len(manifests))
    return 0


def cmd_list(args: argparse.Namespace) -> int:
    """Handle list command."""
    try:
        config = load_config(args.file, args.services)
    except (FileNotFoundError, ValueError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    if args.json:
        route_data = []
        for route in config.routes:
            route_data.append({
                "name": route.name,
                "namespace": route.namespace,
                "prefix": route.prefix,
                "service": route.backend_name,
                "port": resolve_backend_port(route),
                "strip_prefix": route.include_strip_prefix,
                "resolved": route.is_resolved,
            })
        print(json.dumps(route_data, indent=2))
        return 0

    if not config.routes:
        print("No routes found")
        return 0

    print(f"{'NAME':<20} {'NAMESPACE':<15} {'PREFIX':<20} {'BACKEND':<30} {'STRIP':<6}")
    print("-" * 95)

    for route in config.routes:
        backend = f"{route.backend_name}:{resolve_backend_port(route)}"
        strip = "yes" if route.include_strip_prefix else "no"
        print(
            f"{route.name:<20} "
            f"{route.namespace:<15} "
            f"{route.prefix:<20} "
            f"{backend:<30} "
            f"{strip:<6}"
        )

    print(f"\nTotal: {len(config.routes)} routes")
    return 0


def cmd_validate(args: argparse.Namespace) -> int:
    """Handle validate command."""
    routes_path = get_routes_path(args.file)
    try:
        with open(routes_path) as f:
            data = yaml.safe_load(f)
    except FileNotFoundError:
        print(f"Error: routes.yaml not found at {routes_path}", file=sys.stderr)
        return 1
    except yaml.YAMLError as e:
        print(f"Error: {routes_path} is not valid YAML: {e}", file=sys.stderr)
        return 1

    errors = validate_routes_yaml(data)
    if errors:
        print("Validation errors:", file=sys.stderr)
        for error in errors:
            print(f"  - {error}", file=sys.stderr)
        return 1

    print(f"✓ {routes_path} is valid")

    # Also try to parse it
    try:
        config = load_routes_yaml(routes_path, validate=False)
    except ValueError as e:
        print(f"Warning: Schema valid but parsing failed: {e}", file=sys.stderr)
        return 1

    print(f"  Found {len(config.routes)} routes")
    for route in config.routes:
        print(f"    - {route.name} ({route.prefix} -> {route.backend_name})")

    return 0


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point."""
    parser = create_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
        stream=sys.stderr,
    )

    if not args.command:
        parser.print_help()
        return 0

    commands = {
        "generate": cmd_generate,
        "list": cmd_list,
        "validate": cmd_validate,
    }

    handler = commands.get(args.command)
    if handler:
        return handler(args)

    parser.print_help()
    return 1


if __name__ == "__main__":
    sys.exit(main())
