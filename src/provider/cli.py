"""Druid Kafka supervisor CLI.

Validate, render and reconcile a ``druid_kafka_supervisor`` declaration
against a Druid cluster. Connection settings come from config.yaml and the
DRUID_* environment variables (a .env file in the project root is loaded
first).
"""

import argparse
import asyncio
import json
import logging
import sys
from dataclasses import asdict
from pathlib import Path

from dotenv import load_dotenv
from pydantic import ValidationError

from config.config import expand_env_vars, load_config, load_yaml
from core.errors import ConfigValidationError, ProviderError
from core.logging import generate_trace_id, log_exception, set_log_context, setup_logging
from provider.client import DruidSupervisorClient
from provider.reconciler import SupervisorReconciler
from provider.schemas.resource import ResourceConfig
from provider.schemas.status import TrackedResource
from provider.spec_builder import render_spec_json
from provider.state import JsonStateStore, ResourceState
from provider.validation import ResourceValidator, validate_resource_config

# cli.py is at src/provider/cli.py, so root is 3 levels up
PROJECT_ROOT = Path(__file__).parent.parent.parent

DEFAULT_STATE_FILE = Path("supervisor.state.json")

logger = logging.getLogger(__name__)


def load_declaration(path: Path) -> ResourceConfig:
    """Parse a declaration file into a ResourceConfig (no structural checks).

    Raises:
        FileNotFoundError: If the file does not exist
        pydantic.ValidationError: On unknown attributes or wrong types
    """
    if not path.exists():
        raise FileNotFoundError(f"Declaration file not found: {path}")
    return ResourceConfig.from_declaration(expand_env_vars(load_yaml(path)))


def _client(args: argparse.Namespace) -> DruidSupervisorClient:
    return DruidSupervisorClient.from_config(load_config(config_path=args.config))


def _print_json(data: dict) -> None:
    print(json.dumps(data, indent=2))


async def cmd_validate(args: argparse.Namespace) -> int:
    """Check a declaration without contacting the cluster."""
    config = load_declaration(args.file)
    errors = ResourceValidator().validate(config)
    if errors:
        print(f"✗ {args.file}: {len(errors)} problem(s)", file=sys.stderr)
        for error in errors:
            print(f"  - {error}", file=sys.stderr)
        return 1
    print(f"✓ {args.file} is valid")
    return 0


async def cmd_render(args: argparse.Namespace) -> int:
    """Print the request document a declaration renders to."""
    config = load_declaration(args.file)
    if not args.skip_validation:
        validate_resource_config(config)
    print(render_spec_json(config))
    return 0


async def cmd_apply(args: argparse.Namespace) -> int:
    config = validate_resource_config(load_declaration(args.file))
    store = JsonStateStore(args.state)
    previous = store.load() or ResourceState()

    resource = TrackedResource(config=config, id=previous.id, state=previous.state)
    try:
        async with _client(args) as client:
            action = await SupervisorReconciler(client).apply(resource, previous.prior_config())
    except BaseException:
        # A supervisor the server already created must stay tracked
        if resource.id != previous.id:
            store.save(ResourceState.from_resource(resource))
        raise

    store.save(ResourceState.from_resource(resource))
    _print_json({"action": action.value, "id": resource.id, "state": resource.state})
    return 0


async def cmd_status(args: argparse.Namespace) -> int:
    async with _client(args) as client:
        status = await client.get_status(args.supervisor_id)

    if status is None:
        print(f"Supervisor {args.supervisor_id} not found", file=sys.stderr)
        return 1
    _print_json(asdict(status))
    return 0


async def cmd_suspend(args: argparse.Namespace) -> int:
    async with _client(args) as client:
        await client.suspend(args.supervisor_id)
    print(f"✓ Suspend requested for {args.supervisor_id}")
    return 0


async def cmd_resume(args: argparse.Namespace) -> int:
    async with _client(args) as client:
        await client.resume(args.supervisor_id)
    print(f"✓ Resume requested for {args.supervisor_id}")
    return 0


async def cmd_destroy(args: argparse.Namespace) -> int:
    """Terminate the tracked supervisor and remove the state file."""
    store = JsonStateStore(args.state)
    previous = store.load()
    if previous is None or not previous.id:
        print("Nothing tracked, nothing to destroy")
        store.clear()
        return 0

    config = previous.prior_config()
    if config is None:
        raise ValueError(f"State file {args.state} has no recorded declaration")

    resource = TrackedResource(config=config, id=previous.id, state=previous.state)
    async with _client(args) as client:
        await SupervisorReconciler(client).delete(resource)

    store.clear()
    print(f"✓ Supervisor {previous.id} terminated")
    return 0


async def cmd_import(args: argparse.Namespace) -> int:
    """Start tracking an existing supervisor."""
    config = validate_resource_config(load_declaration(args.file))
    async with _client(args) as client:
        resource = await SupervisorReconciler(client).import_resource(args.supervisor_id, config)

    if not resource.exists:
        print(f"Supervisor {args.supervisor_id} not found, nothing imported", file=sys.stderr)
        return 1

    JsonStateStore(args.state).save(ResourceState.from_resource(resource))
    _print_json({"id": resource.id, "state": resource.state})
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="druid-supervisor",
        description="Druid Kafka supervisor provider CLI",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
    # Check a declaration
    druid-supervisor validate -f examples/orders_supervisor.yaml

    # Show the request document it renders to
    druid-supervisor render -f examples/orders_supervisor.yaml

    # Create or converge the supervisor, tracking it in a state file
    druid-supervisor apply -f examples/orders_supervisor.yaml --state orders.state.json

    # Inspect, pause and restart
    druid-supervisor status orders
    druid-supervisor suspend orders
    druid-supervisor resume orders

    # Adopt an existing supervisor, then tear it down
    druid-supervisor import orders -f examples/orders_supervisor.yaml --state orders.state.json
    druid-supervisor destroy --state orders.state.json
        """,
    )
    parser.add_argument("--config", type=Path, help="Path to provider config.yaml")
    parser.add_argument(
        "--log-level",
        default="INFO",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Console log level (default: INFO)",
    )
    parser.add_argument("--json-logs", action="store_true", help="Emit JSON log lines")

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    def add_file(p: argparse.ArgumentParser) -> None:
        p.add_argument("-f", "--file", type=Path, required=True, help="Declaration YAML file")

    def add_state(p: argparse.ArgumentParser) -> None:
        p.add_argument(
            "--state",
            type=Path,
            default=DEFAULT_STATE_FILE,
            help=f"State file (default: {DEFAULT_STATE_FILE})",
        )

    parser_validate = subparsers.add_parser("validate", help="Validate a declaration")
    add_file(parser_validate)
    parser_validate.set_defaults(func=cmd_validate)

    parser_render = subparsers.add_parser("render", help="Print the rendered supervisor spec")
    add_file(parser_render)
    parser_render.add_argument(
        "--skip-validation", action="store_true", help="Render without structural checks"
    )
    parser_render.set_defaults(func=cmd_render)

    parser_apply = subparsers.add_parser("apply", help="Create or converge the supervisor")
    add_file(parser_apply)
    add_state(parser_apply)
    parser_apply.set_defaults(func=cmd_apply)

    for name, func, help_text in (
        ("status", cmd_status, "Show supervisor status"),
        ("suspend", cmd_suspend, "Suspend a supervisor"),
        ("resume", cmd_resume, "Resume a suspended supervisor"),
    ):
        sub = subparsers.add_parser(name, help=help_text)
        sub.add_argument("supervisor_id", help="Supervisor id")
        sub.set_defaults(func=func)

    parser_destroy = subparsers.add_parser("destroy", help="Terminate the tracked supervisor")
    add_state(parser_destroy)
    parser_destroy.set_defaults(func=cmd_destroy)

    parser_import = subparsers.add_parser("import", help="Track an existing supervisor")
    parser_import.add_argument("supervisor_id", help="Supervisor id")
    add_file(parser_import)
    add_state(parser_import)
    parser_import.set_defaults(func=cmd_import)

    return parser


def main(argv: list[str] | None = None) -> int:
    """Main CLI entry point."""
    # Load environment variables from .env file before any config access
    load_dotenv(PROJECT_ROOT / ".env")

    parser = build_parser()
    args = parser.parse_args(argv)

    if not args.command:
        parser.print_help()
        return 1

    setup_logging(
        name="provider",
        console_level=getattr(logging, args.log_level),
        json_format=args.json_logs,
    )
    # Every log line of this invocation shares one trace id
    set_log_context(trace_id=generate_trace_id())

    try:
        return asyncio.run(args.func(args))
    except KeyboardInterrupt:
        print("\n\nOperation cancelled by user.")
        return 130
    except ConfigValidationError as e:
        print("✗ Invalid declaration:", file=sys.stderr)
        for error in e.errors:
            print(f"  - {error}", file=sys.stderr)
        return 1
    except ValidationError as e:
        print(f"✗ Invalid declaration:\n{e}", file=sys.stderr)
        return 1
    except ProviderError as e:
        log_exception(logger, e, f"{args.command} failed", include_traceback=False)
        return 1
    except (FileNotFoundError, ValueError) as e:
        logger.error("Error: %s", e)
        return 1


if __name__ == "__main__":
    sys.exit(main())
