"""
Mocku CLI

Command-line interface for the Mocku mock server.

Commands:
    serve       - Start the mock HTTP server
    validate    - Validate a directory of mock rules
    render      - Render the response a request would get, without a server

Examples:
    # Start mock server
    mocku serve mocks --port 8080

    # Check rule files
    mocku validate mocks

    # Preview a response
    mocku render mocks GET "/api/users/77?active=yes" -H "X-Api-Key: secret"
"""

import argparse
import logging
import sys
from typing import List, Optional

from . import __version__
from .mock import MockConfig, MockServer, Responder, RuleStore
from .template import TemplateEngine, TemplateRenderError

LOG_LEVELS = ['debug', 'info', 'warning', 'error']


def setup_logging(level: str):
    """Configure root logging for the CLI."""
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format='%(asctime)s %(levelname)s [%(name)s] %(message)s'
    )


def load_store(rules_dir: str) -> RuleStore:
    """Load the rules directory or exit with an error."""
    try:
        return RuleStore(rules_dir)
    except FileNotFoundError as e:
        print(f"❌ {e}")
        sys.exit(1)


def build_config(args) -> MockConfig:
    """
    Build server config from an optional YAML file plus CLI overrides.

    Args:
        args: Parsed command-line arguments

    Returns:
        MockConfig with explicitly given flags taking precedence
    """
    if args.config:
        try:
            config = MockConfig.from_yaml(args.config)
        except (OSError, ValueError) as e:
            print(f"❌ Failed to load config {args.config}: {e}")
            sys.exit(1)
    else:
        config = MockConfig()

    if args.host is not None:
        config.host = args.host
    if args.port is not None:
        config.port = args.port
    if args.log_level is not None:
        config.log_level = args.log_level
    if args.max_delay is not None:
        config.max_delay_ms = args.max_delay
    if args.log_limit is not None:
        config.request_log_limit = args.log_limit
    if args.no_admin:
        config.admin_enabled = False

    return config


def cmd_serve(args):
    """
    Start the mock HTTP server.

    Args:
        args: Parsed command-line arguments
    """
    config = build_config(args)
    setup_logging(config.log_level)

    print(f"🎭 Mocku Mock Server")
    print(f"   Rules: {args.rules_dir}")

    store = load_store(args.rules_dir)
    snapshot = store.snapshot()
    print(f"   Loaded {len(snapshot)} mock rules")
    if snapshot.invalid:
        print(f"⚠️  {len(snapshot.invalid)} invalid rules skipped (run 'mocku validate {args.rules_dir}')")

    server = MockServer(config=config, rule_store=store)

    # Start server (blocking)
    try:
        server.start()
    except KeyboardInterrupt:
        print("\n\n👋 Mock server stopped")


def cmd_validate(args):
    """
    Validate mock rules and report issues.

    Args:
        args: Parsed command-line arguments
    """
    setup_logging(args.log_level or 'error')

    print(f"✓ Mocku Rule Validation")
    print(f"   Rules: {args.rules_dir}")
    print()

    snapshot = load_store(args.rules_dir).snapshot()

    for rule in snapshot.rules:
        print(f"   ✅ {rule.method:7} {rule.path_spec}  ({rule.source})")

    if snapshot.invalid:
        print()
        print("❌ Invalid rules:")
        for entry in snapshot.invalid:
            print(f"   • {entry.source}: {entry.error}")

    print()
    print(f"📊 Summary:")
    print(f"   Valid: {len(snapshot)}")
    print(f"   Invalid: {len(snapshot.invalid)}")

    if snapshot.invalid:
        sys.exit(1)


def parse_header_args(values: Optional[List[str]]) -> List[tuple]:
    """Parse repeated 'Name: value' arguments into header pairs."""
    headers = []
    for item in values or []:
        if ':' not in item:
            print(f"❌ Invalid header {item!r}, expected 'Name: value'")
            sys.exit(1)
        name, value = item.split(':', 1)
        headers.append((name.strip(), value.strip()))
    return headers


def cmd_render(args):
    """
    Render the response for a request without starting a server.

    Args:
        args: Parsed command-line arguments
    """
    setup_logging(args.log_level or 'warning')

    snapshot = load_store(args.rules_dir).snapshot()

    path, _, query = args.path.partition('?')
    if args.query:
        query = f"{query}&{args.query}" if query else args.query

    match = snapshot.find_match(args.method, path)
    if match is None:
        print(f"❌ No mock rule matched {args.method.upper()} {path}")
        sys.exit(1)

    responder = Responder(engine=TemplateEngine(indent=args.indent))
    context = responder.build_context(
        match,
        args.method,
        path,
        raw_headers=parse_header_args(args.header),
        raw_query=query,
        raw_body=args.body
    )

    try:
        rendered = responder.render(match.rule, context)
    except TemplateRenderError as e:
        print(f"❌ Failed to render {match.rule.source}: {e}")
        sys.exit(1)

    print(f"HTTP {rendered.status_code}")
    print(f"Content-Type: {rendered.content_type}")
    for name, value in rendered.headers.items():
        print(f"{name}: {value}")
    print()
    print(rendered.body)


def main(argv: Optional[List[str]] = None):
    """Main CLI entry point."""
    parser = argparse.ArgumentParser(
        prog='mocku',
        description="Mocku - request-driven mock API responder",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Start mock server on port 9090
  %(prog)s serve mocks --port 9090

  # Validate rule files
  %(prog)s validate mocks

  # Render a response offline
  %(prog)s render mocks POST /api/orders --body '{"id": "42"}'
        """
    )
    parser.add_argument('--version', action='version', version=f"%(prog)s {__version__}")

    subparsers = parser.add_subparsers(dest='command', help='Command to run')

    # --- SERVE command ---
    serve_parser = subparsers.add_parser('serve', help='Start mock HTTP server')
    serve_parser.add_argument('rules_dir', help='Directory with mock rule files')
    serve_parser.add_argument('-c', '--config', help='YAML config file (flags override it)')
    serve_parser.add_argument('--host', help='Host to bind (default: 127.0.0.1)')
    serve_parser.add_argument('-p', '--port', type=int, help='Port to bind (default: 8080)')
    serve_parser.add_argument('--log-level', choices=LOG_LEVELS, help='Log level (default: info)')
    serve_parser.add_argument('--no-admin', action='store_true', help='Disable admin API')
    serve_parser.add_argument('--max-delay', type=int, help='Upper bound for rule delays in ms (default: 60000)')
    serve_parser.add_argument('--log-limit', type=int,
                              help='Maximum requests kept in the request log (default: 1000, 0=unlimited)')

    # --- VALIDATE command ---
    validate_parser = subparsers.add_parser('validate', help='Validate mock rule files')
    validate_parser.add_argument('rules_dir', help='Directory with mock rule files')
    validate_parser.add_argument('--log-level', choices=LOG_LEVELS, help='Log level (default: error)')

    # --- RENDER command ---
    render_parser = subparsers.add_parser('render', help='Render a mock response offline')
    render_parser.add_argument('rules_dir', help='Directory with mock rule files')
    render_parser.add_argument('method', help='HTTP method')
    render_parser.add_argument('path', help='Request path, optionally with a query string')
    render_parser.add_argument('-H', '--header', action='append', help="Request header 'Name: value' (repeatable)")
    render_parser.add_argument('-q', '--query', help='Query string (appended to any query in path)')
    render_parser.add_argument('-b', '--body', help='Raw request body')
    render_parser.add_argument('--indent', type=int, default=2, help='JSON indent for structured bodies (default: 2)')
    render_parser.add_argument('--log-level', choices=LOG_LEVELS, help='Log level (default: warning)')

    # Parse arguments
    args = parser.parse_args(argv)

    # Dispatch to command handler
    if args.command == 'serve':
        cmd_serve(args)
    elif args.command == 'validate':
        cmd_validate(args)
    elif args.command == 'render':
        cmd_render(args)
    else:
        parser.print_help()
        sys.exit(1)


if __name__ == '__main__':
    main()
