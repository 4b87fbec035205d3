"""
Mocku Mock Server

FastAPI-based HTTP server that answers requests from declarative mock
rules with templated responses.

Features:
- Rule matching by method + path pattern (literal, {param}, {*catch-all})
- Templated headers and bodies with typed JSON substitution
- Per-rule artificial latency (bounded, cancelled with the request)
- Admin API for metrics, rule listing, runtime registration and reload
- In-memory request log
"""

from __future__ import annotations  # Enable forward references for type hints

import asyncio
import logging
import time
from dataclasses import asdict, dataclass, field, fields
from datetime import datetime
from typing import Any, Dict, Optional

import uvicorn
import yaml
from fastapi import FastAPI, Request, Response
from fastapi.responses import JSONResponse

from ..template import TemplateEngine, TemplateRenderError
from .request_log import RequestLog, RequestLogEntry
from .responder import RenderedResponse, Responder
from .rules import RuleError, RuleMatch, RuleStore

HOP_BY_HOP_HEADERS = {'content-length', 'transfer-encoding', 'connection'}


@dataclass
class MockConfig:
    """Configuration for mock server behavior."""

    # Server options
    host: str = "127.0.0.1"
    port: int = 8080
    log_level: str = "info"

    # Response behavior
    max_delay_ms: Optional[int] = 60000  # Upper bound for rule delayMs (None = unbounded)
    json_indent: Optional[int] = 2  # Indent for structured bodies (None = compact)
    debug_headers: bool = True  # Add X-Mocku-* headers to responses

    # Fallback behavior
    fallback_status: int = 404

    # Request log
    request_log_limit: int = 1000  # Maximum requests to keep (0 = unlimited)

    # Admin API
    admin_enabled: bool = True
    admin_prefix: str = "/__admin__"

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'MockConfig':
        """Create config from dictionary; unknown keys are ignored."""
        known = {f.name for f in fields(cls)}
        return cls(**{k: v for k, v in (data or {}).items() if k in known})

    @classmethod
    def from_yaml(cls, yaml_path: str) -> 'MockConfig':
        """Load config from YAML file."""
        with open(yaml_path, 'r') as f:
            data = yaml.safe_load(f) or {}

        if not isinstance(data, dict):
            raise ValueError(f"Expected a mapping in {yaml_path}, got {type(data).__name__}")

        # Allow the settings to live under a top-level "server" key
        return cls.from_dict(data.get('server', data))

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return asdict(self)


@dataclass
class MockMetrics:
    """Track mock server metrics."""

    total_requests: int = 0
    matched_requests: int = 0
    unmatched_requests: int = 0
    render_errors: int = 0
    start_time: str = field(default_factory=lambda: datetime.now().isoformat())

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        uptime_seconds = (datetime.now() - datetime.fromisoformat(self.start_time)).total_seconds()
        return {
            'total_requests': self.total_requests,
            'matched_requests': self.matched_requests,
            'unmatched_requests': self.unmatched_requests,
            'render_errors': self.render_errors,
            'match_rate': round((self.matched_requests / self.total_requests * 100) if self.total_requests > 0 else 0, 2),
            'uptime_seconds': round(uptime_seconds, 2),
            'start_time': self.start_time
        }


class MockServer:
    """
    FastAPI-based mock server for serving templated responses.

    Example:
        # Load rules and start server
        server = MockServer('mocks')
        server.start(host='0.0.0.0', port=8080)

        # With custom config
        config = MockConfig(port=9090, max_delay_ms=2000)
        server = MockServer('mocks', config=config)
        server.start()
    """

    def __init__(
        self,
        rules_dir: Optional[str] = None,
        config: Optional[MockConfig] = None,
        rule_store: Optional[RuleStore] = None,
        responder: Optional[Responder] = None
    ):
        """
        Initialize mock server.

        Args:
            rules_dir: Directory with mock rule files
            config: Optional MockConfig for server behavior
            rule_store: Optional RuleStore instance (will create if None)
            responder: Optional Responder instance (will create if None)
        """
        self.config = config or MockConfig()
        self.metrics = MockMetrics()
        self.request_log = RequestLog(limit=self.config.request_log_limit)

        # Setup logging first (before loading rules)
        self.logger = logging.getLogger("mocku.server")
        self.logger.setLevel(getattr(logging, self.config.log_level.upper(), logging.INFO))

        self.store = rule_store or RuleStore(rules_dir)
        self.responder = responder or Responder(
            engine=TemplateEngine(indent=self.config.json_indent),
            max_delay_ms=self.config.max_delay_ms
        )

        self.app = self._create_app()

    def _create_app(self) -> FastAPI:
        """Create FastAPI application with routes."""
        app = FastAPI(
            title="Mocku Mock Server",
            description="Mock HTTP server rendering templated responses from mock rules",
            version="1.0.0"
        )

        # Admin API routes
        if self.config.admin_enabled:
            prefix = self.config.admin_prefix

            @app.get(f"{prefix}/metrics")
            async def get_metrics():
                """Get server metrics."""
                return JSONResponse(content=self.metrics.to_dict())

            @app.post(f"{prefix}/reset")
            async def reset_metrics():
                """Reset metrics."""
                self.metrics = MockMetrics()
                return JSONResponse(content={'status': 'reset'})

            @app.get(f"{prefix}/config")
            async def get_config():
                """Get current configuration."""
                snapshot = self.store.snapshot()
                return JSONResponse(content={
                    **self.config.to_dict(),
                    'rules_dir': str(self.store.directory) if self.store.directory else None,
                    'total_rules': len(snapshot)
                })

            @app.get(f"{prefix}/mocks")
            async def list_mocks():
                """List loaded mock rules and rejected definitions."""
                snapshot = self.store.snapshot()
                return JSONResponse(content={
                    'total': len(snapshot),
                    'mocks': [rule.summary() for rule in snapshot.rules],
                    'invalid': [entry.to_dict() for entry in snapshot.invalid]
                })

            @app.post(f"{prefix}/mocks")
            async def register_mock(request: Request):
                """Register a mock rule at runtime."""
                try:
                    data = await request.json()
                except ValueError:
                    return JSONResponse(content={'error': 'Request body must be JSON'}, status_code=400)

                if not isinstance(data, dict):
                    return JSONResponse(content={'error': 'Mock rule must be a JSON object'}, status_code=400)

                try:
                    rule = self.store.register(data)
                except RuleError as e:
                    return JSONResponse(content={'error': str(e)}, status_code=400)

                return JSONResponse(content={'status': 'registered', 'mock': rule.summary()}, status_code=201)

            @app.post(f"{prefix}/reload")
            async def reload_mocks():
                """Reload mock rules from the rules directory."""
                if self.store.directory is None:
                    return JSONResponse(content={'error': 'No rules directory configured'}, status_code=400)

                try:
                    snapshot = self.store.reload()
                except OSError as e:
                    self.logger.error(f"Reload failed: {e}")
                    return JSONResponse(content={'error': str(e)}, status_code=500)

                return JSONResponse(content={
                    'status': 'reloaded',
                    'total': len(snapshot),
                    'invalid': len(snapshot.invalid)
                })

            @app.get(f"{prefix}/requests")
            async def get_requests():
                """Get logged requests, most recent first."""
                return JSONResponse(content={
                    'total': len(self.request_log),
                    'limit': self.request_log.limit,
                    'requests': [entry.to_dict() for entry in self.request_log.entries()]
                })

            @app.delete(f"{prefix}/requests")
            async def clear_requests():
                """Clear the request log."""
                count = self.request_log.clear()
                return JSONResponse(content={
                    'status': 'cleared',
                    'cleared_count': count
                })

        # Main catch-all route for mocking
        @app.api_route("/{path:path}", methods=["GET", "POST", "PUT", "DELETE", "PATCH", "HEAD", "OPTIONS"])
        async def mock_request(request: Request, path: str):
            """Handle incoming requests and serve mock responses."""
            return await self._handle_request(request)

        return app

    async def _handle_request(self, request: Request) -> Response:
        """
        Handle incoming request and serve mock response.

        Args:
            request: FastAPI Request object

        Returns:
            FastAPI Response with the rendered mock
        """
        start_time = time.time()
        self.metrics.total_requests += 1

        method = request.method
        path = self._request_path(request)
        query_string = request.url.query
        headers = list(request.headers.items())
        body = await request.body()

        self.logger.debug(f"Incoming: {method} {path}")

        # One snapshot for the whole request, even if a reload happens meanwhile
        snapshot = self.store.snapshot()
        match = snapshot.find_match(method, path)

        if match is None:
            self.metrics.unmatched_requests += 1
            self.logger.warning(f"No mock rule matched {method} {path}")
            response = self._create_fallback(method, path, snapshot)
        else:
            self.metrics.matched_requests += 1
            context = self.responder.build_context(match, method, path, headers, query_string, body)

            delay = self.responder.delay_seconds(match.rule)
            if delay > 0:
                await asyncio.sleep(delay)

            try:
                rendered = self.responder.render(match.rule, context)
                # Header values are encoded as latin-1 when the response is built
                response = self._create_response(rendered, match)
            except (TemplateRenderError, UnicodeEncodeError) as e:
                self.metrics.render_errors += 1
                self.logger.error(f"Error rendering mock response for {method} {path}: {e}")
                response = JSONResponse(
                    content={'error': f"Internal server error processing mock: {e}"},
                    status_code=500
                )

        elapsed_ms = (time.time() - start_time) * 1000
        self.request_log.record(RequestLogEntry(
            method=method,
            path=path,
            query_string=query_string,
            headers=dict(headers),
            request_body=body.decode('utf-8', errors='replace'),
            status_code=response.status_code,
            response_headers={k: v for k, v in response.headers.items()},
            response_body=response.body.decode('utf-8', errors='replace'),
            matched=match is not None,
            rule_source=match.rule.source if match else None,
            response_time_ms=round(elapsed_ms, 2),
            client_ip=request.client.host if request.client else "unknown"
        ))

        self.logger.info(f"{method} {path} -> {response.status_code} ({elapsed_ms:.1f}ms)")
        return response

    @staticmethod
    def _request_path(request: Request) -> str:
        """Undecoded request path, so parameter values are decoded exactly once."""
        raw_path = request.scope.get('raw_path')
        if raw_path:
            return raw_path.decode('latin-1').split('?', 1)[0]
        return request.url.path

    def _create_response(self, rendered: RenderedResponse, match: RuleMatch) -> Response:
        """
        Create FastAPI Response from a rendered mock.

        Args:
            rendered: Rendered status, headers and body
            match: The matched rule

        Returns:
            FastAPI Response object
        """
        # Filter headers that FastAPI shouldn't set manually
        headers = {
            k: v for k, v in rendered.headers.items()
            if k.lower() not in HOP_BY_HOP_HEADERS and k.lower() != 'content-type'
        }

        if self.config.debug_headers:
            headers['X-Mocku-Matched'] = 'true'
            headers['X-Mocku-Rule'] = f"{match.rule.method} {match.rule.path_spec}"

        return Response(
            content=rendered.body,
            status_code=rendered.status_code,
            headers=headers,
            media_type=rendered.content_type
        )

    def _create_fallback(self, method: str, path: str, snapshot) -> Response:
        """Create the no-match response with debugging information."""
        candidates = snapshot.for_method(method)

        content = {
            "error": "No mock rule matched the request",
            "request": {
                "method": method,
                "path": path
            },
            "debug": {
                "total_rules": len(snapshot),
                "rules_with_method": len(candidates),
                "invalid_rules": len(snapshot.invalid)
            }
        }

        if candidates:
            content["available"] = [rule.path_spec for rule in candidates[:20]]

        headers = {'X-Mocku-Matched': 'false'} if self.config.debug_headers else None
        return JSONResponse(content=content, status_code=self.config.fallback_status, headers=headers)

    def start(
        self,
        host: Optional[str] = None,
        port: Optional[int] = None,
        access_log: bool = True
    ):
        """
        Start the mock server.

        Args:
            host: Host to bind to (overrides config)
            port: Port to bind to (overrides config)
            access_log: Enable access logging
        """
        actual_host = host or self.config.host
        actual_port = port or self.config.port

        snapshot = self.store.snapshot()
        self.logger.info(f"Mocku Mock Server starting on {actual_host}:{actual_port}")
        self.logger.info(f"Mock rules loaded: {len(snapshot)} ({len(snapshot.invalid)} invalid)")

        if self.config.admin_enabled:
            self.logger.info(f"Admin API: http://{actual_host}:{actual_port}{self.config.admin_prefix}/mocks")

        uvicorn.run(
            self.app,
            host=actual_host,
            port=actual_port,
            log_level=self.config.log_level,
            access_log=access_log
        )

    def get_app(self) -> FastAPI:
        """
        Get the FastAPI app instance for testing or custom deployment.

        Returns:
            FastAPI application instance
        """
        return self.app


def create_mock_server(
    rules_dir: str,
    host: str = "127.0.0.1",
    port: int = 8080,
    log_level: str = "info",
    max_delay_ms: Optional[int] = 60000,
    request_log_limit: int = 1000,
    admin_enabled: bool = True
) -> MockServer:
    """
    Convenience function to create and configure a mock server.

    Args:
        rules_dir: Directory with mock rule files
        host: Host to bind to
        port: Port to bind to
        log_level: Log level for server and uvicorn
        max_delay_ms: Upper bound for rule delays (None = unbounded)
        request_log_limit: Maximum requests to keep (0 = unlimited)
        admin_enabled: Enable admin API

    Returns:
        Configured MockServer instance

    Raises:
        FileNotFoundError: If rules_dir doesn't exist

    Example:
        server = create_mock_server('mocks', port=8080, max_delay_ms=500)
        server.start()
    """
    config = MockConfig(
        host=host,
        port=port,
        log_level=log_level,
        max_delay_ms=max_delay_ms,
        request_log_limit=request_log_limit,
        admin_enabled=admin_enabled
    )

    return MockServer(rules_dir, config=config)
