"""
Mocku - request-driven mock API responder

Serves mock HTTP responses whose headers and bodies are rendered from
templates that reference the incoming request.
"""

__version__ = '1.0.0'
