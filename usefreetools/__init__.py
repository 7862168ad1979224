"""Usefreetools API package.

Small browser-facing utilities exposed over HTTP, grouped by responsibility:
- routers: FastAPI endpoints (speech, documents, business, security, health)
- services: the tool implementations the routers call
- rate_limit / envelope / validation: the request and response conventions
  shared by every endpoint
- deepgram_client, gemini_client, virustotal_client: upstream API wrappers

The application itself is built by ``usefreetools.main.create_app``.
"""

__version__ = "1.0.0"
