"""
HTTP backend for the duty log service.

Exposes the engine's operations as JSON endpoints on a threaded stdlib
server, without introducing a web framework.
"""

from __future__ import annotations

import argparse
import json
import logging
import os
from http.server import BaseHTTPRequestHandler, ThreadingHTTPServer
from typing import Any, Callable, Dict, Optional, Tuple
from urllib.parse import parse_qs, unquote, urlparse

from dotenv import load_dotenv

from src.core.config import Config, config
from src.core.exceptions import ConfigurationError, DataValidationError, DutyLogError
from src.core.logging_config import configure_application_logging
from src.duty import DutyLogEngine, create_engine

load_dotenv()

logger = logging.getLogger("backend")

BYDATE_PREFIX = "/admins/bydate/"


def _stats_payload(stats) -> list:
    return [s.to_api() for s in stats]


class DutyLogServer(ThreadingHTTPServer):
    """Threaded HTTP server carrying the engine its handlers talk to."""

    daemon_threads = True

    def __init__(self, server_address: Tuple[str, int], engine: DutyLogEngine):
        self.engine = engine
        super().__init__(server_address, BackendHandler)


class BackendHandler(BaseHTTPRequestHandler):
    server_version = "DutyLogBackend/1.0"

    @property
    def engine(self) -> DutyLogEngine:
        return self.server.engine

    def log_message(self, format: str, *args: Any) -> None:
        logger.debug("%s - %s", self.address_string(), format % args)

    def _send_cors_headers(self) -> None:
        self.send_header("Access-Control-Allow-Origin", "*")
        self.send_header("Access-Control-Allow-Headers", "Content-Type")
        self.send_header("Access-Control-Allow-Methods", "GET, POST, OPTIONS")

    def _send_json(self, status: int, payload: Any) -> None:
        body = json.dumps(payload, ensure_ascii=False).encode("utf-8")
        self.send_response(status)
        self.send_header("Content-Type", "application/json; charset=utf-8")
        self._send_cors_headers()
        self.send_header("Content-Length", str(len(body)))
        self.end_headers()
        self.wfile.write(body)

    def _read_json(self) -> Dict[str, Any]:
        try:
            length = int(self.headers.get("Content-Length", "0") or 0)
        except ValueError:
            return {}
        if length <= 0:
            return {}
        data = self.rfile.read(length)
        try:
            payload = json.loads(data.decode("utf-8"))
        except ValueError:
            # Also covers undecodable bytes and oversized integer literals
            return {}
        return payload if isinstance(payload, dict) else {}

    def _dispatch(self, action: Callable[[], Any]) -> None:
        try:
            payload = action()
        except DataValidationError as exc:
            self._send_json(400, {"error": str(exc)})
        except DutyLogError as exc:
            logger.error("Request %s %s failed: %s", self.command, self.path, exc)
            self._send_json(500, {"error": str(exc)})
        except Exception as exc:
            logger.exception("Unexpected error handling %s %s", self.command, self.path)
            self._send_json(500, {"error": str(exc)})
        else:
            self._send_json(200, payload)

    def do_OPTIONS(self) -> None:
        self.send_response(204)
        self._send_cors_headers()
        self.end_headers()

    def do_GET(self) -> None:
        url = urlparse(self.path)
        path = url.path.rstrip("/") or "/"

        if path == "/health":
            self._send_json(200, {"status": "ok"})
            return

        if path == "/admins":
            self._dispatch(lambda: _stats_payload(self.engine.list_admins()))
            return

        if path == "/admins/blacklist":
            self._dispatch(self.engine.get_blacklist)
            return

        if path == "/admins/range":
            query = parse_qs(url.query)
            start = query.get("from", [None])[0]
            end = query.get("to", [None])[0]
            self._dispatch(lambda: _stats_payload(self.engine.admins_in_range(start, end)))
            return

        if path.startswith(BYDATE_PREFIX):
            day = unquote(path[len(BYDATE_PREFIX):])
            self._dispatch(lambda: _stats_payload(self.engine.admins_by_date(day)))
            return

        self._send_json(404, {"error": "Not found"})

    def do_POST(self) -> None:
        path = urlparse(self.path).path.rstrip("/")
        body = self._read_json()

        if path == "/rescan":
            self._dispatch(lambda: _stats_payload(self.engine.rescan()))
            return

        if path == "/admins/add-time":
            self._dispatch(lambda: {"success": self.engine.add_time(body.get("admin"), body.get("minutes"))})
            return

        if path == "/admins/remove-time":
            self._dispatch(lambda: {"success": self.engine.remove_time(body.get("admin"), body.get("minutes"))})
            return

        if path == "/admins/remove-admin":
            self._dispatch(lambda: {"success": self.engine.remove_admin(body.get("admin"))})
            return

        if path == "/admins/blacklist":
            self._dispatch(lambda: {"success": True, "blacklist": self.engine.blacklist_admin(body.get("admin"))})
            return

        if path == "/admins/unblacklist":
            self._dispatch(lambda: {"success": True, "blacklist": self.engine.unblacklist_admin(body.get("admin"))})
            return

        self._send_json(404, {"error": "Not found"})


def _settings_with_env_fallbacks(settings: Config) -> Config:
    """Accept the unprefixed DISCORD_TOKEN / CHANNEL_ID / PORT variables too."""
    updates: Dict[str, Any] = {}
    if not settings.discord_token and os.getenv("DISCORD_TOKEN"):
        updates["discord_token"] = os.getenv("DISCORD_TOKEN")
    if not settings.channel_id and os.getenv("CHANNEL_ID"):
        updates["channel_id"] = os.getenv("CHANNEL_ID")
    if "DUTY_PORT" not in os.environ and os.getenv("PORT"):
        updates["port"] = int(os.environ["PORT"])
    return settings.model_copy(update=updates) if updates else settings


def make_server(engine: DutyLogEngine, host: str, port: int) -> DutyLogServer:
    return DutyLogServer((host, port), engine)


def run(host: str, port: int, settings: Optional[Config] = None) -> None:
    settings = _settings_with_env_fallbacks(settings or config)
    try:
        engine = create_engine(settings)
    except ConfigurationError as exc:
        logger.error("Cannot start: %s", exc)
        raise SystemExit(2) from exc

    server = make_server(engine, host, port)
    logger.info("Server running at http://%s:%s", host, server.server_address[1])
    logger.info("Cache file=%s blacklist file=%s", settings.cache_path, settings.blacklist_path)
    try:
        server.serve_forever()
    except KeyboardInterrupt:
        logger.info("Shutting down")
    finally:
        server.server_close()


def main() -> None:
    settings = _settings_with_env_fallbacks(config)
    parser = argparse.ArgumentParser(description="Duty log backend server")
    parser.add_argument("--host", default=settings.host)
    parser.add_argument("--port", type=int, default=settings.port)
    parser.add_argument("--log-level", default=None)
    args = parser.parse_args()

    configure_application_logging(level=args.log_level)
    run(args.host, args.port, settings)


if __name__ == "__main__":
    main()
