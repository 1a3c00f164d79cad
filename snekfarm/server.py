"""Battlesnake HTTP server.

Each strategy is mounted under its own prefix, e.g. /lucky/move.

Usage: snekfarm-server [--host 0.0.0.0] [--port 3000] [--end-policy reject]
"""

import argparse
import json
import logging
import os
from functools import partial
from http.server import BaseHTTPRequestHandler, ThreadingHTTPServer

from snekfarm import api, lucky
from snekfarm.sessions import EndPolicy, SessionManager

log = logging.getLogger(__name__)

# Sent to the game host when lucky has nowhere safe to go, or fails to answer.
FALLBACK_MOVE = "up"

STRATEGIES = {
    "lucky": partial(lucky.new, "precedence"),
    "luckydocile": lucky.new_docile,
    "luckyrandom": partial(lucky.new, "random"),
    "luckyweighted": partial(lucky.new, "weighted"),
}


class H(BaseHTTPRequestHandler):
    routers: dict[str, SessionManager] = {}

    def _route(self):
        """Split the path into (sessions, verb); sessions is None if unmounted."""
        parts = self.path.split("?", 1)[0].strip("/").split("/")
        sessions = self.routers.get(parts[0])
        verb = parts[1] if len(parts) > 1 else ""
        if len(parts) > 2:
            return None, ""
        return sessions, verb

    def _reply(self, status: int, body: dict | None = None):
        self.send_response(status)
        self.send_header("Content-Type", "application/json")
        self.end_headers()
        if body is not None:
            self.wfile.write(json.dumps(body).encode())

    def do_GET(self):
        sessions, verb = self._route()
        if sessions is None or verb:
            self._reply(404, {"error": "not found"})
            return
        self._reply(200, api.info_response(author="snekfarm"))

    def do_POST(self):
        sessions, verb = self._route()
        if sessions is None or verb not in ("start", "move", "end"):
            self._reply(404, {"error": "not found"})
            return
        try:
            length = int(self.headers.get("Content-Length", 0))
            body = json.loads(self.rfile.read(length)) if length else {}
            st = api.State.from_json(body)
        except (ValueError, api.BadRequest) as e:
            log.warning("failed to decode request: %s", e)
            self._reply(400, {"error": "bad request"})
            return
        try:
            if verb == "start":
                sessions.start(st)
                self._reply(200)
            elif verb == "move":
                move, shout = sessions.move(st)
                if move not in lucky.DIRECTIONS:
                    log.warning("no move from snek in game %s, sending %s", st.game.id, FALLBACK_MOVE)
                    move = FALLBACK_MOVE
                self._reply(200, api.move_response(move, shout))
            else:
                sessions.end(st)
                self._reply(200)
        except api.SnekError as e:
            log.warning("%s %s rejected: %s", verb, st.key, e)
            self._reply(400, {"error": str(e)})
        except Exception:
            log.exception("%s %s failed", verb, st.key)
            if verb == "move":
                self._reply(200, api.move_response(FALLBACK_MOVE))
            else:
                self._reply(500, {"error": "internal error"})

    def log_message(self, format, *args):
        log.debug("%s - %s", self.address_string(), format % args)


def make_server(host: str = "0.0.0.0", port: int = 3000,
                end_policy: EndPolicy = EndPolicy.REJECT,
                strategies=None) -> ThreadingHTTPServer:
    strategies = strategies or STRATEGIES
    routers = {name: SessionManager(factory, end_policy) for name, factory in strategies.items()}
    handler = type("Handler", (H,), {"routers": routers})
    return ThreadingHTTPServer((host, port), handler)


def main(argv=None):
    parser = argparse.ArgumentParser(description="Serve the lucky Battlesnakes")
    parser.add_argument("--host", default="0.0.0.0")
    parser.add_argument("--port", type=int, default=int(os.environ.get("PORT", 3000)))
    parser.add_argument("--end-policy", choices=[p.value for p in EndPolicy],
                        default=EndPolicy.REJECT.value,
                        help="What /end does for a game that was never started (default: reject)")
    parser.add_argument("--log-level", default="INFO")
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=getattr(logging, args.log_level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    server = make_server(args.host, args.port, EndPolicy(args.end_policy))
    print(f"Snake server on port {server.server_address[1]}", flush=True)
    try:
        server.serve_forever()
    except KeyboardInterrupt:
        pass
    finally:
        server.server_close()


if __name__ == "__main__":
    main()
