"""Development server for Folio.

Serves the site with live reload and sane defaults for local authoring:
- Pages are rendered on request through the site router, so unknown posts
  get the not-found view with a 404 status.
- Images and other static files are served from the build output.
- A reload script is injected into HTML responses.
- Source folders are watched; changes trigger a rebuild and client reloads.
- Optionally adds permissive CORS headers to every response.

Key classes:
- DevServer: Main class for running the development server.
- _SiteHandler: HTTP request handler that dispatches through the router.
- _ChangeHandler: File system event handler for triggering rebuilds.
"""

from __future__ import annotations

import asyncio
import functools
import json
import os
import shutil
import threading
import time
from http.server import SimpleHTTPRequestHandler, ThreadingHTTPServer
from pathlib import Path
from urllib.parse import unquote, urlsplit

import websockets
from watchdog.events import FileSystemEventHandler
from watchdog.observers import Observer

from .build import BuildError, Site, build_site, load_config
from .routing import Response

CORS_ALLOW_HEADERS = "Origin, X-Requested-With, Content-Type, Accept"


def inject_reload_script(html: str, script: str) -> str:
    """Insert the reload script before ``</body>`` (or append it)."""
    if "</body>" in html:
        return html.replace("</body>", f"{script}</body>")
    return html + script


class _SiteHandler(SimpleHTTPRequestHandler):
    """HTTP request handler that renders pages through the site router.

    Attributes:
        dev_server: The DevServer whose current site answers requests.
        reload_script: JavaScript code for WebSocket connection to trigger reloads.
    """

    reload_script_template = """
    <script>
    (() => {{
      const ws = new WebSocket('ws://' + location.hostname + ':{ws_port}');
      ws.onmessage = (event) => {{
        const data = JSON.parse(event.data || '{{}}');
        if (data.type === 'reload') location.reload();
      }};
    }})();
    </script>
    """
    reload_script = reload_script_template.format(ws_port=4001)
    dev_server: DevServer | None = None

    def end_headers(self):
        self.send_header("Cache-Control", "no-cache, no-store, must-revalidate")
        origin = self.dev_server.cors_origin if self.dev_server else None
        if origin:
            self.send_header("Access-Control-Allow-Origin", origin)
            self.send_header("Access-Control-Allow-Headers", CORS_ALLOW_HEADERS)
        super().end_headers()

    def list_directory(self, path):  # pragma: no cover - exercised via send_head
        # Never expose directory listings; treat as missing content.
        return self._send_response(self._not_found())

    def _not_found(self) -> Response | None:
        site = self.dev_server.site if self.dev_server else None
        if site is None:
            return None
        return site.router.not_found()

    def _send_response(self, response: Response | None):
        if response is None:
            self.send_error(404, "File not found")
            return None
        content = inject_reload_script(response.body, self.reload_script)
        encoded = content.encode("utf-8")
        self.send_response(response.status)
        self.send_header("Content-type", response.content_type)
        self.send_header("Content-Length", str(len(encoded)))
        self.end_headers()
        self.wfile.write(encoded)
        return None

    def send_head(self):
        site = self.dev_server.site if self.dev_server else None
        request_path = unquote(urlsplit(self.path).path)
        if site is not None:
            response = site.router.dispatch(request_path)
            if response is not None:
                return self._send_response(response)

        path_obj = Path(self.translate_path(self.path))
        if path_obj.is_dir() or not path_obj.exists():
            return self._send_response(self._not_found())
        return super().send_head()


class DevServer:
    """Development server with live reload functionality.

    Attributes:
        project_root: Root directory of the project.
        config: Project configuration.
        output_dir: Directory static files are served from.
        ws_port: Port for WebSocket connections.
        http_port: Port for HTTP server.
        cors_origin: Value of Access-Control-Allow-Origin, or None.
        site: The currently loaded site; replaced on every rebuild.
    """

    def __init__(
        self,
        project_root: Path,
        http_port: int | None = None,
        ws_port: int | None = None,
    ):
        """Initialize the development server.

        Args:
            project_root: Root directory of the project.
            http_port: Optional override for HTTP port.
            ws_port: Optional override for the websocket port.
        """
        self.project_root = project_root
        self.config = load_config(project_root)
        self.output_dir = project_root / self.config.get("output_dir", "output")
        self._staging_dir = self.output_dir.with_suffix(self.output_dir.suffix + ".staging")
        self._retired_dir = self.output_dir.with_suffix(self.output_dir.suffix + ".old")
        base_http = int(http_port or self.config.get("port", 4000))
        resolved_ws = (
            ws_port
            if ws_port is not None
            else (
                base_http + 1
                if http_port is not None
                else self.config.get("ws_port", base_http + 1)
            )
        )
        self.ws_port = resolved_ws
        self.http_port = base_http
        self.cors_origin = self.config.get("cors_origin")
        self.site: Site | None = None
        self._reload_script = _SiteHandler.reload_script_template.format(ws_port=self.ws_port)
        self._observer: Observer | None = None
        self._ws_clients: set = set()
        self._loop = asyncio.new_event_loop()
        self._rebuilding = False
        self._last_rebuild_at = 0.0
        self._last_signature: tuple | None = None
        self._debounce_seconds = 0.05
        self._post_build_delay = 0.05

    def start(
        self, include_drafts: bool = False
    ) -> None:  # pragma: no cover - integration path
        self._build(include_drafts)
        self._last_signature = self._compute_signature()
        threading.Thread(target=self._start_http, daemon=True).start()
        threading.Thread(target=self._start_ws, daemon=True).start()
        self._start_watcher(include_drafts)
        try:
            while True:
                time.sleep(1)
        except KeyboardInterrupt:
            self.stop()

    def stop(self) -> None:
        if self._observer:
            self._observer.stop()
            self._observer.join()
        self._loop.call_soon_threadsafe(self._loop.stop)

    def _build(self, include_drafts: bool) -> None:
        """Build into staging, swap it in, then swap in the new site."""
        staging = self._prepare_staging_dir()
        result = build_site(
            self.project_root,
            include_drafts=include_drafts,
            clean_output=True,
            output_dir_override=staging,
        )
        self._activate_staging(staging)
        self.site = result.site

    def _start_http(self) -> None:  # pragma: no cover - integration path
        handler_cls = type(
            "_SiteHandlerWithServer",
            (_SiteHandler,),
            {"reload_script": self._reload_script, "dev_server": self},
        )
        handler = functools.partial(handler_cls, directory=str(self.output_dir))
        httpd = ThreadingHTTPServer(("", self.http_port), handler)
        print(f"Serving {self.project_root} at http://localhost:{self.http_port}")
        httpd.serve_forever()

    def _start_ws(self) -> None:  # pragma: no cover - integration path
        asyncio.set_event_loop(self._loop)
        try:
            self._loop.run_until_complete(self._run_ws_server())
        except OSError as exc:
            print(f"WebSocket server failed to start (port {self.ws_port}): {exc}")
            return

    async def _run_ws_server(self) -> None:  # pragma: no cover - integration path
        async with websockets.serve(self._ws_handler, "0.0.0.0", self.ws_port):
            await asyncio.Future()  # Run forever

    async def _ws_handler(self, websocket):
        self._ws_clients.add(websocket)
        try:
            await websocket.wait_closed()
        finally:
            self._ws_clients.discard(websocket)

    def _broadcast_reload(self):
        message = json.dumps({"type": "reload"})
        asyncio.run_coroutine_threadsafe(self._async_broadcast(message), self._loop)

    async def _async_broadcast(self, message: str):
        stale = set()
        for ws in self._ws_clients:
            try:
                await ws.send(message)
            except Exception:
                stale.add(ws)
        for ws in stale:
            self._ws_clients.discard(ws)

    def _start_watcher(self, include_drafts: bool) -> None:
        handler = _ChangeHandler(self, include_drafts)
        observer = Observer()
        for folder in self._watched_folders():
            watch_path = self.project_root / folder
            if watch_path.exists():
                observer.schedule(handler, str(watch_path), recursive=True)
        # Watch root for folio.yaml
        observer.schedule(handler, str(self.project_root), recursive=False)
        observer.start()
        self._observer = observer

    def _watched_folders(self) -> list[str]:
        return [
            str(self.config.get("content_dir", "posts")),
            str(self.config.get("images_dir", "images")),
            "data",
            "_layouts",
        ]

    def rebuild(self, include_drafts: bool) -> None:
        now = time.time()
        if self._rebuilding or (now - self._last_rebuild_at) < self._debounce_seconds:
            return
        signature = self._compute_signature()
        if signature is not None and signature == self._last_signature:
            return
        self._rebuilding = True
        try:
            print("Change detected; rebuilding...")
            try:
                self._build(include_drafts)
            except BuildError as exc:
                # Keep serving the previous site until the error is fixed.
                print(f"Build failed: {exc}")
                return
            self._last_signature = signature
            if self._post_build_delay:
                time.sleep(self._post_build_delay)
            self._broadcast_reload()
        finally:
            self._rebuilding = False
            self._last_rebuild_at = time.time()

    def _compute_signature(self) -> tuple | None:
        entries: list[tuple] = []
        for folder in self._watched_folders():
            root = self.project_root / folder
            if not root.exists():
                continue
            for path in sorted(root.rglob("*")):
                if path.is_dir():
                    continue
                try:
                    stat = path.stat()
                except OSError:
                    continue
                rel = path.relative_to(self.project_root)
                entries.append((str(rel), stat.st_mtime_ns, stat.st_size))
        config_path = self.project_root / "folio.yaml"
        if config_path.exists():
            stat = config_path.stat()
            entries.append(("folio.yaml", stat.st_mtime_ns, stat.st_size))
        return tuple(entries) if entries else None

    def _prepare_staging_dir(self) -> Path:
        staging = self._staging_dir
        if staging.exists():
            shutil.rmtree(staging)
        staging.mkdir(parents=True, exist_ok=True)
        return staging

    def _activate_staging(self, staging: Path) -> None:
        """Move the staged build into place.

        The previous output is renamed aside and deleted only after the new
        build has taken its place.
        """
        target = self.output_dir
        retired = self._retired_dir
        if retired.exists():
            shutil.rmtree(retired)
        if target.exists():
            os.replace(target, retired)
        os.replace(staging, target)
        if retired.exists():
            shutil.rmtree(retired)


class _ChangeHandler(FileSystemEventHandler):
    def __init__(self, server: DevServer, include_drafts: bool):
        super().__init__()
        self.server = server
        self.include_drafts = include_drafts

    def on_any_event(self, event):
        if event.is_directory:
            return
        path = Path(event.src_path)
        # Skip changes in output/staging directories
        for ignored in (
            self.server.output_dir,
            getattr(self.server, "_staging_dir", None),
            getattr(self.server, "_retired_dir", None),
        ):
            if not ignored:
                continue
            try:
                path.relative_to(ignored)
                return
            except ValueError:
                pass
        if "node_modules" in path.parts or ".git" in path.parts:
            return
        self.server.rebuild(self.include_drafts)
