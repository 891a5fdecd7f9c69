"""
Mock records API server for local development and testing.

This simple server keeps project rows in memory and speaks the same routes
HttpRemoteStore calls, so the sync layer can run end to end without a real
backend.

Usage:
    python -m projectsync.mock_api.server

The server listens on port 8000 by default.
"""

import json
import logging
import threading
import uuid
from datetime import datetime, timezone
from http.server import BaseHTTPRequestHandler, HTTPServer
from typing import Any, Dict, List, Optional
from urllib.parse import parse_qs, unquote, urlsplit

logger = logging.getLogger(__name__)

TABLE = "projects"

# Columns the update route accepts; anything else in a patch is ignored.
UPDATABLE_COLUMNS = {
    "project_name", "project_description", "client_name", "status", "start_date",
    "end_date", "leader_of_project", "project_scope", "project_responsibility",
    "organization_id", "team_members", "assigned_to_emails",
}


class RecordsState:
    """In-memory rows, per-field serial counters and organizations."""

    def __init__(self, organizations: Optional[List[Dict[str, Any]]] = None):
        self._lock = threading.Lock()
        self.rows: List[Dict[str, Any]] = []
        self.serials: Dict[str, int] = {}
        self.organizations = list(organizations or [])

    def find(self, record_id: str) -> Optional[Dict[str, Any]]:
        for row in self.rows:
            if str(row.get("id")) == record_id or row.get("custom_uuid") == record_id:
                return row
        return None

    def insert(self, row: Dict[str, Any]) -> Dict[str, Any]:
        now = datetime.now(timezone.utc).isoformat()
        with self._lock:
            created = dict(row)
            created["id"] = str(uuid.uuid4())
            created["created_at"] = now
            created["updated_at"] = now
            self.rows.append(created)
            return created

    def update(self, record_id: str, patch: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        with self._lock:
            row = self.find(record_id)
            if row is None:
                return None
            row.update({key: value for key, value in patch.items() if key in UPDATABLE_COLUMNS})
            row["updated_at"] = datetime.now(timezone.utc).isoformat()
            return row

    def delete(self, record_id: str) -> bool:
        with self._lock:
            row = self.find(record_id)
            if row is None:
                return False
            self.rows.remove(row)
            return True

    def next_serial(self, field: str) -> int:
        with self._lock:
            self.serials[field] = self.serials.get(field, 0) + 1
            return self.serials[field]


class MockAPIHandler(BaseHTTPRequestHandler):
    """HTTP request handler for the mock records API."""

    state: RecordsState = RecordsState()

    def _send_json_response(self, status_code: int, data: Any):
        """Send a JSON response."""
        body = json.dumps(data).encode('utf-8')
        self.send_response(status_code)
        self.send_header('Content-Type', 'application/json')
        self.send_header('Content-Length', str(len(body)))
        self.end_headers()
        self.wfile.write(body)

    def _ok(self, data: Any, status_code: int = 200):
        self._send_json_response(status_code, {'success': True, 'data': data, 'error': None})

    def _error(self, status_code: int, message: str):
        self._send_json_response(status_code, {'success': False, 'data': None, 'error': message})

    def _read_body(self) -> Optional[Dict[str, Any]]:
        content_length = int(self.headers.get('Content-Length', 0))
        if not content_length:
            return {}
        try:
            body = json.loads(self.rfile.read(content_length).decode('utf-8'))
        except (UnicodeDecodeError, json.JSONDecodeError) as e:
            logger.error(f"Invalid JSON: {e}")
            return None
        return body if isinstance(body, dict) else None

    def _route(self):
        parts = urlsplit(self.path)
        segments = [unquote(segment) for segment in parts.path.strip('/').split('/') if segment]
        return segments, parse_qs(parts.query)

    def do_GET(self):
        """Handle GET requests."""
        segments, query = self._route()
        if segments == ['health']:
            self._send_json_response(200, {'status': 'healthy'})
        elif segments == ['records', 'organizations']:
            self._ok(self.state.organizations)
        elif segments == ['records', TABLE]:
            rows = list(self.state.rows)
            if query.get('order') == ['created_at.desc']:
                rows.sort(key=lambda row: row.get('created_at') or '', reverse=True)
            self._ok(rows)
        elif segments == ['records', TABLE, 'next-serial']:
            field = (query.get('field') or ['OTHER'])[0]
            self._ok(self.state.next_serial(field))
        elif len(segments) == 3 and segments[:2] == ['records', TABLE]:
            row = self.state.find(segments[2])
            if row is None:
                self._error(404, 'Not found')
            else:
                self._ok(row)
        else:
            self._error(404, 'Not found')

    def do_POST(self):
        """Handle POST requests."""
        segments, _ = self._route()
        if segments != ['records', 'insert', TABLE]:
            self._error(404, 'Not found')
            return
        row = self._read_body()
        if row is None:
            self._error(400, 'Invalid JSON')
            return
        created = self.state.insert(row)
        logger.info(f"Inserted project {created['id']}")
        self._ok([created], 201)

    def do_PATCH(self):
        """Handle PATCH requests."""
        segments, _ = self._route()
        if len(segments) != 4 or segments[:3] != ['records', 'update', TABLE]:
            self._error(404, 'Not found')
            return
        patch = self._read_body()
        if patch is None:
            self._error(400, 'Invalid JSON')
            return
        row = self.state.update(segments[3], patch)
        if row is None:
            self._error(404, 'Not found')
        else:
            self._ok([row])

    def do_DELETE(self):
        """Handle DELETE requests."""
        segments, _ = self._route()
        if len(segments) != 4 or segments[:3] != ['records', 'delete', TABLE]:
            self._error(404, 'Not found')
        elif self.state.delete(segments[3]):
            logger.info(f"Deleted project {segments[3]}")
            self._ok(None)
        else:
            self._error(404, 'Not found')

    def log_message(self, format, *args):
        """Override to use Python logging instead of stderr."""
        logger.debug(f"{self.address_string()} - {format % args}")


def create_server(host: str = '127.0.0.1', port: int = 8000, state: Optional[RecordsState] = None) -> HTTPServer:
    """
    Build a mock API server with its own in-memory state.

    Args:
        host: Interface to bind
        port: Port to bind; 0 picks a free one
        state: Initial state, a fresh empty one if None
    """
    handler = type('BoundMockAPIHandler', (MockAPIHandler,), {'state': state or RecordsState()})
    return HTTPServer((host, port), handler)


def run_server(host: str = '0.0.0.0', port: int = 8000):
    """Run the mock API server."""
    httpd = create_server(host, port)
    logger.info(f"Mock records API server running on http://{host}:{port}")
    logger.info("Endpoints:")
    logger.info("  GET    /health                            - Health check")
    logger.info(f"  GET    /records/{TABLE}[/<id>]             - List or fetch projects")
    logger.info(f"  GET    /records/{TABLE}/next-serial?field= - Next serial number")
    logger.info(f"  POST   /records/insert/{TABLE}             - Insert a project")
    logger.info(f"  PATCH  /records/update/{TABLE}/<id>        - Update a project")
    logger.info(f"  DELETE /records/delete/{TABLE}/<id>        - Delete a project")
    logger.info("  GET    /records/organizations             - List organizations")
    try:
        httpd.serve_forever()
    except KeyboardInterrupt:
        logger.info("Server shutting down...")
    finally:
        httpd.server_close()


if __name__ == '__main__':
    logging.basicConfig(
        level=logging.INFO,
        format='%(asctime)s - %(levelname)s - %(message)s'
    )
    run_server()
