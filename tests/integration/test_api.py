"""
Integration tests for the HTTP backend.

Runs the real threaded server on an ephemeral port against an engine with an
in-memory message source and a temp-dir store.
"""

import http.client
import json
import threading
from contextlib import contextmanager
from urllib.parse import urlparse

import pytest
import requests

from backend.main import make_server
from src.core.exceptions import MessageSourceError
from src.data.ingestion import BaseMessageSource, StaticMessageSource
from src.data.store import JsonFileStore
from src.duty.engine import DutyLogEngine

pytestmark = pytest.mark.integration


@contextmanager
def serve(engine):
    """Run a server for `engine` on an ephemeral port, yielding its base URL."""
    server = make_server(engine, "127.0.0.1", 0)
    thread = threading.Thread(target=server.serve_forever, daemon=True)
    thread.start()
    host, port = server.server_address[:2]
    try:
        yield f"http://{host}:{port}"
    finally:
        server.shutdown()
        server.server_close()
        thread.join(timeout=5)


@pytest.fixture
def api(engine):
    """Base URL of a running server."""
    with serve(engine) as url:
        yield url


@pytest.fixture
def single_admin_api(tmp_path, message_factory):
    """Server whose channel holds the single 30 minute log for A."""
    store = JsonFileStore(tmp_path / "single" / "cache.json", tmp_path / "single" / "blacklist.json")
    source = StaticMessageSource([message_factory("1", "2024-01-01T10:00:00Z", "A", "L1", 30)])
    with serve(DutyLogEngine(store=store, source=source)) as url:
        yield url


class TestScenarios:
    """End-to-end duty log scenarios."""

    def test_list_single_admin(self, single_admin_api):
        response = requests.get(f"{single_admin_api}/admins", timeout=5)

        assert response.status_code == 200
        payload = response.json()
        assert len(payload) == 1
        assert payload[0]["admin"] == "A"
        assert payload[0]["license"] == "L1"
        assert payload[0]["totalMinutes"] == 30
        assert payload[0]["lastDuty"].startswith("2024-01-01T10:00:00")

    def test_remove_time(self, single_admin_api):
        response = requests.post(f"{single_admin_api}/admins/remove-time", json={"admin": "A", "minutes": 10}, timeout=5)

        assert response.status_code == 200
        assert response.json() == {"success": True}
        assert requests.get(f"{single_admin_api}/admins", timeout=5).json()[0]["totalMinutes"] == 20

    def test_blacklist_hides_admin(self, single_admin_api):
        response = requests.post(f"{single_admin_api}/admins/blacklist", json={"admin": "A"}, timeout=5)

        assert response.json() == {"success": True, "blacklist": ["A"]}
        assert requests.get(f"{single_admin_api}/admins", timeout=5).json() == []
        assert requests.get(f"{single_admin_api}/admins/blacklist", timeout=5).json() == ["A"]

    def test_remove_admin_survives_unblacklist(self, single_admin_api):
        requests.post(f"{single_admin_api}/admins/blacklist", json={"admin": "A"}, timeout=5)
        response = requests.post(f"{single_admin_api}/admins/remove-admin", json={"admin": "A"}, timeout=5)
        unblacklisted = requests.post(f"{single_admin_api}/admins/unblacklist", json={"admin": "A"}, timeout=5)

        assert response.json() == {"success": True}
        assert unblacklisted.json() == {"success": True, "blacklist": []}
        assert requests.get(f"{single_admin_api}/admins", timeout=5).json() == []

    def test_by_date_and_range(self, api):
        by_date = requests.get(f"{api}/admins/bydate/2024-01-02", timeout=5).json()
        in_range = requests.get(f"{api}/admins/range", params={"from": "2024-01-01", "to": "2024-01-02"}, timeout=5).json()

        assert [(s["admin"], s["totalMinutes"]) for s in by_date] == [("B", 15)]
        assert [(s["admin"], s["totalMinutes"]) for s in in_range] == [("B", 60), ("A", 30)]


class TestEndpoints:
    """Endpoint behavior and error mapping."""

    def test_health(self, api):
        assert requests.get(f"{api}/health", timeout=5).json() == {"status": "ok"}

    def test_listing_sorted(self, api):
        totals = [s["totalMinutes"] for s in requests.get(f"{api}/admins", timeout=5).json()]

        assert totals == sorted(totals, reverse=True)

    def test_rescan(self, api):
        requests.post(f"{api}/admins/add-time", json={"admin": "A", "minutes": 100}, timeout=5)

        response = requests.post(f"{api}/rescan", timeout=5)

        assert response.status_code == 200
        assert {s["admin"]: s["totalMinutes"] for s in response.json()} == {"B": 60, "A": 30}

    def test_add_time(self, api):
        response = requests.post(f"{api}/admins/add-time", json={"admin": "A", "minutes": "15"}, timeout=5)

        assert response.json() == {"success": True}
        totals = {s["admin"]: s["totalMinutes"] for s in requests.get(f"{api}/admins", timeout=5).json()}
        assert totals["A"] == 45

    @pytest.mark.parametrize("path,body,message", [
        ("/admins/add-time", {"admin": "A"}, "Provide admin and minutes"),
        ("/admins/add-time", {"admin": "A", "minutes": 0}, "Provide admin and minutes"),
        ("/admins/remove-time", {"minutes": 5}, "Provide admin and minutes"),
        ("/admins/remove-admin", {}, "Provide admin"),
        ("/admins/blacklist", {"admin": ""}, "Provide admin"),
        ("/admins/unblacklist", {}, "Provide admin"),
    ])
    def test_validation_errors(self, api, path, body, message):
        response = requests.post(f"{api}{path}", json=body, timeout=5)

        assert response.status_code == 400
        assert response.json() == {"error": message}

    def test_non_object_body_is_a_client_error(self, api):
        response = requests.post(f"{api}/admins/add-time", data="[1, 2]", timeout=5)

        assert response.status_code == 400

    def test_oversized_integer_body_is_a_client_error(self, api):
        body = '{"admin": "A", "minutes": ' + "9" * 5000 + "}"

        response = requests.post(
            f"{api}/admins/add-time",
            data=body,
            headers={"Content-Type": "application/json"},
            timeout=5,
        )

        assert response.status_code == 400
        assert response.json() == {"error": "Provide admin and minutes"}

    def test_non_numeric_content_length_is_a_client_error(self, api):
        host, port = urlparse(api).netloc.split(":")
        connection = http.client.HTTPConnection(host, int(port), timeout=5)
        try:
            connection.request("POST", "/admins/add-time", headers={"Content-Length": "abc"})
            response = connection.getresponse()
            payload = json.loads(response.read().decode("utf-8"))
        finally:
            connection.close()

        assert response.status == 400
        assert payload == {"error": "Provide admin and minutes"}

    def test_range_requires_both_bounds(self, api):
        response = requests.get(f"{api}/admins/range", params={"from": "2024-01-01"}, timeout=5)

        assert response.status_code == 400
        assert response.json() == {"error": "Provide from and to dates in YYYY-MM-DD format"}

    def test_bad_date(self, api):
        assert requests.get(f"{api}/admins/bydate/yesterday", timeout=5).status_code == 400

    def test_unknown_route(self, api):
        assert requests.get(f"{api}/nope", timeout=5).status_code == 404
        assert requests.post(f"{api}/nope", json={}, timeout=5).status_code == 404

    def test_options_preflight(self, api):
        response = requests.options(f"{api}/admins", timeout=5)

        assert response.status_code == 204
        assert response.headers["Access-Control-Allow-Origin"] == "*"

    def test_source_failure_is_server_error(self, tmp_path):
        class Down(BaseMessageSource):
            def fetch_batch(self, before, limit):
                raise MessageSourceError("Discord returned 503")

        store = JsonFileStore(tmp_path / "down" / "cache.json", tmp_path / "down" / "blacklist.json")
        with serve(DutyLogEngine(store=store, source=Down())) as url:
            response = requests.get(f"{url}/admins", timeout=5)

        assert response.status_code == 500
        assert response.json() == {"error": "Discord returned 503"}
