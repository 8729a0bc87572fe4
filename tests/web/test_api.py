# tests/web/test_api.py

import json

import pytest

from print_broker.app import create_app
from print_broker.storage import KeyValueStore


@pytest.fixture
def app(tmp_path, gateway):
    app = create_app(storage_dir=str(tmp_path / "storage"), gateway=gateway,
                     print_timeout=5, start_refresh=False)
    app.config["TESTING"] = True
    app.extensions["print_broker"]["registry"].refresh()
    yield app
    app.extensions["print_broker"]["dispatcher"].shutdown()


@pytest.fixture
def client(app):
    with app.test_client() as client:
        yield client


def test_startup_creates_directory_structure(app, tmp_path):
    root = tmp_path / "storage"
    assert (root / "temp" / "files").is_dir()
    assert (root / "persistent" / "templates").is_dir()
    assert (root / "persistent" / "printers").is_dir()

    stores = app.extensions["print_broker"]["stores"]
    assert isinstance(stores["templates"], KeyValueStore)
    assert isinstance(stores["printers"], KeyValueStore)


def test_get_status(client):
    response = client.get("/")

    assert response.status_code == 200
    data = response.get_json()
    assert data["success"] is True
    assert "running" in data["msg"]


def test_post_pdf_json(client, pdf_job, gateway):
    response = client.post("/", data=json.dumps(pdf_job("HP1")), content_type="application/json")

    assert response.status_code == 200
    assert response.get_json() == {"success": True, "message": "Printed PDF to 'HP1'"}
    assert gateway.printed[0][0] == "HP1"


def test_post_pdf_form(client, pdf_job):
    response = client.post("/", data=pdf_job("HP2"))

    assert response.status_code == 200
    assert response.get_json()["success"] is True


def test_post_invalid_request_still_returns_200(client):
    response = client.post("/", data=json.dumps({"printer": "HP1", "datatype": "PDF"}),
                           content_type="application/json")

    assert response.status_code == 200
    data = response.get_json()
    assert data["success"] is False
    assert data["message"].startswith("Invalid request")


def test_post_malformed_json(client):
    response = client.post("/", data="{not json", content_type="application/json")

    assert response.status_code == 200
    assert response.get_json()["success"] is False


def test_post_unavailable_printer(client, pdf_job):
    response = client.post("/", data=json.dumps(pdf_job("Canon")), content_type="application/json")

    assert response.status_code == 200
    assert response.get_json() == {"success": False, "message": "Printer 'Canon' is not available"}


def test_post_zpl_not_implemented(client):
    response = client.post("/", data=json.dumps({"printer": "HP1", "datatype": "ZPL"}),
                           content_type="application/json")

    assert response.status_code == 200
    data = response.get_json()
    assert data["success"] is False
    assert "not implemented" in data["message"]


def test_print_failure_hides_internals(client, gateway, pdf_job):
    gateway.print_error = RuntimeError("device busy")

    response = client.post("/", data=json.dumps(pdf_job("HP1")), content_type="application/json")

    data = response.get_json()
    assert response.status_code == 200
    assert data == {"success": False, "message": "device busy"}
    assert "Traceback" not in response.get_data(as_text=True)


def test_health(client):
    data = client.get("/health").get_json()

    assert data["status"] == "online"
    assert data["printers_available"] == 2


def test_printers(client):
    data = client.get("/printers").get_json()

    assert data == {"success": True, "printers": ["HP1", "HP2"], "count": 2}
