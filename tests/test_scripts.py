import importlib.util
import json
import threading
from http.client import HTTPConnection
from pathlib import Path

import pytest
import requests
from structlog.testing import capture_logs

from src.untis.config import UntisConfig
from src.untis.errors import AuthenticationError, MissingFieldError, TransientError
from tests.factories import PERSON_ID, assignment, period_record, school_elements, timetable_payload

SCRIPTS = Path(__file__).resolve().parents[1] / "scripts"


def _load_script(name):
    spec = importlib.util.spec_from_file_location(f"script_{name}", SCRIPTS / f"{name}.py")
    module = importlib.util.module_from_spec(spec)
    spec.loader.exec_module(module)
    return module


@pytest.fixture
def cli(monkeypatch):
    module = _load_script("speakable")
    monkeypatch.setattr(module, "setup_logging", lambda **kwargs: None)
    monkeypatch.setattr(
        module, "get_config", lambda: UntisConfig(untis_user="", untis_password="", _env_file=None)
    )
    # structlog's default logger prints to stdout, which is the CLI's output channel
    with capture_logs():
        yield module


@pytest.fixture
def payload_file(tmp_path):
    payload = timetable_payload(
        school_elements(),
        [
            period_record([assignment(3, 10)], cell_state="CANCEL"),
            period_record([assignment(3, 11)], start=900, end=945),
        ],
    )
    path = tmp_path / "week.json"
    path.write_text(json.dumps(payload), encoding="utf-8")
    return path


def test_cli_renders_saved_payload(cli, payload_file, capsys):
    code = cli.main(
        ["--payload", str(payload_file), "--person-id", str(PERSON_ID), "--date", "2024-03-18"]
    )

    assert code == 0
    assert capsys.readouterr().out == "Mathematik fällt zwischen 08:00 und 08:50 Uhr aus!\n"


def test_cli_json_lists_deviating_periods(cli, payload_file, capsys):
    code = cli.main(
        ["--payload", str(payload_file), "--person-id", str(PERSON_ID), "--date", "2024-03-18", "--json"]
    )

    assert code == 0
    [period] = json.loads(capsys.readouterr().out)
    assert period["state"] == "CANCEL"
    assert period["subject"]["longName"] == "Mathematik"
    assert period["startTime"] == "08:00:00"


def test_cli_json_orders_periods_like_text_mode(cli, tmp_path, capsys):
    payload = timetable_payload(
        school_elements(),
        [
            period_record([assignment(3, 11)], cell_state="CANCEL", start=1340, end=1425),
            period_record([assignment(3, 10)], cell_state="CANCEL", start=745, end=830),
        ],
    )
    path = tmp_path / "week.json"
    path.write_text(json.dumps(payload), encoding="utf-8")
    argv = ["--payload", str(path), "--person-id", str(PERSON_ID), "--date", "2024-03-18"]

    assert cli.main(argv + ["--json"]) == 0
    listed = json.loads(capsys.readouterr().out)
    assert cli.main(argv) == 0
    lines = capsys.readouterr().out.splitlines()

    assert [period["startTime"] for period in listed] == ["07:45:00", "13:40:00"]
    assert [period["subject"]["longName"] for period in listed] == [
        line.split()[0] for line in lines
    ]


def test_cli_reports_parse_errors(cli, tmp_path, capsys):
    path = tmp_path / "broken.json"
    path.write_text(json.dumps({"data": {}}), encoding="utf-8")

    code = cli.main(["--payload", str(path), "--person-id", "1"])

    assert code == 1
    assert "ERROR" in capsys.readouterr().err


def test_cli_requires_credentials_without_payload(cli, capsys):
    assert cli.main([]) == 1
    assert "UNTIS_USER" in capsys.readouterr().err


def test_cli_payload_needs_person_id(cli, payload_file):
    with pytest.raises(SystemExit):
        cli.main(["--payload", str(payload_file)])


@pytest.fixture
def server(monkeypatch):
    module = _load_script("serve")
    monkeypatch.setattr(module, "get_config", lambda: UntisConfig(_env_file=None))
    httpd = module.build_server("127.0.0.1", 0)
    thread = threading.Thread(target=httpd.serve_forever, daemon=True)
    thread.start()
    client = requests.Session()
    client.trust_env = False  # never route localhost through a proxy
    yield module, f"http://127.0.0.1:{httpd.server_address[1]}", client
    client.close()
    httpd.shutdown()
    httpd.server_close()


def test_root_says_hello(server):
    _, base, client = server

    response = client.get(f"{base}/", timeout=5)

    assert response.status_code == 200
    assert response.text == "Hello, world!"


def test_speakable_returns_rendered_text(server, monkeypatch):
    module, base, client = server
    seen = {}

    def fake_fetch(username, password, config=None):
        seen["credentials"] = (username, password)
        return "Physik fällt zwischen 10:00 und 10:50 Uhr aus!"

    monkeypatch.setattr(module, "fetch_speakable", fake_fetch)

    response = client.post(
        f"{base}/speakable", json={"username": "max", "password": "geheim"}, timeout=5
    )

    assert response.status_code == 200
    assert response.headers["Content-Type"] == "text/plain; charset=utf-8"
    assert response.text == "Physik fällt zwischen 10:00 und 10:50 Uhr aus!"
    assert seen["credentials"] == ("max", "geheim")


@pytest.mark.parametrize(
    "error, status",
    [
        (AuthenticationError("bad credentials"), 401),
        (MissingFieldError("no timetable found for person 1", path="x"), 502),
        (TransientError("timeout"), 503),
    ],
)
def test_speakable_maps_errors_to_status_codes(server, monkeypatch, error, status):
    module, base, client = server

    def failing_fetch(username, password, config=None):
        raise error

    monkeypatch.setattr(module, "fetch_speakable", failing_fetch)

    response = client.post(
        f"{base}/speakable", json={"username": "max", "password": "x"}, timeout=5
    )

    assert response.status_code == status


@pytest.mark.parametrize("body", [b"not json", b"[]", b'{"username": "max"}'])
def test_speakable_rejects_malformed_bodies(server, body):
    _, base, client = server

    response = client.post(f"{base}/speakable", data=body, timeout=5)

    assert response.status_code == 400


def test_unknown_paths_are_not_found(server):
    _, base, client = server

    assert client.get(f"{base}/speakable", timeout=5).status_code == 404
    assert client.post(f"{base}/deploy", json={}, timeout=5).status_code == 404


def test_non_numeric_content_length_is_a_bad_request(server):
    _, base, _ = server
    conn = HTTPConnection(base.removeprefix("http://"), timeout=5)
    conn.putrequest("POST", "/speakable")
    conn.putheader("Content-Length", "abc")
    conn.endheaders()

    response = conn.getresponse()

    assert response.status == 400
    assert response.read() == b"Invalid Content-Length"
    conn.close()
