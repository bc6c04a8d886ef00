import argparse
import io
import json
from typing import Any, Optional

from airtable_sdk import cli
from airtable_sdk.config import AirtableConfig
from airtable_sdk.exceptions import HTTPRequestError
from airtable_sdk.options import ListOptions


def _base_args(**overrides: Any) -> argparse.Namespace:
    data: dict[str, Any] = {
        "api_key": None,
        "base_id": None,
        "base_url": None,
        "timeout": None,
    }
    data.update(overrides)
    return argparse.Namespace(**data)


def _set_env(monkeypatch: Any) -> None:
    monkeypatch.setenv("AIRTABLE_API_KEY", "pat_cli")
    monkeypatch.setenv("AIRTABLE_BASE_ID", "appCli")
    monkeypatch.delenv("AIRTABLE_BASE_URL", raising=False)
    monkeypatch.delenv("AIRTABLE_TIMEOUT", raising=False)


def test_build_config_flags_override_env(monkeypatch: Any) -> None:
    _set_env(monkeypatch)

    config = cli._build_config(_base_args(base_id="appFlag", timeout=3.0))

    assert isinstance(config, AirtableConfig)
    assert config.api_key == "pat_cli"
    assert config.base_id == "appFlag"
    assert config.timeout_seconds == 3.0


def test_records_get_json_output(monkeypatch: Any, capsys: Any) -> None:
    _set_env(monkeypatch)
    captured: dict[str, Any] = {}

    def _fake_request(_self: Any, method: str, path: str, options: Optional[ListOptions] = None) -> bytes:
        captured["method"] = method
        captured["path"] = path
        return json.dumps(
            {"id": "rec_1", "createdTime": "2024-01-02T03:04:05.000Z", "fields": {"Name": "Ada"}}
        ).encode("utf-8")

    monkeypatch.setattr("airtable_sdk.client.AirtableClient.request", _fake_request)

    code = cli.main(["records", "get", "People", "rec_1", "--format", "json"])

    assert code == 0
    assert captured == {"method": "GET", "path": "People/rec_1"}
    payload = json.loads(capsys.readouterr().out)
    assert payload == {
        "id": "rec_1",
        "createdTime": "2024-01-02T03:04:05Z",
        "fields": {"Name": "Ada"},
    }


def test_records_list_with_limit_stops_paging(monkeypatch: Any, capsys: Any) -> None:
    _set_env(monkeypatch)
    calls: list[dict[str, Any]] = []

    def _fake_request(_self: Any, method: str, path: str, options: Optional[ListOptions] = None) -> bytes:
        params = options.to_params() if options is not None else {}
        calls.append(params)
        index = len(calls)
        page = {
            "records": [
                {"id": f"rec_{index}a", "fields": {"Name": "a"}},
                {"id": f"rec_{index}b", "fields": {"Name": "b"}},
            ],
            "offset": f"o{index}",
        }
        return json.dumps(page).encode("utf-8")

    monkeypatch.setattr("airtable_sdk.client.AirtableClient.request", _fake_request)

    code = cli.main(
        [
            "records",
            "list",
            "People",
            "--view",
            "Grid",
            "--sort=-Name",
            "--field",
            "Name",
            "--limit",
            "3",
            "--format",
            "json",
        ]
    )

    assert code == 0
    payload = json.loads(capsys.readouterr().out)
    assert [item["id"] for item in payload] == ["rec_1a", "rec_1b", "rec_2a"]
    assert len(calls) == 2
    assert calls[0]["view"] == "Grid"
    assert calls[0]["fields[]"] == ["Name"]
    assert calls[0]["sort[0][direction]"] == "desc"
    assert calls[1]["offset"] == "o1"


def test_records_create_reads_fields_from_stdin(monkeypatch: Any, capsys: Any) -> None:
    _set_env(monkeypatch)
    monkeypatch.setattr("sys.stdin", io.StringIO('{"Name": "Grace", "Age": 36}'))
    captured: dict[str, Any] = {}

    def _fake_request_with_body(
        _self: Any,
        method: str,
        path: str,
        options: Optional[ListOptions],
        body: bytes,
    ) -> bytes:
        captured["method"] = method
        captured["path"] = path
        captured["body"] = json.loads(body)
        return json.dumps({"id": "rec_new", "fields": captured["body"]["fields"]}).encode("utf-8")

    monkeypatch.setattr("airtable_sdk.client.AirtableClient.request_with_body", _fake_request_with_body)

    code = cli.main(["records", "create", "People", "--fields-stdin", "--format", "json"])

    assert code == 0
    assert captured["method"] == "POST"
    assert captured["path"] == "People"
    assert captured["body"] == {"fields": {"Name": "Grace", "Age": 36}}
    payload = json.loads(capsys.readouterr().out)
    assert payload["id"] == "rec_new"


def test_records_update_requires_fields(monkeypatch: Any, capsys: Any) -> None:
    _set_env(monkeypatch)

    code = cli.main(["records", "update", "People", "rec_1", "--format", "json"])

    assert code == 2
    payload = json.loads(capsys.readouterr().out)
    assert payload["ok"] is False
    assert "--fields-json" in payload["error"]


def test_records_delete_not_deleted_exit_code(monkeypatch: Any, capsys: Any) -> None:
    _set_env(monkeypatch)

    def _fake_request(_self: Any, method: str, path: str, options: Optional[ListOptions] = None) -> bytes:
        return b'{"deleted": false, "id": "rec_1"}'

    monkeypatch.setattr("airtable_sdk.client.AirtableClient.request", _fake_request)

    code = cli.main(["records", "delete", "People", "rec_1", "--format", "json"])

    assert code == 3
    payload = json.loads(capsys.readouterr().out)
    assert "did not delete rec_1" in payload["error"]


def test_http_error_exit_code(monkeypatch: Any, capsys: Any) -> None:
    _set_env(monkeypatch)

    def _fake_request(_self: Any, method: str, path: str, options: Optional[ListOptions] = None) -> bytes:
        raise HTTPRequestError(
            "http request failed: 404 NOT_FOUND",
            status_code=404,
            response_text='{"error":"NOT_FOUND"}',
            error_type="NOT_FOUND",
        )

    monkeypatch.setattr("airtable_sdk.client.AirtableClient.request", _fake_request)

    code = cli.main(["records", "get", "People", "rec_x"])

    assert code == 4
    err = capsys.readouterr().err
    assert "status_code=404" in err


def test_missing_credentials_exit_code(monkeypatch: Any, capsys: Any) -> None:
    monkeypatch.delenv("AIRTABLE_API_KEY", raising=False)
    monkeypatch.delenv("AIRTABLE_BASE_ID", raising=False)

    code = cli.main(["records", "get", "People", "rec_1", "--format", "json"])

    assert code == 2
    payload = json.loads(capsys.readouterr().out)
    assert "api_key is required" in payload["error"]


def test_records_get_human_output(monkeypatch: Any, capsys: Any) -> None:
    _set_env(monkeypatch)

    def _fake_request(_self: Any, method: str, path: str, options: Optional[ListOptions] = None) -> bytes:
        return json.dumps(
            {
                "id": "rec_1",
                "createdTime": "2024-01-02T03:04:05.000Z",
                "fields": {"Name": "Ada", "Tags": ["math", "engines"]},
            }
        ).encode("utf-8")

    monkeypatch.setattr("airtable_sdk.client.AirtableClient.request", _fake_request)

    code = cli.main(["records", "get", "People", "rec_1"])

    assert code == 0
    lines = capsys.readouterr().out.splitlines()
    assert lines[0] == "id: rec_1"
    assert lines[1] == "createdTime: 2024-01-02T03:04:05Z"
    assert lines[2] == '  Name = Ada'
    assert lines[3] == '  Tags = ["math", "engines"]'


def test_http_error_json_carries_airtable_error_type(monkeypatch: Any, capsys: Any) -> None:
    _set_env(monkeypatch)

    def _fake_request(_self: Any, method: str, path: str, options: Optional[ListOptions] = None) -> bytes:
        raise HTTPRequestError(
            "http request failed: 422",
            status_code=422,
            error_type="INVALID_REQUEST_UNKNOWN",
            error_message="Invalid request",
        )

    monkeypatch.setattr("airtable_sdk.client.AirtableClient.request", _fake_request)

    code = cli.main(["records", "get", "People", "rec_1", "--format", "json"])

    assert code == 4
    payload = json.loads(capsys.readouterr().out)
    assert payload["error_type"] == "INVALID_REQUEST_UNKNOWN"
    assert "message=Invalid request" in payload["error"]
