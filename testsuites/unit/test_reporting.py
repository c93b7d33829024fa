import json

import httpx

from resilient_api import reporting
from resilient_api.reporting import MASK, MAX_RESPONSE_LENGTH, attach_exchange, build_curl, redact_body, redact_headers


def test_redact_headers_masks_sensitive_values():
    masked = redact_headers(
        {
            "Authorization": "secret-token",
            "x-api-key": "apikey",
            "Cookie": "session=abc",
            "X-Other": "keep",
        }
    )
    assert masked["Authorization"] == MASK
    assert masked["x-api-key"] == MASK
    assert masked["Cookie"] == MASK
    assert masked["X-Other"] == "keep"


def test_redact_body_masks_sensitive_fields():
    payload = {
        "password": "p1",
        "nested": {"token": "tok", "keep": "value"},
        "items": [{"api_key": "k1"}, {"regular": "ok"}],
    }
    redacted = redact_body(payload)

    assert redacted["password"] == MASK
    assert redacted["nested"]["token"] == MASK
    assert redacted["nested"]["keep"] == "value"
    assert redacted["items"][0]["api_key"] == MASK
    assert redacted["items"][1]["regular"] == "ok"
    assert payload["password"] == "p1"


def test_build_curl_command():
    command = build_curl(
        "POST",
        "https://api.example.com/users",
        {"Content-Type": "application/json"},
        '{"name": "demo"}',
    )

    assert command.splitlines() == [
        "curl -X POST \\",
        "  -H 'Content-Type: application/json' \\",
        "  -d '{\"name\": \"demo\"}' \\",
        "  'https://api.example.com/users'",
    ]


class AttachRecorder:
    def __init__(self):
        self.attachments = {}

    def __call__(self, body, name=None, attachment_type=None, extension=None):
        self.attachments[name] = body


def test_attach_exchange_redacts_and_truncates(monkeypatch):
    recorder = AttachRecorder()
    monkeypatch.setattr(reporting.allure, "attach", recorder)
    request = httpx.Request(
        "POST",
        "https://api.example.com/login",
        headers={"Authorization": "Bearer real-token"},
        json={"user": "demo", "password": "hunter2"},
    )
    response = httpx.Response(500, text="x" * (MAX_RESPONSE_LENGTH + 50), request=request)

    attach_exchange(response, attempts=3)

    headers = {k.lower(): v for k, v in json.loads(recorder.attachments["Request Headers"]).items()}
    assert headers["authorization"] == MASK
    assert "hunter2" not in recorder.attachments["Request Body"]
    assert "real-token" not in recorder.attachments["cURL Command"]
    assert recorder.attachments["Response Status"] == "FAIL 500"
    assert "[Truncated, full length:" in recorder.attachments["Response Body"]
