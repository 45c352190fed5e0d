import json
import logging
import smtplib

import httpx

from app.config import Settings
from app.services import email_service
from app.services.email_service import (
    LogMailer,
    ResendMailer,
    SmtpMailer,
    build_mailer,
    render_reset_code_body,
)


def _settings(**overrides):
    return Settings(_env_file=None, **overrides)


def test_body_mentions_code_and_expiry():
    body = render_reset_code_body("012345", 5)
    assert "012345" in body
    assert "5 minutes" in body


class TestBuildMailer:
    def test_prefers_resend(self):
        mailer = build_mailer(_settings(resend_api_key="re_123", smtp_host="smtp.local"))
        assert isinstance(mailer, ResendMailer)

    def test_smtp(self):
        assert isinstance(build_mailer(_settings(smtp_host="smtp.local")), SmtpMailer)

    def test_no_provider(self):
        assert isinstance(build_mailer(_settings()), LogMailer)


class TestResendMailer:
    def test_sends_payload(self):
        seen = {}

        def handler(request):
            seen["auth"] = request.headers["Authorization"]
            seen["body"] = json.loads(request.content)
            return httpx.Response(200, json={"id": "email_1"})

        client = httpx.Client(transport=httpx.MockTransport(handler))
        settings = _settings(resend_api_key="re_123", reset_email_from="security@cortexa.app")
        result = ResendMailer(settings, client=client).send_password_reset_code("a@b.com", "123456", 5)

        assert result.delivered
        assert result.provider == "resend"
        assert seen["auth"] == "Bearer re_123"
        assert seen["body"]["to"] == ["a@b.com"]
        assert seen["body"]["from"] == "security@cortexa.app"
        assert "123456" in seen["body"]["text"]

    def test_provider_error_is_reported_not_raised(self):
        client = httpx.Client(
            transport=httpx.MockTransport(lambda request: httpx.Response(422, text="bad sender"))
        )
        result = ResendMailer(_settings(resend_api_key="re_123"), client=client).send_password_reset_code(
            "a@b.com", "123456", 5
        )
        assert not result.delivered
        assert result.error == "HTTP 422"

    def test_network_error_is_reported_not_raised(self):
        def handler(request):
            raise httpx.ConnectError("connection refused", request=request)

        client = httpx.Client(transport=httpx.MockTransport(handler))
        result = ResendMailer(_settings(resend_api_key="re_123"), client=client).send_password_reset_code(
            "a@b.com", "123456", 5
        )
        assert not result.delivered
        assert "connection refused" in result.error


class TestSmtpMailer:
    def test_connection_failure_is_reported(self, monkeypatch):
        def refuse(*args, **kwargs):
            raise ConnectionRefusedError("no smtp")

        monkeypatch.setattr(email_service.smtplib, "SMTP", refuse)
        result = SmtpMailer(_settings(smtp_host="smtp.local")).send_password_reset_code(
            "a@b.com", "123456", 5
        )
        assert not result.delivered
        assert result.provider == "smtp"

    def test_sends_message(self, monkeypatch):
        sent = []

        class FakeSMTP:
            def __init__(self, host, port, timeout=None):
                self.host = host

            def __enter__(self):
                return self

            def __exit__(self, *exc):
                return False

            def starttls(self):
                pass

            def login(self, user, password):
                pass

            def sendmail(self, sender, recipients, message):
                sent.append((sender, recipients, message))

        monkeypatch.setattr(email_service.smtplib, "SMTP", FakeSMTP)
        result = SmtpMailer(_settings(smtp_host="smtp.local")).send_password_reset_code(
            "a@b.com", "654321", 5
        )
        assert result.delivered
        assert sent[0][1] == ["a@b.com"]
        assert "654321" in sent[0][2]

    def test_smtp_exception_is_reported(self, monkeypatch):
        class RejectingSMTP:
            def __init__(self, *args, **kwargs):
                raise smtplib.SMTPConnectError(421, b"busy")

        monkeypatch.setattr(email_service.smtplib, "SMTP", RejectingSMTP)
        result = SmtpMailer(_settings(smtp_host="smtp.local")).send_password_reset_code(
            "a@b.com", "123456", 5
        )
        assert not result.delivered


class TestLogMailer:
    def test_development_logs_code(self, caplog):
        with caplog.at_level(logging.WARNING, logger="app.services.email_service"):
            result = LogMailer(_settings(environment="development")).send_password_reset_code(
                "a@b.com", "123456", 5
            )
        assert not result.delivered
        assert "123456" in caplog.text

    def test_production_never_logs_code(self, caplog):
        with caplog.at_level(logging.WARNING, logger="app.services.email_service"):
            LogMailer(_settings(environment="production")).send_password_reset_code(
                "a@b.com", "123456", 5
            )
        assert "123456" not in caplog.text
        assert "a@b.com" in caplog.text
