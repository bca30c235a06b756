"""Test email and WhatsApp senders."""
import smtplib
from unittest.mock import MagicMock, patch

import pytest
import requests

from funnels.senders import FORCE_FALLBACK, SendError, create_email_sender, create_whatsapp_sender
from funnels.senders.console import LoggingEmailSender, LoggingWhatsAppSender
from funnels.senders.smtp import SmtpEmailSender
from funnels.senders.whatsapp_cloud import CloudApiWhatsAppSender, clean_phone


class TestFactory:
    """Test sender selection."""

    def test_log_backends(self):
        assert isinstance(create_email_sender("log"), LoggingEmailSender)
        assert isinstance(create_whatsapp_sender("log"), LoggingWhatsAppSender)

    def test_smtp_backend(self):
        assert isinstance(create_email_sender("smtp"), SmtpEmailSender)

    def test_unknown_backend(self):
        with pytest.raises(ValueError, match="Unknown email backend"):
            create_email_sender("carrier-pigeon")
        with pytest.raises(ValueError, match="Unknown WhatsApp backend"):
            create_whatsapp_sender("carrier-pigeon")

    def test_cloud_backend_requires_credentials(self):
        with pytest.raises(ValueError, match="WA_PHONE_NUMBER_ID"):
            CloudApiWhatsAppSender(phone_number_id="", access_token="")


class TestSmtpEmailSender:
    """Test SMTP delivery."""

    @patch("funnels.senders.smtp.smtplib.SMTP")
    def test_send(self, mock_smtp):
        server = mock_smtp.return_value.__enter__.return_value
        sender = SmtpEmailSender(
            host="smtp.example.com",
            port=587,
            username="user",
            password="pass",
            use_tls=True,
            from_address="blog@example.com",
        )

        sender.send("reader@example.com", "Hello", "<p>Hi</p>")

        mock_smtp.assert_called_once_with("smtp.example.com", 587, timeout=30)
        server.starttls.assert_called_once()
        server.login.assert_called_once_with("user", "pass")
        from_address, recipients, raw = server.sendmail.call_args.args
        assert from_address == "blog@example.com"
        assert recipients == ["reader@example.com"]
        assert "Subject: Hello" in raw

    @patch("funnels.senders.smtp.smtplib.SMTP")
    def test_no_auth_no_tls(self, mock_smtp):
        server = mock_smtp.return_value.__enter__.return_value
        SmtpEmailSender(host="localhost", port=25, username=None, password=None, use_tls=False).send("a@b.c", "s", "b")

        server.starttls.assert_not_called()
        server.login.assert_not_called()

    @patch("funnels.senders.smtp.smtplib.SMTP")
    def test_failure_raises_send_error(self, mock_smtp):
        mock_smtp.return_value.__enter__.return_value.sendmail.side_effect = smtplib.SMTPRecipientsRefused({})
        with pytest.raises(SendError):
            SmtpEmailSender(use_tls=False).send("a@b.c", "s", "b")

    @patch("funnels.senders.smtp.smtplib.SMTP", side_effect=ConnectionRefusedError("refused"))
    def test_connection_failure_raises_send_error(self, mock_smtp):
        with pytest.raises(SendError, match="refused"):
            SmtpEmailSender().send("a@b.c", "s", "b")


class TestCloudApiWhatsAppSender:
    """Test the WhatsApp Cloud API sender."""

    @pytest.fixture
    def session(self):
        session = MagicMock(spec=requests.Session)
        session.headers = {}
        session.post.return_value.json.return_value = {"messages": [{"id": "wamid.1"}]}
        return session

    @pytest.fixture
    def sender(self, session):
        return CloudApiWhatsAppSender(
            phone_number_id="123",
            access_token="token",
            api_version="v21.0",
            language_code="pt_BR",
            session=session,
        )

    def test_clean_phone(self):
        assert clean_phone("+55 (11) 99999-0000") == "5511999990000"

    def test_auth_header(self, sender, session):
        assert session.headers["Authorization"] == "Bearer token"

    def test_forced_fallback_sends_text(self, sender, session):
        sender.send_hybrid("+55 11 99999-0000", FORCE_FALLBACK, [], "Oi")

        session.post.assert_called_once()
        url = session.post.call_args.args[0]
        payload = session.post.call_args.kwargs["json"]
        assert url == "https://graph.facebook.com/v21.0/123/messages"
        assert payload["type"] == "text"
        assert payload["to"] == "5511999990000"
        assert payload["text"]["body"] == "Oi"

    def test_template_with_variables(self, sender, session):
        sender.send_hybrid("5511", "new_post", ["Ana", "Funis"], "fallback")

        payload = session.post.call_args.kwargs["json"]
        assert payload["type"] == "template"
        assert payload["template"]["name"] == "new_post"
        assert payload["template"]["language"] == {"code": "pt_BR"}
        params = payload["template"]["components"][0]["parameters"]
        assert [p["text"] for p in params] == ["Ana", "Funis"]

    def test_template_failure_falls_back_to_text(self, sender, session):
        ok = MagicMock()
        failed = MagicMock()
        failed.raise_for_status.side_effect = requests.HTTPError("400 template not approved")
        session.post.side_effect = [failed, ok]

        sender.send_hybrid("5511", "new_post", [], "fallback")

        assert session.post.call_count == 2
        assert session.post.call_args.kwargs["json"]["text"]["body"] == "fallback"

    def test_text_failure_raises(self, sender, session):
        session.post.side_effect = requests.ConnectionError("offline")
        with pytest.raises(SendError, match="offline"):
            sender.send_hybrid("5511", FORCE_FALLBACK, [], "Oi")
