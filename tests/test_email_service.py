import logging
from datetime import datetime, timezone

from webnest.services.email_service import EmailService


def test_otp_code_is_kept_out_of_info_logs(caplog):
    service = EmailService("http://localhost:3000/")

    with caplog.at_level(logging.INFO, logger="webnest.services.email_service"):
        assert service.send_otp_email("a@example.com", "654321", datetime(2030, 1, 1, tzinfo=timezone.utc))

    assert "a@example.com" in caplog.text
    assert "654321" not in caplog.text


def test_mail_body_is_available_at_debug(caplog):
    service = EmailService("http://localhost:3000/")

    with caplog.at_level(logging.DEBUG, logger="webnest.services.email_service"):
        service.send_otp_email("a@example.com", "654321", datetime(2030, 1, 1, tzinfo=timezone.utc), purpose="login")

    assert "Your WebNest login code" in caplog.text
    assert "654321" in caplog.text
