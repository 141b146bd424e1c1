"""
Email sending: file mode (write to outbox) or SMTP mode.
Config-driven via app.core.config (EMAIL_MODE, EMAIL_*).
"""
import logging
import os
import smtplib
from datetime import datetime, timezone
from email.mime.text import MIMEText
from pathlib import Path
from typing import Optional

from app.core.config import settings

logger = logging.getLogger(__name__)

DEFAULT_FROM = "noreply@campus-resources.local"


def _outbox_dir() -> Path:
    """Resolve outbox dir; prefer EMAIL_OUTBOX_DIR from env at call time (for tests)."""
    raw = os.environ.get("EMAIL_OUTBOX_DIR") or settings.email_outbox_dir
    p = Path(raw)
    if not p.is_absolute():
        p = Path.cwd() / p
    return p


def _email_mode() -> str:
    """Parse EMAIL_MODE: strip whitespace and comments (e.g. 'file # outbox' -> 'file'), default 'file'."""
    raw = settings.email_mode or os.environ.get("EMAIL_MODE") or "file"
    mode = str(raw).split("#")[0].strip().lower()
    return mode if mode else "file"


def send_email(to: str, subject: str, body: str, from_addr: Optional[str] = None) -> None:
    """Send plain-text email via configured mode: file | smtp."""
    from_addr = from_addr or settings.email_from or DEFAULT_FROM
    if _email_mode() == "file":
        path = _write_email_to_outbox(to=to, subject=subject, body=body, from_addr=from_addr)
        logger.info("Email to=%s subject='%s' written to %s", to, subject, path.name)
    else:
        _send_email_smtp(to=to, subject=subject, body=body, from_addr=from_addr)
        logger.info("Email to=%s subject='%s' sent via SMTP", to, subject)


def _write_email_to_outbox(to: str, subject: str, body: str, from_addr: str) -> Path:
    """Write email to outbox as timestamped .txt file (headers + body)."""
    outbox = _outbox_dir()
    outbox.mkdir(parents=True, exist_ok=True)
    now = datetime.now(timezone.utc)
    ts = now.strftime("%Y-%m-%dT%H-%M-%S-") + f"{now.microsecond:06d}Z"
    path = outbox / f"email_{ts}.txt"
    content = (
        f"From: {from_addr}\nTo: {to}\nSubject: {subject}\n"
        f"Content-Type: text/plain; charset=utf-8\n\n{body}"
    )
    path.write_text(content, encoding="utf-8")
    return path


def _send_email_smtp(to: str, subject: str, body: str, from_addr: str) -> None:
    """Send email via SMTP (STARTTLS if configured)."""
    host = settings.email_smtp_host
    port = settings.email_smtp_port or (587 if settings.email_smtp_use_tls else 25)
    if not host:
        raise ValueError("EMAIL_SMTP_HOST is required when EMAIL_MODE=smtp")
    msg = MIMEText(body, "plain", "utf-8")
    msg["Subject"] = subject
    msg["From"] = from_addr
    msg["To"] = to
    with smtplib.SMTP(host, port) as server:
        if settings.email_smtp_use_tls:
            server.starttls()
        if settings.email_smtp_username and settings.email_smtp_password:
            server.login(settings.email_smtp_username, settings.email_smtp_password)
        server.sendmail(from_addr, [to], msg.as_string())
