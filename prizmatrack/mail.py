"""
Outgoing mail over SMTP.

Delivery is best effort: a failed send is logged and reported as ``False``
and never fails the request that triggered it.
"""

import logging
import smtplib
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from html import escape

from prizmatrack.config import settings

logger = logging.getLogger(__name__)

def send_email(to_email: str, subject: str, text_content: str, html_content: str) -> bool:
    if not settings.mail_enabled:
        logger.info("mail disabled, not sending %r to %s", subject, to_email)
        return False

    msg = MIMEMultipart("alternative")
    msg["Subject"] = subject
    msg["From"] = settings.mail_from
    msg["To"] = to_email
    msg.attach(MIMEText(text_content, "plain"))
    msg.attach(MIMEText(html_content, "html"))

    try:
        with smtplib.SMTP(settings.smtp_host, settings.smtp_port, timeout=settings.smtp_timeout_seconds) as server:
            if settings.smtp_starttls:
                server.starttls()
            if settings.smtp_username:
                server.login(settings.smtp_username, settings.smtp_password)
            server.send_message(msg)
    except (smtplib.SMTPException, OSError):
        logger.exception("failed to send %r to %s", subject, to_email)
        return False

    logger.info("mail sent %r to %s", subject, to_email)
    return True

def _html(greeting: str, body: str, link: str | None = None, label: str = "") -> str:
    button = f'<p><a href="{escape(link)}">{escape(label)}</a></p>' if link else ""
    return (
        '<html><body style="font-family: Helvetica, sans-serif; max-width: 600px; margin: 0 auto;">'
        f"<p>{escape(greeting)}</p><p>{escape(body)}</p>{button}"
        '<p style="color: #666; font-size: 12px;">PrizmaTrack</p>'
        "</body></html>"
    )

def send_magic_link(to_email: str, link: str) -> bool:
    body = f"Use this link to sign in to PrizmaTrack. It expires in {settings.magic_link_expires_minutes} minutes."
    return send_email(
        to_email,
        "Your PrizmaTrack sign-in link",
        f"Hello,\n\n{body}\n\n{link}\n",
        _html("Hello,", body, link, "Sign in"),
    )

def send_org_invite(to_email: str, inviter_name: str | None, organization_name: str, join_url: str) -> bool:
    body = f"{inviter_name or 'Someone'} invited you to join their organization, {organization_name}, on PrizmaTrack."
    return send_email(
        to_email,
        f"You're invited to join {organization_name} on PrizmaTrack",
        f"Hi,\n\n{body}\nFollow the link below to view the invitation.\n\n{join_url}\n",
        _html("Hi,", body, join_url, "View invitation"),
    )

def send_invite_accepted(
    to_email: str,
    recipient_name: str | None,
    member_name: str,
    organization_name: str,
) -> bool:
    body = f"{member_name} has accepted your invitation to join {organization_name}."
    greeting = f"Hi {recipient_name}," if recipient_name else "Hello,"
    return send_email(
        to_email,
        f"{member_name} has accepted your invitation",
        f"{greeting}\n\n{body}\n",
        _html(greeting, body),
    )
