"""Email delivery for the `email.send_email` integration.

A provider takes a rendered message `{to, from, subject, text, html, replyTo}`
plus a settings dict and returns `{id}`. Settings come from the integration
registration first and the APPFORGE_* / provider env vars second.
"""

from __future__ import annotations

import os
import smtplib
import uuid
from email.message import EmailMessage
from typing import Any

import httpx
from jinja2 import TemplateError

from app.template_render import render_template as render_jinja

EMAIL_PROVIDER = os.getenv("APPFORGE_EMAIL_PROVIDER", "").strip().lower()
EMAIL_FROM = os.getenv("APPFORGE_EMAIL_FROM", "").strip()
POSTMARK_URL = "https://api.postmarkapp.com/email"
SEND_TIMEOUT_S = 30
SMTP_SECURITY_MODES = ("none", "starttls", "ssl")


class EmailProviderError(RuntimeError):
    pass


def render_template(text: str, context: dict, strict: bool = True) -> str:
    try:
        return render_jinja(text, context or {}, strict=strict)
    except TemplateError as exc:
        raise EmailProviderError(f"Template error: {exc}") from exc


def _split_addresses(value: Any) -> list[str]:
    if isinstance(value, (list, tuple)):
        parts = [str(item) for item in value]
    else:
        parts = str(value or "").split(",")
    return [part.strip() for part in parts if part.strip()]


def _sender(message: dict, settings: dict) -> str:
    address = message.get("from") or settings.get("from_email")
    if not address:
        raise EmailProviderError("No sender address configured")
    display = settings.get("from_name")
    return f"{display} <{address}>" if display else address


def _recipients(message: dict) -> list[str]:
    recipients = _split_addresses(message.get("to"))
    if not recipients:
        raise EmailProviderError("Missing recipients")
    return recipients


class EmailProvider:
    name = "base"

    def send(self, message: dict, settings: dict) -> dict:
        raise NotImplementedError


class PostmarkProvider(EmailProvider):
    name = "postmark"

    def __init__(self, transport: httpx.BaseTransport | None = None) -> None:
        self.transport = transport

    def send(self, message: dict, settings: dict) -> dict:
        token = settings.get("api_token") or os.getenv("POSTMARK_API_TOKEN", "").strip()
        if not token:
            raise EmailProviderError("POSTMARK_API_TOKEN is not set")
        body = {
            "From": _sender(message, settings),
            "To": ",".join(_recipients(message)),
            "Subject": message.get("subject"),
            "TextBody": message.get("text"),
            "HtmlBody": message.get("html"),
            "ReplyTo": message.get("replyTo"),
        }
        headers = {"Accept": "application/json", "X-Postmark-Server-Token": token}
        with httpx.Client(timeout=SEND_TIMEOUT_S, transport=self.transport) as client:
            response = client.post(POSTMARK_URL, json=body, headers=headers)
        if response.is_error:
            raise EmailProviderError(f"Postmark rejected message: {response.status_code} {response.text}")
        return {"id": response.json().get("MessageID") or str(uuid.uuid4())}


def _smtp_settings(settings: dict) -> dict:
    security = (settings.get("security") or os.getenv("SMTP_SECURITY") or "starttls").strip().lower()
    if security not in SMTP_SECURITY_MODES:
        raise EmailProviderError(f"Unsupported SMTP security: {security}")
    host = (settings.get("host") or os.getenv("SMTP_HOST", "")).strip()
    if not host:
        raise EmailProviderError("SMTP_HOST is not set")
    return {
        "host": host,
        "port": int(settings.get("port") or os.getenv("SMTP_PORT") or 587),
        "security": security,
        "username": (settings.get("username") or os.getenv("SMTP_USERNAME", "")).strip(),
        "password": settings.get("password") or os.getenv("SMTP_PASSWORD", ""),
    }


def _mime(message: dict, sender: str, recipients: list[str]) -> EmailMessage:
    mime = EmailMessage()
    mime["From"] = sender
    mime["To"] = ", ".join(recipients)
    mime["Subject"] = message.get("subject") or ""
    if message.get("replyTo"):
        mime["Reply-To"] = message["replyTo"]
    mime.set_content(message.get("text") or "")
    if message.get("html"):
        mime.add_alternative(message["html"], subtype="html")
    return mime


class SmtpProvider(EmailProvider):
    name = "smtp"

    def send(self, message: dict, settings: dict) -> dict:
        smtp = _smtp_settings(settings)
        recipients = _recipients(message)
        mime = _mime(message, _sender(message, settings), recipients)
        if smtp["security"] == "ssl":
            server = smtplib.SMTP_SSL(smtp["host"], smtp["port"], timeout=SEND_TIMEOUT_S)
        else:
            server = smtplib.SMTP(smtp["host"], smtp["port"], timeout=SEND_TIMEOUT_S)
        with server:
            if smtp["security"] == "starttls":
                server.starttls()
            if smtp["username"]:
                server.login(smtp["username"], smtp["password"] or "")
            server.send_message(mime, to_addrs=recipients)
        return {"id": str(uuid.uuid4())}


PROVIDERS = {"postmark": PostmarkProvider, "smtp": SmtpProvider}


def get_provider(provider_type: str) -> EmailProvider:
    factory = PROVIDERS.get(provider_type)
    if factory is None:
        raise EmailProviderError(f"Unknown provider: {provider_type}")
    return factory()


def build_message(payload: dict, variables: dict | None, from_email: str | None = None) -> dict:
    """Turn a `send_email` action payload into a provider message, rendering Jinja markup."""
    to = _split_addresses(payload.get("to"))
    if not to:
        raise EmailProviderError("Missing recipients")
    context = dict(variables or {})
    html = payload.get("html")
    return {
        "to": to,
        "from": from_email or EMAIL_FROM or None,
        "subject": render_template(payload.get("subject") or "", context),
        "text": render_template(payload.get("body") or "", context),
        "html": render_template(html, context) if html else None,
        "replyTo": payload.get("replyTo"),
    }


def make_send_email_action(provider: EmailProvider, settings: dict | None = None):
    """Adapt an email provider to the `email.send_email` integration signature."""
    settings = dict(settings or {})

    def send_email(request: dict) -> dict:
        message = build_message(request.get("payload") or {}, request.get("variables"), settings.get("from_email"))
        return provider.send(message, settings)

    return send_email


def register_email_integration(registry: Any, provider_type: str | None = None, settings: dict | None = None) -> bool:
    provider_type = (provider_type if provider_type is not None else EMAIL_PROVIDER) or ""
    if not provider_type:
        return False
    registry.register("email", "send_email", make_send_email_action(get_provider(provider_type), settings))
    return True
