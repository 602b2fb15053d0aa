"""
Outgoing e-mail: SMTP delivery plus the Portuguese templates for magic links
and user invitations.
"""

from __future__ import annotations

import html
import logging
import smtplib
from dataclasses import dataclass
from email.message import EmailMessage
from typing import Optional

from starlette.concurrency import run_in_threadpool

from aurora.core.settings import AppSettings, get_app_settings

logger = logging.getLogger(__name__)

FOOTER = "AuroraSocial - Sistema de Gestão Social"


class MailDeliveryError(Exception):
    """The message could not be handed to the mail server."""


@dataclass
class OutgoingEmail:
    to: str
    subject: str
    text: str
    html: str


class Mailer:
    """Interface for e-mail delivery; routes depend on it through get_mailer."""

    async def send(self, message: OutgoingEmail) -> None:  # pragma: no cover - interface
        raise NotImplementedError


class SmtpMailer(Mailer):
    """Deliver messages over SMTP without blocking the event loop."""

    def __init__(self, settings: Optional[AppSettings] = None) -> None:
        self.settings = settings or get_app_settings()

    def _send_sync(self, message: OutgoingEmail) -> None:
        s = self.settings
        msg = EmailMessage()
        msg["Subject"] = message.subject
        msg["From"] = s.EMAIL_FROM
        msg["To"] = message.to
        msg.set_content(message.text)
        msg.add_alternative(message.html, subtype="html")

        with smtplib.SMTP(s.SMTP_HOST, s.SMTP_PORT, timeout=10) as smtp:
            if s.SMTP_USE_TLS:
                smtp.starttls()
            if s.SMTP_USER:
                smtp.login(s.SMTP_USER, s.SMTP_PASSWORD or "")
            smtp.send_message(msg)

    # PUBLIC_INTERFACE
    async def send(self, message: OutgoingEmail) -> None:
        """Send the message; raises MailDeliveryError on any SMTP failure."""
        if not self.settings.SMTP_HOST:
            # Development mode: no server configured, the link is only logged.
            logger.warning("SMTP_HOST not set; e-mail '%s' to %s not sent:\n%s", message.subject, message.to, message.text)
            return
        try:
            await run_in_threadpool(self._send_sync, message)
        except (smtplib.SMTPException, OSError) as exc:
            logger.error("Failed to send e-mail '%s' to %s: %s", message.subject, message.to, exc)
            raise MailDeliveryError(str(exc)) from exc
        logger.info("E-mail '%s' sent to %s", message.subject, message.to)


def _layout(heading: str, paragraphs: list[str], button_label: str, url: str) -> str:
    body = "".join(f"<p>{p}</p>" for p in paragraphs[:-1])
    tail = f"<p>{paragraphs[-1]}</p>" if paragraphs else ""
    return (
        '<html lang="pt-BR"><body style="font-family: Arial, sans-serif; color: #1f2937;">'
        f"<h1>{html.escape(heading)}</h1>"
        f"{body}"
        f'<p><a href="{html.escape(url, quote=True)}" '
        'style="background:#2563eb;color:#fff;padding:12px 20px;border-radius:6px;text-decoration:none;">'
        f"{html.escape(button_label)}</a></p>"
        f"{tail}"
        f'<p style="color:#6b7280;font-size:12px;">{FOOTER}</p>'
        "</body></html>"
    )


# PUBLIC_INTERFACE
def render_magic_link_email(to: str, url: str) -> OutgoingEmail:
    """Sign-in link e-mail."""
    email = html.escape(to)
    paragraphs = [
        "Olá!",
        f"Você solicitou acesso ao sistema AuroraSocial com o email <strong>{email}</strong>. "
        "Clique no botão abaixo para fazer login de forma segura.",
        "Este link expira em 24 horas e só pode ser usado uma vez.",
        "Se você não solicitou este acesso, pode ignorar este email com segurança.",
    ]
    text = (
        "Olá!\n\n"
        f"Você solicitou acesso ao sistema AuroraSocial com o email {to}.\n"
        f"Acesse: {url}\n\n"
        "Este link expira em 24 horas e só pode ser usado uma vez.\n"
        "Se você não solicitou este acesso, pode ignorar este email com segurança.\n\n"
        f"{FOOTER}\n"
    )
    return OutgoingEmail(
        to=to,
        subject="Acesse o AuroraSocial",
        text=text,
        html=_layout("Acesse o AuroraSocial", paragraphs, "Fazer Login", url),
    )


# PUBLIC_INTERFACE
def render_invitation_email(to: str, inviter_name: str, municipality_name: str, role_label: str, url: str) -> OutgoingEmail:
    """Invitation e-mail sent when a GESTOR adds a team member."""
    inviter = html.escape(inviter_name)
    municipality = html.escape(municipality_name)
    role = html.escape(role_label)
    paragraphs = [
        "Olá!",
        f"<strong>{inviter}</strong> convidou você para participar do sistema AuroraSocial de "
        f"<strong>{municipality}</strong>.",
        f"Você foi cadastrado com o papel de <strong>{role}</strong>.",
        "Este link de convite expira em 7 dias. Se você não esperava este convite ou não reconhece "
        f"<strong>{municipality}</strong>, pode ignorar este email com segurança.",
    ]
    text = (
        "Olá!\n\n"
        f"{inviter_name} convidou você para participar do sistema AuroraSocial de {municipality_name}.\n"
        f"Você foi cadastrado com o papel de {role_label}.\n\n"
        f"Aceite o convite: {url}\n\n"
        "Este link de convite expira em 7 dias.\n"
        f"Se você não esperava este convite ou não reconhece {municipality_name}, "
        "pode ignorar este email com segurança.\n\n"
        f"{FOOTER}\n"
    )
    return OutgoingEmail(
        to=to,
        subject="Convite para AuroraSocial",
        text=text,
        html=_layout("Você foi convidado para o AuroraSocial", paragraphs, "Aceitar Convite e Acessar Sistema", url),
    )


# PUBLIC_INTERFACE
def get_mailer() -> Mailer:
    """FastAPI dependency returning the configured mailer."""
    return SmtpMailer()
