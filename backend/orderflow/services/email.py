"""Transactional email via the Resend HTTP API, plus the client-facing templates."""
from __future__ import annotations

import logging
from dataclasses import dataclass
from html import escape

import requests

from ..config import settings

logger = logging.getLogger(__name__)

BRAND_NAME = "ITL Solutions"
BRAND_COLOR = "#3b82f6"


@dataclass(frozen=True)
class EmailResult:
    success: bool
    skipped: bool = False
    id: str | None = None
    error: str | None = None


@dataclass(frozen=True)
class RenderedEmail:
    subject: str
    html: str


def send_email(to: str | list[str], subject: str, html: str) -> EmailResult:
    """Send one email. Never raises: failures come back as ``success=False``."""
    if not settings.RESEND_API_KEY:
        logger.info("Skipping email %r: RESEND_API_KEY not configured", subject)
        return EmailResult(success=True, skipped=True)

    recipients = to if isinstance(to, list) else [to]
    try:
        response = requests.post(
            settings.RESEND_API_URL,
            json={
                "from": settings.EMAIL_FROM,
                "to": recipients,
                "subject": subject,
                "html": html,
            },
            headers={"Authorization": f"Bearer {settings.RESEND_API_KEY}"},
            timeout=10,
        )
        if response.status_code >= 400:
            logger.error("Email provider rejected %r: HTTP %s %s", subject, response.status_code, response.text[:200])
            return EmailResult(success=False, error=f"HTTP_{response.status_code}")
        data = response.json() if response.content else {}
        return EmailResult(success=True, id=data.get("id"))
    except Exception:
        logger.exception("Failed to send email %r", subject)
        return EmailResult(success=False, error="Failed to send email")


def _button(url: str, label: str, color: str = BRAND_COLOR) -> str:
    return (
        f'<a href="{escape(url)}" style="display: inline-block; background: {color}; color: white; '
        f'padding: 12px 24px; border-radius: 6px; text-decoration: none; font-weight: 500;">{escape(label)}</a>'
    )


def _layout(client_name: str, body: str) -> str:
    return (
        '<div style="font-family: \'Segoe UI\', sans-serif; max-width: 600px; margin: 0 auto;">'
        f'<div style="background: {BRAND_COLOR}; color: white; padding: 24px; border-radius: 8px 8px 0 0;">'
        f'<h1 style="margin: 0; font-size: 20px;">{BRAND_NAME}</h1></div>'
        '<div style="padding: 24px; border: 1px solid #e5e7eb; border-top: none; border-radius: 0 0 8px 8px;">'
        f"<p>Уважаемый(ая) {escape(client_name)},</p>"
        f"{body}"
        f'<p style="color: #6b7280; font-size: 14px; margin-top: 24px;">С уважением,<br>{BRAND_NAME}</p>'
        "</div></div>"
    )


def _facts(rows: list[tuple[str, str]], background: str = "#f9fafb") -> str:
    lines = "".join(
        f'<p style="margin: 4px 0;"><strong>{escape(label)}:</strong> {escape(value)}</p>' for label, value in rows
    )
    return f'<div style="background: {background}; border-radius: 8px; padding: 16px; margin: 16px 0;">{lines}</div>'


def invoice_sent_email(
    *,
    client_name: str,
    invoice_number: str,
    amount: str,
    due_date: str,
    portal_url: str | None = None,
) -> RenderedEmail:
    body = "<p>Вам выставлен новый счёт:</p>" + _facts(
        [("Номер", invoice_number), ("Сумма", amount), ("Срок оплаты", due_date)]
    )
    if portal_url:
        body += _button(portal_url, "Открыть в портале")
    return RenderedEmail(
        subject=f"Новый счёт {invoice_number} от {BRAND_NAME}",
        html=_layout(client_name, body),
    )


def order_status_email(
    *,
    client_name: str,
    order_number: str,
    order_title: str,
    new_status: str,
    portal_url: str | None = None,
) -> RenderedEmail:
    body = "<p>Статус вашего проекта обновлён:</p>" + _facts(
        [("Проект", f"{order_number}: {order_title}"), ("Новый статус", new_status)]
    )
    if portal_url:
        body += _button(portal_url, "Посмотреть в портале")
    return RenderedEmail(
        subject=f"Обновление статуса проекта {order_number}",
        html=_layout(client_name, body),
    )


def milestone_ready_email(
    *,
    client_name: str,
    order_number: str,
    milestone_title: str,
    portal_url: str | None = None,
) -> RenderedEmail:
    body = (
        f"<p>Этап вашего проекта {escape(order_number)} завершён и готов к согласованию:</p>"
        + _facts([("Этап", milestone_title)], background="#f0fdf4")
        + "<p>Пожалуйста, проверьте результаты и подтвердите согласование в портале.</p>"
    )
    if portal_url:
        body += _button(portal_url, "Согласовать этап", color="#22c55e")
    return RenderedEmail(
        subject=f'Этап "{milestone_title}" готов к согласованию',
        html=_layout(client_name, body),
    )


def portal_token_email(*, client_name: str, portal_url: str) -> RenderedEmail:
    body = (
        "<p>Для вас создан доступ к клиентскому порталу, где вы можете отслеживать прогресс "
        "ваших проектов, согласовывать этапы и просматривать счета.</p>"
        f'<div style="text-align: center; margin: 24px 0;">{_button(portal_url, "Войти в портал")}</div>'
        '<p style="color: #6b7280; font-size: 14px;">Сохраните эту ссылку: она является вашим ключом доступа к порталу.</p>'
    )
    return RenderedEmail(
        subject=f"Доступ к клиентскому порталу {BRAND_NAME}",
        html=_layout(client_name, body),
    )
