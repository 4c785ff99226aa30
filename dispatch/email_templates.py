"""
MJML Email Templates
Compiled to self-contained, inline-styled HTML before sending
"""

import logging
from datetime import datetime, timezone
from html import escape
from typing import Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from .config import APP_URL, DISPLAY_TIMEZONE

logger = logging.getLogger(__name__)

# App theme colors
THEME = {
    "primary": "#667eea",
    "primary_dark": "#764ba2",
    "accent": "#4facfe",
    "background": "#f8f9fa",
    "card_bg": "#ffffff",
    "text_primary": "#333333",
    "text_secondary": "#495057",
    "text_muted": "#6c757d",
    "border": "#e9ecef",
    "success": "#28a745",
    "danger": "#dc3545",
}

BRAND_NAME = "Esil-events"
DEFAULT_SENDER_NAME = "L'équipe Esil-events"
DEFAULT_DESCRIPTION = "Aucune description fournie"

FRENCH_WEEKDAYS = ("lundi", "mardi", "mercredi", "jeudi", "vendredi", "samedi", "dimanche")
FRENCH_MONTHS = (
    "janvier",
    "février",
    "mars",
    "avril",
    "mai",
    "juin",
    "juillet",
    "août",
    "septembre",
    "octobre",
    "novembre",
    "décembre",
)

PAYMENT_STATUS_LABELS = {
    "pending": ("Nouveau paiement créé", "a été créé"),
    "validated": ("Paiement validé", "a été validé"),
    "paid": ("Paiement effectué", "a été versé"),
}


def _display_zone():
    try:
        return ZoneInfo(DISPLAY_TIMEZONE)
    except ZoneInfoNotFoundError:
        logger.warning(f"⚠️ Unknown timezone {DISPLAY_TIMEZONE}, dates shown in UTC")
        return timezone.utc


def format_currency(amount) -> str:
    """Format an amount the fr-FR way: ``1 500 €``, ``150,50 €``"""
    value = float(amount)
    text = f"{int(value):,}" if value.is_integer() else f"{value:,.2f}"
    text = text.replace(",", " ").replace(".", ",")
    return f"{text} €"


def format_datetime(value: datetime) -> str:
    """Long French date, e.g. ``samedi 1 novembre 2026 à 10:00``. Naive values are UTC."""
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    local = value.astimezone(_display_zone())
    weekday = FRENCH_WEEKDAYS[local.weekday()]
    month = FRENCH_MONTHS[local.month - 1]
    return f"{weekday} {local.day} {month} {local.year} à {local:%H:%M}"


def _detail_row(label: str, value: str) -> str:
    return f"""
            <mj-text padding="8px 0">
              <strong style="color: {THEME['text_secondary']};">{label}</strong> {value}
            </mj-text>
            <mj-divider border-color="{THEME['border']}" border-width="1px" padding="0" />"""


def get_base_template(
    title: str,
    greeting: str,
    content_sections: str,
    cta_url: Optional[str] = None,
    cta_label: Optional[str] = None,
    contact_name: str = DEFAULT_SENDER_NAME,
    preview_text: Optional[str] = None,
) -> str:
    """Base MJML wrapper for all emails. ``title``, ``greeting`` and ``contact_name`` are escaped here."""

    cta_section = ""
    if cta_url and cta_label:
        cta_section = f"""
        <mj-section background-color="{THEME['card_bg']}" padding="0 40px 30px 40px">
          <mj-column>
            <mj-button
              href="{escape(cta_url, quote=True)}"
              background-color="{THEME['accent']}"
              color="#ffffff"
              font-weight="bold"
              border-radius="25px"
              padding="12px 30px">
              {escape(cta_label)}
            </mj-button>
          </mj-column>
        </mj-section>
        """

    return f"""
    <mjml>
      <mj-head>
        <mj-title>{escape(title)}</mj-title>
        <mj-preview>{escape(preview_text or title)}</mj-preview>
        <mj-attributes>
          <mj-all font-family="'Segoe UI', Tahoma, Geneva, Verdana, sans-serif" />
          <mj-text font-size="16px" line-height="1.6" color="{THEME['text_primary']}" />
        </mj-attributes>
      </mj-head>
      <mj-body background-color="{THEME['background']}" width="600px">
        <mj-section background-color="{THEME['card_bg']}" padding="30px 40px 0 40px">
          <mj-column>
            <mj-text align="center" font-size="24px" font-weight="bold" color="{THEME['primary']}" padding="0 0 10px 0">
              {BRAND_NAME}
            </mj-text>
            <mj-text align="center" font-size="18px" padding="0 0 20px 0">
              {escape(greeting)}
            </mj-text>
            <mj-divider border-color="{THEME['primary']}" border-width="2px" padding="0 0 20px 0" />
          </mj-column>
        </mj-section>

        <mj-section background-color="{THEME['card_bg']}" padding="0 40px 20px 40px">
          <mj-column>
            {content_sections}
          </mj-column>
        </mj-section>
        {cta_section}
        <mj-section padding="20px">
          <mj-column>
            <mj-text align="center" font-size="14px" color="{THEME['text_muted']}" padding="0">
              Cet email a été envoyé automatiquement par le système {BRAND_NAME}.
            </mj-text>
            <mj-text align="center" font-size="14px" color="{THEME['text_muted']}" padding="8px 0 0 0">
              Pour toute question, contactez {escape(contact_name)}.
            </mj-text>
            <mj-text align="center" font-size="13px" color="{THEME['text_muted']}" padding="8px 0 0 0">
              © {datetime.now().year} {BRAND_NAME} - Tous droits réservés
            </mj-text>
          </mj-column>
        </mj-section>
      </mj-body>
    </mjml>
    """


def mission_assignment_template(
    technician_name: str,
    mission,
    admin_name: Optional[str] = None,
    app_url: str = APP_URL,
) -> str:
    """Notify a technician that a mission was proposed to them"""
    description = mission.description or DEFAULT_DESCRIPTION

    content = f"""
            <mj-text padding="0 0 16px 0">Vous avez été assigné(e) à une nouvelle mission !</mj-text>
            <mj-text container-background-color="{THEME['primary']}" color="#ffffff" padding="20px">
              <span style="font-size: 20px; font-weight: bold;">{escape(mission.title)}</span><br />
              Type : {escape(mission.type)}
            </mj-text>
            <mj-spacer height="16px" />
            {_detail_row("📍 Lieu :", escape(mission.location))}
            {_detail_row("📅 Début :", format_datetime(mission.date_start))}
            {_detail_row("⏰ Fin :", format_datetime(mission.date_end))}
            {_detail_row("💰 Forfait :", format_currency(mission.forfeit))}
            {_detail_row("📝 Description :", escape(description))}
            <mj-text padding="16px 0 0 0">
              <strong>Action requise :</strong> Veuillez vous connecter à votre espace technicien pour accepter ou refuser cette mission.
            </mj-text>"""

    return get_base_template(
        title="Nouvelle mission assignée",
        greeting=f"Bonjour {technician_name} !",
        content_sections=content,
        cta_url=app_url,
        cta_label="🔗 Accéder à mon espace",
        contact_name=admin_name or DEFAULT_SENDER_NAME,
        preview_text=f"Nouvelle mission : {mission.title}",
    )


def mission_assignment_text(
    technician_name: str,
    mission,
    admin_name: Optional[str] = None,
    app_url: str = APP_URL,
) -> str:
    """Plain-text alternative of :func:`mission_assignment_template`"""
    return "\n".join(
        [
            f"Bonjour {technician_name},",
            "",
            "Une nouvelle mission vous a été assignée :",
            f"- Mission : {mission.title}",
            f"- Type : {mission.type}",
            f"- Lieu : {mission.location}",
            f"- Début : {format_datetime(mission.date_start)}",
            f"- Fin : {format_datetime(mission.date_end)}",
            f"- Forfait : {format_currency(mission.forfeit)}",
            f"- Description : {mission.description or DEFAULT_DESCRIPTION}",
            "",
            f"Connectez-vous à votre espace pour accepter ou refuser cette mission : {app_url}",
            "",
            admin_name or DEFAULT_SENDER_NAME,
        ]
    )


def mission_response_template(
    technician_name: str, mission, accepted: bool, reason: Optional[str] = None
) -> str:
    """Tell the admin that a technician accepted or declined a mission"""
    if accepted:
        headline = f"La mission « {escape(mission.title)} » a été acceptée par {escape(technician_name)}."
        extra = ""
    else:
        headline = f"La mission « {escape(mission.title)} » a été refusée par {escape(technician_name)}."
        extra = _detail_row("Raison :", escape(reason or "Aucune raison spécifiée"))

    content = f"""
            <mj-text padding="0 0 16px 0">{headline}</mj-text>
            {_detail_row("📅 Date :", format_datetime(mission.date_start))}
            {_detail_row("📍 Lieu :", escape(mission.location))}
            {extra}"""

    return get_base_template(
        title="Mission acceptée" if accepted else "Mission refusée",
        greeting="Bonjour,",
        content_sections=content,
    )


def payment_status_template(
    technician_name: str, mission_title: str, amount, status: str
) -> str:
    """Inform a technician that one of their payments changed status"""
    title, verb = PAYMENT_STATUS_LABELS.get(status, PAYMENT_STATUS_LABELS["pending"])
    content = f"""
            <mj-text>Le paiement de {format_currency(amount)} pour la mission « {escape(mission_title)} » {verb}.</mj-text>"""

    return get_base_template(
        title=title,
        greeting=f"Bonjour {technician_name},",
        content_sections=content,
        cta_url=APP_URL,
        cta_label="Voir mes paiements",
    )
