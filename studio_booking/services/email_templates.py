# studio_booking/services/email_templates.py
"""
French email bodies for a new booking: client confirmation and admin alert.
Every interpolated client value is HTML-escaped in the html part.
"""
from __future__ import annotations

import html
from dataclasses import dataclass
from typing import Optional
from zoneinfo import ZoneInfo

from studio_booking.core.business import format_date_fr
from studio_booking.core.config import Settings
from studio_booking.db.models.appointment import Appointment

NOT_PROVIDED = "Non renseigné"
NO_MESSAGE = "Aucun message spécifique"


@dataclass(frozen=True)
class AppointmentNotice:
    """Flat view of an appointment, the shape every notification step consumes."""

    appointment_id: str
    name: str
    email: str
    phone: Optional[str]
    service: str
    date: str          # YYYY-MM-DD, business timezone
    time: str          # HH:MM, business timezone
    date_label: str    # "lundi 10 mars 2025"
    start_utc: str
    end_utc: str
    duration_min: int
    message: Optional[str]
    location_type: str
    meeting_link: Optional[str]
    address: Optional[str]
    manage_url: str

    @classmethod
    def from_appointment(cls, appt: Appointment, settings: Settings) -> "AppointmentNotice":
        tz = ZoneInfo(settings.BUSINESS_TIMEZONE)
        local = appt.local_start(tz)
        client = appt.client or {}
        location = appt.location or {}
        base = settings.PUBLIC_BASE_URL.rstrip("/")
        return cls(
            appointment_id=appt.id,
            name=client.get("name") or appt.client_email,
            email=appt.client_email,
            phone=client.get("phone"),
            service=(appt.service_snapshot or {}).get("name") or "",
            date=local.strftime("%Y-%m-%d"),
            time=local.strftime("%H:%M"),
            date_label=format_date_fr(local),
            start_utc=appt.start_time.isoformat(),
            end_utc=appt.end_time.isoformat(),
            duration_min=appt.duration_min,
            message=appt.message,
            location_type=location.get("type") or "online",
            meeting_link=location.get("meetingLink"),
            address=location.get("address"),
            manage_url=f"{base}/appointments/manage/{appt.cancellation_token}",
        )


@dataclass(frozen=True)
class EmailContent:
    subject: str
    text: str
    html: str


def _mode(notice: AppointmentNotice) -> str:
    return "Visioconférence" if notice.location_type == "online" else "En présentiel"


def client_confirmation(notice: AppointmentNotice, settings: Settings) -> EmailContent:
    e = html.escape
    subject = f"✅ Confirmation de votre rendez-vous - {notice.service}"

    location_line = ""
    if notice.meeting_link:
        location_line = f"🔗 Lien : {notice.meeting_link}\n"
    elif notice.address:
        location_line = f"📍 Adresse : {notice.address}\n"

    text = (
        f"Bonjour {notice.name},\n\n"
        "Votre rendez-vous a été enregistré avec succès !\n\n"
        "📅 Détails de votre consultation :\n"
        f"• Service : {notice.service}\n"
        f"• Date : {notice.date_label}\n"
        f"• Heure : {notice.time}\n"
        f"• Durée : Environ {notice.duration_min} minutes\n"
        f"• Mode : {_mode(notice)}\n"
        f"{location_line}\n"
        f"💬 Message : {notice.message or NO_MESSAGE}\n\n"
        f"Pour consulter ou annuler votre rendez-vous : {notice.manage_url}\n\n"
        "📞 Pour toute question ou modification :\n"
        f"• Email : {settings.BUSINESS_EMAIL}\n"
        f"• Téléphone : {settings.BUSINESS_PHONE}\n\n"
        "Merci de votre confiance !\n\n"
        f"{settings.BUSINESS_OWNER}\n"
        f"{settings.BUSINESS_TITLE}\n"
    )

    rows = [
        ("👤 Client", e(notice.name)),
        ("🛠️ Service", e(notice.service)),
        ("📅 Date", e(notice.date_label)),
        ("🕐 Heure", e(notice.time)),
        ("⏱️ Durée", f"Environ {notice.duration_min} minutes"),
        ("💻 Mode", _mode(notice)),
    ]
    if notice.meeting_link:
        rows.append(("🔗 Lien", f'<a href="{e(notice.meeting_link)}">{e(notice.meeting_link)}</a>'))
    elif notice.address:
        rows.append(("📍 Adresse", e(notice.address)))
    table = "\n".join(
        f'<tr><td style="padding: 10px 0; border-bottom: 1px solid #eee;"><strong>{label} :</strong></td>'
        f'<td style="padding: 10px 0; border-bottom: 1px solid #eee;">{value}</td></tr>'
        for label, value in rows
    )
    message_block = ""
    if notice.message:
        message_block = (
            '<div style="background: white; padding: 25px; border-radius: 8px; margin-bottom: 20px;">'
            '<h3 style="color: #667eea; margin-top: 0;">💬 Votre message</h3>'
            f'<p style="background: #f8f9fa; padding: 15px; border-left: 4px solid #667eea; margin: 0;">{e(notice.message)}</p>'
            "</div>"
        )

    body = f"""<!DOCTYPE html>
<html>
<head><meta charset="utf-8"><title>Confirmation de rendez-vous</title></head>
<body style="font-family: Arial, sans-serif; line-height: 1.6; color: #333; max-width: 600px; margin: 0 auto; padding: 20px;">
  <div style="background: linear-gradient(135deg, #667eea 0%, #764ba2 100%); color: white; padding: 30px; text-align: center; border-radius: 10px 10px 0 0;">
    <h1 style="margin: 0; font-size: 28px;">✅ Rendez-vous enregistré</h1>
    <p style="margin: 10px 0 0 0; opacity: 0.9;">Votre consultation a été réservée avec succès</p>
  </div>
  <div style="background: #f8f9fa; padding: 30px; border-radius: 0 0 10px 10px;">
    <div style="background: white; padding: 25px; border-radius: 8px; margin-bottom: 20px;">
      <h2 style="color: #667eea; margin-top: 0;">📅 Détails de votre consultation</h2>
      <table style="width: 100%; border-collapse: collapse;">
{table}
      </table>
    </div>
    {message_block}
    <div style="background: #e8f5e8; padding: 20px; border-radius: 8px; border-left: 4px solid #28a745; margin-bottom: 20px;">
      <h3 style="color: #28a745; margin-top: 0;">📧 Prochaines étapes</h3>
      <ul style="margin: 0; padding-left: 20px;">
        <li>Vous recevrez un rappel <strong>24h avant</strong> votre consultation</li>
        <li>Préparez vos questions et documents relatifs à votre projet</li>
      </ul>
    </div>
    <div style="text-align: center; padding: 20px;">
      <p><a href="{e(notice.manage_url)}" style="color: #667eea;">Consulter ou annuler mon rendez-vous</a></p>
      <p>
        <strong>Email :</strong> <a href="mailto:{e(settings.BUSINESS_EMAIL)}" style="color: #667eea;">{e(settings.BUSINESS_EMAIL)}</a><br>
        <strong>Téléphone :</strong> {e(settings.BUSINESS_PHONE)}
      </p>
    </div>
  </div>
  <div style="text-align: center; padding: 20px; color: #666; font-size: 12px;">
    <p><strong>{e(settings.BUSINESS_OWNER)}</strong><br>{e(settings.BUSINESS_TITLE)}<br>
    <a href="{e(settings.BUSINESS_WEBSITE)}" style="color: #667eea;">{e(settings.BUSINESS_WEBSITE)}</a></p>
  </div>
</body>
</html>
"""
    return EmailContent(subject=subject, text=text, html=body)


def admin_notification(notice: AppointmentNotice) -> EmailContent:
    e = html.escape
    subject = f"🔔 Nouveau rendez-vous - {notice.name} ({notice.service})"
    text = (
        "NOUVEAU RENDEZ-VOUS RÉSERVÉ\n\n"
        f"👤 Client : {notice.name}\n"
        f"📧 Email : {notice.email}\n"
        f"📞 Téléphone : {notice.phone or NOT_PROVIDED}\n\n"
        f"🛠️ Service : {notice.service}\n"
        f"📅 Date : {notice.date}\n"
        f"🕐 Heure : {notice.time}\n\n"
        "💬 Message du client :\n"
        f"{notice.message or NO_MESSAGE}\n\n"
        "---\n"
        "Notification automatique du système de réservation\n"
    )
    rows = [
        ("Nom", e(notice.name)),
        ("Email", f'<a href="mailto:{e(notice.email)}">{e(notice.email)}</a>'),
        ("Téléphone", e(notice.phone or NOT_PROVIDED)),
        ("Service", e(notice.service)),
        ("Date", e(notice.date)),
        ("Heure", e(notice.time)),
    ]
    table = "\n".join(
        f'<tr><td style="padding: 8px 0; border-bottom: 1px solid #eee;"><strong>{label} :</strong></td>'
        f'<td style="padding: 8px 0; border-bottom: 1px solid #eee;">{value}</td></tr>'
        for label, value in rows
    )
    message_block = ""
    if notice.message:
        message_block = (
            '<h2 style="color: #ff6b6b;">Message du client</h2>'
            f'<div style="background: #f8f9fa; padding: 15px; border-left: 4px solid #ff6b6b;">{e(notice.message)}</div>'
        )
    body = f"""<!DOCTYPE html>
<html>
<head><meta charset="utf-8"><title>Nouveau rendez-vous</title></head>
<body style="font-family: Arial, sans-serif; line-height: 1.6; color: #333; max-width: 600px; margin: 0 auto; padding: 20px;">
  <div style="background: linear-gradient(135deg, #ff6b6b 0%, #ee5a24 100%); color: white; padding: 20px; text-align: center; border-radius: 10px 10px 0 0;">
    <h1 style="margin: 0; font-size: 24px;">🔔 Nouveau Rendez-vous</h1>
  </div>
  <div style="background: #f8f9fa; padding: 20px; border-radius: 0 0 10px 10px;">
    <div style="background: white; padding: 20px; border-radius: 8px;">
      <table style="width: 100%; border-collapse: collapse; margin-bottom: 20px;">
{table}
      </table>
      {message_block}
    </div>
  </div>
  <div style="text-align: center; padding: 15px; color: #666; font-size: 12px;">
    Notification automatique du système de réservation
  </div>
</body>
</html>
"""
    return EmailContent(subject=subject, text=text, html=body)


def calendar_event_html(notice: AppointmentNotice) -> str:
    e = html.escape
    return (
        f"<h3>Consultation avec {e(notice.name)}</h3>"
        f"<p><strong>Service :</strong> {e(notice.service)}</p>"
        f"<p><strong>Email client :</strong> {e(notice.email)}</p>"
        f"<p><strong>Téléphone :</strong> {e(notice.phone or NOT_PROVIDED)}</p>"
        f"<p><strong>Message :</strong></p><p>{e(notice.message or NO_MESSAGE)}</p>"
    )
