# petcare/notifications.py
"""
Avisos por email al crear una reserva: uno al operador y otro al cliente.

Son best-effort: cada fallo queda registrado en un NotificationOutcome y en
el log, nunca se propaga a quien creó la reserva.
"""
import asyncio
import html
import logging
import smtplib
from dataclasses import dataclass, field
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from typing import Any, Dict, List, Optional, Protocol, Sequence

from .config import Settings
from .scheduling import end_of
from .schemas.booking import Booking

logger = logging.getLogger(__name__)


@dataclass
class BookingContext:
    booking: Booking
    customer: Dict[str, Any] = field(default_factory=dict)
    pet: Dict[str, Any] = field(default_factory=dict)
    service: Dict[str, Any] = field(default_factory=dict)


@dataclass
class NotificationOutcome:
    channel: str
    delivered: bool
    error: Optional[str] = None


class Notifier(Protocol):
    channel: str

    async def notify(self, context: BookingContext) -> None: ...


def _fmt_when(booking: Booking) -> tuple[str, str]:
    start = booking.start_time
    end = end_of(start, booking.duration)
    date_str = start.strftime("%A, %B %d, %Y")
    time_str = f"{start.strftime('%I:%M %p')} - {end.strftime('%I:%M %p')} (UTC)"
    return date_str, time_str


def _esc_or_default(value: Any) -> str:
    if value in (None, ""):
        return "No indicado"
    return html.escape(str(value))


def build_operator_html(ctx: BookingContext) -> str:
    b, c, p, s = ctx.booking, ctx.customer, ctx.pet, ctx.service
    date_str, time_str = _fmt_when(b)
    esc = _esc_or_default
    extra = ""
    if b.special_requests or b.notes:
        extra = f"""
        <h3>Información adicional</h3>
        <p><strong>Peticiones especiales:</strong> {esc(b.special_requests)}</p>
        <p><strong>Notas:</strong> {esc(b.notes)}</p>"""
    return f"""
<div style="font-family:'Segoe UI',Tahoma,sans-serif;max-width:650px;margin:0 auto;color:#333;">
  <h1 style="background:#4CAF50;color:#fff;padding:20px;margin:0;">Nueva reserva</h1>
  <h2>{esc(s.get("name"))}</h2>
  <p><strong>Fecha:</strong> {date_str}</p>
  <p><strong>Hora:</strong> {time_str}</p>
  <p><strong>Duración:</strong> {b.duration} minutos</p>
  <p><strong>Total:</strong> ${b.total_price:.2f} &middot; <strong>Estado:</strong> {b.status.value}</p>
  <h3>Cliente</h3>
  <p>{esc(c.get("name"))} &middot; {esc(c.get("email"))} &middot; {esc(c.get("phone"))}</p>
  <h3>Mascota</h3>
  <p>{esc(p.get("name"))} ({esc(p.get("species"))}, {esc(p.get("breed"))})</p>{extra}
  <p style="color:#888;font-size:12px;">Reserva {b.id}</p>
</div>
"""


def build_customer_html(ctx: BookingContext) -> str:
    b, c, p, s = ctx.booking, ctx.customer, ctx.pet, ctx.service
    date_str, time_str = _fmt_when(b)
    return f"""
<div style="font-family:'Segoe UI',Tahoma,sans-serif;max-width:650px;margin:0 auto;color:#333;">
  <h1 style="background:#4CAF50;color:#fff;padding:20px;margin:0;">Reserva recibida</h1>
  <p>Hola {html.escape(c.get("name") or "")}, hemos recibido tu reserva para {html.escape(p.get("name") or "tu mascota")}.</p>
  <p><strong>Servicio:</strong> {html.escape(s.get("name") or "")}</p>
  <p><strong>Fecha:</strong> {date_str}</p>
  <p><strong>Hora:</strong> {time_str}</p>
  <p><strong>Total:</strong> ${b.total_price:.2f}</p>
  <p>Puedes cancelarla sin coste hasta 2 horas antes de la cita.</p>
</div>
"""


class SmtpMailer:
    """Envío SMTP bloqueante; se ejecuta en un hilo desde los notifiers."""

    def __init__(self, settings: Settings):
        self.settings = settings

    @property
    def enabled(self) -> bool:
        return self.settings.email_enabled

    def send(self, to_email: str, subject: str, html_body: str) -> None:
        st = self.settings
        msg = MIMEMultipart("alternative")
        msg["Subject"] = subject
        msg["From"] = f"{st.email_from_name} <{st.email_from}>"
        msg["To"] = to_email
        msg.attach(MIMEText(html_body, "html", "utf-8"))
        with smtplib.SMTP(st.smtp_host, st.smtp_port, timeout=30) as server:
            server.starttls()
            server.login(st.smtp_user, st.smtp_password)
            server.sendmail(st.email_from, [to_email], msg.as_string())
        logger.info("Email enviado a %s", to_email)


class OperatorEmailNotifier:
    channel = "operator"

    def __init__(self, mailer: SmtpMailer, operator_email: str):
        self.mailer = mailer
        self.operator_email = operator_email

    async def notify(self, context: BookingContext) -> None:
        if not self.mailer.enabled or not self.operator_email:
            logger.debug("Email al operador deshabilitado, no se envía")
            return
        subject = f"Nueva reserva: {context.service.get('name', '')} - {context.pet.get('name', '')}"
        await asyncio.to_thread(
            self.mailer.send, self.operator_email, subject, build_operator_html(context)
        )


class CustomerEmailNotifier:
    channel = "customer"

    def __init__(self, mailer: SmtpMailer):
        self.mailer = mailer

    async def notify(self, context: BookingContext) -> None:
        to_email = context.customer.get("email")
        if not self.mailer.enabled or not to_email:
            logger.debug("Email al cliente deshabilitado o sin dirección, no se envía")
            return
        subject = f"Confirmación de reserva - {context.service.get('name', '')}"
        await asyncio.to_thread(self.mailer.send, to_email, subject, build_customer_html(context))


def email_notifiers(settings: Settings) -> List[Notifier]:
    mailer = SmtpMailer(settings)
    return [OperatorEmailNotifier(mailer, settings.operator_email), CustomerEmailNotifier(mailer)]


async def dispatch(notifiers: Sequence[Notifier], context: BookingContext) -> List[NotificationOutcome]:
    """Lanza todos los avisos a la vez; los fallos se registran y se devuelven."""
    results = await asyncio.gather(
        *(n.notify(context) for n in notifiers), return_exceptions=True
    )
    outcomes: List[NotificationOutcome] = []
    for notifier, result in zip(notifiers, results):
        if isinstance(result, Exception):
            logger.error(
                "Fallo al notificar (%s) la reserva %s: %s",
                notifier.channel, context.booking.id, result, exc_info=result,
            )
            outcomes.append(NotificationOutcome(notifier.channel, False, str(result) or type(result).__name__))
        elif isinstance(result, BaseException):
            raise result
        else:
            outcomes.append(NotificationOutcome(notifier.channel, True))
    return outcomes
