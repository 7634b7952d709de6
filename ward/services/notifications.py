"""
Outbound notifications to family members.

The sink is a collaborator with a single ``send(to, subject, body)``
method that raises :class:`~ward.exceptions.NotificationFailure` when
delivery fails.  The default sink sends e-mail through Django's mail
framework; another implementation can be configured with the
``NOTIFICATION_SINK`` setting or passed directly to the service
functions.  Retrying is left to the sink; callers never retry inline.

Any other exception a sink lets escape is treated as a delivery failure
too, so best-effort deliveries never surface an error to the caller and
one failed recipient does not stop the rest of a fan-out.

Fire-and-forget deliveries run in a ``transaction.on_commit`` hook, i.e.
after the row is durable but still inside the request that created it.
The caller never sees their outcome, yet a slow sink still adds to the
response time (bounded by ``EMAIL_TIMEOUT`` for the e-mail sink).  Point
``NOTIFICATION_SINK`` at a sink that hands off to a queue when that
latency matters.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional

from django.conf import settings
from django.core.mail import send_mail
from django.db import transaction
from django.utils.html import format_html, strip_tags
from django.utils.module_loading import import_string

from ward.exceptions import NotificationFailure

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Message:
    subject: str
    body: str


class NotificationSink:
    def send(self, to: str, subject: str, body: str) -> None:
        raise NotImplementedError


class EmailNotificationSink(NotificationSink):
    """Deliver HTML e-mail through the configured Django e-mail backend."""

    def __init__(self, from_email: Optional[str] = None, connection=None):
        self.from_email = from_email or settings.NOTIFICATION_FROM_EMAIL
        self.connection = connection

    def send(self, to: str, subject: str, body: str) -> None:
        if not to:
            raise NotificationFailure('Destinatário sem e-mail cadastrado.')
        try:
            send_mail(
                subject,
                strip_tags(body),
                self.from_email,
                [to],
                html_message=body,
                fail_silently=False,
                connection=self.connection,
            )
        except Exception as e:
            raise NotificationFailure(f'Falha ao enviar e-mail para {to}.') from e
        logger.info('E-mail sent to %s: %s', to, subject)


def get_notification_sink() -> NotificationSink:
    return import_string(settings.NOTIFICATION_SINK)()


# ---------------------------------------------------------------------------
# Message templates
# ---------------------------------------------------------------------------

def association_requested(family_name: str, patient_name: str) -> Message:
    return Message(
        subject=f'[InfoCare] Solicitação registrada para {patient_name}',
        body=format_html(
            'Olá, {}.<br>Sua solicitação de acompanhamento da internação de <b>{}</b> foi registrada '
            'e aguarda aprovação da equipe de saúde.',
            family_name, patient_name,
        ),
    )


def association_approved(family_name: str, patient_name: str) -> Message:
    return Message(
        subject=f'[InfoCare] Acesso aprovado para {patient_name}',
        body=format_html(
            'Olá, {}.<br>Sua solicitação para acompanhar <b>{}</b> foi <b>aprovada</b>. '
            'Você já pode consultar as atualizações da internação.',
            family_name, patient_name,
        ),
    )


def association_rejected(family_name: str, patient_name: str) -> Message:
    return Message(
        subject=f'[InfoCare] Solicitação não aprovada para {patient_name}',
        body=format_html(
            'Olá, {}.<br>Sua solicitação para acompanhar <b>{}</b> foi <b>rejeitada</b> pela equipe de saúde.',
            family_name, patient_name,
        ),
    )


def progress_note_added(family_name: str, patient_name: str) -> Message:
    return Message(
        subject=f'[InfoCare] Nova atualização para {patient_name}',
        body=format_html(
            'Olá, {}.<br>Uma nova evolução foi registrada no prontuário do paciente <b>{}</b>.',
            family_name, patient_name,
        ),
    )


# ---------------------------------------------------------------------------
# Dispatch
# ---------------------------------------------------------------------------

def deliver(sink: NotificationSink, to: str, message: Message) -> None:
    """Send ``message``; any sink error propagates as :class:`NotificationFailure`."""
    try:
        sink.send(to, message.subject, message.body)
    except NotificationFailure:
        raise
    except Exception as e:
        logger.exception('Notification sink %s raised while sending to %s', type(sink).__name__, to)
        raise NotificationFailure(f'Falha ao enviar notificação para {to}.') from e


def deliver_quietly(sink: NotificationSink, to: str, message: Message) -> bool:
    """Send ``message``; a failure is logged and reported as ``False``."""
    try:
        deliver(sink, to, message)
    except NotificationFailure as e:
        logger.warning('Notification to %s not delivered: %s', to, e.message)
        return False
    return True


def deliver_after_commit(sink: NotificationSink, to: str, message: Message) -> None:
    """Queue a fire-and-forget delivery for when the current transaction commits."""
    transaction.on_commit(lambda: deliver_quietly(sink, to, message))
