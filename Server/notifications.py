"""
RoomBook Server - Email Notifications

Best-effort booking emails sent through the SendGrid v3 HTTP API.
Bodies are rendered from the Jinja2 templates in templates/email.

Nothing in this module raises to its caller: a failed send is logged and
reported as False, and the booking that triggered it stands regardless.
"""

import logging
from dataclasses import dataclass, asdict
from pathlib import Path
from typing import List, Optional

import requests
from jinja2 import Environment, FileSystemLoader, select_autoescape

from config import ServerConfig

logger = logging.getLogger(__name__)

SENDGRID_SEND_URL = "https://api.sendgrid.com/v3/mail/send"
SENDGRID_TIMEOUT_SECONDS = 10
FALLBACK_SENDER = "noreply@roombook.com"

script_dir = Path(__file__).parent

# Autoescape: titles and descriptions are user input
templates = Environment(
    loader=FileSystemLoader(str(script_dir / "templates" / "email")),
    autoescape=select_autoescape(["html"])
)


@dataclass
class BookingEmailData:
    """Everything the booking email templates need"""
    title: str
    room_name: str
    date: str
    start_time: str
    end_time: str
    organizer_name: str
    organizer_email: str
    description: Optional[str] = None


def _Send(config: ServerConfig, recipients: List[str], sender: str, subject: str, html: str) -> bool:
    """
    Post one message per recipient to SendGrid

    Returns:
        bool: True if SendGrid accepted the request (or no API key is configured)
    """
    if not config.sendgrid_api_key:
        logger.info(f"SendGrid not configured. '{subject}' would be sent to: {', '.join(recipients)}")
        return True

    payload = {
        "personalizations": [{"to": [{"email": recipient}]} for recipient in recipients],
        "from": {"email": config.mail_from or sender},
        "reply_to": {"email": sender},
        "subject": subject,
        "content": [{"type": "text/html", "value": html}],
    }

    try:
        response = requests.post(
            SENDGRID_SEND_URL,
            json=payload,
            headers={"Authorization": f"Bearer {config.sendgrid_api_key}"},
            timeout=SENDGRID_TIMEOUT_SECONDS
        )
    except requests.exceptions.RequestException as e:
        logger.error(f"Failed to send '{subject}': {e}")
        return False

    if response.status_code >= 300:
        logger.error(f"SendGrid rejected '{subject}' with status {response.status_code}: {response.text}")
        return False

    logger.info(f"Sent '{subject}' to {len(recipients)} recipient(s)")
    return True


def SendBookingInvites(config: ServerConfig, attendees: List[str], booking_data: BookingEmailData) -> bool:
    """
    Email a meeting invitation to each attendee

    Args:
        config: Server configuration (SendGrid key, sender)
        attendees: Attendee email addresses
        booking_data: Booking details for the template

    Returns:
        bool: True if the invitations were accepted for delivery
    """
    if not attendees:
        return True

    try:
        html = templates.get_template("booking_invite.html").render(**asdict(booking_data))
    except Exception as e:
        logger.error(f"Failed to render invitation email: {e}")
        return False

    return _Send(
        config,
        attendees,
        booking_data.organizer_email,
        f"Meeting Invitation: {booking_data.title}",
        html
    )


def SendBookingConfirmation(config: ServerConfig, organizer_email: str, booking_data: BookingEmailData) -> bool:
    """
    Email a booking confirmation to the organizer

    Returns:
        bool: True if the confirmation was accepted for delivery
    """
    try:
        html = templates.get_template("booking_confirmation.html").render(**asdict(booking_data))
    except Exception as e:
        logger.error(f"Failed to render confirmation email: {e}")
        return False

    return _Send(
        config,
        [organizer_email],
        organizer_email,
        f"Booking Confirmed: {booking_data.title}",
        html
    )


def DispatchBookingNotifications(config: ServerConfig, booking_data: BookingEmailData,
                                 attendees: List[str], organizer_email: str) -> None:
    """
    Send invitations and the organizer confirmation for a new booking.
    Runs as a background task after the booking has been committed.
    """
    try:
        invites_sent = SendBookingInvites(config, attendees, booking_data)
        confirmation_sent = SendBookingConfirmation(config, organizer_email, booking_data)
    except Exception as e:
        logger.error(f"Failed to send notifications for booking '{booking_data.title}': {e}")
        return

    if not (invites_sent and confirmation_sent):
        logger.warning(f"Some notifications for booking '{booking_data.title}' were not delivered")
