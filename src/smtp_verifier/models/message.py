"""Probe message construction."""

from email.message import EmailMessage
from email.utils import formatdate, make_msgid

DEFAULT_SENDER = "smtp-verifier@localhost"


def build_probe_message(
    sender: str,
    recipient: str | None = None,
    subject: str = "test",
    body: str = "Hi!",
) -> EmailMessage:
    """Build the plain-text message used to verify a transport.

    The recipient defaults to the sender, so a mailbox sends to itself.
    An empty sender falls back to DEFAULT_SENDER.
    """
    sender = sender or DEFAULT_SENDER
    msg = EmailMessage()
    msg["From"] = sender
    msg["To"] = recipient or sender
    msg["Subject"] = subject
    msg["Date"] = formatdate(localtime=True)
    domain = sender.split("@", 1)[1] if "@" in sender else None
    msg["Message-ID"] = make_msgid(domain=domain)
    msg.set_content(body)
    return msg
