"""
Verification message composition shared by the dispatch adapters.

The expiry notice quotes TOKEN_TTL_MINUTES, the same constant the token
issuer uses for expires_at.
"""

from dataclasses import dataclass
from email.message import EmailMessage
from urllib.parse import urlencode

from src.domain.models import TOKEN_TTL_MINUTES

SUBJECT = "[InhaEval] Please confirm your email address"


@dataclass(frozen=True)
class VerificationMessage:
    """Rendered verification email."""

    to_email: str
    subject: str
    verify_url: str
    text: str
    html: str

    def to_email_message(self, from_address: str) -> EmailMessage:
        message = EmailMessage()
        message["Subject"] = self.subject
        message["From"] = from_address
        message["To"] = self.to_email
        message.set_content(self.text)
        message.add_alternative(self.html, subtype="html")
        return message


def build_verify_url(base_url: str, token: str) -> str:
    """Return ``<base>/verify?token=<token>``."""
    return f"{base_url.rstrip('/')}/verify?{urlencode({'token': token})}"


def compose_verification_message(to_email: str, token: str, base_url: str) -> VerificationMessage:
    verify_url = build_verify_url(base_url, token)
    expiry_notice = f"This link expires in {TOKEN_TTL_MINUTES} minutes."
    text = (
        "InhaEval email verification\n\n"
        "Open the link below to confirm your email address:\n"
        f"{verify_url}\n\n"
        f"{expiry_notice}\n"
    )
    html = (
        "<h2>InhaEval email verification</h2>"
        "<p>Click the button below to confirm your email address.</p>"
        f"<a href='{verify_url}' style='padding:10px 20px; background:#0055A4; "
        "color:white; text-decoration:none; border-radius:5px;'>Verify email</a>"
        f"<p>{expiry_notice}</p>"
    )
    return VerificationMessage(
        to_email=to_email,
        subject=SUBJECT,
        verify_url=verify_url,
        text=text,
        html=html,
    )
