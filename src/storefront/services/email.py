"""Email delivery for verification codes."""

import logging
from abc import ABC, abstractmethod
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText

import aiosmtplib
import httpx

from storefront.config import settings
from storefront.services.resilience import CircuitBreaker, CircuitOpenError, with_retry

logger = logging.getLogger(__name__)


class EmailDeliveryError(Exception):
    """Raised when an email could not be delivered."""

    pass


class EmailBackend(ABC):
    """Abstract base class for email backends."""

    @abstractmethod
    async def send(
        self,
        to: str,
        subject: str,
        text: str,
        html: str | None = None,
    ) -> bool:
        """Send an email.

        Args:
            to: Recipient email address
            subject: Email subject
            text: Plain text content
            html: Optional HTML alternative

        Returns:
            True if sent successfully
        """
        pass


class ConsoleEmailBackend(EmailBackend):
    """Email backend that logs to console (for development)."""

    async def send(
        self,
        to: str,
        subject: str,
        text: str,
        html: str | None = None,
    ) -> bool:
        """Log email to console instead of sending."""
        logger.info(
            f"\n{'='*60}\n"
            f"EMAIL (console backend - not sent)\n"
            f"{'='*60}\n"
            f"To: {to}\n"
            f"Subject: {subject}\n"
            f"{'='*60}\n"
            f"{text}\n"
            f"{'='*60}\n"
        )
        return True


class SMTPEmailBackend(EmailBackend):
    """Email backend using SMTP."""

    def __init__(
        self,
        host: str,
        port: int,
        username: str,
        password: str,
        use_tls: bool = True,
        from_address: str = "",
        retry_attempts: int = 3,
        retry_wait: float = 1.0,
    ):
        self.host = host
        self.port = port
        self.username = username
        self.password = password
        self.use_tls = use_tls
        self.from_address = from_address
        self.retry_attempts = retry_attempts
        self.retry_wait = retry_wait

    async def send(
        self,
        to: str,
        subject: str,
        text: str,
        html: str | None = None,
    ) -> bool:
        """Send email via SMTP, retrying transient connection failures."""
        message = MIMEMultipart("alternative")
        message["From"] = self.from_address
        message["To"] = to
        message["Subject"] = subject
        message.attach(MIMEText(text, "plain"))
        if html:
            message.attach(MIMEText(html, "html"))

        try:
            await with_retry(
                aiosmtplib.send,
                message,
                hostname=self.host,
                port=self.port,
                username=self.username or None,
                password=self.password or None,
                start_tls=self.use_tls,
                max_attempts=self.retry_attempts,
                min_wait=self.retry_wait,
                max_wait=self.retry_wait * 10,
            )
            logger.info(f"Email sent via SMTP to {to}")
            return True
        except Exception as e:
            logger.error(f"Failed to send email via SMTP to {to}: {e}")
            return False


class ResendEmailBackend(EmailBackend):
    """Email backend using Resend API."""

    def __init__(
        self,
        api_key: str,
        from_address: str,
        retry_attempts: int = 3,
        retry_wait: float = 1.0,
    ):
        self.api_key = api_key
        self.from_address = from_address
        self.retry_attempts = retry_attempts
        self.retry_wait = retry_wait

    async def _post(self, client: httpx.AsyncClient, payload: dict) -> httpx.Response:
        response = await client.post(
            "https://api.resend.com/emails",
            headers={
                "Authorization": f"Bearer {self.api_key}",
                "Content-Type": "application/json",
            },
            json=payload,
            timeout=30.0,
        )
        response.raise_for_status()
        return response

    async def send(
        self,
        to: str,
        subject: str,
        text: str,
        html: str | None = None,
    ) -> bool:
        """Send email via Resend API."""
        payload = {
            "from": self.from_address,
            "to": [to],
            "subject": subject,
            "text": text,
        }
        if html:
            payload["html"] = html

        async with httpx.AsyncClient() as client:
            try:
                await with_retry(
                    self._post,
                    client,
                    payload,
                    max_attempts=self.retry_attempts,
                    min_wait=self.retry_wait,
                    max_wait=self.retry_wait * 10,
                )
                logger.info(f"Email sent via Resend to {to}")
                return True
            except httpx.HTTPStatusError as e:
                logger.error(f"Resend API error: {e.response.status_code} - {e.response.text}")
                return False
            except Exception as e:
                logger.error(f"Failed to send email via Resend to {to}: {e}")
                return False


def get_email_backend() -> EmailBackend:
    """Get the configured email backend."""
    if settings.email_backend == "console":
        return ConsoleEmailBackend()
    elif settings.email_backend == "smtp":
        return SMTPEmailBackend(
            host=settings.smtp_host,
            port=settings.smtp_port,
            username=settings.smtp_username,
            password=settings.smtp_password,
            use_tls=settings.smtp_use_tls,
            from_address=settings.email_from,
            retry_attempts=settings.email_retry_attempts,
        )
    elif settings.email_backend == "resend":
        return ResendEmailBackend(
            api_key=settings.resend_api_key,
            from_address=settings.email_from,
            retry_attempts=settings.email_retry_attempts,
        )
    else:
        raise ValueError(f"Unknown email backend: {settings.email_backend}")


class EmailService:
    """High-level email service; this is the notifier used by the workflows."""

    def __init__(
        self,
        backend: EmailBackend | None = None,
        circuit: CircuitBreaker | None = None,
    ):
        self._backend = backend
        self.circuit = circuit or CircuitBreaker(name="email")

    @property
    def backend(self) -> EmailBackend:
        """Lazy-load the backend."""
        if self._backend is None:
            self._backend = get_email_backend()
        return self._backend

    async def _deliver(self, to: str, subject: str, text: str) -> None:
        if not await self.backend.send(to=to, subject=subject, text=text):
            raise EmailDeliveryError(f"Delivery to {to} failed")

    async def send_verification_code(self, to: str, code: str) -> None:
        """Send a verification code as a plain-text message.

        Raises:
            EmailDeliveryError: If the backend failed or the circuit is open
        """
        minutes = settings.verification_code_ttl_seconds // 60
        subject = "Verification code"
        text = f"Your verification code is: {code}. It expires in {minutes} minutes."

        try:
            await self.circuit.call(self._deliver, to, subject, text)
        except CircuitOpenError as e:
            raise EmailDeliveryError(str(e)) from e


# Global email service instance
email_service = EmailService()
