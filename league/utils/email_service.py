"""
Email Service for the prediction league

Sends transactional emails over SMTP. Delivery is best-effort: failures are
logged and reported as False, never raised to the caller.
"""

import logging
import smtplib
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText

logger = logging.getLogger(__name__)

COMPETITION_LABELS = {
    "league": "the league",
    "last_round_special": "the Last Round Special cup",
}


class EmailService:
    """Handles all email sending functionality"""

    def __init__(self, config):
        self.smtp_server = config.get("MAIL_SERVER") or "localhost"
        self.smtp_port = config.get("MAIL_PORT", 587)
        self.smtp_username = config.get("MAIL_USERNAME")
        self.smtp_password = config.get("MAIL_PASSWORD")
        self.from_email = config.get("FROM_EMAIL") or config.get(
            "MAIL_USERNAME"
        ) or "noreply@prediction-league.local"
        self.from_name = config.get("FROM_NAME", "Prediction League")
        self.use_tls = config.get("MAIL_USE_TLS", True)
        self.timeout = config.get("MAIL_TIMEOUT", 10)

    @property
    def is_configured(self):
        return bool(self.smtp_username and self.smtp_password)

    def _create_message(self, to_email, subject, body_text, body_html=None):
        """Create email message"""
        msg = MIMEMultipart("alternative")
        msg["Subject"] = subject
        msg["From"] = f"{self.from_name} <{self.from_email}>"
        msg["To"] = to_email

        msg.attach(MIMEText(body_text, "plain"))

        if body_html:
            msg.attach(MIMEText(body_html, "html"))

        return msg

    def _send_email(self, message):
        """Send email message"""
        try:
            if not self.is_configured:
                logger.warning("SMTP credentials not configured. Email not sent.")
                return False

            with smtplib.SMTP(
                self.smtp_server, self.smtp_port, timeout=self.timeout
            ) as server:
                if self.use_tls:
                    server.starttls()
                server.login(self.smtp_username, self.smtp_password)
                server.sendmail(self.from_email, [message["To"]], message.as_string())

            logger.info(f"Email sent successfully to {message['To']}")
            return True

        except (smtplib.SMTPException, OSError) as e:
            logger.error(f"Failed to send email to {message['To']}: {str(e)}")
            return False

    def send_winner_congratulations(self, user, season, competition_type, points, is_tied):
        """Congratulate a season winner"""
        competition = COMPETITION_LABELS.get(competition_type, competition_type)
        subject = f"You won {competition} - {season.name}!"

        shared = " (shared with other players on the same score)" if is_tied else ""

        body_text = f"""
        Hi {user.full_name},

        Congratulations! You finished on top of {competition} in {season.name}{shared}
        with {points} points.

        Your name is now in the Hall of Fame.

        Best regards,
        {self.from_name}
        """

        body_html = f"""
        <html>
        <body>
            <h2>Congratulations, {user.full_name}!</h2>
            <p>You finished on top of <strong>{competition}</strong> in
            {season.name}{shared} with <strong>{points}</strong> points.</p>
            <p>Your name is now in the Hall of Fame.</p>
            <p>Best regards,<br>{self.from_name}</p>
        </body>
        </html>
        """

        message = self._create_message(user.email, subject, body_text, body_html)
        return self._send_email(message)
