"""
Email Service for GollisConnect
===============================
Transactional emails sent over SMTP (Mailgun relay by default):
- Welcome email on registration
- Grade posted notifications
- Payment receipts
- Password reset links

Every send returns True/False and never raises; callers decide whether
to retry.
"""

import aiosmtplib
from email.mime.text import MIMEText
from email.mime.multipart import MIMEMultipart
from typing import Optional
from datetime import datetime

from gollisconnect.core.config import settings
from gollisconnect.core.logging_config import logger


BASE_STYLE = """
    body { font-family: -apple-system, BlinkMacSystemFont, 'Segoe UI', Roboto, sans-serif; line-height: 1.6; color: #333; }
    .container { max-width: 600px; margin: 0 auto; padding: 20px; }
    .header { background: #1e3a8a; color: white; padding: 30px; text-align: center; border-radius: 10px 10px 0 0; }
    .content { background: #f9fafb; padding: 30px; border-radius: 0 0 10px 10px; }
    .button { display: inline-block; background: #1e3a8a; color: white; padding: 14px 28px; text-decoration: none; border-radius: 8px; font-weight: 600; margin: 20px 0; }
    .details { background: white; border: 1px solid #e5e7eb; padding: 15px; border-radius: 8px; margin: 20px 0; }
    .footer { text-align: center; margin-top: 30px; font-size: 12px; color: #6b7280; }
"""


def render_email(title: str, body_html: str) -> str:
    """Wrap a body fragment in the shared GollisConnect layout"""
    return f"""
    <!DOCTYPE html>
    <html>
    <head>
        <style>{BASE_STYLE}</style>
    </head>
    <body>
        <div class="container">
            <div class="header">
                <h1>{title}</h1>
            </div>
            <div class="content">
                {body_html}
            </div>
            <div class="footer">
                <p>&copy; {datetime.utcnow().year} Gollis University. All rights reserved.</p>
            </div>
        </div>
    </body>
    </html>
    """


class EmailService:
    """Async email service using SMTP"""

    def __init__(self):
        self.smtp_host = settings.SMTP_HOST
        self.smtp_port = settings.SMTP_PORT
        self.smtp_user = settings.SMTP_USER
        self.smtp_password = settings.SMTP_PASSWORD
        self.from_email = settings.EMAIL_FROM
        self.from_name = settings.EMAIL_FROM_NAME

    @property
    def is_configured(self) -> bool:
        """Check if email service is properly configured"""
        return bool(self.smtp_user and self.smtp_password)

    async def send_email(
        self,
        to_email: str,
        subject: str,
        html_content: str,
        text_content: Optional[str] = None
    ) -> bool:
        """
        Send an email asynchronously.

        Returns True if successful, False otherwise.
        """
        if not self.is_configured:
            logger.warning("[Email] Email service not configured, skipping email send")
            return False

        try:
            message = MIMEMultipart("alternative")
            message["From"] = f"{self.from_name} <{self.from_email}>"
            message["To"] = to_email
            message["Subject"] = subject

            # Plain text first so HTML is the preferred part
            if text_content:
                message.attach(MIMEText(text_content, "plain"))
            message.attach(MIMEText(html_content, "html"))

            await aiosmtplib.send(
                message,
                hostname=self.smtp_host,
                port=self.smtp_port,
                username=self.smtp_user,
                password=self.smtp_password,
                start_tls=True
            )

            logger.info(f"[Email/SMTP] Successfully sent email to {to_email}: {subject}")
            return True

        except Exception as e:
            logger.error(f"[Email/SMTP] Failed to send email to {to_email}: {e}")
            return False

    async def send_welcome_email(self, to_email: str, first_name: str) -> bool:
        subject = "Welcome to GollisConnect!"
        dashboard_link = settings.get_dashboard_url("")

        html_content = render_email("Welcome to GollisConnect", f"""
            <p>Hi {first_name},</p>
            <p>Your GollisConnect account is ready. From your dashboard you can follow your
            courses, check your grades and pay your tuition.</p>
            <p style="text-align: center;">
                <a href="{dashboard_link}" class="button">Open Dashboard</a>
            </p>
        """)

        text_content = f"""
        Welcome to GollisConnect!

        Hi {first_name},

        Your GollisConnect account is ready. Visit {dashboard_link} to get started.

        - Gollis University
        """

        return await self.send_email(to_email, subject, html_content, text_content)

    async def send_grade_posted_email(
        self,
        to_email: str,
        first_name: str,
        course_name: str,
        course_code: str,
        grade: str,
        semester: str,
        academic_year: str
    ) -> bool:
        """Tell a student that a grade was posted or changed"""
        subject = f"New Grade Posted: {course_name}"
        grades_link = settings.get_dashboard_url("grades")

        html_content = render_email("New Grade Posted", f"""
            <p>Hi {first_name},</p>
            <p>A grade has been posted for one of your courses.</p>
            <div class="details">
                <p><strong>Course:</strong> {course_code} - {course_name}</p>
                <p><strong>Grade:</strong> {grade}</p>
                <p><strong>Term:</strong> {semester} {academic_year}</p>
            </div>
            <p style="text-align: center;">
                <a href="{grades_link}" class="button">View Grades</a>
            </p>
        """)

        text_content = f"""
        New Grade Posted

        Hi {first_name},

        Course: {course_code} - {course_name}
        Grade: {grade}
        Term: {semester} {academic_year}

        View all your grades at {grades_link}
        """

        return await self.send_email(to_email, subject, html_content, text_content)

    async def send_payment_receipt_email(
        self,
        to_email: str,
        first_name: str,
        amount: float,
        transaction_id: str,
        payment_method: str,
        semester: str,
        academic_year: str,
        payment_date: Optional[datetime] = None
    ) -> bool:
        subject = "Payment Receipt - Gollis University"
        payments_link = settings.get_dashboard_url("payments")
        paid_on = (payment_date or datetime.utcnow()).strftime("%B %d, %Y")

        html_content = render_email("Payment Receipt", f"""
            <p>Hi {first_name},</p>
            <p>Thank you. Your tuition payment has been received.</p>
            <div class="details">
                <p><strong>Amount:</strong> ${amount:,.2f}</p>
                <p><strong>Transaction ID:</strong> {transaction_id}</p>
                <p><strong>Payment Method:</strong> {payment_method}</p>
                <p><strong>Term:</strong> {semester} {academic_year}</p>
                <p><strong>Date:</strong> {paid_on}</p>
            </div>
            <p style="text-align: center;">
                <a href="{payments_link}" class="button">View Payment History</a>
            </p>
        """)

        text_content = f"""
        Payment Receipt - Gollis University

        Hi {first_name},

        Amount: ${amount:,.2f}
        Transaction ID: {transaction_id}
        Payment Method: {payment_method}
        Term: {semester} {academic_year}
        Date: {paid_on}

        View your payment history at {payments_link}
        """

        return await self.send_email(to_email, subject, html_content, text_content)

    async def send_password_reset_email(
        self,
        to_email: str,
        first_name: str,
        reset_token: str
    ) -> bool:
        """Send password reset link"""
        subject = "Password Reset - GollisConnect"
        reset_link = settings.get_password_reset_url(reset_token)
        expires_in = settings.PASSWORD_RESET_EXPIRE_MINUTES

        html_content = render_email("Password Reset Request", f"""
            <p>Hi {first_name or 'there'},</p>
            <p>We received a request to reset your password. Click the button below to choose a new one:</p>
            <p style="text-align: center;">
                <a href="{reset_link}" class="button">Reset Password</a>
            </p>
            <div class="details">
                This link expires in {expires_in} minutes. If you didn't request a reset,
                ignore this email and your password will stay unchanged.
            </div>
        """)

        text_content = f"""
        Password Reset Request

        Hi {first_name or 'there'},

        Reset your password using the link below:

        {reset_link}

        This link expires in {expires_in} minutes.
        """

        return await self.send_email(to_email, subject, html_content, text_content)


# Singleton instance
email_service = EmailService()
