"""
Email Service using Resend

Sends the school's transactional emails: application receipt, application
status updates and replies to contact messages.

Sending is best effort. Callers get a bool back and never an exception, so a
mail outage can't fail a submission that is already committed.
"""

import asyncio
import logging
from datetime import UTC, datetime
from html import escape

import resend

from backoffice.core.config import settings

logger = logging.getLogger(__name__)

SCHOOL_NAME = "École Saint Pierre Claver"
ADMISSIONS_EMAIL = "admissions@stpierreclaver.edu.gh"
CONTACT_EMAIL = "contact@stpierreclaver.edu.gh"

STATUS_MESSAGES = {
    "submitted": "Your application has been received and is waiting to be reviewed.",
    "under_review": "Your application is currently being reviewed by our admissions team.",
    "accepted": "Congratulations! Your application has been accepted. "
    "We will contact you with enrolment details.",
    "rejected": "We regret to inform you that we are unable to offer a place at this time.",
    "waiting_list": "Your application has been placed on our waiting list. "
    "We will contact you if a place becomes available.",
}


async def send_email(
    to_email: str,
    subject: str,
    html_content: str,
) -> bool:
    """
    Send an email using Resend.

    Args:
        to_email: Recipient email address
        subject: Email subject line
        html_content: HTML content of the email

    Returns:
        True if email was sent (or logged, when no API key is configured)
    """
    if not settings.resend_api_key:
        logger.warning("RESEND_API_KEY not set - logging email instead of sending")
        logger.info(f"EMAIL TO: {to_email} | SUBJECT: {subject}")
        return True

    resend.api_key = settings.resend_api_key

    try:
        params: resend.Emails.SendParams = {
            "from": settings.email_from,
            "to": [to_email],
            "subject": subject,
            "html": html_content,
        }

        # Run sync Resend call in thread pool to avoid blocking event loop
        email = await asyncio.to_thread(resend.Emails.send, params)
        logger.info(f"Email sent successfully to {to_email}, id: {email['id']}")
        return True
    except Exception as e:
        logger.error(f"Failed to send email to {to_email}: {e}")
        return False


def _layout(title: str, body: str) -> str:
    year = datetime.now(UTC).year
    return f"""
    <!DOCTYPE html>
    <html>
    <head>
        <style>
            body {{ font-family: Arial, sans-serif; line-height: 1.6; color: #333; }}
            .container {{ max-width: 600px; margin: 0 auto; padding: 20px; }}
            .header {{ background: #8B4513; color: white; padding: 20px; text-align: center; }}
            .content {{ background: #f9f9f9; padding: 20px; }}
            .highlight {{ background: white; padding: 15px; margin: 20px 0; border-left: 4px solid #8B4513; }}
            .footer {{ background: #ddd; padding: 10px; text-align: center; font-size: 12px; }}
        </style>
    </head>
    <body>
        <div class="container">
            <div class="header">
                <h1>{SCHOOL_NAME}</h1>
                <p>{title}</p>
            </div>
            <div class="content">
                {body}
            </div>
            <div class="footer">
                <p>&copy; {year} {SCHOOL_NAME}. All rights reserved.</p>
            </div>
        </div>
    </body>
    </html>
    """


async def send_application_confirmation(
    to_email: str,
    student_name: str,
    application_number: str,
    submitted_at: datetime,
) -> bool:
    """Send the application receipt to the parent or guardian."""
    safe_student_name = escape(student_name)
    safe_number = escape(application_number)

    body = f"""
        <h2>Dear Parent/Guardian,</h2>
        <p>Thank you for submitting the application for <strong>{safe_student_name}</strong>.</p>
        <p>Your application has been received and will be reviewed by our admissions team.</p>

        <div class="highlight">
            <p><strong>Application Number:</strong> {safe_number}</p>
            <p><strong>Date Submitted:</strong> {submitted_at:%d %B %Y}</p>
        </div>

        <p><strong>What happens next?</strong></p>
        <ul>
            <li>Our admissions team will review your application</li>
            <li>You may be contacted for additional information</li>
            <li>We will notify you of the decision via email</li>
            <li>The review process typically takes 5-7 business days</li>
        </ul>

        <p>If you have any questions, please contact our admissions office at
        <a href="mailto:{ADMISSIONS_EMAIL}">{ADMISSIONS_EMAIL}</a></p>
    """

    return await send_email(
        to_email=to_email,
        subject=f"Application Received - {SCHOOL_NAME}",
        html_content=_layout("Application Received", body),
    )


async def send_application_status_update(
    to_email: str,
    student_name: str,
    application_number: str,
    status: str,
) -> bool:
    """Tell the parent that the application status changed."""
    safe_student_name = escape(student_name)
    safe_number = escape(application_number)
    status_message = STATUS_MESSAGES.get(status, "Your application status has been updated.")

    body = f"""
        <h2>Dear Parent/Guardian,</h2>
        <p>There is an update on the application for <strong>{safe_student_name}</strong>.</p>

        <div class="highlight">
            <p><strong>Application Number:</strong> {safe_number}</p>
            <p><strong>Status:</strong> {escape(status.replace("_", " ").title())}</p>
            <p>{status_message}</p>
        </div>

        <p>If you have any questions, please contact our admissions office at
        <a href="mailto:{ADMISSIONS_EMAIL}">{ADMISSIONS_EMAIL}</a></p>
    """

    return await send_email(
        to_email=to_email,
        subject=f"Application Update - {safe_number}",
        html_content=_layout("Application Update", body),
    )


async def send_message_reply(
    to_email: str,
    original_subject: str,
    reply_message: str,
    staff_name: str,
) -> bool:
    """Send a staff reply to a contact message."""
    safe_reply = escape(reply_message).replace("\n", "<br>")
    safe_staff_name = escape(staff_name)

    body = f"""
        <p>Thank you for contacting {SCHOOL_NAME}.</p>

        <div class="highlight">
            <p><strong>Response from {safe_staff_name}:</strong></p>
            <p>{safe_reply}</p>
        </div>

        <p>If you have any further questions, please don't hesitate to contact us.</p>

        <p>Best regards,<br>
        The Administration Team<br>
        {SCHOOL_NAME}<br>
        <a href="mailto:{CONTACT_EMAIL}">{CONTACT_EMAIL}</a></p>
    """

    return await send_email(
        to_email=to_email,
        subject=f"Re: {original_subject}",
        html_content=_layout("Response to Your Inquiry", body),
    )
