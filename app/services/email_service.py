# Platform-wide transactional email
import os
import html
import resend
from typing import Dict, List, Optional
from dotenv import load_dotenv

from ..utils.format_utils import format_price

load_dotenv()


def _layout(title: str, body: str) -> str:
    return f"""
        <!DOCTYPE html>
        <html>
        <head>
            <meta charset="UTF-8">
            <meta name="viewport" content="width=device-width, initial-scale=1.0">
        </head>
        <body style="margin: 0; padding: 0; font-family: 'Segoe UI', Arial, sans-serif; background-color: #111827;">
            <table width="100%" cellpadding="0" cellspacing="0" style="background-color: #111827; padding: 30px 20px;">
                <tr>
                    <td align="center">
                        <table width="600" cellpadding="0" cellspacing="0" style="background-color: #ffffff; border-radius: 16px; overflow: hidden;">
                            <tr>
                                <td style="background-color: #000000; padding: 35px 40px; text-align: center;">
                                    <h1 style="color: #00f0ff; margin: 0; font-size: 30px; letter-spacing: 3px;">BookMe</h1>
                                    <h2 style="color: #ffffff; margin: 12px 0 0 0; font-size: 22px;">{html.escape(title)}</h2>
                                </td>
                            </tr>
                            <tr>
                                <td style="padding: 35px 40px; color: #2d3748; font-size: 16px; line-height: 1.6;">
                                    {body}
                                </td>
                            </tr>
                            <tr>
                                <td style="background-color: #f7f7f7; padding: 20px; text-align: center; color: #718096; font-size: 12px;">
                                    This is an automated message from BookMe.
                                </td>
                            </tr>
                        </table>
                    </td>
                </tr>
            </table>
        </body>
        </html>
    """


def _details_table(rows: List[tuple]) -> str:
    cells = "".join(
        f"<tr><td style='padding: 6px 12px; color: #718096;'>{html.escape(str(label))}</td>"
        f"<td style='padding: 6px 12px;'><strong>{html.escape(str(value))}</strong></td></tr>"
        for label, value in rows
        if value not in (None, "")
    )
    return f"<table cellpadding='0' cellspacing='0' style='margin: 20px 0;'>{cells}</table>"


class EmailService:
    """
    Centralized email service using Resend
    """

    def __init__(self):
        """Initialize Resend with API key"""
        self.from_email = os.getenv("RESEND_FROM_EMAIL", "BookMe <onboarding@resend.dev>")
        self.frontend_url = os.getenv("APP_URL", "http://localhost:3000")
        self.api_key = os.getenv("RESEND_API_KEY")

        if os.getenv("TESTING") == "True" or not self.api_key:
            self.disabled = True
            print("⚠️ EmailService running without RESEND_API_KEY, emails are skipped")
            return

        self.disabled = False
        resend.api_key = self.api_key

    def send_email(
        self, to: str, subject: str, html_content: str, reply_to: Optional[str] = None
    ) -> Dict:
        """
        Send a single email

        Returns:
            Dict with 'success' boolean and 'message' or 'error'
        """
        if not to:
            return {"success": False, "error": "Missing recipient"}
        if self.disabled:
            return {"success": False, "error": "Email service is not configured"}

        try:
            params = {
                "from": self.from_email,
                "to": [to],
                "subject": subject,
                "html": html_content,
            }
            if reply_to:
                params["reply_to"] = reply_to

            email_response = resend.Emails.send(params)

            return {
                "success": True,
                "message": "Email sent successfully",
                "email_id": email_response.get("id"),
            }

        except Exception as e:
            print(f"Failed to send email to {to}: {e}")
            return {"success": False, "error": str(e)}

    def send_appointment_confirmation(
        self, to_email, client_name, barber_name, service_name, date_label, time_label, appointment_id
    ):
        """Sent to the client right after booking."""
        body = f"""
            <p>Hi <strong>{html.escape(client_name or 'there')}</strong>,</p>
            <p>Your appointment has been booked.</p>
            {_details_table([
                ("Service", service_name),
                ("Professional", barber_name),
                ("Date", date_label),
                ("Time", time_label),
                ("Booking ID", appointment_id),
            ])}
            <p><a href="{self.frontend_url}/dashboard/cliente">View my appointments</a></p>
        """
        return self.send_email(to_email, "Appointment confirmed - BookMe", _layout("Appointment Confirmed", body))

    def send_new_booking_to_barber(
        self, to_email, barber_name, client_name, service_name, date_label, time_label, appointment_id
    ):
        body = f"""
            <p>Hi <strong>{html.escape(barber_name or 'there')}</strong>,</p>
            <p>You have a new booking.</p>
            {_details_table([
                ("Client", client_name),
                ("Service", service_name),
                ("Date", date_label),
                ("Time", time_label),
                ("Booking ID", appointment_id),
            ])}
            <p><a href="{self.frontend_url}/dashboard/barbero">Open dashboard</a></p>
        """
        return self.send_email(to_email, "New appointment booked - BookMe", _layout("New Appointment", body))

    def send_appointment_cancellation(
        self, to_email, recipient_name, other_party_name, service_name, date_label, time_label, reason=None
    ):
        body = f"""
            <p>Hi <strong>{html.escape(recipient_name or 'there')}</strong>,</p>
            <p>The following appointment has been cancelled.</p>
            {_details_table([
                ("With", other_party_name),
                ("Service", service_name),
                ("Date", date_label),
                ("Time", time_label),
                ("Reason", reason),
            ])}
        """
        return self.send_email(to_email, "Appointment cancelled - BookMe", _layout("Appointment Cancelled", body))

    def send_appointment_reminder(
        self, to_email, recipient_name, other_party_name, service_name, date_label, time_label, lead_label
    ):
        """lead_label is e.g. "in 24 hours" or "in 30 minutes"."""
        body = f"""
            <p>Hi <strong>{html.escape(recipient_name or 'there')}</strong>,</p>
            <p>Reminder: you have an appointment {html.escape(lead_label)}.</p>
            {_details_table([
                ("With", other_party_name),
                ("Service", service_name),
                ("Date", date_label),
                ("Time", time_label),
            ])}
        """
        return self.send_email(
            to_email, f"Reminder: appointment {lead_label} - BookMe", _layout("Appointment Reminder", body)
        )

    def send_thank_you(self, to_email, client_name, barber_name, service_name):
        body = f"""
            <p>Hi <strong>{html.escape(client_name or 'there')}</strong>,</p>
            <p>Thanks for visiting us today for your {html.escape(service_name)} with
            {html.escape(barber_name or 'our team')}.</p>
            <p>We would love to hear how it went.</p>
            <p><a href="{self.frontend_url}/dashboard/cliente/resenas">Leave a review</a></p>
        """
        return self.send_email(to_email, "Thanks for your visit - BookMe", _layout("Thank You!", body))

    def send_invoice(self, to_email, invoice):
        items = invoice.items or []
        item_rows = "".join(
            f"<tr><td style='padding: 6px 12px;'>{html.escape(str(item.get('description', '')))}</td>"
            f"<td style='padding: 6px 12px;'>{item.get('quantity', 1)}</td>"
            f"<td style='padding: 6px 12px;'>{format_price(item.get('price'))}</td></tr>"
            for item in items
        )
        body = f"""
            <p>Hi <strong>{html.escape(invoice.recipient_name)}</strong>,</p>
            <p>Please find your invoice details below.</p>
            {_details_table([
                ("Invoice", invoice.invoice_number),
                ("Issued by", invoice.issuer_name),
                ("Issue date", invoice.issue_date.strftime("%m/%d/%Y") if invoice.issue_date else ""),
                ("Due date", invoice.due_date.strftime("%m/%d/%Y") if invoice.due_date else ""),
                ("Status", "Paid" if invoice.is_paid else "Pending"),
            ])}
            <table cellpadding="0" cellspacing="0" style="margin: 20px 0; width: 100%;">{item_rows}</table>
            <p style="font-size: 20px;">Total: <strong>{format_price(invoice.amount)}</strong></p>
        """
        return self.send_email(
            to_email, f"Invoice {invoice.invoice_number} - {invoice.issuer_name}", _layout("Invoice", body)
        )

    def send_promotion(self, to_email, recipient_name, title, message, discount=None):
        body = f"""
            <p>Hi <strong>{html.escape(recipient_name or 'there')}</strong>,</p>
            <h3>{html.escape(title)}</h3>
            <p>{html.escape(message)}</p>
            {f"<p style='font-size: 22px;'><strong>{html.escape(discount)}</strong></p>" if discount else ""}
            <p><a href="{self.frontend_url}/reservar">Book now</a></p>
        """
        return self.send_email(to_email, f"{title} - BookMe", _layout("Special Promotion", body))

    def send_admin_message(self, to_email, recipient_name, subject, message):
        body = f"""
            <p>Hi <strong>{html.escape(recipient_name or 'there')}</strong>,</p>
            <p>{html.escape(message).replace(chr(10), '<br>')}</p>
        """
        return self.send_email(to_email, subject, _layout(subject, body))

    def send_job_application(self, to_email, application: Dict):
        body = f"""
            <p>A new job application was submitted.</p>
            {_details_table([
                ("Name", application.get("name")),
                ("Email", application.get("email")),
                ("Phone", application.get("phone")),
                ("Position", application.get("role")),
                ("Experience", application.get("experience")),
                ("Instagram", application.get("instagram")),
                ("Portfolio", application.get("portfolio_url")),
            ])}
            <p>{html.escape(application.get("message") or "").replace(chr(10), '<br>')}</p>
        """
        return self.send_email(
            to_email,
            f"New job application: {application.get('name')}",
            _layout("Job Application", body),
            reply_to=application.get("email"),
        )


# Create a singleton instance
email_service = EmailService()
