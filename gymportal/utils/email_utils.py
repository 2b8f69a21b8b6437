from datetime import datetime

from flask import current_app
from flask_mail import Message
from markupsafe import escape


def send_email(to_email, subject, body, html_body=None):
    """Send email using Flask-Mail"""
    try:
        mail = current_app.mail
        msg = Message(
            subject=subject,
            recipients=[to_email],
            body=body,
            html=html_body
        )
        mail.send(msg)
        current_app.logger.info("Email sent to %s: %s", to_email, subject)
        return True
    except Exception as e:
        current_app.logger.warning("Email to %s failed: %s", to_email, e)
        return False


def send_notification_email(recipients, message):
    """Mail a broadcast notification to every recipient; returns how many went out."""
    subject = "New notification from your gym"
    body = f"""
    {message}

    Sent {datetime.now().strftime('%Y-%m-%d %H:%M')}.
    Log in to your member dashboard to see all notifications.
    """
    html_body = f"""
    <html>
    <body>
        <h2>New notification</h2>
        <p>{escape(message)}</p>
        <p>Log in to your member dashboard to see all notifications.</p>
    </body>
    </html>
    """
    sent = 0
    for email in recipients:
        if email and send_email(email, subject, body, html_body):
            sent += 1
    return sent
