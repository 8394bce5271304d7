"""
Completion e-mails. Best-effort only: a failed send never touches the
generation row and is never reported to the caller.
"""
from __future__ import annotations

import asyncio
import html
import smtplib
from email.message import EmailMessage
from typing import Optional

from ..config import Settings
from ..logger import logger
from ..models import Generation


class Mailer:
    def __init__(self, host: str, port: int, user: str = "", password: str = "", sender: str = ""):
        self.host = host
        self.port = port
        self.user = user
        self.password = password
        self.sender = sender

    @classmethod
    def from_settings(cls, settings: Settings) -> "Mailer":
        return cls(
            settings.SMTP_HOST,
            settings.SMTP_PORT,
            user=settings.SMTP_USER,
            password=settings.SMTP_PASSWORD,
            sender=settings.SMTP_FROM,
        )

    @property
    def enabled(self) -> bool:
        return bool(self.host and self.sender)

    def send(self, message: EmailMessage) -> None:
        with smtplib.SMTP(self.host, self.port, timeout=20) as server:
            server.ehlo()
            if self.user and self.password:
                server.starttls()
                server.login(self.user, self.password)
            server.send_message(message)

    async def send_async(self, message: EmailMessage) -> None:
        await asyncio.to_thread(self.send, message)


def build_completion_email(sender: str, to: str, video_url: str, character_name: Optional[str] = None) -> EmailMessage:
    message = EmailMessage()
    message["Subject"] = "Your video is ready!"
    message["From"] = sender
    message["To"] = to

    lines = ["Your face swap video is ready!"]
    if character_name:
        lines.append(f"Character: {character_name}")
    lines.append(f"View your video: {video_url}")
    message.set_content("\n".join(lines) + "\n")

    safe_url = html.escape(video_url, quote=True)
    character_html = f"<p>Character: {html.escape(character_name)}</p>" if character_name else ""
    message.add_alternative(
        f"""
        <h1>Your face swap video is ready!</h1>
        {character_html}
        <p>Click below to view your video:</p>
        <p><a href="{safe_url}" style="display:inline-block;padding:12px 24px;background:#000;color:#fff;text-decoration:none;border-radius:6px;">View Video</a></p>
        <p style="margin-top:20px;color:#666;font-size:14px;">Or copy this link: {safe_url}</p>
        """,
        subtype="html",
    )
    return message


async def notify_generation_complete(mailer: Optional[Mailer], generation: Generation) -> bool:
    if not generation.user_email or not generation.video_url:
        return False
    if mailer is None or not mailer.enabled:
        logger.info(
            "SMTP not configured, skipping completion email",
            extra={"generation_id": generation.id},
        )
        return False

    message = build_completion_email(
        mailer.sender, generation.user_email, generation.video_url, generation.character_name
    )
    try:
        await mailer.send_async(message)
    except Exception as e:
        logger.error(
            f"Failed to send completion email: {e}",
            extra={"generation_id": generation.id, "error": str(e)},
        )
        return False

    logger.info("Completion email sent", extra={"generation_id": generation.id})
    return True
