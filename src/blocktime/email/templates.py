"""
Email templates for block watch alerts.

All templates use inline CSS for maximum email client compatibility.

Each template function returns (subject, html_body, text_body).
"""

from __future__ import annotations

from datetime import timezone
from html import escape
from typing import TYPE_CHECKING

from blocktime.watches.tiers import REACHED, tier_label

if TYPE_CHECKING:
    from blocktime.notifications.delivery import DeliveryMessage

# Color constants
BG_PAGE = "#0B0F14"
BG_CARD = "#121821"
ACCENT = "#2BB3A3"
TEXT_PRIMARY = "#F0F6FC"
TEXT_SECONDARY = "#8B949E"
BORDER = "#222B36"

APP_NAME = "Block to Time"


def _base_layout(content: str) -> str:
    """Wrap content in the base email layout."""
    return f"""\
<!DOCTYPE html>
<html lang="en">
<head>
    <meta charset="UTF-8">
    <meta name="viewport" content="width=device-width, initial-scale=1.0">
    <title>{APP_NAME}</title>
</head>
<body style="margin: 0; padding: 0; background-color: {BG_PAGE}; font-family: -apple-system, BlinkMacSystemFont, 'Segoe UI', Roboto, sans-serif;">
    <table role="presentation" cellspacing="0" cellpadding="0" border="0" width="100%" style="background-color: {BG_PAGE};">
        <tr>
            <td align="center" style="padding: 40px 20px;">
                <table role="presentation" cellspacing="0" cellpadding="0" border="0" width="600" style="max-width: 600px; width: 100%;">
                    <tr>
                        <td style="background-color: {BG_CARD}; border: 1px solid {BORDER}; border-radius: 12px; padding: 32px;">
                            {content}
                        </td>
                    </tr>
                    <tr>
                        <td align="center" style="padding-top: 24px;">
                            <p style="color: {TEXT_SECONDARY}; font-size: 12px; line-height: 1.5; margin: 0;">
                                You are receiving this because you created a block watch on {APP_NAME}.
                            </p>
                        </td>
                    </tr>
                </table>
            </td>
        </tr>
    </table>
</body>
</html>"""


def _link(url: str, label: str) -> str:
    return (
        f'<a href="{escape(url)}" target="_blank" '
        f'style="display: inline-block; margin: 0 8px 8px 0; padding: 10px 18px; background-color: {ACCENT}; '
        f'color: #FFFFFF; font-size: 14px; font-weight: 600; text-decoration: none; border-radius: 6px;">{label}</a>'
    )


def _row(label: str, value: str) -> str:
    return (
        f'<tr><td style="color: {TEXT_SECONDARY}; font-size: 14px; padding: 4px 16px 4px 0;">{label}</td>'
        f'<td style="color: {TEXT_PRIMARY}; font-size: 14px; font-weight: 600; padding: 4px 0;">{value}</td></tr>'
    )


def headline(message: DeliveryMessage) -> str:
    if message.tier == REACHED:
        return f"Block {message.target_height:,} has been reached!"
    return f"Block {message.target_height:,}: {tier_label(message.tier)} away!"


def block_alert(message: DeliveryMessage) -> tuple[str, str, str]:
    """
    Tier progress or "block reached" alert.

    Returns:
        (subject, html_body, text_body)
    """
    subject = headline(message)
    if message.title:
        subject = f"{subject} ({message.title})"
    estimated = message.estimated_time.astimezone(timezone.utc).strftime("%a, %d %b %Y %H:%M:%S UTC")
    target = f"{message.target_height:,}"
    current = f"{message.current_height:,}"
    remaining = f"{message.blocks_remaining:,}"

    content = f"""\
<h1 style="color: {TEXT_PRIMARY}; font-size: 22px; font-weight: 700; margin: 0 0 20px 0;">{escape(headline(message))}</h1>
<table role="presentation" cellspacing="0" cellpadding="0" border="0" style="margin: 0 0 20px 0;">
    {_row("Network", escape(message.network_label))}
    {_row("Target block", target)}
    {_row("Current block", current)}
    {_row("Blocks remaining", remaining)}
    {_row("Estimated time", estimated)}
</table>
<div>
    {_link(message.calendar_links.google, "Google Calendar")}
    {_link(message.calendar_links.outlook, "Outlook Calendar")}
    {_link(message.calendar_links.ics_url, "Download .ics")}
</div>"""
    html_body = _base_layout(content)
    text_body = (
        f"{headline(message)}\n\n"
        f"Network: {message.network_label}\n"
        f"Target block: {message.target_height:,}\n"
        f"Current block: {message.current_height:,}\n"
        f"Blocks remaining: {message.blocks_remaining:,}\n"
        f"Estimated time: {estimated}\n\n"
        f"Google Calendar: {message.calendar_links.google}\n"
        f"Outlook Calendar: {message.calendar_links.outlook}\n"
        f"Download .ics: {message.calendar_links.ics_url}\n\n"
        f"-- {APP_NAME}"
    )
    return subject, html_body, text_body
