"""
Telegram bot integration for report summaries.

Posts a short text summary of the weekly inventory report to a chat.
"""

from typing import Optional
import requests
import structlog

from config import settings
from models.inventory_metric import MetricsRunResponse
from models.report import InventoryReportRow
from exceptions import TelegramError

logger = structlog.get_logger(__name__)

MAX_LISTED_ITEMS = 10


def get_telegram_config() -> tuple[Optional[str], Optional[str]]:
    """
    Get Telegram configuration.

    Returns:
        tuple: (bot_token, chat_id)
    """
    bot_token = settings.telegram_bot_token
    chat_id = settings.telegram_chat_id

    if not bot_token or not chat_id:
        logger.debug(
            "telegram_not_configured",
            has_token=bool(bot_token),
            has_chat_id=bool(chat_id)
        )

    return bot_token, chat_id


def format_report_summary(
    run: MetricsRunResponse,
    rows: list[InventoryReportRow],
    low_stock_threshold: int,
) -> str:
    """
    Format the weekly report as a Telegram message.

    Lists up to MAX_LISTED_ITEMS low stock lines, lowest stock first.
    """
    low_stock = sorted(
        (r for r in rows if r.current_stock < low_stock_threshold),
        key=lambda r: (r.current_stock, r.product, r.flavor)
    )

    lines = [
        "📦 *Weekly inventory report*",
        "",
        f"Products: {run.product_count}",
        f"Items: {len(rows)}",
        f"Low stock (< {low_stock_threshold}): {len(low_stock)}",
    ]

    if low_stock:
        lines.append("")
        for row in low_stock[:MAX_LISTED_ITEMS]:
            flavor = f" / {row.flavor}" if row.flavor != "N/A" else ""
            lines.append(f"• `{row.product}{flavor}`: {row.current_stock} left ({row.velocity})")
        if len(low_stock) > MAX_LISTED_ITEMS:
            lines.append(f"…and {len(low_stock) - MAX_LISTED_ITEMS} more")

    lines.append("")
    lines.append(f"🕐 {run.computed_at.strftime('%Y-%m-%d %H:%M UTC')}")

    return "\n".join(lines)


def send_message(message: str, parse_mode: str = "Markdown") -> bool:
    """
    Send message to Telegram.

    Args:
        message: Message text to send
        parse_mode: Telegram parse mode (Markdown or HTML)

    Returns:
        True if sent, False if Telegram is not configured

    Raises:
        TelegramError: If send fails
    """
    bot_token, chat_id = get_telegram_config()

    if not bot_token or not chat_id:
        logger.info("telegram_not_configured_skipping_send")
        return False

    url = f"https://api.telegram.org/bot{bot_token}/sendMessage"

    payload = {
        "chat_id": chat_id,
        "text": message,
        "parse_mode": parse_mode,
        "disable_web_page_preview": True,
    }

    try:
        logger.info("sending_telegram_message", chat_id=chat_id)

        response = requests.post(url, json=payload, timeout=10)
        response.raise_for_status()

        result = response.json()

        if not result.get("ok"):
            error_msg = result.get("description", "Unknown error")
            logger.error("telegram_api_error", error=error_msg)
            raise TelegramError(f"Telegram API error: {error_msg}")

        logger.info("telegram_message_sent", message_id=result.get("result", {}).get("message_id"))
        return True

    except requests.exceptions.RequestException as e:
        logger.error("telegram_request_failed", error=str(e))
        raise TelegramError(f"Failed to send Telegram message: {str(e)}")


def send_report_summary(
    run: MetricsRunResponse,
    rows: list[InventoryReportRow],
    low_stock_threshold: int,
) -> bool:
    """
    Send the weekly report summary.

    Raises:
        TelegramError: If send fails
    """
    return send_message(format_report_summary(run, rows, low_stock_threshold))
