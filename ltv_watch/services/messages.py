"""Reply and alert text; everything user-supplied is HTML-escaped."""
from __future__ import annotations

import html
import re

from ..addresses import shorten
from ..models import LendingProtocol, ThresholdOverride, ThresholdSettings

PROTOCOL_NAMES: dict[LendingProtocol, str] = {
    LendingProtocol.KAMINO: "Kamino",
    LendingProtocol.AAVE: "Aave",
}


def wallet_header(protocol: LendingProtocol, address: str) -> str:
    return f"<b>{PROTOCOL_NAMES[protocol]}</b> <code>{html.escape(address)}</code>"


def wallet_block(protocol: LendingProtocol, address: str, body: str) -> str:
    return f"{wallet_header(protocol, address)}\n{html.escape(body)}"


def alert_message(protocol: LendingProtocol, address: str, rendered: str) -> str:
    return (
        f"🚨 Health Factor alert for {PROTOCOL_NAMES[protocol]} wallet "
        f"<code>{html.escape(shorten(address))}</code>\n\n"
        f"{html.escape(rendered)}"
    )


def error_reply(error: Exception | str) -> str:
    return f"Error: {html.escape(str(error))}"


def thresholds_line(
    protocol: LendingProtocol,
    thresholds: ThresholdSettings,
    override: ThresholdOverride | None = None,
) -> str:
    """One settings line; sides the user never set are marked "(default)"."""
    override = override or ThresholdOverride()
    warning_mark = " (default)" if override.warning is None else ""
    danger_mark = " (default)" if override.danger is None else ""
    return (
        f"{PROTOCOL_NAMES[protocol]}: warning {thresholds.warning:g}{warning_mark}, "
        f"danger {thresholds.danger:g}{danger_mark}"
    )


_TAG_RE = re.compile(r"<[^>]+>")


def to_plain_text(text: str) -> str:
    """Strip the HTML markup for terminal output."""
    return html.unescape(_TAG_RE.sub("", text))
