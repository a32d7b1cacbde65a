"""
Paywall page selection for browser clients
"""

import html
import json
import logging
from decimal import Decimal, InvalidOperation
from typing import Optional, Protocol

from x402_resource.http.types import HTTPAdapter, PaywallConfig
from x402_resource.types import PaymentRequired

logger = logging.getLogger(__name__)

DEFAULT_TOKEN_DECIMALS = 6


class PaywallProvider(Protocol):
    """Renders the paywall page shown to browsers"""

    def generate_html(
        self,
        payment_required: PaymentRequired,
        config: Optional[PaywallConfig] = None,
    ) -> str: ...


def is_web_browser(adapter: HTTPAdapter) -> bool:
    """Guess whether the request comes from a browser.

    Both conditions must hold: the Accept header mentions text/html and the
    User-Agent contains "Mozilla". HTTP clients that send either can be
    misclassified.
    """
    accept = adapter.get_accept_header() or ""
    user_agent = adapter.get_user_agent() or ""
    return "text/html" in accept and "Mozilla" in user_agent


def get_display_amount(payment_required: PaymentRequired) -> Decimal:
    """Human-readable amount of the first requirement on offer"""
    if not payment_required.accepts:
        return Decimal(0)

    first = payment_required.accepts[0]
    decimals = DEFAULT_TOKEN_DECIMALS
    if first.extra and isinstance(first.extra.get("decimals"), int):
        decimals = first.extra["decimals"]

    try:
        return Decimal(first.amount).scaleb(-decimals)
    except InvalidOperation:
        return Decimal(0)


def render_fallback_paywall(
    payment_required: PaymentRequired,
    config: Optional[PaywallConfig] = None,
) -> str:
    """Minimal paywall page.

    The full requirements are embedded as JSON in ``data-requirements`` so
    scripts on the page can still pay programmatically.
    """
    config = config or PaywallConfig()
    resource = payment_required.resource
    amount = get_display_amount(payment_required)
    symbol = "USDC"
    if payment_required.accepts and payment_required.accepts[0].extra:
        symbol = str(payment_required.accepts[0].extra.get("name") or symbol)

    requirements_json = json.dumps(
        payment_required.model_dump(by_alias=True, exclude_none=True, mode="json"),
        separators=(",", ":"),
    )

    logo = ""
    if config.app_logo:
        logo = (
            f'<img src="{html.escape(config.app_logo)}" '
            f'alt="{html.escape(config.app_name or "App")}" '
            'style="max-width: 200px; margin-bottom: 20px;">'
        )

    resource_line = ""
    if resource and (resource.description or resource.url):
        resource_line = (
            "<p><strong>Resource:</strong> "
            f"{html.escape(resource.description or resource.url or '')}</p>"
        )

    return f"""<!DOCTYPE html>
<html>
  <head>
    <title>Payment Required</title>
    <meta charset="UTF-8">
    <meta name="viewport" content="width=device-width, initial-scale=1.0">
  </head>
  <body>
    <div style="max-width: 600px; margin: 50px auto; padding: 20px; font-family: system-ui, sans-serif;">
      {logo}
      <h1>Payment Required</h1>
      {resource_line}
      <p><strong>Amount:</strong> {amount:f} {html.escape(symbol)}</p>
      <div id="payment-widget"
           data-requirements="{html.escape(requirements_json, quote=True)}"
           data-app-name="{html.escape(config.app_name or '')}"
           data-testnet="{str(config.testnet).lower()}">
      </div>
    </div>
  </body>
</html>
"""


def generate_paywall_html(
    payment_required: PaymentRequired,
    config: Optional[PaywallConfig] = None,
    custom_html: Optional[str] = None,
    provider: Optional[PaywallProvider] = None,
) -> str:
    """First available of: custom HTML, the provider's page, the fallback page.

    A provider that raises is logged and replaced by the fallback page.
    """
    if custom_html:
        return custom_html
    if provider is not None:
        try:
            return provider.generate_html(payment_required, config)
        except Exception as e:
            logger.error(f"Paywall provider failed, using fallback page: {e}", exc_info=True)
    return render_fallback_paywall(payment_required, config)
