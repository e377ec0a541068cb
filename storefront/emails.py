"""
HTML templates for customer emails.

Pure functions: the same payload and language always render the same
document. Amounts are integer cents.
"""
from dataclasses import dataclass, field
from html import escape
from typing import List, Optional
from urllib.parse import quote, quote_plus

STORE_NAME = "Möbelhaus"
SUPPORT_EMAIL = "support@mobelhaus.at"
SUPPORT_PHONE = "+43 1 234 5678"

LANGUAGES = ("de", "en")

TRACKING_URLS = {
    "DHL": "https://www.dhl.at/at-de/home/tracking.html?tracking-id={number}",
    "DPD": "https://tracking.dpd.de/status/de_DE/parcel/{number}",
    "Austrian Post": "https://www.post.at/sv/sendungsdetails?snr={number}",
    "Post": "https://www.post.at/sv/sendungsdetails?snr={number}",
    "GLS": "https://gls-group.eu/AT/de/paketverfolgung?match={number}",
}

SHIPPING_METHOD_LABELS = {
    "de": {
        "standard": "Standard Versand (3-5 Werktage)",
        "express": "Express Versand (1-2 Werktage)",
        "pickup": "Selbstabholung",
        "assembly": "Lieferung mit Montage",
    },
    "en": {
        "standard": "Standard Shipping (3-5 business days)",
        "express": "Express Shipping (1-2 business days)",
        "pickup": "Self Pickup",
        "assembly": "Delivery with Assembly",
    },
}

CONFIRMATION_TEXT = {
    "de": {
        "title": "Bestellbestätigung",
        "greeting": "Sehr geehrte/r",
        "thank_you": (
            "Vielen Dank für Ihre Bestellung bei Möbelhaus! Wir haben Ihre Zahlung "
            "erhalten und werden Ihre Bestellung schnellstmöglich bearbeiten."
        ),
        "order_details": "Bestelldetails",
        "order_number": "Bestellnummer",
        "product": "Produkt",
        "quantity": "Menge",
        "price": "Preis",
        "subtotal": "Zwischensumme",
        "shipping": "Versand",
        "discount": "Rabatt",
        "total": "Gesamtsumme",
        "shipping_address": "Lieferadresse",
        "shipping_method": "Versandart",
        "next_steps": "Nächste Schritte",
        "steps": (
            "Wir bereiten Ihre Bestellung für den Versand vor",
            "Sie erhalten eine Versandbenachrichtigung mit Tracking-Nummer",
            "Ihre Möbel werden in 3-5 Werktagen geliefert",
        ),
        "questions": "Fragen?",
        "contact": "Bei Fragen zu Ihrer Bestellung kontaktieren Sie uns gerne unter",
        "footer": "Dies ist eine automatische E-Mail. Bitte antworten Sie nicht auf diese Nachricht.",
        "rights": "Alle Rechte vorbehalten.",
    },
    "en": {
        "title": "Order Confirmation",
        "greeting": "Dear",
        "thank_you": (
            "Thank you for your order at Möbelhaus! We have received your payment "
            "and will process your order as soon as possible."
        ),
        "order_details": "Order Details",
        "order_number": "Order Number",
        "product": "Product",
        "quantity": "Quantity",
        "price": "Price",
        "subtotal": "Subtotal",
        "shipping": "Shipping",
        "discount": "Discount",
        "total": "Total",
        "shipping_address": "Shipping Address",
        "shipping_method": "Shipping Method",
        "next_steps": "Next Steps",
        "steps": (
            "We prepare your order for shipping",
            "You will receive a shipping notification with tracking number",
            "Your furniture will be delivered in 3-5 business days",
        ),
        "questions": "Questions?",
        "contact": "If you have any questions about your order, please contact us at",
        "footer": "This is an automated email. Please do not reply to this message.",
        "rights": "All rights reserved.",
    },
}

SHIPPING_TEXT = {
    "de": {
        "title": "Versandbestätigung",
        "greeting": "Sehr geehrte/r",
        "good_news": "Gute Nachrichten! Ihre Bestellung ist unterwegs.",
        "intro": "Ihre Bestellung wurde soeben an unseren Versandpartner übergeben.",
        "order_number": "Bestellnummer",
        "tracking_info": "Sendungsverfolgung",
        "carrier": "Versanddienstleister",
        "tracking_number": "Sendungsnummer",
        "estimated_delivery": "Voraussichtliche Lieferung",
        "track": "Sendung verfolgen",
        "shipping_method": "Versandart",
        "tips_title": "Informationen zur Zustellung",
        "tips": (
            "Bitte stellen Sie sicher, dass am Liefertag jemand zu Hause ist.",
            "Sind Sie nicht anzutreffen, wird der Zusteller eine Benachrichtigung hinterlassen.",
            "Ohne Montageservice erfolgt die Zustellung bis zur Bordsteinkante.",
        ),
        "questions": "Fragen?",
        "contact": "Bei Fragen zu Ihrer Lieferung kontaktieren Sie uns gerne unter",
        "footer": "Dies ist eine automatische E-Mail. Bitte antworten Sie nicht auf diese Nachricht.",
        "rights": "Alle Rechte vorbehalten.",
    },
    "en": {
        "title": "Shipping Confirmation",
        "greeting": "Dear",
        "good_news": "Good news! Your order is on its way.",
        "intro": "Your order has just been handed over to our shipping partner.",
        "order_number": "Order Number",
        "tracking_info": "Shipment Tracking",
        "carrier": "Carrier",
        "tracking_number": "Tracking Number",
        "estimated_delivery": "Estimated Delivery",
        "track": "Track Shipment",
        "shipping_method": "Shipping Method",
        "tips_title": "Delivery Information",
        "tips": (
            "Please make sure someone is at home on the day of delivery.",
            "If nobody is at home, the courier will leave a notification.",
            "Without the assembly service, furniture is delivered to the curbside.",
        ),
        "questions": "Questions?",
        "contact": "If you have any questions about your delivery, please contact us at",
        "footer": "This is an automated email. Please do not reply to this message.",
        "rights": "All rights reserved.",
    },
}

STYLES = """
    body {
      font-family: 'Inter', -apple-system, BlinkMacSystemFont, 'Segoe UI', sans-serif;
      line-height: 1.6;
      color: #333;
      background-color: #f5f5f5;
      margin: 0;
      padding: 0;
    }
    .container { max-width: 600px; margin: 0 auto; background-color: #ffffff; }
    .header {
      background: linear-gradient(135deg, #2D5016 0%, #4A7C2A 100%);
      color: #ffffff;
      padding: 40px 30px;
      text-align: center;
    }
    .header h1 { margin: 0; font-size: 28px; font-weight: 700; }
    .content { padding: 40px 30px; }
    .greeting { font-size: 16px; margin-bottom: 20px; }
    .highlight {
      background-color: #f8f8f8;
      border-left: 4px solid #2D5016;
      padding: 15px;
      margin: 20px 0;
      font-weight: 600;
    }
    .section-title { font-size: 18px; font-weight: 600; margin: 30px 0 15px 0; color: #2D5016; }
    .items-table { width: 100%; border-collapse: collapse; margin: 20px 0; }
    .items-table th {
      background-color: #f8f8f8;
      padding: 12px;
      text-align: left;
      font-weight: 600;
      border-bottom: 2px solid #e0e0e0;
    }
    .items-table td { padding: 12px; border-bottom: 1px solid #e0e0e0; }
    .total-row { font-weight: 600; font-size: 18px; background-color: #f8f8f8; }
    .info-box { background-color: #f8f8f8; padding: 15px; border-radius: 8px; margin: 15px 0; }
    .button {
      display: inline-block;
      background-color: #2D5016;
      color: #ffffff;
      padding: 12px 24px;
      border-radius: 6px;
      text-decoration: none;
      font-weight: 600;
    }
    .notes { background-color: #e8f5e9; padding: 20px; border-radius: 8px; margin: 20px 0; }
    .notes ul { margin: 10px 0; padding-left: 20px; }
    .notes li { margin: 8px 0; }
    .contact { margin: 20px 0; padding: 15px; background-color: #fff; border-radius: 8px; }
    .footer { background-color: #f8f8f8; padding: 30px; text-align: center; font-size: 14px; color: #666; }
"""


@dataclass
class EmailItem:
    product_name: str
    price: int
    quantity: int
    variant_color: Optional[str] = None


@dataclass
class OrderConfirmation:
    order_number: str
    customer_name: str
    customer_email: str
    subtotal: int
    shipping_cost: int
    total: int
    shipping_method: str
    shipping_address: str
    language: str = "de"
    items: List[EmailItem] = field(default_factory=list)
    discount_amount: int = 0


@dataclass
class ShippingNotification:
    order_number: str
    customer_name: str
    customer_email: str
    tracking_number: str
    carrier: str
    shipping_method: str
    language: str = "de"
    estimated_delivery: Optional[str] = None


def _check_language(language: str) -> str:
    if language not in LANGUAGES:
        raise ValueError(f"Unsupported email language: {language!r}")
    return language


def format_money(cents: int) -> str:
    if cents < 0:
        raise ValueError("Amounts must be non-negative")
    return f"€{cents // 100}.{cents % 100:02d}"


def tracking_url(carrier: str, tracking_number: str) -> str:
    template = TRACKING_URLS.get(carrier)
    if template is None:
        return "https://www.google.com/search?q=" + quote_plus(f"{carrier} {tracking_number} tracking")
    return template.format(number=quote(tracking_number, safe=""))


def shipping_method_label(method: str, language: str) -> str:
    return SHIPPING_METHOD_LABELS[_check_language(language)].get(method, method)


def order_confirmation_subject(order_number: str, language: str) -> str:
    return f"{CONFIRMATION_TEXT[_check_language(language)]['title']} - {order_number}"


def shipping_notification_subject(order_number: str, language: str) -> str:
    return f"{SHIPPING_TEXT[_check_language(language)]['title']} - {order_number}"


def _document(language: str, title: str, body: str, t: dict) -> str:
    return f"""<!DOCTYPE html>
<html lang="{language}">
<head>
  <meta charset="UTF-8">
  <meta name="viewport" content="width=device-width, initial-scale=1.0">
  <title>{title}</title>
  <style>{STYLES}  </style>
</head>
<body>
  <div class="container">
    <div class="header">
      <h1>🪑 {STORE_NAME}</h1>
      <p style="margin: 10px 0 0 0; font-size: 18px;">{title}</p>
    </div>
    <div class="content">
{body}
      <div class="contact">
        <strong>{t['questions']}</strong><br>
        {t['contact']}<br>
        📧 <a href="mailto:{SUPPORT_EMAIL}">{SUPPORT_EMAIL}</a><br>
        📞 {SUPPORT_PHONE}
      </div>
    </div>
    <div class="footer">
      <p>{t['footer']}</p>
      <p style="margin-top: 15px;">© 2026 {STORE_NAME} AT. {t['rights']}</p>
    </div>
  </div>
</body>
</html>"""


def _item_row(item: EmailItem) -> str:
    variant = ""
    if item.variant_color:
        variant = f'<br><small style="color: #666;">{escape(item.variant_color)}</small>'
    return f"""          <tr>
            <td>{escape(item.product_name)}{variant}</td>
            <td>{item.quantity}</td>
            <td>{format_money(item.price)}</td>
          </tr>
"""


def _summary_row(label: str, amount: str, css_class: str = "") -> str:
    class_attr = f' class="{css_class}"' if css_class else ""
    return f"""          <tr{class_attr}>
            <td colspan="2">{label}</td>
            <td>{amount}</td>
          </tr>
"""


def render_order_confirmation(data: OrderConfirmation) -> str:
    language = _check_language(data.language)
    t = CONFIRMATION_TEXT[language]

    rows = "".join(_item_row(item) for item in data.items)
    rows += _summary_row(t["subtotal"], format_money(data.subtotal))
    rows += _summary_row(t["shipping"], format_money(data.shipping_cost))
    if data.discount_amount:
        rows += _summary_row(t["discount"], "-" + format_money(data.discount_amount))
    rows += _summary_row(t["total"], format_money(data.total), "total-row")

    address = escape(data.shipping_address).replace("\n", "<br>")
    steps = "".join(f"          <li>✓ {step}</li>\n" for step in t["steps"])

    body = f"""      <p class="greeting">{t['greeting']} {escape(data.customer_name)},</p>
      <p>{t['thank_you']}</p>
      <div class="highlight">
        {t['order_number']}: <strong>{escape(data.order_number)}</strong>
      </div>
      <h2 class="section-title">{t['order_details']}</h2>
      <table class="items-table">
        <thead>
          <tr>
            <th>{t['product']}</th>
            <th>{t['quantity']}</th>
            <th>{t['price']}</th>
          </tr>
        </thead>
        <tbody>
{rows}        </tbody>
      </table>
      <h2 class="section-title">{t['shipping_address']}</h2>
      <div class="info-box">{address}</div>
      <h2 class="section-title">{t['shipping_method']}</h2>
      <div class="info-box">{escape(shipping_method_label(data.shipping_method, language))}</div>
      <div class="notes">
        <h3 style="margin-top: 0;">{t['next_steps']}</h3>
        <ul>
{steps}        </ul>
      </div>"""
    return _document(language, t["title"], body, t)


def render_shipping_notification(data: ShippingNotification) -> str:
    language = _check_language(data.language)
    t = SHIPPING_TEXT[language]

    url = tracking_url(data.carrier, data.tracking_number)
    estimated = ""
    if data.estimated_delivery:
        estimated = (
            f"        {t['estimated_delivery']}: "
            f"<strong>{escape(data.estimated_delivery)}</strong><br>\n"
        )
    tips = "".join(f"          <li>{tip}</li>\n" for tip in t["tips"])

    body = f"""      <p class="greeting">{t['greeting']} {escape(data.customer_name)},</p>
      <p><strong>{t['good_news']}</strong> {t['intro']}</p>
      <div class="highlight">
        {t['order_number']}: <strong>{escape(data.order_number)}</strong>
      </div>
      <h2 class="section-title">{t['tracking_info']}</h2>
      <div class="info-box">
        {t['carrier']}: <strong>{escape(data.carrier)}</strong><br>
        {t['tracking_number']}: <strong>{escape(data.tracking_number)}</strong><br>
{estimated}      </div>
      <p style="text-align: center; margin: 30px 0;">
        <a class="button" href="{escape(url)}">{t['track']}</a>
      </p>
      <h2 class="section-title">{t['shipping_method']}</h2>
      <div class="info-box">{escape(shipping_method_label(data.shipping_method, language))}</div>
      <div class="notes">
        <h3 style="margin-top: 0;">{t['tips_title']}</h3>
        <ul>
{tips}        </ul>
      </div>"""
    return _document(language, t["title"], body, t)
