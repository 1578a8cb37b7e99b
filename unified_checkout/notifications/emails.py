"""
Rendu des emails de confirmation (client) et d'alerte (admin).
- Gabarits Jinja2 dans notifications/templates/, échappement automatique des valeurs.
- Chaque fonction retourne (sujet, html).
"""
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from jinja2 import Environment, FileSystemLoader

TEMPLATES_DIR = Path(__file__).resolve().parent / "templates"


def format_cents(cents: Any) -> str:
    return f"${int(cents or 0) / 100:.2f}"


def short_id(value: Any) -> str:
    return str(value or "")[:8]


env = Environment(loader=FileSystemLoader(str(TEMPLATES_DIR)), autoescape=True)
env.filters["cents"] = format_cents
env.filters["short_id"] = short_id


def _render(name: str, **context: Any) -> str:
    return env.get_template(name).render(**context)


def order_customer_email(order: Dict[str, Any], items: List[Dict[str, Any]]) -> Tuple[str, str]:
    return "Order Confirmation", _render("order_customer.html", order=order, items=items or [])


def order_admin_email(order: Dict[str, Any], items: List[Dict[str, Any]]) -> Tuple[str, str]:
    return "New Order Received", _render("order_admin.html", order=order, items=items or [])


def booking_local_time(booking: Dict[str, Any], default_tz: Optional[str] = None) -> Tuple[str, str]:
    """(date, heure) de la réservation dans le fuseau du commerce; valeur brute si illisible."""
    raw = booking.get("booking_date")
    try:
        start = datetime.fromisoformat(str(raw).replace("Z", "+00:00"))
    except ValueError:
        return str(raw or ""), ""
    if start.tzinfo is None:
        start = start.replace(tzinfo=timezone.utc)
    tz_name = booking.get("business_timezone") or default_tz
    if tz_name:
        try:
            start = start.astimezone(ZoneInfo(tz_name))
        except (ZoneInfoNotFoundError, ValueError):
            pass
    return start.strftime("%A, %B %d, %Y"), start.strftime("%I:%M %p")


def _render_booking(name: str, booking: Dict[str, Any], default_tz: Optional[str]) -> str:
    day, time_of_day = booking_local_time(booking, default_tz)
    return _render(name, booking=booking, day=day, time_of_day=time_of_day)


def booking_customer_email(booking: Dict[str, Any], default_tz: Optional[str] = None) -> Tuple[str, str]:
    return "Booking Confirmation", _render_booking("booking_customer.html", booking, default_tz)


def booking_admin_email(booking: Dict[str, Any], default_tz: Optional[str] = None) -> Tuple[str, str]:
    return "New Booking Received", _render_booking("booking_admin.html", booking, default_tz)
