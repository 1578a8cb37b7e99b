from unified_checkout.notifications import emails


def test_order_customer_email_escapes_values():
    order = {
        "id": "abcdef1234567890",
        "customer_name": "<script>alert(1)</script>",
        "subtotal_cents": 2000, "tax_cents": 160, "total_cents": 2160,
    }
    items = [{"product_name": "Mug & Co", "quantity": 2, "line_total_cents": 2000}]
    subject, html = emails.order_customer_email(order, items)

    assert subject == "Order Confirmation"
    assert "<script>" not in html
    assert "&lt;script&gt;" in html
    assert "Mug &amp; Co × 2 ($20.00)" in html
    assert "#abcdef12" in html
    assert "Total: $21.60" in html


def test_booking_time_is_rendered_in_business_timezone():
    booking = {"booking_date": "2026-11-02T15:00:00+00:00", "business_timezone": "America/Chicago"}
    day, time_of_day = emails.booking_local_time(booking)
    # 15:00 UTC = 09:00 à Chicago (CST après le changement d'heure)
    assert day == "Monday, November 02, 2026"
    assert time_of_day == "09:00 AM"


def test_booking_time_falls_back_to_default_timezone():
    booking = {"booking_date": "2026-07-01T15:00:00Z"}
    _, time_of_day = emails.booking_local_time(booking, "America/New_York")
    assert time_of_day == "11:00 AM"


def test_booking_admin_email_includes_notes_only_when_present():
    booking = {
        "customer_name": "Ada", "customer_email": "ada@example.com",
        "service_type": "Haircut", "booking_date": "2026-11-02T15:00:00Z",
        "duration_minutes": 90,
    }
    subject, html = emails.booking_admin_email(booking, "UTC")
    assert subject == "New Booking Received"
    assert "90 minutes" in html
    assert "Notes:" not in html

    booking["notes"] = "Window seat"
    _, html = emails.booking_admin_email(booking, "UTC")
    assert "Window seat" in html


def test_booking_notes_are_autoescaped():
    booking = {
        "customer_name": "Ada", "service_type": "Haircut",
        "booking_date": "2026-11-02T15:00:00Z", "notes": "<b>late</b> & early",
    }
    _, html = emails.booking_customer_email(booking, "UTC")
    assert "&lt;b&gt;late&lt;/b&gt; &amp; early" in html
    assert "<b>late</b>" not in html


def test_cents_filter_registered():
    assert emails.env.filters["cents"](2160) == "$21.60"
    assert emails.format_cents(None) == "$0.00"
