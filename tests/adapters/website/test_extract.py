from __future__ import annotations

from prospectminer.adapters.website import HtmlPageExtractor, is_junk_email

PAGE = """
<html>
  <head>
    <title> Pro Plumbing | Austin </title>
    <meta name="Description" content="Family-run plumbers since 1998.">
  </head>
  <body>
    <img src="/static/logo@2x.png">
    <p>Call us at (512) 555-0199 or email Owner@ProPlumbing.example</p>
    <a href="mailto:owner@proplumbing.example?subject=Hi">Email</a>
    <a href="tel:+1-512-555-0199">Call</a>
    <a href="https://www.facebook.com/proplumbing">Facebook</a>
    <a href="https://www.facebook.com/">Facebook home</a>
    <a href="https://www.linkedin.com/company/pro-plumbing">LinkedIn</a>
    <a href="https://www.linkedin.com/feed">Feed</a>
    <a href="/contact-us">Contact</a>
    <a href="/services">Services</a>
    <a class="cta">Book Online</a>
  </body>
</html>
"""


def test_extract_collects_contact_signals() -> None:
    signals = HtmlPageExtractor().extract(PAGE, base_url="https://proplumbing.example")

    assert signals.emails == ("owner@proplumbing.example",)
    assert signals.phones == ("+15125550199",)
    assert signals.social_links == {
        "facebook": "https://www.facebook.com/proplumbing",
        "linkedin": "https://www.linkedin.com/company/pro-plumbing",
    }
    assert signals.has_online_booking
    assert signals.title == "Pro Plumbing | Austin"
    assert signals.meta_description == "Family-run plumbers since 1998."
    assert signals.contact_links == ("https://proplumbing.example/contact-us",)


def test_extract_handles_bare_pages() -> None:
    signals = HtmlPageExtractor().extract("<p>Nothing here</p>", base_url="https://a.example")

    assert signals.emails == ()
    assert signals.phones == ()
    assert signals.social_links == {}
    assert not signals.has_online_booking
    assert signals.title is None
    assert signals.meta_description is None


def test_custom_booking_signals_replace_defaults() -> None:
    extractor = HtmlPageExtractor(booking_signals=("reserve a table",))
    base_url = "https://a.example"

    assert extractor.extract("<p>Reserve a table</p>", base_url=base_url).has_online_booking
    assert not extractor.extract("<p>Book now</p>", base_url=base_url).has_online_booking


def test_junk_emails_are_recognised() -> None:
    assert is_junk_email("user@example.com")
    assert is_junk_email("icon@2x.png")
    assert not is_junk_email("owner@proplumbing.example")
