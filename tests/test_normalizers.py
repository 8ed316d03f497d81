import mapscraper.selectors as selectors
from mapscraper.normalizers import (
    clean_text,
    normalize_href,
    normalize_phone,
    safe_filename_part,
    strip_label_prefix,
)


def test_normalize_phone_converts_persian_digits_and_trunk_zero() -> None:
    assert normalize_phone("۰۹۱۲۳۴۵۶۷۸۹") == "+989123456789"
    assert normalize_phone("٠٩١٢٣٤٥٦٧٨٩") == "+989123456789"
    assert normalize_phone("021-8888 7777") == "+982188887777"


def test_normalize_phone_international_prefixes() -> None:
    assert normalize_phone("0098 912 345 6789") == "+989123456789"
    assert normalize_phone("+98 (21) 1234-5678") == "+982112345678"
    assert normalize_phone("0044 20 7946 0958") == "+442079460958"


def test_normalize_phone_custom_country_code() -> None:
    assert normalize_phone("030 1234567", country_code="49") == "+49301234567"


def test_normalize_phone_rejects_short_or_empty_values() -> None:
    assert normalize_phone(None) is None
    assert normalize_phone("") is None
    assert normalize_phone("Call us") is None
    assert normalize_phone("115") is None
    assert normalize_phone("+98 12") is None


def test_normalize_href_drops_query_and_fragment() -> None:
    href = "https://www.google.com/maps/place/Cafe+Roma/data=!4m7?authuser=0&hl=fa#top"
    assert normalize_href(href) == "https://www.google.com/maps/place/Cafe+Roma/data=!4m7"
    assert normalize_href(normalize_href(href)) == normalize_href(href)


def test_strip_label_prefix_handles_both_languages() -> None:
    prefixes = selectors.ADDRESS_LABEL_PREFIXES
    assert strip_label_prefix("Address: Valiasr St, Tehran", prefixes) == "Valiasr St, Tehran"
    assert strip_label_prefix("آدرس: خیابان ولیعصر", prefixes) == "خیابان ولیعصر"
    assert strip_label_prefix("No label here", prefixes) == "No label here"
    assert strip_label_prefix("Address:   ", prefixes) is None
    assert strip_label_prefix(None, prefixes) is None


def test_clean_text_collapses_whitespace() -> None:
    assert clean_text("  Cafe \n\t Roma  ") == "Cafe Roma"
    assert clean_text(None) == ""


def test_safe_filename_part_keeps_persian_letters() -> None:
    assert safe_filename_part("مبلمان_تهران") == "مبلمان_تهران"
    assert safe_filename_part("pizza rome/2024") == "pizza_rome_2024"
    assert safe_filename_part("") == "_"
