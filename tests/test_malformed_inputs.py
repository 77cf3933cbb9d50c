import random
import string

import pytest

from rental_area_search.errors import ParseError, ScriptNotFoundError
from rental_area_search.openrent.client import SCRIPT_MARKER, find_listing_script
from rental_area_search.region import parse_kml


def _rand_str():
    chars = string.printable + "☃‮<>&"
    return "".join(random.choice(chars) for _ in range(32))


def test_fuzz_kml_inputs_only_raise_parse_error():
    rng_state = random.getstate()
    random.seed(1234)
    try:
        for _ in range(200):
            try:
                parse_kml(_rand_str())
            except ParseError:
                pass
    finally:
        random.setstate(rng_state)


def test_malicious_html_handled():
    payload = (
        "<html><body>"
        "<script>alert(1)</script>"
        "<iframe src='http://evil'></iframe>"
        "<svg onload='alert(1)'></svg>"
        + ("<div>" * 1000)
        + ("</div>" * 1000)
        + "</body></html>"
    )
    with pytest.raises(ScriptNotFoundError):
        find_listing_script(payload)


def test_marker_survives_unbalanced_markup():
    payload = (
        "<html><body><div><p>"
        '<script type="text/javascript">'
        f"{SCRIPT_MARKER}\nvar PROPERTYIDS = [1];"
        "</script>"
    )
    assert "PROPERTYIDS" in find_listing_script(payload)
