import os
import socket
import sys
import urllib.request
from pathlib import Path

import pytest


REPO_ROOT = Path(__file__).resolve().parents[1]
SRC = REPO_ROOT / "src"
FIXTURES = Path(__file__).resolve().parent / "fixtures"

# Prefer repo sources over any installed package.
if str(SRC) not in sys.path:
    sys.path.insert(0, str(SRC))


@pytest.fixture(autouse=True)
def block_network(monkeypatch):
    if os.getenv("LIVE") == "1":
        return

    real_connect = socket.socket.connect

    def guarded_connect(sock, address):
        host = address[0] if isinstance(address, tuple) else address
        if host not in ("127.0.0.1", "localhost"):
            raise RuntimeError("Network access blocked in tests")
        return real_connect(sock, address)

    monkeypatch.setattr(socket.socket, "connect", guarded_connect)
    monkeypatch.setattr(
        urllib.request,
        "urlopen",
        lambda *args, **kwargs: (_ for _ in ()).throw(
            RuntimeError("Network access blocked in tests")
        ),
    )


@pytest.fixture(autouse=True)
def clean_settings(monkeypatch):
    from rental_area_search.settings import reset_settings_cache

    for name in list(os.environ):
        if name.startswith("RAS_"):
            monkeypatch.delenv(name, raising=False)
    reset_settings_cache()
    yield
    reset_settings_cache()


@pytest.fixture
def fixture_path():
    return lambda name: FIXTURES / name


@pytest.fixture
def listing_script():
    return (FIXTURES / "listing_script.js").read_text(encoding="utf-8")


@pytest.fixture
def search_page_html():
    return (FIXTURES / "openrent_search.html").read_text(encoding="utf-8")
