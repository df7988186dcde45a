import pytest
import requests

import ciphertext_source
from ciphertext_source import CiphertextError, parse_ciphertexts, read_ciphertexts


class FakeResponse:
    def __init__(self, text, status_code=200):
        self.text = text
        self.status_code = status_code

    def raise_for_status(self):
        if self.status_code >= 400:
            raise requests.HTTPError(f"{self.status_code} Error")


def test_parse_skips_comments_and_blank_lines():
    text = "# captured on monday\n4478b9\n\n  461add  \n# target\n407cde\n"
    assert parse_ciphertexts(text) == [b"\x44\x78\xb9", b"\x46\x1a\xdd", b"\x40\x7c\xde"]


def test_parse_reports_bad_line():
    with pytest.raises(CiphertextError, match="line 3"):
        parse_ciphertexts("# header\n4478b9\n447\n")


def test_read_file(tmp_path):
    path = tmp_path / "ciphertext.txt"
    path.write_text("00ff\n1020\n")
    assert read_ciphertexts(str(path)) == [b"\x00\xff", b"\x10\x20"]


def test_read_missing_file(tmp_path):
    with pytest.raises(CiphertextError, match="couldn't read"):
        read_ciphertexts(str(tmp_path / "missing.txt"))


def test_read_empty_file(tmp_path):
    path = tmp_path / "ciphertext.txt"
    path.write_text("# only comments\n")
    with pytest.raises(CiphertextError, match="no ciphertexts"):
        read_ciphertexts(str(path))


def test_read_url(monkeypatch):
    calls = []

    def fake_get(url, timeout):
        calls.append((url, timeout))
        return FakeResponse("aabb\nccdd\n")

    monkeypatch.setattr(ciphertext_source.requests, "get", fake_get)
    assert read_ciphertexts("https://example.test/batch.txt") == [b"\xaa\xbb", b"\xcc\xdd"]
    assert calls == [("https://example.test/batch.txt", ciphertext_source.REQUEST_TIMEOUT)]


def test_read_url_http_error(monkeypatch):
    monkeypatch.setattr(ciphertext_source.requests, "get", lambda url, timeout: FakeResponse("", 404))
    with pytest.raises(CiphertextError, match="couldn't fetch"):
        read_ciphertexts("http://example.test/batch.txt")


def test_read_url_connection_error(monkeypatch):
    def fake_get(url, timeout):
        raise requests.ConnectionError("refused")

    monkeypatch.setattr(ciphertext_source.requests, "get", fake_get)
    with pytest.raises(CiphertextError, match="refused"):
        read_ciphertexts("http://example.test/batch.txt")
