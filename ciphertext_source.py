import requests

REQUEST_TIMEOUT = 10


class CiphertextError(ValueError):
    """Ciphertext input that cannot be read or decoded."""


def parse_ciphertexts(text):
    """
    One hex encoded ciphertext per line. Blank lines and lines starting
    with '#' are skipped.
    """
    ciphertexts = []
    for line_no, raw_line in enumerate(text.splitlines(), start=1):
        line = raw_line.strip()
        if not line or line.startswith("#"):
            continue
        try:
            ciphertexts.append(bytes.fromhex(line))
        except ValueError as e:
            raise CiphertextError(f"line {line_no} is not valid hex: {line[:40]!r}") from e
    return ciphertexts


def fetch_text(url):
    try:
        response = requests.get(url, timeout=REQUEST_TIMEOUT)
        response.raise_for_status()
    except requests.RequestException as e:
        raise CiphertextError(f"couldn't fetch ciphertexts from {url}: {e}") from e
    return response.text


def read_text(path):
    try:
        with open(path, "r") as f:
            return f.read()
    except (OSError, UnicodeDecodeError) as e:
        raise CiphertextError(f"couldn't read ciphertext file {path}: {e}") from e


def read_ciphertexts(source):
    """Ciphertexts from a file path or an http(s) URL, target last."""
    if source.startswith(("http://", "https://")):
        text = fetch_text(source)
    else:
        text = read_text(source)

    ciphertexts = parse_ciphertexts(text)
    if not ciphertexts:
        raise CiphertextError(f"no ciphertexts found in {source}")
    return ciphertexts
