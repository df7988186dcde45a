import argparse
import os

from cryptography.hazmat.backends import default_backend
from cryptography.hazmat.primitives.ciphers import Cipher, algorithms

KEY_SIZE = 32
NONCE_SIZE = 16  # 4 byte block counter + 12 byte nonce

SAMPLE_PLAINTEXTS = [
    "We can factor the number fifteen with quantum computers. We can also factor the number",
    "Euler would probably enjoy that now his theorem becomes a corner stone of crypto",
    "The nice thing about Keeyloq is now we cryptographers can drive a lot of fancy cars",
    "The ciphertext produced by a weak encryption algorithm looks as good as ciphertext",
    "You don't want to buy a set of car keys from a guy who specializes in stealing cars",
    "There are two types of cryptography that will stop your kid sister from reading files",
    "There are two types of cyptography: one that allows the Government to use brute force",
    "We can see the point where the chip is unhappy if a wrong bit is sent and consumes more",
    "A private key encryption scheme states three algorithms, namely a procedure for keys",
    " The Concise OxfordDictionary (2006) defines crypto as the art of writing or solving",
    "The secret message is: When using a stream cipher, never use the key more than once",
]


def keystream(length, key, nonce):
    """The first `length` bytes of the ChaCha20 keystream for key and nonce."""
    cipher = Cipher(algorithms.ChaCha20(key, nonce), mode=None, backend=default_backend())
    encryptor = cipher.encryptor()
    return encryptor.update(b"\x00" * length) + encryptor.finalize()


def encrypt_with_reused_keystream(plaintexts, key=None, nonce=None):
    """
    Encrypt every plaintext with the same key and nonce, so all of them are
    xored with one keystream. Returns (ciphertexts, key, nonce).
    """
    key = key or os.urandom(KEY_SIZE)
    nonce = nonce or os.urandom(NONCE_SIZE)

    ciphertexts = []
    for plaintext in plaintexts:
        if isinstance(plaintext, str):
            plaintext = plaintext.encode("utf-8")
        # a fresh encryptor restarts the keystream at block 0
        encryptor = Cipher(algorithms.ChaCha20(key, nonce), mode=None, backend=default_backend()).encryptor()
        ciphertexts.append(encryptor.update(plaintext) + encryptor.finalize())
    return ciphertexts, key, nonce


def write_corpus(path, ciphertexts, comment=None):
    with open(path, "w") as f:
        if comment:
            for line in comment.splitlines():
                f.write(f"# {line}\n")
        for ct in ciphertexts:
            f.write(ct.hex() + "\n")


def read_plaintexts(path):
    with open(path, "r", encoding="utf-8") as f:
        return [line.rstrip("\n") for line in f if line.strip()]


def main(argv=None):
    parser = argparse.ArgumentParser(description="Write ChaCha20 ciphertexts that all reuse one keystream.")
    parser.add_argument("plaintexts", nargs="?", help="file with one plaintext per line, the last one is the target")
    parser.add_argument("-o", "--output", default="ciphertext.txt")
    args = parser.parse_args(argv)

    plaintexts = read_plaintexts(args.plaintexts) if args.plaintexts else SAMPLE_PLAINTEXTS
    ciphertexts, key, nonce = encrypt_with_reused_keystream(plaintexts)

    target_len = len(ciphertexts[-1])
    comment = f"ChaCha20 with a reused nonce, {len(ciphertexts)} ciphertexts, target is the last line\n" \
              f"keystream: {keystream(target_len, key, nonce).hex()}"
    write_corpus(args.output, ciphertexts, comment)
    print(f"Wrote {len(ciphertexts)} ciphertexts to {args.output}")


if __name__ == "__main__":
    main()
