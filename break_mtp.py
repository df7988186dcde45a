import argparse
import sys
from collections import Counter, namedtuple
from concurrent.futures import ThreadPoolExecutor, as_completed
from itertools import combinations

from ciphertext_source import CiphertextError, read_ciphertexts

SPACE = 0x20
DEFAULT_WORKERS = 1  # Number of threads scanning ciphertext pairs
UNKNOWN_MARK = "?"

Resolution = namedtuple("Resolution", "position votes maximum options chosen key_byte")
Recovery = namedtuple("Recovery", "key resolutions decoded unresolved")


class SpacePolicy:
    """
    Decides which XORed byte pairs look like a space collision, and how the
    key byte follows from the ciphertext byte of a winning space.

    c1 ^ c2 = m1 ^ k ^ m2 ^ k = m1 ^ m2. A space xored with a letter flips its
    case bit, so the result is still a letter. Two spaces give 0, and so do
    any two equal bytes; `accept_zero` decides whether 0 counts.
    """

    def __init__(self, dominant=SPACE, accept_zero=True):
        self.dominant = dominant
        self.accept_zero = accept_zero

    def is_collision(self, xored):
        if xored == 0:
            return self.accept_zero
        return 0x41 <= xored <= 0x5A or 0x61 <= xored <= 0x7A

    def key_byte(self, cipher_byte):
        # c = dominant ^ k  =>  k = c ^ dominant
        return cipher_byte ^ self.dominant


def _lowest_index(options, first_seen):
    best = max(options.values())
    return min((b for b, n in options.items() if n == best), key=lambda b: first_seen[b])


def _lowest_byte(options, first_seen):
    best = max(options.values())
    return min(b for b, n in options.items() if n == best)


TIE_BREAKS = {
    "lowest-index": _lowest_index,
    "lowest-byte": _lowest_byte,
}


def _fallback_zero(cipher_byte):
    return chr(cipher_byte)


def _fallback_space(cipher_byte):
    return " "


def _fallback_unknown(cipher_byte):
    return UNKNOWN_MARK


FALLBACKS = {
    "zero": _fallback_zero,
    "space": _fallback_space,
    "unknown": _fallback_unknown,
}


def _lookup(table, name, what):
    try:
        return table[name]
    except KeyError:
        raise ValueError(f"unknown {what} {name!r}, expected one of {', '.join(table)}") from None


def scan_pair(c1_idx, c1, c2_idx, c2, length, policy):
    """Partial vote table for a single pair of ciphertexts."""
    table = {}
    for position, (b1, b2) in enumerate(zip(c1[:length], c2[:length])):
        if policy.is_collision(b1 ^ b2):
            votes = table.setdefault(position, Counter())
            votes[c1_idx] += 1
            votes[c2_idx] += 1
    return table


def merge_votes(table, partial):
    for position, votes in partial.items():
        table.setdefault(position, Counter()).update(votes)
    return table


def collect_votes(ciphertexts, length, policy=None, workers=DEFAULT_WORKERS):
    """
    Vote table of space collisions: position -> Counter(ciphertext index -> votes).

    Every unordered pair is scanned once over its first `length` bytes. With
    more than one worker the pairs are scanned in a thread pool and the
    partial tables are summed, which gives the same table.
    """
    policy = policy or SpacePolicy()
    pairs = list(combinations(enumerate(ciphertexts), 2))
    table = {}

    if workers <= 1:
        for (c1_idx, c1), (c2_idx, c2) in pairs:
            merge_votes(table, scan_pair(c1_idx, c1, c2_idx, c2, length, policy))
        return table

    with ThreadPoolExecutor(max_workers=workers) as executor:
        futures = [
            executor.submit(scan_pair, c1_idx, c1, c2_idx, c2, length, policy)
            for (c1_idx, c1), (c2_idx, c2) in pairs
        ]
        for future in as_completed(futures):
            merge_votes(table, future.result())
    return table


def resolve_position(position, votes, ciphertexts, policy=None, tie_break="lowest-index"):
    policy = policy or SpacePolicy()
    choose = _lookup(TIE_BREAKS, tie_break, "tie-break")

    maximum = max(votes.values())

    # byte values of the most voted ciphertexts, in index order
    options = Counter()
    first_seen = {}
    for c_idx in sorted(votes):
        if votes[c_idx] != maximum:
            continue
        cipher_byte = ciphertexts[c_idx][position]
        options[cipher_byte] += 1
        first_seen.setdefault(cipher_byte, c_idx)

    chosen = choose(options, first_seen)
    # we assume that `chosen` is the value of the space character after encryption
    return Resolution(position, dict(votes), maximum, dict(options), chosen, policy.key_byte(chosen))


def assemble_key(length, resolutions):
    key = [None] * length
    for resolution in resolutions:
        key[resolution.position] = resolution.key_byte
    return key


def key_bytes(key):
    """Key as bytes, unresolved slots left at zero."""
    return bytes(k if k is not None else 0 for k in key)


def key_hex(key):
    return key_bytes(key).hex()


def decode(ciphertext, key, fallback="zero"):
    unresolved = _lookup(FALLBACKS, fallback, "fallback")
    plaintext = []
    for byte, k in zip(ciphertext, key):
        if k is not None:
            plaintext.append(chr(byte ^ k))
        else:
            plaintext.append(unresolved(byte))
    return "".join(plaintext)


def decode_all(ciphertexts, key, fallback="zero"):
    return [decode(ct, key, fallback) for ct in ciphertexts]


def recover(ciphertexts, policy=None, tie_break="lowest-index", workers=DEFAULT_WORKERS, fallback="zero"):
    """
    Recover the reused keystream and decode the target, the last ciphertext.
    """
    if not ciphertexts:
        raise ValueError("at least one ciphertext is required")
    policy = policy or SpacePolicy()

    # assume target ciphertext is at the end
    target = ciphertexts[-1]
    table = collect_votes(ciphertexts, len(target), policy, workers)

    resolutions = [
        resolve_position(position, table[position], ciphertexts, policy, tie_break)
        for position in sorted(table)
    ]
    key = assemble_key(len(target), resolutions)
    unresolved = [position for position, k in enumerate(key) if k is None]

    return Recovery(key, resolutions, decode(target, key, fallback), unresolved)


def print_resolution(resolution):
    print()
    print("========")
    print(f"There is a space character (0x20) at index {resolution.position} for {resolution.votes}")
    print(f"The maximum number of occurrence is {resolution.maximum}")
    print(f"Options: {resolution.options}")
    print(f"Choose {resolution.chosen}")


def parse_args(argv=None):
    parser = argparse.ArgumentParser(
        description="Recover a keystream reused across several XOR ciphertexts and decode the last one."
    )
    parser.add_argument("source", help="file (or http(s) URL) with one hex ciphertext per line, '#' lines ignored")
    parser.add_argument("--workers", type=int, default=DEFAULT_WORKERS, help="threads scanning ciphertext pairs")
    parser.add_argument("--tie-break", choices=sorted(TIE_BREAKS), default="lowest-index")
    parser.add_argument("--fallback", choices=sorted(FALLBACKS), default="zero",
                        help="how positions without votes are decoded")
    parser.add_argument("--no-zero-collisions", action="store_true",
                        help="do not count identical bytes as two spaces")
    parser.add_argument("--all", action="store_true", help="decode every ciphertext, not only the target")
    parser.add_argument("-q", "--quiet", action="store_true", help="skip per-position diagnostics")
    return parser.parse_args(argv)


def main(argv=None):
    args = parse_args(argv)

    try:
        ciphertexts = read_ciphertexts(args.source)
    except CiphertextError as e:
        sys.exit(f"error: {e}")

    policy = SpacePolicy(accept_zero=not args.no_zero_collisions)
    result = recover(ciphertexts, policy, args.tie_break, args.workers, args.fallback)

    if not args.quiet:
        for resolution in result.resolutions:
            print_resolution(resolution)

    print()
    print(f"Found key: {key_hex(result.key)}")
    if result.unresolved:
        print(f"Unresolved positions ({len(result.unresolved)}): {result.unresolved}")

    if args.all:
        print("\nDecrypted Plaintexts:")
        for plaintext in decode_all(ciphertexts, result.key, args.fallback):
            print(plaintext)

    print()
    print(f"Decoded message: {result.decoded}")


if __name__ == "__main__":
    main()
