import sys
from pathlib import Path

from zexe_core.container import read_trailer


def main():
    if len(sys.argv) != 2:
        print("Usage: corrupt_one_byte.py <image>")
        raise SystemExit(2)

    p = Path(sys.argv[1])
    with open(p, "rb") as f:
        file_len = f.seek(0, 2)
        trailer = read_trailer(f, file_len)
    if trailer is None or trailer.snapshot_size < 8:
        print("No embedded snapshot to corrupt.")
        raise SystemExit(2)

    # Flip a byte in the middle of the compressed snapshot block so the
    # deflate stream no longer inflates (or fails its checksum).
    idx = trailer.offsets(file_len)["snapshot"] + trailer.snapshot_size // 2
    b = bytearray(p.read_bytes())
    b[idx] ^= 0x01
    p.write_bytes(bytes(b))
    print(f"Corrupted 1 byte at offset {idx} in {p}")


if __name__ == "__main__":
    main()
