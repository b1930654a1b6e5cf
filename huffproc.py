"""
Command-line front end for the Huffman tree-header codec

How to run:
  python huffproc.py compress notes.txt notes.hf
  python huffproc.py decompress notes.hf notes.out --verbose
"""

import argparse
import sys
from pathlib import Path
from typing import List, Optional

import huffman as huff
from bitio import BitInputStream, BitOutputStream


def run(mode: str, in_path: Path, out_path: Path, verbose: bool = False) -> int:
    report = print if verbose else None
    processor = huff.HuffProcessor(report=report)

    with BitInputStream.from_path(in_path) as bit_in, BitOutputStream.from_path(out_path) as bit_out:
        if mode == "compress":
            processor.compress(bit_in, bit_out)
        else:
            processor.decompress(bit_in, bit_out)
        bits_written = bit_out.bits_written

    in_bytes = in_path.stat().st_size
    out_bytes = (bits_written + 7) // 8
    ratio = out_bytes / max(1, in_bytes)
    print(f"{mode}: {in_path} ({in_bytes} bytes) -> {out_path} ({out_bytes} bytes), ratio {ratio:.3f}")
    return 0


def main(argv: Optional[List[str]] = None) -> int:
    ap = argparse.ArgumentParser(description="Huffman coding with an embedded tree header")
    ap.add_argument("mode", choices=("compress", "decompress"))
    ap.add_argument("input", type=str, help="File to read")
    ap.add_argument("output", type=str, help="File to write")
    ap.add_argument("-v", "--verbose", action="store_true", help="Print code table and bit counts")
    args = ap.parse_args(argv)

    in_path = Path(args.input)
    out_path = Path(args.output)
    if not in_path.is_file():
        print(f"huffproc: no such file: {in_path}", file=sys.stderr)
        return 2
    if in_path.resolve() == out_path.resolve():
        # opening the output would truncate the input before it is read
        print(f"huffproc: input and output are the same file: {in_path}", file=sys.stderr)
        return 2

    try:
        return run(args.mode, in_path, out_path, verbose=args.verbose)
    except (huff.HuffException, ValueError) as e:
        # don't leave a half-written output behind
        out_path.unlink(missing_ok=True)
        print(f"huffproc: {args.mode} failed: {e}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    raise SystemExit(main())
