import heapq
from typing import Callable, List, Optional

from bitio import BitInputStream, BitOutputStream

BITS_PER_WORD = 8
BITS_PER_INT = 32
ALPH_SIZE = 1 << BITS_PER_WORD
PSEUDO_EOF = ALPH_SIZE # end-of-stream symbol, never a real byte
HUFF_NUMBER = 0xface8200
HUFF_TREE = HUFF_NUMBER | 1 # magic tag for the tree-header format

MAX_TREE_DEPTH = ALPH_SIZE # 257 leaves can never sit deeper than this


class HuffException(Exception): # base for every stream-format failure
    pass

class BadMagic(HuffException):
    pass

class MalformedHeader(HuffException):
    pass

class TruncatedStream(HuffException):
    pass


class HuffmanNode: # Node for Huffman tree
    def __init__(self, symbol, frequency, left=None, right=None):
        self.symbol = symbol    # 0..256, or None for internal nodes
        self.frequency = frequency
        self.left = left
        self.right = right
        if symbol is not None:
            self.min_symbol = symbol
        else:
            self.min_symbol = min(left.min_symbol, right.min_symbol)

    def __lt__(self, other):
        # equal weights fall back to the smallest symbol under each node
        return (self.frequency, self.min_symbol) < (other.frequency, other.min_symbol)

    def __repr__(self):
        if self.symbol is not None:
            return f"HuffmanNode(symbol={self.symbol}, frequency={self.frequency})"
        return f"HuffmanNode(frequency={self.frequency}, left={self.left!r}, right={self.right!r})"


def read_for_counts(bit_in: BitInputStream) -> List[int]:
    """
    Counts every 8-bit chunk until the end of input. The caller rewinds
    the stream before reading it again.
    """
    counts = [0] * (ALPH_SIZE + 1)
    while True:
        bits = bit_in.read_bits(BITS_PER_WORD)
        if bits is None:
            break
        counts[bits] += 1
    counts[PSEUDO_EOF] = 1
    return counts


def build_huffman_tree(counts: List[int]) -> HuffmanNode: # counts: frequency table indexed by symbol
    priority_queue = [HuffmanNode(symbol, count) for symbol, count in enumerate(counts) if count > 0]
    if not priority_queue:
        raise ValueError("frequency table has no symbols to encode")
    heapq.heapify(priority_queue)

    # Build the tree
    while len(priority_queue) > 1:
        left = heapq.heappop(priority_queue)
        right = heapq.heappop(priority_queue)
        merged_node = HuffmanNode(None, left.frequency + right.frequency, left, right)
        heapq.heappush(priority_queue, merged_node)

    root = priority_queue[0]
    if root.symbol is not None:
        # A lone leaf has an empty path; hang it left of a zero-weight
        # placeholder so it gets the code "0"
        placeholder = HuffmanNode(1 if root.symbol == 0 else 0, 0)
        root = HuffmanNode(None, root.frequency, root, placeholder)
    return root


def generate_huffman_codes(root: HuffmanNode) -> List[str]:
    codes = [""] * (ALPH_SIZE + 1)
    def generate_codes_helper(node, current_code): # recursive helper function to traverse the tree and generate codes
        # Leaf node -> assign code
        if node.symbol is not None:
            codes[node.symbol] = current_code
            return

        generate_codes_helper(node.left, current_code + '0')
        generate_codes_helper(node.right, current_code + '1')

    generate_codes_helper(root, '')
    return codes


def write_header(root: HuffmanNode, bit_out: BitOutputStream) -> None:
    """
    Pre-order tree dump: 0 for an internal node followed by both subtrees,
    1 for a leaf followed by its 9-bit symbol
    """
    if root.symbol is not None:
        bit_out.write_bits(1, 1)
        bit_out.write_bits(BITS_PER_WORD + 1, root.symbol)
    else:
        bit_out.write_bits(1, 0)
        write_header(root.left, bit_out)
        write_header(root.right, bit_out)


def read_tree_header(bit_in: BitInputStream, depth: int = 0) -> HuffmanNode:
    bit = bit_in.read_bits(1)
    if bit is None:
        raise MalformedHeader(f"stream ended while reading tree node at depth {depth}")
    if bit == 0:
        if depth >= MAX_TREE_DEPTH:
            raise MalformedHeader(f"tree header nests deeper than {MAX_TREE_DEPTH} levels")
        left = read_tree_header(bit_in, depth + 1)
        right = read_tree_header(bit_in, depth + 1)
        return HuffmanNode(None, 0, left, right)

    value = bit_in.read_bits(BITS_PER_WORD + 1)
    if value is None:
        raise MalformedHeader(f"stream ended while reading leaf symbol at depth {depth}")
    if value > PSEUDO_EOF:
        raise MalformedHeader(f"leaf symbol {value} is outside 0..{PSEUDO_EOF}")
    return HuffmanNode(value, 0)


def write_compressed_bits(codes: List[str], bit_in: BitInputStream, bit_out: BitOutputStream) -> None:
    while True:
        bits = bit_in.read_bits(BITS_PER_WORD)
        if bits is None:
            break
        code = codes[bits]
        if not code:
            raise ValueError(f"no code for byte {bits}; input changed between passes")
        bit_out.write_bits(len(code), int(code, 2))

    # the decoder has no length field, so the terminator code is mandatory
    code = codes[PSEUDO_EOF]
    bit_out.write_bits(len(code), int(code, 2))


def read_compressed_bits(root: HuffmanNode, bit_in: BitInputStream, bit_out: BitOutputStream) -> int:
    if root.symbol is not None:
        raise MalformedHeader("tree is a single leaf, no symbol has a code")

    decoded = 0
    current = root
    while True:
        bit = bit_in.read_bits(1)
        if bit is None:
            raise TruncatedStream(f"stream ended after {decoded} symbols without PSEUDO_EOF")
        current = current.right if bit == 1 else current.left

        # Leaf
        if current.symbol is not None:
            if current.symbol == PSEUDO_EOF:
                return decoded
            bit_out.write_bits(BITS_PER_WORD, current.symbol)
            decoded += 1
            current = root


Report = Optional[Callable[[str], None]]


def compress(bit_in: BitInputStream, bit_out: BitOutputStream, report: Report = None) -> int:
    """
    Compresses bit_in into bit_out and closes bit_out. bit_in is read twice,
    so it must support reset(). Returns the number of bits written.

    report: optional callable taking one line of trace text
    """
    counts = read_for_counts(bit_in)
    root = build_huffman_tree(counts)
    codes = generate_huffman_codes(root)
    if report is not None:
        for symbol, code in enumerate(codes):
            if code:
                report(f"encoding for {symbol} is {code} (count {counts[symbol]})")

    bit_out.write_bits(BITS_PER_INT, HUFF_TREE)
    write_header(root, bit_out)
    if report is not None:
        report(f"header occupies {bit_out.bits_written - BITS_PER_INT} bits")

    bit_in.reset()
    write_compressed_bits(codes, bit_in, bit_out)
    bit_out.close()
    if report is not None:
        report(f"read {bit_in.bits_read} bits, wrote {bit_out.bits_written} bits")
    return bit_out.bits_written


def decompress(bit_in: BitInputStream, bit_out: BitOutputStream, report: Report = None) -> int:
    """
    Inverse of compress(). Raises BadMagic, MalformedHeader or
    TruncatedStream on the first unrecoverable condition.
    """
    bits = bit_in.read_bits(BITS_PER_INT)
    if bits is None:
        raise BadMagic("stream is shorter than the 32-bit magic number")
    if bits != HUFF_TREE:
        raise BadMagic(f"illegal header starts with {bits:#010x}")

    root = read_tree_header(bit_in)
    decoded = read_compressed_bits(root, bit_in, bit_out)
    bit_out.close()
    if report is not None:
        report(f"decoded {decoded} symbols")
        report(f"read {bit_in.bits_read} bits, wrote {bit_out.bits_written} bits")
    return bit_out.bits_written


def compress_bytes(data: bytes) -> bytes:
    bit_out = BitOutputStream()
    compress(BitInputStream(data), bit_out)
    return bit_out.getvalue()


def decompress_bytes(data: bytes) -> bytes:
    bit_out = BitOutputStream()
    decompress(BitInputStream(data), bit_out)
    return bit_out.getvalue()


class HuffProcessor:
    """
    Stateless compress/decompress front end; the codec never prints, the
    report callable decides where trace output goes
    """
    def __init__(self, report: Report = None):
        self.report = report

    def compress(self, bit_in: BitInputStream, bit_out: BitOutputStream) -> int:
        return compress(bit_in, bit_out, self.report)

    def decompress(self, bit_in: BitInputStream, bit_out: BitOutputStream) -> int:
        return decompress(bit_in, bit_out, self.report)
