import random

import pytest

import huffman as huff
from bitio import BitInputStream, BitOutputStream


def counts_for(data: bytes):
    return huff.read_for_counts(BitInputStream(data))

def leaves(node):
    if node.symbol is not None:
        return [node]
    return leaves(node.left) + leaves(node.right)

def same_shape(a, b) -> bool:
    if (a.symbol is None) != (b.symbol is None):
        return False
    if a.symbol is not None:
        return a.symbol == b.symbol
    return same_shape(a.left, b.left) and same_shape(a.right, b.right)

def header_round_trip(root):
    out = BitOutputStream()
    huff.write_header(root, out)
    out.close()
    return huff.read_tree_header(BitInputStream(out.getvalue()))

def random_bytes(n: int, seed: int, alphabet: int = 256) -> bytes:
    rng = random.Random(seed)
    return bytes(rng.randrange(alphabet) for _ in range(n))


# Frequency counting

def test_read_for_counts_abb():
    counts = counts_for(b"abb")
    assert len(counts) == huff.ALPH_SIZE + 1
    assert counts[ord("a")] == 1
    assert counts[ord("b")] == 2
    assert counts[huff.PSEUDO_EOF] == 1
    assert sum(counts) == 4


def test_read_for_counts_empty_input_only_has_eof():
    counts = counts_for(b"")
    assert counts[huff.PSEUDO_EOF] == 1
    assert sum(counts) == 1


def test_read_for_counts_does_not_rewind():
    bit_in = BitInputStream(b"xyz")
    huff.read_for_counts(bit_in)
    assert bit_in.read_bits(8) is None


# Tree building

def test_abb_tree_shape_follows_tie_break():
    root = huff.build_huffman_tree(counts_for(b"abb"))
    assert root.symbol is None
    assert root.frequency == 4

    inner = root.left
    assert inner.symbol is None
    assert inner.frequency == 2
    assert inner.left.symbol == ord("a")
    assert inner.right.symbol == huff.PSEUDO_EOF

    assert root.right.symbol == ord("b")
    assert root.right.frequency == 2


def test_abb_codes():
    codes = huff.generate_huffman_codes(huff.build_huffman_tree(counts_for(b"abb")))
    assert codes[ord("a")] == "00"
    assert codes[huff.PSEUDO_EOF] == "01"
    assert codes[ord("b")] == "1"
    assert sum(1 for c in codes if c) == 3


def test_tie_break_uses_smallest_symbol():
    counts = [0] * (huff.ALPH_SIZE + 1)
    for symbol in (200, 5, 100, huff.PSEUDO_EOF):
        counts[symbol] = 1
    root = huff.build_huffman_tree(counts)
    # 5 and 100 merge first, then 200 and PSEUDO_EOF
    assert [leaf.symbol for leaf in leaves(root)] == [5, 100, 200, huff.PSEUDO_EOF]


def test_single_byte_repeated_tree_has_two_leaves():
    root = huff.build_huffman_tree(counts_for(b"aaaa"))
    assert sorted(leaf.symbol for leaf in leaves(root)) == [ord("a"), huff.PSEUDO_EOF]
    assert root.left.symbol == huff.PSEUDO_EOF
    assert root.right.symbol == ord("a")
    assert root.frequency == 5


def test_lone_eof_gets_a_one_bit_code():
    root = huff.build_huffman_tree(counts_for(b""))
    assert root.symbol is None
    assert root.left.symbol == huff.PSEUDO_EOF
    assert root.right.frequency == 0
    assert [leaf.symbol for leaf in leaves(root) if leaf.frequency > 0] == [huff.PSEUDO_EOF]

    codes = huff.generate_huffman_codes(root)
    assert codes[huff.PSEUDO_EOF] == "0"


def test_lone_symbol_zero_gets_distinct_placeholder():
    counts = [0] * (huff.ALPH_SIZE + 1)
    counts[0] = 3
    root = huff.build_huffman_tree(counts)
    assert root.left.symbol == 0
    assert root.right.symbol == 1
    assert huff.generate_huffman_codes(root)[0] == "0"


def test_empty_table_rejected():
    with pytest.raises(ValueError):
        huff.build_huffman_tree([0] * (huff.ALPH_SIZE + 1))


def test_internal_weight_is_sum_of_children():
    def check(node):
        if node.symbol is None:
            assert node.frequency == node.left.frequency + node.right.frequency
            check(node.left)
            check(node.right)

    counts = counts_for(b"the quick brown fox jumps over the lazy dog")
    root = huff.build_huffman_tree(counts)
    check(root)
    for leaf in leaves(root):
        assert leaf.frequency == counts[leaf.symbol]


# Code table

@pytest.mark.parametrize("data", [
    b"",
    b"abb",
    b"mississippi river",
    bytes(range(256)),
    random_bytes(2000, seed=7, alphabet=40),
])
def test_codes_form_prefix_code(data):
    codes = [c for c in huff.generate_huffman_codes(huff.build_huffman_tree(counts_for(data))) if c]
    for i, a in enumerate(codes):
        for j, b in enumerate(codes):
            if i != j:
                assert not b.startswith(a)


def test_absent_symbols_have_empty_code():
    codes = huff.generate_huffman_codes(huff.build_huffman_tree(counts_for(b"abb")))
    assert codes[ord("c")] == ""
    assert codes[0] == ""


# Header

def test_abb_header_bits():
    root = huff.build_huffman_tree(counts_for(b"abb"))
    out = BitOutputStream()
    huff.write_header(root, out)
    assert out.bits_written == 32
    out.close()

    bit_in = BitInputStream(out.getvalue())
    assert bit_in.read_bits(1) == 0 # root
    assert bit_in.read_bits(1) == 0 # inner node
    assert bit_in.read_bits(1) == 1
    assert bit_in.read_bits(9) == ord("a")
    assert bit_in.read_bits(1) == 1
    assert bit_in.read_bits(9) == huff.PSEUDO_EOF
    assert bit_in.read_bits(1) == 1
    assert bit_in.read_bits(9) == ord("b")


@pytest.mark.parametrize("seed", range(5))
def test_header_round_trip_keeps_shape(seed):
    data = random_bytes(500 + seed * 300, seed=seed, alphabet=20 + seed * 40)
    root = huff.build_huffman_tree(counts_for(data))
    assert same_shape(root, header_round_trip(root))


def test_header_round_trip_degenerate_tree():
    root = huff.build_huffman_tree(counts_for(b""))
    assert same_shape(root, header_round_trip(root))


def test_read_header_truncated_control_bit():
    root = huff.build_huffman_tree(counts_for(b"abb"))
    out = BitOutputStream()
    huff.write_header(root, out)
    out.close()
    with pytest.raises(huff.MalformedHeader):
        huff.read_tree_header(BitInputStream(out.getvalue()[:2]))


def test_read_header_truncated_leaf_value():
    out = BitOutputStream()
    out.write_bits(1, 1)
    out.write_bits(4, 0)
    out.close()
    with pytest.raises(huff.MalformedHeader):
        huff.read_tree_header(BitInputStream(out.getvalue()))


def test_read_header_rejects_symbol_out_of_range():
    out = BitOutputStream()
    out.write_bits(1, 1)
    out.write_bits(9, 300)
    out.close()
    with pytest.raises(huff.MalformedHeader):
        huff.read_tree_header(BitInputStream(out.getvalue()))


def test_read_header_rejects_runaway_nesting():
    with pytest.raises(huff.MalformedHeader):
        huff.read_tree_header(BitInputStream(bytes(1024)))


# Body

def test_body_ends_with_eof_code():
    data = b"abb"
    codes = huff.generate_huffman_codes(huff.build_huffman_tree(counts_for(data)))
    out = BitOutputStream()
    huff.write_compressed_bits(codes, BitInputStream(data), out)
    assert out.bits_written == 6
    out.close()
    # 00 1 1 01 + padding
    assert out.getvalue() == bytes([0b00110100])


def test_body_rejects_byte_missing_from_table():
    codes = huff.generate_huffman_codes(huff.build_huffman_tree(counts_for(b"abb")))
    with pytest.raises(ValueError):
        huff.write_compressed_bits(codes, BitInputStream(b"abc"), BitOutputStream())


def test_decoder_rejects_leaf_root():
    with pytest.raises(huff.MalformedHeader):
        huff.read_compressed_bits(huff.HuffmanNode(65, 0), BitInputStream(b"\x00"), BitOutputStream())


def test_decoder_stops_at_eof_and_counts_symbols():
    root = huff.build_huffman_tree(counts_for(b"abb"))
    out = BitOutputStream()
    # a b EOF, then trailing bits that must not be consumed
    decoded = huff.read_compressed_bits(root, BitInputStream(bytes([0b00101111])), out)
    out.close()
    assert decoded == 2
    assert out.getvalue() == b"ab"


# Whole stream

@pytest.mark.parametrize("data", [
    b"",
    b"a",
    b"aaaa",
    b"abb",
    b"\x00",
    b"\x00\xff" * 17,
    bytes(range(256)),
    b"This is a test" * 100,
    random_bytes(10 * 1024, seed=1),
    random_bytes(3000, seed=2, alphabet=3),
])
def test_round_trip(data):
    assert huff.decompress_bytes(huff.compress_bytes(data)) == data


def test_abb_stream_layout():
    packed = huff.compress_bytes(b"abb")
    assert len(packed) == 9 # 32 + 32 + 6 bits
    assert packed[:4] == b"\xfa\xce\x82\x01"


def test_empty_input_stream_decodes_to_empty():
    packed = huff.compress_bytes(b"")
    assert len(packed) == 7 # 32 + 21 + 1 bits
    assert huff.decompress_bytes(packed) == b""


def test_compression_is_deterministic():
    data = random_bytes(4096, seed=3, alphabet=64)
    assert huff.compress_bytes(data) == huff.compress_bytes(data)


@pytest.mark.parametrize("data", [b"", b"abb", b"hello, huffman" * 20])
def test_terminator_reached_before_stream_end(data):
    bit_out = BitOutputStream()
    total_bits = huff.compress(BitInputStream(data), bit_out)

    bit_in = BitInputStream(bit_out.getvalue())
    assert bit_in.read_bits(32) == huff.HUFF_TREE
    root = huff.read_tree_header(bit_in)
    huff.read_compressed_bits(root, bit_in, BitOutputStream())
    # only zero padding may follow the terminator
    assert bit_in.bits_read == total_bits


def test_compress_needs_rewindable_input():
    class OneShot(BitInputStream):
        def reset(self):
            raise ValueError("input stream cannot be rewound for a second pass")

    with pytest.raises(ValueError):
        huff.compress(OneShot(b"abc"), BitOutputStream())


def test_corrupt_magic_raises_bad_magic():
    packed = bytearray(huff.compress_bytes(b"Hello World" * 50))
    packed[0] ^= 0xFF
    with pytest.raises(huff.BadMagic, match="0x05ce8201"):
        huff.decompress_bytes(bytes(packed))


def test_short_stream_raises_bad_magic():
    with pytest.raises(huff.BadMagic):
        huff.decompress_bytes(b"\xfa\xce")


def test_stream_without_body_raises_truncated():
    root = huff.build_huffman_tree(counts_for(b"abb"))
    out = BitOutputStream()
    out.write_bits(huff.BITS_PER_INT, huff.HUFF_TREE)
    huff.write_header(root, out)
    out.close()
    with pytest.raises(huff.TruncatedStream):
        huff.decompress_bytes(out.getvalue())


def test_stream_cut_mid_body_raises_truncated():
    packed = huff.compress_bytes(b"This is a test" * 100)
    with pytest.raises(huff.TruncatedStream):
        huff.decompress_bytes(packed[:-3])


def test_stream_cut_in_header_raises_malformed():
    packed = huff.compress_bytes(bytes(range(256)))
    with pytest.raises(huff.MalformedHeader):
        huff.decompress_bytes(packed[:40])


def test_errors_share_a_base_class():
    for exc in (huff.BadMagic, huff.MalformedHeader, huff.TruncatedStream):
        assert issubclass(exc, huff.HuffException)


def test_processor_reports_through_callback():
    lines = []
    processor = huff.HuffProcessor(report=lines.append)
    bit_out = BitOutputStream()
    processor.compress(BitInputStream(b"abb"), bit_out)
    assert "encoding for 256 is 01 (count 1)" in lines
    assert "header occupies 32 bits" in lines
    assert lines[-1] == "read 24 bits, wrote 70 bits"

    lines.clear()
    result = BitOutputStream()
    processor.decompress(BitInputStream(bit_out.getvalue()), result)
    assert result.getvalue() == b"abb"
    assert "decoded 3 symbols" in lines


def test_processor_is_silent_by_default(capsys):
    bit_out = BitOutputStream()
    huff.HuffProcessor().compress(BitInputStream(b"abb"), bit_out)
    assert capsys.readouterr().out == ""
