"""
Tests for WebAssembly module decoding.
"""

import pytest

from utils import ModuleDecodeError
from wasm_module import ByteReader, Section, SECTION_CUSTOM, decode_module

EMPTY_MODULE = b'\x00asm\x01\x00\x00\x00'


def test_empty_module(build_module):
    assert build_module([]) == EMPTY_MODULE

    module = decode_module(EMPTY_MODULE)

    assert module.sections == []
    assert module.custom_section('name') is None


def test_decode_keeps_sections_in_order(make_module):
    data = make_module(function_names={0: 'main'}, functions=2,
                       sections=[Section(11, b'\x00')])

    module = decode_module(data)

    assert [s.id for s in module.sections] == [1, 3, 10, 11, 0]
    assert module.sections[-1].name == 'name'
    assert module.entry_count(10) == 2
    assert module.data_count is None


def test_sections_must_follow_canonical_order(build_module):
    data = build_module([Section(1, b'\x00'), Section(12, b'\x00'), Section(10, b'\x00')])

    assert [s.id for s in decode_module(data).sections] == [1, 12, 10]


def test_full_module(build_module):
    data = build_module([
        Section(1, b'\x02' + b'\x60\x01\x7f\x01\x7f' + b'\x60\x00\x00'),  # (i32)->i32, ()->()
        Section(2, b'\x01' + b'\x03env' + b'\x03mem' + b'\x02\x00\x01'),  # memory import
        Section(3, b'\x02\x00\x01'),
        Section(4, b'\x01\x70\x01\x01\x02'),                              # funcref table 1..2
        Section(6, b'\x01\x7f\x01\x41\x7f\x0b'),                          # mut i32 = -1
        Section(7, b'\x01\x04main\x00\x01'),
        Section(8, b'\x01'),
        Section(9, b'\x01\x00\x41\x00\x0b\x02\x00\x01'),                   # active, funcs 0 1
        Section(12, b'\x01'),
        Section(10, b'\x02' + b'\x07\x01\x01\x7e\x20\x00\x1a\x0b' + b'\x02\x00\x0b'),
        Section(11, b'\x01\x00\x41\x10\x0b\x02hi'),
        Section(SECTION_CUSTOM, b'\x00', 'producers'),
    ])

    module = decode_module(data)

    assert module.entry_count(1) == 2
    assert module.entry_count(11) == 1
    assert module.custom_section('producers') == b'\x00'


@pytest.mark.parametrize("data", [
    b'',
    b'\x00asm',
    b'\x7fELF\x01\x00\x00\x00',
    b'\x00asm\x02\x00\x00\x00',
    EMPTY_MODULE + b'\x01\x05\x00',              # section runs past the end
    EMPTY_MODULE + b'\x01',                      # missing section size
    EMPTY_MODULE + b'\x0e\x00',                  # unknown section id
    EMPTY_MODULE + b'\x01\xff\xff\xff\xff\x7f',  # size wider than 32 bits
])
def test_invalid_framing(data):
    with pytest.raises(ModuleDecodeError):
        decode_module(data)


@pytest.mark.parametrize("payload", [
    b'\x01\x01\xff',                  # truncated type vector
    b'\x01\x02\x00\x00',              # trailing byte in the type section
    b'\x01\x04\x01\x61\x00\x00',      # bad function type form
    b'\x01\x04\x01\x60\x01\x00',      # bad value type
    b'\x0a\x03\x05\xde\xad',          # code section claims 5 bodies
    b'\x03\x01\x02',                  # function section claims 2 entries
    b'\x02\x04\x01\x00\x00\x05',      # bad import kind
    b'\x05\x02\x01\x04',              # bad limits flag
    b'\x05\x04\x01\x01\x02\x01',      # maximum below minimum
    b'\x06\x05\x01\x7f\x00\x20\x0b',  # local.get in a constant expression
    b'\x07\x04\x01\x00\x05\x00',      # bad export kind
    b'\x09\x02\x01\x08',              # bad element flags
    b'\x0b\x03\x01\x03\x00',          # bad data flags
    b'\x00\x03\x02\xff\xfe',          # custom section name not UTF-8
])
def test_invalid_section_bodies(payload):
    with pytest.raises(ModuleDecodeError):
        decode_module(EMPTY_MODULE + payload)


def test_function_body_must_end(build_module):
    data = build_module([
        Section(1, b'\x01\x60\x00\x00'),
        Section(3, b'\x01\x00'),
        Section(10, b'\x01\x02\x00\x01'),
    ])

    with pytest.raises(ModuleDecodeError):
        decode_module(data)


def test_function_and_code_counts_must_match(build_module):
    data = build_module([Section(1, b'\x01\x60\x00\x00'), Section(3, b'\x01\x00')])

    with pytest.raises(ModuleDecodeError):
        decode_module(data)


def test_data_count_must_match(build_module):
    data = build_module([Section(12, b'\x02'), Section(11, b'\x01\x01\x00')])

    with pytest.raises(ModuleDecodeError):
        decode_module(data)


def test_sections_out_of_order(build_module):
    with pytest.raises(ModuleDecodeError):
        decode_module(build_module([Section(10, b'\x00'), Section(1, b'\x00')]))


def test_duplicate_section(build_module):
    with pytest.raises(ModuleDecodeError):
        decode_module(build_module([Section(3, b'\x00'), Section(3, b'\x00')]))


@pytest.mark.parametrize("data, expected", [
    (b'\x00', 0),
    (b'\xe5\x8e\x26', 624485),
    (b'\xff\xff\xff\xff\x0f', 2 ** 32 - 1),
])
def test_u32(data, expected):
    assert ByteReader(data, ModuleDecodeError, "test").u32() == expected


@pytest.mark.parametrize("data, expected", [
    (b'\x7f', -1),
    (b'\xc0\xbb\x78', -123456),
    (b'\xff\xff\xff\xff\x07', 2 ** 31 - 1),
    (b'\x80\x80\x80\x80\x78', -2 ** 31),
])
def test_s32(data, expected):
    assert ByteReader(data, ModuleDecodeError, "test").s32() == expected


@pytest.mark.parametrize("data", [
    b'\xff\xff\xff\xff\x1f',      # u32 overflow
    b'\x80\x80\x80\x80\x80\x00',  # too many bytes
])
def test_u32_rejects_wide_values(data):
    with pytest.raises(ModuleDecodeError):
        ByteReader(data, ModuleDecodeError, "test").u32()
