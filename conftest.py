"""
Shared pytest fixtures: in-memory WebAssembly modules, profile CSV files
and configuration isolation.
"""

import copy

import pytest

from config import Config
from wasm_module import Section, SECTION_CUSTOM, WASM_MAGIC, WASM_VERSION


def encode_u32(value):
    """Encode an unsigned LEB128 value."""
    out = bytearray()
    while True:
        b = value & 0x7f
        value >>= 7
        if value:
            out.append(b | 0x80)
        else:
            out.append(b)
            return bytes(out)


def encode_name(name):
    raw = name.encode('utf-8')
    return encode_u32(len(raw)) + raw


def encode_vec(items):
    return encode_u32(len(items)) + b''.join(items)


def section_bytes(section):
    body = section.payload
    if section.id == SECTION_CUSTOM:
        body = encode_name(section.name or '') + body
    return bytes([section.id]) + encode_u32(len(body)) + body


def module_bytes(sections=()):
    out = WASM_MAGIC + WASM_VERSION.to_bytes(4, 'little')
    return out + b''.join(section_bytes(s) for s in sections)


def subsection(subsection_id, body):
    return bytes([subsection_id]) + encode_u32(len(body)) + body


def function_sections(count):
    """Type, function and code sections for ``count`` functions of type () -> ()."""
    if not count:
        return []
    return [
        Section(1, encode_vec([b'\x60\x00\x00'])),
        Section(3, encode_vec([encode_u32(0)] * count)),
        Section(10, encode_vec([b'\x02\x00\x0b'] * count)),
    ]


def name_section_payload(function_names=None, module_name=None, with_locals=False):
    payload = b''
    if module_name is not None:
        payload += subsection(0, encode_name(module_name))
    if function_names is not None:
        body = encode_u32(len(function_names))
        for index, name in sorted(function_names.items()):
            body += encode_u32(index) + encode_name(name)
        payload += subsection(1, body)
    if with_locals:
        # one function (0) with one local (0) called "x"
        payload += subsection(2, encode_u32(1) + encode_u32(0) + encode_u32(1)
                              + encode_u32(0) + encode_name('x'))
    return payload


@pytest.fixture
def build_module():
    """Serialize a list of sections into module bytes."""
    return module_bytes


@pytest.fixture
def make_module():
    """Build a valid module with ``functions`` bodies and an optional name section."""
    def _make(function_names=None, module_name=None, with_locals=False, functions=0, sections=()):
        all_sections = function_sections(functions) + list(sections)
        if function_names is not None or module_name is not None or with_locals:
            payload = name_section_payload(function_names, module_name, with_locals)
            all_sections.append(Section(SECTION_CUSTOM, payload, 'name'))
        return module_bytes(all_sections)
    return _make


@pytest.fixture
def make_name_payload():
    return name_section_payload


@pytest.fixture
def write_csv(tmp_path):
    """Write a profile CSV from a header and rows; returns its path."""
    def _write(header, rows, name='profile.csv'):
        path = tmp_path / name
        lines = [header] + [','.join(str(v) for v in row) for row in rows]
        path.write_text('\n'.join(lines) + '\n')
        return path
    return _write


@pytest.fixture(autouse=True)
def restore_config():
    saved = {key: copy.deepcopy(value) for key, value in Config.to_dict().items()}
    yield
    for key, value in saved.items():
        setattr(Config, key, value)
