"""
wasm_module.py - WebAssembly Module Decoding
=============================================
Decodes WebAssembly binaries section by section. Every known section is
walked entry by entry and must be consumed exactly; instruction streams
inside function bodies are only checked for their closing ``end``.
"""

import logging
from dataclasses import dataclass, field
from typing import Callable, Dict, List, Optional, Type

from utils import ModuleDecodeError, ProfilerError


logger = logging.getLogger(__name__)

WASM_MAGIC = b'\x00asm'
WASM_VERSION = 1

SECTION_CUSTOM = 0
SECTION_TYPE = 1
SECTION_IMPORT = 2
SECTION_FUNCTION = 3
SECTION_TABLE = 4
SECTION_MEMORY = 5
SECTION_GLOBAL = 6
SECTION_EXPORT = 7
SECTION_START = 8
SECTION_ELEMENT = 9
SECTION_CODE = 10
SECTION_DATA = 11
SECTION_DATA_COUNT = 12
SECTION_TAG = 13

# Non-custom sections must appear in this order. Data count (12) precedes
# code (10); tag (13) sits between memory and global.
SECTION_ORDER = [1, 2, 3, 4, 5, 13, 6, 7, 8, 9, 12, 10, 11]

FUNC_TYPE_FORM = 0x60
OP_END = 0x0b

REF_TYPES = {0x70, 0x6f}  # funcref, externref
VALUE_TYPES = {0x7f, 0x7e, 0x7d, 0x7c, 0x7b} | REF_TYPES  # i32 i64 f32 f64 v128

# i32/i64 add, sub, mul from the extended constant expressions proposal
EXTENDED_CONST_OPS = {0x6a, 0x6b, 0x6c, 0x7c, 0x7d, 0x7e}


class ByteReader:
    """Cursor over a byte buffer; every failure raises ``error``."""

    def __init__(self, data: bytes, error: Type[ProfilerError], context: str):
        self.data = bytes(data)
        self.pos = 0
        self.error = error
        self.context = context

    @property
    def eof(self) -> bool:
        return self.pos >= len(self.data)

    def fail(self, message: str):
        raise self.error(f"{self.context}: {message} at offset {self.pos}")

    def done(self):
        if not self.eof:
            self.fail(f"{len(self.data) - self.pos} trailing bytes")

    def byte(self) -> int:
        if self.eof:
            self.fail("unexpected end of data")
        value = self.data[self.pos]
        self.pos += 1
        return value

    def _leb(self, bits: int, signed: bool) -> int:
        result = 0
        shift = 0
        for _ in range((bits + 6) // 7):
            b = self.byte()
            result |= (b & 0x7f) << shift
            shift += 7
            if not b & 0x80:
                break
        else:
            self.fail(f"LEB128 value longer than {bits} bits")

        if signed:
            if b & 0x40:
                result -= 1 << shift
            if not -(1 << (bits - 1)) <= result < (1 << (bits - 1)):
                self.fail(f"LEB128 value exceeds {bits} bits")
        elif result >> bits:
            self.fail(f"LEB128 value exceeds {bits} bits")
        return result

    def u32(self) -> int:
        return self._leb(32, signed=False)

    def s32(self) -> int:
        return self._leb(32, signed=True)

    def s64(self) -> int:
        return self._leb(64, signed=True)

    def read(self, size: int) -> bytes:
        if size > len(self.data) - self.pos:
            self.fail(f"length {size} runs past end of data")
        chunk = self.data[self.pos:self.pos + size]
        self.pos += size
        return chunk

    def name(self) -> str:
        raw = self.read(self.u32())
        try:
            return raw.decode('utf-8')
        except UnicodeDecodeError:
            self.fail("name is not valid UTF-8")

    def vec(self, read_item: Callable[['ByteReader'], object]) -> int:
        """Read a length-prefixed vector, returning its length."""
        count = self.u32()
        for _ in range(count):
            read_item(self)
        return count

    # -- value and type encodings ------------------------------------------

    def value_type(self) -> int:
        t = self.byte()
        if t not in VALUE_TYPES:
            self.fail(f"invalid value type 0x{t:02x}")
        return t

    def ref_type(self) -> int:
        t = self.byte()
        if t not in REF_TYPES:
            self.fail(f"invalid reference type 0x{t:02x}")
        return t

    def limits(self):
        flag = self.byte()
        if flag > 0x03:
            self.fail(f"invalid limits flag 0x{flag:02x}")
        minimum = self.u32()
        if flag & 0x01:
            maximum = self.u32()
            if maximum < minimum:
                self.fail(f"limits maximum {maximum} below minimum {minimum}")

    def table_type(self):
        self.ref_type()
        self.limits()

    def global_type(self):
        self.value_type()
        mutability = self.byte()
        if mutability > 0x01:
            self.fail(f"invalid mutability 0x{mutability:02x}")

    def const_expr(self):
        while True:
            op = self.byte()
            if op == OP_END:
                return
            if op == 0x41:      # i32.const
                self.s32()
            elif op == 0x42:    # i64.const
                self.s64()
            elif op == 0x43:    # f32.const
                self.read(4)
            elif op == 0x44:    # f64.const
                self.read(8)
            elif op in (0x23, 0xd2):  # global.get, ref.func
                self.u32()
            elif op == 0xd0:    # ref.null
                self.ref_type()
            elif op not in EXTENDED_CONST_OPS:
                self.fail(f"opcode 0x{op:02x} not allowed in constant expression")


# ============================================================================
# SECTION DECODERS
# ============================================================================

def _func_type(r: ByteReader):
    form = r.byte()
    if form != FUNC_TYPE_FORM:
        r.fail(f"expected function type 0x60, got 0x{form:02x}")
    r.vec(ByteReader.value_type)
    r.vec(ByteReader.value_type)


def _import(r: ByteReader):
    r.name()
    r.name()
    kind = r.byte()
    if kind == 0x00:
        r.u32()
    elif kind == 0x01:
        r.table_type()
    elif kind == 0x02:
        r.limits()
    elif kind == 0x03:
        r.global_type()
    elif kind == 0x04:
        _tag(r)
    else:
        r.fail(f"invalid import kind 0x{kind:02x}")


def _global(r: ByteReader):
    r.global_type()
    r.const_expr()


def _export(r: ByteReader):
    r.name()
    kind = r.byte()
    if kind > 0x04:
        r.fail(f"invalid export kind 0x{kind:02x}")
    r.u32()


def _element(r: ByteReader):
    flags = r.u32()
    if flags > 7:
        r.fail(f"invalid element segment flags {flags}")

    if flags & 0x02 and not flags & 0x01:
        r.u32()  # table index
    if not flags & 0x01:
        r.const_expr()  # offset

    uses_exprs = flags & 0x04
    if flags & 0x03:
        if uses_exprs:
            r.ref_type()
        else:
            kind = r.byte()
            if kind != 0x00:
                r.fail(f"invalid element kind 0x{kind:02x}")

    if uses_exprs:
        r.vec(ByteReader.const_expr)
    else:
        r.vec(ByteReader.u32)


def _code(r: ByteReader):
    body = ByteReader(r.read(r.u32()), r.error, "function body")

    def local_entry(b):
        b.u32()
        b.value_type()

    body.vec(local_entry)
    rest = body.read(len(body.data) - body.pos)
    if not rest or rest[-1] != OP_END:
        body.fail("function body does not end with 'end'")


def _data(r: ByteReader):
    flags = r.u32()
    if flags == 0x02:
        r.u32()  # memory index
    if flags in (0x00, 0x02):
        r.const_expr()
    elif flags != 0x01:
        r.fail(f"invalid data segment flags {flags}")
    r.read(r.u32())


def _tag(r: ByteReader):
    attribute = r.byte()
    if attribute != 0x00:
        r.fail(f"invalid tag attribute 0x{attribute:02x}")
    r.u32()


SECTION_ENTRIES: Dict[int, Callable[[ByteReader], object]] = {
    SECTION_TYPE: _func_type,
    SECTION_IMPORT: _import,
    SECTION_FUNCTION: ByteReader.u32,
    SECTION_TABLE: ByteReader.table_type,
    SECTION_MEMORY: ByteReader.limits,
    SECTION_GLOBAL: _global,
    SECTION_EXPORT: _export,
    SECTION_ELEMENT: _element,
    SECTION_CODE: _code,
    SECTION_DATA: _data,
    SECTION_TAG: _tag,
}


@dataclass
class Section:
    """A module section. ``name`` is set for custom sections only."""
    id: int
    payload: bytes
    name: Optional[str] = None
    entries: int = 0


@dataclass
class WasmModule:
    """A decoded WebAssembly module."""
    sections: List[Section] = field(default_factory=list)
    version: int = WASM_VERSION
    data_count: Optional[int] = None

    def custom_section(self, name: str) -> Optional[bytes]:
        """Payload of the first custom section called ``name``, if any."""
        for section in self.sections:
            if section.id == SECTION_CUSTOM and section.name == name:
                return section.payload
        return None

    def entry_count(self, section_id: int) -> int:
        for section in self.sections:
            if section.id == section_id:
                return section.entries
        return 0


def _decode_section(section_id: int, payload: bytes, module: WasmModule) -> Section:
    reader = ByteReader(payload, ModuleDecodeError, f"section {section_id}")

    if section_id == SECTION_CUSTOM:
        name = reader.name()
        logger.debug(f"Custom section '{name}' ({len(payload)} bytes)")
        return Section(section_id, reader.data[reader.pos:], name)

    entries = 0
    if section_id == SECTION_START:
        reader.u32()
    elif section_id == SECTION_DATA_COUNT:
        module.data_count = reader.u32()
    else:
        entries = reader.vec(SECTION_ENTRIES[section_id])
    reader.done()

    return Section(section_id, payload, entries=entries)


def decode_module(data: bytes) -> WasmModule:
    """Decode a WebAssembly binary.

    Raises ModuleDecodeError if the header, a section frame, a section
    body or the section ordering is invalid, or if the function and code
    sections (or data count and data sections) disagree.
    """
    if not isinstance(data, (bytes, bytearray, memoryview)):
        raise ModuleDecodeError(f"expected bytes, got {type(data).__name__}")

    reader = ByteReader(data, ModuleDecodeError, "module")

    if len(reader.data) < 8 or reader.read(4) != WASM_MAGIC:
        raise ModuleDecodeError("module: missing WebAssembly magic number")

    version = int.from_bytes(reader.read(4), 'little')
    if version != WASM_VERSION:
        raise ModuleDecodeError(f"module: unsupported version {version}")

    module = WasmModule(version=version)
    last_rank = -1

    while not reader.eof:
        section_id = reader.byte()
        payload = reader.read(reader.u32())

        if section_id != SECTION_CUSTOM:
            if section_id not in SECTION_ORDER:
                raise ModuleDecodeError(f"module: unknown section id {section_id}")
            rank = SECTION_ORDER.index(section_id)
            if rank <= last_rank:
                raise ModuleDecodeError(
                    f"module: section {section_id} is duplicated or out of order"
                )
            last_rank = rank

        module.sections.append(_decode_section(section_id, payload, module))

    functions = module.entry_count(SECTION_FUNCTION)
    bodies = module.entry_count(SECTION_CODE)
    if functions != bodies:
        raise ModuleDecodeError(
            f"module: {functions} function declarations but {bodies} bodies"
        )

    segments = module.entry_count(SECTION_DATA)
    if module.data_count is not None and module.data_count != segments:
        raise ModuleDecodeError(
            f"module: data count {module.data_count} but {segments} data segments"
        )

    return module
