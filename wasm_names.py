"""
wasm_names.py - WebAssembly Name Resolution
============================================
Recovers function names from the optional ``name`` custom section of
decoded modules and collects them per module index.
"""

import logging
from pathlib import Path
from typing import Dict, Optional, Union

from config import Config
from models import AggregateKey, U32_MAX
from utils import NameSectionError, read_binary
from wasm_module import ByteReader, WasmModule, decode_module


logger = logging.getLogger(__name__)

NAME_SUBSECTION_MODULE = 0
NAME_SUBSECTION_FUNCTION = 1
NAME_SUBSECTION_LOCAL = 2


def parse_function_names(module: WasmModule) -> Dict[int, str]:
    """Map function index to name from the module's ``name`` section.

    Returns an empty dict when the section is absent and raises
    NameSectionError when it is present but malformed. Subsections other
    than function names are skipped.
    """
    payload = module.custom_section(Config.NAMES['section_name'])
    if payload is None:
        return {}

    reader = ByteReader(payload, NameSectionError, "name section")
    names = {}

    while not reader.eof:
        subsection_id = reader.byte()
        body = reader.read(reader.u32())
        if subsection_id != NAME_SUBSECTION_FUNCTION:
            continue

        sub = ByteReader(body, NameSectionError, "function names")
        for _ in range(sub.u32()):
            index = sub.u32()
            names[index] = sub.name()
        sub.done()

    return names


class NameResolver:
    """Collects module labels and function names for report rendering."""

    def __init__(self):
        self.modules: Dict[int, str] = {}
        self.names: Dict[AggregateKey, str] = {}

    def register(self, module_index: int, module_label: str, module_binary: bytes):
        """Decode ``module_binary`` and record its label and function names.

        The binary is fully decoded before anything is recorded, so a failed
        registration leaves both maps unchanged. A malformed name section
        fails the registration. Re-registering an index overwrites its label
        and any names for the same function indices.
        """
        if not 0 <= module_index <= U32_MAX:
            raise ValueError(f"module index out of range: {module_index}")

        module = decode_module(module_binary)
        function_names = parse_function_names(module)

        if module.custom_section(Config.NAMES['section_name']) is None:
            logger.warning(f"Module {module_label} has no name section; "
                           f"functions will be shown by index")

        self.modules[module_index] = module_label
        for func_index, name in function_names.items():
            self.names[AggregateKey(module_index, func_index)] = name

        logger.info(f"Registered module {module_index} ({module_label}) "
                    f"with {len(function_names)} function names")

    def register_file(self, module_index: int, path: Union[str, Path],
                      module_label: Optional[str] = None):
        """Read and register a module file, labelled by its file name by default."""
        path = Path(path)
        data = read_binary(path)
        self.register(module_index, module_label or path.name, data)
