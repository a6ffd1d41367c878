"""
Off-chain Universal Validator Creation Code

Assembles the creation code used by the deploy-and-call path.  Executed
through a creation-style ``eth_call``, its constructor:

1. copies the ABI-encoded ``(address signer, bytes32 hash, bytes signature)``
   constructor arguments from the end of the init code into memory,
2. unwraps an ERC-6492 signature and, when the signer has no code yet, calls
   the factory with the deployment calldata (reverting if that call fails),
3. asks a signer that has code through ERC-1271 ``isValidSignature``
   (reverting if that call fails), or recovers a 65-byte signature with the
   ``ecrecover`` precompile for a signer without code,
4. returns the answer as a single byte, ``0x01`` or ``0x00``.

Malformed plain signatures (wrong length, ``v`` not 27/28) revert, which the
verification flow treats as "try local recovery".

Memory layout while the constructor runs:

    0x00          call results and the returned byte
    0x80 .. 0xff  signer, hash, signature pointer, free pointer
    0x200 ..      constructor arguments
    free ..       outgoing calldata
"""

from typing import Dict, List, Tuple, Union

OPCODES: Dict[str, int] = {
    "ADD": 0x01,
    "SUB": 0x03,
    "LT": 0x10,
    "GT": 0x11,
    "EQ": 0x14,
    "ISZERO": 0x15,
    "AND": 0x16,
    "OR": 0x17,
    "BYTE": 0x1A,
    "SHL": 0x1B,
    "SHR": 0x1C,
    "CODESIZE": 0x38,
    "CODECOPY": 0x39,
    "EXTCODESIZE": 0x3B,
    "POP": 0x50,
    "MLOAD": 0x51,
    "MSTORE": 0x52,
    "JUMP": 0x56,
    "JUMPI": 0x57,
    "GAS": 0x5A,
    "JUMPDEST": 0x5B,
    "PUSH1": 0x60,
    "PUSH2": 0x61,
    "PUSH32": 0x7F,
    "DUP1": 0x80,
    "DUP2": 0x81,
    "DUP3": 0x82,
    "DUP4": 0x83,
    "DUP5": 0x84,
    "DUP7": 0x86,
    "SWAP1": 0x90,
    "CALL": 0xF1,
    "RETURN": 0xF3,
    "STATICCALL": 0xFA,
    "REVERT": 0xFD,
}

# Scratch slots
SIGNER_SLOT = 0x80
HASH_SLOT = 0xA0
SIG_SLOT = 0xC0
FREE_SLOT = 0xE0
ARGS_OFFSET = 0x200

ERC1271_MAGIC_VALUE = 0x1626BA7E
ECRECOVER_PRECOMPILE = 0x01

# An instruction is an opcode name, ("push", int), ("push32", bytes),
# ("label", name) or ("ref", name).
Instruction = Union[str, Tuple[str, Union[int, str, bytes]]]


def _push(value: int) -> Tuple[str, int]:
    return ("push", value)


def _ref(label: str) -> Tuple[str, str]:
    return ("ref", label)


def _label(label: str) -> List[Instruction]:
    return [("label", label), "JUMPDEST"]


def _load(slot: int) -> List[Instruction]:
    return [_push(slot), "MLOAD"]


def _store(slot: int) -> List[Instruction]:
    """Store the top of the stack into ``slot``."""
    return [_push(slot), "MSTORE"]


def _jump_if(label: str) -> List[Instruction]:
    return [_ref(label), "JUMPI"]


def _program(magic: bytes) -> List[Instruction]:
    return [
        # args = code[end:]; copied to ARGS_OFFSET
        _ref("end"), "CODESIZE", "SUB",
        "DUP1", _ref("end"), _push(ARGS_OFFSET), "CODECOPY",
        _push(ARGS_OFFSET), "ADD", _push(32), "ADD", *_store(FREE_SLOT),
        _push(ARGS_OFFSET), "MLOAD", *_store(SIGNER_SLOT),
        _push(ARGS_OFFSET + 32), "MLOAD", *_store(HASH_SLOT),
        _push(ARGS_OFFSET + 64), "MLOAD", _push(ARGS_OFFSET), "ADD", *_store(SIG_SLOT),

        # wrapped when len >= 32 and the last word is the magic suffix
        *_load(SIG_SLOT), "MLOAD",
        "DUP1", _push(32), "GT", *_jump_if("not_wrapped"),
        *_load(SIG_SLOT), "ADD", "MLOAD",
        ("push32", magic), "EQ", "ISZERO", *_jump_if("check_code"),

        # wrapper body: abi.encode(address factory, bytes factoryData, bytes signature)
        *_load(SIG_SLOT), _push(32), "ADD",
        "DUP1", _push(64), "ADD", "MLOAD", "DUP2", "ADD", *_store(SIG_SLOT),
        *_load(SIGNER_SLOT), "EXTCODESIZE", *_jump_if("deployed"),
        "DUP1", _push(32), "ADD", "MLOAD", "DUP2", "ADD",
        _push(0), _push(0),
        "DUP3", "MLOAD",
        "DUP4", _push(32), "ADD",
        _push(0),
        "DUP7", "MLOAD",
        "GAS", "CALL",
        *_jump_if("factory_ok"),
        _push(0), "DUP1", "REVERT",
        *_label("factory_ok"), "POP",
        *_label("deployed"), "POP",
        _ref("check_code"), "JUMP",

        *_label("not_wrapped"), "POP",

        *_label("check_code"),
        _push(0), _push(0), "MSTORE",
        *_load(SIGNER_SLOT), "EXTCODESIZE", "ISZERO", *_jump_if("ecrecover"),

        # isValidSignature(bytes32, bytes) on the signer
        *_load(FREE_SLOT),
        _push(ERC1271_MAGIC_VALUE), _push(224), "SHL", "DUP2", "MSTORE",
        *_load(HASH_SLOT), "DUP2", _push(4), "ADD", "MSTORE",
        _push(64), "DUP2", _push(36), "ADD", "MSTORE",
        *_load(SIG_SLOT), "MLOAD", _push(32), "ADD",
        _push(0),
        *_label("copy"),
        "DUP2", "DUP2", "LT", "ISZERO", *_jump_if("copied"),
        "DUP1", *_load(SIG_SLOT), "ADD", "MLOAD",
        "DUP2", "DUP5", "ADD", _push(68), "ADD", "MSTORE",
        _push(32), "ADD", _ref("copy"), "JUMP",
        *_label("copied"), "POP",
        _push(32), _push(0),
        "DUP3", _push(68), "ADD",
        "DUP5",
        *_load(SIGNER_SLOT),
        "GAS", "STATICCALL",
        "ISZERO", *_jump_if("fail"),
        "POP", "POP",
        _push(0), "MLOAD", _push(224), "SHR", _push(ERC1271_MAGIC_VALUE), "EQ",
        _ref("finish"), "JUMP",

        # ecrecover(hash, v, r, s) == signer
        *_label("ecrecover"),
        *_load(SIG_SLOT), "MLOAD", _push(65), "EQ", "ISZERO", *_jump_if("fail"),
        *_load(FREE_SLOT),
        *_load(HASH_SLOT), "DUP2", "MSTORE",
        *_load(SIG_SLOT), _push(96), "ADD", "MLOAD", _push(0), "BYTE",
        "DUP1", _push(27), "EQ", "DUP2", _push(28), "EQ", "OR", "ISZERO", *_jump_if("fail"),
        "DUP2", _push(32), "ADD", "MSTORE",
        *_load(SIG_SLOT), _push(32), "ADD", "MLOAD", "DUP2", _push(64), "ADD", "MSTORE",
        *_load(SIG_SLOT), _push(64), "ADD", "MLOAD", "DUP2", _push(96), "ADD", "MSTORE",
        _push(32), _push(0), _push(128), "DUP4", _push(ECRECOVER_PRECOMPILE),
        "GAS", "STATICCALL",
        "ISZERO", *_jump_if("fail"),
        "POP",
        _push(0), "MLOAD", "DUP1", "ISZERO", "ISZERO",
        "SWAP1", *_load(SIGNER_SLOT), "EQ", "AND",

        *_label("finish"),
        _push(0), "MSTORE",
        _push(1), _push(31), "RETURN",

        *_label("fail"),
        _push(0), "DUP1", "REVERT",

        ("label", "end"),
    ]


def _size(item: Instruction) -> int:
    if isinstance(item, str):
        return 1
    kind, value = item
    if kind == "label":
        return 0
    if kind == "ref":
        return 3
    if kind == "push32":
        return 33
    return 1 + max(1, (value.bit_length() + 7) // 8)


def assemble(program: List[Instruction]) -> bytes:
    """
    Assemble ``program`` into bytecode.

    Label references are encoded as ``PUSH2`` of the label's offset.

    Raises:
        ValueError: On an unknown opcode, an unknown label or a push value
            wider than 32 bytes.
    """
    labels: Dict[str, int] = {}
    offset = 0
    for item in program:
        if isinstance(item, tuple) and item[0] == "label":
            labels[item[1]] = offset
        offset += _size(item)

    code = bytearray()
    for item in program:
        if isinstance(item, str):
            if item not in OPCODES:
                raise ValueError(f"Unknown opcode: {item}")
            code.append(OPCODES[item])
            continue

        kind, value = item
        if kind == "label":
            continue
        if kind == "ref":
            if value not in labels:
                raise ValueError(f"Unknown label: {value}")
            code.append(OPCODES["PUSH2"])
            code += labels[value].to_bytes(2, "big")
        elif kind == "push32":
            if len(value) != 32:
                raise ValueError("push32 needs exactly 32 bytes")
            code.append(OPCODES["PUSH32"])
            code += value
        else:
            width = max(1, (value.bit_length() + 7) // 8)
            if width > 32:
                raise ValueError(f"Push value too wide: {value:#x}")
            code.append(OPCODES["PUSH1"] + width - 1)
            code += value.to_bytes(width, "big")
    return bytes(code)


def assemble_universal_validator(magic: bytes) -> bytes:
    """Return the off-chain validator creation code for the given ERC-6492 suffix."""
    return assemble(_program(magic))
