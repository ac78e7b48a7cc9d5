"""Conversions between Python values and Solidity ABI types.

Inputs: ``address``, ``bool``, ``uint*``/``int*``, ``bytes*``, ``string``,
arrays and nested tuples/structs, where a struct may be given as a dict
keyed by component name.  Used for constructor arguments and for encoded
function calls.

Outputs: struct-typed return values are shaped the way ethers.js presents
them, as a mapping that carries every field twice (under its position and
under its name).  ``vault_deploy.provisioning.normalize`` strips the
positional duplicates again before comparison.
"""

from __future__ import annotations

from typing import Any

from eth_abi import decode as abi_decode
from eth_abi import encode as abi_encode
from eth_utils import keccak
from web3 import Web3


def cast_single(arg: Any, abi_type: str) -> Any:
    """Cast a single Python value to its Solidity ABI type."""
    t = abi_type.strip()

    if t == "bool":
        if isinstance(arg, bool):
            return arg
        if isinstance(arg, str):
            return arg.lower() in ("true", "1", "yes")
        return bool(arg)

    if t.startswith("uint") or t.startswith("int"):
        if isinstance(arg, str) and arg.startswith("0x"):
            return int(arg, 16)
        return int(arg)

    if t == "address":
        return Web3.to_checksum_address(str(arg))

    if t == "string":
        return str(arg)

    if t.startswith("bytes"):
        if isinstance(arg, bytes):
            return arg
        s = str(arg)
        if s.startswith("0x"):
            return bytes.fromhex(s[2:])
        return s.encode("utf-8")

    return arg


def cast_args(args: list[Any], abi_inputs: list[dict[str, Any]]) -> list[Any]:
    """Recursively cast a list of arguments to match ABI input definitions."""
    if not args and not abi_inputs:
        return []

    if len(args) != len(abi_inputs):
        raise ValueError(
            f"Argument count mismatch: got {len(args)}, expected {len(abi_inputs)}"
        )

    return [_cast_value(arg, inp) for arg, inp in zip(args, abi_inputs, strict=True)]


def _cast_value(arg: Any, inp: dict[str, Any]) -> Any:
    t = inp.get("type", "").strip()
    components = inp.get("components")

    if t.endswith("]"):
        element_type = t[: t.rindex("[")]
        if not isinstance(arg, (list, tuple)):
            raise TypeError(f"Expected list for {t}, got {type(arg).__name__}")
        element_inp = {"type": element_type}
        if components:
            element_inp["components"] = components
        return [_cast_value(item, element_inp) for item in arg]

    if t == "tuple" and components:
        if isinstance(arg, dict):
            missing = [
                c["name"]
                for i, c in enumerate(components)
                if c["name"] not in arg and str(i) not in arg
            ]
            if missing:
                raise ValueError(f"Struct value is missing fields: {missing}")
            ordered = [
                arg[c["name"]] if c["name"] in arg else arg[str(i)]
                for i, c in enumerate(components)
            ]
            return tuple(cast_args(ordered, components))
        if isinstance(arg, (list, tuple)):
            return tuple(cast_args(list(arg), components))
        raise TypeError(
            f"Expected dict/list/tuple for tuple type, got {type(arg).__name__}"
        )

    return cast_single(arg, t)


def shape_output(value: Any, out: dict[str, Any]) -> Any:
    """Give a decoded return value its positional+named struct shape."""
    t = out.get("type", "").strip()
    components = out.get("components")

    if t.endswith("]"):
        element_out = {"type": t[: t.rindex("[")]}
        if components:
            element_out["components"] = components
        return [shape_output(item, element_out) for item in value]

    if t == "tuple" and components:
        return shape_outputs(list(value), components)

    if t == "address":
        return Web3.to_checksum_address(value)

    return value


def shape_outputs(values: list[Any], outputs: list[dict[str, Any]]) -> dict[str, Any]:
    shaped: dict[str, Any] = {}
    for i, (value, out) in enumerate(zip(values, outputs, strict=True)):
        item = shape_output(value, out)
        shaped[str(i)] = item
        if out.get("name"):
            shaped[out["name"]] = item
    return shaped


def shape_call_result(value: Any, outputs: list[dict[str, Any]]) -> Any:
    """Shape decoded return values using the ABI outputs.

    A single output is returned on its own (structs become blobs); several
    outputs become one blob, mirroring ethers.js.
    """
    if len(outputs) == 1:
        return shape_output(value, outputs[0])
    if not outputs:
        return value
    return shape_outputs(list(value), outputs)


def get_constructor_inputs(abi: list[dict[str, Any]]) -> list[dict[str, Any]]:
    for entry in abi:
        if entry.get("type") == "constructor":
            return entry.get("inputs", [])
    return []


def find_function_abi(
    abi: list[dict[str, Any]], method: str, arity: int | None = None
) -> dict[str, Any] | None:
    """Look up a function entry by plain name or by full signature.

    For overloaded plain names, *arity* picks the overload by input count.
    """
    for entry in abi:
        if entry.get("type") != "function":
            continue
        inputs = entry.get("inputs", [])
        if "(" in method:
            types = ",".join(_canonical_type(i) for i in inputs)
            if f"{entry['name']}({types})" == method:
                return entry
        elif entry.get("name") == method and (arity is None or len(inputs) == arity):
            return entry
    return None


def _canonical_type(inp: dict[str, Any]) -> str:
    t = inp["type"]
    if t.startswith("tuple"):
        inner = ",".join(_canonical_type(c) for c in inp.get("components", []))
        return f"({inner}){t[len('tuple'):]}"
    return t


def function_signature(entry: dict[str, Any]) -> str:
    types = ",".join(_canonical_type(i) for i in entry.get("inputs", []))
    return f"{entry['name']}({types})"


def encode_function_call(entry: dict[str, Any], args: list[Any]) -> str:
    inputs = entry.get("inputs", [])
    selector = keccak(text=function_signature(entry))[:4]
    encoded = abi_encode(
        [_canonical_type(i) for i in inputs], cast_args(list(args), inputs)
    )
    return "0x" + (selector + encoded).hex()


def encode_constructor_args(abi: list[dict[str, Any]], args: list[Any]) -> bytes:
    inputs = get_constructor_inputs(abi)
    if not inputs and not args:
        return b""
    return abi_encode([_canonical_type(i) for i in inputs], cast_args(list(args), inputs))


def decode_function_result(entry: dict[str, Any], data: bytes) -> Any:
    outputs = entry.get("outputs", [])
    values = abi_decode([_canonical_type(o) for o in outputs], bytes(data))
    if len(outputs) == 1:
        return shape_call_result(values[0], outputs)
    return shape_call_result(list(values), outputs)
