"""
YAML instruction listings.

A listing describes one decoded method body:

    method: Conditionals.main
    instructions:
      - {op: iload_1, kind: other, line: 21}
      - {op: ifge, kind: conditional_jump, target: 6, line: 21}

Several listings can share one file as separate YAML documents.
"""

from typing import Dict, List, Tuple

import yaml

from bytecode_cfg.core.instruction import Instruction, InstructionKind
from bytecode_cfg.errors import ListingError

_KINDS = {kind.value: kind for kind in InstructionKind}


def _parse_instruction(position: int, record) -> Instruction:
    if not isinstance(record, dict):
        raise ListingError(f"Instruction {position} must be a mapping, got {type(record).__name__}")
    if "kind" not in record:
        raise ListingError(f"Instruction {position} has no kind")

    kind = _KINDS.get(str(record["kind"]).lower())
    if kind is None:
        raise ListingError(f"Instruction {position} has unknown kind {record['kind']!r}")

    index = record.get("index", position)
    if not isinstance(index, int) or index != position:
        raise ListingError(f"Instruction {position} declares index {index!r}")

    target = record.get("target")
    if target is not None and (isinstance(target, bool) or not isinstance(target, int)):
        raise ListingError(f"Instruction {position} has non-integer target {target!r}")

    return Instruction(
        kind=kind,
        index=index,
        target=target,
        opcode=record.get("op"),
        line=record.get("line"),
    )


def _parse_document(document) -> Tuple[str, List[Instruction]]:
    if not isinstance(document, dict):
        raise ListingError("Listing must be a mapping with 'method' and 'instructions'")
    method = document.get("method")
    if not method:
        raise ListingError("Listing has no method name")
    records = document.get("instructions")
    if records is None:
        records = []
    if not isinstance(records, list):
        raise ListingError(f"Instructions of {method} must be a list")
    return str(method), [_parse_instruction(i, record) for i, record in enumerate(records)]


def load_listing(text: str) -> Tuple[str, List[Instruction]]:
    """Parse a single-method listing into its name and instructions."""
    try:
        document = yaml.safe_load(text)
    except yaml.YAMLError as e:
        raise ListingError(f"Invalid YAML: {e}") from e
    return _parse_document(document)


def load_listings(text: str) -> Dict[str, List[Instruction]]:
    """Parse a multi-document listing into instructions keyed by method name."""
    methods = {}
    try:
        documents = [doc for doc in yaml.safe_load_all(text) if doc is not None]
    except yaml.YAMLError as e:
        raise ListingError(f"Invalid YAML: {e}") from e
    for document in documents:
        method, instructions = _parse_document(document)
        if method in methods:
            raise ListingError(f"Duplicate listing for method {method}")
        methods[method] = instructions
    return methods


def load_listing_file(path) -> Dict[str, List[Instruction]]:
    with open(path, "r") as f:
        return load_listings(f.read())
