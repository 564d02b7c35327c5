"""EAS schema encoding.

An EAS schema string is a comma-separated list of `<type> <name>` pairs,
e.g. "string subject,string controller,string method,uint256 observedAt".
Attestation data is the ABI encoding of those fields as one tuple.

Tuple-typed fields are not supported.
"""

import re
from dataclasses import dataclass
from typing import Any, Dict, List, Mapping, Sequence, Tuple, Union

from eth_abi import decode as abi_decode
from eth_abi import encode as abi_encode
from eth_utils import to_bytes

_FIELD_PATTERN = re.compile(r"^([a-z0-9]+(?:\[\d*\])*)\s+([A-Za-z_][A-Za-z0-9_]*)$")


@dataclass(frozen=True)
class SchemaField:
    type: str
    name: str


@dataclass(frozen=True)
class SchemaItem:
    """A decoded field: name, ABI type and native value."""
    name: str
    type: str
    value: Any


def parse_schema_string(schema: str) -> List[SchemaField]:
    """Parse an EAS schema string into typed fields.

    Raises:
        ValueError: On empty, tuple-typed or malformed fields, or duplicate names.
    """
    fields: List[SchemaField] = []
    seen = set()
    for raw in schema.split(","):
        part = " ".join(raw.split())
        if not part:
            raise ValueError(f"Empty field in schema string: {schema!r}")
        if "(" in part or ")" in part:
            raise ValueError(f"Tuple fields are not supported: {part!r}")
        match = _FIELD_PATTERN.match(part)
        if not match:
            raise ValueError(f"Malformed schema field: {part!r}")
        field_type, name = match.groups()
        if field_type == "ipfshash":
            field_type = "bytes32"
        if name in seen:
            raise ValueError(f"Duplicate field name in schema: {name}")
        seen.add(name)
        fields.append(SchemaField(type=field_type, name=name))
    return fields


def _to_abi_value(field_type: str, value: Any) -> Any:
    """Coerce a Python value into what eth_abi expects for field_type."""
    if field_type.endswith("]"):
        inner = field_type[: field_type.rindex("[")]
        return [_to_abi_value(inner, v) for v in value]
    if field_type.startswith("bytes") and isinstance(value, str):
        return to_bytes(hexstr=value)
    if field_type.startswith(("uint", "int")) and isinstance(value, str):
        return int(value, 0)
    return value


def stringify_value(value: Any) -> str:
    """Render a decoded ABI value as a comparable string.

    Integers are decimal, booleans `true`/`false`, bytes 0x-hex, arrays
    comma-joined.
    """
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (bytes, bytearray)):
        return "0x" + bytes(value).hex()
    if isinstance(value, (list, tuple)):
        return ",".join(stringify_value(v) for v in value)
    return str(value)


class SchemaEncoder:
    """Encode and decode attestation data for one EAS schema string."""

    def __init__(self, schema: str):
        self.schema = schema
        self.fields = parse_schema_string(schema)

    @property
    def types(self) -> List[str]:
        return [f.type for f in self.fields]

    def encode_data(self, values: Union[Mapping[str, Any], Sequence[Any]]) -> bytes:
        """ABI-encode field values.

        Args:
            values: Mapping of field name to value, or values in schema order.

        Raises:
            ValueError: If a field is missing or a value does not fit its type.
        """
        if isinstance(values, Mapping):
            missing = [f.name for f in self.fields if f.name not in values]
            if missing:
                raise ValueError(f"Missing values for fields: {', '.join(missing)}")
            ordered = [values[f.name] for f in self.fields]
        else:
            ordered = list(values)
            if len(ordered) != len(self.fields):
                raise ValueError(
                    f"Expected {len(self.fields)} values, got {len(ordered)}"
                )

        coerced = [_to_abi_value(f.type, v) for f, v in zip(self.fields, ordered)]
        try:
            return abi_encode(self.types, coerced)
        except Exception as e:
            raise ValueError(f"Cannot encode data for schema {self.schema!r}: {e}") from e

    def decode_data(self, data: Union[bytes, str]) -> List[SchemaItem]:
        """ABI-decode attestation data into schema items.

        Raises:
            ValueError: If data does not decode under this schema.
        """
        raw = to_bytes(hexstr=data) if isinstance(data, str) else bytes(data)
        try:
            decoded: Tuple[Any, ...] = abi_decode(self.types, raw)
        except Exception as e:
            raise ValueError(f"Cannot decode data for schema {self.schema!r}: {e}") from e
        return [
            SchemaItem(name=f.name, type=f.type, value=v)
            for f, v in zip(self.fields, decoded)
        ]

    def decode_to_fields(self, data: Union[bytes, str]) -> Dict[str, str]:
        """Decode attestation data into a field name -> string map."""
        return {item.name: stringify_value(item.value) for item in self.decode_data(data)}
