"""
Serialization Codecs for envcache
Convert a cache entry {created_at, ttl, data} to and from bytes

Formats:
- json (default)
- xml: typed elements, so values round-trip exactly
- yaml: PyYAML safe dumper/loader

Codecs are pure and stateless. A CodecRegistry maps format names to codecs
and is built once per Cache instance.
"""

import base64
import json
import re
import xml.etree.ElementTree as ET
from abc import ABC, abstractmethod
from typing import Any, Dict, List

import yaml

from envcache.exceptions import ConfigError

ENTRY_FIELDS = ("created_at", "ttl", "data")

# Characters that XML 1.0 cannot carry verbatim (or that parsers normalise)
_XML_UNSAFE = re.compile(r"[\x00-\x08\x0b-\x1f\x7f-\x9f\u2028\u2029\ufffe\uffff]")
# Mapping keys travel in attributes, which only need to be legal characters
_XML_KEY_UNSAFE = re.compile(r"[\x00-\x08\x0b-\x1f\ufffe\uffff]")


def _normalize(value: Any) -> Any:
    """Reduce a value to the JSON data model: dict[str, ...], list, scalars, None."""
    if value is None or isinstance(value, (bool, int, float, str)):
        return value
    if isinstance(value, (list, tuple)):
        return [_normalize(v) for v in value]
    if isinstance(value, dict):
        result = {}
        for k, v in value.items():
            if not isinstance(k, str):
                raise ValueError(f"Mapping keys must be strings, got {type(k).__name__}")
            result[k] = _normalize(v)
        return result
    raise ValueError(f"Unsupported value type: {type(value).__name__}")


class SerializationCodec(ABC):
    """Encode/decode a cache entry for one wire format."""

    name: str = ""
    extension: str = ""

    def encode(self, entry: Dict[str, Any]) -> bytes:
        """
        Encode an entry.

        Raises:
            ValueError: The entry holds values outside the JSON data model
        """
        missing = [f for f in ENTRY_FIELDS if f not in entry]
        if missing:
            raise ValueError(f"Cache entry is missing fields: {missing}")
        return self._encode({f: _normalize(entry[f]) for f in ENTRY_FIELDS})

    def decode(self, payload: bytes) -> Dict[str, Any]:
        """
        Decode an entry.

        Raises:
            ValueError: Malformed payload or missing entry fields
        """
        entry = self._decode(payload)
        if not isinstance(entry, dict) or any(f not in entry for f in ENTRY_FIELDS):
            raise ValueError(f"Decoded {self.name} payload is not a cache entry")
        if not isinstance(entry["created_at"], int) or not isinstance(entry["ttl"], int):
            raise ValueError("Cache entry metadata must be integers")
        return entry

    @abstractmethod
    def _encode(self, entry: Dict[str, Any]) -> bytes:
        ...

    @abstractmethod
    def _decode(self, payload: bytes) -> Any:
        ...


class JSONCodec(SerializationCodec):
    """JSON codec."""

    name = "json"
    extension = "json"

    def _encode(self, entry: Dict[str, Any]) -> bytes:
        return json.dumps(entry, ensure_ascii=False, separators=(",", ":")).encode("utf-8")

    def _decode(self, payload: bytes) -> Any:
        try:
            return json.loads(payload.decode("utf-8"))
        except UnicodeDecodeError as e:
            raise ValueError(f"Invalid JSON payload: {e}") from e


class YAMLCodec(SerializationCodec):
    """YAML codec (safe subset only)."""

    name = "yaml"
    extension = "yaml"

    def _encode(self, entry: Dict[str, Any]) -> bytes:
        # Non-ASCII is escaped; raw NEL and U+2028/U+2029 read back as line breaks
        return yaml.safe_dump(entry, allow_unicode=False, sort_keys=False).encode("utf-8")

    def _decode(self, payload: bytes) -> Any:
        try:
            return yaml.safe_load(payload.decode("utf-8"))
        except (UnicodeDecodeError, yaml.YAMLError) as e:
            raise ValueError(f"Invalid YAML payload: {e}") from e


class XMLCodec(SerializationCodec):
    """
    XML codec.

    Each value becomes an element with a `type` attribute; mapping members
    and sequence items are <item> children, mapping members carry a `key`.
    Strings containing characters XML cannot carry are base64 encoded.
    """

    name = "xml"
    extension = "xml"

    def _encode(self, entry: Dict[str, Any]) -> bytes:
        root = ET.Element("entry")
        for field_name in ENTRY_FIELDS:
            root.append(self._to_element(field_name, entry[field_name]))
        return ET.tostring(root, encoding="utf-8")

    def _decode(self, payload: bytes) -> Any:
        try:
            root = ET.fromstring(payload)
        except ET.ParseError as e:
            raise ValueError(f"Invalid XML payload: {e}") from e
        if root.tag != "entry":
            raise ValueError(f"Unexpected XML root element: {root.tag}")
        return {child.tag: self._from_element(child) for child in root}

    def _to_element(self, tag: str, value: Any) -> ET.Element:
        elem = ET.Element(tag)
        if value is None:
            elem.set("type", "null")
        elif isinstance(value, bool):
            elem.set("type", "bool")
            elem.text = "true" if value else "false"
        elif isinstance(value, int):
            elem.set("type", "int")
            elem.text = str(value)
        elif isinstance(value, float):
            elem.set("type", "float")
            elem.text = repr(value)
        elif isinstance(value, str):
            if _XML_UNSAFE.search(value):
                elem.set("type", "b64str")
                elem.text = base64.b64encode(value.encode("utf-8")).decode("ascii")
            else:
                elem.set("type", "str")
                elem.text = value
        elif isinstance(value, list):
            elem.set("type", "list")
            for item in value:
                elem.append(self._to_element("item", item))
        elif isinstance(value, dict):
            elem.set("type", "dict")
            for k, v in value.items():
                if _XML_KEY_UNSAFE.search(k):
                    raise ValueError("Mapping key contains characters XML cannot represent")
                child = self._to_element("item", v)
                child.set("key", k)
                elem.append(child)
        return elem

    def _from_element(self, elem: ET.Element) -> Any:
        value_type = elem.get("type")
        text = elem.text or ""
        try:
            if value_type == "null":
                return None
            if value_type == "bool":
                return text == "true"
            if value_type == "int":
                return int(text)
            if value_type == "float":
                return float(text)
            if value_type == "str":
                return text
            if value_type == "b64str":
                return base64.b64decode(text).decode("utf-8")
            if value_type == "list":
                return [self._from_element(child) for child in elem]
            if value_type == "dict":
                return {child.get("key", ""): self._from_element(child) for child in elem}
        except (ValueError, UnicodeDecodeError) as e:
            raise ValueError(f"Invalid XML value in <{elem.tag}>: {e}") from e
        raise ValueError(f"Unknown XML value type: {value_type!r}")


class CodecRegistry:
    """Format name -> codec map."""

    def __init__(self, codecs: List[SerializationCodec] = None):
        self._codecs: Dict[str, SerializationCodec] = {}
        for codec in codecs or []:
            self.register(codec)

    def register(self, codec: SerializationCodec) -> None:
        self._codecs[codec.name] = codec

    def get(self, name: str) -> SerializationCodec:
        """
        Look up a codec by format name.

        Raises:
            ConfigError: Unknown format name
        """
        codec = self._codecs.get(name)
        if codec is None:
            raise ConfigError(
                f"Unsupported format: {name}",
                context={"available": self.names()},
            )
        return codec

    def names(self) -> List[str]:
        return sorted(self._codecs)

    def extensions(self) -> List[str]:
        return sorted({codec.extension for codec in self._codecs.values()})

    def __contains__(self, name: str) -> bool:
        return name in self._codecs


def default_registry() -> CodecRegistry:
    """Registry with the built-in json, xml and yaml codecs."""
    return CodecRegistry([JSONCodec(), XMLCodec(), YAMLCodec()])
