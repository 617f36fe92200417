"""
envcache cache core

- Cache: the orchestrator (set/get/delete/clear, TTL, eviction, encryption)
- EvictionQueue: FIFO-by-insertion key order
- SerializationCodec / CodecRegistry: json, xml, yaml wire formats
- PayloadCompressor: optional zlib compression of encoded entries
- ExpirySweeper: optional background expiry sweep
"""

from envcache.cache.codecs import (
    SerializationCodec,
    JSONCodec,
    XMLCodec,
    YAMLCodec,
    CodecRegistry,
    default_registry,
)
from envcache.cache.compression import PayloadCompressor
from envcache.cache.eviction import EvictionQueue
from envcache.cache.manager import Cache
from envcache.cache.sweeper import ExpirySweeper

__all__ = [
    "Cache",
    "EvictionQueue",
    "SerializationCodec",
    "JSONCodec",
    "XMLCodec",
    "YAMLCodec",
    "CodecRegistry",
    "default_registry",
    "PayloadCompressor",
    "ExpirySweeper",
]
