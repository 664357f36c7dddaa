"""Layout-parameterized encode/decode engine shared by all codecs."""

from scopecodecs.engine.decode import decode_scope_info
from scopecodecs.engine.encode import encode_scope_info

__all__ = ["decode_scope_info", "encode_scope_info"]
