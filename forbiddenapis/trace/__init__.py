from .trace_emitter import TraceEmitter
from .trace_store_jsonl import TraceStoreJSONL

__all__ = ["TraceEmitter", "TraceStoreJSONL"]
