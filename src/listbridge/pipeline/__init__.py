from listbridge.pipeline.emitter import JsonLinesEmitter

__all__ = ["JsonLinesEmitter"]
