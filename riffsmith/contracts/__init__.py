"""Boundary contracts: the engine adapter, the output extractor, wire shapes."""

from riffsmith.contracts.adapter import EngineError, ExecutionAdapter
from riffsmith.contracts.extractor import OutputExtractor, ParseResult

__all__ = [
    "EngineError",
    "ExecutionAdapter",
    "OutputExtractor",
    "ParseResult",
]
