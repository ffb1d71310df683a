# Pagelyzer audit core: Ports (Protocol Interfaces)
# Abstract interfaces for adapters; no implementations here

from src.core.ports.time import TimePort

__all__ = [
    "TimePort",
]
