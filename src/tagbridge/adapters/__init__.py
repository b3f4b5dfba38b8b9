"""Tag container adapters.

Adapters are always built and probed in the fixed order ID3, Xiph, Apple.
Probing an adapter against a container of another kind is a harmless no-op
that reports the tag kind as absent.
"""

__all__ = (
    "ADAPTER_CLASSES",
    "AppleAdapter",
    "CustomFieldStore",
    "FieldAccessor",
    "FreeformLookup",
    "Id3Adapter",
    "PictureStore",
    "TagAdapter",
    "XiphAdapter",
    "build_adapters",
    "ordered_for_probe",
)

from typing import Any

from tagbridge.adapters.apple import AppleAdapter
from tagbridge.adapters.base import (
    CustomFieldStore,
    FieldAccessor,
    FreeformLookup,
    PictureStore,
    TagAdapter,
)
from tagbridge.adapters.id3 import Id3Adapter
from tagbridge.adapters.xiph import XiphAdapter

ADAPTER_CLASSES: tuple[type[TagAdapter], ...] = (Id3Adapter, XiphAdapter, AppleAdapter)


def build_adapters(audio: Any) -> list[TagAdapter]:
    """One adapter of every kind over ``audio``, in probe order."""
    return [adapter_cls(audio) for adapter_cls in ADAPTER_CLASSES]


def ordered_for_probe(adapters: list[TagAdapter]) -> list[TagAdapter]:
    """Primary (first present) adapter first, then the rest in fixed order."""
    primary = next((adapter for adapter in adapters if adapter.probe()), None)
    if primary is None:
        return list(adapters)
    return [primary, *(adapter for adapter in adapters if adapter is not primary)]
