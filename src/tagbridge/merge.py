"""Populate the canonical model from adapters, and dispatch writes back to them.

Read precedence: for every canonical field the first adapter (primary first,
then ID3, Xiph, Apple) with a value wins. Catalog fields are hunted with
``read_freeform`` over each field's alias list in the same adapter order.
Custom fields and pictures come from the primary adapter.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from pathlib import Path
from typing import Any

from tagbridge.adapters import FreeformLookup, PictureStore, TagAdapter, ordered_for_probe
from tagbridge.custom_fields import read_custom_fields
from tagbridge.errors import FieldError, FieldRejectedError
from tagbridge.fields import (
    ALL_FIELDS,
    CANONICAL_FIELDS,
    CATALOG_FIELDS,
    coerce_value,
    lookup_field,
)
from tagbridge.model import TrackMetadata, WriteReport

log = logging.getLogger(__name__)


def collect_metadata(
    adapters: list[TagAdapter], path: Path, container_name: str
) -> TrackMetadata:
    """Build a fresh TrackMetadata from ``adapters``."""
    ordered = ordered_for_probe(adapters)
    present = [adapter for adapter in ordered if adapter.probe()]
    primary = present[0] if present else None

    metadata = TrackMetadata(
        path=path,
        container=container_name,
        tag_types=[adapter.tag_type for adapter in present],
    )

    for name in CANONICAL_FIELDS:
        for adapter in ordered:
            value = adapter.read_field(name)
            if value is not None:
                setattr(metadata, name, value)
                break

    for name, spec in CATALOG_FIELDS.items():
        for adapter in ordered:
            if not isinstance(adapter, FreeformLookup):
                continue
            value = adapter.read_freeform(spec.aliases)
            if value is not None:
                setattr(metadata, name, value)
                break

    metadata.custom_fields = read_custom_fields(primary)

    # FLAC picture blocks exist without a comment block, so fall through on empty
    for adapter in ordered:
        if isinstance(adapter, PictureStore):
            pictures = adapter.pictures()
            if pictures:
                metadata.pictures = pictures
                break

    return metadata


def build_metadata(container: Any) -> TrackMetadata:
    """Build a TrackMetadata from an opened ``Container``."""
    return collect_metadata(container.adapters, container.path, type(container.audio).__name__)


def merge_named_fields(
    fields: Mapping[str, Any] | None, named: Mapping[str, Any]
) -> dict[str, Any]:
    """
    Merge the bulk mapping with named parameters; named parameters win.

    Bulk keys are resolved through ``lookup_field`` so ``"Title"`` and
    ``"title"`` land on the same field. Unknown keys are kept verbatim for
    pass-through. Named parameters that are None are ignored.
    """
    merged: dict[str, Any] = {}
    for key, value in (fields or {}).items():
        spec = lookup_field(key)
        merged[spec.name if spec else key] = value
    for name, value in named.items():
        if value is not None:
            merged[name] = value
    return merged


def _write_one(adapter: TagAdapter, key: str, value: Any, separator: str) -> None:
    spec = ALL_FIELDS.get(key)
    if spec is None:
        adapter.set_native(key, value)
        return

    if spec.is_catalog:
        if not isinstance(adapter, FreeformLookup):
            raise FieldRejectedError(key, f"{adapter.kind} tags have no freeform storage")
        if value is None:
            for alias in spec.aliases:
                adapter.write_freeform(alias, None)
        else:
            adapter.write_freeform(spec.write_key, coerce_value(spec, value, separator))
        return

    adapter.write_field(key, None if value is None else coerce_value(spec, value, separator))


def apply_field_mutations(
    adapter: TagAdapter,
    merged: Mapping[str, Any],
    report: WriteReport,
    separator: str = "; ",
) -> None:
    """
    Write every merged field to ``adapter``.

    A field that fails (bad value, or refused by the tag structure) is
    recorded in ``report`` as skipped with a warning; the others still apply.
    """
    for key, value in merged.items():
        try:
            _write_one(adapter, key, value, separator)
        except FieldError as e:
            log.warning("Field %s not written: %s", key, e)
            report.skip(key, str(e))
        except (ValueError, TypeError, KeyError) as e:
            # mutagen refusing a value it cannot represent
            log.warning("Field %s rejected by %s tags: %s", key, adapter.kind, e)
            report.skip(key, f"rejected by {adapter.kind} tags: {e}")
        else:
            report.fields_written.append(key)
