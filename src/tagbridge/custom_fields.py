"""Custom (user-defined) text fields: TXXX frames and their analogues.

Per key the lifecycle is absent -> present(value) -> present(new value) ->
absent. Writing a key that exists replaces the old record; removing an
absent key does nothing.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping

from tagbridge.adapters.base import CustomFieldStore, TagAdapter
from tagbridge.errors import FieldError
from tagbridge.model import CustomFields, WriteReport

log = logging.getLogger(__name__)


def read_custom_fields(adapter: TagAdapter | None) -> CustomFields:
    """Every custom record of ``adapter``, or an empty mapping if it has none."""
    if adapter is None or not isinstance(adapter, CustomFieldStore):
        return CustomFields()
    return adapter.custom_fields()


def apply_custom_fields(
    adapter: TagAdapter,
    mapping: Mapping[str, str | None],
    report: WriteReport | None = None,
) -> None:
    """
    Replace-or-create each entry of ``mapping``; a ``None`` value removes the key.

    A rejected key is recorded as skipped and the remaining entries still apply.
    """
    if not mapping:
        return
    if not isinstance(adapter, CustomFieldStore):
        if report is not None:
            report.skip("custom_fields", f"{adapter.kind} tags cannot hold custom fields")
        return

    for key, value in mapping.items():
        name = f"custom:{key}"
        try:
            if value is None:
                adapter.remove_custom_field(key)
            else:
                adapter.set_custom_field(key, str(value))
        except FieldError as e:
            log.warning("Custom field %r not written: %s", key, e)
            if report is not None:
                report.skip(name, str(e))
            continue
        if report is not None:
            report.fields_written.append(name)
