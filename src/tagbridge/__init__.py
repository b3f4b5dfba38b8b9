__all__ = (
    "Config",
    # Model
    "CustomFields",
    "Picture",
    "PictureType",
    "TrackMetadata",
    "TrackNumber",
    "WriteReport",
    # Errors
    "TagBridgeError",
    "ContainerError",
    "ContainerNotFoundError",
    "UnsupportedContainerError",
    "CorruptContainerError",
    "PersistError",
    "FieldError",
    "FieldValueError",
    "FieldRejectedError",
    "UnsupportedImageError",
    # Read/write
    "open_container",
    "load_metadata",
    "read_metadata",
    "write_metadata",
    "read_pictures",
    "export_pictures",
    "import_picture",
    "remove_pictures",
    "set_custom_fields",
    # Pictures
    "picture_from_bytes",
    "load_picture_file",
    # Batch
    "BatchResult",
    "collect_audio_files",
    "read_batch",
    # Fields
    "writable_fields",
    "template",
)

from tagbridge.batch import BatchResult, collect_audio_files, read_batch
from tagbridge.config import Config
from tagbridge.errors import (
    ContainerError,
    ContainerNotFoundError,
    CorruptContainerError,
    FieldError,
    FieldRejectedError,
    FieldValueError,
    PersistError,
    TagBridgeError,
    UnsupportedContainerError,
    UnsupportedImageError,
)
from tagbridge.fields import template, writable_fields
from tagbridge.model import (
    CustomFields,
    Picture,
    PictureType,
    TrackMetadata,
    TrackNumber,
    WriteReport,
)
from tagbridge.pictures import load_picture_file, picture_from_bytes
from tagbridge.tagging import (
    export_pictures,
    import_picture,
    load_metadata,
    open_container,
    read_metadata,
    read_pictures,
    remove_pictures,
    set_custom_fields,
    write_metadata,
)
