from .extract import create_snapshots
from .highlight import highlight_directory, highlight_elements
from .serialize import serialize_node, snapshot_document

__all__ = [
    "create_snapshots",
    "highlight_directory",
    "highlight_elements",
    "serialize_node",
    "snapshot_document",
]
