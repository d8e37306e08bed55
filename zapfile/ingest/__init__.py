from .sources import FileSource, PathSource, BytesSource
from .pipeline import IngestionPipeline
from .watcher import DropFolderWatcher, DropFolderHandler

__all__ = [
    'FileSource',
    'PathSource',
    'BytesSource',
    'IngestionPipeline',
    'DropFolderWatcher',
    'DropFolderHandler'
]
