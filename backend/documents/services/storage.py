"""
Byte-level access to stored PDFs, plus signed-artifact naming.
"""

import os
from contextlib import contextmanager

from django.core.files.base import ContentFile
from django.core.files.storage import default_storage

SIGNED_SUFFIX = '-signed'
EXTERNAL_SIGNED_SUFFIX = '-signed-ext'


def signed_artifact_name(name, suffix=SIGNED_SUFFIX):
    """
    Derive the sibling path of a signed artifact.

    >>> signed_artifact_name('documents/1/contract.pdf')
    'documents/1/contract-signed.pdf'
    """
    root, ext = os.path.splitext(name)
    return f'{root}{suffix}{ext}'


class ArtifactStorage:
    """Read and write whole files through a Django storage backend."""

    def __init__(self, storage=None):
        self.storage = storage or default_storage

    def read_bytes(self, name):
        with self.storage.open(name, 'rb') as f:
            return f.read()

    def write_bytes(self, name, data):
        """
        Write ``data`` to ``name``, replacing any previous artifact there.

        Returns:
            str: name actually used by the storage backend
        """
        if self.storage.exists(name):
            self.storage.delete(name)
        return self.storage.save(name, ContentFile(data))

    def url(self, name):
        return self.storage.url(name)

    @contextmanager
    def restoring(self, name):
        """
        Put the file at ``name`` back the way it was if the block raises.

        A file that did not exist before the block is removed again.
        """
        previous = self.read_bytes(name) if self.storage.exists(name) else None
        try:
            yield
        except BaseException:
            if previous is not None:
                self.write_bytes(name, previous)
            elif self.storage.exists(name):
                self.storage.delete(name)
            raise


# Singleton instance
_artifact_storage = None


def get_artifact_storage() -> ArtifactStorage:
    """Get singleton instance of artifact storage."""
    global _artifact_storage
    if _artifact_storage is None:
        _artifact_storage = ArtifactStorage()
    return _artifact_storage
