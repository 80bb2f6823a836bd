from __future__ import annotations


class ManifestError(RuntimeError):
    """Base class for manifest generation and parsing failures."""


class ValidationError(ManifestError):
    pass


class FilesystemError(ManifestError):
    pass


class HashError(ManifestError):
    pass


class SerializationError(ManifestError):
    pass
