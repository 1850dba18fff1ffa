"""Backend abstractions for splitwrangler."""

from .base import PDFBackend, SourceDocument
from .pypdf_backend import PypdfBackend, PypdfDocument

__all__ = [
    "PDFBackend",
    "SourceDocument",
    "PypdfBackend",
    "PypdfDocument",
]
