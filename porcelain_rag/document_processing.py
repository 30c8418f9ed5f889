"""Loading of uploaded product documents and word-window chunking."""

import io
import json
from pathlib import Path
from typing import Any

import pypdf

from .config import config

logger = config.get_logger(__name__)

SUPPORTED_DOCUMENT_TYPES = {".pdf", ".txt", ".json"}
IMAGE_CONTENT_TYPES = {"image/jpeg", "image/png", "image/webp"}


class DocumentLoader:
    """Handles loading of PDF, TXT and JSON product files."""

    @staticmethod
    def load_pdf(data: bytes) -> str:
        """Extract text from PDF bytes.

        Returns:
            The extracted text content from the PDF as a string.
        """
        try:
            pdf_reader = pypdf.PdfReader(io.BytesIO(data))
            text = ""
            for page_num, page in enumerate(pdf_reader.pages):
                page_text = page.extract_text()
                text += f"\n--- Page {page_num + 1} ---\n{page_text}\n"
        except Exception:
            logger.exception("Error loading PDF")
            raise
        else:
            return text

    @staticmethod
    def load_txt(data: bytes) -> str:
        try:
            text = data.decode("utf-8")
        except UnicodeDecodeError:
            logger.exception("Error decoding TXT upload")
            raise
        return text

    @staticmethod
    def load_json(data: bytes) -> list[dict[str, Any]]:
        """Parse one product object or an array of them.

        Returns:
            A list of product dictionaries.

        Raises:
            ValueError: If the payload is not an object or an array of objects.
        """
        try:
            payload = json.loads(data.decode("utf-8"))
        except (UnicodeDecodeError, json.JSONDecodeError) as exc:
            msg = f"JSON parsing error: {exc}"
            raise ValueError(msg) from exc

        products = payload if isinstance(payload, list) else [payload]
        if not all(isinstance(item, dict) for item in products):
            msg = "JSON must contain a product object or an array of products"
            raise ValueError(msg)
        return products

    @classmethod
    def load_text(cls, filename: str, data: bytes) -> str:
        """Load a text document based on file extension.

        Args:
            filename: Original name of the uploaded file.
            data: Raw file content.

        Returns:
            The text content of the document as a string.

        Raises:
            ValueError: If the file type is not supported.
        """
        file_ext = Path(filename).suffix.lower()
        if file_ext == ".pdf":
            return cls.load_pdf(data)
        if file_ext == ".txt":
            return cls.load_txt(data)
        msg = f"Unsupported file type: {file_ext}"
        raise ValueError(msg)

    @classmethod
    def load_products_file(cls, file_path: Path) -> list[dict[str, Any]]:
        """Read a products JSON file from disk.

        Returns:
            A list of product dictionaries.
        """
        with file_path.open("rb") as file:
            return cls.load_json(file.read())


class TextChunker:
    """Splits text into overlapping windows of words."""

    def __init__(
        self, chunk_size: int | None = None, overlap: int | None = None
    ) -> None:
        """Initialize the TextChunker with chunk size and overlap, both in words.

        Raises:
            ValueError: If the overlap is not smaller than the chunk size.
        """
        self.chunk_size = chunk_size if chunk_size is not None else config.CHUNK_SIZE
        self.overlap = overlap if overlap is not None else config.CHUNK_OVERLAP
        if self.overlap >= self.chunk_size:
            msg = "Chunk overlap must be smaller than chunk size"
            raise ValueError(msg)

    def chunk_text(self, text: str) -> list[str]:
        """Split text into windows of ``chunk_size`` words.

        Consecutive windows share ``overlap`` words. The last window ends at
        the last word.

        Returns:
            Non-empty chunks in document order.
        """
        words = text.split()
        chunks: list[str] = []
        step = self.chunk_size - self.overlap

        for start in range(0, len(words), step):
            chunks.append(" ".join(words[start : start + self.chunk_size]))
            if start + self.chunk_size >= len(words):
                break

        return chunks
