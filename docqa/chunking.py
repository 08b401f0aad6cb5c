"""
Document Chunking Module

WHY CHUNKING IS NECESSARY:
1. Embeddings work better on focused, coherent text
2. Retrieval is more precise with smaller, specific chunks
3. Whole documents would overwhelm the answer model's context window

STRATEGY: overlapping word windows.
The text is split on whitespace into words. A window of `chunk_size` words
slides forward by `chunk_size - overlap` words at a time, so consecutive
chunks share exactly `overlap` words:

    words:    w0 w1 w2 w3 w4 w5 w6 w7 w8 w9
    size=5, overlap=2 (step 3)
    chunk 0:  w0 w1 w2 w3 w4
    chunk 1:           w3 w4 w5 w6 w7
    chunk 2:                    w6 w7 w8 w9

The window stops sliding once it has reached the last word, so a text of
at most `chunk_size` words is always exactly one chunk.
"""

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import List, Sequence

# Document loaders
import PyPDF2

from docqa.errors import ConfigurationError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Document:
    """A corpus file, keyed by its filename."""
    filename: str
    content: str

    @property
    def word_count(self) -> int:
        return len(self.content.split())


@dataclass(frozen=True)
class Chunk:
    """
    A piece of a document.

    (source, chunk_index) identifies the chunk; chunk_index is the 0-based
    position inside the source document.
    """
    source: str
    chunk_index: int
    text: str

    @property
    def chunk_id(self) -> str:
        return f"{self.source}-chunk-{self.chunk_index}"

    def __repr__(self):
        preview = self.text[:50] + "..." if len(self.text) > 50 else self.text
        return f"Chunk({self.source}, idx={self.chunk_index}, text='{preview}')"


@dataclass(frozen=True)
class DocumentInfo:
    """Listing entry for the `view sources` command."""
    filename: str
    word_count: int
    preview: str


def chunk_text(text: str, chunk_size: int = 500, overlap: int = 50) -> List[str]:
    """
    Split text into overlapping word windows.

    Args:
        text: The full document text
        chunk_size: Words per chunk
        overlap: Words shared by consecutive chunks

    Returns:
        Chunk texts in document order. Empty or whitespace-only text gives [].

    Raises:
        ConfigurationError: unless chunk_size > overlap >= 0
    """
    if overlap < 0 or chunk_size <= overlap:
        raise ConfigurationError(
            f"Chunking requires chunk_size > overlap >= 0, "
            f"got chunk_size={chunk_size}, overlap={overlap}"
        )

    words = text.split()
    step = chunk_size - overlap
    chunks = []

    for start in range(0, len(words), step):
        chunk = " ".join(words[start:start + chunk_size]).strip()
        if chunk:
            chunks.append(chunk)
        if start + chunk_size >= len(words):
            break

    return chunks


def chunk_document(
    document: Document,
    chunk_size: int = 500,
    overlap: int = 50
) -> List[Chunk]:
    """
    Chunk a document and number the pieces.

    Example:
        chunks = chunk_document(Document("faq.txt", text), chunk_size=200)
        for chunk in chunks:
            print(f"{chunk.chunk_id}: {chunk.text[:100]}...")
    """
    return [
        Chunk(source=document.filename, chunk_index=i, text=text)
        for i, text in enumerate(chunk_text(document.content, chunk_size, overlap))
    ]


class DocumentLoader:
    """
    Load documents from various file formats.

    Only handles file I/O; the result is always a plain-text Document keyed
    by the file's name.
    """

    SUPPORTED_SUFFIXES = (".txt", ".md", ".pdf")

    @staticmethod
    def load(file_path: str) -> Document:
        path = Path(file_path)

        if not path.is_file():
            raise ConfigurationError(f"File not found: {file_path}")

        suffix = path.suffix.lower()

        if suffix in (".txt", ".md"):
            try:
                content = DocumentLoader._load_txt(path)
            except UnicodeDecodeError as e:
                raise ConfigurationError(f"{path.name} is not valid UTF-8: {e}") from e
            return Document(filename=path.name, content=content)
        elif suffix == ".pdf":
            return Document(filename=path.name, content=DocumentLoader._load_pdf(path))
        else:
            raise ConfigurationError(f"Unsupported file format: {suffix}")

    @staticmethod
    def _load_txt(path: Path) -> str:
        with open(path, "r", encoding="utf-8") as f:
            return f.read()

    @staticmethod
    def _load_pdf(path: Path) -> str:
        """Extract the text layer page by page."""
        with open(path, "rb") as f:
            reader = PyPDF2.PdfReader(f)
            return "\n\n".join(page.extract_text() or "" for page in reader.pages)


def _corpus_files(directory: str, extensions: Sequence[str]) -> List[Path]:
    root = Path(directory)
    if not root.is_dir():
        raise ConfigurationError(f"Knowledge base directory not found: {directory}")

    suffixes = {ext.lower() for ext in extensions}
    # Sorted so that index builds are reproducible
    return sorted(
        (p for p in root.iterdir() if p.is_file() and p.suffix.lower() in suffixes),
        key=lambda p: p.name,
    )


def load_knowledge_base(
    directory: str,
    extensions: Sequence[str] = (".txt",)
) -> List[Document]:
    """
    Load every matching file of a directory as a Document.

    Args:
        directory: The corpus directory
        extensions: File suffixes to include

    Returns:
        Documents sorted by filename

    Raises:
        ConfigurationError: if the directory does not exist
    """
    documents = [DocumentLoader.load(str(p)) for p in _corpus_files(directory, extensions)]
    logger.info("Loaded %d documents from %s", len(documents), directory)
    return documents


def list_documents(
    directory: str,
    extensions: Sequence[str] = (".txt",),
    preview_chars: int = 100
) -> List[DocumentInfo]:
    """Word counts and previews of the corpus files."""
    infos = []
    for document in load_knowledge_base(directory, extensions):
        infos.append(DocumentInfo(
            filename=document.filename,
            word_count=document.word_count,
            preview=document.content[:preview_chars],
        ))
    return infos
