import asyncio
import logging
from typing import Optional

from supabase import Client

from portal.schemas import DocumentDescriptor, DocumentType
from portal.services.records import Record, field

logger = logging.getLogger(__name__)

UNKNOWN_KEY = "unknown"
ORDER_TOKEN = "order"
PLACEHOLDER_NAMES = {".emptyFolderPlaceholder"}

NO_DOCUMENTS = DocumentDescriptor(
    name="No documents found",
    url="",
    type=DocumentType.EXPORT_DOCUMENT,
)


class ResolutionCancelled(Exception):
    """Raised when a newer selection supersedes an in-flight resolution."""


class CancellationToken:
    def __init__(self):
        self._cancelled = False

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    def cancel(self):
        self._cancelled = True

    def raise_if_cancelled(self):
        if self._cancelled:
            raise ResolutionCancelled()


def lookup_key(record: Record) -> str:
    """REF takes precedence over CONTAINER; records with neither share 'unknown'."""
    ref = field(record, "REF").strip()
    if ref:
        return ref
    container = field(record, "CONTAINER").strip()
    if container:
        return container
    return UNKNOWN_KEY


def classify_document(name: str) -> DocumentType:
    if ORDER_TOKEN in (name or "").lower():
        return DocumentType.ORDER_CONFIRMATION
    return DocumentType.EXPORT_DOCUMENT


def order_documents(documents: list[DocumentDescriptor]) -> list[DocumentDescriptor]:
    # Stable: order confirmations first, then resolution order
    return sorted(documents, key=lambda d: d.type != DocumentType.ORDER_CONFIRMATION)


def is_no_documents(documents: list[DocumentDescriptor]) -> bool:
    return not documents or documents == [NO_DOCUMENTS]


def _signed_url(response) -> str:
    # storage3 has returned both spellings across releases
    if isinstance(response, dict):
        return response.get("signedURL") or response.get("signedUrl") or ""
    return ""


class DocumentResolver:
    def __init__(self, client: Client, bucket: str = "documents", expires_in: int = 3600):
        self.client = client
        self.bucket = bucket
        self.expires_in = expires_in

    def _folder(self, key: str) -> str:
        return f"documents/{key}"

    def _list_entries(self, folder: str) -> list[dict]:
        return self.client.storage.from_(self.bucket).list(folder) or []

    def _create_signed_url(self, path: str) -> str:
        response = self.client.storage.from_(self.bucket).create_signed_url(path, self.expires_in)
        return _signed_url(response)

    async def resolve(self, record: Record, token: Optional[CancellationToken] = None) -> list[DocumentDescriptor]:
        """
        Lists documents/{key}/* for the record and signs each entry.
        Entries that fail to sign are skipped; store failures and empty
        folders degrade to [NO_DOCUMENTS].
        Raises ResolutionCancelled if the token is cancelled mid-flight.
        """
        token = token or CancellationToken()
        key = lookup_key(record)
        folder = self._folder(key)

        try:
            entries = await asyncio.to_thread(self._list_entries, folder)
            token.raise_if_cancelled()

            documents = []
            for entry in entries:
                name = entry.get("name") if isinstance(entry, dict) else None
                if not name or name in PLACEHOLDER_NAMES:
                    continue

                try:
                    url = await asyncio.to_thread(self._create_signed_url, f"{folder}/{name}")
                except Exception as e:
                    logger.warning(f"[Documents] Could not sign '{name}' for '{key}': {e}")
                    url = None

                token.raise_if_cancelled()
                if url is None:
                    continue
                documents.append(DocumentDescriptor(name=name, url=url, type=classify_document(name)))

        except ResolutionCancelled:
            logger.info(f"[Documents] Resolution for '{key}' superseded")
            raise
        except Exception as e:
            logger.warning(f"[Documents] Could not resolve documents for '{key}': {e}")
            return [NO_DOCUMENTS]

        if not documents:
            return [NO_DOCUMENTS]
        return order_documents(documents)
