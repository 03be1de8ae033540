# Copyright (c) 2026 Pyry Haulos
#
# This software is released under the MIT License.
# https://opensource.org/licenses/MIT

"""Per-user resume folder layout and upload lifecycle.

Every user owns three prefixes::

    users/<user_key>/
    users/<user_key>/original_resume/
    users/<user_key>/enhanced_resume/

Uploads always land at ``users/<user_key>/original_resume/resume.<ext>``
and replace whatever was there.  The enhanced location is predicted by
substituting ``original_resume`` with ``enhanced_resume``; a downstream
process is expected to write it, and nothing here checks that it exists.
"""

import logging
import mimetypes
from dataclasses import dataclass

from resume_store.object_store import ObjectStoreClient


logger = logging.getLogger(__name__)

USERS_PREFIX = "users"
ORIGINAL_SEGMENT = "original_resume"
ENHANCED_SEGMENT = "enhanced_resume"
RESUME_BASENAME = "resume"
DEFAULT_CONTENT_TYPE = "application/pdf"

# Account identifiers are truncated to this length when a profile has no UUID
_ACCOUNT_KEY_LENGTH = 10


@dataclass(frozen=True)
class ProvisionedFolders:
    """Folder marker keys created for a user.

    Attributes:
        main: User root prefix.
        original: Prefix for uploaded resumes.
        enhanced: Prefix for enhanced resumes.
    """

    main: str
    original: str
    enhanced: str


@dataclass(frozen=True)
class ResumeRecord:
    """Locations returned to the caller after an upload, for persistence.

    Attributes:
        original_key: Key of the stored object.
        original_url: URL of the stored object.
        enhanced_url: Predicted URL of the enhanced resume.
        enhanced_key: Predicted key of the enhanced resume.
    """

    original_key: str
    original_url: str
    enhanced_url: str
    enhanced_key: str


def resolve_user_key(profile_uuid: str | None, account_id: str) -> str:
    """Return the stable per-user key segment.

    Args:
        profile_uuid: Profile UUID, if the profile has one.
        account_id: Account identifier, used truncated as a fallback.

    Raises:
        ValueError: If neither identifier is available.
    """
    if profile_uuid:
        return profile_uuid
    if not account_id:
        raise ValueError("Cannot derive a user key without an identifier")
    return account_id[:_ACCOUNT_KEY_LENGTH]


def extension_from_filename(filename: str) -> str:
    """Return the text after the last ``.`` of a filename."""
    return filename.rsplit(".", 1)[-1]


def _enhanced(value: str) -> str:
    # Only the segment directly above the file; user keys may contain the
    # same text.
    head, sep, tail = value.rpartition(f"/{ORIGINAL_SEGMENT}/")
    if not sep:
        return value
    return f"{head}/{ENHANCED_SEGMENT}/{tail}"


class ResumeLifecycleManager:
    """Provisions user folders and stores resumes through an object store."""

    def __init__(self, store: ObjectStoreClient) -> None:
        self._store = store

    @staticmethod
    def user_prefix(user_key: str) -> str:
        if user_key in ("", ".", "..") or "/" in user_key:
            raise ValueError(f"Invalid user key: {user_key!r}")
        return f"{USERS_PREFIX}/{user_key}/"

    def resume_key(self, user_key: str, file_ext: str) -> str:
        """Return the object key an upload with ``file_ext`` is stored at."""
        ext = file_ext.lstrip(".")
        if not ext:
            raise ValueError("File extension must not be empty")
        return (
            f"{self.user_prefix(user_key)}{ORIGINAL_SEGMENT}/"
            f"{RESUME_BASENAME}.{ext}"
        )

    def provision_user_folders(self, user_key: str) -> ProvisionedFolders:
        """Create the user root, original and enhanced folder markers.

        Markers are created one after another; the first failure
        propagates and no rollback is attempted.  Re-running is safe.

        Raises:
            StorageRequestError: On a non-2xx response.
            TransportError: On network failure.
        """
        root = self.user_prefix(user_key)
        folders = ProvisionedFolders(
            main=self._store.create_folder(root),
            original=self._store.create_folder(f"{root}{ORIGINAL_SEGMENT}/"),
            enhanced=self._store.create_folder(f"{root}{ENHANCED_SEGMENT}/"),
        )
        logger.info("Provisioned resume folders for user %s", user_key)
        return folders

    def upload_resume(
        self,
        user_key: str,
        data: bytes,
        file_ext: str,
        content_type: str | None = None,
    ) -> ResumeRecord:
        """Store a resume, replacing any previous upload with the same ext.

        Args:
            user_key: Per-user key segment (see ``resolve_user_key``).
            data: Raw file bytes.
            file_ext: File extension, with or without a leading dot.
            content_type: MIME type.  Guessed from the extension when
                omitted, falling back to ``application/pdf``.

        Returns:
            ResumeRecord with the stored and predicted enhanced locations.

        Raises:
            StorageRequestError: On a non-2xx response.
            TransportError: On network failure.
        """
        key = self.resume_key(user_key, file_ext)
        if content_type is None:
            # Guess from the file name only; the user key is arbitrary text
            guessed, _ = mimetypes.guess_type(key.rpartition("/")[2])
            content_type = guessed or DEFAULT_CONTENT_TYPE

        url = self._store.put_object(key, data, content_type)
        logger.info("Stored resume for user %s at %s", user_key, key)

        return ResumeRecord(
            original_key=key,
            original_url=url,
            enhanced_url=_enhanced(url),
            enhanced_key=_enhanced(key),
        )
