# Copyright (c) 2026 Pyry Haulos
#
# This software is released under the MIT License.
# https://opensource.org/licenses/MIT

"""Resume storage core.

Signs and issues S3 requests by hand (AWS SigV4, no SDK) and manages the
per-user resume folder layout on top of them:

- Storage configuration (StorageConfig)
- SigV4 request signing (resume_store.sigv4)
- Object store client (ObjectStoreClient)
- Resume folder/upload lifecycle (ResumeLifecycleManager)
"""

from resume_store.config import (
    ConfigurationError,
    ResumeStoreError,
    StorageConfig,
)
from resume_store.object_store import (
    ObjectStoreClient,
    StorageRequestError,
    TransportError,
)
from resume_store.resumes import (
    ProvisionedFolders,
    ResumeLifecycleManager,
    ResumeRecord,
    extension_from_filename,
    resolve_user_key,
)


__all__ = [
    "ConfigurationError",
    "ObjectStoreClient",
    "ProvisionedFolders",
    "ResumeLifecycleManager",
    "ResumeRecord",
    "ResumeStoreError",
    "StorageConfig",
    "StorageRequestError",
    "TransportError",
    "extension_from_filename",
    "resolve_user_key",
]
