"""Data models for accounts, account files and service requests."""

from .options import DataFormat, ExportOptions, HashOptions, ImportOptions
from .user import ProviderLink, UserRecord
from .wire import (
    DownloadAccountRequest,
    DownloadAccountResponse,
    ErrorResponse,
    ProviderUserInfoDocument,
    UploadAccountError,
    UploadAccountRequest,
    UploadAccountResponse,
    UserDocument,
)

__all__ = [
    "DataFormat",
    "DownloadAccountRequest",
    "DownloadAccountResponse",
    "ErrorResponse",
    "ExportOptions",
    "HashOptions",
    "ImportOptions",
    "ProviderLink",
    "ProviderUserInfoDocument",
    "UploadAccountError",
    "UploadAccountRequest",
    "UploadAccountResponse",
    "UserDocument",
    "UserRecord",
]
