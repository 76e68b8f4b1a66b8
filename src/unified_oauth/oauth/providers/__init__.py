"""Vendor OAuth adapters. Add new vendors to PROVIDER_CLASSES."""

from typing import Dict, Type

from ..connection import ConnectionProvider
from .base import Provider
from .confluence import ConfluenceConnectionProvider
from .google_drive import GoogleDriveConnectionProvider
from .notion import NotionConnectionProvider
from .slack import SlackConnectionProvider

PROVIDER_CLASSES: Dict[ConnectionProvider, Type[Provider]] = {
    ConnectionProvider.NOTION: NotionConnectionProvider,
    ConnectionProvider.SLACK: SlackConnectionProvider,
    ConnectionProvider.GOOGLE_DRIVE: GoogleDriveConnectionProvider,
    ConnectionProvider.CONFLUENCE: ConfluenceConnectionProvider,
}

__all__ = [
    "Provider",
    "PROVIDER_CLASSES",
    "NotionConnectionProvider",
    "SlackConnectionProvider",
    "GoogleDriveConnectionProvider",
    "ConfluenceConnectionProvider",
]
