"""Localized label catalog."""

from ownerlink.i18n.catalog import MessageCatalog

__all__ = ["MessageCatalog"]
